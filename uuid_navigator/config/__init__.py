"""Configuration for UUID Navigator."""

from .settings import (
    AutoLinkedProperty,
    NavigatorSettings,
    get_settings,
    load_settings,
    reload_settings,
)

__all__ = [
    "AutoLinkedProperty",
    "NavigatorSettings",
    "get_settings",
    "load_settings",
    "reload_settings",
]
