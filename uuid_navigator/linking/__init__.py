"""Entity linking: attaches properties and objects to their classes."""

from __future__ import annotations

from .model_linker import ModelLinker, class_name_from_path

__all__ = ["ModelLinker", "class_name_from_path"]
