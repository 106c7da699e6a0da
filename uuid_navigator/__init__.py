"""
UUID Navigator - object model extraction from SQL seed scripts.

Parses ``INSERT INTO classes / property_definitions /
classes_property_definitions / objects`` statements from a directory of
SQL files, links them into a class-centric model and keeps that model in
sync as files change.
"""

__version__ = "0.1.0"
