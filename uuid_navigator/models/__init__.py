"""Data models for classes, properties, objects and their source locations."""

from .records import (
    ClassPropertyLink,
    ClassRecord,
    ClassType,
    DataType,
    InsertStatement,
    ModelSnapshot,
    ObjectRecord,
    ParsedFile,
    ParsedRecord,
    PropertyRecord,
    RecordKind,
    SourceLocation,
    class_type_name,
    data_type_name,
)

__all__ = [
    "ClassPropertyLink",
    "ClassRecord",
    "ClassType",
    "DataType",
    "InsertStatement",
    "ModelSnapshot",
    "ObjectRecord",
    "ParsedFile",
    "ParsedRecord",
    "PropertyRecord",
    "RecordKind",
    "SourceLocation",
    "class_type_name",
    "data_type_name",
]
