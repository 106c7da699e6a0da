"""
Core data models for the SQL object model.

Contains the dataclasses produced by the INSERT tokenizer and record
parsers, and the linked snapshot handed to consumers:
- Tokenizer output (InsertStatement)
- Entity records (ClassRecord, PropertyRecord, ObjectRecord)
- Transient association rows (ClassPropertyLink)
- Per-file and aggregate bundles (ParsedFile, ModelSnapshot)
"""

from dataclasses import dataclass, field, replace
from enum import Enum, IntEnum
from typing import List, Optional, Union

# ============================================================================
# Enumerations
# ============================================================================


class ClassType(IntEnum):
    """Kind of a class definition (``classes.type`` column)"""

    SYSTEM = 0
    REFERENCE = 1
    PROCESSABLE = 2


class DataType(IntEnum):
    """Value kind of a property definition (``property_definitions.data_type``)"""

    STRING = 0
    INT = 1
    DOUBLE = 2
    BOOLEAN = 3
    REFERENCE = 4
    DATE_TIME = 5
    STRING_ARRAY = 6
    INT_ARRAY = 7
    DOUBLE_ARRAY = 8
    REFERENCE_ARRAY = 9
    ATTACHMENT = 10
    MULTIPLE_ATTACHMENT = 11
    SIGNATURE = 12
    MULTIPLE_SIGNATURE = 13
    DATE = 14
    TIME = 15


def data_type_name(value: int) -> str:
    """Display name for a data type code, or ``Unknown(<n>)``."""
    try:
        return DataType(value).name
    except ValueError:
        return f"Unknown({value})"


def class_type_name(value: int) -> str:
    """Display name for a class type code, or ``Unknown(<n>)``."""
    try:
        return ClassType(value).name
    except ValueError:
        return f"Unknown({value})"


class RecordKind(Enum):
    """Source table each record kind is read from"""

    CLASS = "classes"
    PROPERTY = "property_definitions"
    LINK = "classes_property_definitions"
    OBJECT = "objects"

    @classmethod
    def from_table(cls, table_name: str) -> Optional["RecordKind"]:
        """Resolve a (possibly schema-qualified, quoted) table name."""
        bare = table_name.rsplit(".", 1)[-1].strip('"`[] ').lower()
        for kind in cls:
            if kind.value == bare:
                return kind
        return None


# ============================================================================
# Entity Records
# ============================================================================


@dataclass(frozen=True)
class SourceLocation:
    """Where a record was defined: file, 1-based line and character offset."""

    file_path: str
    line_number: int
    offset: int


@dataclass
class PropertyRecord:
    id: str
    name: str
    description: str = ""
    data_type: int = DataType.STRING
    source_class_id: Optional[str] = None  # lookup key, not ownership
    location: Optional[SourceLocation] = None


@dataclass
class ObjectRecord:
    id: str
    name: str
    description: str = ""
    class_id: str = ""
    parent_id: Optional[str] = None
    location: Optional[SourceLocation] = None

    @property
    def file_path(self) -> Optional[str]:
        return self.location.file_path if self.location else None


@dataclass
class ClassRecord:
    """
    A class definition.

    ``properties`` and ``objects`` are never filled by the parser; the
    linker populates them for one snapshot and the next snapshot gets
    fresh lists.
    """

    id: str
    name: str
    description: str = ""
    class_type: int = ClassType.SYSTEM
    properties: List[PropertyRecord] = field(default_factory=list)
    objects: List[ObjectRecord] = field(default_factory=list)
    location: Optional[SourceLocation] = None

    def detached(self) -> "ClassRecord":
        """Copy with empty relationship lists, safe to link without touching caches."""
        return replace(self, properties=[], objects=[])


@dataclass(frozen=True)
class ClassPropertyLink:
    class_id: str
    property_id: str


ParsedRecord = Union[ClassRecord, PropertyRecord, ObjectRecord, ClassPropertyLink]


# ============================================================================
# Tokenizer Output
# ============================================================================


@dataclass
class InsertStatement:
    """
    One ``INSERT INTO table (cols) VALUES (...), (...)`` statement.

    ``uuid_positions`` holds the offset of every quoted UUID literal in the
    VALUES text; ``row_offsets`` holds one offset per value row (its first
    quoted UUID, else its opening parenthesis). Both refer to the original
    file text, before comment stripping and placeholder rewriting.
    """

    table_name: str
    columns: List[str]
    value_rows: List[List[str]]
    uuid_positions: List[int] = field(default_factory=list)
    row_offsets: List[int] = field(default_factory=list)

    @property
    def kind(self) -> Optional[RecordKind]:
        return RecordKind.from_table(self.table_name)


# ============================================================================
# Bundles
# ============================================================================


@dataclass
class ParsedFile:
    """Records extracted from one file, keyed by its path and content hash."""

    file_path: str = ""
    content_hash: str = ""
    classes: List[ClassRecord] = field(default_factory=list)
    properties: List[PropertyRecord] = field(default_factory=list)
    links: List[ClassPropertyLink] = field(default_factory=list)
    objects: List[ObjectRecord] = field(default_factory=list)

    @property
    def record_count(self) -> int:
        return (
            len(self.classes)
            + len(self.properties)
            + len(self.links)
            + len(self.objects)
        )


@dataclass
class ModelSnapshot:
    """Fully linked and sorted cross-file model."""

    classes: List[ClassRecord] = field(default_factory=list)
    properties: List[PropertyRecord] = field(default_factory=list)
    objects: List[ObjectRecord] = field(default_factory=list)
