"""
Record Parsers - typed extraction of classes, properties, links and objects.

Each row parser takes the statement's column names, one normalized value
row and the row's source position, and returns a record or None. A None
result is always accompanied by a warning naming the file, line and the
fields that were found, so a bad seed row is easy to locate; it never
aborts the rest of the file.
"""

from __future__ import annotations

import logging
import re
from typing import Callable, Dict, List, Optional, Sequence

from ..models.records import (
    ClassPropertyLink,
    ClassRecord,
    DataType,
    InsertStatement,
    ObjectRecord,
    ParsedFile,
    ParsedRecord,
    PropertyRecord,
    RecordKind,
    SourceLocation,
)
from ..utils import metrics
from ..utils.constants import UUID_PATTERN
from .insert_tokenizer import LineIndex, extract_inserts
from .sql_normalizer import is_null_token, normalize_source_mapped, normalize_value

logger = logging.getLogger(__name__)

_UUID_RE = re.compile(f"^{UUID_PATTERN}$")
_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")
_DATA_TYPE_CODES = {member.value for member in DataType}


def is_valid_uuid(value: Optional[str]) -> bool:
    return bool(value) and bool(_UUID_RE.match(value))


def canonical_id(value: str) -> str:
    """Lower-case UUID-shaped identifiers so lookups are case-insensitive."""
    value = value.strip()
    return value.lower() if _UUID_RE.match(value) else value


def get_value(columns: Sequence[str], row: Sequence[str], column: str) -> Optional[str]:
    """Value of ``column`` in ``row``, or None if the column or cell is missing."""
    try:
        index = columns.index(column)
    except ValueError:
        return None
    return row[index] if index < len(row) else None


def _present(value: Optional[str]) -> Optional[str]:
    """None for absent, empty or SQL NULL values."""
    if value is None:
        return None
    value = value.strip()
    if not value or is_null_token(value):
        return None
    return value


def _parse_int(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    match = _LEADING_INT_RE.match(value)
    return int(match.group(1)) if match else None


def _location(file_path: str, line_number: int, offset: int) -> SourceLocation:
    return SourceLocation(file_path=file_path, line_number=line_number, offset=offset)


def _drop(kind: str, file_path: str, line_number: int, reason: str, fields: dict) -> None:
    metrics.RECORDS_DROPPED_TOTAL.inc()
    logger.warning(f"Skipping {kind} at {file_path}:{line_number} - {reason}: {fields}")


def parse_class(
    columns: Sequence[str],
    row: Sequence[str],
    file_path: str,
    line_number: int,
    offset: int,
) -> Optional[ClassRecord]:
    """Build a ClassRecord; requires non-empty ``id`` and ``name``."""
    raw_id = get_value(columns, row, "id")
    raw_name = get_value(columns, row, "name")
    class_id = _present(raw_id)
    name = _present(raw_name)

    if not class_id or not name:
        _drop("class", file_path, line_number, "missing id or name", {"id": raw_id, "name": raw_name})
        return None

    class_type = _parse_int(get_value(columns, row, "type"))

    return ClassRecord(
        id=canonical_id(class_id),
        name=name,
        description=_present(get_value(columns, row, "description")) or "",
        class_type=class_type if class_type is not None else 0,
        location=_location(file_path, line_number, offset),
    )


def parse_property(
    columns: Sequence[str],
    row: Sequence[str],
    file_path: str,
    line_number: int,
    offset: int,
) -> Optional[PropertyRecord]:
    """
    Build a PropertyRecord; requires non-empty ``id`` and ``name``.

    ``data_type`` falls back to 0 when missing or not an integer. Codes
    outside the DataType enumeration are kept as-is with a warning.
    """
    raw_id = get_value(columns, row, "id")
    raw_name = get_value(columns, row, "name")
    property_id = _present(raw_id)
    name = _present(raw_name)

    if not property_id or not name:
        _drop("property", file_path, line_number, "missing id or name", {"id": raw_id, "name": raw_name})
        return None

    data_type = _parse_int(get_value(columns, row, "data_type"))
    if data_type is None:
        data_type = 0
    elif data_type not in _DATA_TYPE_CODES:
        logger.warning(
            f"Property {property_id} ({name}) at {file_path}:{line_number} "
            f"has unknown data_type {data_type}"
        )

    source_class_id = _present(get_value(columns, row, "source_class_id"))

    return PropertyRecord(
        id=canonical_id(property_id),
        name=name,
        description=_present(get_value(columns, row, "description")) or "",
        data_type=data_type,
        source_class_id=canonical_id(source_class_id) if source_class_id else None,
        location=_location(file_path, line_number, offset),
    )


def parse_object(
    columns: Sequence[str],
    row: Sequence[str],
    file_path: str,
    line_number: int,
    offset: int,
) -> Optional[ObjectRecord]:
    """Build an ObjectRecord; requires non-empty ``id``, ``name`` and ``class_id``."""
    raw = {
        "id": get_value(columns, row, "id"),
        "name": get_value(columns, row, "name"),
        "class_id": get_value(columns, row, "class_id"),
    }
    object_id = _present(raw["id"])
    name = _present(raw["name"])
    class_id = _present(raw["class_id"])

    if not object_id or not name or not class_id:
        _drop("object", file_path, line_number, "missing id, name or class_id", raw)
        return None

    parent_id = _present(get_value(columns, row, "parent_id"))

    return ObjectRecord(
        id=canonical_id(object_id),
        name=name,
        description=_present(get_value(columns, row, "description")) or "",
        class_id=canonical_id(class_id),
        parent_id=canonical_id(parent_id) if parent_id else None,
        location=_location(file_path, line_number, offset),
    )


def parse_link(columns: Sequence[str], row: Sequence[str]) -> Optional[ClassPropertyLink]:
    """
    Build a class/property link.

    Both ``class_id`` and ``property_definition_id`` must normalize to
    literal UUIDs; rows that still hold a function call or NULL are dropped.
    """
    raw_class_id = get_value(columns, row, "class_id")
    raw_property_id = get_value(columns, row, "property_definition_id")
    class_id = normalize_value(raw_class_id) if raw_class_id is not None else None
    property_id = normalize_value(raw_property_id) if raw_property_id is not None else None

    if not is_valid_uuid(class_id) or not is_valid_uuid(property_id):
        metrics.RECORDS_DROPPED_TOTAL.inc()
        logger.warning(
            f"Skipping link with invalid UUIDs: class_id={raw_class_id!r}, "
            f"property_definition_id={raw_property_id!r}"
        )
        return None

    return ClassPropertyLink(class_id=class_id.lower(), property_id=property_id.lower())


def _parse_link_row(columns, row, file_path, line_number, offset):
    return parse_link(columns, row)


_ROW_PARSERS: Dict[RecordKind, Callable[..., Optional[ParsedRecord]]] = {
    RecordKind.CLASS: parse_class,
    RecordKind.PROPERTY: parse_property,
    RecordKind.LINK: _parse_link_row,
    RecordKind.OBJECT: parse_object,
}


def parse_statement(
    statement: InsertStatement, file_path: str, lines: LineIndex
) -> List[ParsedRecord]:
    """Parse every row of one statement; statements for other tables yield nothing."""
    kind = statement.kind
    if kind is None:
        return []

    row_parser = _ROW_PARSERS[kind]
    records: List[ParsedRecord] = []

    for index, row in enumerate(statement.value_rows):
        offset = statement.row_offsets[index] if index < len(statement.row_offsets) else 0
        record = row_parser(
            statement.columns, row, file_path, lines.line_number(offset), offset
        )
        if record is not None:
            records.append(record)

    return records


def parse_sql_content(content: str, file_path: str, content_hash: str = "") -> ParsedFile:
    """
    Turn one file's text into a ParsedFile.

    Args:
        content: Raw file text
        file_path: Path recorded in every SourceLocation
        content_hash: Hash the result will be cached under

    Returns:
        ParsedFile with records in source order
    """
    source = normalize_source_mapped(content)
    lines = LineIndex(content)
    parsed = ParsedFile(file_path=file_path, content_hash=content_hash)

    for statement in extract_inserts(source):
        try:
            records = parse_statement(statement, file_path, lines)
        except Exception as e:
            logger.error(
                f"Error processing INSERT INTO {statement.table_name} in {file_path}: {e}",
                exc_info=True,
            )
            continue

        for record in records:
            if isinstance(record, ClassRecord):
                parsed.classes.append(record)
            elif isinstance(record, PropertyRecord):
                parsed.properties.append(record)
            elif isinstance(record, ObjectRecord):
                parsed.objects.append(record)
            else:
                parsed.links.append(record)

    logger.debug(
        f"Parsed {file_path}: {len(parsed.classes)} classes, "
        f"{len(parsed.properties)} properties, {len(parsed.links)} links, "
        f"{len(parsed.objects)} objects"
    )
    return parsed
