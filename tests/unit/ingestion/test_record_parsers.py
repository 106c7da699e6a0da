"""Tests for the typed record parsers."""

import logging

import pytest

from uuid_navigator.ingestion.insert_tokenizer import LineIndex, extract_inserts
from uuid_navigator.ingestion.record_parsers import (
    canonical_id,
    is_valid_uuid,
    parse_class,
    parse_link,
    parse_object,
    parse_property,
    parse_sql_content,
    parse_statement,
)
from uuid_navigator.models.records import ClassPropertyLink

ORDER_ID = "11111111-1111-1111-1111-111111111111"
CUSTOMER_ID = "22222222-2222-2222-2222-222222222222"
TOTAL_ID = "33333333-3333-3333-3333-333333333333"
OBJECT_ID = "44444444-4444-4444-4444-444444444444"

SEED_SQL = f"""-- seed data
INSERT INTO classes (id, name, description, type) VALUES
  ('{ORDER_ID}', 'Order', 'An order', 2),
  ('{CUSTOMER_ID}', 'Customer', :my_admin_id, 1);

INSERT INTO property_definitions (id, name, description, data_type, source_class_id) VALUES
  ('{TOTAL_ID}', 'Total', 'Order total', 2, NULL);

INSERT INTO classes_property_definitions (class_id, property_definition_id) VALUES
  ('{ORDER_ID}', '{TOTAL_ID}'),
  (gen_random_uuid(), '{TOTAL_ID}');

INSERT INTO objects (id, name, description, class_id, parent_id) VALUES
  ('{OBJECT_ID}', 'Order #1', 'First', '{ORDER_ID}', NULL);
"""

CLASS_COLUMNS = ["id", "name", "description", "type"]


class TestParseClass:
    def test_full_row(self):
        record = parse_class(CLASS_COLUMNS, [ORDER_ID, "Order", "An order", "2"], "a.sql", 3, 40)

        assert record.id == ORDER_ID
        assert record.name == "Order"
        assert record.description == "An order"
        assert record.class_type == 2
        assert record.properties == []
        assert record.objects == []
        assert record.location.file_path == "a.sql"
        assert record.location.line_number == 3
        assert record.location.offset == 40

    def test_missing_name_is_dropped_with_warning(self, caplog):
        with caplog.at_level(logging.WARNING):
            record = parse_class(CLASS_COLUMNS, [ORDER_ID, "", "x", "2"], "a.sql", 7, 0)

        assert record is None
        assert "a.sql:7" in caplog.text
        assert ORDER_ID in caplog.text

    def test_null_id_is_missing(self):
        assert parse_class(CLASS_COLUMNS, ["NULL::uuid", "Order", "", "2"], "a.sql", 1, 0) is None

    @pytest.mark.parametrize("row", [[ORDER_ID, "Order"], [ORDER_ID, "Order", "", "abc"]])
    def test_type_defaults_to_zero(self, row):
        columns = CLASS_COLUMNS[: len(row)]
        record = parse_class(columns, row, "a.sql", 1, 0)

        assert record.class_type == 0
        assert record.description == ""

    def test_uuid_ids_are_lowercased(self):
        record = parse_class(["id", "name"], [ORDER_ID.upper().replace("1", "A"), "X"], "a.sql", 1, 0)

        assert record.id == "aaaaaaaa-aaaa-aaaa-aaaa-aaaaaaaaaaaa"


class TestParseProperty:
    COLUMNS = ["id", "name", "description", "data_type", "source_class_id"]

    def test_full_row(self):
        record = parse_property(self.COLUMNS, [TOTAL_ID, "Total", "", "2", ORDER_ID], "p.sql", 2, 5)

        assert record.data_type == 2
        assert record.source_class_id == ORDER_ID

    @pytest.mark.parametrize("value", ["null", "NULL", "", "NULL::uuid"])
    def test_source_class_id_absent(self, value):
        record = parse_property(self.COLUMNS, [TOTAL_ID, "Total", "", "0", value], "p.sql", 1, 0)

        assert record.source_class_id is None

    def test_unknown_data_type_is_kept_with_warning(self, caplog):
        with caplog.at_level(logging.WARNING):
            record = parse_property(self.COLUMNS, [TOTAL_ID, "Total", "", "99", ""], "p.sql", 1, 0)

        assert record.data_type == 99
        assert "unknown data_type 99" in caplog.text

    def test_missing_id_is_dropped(self):
        assert parse_property(self.COLUMNS, ["", "Total", "", "1", ""], "p.sql", 1, 0) is None


class TestParseObject:
    COLUMNS = ["id", "name", "description", "class_id", "parent_id"]

    def test_full_row(self):
        record = parse_object(
            self.COLUMNS, [OBJECT_ID, "Order #1", "First", ORDER_ID, CUSTOMER_ID], "o.sql", 4, 9
        )

        assert record.class_id == ORDER_ID
        assert record.parent_id == CUSTOMER_ID
        assert record.file_path == "o.sql"

    def test_parent_null(self):
        record = parse_object(self.COLUMNS, [OBJECT_ID, "x", "", ORDER_ID, "null"], "o.sql", 1, 0)

        assert record.parent_id is None

    def test_missing_class_id_is_dropped(self, caplog):
        with caplog.at_level(logging.WARNING):
            record = parse_object(self.COLUMNS, [OBJECT_ID, "x", "", "", ""], "o.sql", 12, 0)

        assert record is None
        assert "o.sql:12" in caplog.text


class TestParseLink:
    COLUMNS = ["class_id", "property_definition_id"]

    def test_valid_link(self):
        link = parse_link(self.COLUMNS, [ORDER_ID.upper(), TOTAL_ID])

        assert link == ClassPropertyLink(class_id=ORDER_ID, property_id=TOTAL_ID)

    @pytest.mark.parametrize(
        "class_id",
        ["not-a-uuid", "", "NULL::uuid", "NULL", "11111111-1111-1111-1111-11111111111", "gen_random_uuid()"],
    )
    def test_malformed_class_id(self, class_id):
        assert parse_link(self.COLUMNS, [class_id, TOTAL_ID]) is None

    def test_missing_column(self):
        assert parse_link(["class_id"], [ORDER_ID]) is None


def test_uuid_helpers():
    assert is_valid_uuid(ORDER_ID)
    assert is_valid_uuid(ORDER_ID.upper())
    assert not is_valid_uuid(None)
    assert not is_valid_uuid("")
    assert canonical_id(f"  {ORDER_ID.upper()} ") == ORDER_ID
    assert canonical_id("Not-A-Uuid") == "Not-A-Uuid"


def test_parse_statement_ignores_other_tables():
    statement = extract_inserts("INSERT INTO audit (id) VALUES (1)")[0]

    assert parse_statement(statement, "a.sql", LineIndex("")) == []


def test_parse_sql_content_end_to_end():
    parsed = parse_sql_content(SEED_SQL, "/ws/seed.sql", "abc")

    assert parsed.file_path == "/ws/seed.sql"
    assert parsed.content_hash == "abc"
    assert [c.name for c in parsed.classes] == ["Order", "Customer"]
    assert [c.location.line_number for c in parsed.classes] == [3, 4]
    assert parsed.classes[1].description == ""

    assert len(parsed.properties) == 1
    assert parsed.properties[0].source_class_id is None
    assert parsed.properties[0].location.line_number == 7

    # the gen_random_uuid() link is dropped
    assert parsed.links == [ClassPropertyLink(class_id=ORDER_ID, property_id=TOTAL_ID)]

    assert len(parsed.objects) == 1
    assert parsed.objects[0].parent_id is None
    assert parsed.objects[0].location.line_number == 14
    assert parsed.objects[0].location.offset == SEED_SQL.index(f"'{OBJECT_ID}'")
    assert parsed.record_count == 5
