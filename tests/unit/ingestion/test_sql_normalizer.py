"""Tests for comment stripping, placeholder rewriting and value normalization."""

import pytest

from uuid_navigator.ingestion.sql_normalizer import (
    is_null_token,
    normalize_source,
    normalize_source_mapped,
    normalize_value,
    unescape_quoted,
)


def test_line_comment_removed_newline_kept():
    assert normalize_source("SELECT 1; -- note\nSELECT 2;") == "SELECT 1; \nSELECT 2;"


def test_block_comment_removed_shortest_match():
    assert normalize_source("a /* x */ b /* y */ c") == "a  b  c"


def test_multiline_block_comment():
    assert normalize_source("a /* one\ntwo */b") == "a b"


def test_placeholders_rewritten():
    source = "VALUES (:my_utc_now, :my_admin_id, gen_random_uuid(), :other)"
    assert normalize_source(source) == "VALUES (NULL::timestamp, NULL::uuid, NULL::uuid, NULL)"


def test_existing_casts_untouched():
    assert normalize_source("NULL::timestamp, '{}'::jsonb") == "NULL::timestamp, '{}'::jsonb"


def test_quoted_literals_are_not_rewritten():
    source = "('a -- b', ':my_admin_id', '/* keep */')"
    assert normalize_source(source) == source


def test_generator_call_with_spaces_and_case():
    assert normalize_source("GEN_RANDOM_UUID( )") == "NULL::uuid"


def test_offset_map_points_into_original():
    content = "-- header\nINSERT INTO t (a) VALUES (:x, 'v');"
    mapped = normalize_source_mapped(content)

    pos = mapped.text.index("'v'")
    assert content[mapped.to_original(pos)] == "'"
    assert mapped.to_original(pos) == content.index("'v'")

    insert_pos = mapped.text.index("INSERT")
    assert mapped.to_original(insert_pos) == content.index("INSERT")


def test_identity_mapping():
    mapped = normalize_source_mapped("no comments here")
    assert mapped.text == "no comments here"
    assert mapped.to_original(5) == 5


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("'hello'", "hello"),
        ('"hello"', "hello"),
        ("  'padded'  ", "padded"),
        ("'O''Brien'", "O'Brien"),
        (r"'it\'s'", "it's"),
        (r"'a\nb'", r"a\nb"),
        ("42", "42"),
        ("NULL", "NULL"),
        ("'{}'::jsonb", "{}"),
        (":my_admin_id", "NULL::uuid"),
        ("(SELECT id FROM other)", "(SELECT id FROM other)"),
    ],
)
def test_normalize_value(raw, expected):
    assert normalize_value(raw) == expected


@pytest.mark.parametrize("value", ["hello", "x, (y)", "O'Brien", "", "  spaced  "])
def test_quoted_value_round_trip(value):
    quoted = "'" + value.replace("'", "''") + "'"
    assert normalize_value(quoted) == value


def test_unescape_double_quoted_body():
    assert unescape_quoted('say ""hi""', '"') == 'say "hi"'


@pytest.mark.parametrize("value", ["NULL", "null", "NULL::uuid", "Null :: text", " null "])
def test_null_tokens(value):
    assert is_null_token(value)


@pytest.mark.parametrize("value", ["nullable", "'null'x", "0", ""])
def test_not_null_tokens(value):
    assert not is_null_token(value)
