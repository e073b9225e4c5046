import pytest

from dank.core.errors import EncodeFailure, InvalidSchema
from dank.core.schema import (
    Table,
    TableSchema,
    is_valid_row_name,
    key_text,
    validate_rows,
    validate_separator,
)
from dank.core.values import ABSENT, Unreadable


@pytest.mark.parametrize("name", ["id", "Name", "_private", "row_2", "a1b2"])
def test_valid_row_names(name: str) -> None:
    assert is_valid_row_name(name)


@pytest.mark.parametrize("name", ["", "2nd", "has space", "naïve", "a-b", "a|b", 3, None])
def test_invalid_row_names(name) -> None:
    assert not is_valid_row_name(name)


def test_validate_rows_requires_key_row_membership() -> None:
    assert validate_rows(["id", "name"], "id") == ["id", "name"]
    with pytest.raises(InvalidSchema, match="key row 'uid'"):
        validate_rows(["id", "name"], "uid")


def test_validate_rows_rejects_duplicates_and_empty() -> None:
    with pytest.raises(InvalidSchema, match="more than once"):
        validate_rows(["id", "id"])
    with pytest.raises(InvalidSchema, match="at least one row"):
        validate_rows([])


@pytest.mark.parametrize("sep", ["|", ",", "\t", "#", "~", " "])
def test_allowed_separators(sep: str) -> None:
    assert validate_separator(sep) == sep


@pytest.mark.parametrize("sep", ["", "||", "a", "Z", "5", "+", "/", "=", ";", ":", "_", "\n"])
def test_reserved_separators(sep: str) -> None:
    with pytest.raises(InvalidSchema):
        validate_separator(sep)


def test_table_schema_defaults() -> None:
    schema = TableSchema(key_row="id")
    assert schema.separator == "|"
    assert schema.format_version == "1.0"
    with pytest.raises(InvalidSchema):
        TableSchema(key_row="bad name")


def test_key_text_forms() -> None:
    assert key_text(1) == "1"
    assert key_text("1") == "1"
    assert key_text(1.5) == "1.5"
    assert key_text(False) == "false"
    assert key_text([1, 2]) == "[1,2]"
    assert key_text(ABSENT) is None
    assert key_text(Unreadable("x", "bad")) is None


def test_key_text_rejects_values_without_json_form() -> None:
    with pytest.raises(EncodeFailure):
        key_text(object())


def test_table_find_and_copy_are_independent() -> None:
    table = Table(
        TableSchema(key_row="id"),
        ["id", "tags"],
        [{"id": 1, "tags": ["a"]}, {"id": "2", "tags": ABSENT}],
    )
    assert table.find("1") == 0
    assert table.find(2) == 1
    assert table.find(3) is None
    assert list(table.keys()) == ["1", "2"]

    clone = table.copy()
    clone.lines[0]["tags"].append("b")
    clone.rows.append("extra")
    assert table.lines[0]["tags"] == ["a"]
    assert table.rows == ["id", "tags"]
    assert clone.lines[1]["tags"] is ABSENT


def test_table_validates_rows_against_schema() -> None:
    with pytest.raises(InvalidSchema):
        Table(TableSchema(key_row="id"), ["name"])
