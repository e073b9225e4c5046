import base64
from pathlib import Path

import pytest

from dank.core.codec import encode
from dank.core.errors import InvalidSchema, UnsupportedVersion
from dank.core.schema import Table, TableSchema
from dank.core.values import ABSENT, Unreadable
from dank.io.config import StoreSettings
from dank.io.errors import IoFormatError, IoReadError
from dank.io.format import (
    parse_settings,
    parse_table,
    read_table,
    render_settings,
    render_table,
    write_table,
)


def _file(*lines: str, newline: str = "\n") -> str:
    return newline.join(lines) + newline


HEADER = "KeyRow:id;Separator:|;DankVersion:1.0;"


def test_parse_settings_ignores_unknown_keys() -> None:
    settings = parse_settings("KeyRow:id;Owner:me;Separator:|;DankVersion:1.0;")
    assert settings["KeyRow"] == "id"
    assert settings["Separator"] == "|"
    assert settings["DankVersion"] == "1.0"
    assert settings["Owner"] == "me"


def test_render_settings_layout() -> None:
    schema = TableSchema(key_row="id", separator=",")
    assert render_settings(schema) == "KeyRow:id;Separator:,;DankVersion:1.0;"


def test_parse_table_decodes_cells() -> None:
    text = _file(
        HEADER,
        "id|name|tags",
        "|".join([encode(1), encode("a"), encode(["x", "y"])]),
        "|".join([encode(2), encode(ABSENT), "/NaM/"]),
    )
    table = parse_table(text)
    assert table.schema == TableSchema(key_row="id", separator="|", format_version="1.0")
    assert table.rows == ["id", "name", "tags"]
    assert table.lines == [
        {"id": 1, "name": "a", "tags": ["x", "y"]},
        {"id": 2, "name": ABSENT, "tags": ABSENT},
    ]


def test_parse_table_tolerates_crlf_and_blank_lines() -> None:
    text = _file(HEADER, "id|name", "", f"{encode(1)}|{encode('a')}", "", newline="\r\n")
    table = parse_table(text)
    assert table.lines == [{"id": 1, "name": "a"}]


def test_corrupt_cell_does_not_block_the_line() -> None:
    text = _file(HEADER, "id|name", f"{encode(1)}|%%%")
    table = parse_table(text)
    assert table.lines[0]["id"] == 1
    assert isinstance(table.lines[0]["name"], Unreadable)


@pytest.mark.parametrize("data_line", ["MQ==", "MQ==|YQ==|Yg=="])
def test_cell_count_mismatch_is_fatal(data_line: str) -> None:
    text = _file(HEADER, "id|name", "MQ==|Ig==", data_line)
    with pytest.raises(IoFormatError) as info:
        parse_table(text)
    assert info.value.line_number == 4


@pytest.mark.parametrize(
    "header",
    [
        "KeyRow:id;Separator:|;",
        "KeyRow:id;Separator:|;DankVersion:2.0;",
        "KeyRow:id;Separator:|;DankVersion:;",
    ],
)
def test_unsupported_or_missing_version(header: str) -> None:
    with pytest.raises(UnsupportedVersion) as info:
        parse_table(_file(header, "id|name"))
    assert info.value.supported == ("1.0",)


def test_version_is_checked_before_rows() -> None:
    with pytest.raises(UnsupportedVersion):
        parse_table(_file("KeyRow:id;Separator:|;DankVersion:3.1;", "bad name|id"))


@pytest.mark.parametrize(
    "header,rows",
    [
        ("Separator:|;DankVersion:1.0;", "id|name"),
        ("KeyRow:id;DankVersion:1.0;", "id|name"),
        (HEADER, "id|bad name"),
        (HEADER, "id|id"),
        (HEADER, "uid|name"),
    ],
)
def test_invalid_headers(header: str, rows: str) -> None:
    with pytest.raises(InvalidSchema):
        parse_table(_file(header, rows))


def test_missing_row_line() -> None:
    with pytest.raises(IoFormatError):
        parse_table(_file(HEADER))
    with pytest.raises(IoFormatError):
        parse_table("")


def test_render_then_parse_reproduces_table() -> None:
    table = Table(
        TableSchema(key_row="id", separator="#"),
        ["id", "payload"],
        [{"id": 1, "payload": {"k": [1, 2]}}, {"id": 2, "payload": ABSENT}],
    )
    text = render_table(table)
    assert text.splitlines()[:2] == ["KeyRow:id;Separator:#;DankVersion:1.0;", "id#payload"]
    assert text.endswith("\n")
    assert parse_table(text).lines == table.lines


def test_render_rejects_partial_lines() -> None:
    table = Table(TableSchema(key_row="id"), ["id", "name"], [{"id": 1}])
    with pytest.raises(IoFormatError, match="no cell"):
        render_table(table)


def test_write_then_read(tmp_path: Path) -> None:
    settings = StoreSettings()
    path = str(tmp_path / "t.dank")
    table = Table(TableSchema(key_row="id"), ["id"], [{"id": 7}])
    write_table(path, table, settings)

    assert read_table(path).lines == [{"id": 7}]
    assert [p.name for p in tmp_path.iterdir()] == ["t.dank"]


def test_read_missing_file(tmp_path: Path) -> None:
    with pytest.raises(IoReadError):
        read_table(str(tmp_path / "missing.dank"))


@pytest.mark.parametrize("literal", [b"NaN", b"Infinity", b"-Infinity", b"[1e999]"])
def test_non_json_numbers_stay_unreadable_and_rewritable(literal: bytes) -> None:
    token = base64.b64encode(literal).decode("ascii")
    table = parse_table(_file(HEADER, "id|v", f"{encode(1)}|{token}"))
    assert isinstance(table.lines[0]["v"], Unreadable)

    table.lines.append({"id": 2, "v": "b"})
    rendered = render_table(table)
    assert rendered.splitlines()[2] == f"{encode(1)}|{token}"
