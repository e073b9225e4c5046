import io
from pathlib import Path

from loguru import logger

import dank
from dank.logging import setup_logging


def test_public_api(tmp_path: Path) -> None:
    store = dank.TableStore(dank.StoreSettings(fsync=False))
    path = str(tmp_path / "t.dank")
    store.create_database(path, ["id", "name"], "id")
    assert store.add_line(path, {"name": "a"}) == 1
    assert store.get_data(path, 1, "name") == "a"
    assert issubclass(dank.InvalidSchema, ValueError)
    assert issubclass(dank.LineNotFound, LookupError)


def test_setup_logging_enables_library_messages(tmp_path: Path) -> None:
    buf = io.StringIO()
    handler_id = setup_logging(level="DEBUG", sink=buf)
    try:
        store = dank.TableStore(dank.StoreSettings(fsync=False))
        store.create_database(str(tmp_path / "t.dank"), ["id"], "id")
    finally:
        logger.remove(handler_id)
        logger.disable("dank")
    assert "Created table" in buf.getvalue()


def test_setup_logging_replaces_its_previous_sink(tmp_path: Path) -> None:
    first, second = io.StringIO(), io.StringIO()
    setup_logging(level="DEBUG", sink=first)
    handler_id = setup_logging(level="DEBUG", sink=second)
    try:
        store = dank.TableStore(dank.StoreSettings(fsync=False))
        store.create_database(str(tmp_path / "t.dank"), ["id"], "id")
    finally:
        logger.remove(handler_id)
        logger.disable("dank")
    assert first.getvalue() == ""
    assert second.getvalue().count("Created table") == 1
