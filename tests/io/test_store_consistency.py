from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from pathlib import Path

import pytest

from dank.core.errors import UnsupportedVersion
from dank.io import fs
from dank.io.cache import TableCache
from dank.io.config import StoreSettings
from dank.io.errors import IoWriteError
from dank.io.store import TableStore


def make_store(capacity: int = 100) -> TableStore:
    return TableStore(StoreSettings(cache_capacity=capacity, fsync=False))


def test_end_to_end_with_cold_restart(tmp_path: Path) -> None:
    path = str(tmp_path / "e2e.dank")
    store = make_store()
    store.create_database(path, ["id", "name"], "id")
    store.add_line(path, {"id": 1, "name": "a"})
    store.add_line(path, {"id": 2, "name": "b"})
    assert store.get_data(path, 1, "name") == "a"

    store.remove_row(path, "name")
    assert store.get_line(path, 1) == {"id": 1}

    # A new store has a cold cache: everything comes from disk.
    restarted = make_store()
    assert restarted.get_line(path, 1) == {"id": 1}
    assert restarted.get_all_data(path) == store.get_all_data(path)
    assert restarted.rows(path) == ["id"]


@pytest.mark.parametrize(
    "value",
    [
        "v",
        17,
        2.5,
        None,
        [1, {"a": "b"}],
        {"z": 1, "a": [True, False]},
        datetime(2024, 1, 1, tzinfo=timezone.utc),
        (1, 2),
    ],
)
def test_cache_hit_and_cold_read_agree(tmp_path: Path, value) -> None:
    path = str(tmp_path / "t.dank")
    store = make_store()
    store.create_database(path, ["id", "v"], "id")
    store.add_line(path, {"id": 1})
    store.edit_data(path, 1, "v", value)

    hot = store.get_data(path, 1, "v")
    store.invalidate(path)
    cold = store.get_data(path, 1, "v")
    assert hot == cold


def test_typed_read_agrees_after_edit(tmp_path: Path) -> None:
    path = str(tmp_path / "t.dank")
    store = make_store()
    store.create_database(path, ["id", "when"], "id")
    store.add_line(path, {"id": 1})
    ts = datetime(2024, 5, 6, 7, 8, 9, tzinfo=timezone.utc)
    store.edit_data(path, 1, "when", ts)

    assert store.get_data(path, 1, "when", as_type=datetime) == ts
    assert make_store().get_data(path, 1, "when", as_type=datetime) == ts


def test_shared_cache_between_stores(tmp_path: Path) -> None:
    cache = TableCache(capacity=4)
    settings = StoreSettings(fsync=False)
    first = TableStore(settings, cache)
    second = TableStore(settings, cache)
    path = str(tmp_path / "t.dank")
    first.create_database(path, ["id"], "id")
    first.add_line(path, {"id": 1})

    assert second.count_lines(path) == 1
    assert cache.keys() == [str(tmp_path / "t.dank")]


def test_store_evicts_least_recent_table(tmp_path: Path) -> None:
    store = make_store(capacity=2)
    paths = [str(tmp_path / f"t{i}.dank") for i in range(3)]
    for p in paths:
        store.create_database(p, ["id"], "id")
    assert store.cache.keys() == paths[1:]
    # Still readable from disk after eviction.
    assert store.count_lines(paths[0]) == 0
    assert store.cache.keys() == [paths[2], paths[0]]


def test_failed_write_leaves_file_and_cache(tmp_path: Path, monkeypatch) -> None:
    path = str(tmp_path / "t.dank")
    store = make_store()
    store.create_database(path, ["id", "v"], "id")
    store.add_line(path, {"id": 1, "v": "old"})
    before = Path(path).read_text()

    def broken_replace(src: str, dst: str) -> None:
        raise OSError("disk full")

    monkeypatch.setattr(fs, "rename_atomic", broken_replace)
    with pytest.raises(IoWriteError):
        store.edit_data(path, 1, "v", "new")
    monkeypatch.undo()

    assert Path(path).read_text() == before
    assert store.get_data(path, 1, "v") == "old"
    assert sorted(p.name for p in tmp_path.iterdir()) == ["t.dank"]


def test_older_file_is_upgraded_and_newer_rejected(tmp_path: Path) -> None:
    path = tmp_path / "t.dank"
    path.write_text("KeyRow:id;Separator:|;DankVersion:1.0;Extra:x;\nid\n")
    store = make_store()
    store.add_line(str(path), {"id": 1})
    assert path.read_text().splitlines()[0] == "KeyRow:id;Separator:|;DankVersion:1.0;"

    path.write_text("KeyRow:id;Separator:|;DankVersion:5.0;\nid\n")
    store.invalidate(str(path))
    with pytest.raises(UnsupportedVersion) as info:
        store.count_lines(str(path))
    assert info.value.file_version == "5.0"


def test_concurrent_adds_on_one_table(tmp_path: Path) -> None:
    path = str(tmp_path / "t.dank")
    store = make_store()
    store.create_database(path, ["id", "n"], "id")

    with ThreadPoolExecutor(max_workers=8) as pool:
        keys = list(pool.map(lambda i: store.add_line(path, {"n": i}), range(50)))

    assert sorted(keys) == list(range(1, 51))
    cold = make_store()
    assert cold.count_lines(path) == 50
    assert sorted(v["n"] for v in cold.get_all_data(path).values()) == list(range(50))


def test_concurrent_writers_on_different_tables(tmp_path: Path) -> None:
    store = make_store(capacity=3)
    paths = [str(tmp_path / f"t{i}.dank") for i in range(6)]
    for p in paths:
        store.create_database(p, ["id", "v"], "id")

    def work(i: int) -> None:
        p = paths[i % len(paths)]
        store.add_line(p, {"id": i, "v": i})
        assert store.get_data(p, i, "v") == i

    with ThreadPoolExecutor(max_workers=6) as pool:
        list(pool.map(work, range(60)))

    for p in paths:
        assert make_store().count_lines(p) == 10


def test_stores_sharing_a_cache_serialize_writes(tmp_path: Path) -> None:
    cache = TableCache(capacity=4)
    stores = [TableStore(StoreSettings(fsync=False), cache) for _ in range(2)]
    path = str(tmp_path / "t.dank")
    stores[0].create_database(path, ["id", "n"], "id")

    with ThreadPoolExecutor(max_workers=8) as pool:
        keys = list(pool.map(lambda i: stores[i % 2].add_line(path, {"n": i}), range(200)))

    assert stores[0].cache.locks is stores[1].cache.locks
    assert sorted(keys) == list(range(1, 201))
    cold = make_store()
    assert cold.count_lines(path) == 200
    assert sorted(v["n"] for v in cold.get_all_data(path).values()) == list(range(200))
