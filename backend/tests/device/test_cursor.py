import json

import pytest

from wordsync.device.cursor import InMemoryCursorStore, JsonFileCursorStore


def test_in_memory_cursor():
    cursor = InMemoryCursorStore()
    assert cursor.load() == 0

    cursor.save(1234)
    assert cursor.load() == 1234


def test_file_cursor_missing_file_starts_from_zero(tmp_path):
    assert JsonFileCursorStore(tmp_path / "cursor.json").load() == 0


def test_file_cursor_persists(tmp_path):
    path = tmp_path / "state" / "cursor.json"

    JsonFileCursorStore(path).save(1_700_000_000_000)

    assert JsonFileCursorStore(path).load() == 1_700_000_000_000
    assert json.loads(path.read_text()) == {"lastSyncTimestamp": 1_700_000_000_000}
    # tmp-файлы за собой не оставляем
    assert [p.name for p in path.parent.iterdir()] == ["cursor.json"]


def test_corrupt_cursor_file_means_full_sync(tmp_path):
    path = tmp_path / "cursor.json"
    path.write_text("{not json")

    assert JsonFileCursorStore(path).load() == 0


@pytest.mark.parametrize("content", ["[1, 2]", "17", '{"lastSyncTimestamp": "soon"}', '{"lastSyncTimestamp": -5}'])
def test_unexpected_cursor_json_means_full_sync(tmp_path, content):
    path = tmp_path / "cursor.json"
    path.write_text(content)

    assert JsonFileCursorStore(path).load() == 0
