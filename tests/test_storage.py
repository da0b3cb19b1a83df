import pytest

from errors import PersistenceError
from storage import ALARMS_FILE, JsonStorage


def test_missing_files_read_as_empty(tmp_path):
    storage = JsonStorage(tmp_path / "nowhere")
    assert storage.load_alarms() == []
    assert storage.load_sounds() == []


def test_collections_are_replaced_whole(tmp_path):
    storage = JsonStorage(tmp_path)
    storage.save_alarms([{"id": "a"}, {"id": "b"}])
    storage.save_alarms([{"id": "c"}])
    assert storage.load_alarms() == [{"id": "c"}]
    assert not list(tmp_path.glob("*.tmp"))


def test_alarms_and_sounds_are_separate(tmp_path):
    storage = JsonStorage(tmp_path)
    storage.save_alarms([{"id": "a"}])
    storage.save_sounds([{"id": "s"}])
    assert storage.load_alarms() == [{"id": "a"}]
    assert storage.load_sounds() == [{"id": "s"}]


def test_corrupt_file_raises(tmp_path):
    (tmp_path / ALARMS_FILE).write_text("{not json", encoding="utf-8")
    with pytest.raises(PersistenceError):
        JsonStorage(tmp_path).load_alarms()


def test_unwritable_location_raises(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("x", encoding="utf-8")
    storage = JsonStorage(blocker / "data")
    with pytest.raises(PersistenceError):
        storage.save_alarms([])
