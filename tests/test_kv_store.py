"""test suite for KeyValueStore."""
import json
import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from skillsync.domain.errors import StorageError
from skillsync.storage import kv as kv_module
from skillsync.storage.kv import KeyValueStore


class TestKeyValueStore:
    @pytest.fixture
    def store(self, temp_dir):
        return KeyValueStore(temp_dir, "prefs")

    def test_file_named_after_namespace(self, store, temp_dir):
        assert store.path == temp_dir / "prefs.json"

    def test_missing_key(self, store):
        assert store.get("nothing") is None
        assert not store.path.exists()

    def test_put_then_get(self, store):
        store.put("color", "blue")
        assert store.get("color") == "blue"

    def test_overwrite(self, store):
        store.put("color", "blue")
        store.put("color", "green")
        assert store.load() == {"color": "green"}

    def test_none_removes_key(self, store):
        store.put("color", "blue")
        store.put("color", None)
        assert store.get("color") is None
        assert store.load() == {}

    def test_namespaces_are_separate(self, temp_dir):
        KeyValueStore(temp_dir, "a").put("k", "1")
        assert KeyValueStore(temp_dir, "b").get("k") is None

    def test_creates_missing_directory(self, temp_dir):
        store = KeyValueStore(temp_dir / "nested" / "dir", "prefs")
        store.put("k", "v")
        assert store.get("k") == "v"

    def test_corrupted_file_reads_as_empty(self, store):
        store.path.write_text("{not json")
        assert store.load() == {}

        store.put("k", "v")
        assert json.loads(store.path.read_text()) == {"k": "v"}

    def test_non_object_file_reads_as_empty(self, store):
        store.path.write_text("[1, 2, 3]")
        assert store.get("k") is None

    def test_non_string_values_are_ignored(self, store):
        store.path.write_text(json.dumps({"ok": "yes", "count": 3}))
        assert store.load() == {"ok": "yes"}

    def test_failed_write_keeps_previous_file(self, store, monkeypatch):
        store.put("color", "blue")

        def half_written(data, f, **kwargs):
            f.write('{"col')
            raise OSError("disk full")

        monkeypatch.setattr(kv_module.json, "dump", half_written)

        with pytest.raises(StorageError):
            store.put("color", "green")

        monkeypatch.undo()
        assert store.load() == {"color": "blue"}
        # no temporary files are left next to the namespace file
        assert [p.name for p in store.path.parent.iterdir()] == ["prefs.json"]

    def test_unwritable_location(self, temp_dir):
        blocker = temp_dir / "not_a_dir"
        blocker.write_text("")
        store = KeyValueStore(blocker / "nested", "prefs")

        with pytest.raises(StorageError) as excinfo:
            store.put("k", "v")
        assert isinstance(excinfo.value, OSError)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
