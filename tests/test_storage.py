import json

import pytest

from errors import StorageError
from storage import JsonStorage, empty_document


def test_ensure_created_writes_empty_document(tmp_path):
    storage = JsonStorage(tmp_path / "sub" / "blog.json")
    storage.ensure_created()
    assert json.loads(storage.path.read_text()) == empty_document()


def test_ensure_created_keeps_existing_data(tmp_path):
    path = tmp_path / "blog.json"
    path.write_text(json.dumps({"posts": [{"id": 1, "title": "old"}]}))
    storage = JsonStorage(path)

    storage.ensure_created()

    data = json.loads(path.read_text())
    assert data["posts"] == [{"id": 1, "title": "old"}]
    assert data["roles"] == [] and data["users"] == []


def test_transaction_discards_changes_on_error(storage):
    with pytest.raises(RuntimeError):
        with storage.transaction() as data:
            data["posts"].append({"id": 1})
            raise RuntimeError("boom")
    assert storage.load()["posts"] == []


def test_transaction_leaves_no_temp_files(storage):
    with storage.transaction() as data:
        data["posts"].append({"id": 1})
    assert [p.name for p in storage.path.parent.iterdir()] == ["blog.json"]


def test_corrupt_file_raises_storage_error(tmp_path):
    path = tmp_path / "blog.json"
    path.write_text("[]")
    with pytest.raises(StorageError):
        JsonStorage(path).load()


def test_unchanged_transaction_does_not_write(storage, monkeypatch):
    writes = []
    monkeypatch.setattr(storage, "_write", writes.append)
    with storage.transaction() as data:
        assert data["posts"] == []
    assert writes == []
