# tests/test_storage.py
import json
from datetime import datetime, timedelta

import pytest

from docbrain.errors import ConflictError, NotFoundError
from docbrain.models import DocumentRecord
from docbrain.storage import documents as documents_module
from docbrain.storage.documents import DocumentStore
from docbrain.storage.files import FileStorage


def record(doc_id, minutes_ago=0, **fields):
    return DocumentRecord(
        id=doc_id,
        title=fields.pop("title", doc_id),
        file_path=fields.pop("file_path", f"{doc_id}.pdf"),
        created_at=datetime(2024, 1, 1, 12, 0) - timedelta(minutes=minutes_ago),
        **fields,
    )


class TestFileStorage:

    def test_upload_and_download(self, tmp_path):
        storage = FileStorage(str(tmp_path))

        storage.upload("a.pdf", b"bytes")

        assert storage.download("a.pdf") == b"bytes"

    def test_upload_conflict(self, tmp_path):
        storage = FileStorage(str(tmp_path))
        storage.upload("a.pdf", b"one")

        with pytest.raises(ConflictError):
            storage.upload("a.pdf", b"two")

        assert storage.download("a.pdf") == b"one"

    def test_missing_object(self, tmp_path):
        with pytest.raises(NotFoundError):
            FileStorage(str(tmp_path)).download("nothing.pdf")

    @pytest.mark.parametrize("path", ["../outside.pdf", "/etc/passwd", "", "bad\x00name.pdf"])
    def test_paths_outside_root_are_missing(self, tmp_path, path):
        storage = FileStorage(str(tmp_path / "root"))

        with pytest.raises(NotFoundError):
            storage.download(path)

    def test_remove_reports_removed(self, tmp_path):
        storage = FileStorage(str(tmp_path))
        storage.upload("a.pdf", b"x")

        assert storage.remove(["a.pdf", "b.pdf"]) == ["a.pdf"]
        assert not (tmp_path / "a.pdf").exists()


class TestDocumentStore:

    def test_insert_and_select(self, document_store):
        document_store.insert(record("doc_1", content="text"))

        stored = document_store.select_by_id("doc_1")

        assert stored.content == "text"
        assert document_store.select_by_id("doc_2") is None

    def test_duplicate_insert_rejected(self, document_store):
        document_store.insert(record("doc_1"))

        with pytest.raises(ValueError):
            document_store.insert(record("doc_1"))

    def test_select_returns_copies(self, document_store):
        document_store.insert(record("doc_1"))

        document_store.select_by_id("doc_1").content = "mutated"

        assert document_store.select_by_id("doc_1").content is None

    def test_select_all_newest_first(self, document_store):
        document_store.insert(record("old", minutes_ago=10))
        document_store.insert(record("new", minutes_ago=0))
        document_store.insert(record("mid", minutes_ago=5))

        assert [r.id for r in document_store.select_all()] == ["new", "mid", "old"]
        assert [r.id for r in document_store.select_all(limit=2)] == ["new", "mid"]
        assert [r.id for r in document_store.select_all(descending=False)] == ["old", "mid", "new"]

    def test_update_fields(self, document_store):
        document_store.insert(record("doc_1"))

        document_store.update("doc_1", {"content": "c", "analysis": "a"})

        stored = document_store.select_by_id("doc_1")
        assert (stored.content, stored.analysis) == ("c", "a")

    def test_update_rejects_unknown_fields(self, document_store):
        document_store.insert(record("doc_1"))

        with pytest.raises(ValueError):
            document_store.update("doc_1", {"file_path": "other.pdf"})

    def test_update_missing_record(self, document_store):
        with pytest.raises(NotFoundError):
            document_store.update("doc_missing", {"content": "c"})

    def test_delete(self, document_store):
        document_store.insert(record("doc_1"))

        document_store.delete("doc_1")

        assert document_store.count() == 0
        with pytest.raises(NotFoundError):
            document_store.delete("doc_1")

    def test_persists_across_instances(self, tmp_path):
        path = str(tmp_path / "documents.json")
        DocumentStore(path).insert(record("doc_1", content="kept"))

        reopened = DocumentStore(path)

        assert reopened.select_by_id("doc_1").content == "kept"

    def test_corrupt_file_starts_empty(self, tmp_path):
        path = tmp_path / "documents.json"
        path.write_text("{not json")

        assert DocumentStore(str(path)).count() == 0

    def test_file_layout(self, tmp_path):
        path = tmp_path / "documents.json"
        DocumentStore(str(path)).insert(record("doc_1"))

        data = json.loads(path.read_text())

        assert data["doc_1"]["file_path"] == "doc_1.pdf"

    def test_failed_save_leaves_table_unchanged(self, document_store, monkeypatch):
        """Insert, update and delete only take effect once written to disk."""
        document_store.insert(record("doc_1", content="original"))

        def disk_full(src, dst):
            raise OSError("No space left on device")

        monkeypatch.setattr(documents_module.os, "replace", disk_full)

        with pytest.raises(OSError):
            document_store.insert(record("doc_2"))
        with pytest.raises(OSError):
            document_store.update("doc_1", {"content": "changed"})
        with pytest.raises(OSError):
            document_store.delete("doc_1")

        assert [r.id for r in document_store.select_all()] == ["doc_1"]
        assert document_store.select_by_id("doc_1").content == "original"
        assert document_store.select_by_id("doc_2") is None
