# docbrain/storage/documents.py

import json
import logging
import os
import threading
from typing import Any, Dict, List, Optional

from docbrain.config import DOCUMENT_STORE_PATH
from docbrain.errors import NotFoundError
from docbrain.models import DocumentRecord

logger = logging.getLogger(__name__)


class DocumentStore:
    """
    JSON-file backed table of document records.

    Every mutation rewrites the file under a lock. A missing or
    unreadable file starts an empty store.
    """

    UPDATABLE_FIELDS = {"title", "content", "analysis"}

    def __init__(self, path: str = DOCUMENT_STORE_PATH):

        self._path = path
        self._lock = threading.Lock()
        self._records: Dict[str, DocumentRecord] = {}

        self._load()

    # ============================================================
    # PERSISTENCE
    # ============================================================

    def _load(self):

        if not os.path.exists(self._path):
            logger.info("Document store file not found. Starting fresh.")
            return

        try:

            with open(self._path, "r", encoding="utf-8") as f:
                data = json.load(f)

            self._records = {
                doc_id: DocumentRecord.model_validate(row)
                for doc_id, row in data.items()
            }

            logger.info(
                "Document store loaded",
                extra={"documents": len(self._records)},
            )

        except (OSError, ValueError) as e:

            logger.error(
                "Document store load failed",
                extra={"error": str(e)},
            )

    def _save(self, records: Dict[str, DocumentRecord]):
        """Write `records` to disk, then make them the live table."""

        directory = os.path.dirname(self._path)

        if directory:
            os.makedirs(directory, exist_ok=True)

        serializable = {
            doc_id: record.model_dump(mode="json")
            for doc_id, record in records.items()
        }

        tmp_path = f"{self._path}.tmp"

        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(serializable, f)

        os.replace(tmp_path, self._path)

        self._records = records

    # ============================================================
    # TABLE OPERATIONS
    # ============================================================

    def insert(self, record: DocumentRecord) -> DocumentRecord:

        with self._lock:

            if record.id in self._records:
                raise ValueError(f"Duplicate document id: {record.id}")

            self._save({**self._records, record.id: record})

        logger.info("Document inserted", extra={"doc_id": record.id})

        return record

    def select_by_id(self, document_id: str) -> Optional[DocumentRecord]:

        with self._lock:
            record = self._records.get(document_id)

        return record.model_copy() if record else None

    def select_all(
        self,
        order_by: str = "created_at",
        descending: bool = True,
        limit: Optional[int] = None,
    ) -> List[DocumentRecord]:

        with self._lock:
            records = [r.model_copy() for r in self._records.values()]

        records.sort(key=lambda r: getattr(r, order_by), reverse=descending)

        if limit is not None:
            records = records[:limit]

        return records

    def update(self, document_id: str, fields: Dict[str, Any]):

        unknown = set(fields) - self.UPDATABLE_FIELDS

        if unknown:
            raise ValueError(f"Fields not updatable: {sorted(unknown)}")

        with self._lock:

            record = self._records.get(document_id)

            if record is None:
                raise NotFoundError(f"Document not found: {document_id}")

            self._save({**self._records, document_id: record.model_copy(update=fields)})

    def delete(self, document_id: str):

        with self._lock:

            if document_id not in self._records:
                raise NotFoundError(f"Document not found: {document_id}")

            records = dict(self._records)
            del records[document_id]

            self._save(records)

        logger.info("Document deleted", extra={"doc_id": document_id})

    def count(self) -> int:

        with self._lock:
            return len(self._records)
