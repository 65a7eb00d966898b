# docbrain/memory/resolver.py

import logging
from typing import Callable, Optional, Union

from docbrain.errors import NotFoundError
from docbrain.memory.loader import UNREADABLE_DOCUMENT_PLACEHOLDER, extract_text
from docbrain.models import DocumentMeta, DocumentRecord
from docbrain.workflow.cancellation import CancellationToken, check
from docbrain.workflow.result import ErrorKind, Result, attempt
from docbrain.workflow.tasks import persist_document_fields

logger = logging.getLogger(__name__)


class ContentResolver:
    """
    Makes a document's text available to the pipeline.

    Cached content wins. Otherwise the stored file is downloaded and
    extracted, and the text is written back to the document store in
    the background so the next request skips extraction.
    """

    def __init__(
        self,
        storage,
        document_store,
        extractor: Callable[[bytes], str] = extract_text,
    ):
        self._storage = storage
        self._document_store = document_store
        self._extractor = extractor

    def resolve(
        self,
        document: Union[DocumentRecord, DocumentMeta],
        task_sink,
        cancel_token: Optional[CancellationToken] = None,
    ) -> Result[str]:

        if document.content and document.content.strip():
            return Result.success(document.content)

        check(cancel_token, "storage download")

        try:

            data = self._storage.download(document.file_path)

        except NotFoundError as e:

            logger.warning(
                "Document file unavailable",
                extra={
                    "doc_id": document.id,
                    "file_path": document.file_path,
                    "error": str(e),
                },
            )

            return Result.failure(ErrorKind.NOT_FOUND, e)

        text = attempt(ErrorKind.EXTRACTION_FAILURE, self._extractor, data).recover(
            UNREADABLE_DOCUMENT_PLACEHOLDER
        )

        if not text or not text.strip():
            text = UNREADABLE_DOCUMENT_PLACEHOLDER

        logger.info(
            "Document content resolved",
            extra={"doc_id": document.id, "characters": len(text)},
        )

        if text != UNREADABLE_DOCUMENT_PLACEHOLDER:

            task_sink.add_task(
                persist_document_fields,
                self._document_store,
                document.id,
                {"content": text},
            )

        return Result.success(text)
