# docbrain/workflow/tasks.py
"""
Background persistence for the query pipeline.

Writes back to the document store (resolved content, summary analysis)
are handed to a task sink instead of being awaited. Any object with
`add_task(func, *args, **kwargs)` works as a sink; FastAPI's
BackgroundTasks is the one used by the API.
"""

import logging
from typing import Any, Callable, Dict

from docbrain.workflow.result import ErrorKind, attempt

logger = logging.getLogger(__name__)


def persist_document_fields(document_store, document_id: str, fields: Dict[str, Any]) -> bool:
    """
    Best-effort update of a document record.

    Never raises: a failed write is logged and reported as False.
    """

    result = attempt(
        ErrorKind.PERSISTENCE_FAILURE,
        document_store.update,
        document_id,
        fields,
    )

    if not result.ok:

        logger.error(
            "Document persistence failed",
            extra={
                "doc_id": document_id,
                "fields": sorted(fields),
                "error": str(result.error),
                "error_type": type(result.error).__name__,
            },
        )

        return False

    logger.info(
        "Document persisted",
        extra={"doc_id": document_id, "fields": sorted(fields)},
    )

    return True


class InlineTaskSink:
    """Runs tasks immediately. Used outside of a request context."""

    def add_task(self, func: Callable, *args, **kwargs):
        func(*args, **kwargs)

