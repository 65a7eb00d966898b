# docbrain/errors.py
"""
Exception types shared by storage, LLM and pipeline code.
"""


class DocBrainError(Exception):
    """Base class for all DocBrain errors."""


class NotFoundError(DocBrainError):
    """A stored object or record does not exist or cannot be read."""


class DocumentNotFoundError(NotFoundError):

    def __init__(self, document_id: str):
        super().__init__(f"Document not found: {document_id}")
        self.document_id = document_id


class ConflictError(DocBrainError):
    """An object already exists at the requested path."""


class ModelCallError(DocBrainError):
    """Every configured LLM provider failed."""


class QueryCancelledError(DocBrainError):
    """The pipeline was cancelled or ran past its deadline."""
