# docbrain/models.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class DocumentRecord(BaseModel):
    """A stored document row."""
    id: str
    title: str
    file_path: str
    content: Optional[str] = None
    analysis: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)


class DocumentMeta(BaseModel):
    """Document reference sent by callers in cross-document mode."""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., min_length=1)
    title: str = ""
    file_path: str = Field(..., alias="filePath")
    content: Optional[str] = None


class QueryRequest(BaseModel):
    """
    Request to analyze one document or search across several.

    A `documents` array selects cross-document mode; otherwise
    `documentId` selects single-document mode.
    """
    model_config = ConfigDict(populate_by_name=True)

    document_id: Optional[str] = Field(None, alias="documentId", max_length=100)
    question: Optional[str] = Field(None, max_length=1000)
    documents: Optional[List[DocumentMeta]] = None

    @field_validator("question")
    def normalize_question(cls, v):
        """Treat a whitespace-only question as no question."""
        if v is None:
            return None
        v = v.strip()
        return v or None

    @model_validator(mode="after")
    def check_mode(self):
        if self.documents is not None:
            if not self.question:
                raise ValueError("A question is required when searching across documents")
        elif not (self.document_id and self.document_id.strip()):
            raise ValueError("Provide documentId or documents")
        return self

    @property
    def cross_document(self) -> bool:
        return self.documents is not None


class QueryResponse(BaseModel):
    """Pipeline output. `error` is set when a fallback analysis was used."""
    analysis: str
    model: Optional[str] = None
    error: Optional[str] = None


class DocumentInfo(BaseModel):
    """Information about a stored document."""
    id: str
    title: str
    file_path: str
    created_at: datetime
    analysis: Optional[str] = None
    has_content: bool = False
    content: Optional[str] = None

    @classmethod
    def from_record(cls, record: DocumentRecord, include_content: bool = False) -> "DocumentInfo":
        return cls(
            id=record.id,
            title=record.title,
            file_path=record.file_path,
            created_at=record.created_at,
            analysis=record.analysis,
            has_content=bool(record.content),
            content=record.content if include_content else None,
        )


class UploadResponse(BaseModel):
    """Response after uploading a document."""
    document: DocumentInfo
    message: str = "Document uploaded successfully"


class ListDocumentsResponse(BaseModel):
    """Response listing stored documents, newest first."""
    documents: List[DocumentInfo]
    total_documents: int


class DeleteDocumentResponse(BaseModel):
    """Response after deleting a document."""
    document_id: str
    message: str
    success: bool


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    total_documents: int
    llm_providers: List[str]
