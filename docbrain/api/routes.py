import logging
import os
import time
import uuid
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, File, HTTPException, Query, Request, UploadFile
from fastapi.responses import JSONResponse

from docbrain.config import (
    ALLOWED_FILE_EXTENSIONS,
    MAX_FILE_SIZE_MB,
    PIPELINE_TIMEOUT_SECONDS,
    PipelineConfig,
)
from docbrain.errors import DocumentNotFoundError, QueryCancelledError
from docbrain.llm.client import LLMClient
from docbrain.memory.resolver import ContentResolver
from docbrain.models import (
    DeleteDocumentResponse,
    DocumentInfo,
    DocumentRecord,
    HealthResponse,
    ListDocumentsResponse,
    QueryRequest,
    QueryResponse,
    UploadResponse,
)
from docbrain.observability.metrics import metrics_tracker
from docbrain.observability.posthog_client import posthog_client
from docbrain.storage.documents import DocumentStore
from docbrain.storage.files import FileStorage
from docbrain.workflow.cancellation import CancellationToken
from docbrain.workflow.document_qa import DocumentQAPipeline
from docbrain.workflow.relevance import RelevanceFilter


# ============================================================
# LOGGER
# ============================================================

logger = logging.getLogger(__name__)

router = APIRouter()


RETRY_MESSAGE = (
    "Something went wrong while processing your request. Please try again."
)

TIMEOUT_MESSAGE = (
    "Processing took too long and was stopped. "
    "Try a more specific question or fewer documents."
)


# ============================================================
# GLOBAL SINGLETONS
# ============================================================

pipeline_config = PipelineConfig()

document_store = DocumentStore()

file_storage = FileStorage()

llm_client = LLMClient()


def build_pipeline(background_tasks: BackgroundTasks) -> DocumentQAPipeline:
    """One pipeline per request; background writes run after the response."""

    return DocumentQAPipeline(
        config=pipeline_config,
        document_store=document_store,
        resolver=ContentResolver(file_storage, document_store),
        relevance_filter=RelevanceFilter(llm_client, pipeline_config),
        llm=llm_client,
        task_sink=background_tasks,
    )


# ============================================================
# HELPERS
# ============================================================

def generate_document_id() -> str:
    return f"doc_{uuid.uuid4().hex[:12]}"


def generate_object_name(filename: str) -> str:
    extension = os.path.splitext(filename)[1].lower()
    return f"{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}{extension}"


def validate_file(filename: Optional[str], content: bytes):

    extension = os.path.splitext(filename or "")[1].lower()

    if extension not in ALLOWED_FILE_EXTENSIONS:
        raise HTTPException(
            status_code=400,
            detail=f"Only {', '.join(ALLOWED_FILE_EXTENSIONS)} files are supported",
        )

    if not content:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")

    size_mb = len(content) / (1024 * 1024)

    if size_mb > MAX_FILE_SIZE_MB:
        raise HTTPException(
            status_code=413,
            detail=f"File too large: {size_mb:.2f}MB",
        )


def request_id_of(request: Request) -> str:
    return getattr(request.state, "request_id", "unknown")


# ============================================================
# HEALTH
# ============================================================

@router.get("/health", response_model=HealthResponse)
def health_check():

    return HealthResponse(
        status="healthy",
        total_documents=document_store.count(),
        llm_providers=llm_client.providers,
    )


# ============================================================
# UPLOAD DOCUMENT
# ============================================================

@router.post("/upload", response_model=UploadResponse)
async def upload_document(request: Request, file: UploadFile = File(...)):

    start_time = time.time()

    file_bytes = await file.read()

    validate_file(file.filename, file_bytes)

    object_name = file_storage.upload(generate_object_name(file.filename), file_bytes)

    record = document_store.insert(
        DocumentRecord(
            id=generate_document_id(),
            title=file.filename,
            file_path=object_name,
        )
    )

    latency = time.time() - start_time

    logger.info(
        "Document upload complete",
        extra={"doc_id": record.id, "file_path": object_name, "size_bytes": len(file_bytes)},
    )

    posthog_client.track_document_upload(
        distinct_id=request_id_of(request),
        document_id=record.id,
        filename=file.filename,
        size_bytes=len(file_bytes),
        latency=latency,
    )

    return UploadResponse(document=DocumentInfo.from_record(record))


# ============================================================
# PROCESS (SUMMARY / QUESTION / CROSS-DOCUMENT SEARCH)
# ============================================================

@router.post("/process", response_model=QueryResponse, response_model_exclude_none=True)
def process_documents(
    payload: QueryRequest,
    request: Request,
    background_tasks: BackgroundTasks,
):

    start_time = time.time()

    request_id = request_id_of(request)

    pipeline = build_pipeline(background_tasks)

    cancel_token = CancellationToken(timeout_seconds=PIPELINE_TIMEOUT_SECONDS)

    try:

        response = pipeline.run(payload, cancel_token)

    except DocumentNotFoundError as e:

        posthog_client.track_error(
            distinct_id=request_id,
            error_type=type(e).__name__,
            error_message=str(e),
            endpoint="/process",
        )

        return JSONResponse(status_code=404, content={"error": "Document not found"})

    except QueryCancelledError as e:

        logger.warning(
            "Query pipeline timed out",
            extra={"request_id": request_id, "error": str(e)},
        )

        return JSONResponse(
            status_code=504,
            content={"error": str(e), "analysis": TIMEOUT_MESSAGE},
        )

    except Exception as e:

        logger.error(
            "Error processing documents",
            extra={
                "request_id": request_id,
                "error": str(e),
                "error_type": type(e).__name__,
            },
            exc_info=True,
        )

        posthog_client.track_error(
            distinct_id=request_id,
            error_type=type(e).__name__,
            error_message=str(e),
            endpoint="/process",
        )

        return JSONResponse(
            status_code=500,
            content={"error": str(e), "analysis": RETRY_MESSAGE},
        )

    latency = time.time() - start_time

    metrics_tracker.record_query(pipeline.stats)

    posthog_client.track_query(
        distinct_id=request_id,
        mode=pipeline.stats.mode,
        document_count=len(payload.documents) if payload.cross_document else 1,
        question=payload.question,
        excerpts=pipeline.stats.excerpts,
        relevance_calls=pipeline.stats.relevance_calls,
        latency=latency,
        success=response.error is None,
    )

    return response


# ============================================================
# LIST / GET DOCUMENTS
# ============================================================

@router.get("/documents", response_model=ListDocumentsResponse)
def list_documents(
    limit: Optional[int] = Query(None, gt=0),
    include_content: bool = False,
):

    records = document_store.select_all(order_by="created_at", descending=True, limit=limit)

    documents = [DocumentInfo.from_record(r, include_content) for r in records]

    return ListDocumentsResponse(
        documents=documents,
        total_documents=len(documents),
    )


@router.get("/documents/{document_id}", response_model=DocumentInfo)
def get_document(document_id: str, include_content: bool = False):

    record = document_store.select_by_id(document_id)

    if record is None:
        raise HTTPException(status_code=404, detail="Document not found")

    return DocumentInfo.from_record(record, include_content)


# ============================================================
# DELETE DOCUMENT
# ============================================================

@router.delete("/documents/{document_id}", response_model=DeleteDocumentResponse)
def delete_document(document_id: str):

    record = document_store.select_by_id(document_id)

    if record is None:
        raise HTTPException(status_code=404, detail="Document not found")

    document_store.delete(document_id)

    try:

        file_storage.remove([record.file_path])

    except Exception as e:

        logger.error(
            "Stored file removal failed",
            extra={"doc_id": document_id, "file_path": record.file_path, "error": str(e)},
        )

    return DeleteDocumentResponse(
        document_id=document_id,
        message="Deleted",
        success=True,
    )


# ============================================================
# METRICS ENDPOINT
# ============================================================

@router.get("/metrics")
def get_metrics():

    return metrics_tracker.get_metrics()
