# docbrain/config.py
"""
Configuration for the DocBrain document Q&A service.

This file centralizes all tunable parameters for the query pipeline.
Changes here affect system behavior without code modifications.
"""

import os

from pydantic import BaseModel, Field, model_validator


# ========== STORAGE ==========

STORAGE_DIR = os.getenv("DOCBRAIN_STORAGE_DIR", "storage")
UPLOAD_DIR = os.path.join(STORAGE_DIR, "uploads")
DOCUMENT_STORE_PATH = os.path.join(STORAGE_DIR, "documents.json")
METRICS_PATH = os.path.join(STORAGE_DIR, "metrics.json")

LOG_DIR = os.getenv("DOCBRAIN_LOG_DIR", "logs")
LOG_LEVEL = os.getenv("DOCBRAIN_LOG_LEVEL", "INFO")


# ========== DOCUMENT PROCESSING ==========

# File upload limits
MAX_FILE_SIZE_MB = 10
ALLOWED_FILE_EXTENSIONS = [".pdf"]

# Hard cap on extracted text kept per document
MAX_DOCUMENT_CHARACTERS = 2_000_000

# Characters per chunk (sequential, no overlap)
CHUNK_SIZE = 8000


# ========== SAMPLING ==========

MAX_DOCUMENTS = 5  # documents scanned per cross-document query
MAX_CHUNKS_PER_DOCUMENT = 5  # chunks sent to the relevance filter per document
MAX_EXCERPTS_PER_DOCUMENT = 3
MAX_TOTAL_EXCERPTS = 8  # across all documents of one request

SUMMARY_CHUNKS = 3  # raw chunks used for a summary
FALLBACK_CHUNKS = 3  # raw chunks used when nothing was judged relevant


# ========== RELEVANCE FILTER ==========

RELEVANCE_MODEL = "gpt-4o-mini"  # cheap and fast, one call per chunk
RELEVANCE_PREVIEW_CHARS = 5000  # chunk text shown to the filter model
RELEVANCE_EXCERPT_CHARS = 3000  # bound on any excerpt kept for the answer
RELEVANCE_MAX_TOKENS = 500
RELEVANCE_TEMPERATURE = 0.2


# ========== CONTENT BUDGET ==========

MAX_DOCUMENT_CHARS = 24_000  # per-document content in the final prompt
MAX_COMBINED_CHARS = 60_000  # all content in the final prompt


# ========== LLM CONFIGURATION ==========

LLM_MODEL = "gpt-4o"
# Alternative: "gpt-4o-mini" (cheaper, weaker on long context)

GEMINI_MODEL = "gemini-1.5-flash"  # secondary provider

LLM_TEMPERATURE = 0.2  # Low temperature for factual answers
LLM_MAX_TOKENS = 1000  # Limit response length
LLM_REQUEST_TIMEOUT_SECONDS = 30.0


# ========== SYSTEM CONSTRAINTS ==========

# Wall-clock budget for one pipeline run on the server side
PIPELINE_TIMEOUT_SECONDS = 55.0

# Caller-side defaults (docbrain.client)
CLIENT_TIMEOUT_SECONDS = 60
CLIENT_RETRY_COUNT = 3
CLIENT_RETRY_DELAY_SECONDS = 2


# ========== DESIGN TRADE-OFFS (DOCUMENTED) ==========

"""
TRADE-OFF DECISIONS:

1. CHUNK_SIZE = 8000 characters with RELEVANCE_PREVIEW_CHARS = 5000:
   - The filter model only sees the first 5000 characters of each chunk
   - Smaller chunks → more relevance calls per document
   - Larger chunks → more text hidden past the preview

2. Relevance call ceiling:
   - MAX_DOCUMENTS x MAX_CHUNKS_PER_DOCUMENT = 25 calls worst case
   - 25 x 5000 preview characters ≈ 125k characters through the cheap model
   - MAX_TOTAL_EXCERPTS usually stops the scan much earlier

3. Budget ceilings:
   - MAX_TOTAL_EXCERPTS x RELEVANCE_EXCERPT_CHARS = 24k characters of excerpts
   - MAX_COMBINED_CHARS = 60k keeps the main prompt well below the model context
   - Truncation keeps a strict prefix, no sentence-boundary handling

4. Fail-open relevance filter:
   - A failed relevance call includes the chunk prefix
   - Over-inclusion costs prompt space, dropping costs correctness
"""


class PipelineConfig(BaseModel):
    """
    Tuning knobs for one DocumentQAPipeline instance.

    Defaults come from the module constants above; tests build small
    configs to keep call counts deterministic.
    """

    chunk_size: int = Field(default=CHUNK_SIZE, gt=0)

    max_documents: int = Field(default=MAX_DOCUMENTS, gt=0)
    max_chunks_per_document: int = Field(default=MAX_CHUNKS_PER_DOCUMENT, gt=0)
    max_excerpts_per_document: int = Field(default=MAX_EXCERPTS_PER_DOCUMENT, gt=0)
    max_total_excerpts: int = Field(default=MAX_TOTAL_EXCERPTS, gt=0)
    summary_chunks: int = Field(default=SUMMARY_CHUNKS, gt=0)
    fallback_chunks: int = Field(default=FALLBACK_CHUNKS, gt=0)

    relevance_preview_chars: int = Field(default=RELEVANCE_PREVIEW_CHARS, gt=0)
    relevance_excerpt_chars: int = Field(default=RELEVANCE_EXCERPT_CHARS, gt=0)

    max_document_chars: int = Field(default=MAX_DOCUMENT_CHARS, gt=0)
    max_combined_chars: int = Field(default=MAX_COMBINED_CHARS, gt=0)

    main_model: str = LLM_MODEL
    relevance_model: str = RELEVANCE_MODEL
    max_output_tokens: int = Field(default=LLM_MAX_TOKENS, gt=0)
    relevance_max_tokens: int = Field(default=RELEVANCE_MAX_TOKENS, gt=0)
    temperature: float = Field(default=LLM_TEMPERATURE, ge=0.0, le=2.0)
    relevance_temperature: float = Field(default=RELEVANCE_TEMPERATURE, ge=0.0, le=2.0)

    @model_validator(mode="after")
    def check_consistency(self):
        if self.max_excerpts_per_document > self.max_chunks_per_document:
            raise ValueError(
                "max_excerpts_per_document cannot exceed max_chunks_per_document"
            )
        if self.max_document_chars > self.max_combined_chars:
            raise ValueError(
                "max_document_chars cannot exceed max_combined_chars"
            )
        return self
