# docbrain/workflow/document_qa.py
"""
Query pipeline: one pass per request, no retries.

ModeSelect → ResolveContent → Chunk+Filter → Budget → BuildPrompt
→ CallModel → ShapeResponse

Cross-document mode skips documents that cannot be resolved and stops
scanning once enough excerpts are collected. Single-document mode
fails on a missing document, falls back to raw chunks when nothing is
judged relevant, and summarizes when no question is asked.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from docbrain.config import PipelineConfig
from docbrain.errors import DocumentNotFoundError
from docbrain.memory.chunker import iter_chunks
from docbrain.models import DocumentMeta, DocumentRecord, QueryRequest, QueryResponse
from docbrain.prompts.prompt_builder import (
    PromptPair,
    build_question_prompt,
    build_search_prompt,
    build_summary_prompt,
)
from docbrain.prompts.system_prompts import NOTHING_RELEVANT_MESSAGE
from docbrain.workflow.budget import ContentBudgeter
from docbrain.workflow.cancellation import CancellationToken, check
from docbrain.workflow.result import ErrorKind, Result, attempt
from docbrain.workflow.tasks import InlineTaskSink, persist_document_fields

logger = logging.getLogger(__name__)


MODEL_FALLBACK_MESSAGE = (
    "I'm sorry, I couldn't analyze the document right now because the "
    "language model is unavailable. Please try again in a moment."
)


@dataclass
class PipelineStats:
    """Per-request counters, read by the API for metrics."""
    mode: str = ""
    documents_scanned: int = 0
    documents_skipped: int = 0
    relevance_calls: int = 0
    excerpts: int = 0
    model_called: bool = False
    model_failed: bool = False
    short_circuited: bool = False


class DocumentQAPipeline:

    def __init__(
        self,
        config: PipelineConfig,
        document_store,
        resolver,
        relevance_filter,
        llm,
        task_sink=None,
    ):
        self._config = config
        self._document_store = document_store
        self._resolver = resolver
        self._relevance = relevance_filter
        self._llm = llm
        self._task_sink = task_sink or InlineTaskSink()

        self._budget = ContentBudgeter(
            max_document_chars=config.max_document_chars,
            max_combined_chars=config.max_combined_chars,
        )

        self.stats = PipelineStats()

    # ============================================================
    # ENTRY POINT
    # ============================================================

    def run(
        self,
        request: QueryRequest,
        cancel_token: Optional[CancellationToken] = None,
    ) -> QueryResponse:

        if request.cross_document:
            self.stats.mode = "cross_document"
            return self._run_cross_document(request.documents, request.question, cancel_token)

        if request.question:
            self.stats.mode = "question"
        else:
            self.stats.mode = "summary"

        return self._run_single_document(request.document_id, request.question, cancel_token)

    # ============================================================
    # CHUNK + FILTER
    # ============================================================

    def _collect_excerpts(
        self,
        content: str,
        question: str,
        limit: int,
        cancel_token: Optional[CancellationToken],
    ) -> List[str]:
        """
        Relevant excerpts from the first chunks of `content`.

        At most `max_chunks_per_document` chunks are checked; scanning
        stops as soon as `limit` excerpts are found.
        """

        excerpts = []

        if limit <= 0:
            return excerpts

        chunks = iter_chunks(content, self._config.chunk_size)

        for index, chunk in enumerate(chunks):

            if index >= self._config.max_chunks_per_document:
                break

            self.stats.relevance_calls += 1

            verdict = self._relevance.check(chunk, question, cancel_token)

            if verdict.relevant:

                excerpts.append(verdict.excerpt)

                if len(excerpts) >= limit:
                    break

        logger.info(
            "Relevance filtering complete",
            extra={
                "chunks_total": len(chunks),
                "chunks_checked": min(len(chunks), self._config.max_chunks_per_document),
                "excerpts": len(excerpts),
            },
        )

        return excerpts

    # ============================================================
    # CROSS-DOCUMENT MODE
    # ============================================================

    def _run_cross_document(
        self,
        documents: List[DocumentMeta],
        question: str,
        cancel_token: Optional[CancellationToken],
    ) -> QueryResponse:

        sample = documents[:self._config.max_documents]

        logger.info(
            "Processing cross-document search",
            extra={
                "documents_received": len(documents),
                "documents_sampled": len(sample),
            },
        )

        sections = []
        collected = 0

        for document in sample:

            remaining = self._config.max_total_excerpts - collected

            if remaining <= 0:
                logger.info(
                    "Excerpt ceiling reached, stopping scan",
                    extra={"excerpts": collected},
                )
                break

            resolved = self._resolver.resolve(document, self._task_sink, cancel_token)

            if not resolved.ok:
                self.stats.documents_skipped += 1
                logger.warning(
                    "Skipping unresolvable document",
                    extra={"doc_id": document.id, "error_kind": resolved.error_kind.value},
                )
                continue

            self.stats.documents_scanned += 1

            excerpts = self._collect_excerpts(
                resolved.value,
                question,
                min(self._config.max_excerpts_per_document, remaining),
                cancel_token,
            )

            if excerpts:
                logger.info(
                    "Found relevant content",
                    extra={"doc_id": document.id, "excerpts": len(excerpts)},
                )
                sections.append((document.title or document.id, "\n\n".join(excerpts)))
                collected += len(excerpts)

        self.stats.excerpts = collected

        if not sections:
            logger.info("No relevant content found in any document")
            self.stats.short_circuited = True
            return QueryResponse(analysis=NOTHING_RELEVANT_MESSAGE)

        budgeted = self._budget.apply_combined(sections)

        prompt = build_search_prompt(question, budgeted)

        return self._shape(self._call_model(prompt, cancel_token))

    # ============================================================
    # SINGLE-DOCUMENT MODE
    # ============================================================

    def _run_single_document(
        self,
        document_id: str,
        question: Optional[str],
        cancel_token: Optional[CancellationToken],
    ) -> QueryResponse:

        logger.info(
            "Processing single document",
            extra={"doc_id": document_id, "has_question": bool(question)},
        )

        document: Optional[DocumentRecord] = self._document_store.select_by_id(document_id)

        if document is None:
            logger.warning("Document not found", extra={"doc_id": document_id})
            raise DocumentNotFoundError(document_id)

        resolved = self._resolver.resolve(document, self._task_sink, cancel_token)

        if not resolved.ok:
            raise DocumentNotFoundError(document_id) from resolved.error

        content = resolved.value
        self.stats.documents_scanned = 1

        if not question:
            return self._summarize(document, content, cancel_token)

        excerpts = self._collect_excerpts(
            content,
            question,
            self._config.max_chunks_per_document,
            cancel_token,
        )

        self.stats.excerpts = len(excerpts)

        if excerpts:
            content_for_analysis = "\n\n".join(excerpts)
        else:
            logger.info("No specifically relevant chunks found, using document subset")
            content_for_analysis = "".join(
                iter_chunks(content, self._config.chunk_size).head(self._config.fallback_chunks)
            )

        prompt = build_question_prompt(question, self._budget.apply_document(content_for_analysis))

        return self._shape(self._call_model(prompt, cancel_token))

    def _summarize(
        self,
        document: DocumentRecord,
        content: str,
        cancel_token: Optional[CancellationToken],
    ) -> QueryResponse:

        summary_content = "\n\n".join(
            iter_chunks(content, self._config.chunk_size).head(self._config.summary_chunks)
        )

        prompt = build_summary_prompt(self._budget.apply_document(summary_content))

        outcome = self._call_model(prompt, cancel_token)

        if outcome.ok:
            self._task_sink.add_task(
                persist_document_fields,
                self._document_store,
                document.id,
                {"analysis": outcome.value.text},
            )

        return self._shape(outcome)

    # ============================================================
    # MODEL CALL + RESPONSE
    # ============================================================

    def _call_model(self, prompt: PromptPair, cancel_token: Optional[CancellationToken]) -> Result:

        check(cancel_token, "model call")

        self.stats.model_called = True

        logger.info(
            "Sending request to LLM",
            extra={
                "model": self._config.main_model,
                "prompt_length": len(prompt.system) + len(prompt.user),
            },
        )

        return attempt(
            ErrorKind.MODEL_CALL_FAILURE,
            self._llm.complete,
            model=self._config.main_model,
            system_prompt=prompt.system,
            user_prompt=prompt.user,
            max_tokens=self._config.max_output_tokens,
            temperature=self._config.temperature,
        )

    def _shape(self, outcome: Result) -> QueryResponse:

        if outcome.ok:
            return QueryResponse(analysis=outcome.value.text, model=outcome.value.model)

        self.stats.model_failed = True

        return outcome.recover(
            lambda failed: QueryResponse(
                analysis=MODEL_FALLBACK_MESSAGE,
                error=f"Model call failed: {failed.error}",
            )
        )
