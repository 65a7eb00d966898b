# tests/test_edge_cases.py
import concurrent.futures
import time

import pytest
from pydantic import ValidationError

from docbrain.api import routes
from docbrain.config import PipelineConfig
from docbrain.errors import QueryCancelledError
from docbrain.models import QueryRequest
from docbrain.workflow.cancellation import CancellationToken
from docbrain.workflow.result import ErrorKind, Result, attempt


class TestConcurrentOperations:
    """Test system behavior under concurrent load."""

    def test_concurrent_uploads(self, client, blank_pdf_content):
        """Multiple simultaneous uploads should all succeed."""
        def upload():
            return client.post(
                "/upload",
                files={"file": ("test.pdf", blank_pdf_content, "application/pdf")}
            )

        with concurrent.futures.ThreadPoolExecutor(max_workers=10) as executor:
            futures = [executor.submit(upload) for _ in range(10)]
            responses = [f.result() for f in futures]

        assert all(r.status_code == 200 for r in responses)

        doc_ids = [r.json()["document"]["id"] for r in responses]
        assert len(set(doc_ids)) == 10
        assert routes.document_store.count() == 10

    def test_concurrent_summaries_same_document(self, client, blank_pdf_content):
        """Parallel queries against one document all complete."""
        doc_id = client.post(
            "/upload",
            files={"file": ("test.pdf", blank_pdf_content, "application/pdf")}
        ).json()["document"]["id"]

        def query():
            return client.post("/process", json={"documentId": doc_id})

        with concurrent.futures.ThreadPoolExecutor(max_workers=5) as executor:
            responses = list(executor.map(lambda _: query(), range(5)))

        assert all(r.status_code == 200 for r in responses)
        assert routes.document_store.select_by_id(doc_id).analysis == "Mocked answer"


class TestRequestValidation:
    """QueryRequest mode selection."""

    def test_documents_select_cross_mode(self):
        request = QueryRequest.model_validate({
            "documentId": "ignored",
            "question": "Where?",
            "documents": [{"id": "a", "filePath": "a.pdf"}],
        })

        assert request.cross_document
        assert request.documents[0].file_path == "a.pdf"

    def test_question_is_stripped(self):
        request = QueryRequest.model_validate({"documentId": "doc_1", "question": "  Where?  "})

        assert request.question == "Where?"
        assert not request.cross_document

    def test_blank_question_means_summary(self):
        assert QueryRequest.model_validate({"documentId": "doc_1", "question": " "}).question is None

    def test_empty_document_list_still_needs_question(self):
        with pytest.raises(ValidationError):
            QueryRequest.model_validate({"documents": []})

    @pytest.mark.parametrize("field, value", [
        ("documentId", "x" * 101),
        ("question", "q" * 1001),
    ])
    def test_length_limits(self, field, value):
        payload = {"documentId": "doc_1", field: value}

        with pytest.raises(ValidationError):
            QueryRequest.model_validate(payload)


class TestPipelineConfig:

    def test_defaults_are_consistent(self):
        config = PipelineConfig()

        assert config.max_excerpts_per_document <= config.max_chunks_per_document
        assert config.max_document_chars <= config.max_combined_chars

    @pytest.mark.parametrize("overrides", [
        {"chunk_size": 0},
        {"max_documents": -1},
        {"max_excerpts_per_document": 6, "max_chunks_per_document": 5},
        {"max_document_chars": 200, "max_combined_chars": 100},
    ])
    def test_invalid_configs_rejected(self, overrides):
        with pytest.raises(ValidationError):
            PipelineConfig(**overrides)


class TestResult:
    """Stage outcomes and their combinators."""

    def test_attempt_captures_failure(self):
        result = attempt(ErrorKind.EXTRACTION_FAILURE, int, "not a number")

        assert not result.ok
        assert result.error_kind == ErrorKind.EXTRACTION_FAILURE
        assert isinstance(result.error, ValueError)

    def test_attempt_propagates_cancellation(self):
        def cancelled():
            raise QueryCancelledError("stop")

        with pytest.raises(QueryCancelledError):
            attempt(ErrorKind.MODEL_CALL_FAILURE, cancelled)

    def test_then_chains_successes(self):
        result = Result.success("21").then(ErrorKind.EXTRACTION_FAILURE, int)

        assert result.ok
        assert result.value == 21

    def test_then_passes_failures_through(self):
        failed = Result.failure(ErrorKind.NOT_FOUND, KeyError("gone"))

        result = failed.then(ErrorKind.EXTRACTION_FAILURE, int)

        assert result.error_kind == ErrorKind.NOT_FOUND

    def test_recover(self):
        failed = Result.failure(ErrorKind.MODEL_CALL_FAILURE, RuntimeError("down"))

        assert failed.recover("fallback") == "fallback"
        assert failed.recover(lambda r: f"error: {r.error}") == "error: down"
        assert Result.success("value").recover("fallback") == "value"


class TestCancellationToken:

    def test_fresh_token_passes(self):
        CancellationToken().raise_if_cancelled("anything")

    def test_explicit_cancel(self):
        token = CancellationToken()
        token.cancel()

        with pytest.raises(QueryCancelledError, match="relevance check"):
            token.raise_if_cancelled("relevance check")

    def test_deadline_expires(self):
        token = CancellationToken(timeout_seconds=0.01)

        time.sleep(0.02)

        assert token.cancelled
