# tests/conftest.py
import io
import os
import sys
import tempfile

import pytest

# Add project root to Python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

# Keep storage, metrics and logs out of the working directory
_TEST_ROOT = tempfile.mkdtemp(prefix="docbrain-tests-")
os.environ.setdefault("DOCBRAIN_STORAGE_DIR", os.path.join(_TEST_ROOT, "storage"))
os.environ.setdefault("DOCBRAIN_LOG_DIR", os.path.join(_TEST_ROOT, "logs"))

from fastapi.testclient import TestClient
from pypdf import PdfWriter

from docbrain.config import PipelineConfig
from docbrain.errors import NotFoundError
from docbrain.llm.client import Completion
from docbrain.memory.resolver import ContentResolver
from docbrain.storage.documents import DocumentStore
from docbrain.storage.files import FileStorage
from docbrain.workflow.document_qa import DocumentQAPipeline
from docbrain.workflow.relevance import RelevanceFilter


NOT_RELEVANT = '{"isRelevant": false}'


class FakeLLM:
    """
    LLM double.

    Relevance checks are the calls made in JSON mode; everything else is
    a main completion. A response may be a string, an exception to raise,
    or a callable taking the user prompt.
    """

    def __init__(self, relevance=NOT_RELEVANT, answer="Mocked answer", model="gpt-4o-2024-08-06"):
        self.relevance = relevance
        self.answer = answer
        self.model = model
        self.relevance_calls = []
        self.main_calls = []
        self.providers = ["fake"]

    def _respond(self, response, user_prompt):

        if callable(response):
            response = response(user_prompt)

        if isinstance(response, Exception):
            raise response

        return response

    def complete(self, model, system_prompt, user_prompt, max_tokens, temperature, json_mode=False):

        if json_mode:
            self.relevance_calls.append(user_prompt)
            return Completion(text=self._respond(self.relevance, user_prompt), model=model)

        self.main_calls.append({"model": model, "system": system_prompt, "user": user_prompt})
        return Completion(text=self._respond(self.answer, user_prompt), model=self.model)


class FakeStorage:
    """In-memory object store that records downloads."""

    def __init__(self, objects=None):
        self.objects = dict(objects or {})
        self.downloads = []

    def download(self, path):
        self.downloads.append(path)
        if path not in self.objects:
            raise NotFoundError(f"Object not found: {path}")
        return self.objects[path]


class RecordingTaskSink:
    """Collects background tasks; tests run them explicitly."""

    def __init__(self):
        self.tasks = []

    def add_task(self, func, *args, **kwargs):
        self.tasks.append((func, args, kwargs))

    def run_all(self):
        pending, self.tasks = self.tasks, []
        for func, args, kwargs in pending:
            func(*args, **kwargs)


@pytest.fixture
def small_config():
    """Tiny limits so call counts are easy to reason about."""
    return PipelineConfig(
        chunk_size=10,
        max_documents=3,
        max_chunks_per_document=3,
        max_excerpts_per_document=2,
        max_total_excerpts=4,
        summary_chunks=2,
        fallback_chunks=2,
        relevance_preview_chars=8,
        relevance_excerpt_chars=6,
        max_document_chars=50,
        max_combined_chars=100,
    )


@pytest.fixture
def fake_llm():
    return FakeLLM()


@pytest.fixture
def fake_storage():
    return FakeStorage()


@pytest.fixture
def task_sink():
    return RecordingTaskSink()


@pytest.fixture
def document_store(tmp_path):
    return DocumentStore(str(tmp_path / "documents.json"))


@pytest.fixture
def make_pipeline(fake_llm, fake_storage, document_store, task_sink):
    """
    Build a pipeline wired to the test doubles.

    Usage:
        pipeline = make_pipeline(config)
    """

    def _make(config=None, extractor=None):

        config = config or PipelineConfig()

        resolver_kwargs = {"extractor": extractor} if extractor else {}

        return DocumentQAPipeline(
            config=config,
            document_store=document_store,
            resolver=ContentResolver(fake_storage, document_store, **resolver_kwargs),
            relevance_filter=RelevanceFilter(fake_llm, config),
            llm=fake_llm,
            task_sink=task_sink,
        )

    return _make


@pytest.fixture
def blank_pdf_content():
    """A valid one-page PDF with no text (like a scanned document)."""
    writer = PdfWriter()
    writer.add_blank_page(width=612, height=792)
    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


@pytest.fixture
def client(tmp_path, monkeypatch, fake_llm):
    """
    FastAPI test client with isolated storage and a fake LLM.
    """
    from docbrain.api import routes
    from docbrain.main import app

    monkeypatch.setattr(routes, "document_store", DocumentStore(str(tmp_path / "api_documents.json")))
    monkeypatch.setattr(routes, "file_storage", FileStorage(str(tmp_path / "uploads")))
    monkeypatch.setattr(routes, "llm_client", fake_llm)
    monkeypatch.setattr(routes, "pipeline_config", PipelineConfig())

    return TestClient(app)
