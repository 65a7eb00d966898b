# docbrain/client.py
"""
HTTP client for the DocBrain API.

Timeouts and retries live here, on the caller side: the server runs
each query exactly once. A query can take a while because every chunk
goes through the relevance filter, so query calls get a generous
wall-clock timeout.
"""

import logging
import os
import time
from typing import Dict, List, Optional

import requests

from docbrain.config import (
    CLIENT_RETRY_COUNT,
    CLIENT_RETRY_DELAY_SECONDS,
    CLIENT_TIMEOUT_SECONDS,
)

logger = logging.getLogger(__name__)


API_BASE = os.getenv("DOCBRAIN_API_BASE", "http://127.0.0.1:8000")


class DocBrainClientError(Exception):

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class DocBrainClient:

    def __init__(
        self,
        base_url: str = API_BASE,
        timeout: float = CLIENT_TIMEOUT_SECONDS,
        retry_count: int = CLIENT_RETRY_COUNT,
        retry_delay: float = CLIENT_RETRY_DELAY_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        if retry_count < 1:
            raise ValueError("retry_count must be at least 1")

        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.retry_count = retry_count
        self.retry_delay = retry_delay
        self.session = session or requests.Session()

    # ============================================================
    # TRANSPORT
    # ============================================================

    def _request(self, method: str, path: str, retry: bool = True, **kwargs) -> Dict:
        """
        Send a request and return the decoded JSON body.

        Network errors, timeouts and 5xx responses are retried up to
        `retry_count` attempts; 4xx responses fail immediately.
        """

        url = f"{self.base_url}{path}"
        attempts = self.retry_count if retry else 1

        last_error: Optional[DocBrainClientError] = None

        for attempt in range(attempts):

            try:

                start_time = time.time()

                response = self.session.request(method, url, timeout=self.timeout, **kwargs)

                latency = time.time() - start_time

                if response.status_code < 400:

                    logger.info(
                        "DocBrain request complete",
                        extra={
                            "path": path,
                            "attempt": attempt + 1,
                            "latency_seconds": round(latency, 3),
                        },
                    )

                    return response.json()

                last_error = DocBrainClientError(
                    self._error_message(response),
                    status_code=response.status_code,
                )

                if response.status_code < 500:
                    raise last_error

            except requests.RequestException as e:

                last_error = DocBrainClientError(f"Request failed: {e}")

            logger.warning(
                "DocBrain request failed",
                extra={
                    "path": path,
                    "attempt": attempt + 1,
                    "error": str(last_error),
                },
            )

            if attempt + 1 < attempts:
                time.sleep(self.retry_delay)

        raise last_error

    @staticmethod
    def _error_message(response: requests.Response) -> str:

        try:

            body = response.json()

        except ValueError:
            return f"HTTP {response.status_code}"

        return body.get("error") or body.get("detail") or f"HTTP {response.status_code}"

    # ============================================================
    # DOCUMENT LIBRARY
    # ============================================================

    def upload_pdf(self, file_path: str) -> Dict:
        """Upload a PDF; returns the created document info."""

        with open(file_path, "rb") as f:
            data = f.read()

        filename = os.path.basename(file_path)

        # uploads are not idempotent
        body = self._request(
            "POST",
            "/upload",
            retry=False,
            files={"file": (filename, data, "application/pdf")},
        )

        return body["document"]

    def list_documents(self, limit: Optional[int] = None, include_content: bool = False) -> List[Dict]:
        """Documents, newest first."""

        params = {"include_content": str(include_content).lower()}

        if limit is not None:
            params["limit"] = limit

        return self._request("GET", "/documents", params=params)["documents"]

    def delete_document(self, document_id: str) -> Dict:
        return self._request("DELETE", f"/documents/{document_id}")

    # ============================================================
    # QUERIES
    # ============================================================

    def process_document(self, document_id: str, question: Optional[str] = None) -> Dict:
        """Summary (no question) or targeted question about one document."""

        payload = {"documentId": document_id}

        if question:
            payload["question"] = question

        return self._request("POST", "/process", json=payload)

    def query_all_documents(self, question: str, limit: Optional[int] = None) -> Dict:
        """
        Ask a question across the library.

        Documents are sent newest first, the order the server samples from.
        """

        documents = self.list_documents(limit=limit, include_content=True)

        logger.info(
            "Querying across documents",
            extra={"documents": len(documents)},
        )

        payload = {
            "question": question,
            "documents": [
                {
                    "id": doc["id"],
                    "title": doc["title"],
                    "filePath": doc["file_path"],
                    "content": doc.get("content"),
                }
                for doc in documents
            ],
        }

        return self._request("POST", "/process", json=payload)
