# docbrain/workflow/cancellation.py

import threading
import time
from typing import Optional

from docbrain.errors import QueryCancelledError


class CancellationToken:
    """
    Cooperative cancellation for one pipeline run.

    The pipeline checks the token before every external call
    (storage download, relevance check, main completion). Once the
    token is cancelled or its deadline has passed, the next check
    raises QueryCancelledError and no further provider calls are made.
    """

    def __init__(self, timeout_seconds: Optional[float] = None):

        self._event = threading.Event()

        self._deadline = (
            time.monotonic() + timeout_seconds
            if timeout_seconds is not None
            else None
        )

    def cancel(self):
        self._event.set()

    @property
    def cancelled(self) -> bool:

        if self._event.is_set():
            return True

        return self._deadline is not None and time.monotonic() >= self._deadline

    def raise_if_cancelled(self, stage: str = ""):

        if self.cancelled:
            raise QueryCancelledError(
                f"Query cancelled before {stage}" if stage else "Query cancelled"
            )


def check(token: Optional[CancellationToken], stage: str):

    if token is not None:
        token.raise_if_cancelled(stage)
