# docbrain/workflow/result.py
"""
Stage outcomes for the query pipeline.

Each stage that may fail in a recoverable way returns a Result instead
of raising. Call sites decide explicitly: either recover with a safe
default, or raise a domain error chained from `error`.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Generic, Optional, TypeVar, Union

from docbrain.errors import QueryCancelledError

logger = logging.getLogger(__name__)

T = TypeVar("T")
U = TypeVar("U")


class ErrorKind(str, Enum):

    NOT_FOUND = "not_found"
    EXTRACTION_FAILURE = "extraction_failure"
    RELEVANCE_CHECK_FAILURE = "relevance_check_failure"
    MODEL_CALL_FAILURE = "model_call_failure"
    PERSISTENCE_FAILURE = "persistence_failure"


@dataclass(frozen=True)
class Result(Generic[T]):

    value: Optional[T] = None
    error_kind: Optional[ErrorKind] = None
    error: Optional[BaseException] = None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, kind: ErrorKind, error: BaseException) -> "Result[T]":
        return cls(error_kind=kind, error=error)

    @property
    def ok(self) -> bool:
        return self.error_kind is None

    def then(self, kind: ErrorKind, fn: Callable[[T], "U"]) -> "Result[U]":
        """Feed a successful value into the next stage; failures pass through."""

        if not self.ok:
            return self

        return attempt(kind, fn, self.value)

    def recover(self, default: Union[T, Callable[["Result[T]"], T]]) -> T:
        """
        Value on success, otherwise `default`.

        A callable default receives the failed result, so call sites can
        build the fallback from the error.
        """

        if self.ok:
            return self.value

        logger.warning(
            "Recovering from stage failure",
            extra={
                "error_kind": self.error_kind.value,
                "error": str(self.error),
            },
        )

        if callable(default):
            return default(self)

        return default


def attempt(kind: ErrorKind, fn: Callable[..., T], *args, **kwargs) -> Result[T]:
    """Run `fn` and capture a failure as a Result of the given kind."""

    try:
        return Result.success(fn(*args, **kwargs))

    except QueryCancelledError:
        raise

    except Exception as e:
        return Result.failure(kind, e)
