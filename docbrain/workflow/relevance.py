# docbrain/workflow/relevance.py
"""
Per-chunk relevance filtering with a cheap model.

One model call per chunk, never retried. The model is asked for a
JSON verdict; malformed answers fall back to a substring check, and
failed calls fail open so a transient error never drops a document's
only content.
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Optional

from docbrain.config import PipelineConfig
from docbrain.prompts.prompt_builder import build_relevance_prompt
from docbrain.workflow.budget import truncate
from docbrain.workflow.cancellation import CancellationToken, check
from docbrain.workflow.result import ErrorKind, Result, attempt

logger = logging.getLogger(__name__)


_AFFIRMATIVE_MARKERS = ('"isrelevant": true', '"isrelevant":true')

_CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


@dataclass(frozen=True)
class RelevanceResult:
    relevant: bool
    excerpt: Optional[str] = None

    @classmethod
    def not_relevant(cls) -> "RelevanceResult":
        return cls(relevant=False)

    @classmethod
    def with_excerpt(cls, excerpt: str) -> "RelevanceResult":
        return cls(relevant=True, excerpt=excerpt)


class RelevanceFilter:

    def __init__(self, llm, config: PipelineConfig):

        self._llm = llm
        self._config = config

    def _prefix(self, chunk: str) -> str:
        return truncate(chunk, self._config.relevance_excerpt_chars)

    def _ask(self, chunk: str, question: str) -> Result[str]:

        preview = truncate(chunk, self._config.relevance_preview_chars)
        prompt = build_relevance_prompt(question, preview)

        return attempt(
            ErrorKind.RELEVANCE_CHECK_FAILURE,
            self._llm.complete,
            model=self._config.relevance_model,
            system_prompt=prompt.system,
            user_prompt=prompt.user,
            max_tokens=self._config.relevance_max_tokens,
            temperature=self._config.relevance_temperature,
            json_mode=True,
        )

    def check(
        self,
        chunk: str,
        question: str,
        cancel_token: Optional[CancellationToken] = None,
    ) -> RelevanceResult:

        check(cancel_token, "relevance check")

        verdict = self._ask(chunk, question).then(
            ErrorKind.RELEVANCE_CHECK_FAILURE,
            lambda completion: self.parse_verdict(completion.text, chunk),
        )

        # fail open: an unanswered check keeps the chunk
        return verdict.recover(
            lambda failed: RelevanceResult.with_excerpt(self._prefix(chunk))
        )

    def parse_verdict(self, raw: str, chunk: str) -> RelevanceResult:

        cleaned = _CODE_FENCE.sub("", raw.strip())

        try:

            parsed = json.loads(cleaned)

            if not isinstance(parsed, dict):
                raise ValueError("Relevance verdict is not a JSON object")

        except ValueError as e:

            logger.info(
                "Failed to parse relevance verdict",
                extra={"error": str(e), "response_length": len(raw)},
            )

            lowered = raw.lower()

            if any(marker in lowered for marker in _AFFIRMATIVE_MARKERS):
                return RelevanceResult.with_excerpt(self._prefix(chunk))

            return RelevanceResult.not_relevant()

        if not parsed.get("isRelevant"):
            return RelevanceResult.not_relevant()

        excerpt = parsed.get("excerpt")

        if isinstance(excerpt, str) and excerpt.strip():
            return RelevanceResult.with_excerpt(self._prefix(excerpt.strip()))

        return RelevanceResult.with_excerpt(self._prefix(chunk))
