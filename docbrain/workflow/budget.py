# docbrain/workflow/budget.py

import logging
from typing import List, Tuple

logger = logging.getLogger(__name__)


def truncate(content: str, ceiling: int) -> str:
    """Strict prefix of at most `ceiling` characters."""

    if ceiling < 0:
        raise ValueError(f"Invalid ceiling: {ceiling}")

    if len(content) <= ceiling:
        return content

    return content[:ceiling]


class ContentBudgeter:
    """
    Enforces content ceilings before a prompt is built.

    Truncation always keeps a prefix. The per-document ceiling bounds
    each document's content, the combined ceiling bounds everything
    that goes into one prompt; whichever is smaller wins.
    """

    def __init__(self, max_document_chars: int, max_combined_chars: int):

        self.max_document_chars = max_document_chars
        self.max_combined_chars = max_combined_chars

    def apply_document(self, content: str) -> str:

        ceiling = min(self.max_document_chars, self.max_combined_chars)

        budgeted = truncate(content, ceiling)

        if len(budgeted) < len(content):
            logger.info(
                "Document content truncated",
                extra={"original_length": len(content), "ceiling": ceiling},
            )

        return budgeted

    def apply_combined(self, sections: List[Tuple[str, str]]) -> List[Tuple[str, str]]:
        """
        Budget (title, text) sections in order.

        Each text is cut to the per-document ceiling and to what is left
        of the combined ceiling. Sections past the combined ceiling are
        dropped.
        """

        remaining = self.max_combined_chars
        budgeted = []

        for title, text in sections:

            if remaining <= 0:
                logger.info(
                    "Combined content ceiling reached",
                    extra={
                        "ceiling": self.max_combined_chars,
                        "dropped_sections": len(sections) - len(budgeted),
                    },
                )
                break

            kept = truncate(text, min(self.max_document_chars, remaining))

            budgeted.append((title, kept))
            remaining -= len(kept)

        return budgeted
