# docbrain/prompts/prompt_builder.py

from dataclasses import dataclass
from typing import List, Tuple

from docbrain.prompts.system_prompts import (
    ANSWER_NOT_FOUND_MESSAGE,
    CROSS_DOCUMENT_SYSTEM_PROMPT,
    DOCUMENT_QA_SYSTEM_PROMPT,
    NOTHING_RELEVANT_MESSAGE,
    RELEVANCE_SYSTEM_PROMPT,
    SUMMARY_SYSTEM_PROMPT,
)


@dataclass(frozen=True)
class PromptPair:
    system: str
    user: str


def format_excerpt(title: str, excerpt: str) -> str:
    return f'Document "{title}":\n{excerpt}'


def build_relevance_prompt(question: str, preview: str) -> PromptPair:

    return PromptPair(
        system=RELEVANCE_SYSTEM_PROMPT,
        user=f'Question: "{question}"\n\nText to check:\n{preview}',
    )


def build_summary_prompt(content: str) -> PromptPair:

    return PromptPair(
        system=SUMMARY_SYSTEM_PROMPT,
        user=(
            "Please analyze the following document content and provide "
            f"a detailed summary:\n\n{content}"
        ),
    )


def build_question_prompt(question: str, content: str) -> PromptPair:
    """
    Targeted question about one document.

    The content is already budgeted; it is embedded as-is.
    """

    prompt = f"""
DOCUMENT CONTENT:
----------------
{content}
----------------

QUESTION:
{question}

INSTRUCTIONS:

Answer using ONLY the DOCUMENT CONTENT above.

If the answer does not exist in the content, say:
"{ANSWER_NOT_FOUND_MESSAGE}"

Never fabricate an answer.

FINAL ANSWER:
"""

    return PromptPair(system=DOCUMENT_QA_SYSTEM_PROMPT, user=prompt.strip())


def build_search_prompt(question: str, sections: List[Tuple[str, str]]) -> PromptPair:
    """
    Question across documents.

    `sections` are (title, excerpt) pairs in collection order.
    """

    excerpts = "\n\n".join(format_excerpt(title, text) for title, text in sections)

    prompt = f"""
Based on the following relevant excerpts from documents, please analyze and answer this question: "{question}"

If you cannot find information to answer with high confidence, respond with "{NOTHING_RELEVANT_MESSAGE}"

Relevant excerpts:
{excerpts}
"""

    return PromptPair(system=CROSS_DOCUMENT_SYSTEM_PROMPT, user=prompt.strip())
