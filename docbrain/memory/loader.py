# docbrain/memory/loader.py

"""
Text extraction for uploaded documents.

Supports:
- PDF files (pypdf)
- Plain UTF-8 text

Guarantees:
- Never raises on bad input
- Returns either extracted text or UNREADABLE_DOCUMENT_PLACEHOLDER
- Memory bounded by MAX_DOCUMENT_CHARACTERS
"""

import io
import logging

from pypdf import PdfReader

from docbrain.config import MAX_DOCUMENT_CHARACTERS

logger = logging.getLogger(__name__)


UNREADABLE_DOCUMENT_PLACEHOLDER = (
    "No readable text could be extracted from this document. "
    "It may be a scanned or image-only PDF. "
    "Let the user know that the document's text is not available for analysis."
)

PDF_MAGIC = b"%PDF"


# ============================================================
# SAFETY: CHARACTER LIMIT
# ============================================================

def enforce_character_limit(text: str) -> str:

    if not text:
        return ""

    if len(text) > MAX_DOCUMENT_CHARACTERS:
        return text[:MAX_DOCUMENT_CHARACTERS]

    return text


# ============================================================
# PDF LOADER
# ============================================================

def load_pdf_text(data: bytes) -> str:

    reader = PdfReader(io.BytesIO(data))

    parts = []

    for page in reader.pages:

        text = page.extract_text()

        if text:
            parts.append(text)

    return enforce_character_limit("\n".join(parts))


# ============================================================
# MAIN ENTRY POINT
# ============================================================

def extract_text(data: bytes) -> str:

    if not data:
        logger.warning("Extraction skipped: empty file")
        return UNREADABLE_DOCUMENT_PLACEHOLDER

    try:

        if data.lstrip()[:4] == PDF_MAGIC:
            text = load_pdf_text(data)
        else:
            text = enforce_character_limit(data.decode("utf-8"))

    except Exception as e:
        # pypdf raises a wide range of errors on malformed files
        logger.warning(
            "Text extraction failed",
            extra={"error": str(e), "error_type": type(e).__name__},
        )

        return UNREADABLE_DOCUMENT_PLACEHOLDER

    if not text.strip():

        logger.warning(
            "Extraction produced no text",
            extra={"size_bytes": len(data)},
        )

        return UNREADABLE_DOCUMENT_PLACEHOLDER

    logger.info(
        "Text extraction complete",
        extra={"size_bytes": len(data), "characters": len(text)},
    )

    return text
