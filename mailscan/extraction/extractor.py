"""Text extraction from saved attachments."""

import logging
import mimetypes
from io import BytesIO
from pathlib import Path
from typing import Optional

from pypdf import PdfReader
from pypdf.errors import PyPdfError

from .exceptions import ExtractionError

logger = logging.getLogger(__name__)

DEFAULT_MAX_LINES = 5


def guess_content_type(path: Path) -> str:
    """Guess a MIME type from the file extension."""
    content_type, _ = mimetypes.guess_type(path.name)
    return content_type or "application/octet-stream"


def first_lines(text: str, max_lines: int = DEFAULT_MAX_LINES) -> list[str]:
    """Return the first non-empty, whitespace-trimmed lines of text."""
    lines = [line.strip() for line in text.splitlines()]
    return [line for line in lines if line][:max_lines]


def extract_text_lines(
    content: bytes, content_type: str, max_lines: int = DEFAULT_MAX_LINES
) -> Optional[list[str]]:
    """Extract a short summary of an attachment's text.

    Args:
        content: Raw attachment bytes
        content_type: MIME type of the attachment
        max_lines: Maximum number of lines returned

    Returns:
        Leading text lines, or None when the type has no extractor

    Raises:
        ExtractionError: The document could not be read
    """
    if content_type != "application/pdf":
        logger.debug("No text extractor for %s", content_type)
        return None

    try:
        reader = PdfReader(BytesIO(content))
        text = "\n".join(page.extract_text() or "" for page in reader.pages)
    except PyPdfError as e:
        raise ExtractionError(content_type, str(e) or type(e).__name__) from e
    except Exception as e:
        # Damaged object trees surface as TypeError, AttributeError and similar
        raise ExtractionError(content_type, f"{type(e).__name__}: {e}") from e
    return first_lines(text, max_lines)
