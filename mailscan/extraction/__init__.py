"""Attachment text extraction.

Public API:
    - extract_text_lines: Leading text lines of a PDF attachment
    - guess_content_type: MIME type from a file name
    - ExtractionError: Unreadable attachment
"""

from .exceptions import ExtractionError
from .extractor import extract_text_lines, first_lines, guess_content_type

__all__ = [
    "extract_text_lines",
    "first_lines",
    "guess_content_type",
    "ExtractionError",
]
