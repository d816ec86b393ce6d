"""Raw-bytes-to-text extraction for regulation documents.

PDF pages are read with PyMuPDF (``fitz``) and joined with blank lines;
markdown and plain text are decoded as UTF-8 (a BOM is tolerated).  The
document title is the file name without its extension or upload
timestamp prefix.
"""

from __future__ import annotations

import re
from pathlib import PurePosixPath

import fitz  # PyMuPDF
import structlog

from regulation_rag.models.regulation import DocumentFormat, ExtractedDocument
from regulation_rag.utils.errors import ExtractionError, UnsupportedFormatError

logger = structlog.get_logger(logger_name=__name__)

# Uploads are stored as "<epoch millis>-<original name>".
_UPLOAD_PREFIX = re.compile(r"^\d+-")


def title_from_filename(filename: str) -> str:
    stem = PurePosixPath(filename).stem
    return _UPLOAD_PREFIX.sub("", stem) or stem


def _extract_pdf(data: bytes, filename: str) -> str:
    try:
        doc = fitz.open(stream=data, filetype="pdf")
    except (RuntimeError, ValueError) as exc:
        raise ExtractionError(f"Cannot open PDF {filename}: {exc}", provider_name="pymupdf") from exc

    pages: list[str] = []
    try:
        for page in doc:
            text = page.get_text("text").strip()
            if text:
                pages.append(text)
    except (RuntimeError, ValueError) as exc:
        raise ExtractionError(
            f"Cannot read pages of {filename}: {exc}", provider_name="pymupdf"
        ) from exc
    finally:
        doc.close()

    if not pages:
        logger.warning("pdf_no_text_extracted", filename=filename)
    return "\n\n".join(pages)


def _decode_text(data: bytes, filename: str) -> str:
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise ExtractionError(f"{filename} is not valid UTF-8: {exc}") from exc


def extract_document(data: bytes, fmt: DocumentFormat, filename: str) -> ExtractedDocument:
    """Extract plain text and a title from raw document bytes.

    Parameters
    ----------
    data:
        The file contents.
    fmt:
        Declared format of *data*.
    filename:
        Source file name, used for the title and in error messages.

    Returns
    -------
    ExtractedDocument

    Raises
    ------
    UnsupportedFormatError
        If *fmt* is not a :class:`DocumentFormat`.
    ExtractionError
        If the PDF cannot be parsed or the text is not UTF-8.
    """
    if fmt is DocumentFormat.PDF:
        text = _extract_pdf(data, filename)
    elif fmt in (DocumentFormat.MARKDOWN, DocumentFormat.TEXT):
        text = _decode_text(data, filename)
    else:
        raise UnsupportedFormatError(f"Unsupported document format {fmt!r} ({filename})")

    logger.debug("document_extracted", filename=filename, format=fmt.value, chars=len(text))
    return ExtractedDocument(text=text, title=title_from_filename(filename), source_file=filename)
