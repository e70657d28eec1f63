"""Text extraction from uploaded report files."""

from __future__ import annotations

import io
from pathlib import Path
from typing import Optional

import pdfplumber

from ...utils.config import settings
from ...utils.logging import get_logger

logger = get_logger(__name__)

TEXT_EXTENSIONS = {".txt", ".csv", ".hl7", ".json", ".xml"}
IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".bmp", ".tif", ".tiff", ".dcm"}


class FileTooLargeError(ValueError):
    """Upload exceeds the configured size limit."""


def max_upload_bytes() -> int:
    return settings.max_upload_mb * 1024 * 1024


def check_upload_size(content: bytes) -> None:
    if len(content) > max_upload_bytes():
        raise FileTooLargeError(
            f"File exceeds the {settings.max_upload_mb}MB upload limit"
        )


def extract_pdf_text(content: bytes) -> str:
    """Concatenate the text layer of every PDF page."""

    with pdfplumber.open(io.BytesIO(content)) as pdf:
        pages = [page.extract_text() or "" for page in pdf.pages]
    return "\n".join(pages).strip()


def extract_text(
    content: bytes, filename: Optional[str] = None, content_type: Optional[str] = None
) -> str:
    """Return the readable text of an uploaded report.

    PDFs go through pdfplumber; text, CSV, HL7 and FHIR JSON are decoded as
    UTF-8. Images and DICOM files yield an empty string.
    """

    check_upload_size(content)
    suffix = Path(filename or "").suffix.lower()
    content_type = (content_type or "").lower()

    if suffix == ".pdf" or content_type == "application/pdf":
        try:
            return extract_pdf_text(content)
        except Exception as exc:
            logger.warning("PDF text extraction failed for %s: %s", filename, exc)
            return ""

    if suffix in IMAGE_EXTENSIONS or content_type.startswith("image/"):
        logger.info("No text layer extracted from image upload %s", filename)
        return ""

    if (
        suffix in TEXT_EXTENSIONS
        or content_type.startswith("text/")
        or content_type in {"application/json", "application/fhir+json"}
    ):
        return content.decode("utf-8", errors="replace")

    # Unknown types are read as text when they decode cleanly
    try:
        return content.decode("utf-8")
    except UnicodeDecodeError:
        logger.info("Unsupported binary upload %s (%s)", filename, content_type)
        return ""
