"""
PDF text extraction using pypdf.

Extraction is a pure function of the input bytes: nothing is cached or kept
between calls. File type and size checks belong to the upload layer and are
done before bytes reach this module.
"""

from io import BytesIO
from typing import Dict, Union

from fastapi.concurrency import run_in_threadpool
from loguru import logger
from pypdf import PdfReader
from pypdf.errors import PdfReadError

from wellmed_gateway.exceptions import ExtractionError
from wellmed_gateway.models import ExtractedDocument

MetadataValue = Union[str, int, float]


def _normalize_metadata(reader: PdfReader) -> Dict[str, MetadataValue]:
    """
    Flatten the PDF document information dictionary.

    Keys lose their leading "/" and values become plain strings or numbers.
    The PDF format version is always reported as ``PDFFormatVersion``.
    """
    info: Dict[str, MetadataValue] = {}

    header = reader.pdf_header or ""
    if header.startswith("%PDF-"):
        info["PDFFormatVersion"] = header[len("%PDF-"):]

    metadata = reader.metadata
    if metadata is None:
        return info

    for key in metadata:
        value = metadata[key]
        name = str(key).lstrip("/")
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            info[name] = value
        else:
            info[name] = str(value)
    return info


def extract_pdf(data: bytes) -> ExtractedDocument:
    """
    Extract plain text, page count and metadata from PDF bytes.

    Args:
        data: Raw PDF file content

    Returns:
        ExtractedDocument with page texts joined by blank lines

    Raises:
        ExtractionError: If the bytes cannot be parsed as a PDF

    Example:
        >>> doc = extract_pdf(open("superbill.pdf", "rb").read())
        >>> doc.page_count
        2
    """
    if not data:
        raise ExtractionError("Uploaded document is empty")

    try:
        reader = PdfReader(BytesIO(data))
        if reader.is_encrypted:
            # Empty user password
            reader.decrypt("")

        if len(reader.pages) == 0:
            raise ExtractionError("Document contains no pages")

        text_parts = []
        for page in reader.pages:
            page_text = page.extract_text()
            if page_text:
                text_parts.append(page_text)

        document = ExtractedDocument(
            plain_text="\n\n".join(text_parts),
            page_count=len(reader.pages),
            metadata=_normalize_metadata(reader),
        )
    except ExtractionError:
        raise
    except PdfReadError as e:
        logger.warning(f"PDF parsing failed: {e}")
        raise ExtractionError(f"Invalid PDF document: {e}") from e
    except Exception as e:
        # pypdf raises assorted errors on corrupt structures
        logger.warning(f"PDF extraction failed ({type(e).__name__}): {e}")
        raise ExtractionError(f"Could not extract text from PDF: {e}") from e

    logger.debug(
        f"Extracted {len(document.plain_text)} chars from {document.page_count} pages"
    )
    return document


async def extract_pdf_async(data: bytes) -> ExtractedDocument:
    """Run extract_pdf in the worker threadpool so the event loop stays free."""
    return await run_in_threadpool(extract_pdf, data)
