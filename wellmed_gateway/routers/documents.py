"""
Document analysis endpoint.

Accepts a single PDF upload, enforces type and size limits, and returns the
extracted text for the client to send back as chat document context.
"""
from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile
from loguru import logger

from wellmed_gateway.config import Settings, get_settings
from wellmed_gateway.exceptions import ValidationError
from wellmed_gateway.models import DocumentAnalysisResponse, ErrorResponse
from wellmed_gateway.services.document_extractor import extract_pdf_async

router = APIRouter(prefix="/api", tags=["documents"])

PDF_CONTENT_TYPE = "application/pdf"


async def read_pdf_upload(upload: Optional[UploadFile], max_bytes: int) -> bytes:
    """
    Validate an uploaded file and return its bytes.

    Args:
        upload: Multipart file field (None if it was not sent)
        max_bytes: Largest accepted file size

    Returns:
        File content

    Raises:
        ValidationError: Missing field (400), wrong type (415) or too large (413)
    """
    if upload is None:
        raise ValidationError("No PDF file uploaded")

    if upload.content_type != PDF_CONTENT_TYPE:
        raise ValidationError("Only PDF files are allowed", status_code=415)

    # Read one byte past the limit to detect oversize files without buffering them whole
    data = await upload.read(max_bytes + 1)
    if len(data) > max_bytes:
        raise ValidationError(
            f"File exceeds the upload limit of {max_bytes} bytes", status_code=413
        )
    return data


@router.post(
    "/analyze-pdf",
    response_model=DocumentAnalysisResponse,
    responses={
        400: {"model": ErrorResponse},
        413: {"model": ErrorResponse},
        415: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
    },
)
async def analyze_pdf(
    pdf: Optional[UploadFile] = File(default=None),
    settings: Settings = Depends(get_settings),
) -> DocumentAnalysisResponse:
    """
    Extract text, page count and metadata from an uploaded PDF.

    Args:
        pdf: Multipart file field named "pdf"

    Returns:
        DocumentAnalysisResponse with the extracted text

    Raises:
        ValidationError: Upload is missing, not a PDF, or too large
        ExtractionError: The bytes are not a readable PDF
    """
    data = await read_pdf_upload(pdf, settings.max_upload_bytes)
    logger.info(f"PDF analysis requested for {pdf.filename!r} ({len(data)} bytes)")

    document = await extract_pdf_async(data)

    logger.info(
        f"PDF analysis complete: {document.page_count} pages, "
        f"{len(document.plain_text)} chars"
    )
    return DocumentAnalysisResponse(
        text=document.plain_text,
        pages=document.page_count,
        info=document.metadata
    )
