"""
Chat completion proxy endpoint.

Gates conversations to medical coding, injects the persona, forwards to the
completion service and returns the sanitized completion.
"""
from typing import Any, Dict

from fastapi import APIRouter, Depends
from loguru import logger

from wellmed_gateway.dependencies import get_chat_pipeline
from wellmed_gateway.models import ChatRequest, ErrorResponse
from wellmed_gateway.services.chat_pipeline import ChatPipeline

router = APIRouter(prefix="/api", tags=["chat"])


@router.post(
    "/chat",
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def chat(
    request: ChatRequest,
    pipeline: ChatPipeline = Depends(get_chat_pipeline),
) -> Dict[str, Any]:
    """
    Answer a medical-coding conversation.

    Args:
        request: ChatRequest with messages, optional document context and
                 generation parameters

    Returns:
        Completion payload in the provider's envelope (choices, usage, model)

    Raises:
        ClassificationRejection: Off-topic conversation (hard mode)
        UpstreamError: Completion service returned an error status
        TransportError: Completion service could not be reached
    """
    logger.info(
        f"Chat requested: {len(request.messages)} messages, "
        f"document context={'yes' if request.document_context else 'no'}"
    )
    return await pipeline.run(request)
