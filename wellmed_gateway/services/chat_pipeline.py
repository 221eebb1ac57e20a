"""
Chat request pipeline: topic gate, prompt composition, upstream call, sanitization.

Each call to ChatPipeline.run is independent. The pipeline only reads its
GatewayPolicy and shares nothing writable between requests.
"""

import time
import uuid
from typing import Any, Dict

from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from wellmed_gateway.config import GatewayPolicy
from wellmed_gateway.exceptions import ClassificationRejection, TransportError
from wellmed_gateway.models import (
    ChatRequest,
    CompletionChoice,
    CompletionMessage,
    CompletionResponse,
    CompletionUsage,
)
from wellmed_gateway.services.openai_client import OpenAIClient
from wellmed_gateway.utils.prompts import compose_messages
from wellmed_gateway.utils.sanitizer import sanitize_completion
from wellmed_gateway.utils.topic_gate import classify_topic


def scripted_completion(content: str, model: str) -> CompletionResponse:
    """
    Build an assistant reply in the same envelope as a real completion.

    Args:
        content: Assistant message text
        model: Model identifier reported in the envelope

    Returns:
        CompletionResponse with one "stop" choice and zero usage
    """
    return CompletionResponse(
        id=f"chatcmpl-gateway-{uuid.uuid4().hex}",
        object="chat.completion",
        created=int(time.time()),
        model=model,
        choices=[
            CompletionChoice(
                index=0,
                message=CompletionMessage(role="assistant", content=content),
                finish_reason="stop",
            )
        ],
        usage=CompletionUsage(prompt_tokens=0, completion_tokens=0, total_tokens=0),
    )


class ChatPipeline:
    """
    Runs one chat request from classification to sanitized response.

    Attributes:
        policy: Immutable persona and topic configuration
        client: Shared upstream client
        default_model: Model used when the request names none
        default_max_tokens: Token limit used when the request sets none
        default_temperature: Temperature used when the request sets none
    """

    def __init__(
        self,
        policy: GatewayPolicy,
        client: OpenAIClient,
        default_model: str = "gpt-4o-mini",
        default_max_tokens: int = 1000,
        default_temperature: float = 0.7,
    ):
        self.policy = policy
        self.client = client
        self.default_model = default_model
        self.default_max_tokens = default_max_tokens
        self.default_temperature = default_temperature

    async def run(self, request: ChatRequest) -> Dict[str, Any]:
        """
        Process a chat request.

        Args:
            request: Validated chat request

        Returns:
            Completion payload in the provider's envelope, either sanitized
            upstream output or a scripted soft rejection

        Raises:
            ClassificationRejection: Off-topic conversation in hard mode
            UpstreamError: Non-2xx response from the completion service
            TransportError: No usable response from the completion service
        """
        model = request.model or self.default_model

        if self.policy.topic_gate_enabled:
            result = classify_topic(request.messages, self.policy.topic_keywords)
            if not result.allowed:
                logger.info(f"Off-topic request rejected ({self.policy.rejection_mode} mode)")
                if self.policy.rejection_mode == "soft":
                    return scripted_completion(self.policy.rejection_message, model).model_dump()
                raise ClassificationRejection(self.policy.rejection_message)
            logger.info(f"Request accepted by topic gate: keyword='{result.matched_keyword}'")
        else:
            logger.debug("Topic gate disabled, forwarding request")

        outbound = compose_messages(
            request.messages, self.policy.persona, request.document_context
        )
        logger.debug(
            f"Composed {len(outbound)} messages "
            f"(document context: {len(request.document_context or '')} chars)"
        )

        raw = await self.client.chat_completions(
            model=model,
            messages=[message.model_dump() for message in outbound],
            max_tokens=request.max_tokens or self.default_max_tokens,
            temperature=(
                request.temperature
                if request.temperature is not None
                else self.default_temperature
            ),
        )

        try:
            CompletionResponse.model_validate(raw)
        except PydanticValidationError as e:
            logger.error(f"Upstream completion has an unexpected shape: {e}")
            raise TransportError("Upstream returned an unexpected completion payload") from e

        return sanitize_completion(raw, self.policy.provider_tokens, self.policy.persona.name)
