"""
OpenAI HTTP client wrapper for the chat completions API.
"""

from typing import Any, Dict, List, Optional

import httpx
from loguru import logger

from wellmed_gateway.exceptions import TransportError, UpstreamError


def _provider_error_message(response: httpx.Response) -> str:
    """Pull ``error.message`` out of a provider error body, if there is one."""
    try:
        body = response.json()
    except ValueError:
        return response.text.strip() or "Unknown error"

    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str) and error:
            return error
    return "Unknown error"


class OpenAIClient:
    """
    HTTP client for communicating with the OpenAI chat completions API.

    One instance is shared by all requests; it holds no per-request state.
    Each call is a single attempt: there is no retry or backoff.

    Attributes:
        base_url: Base URL of the API (e.g. https://api.openai.com/v1)
        timeout: Request timeout in seconds
        client: Async HTTP client instance
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.openai.com/v1",
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the OpenAI client.

        Args:
            api_key: Bearer credential, sent only in the Authorization header
            base_url: Base URL of the API
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used to stub the API in tests)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.client = httpx.AsyncClient(
            timeout=timeout,
            transport=transport,
            headers={"Authorization": f"Bearer {api_key}"},
        )
        if not api_key:
            logger.warning("OPENAI_API_KEY is not set; chat requests will be rejected upstream")
        logger.info(f"Initialized OpenAIClient with base_url={self.base_url}, timeout={timeout}s")

    async def close(self):
        """Close the HTTP client connection."""
        await self.client.aclose()
        logger.debug("OpenAIClient connection closed")

    async def chat_completions(
        self,
        model: str,
        messages: List[Dict[str, str]],
        max_tokens: int = 1000,
        temperature: float = 0.7,
        **kwargs
    ) -> Dict[str, Any]:
        """
        Call the chat completions API once.

        Args:
            model: Model name (e.g., "gpt-4o-mini")
            messages: List of message dicts with 'role' and 'content' keys
            max_tokens: Maximum tokens to generate
            temperature: Sampling temperature (0.0 to 2.0)
            **kwargs: Additional parameters for the API

        Returns:
            API response with 'choices', 'usage', etc.

        Raises:
            UpstreamError: If the API answers with a non-2xx status
            TransportError: If no usable response was received

        Example:
            >>> client = OpenAIClient(api_key="sk-...")
            >>> messages = [
            ...     {"role": "system", "content": "You are Wellmed AI."},
            ...     {"role": "user", "content": "What is CPT 99213?"}
            ... ]
            >>> result = await client.chat_completions(model="gpt-4o-mini", messages=messages)
        """
        request_data = {
            "model": model,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
            **kwargs
        }

        logger.debug(
            f"Calling chat completions API: model={model}, "
            f"messages={len(messages)}, max_tokens={max_tokens}"
        )

        try:
            response = await self.client.post(
                f"{self.base_url}/chat/completions",
                json=request_data
            )
        except httpx.TimeoutException as e:
            logger.error(f"Chat completions API timed out after {self.timeout}s: {e}")
            raise TransportError(f"Upstream request timed out after {self.timeout}s") from e
        except httpx.HTTPError as e:
            logger.error(f"Chat completions API failed: {e}")
            raise TransportError(f"Upstream request failed: {e}") from e

        if not response.is_success:
            message = _provider_error_message(response)
            logger.error(
                f"Chat completions API HTTP error: {response.status_code} - {message}"
            )
            raise UpstreamError(response.status_code, message)

        try:
            result = response.json()
        except ValueError as e:
            logger.error(f"Chat completions API returned invalid JSON: {e}")
            raise TransportError("Upstream returned an unreadable response") from e

        if not isinstance(result, dict):
            logger.error("Chat completions API returned a non-object JSON body")
            raise TransportError("Upstream returned an unreadable response")

        tokens_used = (result.get("usage") or {}).get("total_tokens", 0)
        logger.info(f"Chat completions API success: {tokens_used} tokens used")

        return result
