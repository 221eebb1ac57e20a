"""
Response sanitization utilities.

Rewrites provider names in completion text to the gateway persona name:
- build_provider_pattern: Compile the case-insensitive token alternation
- sanitize_text: Replace every token occurrence in a string
- sanitize_completion: Rewrite the primary choice of a completion payload
"""

import copy
import re
from functools import lru_cache
from typing import Any, Dict, Optional, Tuple

from loguru import logger


@lru_cache(maxsize=16)
def build_provider_pattern(tokens: Tuple[str, ...]) -> Optional[re.Pattern]:
    """
    Compile a case-insensitive alternation of provider tokens.

    Longer tokens are tried first so "GPT-4" is replaced as a whole rather
    than leaving a dangling "-4" behind "GPT".

    Args:
        tokens: Provider-identifying strings

    Returns:
        Compiled pattern, or None when no tokens are configured
    """
    cleaned = sorted({t for t in tokens if t}, key=len, reverse=True)
    if not cleaned:
        return None
    return re.compile("|".join(re.escape(t) for t in cleaned), re.IGNORECASE)


def sanitize_text(text: str, tokens: Tuple[str, ...], replacement: str) -> Tuple[str, int]:
    """
    Replace every case-insensitive occurrence of any token with the replacement.

    Args:
        text: Completion content
        tokens: Provider-identifying strings
        replacement: Persona name substituted for each occurrence

    Returns:
        Tuple of (sanitized text, number of replacements)

    Example:
        >>> sanitize_text("As ChatGPT, the code is 99213", ("ChatGPT", "GPT"), "Wellmed AI")
        ('As Wellmed AI, the code is 99213', 1)
    """
    pattern = build_provider_pattern(tuple(tokens))
    if pattern is None:
        return text, 0
    return pattern.subn(replacement, text)


def sanitize_completion(
    payload: Dict[str, Any], tokens: Tuple[str, ...], replacement: str
) -> Dict[str, Any]:
    """
    Rewrite provider names in the primary choice's message content.

    Only the text of choice 0 changes; usage counters, finish reasons and
    all other provider fields are carried over untouched. The input payload
    is not modified.

    Args:
        payload: Successful upstream completion, in the provider's JSON shape
        tokens: Provider-identifying strings
        replacement: Persona name

    Returns:
        A copy of the payload with sanitized primary content
    """
    sanitized = copy.deepcopy(payload)
    choices = sanitized.get("choices") or []
    if not choices:
        return sanitized

    message = choices[0].get("message") or {}
    content = message.get("content")
    if not isinstance(content, str) or not content:
        return sanitized

    sanitized_content, count = sanitize_text(content, tokens, replacement)
    message["content"] = sanitized_content
    if count:
        logger.info(f"Sanitized {count} provider mention(s) in completion")
    return sanitized
