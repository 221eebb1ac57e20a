"""
Keyword topic gate for medical-coding conversations.
"""

from typing import Iterable, Sequence

from loguru import logger

from wellmed_gateway.models import ClassificationResult, Message


def latest_user_content(messages: Sequence[Message]) -> str:
    """
    Return the content of the most recent user message.

    Args:
        messages: Conversation in caller order

    Returns:
        Content of the last message with role "user", or "" if there is none
    """
    for message in reversed(messages):
        if message.role == "user":
            return message.content
    return ""


def classify_topic(messages: Sequence[Message], keywords: Iterable[str]) -> ClassificationResult:
    """
    Decide whether a conversation is about the configured domain.

    The latest user message is lowercased and checked for containment of each
    keyword in order; the first hit wins.

    Args:
        messages: Conversation in caller order
        keywords: Domain vocabulary (matched case-insensitively)

    Returns:
        ClassificationResult with the matched keyword, or allowed=False

    Example:
        >>> msgs = [Message(role="user", content="What is the CPT code for an office visit?")]
        >>> classify_topic(msgs, ["icd", "cpt"]).matched_keyword
        'cpt'
    """
    text = latest_user_content(messages).lower()

    for keyword in keywords:
        needle = keyword.lower()
        if needle and needle in text:
            logger.debug(f"Topic gate matched keyword '{needle}'")
            return ClassificationResult(allowed=True, matched_keyword=needle)

    logger.debug(f"Topic gate found no domain keyword in {len(text)} chars")
    return ClassificationResult(allowed=False)
