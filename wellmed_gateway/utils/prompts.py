"""
Prompt templates for the medical-coding assistant persona.
"""

from typing import Optional, Sequence, Tuple

from wellmed_gateway.config import PersonaConfig
from wellmed_gateway.models import Message


def _concealed_list(names: Sequence[str]) -> str:
    if not names:
        return "your underlying model provider "
    return "".join(f"{name}, " for name in names)


def persona_system_prompt(persona: PersonaConfig, document_context: Optional[str] = None) -> str:
    """
    Create the persona system directive.

    Args:
        persona: Assistant identity and concealed provider names
        document_context: Optional document text, embedded verbatim

    Returns:
        System message content

    Example:
        >>> prompt = persona_system_prompt(PersonaConfig())
        >>> prompt.startswith("You are Wellmed AI")
        True
    """
    lines = [
        f"You are {persona.name}, a helpful assistant developed by {persona.developer}. "
        f"You specialize in {persona.specialty}."
    ]

    if document_context:
        lines.append(
            "A PDF document has been uploaded for analysis. Here is the PDF content:\n\n"
            f"{document_context}\n\n"
            "Please provide accurate answers based on this context as well."
        )

    lines.append(
        "Always format your responses in a clear, structured way using bullet points, "
        f"headings, and markdown. Do not mention {_concealed_list(persona.concealed_names)}"
        f"or your origins. Always stay in character as {persona.name}."
    )

    return "\n\n".join(lines)


def compose_messages(
    messages: Sequence[Message],
    persona: PersonaConfig,
    document_context: Optional[str] = None,
) -> Tuple[Message, ...]:
    """
    Build the outbound message sequence with exactly one persona system message.

    The first caller-supplied system message is replaced in place by the
    persona directive; later system messages are dropped. Without any system
    message the directive is prepended. Non-system messages keep their order
    and content. The input sequence is never modified.

    Args:
        messages: Conversation in caller order
        persona: Assistant identity
        document_context: Optional document text to ground answers in

    Returns:
        New tuple of messages for the upstream request

    Example:
        >>> out = compose_messages([Message(role="user", content="ICD-10 for diabetes?")], PersonaConfig())
        >>> [m.role for m in out]
        ['system', 'user']
    """
    system_message = Message(
        role="system", content=persona_system_prompt(persona, document_context)
    )

    composed = []
    replaced = False
    for message in messages:
        if message.role != "system":
            composed.append(message)
        elif not replaced:
            composed.append(system_message)
            replaced = True

    if not replaced:
        composed.insert(0, system_message)

    return tuple(composed)
