"""
FastAPI dependencies shared by the routers.

Tests replace these through ``app.dependency_overrides``.
"""

from functools import lru_cache

from fastapi import Depends, Request

from wellmed_gateway.config import GatewayPolicy, Settings, get_settings
from wellmed_gateway.services.chat_pipeline import ChatPipeline
from wellmed_gateway.services.openai_client import OpenAIClient


@lru_cache()
def get_policy() -> GatewayPolicy:
    """Return the process-wide persona and topic policy, built once."""
    return get_settings().build_policy()


def get_openai_client(request: Request) -> OpenAIClient:
    """Return the upstream client opened by the application lifespan."""
    return request.app.state.openai_client


def get_chat_pipeline(
    settings: Settings = Depends(get_settings),
    policy: GatewayPolicy = Depends(get_policy),
    client: OpenAIClient = Depends(get_openai_client),
) -> ChatPipeline:
    return ChatPipeline(
        policy=policy,
        client=client,
        default_model=settings.default_model,
        default_max_tokens=settings.default_max_tokens,
        default_temperature=settings.default_temperature,
    )
