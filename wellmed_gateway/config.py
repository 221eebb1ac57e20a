"""
Configuration management using Pydantic Settings.

Settings are read once per process from environment variables (and an
optional ``.env`` file) and converted into an immutable GatewayPolicy that is
handed to the chat pipeline.
"""

from functools import lru_cache
from typing import List, Literal, Tuple

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_TOPIC_KEYWORDS = (
    "icd,cpt,drg,medical,diagnosis,procedure,modifiers,billing,claims,"
    "treatment,hospital,insurance,medication,chart,soap note,documentation,"
    "patient,record,hba1c,rbs"
)

DEFAULT_REJECTION_MESSAGE = (
    "This assistant only answers medical coding-related questions. "
    "Please ask something relevant to medical coding."
)


def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class PersonaConfig(BaseModel):
    """Assistant identity injected into every outbound system message."""

    model_config = ConfigDict(frozen=True)

    name: str = "Wellmed AI"
    developer: str = "Chakri"
    specialty: str = "medical coding and related topics"
    concealed_names: Tuple[str, ...] = ("OpenAI", "ChatGPT")


class GatewayPolicy(BaseModel):
    """
    Immutable request-pipeline configuration.

    Attributes:
        persona: Assistant identity and behavioral constraints
        topic_keywords: Ordered domain vocabulary; first match wins
        topic_gate_enabled: When False every conversation is forwarded
        rejection_mode: "hard" returns a 400 error, "soft" a scripted reply
        rejection_message: Text used for both rejection modes
        provider_tokens: Provider names rewritten to the persona name
    """

    model_config = ConfigDict(frozen=True)

    persona: PersonaConfig = Field(default_factory=PersonaConfig)
    topic_keywords: Tuple[str, ...] = tuple(_split_csv(DEFAULT_TOPIC_KEYWORDS))
    topic_gate_enabled: bool = True
    rejection_mode: Literal["hard", "soft"] = "hard"
    rejection_message: str = DEFAULT_REJECTION_MESSAGE
    provider_tokens: Tuple[str, ...] = ("OpenAI", "ChatGPT", "GPT-4", "GPT")

    @model_validator(mode="after")
    def check_persona_not_sanitized(self) -> "GatewayPolicy":
        """
        Sanitizing must be idempotent, so no provider token may appear in the
        persona name or be completed by text next to it after a replacement.
        """
        name = self.persona.name.lower()
        for token in self.provider_tokens:
            lowered = token.lower()
            if lowered and lowered in name:
                raise ValueError(
                    f"persona name {self.persona.name!r} contains provider token {token!r}"
                )
            for size in range(1, len(lowered)):
                # Token head at the end of the name, or token tail at its start
                if name.endswith(lowered[:size]) or name.startswith(lowered[-size:]):
                    raise ValueError(
                        f"provider token {token!r} overlaps the edge of persona name "
                        f"{self.persona.name!r}"
                    )
        return self


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Application
    app_name: str = "Wellmed AI Gateway"
    environment: str = Field(
        default="development",
        validation_alias=AliasChoices("ENVIRONMENT", "NODE_ENV"),
        description="Environment label reported by the health probe",
    )
    host: str = Field(default="0.0.0.0", description="API host")
    port: int = Field(default=5000, ge=1, le=65535, description="API port")
    cors_origins: str = Field(
        default="https://wellmade-ai.vercel.app",
        description="Allowed CORS origins (comma-separated, '*' for any)",
    )

    # Upstream
    openai_api_key: SecretStr = Field(default=SecretStr(""), description="OpenAI API key")
    openai_base_url: str = Field(default="https://api.openai.com/v1")
    upstream_timeout: float = Field(default=60.0, gt=0, description="Upstream timeout (s)")
    default_model: str = "gpt-4o-mini"
    default_max_tokens: int = Field(default=1000, ge=1)
    default_temperature: float = Field(default=0.7, ge=0.0, le=2.0)

    # Uploads
    max_upload_bytes: int = Field(default=10 * 1024 * 1024, ge=1)

    # Persona and topic policy
    persona_name: str = "Wellmed AI"
    persona_developer: str = "Chakri"
    persona_specialty: str = "medical coding and related topics"
    topic_keywords: str = Field(
        default=DEFAULT_TOPIC_KEYWORDS,
        description="Domain keywords (comma-separated, matched case-insensitively)",
    )
    topic_gate_enabled: bool = True
    rejection_mode: Literal["hard", "soft"] = "hard"
    rejection_message: str = DEFAULT_REJECTION_MESSAGE
    provider_tokens: str = Field(
        default="OpenAI,ChatGPT,GPT-4,GPT",
        description="Provider names rewritten in responses (comma-separated)",
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_file_enabled: bool = Field(default=True, description="Enable file logging")
    log_file_path: str = Field(default="logs/gateway_{time}.log")

    @property
    def cors_origins_list(self) -> List[str]:
        if self.cors_origins.strip() == "*":
            return ["*"]
        return _split_csv(self.cors_origins)

    @property
    def topic_keywords_list(self) -> List[str]:
        return [keyword.lower() for keyword in _split_csv(self.topic_keywords)]

    @property
    def provider_tokens_list(self) -> List[str]:
        return _split_csv(self.provider_tokens)

    def build_policy(self) -> GatewayPolicy:
        """Freeze the persona and topic settings into a GatewayPolicy."""
        tokens = tuple(self.provider_tokens_list)
        persona = PersonaConfig(
            name=self.persona_name,
            developer=self.persona_developer,
            specialty=self.persona_specialty,
            concealed_names=tokens,
        )
        return GatewayPolicy(
            persona=persona,
            topic_keywords=tuple(self.topic_keywords_list),
            topic_gate_enabled=self.topic_gate_enabled,
            rejection_mode=self.rejection_mode,
            rejection_message=self.rejection_message,
            provider_tokens=tokens,
        )


@lru_cache()
def get_settings() -> Settings:
    """Return the process-wide settings (cached)."""
    return Settings()
