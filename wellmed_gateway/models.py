"""
Pydantic models for request/response validation.

Defines schemas for:
- Message / ChatRequest: Input for the chat completion proxy
- ClassificationResult: Topic gate decision
- ExtractedDocument / DocumentAnalysisResponse: PDF extraction output
- HealthCheckResponse / ErrorResponse: Health probe and error envelope
"""

from typing import Dict, List, Literal, Optional, Tuple, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

Role = Literal["system", "user", "assistant"]


class Message(BaseModel):
    """
    A single chat message.

    Messages are frozen so the pipeline can only build new sequences,
    never edit the caller's messages in place.
    """

    model_config = ConfigDict(frozen=True)

    role: Role = Field(..., description="Author of the message")
    content: str = Field(..., description="Message text")


class ChatRequest(BaseModel):
    """
    Request schema for the chat completion proxy.

    Attributes:
        messages: Conversation so far, in caller order
        document_context: Optional text extracted from an uploaded PDF
        model: Upstream model identifier (defaults to the configured model)
        max_tokens: Maximum tokens to generate
        temperature: Sampling temperature (0.0-2.0)
    """

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "messages": [
                    {"role": "user", "content": "What is the CPT code for an office visit?"}
                ],
                "documentContext": None,
                "model": "gpt-4o-mini",
                "maxTokens": 1000,
                "temperature": 0.7,
            }
        },
    )

    messages: Tuple[Message, ...] = Field(..., description="Conversation messages in order")
    document_context: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("documentContext", "pdfContent", "document_context"),
        description="Plain text of a previously analyzed document",
    )
    model: Optional[str] = Field(default=None, description="Upstream model identifier")
    max_tokens: Optional[int] = Field(
        default=None,
        ge=1,
        validation_alias=AliasChoices("maxTokens", "max_tokens"),
        description="Maximum tokens to generate",
    )
    temperature: Optional[float] = Field(
        default=None, ge=0.0, le=2.0, description="Sampling temperature for generation"
    )


class ClassificationResult(BaseModel):
    """Outcome of the topic gate."""

    model_config = ConfigDict(frozen=True)

    allowed: bool
    matched_keyword: Optional[str] = None


class ExtractedDocument(BaseModel):
    """Plain text, page count and metadata pulled from a PDF."""

    plain_text: str
    page_count: int = Field(..., ge=0)
    metadata: Dict[str, Union[str, int, float]] = Field(default_factory=dict)


class DocumentAnalysisResponse(BaseModel):
    """Response schema for the PDF analysis endpoint."""

    success: bool = True
    text: str = Field(..., description="Extracted plain text")
    pages: int = Field(..., description="Number of pages", ge=0)
    info: Dict[str, Union[str, int, float]] = Field(
        default_factory=dict, description="Document metadata"
    )

    class Config:
        """Pydantic model configuration with example."""

        json_schema_extra = {
            "example": {
                "success": True,
                "text": "Encounter summary: 99213 established patient office visit...",
                "pages": 2,
                "info": {"Producer": "pypdf", "Title": "Superbill"},
            }
        }


class HealthCheckResponse(BaseModel):
    """
    Health check response schema.

    Attributes:
        status: Always "OK" while the process is serving requests
        message: Human-readable status line
        environment: Deployment environment label
    """

    status: str = Field(..., description="Overall health status")
    message: str = Field(..., description="Status message")
    environment: str = Field(..., description="Environment label")

    class Config:
        """Pydantic model configuration with example."""

        json_schema_extra = {
            "example": {
                "status": "OK",
                "message": "Server is running",
                "environment": "development",
            }
        }


class ErrorResponse(BaseModel):
    """Error envelope shared by every failing endpoint."""

    error: str = Field(..., description="Error category")
    details: str = Field(..., description="Human-readable explanation")


class CompletionMessage(BaseModel):
    model_config = ConfigDict(extra="allow")

    role: str = "assistant"
    content: Optional[str] = None


class CompletionChoice(BaseModel):
    model_config = ConfigDict(extra="allow")

    index: int = 0
    message: CompletionMessage
    finish_reason: Optional[str] = None


class CompletionUsage(BaseModel):
    model_config = ConfigDict(extra="allow")

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class CompletionResponse(BaseModel):
    """
    Chat completion envelope, in the provider's shape.

    Used to check the shape of upstream payloads and to build scripted
    replies; unknown provider fields are accepted.
    """

    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    object: str = "chat.completion"
    created: Optional[int] = None
    model: Optional[str] = None
    choices: List[CompletionChoice] = Field(default_factory=list)
    usage: Optional[CompletionUsage] = Field(default_factory=CompletionUsage)
