# models.py
# Data contracts for prompt-scribe.
# No business logic lives here: pure schema and validation.

from typing import Annotated, Any, Literal, NewType, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from prompt_scribe.errors import ValidationError

ScopeId = NewType("ScopeId", int)


# ---------------------------------------------------------------------------
# Request and result values
# ---------------------------------------------------------------------------


class Intent(BaseModel):
    """Validated raw request text. The text is kept exactly as given."""

    model_config = ConfigDict(frozen=True)

    text: str = Field(
        ...,
        description="The raw user intent. Analyze this to extract technical constraints.",
    )

    @field_validator("text")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValidationError("Request is empty")
        return value


class Specification(BaseModel):
    """Goal and constraints derived from an Intent."""

    goal: str = Field(
        ..., description="The primary goal derived from the user's intent. Concise and clear."
    )
    constraints: str = Field(
        ...,
        description=(
            "A list of technical constraints, risks, and negative constraints. "
            "Format as a bulleted string."
        ),
    )


class Artifact(BaseModel):
    """The final deliverable: a system prompt and who signed it."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    system_prompt: str
    signed_by: str


class Webquery(BaseModel):
    query: str = Field(..., description="A web search query.")


class ReviewRequest(BaseModel):
    """Arguments for the prompt reviewer: the draft intent and its specification."""

    intent: Intent
    spec: Specification


class Resolution(BaseModel):
    """Outcome of a cache-aside lookup."""

    artifact: Artifact
    source: Literal["cache", "computed"]
    storage_error: str | None = Field(
        default=None, description="Set when a computed artifact could not be persisted."
    )


# ---------------------------------------------------------------------------
# Conversation messages
# ---------------------------------------------------------------------------


class ToolCall(BaseModel):
    """A tool invocation requested by the model inside an assistant turn."""

    id: str
    call_id: str | None = None
    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)


class ToolResult(BaseModel):
    """Output of executing a ToolCall, linked back by id and call_id."""

    id: str
    call_id: str | None = None
    output: str


class UserMessage(BaseModel):
    role: Literal["user"] = "user"
    content: str


class AssistantMessage(BaseModel):
    role: Literal["assistant"] = "assistant"
    content: str = ""
    tool_calls: list[ToolCall] = Field(default_factory=list)


class ToolResultMessage(BaseModel):
    role: Literal["tool"] = "tool"
    id: str
    call_id: str | None = None
    content: str

    @classmethod
    def from_result(cls, result: ToolResult) -> "ToolResultMessage":
        return cls(id=result.id, call_id=result.call_id, content=result.output)


Message = Annotated[
    Union[UserMessage, AssistantMessage, ToolResultMessage],
    Field(discriminator="role"),
]


# ---------------------------------------------------------------------------
# Provider stream events
# ---------------------------------------------------------------------------


class TextDelta(BaseModel):
    text: str


class ReasoningDelta(BaseModel):
    text: str


class ToolCallRequest(BaseModel):
    call: ToolCall


class StreamFailure(BaseModel):
    """Terminal error reported in-band by the provider."""

    message: str


class UsageReport(BaseModel):
    """Token accounting. The loop ignores it."""

    prompt_tokens: int = 0
    completion_tokens: int = 0


StreamEvent = Union[TextDelta, ReasoningDelta, ToolCallRequest, StreamFailure, UsageReport]


# ---------------------------------------------------------------------------
# Tool definitions exposed to the model
# ---------------------------------------------------------------------------


class ToolDefinition(BaseModel):
    name: str
    description: str
    parameters: dict[str, Any]
