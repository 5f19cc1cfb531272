# errors.py
# Exception taxonomy for prompt-scribe.
#
# Every failure the library raises derives from ScribeError. Each message
# carries a short hint so a caller reading a traceback knows where to look.


class ScribeError(Exception):
    """Base class for every error raised by prompt-scribe."""

    hint: str = ""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"{message}. Hint: {self.hint}" if self.hint else message)


# ---------------------------------------------------------------------------
# Caller-side errors. Surfaced immediately, never retried.
# ---------------------------------------------------------------------------


class ValidationError(ScribeError):
    """Raised when caller input is empty or malformed."""

    hint = "pass a non-empty request string"


class ConfigurationError(ScribeError):
    """Raised when a required credential or setting is missing or invalid."""

    hint = "check required env vars (for example OPENROUTER_API_KEY)"


# ---------------------------------------------------------------------------
# Model-side errors. Abort the whole multi-turn attempt.
# ---------------------------------------------------------------------------


class ProviderError(ScribeError):
    """Raised when the model call fails: network, quota, malformed response."""

    hint = "verify API key, model name, network, and rate limits"


class ProtocolViolation(ScribeError):
    """Raised when model output breaks the structured or tool-call contract."""

    hint = "the provider returned an unexpected format or rejected the payload"


class ToolNotFoundError(ProtocolViolation):
    """Raised when the model requests a tool absent from the registry."""

    def __init__(self, tool_name: str) -> None:
        self.tool_name = tool_name
        super().__init__(f"Tool '{tool_name}' is not in the registry")


class RoundLimitExceeded(ProtocolViolation):
    """Raised when the model keeps requesting tools past the round limit."""

    def __init__(self, max_rounds: int) -> None:
        self.max_rounds = max_rounds
        super().__init__(f"Model was still requesting tools after {max_rounds} round(s)")


class ToolFailure(ScribeError):
    """Raised when a tool's execution fails. Fatal to the attempt."""

    def __init__(self, tool_name: str, reason: str) -> None:
        self.tool_name = tool_name
        self.reason = reason
        super().__init__(f"Tool '{tool_name}' failed: {reason}")


# ---------------------------------------------------------------------------
# Storage errors.
# ---------------------------------------------------------------------------


class StorageError(ScribeError):
    """Raised when an artifact cannot be written or removed."""

    hint = "check that the cache directory is writable"


class ArtifactUnavailable(StorageError):
    """Raised when an artifact is missing or unreadable. Recoverable: a cache miss."""

    hint = ""
