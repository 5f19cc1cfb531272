# registry.py
# Tool contract and dispatch.
#
# A Tool declares a name, a description and a pydantic argument model; its
# definition is derived from that model alone. The orchestrator never calls
# tools directly: it hands ToolCalls to ToolRegistry.dispatch.

import asyncio
import json
from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import ClassVar

from pydantic import BaseModel, ValidationError as PydanticValidationError

from prompt_scribe.errors import (
    ProtocolViolation,
    ScribeError,
    ToolFailure,
    ToolNotFoundError,
    ValidationError,
)
from prompt_scribe.models import ToolCall, ToolDefinition, ToolResult
from prompt_scribe.observability import get_logger

logger = get_logger(__name__)


class Tool(ABC):
    """A named, schema-described capability the model may invoke."""

    name: ClassVar[str]
    description: ClassVar[str]
    args_model: ClassVar[type[BaseModel]]

    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name=self.name,
            description=self.description,
            parameters=self.args_model.model_json_schema(),
        )

    def parse_arguments(self, arguments: dict) -> BaseModel:
        """Validate raw model-supplied arguments against args_model."""
        try:
            return self.args_model.model_validate(arguments)
        except (PydanticValidationError, ValidationError) as exc:
            raise ProtocolViolation(
                f"Arguments for tool '{self.name}' do not match its schema: {exc}"
            ) from exc

    async def call(self, arguments: dict) -> str:
        return await self.run(self.parse_arguments(arguments))

    @abstractmethod
    async def run(self, args: BaseModel) -> str:
        """Execute with validated arguments. Raise ToolFailure on failure."""


class ToolRegistry:
    """
    Fixed name -> Tool mapping, resolved once at construction.

    Dispatch is by exact name. An unknown name is the model's contract
    violation and raises ToolNotFoundError; it is never retried.
    """

    def __init__(self, tools: Iterable[Tool] = (), tool_timeout: float | None = None) -> None:
        self._tools: dict[str, Tool] = {}
        self._tool_timeout = tool_timeout
        for tool in tools:
            if tool.name in self._tools:
                raise ValueError(f"Duplicate tool name: {tool.name!r}")
            self._tools[tool.name] = tool

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    @property
    def names(self) -> list[str]:
        return list(self._tools)

    def get(self, name: str) -> Tool:
        try:
            return self._tools[name]
        except KeyError:
            raise ToolNotFoundError(name) from None

    def definitions(self) -> list[ToolDefinition]:
        return [tool.definition() for tool in self._tools.values()]

    async def dispatch(self, call: ToolCall) -> ToolResult:
        """Execute `call` and return its result linked by id and call_id."""
        tool = self.get(call.name)
        args = tool.parse_arguments(call.arguments)
        serialized = json.dumps(call.arguments, ensure_ascii=False)

        try:
            output = await asyncio.wait_for(tool.run(args), timeout=self._tool_timeout)
        except ScribeError as exc:
            logger.error("tool_failed", tool=call.name, args=serialized, error=exc.message)
            raise
        except asyncio.TimeoutError as exc:
            logger.error("tool_failed", tool=call.name, args=serialized, error="timeout")
            raise ToolFailure(call.name, f"timed out after {self._tool_timeout}s") from exc
        except Exception as exc:
            logger.error("tool_failed", tool=call.name, args=serialized, error=str(exc))
            raise ToolFailure(call.name, str(exc)) from exc

        logger.info("tool_executed", tool=call.name, args=serialized, result=output)
        return ToolResult(id=call.id, call_id=call.call_id, output=output)
