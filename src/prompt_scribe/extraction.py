# extraction.py
# Structured extraction: turn free model text into a pydantic model.
#
# The provider boundary only streams text, so extraction is one extra
# tool-less round with a schema-bearing system prompt, followed by strict
# parsing. Anything that does not parse is a ProtocolViolation.

import json
import re
from typing import TypeVar

from pydantic import BaseModel, ValidationError as PydanticValidationError

from prompt_scribe.errors import ProtocolViolation, ValidationError
from prompt_scribe.orchestrator import Orchestrator
from prompt_scribe.prompts import EXTRACTOR_SYSTEM_PROMPT
from prompt_scribe.provider import CompletionProvider

T = TypeVar("T", bound=BaseModel)


def parse_json_object(text: str, model: type[T]) -> T:
    """
    Find the JSON object in `text` and validate it as `model`.

    Markdown code fences are tolerated. Raises ProtocolViolation when no
    object is found, the JSON is malformed, or it fails validation.
    """
    fenced = re.search(r"```(?:json)?\s*(\{.*\})\s*```", text, re.DOTALL)
    if fenced:
        raw = fenced.group(1)
    else:
        match = re.search(r"\{.*\}", text, re.DOTALL)
        if not match:
            raise ProtocolViolation(f"No JSON object found in model output:\n{text}")
        raw = match.group(0)

    try:
        # strict=False allows literal newlines inside strings
        data = json.loads(raw, strict=False)
    except json.JSONDecodeError as exc:
        raise ProtocolViolation(f"Model JSON is malformed: {exc}\nPayload: {raw}") from exc

    try:
        return model.model_validate(data)
    except (PydanticValidationError, ValidationError) as exc:
        raise ProtocolViolation(
            f"Model JSON does not match {model.__name__}: {exc}"
        ) from exc


async def extract(
    provider: CompletionProvider,
    model: type[T],
    text: str,
    round_timeout: float | None = None,
) -> T:
    """Ask the model to restate `text` as a `model` instance."""
    schema = json.dumps(model.model_json_schema(), indent=2)
    extractor = Orchestrator(
        provider,
        system=EXTRACTOR_SYSTEM_PROMPT.format(schema=schema),
        max_rounds=1,
        round_timeout=round_timeout,
    )
    return parse_json_object(await extractor.run(text), model)
