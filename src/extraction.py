"""Structured extraction: parse model text into a schema, with one repair pass."""

import json
import logging
import re
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from src.gateway import ModelGateway
from src.providers.base import ProviderError

logger = logging.getLogger(__name__)

SchemaT = TypeVar("SchemaT", bound=BaseModel)

_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.S)


class ExtractionError(Exception):
    """Raised when model text cannot be turned into the requested schema."""


def format_instructions(schema: type[BaseModel]) -> str:
    """Describe the JSON shape a model must answer with."""
    schema_json = json.dumps(schema.model_json_schema(), indent=2)
    return (
        "The output should be a markdown code snippet formatted in the following schema, "
        'including the leading and trailing "```json" and "```":\n\n'
        f"```json\n{schema_json}\n```"
    )


def _last_fenced_block(text: str) -> str | None:
    matches = list(_FENCE_RE.finditer(text))
    if not matches:
        return None
    return matches[-1].group(1).strip()


def _first_balanced_object(text: str) -> str | None:
    """Return the first balanced {...} span, ignoring braces inside strings."""
    depth = 0
    start: int | None = None
    in_string = False
    escaped = False
    for i, ch in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"' and depth > 0:
            in_string = True
        elif ch == "{":
            if depth == 0:
                start = i
            depth += 1
        elif ch == "}" and depth > 0:
            depth -= 1
            if depth == 0 and start is not None:
                return text[start:i + 1]
    return None


def _load_json_object(text: str) -> Any:
    candidates: list[str] = []
    fenced = _last_fenced_block(text)
    if fenced:
        candidates.append(fenced)
    balanced = _first_balanced_object(text)
    if balanced:
        candidates.append(balanced)
    candidates.append(text.strip())

    last_error: Exception | None = None
    for candidate in candidates:
        try:
            return json.loads(candidate)
        except json.JSONDecodeError as exc:
            last_error = exc
    raise ExtractionError(f"No JSON object found in model output: {last_error}")


def parse(schema: type[SchemaT], text: str) -> SchemaT:
    """Parse text into schema. Pure; raises ExtractionError on any mismatch."""
    if not text or not text.strip():
        raise ExtractionError("Empty model output")
    data = _load_json_object(text)
    try:
        return schema.model_validate(data)
    except ValidationError as exc:
        raise ExtractionError(f"Output does not match {schema.__name__}: {exc}") from exc


class StructuredExtractor:
    """Parse, then at most one repair round-trip through the gateway."""

    def __init__(self, gateway: ModelGateway, repair_prompt: str) -> None:
        self._gateway = gateway
        self._repair_prompt = repair_prompt

    async def extract(self, schema: type[SchemaT], text: str, model_id: str) -> SchemaT:
        """Return text parsed as schema, asking model_id to reformat it once if needed.

        Raises:
            ExtractionError: If both the first parse and the repaired parse fail.
        """
        try:
            return parse(schema, text)
        except ExtractionError as exc:
            logger.warning("Failed to parse %s output from %s, attempting repair: %s", schema.__name__, model_id, exc)
            first_error = exc

        prompt = self._repair_prompt.format(
            instructions=format_instructions(schema),
            completion=text,
            error=str(first_error),
        )
        repaired = await self._gateway.invoke(model_id, prompt)
        if isinstance(repaired, ProviderError):
            raise ExtractionError(f"Repair call failed: {repaired}") from repaired

        result = parse(schema, repaired.content)
        logger.info("Repaired %s output from %s", schema.__name__, model_id)
        return result
