"""Structured extraction of named values from one conversation turn."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from calcagent.exceptions import ExtractionFailed
from calcagent.llm.client import ChatClient
from calcagent.models import ChatMessage

logger = logging.getLogger(__name__)

EXTRACTION_PROMPT = (
    "Analyze the conversation and extract:\n"
    "1. Values the user gave a name to (e.g. \"that is the discount\", "
    "\"remember it as X\", \"save that as Y\") → return them in namedValues\n"
    "2. The most recent numeric result calculated in this conversation, if any "
    "→ return it in lastCalculatedResult\n\n"
    "IMPORTANT: return ONLY values the user explicitly named or asked to be remembered.\n"
    "If the user named nothing, return an empty namedValues list."
)


class NamedValue(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str
    value: Decimal


class ExtractionResult(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    named_values: list[NamedValue] | None = None
    last_calculated_result: Decimal | None = None


@dataclass
class ExtractionOutcome:
    """Either an extraction result or the failure that prevented one."""

    result: ExtractionResult | None = None
    error: ExtractionFailed | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None and self.result is not None

    @classmethod
    def success(cls, result: ExtractionResult) -> ExtractionOutcome:
        return cls(result=result)

    @classmethod
    def failure(cls, error: ExtractionFailed) -> ExtractionOutcome:
        return cls(error=error)


class ExtractionClient(Protocol):
    async def extract(self, messages: list[ChatMessage]) -> ExtractionResult: ...


def _format_conversation(messages: list[ChatMessage]) -> str:
    lines = []
    for msg in messages:
        if msg.role == "system":
            continue
        if msg.content:
            lines.append(f"{msg.role}: {msg.content}")
        for tc in msg.tool_calls or []:
            func = tc.get("function", {})
            lines.append(f"{msg.role} called {func.get('name', '?')}({func.get('arguments', {})})")
    return "\n".join(lines)


def _strip_code_fences(text: str) -> str:
    text = text.strip()
    if text.startswith("```"):
        lines = text.split("\n")
        lines = [line for line in lines if not line.strip().startswith("```")]
        text = "\n".join(lines)
    return text


def parse_extraction(raw: str) -> ExtractionResult:
    """Validate a model reply against the extraction schema."""
    text = _strip_code_fences(raw)
    if not text:
        raise ExtractionFailed("extraction model returned an empty response")
    try:
        return ExtractionResult.model_validate_json(text)
    except ValidationError as e:
        raise ExtractionFailed(f"extraction response does not match schema: {e}") from e


class OllamaExtractionClient:
    """Runs one schema-constrained chat call per turn."""

    def __init__(self, client: ChatClient, model: str | None = None):
        self._client = client
        self._model = model
        self._schema = ExtractionResult.model_json_schema()

    async def extract(self, messages: list[ChatMessage]) -> ExtractionResult:
        conversation = _format_conversation(messages)
        prompt = [
            ChatMessage(role="system", content=EXTRACTION_PROMPT),
            ChatMessage(role="user", content=f"Conversation:\n{conversation}"),
        ]
        try:
            response = await self._client.chat_with_tools(
                prompt, model=self._model, think=False, format=self._schema
            )
        except httpx.HTTPError as e:
            raise ExtractionFailed(f"extraction request failed: {e!r}") from e
        except (KeyError, ValueError) as e:
            raise ExtractionFailed(f"malformed extraction response: {e!r}") from e

        result = parse_extraction(response.content)
        logger.debug(
            "Extracted %d named value(s), last result %s",
            len(result.named_values or []),
            result.last_calculated_result,
        )
        return result
