from __future__ import annotations

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from calcagent.config import Settings
from calcagent.llm.client import OllamaClient
from calcagent.memory.extraction import ExtractionResult, NamedValue
from calcagent.memory.facts import FactStore
from calcagent.models import ChatMessage

TEST_SETTINGS = Settings(
    ollama_base_url="http://localhost:11434",
    ollama_model="test-model",
)


class StubExtractionClient:
    """Deterministic extraction client: returns or raises queued items in order."""

    def __init__(self, *outcomes: ExtractionResult | Exception) -> None:
        self._outcomes = list(outcomes)
        self.calls: list[list[ChatMessage]] = []

    async def extract(self, messages: list[ChatMessage]) -> ExtractionResult:
        self.calls.append(list(messages))
        if not self._outcomes:
            return ExtractionResult(named_values=[])
        outcome = self._outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def extraction(*pairs: tuple[str, int | str], last: int | str | None = None) -> ExtractionResult:
    return ExtractionResult(
        named_values=[NamedValue(name=name, value=Decimal(str(value))) for name, value in pairs],
        last_calculated_result=Decimal(str(last)) if last is not None else None,
    )


def make_http_response(content: str = "", tool_calls: list[dict] | None = None) -> MagicMock:
    message: dict = {"role": "assistant", "content": content}
    if tool_calls is not None:
        message["tool_calls"] = tool_calls
    mock_response = MagicMock()
    mock_response.status_code = 200
    mock_response.raise_for_status = MagicMock()
    mock_response.json.return_value = {"message": message}
    return mock_response


@pytest.fixture
def settings() -> Settings:
    return TEST_SETTINGS


@pytest.fixture
def ollama_client() -> OllamaClient:
    mock_http = AsyncMock()
    return OllamaClient(
        http_client=mock_http,
        base_url="http://localhost:11434",
        model="test-model",
    )


@pytest.fixture
def facts() -> FactStore:
    return FactStore(saved_values={"sleva": Decimal("21")}, last_result="21")


@pytest.fixture
def turn_messages() -> list[ChatMessage]:
    return [
        ChatMessage(role="user", content="Compute 7 * 3 and remember it as sleva"),
        ChatMessage(
            role="assistant",
            content="",
            tool_calls=[{"function": {"name": "calculate", "arguments": {"expression": "7 * 3"}}}],
        ),
        ChatMessage(role="tool", content="21"),
        ChatMessage(role="assistant", content="7 * 3 = 21, saved as sleva."),
    ]
