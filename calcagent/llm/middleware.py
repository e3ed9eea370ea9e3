"""Request/response logging around the primary chat client.

Pure observability: every outgoing message and every reply is written to a
logger, and the inner client's response is returned untouched.
"""

from __future__ import annotations

import logging
from typing import Any

from calcagent.llm.client import ChatClient, ChatResponse
from calcagent.models import ChatMessage

_traffic_logger = logging.getLogger("calcagent.llm.traffic")

TRUNCATION_MARKER = "... (truncated)"


def _format_tool_call(tc: dict) -> str:
    func = tc.get("function", {})
    arguments = func.get("arguments") or {}
    if isinstance(arguments, dict):
        rendered = ", ".join(f"{k}={v}" for k, v in arguments.items())
    else:
        rendered = str(arguments)
    return f"{func.get('name', '?')}({rendered})"


class LoggingChatClient:
    def __init__(
        self,
        inner: ChatClient,
        logger: logging.Logger | None = None,
        max_chars: int = 500,
    ):
        self._inner = inner
        self._log = logger or _traffic_logger
        self._max_chars = max_chars

    def _truncate(self, text: str) -> str:
        if len(text) > self._max_chars:
            return text[: self._max_chars] + TRUNCATION_MARKER
        return text

    def _log_message(self, direction: str, message: ChatMessage) -> None:
        if message.role == "tool":
            self._log.info("%s [TOOL RESULT]: %s", direction, self._truncate(message.content))
            return
        if message.content:
            self._log.info("%s [%s]: %s", direction, message.role.upper(), self._truncate(message.content))
        for tc in message.tool_calls or []:
            self._log.info("%s [TOOL CALL] %s", direction, _format_tool_call(tc))

    async def chat_with_tools(
        self,
        messages: list[ChatMessage],
        tools: list[dict] | None = None,
        model: str | None = None,
        think: bool | None = None,
        format: dict[str, Any] | None = None,
    ) -> ChatResponse:
        self._log.info(">>> Sending %d message(s) to LLM", len(messages))
        for message in messages:
            self._log_message(">>>", message)

        response = await self._inner.chat_with_tools(
            messages, tools=tools, model=model, think=think, format=format
        )

        self._log.info("<<< LLM response")
        self._log_message(
            "<<<",
            ChatMessage(role="assistant", content=response.content, tool_calls=response.tool_calls),
        )
        return response

    async def chat(self, messages: list[ChatMessage], model: str | None = None) -> str:
        response = await self.chat_with_tools(messages, tools=None, model=model)
        return response.content
