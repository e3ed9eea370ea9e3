from __future__ import annotations

import asyncio
import json
import logging

from calcagent.llm.client import ChatClient
from calcagent.memory.reconciler import MemoryProvider
from calcagent.models import ChatMessage
from calcagent.tools.models import ToolCall
from calcagent.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

MAX_TOOL_ITERATIONS = 5


def build_system_message(system_prompt: str, sections: dict[str, str | None]) -> str:
    """Append each non-empty section to the base prompt as an XML-delimited block."""
    parts = [system_prompt]
    for tag, content in sections.items():
        if content:
            parts.append(f"\n<{tag}>\n{content}\n</{tag}>")
    return "\n".join(parts)


def _parse_arguments(raw: object) -> dict:
    if isinstance(raw, dict):
        return raw
    if isinstance(raw, str) and raw.strip():
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Tool call arguments are not valid JSON: %s", raw[:200])
            return {}
        return parsed if isinstance(parsed, dict) else {}
    return {}


class ConversationAgent:
    """Primary conversation loop for one session.

    Memory context is projected before every primary call and the finished
    turn is handed to the memory provider afterwards. With background
    extraction the reply is returned first; the next turn waits for that
    reconciliation before projecting context again.
    """

    def __init__(
        self,
        client: ChatClient,
        tools: ToolRegistry,
        memory: MemoryProvider,
        system_prompt: str,
        background_extraction: bool = True,
    ):
        self._client = client
        self._tools = tools
        self._memory = memory
        self._system_prompt = system_prompt
        self._background = background_extraction
        self._history: list[ChatMessage] = []
        self._pending: asyncio.Task | None = None

    @property
    def memory(self) -> MemoryProvider:
        return self._memory

    @property
    def history(self) -> list[ChatMessage]:
        return list(self._history)

    async def run(self, user_text: str) -> str:
        await self.drain()

        instructions = self._memory.before_inference()
        system_message = ChatMessage(
            role="system",
            content=build_system_message(self._system_prompt, {"memory": instructions}),
        )
        user_message = ChatMessage(role="user", content=user_text)
        turn = [user_message]

        reply = await self._tool_loop([system_message, *self._history], turn)

        self._history.extend(turn)
        await self._reconcile(turn)
        return reply

    async def drain(self) -> None:
        """Wait for the previous turn's reconciliation, if one is still running."""
        task = self._pending
        if task is None:
            return
        await asyncio.wait({task})
        self._pending = None
        if not task.cancelled() and task.exception() is not None:
            logger.error("Background reconciliation failed", exc_info=task.exception())

    async def abandon_pending(self) -> None:
        """Cancel the previous turn's reconciliation; the facts keep their prior state."""
        task, self._pending = self._pending, None
        if task is None or task.done():
            return
        task.cancel()
        await asyncio.wait({task})
        logger.info("Abandoned pending memory reconciliation")

    async def close(self) -> None:
        await self.drain()

    async def _reconcile(self, turn: list[ChatMessage]) -> None:
        if self._background:
            self._pending = asyncio.create_task(self._memory.after_inference(list(turn)))
        else:
            await self._memory.after_inference(turn)

    async def _run_tool_call(self, tc: dict) -> ChatMessage:
        func = tc.get("function", {})
        tool_name = func.get("name", "")
        arguments = _parse_arguments(func.get("arguments"))

        result = await self._tools.execute_tool(ToolCall(name=tool_name, arguments=arguments))
        logger.info("Tool %s -> %s", tool_name, result.content[:100])
        return ChatMessage(role="tool", content=result.content)

    async def _tool_loop(self, context: list[ChatMessage], turn: list[ChatMessage]) -> str:
        """Run the model with tools until it replies in text.

        Every message produced in this turn is appended to ``turn``.
        """
        tools = self._tools.get_ollama_tools() if self._tools.has_tools() else None

        for iteration in range(MAX_TOOL_ITERATIONS):
            response = await self._client.chat_with_tools([*context, *turn], tools=tools)

            if not response.tool_calls:
                logger.info(
                    "Tool iteration %d: LLM replied directly: %r",
                    iteration + 1,
                    response.content[:150],
                )
                turn.append(ChatMessage(role="assistant", content=response.content))
                return response.content

            tool_names = [tc.get("function", {}).get("name") for tc in response.tool_calls]
            logger.info(
                "Tool iteration %d: LLM generated %d tool call(s): %s",
                iteration + 1,
                len(response.tool_calls),
                tool_names,
            )
            turn.append(
                ChatMessage(
                    role="assistant",
                    content=response.content or "",
                    tool_calls=response.tool_calls,
                )
            )
            tool_messages = await asyncio.gather(
                *[self._run_tool_call(tc) for tc in response.tool_calls]
            )
            turn.extend(tool_messages)

        # Exceeded max iterations, force a text response without tools
        logger.warning("Max tool iterations (%d) reached, forcing text response", MAX_TOOL_ITERATIONS)
        response = await self._client.chat_with_tools([*context, *turn], tools=None)
        turn.append(ChatMessage(role="assistant", content=response.content))
        return response.content
