"""Interactive calculator-with-memory session.

Usage:
    calcagent [--state PATH] [--model MODEL] [--extraction-model MODEL] [--ollama-url URL] [--no-background] [--trace-llm] [--verbose]

The fact store is restored from the state file on start and written back on
exit, so named values survive between sessions.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from collections.abc import Awaitable, Callable

import httpx

from calcagent.agent.loop import ConversationAgent
from calcagent.config import Settings
from calcagent.llm.client import ChatClient, OllamaClient
from calcagent.llm.middleware import LoggingChatClient
from calcagent.logging_config import configure_logging
from calcagent.memory.extraction import OllamaExtractionClient
from calcagent.memory.facts import FactStore
from calcagent.memory.persistence import load_state, save_state
from calcagent.memory.reconciler import MemoryProvider
from calcagent.tools import register_builtin_tools
from calcagent.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

BANNER = "Calculator with memory - 'exit' to quit\n========================================"
EXIT_COMMANDS = {"exit", "quit"}


def memory_status(facts: FactStore) -> str | None:
    """Status line shown after a turn, or None when nothing is saved."""
    if not facts.saved_values:
        return None
    return f"[Memory: {facts.describe()}]"


async def _read_line(prompt: str) -> str:
    return await asyncio.to_thread(input, prompt)


async def run_session(
    agent: ConversationAgent,
    read_line: Callable[[str], Awaitable[str]] = _read_line,
    write: Callable[[str], None] = print,
) -> None:
    write(BANNER)
    while True:
        try:
            text = await read_line("\nYou: ")
        except EOFError:
            break

        text = text.strip()
        if not text:
            continue
        if text.lower() in EXIT_COMMANDS:
            write("Goodbye!")
            break

        try:
            reply = await agent.run(text)
        except Exception as e:
            logger.exception("Turn failed")
            write(f"Error: {e}")
            continue

        write(f"Agent: {reply}")

        # Reply is already shown; wait for memory before reporting its state
        await agent.drain()
        status = memory_status(agent.memory.facts)
        if status:
            write(status)


def build_agent(settings: Settings, http_client: httpx.AsyncClient, facts: FactStore) -> ConversationAgent:
    ollama = OllamaClient(
        http_client=http_client,
        base_url=settings.ollama_base_url,
        model=settings.ollama_model,
    )
    chat_client: ChatClient = LoggingChatClient(ollama) if settings.log_llm_traffic else ollama

    memory = MemoryProvider(
        OllamaExtractionClient(ollama, model=settings.extraction_model),
        facts=facts,
    )

    registry = ToolRegistry()
    register_builtin_tools(registry)

    return ConversationAgent(
        client=chat_client,
        tools=registry,
        memory=memory,
        system_prompt=settings.system_prompt,
        background_extraction=settings.background_extraction,
    )


async def _run(settings: Settings) -> int:
    facts = load_state(settings.state_path)
    logger.info("Session started with %d saved value(s)", len(facts.saved_values))

    async with httpx.AsyncClient(timeout=httpx.Timeout(settings.request_timeout, connect=10.0)) as http:
        agent = build_agent(settings, http, facts)
        try:
            await run_session(agent)
        finally:
            await agent.close()
            save_state(settings.state_path, agent.memory.facts)
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Calculator assistant with memory")
    parser.add_argument("--state", help="JSON file holding the memory state between sessions")
    parser.add_argument("--model", help="Ollama model for the conversation")
    parser.add_argument("--extraction-model", help="Ollama model for memory extraction")
    parser.add_argument("--ollama-url", help="Base URL of the Ollama server")
    parser.add_argument(
        "--no-background",
        action="store_true",
        help="Run memory extraction before returning each reply",
    )
    parser.add_argument("--trace-llm", action="store_true", help="Log every LLM request and response")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)

    overrides: dict[str, object] = {}
    if args.state:
        overrides["state_path"] = args.state
    if args.model:
        overrides["ollama_model"] = args.model
    if args.extraction_model:
        overrides["extraction_model"] = args.extraction_model
    if args.ollama_url:
        overrides["ollama_base_url"] = args.ollama_url
    if args.no_background:
        overrides["background_extraction"] = False
    if args.trace_llm:
        overrides["log_llm_traffic"] = True
    settings = Settings(**overrides)

    configure_logging(
        level="DEBUG" if args.verbose else settings.log_level,
        json_format=settings.log_json,
        log_file=settings.log_file,
    )

    try:
        return asyncio.run(_run(settings))
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    raise SystemExit(main())
