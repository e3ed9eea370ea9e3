"""Merging extraction outcomes into the fact store.

``reconcile`` is the single state transition of the memory subsystem:
``FactStore x ExtractionOutcome -> FactStore``. ``MemoryProvider`` wraps it
with the two per-turn hooks a conversation loop calls around each primary
inference.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable

from calcagent.exceptions import ExtractionFailed
from calcagent.formatting import format_decimal
from calcagent.memory.extraction import ExtractionClient, ExtractionOutcome, ExtractionResult
from calcagent.memory.facts import FactStore
from calcagent.memory.persistence import deserialize, serialize
from calcagent.memory.projector import project_context
from calcagent.models import ChatMessage

logger = logging.getLogger(__name__)


def reconcile(store: FactStore, outcome: ExtractionOutcome) -> FactStore:
    """Return the store with ``outcome`` applied.

    The input store is never modified. A failed outcome returns it as is; a
    successful one returns a new store holding every field of the extraction.
    """
    if not outcome.succeeded:
        return store

    result = outcome.result
    updated = store.model_copy(deep=True)
    for item in result.named_values or []:
        name = item.name.strip()
        if not name:
            continue
        updated.saved_values[name] = item.value
    if result.last_calculated_result is not None:
        updated.last_result = format_decimal(result.last_calculated_result)
    return updated


class MemoryProvider:
    """Owns the fact store of one conversation and runs the per-turn hooks."""

    def __init__(
        self,
        extraction_client: ExtractionClient,
        facts: FactStore | None = None,
        log: logging.Logger | None = None,
    ):
        self._client = extraction_client
        self.facts = facts if facts is not None else FactStore()
        self._log = log or logger
        self._lock = asyncio.Lock()

    @classmethod
    def from_state(
        cls,
        extraction_client: ExtractionClient,
        blob: str | bytes | None,
        log: logging.Logger | None = None,
    ) -> MemoryProvider:
        return cls(extraction_client, facts=deserialize(blob), log=log)

    def serialize(self) -> str:
        return serialize(self.facts)

    def before_inference(self) -> str:
        self._log.debug("Projecting memory: %d saved value(s)", len(self.facts.saved_values))
        return project_context(self.facts)

    async def after_inference(self, turn_messages: Iterable[ChatMessage]) -> FactStore:
        """Extract from the finished turn and merge the result.

        Failures are logged and leave the facts untouched. The new store is
        swapped in with a single assignment once extraction has returned, so a
        cancelled turn keeps the previous facts.
        """
        messages = list(turn_messages)
        async with self._lock:
            outcome = await self._extract(messages)
            if not outcome.succeeded:
                self._log.warning("Memory extraction failed, facts unchanged: %s", outcome.error)
                return self.facts

            previous = self.facts
            updated = reconcile(previous, outcome)
            self._log_merge(previous, updated)
            self.facts = updated
            return updated

    async def _extract(self, messages: list[ChatMessage]) -> ExtractionOutcome:
        self._log.debug("Extracting memory from %d turn message(s)", len(messages))
        try:
            result = await self._call_client(messages)
        except ExtractionFailed as e:
            return ExtractionOutcome.failure(e)
        return ExtractionOutcome.success(result)

    async def _call_client(self, messages: list[ChatMessage]) -> ExtractionResult:
        try:
            return await self._client.extract(messages)
        except ExtractionFailed:
            raise
        except Exception as e:
            raise ExtractionFailed(f"unexpected extraction error: {e!r}") from e

    def _log_merge(self, previous: FactStore, updated: FactStore) -> None:
        changed = {
            name: value
            for name, value in updated.saved_values.items()
            if previous.saved_values.get(name) != value
        }
        for name, value in changed.items():
            self._log.info("Memory saved: %s = %s", name, format_decimal(value))
        if updated.last_result != previous.last_result:
            self._log.info("Memory last result: %s", updated.last_result)
        if not changed and updated.last_result == previous.last_result:
            self._log.debug("Memory reconciliation: nothing new")
