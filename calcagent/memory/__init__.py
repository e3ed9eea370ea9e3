"""Memory subsystem: fact store, context projection, extraction and reconciliation.

- FactStore: persisted named values plus the last computed result
- project_context: renders the store as instructions for the next model call
- OllamaExtractionClient: structured extraction of named values from a turn
- MemoryProvider: per-session hooks around each primary inference call
- serialize / deserialize: state blob codec for cross-session persistence
"""

from calcagent.memory.extraction import (
    ExtractionClient,
    ExtractionOutcome,
    ExtractionResult,
    NamedValue,
    OllamaExtractionClient,
)
from calcagent.memory.facts import FactStore
from calcagent.memory.persistence import deserialize, load_state, save_state, serialize
from calcagent.memory.projector import project_context
from calcagent.memory.reconciler import MemoryProvider, reconcile

__all__ = [
    "ExtractionClient",
    "ExtractionOutcome",
    "ExtractionResult",
    "FactStore",
    "MemoryProvider",
    "NamedValue",
    "OllamaExtractionClient",
    "deserialize",
    "load_state",
    "project_context",
    "reconcile",
    "save_state",
    "serialize",
]
