"""Serialization of the fact store to and from an opaque JSON state blob.

Blob shape::

    {"savedValues": {"name": 21, ...}, "lastResult": "21", "lastExpression": null}

Loading is best-effort: a missing, empty or corrupt blob gives an empty store.
"""

from __future__ import annotations

import json
import logging
import os
from decimal import Decimal
from pathlib import Path

from pydantic import ValidationError

from calcagent.exceptions import PersistenceCorrupt
from calcagent.memory.facts import FactStore

logger = logging.getLogger(__name__)

# Integer digits json can render without hitting the int string conversion limit
MAX_JSON_INT_DIGITS = 4300


def _encode_number(value: Decimal) -> int | float | str:
    """JSON number when it round-trips exactly, otherwise the decimal string."""
    if not value.is_finite():
        return str(value)
    if value == value.to_integral_value():
        if value.adjusted() < MAX_JSON_INT_DIGITS:
            return int(value)
        return str(value)
    as_float = float(value)
    if Decimal(repr(as_float)) == value:
        return as_float
    return str(value)


def serialize(store: FactStore) -> str:
    payload = {
        "savedValues": {name: _encode_number(v) for name, v in store.saved_values.items()},
        "lastResult": store.last_result,
        "lastExpression": store.last_expression,
    }
    return json.dumps(payload, ensure_ascii=False)


def _parse_blob(blob: str | bytes) -> FactStore:
    try:
        data = json.loads(blob, parse_float=Decimal, parse_int=Decimal)
    except ValueError as e:
        raise PersistenceCorrupt(f"state blob is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise PersistenceCorrupt(f"state blob must be a JSON object, got {type(data).__name__}")

    try:
        return FactStore.model_validate(data)
    except ValidationError as e:
        raise PersistenceCorrupt(f"state blob failed validation: {e}") from e


def deserialize(blob: str | bytes | None) -> FactStore:
    if blob is None or not blob.strip():
        logger.debug("No persisted memory state, starting empty")
        return FactStore()
    try:
        store = _parse_blob(blob)
    except PersistenceCorrupt as e:
        logger.warning("Discarding persisted memory state: %s", e)
        return FactStore()
    logger.debug("Restored memory state with %d saved values", len(store.saved_values))
    return store


def load_state(path: str | Path) -> FactStore:
    """Read a state file; a missing or unreadable file is a new session."""
    state_path = Path(path)
    if not state_path.exists():
        return FactStore()
    try:
        blob = state_path.read_text(encoding="utf-8")
    except OSError as e:
        logger.warning("Failed to read memory state %s: %s", state_path, e)
        return FactStore()
    return deserialize(blob)


def save_state(path: str | Path, store: FactStore) -> None:
    state_path = Path(path)
    state_path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = state_path.with_name(state_path.name + ".tmp")
    tmp_path.write_text(serialize(store), encoding="utf-8")
    os.replace(tmp_path, state_path)
    logger.info("Saved memory state to %s (%d values)", state_path, len(store.saved_values))
