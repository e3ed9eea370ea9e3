"""Renders the fact store as instructions for the next primary model call."""

from __future__ import annotations

import logging
from decimal import Decimal

from calcagent.formatting import format_decimal
from calcagent.memory.facts import FactStore

logger = logging.getLogger(__name__)

SAVED_VALUES_HEADER = "Saved values in memory:"
LAST_RESULT_LABEL = "Last calculated result:"


def _render_value(value: object) -> str:
    if isinstance(value, Decimal):
        try:
            return format_decimal(value)
        except ArithmeticError:
            return str(value)
    return str(value)


def project_context(store: FactStore) -> str:
    """Return the memory instructions for ``store``, or "" when it holds nothing.

    Never raises: missing or malformed data just yields less context.
    """
    try:
        if store.is_empty():
            return ""
        lines: list[str] = []
        if store.saved_values:
            lines.append(SAVED_VALUES_HEADER)
            for name, value in store.saved_values.items():
                lines.append(f"{name} = {_render_value(value)}")
        if store.last_result:
            lines.append(f"{LAST_RESULT_LABEL} {store.last_result}")
        return "\n".join(lines)
    except Exception:
        logger.warning("Failed to project memory context", exc_info=True)
        return ""
