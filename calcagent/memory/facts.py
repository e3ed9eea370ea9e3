from __future__ import annotations

import logging
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from calcagent.formatting import format_decimal

logger = logging.getLogger(__name__)


class FactStore(BaseModel):
    """Named values and the last computed result for one conversation.

    Field aliases follow the persisted blob: ``savedValues``, ``lastResult``
    and ``lastExpression``.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    saved_values: dict[str, Decimal] = Field(default_factory=dict)
    last_result: str | None = None
    # Reserved: nothing in the extraction path writes it
    last_expression: str | None = None

    @field_validator("saved_values", mode="after")
    @classmethod
    def drop_blank_names(cls, v: dict[str, Decimal]) -> dict[str, Decimal]:
        blank = [name for name in v if not name.strip()]
        for name in blank:
            logger.warning("Dropping saved value with blank name: %r", name)
            del v[name]
        return v

    def is_empty(self) -> bool:
        return not self.saved_values and self.last_result is None and self.last_expression is None

    def describe(self) -> str:
        """Compact ``name=value`` listing for session status lines."""
        return ", ".join(
            f"{name}={format_decimal(value)}" for name, value in self.saved_values.items()
        )
