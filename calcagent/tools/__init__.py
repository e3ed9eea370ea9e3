from __future__ import annotations

from calcagent.tools.registry import ToolRegistry


def register_builtin_tools(registry: ToolRegistry) -> None:
    from calcagent.tools.calculator import register as register_calculator

    register_calculator(registry)
