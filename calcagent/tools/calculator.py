from __future__ import annotations

import ast
import logging
import operator
from decimal import Decimal, InvalidOperation

from calcagent.exceptions import CalculationError
from calcagent.formatting import format_decimal
from calcagent.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

MAX_EXPONENT = 10_000

# Whitelist of allowed operations
_BINARY_OPERATORS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
}

_UNARY_OPERATORS = {
    ast.USub: operator.neg,
    ast.UAdd: operator.pos,
}


def _sqrt(value: Decimal) -> Decimal:
    return value.sqrt()


def _round(value: Decimal, digits: Decimal = Decimal(0)) -> Decimal:
    return round(value, int(digits))


_ALLOWED_FUNCTIONS = {
    "abs": abs,
    "round": _round,
    "sqrt": _sqrt,
    "min": min,
    "max": max,
}


def _safe_eval_node(node: ast.AST) -> Decimal:
    """Recursively evaluate an AST node with strict whitelist."""
    if isinstance(node, ast.Expression):
        return _safe_eval_node(node.body)

    if isinstance(node, ast.Constant):
        # bool is an int subclass
        if isinstance(node.value, (int, float)) and not isinstance(node.value, bool):
            return Decimal(str(node.value))
        raise CalculationError(f"Unsupported constant type: {type(node.value).__name__}")

    if isinstance(node, ast.Name):
        raise CalculationError(f"Unknown variable: {node.id}")

    if isinstance(node, ast.UnaryOp):
        op_type = type(node.op)
        if op_type not in _UNARY_OPERATORS:
            raise CalculationError(f"Unsupported operator: {op_type.__name__}")
        return _UNARY_OPERATORS[op_type](_safe_eval_node(node.operand))

    if isinstance(node, ast.BinOp):
        op_type = type(node.op)
        if op_type not in _BINARY_OPERATORS:
            raise CalculationError(f"Unsupported operator: {op_type.__name__}")
        left = _safe_eval_node(node.left)
        right = _safe_eval_node(node.right)
        if op_type is ast.Pow and abs(right) > MAX_EXPONENT:
            raise CalculationError(f"Exponent too large: {right}")
        return _BINARY_OPERATORS[op_type](left, right)

    if isinstance(node, ast.Call):
        if not isinstance(node.func, ast.Name):
            raise CalculationError("Only direct function calls are allowed")
        func_name = node.func.id
        if func_name not in _ALLOWED_FUNCTIONS:
            raise CalculationError(f"Unknown function: {func_name}")
        if node.keywords:
            raise CalculationError("Keyword arguments are not supported")
        args = [_safe_eval_node(arg) for arg in node.args]
        return Decimal(_ALLOWED_FUNCTIONS[func_name](*args))

    raise CalculationError(f"Unsupported expression: {type(node).__name__}")


def safe_eval(expression: str) -> Decimal:
    """Safely evaluate an arithmetic expression using AST parsing and decimal arithmetic."""
    tree = ast.parse(expression.strip(), mode="eval")
    return _safe_eval_node(tree)


async def calculate(expression: str) -> str:
    """Evaluate ``expression`` and return the result as text.

    Never raises: every failure is returned as an ``Error: ...`` message so the
    model can see it and carry on.
    """
    logger.info("Calculating expression: %s", expression)
    try:
        result = safe_eval(expression)
    except ZeroDivisionError:
        logger.warning("Calculation error for '%s': division by zero", expression)
        return "Error: division by zero"
    except InvalidOperation:
        logger.warning("Calculation error for '%s': invalid operation", expression)
        return "Error: invalid operation"
    except (ValueError, SyntaxError, TypeError, ArithmeticError, RecursionError) as e:
        logger.warning("Calculation error for '%s': %s", expression, e)
        return f"Error: {e}"

    formatted_result = format_decimal(result)
    logger.info("Calculation result: %s", formatted_result)
    return formatted_result


def register(registry: ToolRegistry) -> None:
    registry.register_tool(
        name="calculate",
        description="Evaluate an arithmetic expression and return the result",
        parameters={
            "type": "object",
            "properties": {
                "expression": {
                    "type": "string",
                    "description": "Arithmetic expression to evaluate (e.g. '2+2', '15*0.21', '100/4')",
                },
            },
            "required": ["expression"],
        },
        handler=calculate,
    )
