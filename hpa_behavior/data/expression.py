"""
Restricted arithmetic expressions over simulated time ``t``.

Custom metric formulas are parsed with ``ast`` and evaluated by walking a
whitelisted subset of the tree. Nothing is compiled or executed as Python.

Supported:
    numbers, ``t``, ``pi``, ``e``
    + - * / // % ** and unary +/-
    comparisons, ``and``/``or``/``not``, ``a if cond else b``
    sin cos tan abs min max clamp sqrt exp log floor ceil round pow
"""

import ast
import math
import operator
from typing import Any, Callable, Dict

from ..core.errors import EvaluationError

MAX_FORMULA_LENGTH = 500

_BINARY_OPS: Dict[type, Callable[[Any, Any], Any]] = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
}

_UNARY_OPS: Dict[type, Callable[[Any], Any]] = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
    ast.Not: operator.not_,
}

_COMPARE_OPS: Dict[type, Callable[[Any, Any], bool]] = {
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
}


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


FUNCTIONS: Dict[str, Callable[..., float]] = {
    "sin": math.sin,
    "cos": math.cos,
    "tan": math.tan,
    "abs": abs,
    "min": min,
    "max": max,
    "clamp": _clamp,
    "sqrt": math.sqrt,
    "exp": math.exp,
    "log": math.log,
    "floor": math.floor,
    "ceil": math.ceil,
    "round": round,
    "pow": math.pow,
}

CONSTANTS: Dict[str, float] = {
    "pi": math.pi,
    "e": math.e,
}

TIME_VARIABLE = "t"


class Expression:
    """A parsed, validated formula ``f(t)``."""

    def __init__(self, source: str):
        if not isinstance(source, str) or not source.strip():
            raise EvaluationError("Formula is empty")
        if len(source) > MAX_FORMULA_LENGTH:
            raise EvaluationError(f"Formula longer than {MAX_FORMULA_LENGTH} characters")

        self.source = source.strip()
        try:
            tree = ast.parse(self.source, mode="eval")
        except SyntaxError as e:
            raise EvaluationError(f"Invalid formula syntax: {e.msg}") from e

        self._check(tree.body)
        self._body = tree.body

    def __repr__(self) -> str:
        return f"Expression({self.source!r})"

    def evaluate(self, t: float) -> float:
        """
        Evaluate the formula at time ``t``.

        Raises:
            EvaluationError: On math domain errors, overflow or non-finite results
        """
        try:
            value = float(self._eval(self._body, float(t)))
        except (ArithmeticError, ValueError, TypeError) as e:
            raise EvaluationError(f"Formula '{self.source}' failed at t={t}: {e}") from e

        if not math.isfinite(value):
            raise EvaluationError(f"Formula '{self.source}' is not finite at t={t}")
        return value

    def _check(self, node: ast.AST) -> None:
        if isinstance(node, ast.Constant):
            if isinstance(node.value, bool) or not isinstance(node.value, (int, float)):
                raise EvaluationError(f"Unsupported literal: {node.value!r}")
        elif isinstance(node, ast.Name):
            if node.id != TIME_VARIABLE and node.id not in CONSTANTS:
                raise EvaluationError(f"Unknown name: '{node.id}'")
        elif isinstance(node, ast.BinOp):
            if type(node.op) not in _BINARY_OPS:
                raise EvaluationError(f"Unsupported operator: {type(node.op).__name__}")
            self._check(node.left)
            self._check(node.right)
        elif isinstance(node, ast.UnaryOp):
            if type(node.op) not in _UNARY_OPS:
                raise EvaluationError(f"Unsupported operator: {type(node.op).__name__}")
            self._check(node.operand)
        elif isinstance(node, ast.BoolOp):
            for value in node.values:
                self._check(value)
        elif isinstance(node, ast.Compare):
            for op in node.ops:
                if type(op) not in _COMPARE_OPS:
                    raise EvaluationError(f"Unsupported comparison: {type(op).__name__}")
            self._check(node.left)
            for comparator in node.comparators:
                self._check(comparator)
        elif isinstance(node, ast.IfExp):
            self._check(node.test)
            self._check(node.body)
            self._check(node.orelse)
        elif isinstance(node, ast.Call):
            if not isinstance(node.func, ast.Name):
                raise EvaluationError("Only plain function calls are supported")
            if node.func.id not in FUNCTIONS:
                raise EvaluationError(
                    f"Unknown function: '{node.func.id}'. Available: {sorted(FUNCTIONS)}"
                )
            if node.keywords:
                raise EvaluationError("Keyword arguments are not supported")
            for arg in node.args:
                self._check(arg)
        else:
            raise EvaluationError(f"Unsupported syntax: {type(node).__name__}")

    def _eval(self, node: ast.AST, t: float) -> Any:
        if isinstance(node, ast.Constant):
            return float(node.value)
        if isinstance(node, ast.Name):
            if node.id == TIME_VARIABLE:
                return t
            return CONSTANTS[node.id]
        if isinstance(node, ast.BinOp):
            # float operands make huge powers overflow instead of building
            # unbounded integers (floor, ceil, round and comparisons yield ints)
            left = float(self._eval(node.left, t))
            right = float(self._eval(node.right, t))
            return _BINARY_OPS[type(node.op)](left, right)
        if isinstance(node, ast.UnaryOp):
            return _UNARY_OPS[type(node.op)](self._eval(node.operand, t))
        if isinstance(node, ast.BoolOp):
            if isinstance(node.op, ast.And):
                result = True
                for value in node.values:
                    result = self._eval(value, t)
                    if not result:
                        return result
                return result
            result = False
            for value in node.values:
                result = self._eval(value, t)
                if result:
                    return result
            return result
        if isinstance(node, ast.Compare):
            left = self._eval(node.left, t)
            for op, comparator in zip(node.ops, node.comparators):
                right = self._eval(comparator, t)
                if not _COMPARE_OPS[type(op)](left, right):
                    return False
                left = right
            return True
        if isinstance(node, ast.IfExp):
            if self._eval(node.test, t):
                return self._eval(node.body, t)
            return self._eval(node.orelse, t)
        if isinstance(node, ast.Call):
            args = [self._eval(arg, t) for arg in node.args]
            return float(FUNCTIONS[node.func.id](*args))
        raise EvaluationError(f"Unsupported syntax: {type(node).__name__}")


def compile_formula(source: str) -> Expression:
    """Parse and validate ``source``; raises EvaluationError when invalid."""
    return Expression(source)
