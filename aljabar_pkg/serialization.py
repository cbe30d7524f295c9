"""Versioned structured form of expressions and solver results.

Document layout::

    {"version": 1, "expr": {"type": "sum", "args": [...]}}

Node types mirror expression kinds. Loading rebuilds through the
canonicalizing constructors, so a stored tree never needs to be trusted to
be canonical.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from .config import SERIALIZATION_VERSION
from .expression import Expression, Kind
from .logging_config import get_logger
from .numeric import NumberKind
from .symbols import symbol as intern_symbol
from .types import ParseError, SolverResult

logger = get_logger("serialization")


def _node(expr: Expression) -> dict[str, Any]:
    kind = expr.kind
    if kind is Kind.NUMBER:
        n = expr.payload
        if n.kind is NumberKind.RATIONAL:
            return {
                "type": "number",
                "kind": "rational",
                "numerator": n.numerator,
                "denominator": n.denominator,
            }
        return {"type": "number", "kind": n.kind.value, "value": n.value}
    if kind is Kind.SYMBOL:
        node = {"type": "symbol", "name": expr.payload.name}
        if expr.payload.assumptions:
            node["assumptions"] = sorted(expr.payload.assumptions)
        return node
    if kind is Kind.UNDEFINED:
        return {"type": "undefined", "reason": expr.payload}
    if kind is Kind.POWER:
        return {"type": "power", "base": _node(expr.base), "exponent": _node(expr.exponent)}
    if kind is Kind.EQUATION:
        return {"type": "equation", "lhs": _node(expr.lhs), "rhs": _node(expr.rhs)}
    if kind is Kind.FUNCTION:
        return {"type": "function", "name": expr.payload, "args": [_node(c) for c in expr.children]}
    return {"type": kind.value, "args": [_node(c) for c in expr.children]}


def _build(node: Any) -> Expression:
    if not isinstance(node, dict) or "type" not in node:
        raise ParseError(f"Malformed expression node: {node!r}", "MALFORMED")
    node_type = node["type"]
    try:
        if node_type == "number":
            if node.get("kind") == "rational":
                return Expression.rational(int(node["numerator"]), int(node["denominator"]))
            if node.get("kind") == "float":
                return Expression.float(float(node["value"]))
            return Expression.integer(int(node["value"]))
        if node_type == "symbol":
            flags = {a: True for a in node.get("assumptions", ())}
            return Expression.symbol(intern_symbol(node["name"], **flags))
        if node_type == "undefined":
            return Expression.undefined(str(node.get("reason", "")))
        if node_type == "power":
            return Expression.pow(_build(node["base"]), _build(node["exponent"]))
        if node_type == "equation":
            return Expression.equation(_build(node["lhs"]), _build(node["rhs"]))
        if node_type == "function":
            return Expression.function(node["name"], *(_build(a) for a in node["args"]))
        if node_type == "sum":
            return Expression.add(*(_build(a) for a in node["args"]))
        if node_type == "product":
            return Expression.mul(*(_build(a) for a in node["args"]))
    except (KeyError, TypeError, ValueError) as e:
        raise ParseError(f"Malformed {node_type} node: {e}", "MALFORMED") from e
    raise ParseError(f"Unknown node type: {node_type!r}", "MALFORMED")


def to_dict(expr: Expression) -> dict[str, Any]:
    return {"version": SERIALIZATION_VERSION, "expr": _node(expr)}


def from_dict(data: dict[str, Any]) -> Expression:
    """Rebuild a canonical Expression from its structured form.

    Raises:
        ParseError: VERSION_MISMATCH for documents of another format version,
            MALFORMED for anything else that cannot be read
    """
    if not isinstance(data, dict):
        raise ParseError("Serialized expression must be a mapping", "MALFORMED")
    version = data.get("version")
    if version != SERIALIZATION_VERSION:
        raise ParseError(
            f"Unsupported serialization version {version!r} "
            f"(expected {SERIALIZATION_VERSION})",
            "VERSION_MISMATCH",
        )
    return _build(data.get("expr"))


def dumps(expr: Expression, **kwargs) -> str:
    return json.dumps(to_dict(expr), **kwargs)


def loads(text: str) -> Expression:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ParseError(f"Invalid JSON: {e}", "MALFORMED") from e
    return from_dict(data)


def save(expr: Expression, path) -> Path:
    path = Path(path)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(to_dict(expr), f, indent=2)
    logger.debug(f"Saved expression to {path}")
    return path


def load(path) -> Expression:
    with open(Path(path), encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ParseError(f"Invalid JSON in {path}: {e}", "MALFORMED") from e
    return from_dict(data)


def result_to_dict(result: SolverResult) -> dict[str, Any]:
    """Structured (not stringified) form of a SolverResult."""
    solutions = []
    for sol in result.solutions:
        if isinstance(sol, tuple):
            solutions.append({sym.name: _node(value) for sym, value in sol})
        else:
            solutions.append(_node(sol))
    out: dict[str, Any] = {
        "version": SERIALIZATION_VERSION,
        "kind": result.kind.value,
        "solutions": solutions,
        "approximate": result.approximate,
    }
    if result.reason is not None:
        out["reason"] = result.reason
    if result.basis:
        out["basis"] = [_node(p) for p in result.basis]
    if result.relations:
        out["relations"] = [_node(r) for r in result.relations]
    if result.steps:
        out["steps"] = [s.to_dict() for s in result.steps]
    return out
