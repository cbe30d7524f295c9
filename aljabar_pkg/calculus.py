"""Differentiation and polynomial-degree analysis on canonical expressions."""

from __future__ import annotations

import math

from .canonical import expand
from .expression import ONE, ZERO, Expression, Kind
from .logging_config import get_logger
from .symbols import Symbol
from .types import NotPolynomialError

logger = get_logger("calculus")

_HALF = Expression.rational(1, 2)


def _chain_rule(name: str, arg: Expression) -> Expression | None:
    """Outer derivative f'(u) for the built-in functions."""
    if name == "sin":
        return Expression.function("cos", arg)
    if name == "cos":
        return -Expression.function("sin", arg)
    if name == "tan":
        return 1 + Expression.function("tan", arg) ** 2
    if name == "exp":
        return Expression.function("exp", arg)
    if name == "log":
        return arg**-1
    if name == "asin":
        return (1 - arg**2) ** -_HALF
    if name == "acos":
        return -((1 - arg**2) ** -_HALF)
    if name == "atan":
        return (1 + arg**2) ** -1
    if name == "abs":
        return Expression.function("abs", arg) / arg
    return None


def differentiate(expr: Expression, variable: Symbol) -> Expression:
    """Differentiate an expression with respect to a symbol.

    Args:
        expr: Canonical expression (an equation differentiates both sides)
        variable: Symbol to differentiate with respect to

    Returns:
        Canonical derivative. Functions without a known derivative become
        ``derivative(f(...), x)`` marker calls.
    """
    kind = expr.kind
    if kind is Kind.UNDEFINED:
        return expr
    if kind is Kind.EQUATION:
        return Expression.equation(
            differentiate(expr.lhs, variable), differentiate(expr.rhs, variable)
        )
    if not expr.contains(variable):
        return ZERO
    if kind is Kind.SYMBOL:
        return ONE
    if kind is Kind.SUM:
        return Expression.add(*(differentiate(t, variable) for t in expr.children))
    if kind is Kind.PRODUCT:
        terms = []
        factors = expr.children
        for i, factor in enumerate(factors):
            d = differentiate(factor, variable)
            if d.is_zero():
                continue
            terms.append(Expression.mul(d, *factors[:i], *factors[i + 1 :]))
        return Expression.add(*terms)
    if kind is Kind.POWER:
        base, exponent = expr.children
        if not exponent.contains(variable):
            return exponent * base ** (exponent - 1) * differentiate(base, variable)
        # d(b^e) = b^e * (e' log b + e b'/b)
        log_base = Expression.function("log", base)
        return expr * (
            differentiate(exponent, variable) * log_base
            + exponent * differentiate(base, variable) / base
        )
    # FUNCTION
    if len(expr.children) == 1:
        outer = _chain_rule(expr.payload, expr.children[0])
        if outer is not None:
            return outer * differentiate(expr.children[0], variable)
    logger.debug(f"No derivative rule for {expr.payload}; emitting marker")
    return Expression.function("derivative", expr, Expression.symbol(variable))


def _term_degree(term: Expression, variable: Symbol) -> int | None:
    if not term.contains(variable):
        return 0
    if term.kind is Kind.SYMBOL:
        return 1
    if term.kind is Kind.POWER:
        base, exponent = term.children
        if (
            base.kind is Kind.SYMBOL
            and base.payload is variable
            and exponent.kind is Kind.NUMBER
            and exponent.payload.is_integer
            and exponent.payload.value > 0
        ):
            return exponent.payload.value
        return None
    if term.kind is Kind.PRODUCT:
        total = 0
        for factor in term.children:
            d = _term_degree(factor, variable)
            if d is None:
                return None
            total += d
        return total
    return None


def _terms(expr: Expression) -> tuple:
    return expr.children if expr.kind is Kind.SUM else (expr,)


def _as_zero_form(expr: Expression) -> Expression:
    if expr.kind is Kind.EQUATION:
        return expr.lhs - expr.rhs
    return expr


def degree(expr: Expression, variable: Symbol) -> int | None:
    """Polynomial degree in ``variable`` after expansion; None if not polynomial.

    Equations are measured through ``lhs - rhs``.
    """
    expanded = expand(_as_zero_form(expr))
    if expanded.is_zero():
        return 0
    best = 0
    for term in _terms(expanded):
        d = _term_degree(term, variable)
        if d is None:
            return None
        best = max(best, d)
    return best


def total_degree(expr: Expression, variables) -> int | None:
    """Largest per-term sum of degrees over ``variables``; None if not polynomial."""
    expanded = expand(_as_zero_form(expr))
    best = 0
    for term in _terms(expanded):
        total = 0
        for var in variables:
            d = _term_degree(term, var)
            if d is None:
                return None
            total += d
        best = max(best, total)
    return best


def coefficients(expr: Expression, variable: Symbol) -> dict[int, Expression]:
    """Coefficients of ``expr`` as a polynomial in ``variable``.

    Raises:
        NotPolynomialError: If ``expr`` is not polynomial in ``variable``
    """
    expanded = expand(_as_zero_form(expr))
    collected: dict[int, list[Expression]] = {}
    var_expr = Expression.symbol(variable)
    for term in _terms(expanded):
        d = _term_degree(term, variable)
        if d is None:
            raise NotPolynomialError(f"{expr} is not polynomial in {variable.name}")
        if d == 0:
            rest = term
        else:
            rest = term / var_expr**d
        collected.setdefault(d, []).append(rest)
    result = {}
    for d, parts in collected.items():
        coefficient = Expression.add(*parts)
        if not coefficient.is_zero():
            result[d] = coefficient
    return result


def is_numeric_constant(expr: Expression) -> bool:
    """True for expressions without free symbols (numbers, radicals, constants)."""
    return not expr.free_symbols() and not expr.has_undefined()



_FLOAT_FUNCTIONS = {
    "sin": math.sin,
    "cos": math.cos,
    "tan": math.tan,
    "asin": math.asin,
    "acos": math.acos,
    "atan": math.atan,
    "exp": math.exp,
    "log": math.log,
    "sqrt": math.sqrt,
    "abs": abs,
}


def numeric_value(expr: Expression) -> float | None:
    """Approximate value of a symbol-free expression, or None when unavailable."""
    kind = expr.kind
    try:
        if kind is Kind.NUMBER:
            return float(expr.payload)
        if kind is Kind.SUM:
            parts = [numeric_value(c) for c in expr.children]
            return None if None in parts else math.fsum(parts)
        if kind is Kind.PRODUCT:
            result = 1.0
            for child in expr.children:
                value = numeric_value(child)
                if value is None:
                    return None
                result *= value
            return result
        if kind is Kind.POWER:
            base = numeric_value(expr.children[0])
            exponent = numeric_value(expr.children[1])
            if base is None or exponent is None:
                return None
            value = base**exponent
            return value if isinstance(value, float) and math.isfinite(value) else None
        if kind is Kind.FUNCTION and expr.payload == "pi" and not expr.children:
            return math.pi
        if kind is Kind.FUNCTION and expr.payload in _FLOAT_FUNCTIONS and len(expr.children) == 1:
            arg = numeric_value(expr.children[0])
            return None if arg is None else float(_FLOAT_FUNCTIONS[expr.payload](arg))
    except (ValueError, ZeroDivisionError, OverflowError):
        return None
    return None
