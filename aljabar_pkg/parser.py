"""Text input and SymPy interop.

This module handles:
- Input sanitization and validation (length, forbidden tokens, balance)
- Parsing text with SymPy's ``parse_expr`` into canonical Expressions
- Splitting equations (``lhs = rhs``) and systems (``eq1, eq2`` or ``;``)
- Conversion between Expressions and SymPy objects in both directions
"""

from __future__ import annotations

from tokenize import TokenError

import sympy as sp
from sympy import parse_expr
from sympy.core.function import AppliedUndef

from .config import FORBIDDEN_TOKENS, MAX_INPUT_LENGTH, TRANSFORMATIONS
from .expression import Expression, Kind
from .logging_config import get_logger
from .symbols import Symbol
from .symbols import symbol as intern_symbol
from .types import ParseError, ValidationError

logger = get_logger("parser")

# Registry names and their SymPy counterparts
_TO_SYMPY = {
    "sin": sp.sin,
    "cos": sp.cos,
    "tan": sp.tan,
    "asin": sp.asin,
    "acos": sp.acos,
    "atan": sp.atan,
    "exp": sp.exp,
    "log": sp.log,
    "sqrt": sp.sqrt,
    "abs": sp.Abs,
}
_FROM_SYMPY = {
    sp.sin: "sin",
    sp.cos: "cos",
    sp.tan: "tan",
    sp.asin: "asin",
    sp.acos: "acos",
    sp.atan: "atan",
    sp.exp: "exp",
    sp.log: "log",
    sp.Abs: "abs",
}

# Names parse_expr should read as plain symbols rather than SymPy singletons
_PLAIN_NAMES = ("N", "S", "O", "Q", "C", "beta", "gamma", "zeta")


def is_balanced(input_str: str) -> tuple[bool, int | None]:
    """Check if parentheses/brackets are balanced. Returns (is_balanced, error_position)."""
    pairs = {"(": ")", "[": "]", "{": "}"}
    stack: list[tuple[str, int]] = []
    for i, char in enumerate(input_str):
        if char in pairs:
            stack.append((char, i))
        elif char in pairs.values():
            if not stack:
                return False, i
            opening, _ = stack.pop()
            if pairs[opening] != char:
                return False, i
    if stack:
        return False, stack[0][1]
    return True, None


def validate_input(input_str: str) -> str:
    """Reject empty, oversized, unbalanced or suspicious input before parsing.

    Raises:
        ValidationError: With codes EMPTY_INPUT, TOO_LONG, FORBIDDEN_TOKEN or
            UNBALANCED
    """
    if not isinstance(input_str, str) or not input_str.strip():
        raise ValidationError("Input cannot be empty", "EMPTY_INPUT")
    if len(input_str) > MAX_INPUT_LENGTH:
        raise ValidationError(f"Input too long (>{MAX_INPUT_LENGTH} characters)", "TOO_LONG")
    lowered = input_str.strip().lower()
    for tok in FORBIDDEN_TOKENS:
        if tok in lowered:
            logger.warning(
                "Blocked input containing forbidden token",
                extra={"forbidden_token": tok, "input_length": len(input_str)},
            )
            raise ValidationError(f"Input contains forbidden token: {tok}", "FORBIDDEN_TOKEN")
    balanced, position = is_balanced(input_str)
    if not balanced:
        raise ValidationError(
            f"Unbalanced parentheses at position {position}", "UNBALANCED"
        )
    return input_str.strip()


def _split_top_level(text: str, separators: str) -> list[str]:
    parts, depth, current = [], 0, []
    for char in text:
        if char in "([{":
            depth += 1
        elif char in ")]}":
            depth -= 1
        if depth == 0 and char in separators:
            parts.append("".join(current))
            current = []
            continue
        current.append(char)
    parts.append("".join(current))
    return [p.strip() for p in parts if p.strip()]


def _parse_sympy(text: str) -> sp.Basic:
    local_dict = {name: sp.Symbol(name) for name in _PLAIN_NAMES}
    local_dict["derivative"] = sp.Derivative
    local_dict["diff"] = sp.Derivative
    try:
        return parse_expr(text, local_dict=local_dict, transformations=TRANSFORMATIONS)
    except (
        SyntaxError,
        TokenError,
        TypeError,
        ValueError,
        AttributeError,
        sp.SympifyError,
    ) as e:
        raise ParseError(f"Could not parse {text!r}: {e}", "PARSE_ERROR") from e


def parse(text: str) -> Expression:
    """Parse an expression (or a single ``lhs = rhs`` equation) into canonical form."""
    text = validate_input(text)
    if "=" in text.replace("==", "="):
        return parse_equation(text)
    return from_sympy(_parse_sympy(text))


def parse_equation(text: str) -> Expression:
    """Parse ``lhs = rhs``; text without ``=`` is read as ``expr = 0``.

    Raises:
        ParseError: For more than one ``=`` sign
    """
    text = validate_input(text).replace("==", "=")
    sides = text.split("=")
    if len(sides) == 1:
        return Expression.equation(from_sympy(_parse_sympy(sides[0])), 0)
    if len(sides) != 2 or not sides[0].strip() or not sides[1].strip():
        raise ParseError(f"Expected a single '=' in {text!r}", "INVALID_EQUATION")
    lhs = from_sympy(_parse_sympy(sides[0]))
    rhs = from_sympy(_parse_sympy(sides[1]))
    return Expression.equation(lhs, rhs)


def parse_system(text: str) -> list[Expression]:
    """Parse equations separated by top-level commas, semicolons or newlines."""
    text = validate_input(text)
    return [parse_equation(part) for part in _split_top_level(text, ",;\n")]


def parse_symbols(names) -> tuple:
    """Symbols from a string (``"x y"`` or ``"x, y"``), a Symbol, or a sequence."""
    if names is None:
        return None
    if isinstance(names, Symbol):
        return (names,)
    if isinstance(names, str):
        parts = [p for p in names.replace(",", " ").split() if p]
        return tuple(intern_symbol(p) for p in parts)
    return tuple(intern_symbol(n) if isinstance(n, str) else n for n in names)


# SymPy -> Expression


def from_sympy(obj) -> Expression:
    """Convert a SymPy object into a canonical Expression.

    Raises:
        ParseError: For SymPy constructs without an Expression counterpart
    """
    if isinstance(obj, sp.Equality):
        return Expression.equation(from_sympy(obj.lhs), from_sympy(obj.rhs))
    if obj is sp.nan:
        return Expression.undefined("nan")
    if obj in (sp.oo, -sp.oo, sp.zoo):
        return Expression.undefined("infinity")
    if isinstance(obj, sp.Integer):
        return Expression.integer(int(obj))
    if isinstance(obj, sp.Rational):
        return Expression.rational(int(obj.p), int(obj.q))
    if isinstance(obj, sp.Float):
        return Expression.float(float(obj))
    if obj is sp.E:
        return Expression.function("exp", 1)
    if obj is sp.pi:
        return Expression.function("pi")
    if obj is sp.I:
        return Expression.pow(-1, Expression.rational(1, 2))
    if isinstance(obj, sp.Symbol):
        return Expression.symbol(intern_symbol(obj.name))
    if isinstance(obj, sp.Add):
        return Expression.add(*(from_sympy(a) for a in obj.args))
    if isinstance(obj, sp.Mul):
        return Expression.mul(*(from_sympy(a) for a in obj.args))
    if isinstance(obj, sp.Pow):
        return Expression.pow(from_sympy(obj.base), from_sympy(obj.exp))
    if isinstance(obj, sp.Derivative):
        inner = from_sympy(obj.expr)
        wrt = [from_sympy(v) for v, count in obj.variable_count for _ in range(count)]
        multivariate = len(set(wrt)) > 1 or len(inner.free_symbols()) > 1
        name = "partial" if multivariate else "derivative"
        result = inner
        for var in wrt:
            result = Expression.function(name, result, var)
        return result
    if isinstance(obj, AppliedUndef):
        return Expression.function(str(obj.func), *(from_sympy(a) for a in obj.args))
    if isinstance(obj, sp.Function):
        name = _FROM_SYMPY.get(obj.func)
        if name is not None and len(obj.args) == 1:
            return Expression.function(name, from_sympy(obj.args[0]))
    raise ParseError(
        f"Unsupported SymPy construct: {type(obj).__name__}", "UNSUPPORTED_NODE"
    )


# Expression -> SymPy


def _sympy_symbol(sym: Symbol) -> sp.Symbol:
    return sp.Symbol(sym.name, **{a: True for a in sym.assumptions})


def to_sympy(expr: Expression) -> sp.Basic:
    """Convert an Expression into the equivalent SymPy object (unevaluated equations)."""
    kind = expr.kind
    if kind is Kind.NUMBER:
        n = expr.payload
        if not n.is_exact:
            return sp.Float(n.value)
        frac = n.to_fraction()
        return sp.Rational(frac.numerator, frac.denominator)
    if kind is Kind.SYMBOL:
        return _sympy_symbol(expr.payload)
    if kind is Kind.UNDEFINED:
        return sp.nan
    args = [to_sympy(c) for c in expr.children]
    if kind is Kind.SUM:
        return sp.Add(*args)
    if kind is Kind.PRODUCT:
        return sp.Mul(*args)
    if kind is Kind.POWER:
        return sp.Pow(*args)
    if kind is Kind.EQUATION:
        return sp.Eq(args[0], args[1], evaluate=False)
    name = expr.payload
    if name == "pi" and not args:
        return sp.pi
    if name in _TO_SYMPY:
        return _TO_SYMPY[name](*args)
    if name in ("derivative", "diff", "partial") and len(args) == 2:
        return sp.Derivative(args[0], args[1])
    return sp.Function(name)(*args)
