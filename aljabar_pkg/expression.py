"""Immutable symbolic expression values.

An ``Expression`` is a small tagged value: a ``kind``, one inline ``payload``
(a Number, a Symbol, a function name or an undefined-reason string) and a
tuple of child Expressions. Children are shared, never copied, and never
mutated. Every public constructor canonicalizes (see ``canonical.py``), so
structurally equal expressions compare equal with ``==``.

Subtraction and division are not variants: ``a - b`` is ``a + (-1)*b`` and
``a / b`` is ``a * b^(-1)``.
"""

from __future__ import annotations

from enum import Enum
from fractions import Fraction
from typing import Iterator

from .numeric import MINUS_ONE, Number
from .symbols import Symbol, symbol as intern_symbol
from .types import ValidationError


class Kind(str, Enum):
    NUMBER = "number"
    SYMBOL = "symbol"
    SUM = "sum"
    PRODUCT = "product"
    POWER = "power"
    FUNCTION = "function"
    EQUATION = "equation"
    UNDEFINED = "undefined"


_RANK = {
    Kind.NUMBER: 0,
    Kind.SYMBOL: 1,
    Kind.POWER: 2,
    Kind.PRODUCT: 3,
    Kind.SUM: 4,
    Kind.FUNCTION: 5,
    Kind.EQUATION: 6,
    Kind.UNDEFINED: 7,
}

_NUMBER_KIND_INDEX = {"integer": 0, "rational": 0, "float": 1}


class Expression:
    """Canonical symbolic expression."""

    __slots__ = ("kind", "payload", "children", "_hash", "_key", "_free")

    def __init__(self, kind: Kind, payload=None, children: tuple = ()):
        # Internal: callers outside the core use the classmethod constructors.
        object.__setattr__(self, "kind", kind)
        object.__setattr__(self, "payload", payload)
        object.__setattr__(self, "children", children)
        object.__setattr__(self, "_hash", None)
        object.__setattr__(self, "_key", None)
        object.__setattr__(self, "_free", None)

    def __setattr__(self, key, value):
        raise AttributeError("Expression is immutable")

    # Constructors

    @classmethod
    def number(cls, value) -> Expression:
        return cls(Kind.NUMBER, Number.coerce(value))

    @classmethod
    def integer(cls, value: int) -> Expression:
        return cls(Kind.NUMBER, Number.integer(value))

    @classmethod
    def rational(cls, numerator: int, denominator: int = 1) -> Expression:
        return cls(Kind.NUMBER, Number.rational(numerator, denominator))

    @classmethod
    def float(cls, value: float) -> Expression:
        return cls(Kind.NUMBER, Number.float(value))

    @classmethod
    def symbol(cls, sym: Symbol | str) -> Expression:
        if isinstance(sym, str):
            sym = intern_symbol(sym)
        return cls(Kind.SYMBOL, sym)

    @classmethod
    def undefined(cls, reason: str) -> Expression:
        return cls(Kind.UNDEFINED, reason)

    @classmethod
    def add(cls, *terms) -> Expression:
        return _canon.make_sum([as_expression(t) for t in terms])

    @classmethod
    def mul(cls, *factors) -> Expression:
        return _canon.make_product([as_expression(f) for f in factors])

    @classmethod
    def pow(cls, base, exponent) -> Expression:
        return _canon.make_power(as_expression(base), as_expression(exponent))

    @classmethod
    def sub(cls, a, b) -> Expression:
        negated = _canon.make_product([NEG_ONE, as_expression(b)])
        return _canon.make_sum([as_expression(a), negated])

    @classmethod
    def div(cls, a, b) -> Expression:
        reciprocal = _canon.make_power(as_expression(b), NEG_ONE)
        return _canon.make_product([as_expression(a), reciprocal])

    @classmethod
    def function(cls, name: str, *args) -> Expression:
        return _canon.make_function(name, [as_expression(a) for a in args])

    @classmethod
    def equation(cls, lhs, rhs) -> Expression:
        return _canon.make_equation(as_expression(lhs), as_expression(rhs))

    # Structure accessors

    @property
    def args(self) -> tuple:
        return self.children

    @property
    def value(self) -> Number:
        if self.kind is not Kind.NUMBER:
            raise ValidationError(f"{self} is not a number", code="NOT_A_NUMBER")
        return self.payload

    @property
    def sym(self) -> Symbol:
        if self.kind is not Kind.SYMBOL:
            raise ValidationError(f"{self} is not a symbol", code="NOT_A_SYMBOL")
        return self.payload

    @property
    def name(self) -> str:
        if self.kind is not Kind.FUNCTION:
            raise ValidationError(f"{self} is not a function call", code="NOT_A_FUNCTION")
        return self.payload

    @property
    def base(self) -> Expression:
        return self.children[0]

    @property
    def exponent(self) -> Expression:
        return self.children[1]

    @property
    def lhs(self) -> Expression:
        if self.kind is not Kind.EQUATION:
            raise ValidationError(f"{self} is not an equation", code="NOT_AN_EQUATION")
        return self.children[0]

    @property
    def rhs(self) -> Expression:
        if self.kind is not Kind.EQUATION:
            raise ValidationError(f"{self} is not an equation", code="NOT_AN_EQUATION")
        return self.children[1]

    @property
    def reason(self) -> str | None:
        return self.payload if self.kind is Kind.UNDEFINED else None

    # Predicates

    @property
    def is_number(self) -> bool:
        return self.kind is Kind.NUMBER

    @property
    def is_symbol(self) -> bool:
        return self.kind is Kind.SYMBOL

    @property
    def is_equation(self) -> bool:
        return self.kind is Kind.EQUATION

    @property
    def is_undefined(self) -> bool:
        return self.kind is Kind.UNDEFINED

    def is_zero(self) -> bool:
        return self.kind is Kind.NUMBER and self.payload.is_zero()

    def is_one(self) -> bool:
        return self.kind is Kind.NUMBER and self.payload.is_one()

    def is_exact(self) -> bool:
        """True when no approximate (float) number occurs in the tree."""
        return all(
            node.payload.is_exact for node in self.walk() if node.kind is Kind.NUMBER
        )

    def has_undefined(self) -> bool:
        return any(node.kind is Kind.UNDEFINED for node in self.walk())

    def free_symbols(self) -> frozenset:
        if self._free is None:
            if self.kind is Kind.SYMBOL:
                free = frozenset((self.payload,))
            else:
                free = frozenset().union(*(c.free_symbols() for c in self.children))
            object.__setattr__(self, "_free", free)
        return self._free

    def contains(self, sym: Symbol) -> bool:
        return sym in self.free_symbols()

    def walk(self) -> Iterator[Expression]:
        """Pre-order traversal."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def as_coefficient_and_term(self) -> tuple[Number, Expression]:
        """Split ``c * t`` into its numeric coefficient and the remaining term."""
        if self.kind is Kind.NUMBER:
            return self.payload, ONE
        if self.kind is Kind.PRODUCT and self.children[0].kind is Kind.NUMBER:
            rest = self.children[1:]
            term = rest[0] if len(rest) == 1 else Expression(Kind.PRODUCT, None, rest)
            return self.children[0].payload, term
        return Number.integer(1), self

    def as_base_and_exponent(self) -> tuple[Expression, Expression]:
        if self.kind is Kind.POWER:
            return self.children[0], self.children[1]
        return self, ONE

    # Transformations

    def substitute(self, mapping: dict) -> Expression:
        """Replace symbols (or whole subexpressions) and re-canonicalize."""
        table = {}
        for key, value in mapping.items():
            if isinstance(key, Symbol):
                key = Expression(Kind.SYMBOL, key)
            table[as_expression(key)] = as_expression(value)
        return _substitute(self, table)

    # Operators

    def __add__(self, other):
        return Expression.add(self, other)

    def __radd__(self, other):
        return Expression.add(other, self)

    def __sub__(self, other):
        return Expression.sub(self, other)

    def __rsub__(self, other):
        return Expression.sub(other, self)

    def __mul__(self, other):
        return Expression.mul(self, other)

    def __rmul__(self, other):
        return Expression.mul(other, self)

    def __truediv__(self, other):
        return Expression.div(self, other)

    def __rtruediv__(self, other):
        return Expression.div(other, self)

    def __pow__(self, other):
        return Expression.pow(self, other)

    def __rpow__(self, other):
        return Expression.pow(other, self)

    def __neg__(self):
        return _canon.make_product([NEG_ONE, self])

    def __pos__(self):
        return self

    # Identity

    def sort_key(self) -> tuple:
        """Total order used to sort commutative operands."""
        if self._key is None:
            rank = _RANK[self.kind]
            if self.kind is Kind.NUMBER:
                key = (rank, self.payload.value, _NUMBER_KIND_INDEX[self.payload.kind.value])
            elif self.kind is Kind.SYMBOL:
                key = (rank, self.payload.name)
            elif self.kind is Kind.FUNCTION:
                key = (rank, self.payload, tuple(c.sort_key() for c in self.children))
            elif self.kind is Kind.UNDEFINED:
                key = (rank, self.payload)
            else:
                key = (rank, tuple(c.sort_key() for c in self.children))
            object.__setattr__(self, "_key", key)
        return self._key

    def __eq__(self, other):
        if self is other:
            return True
        if not isinstance(other, Expression):
            if isinstance(other, (int, Fraction, float, Number)) and self.kind is Kind.NUMBER:
                return self.payload == Number.coerce(other)
            return NotImplemented
        return (
            self.kind is other.kind
            and self.payload == other.payload
            and self.children == other.children
        )

    def __hash__(self):
        if self._hash is None:
            object.__setattr__(
                self, "_hash", hash((self.kind.value, self.payload, self.children))
            )
        return self._hash

    def __reduce__(self):
        return (_rebuild, (self.kind, self.payload, self.children))

    def __repr__(self) -> str:
        return f"Expression({str(self)!r})"

    def __str__(self) -> str:
        return _render(self)


def _rebuild(kind, payload, children):
    return Expression(kind, payload, children)


def as_expression(value) -> Expression:
    """Coerce Python numbers, Numbers and Symbols to Expressions."""
    if isinstance(value, Expression):
        return value
    if isinstance(value, Symbol):
        return Expression(Kind.SYMBOL, value)
    if isinstance(value, (Number, int, Fraction, float)):
        return Expression(Kind.NUMBER, Number.coerce(value))
    raise TypeError(f"Cannot convert {type(value).__name__} to Expression")


def _substitute(expr: Expression, table: dict) -> Expression:
    hit = table.get(expr)
    if hit is not None:
        return hit
    if not expr.children:
        return expr
    new_children = [_substitute(c, table) for c in expr.children]
    if all(n is o for n, o in zip(new_children, expr.children)):
        return expr
    return _canon.rebuild(expr, new_children)


# Plain-text rendering, for logs and debugging


def _needs_parens(expr: Expression, parent: Kind) -> bool:
    if expr.kind is Kind.SUM:
        return parent in (Kind.PRODUCT, Kind.POWER)
    if expr.kind is Kind.PRODUCT:
        return parent is Kind.POWER
    if expr.kind is Kind.POWER:
        return parent is Kind.POWER
    if expr.kind is Kind.NUMBER:
        num = expr.payload
        return parent is Kind.POWER and (num.is_negative() or num.kind.value == "rational")
    return False


def _wrap(expr: Expression, parent: Kind) -> str:
    text = _render(expr)
    return f"({text})" if _needs_parens(expr, parent) else text


def _render(expr: Expression) -> str:
    kind = expr.kind
    if kind is Kind.NUMBER:
        return str(expr.payload)
    if kind is Kind.SYMBOL:
        return expr.payload.name
    if kind is Kind.UNDEFINED:
        return f"undefined({expr.payload})"
    if kind is Kind.FUNCTION:
        return f"{expr.payload}({', '.join(_render(c) for c in expr.children)})"
    if kind is Kind.EQUATION:
        return f"{_render(expr.children[0])} = {_render(expr.children[1])}"
    if kind is Kind.POWER:
        return f"{_wrap(expr.children[0], Kind.POWER)}^{_wrap(expr.children[1], Kind.POWER)}"
    if kind is Kind.PRODUCT:
        coeff, term = expr.as_coefficient_and_term()
        factors = term.children if term.kind is Kind.PRODUCT else (term,)
        body = "*".join(_wrap(f, Kind.PRODUCT) for f in factors)
        if coeff == MINUS_ONE:
            return f"-{body}"
        if coeff.is_one():
            return body
        return f"{_wrap(Expression(Kind.NUMBER, coeff), Kind.PRODUCT)}*{body}"
    # SUM
    pieces = []
    for i, term in enumerate(expr.children):
        text = _wrap(term, Kind.SUM)
        if i == 0:
            pieces.append(text)
        elif text.startswith("-"):
            pieces.append(f" - {text[1:]}")
        else:
            pieces.append(f" + {text}")
    return "".join(pieces)


ZERO = Expression(Kind.NUMBER, Number.integer(0))
ONE = Expression(Kind.NUMBER, Number.integer(1))
NEG_ONE = Expression(Kind.NUMBER, MINUS_ONE)

# Canonicalizing builders live in canonical.py, which depends on this module.
from . import canonical as _canon  # noqa: E402
