"""Exact-first numeric values.

A ``Number`` is one of three kinds:
- INTEGER: arbitrary precision ``int``
- RATIONAL: ``fractions.Fraction`` in lowest terms, denominator > 1
- FLOAT: approximate ``float``

Exact op exact stays exact; any FLOAT operand makes the result FLOAT.
Operations that would produce NaN or infinity raise DomainError instead.
"""

from __future__ import annotations

import math
from enum import Enum
from fractions import Fraction

from .types import DomainError


class NumberKind(str, Enum):
    INTEGER = "integer"
    RATIONAL = "rational"
    FLOAT = "float"


def integer_root(n: int, k: int) -> int | None:
    """Exact k-th root of a nonnegative integer, or None."""
    if n < 2:
        return n
    # Newton iteration from an upper bound decreases monotonically to floor(root)
    x = 1 << ((n.bit_length() + k - 1) // k)
    while True:
        y = ((k - 1) * x + n // x ** (k - 1)) // k
        if y >= x:
            break
        x = y
    for candidate in (x - 1, x, x + 1):
        if candidate >= 0 and candidate**k == n:
            return candidate
    return None


def _checked_float(value: float) -> float:
    if not math.isfinite(value):
        raise DomainError(
            "Floating-point operation produced a non-finite value", code="NON_FINITE"
        )
    return value


class Number:
    """Immutable tagged numeric value."""

    __slots__ = ("kind", "value")

    def __init__(self, kind: NumberKind, value):
        object.__setattr__(self, "kind", kind)
        object.__setattr__(self, "value", value)

    def __setattr__(self, key, value):
        raise AttributeError("Number is immutable")

    @classmethod
    def integer(cls, value: int) -> Number:
        return cls(NumberKind.INTEGER, int(value))

    @classmethod
    def rational(cls, numerator: int, denominator: int = 1) -> Number:
        if denominator == 0:
            raise DomainError("Rational with zero denominator", code="DIVISION_BY_ZERO")
        return cls._from_fraction(Fraction(numerator, denominator))

    @classmethod
    def float(cls, value: float) -> Number:
        return cls(NumberKind.FLOAT, _checked_float(float(value)))

    @classmethod
    def _from_fraction(cls, frac: Fraction) -> Number:
        if frac.denominator == 1:
            return cls(NumberKind.INTEGER, frac.numerator)
        return cls(NumberKind.RATIONAL, frac)

    @classmethod
    def coerce(cls, value) -> Number:
        """Build a Number from int, Fraction, float or Number."""
        if isinstance(value, Number):
            return value
        if isinstance(value, bool):
            return cls.integer(int(value))
        if isinstance(value, int):
            return cls.integer(value)
        if isinstance(value, Fraction):
            return cls._from_fraction(value)
        if isinstance(value, float):
            return cls.float(value)
        raise TypeError(f"Cannot convert {type(value).__name__} to Number")

    # Predicates

    @property
    def is_exact(self) -> bool:
        return self.kind is not NumberKind.FLOAT

    @property
    def is_integer(self) -> bool:
        return self.kind is NumberKind.INTEGER

    def is_zero(self) -> bool:
        return self.value == 0

    def is_one(self) -> bool:
        return self.value == 1

    def is_negative(self) -> bool:
        return self.value < 0

    def to_fraction(self) -> Fraction:
        return Fraction(self.value)

    @property
    def numerator(self) -> int:
        return self.to_fraction().numerator

    @property
    def denominator(self) -> int:
        return self.to_fraction().denominator

    # Arithmetic

    def _binary(self, other: Number, op) -> Number:
        if self.is_exact and other.is_exact:
            return Number._from_fraction(op(self.to_fraction(), other.to_fraction()))
        return Number.float(op(float(self.value), float(other.value)))

    def __add__(self, other):
        other = _as_number(other)
        if other is None:
            return NotImplemented
        return self._binary(other, lambda a, b: a + b)

    __radd__ = __add__

    def __sub__(self, other):
        other = _as_number(other)
        if other is None:
            return NotImplemented
        return self._binary(other, lambda a, b: a - b)

    def __rsub__(self, other):
        other = _as_number(other)
        if other is None:
            return NotImplemented
        return other._binary(self, lambda a, b: a - b)

    def __mul__(self, other):
        other = _as_number(other)
        if other is None:
            return NotImplemented
        return self._binary(other, lambda a, b: a * b)

    __rmul__ = __mul__

    def __truediv__(self, other):
        other = _as_number(other)
        if other is None:
            return NotImplemented
        if other.is_zero():
            raise DomainError("Division by zero", code="DIVISION_BY_ZERO")
        return self._binary(other, lambda a, b: a / b)

    def __rtruediv__(self, other):
        other = _as_number(other)
        if other is None:
            return NotImplemented
        return other.__truediv__(self)

    def __neg__(self):
        if self.is_exact:
            return Number._from_fraction(-self.to_fraction())
        return Number.float(-self.value)

    def __abs__(self):
        return -self if self.is_negative() else self

    def power(self, exponent: Number) -> Number | None:
        """Raise to ``exponent``; None when no exact/real value exists.

        Raises:
            DomainError: For zero raised to a negative power
        """
        if self.is_zero() and exponent.is_negative():
            raise DomainError("Zero raised to a negative power", code="DIVISION_BY_ZERO")
        if exponent.is_integer:
            n = exponent.value
            if self.is_exact:
                return Number._from_fraction(self.to_fraction() ** n)
            try:
                return Number.float(self.value**n)
            except OverflowError as e:
                raise DomainError(f"Overflow in power: {e}", code="NON_FINITE") from e
        if not exponent.is_exact or not self.is_exact:
            if self.value < 0:
                return None
            try:
                return Number.float(float(self.value) ** float(exponent.value))
            except OverflowError as e:
                raise DomainError(f"Overflow in power: {e}", code="NON_FINITE") from e
        # exact base, exact rational exponent p/q
        frac = exponent.to_fraction()
        p, q = frac.numerator, frac.denominator
        base = self.to_fraction()
        negative = base < 0
        if negative and q % 2 == 0:
            return None
        num = integer_root(abs(base.numerator), q)
        den = integer_root(base.denominator, q)
        if num is None or den is None:
            return None
        root = Fraction(-num if negative else num, den)
        if root == 0 and p < 0:
            raise DomainError("Zero raised to a negative power", code="DIVISION_BY_ZERO")
        return Number._from_fraction(root**p)

    # Comparison and hashing

    def __eq__(self, other):
        if isinstance(other, Number):
            return self.kind is other.kind and self.value == other.value
        if isinstance(other, (int, Fraction)) and not isinstance(other, bool):
            return self.is_exact and self.value == other
        if isinstance(other, float):
            return not self.is_exact and self.value == other
        return NotImplemented

    def __hash__(self):
        return hash((self.kind.value, self.value))

    def __reduce__(self):
        return (Number, (self.kind, self.value))

    def __lt__(self, other):
        other = _as_number(other)
        if other is None:
            return NotImplemented
        return self.value < other.value

    def __le__(self, other):
        other = _as_number(other)
        if other is None:
            return NotImplemented
        return self.value <= other.value

    def __float__(self):
        return float(self.value)

    def __int__(self):
        return int(self.value)

    def __repr__(self) -> str:
        return f"Number({self.kind.value}, {self})"

    def __str__(self) -> str:
        if self.kind is NumberKind.RATIONAL:
            return f"{self.value.numerator}/{self.value.denominator}"
        return str(self.value)


def _as_number(value) -> Number | None:
    try:
        return Number.coerce(value)
    except TypeError:
        return None


ZERO = Number.integer(0)
ONE = Number.integer(1)
MINUS_ONE = Number.integer(-1)
