"""Sparse multivariate polynomials over the rationals.

A monomial is a tuple of nonnegative exponents aligned with a fixed tuple of
variables; a polynomial maps monomials to nonzero ``Fraction`` coefficients.
This is the representation the Gröbner engine works in; conversion to and
from canonical Expressions happens at the boundary.
"""

from __future__ import annotations

import math
from enum import Enum
from fractions import Fraction

from .calculus import is_numeric_constant, numeric_value
from .canonical import expand
from .expression import Expression, Kind
from .types import NotPolynomialError, ValidationError

Monomial = tuple


class MonomialOrder(str, Enum):
    """Admissible monomial orders; larger ``key`` means larger monomial."""

    LEX = "lex"
    GRLEX = "grlex"
    GREVLEX = "grevlex"

    def key(self, monomial: Monomial) -> tuple:
        if self is MonomialOrder.LEX:
            return monomial
        if self is MonomialOrder.GRLEX:
            return (sum(monomial), monomial)
        # ties broken by the smallest exponent in the last variable winning
        return (sum(monomial), tuple(-e for e in reversed(monomial)))

    @classmethod
    def parse(cls, value) -> MonomialOrder:
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError as e:
            raise ValidationError(
                f"Unknown monomial order: {value!r}", code="UNKNOWN_ORDER"
            ) from e


def mono_mul(a: Monomial, b: Monomial) -> Monomial:
    return tuple(x + y for x, y in zip(a, b))


def mono_divides(a: Monomial, b: Monomial) -> bool:
    """True when ``a`` divides ``b``."""
    return all(x <= y for x, y in zip(a, b))


def mono_div(a: Monomial, b: Monomial) -> Monomial:
    return tuple(x - y for x, y in zip(a, b))


def mono_lcm(a: Monomial, b: Monomial) -> Monomial:
    return tuple(max(x, y) for x, y in zip(a, b))


def mono_degree(m: Monomial) -> int:
    return sum(m)


def mono_is_one(m: Monomial) -> bool:
    return not any(m)


def mono_gcd_is_one(a: Monomial, b: Monomial) -> bool:
    """Relatively prime test: no variable appears in both."""
    return all(x == 0 or y == 0 for x, y in zip(a, b))


class Polynomial:
    """Immutable sparse polynomial with rational coefficients."""

    __slots__ = ("terms", "variables", "order", "_lead")

    def __init__(self, terms: dict, variables: tuple, order: MonomialOrder = MonomialOrder.LEX):
        object.__setattr__(self, "terms", {m: c for m, c in terms.items() if c != 0})
        object.__setattr__(self, "variables", tuple(variables))
        object.__setattr__(self, "order", order)
        object.__setattr__(self, "_lead", None)

    def __setattr__(self, key, value):
        raise AttributeError("Polynomial is immutable")

    @classmethod
    def zero(cls, variables, order=MonomialOrder.LEX) -> Polynomial:
        return cls({}, variables, order)

    @classmethod
    def constant(cls, value, variables, order=MonomialOrder.LEX) -> Polynomial:
        return cls({(0,) * len(variables): Fraction(value)}, variables, order)

    # Structure

    def is_zero(self) -> bool:
        return not self.terms

    def is_constant(self) -> bool:
        return all(not any(m) for m in self.terms)

    @property
    def leading_monomial(self) -> Monomial:
        if self._lead is None:
            if not self.terms:
                raise ValidationError("Zero polynomial has no leading term", code="ZERO_POLYNOMIAL")
            object.__setattr__(self, "_lead", max(self.terms, key=self.order.key))
        return self._lead

    @property
    def leading_coefficient(self) -> Fraction:
        return self.terms[self.leading_monomial]

    @property
    def leading_term(self) -> tuple[Monomial, Fraction]:
        return self.leading_monomial, self.leading_coefficient

    def sorted_terms(self) -> list[tuple[Monomial, Fraction]]:
        """Terms in decreasing monomial order."""
        return sorted(self.terms.items(), key=lambda t: self.order.key(t[0]), reverse=True)

    def variables_used(self) -> frozenset:
        used = set()
        for mono in self.terms:
            used.update(i for i, e in enumerate(mono) if e)
        return frozenset(used)

    def degree_in(self, index: int) -> int:
        return max((m[index] for m in self.terms), default=0)

    def total_degree(self) -> int:
        return max((sum(m) for m in self.terms), default=0)

    def univariate_coefficients(self, index: int) -> list[Fraction]:
        """Dense coefficient list (constant first) of a polynomial in one variable."""
        if self.variables_used() - {index}:
            raise NotPolynomialError(
                f"{self} is not univariate in {self.variables[index].name}",
                code="NOT_UNIVARIATE",
            )
        coeffs = [Fraction(0)] * (self.degree_in(index) + 1)
        for mono, c in self.terms.items():
            coeffs[mono[index]] = c
        return coeffs

    # Arithmetic

    def _with_terms(self, terms: dict) -> Polynomial:
        return Polynomial(terms, self.variables, self.order)

    def __add__(self, other: Polynomial) -> Polynomial:
        terms = dict(self.terms)
        for m, c in other.terms.items():
            terms[m] = terms.get(m, 0) + c
        return self._with_terms(terms)

    def __sub__(self, other: Polynomial) -> Polynomial:
        terms = dict(self.terms)
        for m, c in other.terms.items():
            terms[m] = terms.get(m, 0) - c
        return self._with_terms(terms)

    add = __add__
    sub = __sub__

    def __neg__(self) -> Polynomial:
        return self._with_terms({m: -c for m, c in self.terms.items()})

    def __mul__(self, other: Polynomial) -> Polynomial:
        terms: dict = {}
        for m1, c1 in self.terms.items():
            for m2, c2 in other.terms.items():
                m = mono_mul(m1, m2)
                terms[m] = terms.get(m, 0) + c1 * c2
        return self._with_terms(terms)

    def scale(self, factor) -> Polynomial:
        factor = Fraction(factor)
        return self._with_terms({m: c * factor for m, c in self.terms.items()})

    def mul_term(self, coefficient, monomial: Monomial) -> Polynomial:
        coefficient = Fraction(coefficient)
        return self._with_terms(
            {mono_mul(m, monomial): c * coefficient for m, c in self.terms.items()}
        )

    def monic(self) -> Polynomial:
        if self.is_zero():
            return self
        return self.scale(1 / self.leading_coefficient)

    def with_order(self, order: MonomialOrder) -> Polynomial:
        return Polynomial(self.terms, self.variables, order)

    # Identity

    def __eq__(self, other):
        if not isinstance(other, Polynomial):
            return NotImplemented
        return self.variables == other.variables and self.terms == other.terms

    def __hash__(self):
        return hash((self.variables, frozenset(self.terms.items())))

    def __repr__(self) -> str:
        return f"Polynomial({self.to_expression()}, order={self.order.value})"

    def __str__(self) -> str:
        return str(self.to_expression())

    # Conversion

    def to_expression(self) -> Expression:
        terms = []
        for mono, c in self.sorted_terms():
            factors = [Expression.number(c)]
            for var, e in zip(self.variables, mono):
                if e:
                    factors.append(Expression.pow(var, e))
            terms.append(Expression.mul(*factors))
        return Expression.add(*terms)

    @classmethod
    def from_expression(
        cls, expr: Expression, variables, order: MonomialOrder = MonomialOrder.LEX
    ) -> Polynomial:
        """Read a canonical expression as a polynomial with rational coefficients.

        Equations are converted through ``lhs - rhs``.

        Raises:
            NotPolynomialError: If the expression is not polynomial in
                ``variables`` with exact rational coefficients
        """
        variables = tuple(variables)
        index = {var: i for i, var in enumerate(variables)}
        if expr.kind is Kind.EQUATION:
            expr = expr.lhs - expr.rhs
        expanded = expand(expr)
        if expanded.has_undefined():
            raise NotPolynomialError(f"{expr} is undefined", code="UNDEFINED")
        terms: dict = {}
        for term in expanded.children if expanded.kind is Kind.SUM else (expanded,):
            coeff, body = term.as_coefficient_and_term()
            if not coeff.is_exact:
                raise NotPolynomialError(
                    f"Approximate coefficient in {term}", code="INEXACT_COEFFICIENT"
                )
            mono = [0] * len(variables)
            factors = () if body.is_one() else (
                body.children if body.kind is Kind.PRODUCT else (body,)
            )
            for factor in factors:
                base, exponent = factor.as_base_and_exponent()
                if (
                    base.kind is Kind.SYMBOL
                    and base.payload in index
                    and exponent.kind is Kind.NUMBER
                    and exponent.payload.is_integer
                    and exponent.payload.value > 0
                ):
                    mono[index[base.payload]] += exponent.payload.value
                else:
                    raise NotPolynomialError(
                        f"{term} is not a rational monomial in "
                        f"{', '.join(v.name for v in variables)}"
                    )
            key = tuple(mono)
            terms[key] = terms.get(key, 0) + coeff.to_fraction()
        return cls(terms, variables, order)


# Univariate root helpers shared by the single-equation strategies and the
# Gröbner back-substitution.


def _divisors(n: int) -> list[int]:
    n = abs(n)
    small, large = [], []
    d = 1
    while d * d <= n:
        if n % d == 0:
            small.append(d)
            if d * d != n:
                large.append(n // d)
        d += 1
    return small + large[::-1]


def _evaluate(coeffs: list[Fraction], x: Fraction) -> Fraction:
    acc = Fraction(0)
    for c in reversed(coeffs):
        acc = acc * x + c
    return acc


def _deflate(coeffs: list[Fraction], root: Fraction) -> list[Fraction]:
    """Synthetic division by ``(x - root)``; coefficients constant first."""
    out = [Fraction(0)] * (len(coeffs) - 1)
    carry = Fraction(0)
    for i in range(len(coeffs) - 1, 0, -1):
        carry = carry * root + coeffs[i]
        out[i - 1] = carry
    return out


def rational_roots(coeffs) -> tuple[list[Fraction], list[Fraction]]:
    """Rational roots of a univariate polynomial and the deflated remainder.

    Args:
        coeffs: Rational coefficients, constant term first

    Returns:
        ``(roots, remainder)`` where each root is listed with its
        multiplicity and ``remainder`` has no rational roots left
    """
    coeffs = [Fraction(c) for c in coeffs]
    while len(coeffs) > 1 and coeffs[-1] == 0:
        coeffs.pop()
    roots: list[Fraction] = []
    while len(coeffs) > 1 and coeffs[0] == 0:
        roots.append(Fraction(0))
        coeffs = coeffs[1:]
    found = True
    while found and len(coeffs) > 1:
        found = False
        scale = 1
        for c in coeffs:
            scale = scale * c.denominator // math.gcd(scale, c.denominator)
        ints = [int(c * scale) for c in coeffs]
        for p in _divisors(ints[0]):
            for q in _divisors(ints[-1]):
                for candidate in (Fraction(p, q), Fraction(-p, q)):
                    if _evaluate(coeffs, candidate) == 0:
                        roots.append(candidate)
                        coeffs = _deflate(coeffs, candidate)
                        found = True
                        break
                if found:
                    break
            if found:
                break
    return roots, coeffs


def solve_linear(a: Expression, b: Expression) -> Expression:
    """Root of ``a x + b`` for a nonzero ``a``."""
    return -b / a


def solve_quadratic(
    a: Expression, b: Expression, c: Expression, allow_complex: bool = False
) -> list[Expression] | None:
    """Roots of ``a x^2 + b x + c`` by the quadratic formula.

    Square roots of the discriminant stay symbolic unless they are exact.
    A negative discriminant gives no roots unless ``allow_complex``; a
    discriminant whose sign cannot be decided gives None.
    """
    disc = expand(b * b - 4 * a * c)
    if disc.is_zero():
        return [expand(-b / (2 * a))]
    if disc.kind is Kind.NUMBER:
        negative = disc.payload.is_negative()
    elif is_numeric_constant(disc):
        approx = numeric_value(disc)
        if approx is None:
            return None
        negative = approx < 0
    else:
        # symbolic discriminant: keep both branches
        negative = False
    if negative and not allow_complex:
        return []
    root = Expression.pow(disc, Expression.rational(1, 2))
    return [expand((-b - root) / (2 * a)), expand((-b + root) / (2 * a))]
