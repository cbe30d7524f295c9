"""Canonicalization and simplification of expressions.

Canonical form rules, applied bottom-up:
1. Flatten nested sums and products
2. Combine like terms (sums) and equal bases (products, by adding exponents)
3. Operator identities: power of power, power of product, x^0, x^1
4. Sort commutative operands by ``Expression.sort_key``
5. Fold numeric subexpressions (exact stays exact, floats stay approximate)

``0^0`` and division by a provable zero produce an Undefined expression
instead of a number, and Undefined absorbs every operator it appears in.

The builders below assume their children are already canonical; the public
``canonicalize`` walks arbitrary trees (e.g. freshly deserialized ones).
"""

from __future__ import annotations

from fractions import Fraction
from functools import lru_cache

from .config import CACHE_SIZE_CANONICAL, DEBUG_INVARIANTS
from .expression import NEG_ONE, ONE, Expression, Kind, as_expression
from .numeric import Number, integer_root
from .types import DomainError, InternalInvariantViolation

# Trial division bound when pulling perfect powers out of radicals
_RADICAL_TRIAL_LIMIT = 10_000


def _num(value: Number) -> Expression:
    return Expression(Kind.NUMBER, value)


def _pick_undefined(items) -> Expression | None:
    # smallest by sort key so the pick does not depend on operand order
    undefined = [item for item in items if item.kind is Kind.UNDEFINED]
    return min(undefined, key=Expression.sort_key, default=None)


def _scale(term: Expression, coefficient: Number) -> Expression:
    """Attach a numeric coefficient to a coefficient-free term."""
    if term.kind is Kind.PRODUCT:
        return Expression(Kind.PRODUCT, None, (_num(coefficient),) + term.children)
    return Expression(Kind.PRODUCT, None, (_num(coefficient), term))


def make_sum(terms) -> Expression:
    flat = []
    for term in terms:
        if term.kind is Kind.SUM:
            flat.extend(term.children)
        else:
            flat.append(term)
    undefined = _pick_undefined(flat)
    if undefined is not None:
        return undefined

    constant = Number.integer(0)
    coefficients: dict[Expression, Number] = {}
    for term in flat:
        if term.kind is Kind.NUMBER:
            constant = constant + term.payload
            continue
        coeff, body = term.as_coefficient_and_term()
        if body in coefficients:
            coefficients[body] = coefficients[body] + coeff
        else:
            coefficients[body] = coeff

    out = []
    for body, coeff in coefficients.items():
        if coeff.is_zero():
            continue
        out.append(body if coeff.is_exact and coeff.is_one() else _scale(body, coeff))
    if not out:
        return _num(constant)
    if not constant.is_zero():
        out.append(_num(constant))
    if len(out) == 1:
        return out[0]
    out.sort(key=Expression.sort_key)
    return Expression(Kind.SUM, None, tuple(out))


def make_product(factors) -> Expression:
    flat = []
    for factor in factors:
        if factor.kind is Kind.PRODUCT:
            flat.extend(factor.children)
        else:
            flat.append(factor)
    undefined = _pick_undefined(flat)
    if undefined is not None:
        return undefined

    coefficient = Number.integer(1)
    groups: dict[Expression, list[Expression]] = {}
    for factor in flat:
        if factor.kind is Kind.NUMBER:
            coefficient = coefficient * factor.payload
            continue
        base, _ = factor.as_base_and_exponent()
        groups.setdefault(base, []).append(factor)

    results = []
    regroup = False
    for base, members in groups.items():
        if len(members) == 1:
            powered = members[0]
        else:
            exponent = make_sum([m.as_base_and_exponent()[1] for m in members])
            powered = make_power(base, exponent)
        if powered.kind is Kind.UNDEFINED:
            return powered
        if powered.kind is Kind.NUMBER:
            coefficient = coefficient * powered.payload
        elif powered.kind is Kind.PRODUCT:
            regroup = True
            results.append(powered)
        else:
            results.append(powered)

    if regroup:
        return make_product([_num(coefficient)] + results)
    if coefficient.is_zero() or not results:
        return _num(coefficient)
    results.sort(key=Expression.sort_key)
    if coefficient.is_exact and coefficient.is_one():
        if len(results) == 1:
            return results[0]
        return Expression(Kind.PRODUCT, None, tuple(results))
    return Expression(Kind.PRODUCT, None, (_num(coefficient),) + tuple(results))


def _extract_perfect_power(m: int, q: int) -> tuple[int, int]:
    """Split ``m`` into ``s**q * t`` pulling out the q-th powers trial division finds."""
    s, t = 1, 1
    f = 2
    while f * f <= m and f < _RADICAL_TRIAL_LIMIT:
        k = 0
        while m % f == 0:
            m //= f
            k += 1
        if k:
            s *= f ** (k // q)
            t *= f ** (k % q)
        f += 1 if f == 2 else 2
    if m > 1:
        root = integer_root(m, q)
        if root is not None:
            s *= root
        else:
            t *= m
    return s, t


def _radical(base: Number, exponent: Number) -> Expression:
    """Normal form of an exact number raised to a non-integer rational power.

    ``b^(p/q)`` becomes ``c * t^(r/q)`` with ``0 < r < q``, an integer
    radicand ``t`` free of the q-th powers trial division can find, and the
    denominator rationalized.
    """
    raw = Expression(Kind.POWER, None, (_num(base), _num(exponent)))
    if not (base.is_exact and exponent.is_exact):
        return raw
    frac = exponent.to_fraction()
    p, q = frac.numerator, frac.denominator
    b = base.to_fraction()
    if b < 0 and q % 2 == 0:
        return raw
    whole, r = divmod(p, q)
    sign = -1 if b < 0 else 1
    n, d = abs(b.numerator), b.denominator
    s, t = _extract_perfect_power(n * d ** (q - 1), q)
    coefficient = b**whole * Fraction(sign**r * s**r, d**r)
    if t == 1:
        return _num(Number.coerce(coefficient))
    radical = Expression(
        Kind.POWER, None, (_num(Number.integer(t)), _num(Number.rational(r, q)))
    )
    if coefficient == 1:
        return radical
    return Expression(Kind.PRODUCT, None, (_num(Number.coerce(coefficient)), radical))


def _is_positive(expr: Expression) -> bool:
    if expr.kind is Kind.NUMBER:
        return expr.payload.value > 0
    if expr.kind is Kind.SYMBOL:
        return expr.payload.is_assumed("positive")
    return False


def make_power(base: Expression, exponent: Expression) -> Expression:
    undefined = _pick_undefined((base, exponent))
    if undefined is not None:
        return undefined

    if exponent.kind is Kind.NUMBER:
        n = exponent.payload
        if n.is_zero():
            if base.is_zero():
                return Expression.undefined("0^0")
            return ONE if n.is_exact else _num(Number.float(1.0))
        if base.kind is Kind.NUMBER:
            try:
                folded = base.payload.power(n)
            except DomainError as e:
                return Expression.undefined(e.message)
            if folded is not None:
                return _num(folded)
            return _radical(base.payload, n)
        if n.is_one():
            return base
        if base.kind is Kind.POWER:
            inner_base, inner_exp = base.children
            if n.is_integer or _is_positive(inner_base):
                return make_power(inner_base, make_product([inner_exp, exponent]))
        if base.kind is Kind.PRODUCT and n.is_integer:
            return make_product([make_power(f, exponent) for f in base.children])
    elif base.is_one():
        return ONE
    return Expression(Kind.POWER, None, (base, exponent))


def make_function(name: str, args) -> Expression:
    args = tuple(args)
    undefined = _pick_undefined(args)
    if undefined is not None:
        return undefined
    from .functions import default_registry

    evaluated = default_registry().evaluate_if_exact(name, args)
    if evaluated is not None:
        return evaluated
    return Expression(Kind.FUNCTION, name, args)


def make_equation(lhs: Expression, rhs: Expression) -> Expression:
    undefined = _pick_undefined((lhs, rhs))
    if undefined is not None:
        return undefined
    return Expression(Kind.EQUATION, None, (lhs, rhs))


def rebuild(expr: Expression, children) -> Expression:
    """Rebuild ``expr`` with new (canonical) children through the builders."""
    kind = expr.kind
    if kind is Kind.SUM:
        return make_sum(children)
    if kind is Kind.PRODUCT:
        return make_product(children)
    if kind is Kind.POWER:
        return make_power(children[0], children[1])
    if kind is Kind.FUNCTION:
        return make_function(expr.payload, children)
    if kind is Kind.EQUATION:
        return make_equation(children[0], children[1])
    return expr


@lru_cache(maxsize=CACHE_SIZE_CANONICAL)
def _canonicalize_cached(expr: Expression) -> Expression:
    if not expr.children:
        return expr
    return rebuild(expr, [_canonicalize_cached(c) for c in expr.children])


def canonicalize(expr) -> Expression:
    """Rewrite an expression tree into canonical form.

    Total, pure and idempotent: ``canonicalize(canonicalize(e)) == canonicalize(e)``.

    Args:
        expr: Expression (possibly built without canonicalization) or a
            Python number/Symbol

    Returns:
        The canonical Expression
    """
    return _canonicalize_cached(as_expression(expr))


def check_canonical(expr: Expression, where: str = "core") -> Expression:
    """Guard for components that assume canonical input.

    Only active when ``ALJABAR_DEBUG_INVARIANTS`` is enabled.

    Raises:
        InternalInvariantViolation: If ``expr`` is not in canonical form
    """
    if DEBUG_INVARIANTS and canonicalize(expr) != expr:
        raise InternalInvariantViolation(
            f"Non-canonical expression reached {where}: {expr}"
        )
    return expr


def _distribute(left: Expression, right: Expression) -> Expression:
    left_terms = left.children if left.kind is Kind.SUM else (left,)
    right_terms = right.children if right.kind is Kind.SUM else (right,)
    return make_sum([make_product([a, b]) for a in left_terms for b in right_terms])


def expand(expr) -> Expression:
    """Distribute products over sums and expand integer powers of sums."""
    expr = as_expression(expr)
    if not expr.children:
        return expr
    children = [expand(c) for c in expr.children]
    if expr.kind is Kind.PRODUCT:
        result = ONE
        for child in children:
            result = _distribute(result, child)
        return result
    if expr.kind is Kind.POWER:
        base, exponent = children
        if (
            base.kind is Kind.SUM
            and exponent.kind is Kind.NUMBER
            and exponent.payload.is_integer
            and exponent.payload.value != 0
        ):
            count = abs(exponent.payload.value)
            result = base
            for _ in range(count - 1):
                result = _distribute(result, base)
            return result if exponent.payload.value > 0 else make_power(result, NEG_ONE)
        powered = make_power(base, exponent)
        if powered.kind is Kind.PRODUCT and any(c.kind is Kind.SUM for c in powered.children):
            return expand(powered)
        return powered
    return rebuild(expr, children)


def node_count(expr: Expression) -> int:
    return sum(1 for _ in expr.walk())


def simplify(expr) -> Expression:
    """Canonical form, or its expansion when that is structurally smaller."""
    canonical = canonicalize(expr)
    expanded = expand(canonical)
    if node_count(expanded) < node_count(canonical):
        return expanded
    return canonical
