"""Gröbner bases by Buchberger's algorithm and solution extraction.

The pair queue is a heap keyed on the monomial order of ``lcm(LM(f), LM(g))``
with an insertion counter as tie-break, so runs are deterministic. Pairs are
pruned by the product criterion (coprime leading monomials) and by the
Gebauer–Möller chain criterion before their S-polynomials are reduced.
"""

from __future__ import annotations

import heapq
import itertools
import time
from dataclasses import dataclass
from fractions import Fraction

from .calculus import coefficients, numeric_value
from .canonical import check_canonical, expand
from .config import (
    DEFAULT_MONOMIAL_ORDER,
    GROEBNER_MAX_PAIRS,
    GROEBNER_MAX_SECONDS,
    MAX_EXTRACTION_DEGREE,
    ROOT_DEDUP_TOLERANCE,
)
from .expression import Expression
from .logging_config import get_logger
from .polynomial import (
    MonomialOrder,
    Polynomial,
    mono_div,
    mono_divides,
    mono_gcd_is_one,
    mono_is_one,
    mono_lcm,
    rational_roots,
    solve_linear,
    solve_quadratic,
)
from .types import NonConvergence, NotPolynomialError, SolverResult, Step, system_solution

logger = get_logger("groebner")


@dataclass(frozen=True)
class Budget:
    """Work limits for one Gröbner computation; checked once per pair.

    Read-only, so one Budget can be shared by concurrent computations. The
    clock is owned by each ``compute_basis`` call.
    """

    max_pairs: int | None = GROEBNER_MAX_PAIRS
    max_seconds: float | None = GROEBNER_MAX_SECONDS

    def exhausted(self, pairs_processed: int, elapsed: float) -> bool:
        if self.max_pairs is not None and pairs_processed >= self.max_pairs:
            return True
        return self.max_seconds is not None and elapsed >= self.max_seconds


@dataclass(frozen=True)
class GroebnerBasis:
    polynomials: tuple
    variables: tuple
    order: MonomialOrder
    complete: bool = True
    pairs_processed: int = 0
    pairs_skipped: int = 0

    def contains(self, p) -> bool:
        """Ideal membership: ``p`` reduces to zero modulo the basis.

        Raises:
            NonConvergence: If the basis is incomplete, so membership is unknown
        """
        if not self.complete:
            raise NonConvergence(
                "Ideal membership needs a complete Gröbner basis", code="INCOMPLETE_BASIS"
            )
        if not isinstance(p, Polynomial):
            p = Polynomial.from_expression(p, self.variables, self.order)
        return reduce(p.with_order(self.order), self.polynomials).is_zero()

    def is_inconsistent(self) -> bool:
        return (
            self.complete
            and len(self.polynomials) == 1
            and self.polynomials[0].is_constant()
            and not self.polynomials[0].is_zero()
        )

    def as_expressions(self) -> tuple:
        return tuple(p.to_expression() for p in self.polynomials)

    def to_dict(self) -> dict:
        return {
            "polynomials": [str(p) for p in self.polynomials],
            "variables": [v.name for v in self.variables],
            "order": self.order.value,
            "complete": self.complete,
            "pairs_processed": self.pairs_processed,
            "pairs_skipped": self.pairs_skipped,
        }


def s_polynomial(f: Polynomial, g: Polynomial) -> Polynomial:
    lm_f, lm_g = f.leading_monomial, g.leading_monomial
    lcm = mono_lcm(lm_f, lm_g)
    return f.mul_term(1 / f.leading_coefficient, mono_div(lcm, lm_f)) - g.mul_term(
        1 / g.leading_coefficient, mono_div(lcm, lm_g)
    )


def reduce(p: Polynomial, basis) -> Polynomial:
    """Remainder of ``p`` on full multivariate division by ``basis``."""
    divisors = [g for g in basis if not g.is_zero()]
    remainder: dict = {}
    while not p.is_zero():
        lm, lc = p.leading_term
        for g in divisors:
            if mono_divides(g.leading_monomial, lm):
                p = p - g.mul_term(lc / g.leading_coefficient, mono_div(lm, g.leading_monomial))
                break
        else:
            remainder[lm] = lc
            p = p - Polynomial({lm: lc}, p.variables, p.order)
    return Polynomial(remainder, p.variables, p.order)


def _to_polynomials(generators, variables, order) -> list[Polynomial]:
    polys = []
    for gen in generators:
        if isinstance(gen, Polynomial):
            p = Polynomial(gen.terms, variables, order) if gen.variables == variables else None
            if p is None:
                p = Polynomial.from_expression(gen.to_expression(), variables, order)
        else:
            p = Polynomial.from_expression(gen, variables, order)
        if not p.is_zero():
            polys.append(p.monic())
    return polys


def _minimize(basis: list[Polynomial]) -> list[Polynomial]:
    kept: list[Polynomial] = []
    for i, p in enumerate(basis):
        lm = p.leading_monomial
        redundant = False
        for j, q in enumerate(basis):
            if i == j or not mono_divides(q.leading_monomial, lm):
                continue
            # equal leading monomials: keep the first occurrence only
            if q.leading_monomial != lm or j < i:
                redundant = True
                break
        if not redundant:
            kept.append(p)
    return kept


def _interreduce(basis: list[Polynomial], order: MonomialOrder) -> tuple:
    reduced = []
    for i, p in enumerate(basis):
        others = basis[:i] + basis[i + 1 :]
        reduced.append(reduce(p, others).monic())
    reduced.sort(key=lambda q: order.key(q.leading_monomial), reverse=True)
    return tuple(reduced)


def compute_basis(
    generators,
    variables,
    order=None,
    budget: Budget | None = None,
    trace: list | None = None,
) -> GroebnerBasis:
    """Compute the reduced Gröbner basis of the ideal spanned by ``generators``.

    Args:
        generators: Polynomials or canonical Expressions (equations are read
            as ``lhs - rhs``)
        variables: Ordered variables; the first is the largest under LEX
        order: Monomial order (``MonomialOrder`` or its name); defaults to
            ``ALJABAR_DEFAULT_MONOMIAL_ORDER``
        budget: Pair and time limits; defaults from configuration
        trace: When a list, one ``Step`` is appended per processed pair

    Returns:
        GroebnerBasis. With an exhausted budget ``complete`` is False and the
        polynomials are the partial (unreduced) basis computed so far.

    Raises:
        NotPolynomialError: If a generator is not polynomial over the rationals
        InternalInvariantViolation: If a generator Expression is not canonical
            (only checked with ``ALJABAR_DEBUG_INVARIANTS``)
    """
    order = MonomialOrder.parse(order or DEFAULT_MONOMIAL_ORDER)
    variables = tuple(variables)
    generators = list(generators)
    budget = budget or Budget()
    started = time.monotonic()
    for gen in generators:
        if isinstance(gen, Expression):
            check_canonical(gen, "compute_basis")

    basis = _to_polynomials(generators, variables, order)
    if not basis:
        return GroebnerBasis((), variables, order)
    for p in basis:
        if p.is_constant():
            one = Polynomial.constant(1, variables, order)
            return GroebnerBasis((one,), variables, order)

    queue: list = []
    counter = itertools.count()
    processed = skipped = 0

    def add_pairs(k: int) -> None:
        nonlocal skipped
        lm_k = basis[k].leading_monomial
        # chain criterion on queued pairs
        survivors = []
        for entry in queue:
            _, _, i, j, lcm = entry
            if (
                mono_divides(lm_k, lcm)
                and mono_lcm(basis[i].leading_monomial, lm_k) != lcm
                and mono_lcm(basis[j].leading_monomial, lm_k) != lcm
            ):
                skipped += 1
                continue
            survivors.append(entry)
        if len(survivors) != len(queue):
            queue[:] = survivors
            heapq.heapify(queue)
        for i in range(k):
            lm_i = basis[i].leading_monomial
            if mono_gcd_is_one(lm_i, lm_k):
                skipped += 1
                continue
            lcm = mono_lcm(lm_i, lm_k)
            heapq.heappush(queue, (order.key(lcm), next(counter), i, k, lcm))

    for k in range(len(basis)):
        add_pairs(k)

    complete = True
    while queue:
        elapsed = time.monotonic() - started
        if budget.exhausted(processed, elapsed):
            complete = False
            logger.warning(
                f"Gröbner budget exhausted after {processed} pairs "
                f"({elapsed:.2f}s, {len(queue)} pairs pending)"
            )
            break
        _, _, i, j, _ = heapq.heappop(queue)
        processed += 1
        remainder = reduce(s_polynomial(basis[i], basis[j]), basis)
        if trace is not None:
            trace.append(
                Step(
                    "s_pair",
                    f"S({i}, {j}) reduced to {'zero' if remainder.is_zero() else 'new element'}",
                    () if remainder.is_zero() else (remainder.to_expression(),),
                )
            )
        if remainder.is_zero():
            continue
        remainder = remainder.monic()
        if mono_is_one(remainder.leading_monomial):
            logger.debug(f"Unit ideal detected after {processed} pairs")
            one = Polynomial.constant(1, variables, order)
            return GroebnerBasis((one,), variables, order, True, processed, skipped)
        basis.append(remainder)
        add_pairs(len(basis) - 1)
        logger.debug(f"Basis grew to {len(basis)} elements ({processed} pairs processed)")

    if not complete:
        return GroebnerBasis(tuple(basis), variables, order, False, processed, skipped)
    reduced = _interreduce(_minimize(basis), order)
    logger.debug(
        f"Reduced Gröbner basis: {len(reduced)} elements, "
        f"{processed} pairs processed, {skipped} skipped"
    )
    return GroebnerBasis(reduced, variables, order, True, processed, skipped)


# Solution extraction


class _Undecided(Exception):
    """A univariate piece could not be solved exactly."""


def _univariate_roots(expr: Expression, var, allow_complex: bool) -> list[Expression]:
    coeffs = coefficients(expr, var)
    top = max(coeffs, default=0)
    if top == 0:
        # a nonzero constant after substitution rules the branch out
        return [] if coeffs else None
    get = lambda d: coeffs.get(d, Expression.integer(0))  # noqa: E731
    if top == 1:
        return [expand(solve_linear(get(1), get(0)))]
    if top == 2 and MAX_EXTRACTION_DEGREE >= 2:
        roots = solve_quadratic(get(2), get(1), get(0), allow_complex=allow_complex)
        if roots is None:
            raise _Undecided(f"cannot decide the sign of a discriminant in {expr}")
        return roots
    if all(c.is_number and c.is_exact() for c in coeffs.values()):
        dense = [
            coeffs[d].value.to_fraction() if d in coeffs else Fraction(0)
            for d in range(top + 1)
        ]
        found, remainder = rational_roots(dense)
        roots = [Expression.number(r) for r in found]
        degree_left = len(remainder) - 1
        if degree_left == 0:
            return roots
        if degree_left <= MAX_EXTRACTION_DEGREE:
            rest = [Expression.number(c) for c in remainder]
            if degree_left == 1:
                return roots + [expand(solve_linear(rest[1], rest[0]))]
            extra = solve_quadratic(rest[2], rest[1], rest[0], allow_complex=allow_complex)
            return roots + (extra or [])
    raise _Undecided(f"no exact roots for degree {top} polynomial in {var.name}")


def _dedupe(values: list) -> list:
    seen = []
    for v in values:
        if v not in seen:
            seen.append(v)
    return seen


def extract_solutions(basis: GroebnerBasis) -> SolverResult:
    """Read the finite solution set off a reduced LEX Gröbner basis.

    Returns:
        NoSolution for the unit ideal, InfiniteSolutions (relations = basis)
        for a positive-dimensional ideal, the solutions when back-substitution
        succeeds exactly, otherwise Indeterminate carrying the basis.
    """
    if not basis.complete:
        return SolverResult.indeterminate(
            "Gröbner basis computation exceeded its budget", basis=basis.as_expressions()
        )
    if basis.is_inconsistent():
        return SolverResult.no_solution("Gröbner basis is [1]; the system is inconsistent")
    if basis.order is not MonomialOrder.LEX:
        basis = compute_basis(basis.polynomials, basis.variables, MonomialOrder.LEX)

    variables = basis.variables
    polys = basis.polynomials
    if not polys:
        return SolverResult.infinite(reason="Every assignment satisfies the system")

    for idx in range(len(variables)):
        if not any(
            p.leading_monomial[idx] > 0
            and all(e == 0 for k, e in enumerate(p.leading_monomial) if k != idx)
            for p in polys
        ):
            return SolverResult.infinite(
                relations=basis.as_expressions(),
                reason=f"Ideal is not zero-dimensional ({variables[idx].name} is free)",
            )

    # back-substitution from the smallest LEX variable upwards
    branches: list[dict] = [{}]
    try:
        for idx in range(len(variables) - 1, -1, -1):
            var = variables[idx]
            pieces = [
                p.to_expression()
                for p in polys
                if p.variables_used() and min(p.variables_used()) == idx
            ]
            next_branches = []
            for assignment in branches:
                substituted = [expand(e.substitute(assignment)) for e in pieces]
                substituted = [e for e in substituted if not e.is_zero()]
                if not substituted:
                    raise _Undecided(f"no univariate relation left for {var.name}")
                pivot = min(substituted, key=lambda e: _degree_of(e, var))
                roots = _univariate_roots(pivot, var, var.is_assumed("complex"))
                if roots is None:
                    continue
                for root in _dedupe(roots):
                    candidate = dict(assignment)
                    candidate[var] = root
                    if all(
                        _vanishes(e.substitute({var: root}))
                        for e in substituted
                        if e is not pivot
                    ):
                        next_branches.append(candidate)
            branches = next_branches
    except (_Undecided, NotPolynomialError) as e:
        logger.debug(f"Back-substitution stopped: {e}")
        return SolverResult.indeterminate(str(e), basis=basis.as_expressions())

    if not branches:
        return SolverResult.no_solution("No real solutions")
    solutions = _dedupe([system_solution(b) for b in branches])
    return SolverResult.multiple(solutions)


def _degree_of(expr: Expression, var) -> int:
    coeffs = coefficients(expr, var)
    return max(coeffs, default=0)


def _vanishes(expr: Expression) -> bool:
    """Exact zero test, falling back to a tolerance check on radicals."""
    expanded = expand(expr)
    if expanded.is_zero():
        return True
    if expanded.free_symbols():
        return False
    approx = numeric_value(expanded)
    return approx is not None and abs(approx) <= ROOT_DEDUP_TOLERANCE
