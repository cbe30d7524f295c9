"""Solving strategies, one per equation category.

Every strategy exposes ``solve(equation, variable) -> SolverResult``;
``SystemStrategy`` also exposes ``solve_system(equations, variables)``.
Strategies never raise for mathematical failures: internal SolverError and
DomainError are turned into Indeterminate results.
"""

from __future__ import annotations

from dataclasses import replace

import sympy as sp

from .calculus import coefficients, degree, is_numeric_constant, numeric_value
from .canonical import expand
from .classifier import SystemKind, classify_system
from .config import (
    MAX_NSOLVE_STEPS,
    MAX_NUMERIC_ROOTS,
    NUMERIC_FALLBACK_ENABLED,
    NUMERIC_GRID_SIZE,
    NUMERIC_SEARCH_MAX,
    NUMERIC_SEARCH_MIN,
    NUMERIC_TOLERANCE,
    ROOT_DEDUP_TOLERANCE,
)
from .expression import ZERO, Expression, Kind
from .functions import default_registry
from .groebner import compute_basis, extract_solutions
from .logging_config import get_logger
from .numeric import Number
from .parser import to_sympy
from .polynomial import MonomialOrder, rational_roots, solve_linear, solve_quadratic
from .symbols import Symbol
from .types import DomainError, ResultKind, SolverError, SolverResult, Step, system_solution

logger = get_logger("solver")


def zero_form(equation: Expression) -> Expression:
    """Expanded ``lhs - rhs`` of an equation (plain expressions pass through)."""
    if equation.kind is Kind.EQUATION:
        return expand(equation.lhs - equation.rhs)
    return expand(equation)


def _dedupe(values) -> list:
    out = []
    for v in values:
        if v not in out:
            out.append(v)
    return out


class Strategy:
    """Base class; subclasses implement ``_solve``."""

    name = "strategy"

    def solve(self, equation: Expression, variable: Symbol) -> SolverResult:
        try:
            return self._solve(equation, variable)
        except (SolverError, DomainError) as e:
            logger.debug(f"{self.name} failed on {equation}: {e}", exc_info=True)
            return SolverResult.indeterminate(f"{self.name}: {e.message}")

    def _solve(self, equation: Expression, variable: Symbol) -> SolverResult:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class ConstantStrategy(Strategy):
    """Equations with no occurrence of the target variable."""

    name = "constant"

    def _solve(self, equation, variable):
        z = zero_form(equation)
        if z.is_zero():
            return SolverResult.infinite(reason="Equation holds for every value")
        if z.free_symbols():
            return SolverResult.indeterminate(
                f"Equation holds only when {z} = 0", residual=(Expression.equation(z, 0),)
            )
        approx = numeric_value(z)
        if approx is not None and abs(approx) <= NUMERIC_TOLERANCE and not z.is_exact():
            return SolverResult.infinite(reason="Equation holds for every value")
        return SolverResult.no_solution(f"Contradiction: {z} = 0")


class LinearStrategy(Strategy):
    """``a x + b = 0``; ``a`` may be symbolic."""

    name = "linear"

    def _solve(self, equation, variable):
        coeffs = coefficients(zero_form(equation), variable)
        a = coeffs.get(1)
        if a is None:
            return ConstantStrategy().solve(equation, variable)
        value = expand(solve_linear(a, coeffs.get(0, ZERO)))
        if value.has_undefined():
            return SolverResult.indeterminate(f"Solution is undefined: {value.reason}")
        return SolverResult.unique(value, approximate=not value.is_exact())


class QuadraticStrategy(Strategy):
    """Quadratic formula; exact square roots fold, others stay as radicals."""

    name = "quadratic"

    def _solve(self, equation, variable):
        coeffs = coefficients(zero_form(equation), variable)
        a, b, c = (coeffs.get(d, ZERO) for d in (2, 1, 0))
        roots = solve_quadratic(a, b, c, allow_complex=variable.is_assumed("complex"))
        if roots is None:
            return SolverResult.indeterminate("Sign of the discriminant is undetermined")
        if not roots:
            return SolverResult.no_solution("Negative discriminant: no real roots")
        approximate = not all(r.is_exact() for r in roots)
        return SolverResult.multiple(_dedupe(roots), approximate=approximate)


def _numeric_polynomial_roots(coeffs: list[Expression]) -> list[Expression]:
    """Real roots of a numeric polynomial via ``sympy.Poly.nroots``."""
    t = sp.Symbol("t")
    poly = sp.Poly.from_list([to_sympy(c) for c in reversed(coeffs)], t)
    roots: list[float] = []
    for root in poly.nroots():
        if abs(complex(root).imag) > NUMERIC_TOLERANCE:
            continue
        value = complex(root).real
        if not any(abs(existing - value) < ROOT_DEDUP_TOLERANCE for existing in roots):
            roots.append(value)
    return [Expression.float(r) for r in sorted(roots)]


class PolynomialStrategy(Strategy):
    """Cubics, quartics and higher: rational-root deflation, then exact or numeric remainder."""

    name = "polynomial"

    def _solve(self, equation, variable):
        coeffs = coefficients(zero_form(equation), variable)
        top = max(coeffs)
        dense = [coeffs.get(d, ZERO) for d in range(top + 1)]
        if not all(is_numeric_constant(c) for c in dense):
            return SolverResult.indeterminate(
                f"Symbolic coefficients in degree {top} polynomial"
            )
        allow_complex = variable.is_assumed("complex")
        if all(c.is_number and c.is_exact() for c in dense):
            found, remainder = rational_roots([c.value.to_fraction() for c in dense])
            roots = [Expression.number(r) for r in found]
            left = len(remainder) - 1
            rest = [Expression.number(c) for c in remainder]
            if left == 0:
                return SolverResult.multiple(_dedupe(roots))
            if left == 1:
                roots.append(expand(solve_linear(rest[1], rest[0])))
                return SolverResult.multiple(_dedupe(roots))
            if left == 2:
                extra = solve_quadratic(rest[2], rest[1], rest[0], allow_complex=allow_complex)
                if extra is not None:
                    return SolverResult.multiple(_dedupe(roots + extra))
            dense_left = rest
        else:
            roots, dense_left = [], dense
        if not NUMERIC_FALLBACK_ENABLED:
            return SolverResult.indeterminate(
                f"Irreducible factor of degree {len(dense_left) - 1} has no exact roots",
                residual=(Expression.equation(_from_dense(dense_left, variable), 0),),
            )
        logger.debug(f"Numeric fallback for degree {len(dense_left) - 1} factor")
        approx = _numeric_polynomial_roots(dense_left)
        everything = _dedupe(roots + approx)
        if not everything:
            return SolverResult.no_solution("No real roots")
        return SolverResult.multiple(everything, approximate=bool(approx))


def _from_dense(coeffs: list[Expression], variable: Symbol) -> Expression:
    return Expression.add(*(c * Expression.pow(variable, i) for i, c in enumerate(coeffs)))


def _numeric_roots(z: Expression, variable: Symbol) -> list[float]:
    """Sign changes on a grid, refined with ``sympy.nsolve``."""
    expr = to_sympy(z)
    var = to_sympy(Expression.symbol(variable))
    span = NUMERIC_SEARCH_MAX - NUMERIC_SEARCH_MIN
    points = [
        NUMERIC_SEARCH_MIN + span * i / NUMERIC_GRID_SIZE for i in range(NUMERIC_GRID_SIZE + 1)
    ]
    candidates = []
    previous = None
    for point in points:
        current = numeric_value(z.substitute({variable: Expression.float(point)}))
        if current is None:
            previous = None
            continue
        if current == 0.0:
            candidates.append(point)
        elif previous is not None and previous[1] * current < 0:
            candidates.append((previous[0] + point) / 2)
        previous = (point, current)
    roots: list[float] = []
    for guess in candidates[:MAX_NUMERIC_ROOTS]:
        try:
            root = sp.nsolve(expr, var, guess, maxsteps=MAX_NSOLVE_STEPS)
        except (ValueError, TypeError, ZeroDivisionError):
            continue
        if abs(sp.im(root)) > NUMERIC_TOLERANCE:
            continue
        value = float(sp.re(root))
        if not any(abs(existing - value) < ROOT_DEDUP_TOLERANCE for existing in roots):
            roots.append(value)
    return sorted(roots)


_PERIODIC = frozenset(("sin", "cos", "tan"))


def _union(results) -> SolverResult:
    """Combine the results of solving each branch of an equation."""
    values = []
    approximate = False
    for result in results:
        if result.is_solved:
            values.extend(result.solutions)
            approximate = approximate or result.approximate
        elif result.kind is not ResultKind.NO_SOLUTION:
            return result
    if not values:
        return SolverResult.no_solution("No branch has a solution")
    return SolverResult.multiple(_dedupe(values), approximate=approximate)


class TranscendentalStrategy(Strategy):
    """Isolates ``k f(g(x)) + c = 0`` through the registry inverse of ``f``."""

    name = "transcendental"

    def _solve(self, equation, variable):
        z = zero_form(equation)
        d = degree(z, variable)
        if d is not None and d > 2:
            # polynomial in the variable: deflation keeps every real root
            result = PolynomialStrategy().solve(Expression.equation(z, 0), variable)
            if result.kind is not ResultKind.INDETERMINATE:
                return result
        isolated = self._isolate(z, variable)
        if isolated is not None:
            return isolated
        if NUMERIC_FALLBACK_ENABLED and z.free_symbols() == frozenset((variable,)):
            roots = _numeric_roots(z, variable)
            if roots:
                return SolverResult.multiple([Expression.float(r) for r in roots], approximate=True)
        return SolverResult.indeterminate(
            f"Cannot isolate {variable.name}", residual=(Expression.equation(z, 0),)
        )

    def _isolate(self, z: Expression, variable: Symbol) -> SolverResult | None:
        terms = z.children if z.kind is Kind.SUM else (z,)
        dependent = [t for t in terms if t.contains(variable)]
        if len(dependent) != 1:
            return None
        rest = Expression.add(*(t for t in terms if not t.contains(variable)))
        coeff, core = dependent[0].as_coefficient_and_term()
        if core.kind is Kind.PRODUCT:
            # peel off factors that do not mention the variable
            fixed = [f for f in core.children if not f.contains(variable)]
            moving = [f for f in core.children if f.contains(variable)]
            if len(moving) != 1:
                return None
            core = moving[0]
            scale = Expression.mul(Expression.number(coeff), *fixed)
        else:
            scale = Expression.number(coeff)
        target = expand(-rest / scale)
        if target.has_undefined():
            return None

        if core.kind is Kind.FUNCTION and len(core.children) == 1:
            inner_value = self._invert_function(core.payload, target)
            if inner_value is None:
                return None
            if inner_value.kind is Kind.UNDEFINED:
                return SolverResult.no_solution(
                    f"{core.payload}(...) never equals {target}"
                )
            if core.payload in _PERIODIC:
                return self._periodic(core.payload, core.children[0], inner_value, variable)
            return self._solve_inner(core.children[0], inner_value, variable)
        if core.kind is Kind.POWER:
            base, exponent = core.children
            if not exponent.contains(variable):
                # g^r = t  ->  g = t^(1/r); even roots and even powers need t >= 0
                approx = numeric_value(target)
                r = exponent.payload if exponent.kind is Kind.NUMBER else None
                even_root = r is not None and r.is_exact and r.denominator % 2 == 0
                even_power = r is not None and r.is_exact and r.numerator % 2 == 0
                if (even_root or even_power) and approx is not None and approx < 0:
                    return SolverResult.no_solution(f"{core} is never negative")
                inner_value = Expression.pow(target, Expression.pow(exponent, -1))
                if even_power:
                    # g^(2k/q) = t  ->  g = +-t^(q/2k)
                    return _union(
                        [self._solve_inner(base, v, variable) for v in (inner_value, -inner_value)]
                    )
                return self._solve_inner(base, inner_value, variable)
            if not base.contains(variable):
                # b^g = t  ->  g = log(t) / log(b)
                inner_value = expand(
                    Expression.function("log", target) / Expression.function("log", base)
                )
                if inner_value.has_undefined():
                    return SolverResult.no_solution(f"{core} is always positive")
                return self._solve_inner(exponent, inner_value, variable)
        return None

    def _periodic(
        self, name: str, inner: Expression, principal: Expression, variable: Symbol
    ) -> SolverResult:
        """Principal-branch relations of a periodic equation ``name(inner) = t``."""
        if name == "sin":
            branches = [principal, Expression.function("pi") - principal]
        elif name == "cos":
            branches = [principal, -principal]
        else:
            branches = [principal]
        relations = []
        for value in branches:
            branch = self._solve_inner(inner, value, variable)
            if branch.is_solved:
                relations.extend(
                    Expression.equation(Expression.symbol(variable), s) for s in branch.solutions
                )
            elif branch.kind is not ResultKind.NO_SOLUTION:
                relations.append(Expression.equation(inner, value))
        if not relations:
            return SolverResult.no_solution(f"{name}(...) never reaches its principal values")
        period = "pi" if name == "tan" else "2*pi"
        return SolverResult.infinite(
            _dedupe(relations),
            reason=f"{name} is periodic: add integer multiples of {period} to {inner}",
        )

    def _invert_function(self, name: str, target: Expression) -> Expression | None:
        registry = default_registry()
        inverse = registry.inverse(name)
        if inverse is None:
            return None
        approx = numeric_value(target) if is_numeric_constant(target) else None
        domain = registry.properties(inverse).domain
        if approx is not None:
            if domain == "positive" and approx <= 0:
                return Expression.undefined(f"{inverse} domain")
            if domain == "unit_interval" and abs(approx) > 1:
                return Expression.undefined(f"{inverse} domain")
            if name == "acos" and not 0 <= approx <= 3.141592653589793:
                return Expression.undefined("acos range")
            if name in ("asin", "atan") and abs(approx) > 1.5707963267948966:
                return Expression.undefined(f"{name} range")
        return Expression.function(inverse, target)

    def _solve_inner(self, inner: Expression, value: Expression, variable: Symbol) -> SolverResult:
        if inner.kind is Kind.SYMBOL and inner.payload is variable:
            return SolverResult.unique(value, approximate=not value.is_exact())
        equation = Expression.equation(inner, value)
        d = degree(equation, variable)
        if d == 1:
            return LinearStrategy().solve(equation, variable)
        if d == 2:
            return QuadraticStrategy().solve(equation, variable)
        if d is None:
            return self.solve(equation, variable)
        return PolynomialStrategy().solve(equation, variable)


class UnsupportedStrategy(Strategy):
    """Placeholder for categories without a solver (ODE, PDE)."""

    def __init__(self, category: str):
        self.category = category
        self.name = f"unsupported[{category}]"

    def _solve(self, equation, variable):
        return SolverResult.indeterminate(
            f"{self.category.upper()} solving is not supported",
            residual=(equation,),
        )

    def __repr__(self) -> str:
        return f"UnsupportedStrategy({self.category!r})"


class SystemStrategy(Strategy):
    """Systems: Gaussian elimination when linear, Gröbner bases when polynomial."""

    name = "system"

    def __init__(self, order=MonomialOrder.LEX, budget=None):
        self.order = MonomialOrder.parse(order)
        self.budget = budget

    def _solve(self, equation, variable):
        result = self.solve_system([equation], [variable])
        if result.kind in (ResultKind.UNIQUE, ResultKind.MULTIPLE):
            values = [dict(sol)[variable] for sol in result.solutions]
            return SolverResult.multiple(values, approximate=result.approximate).with_steps(
                result.steps
            )
        return result

    def solve_system(self, equations, variables) -> SolverResult:
        """Solve a system of canonical equations for ``variables``.

        Returns:
            SolverResult whose solutions are tuples of ``(Symbol, Expression)``
            pairs sorted by variable name
        """
        equations = list(equations)
        variables = tuple(variables)
        try:
            kind = classify_system(equations, variables)
            logger.debug(f"System kind {kind.value} for {len(equations)} equations")
            step = Step("system_kind", kind.value, tuple(equations))
            if kind is SystemKind.LINEAR:
                result = self._solve_linear(equations, variables)
            elif kind is SystemKind.POLYNOMIAL:
                result = self._solve_polynomial(equations, variables)
            else:
                result = SolverResult.indeterminate(
                    "Non-polynomial systems are not supported", residual=equations
                )
            return replace(result, steps=(step,) + tuple(result.steps))
        except (SolverError, DomainError) as e:
            logger.debug(f"System solving failed: {e}", exc_info=True)
            return SolverResult.indeterminate(e.message, residual=equations)

    # Linear systems

    def _rows(self, equations, variables) -> list[list[Number]]:
        rows = []
        origin = {v: 0 for v in variables}
        for eq in equations:
            z = zero_form(eq)
            row = []
            for var in variables:
                c = coefficients(z, var).get(1, ZERO)
                if not c.is_number:
                    raise SolverError(
                        f"Symbolic coefficient {c} for {var.name}", code="SYMBOLIC_COEFFICIENT"
                    )
                row.append(c.payload)
            constant = expand(z.substitute(origin))
            if not constant.is_number:
                raise SolverError(
                    f"Symbolic constant term {constant}", code="SYMBOLIC_COEFFICIENT"
                )
            row.append(-constant.payload)
            rows.append(row)
        return rows

    def _solve_linear(self, equations, variables) -> SolverResult:
        rows = self._rows(equations, variables)
        n = len(variables)
        approximate = any(not value.is_exact for row in rows for value in row)

        def negligible(value: Number) -> bool:
            if value.is_exact:
                return value.is_zero()
            return abs(value.value) < NUMERIC_TOLERANCE

        pivots: list[int] = []
        r = 0
        for col in range(n):
            # partial pivoting: largest magnitude entry in the column
            best = max(range(r, len(rows)), key=lambda i: abs(float(rows[i][col])), default=None)
            if best is None or negligible(rows[best][col]):
                continue
            rows[r], rows[best] = rows[best], rows[r]
            pivot = rows[r][col]
            rows[r] = [value / pivot for value in rows[r]]
            for i in range(len(rows)):
                if i != r and not negligible(rows[i][col]):
                    factor = rows[i][col]
                    rows[i] = [a - factor * b for a, b in zip(rows[i], rows[r])]
            pivots.append(col)
            r += 1
            if r == len(rows):
                break

        step = Step("gaussian_elimination", f"rank {len(pivots)} of {n} unknowns")
        for row in rows[len(pivots):]:
            if not negligible(row[n]):
                return SolverResult.no_solution("Inconsistent linear system").with_steps([step])

        if len(pivots) < n:
            relations = []
            for i, col in enumerate(pivots):
                lhs = Expression.add(
                    *(
                        Expression.number(rows[i][j]) * Expression.symbol(variables[j])
                        for j in range(n)
                        if not negligible(rows[i][j])
                    )
                )
                relations.append(Expression.equation(lhs, Expression.number(rows[i][n])))
            return SolverResult.infinite(
                relations, reason=f"{n - len(pivots)} free variable(s)"
            ).with_steps([step])

        values = {variables[col]: Expression.number(rows[i][n]) for i, col in enumerate(pivots)}
        return SolverResult.unique(system_solution(values), approximate=approximate).with_steps(
            [step]
        )

    # Polynomial systems

    def _solve_polynomial(self, equations, variables) -> SolverResult:
        trace: list = []
        basis = compute_basis(
            [zero_form(eq) for eq in equations],
            variables,
            order=self.order,
            budget=self.budget,
            trace=trace,
        )
        summary = Step(
            "groebner_basis",
            f"{len(basis.polynomials)} polynomials, {basis.pairs_processed} pairs processed, "
            f"{basis.pairs_skipped} skipped",
            basis.as_expressions(),
        )
        return extract_solutions(basis).with_steps(trace + [summary])
