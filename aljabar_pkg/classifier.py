"""Equation classification.

Maps a canonical equation (or a list of them) plus target variables onto an
``EquationCategory``. The dispatcher routes on the category alone, so every
problem ends up either in a strategy's table entry or at ``UNKNOWN``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .calculus import degree, total_degree
from .canonical import check_canonical, expand
from .expression import Expression, Kind
from .functions import default_registry
from .logging_config import get_logger
from .symbols import Symbol

logger = get_logger("classifier")


class EquationCategory(str, Enum):
    UNCLASSIFIED = "unclassified"
    CONSTANT = "constant"
    LINEAR = "linear"
    QUADRATIC = "quadratic"
    CUBIC = "cubic"
    QUARTIC = "quartic"
    SYSTEM = "system"
    TRANSCENDENTAL = "transcendental"
    ODE = "ode"
    PDE = "pde"
    UNKNOWN = "unknown"


class SystemKind(str, Enum):
    LINEAR = "linear"
    POLYNOMIAL = "polynomial"
    NONPOLYNOMIAL = "nonpolynomial"


_BY_DEGREE = {
    0: EquationCategory.CONSTANT,
    1: EquationCategory.LINEAR,
    2: EquationCategory.QUADRATIC,
    3: EquationCategory.CUBIC,
    4: EquationCategory.QUARTIC,
}

_ODE_MARKERS = ("derivative", "diff")
_PDE_MARKERS = ("partial",)


@dataclass(frozen=True)
class Classification:
    category: EquationCategory
    system_kind: SystemKind | None = None
    degree: int | None = None
    variables: tuple = ()

    def to_dict(self) -> dict:
        result = {
            "category": self.category.value,
            "variables": [v.name for v in self.variables],
        }
        if self.system_kind is not None:
            result["system_kind"] = self.system_kind.value
        if self.degree is not None:
            result["degree"] = self.degree
        return result


def normalize_targets(problem, targets) -> tuple:
    """Target variables as a tuple of Symbols; defaults to the free symbols by name."""
    if targets is None:
        equations = problem if isinstance(problem, (list, tuple)) else (problem,)
        free = set()
        for eq in equations:
            free |= eq.free_symbols()
        return tuple(sorted(free, key=lambda s: s.name))
    if isinstance(targets, Symbol):
        return (targets,)
    if isinstance(targets, Expression):
        return (targets.sym,)
    return tuple(t.sym if isinstance(t, Expression) else t for t in targets)


def _has_marker(expr: Expression, names) -> bool:
    return any(node.kind is Kind.FUNCTION and node.payload in names for node in expr.walk())


def _is_transcendental_in(expr: Expression, variable: Symbol) -> bool:
    """True when ``variable`` sits inside a transcendental function or a non-integer power."""
    registry = default_registry()
    for node in expr.walk():
        if not node.contains(variable):
            continue
        if node.kind is Kind.FUNCTION and registry.is_transcendental(node.payload):
            return True
        if node.kind is Kind.POWER:
            base, exponent = node.children
            if exponent.contains(variable):
                return True
            if base.contains(variable) and not (
                exponent.kind is Kind.NUMBER and exponent.payload.is_integer
            ):
                return True
    return False


def classify_system(equations, variables) -> SystemKind:
    worst = 0
    for eq in equations:
        if _is_transcendental_in_any(eq, variables):
            return SystemKind.NONPOLYNOMIAL
        d = total_degree(eq, variables)
        if d is None:
            return SystemKind.NONPOLYNOMIAL
        worst = max(worst, d)
    return SystemKind.LINEAR if worst <= 1 else SystemKind.POLYNOMIAL


def _is_transcendental_in_any(eq: Expression, variables) -> bool:
    return any(_is_transcendental_in(eq, v) for v in variables)


def _classify_single(eq: Expression, variables: tuple) -> Classification:
    if eq.kind is not Kind.EQUATION or eq.has_undefined():
        return Classification(EquationCategory.UNKNOWN, variables=variables)
    if _has_marker(eq, _PDE_MARKERS):
        return Classification(EquationCategory.PDE, variables=variables)
    if _has_marker(eq, _ODE_MARKERS):
        return Classification(EquationCategory.ODE, variables=variables)
    if not variables:
        return Classification(EquationCategory.CONSTANT, degree=0)
    variable = variables[0]
    zero_form = expand(eq.lhs - eq.rhs)
    if _is_transcendental_in(zero_form, variable):
        return Classification(EquationCategory.TRANSCENDENTAL, variables=variables)
    d = degree(zero_form, variable)
    if d is None or d not in _BY_DEGREE:
        # no closed form past quartics
        return Classification(EquationCategory.TRANSCENDENTAL, degree=d, variables=variables)
    return Classification(_BY_DEGREE[d], degree=d, variables=variables)


def classify(problem, targets=None) -> Classification:
    """Classify an equation or a system of equations.

    Args:
        problem: Canonical equation, or a sequence of equations
        targets: Symbol, sequence of Symbols, or None for all free symbols

    Returns:
        Classification. Two or more equations give ``SYSTEM`` with its
        ``system_kind``; malformed input gives ``UNKNOWN``.

    Raises:
        InternalInvariantViolation: If an input Expression is not canonical
            (only checked with ``ALJABAR_DEBUG_INVARIANTS``)
    """
    if isinstance(problem, (list, tuple)):
        equations = tuple(problem)
        for eq in equations:
            if isinstance(eq, Expression):
                check_canonical(eq, "classify")
        variables = normalize_targets(equations, targets)
        if not equations:
            return Classification(EquationCategory.UNKNOWN, variables=variables)
        if len(equations) == 1:
            return _classify_single(equations[0], variables)
        if any(eq.kind is not Kind.EQUATION or eq.has_undefined() for eq in equations):
            return Classification(EquationCategory.UNKNOWN, variables=variables)
        kind = classify_system(equations, variables)
        logger.debug(f"System of {len(equations)} equations classified as {kind.value}")
        return Classification(EquationCategory.SYSTEM, system_kind=kind, variables=variables)
    if not isinstance(problem, Expression):
        return Classification(EquationCategory.UNKNOWN)
    check_canonical(problem, "classify")
    return _classify_single(problem, normalize_targets(problem, targets))
