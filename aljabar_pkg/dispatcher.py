"""Routing from equation categories to solving strategies.

``build_dispatch_table`` is the single place where categories are bound to
strategies. A ``Dispatcher`` classifies a problem, records the transition out
of ``UNCLASSIFIED`` and hands the problem to the bound strategy; systems
always go through ``solve_system``.
"""

from __future__ import annotations

from dataclasses import replace

from .canonical import check_canonical
from .classifier import Classification, EquationCategory, classify
from .expression import Expression
from .logging_config import get_logger
from .solver import (
    ConstantStrategy,
    LinearStrategy,
    PolynomialStrategy,
    QuadraticStrategy,
    SystemStrategy,
    TranscendentalStrategy,
    UnsupportedStrategy,
)
from .types import (
    ClassificationUnknown,
    InternalInvariantViolation,
    SolverResult,
    Step,
)

logger = get_logger("dispatcher")


def build_dispatch_table() -> dict:
    polynomial = PolynomialStrategy()
    return {
        EquationCategory.CONSTANT: ConstantStrategy(),
        EquationCategory.LINEAR: LinearStrategy(),
        EquationCategory.QUADRATIC: QuadraticStrategy(),
        EquationCategory.CUBIC: polynomial,
        EquationCategory.QUARTIC: polynomial,
        EquationCategory.SYSTEM: SystemStrategy(),
        EquationCategory.TRANSCENDENTAL: TranscendentalStrategy(),
        EquationCategory.ODE: UnsupportedStrategy("ode"),
        EquationCategory.PDE: UnsupportedStrategy("pde"),
    }


def _check_table(table: dict) -> None:
    system = table.get(EquationCategory.SYSTEM)
    if system is None or not callable(getattr(system, "solve_system", None)):
        raise InternalInvariantViolation(
            "Dispatch table must bind SYSTEM to a strategy with solve_system"
        )


class Dispatcher:
    """Classify-then-route front end over a dispatch table."""

    def __init__(self, table: dict | None = None):
        self._table = dict(table) if table is not None else build_dispatch_table()
        _check_table(self._table)

    def strategy_for(self, category: EquationCategory):
        return self._table.get(category)

    def register(self, category: EquationCategory, strategy) -> None:
        """Bind ``category`` to ``strategy``; the SYSTEM binding is re-validated."""
        table = dict(self._table)
        table[category] = strategy
        _check_table(table)
        self._table = table

    def dispatch(self, problem, targets=None) -> SolverResult:
        """Classify ``problem`` and solve it with the bound strategy.

        Args:
            problem: Canonical equation or a sequence of equations
            targets: Symbol(s) to solve for; defaults to all free symbols

        Returns:
            SolverResult with classification and strategy Steps attached

        Raises:
            ClassificationUnknown: If the problem cannot be classified
            InternalInvariantViolation: If an input Expression is not canonical
                (only checked with ``ALJABAR_DEBUG_INVARIANTS``)
        """
        for item in problem if isinstance(problem, (list, tuple)) else (problem,):
            if isinstance(item, Expression):
                check_canonical(item, "dispatch")
        classification = classify(problem, targets)
        category = classification.category
        logger.debug(f"{EquationCategory.UNCLASSIFIED.value} -> {category.value}")
        steps = [Step("classification", self._describe(classification))]
        if category is EquationCategory.UNKNOWN:
            raise ClassificationUnknown(f"Cannot classify {self._render(problem)}")

        strategy = self._table.get(category)
        if strategy is None:
            raise InternalInvariantViolation(f"No strategy bound to {category.value}")
        steps.append(Step("strategy", repr(strategy)))
        logger.debug(f"Routing {category.value} to {strategy!r}")

        variables = classification.variables
        if category is EquationCategory.SYSTEM:
            equations = list(problem)
            result = strategy.solve_system(equations, variables)
        else:
            equation = problem[0] if isinstance(problem, (list, tuple)) else problem
            if not variables:
                result = strategy.solve(equation, None)
            else:
                result = strategy.solve(equation, variables[0])
        return replace(result, steps=tuple(steps) + tuple(result.steps))

    def solve(self, equation, variable=None) -> SolverResult:
        return self.dispatch(equation, variable)

    def solve_system(self, equations, variables=None) -> SolverResult:
        return self.dispatch(list(equations), variables)

    @staticmethod
    def _describe(classification: Classification) -> str:
        text = classification.category.value
        if classification.system_kind is not None:
            text += f" ({classification.system_kind.value})"
        if classification.degree is not None:
            text += f", degree {classification.degree}"
        return text

    @staticmethod
    def _render(problem) -> str:
        if isinstance(problem, (list, tuple)):
            return "{" + ", ".join(str(p) for p in problem) + "}"
        return str(problem)


_DEFAULT: Dispatcher | None = None


def default_dispatcher() -> Dispatcher:
    global _DEFAULT
    if _DEFAULT is None:
        _DEFAULT = Dispatcher()
    return _DEFAULT


def dispatch(problem, targets=None) -> SolverResult:
    return default_dispatcher().dispatch(problem, targets)


def solve(equation, variable=None) -> SolverResult:
    return default_dispatcher().solve(equation, variable)


def solve_system(equations, variables=None) -> SolverResult:
    return default_dispatcher().solve_system(equations, variables)
