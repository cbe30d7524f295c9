"""Public API for Aljabar - accepts text or Expressions, returns structured objects."""

from __future__ import annotations

from .calculus import differentiate as _differentiate
from .canonical import simplify as _simplify
from .classifier import Classification, classify
from .dispatcher import default_dispatcher
from .expression import Expression
from .groebner import Budget, GroebnerBasis, compute_basis
from .parser import parse, parse_equation, parse_symbols, parse_system
from .symbols import Symbol
from .types import SolverResult, ValidationError


def _expression(value) -> Expression:
    return parse(value) if isinstance(value, str) else value


def _equation(value) -> Expression:
    return parse_equation(value) if isinstance(value, str) else value


def _equations(value) -> list[Expression]:
    if isinstance(value, str):
        return parse_system(value)
    return [_equation(v) for v in value]


def _single_symbol(variable) -> Symbol | None:
    symbols = parse_symbols(variable)
    if symbols is None:
        return None
    if len(symbols) != 1:
        raise ValidationError(f"Expected one variable, got {len(symbols)}", "INVALID_SYMBOL")
    return symbols[0]


def simplify(expression) -> Expression:
    """Canonicalize an expression, preferring its expansion when that is smaller.

    Example:
        >>> from aljabar_pkg.api import simplify
        >>> str(simplify("x + x + 1"))
        '1 + 2*x'
    """
    return _simplify(_expression(expression))


def solve_equation(equation, variable=None) -> SolverResult:
    """Solve a single equation.

    Args:
        equation: Equation string (e.g. ``"x^2 - 4 = 0"``) or Expression
        variable: Variable to solve for (name or Symbol); defaults to the
            first free symbol by name

    Returns:
        SolverResult

    Raises:
        ClassificationUnknown: If the input cannot be classified
    """
    return default_dispatcher().solve(_equation(equation), _single_symbol(variable))


def solve_system(equations, variables=None) -> SolverResult:
    """Solve a system of equations.

    Args:
        equations: ``"2x + y = 5, x - y = 1"`` or a sequence of equations
        variables: ``"x y"``, a sequence of names/Symbols, or None for all
            free symbols

    Example:
        >>> from aljabar_pkg.api import solve_system
        >>> result = solve_system("2x + y = 5, x - y = 1")
        >>> result.as_dicts()[0]["x"]
        Expression('2')
    """
    return default_dispatcher().solve_system(_equations(equations), parse_symbols(variables))


def groebner(
    polynomials,
    variables=None,
    order=None,
    budget: Budget | None = None,
) -> GroebnerBasis:
    """Reduced Gröbner basis of the ideal generated by ``polynomials``.

    Equations are read as ``lhs - rhs``. Without explicit variables the free
    symbols are used in name order. ``order`` defaults to the configured
    ``ALJABAR_DEFAULT_MONOMIAL_ORDER``.
    """
    exprs = _equations(polynomials) if isinstance(polynomials, str) else [
        _expression(p) for p in polynomials
    ]
    symbols = parse_symbols(variables)
    if symbols is None:
        free = set()
        for e in exprs:
            free |= e.free_symbols()
        symbols = tuple(sorted(free, key=lambda s: s.name))
    return compute_basis(exprs, symbols, order=order, budget=budget)


def classify_equation(equation, variables=None) -> Classification:
    if isinstance(equation, str):
        problem = parse_system(equation)
    elif isinstance(equation, (list, tuple)):
        problem = _equations(equation)
    else:
        problem = equation
    return classify(problem, parse_symbols(variables))


def differentiate(expression, variable) -> Expression:
    """Derivative of ``expression`` with respect to ``variable``."""
    return _differentiate(_expression(expression), _single_symbol(variable))
