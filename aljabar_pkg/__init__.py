"""Aljabar package: canonical expressions, equation solving and Gröbner bases."""

from .expression import Expression, Kind
from .symbols import Symbol, symbol, symbols
from .types import (
    AljabarError,
    ClassificationUnknown,
    DomainError,
    InternalInvariantViolation,
    NonConvergence,
    NotPolynomialError,
    ParseError,
    ResultKind,
    SolverError,
    SolverResult,
    Step,
    ValidationError,
)
from .canonical import canonicalize, expand
from .classifier import Classification, EquationCategory, SystemKind, classify
from .dispatcher import Dispatcher, build_dispatch_table
from .groebner import Budget, GroebnerBasis, compute_basis, extract_solutions
from .polynomial import MonomialOrder, Polynomial
from .api import (
    classify_equation,
    differentiate,
    groebner,
    simplify,
    solve_equation,
    solve_system,
)
from .logging_config import configure_from_env, setup_logging

configure_from_env()

__all__ = [
    "Expression",
    "Kind",
    "Symbol",
    "symbol",
    "symbols",
    "canonicalize",
    "expand",
    "simplify",
    "differentiate",
    "classify",
    "classify_equation",
    "Classification",
    "EquationCategory",
    "SystemKind",
    "Dispatcher",
    "build_dispatch_table",
    "setup_logging",
    "solve_equation",
    "solve_system",
    "groebner",
    "compute_basis",
    "extract_solutions",
    "Budget",
    "GroebnerBasis",
    "MonomialOrder",
    "Polynomial",
    "SolverResult",
    "ResultKind",
    "Step",
    "AljabarError",
    "ClassificationUnknown",
    "DomainError",
    "InternalInvariantViolation",
    "NonConvergence",
    "NotPolynomialError",
    "ParseError",
    "SolverError",
    "ValidationError",
]
