"""Tests for the public API: text or Expressions in, structured objects out."""

import math
import sys

import pytest

from aljabar_pkg.api import (
    classify_equation,
    differentiate,
    groebner,
    simplify,
    solve_equation,
    solve_system,
)
from aljabar_pkg.calculus import numeric_value
from aljabar_pkg.classifier import Classification, EquationCategory
from aljabar_pkg.expression import Expression
from aljabar_pkg.groebner import Budget, GroebnerBasis
from aljabar_pkg.symbols import symbols
from aljabar_pkg.types import (
    ClassificationUnknown,
    ParseError,
    ResultKind,
    SolverResult,
    ValidationError,
)

X, Y = symbols("x y")
x, y = Expression.symbol(X), Expression.symbol(Y)


class TestSimplifyAndDifferentiate:
    def test_simplify_returns_expression(self):
        """simplify() accepts text and returns a canonical Expression."""
        result = simplify("x + x + 1")
        assert isinstance(result, Expression)
        assert str(result) == "1 + 2*x"

    def test_differentiate(self):
        result = differentiate("x^3 + sin(x)", "x")
        assert result == 3 * x**2 + Expression.function("cos", x)

    def test_differentiate_needs_one_variable(self):
        with pytest.raises(ValidationError) as exc:
            differentiate("x*y", "x y")
        assert exc.value.code == "INVALID_SYMBOL"


class TestSolveEquation:
    def test_returns_solver_result(self):
        """solve_equation() returns a SolverResult with the exact root."""
        result = solve_equation("x + 1 = 0")
        assert isinstance(result, SolverResult)
        assert result.kind is ResultKind.UNIQUE
        assert result.value == -1

    def test_quadratic(self):
        result = solve_equation("x^2 - 4 = 0")
        assert result.solutions == (Expression.integer(-2), Expression.integer(2))

    def test_radical_rendering(self):
        data = solve_equation("x^2 = 2").to_dict()
        assert data["type"] == "multiple"
        assert data["solutions"] == ["-2^(1/2)", "2^(1/2)"]

    def test_parameters_with_explicit_variable(self):
        result = solve_equation("a*x + b = 0", "x")
        a, b = Expression.symbol("a"), Expression.symbol("b")
        assert result.value == -b / a

    def test_transcendental(self):
        assert solve_equation("exp(x) = 1").value == 0
        assert solve_equation("sin(x) = 2").kind is ResultKind.NO_SOLUTION

    def test_periodic_equation_is_not_reported_unique(self):
        result = solve_equation("cos(x) = 1/2")
        assert result.kind is ResultKind.INFINITE
        assert len(result.relations) == 2

    def test_sixth_power_has_two_real_roots(self):
        result = solve_equation("x^6 = 64")
        assert set(result.solutions) == {Expression.integer(2), Expression.integer(-2)}

    def test_bare_expression_is_set_to_zero(self):
        assert solve_equation("x - 5").value == 5

    def test_identity_and_contradiction(self):
        assert solve_equation("x = x").kind is ResultKind.INFINITE
        assert solve_equation("1 = 0").kind is ResultKind.NO_SOLUTION

    def test_invalid_input_raises(self):
        with pytest.raises(ParseError):
            solve_equation("x = x = 1")
        with pytest.raises(ValidationError):
            solve_equation("__import__('os')")

    def test_unclassifiable_input_raises(self):
        with pytest.raises(ClassificationUnknown):
            solve_equation(x + 1)


class TestSolveSystem:
    def test_linear_system(self):
        """The classic 2x2 system has the unique solution x = 2, y = 1."""
        result = solve_system("2x + y = 5, x - y = 1")
        assert result.kind is ResultKind.UNIQUE
        assert result.as_dicts() == [{"x": Expression.integer(2), "y": Expression.integer(1)}]

    def test_circle_and_line(self):
        result = solve_system("x^2 + y^2 = 1, x = y")
        assert result.kind is not ResultKind.NO_SOLUTION
        if result.kind is ResultKind.MULTIPLE:
            xs = sorted(numeric_value(d["x"]) for d in result.as_dicts())
            assert xs == pytest.approx([-math.sqrt(2) / 2, math.sqrt(2) / 2])
        else:
            assert result.kind is ResultKind.INDETERMINATE
            assert result.basis

    def test_inconsistent_polynomial_system(self):
        result = solve_system("x^2 = 1, x^2 = -1")
        assert result.kind is ResultKind.NO_SOLUTION

    def test_dependent_system(self):
        result = solve_system(["x + y = 1", "2x + 2y = 2"])
        assert result.kind is ResultKind.INFINITE
        assert result.relations

    def test_explicit_variables(self):
        result = solve_system("x + y = 3, x*y = 2", "x y")
        pairs = {(d["x"], d["y"]) for d in result.as_dicts()}
        assert pairs == {
            (Expression.integer(1), Expression.integer(2)),
            (Expression.integer(2), Expression.integer(1)),
        }

    def test_steps_start_with_classification(self):
        result = solve_system("x + y = 3, x - y = 1")
        assert result.steps[0].name == "classification"
        assert result.to_dict()["steps"][0]["detail"].startswith("system (linear)")


class TestGroebner:
    def test_returns_basis(self):
        basis = groebner("x^2 + y^2 - 1, x - y")
        assert isinstance(basis, GroebnerBasis)
        assert basis.as_expressions() == (x - y, y**2 - Expression.rational(1, 2))
        assert basis.to_dict()["order"] == "lex"

    def test_order_and_variables(self):
        basis = groebner([x * y - 1, y**2 - x], ["y", "x"], order="grevlex")
        assert basis.variables == (Y, X)
        assert basis.complete

    def test_budget(self):
        basis = groebner("x^2 + y^2 - 1, x - y", budget=Budget(max_pairs=0))
        assert basis.complete is False

    def test_default_order_comes_from_configuration(self, monkeypatch):
        monkeypatch.setattr(sys.modules["aljabar_pkg.groebner"], "DEFAULT_MONOMIAL_ORDER", "grevlex")
        assert groebner("x^2 + y^2 - 1, x - y").to_dict()["order"] == "grevlex"
        assert groebner("x - y", order="lex").to_dict()["order"] == "lex"


class TestClassifyEquation:
    def test_single(self):
        result = classify_equation("x^3 = 1")
        assert isinstance(result, Classification)
        assert result.category is EquationCategory.CUBIC

    def test_system(self):
        assert classify_equation("x + y = 1, x - y = 0").category is EquationCategory.SYSTEM

    def test_unknown(self):
        assert classify_equation(x + 1).category is EquationCategory.UNKNOWN
