"""Unit tests for solver strategies."""

import math
import unittest
from unittest import mock

from aljabar_pkg.calculus import numeric_value
from aljabar_pkg.expression import Expression
from aljabar_pkg.groebner import Budget
from aljabar_pkg.solver import (
    ConstantStrategy,
    LinearStrategy,
    PolynomialStrategy,
    QuadraticStrategy,
    SystemStrategy,
    TranscendentalStrategy,
    UnsupportedStrategy,
    zero_form,
)
from aljabar_pkg.symbols import symbol, symbols
from aljabar_pkg.types import ResultKind

X, Y = symbols("x y")
x, y = Expression.symbol(X), Expression.symbol(Y)
a, b = Expression.symbol("a"), Expression.symbol("b")


def eq(lhs, rhs=0):
    return Expression.equation(lhs, rhs)


def sqrt(arg):
    return Expression.function("sqrt", arg)


class TestZeroForm(unittest.TestCase):
    def test_moves_everything_left(self):
        self.assertEqual(zero_form(eq((x + 1) ** 2, x)), x**2 + x + 1)


class TestConstantStrategy(unittest.TestCase):
    """Equations that do not mention the target variable."""

    def test_contradiction(self):
        result = ConstantStrategy().solve(eq(Expression.integer(1)), None)
        self.assertEqual(result.kind, ResultKind.NO_SOLUTION)
        self.assertIn("Contradiction", result.reason)

    def test_identity(self):
        result = ConstantStrategy().solve(eq(x, x), X)
        self.assertEqual(result.kind, ResultKind.INFINITE)

    def test_parameter_condition(self):
        result = ConstantStrategy().solve(eq(a, 2), X)
        self.assertEqual(result.kind, ResultKind.INDETERMINATE)
        self.assertEqual(result.relations, (eq(a - 2, 0),))


class TestLinearStrategy(unittest.TestCase):
    def test_numeric(self):
        result = LinearStrategy().solve(eq(2 * x + 1, 0), X)
        self.assertEqual(result.kind, ResultKind.UNIQUE)
        self.assertEqual(result.value, Expression.rational(-1, 2))
        self.assertFalse(result.approximate)

    def test_symbolic_coefficients(self):
        result = LinearStrategy().solve(eq(a * x + b, 0), X)
        self.assertEqual(result.value, -b / a)

    def test_float_coefficients_are_approximate(self):
        result = LinearStrategy().solve(eq(Expression.float(0.5) * x, 1), X)
        self.assertTrue(result.approximate)
        self.assertAlmostEqual(numeric_value(result.value), 2.0)

    def test_not_polynomial_is_indeterminate(self):
        result = LinearStrategy().solve(eq(Expression.function("sin", x)), X)
        self.assertEqual(result.kind, ResultKind.INDETERMINATE)


class TestQuadraticStrategy(unittest.TestCase):
    def test_two_rational_roots(self):
        result = QuadraticStrategy().solve(eq(x**2, 4), X)
        self.assertEqual(result.kind, ResultKind.MULTIPLE)
        self.assertEqual(result.solutions, (Expression.integer(-2), Expression.integer(2)))

    def test_double_root_is_unique(self):
        result = QuadraticStrategy().solve(eq(x**2 - 2 * x + 1), X)
        self.assertEqual(result.kind, ResultKind.UNIQUE)
        self.assertEqual(result.value, 1)

    def test_irrational_roots_stay_exact(self):
        result = QuadraticStrategy().solve(eq(x**2, 2), X)
        self.assertEqual(result.solutions, (-sqrt(2), sqrt(2)))
        self.assertFalse(result.approximate)

    def test_negative_discriminant(self):
        result = QuadraticStrategy().solve(eq(x**2 + 1), X)
        self.assertEqual(result.kind, ResultKind.NO_SOLUTION)

    def test_complex_variable_gets_complex_roots(self):
        w = symbol("w_complex", complex=True)
        result = QuadraticStrategy().solve(eq(Expression.symbol(w) ** 2 + 1), w)
        self.assertEqual(result.kind, ResultKind.MULTIPLE)


class TestPolynomialStrategy(unittest.TestCase):
    def test_cubic_with_rational_roots(self):
        result = PolynomialStrategy().solve(eq(x**3 - 6 * x**2 + 11 * x - 6), X)
        self.assertEqual(set(result.solutions), {Expression.integer(n) for n in (1, 2, 3)})
        self.assertFalse(result.approximate)

    def test_deflation_to_quadratic(self):
        result = PolynomialStrategy().solve(eq(x**3 - x**2 - 2 * x + 2), X)
        self.assertEqual(set(result.solutions), {Expression.integer(1), sqrt(2), -sqrt(2)})

    def test_quartic(self):
        result = PolynomialStrategy().solve(eq(x**4 - 5 * x**2 + 4), X)
        self.assertEqual(set(result.solutions), {Expression.integer(n) for n in (-2, -1, 1, 2)})

    def test_numeric_fallback(self):
        result = PolynomialStrategy().solve(eq(x**3, 2), X)
        self.assertEqual(result.kind, ResultKind.UNIQUE)
        self.assertTrue(result.approximate)
        self.assertAlmostEqual(numeric_value(result.value), 2 ** (1 / 3), places=9)

    def test_no_real_roots(self):
        result = PolynomialStrategy().solve(eq(x**4 + 1), X)
        self.assertEqual(result.kind, ResultKind.NO_SOLUTION)

    def test_symbolic_coefficients(self):
        result = PolynomialStrategy().solve(eq(a * x**3 + 1), X)
        self.assertEqual(result.kind, ResultKind.INDETERMINATE)

    def test_imaginary_part_filter_uses_numeric_tolerance(self):
        with mock.patch("aljabar_pkg.solver.NUMERIC_TOLERANCE", 10.0):
            result = PolynomialStrategy().solve(eq(x**4 + 1), X)
        self.assertEqual(result.kind, ResultKind.MULTIPLE)
        self.assertEqual(
            sorted(round(numeric_value(v), 6) for v in result.solutions), [-0.707107, 0.707107]
        )


class TestTranscendentalStrategy(unittest.TestCase):
    """Isolation through inverse functions, with a numeric fallback."""

    def setUp(self):
        self.strategy = TranscendentalStrategy()

    def test_exponential(self):
        result = self.strategy.solve(eq(Expression.function("exp", x), 1), X)
        self.assertEqual(result.value, 0)

    def test_logarithm(self):
        result = self.strategy.solve(eq(Expression.function("log", x), 0), X)
        self.assertEqual(result.value, 1)

    def test_nested_linear_argument(self):
        result = self.strategy.solve(eq(Expression.function("exp", 2 * x + 1), 1), X)
        self.assertEqual(result.value, Expression.rational(-1, 2))

    def test_out_of_range(self):
        for equation in (
            eq(Expression.function("sin", x), 2),
            eq(Expression.function("exp", x), -1),
            eq(sqrt(x), -1),
        ):
            with self.subTest(equation=str(equation)):
                self.assertEqual(self.strategy.solve(equation, X).kind, ResultKind.NO_SOLUTION)

    def test_radical(self):
        result = self.strategy.solve(eq(sqrt(x), 3), X)
        self.assertEqual(result.value, 9)

    def test_variable_exponent(self):
        result = self.strategy.solve(eq(Expression.pow(2, x), 8), X)
        self.assertEqual(result.kind, ResultKind.UNIQUE)
        self.assertAlmostEqual(numeric_value(result.value), 3.0)

    def test_numeric_fallback(self):
        result = self.strategy.solve(eq(Expression.function("cos", x), x), X)
        self.assertEqual(result.kind, ResultKind.UNIQUE)
        self.assertTrue(result.approximate)
        self.assertAlmostEqual(numeric_value(result.value), 0.7390851332, places=8)

    def test_even_power_keeps_both_signs(self):
        for rhs, root in ((64, 2), (1, 1)):
            with self.subTest(rhs=rhs):
                result = self.strategy.solve(eq(x**6, rhs), X)
                self.assertEqual(result.kind, ResultKind.MULTIPLE)
                self.assertEqual(
                    set(result.solutions), {Expression.integer(root), Expression.integer(-root)}
                )
                self.assertFalse(result.approximate)

    def test_fractional_even_power(self):
        two_thirds = Expression.pow(x, Expression.rational(2, 3))
        result = self.strategy.solve(eq(two_thirds, 4), X)
        self.assertEqual(set(result.solutions), {Expression.integer(8), Expression.integer(-8)})
        self.assertEqual(self.strategy.solve(eq(two_thirds, -4), X).kind, ResultKind.NO_SOLUTION)

    def test_odd_root_is_single_valued(self):
        result = self.strategy.solve(eq(Expression.pow(x, Expression.rational(1, 3)), 2), X)
        self.assertEqual(result.kind, ResultKind.UNIQUE)
        self.assertEqual(result.value, 8)

    def test_quintic_uses_polynomial_roots(self):
        result = self.strategy.solve(eq(x**5 - x - 1), X)
        self.assertEqual(result.kind, ResultKind.UNIQUE)
        self.assertTrue(result.approximate)
        self.assertAlmostEqual(numeric_value(result.value), 1.1673039782614187, places=9)

    def test_cosine_is_periodic(self):
        half = Expression.rational(1, 2)
        result = self.strategy.solve(eq(Expression.function("cos", x), half), X)
        self.assertEqual(result.kind, ResultKind.INFINITE)
        principal = Expression.function("acos", half)
        self.assertEqual(result.relations, (eq(x, principal), eq(x, -principal)))
        self.assertIn("2*pi", result.reason)

    def test_sine_branches(self):
        result = self.strategy.solve(eq(Expression.function("sin", x), 0), X)
        self.assertEqual(result.kind, ResultKind.INFINITE)
        self.assertEqual(result.relations, (eq(x, 0), eq(x, Expression.function("pi"))))

    def test_sine_of_linear_argument(self):
        result = self.strategy.solve(eq(Expression.function("sin", 2 * x), 0), X)
        self.assertEqual(result.kind, ResultKind.INFINITE)
        values = [numeric_value(r.rhs) for r in result.relations]
        self.assertAlmostEqual(values[0], 0.0)
        self.assertAlmostEqual(values[1], math.pi / 2)

    def test_tangent_has_one_branch(self):
        result = self.strategy.solve(eq(Expression.function("tan", x), 1), X)
        self.assertEqual(result.kind, ResultKind.INFINITE)
        self.assertEqual(result.relations, (eq(x, Expression.function("atan", 1)),))
        self.assertNotIn("2*pi", result.reason)


class TestUnsupportedStrategy(unittest.TestCase):
    def test_indeterminate_with_residual(self):
        ode = eq(Expression.function("derivative", y, x), y)
        result = UnsupportedStrategy("ode").solve(ode, Y)
        self.assertEqual(result.kind, ResultKind.INDETERMINATE)
        self.assertEqual(result.relations, (ode,))
        self.assertIn("ODE", result.reason)


class TestSystemStrategy(unittest.TestCase):
    """Linear systems by elimination, polynomial systems by Gröbner bases."""

    def setUp(self):
        self.strategy = SystemStrategy()

    def test_linear_unique(self):
        result = self.strategy.solve_system([eq(2 * x + y, 5), eq(x - y, 1)], (X, Y))
        self.assertEqual(result.kind, ResultKind.UNIQUE)
        self.assertEqual(result.value, ((X, Expression.integer(2)), (Y, Expression.integer(1))))
        self.assertIn("gaussian_elimination", [s.name for s in result.steps])

    def test_linear_float_system(self):
        result = self.strategy.solve_system(
            [eq(Expression.float(0.5) * x + y, 1), eq(x - y, Expression.float(0.5))], (X, Y)
        )
        self.assertEqual(result.kind, ResultKind.UNIQUE)
        self.assertTrue(result.approximate)
        values = result.as_dicts()[0]
        self.assertAlmostEqual(numeric_value(values["x"]), 1.0)
        self.assertAlmostEqual(numeric_value(values["y"]), 0.5)

    def test_linear_dependent(self):
        result = self.strategy.solve_system([eq(x + y, 1), eq(2 * x + 2 * y, 2)], (X, Y))
        self.assertEqual(result.kind, ResultKind.INFINITE)
        self.assertEqual(result.relations, (eq(x + y, 1),))

    def test_linear_inconsistent(self):
        result = self.strategy.solve_system([eq(x + y, 1), eq(x + y, 2)], (X, Y))
        self.assertEqual(result.kind, ResultKind.NO_SOLUTION)

    def test_symbolic_coefficients_are_indeterminate(self):
        result = self.strategy.solve_system([eq(a * x + y, 1), eq(x - y, 0)], (X, Y))
        self.assertEqual(result.kind, ResultKind.INDETERMINATE)

    def test_circle_and_line(self):
        result = self.strategy.solve_system([eq(x**2 + y**2, 1), eq(x, y)], (X, Y))
        self.assertNotEqual(result.kind, ResultKind.NO_SOLUTION)
        self.assertIn(result.kind, (ResultKind.MULTIPLE, ResultKind.INDETERMINATE))
        if result.kind is ResultKind.MULTIPLE:
            points = sorted(
                (numeric_value(d["x"]), numeric_value(d["y"])) for d in result.as_dicts()
            )
            half = math.sqrt(2) / 2
            self.assertEqual(len(points), 2)
            for (px, py), expected in zip(points, (-half, half)):
                self.assertAlmostEqual(px, expected)
                self.assertAlmostEqual(py, expected)

    def test_inconsistent_polynomial_system(self):
        result = self.strategy.solve_system([eq(x**2, 1), eq(x**2, -1)], (X,))
        self.assertEqual(result.kind, ResultKind.NO_SOLUTION)

    def test_groebner_steps_recorded(self):
        result = self.strategy.solve_system([eq(x**2 + y**2, 1), eq(x, y)], (X, Y))
        names = [s.name for s in result.steps]
        self.assertIn("s_pair", names)
        self.assertIn("groebner_basis", names)
        self.assertEqual(names[0], "system_kind")
        self.assertEqual(result.steps[0].detail, "polynomial")
        self.assertLess(names.index("s_pair"), names.index("groebner_basis"))

    def test_system_kind_step_comes_first_for_linear_systems(self):
        result = self.strategy.solve_system([eq(2 * x + y, 5), eq(x - y, 1)], (X, Y))
        self.assertEqual([s.name for s in result.steps], ["system_kind", "gaussian_elimination"])

    def test_budget_exhaustion_is_indeterminate(self):
        strategy = SystemStrategy(budget=Budget(max_pairs=0))
        result = strategy.solve_system([eq(x**2 + y**2, 1), eq(x, y)], (X, Y))
        self.assertEqual(result.kind, ResultKind.INDETERMINATE)
        self.assertEqual(len(result.basis), 2)

    def test_nonpolynomial_system(self):
        result = self.strategy.solve_system(
            [eq(Expression.function("exp", x), y), eq(x, y)], (X, Y)
        )
        self.assertEqual(result.kind, ResultKind.INDETERMINATE)


if __name__ == "__main__":
    unittest.main()
