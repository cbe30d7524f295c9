"""Unit tests for parser module."""

import unittest

import sympy as sp

from aljabar_pkg.config import MAX_INPUT_LENGTH
from aljabar_pkg.expression import Expression, Kind
from aljabar_pkg.parser import (
    _split_top_level,
    from_sympy,
    is_balanced,
    parse,
    parse_equation,
    parse_symbols,
    parse_system,
    to_sympy,
    validate_input,
)
from aljabar_pkg.symbols import symbol, symbols
from aljabar_pkg.types import ParseError, ValidationError

X, Y = symbols("x y")
x, y = Expression.symbol(X), Expression.symbol(Y)
SX, SY = sp.symbols("x y")


class TestValidation(unittest.TestCase):
    """Input is rejected before it reaches SymPy."""

    def assertCode(self, text, code):
        with self.assertRaises(ValidationError) as ctx:
            validate_input(text)
        self.assertEqual(ctx.exception.code, code)

    def test_empty(self):
        self.assertCode("", "EMPTY_INPUT")
        self.assertCode("   ", "EMPTY_INPUT")

    def test_too_long(self):
        self.assertCode("x" * (MAX_INPUT_LENGTH + 1), "TOO_LONG")

    def test_forbidden_tokens(self):
        self.assertCode("__import__('os')", "FORBIDDEN_TOKEN")
        self.assertCode("import sys", "FORBIDDEN_TOKEN")
        self.assertCode("lambda: 1", "FORBIDDEN_TOKEN")

    def test_forbidden_token_is_logged(self):
        with self.assertLogs("aljabar.parser", level="WARNING"):
            with self.assertRaises(ValidationError):
                validate_input("eval(x)")

    def test_unbalanced(self):
        self.assertCode("(x + 1", "UNBALANCED")
        self.assertCode("x + 1)", "UNBALANCED")

    def test_is_balanced(self):
        self.assertEqual(is_balanced("(1+2)"), (True, None))
        self.assertEqual(is_balanced("[(])"), (False, 2))
        self.assertEqual(is_balanced("((x)"), (False, 0))


class TestParse(unittest.TestCase):
    def test_implicit_multiplication_and_caret(self):
        self.assertEqual(parse("2x + 3"), 2 * x + 3)
        self.assertEqual(parse("x^2 - 1"), x**2 - 1)

    def test_numbers(self):
        self.assertEqual(parse("1/3"), Expression.rational(1, 3))
        self.assertEqual(parse("0.5").value.kind.value, "float")

    def test_functions_and_constants(self):
        self.assertEqual(parse("sin(x)^2"), Expression.function("sin", x) ** 2)
        self.assertEqual(parse("sqrt(8)"), 2 * Expression.function("sqrt", 2))
        self.assertEqual(parse("pi"), Expression.function("pi"))

    def test_single_letter_names_stay_symbols(self):
        result = parse("N + S")
        self.assertEqual(result.kind, Kind.SUM)
        self.assertEqual({s.name for s in result.free_symbols()}, {"N", "S"})

    def test_syntax_error(self):
        with self.assertRaises(ParseError) as ctx:
            parse("x +* 2")
        self.assertEqual(ctx.exception.code, "PARSE_ERROR")


class TestEquations(unittest.TestCase):
    def test_equation(self):
        self.assertEqual(parse_equation("x^2 = 4"), Expression.equation(x**2, 4))
        self.assertEqual(parse("x = 2"), Expression.equation(x, 2))

    def test_bare_expression_means_equal_to_zero(self):
        self.assertEqual(parse_equation("x - 1"), Expression.equation(x - 1, 0))

    def test_invalid_equation(self):
        for text in ("x = x = 1", "x ="):
            with self.subTest(text=text):
                with self.assertRaises(ParseError) as ctx:
                    parse_equation(text)
                self.assertEqual(ctx.exception.code, "INVALID_EQUATION")

    def test_system(self):
        system = parse_system("x + y = 1, x - y = 0")
        self.assertEqual(system, [Expression.equation(x + y, 1), Expression.equation(x - y, 0)])
        self.assertEqual(len(parse_system("x = 1; y = 2\nx = y")), 3)

    def test_split_respects_brackets(self):
        self.assertEqual(_split_top_level("f(a, b), c", ","), ["f(a, b)", "c"])

    def test_parse_symbols(self):
        self.assertEqual(parse_symbols("x, y"), (X, Y))
        self.assertEqual(parse_symbols(X), (X,))
        self.assertIsNone(parse_symbols(None))


class TestSympyBridge(unittest.TestCase):
    def test_from_sympy_numbers(self):
        self.assertEqual(from_sympy(sp.Rational(3, 4)), Expression.rational(3, 4))
        self.assertEqual(from_sympy(sp.Integer(-7)), -7)
        self.assertTrue(from_sympy(sp.oo).is_undefined)
        self.assertTrue(from_sympy(sp.nan).is_undefined)

    def test_imaginary_unit(self):
        self.assertEqual(from_sympy(sp.I), Expression.pow(-1, Expression.rational(1, 2)))

    def test_derivative_markers(self):
        f = sp.Function("f")
        ode = from_sympy(sp.Derivative(f(SX), SX))
        self.assertEqual(ode.name, "derivative")
        u = sp.Function("u")
        pde = from_sympy(sp.Derivative(u(SX, SY), SX))
        self.assertEqual(pde.name, "partial")

    def test_unsupported(self):
        with self.assertRaises(ParseError) as ctx:
            from_sympy(sp.Integral(SX, SX))
        self.assertEqual(ctx.exception.code, "UNSUPPORTED_NODE")

    def test_to_sympy(self):
        self.assertEqual(to_sympy(x**2 + 1), SX**2 + 1)
        self.assertEqual(to_sympy(Expression.function("pi")), sp.pi)
        self.assertEqual(to_sympy(Expression.rational(2, 3) * y), sp.Rational(2, 3) * SY)
        equation = to_sympy(Expression.equation(x, 1))
        self.assertIsInstance(equation, sp.Equality)

    def test_assumptions_carry_over(self):
        p = symbol("p_bridge", positive=True)
        self.assertTrue(to_sympy(Expression.symbol(p)).is_positive)

    def test_round_trip(self):
        for e in (x**2 * y - 3, Expression.function("exp", x) + Expression.function("sqrt", 2)):
            with self.subTest(expr=str(e)):
                self.assertEqual(from_sympy(to_sympy(e)), e)


if __name__ == "__main__":
    unittest.main()
