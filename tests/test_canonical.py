"""Tests for canonical form construction."""

import pickle
import unittest

from aljabar_pkg.canonical import canonicalize, check_canonical, expand, simplify
from aljabar_pkg.expression import ONE, ZERO, Expression, Kind
from aljabar_pkg.numeric import NumberKind

x = Expression.symbol("x")
y = Expression.symbol("y")
z = Expression.symbol("z")
HALF = Expression.rational(1, 2)


class TestCommutativity(unittest.TestCase):
    """Structurally equal inputs must produce equal canonical values."""

    def test_sum_order_irrelevant(self):
        self.assertEqual(x + y, y + x)
        self.assertEqual(Expression.add(x, y, z), Expression.add(z, x, y))

    def test_product_order_irrelevant(self):
        self.assertEqual(x * y, y * x)
        self.assertEqual(hash(x * y * z), hash(z * y * x))

    def test_nested_sums_flatten(self):
        nested = Expression.add(x, Expression.add(y, Expression.add(z, 1)))
        self.assertEqual(nested.kind, Kind.SUM)
        self.assertEqual(len(nested.children), 4)


class TestCollection(unittest.TestCase):
    def test_like_terms_combine(self):
        self.assertEqual(x + x, Expression.mul(2, x))
        self.assertEqual(2 * x + 3 * x, 5 * x)

    def test_cancellation_gives_zero(self):
        self.assertEqual(x - x, ZERO)
        self.assertTrue((x * y - y * x).is_zero())

    def test_equal_bases_add_exponents(self):
        self.assertEqual(x * x, Expression.pow(x, 2))
        self.assertEqual(x**2 * x**3, x**5)
        self.assertEqual(x**2 / x**2, ONE)

    def test_numeric_folding(self):
        self.assertEqual(Expression.integer(6) / 4, Expression.rational(3, 2))
        self.assertEqual(Expression.add(1, 2, 3), 6)

    def test_power_identities(self):
        self.assertEqual(x**1, x)
        self.assertEqual(x**0, ONE)
        self.assertEqual((x**2) ** 3, x**6)
        self.assertEqual((x * y) ** 2, x**2 * y**2)

    def test_rendering(self):
        self.assertEqual(str(2 * x + 1), "1 + 2*x")
        self.assertEqual(str(x**2), "x^2")
        self.assertEqual(str(x - y), "x - y")


class TestUndefined(unittest.TestCase):
    def test_zero_to_the_zero(self):
        result = Expression.pow(0, 0)
        self.assertTrue(result.is_undefined)
        self.assertEqual(result.reason, "0^0")

    def test_division_by_zero(self):
        self.assertTrue((x / 0).is_undefined)

    def test_undefined_absorbs(self):
        u = Expression.undefined("test")
        self.assertTrue((x + u).is_undefined)
        self.assertTrue((x * u).is_undefined)
        self.assertTrue(Expression.function("sin", u).is_undefined)
        self.assertTrue(Expression.equation(x, u).is_undefined)

    def test_competing_undefined_values_commute(self):
        a = Expression.pow(0, -1)
        b = Expression.function("log", 0)
        self.assertTrue(a.is_undefined and b.is_undefined)
        self.assertNotEqual(a, b)
        self.assertEqual(a + b, b + a)
        self.assertEqual(a * b, b * a)
        self.assertEqual(Expression.add(x, a, b), Expression.add(b, x, a))


class TestFloats(unittest.TestCase):
    def test_floats_stay_approximate(self):
        result = Expression.float(0.5) + HALF
        self.assertEqual(result.value.kind, NumberKind.FLOAT)
        self.assertEqual(result.value.value, 1.0)
        self.assertFalse(result.is_exact())

    def test_float_one_coefficient_is_kept(self):
        self.assertNotEqual(Expression.float(1.0) * x, x)

    def test_exact_and_float_differ(self):
        self.assertNotEqual(Expression.integer(1), Expression.float(1.0))


class TestRadicals(unittest.TestCase):
    def test_perfect_powers_are_pulled_out(self):
        sqrt2 = Expression.pow(2, HALF)
        self.assertEqual(Expression.function("sqrt", 8), 2 * sqrt2)
        self.assertEqual(Expression.function("sqrt", 16), 4)

    def test_denominator_rationalized(self):
        self.assertEqual(Expression.pow(HALF, HALF), Expression.pow(2, HALF) / 2)

    def test_radical_squared(self):
        sqrt2 = Expression.function("sqrt", 2)
        self.assertEqual(sqrt2 * sqrt2, 2)
        self.assertEqual(sqrt2**2, 2)

    def test_odd_root_of_negative(self):
        self.assertEqual(Expression.pow(-8, Expression.rational(1, 3)), -2)


class TestFunctions(unittest.TestCase):
    def test_symmetry(self):
        self.assertEqual(Expression.function("sin", -x), -Expression.function("sin", x))
        self.assertEqual(Expression.function("cos", -x), Expression.function("cos", x))

    def test_exact_values(self):
        self.assertEqual(Expression.function("sin", 0), ZERO)
        self.assertEqual(Expression.function("exp", 0), ONE)
        self.assertEqual(Expression.function("log", 1), ZERO)
        self.assertTrue(Expression.function("log", 0).is_undefined)

    def test_inverse_pairs_cancel(self):
        self.assertEqual(Expression.function("exp", Expression.function("log", x)), x)

    def test_unknown_function_is_opaque(self):
        f = Expression.function("f", x)
        self.assertEqual(f.kind, Kind.FUNCTION)
        self.assertEqual(f.name, "f")


class TestCanonicalize(unittest.TestCase):
    def test_raw_tree_is_rebuilt(self):
        raw = Expression(Kind.SUM, None, (x, x, Expression(Kind.NUMBER, ZERO.value)))
        self.assertEqual(canonicalize(raw), 2 * x)

    def test_idempotent(self):
        samples = [
            x + 1,
            (x + 1) ** 2,
            Expression.function("sqrt", 8) * y,
            Expression.equation(x**2, Expression.function("sin", -y)),
        ]
        for e in samples:
            with self.subTest(expr=str(e)):
                once = canonicalize(e)
                self.assertEqual(canonicalize(once), once)
                self.assertEqual(once, e)

    def test_check_canonical_passes_through(self):
        e = x + 1
        self.assertIs(check_canonical(e), e)

    def test_pickle_round_trip(self):
        e = Expression.equation(x**2 + Expression.function("sqrt", 2), 3)
        self.assertEqual(pickle.loads(pickle.dumps(e)), e)


class TestExpand(unittest.TestCase):
    def test_binomial(self):
        self.assertEqual(expand((x + 1) ** 2), x**2 + 2 * x + 1)

    def test_distribution(self):
        self.assertEqual(expand(x * (y + 1)), x * y + x)
        self.assertEqual(expand((x + y) * (x - y)), x**2 - y**2)

    def test_simplify_prefers_smaller_form(self):
        self.assertEqual(simplify((x + 1) * (x - 1) - x**2), -1)
        # factored form is smaller than its expansion
        self.assertEqual(simplify((x + 1) ** 5), (x + 1) ** 5)


if __name__ == "__main__":
    unittest.main()
