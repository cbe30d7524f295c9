"""Unit tests for symbol interning."""

import pickle
import unittest
from concurrent.futures import ThreadPoolExecutor

from aljabar_pkg.symbols import is_interned, symbol, symbols
from aljabar_pkg.types import ValidationError


class TestInterning(unittest.TestCase):
    def test_same_name_same_object(self):
        self.assertIs(symbol("x"), symbol("x"))

    def test_symbols_helper(self):
        x, y = symbols("x, y")
        self.assertIs(x, symbol("x"))
        self.assertIs(y, symbol("y"))
        self.assertTrue(is_interned("y"))

    def test_ordering_by_name(self):
        self.assertLess(symbol("a"), symbol("b"))

    def test_pickle_preserves_identity(self):
        s = symbol("w_pickled", positive=True)
        self.assertIs(pickle.loads(pickle.dumps(s)), s)

    def test_concurrent_interning(self):
        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(lambda _: symbol("shared_name"), range(64)))
        self.assertTrue(all(r is results[0] for r in results))


class TestAssumptions(unittest.TestCase):
    def test_assumption_implications(self):
        p = symbol("p_pos", positive=True)
        self.assertTrue(p.is_assumed("positive"))
        self.assertTrue(p.is_assumed("real"))
        self.assertTrue(p.is_assumed("nonzero"))
        self.assertFalse(p.is_assumed("integer"))

    def test_lookup_without_assumptions_returns_existing(self):
        n = symbol("n_int", integer=True)
        self.assertIs(symbol("n_int"), n)

    def test_conflicting_assumptions_rejected(self):
        symbol("t_conflict", positive=True)
        with self.assertRaises(ValidationError) as ctx:
            symbol("t_conflict", negative=True)
        self.assertEqual(ctx.exception.code, "ASSUMPTION_CONFLICT")

    def test_unknown_assumption(self):
        with self.assertRaises(ValidationError) as ctx:
            symbol("u_unknown", shiny=True)
        self.assertEqual(ctx.exception.code, "UNKNOWN_ASSUMPTION")

    def test_invalid_name(self):
        with self.assertRaises(ValidationError) as ctx:
            symbol("1x")
        self.assertEqual(ctx.exception.code, "INVALID_SYMBOL")


if __name__ == "__main__":
    unittest.main()
