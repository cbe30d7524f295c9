"""Function registry consulted by canonicalization, classification and calculus.

The core only stores a function name and its arguments; everything known
about a name (domain, symmetry, exact values, inverse) lives here and is
looked up by name in O(1).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from .expression import ONE, ZERO, Expression, Kind

Evaluator = Callable[[tuple], Optional[Expression]]


@dataclass(frozen=True)
class PropertySet:
    """Static facts about a registered function."""

    arity: int = 1
    transcendental: bool = True
    odd: bool = False
    even: bool = False
    domain: str = "all"  # "all", "positive", "nonnegative", "unit_interval"
    marker: bool = False  # derivative/partial markers carry no values


class FunctionRegistry:
    """Name-keyed registry of function properties, exact evaluators and inverses."""

    def __init__(self):
        self._properties: dict[str, PropertySet] = {}
        self._evaluators: dict[str, Evaluator] = {}
        self._inverses: dict[str, str] = {}

    def register(
        self,
        name: str,
        properties: PropertySet,
        evaluator: Evaluator | None = None,
        inverse: str | None = None,
    ) -> None:
        self._properties[name] = properties
        if evaluator is not None:
            self._evaluators[name] = evaluator
        if inverse is not None:
            self._inverses[name] = inverse

    def is_known(self, name: str) -> bool:
        return name in self._properties

    def properties(self, name: str) -> PropertySet | None:
        return self._properties.get(name)

    def inverse(self, name: str) -> str | None:
        return self._inverses.get(name)

    def is_transcendental(self, name: str) -> bool:
        props = self._properties.get(name)
        # Unknown functions are opaque, so treat them like transcendental ones
        return props is None or props.transcendental

    def evaluate_if_exact(self, name: str, args: tuple) -> Expression | None:
        """Exact value of ``name(*args)`` when one is known, else None."""
        props = self._properties.get(name)
        if props is None or len(args) != props.arity:
            return None
        if props.odd and _is_negated(args[0]):
            inner = Expression(Kind.FUNCTION, name, (-args[0],))
            evaluated = self.evaluate_if_exact(name, (-args[0],))
            return -(evaluated if evaluated is not None else inner)
        if props.even and _is_negated(args[0]):
            return Expression.function(name, -args[0])
        evaluator = self._evaluators.get(name)
        if evaluator is None:
            return None
        return evaluator(args)


def _is_negated(expr: Expression) -> bool:
    coeff, _ = expr.as_coefficient_and_term()
    return coeff.is_negative()


def _at_zero(value: Expression) -> Evaluator:
    def evaluate(args):
        return value if args[0].is_zero() else None

    return evaluate


def _exp(args):
    (arg,) = args
    if arg.is_zero():
        return ONE
    if arg.kind is Kind.FUNCTION and arg.payload == "log":
        return arg.children[0]
    return None


def _log(args):
    (arg,) = args
    if arg.kind is Kind.NUMBER:
        if arg.payload.is_one():
            return ZERO
        if arg.payload.value <= 0:
            return Expression.undefined("log of a non-positive number")
    if arg.kind is Kind.FUNCTION and arg.payload == "exp":
        return arg.children[0]
    return None


def _sqrt(args):
    return Expression.pow(args[0], Expression.rational(1, 2))


def _abs(args):
    (arg,) = args
    if arg.kind is Kind.NUMBER:
        return Expression(Kind.NUMBER, abs(arg.payload))
    if arg.kind is Kind.SYMBOL and arg.payload.is_assumed("positive"):
        return arg
    return None


def _asin(args):
    return ZERO if args[0].is_zero() else None


def _acos(args):
    return ZERO if args[0].is_one() else None


def _derivative_marker(args):
    return None


def _build_default() -> FunctionRegistry:
    registry = FunctionRegistry()
    registry.register("sin", PropertySet(odd=True), _at_zero(ZERO), inverse="asin")
    registry.register("cos", PropertySet(even=True), _at_zero(ONE), inverse="acos")
    registry.register("tan", PropertySet(odd=True), _at_zero(ZERO), inverse="atan")
    registry.register("asin", PropertySet(odd=True, domain="unit_interval"), _asin, inverse="sin")
    registry.register("acos", PropertySet(domain="unit_interval"), _acos, inverse="cos")
    registry.register("atan", PropertySet(odd=True), _at_zero(ZERO), inverse="tan")
    registry.register("exp", PropertySet(), _exp, inverse="log")
    registry.register("log", PropertySet(domain="positive"), _log, inverse="exp")
    registry.register("sqrt", PropertySet(transcendental=False, domain="nonnegative"), _sqrt)
    registry.register("abs", PropertySet(transcendental=False, even=True), _abs)
    registry.register("pi", PropertySet(arity=0, transcendental=False))
    for marker in ("derivative", "diff", "partial"):
        registry.register(marker, PropertySet(arity=2, marker=True), _derivative_marker)
    return registry


_DEFAULT: FunctionRegistry | None = None


def default_registry() -> FunctionRegistry:
    global _DEFAULT
    if _DEFAULT is None:
        _DEFAULT = _build_default()
    return _DEFAULT

