"""Type definitions: solver outcomes, explanation steps and the error taxonomy."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .expression import Expression
    from .symbols import Symbol


class ResultKind(str, Enum):
    NO_SOLUTION = "no_solution"
    UNIQUE = "unique"
    MULTIPLE = "multiple"
    INFINITE = "infinite"
    INDETERMINATE = "indeterminate"


@dataclass(frozen=True)
class Step:
    """A named intermediate stage of an algorithm, kept as plain data."""

    name: str
    detail: str
    expressions: tuple = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "detail": self.detail,
            "expressions": [str(e) for e in self.expressions],
        }


@dataclass(frozen=True)
class SolverResult:
    """Uniform outcome of every solving strategy.

    ``solutions`` holds Expressions for single-equation results and tuples of
    ``(Symbol, Expression)`` pairs for systems. ``basis`` carries the partial
    Gröbner basis or residual system of an indeterminate result, and
    ``relations`` the reduced relations of an infinite one.
    """

    kind: ResultKind
    solutions: tuple = ()
    reason: str | None = None
    basis: tuple = ()
    relations: tuple = ()
    approximate: bool = False
    steps: tuple = field(default=(), compare=False)

    @classmethod
    def no_solution(cls, reason: str | None = None) -> SolverResult:
        return cls(ResultKind.NO_SOLUTION, reason=reason)

    @classmethod
    def unique(cls, value: Any, approximate: bool = False) -> SolverResult:
        return cls(ResultKind.UNIQUE, solutions=(value,), approximate=approximate)

    @classmethod
    def multiple(cls, values, approximate: bool = False) -> SolverResult:
        values = tuple(values)
        if not values:
            return cls.no_solution()
        if len(values) == 1:
            return cls.unique(values[0], approximate=approximate)
        return cls(ResultKind.MULTIPLE, solutions=values, approximate=approximate)

    @classmethod
    def infinite(cls, relations=(), reason: str | None = None) -> SolverResult:
        return cls(ResultKind.INFINITE, relations=tuple(relations), reason=reason)

    @classmethod
    def indeterminate(
        cls, reason: str, basis=(), residual=()
    ) -> SolverResult:
        return cls(
            ResultKind.INDETERMINATE,
            reason=reason,
            basis=tuple(basis),
            relations=tuple(residual),
        )

    @property
    def value(self) -> Any:
        """The single solution of a UNIQUE result."""
        if self.kind is not ResultKind.UNIQUE:
            raise SolverError(f"Result is {self.kind.value}, not unique", code="NOT_UNIQUE")
        return self.solutions[0]

    @property
    def is_solved(self) -> bool:
        return self.kind in (ResultKind.UNIQUE, ResultKind.MULTIPLE)

    def with_steps(self, steps) -> SolverResult:
        return replace(self, steps=tuple(self.steps) + tuple(steps))

    def as_dicts(self) -> list[dict[str, Expression]]:
        """Return system solutions as ``{variable name: value}`` mappings."""
        out = []
        for sol in self.solutions:
            if isinstance(sol, tuple):
                out.append({sym.name: val for sym, val in sol})
        return out

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result_dict: dict[str, Any] = {"type": self.kind.value}
        if self.solutions:
            rendered = []
            for sol in self.solutions:
                if isinstance(sol, tuple):
                    rendered.append({sym.name: str(val) for sym, val in sol})
                else:
                    rendered.append(str(sol))
            result_dict["solutions"] = rendered
        if self.reason is not None:
            result_dict["reason"] = self.reason
        if self.basis:
            result_dict["basis"] = [str(p) for p in self.basis]
        if self.relations:
            result_dict["relations"] = [str(r) for r in self.relations]
        if self.approximate:
            result_dict["approximate"] = True
        if self.steps:
            result_dict["steps"] = [s.to_dict() for s in self.steps]
        return result_dict

    def __repr__(self) -> str:
        parts = [f"kind={self.kind.value!r}"]
        if self.solutions:
            parts.append(f"solutions={self.solutions!r}")
        if self.reason is not None:
            parts.append(f"reason={self.reason!r}")
        if self.basis:
            parts.append(f"basis={self.basis!r}")
        if self.relations:
            parts.append(f"relations={self.relations!r}")
        if self.approximate:
            parts.append("approximate=True")
        return f"SolverResult({', '.join(parts)})"


def system_solution(pairs: dict[Symbol, Expression] | list) -> tuple:
    """Normalize a system solution to a tuple of pairs sorted by symbol name."""
    items = pairs.items() if isinstance(pairs, dict) else pairs
    return tuple(sorted(items, key=lambda kv: kv[0].name))


class AljabarError(Exception):
    """Base class for all errors raised by the engine."""

    default_code = "ALJABAR_ERROR"

    def __init__(self, message: str, code: str | None = None):
        self.message = message
        self.code = code or self.default_code
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


class ValidationError(AljabarError):
    """Raised when input validation fails."""

    default_code = "VALIDATION_ERROR"


class ParseError(AljabarError):
    """Raised when parsing or deserialization fails."""

    default_code = "PARSE_ERROR"


class DomainError(AljabarError):
    """An operation is undefined for the given inputs (e.g. division by zero)."""

    default_code = "DOMAIN_ERROR"


class ClassificationUnknown(AljabarError):
    """The classifier could not categorize the problem; solving must stop."""

    default_code = "CLASSIFICATION_UNKNOWN"


class NonConvergence(AljabarError):
    """An iteration or time budget was exhausted."""

    default_code = "NON_CONVERGENCE"


class InternalInvariantViolation(AljabarError):
    """A programmer error, such as a non-canonical expression reaching the core."""

    default_code = "INTERNAL_INVARIANT"


class SolverError(AljabarError):
    """Raised when solving fails."""

    default_code = "SOLVER_ERROR"


class NotPolynomialError(SolverError):
    """Raised when an expression is not a polynomial in the requested variables."""

    default_code = "NOT_POLYNOMIAL"
