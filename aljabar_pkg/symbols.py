"""Interned symbols with optional domain assumptions.

Every variable name maps to exactly one ``Symbol`` object for the lifetime of
the process, so identity comparison and hashing are O(1). The interning table
is private to this module and guarded by a lock for concurrent solvers.
"""

from __future__ import annotations

import threading
from functools import total_ordering

from .config import ASSUMPTION_NAMES, VAR_NAME_RE
from .types import ValidationError

_TABLE: dict[str, Symbol] | None = None
_LOCK = threading.Lock()


@total_ordering
class Symbol:
    """Opaque handle for an interned variable name."""

    __slots__ = ("_name", "_assumptions", "_hash")

    def __init__(self, name: str, assumptions: frozenset):
        object.__setattr__(self, "_name", name)
        object.__setattr__(self, "_assumptions", assumptions)
        object.__setattr__(self, "_hash", hash(("Symbol", name)))

    def __setattr__(self, key, value):
        raise AttributeError("Symbol is immutable")

    @property
    def name(self) -> str:
        return self._name

    @property
    def assumptions(self) -> frozenset:
        return self._assumptions

    def is_assumed(self, assumption: str) -> bool:
        if assumption in self._assumptions:
            return True
        # positive/negative/integer imply real
        if assumption == "real":
            return bool({"positive", "negative", "integer"} & self._assumptions)
        if assumption == "nonzero":
            return bool({"positive", "negative"} & self._assumptions)
        return False

    def __eq__(self, other):
        return self is other

    def __hash__(self):
        return self._hash

    def __lt__(self, other):
        if not isinstance(other, Symbol):
            return NotImplemented
        return self._name < other._name

    def __reduce__(self):
        return (_restore, (self._name, tuple(sorted(self._assumptions))))

    def __repr__(self) -> str:
        if self._assumptions:
            flags = ", ".join(f"{a}=True" for a in sorted(self._assumptions))
            return f"Symbol({self._name!r}, {flags})"
        return f"Symbol({self._name!r})"

    def __str__(self) -> str:
        return self._name


def _restore(name: str, assumptions: tuple) -> Symbol:
    return symbol(name, **{a: True for a in assumptions})


def _table() -> dict[str, Symbol]:
    global _TABLE
    if _TABLE is None:
        with _LOCK:
            if _TABLE is None:
                _TABLE = {}
    return _TABLE


def symbol(name: str, **assumptions: bool) -> Symbol:
    """Return the interned symbol for ``name``, creating it on first use.

    Args:
        name: Variable name (letters, digits, underscore, prime)
        **assumptions: Domain flags such as ``real=True`` or ``positive=True``

    Returns:
        The process-wide Symbol for this name

    Raises:
        ValidationError: For invalid names, unknown assumptions, or when the
            name was already interned with different assumptions
    """
    if not isinstance(name, str) or not VAR_NAME_RE.match(name):
        raise ValidationError(f"Invalid symbol name: {name!r}", code="INVALID_SYMBOL")
    unknown = set(assumptions) - ASSUMPTION_NAMES
    if unknown:
        raise ValidationError(
            f"Unknown assumption(s): {', '.join(sorted(unknown))}",
            code="UNKNOWN_ASSUMPTION",
        )
    flags = frozenset(k for k, v in assumptions.items() if v)

    table = _table()
    existing = table.get(name)
    if existing is not None and (not assumptions or existing.assumptions == flags):
        return existing
    with _LOCK:
        existing = table.get(name)
        if existing is None:
            existing = Symbol(name, flags)
            table[name] = existing
            return existing
    if assumptions and existing.assumptions != flags:
        raise ValidationError(
            f"Symbol {name!r} already declared with assumptions "
            f"{sorted(existing.assumptions)}",
            code="ASSUMPTION_CONFLICT",
        )
    return existing


def symbols(names: str, **assumptions: bool) -> tuple[Symbol, ...]:
    """Intern several whitespace- or comma-separated names at once."""
    parts = [p for p in names.replace(",", " ").split() if p]
    return tuple(symbol(p, **assumptions) for p in parts)


def is_interned(name: str) -> bool:
    return name in _table()
