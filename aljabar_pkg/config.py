"""Centralized configuration for Aljabar.

This module defines:
- Gröbner engine budgets (pair count, wall-clock seconds)
- Default monomial order for system solving
- Numeric tolerances for approximate roots
- Cache sizes for canonicalization
- Input validation limits and transformations for the SymPy bridge

Configuration can be overridden via environment variables (prefixed with ALJABAR_).
"""

import os
import re

from sympy.parsing.sympy_parser import (
    convert_xor,
    implicit_multiplication_application,
    standard_transformations,
)

# Version is defined in pyproject.toml [project] section
try:
    import importlib.metadata

    VERSION = importlib.metadata.version("aljabar")
except Exception:
    # Fallback if package not installed
    VERSION = "0.1.0"

# Gröbner engine budgets (checked once per processed pair)
GROEBNER_MAX_PAIRS = int(os.getenv("ALJABAR_GROEBNER_MAX_PAIRS", "10000"))
GROEBNER_MAX_SECONDS = float(os.getenv("ALJABAR_GROEBNER_MAX_SECONDS", "30.0"))

# Solver configuration
DEFAULT_MONOMIAL_ORDER = os.getenv(
    "ALJABAR_DEFAULT_MONOMIAL_ORDER", "lex"
)  # "lex", "grlex", "grevlex"
MAX_EXTRACTION_DEGREE = int(
    os.getenv("ALJABAR_MAX_EXTRACTION_DEGREE", "2")
)  # highest univariate degree solved in closed form during extraction
NUMERIC_FALLBACK_ENABLED = (
    os.getenv("ALJABAR_NUMERIC_FALLBACK_ENABLED", "true").lower() == "true"
)

# Numeric root search for transcendental equations
NUMERIC_SEARCH_MIN = float(os.getenv("ALJABAR_NUMERIC_SEARCH_MIN", "-12.566370614359172"))  # -4*pi
NUMERIC_SEARCH_MAX = float(os.getenv("ALJABAR_NUMERIC_SEARCH_MAX", "12.566370614359172"))  # 4*pi
NUMERIC_GRID_SIZE = int(os.getenv("ALJABAR_NUMERIC_GRID_SIZE", "200"))
MAX_NSOLVE_STEPS = int(os.getenv("ALJABAR_MAX_NSOLVE_STEPS", "80"))
MAX_NUMERIC_ROOTS = 20

# Numeric tolerance constants
NUMERIC_TOLERANCE = float(
    os.getenv("ALJABAR_NUMERIC_TOLERANCE", "1e-12")
)  # For imaginary part filtering of approximate roots
ROOT_DEDUP_TOLERANCE = float(
    os.getenv("ALJABAR_ROOT_DEDUP_TOLERANCE", "1e-9")
)  # For deduplicating approximate roots

# Cache configuration
CACHE_SIZE_CANONICAL = int(os.getenv("ALJABAR_CACHE_SIZE_CANONICAL", "4096"))

# Re-check canonical form at component boundaries (programmer-error guard)
DEBUG_INVARIANTS = os.getenv("ALJABAR_DEBUG_INVARIANTS", "false").lower() == "true"

# Logging: when ALJABAR_LOG_LEVEL is set, importing the package installs the
# structured handlers (stderr, plus ALJABAR_LOG_FILE when given)
LOG_LEVEL = os.getenv("ALJABAR_LOG_LEVEL", "")
LOG_FILE = os.getenv("ALJABAR_LOG_FILE") or None

# Serialized expression format version
SERIALIZATION_VERSION = 1

# Input validation limits
MAX_INPUT_LENGTH = int(os.getenv("ALJABAR_MAX_INPUT_LENGTH", "10000"))  # characters

ASSUMPTION_NAMES = frozenset(
    {"real", "complex", "positive", "negative", "integer", "nonzero"}
)

FORBIDDEN_TOKENS = ("__", "import", "lambda", "exec", "eval", "open")

TRANSFORMATIONS = standard_transformations + (
    implicit_multiplication_application,
    convert_xor,
)

VAR_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_']*$")
