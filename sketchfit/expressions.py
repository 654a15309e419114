"""Display grammar for fitted functions.

Each regression family has a fixed textual form.  ``format_expression`` turns
display coefficients into that text and ``parse_expression`` reads them back;
``evaluate`` computes y from parsed coefficients so a bare display string can
still be drawn.

Display coefficients differ from the fitted ones in two places, both kept on
purpose so strings look and evaluate the way the drawing tool always has:

* the leading quadratic coefficient is shown as a magnitude;
* the exponent of the exponential family is shown negated, and the evaluator
  negates it again (``a·e^(-b·x)``).
"""

from __future__ import annotations

import logging
import re
from enum import Enum
from typing import Any, Callable, Sequence, Union

import numpy as np
import sympy as sp
from numpy.typing import NDArray

from sketchfit.numeric import round_half_up

logger = logging.getLogger(__name__)

FloatArray = NDArray[np.floating[Any]]
Scalar = Union[float, FloatArray]

# Sign conventions of the display grammar.  Do not "fix" these: the overlay
# drawn from a parsed string relies on them.
QUADRATIC_LEADING_SIGN_SHOWN: bool = False
EXPONENT_DISPLAY_SIGN: float = -1.0

DISPLAY_DECIMALS: int = 2


class RegressionFamily(str, Enum):
    LINEAR = "linear"
    QUADRATIC = "quadratic"
    EXPONENTIAL = "exponential"

    @property
    def arity(self) -> int:
        return 3 if self is RegressionFamily.QUADRATIC else 2


# ===========================================================================
# Numbers
# ===========================================================================

def format_number(value: float, decimals: int = DISPLAY_DECIMALS) -> str:
    """Round to *decimals* places; integral values print without a fraction."""
    rounded = round_half_up(value, decimals)
    if not np.isfinite(rounded):
        return str(rounded)
    if rounded == int(rounded):
        return str(int(rounded))
    return repr(rounded)


def _to_float(text: str | None) -> float:
    if not text:
        return 0.0
    try:
        return float(text)
    except ValueError:
        return 0.0


def _signed(sign: str | None, text: str | None) -> float:
    return (-1.0 if sign == "-" else 1.0) * _to_float(text)


# ===========================================================================
# Formatting
# ===========================================================================

def format_linear(slope: float, intercept: float) -> str:
    slope_s = format_number(slope)
    if round_half_up(intercept, DISPLAY_DECIMALS) == 0:
        return f"{slope_s}x"
    sign = "+" if intercept >= 0 else "-"
    return f"{slope_s}x {sign} {format_number(abs(intercept))}"


def format_quadratic(a: float, b: float, c: float) -> str:
    # b and c carry their own minus sign; only a non-negative term gets "+".
    b_sign = "+" if b >= 0 else ""
    c_sign = "+" if c >= 0 else ""
    return (
        f"{format_number(abs(a))}x² {b_sign} {format_number(b)}x "
        f"{c_sign} {format_number(c)}"
    )


def format_exponential(a: float, b: float) -> str:
    return f"{format_number(a)}e^{{{format_number(b)}x}}"


_FORMATTERS: dict[RegressionFamily, Callable[..., str]] = {
    RegressionFamily.LINEAR: format_linear,
    RegressionFamily.QUADRATIC: format_quadratic,
    RegressionFamily.EXPONENTIAL: format_exponential,
}


def format_expression(family: RegressionFamily, coefficients: Sequence[float]) -> str:
    """Format *display* coefficients (see :func:`display_coefficients`)."""
    family = RegressionFamily(family)
    if len(coefficients) != family.arity:
        raise ValueError(
            f"{family.value} takes {family.arity} coefficients, got {len(coefficients)}"
        )
    return _FORMATTERS[family](*coefficients)


def display_coefficients(
    family: RegressionFamily, coefficients: Sequence[float]
) -> tuple[float, ...]:
    """Convert fitted coefficients to the ones the display string encodes."""
    family = RegressionFamily(family)
    if family is RegressionFamily.QUADRATIC:
        a, b, c = coefficients
        return (a if QUADRATIC_LEADING_SIGN_SHOWN else abs(a), b, c)
    if family is RegressionFamily.EXPONENTIAL:
        a, b = coefficients
        return (a, EXPONENT_DISPLAY_SIGN * b)
    return tuple(coefficients)


# ===========================================================================
# Parsing
# ===========================================================================

_LINEAR_RE = re.compile(r"(-?\d*\.?\d*)x\s*([-+])?\s*(-?\d*\.?\d*)")
_QUADRATIC_RE = re.compile(
    r"(-?\d*\.?\d*)x²\s*([-+])?\s*(-?\d*\.?\d*)x\s*([-+])?\s*(-?\d*\.?\d*)"
)
_EXPONENTIAL_RE = re.compile(r"(-?\d*\.?\d*)e\^\{(-?\d*\.?\d*)x\}")


def parse_linear(text: str) -> tuple[float, float]:
    match = _LINEAR_RE.search(text)
    if match is None:
        return 0.0, 0.0
    return _to_float(match.group(1)), _signed(match.group(2), match.group(3))


def parse_quadratic(text: str) -> tuple[float, float, float]:
    match = _QUADRATIC_RE.search(text)
    if match is None:
        return 0.0, 0.0, 0.0
    return (
        _to_float(match.group(1)),
        _signed(match.group(2), match.group(3)),
        _signed(match.group(4), match.group(5)),
    )


def parse_exponential(text: str) -> tuple[float, float]:
    match = _EXPONENTIAL_RE.search(text)
    if match is None:
        return 0.0, 0.0
    return _to_float(match.group(1)), _to_float(match.group(2))


_PARSERS: dict[RegressionFamily, Callable[[str], tuple[float, ...]]] = {
    RegressionFamily.LINEAR: parse_linear,
    RegressionFamily.QUADRATIC: parse_quadratic,
    RegressionFamily.EXPONENTIAL: parse_exponential,
}


def parse_expression(family: RegressionFamily, text: str) -> tuple[float, ...]:
    """Read display coefficients back out of *text*.

    Never raises on malformed text: an unmatched string gives all zeros.
    """
    coefficients = _PARSERS[RegressionFamily(family)](text)
    if text and not any(coefficients):
        logger.debug("No %s coefficients in %r", RegressionFamily(family).value, text)
    return coefficients


# ===========================================================================
# Evaluation of display coefficients
# ===========================================================================

def evaluate(family: RegressionFamily, coefficients: Sequence[float], x: Scalar) -> Scalar:
    """y for parsed display coefficients; *x* may be a scalar or an array."""
    family = RegressionFamily(family)
    if family is RegressionFamily.LINEAR:
        slope, intercept = coefficients
        return slope * x + intercept
    if family is RegressionFamily.QUADRATIC:
        a, b, c = coefficients
        return a * x * x + b * x + c
    a, b = coefficients
    return a * np.exp(EXPONENT_DISPLAY_SIGN * b * x)


def evaluate_expression(family: RegressionFamily, text: str, x: Scalar) -> Scalar:
    return evaluate(family, parse_expression(family, text), x)


def to_rich_text(text: str, placeholder: str = "________") -> str:
    """Qt rich-text form of a display string, superscripting powers."""
    if not text:
        return placeholder
    return (
        text.replace("x²", "x<sup>2</sup>", 1)
        .replace("e^{", "e<sup>", 1)
        .replace("x}", "x</sup>", 1)
    )


# ===========================================================================
# LaTeX
# ===========================================================================

class LaTeXRenderer:
    """Renders fitted coefficients as display-math LaTeX via sympy.

    Unlike the display string, the LaTeX shows the fitted curve itself:
    signed leading quadratic term and the true exponential growth rate.
    """

    def __init__(self, decimals: int = DISPLAY_DECIMALS) -> None:
        self.decimals = max(0, min(10, int(decimals)))
        self._dispatch: dict[RegressionFamily, Callable[[Sequence[float]], sp.Expr]] = {
            RegressionFamily.LINEAR: self._linear,
            RegressionFamily.QUADRATIC: self._quadratic,
            RegressionFamily.EXPONENTIAL: self._exponential,
        }

    def render(self, family: RegressionFamily, coefficients: Sequence[float]) -> str:
        if not coefficients:
            return ""
        expr = self._dispatch[RegressionFamily(family)](coefficients)
        return f"$$f(x) = {sp.latex(expr)}$$"

    def _n(self, v: float) -> sp.Expr:
        return sp.Float(f"{v:.{self.decimals}f}")

    def _linear(self, coefficients: Sequence[float]) -> sp.Expr:
        x = sp.Symbol("x")
        slope, intercept = coefficients
        return self._n(slope) * x + self._n(intercept)

    def _quadratic(self, coefficients: Sequence[float]) -> sp.Expr:
        x = sp.Symbol("x")
        a, b, c = coefficients
        return self._n(a) * x ** 2 + self._n(b) * x + self._n(c)

    def _exponential(self, coefficients: Sequence[float]) -> sp.Expr:
        x = sp.Symbol("x")
        a, b = coefficients
        return self._n(a) * sp.exp(self._n(b) * x)
