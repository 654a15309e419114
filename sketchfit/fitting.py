"""Least-squares estimators for the three function families.

Linear        y = slope·x + intercept       ordinary least squares, closed form
Quadratic     y = a·x² + b·x + c            normal equations, Cramer's rule
Exponential   y = a·exp(b·x)                linear fit of ln(y), y > 0 only

Confidence is the coefficient of determination R² over the points that were
passed in.  Fits fail soft: :func:`estimate` returns ``FittedModel.empty``
rather than raising for short or degenerate input.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

import numpy as np
from numpy.typing import NDArray

from sketchfit.expressions import (
    LaTeXRenderer,
    RegressionFamily,
    Scalar,
    display_coefficients,
    format_expression,
)
from sketchfit.geometry import MathPoint

logger = logging.getLogger(__name__)

FloatArray = NDArray[np.floating[Any]]

MIN_POINTS: int = 2
SINGULAR_TOLERANCE: float = 1e-10

_LATEX = LaTeXRenderer()


# ===========================================================================
# Data-classes
# ===========================================================================

@dataclass(frozen=True, slots=True)
class FittedModel:
    family: RegressionFamily
    expression: str
    confidence: float
    coefficients: tuple[float, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if not isinstance(self.family, RegressionFamily):
            raise TypeError(f"family must be a RegressionFamily, got {self.family!r}")
        if self.coefficients and len(self.coefficients) != self.family.arity:
            raise ValueError(
                f"{self.family.value} takes {self.family.arity} coefficients, "
                f"got {len(self.coefficients)}"
            )

    @classmethod
    def empty(cls, family: RegressionFamily) -> FittedModel:
        return cls(family=RegressionFamily(family), expression="", confidence=0.0)

    @property
    def is_empty(self) -> bool:
        return not self.expression

    @property
    def display_coefficients(self) -> tuple[float, ...]:
        if self.is_empty:
            return ()
        return display_coefficients(self.family, self.coefficients)

    def evaluate(self, x: Scalar) -> Scalar:
        """Evaluate the fitted curve; the empty fit evaluates to NaN."""
        if self.is_empty:
            if np.ndim(x) == 0:
                return float("nan")
            return np.full_like(np.asarray(x, dtype=np.float64), np.nan)
        return _predict(self.family, self.coefficients, x)

    def to_latex(self) -> str:
        if self.is_empty:
            return ""
        return _LATEX.render(self.family, self.coefficients)


def _predict(family: RegressionFamily, coefficients: Sequence[float], x: Scalar) -> Scalar:
    if family is RegressionFamily.LINEAR:
        slope, intercept = coefficients
        return slope * x + intercept
    if family is RegressionFamily.QUADRATIC:
        a, b, c = coefficients
        return a * x * x + b * x + c
    a, b = coefficients
    return a * np.exp(b * x)


# ===========================================================================
# Goodness of fit
# ===========================================================================

def r_squared(actual: Sequence[float] | FloatArray, predicted: Sequence[float] | FloatArray) -> float:
    """Coefficient of determination, 1 - SS_res / SS_tot.

    Constant *actual* makes SS_tot zero; the result is then NaN or ±inf.
    """
    y = np.asarray(actual, dtype=np.float64)
    y_pred = np.asarray(predicted, dtype=np.float64)
    ss_res = np.sum((y - y_pred) ** 2)
    ss_tot = np.sum((y - np.mean(y)) ** 2)
    with np.errstate(divide="ignore", invalid="ignore"):
        return float(1.0 - ss_res / ss_tot)


# ===========================================================================
# Abstract base fitter
# ===========================================================================

class ModelFitter(ABC):

    family: RegressionFamily

    @abstractmethod
    def fit(self, x: FloatArray, y: FloatArray) -> Optional[FittedModel]:
        raise NotImplementedError

    @staticmethod
    def _linear_least_squares(x: FloatArray, y: FloatArray) -> tuple[float, float]:
        """Closed-form OLS for y ~ slope*x + intercept.  Returns (slope, intercept)."""
        mean_x = float(np.mean(x))
        mean_y = float(np.mean(y))
        x_diff = x - mean_x
        numerator = float(np.sum(x_diff * (y - mean_y)))
        denominator = float(np.sum(x_diff * x_diff))
        slope = numerator / denominator if denominator != 0 else 0.0
        return slope, mean_y - slope * mean_x

    def _model(
        self, coefficients: tuple[float, ...], x: FloatArray, y: FloatArray
    ) -> FittedModel:
        y_pred = np.asarray(_predict(self.family, coefficients, x), dtype=np.float64)
        confidence = r_squared(y, y_pred)
        expression = format_expression(
            self.family, display_coefficients(self.family, coefficients)
        )
        logger.debug("%s fit %s (R²=%.6g, n=%d)", self.family.value, expression, confidence, len(x))
        return FittedModel(
            family=self.family,
            expression=expression,
            confidence=confidence,
            coefficients=tuple(float(c) for c in coefficients),
        )


# ===========================================================================
# Linear fitter  slope*x + intercept
# ===========================================================================

class LinearFitter(ModelFitter):

    family = RegressionFamily.LINEAR

    def fit(self, x: FloatArray, y: FloatArray) -> Optional[FittedModel]:
        if len(x) < MIN_POINTS:
            return None
        slope, intercept = self._linear_least_squares(x, y)
        return self._model((slope, intercept), x, y)


# ===========================================================================
# Quadratic fitter  a*x^2 + b*x + c
# ===========================================================================

class QuadraticFitter(ModelFitter):
    """Solves the 3x3 normal equations

        | n    Σx   Σx²  | |c|   | Σy   |
        | Σx   Σx²  Σx³  | |b| = | Σxy  |
        | Σx²  Σx³  Σx⁴  | |a|   | Σx²y |

    by Cramer's rule.  Fewer than three distinct x values make the system
    singular and the fit is rejected.  The determinant is compared against
    the scale of the matrix entries, not against zero.
    """

    family = RegressionFamily.QUADRATIC

    def fit(self, x: FloatArray, y: FloatArray) -> Optional[FittedModel]:
        n = float(len(x))
        if n < MIN_POINTS:
            return None
        sx = float(np.sum(x))
        sxx = float(np.sum(x ** 2))
        sxxx = float(np.sum(x ** 3))
        sxxxx = float(np.sum(x ** 4))
        sy = float(np.sum(y))
        sxy = float(np.sum(x * y))
        sxxy = float(np.sum(x ** 2 * y))

        d = (
            n * (sxx * sxxxx - sxxx * sxxx)
            - sx * (sx * sxxxx - sxxx * sxx)
            + sxx * (sx * sxxx - sxx * sxx)
        )
        if (
            np.unique(x).size < 3
            or abs(d) < SINGULAR_TOLERANCE * max(1.0, n * sxx * sxxxx)
        ):
            logger.debug("quadratic system singular (det=%.3g, n=%d)", d, len(x))
            return None

        d_c = (
            sy * (sxx * sxxxx - sxxx * sxxx)
            - sx * (sxy * sxxxx - sxxx * sxxy)
            + sxx * (sxy * sxxx - sxx * sxxy)
        )
        d_b = (
            n * (sxy * sxxxx - sxxy * sxxx)
            - sy * (sx * sxxxx - sxxx * sxx)
            + sxx * (sx * sxxy - sxy * sxx)
        )
        d_a = (
            n * (sxx * sxxy - sxy * sxxx)
            - sx * (sx * sxxy - sxy * sxx)
            + sy * (sx * sxxx - sxx * sxx)
        )
        return self._model((d_a / d, d_b / d, d_c / d), x, y)


# ===========================================================================
# Exponential fitter  a*exp(b*x)
# ===========================================================================

class ExponentialFitter(ModelFitter):
    """Log-linearized fit of y = a·exp(b·x).

    Only points with y > 0 take part in the fit, but R² is measured against
    every point supplied, so strokes dipping below the x axis score lower.
    """

    family = RegressionFamily.EXPONENTIAL

    def fit(self, x: FloatArray, y: FloatArray) -> Optional[FittedModel]:
        positive = y > 0
        if int(np.count_nonzero(positive)) < MIN_POINTS:
            logger.debug("exponential fit needs %d points with y > 0", MIN_POINTS)
            return None
        b, ln_a = self._linear_least_squares(x[positive], np.log(y[positive]))
        return self._model((float(np.exp(ln_a)), b), x, y)


# ===========================================================================
# Dispatcher
# ===========================================================================

FITTERS: dict[RegressionFamily, ModelFitter] = {
    RegressionFamily.LINEAR: LinearFitter(),
    RegressionFamily.QUADRATIC: QuadraticFitter(),
    RegressionFamily.EXPONENTIAL: ExponentialFitter(),
}


def _as_arrays(points: Sequence[MathPoint]) -> tuple[FloatArray, FloatArray]:
    for p in points:
        if not isinstance(p, MathPoint):
            raise TypeError(
                f"estimators take MathPoint values, got {type(p).__name__}; "
                "map screen points with to_math first"
            )
    x = np.fromiter((p.x for p in points), dtype=np.float64, count=len(points))
    y = np.fromiter((p.y for p in points), dtype=np.float64, count=len(points))
    return x, y


def estimate(points: Sequence[MathPoint], family: RegressionFamily | str) -> FittedModel:
    """Fit *family* to mathematical-space *points*.

    Returns ``FittedModel.empty(family)`` for fewer than two points, a
    singular quadratic system, or fewer than two positive y values in the
    exponential case.
    """
    family = RegressionFamily(family)
    x, y = _as_arrays(points)
    if len(x) < MIN_POINTS:
        return FittedModel.empty(family)
    model = FITTERS[family].fit(x, y)
    return model if model is not None else FittedModel.empty(family)
