"""Fit linear, quadratic and exponential functions to hand-drawn strokes."""

from sketchfit.expressions import RegressionFamily, evaluate, format_expression, parse_expression
from sketchfit.fitting import FittedModel, estimate, r_squared
from sketchfit.geometry import GridSpec, MathPoint, ScreenPoint, to_math, to_screen
from sketchfit.session import DrawingSession, ViewSettings, sample_overlay

__all__ = [
    "DrawingSession",
    "FittedModel",
    "GridSpec",
    "MathPoint",
    "RegressionFamily",
    "ScreenPoint",
    "ViewSettings",
    "estimate",
    "evaluate",
    "format_expression",
    "parse_expression",
    "r_squared",
    "sample_overlay",
    "to_math",
    "to_screen",
]
