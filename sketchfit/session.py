"""Drawing session state owned by the host UI.

The fitting core is stateless; everything that changes while the user
interacts with the canvas (zoom, grid density, selected family, the active
stroke and its latest fit) lives in a :class:`DrawingSession` that the
window owns and passes its pieces into the core.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import numpy as np
from numpy.typing import NDArray

from sketchfit.expressions import RegressionFamily
from sketchfit.fitting import FittedModel, estimate
from sketchfit.geometry import GridSpec, MathPoint, ScreenPoint, to_math, x_to_math, y_to_screen
from sketchfit.numeric import round_half_up

logger = logging.getLogger(__name__)

FloatArray = NDArray[np.floating[Any]]


# ===========================================================================
# Settings
# ===========================================================================

@dataclass(frozen=True, slots=True)
class ViewSettings:
    base_grid_size: float = 40.0        # pixels per grid cell at density 1
    min_zoom: float = 0.5
    max_zoom: float = 5.0
    zoom_step: float = 0.5
    density_cycle: tuple[float, ...] = (1.0, 0.5, 2.0)
    sample_step: int = 2                # overlay sampling interval in pixels

    def __post_init__(self) -> None:
        if self.base_grid_size <= 0:
            raise ValueError(f"base_grid_size must be positive, got {self.base_grid_size}")
        if not (0 < self.min_zoom <= 1.0 <= self.max_zoom):
            raise ValueError(
                f"zoom range must satisfy 0 < min_zoom <= 1 <= max_zoom, "
                f"got [{self.min_zoom}, {self.max_zoom}]"
            )
        if self.zoom_step <= 0:
            raise ValueError(f"zoom_step must be positive, got {self.zoom_step}")
        if not self.density_cycle or any(d <= 0 for d in self.density_cycle):
            raise ValueError(f"density_cycle must hold positive values, got {self.density_cycle}")
        if self.density_cycle[0] != 1.0:
            raise ValueError("density_cycle must start at 1.0")
        if self.sample_step < 1:
            raise ValueError(f"sample_step must be >= 1, got {self.sample_step}")


# ===========================================================================
# Session
# ===========================================================================

@dataclass
class DrawingSession:
    settings: ViewSettings = field(default_factory=ViewSettings)
    family: RegressionFamily = RegressionFamily.LINEAR
    zoom: float = 1.0
    density: float = 1.0
    points: list[ScreenPoint] = field(default_factory=list)
    drawing: bool = False
    fit: FittedModel = field(init=False)

    def __post_init__(self) -> None:
        self.family = RegressionFamily(self.family)
        self.fit = FittedModel.empty(self.family)

    @property
    def grid(self) -> GridSpec:
        return GridSpec.from_view(self.zoom, self.density, self.settings.base_grid_size)

    # -- stroke ------------------------------------------------------------

    def begin_stroke(self, p: ScreenPoint) -> None:
        self.clear()
        self.drawing = True
        self.points.append(p)

    def extend_stroke(self, p: ScreenPoint, canvas_width: float, canvas_height: float) -> FittedModel:
        """Append *p* to the active stroke and refit from scratch."""
        if not self.drawing:
            return self.fit
        self.points.append(p)
        return self.refit(canvas_width, canvas_height)

    def end_stroke(self, canvas_width: float, canvas_height: float) -> FittedModel:
        if not self.drawing:
            return self.fit
        self.drawing = False
        return self.refit(canvas_width, canvas_height)

    def refit(self, canvas_width: float, canvas_height: float) -> FittedModel:
        if len(self.points) > 1:
            self.fit = estimate(self.math_points(canvas_width, canvas_height), self.family)
        return self.fit

    def math_points(self, canvas_width: float, canvas_height: float) -> list[MathPoint]:
        grid = self.grid
        return [
            to_math(p, canvas_width, canvas_height, grid.grid_size, grid.units_per_grid)
            for p in self.points
        ]

    def clear(self) -> None:
        self.points = []
        self.fit = FittedModel.empty(self.family)
        self.drawing = False

    # -- controls ----------------------------------------------------------

    def set_family(self, family: RegressionFamily | str) -> None:
        self.family = RegressionFamily(family)
        logger.info("Regression family set to %s", self.family.value)
        self.clear()

    def _step_zoom(self, steps: int) -> float:
        s = self.settings
        # snap to the nearest step before moving
        current = round_half_up(self.zoom / s.zoom_step) * s.zoom_step
        self.zoom = min(max(current + steps * s.zoom_step, s.min_zoom), s.max_zoom)
        logger.debug("Zoom %.2f", self.zoom)
        self.clear()
        return self.zoom

    def zoom_in(self) -> float:
        return self._step_zoom(1)

    def zoom_out(self) -> float:
        return self._step_zoom(-1)

    def wheel(self, delta_y: float) -> float:
        """Positive wheel delta (scrolling down) zooms out."""
        return self._step_zoom(-1 if delta_y > 0 else 1)

    def reset_view(self) -> None:
        self.zoom = 1.0
        self.density = 1.0
        logger.debug("View reset")
        self.clear()

    def cycle_density(self) -> float:
        cycle = self.settings.density_cycle
        try:
            idx = cycle.index(self.density)
        except ValueError:
            idx = -1
        self.density = cycle[(idx + 1) % len(cycle)]
        logger.debug("Grid density %.2f", self.density)
        self.clear()
        return self.density

    # -- display -----------------------------------------------------------

    def confidence_text(self) -> str:
        return confidence_label(self.fit.confidence)


def confidence_label(confidence: float) -> str:
    """Percent label for a confidence; empty unless it is a positive number."""
    if not np.isfinite(confidence) or confidence <= 0:
        return ""
    return f"Confidence: {round_half_up(confidence * 100):.0f}%"


# ===========================================================================
# Overlay
# ===========================================================================

def sample_overlay(
    model: FittedModel,
    canvas_width: float,
    canvas_height: float,
    grid: GridSpec,
    step: int = 2,
) -> tuple[FloatArray, FloatArray]:
    """Screen-space polyline of *model* across the canvas width.

    Returns empty arrays for the empty fit.
    """
    if model.is_empty:
        empty = np.empty(0, dtype=np.float64)
        return empty, empty.copy()
    px = np.arange(0, canvas_width, step, dtype=np.float64)
    x = x_to_math(px, canvas_width, grid.grid_size, grid.units_per_grid)
    with np.errstate(over="ignore", invalid="ignore"):
        y = np.asarray(model.evaluate(x), dtype=np.float64)
        py = y_to_screen(y, canvas_height, grid.grid_size, grid.units_per_grid)
    return px, py
