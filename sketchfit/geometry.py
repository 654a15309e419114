"""Screen and mathematical coordinate spaces.

Screen space is what the canvas reports: pixel offsets from the top-left
corner with y growing downward.  Mathematical space has its origin at the
canvas centre, y growing upward, and is scaled by the grid size (pixels per
grid cell) and the zoom (mathematical units per grid cell).

The two point types are deliberately distinct so an un-mapped stroke can not
be handed to an estimator by accident.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from sketchfit.numeric import round_half_up


@dataclass(frozen=True, slots=True)
class ScreenPoint:
    x: float
    y: float


@dataclass(frozen=True, slots=True)
class MathPoint:
    x: float
    y: float


@dataclass(frozen=True, slots=True)
class GridSpec:
    grid_size: float        # screen pixels per grid cell
    units_per_grid: float   # mathematical units per grid cell

    def __post_init__(self) -> None:
        if self.grid_size <= 0:
            raise ValueError(f"grid_size must be positive, got {self.grid_size}")
        if self.units_per_grid <= 0:
            raise ValueError(f"units_per_grid must be positive, got {self.units_per_grid}")

    @classmethod
    def from_view(cls, zoom: float, density: float, base_grid_size: float = 40.0) -> GridSpec:
        if zoom <= 0:
            raise ValueError(f"zoom must be positive, got {zoom}")
        return cls(grid_size=base_grid_size * density, units_per_grid=1.0 / zoom)


# ===========================================================================
# Mapping
# ===========================================================================

def x_to_math(px: float, canvas_width: float, grid_size: float, units_per_grid: float) -> float:
    return (px - canvas_width / 2) / grid_size * units_per_grid


def y_to_screen(y: float, canvas_height: float, grid_size: float, units_per_grid: float) -> float:
    """Inverse of the y mapping; numpy arrays map elementwise."""
    return canvas_height / 2 - y / units_per_grid * grid_size


def to_math(
    p: ScreenPoint,
    canvas_width: float,
    canvas_height: float,
    grid_size: float,
    units_per_grid: float,
) -> MathPoint:
    """Map a canvas pixel to mathematical coordinates.

    The y component is negated because screen y grows downward.
    """
    origin_x = canvas_width / 2
    origin_y = canvas_height / 2
    return MathPoint(
        x=(p.x - origin_x) / grid_size * units_per_grid,
        y=-(p.y - origin_y) / grid_size * units_per_grid,
    )


def to_screen(
    p: MathPoint,
    canvas_width: float,
    canvas_height: float,
    grid_size: float,
    units_per_grid: float,
) -> ScreenPoint:
    return ScreenPoint(
        x=canvas_width / 2 + p.x / units_per_grid * grid_size,
        y=y_to_screen(p.y, canvas_height, grid_size, units_per_grid),
    )


def grid_ticks(
    extent: float,
    grid_size: float,
    units_per_grid: float,
    axis: Literal["x", "y"] = "x",
) -> list[tuple[float, float]]:
    """Grid line pixel positions along one axis with their axis labels.

    Lines start at ``origin % grid_size`` so one of them always passes
    through the origin.  Labels are rounded to one decimal; the zero label
    is left out because the origin carries its own marker.
    """
    if grid_size <= 0:
        raise ValueError(f"grid_size must be positive, got {grid_size}")
    origin = round_half_up(extent / 2)
    ticks: list[tuple[float, float]] = []
    pos = origin % grid_size
    while pos <= extent:
        value = round_half_up((pos - origin) / grid_size * units_per_grid, 1)
        if axis == "y":
            value = -value
        if value != 0:
            ticks.append((pos, value))
        pos += grid_size
    return ticks
