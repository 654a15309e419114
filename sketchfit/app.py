"""
Sketch-a-function desktop front end.

Left-drag on the grid to draw; the selected family (linear, quadratic or
exponential) is refitted on every mouse move and drawn over the stroke.

Controls
--------
  Left-drag         draw a new stroke (replaces the previous one)
  Mouse wheel       zoom in / out in steps of 0.5
  Family            choose the regression family (clears the canvas)
  Grid              cycle grid density 1 -> 0.5 -> 2
  Reset             zoom 1, density 1
  Clear             drop the stroke and its fit
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Any, Optional

import numpy as np
import pyqtgraph as pg
from PySide6.QtCore import QEvent, Qt
from PySide6.QtGui import QMouseEvent, QWheelEvent
from PySide6.QtWidgets import (
    QApplication,
    QComboBox,
    QHBoxLayout,
    QLabel,
    QMainWindow,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from sketchfit.expressions import RegressionFamily, to_rich_text
from sketchfit.geometry import ScreenPoint, grid_ticks
from sketchfit.numeric import round_half_up
from sketchfit.session import DrawingSession, ViewSettings, sample_overlay

logger = logging.getLogger(__name__)

_GRID_COLOR = (229, 231, 235)     # gray-200
_STROKE_COLOR = (59, 130, 246)    # blue-500
_FIT_COLOR = (34, 197, 94)        # green-500
_LABEL_COLOR = (107, 114, 128)


# ===========================================================================
# Main window
# ===========================================================================

class DrawingApp(QMainWindow):

    def __init__(self, settings: Optional[ViewSettings] = None) -> None:
        super().__init__()
        self.setWindowTitle("Sketch Fit")
        self.setGeometry(100, 100, 1100, 760)

        self._session = DrawingSession(settings=settings or ViewSettings())

        self._build_ui()
        self._configure_plot()

    def _build_ui(self) -> None:
        central = QWidget()
        self.setCentralWidget(central)
        root = QVBoxLayout(central)

        self._function_lbl = QLabel()
        self._function_lbl.setTextFormat(Qt.TextFormat.RichText)
        self._function_lbl.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self._function_lbl.setStyleSheet("font-size: 22px; font-family: monospace;")
        root.addWidget(self._function_lbl)

        self._latex_lbl = QLabel()
        self._latex_lbl.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self._latex_lbl.setStyleSheet("color: gray; font-family: 'Courier New';")
        self._latex_lbl.setTextInteractionFlags(Qt.TextInteractionFlag.TextSelectableByMouse)
        root.addWidget(self._latex_lbl)

        self._plot_widget = pg.PlotWidget(background="w")
        root.addWidget(self._plot_widget, 1)

        btn_row = QHBoxLayout()
        self._family_box = QComboBox()
        for family in RegressionFamily:
            self._family_box.addItem(family.value.capitalize(), family)
        self._zoom_in_btn = QPushButton("Zoom In")
        self._zoom_out_btn = QPushButton("Zoom Out")
        self._reset_btn = QPushButton("Reset")
        self._grid_btn = QPushButton("Grid")
        self._clear_btn = QPushButton("Clear")
        self._status_lbl = QLabel()
        self._status_lbl.setStyleSheet("color: gray; font-style: italic;")

        self._family_box.currentIndexChanged.connect(self._on_family_changed)
        self._zoom_in_btn.clicked.connect(lambda *_: self._apply(self._session.zoom_in))
        self._zoom_out_btn.clicked.connect(lambda *_: self._apply(self._session.zoom_out))
        self._reset_btn.clicked.connect(lambda *_: self._apply(self._session.reset_view))
        self._grid_btn.clicked.connect(lambda *_: self._apply(self._session.cycle_density))
        self._clear_btn.clicked.connect(lambda *_: self._apply(self._session.clear))

        for widget in (self._family_box, self._zoom_in_btn, self._zoom_out_btn,
                       self._reset_btn, self._grid_btn, self._clear_btn):
            btn_row.addWidget(widget)
        btn_row.addStretch(1)
        btn_row.addWidget(self._status_lbl)
        root.addLayout(btn_row)

    def _configure_plot(self) -> None:
        plot_item = self._plot_widget.getPlotItem()
        plot_item.hideAxis("left")
        plot_item.hideAxis("bottom")
        plot_item.setMenuEnabled(False)
        plot_item.hideButtons()
        vb = plot_item.vb
        vb.setMouseEnabled(x=False, y=False)
        vb.disableAutoRange()
        # The view box works in canvas pixels: origin top-left, y downward.
        vb.invertY(True)
        self._plot_widget.viewport().installEventFilter(self)
        self._redraw()

    # ------------------------------------------------------------------
    # Canvas geometry
    # ------------------------------------------------------------------

    def _canvas_size(self) -> tuple[float, float]:
        rect = self._plot_widget.getPlotItem().vb.sceneBoundingRect()
        return max(float(rect.width()), 1.0), max(float(rect.height()), 1.0)

    def _screen_point(self, event: QMouseEvent) -> ScreenPoint:
        rect = self._plot_widget.getPlotItem().vb.sceneBoundingRect()
        pos = event.position()
        return ScreenPoint(float(pos.x() - rect.left()), float(pos.y() - rect.top()))

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def eventFilter(self, obj: Any, event: QEvent) -> bool:  # noqa: N802
        if obj is not self._plot_widget.viewport():
            return super().eventFilter(obj, event)

        et = event.type()

        if et == QEvent.Type.Resize:
            self._redraw()
            return super().eventFilter(obj, event)

        if et == QEvent.Type.Wheel and isinstance(event, QWheelEvent):
            # Qt reports scrolling away from the user as a positive angle
            self._apply(lambda: self._session.wheel(-event.angleDelta().y()))
            return True

        if not isinstance(event, QMouseEvent):
            return super().eventFilter(obj, event)

        if et == QEvent.Type.MouseButtonPress and event.button() == Qt.MouseButton.LeftButton:
            self._session.begin_stroke(self._screen_point(event))
            self._redraw()
            return True

        if et == QEvent.Type.MouseMove and self._session.drawing:
            w, h = self._canvas_size()
            self._session.extend_stroke(self._screen_point(event), w, h)
            self._redraw()
            return True

        if et == QEvent.Type.MouseButtonRelease and event.button() == Qt.MouseButton.LeftButton:
            w, h = self._canvas_size()
            fit = self._session.end_stroke(w, h)
            if not fit.is_empty:
                logger.info("%s fit: %s (R²=%.4f)", fit.family.value, fit.expression, fit.confidence)
            self._redraw()
            return True

        return super().eventFilter(obj, event)

    def _on_family_changed(self, index: int) -> None:
        family = self._family_box.itemData(index)
        self._apply(lambda: self._session.set_family(family))

    def _apply(self, action: Any) -> None:
        action()
        self._redraw()

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def _redraw(self) -> None:
        w, h = self._canvas_size()
        grid = self._session.grid
        plot_item = self._plot_widget.getPlotItem()
        plot_item.clear()
        plot_item.vb.setRange(xRange=(0, w), yRange=(0, h), padding=0, update=True)

        self._draw_grid(w, h)

        points = self._session.points
        if points:
            xs = np.fromiter((p.x for p in points), dtype=np.float64, count=len(points))
            ys = np.fromiter((p.y for p in points), dtype=np.float64, count=len(points))
            plot_item.plot(xs, ys, pen=pg.mkPen(_STROKE_COLOR, width=2))

        fit = self._session.fit
        if not fit.is_empty:
            px, py = sample_overlay(fit, w, h, grid, self._session.settings.sample_step)
            # keep runaway exponentials from blowing up the view
            py = np.clip(py, -10 * h, 11 * h)
            plot_item.plot(px, py, pen=pg.mkPen(_FIT_COLOR, width=2), connect="finite")

        self._function_lbl.setText(f"f(x) = {to_rich_text(fit.expression)}")
        self._latex_lbl.setText(fit.to_latex())
        self._status_lbl.setText(
            self._session.confidence_text()
            or f"zoom {self._session.zoom:g}x, grid {self._session.density:g}x"
        )

    def _draw_grid(self, w: float, h: float) -> None:
        plot_item = self._plot_widget.getPlotItem()
        grid = self._session.grid
        origin_x, origin_y = round_half_up(w / 2), round_half_up(h / 2)

        for pos, value in grid_ticks(w, grid.grid_size, grid.units_per_grid, axis="x"):
            plot_item.addItem(pg.InfiniteLine(pos=pos, angle=90, pen=pg.mkPen(_GRID_COLOR, width=1)))
            label = pg.TextItem(f"{value:g}", color=_LABEL_COLOR, anchor=(0.5, 0))
            label.setPos(pos, origin_y + 8)
            plot_item.addItem(label)

        for pos, value in grid_ticks(h, grid.grid_size, grid.units_per_grid, axis="y"):
            plot_item.addItem(pg.InfiniteLine(pos=pos, angle=0, pen=pg.mkPen(_GRID_COLOR, width=1)))
            label = pg.TextItem(f"{value:g}", color=_LABEL_COLOR, anchor=(1, 0.5))
            label.setPos(origin_x - 10, pos)
            plot_item.addItem(label)

        plot_item.addItem(pg.InfiniteLine(pos=origin_y, angle=0, pen=pg.mkPen((0, 0, 0), width=2)))
        plot_item.addItem(pg.InfiniteLine(pos=origin_x, angle=90, pen=pg.mkPen((0, 0, 0), width=2)))
        zero = pg.TextItem("0", color=(0, 0, 0), anchor=(1, 0))
        zero.setPos(origin_x - 8, origin_y + 8)
        plot_item.addItem(zero)


# ===========================================================================
# Entry point
# ===========================================================================

def main() -> None:
    parser = argparse.ArgumentParser(description="Draw a curve and fit a function to it")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    log_level = logging.DEBUG if args.debug else logging.INFO
    logging.basicConfig(
        level=log_level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    logger.info("Starting Sketch Fit (level=%s)", logging.getLevelName(log_level))

    app = QApplication(sys.argv[:1])
    window = DrawingApp()
    window.show()
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
