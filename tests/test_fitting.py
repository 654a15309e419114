"""Tests for the least-squares estimators and R²."""

import math

import numpy as np
import pytest

from sketchfit.expressions import RegressionFamily
from sketchfit.fitting import (
    ExponentialFitter,
    FittedModel,
    QuadraticFitter,
    estimate,
    r_squared,
)
from sketchfit.geometry import MathPoint, ScreenPoint, to_math


def _points(xs, f):
    return [MathPoint(float(x), float(f(x))) for x in xs]


class TestRSquared:
    """Test the coefficient of determination."""

    def test_perfect_fit(self):
        xs = np.arange(10, dtype=float)
        y = 2 * xs + 1
        assert r_squared(y, y) == pytest.approx(1.0, abs=1e-9)

    def test_worse_than_mean_is_negative(self):
        assert r_squared([1, 2, 3], [3, 2, 1]) == pytest.approx(-3.0)

    def test_zero_variance_is_not_finite(self):
        assert not math.isfinite(r_squared([1, 1, 1], [1, 2, 3]))
        assert math.isnan(r_squared([1, 1], [1, 1]))


class TestLinear:
    """Test ordinary least squares."""

    def test_exact_line(self):
        model = estimate(_points(range(5), lambda x: 2 * x + 1), RegressionFamily.LINEAR)
        assert model.coefficients == pytest.approx((2.0, 1.0))
        assert model.confidence == pytest.approx(1.0, abs=1e-9)
        assert model.expression == "2x + 1"
        assert model.family is RegressionFamily.LINEAR

    def test_normal_equations(self):
        rng = np.random.default_rng(0)
        xs = rng.uniform(-5, 5, 25)
        ys = 0.7 * xs - 2 + rng.normal(0, 1.5, 25)
        model = estimate([MathPoint(x, y) for x, y in zip(xs, ys)], "linear")
        slope, intercept = model.coefficients
        n = len(xs)
        assert n * intercept + slope * xs.sum() == pytest.approx(ys.sum(), abs=1e-9)
        assert intercept * xs.sum() + slope * (xs ** 2).sum() == pytest.approx(
            (xs * ys).sum(), abs=1e-9
        )
        assert model.confidence < 1.0

    def test_vertical_stroke_has_zero_slope(self):
        model = estimate([MathPoint(1, 0), MathPoint(1, 2), MathPoint(1, 4)], "linear")
        assert model.coefficients == pytest.approx((0.0, 2.0))

    def test_zero_intercept_formatting(self):
        model = estimate(_points(range(-2, 3), lambda x: -1.5 * x), "linear")
        assert model.expression == "-1.5x"


class TestQuadratic:
    """Test the normal-equation solver."""

    def test_recovers_parabola(self):
        model = estimate(_points(range(-2, 3), lambda x: x * x - 2 * x + 1), "quadratic")
        a, b, c = model.coefficients
        assert a == pytest.approx(1.0, abs=0.05)
        assert b == pytest.approx(-2.0, abs=0.05)
        assert c == pytest.approx(1.0, abs=0.05)
        assert model.confidence == pytest.approx(1.0, abs=1e-9)
        assert model.expression == "1x²  -2x + 1"

    def test_uncentred_samples(self):
        model = estimate(_points(np.linspace(1, 6, 11), lambda x: 0.5 * x * x + 3 * x - 4), "quadratic")
        assert model.coefficients == pytest.approx((0.5, 3.0, -4.0), abs=1e-6)

    def test_downward_parabola(self):
        """The display shows the leading magnitude; the model keeps the sign."""
        model = estimate(_points(range(-2, 3), lambda x: -x * x + 3), "quadratic")
        assert model.coefficients[0] == pytest.approx(-1.0)
        assert model.display_coefficients[0] == pytest.approx(1.0)
        assert model.expression.startswith("1x²")
        assert model.evaluate(1.0) == pytest.approx(2.0)

    def test_two_points_are_singular(self):
        model = estimate([MathPoint(0, 0), MathPoint(1, 1)], "quadratic")
        assert model == FittedModel.empty(RegressionFamily.QUADRATIC)

    def test_single_x_is_singular(self):
        x = np.ones(3)
        assert QuadraticFitter().fit(x, np.array([1.0, 2.0, 3.0])) is None

    @pytest.mark.parametrize(
        "stroke",
        [
            [(137.3, 402.9), (612.4, 88.1)],
            [(10.0, 10.0), (11.0, 690.0)],
            [(550.5, 350.5), (551.5, 349.5)],
            [(300.0, 100.0), (300.0, 200.0), (700.0, 650.0)],
        ],
    )
    def test_canvas_strokes_with_two_x_values_are_singular(self, stroke):
        """Mapped canvas points rarely give an exactly zero determinant."""
        points = [to_math(ScreenPoint(px, py), 1100, 700, 40, 2.0) for px, py in stroke]
        assert estimate(points, "quadratic") == FittedModel.empty(RegressionFamily.QUADRATIC)

    def test_canvas_stroke_with_three_x_values_fits(self):
        stroke = [(100.0, 500.0), (550.0, 100.0), (1000.0, 500.0)]
        points = [to_math(ScreenPoint(px, py), 1100, 700, 40, 2.0) for px, py in stroke]
        model = estimate(points, "quadratic")
        assert not model.is_empty
        assert model.coefficients[0] == pytest.approx(-20.0 / 22.5 ** 2)
        assert model.confidence == pytest.approx(1.0)


class TestExponential:
    """Test the log-linearized exponential fit."""

    def test_recovers_growth(self):
        model = estimate(_points(range(4), lambda x: 2 * math.exp(0.5 * x)), "exponential")
        a, b = model.coefficients
        assert a == pytest.approx(2.0, abs=0.1)
        assert b == pytest.approx(0.5, abs=0.1)
        assert model.confidence == pytest.approx(1.0, abs=1e-9)
        assert model.expression == "2e^{-0.5x}"

    def test_all_non_positive_is_empty(self):
        points = [MathPoint(0, 0), MathPoint(1, -1), MathPoint(2, -4)]
        model = estimate(points, "exponential")
        assert model == FittedModel.empty(RegressionFamily.EXPONENTIAL)
        assert model.expression == ""
        assert model.confidence == 0

    def test_single_positive_point_is_empty(self):
        x = np.array([0.0, 1.0, 2.0])
        assert ExponentialFitter().fit(x, np.array([-1.0, 3.0, -2.0])) is None

    def test_confidence_uses_every_point(self):
        xs = [0.0, 1.0, 2.0, 3.0]
        ys = [1.0, math.e, math.e ** 2, -1.0]
        model = estimate([MathPoint(x, y) for x, y in zip(xs, ys)], "exponential")
        assert model.coefficients == pytest.approx((1.0, 1.0))
        expected = r_squared(ys, [math.exp(x) for x in xs])
        assert model.confidence == pytest.approx(expected)
        assert model.confidence < 1.0


class TestEstimate:
    """Test the dispatcher."""

    @pytest.mark.parametrize("family", list(RegressionFamily))
    @pytest.mark.parametrize("points", [[], [MathPoint(1.0, 2.0)]])
    def test_too_few_points(self, family, points):
        model = estimate(points, family)
        assert model.expression == ""
        assert model.confidence == 0
        assert model.is_empty
        assert model.family is family

    def test_rejects_screen_points(self):
        with pytest.raises(TypeError, match="to_math"):
            estimate([ScreenPoint(0, 0), ScreenPoint(1, 1)], "linear")

    def test_unknown_family(self):
        with pytest.raises(ValueError):
            estimate([MathPoint(0, 0), MathPoint(1, 1)], "cubic")


class TestFittedModel:
    """Test the fitted model value."""

    def test_empty_evaluates_to_nan(self):
        model = FittedModel.empty(RegressionFamily.LINEAR)
        assert math.isnan(float(model.evaluate(1.0)))
        assert isinstance(model.evaluate(1.0), float)
        assert np.isnan(model.evaluate(np.array([0.0, 1.0]))).all()
        assert model.to_latex() == ""
        assert model.display_coefficients == ()

    def test_evaluate_array(self):
        model = estimate(_points(range(5), lambda x: 2 * x + 1), "linear")
        np.testing.assert_allclose(model.evaluate(np.array([0.0, 10.0])), [1.0, 21.0])

    def test_latex(self):
        model = estimate(_points(range(5), lambda x: 2 * x + 1), "linear")
        assert model.to_latex().startswith("$$f(x) = ")

    def test_arity_checked(self):
        with pytest.raises(ValueError):
            FittedModel(RegressionFamily.QUADRATIC, "x", 1.0, (1.0, 2.0))

    def test_family_type_checked(self):
        with pytest.raises(TypeError):
            FittedModel("linear", "x", 1.0, (1.0, 2.0))
