"""Unit tests for interior potential evaluation.

Tests
-----
    test_trapezoid_constant:    u = 1, q = 0 on the unit circle gives 1 at x = 0
    test_field_constant:        sum of subtended angles is 2 pi inside any polygon
    test_field_exact_data:      exact (q, u) on a fine circle reproduce u inside
    test_on_boundary_nan:       points on the curve -> NaN and a warning
    test_chunking:              chunk size does not change the result

Usage
-----
    python -m pytest tests/test_potential.py -v
"""

import logging
import sys
from pathlib import Path

import numpy as np
import pytest

# Ensure project root on path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from laplace_bem.boundary import (
    generate_circle_boundary,
    generate_ellipse_boundary,
    generate_polygon_boundary,
)
from laplace_bem.errors import SingularKernelError
from laplace_bem.potential import evaluate_field, evaluate_potential
from laplace_bem.reference import exact_normal_derivative, exact_value

SQUARE = np.array([[0.0, 0.0], [2.0, 0.0], [2.0, 2.0], [0.0, 2.0]])
PROBES = np.array([[0.0, 0.0], [0.3, 0.2], [-0.4, 0.1], [0.1, -0.5], [0.5, 0.5]])


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture(scope="module")
def circle_data():
    """Exact midpoint data on a 256-gon inscribed in the unit circle."""
    boundary = generate_circle_boundary(256)
    mids = boundary.midpoints
    return boundary, exact_normal_derivative(mids), exact_value(mids)


# ---------------------------------------------------------------------------
# Trapezoidal evaluator
# ---------------------------------------------------------------------------
class TestTrapezoid:
    @pytest.mark.parametrize("n_elements", [4, 17, 64])
    def test_trapezoid_constant(self, n_elements):
        """-h sum dG/dn = (2 pi / N) N / (2 pi) = 1 at the centre."""
        boundary = generate_circle_boundary(n_elements)
        value = evaluate_potential(
            np.zeros(2), boundary, np.zeros(n_elements), np.ones(n_elements)
        )
        assert isinstance(value, float)
        assert value == pytest.approx(1.0, rel=1e-13)

    def test_batch_shape(self):
        boundary = generate_circle_boundary(32)
        values = evaluate_potential(PROBES, boundary, np.zeros(32), np.ones(32))
        assert values.shape == (len(PROBES),)

    def test_single_layer_term(self):
        """u = 0, q = 1 at x = 0: G vanishes on the unit circle."""
        boundary = generate_circle_boundary(16)
        value = evaluate_potential(np.zeros(2), boundary, np.ones(16), np.zeros(16))
        assert value == pytest.approx(0.0, abs=1e-14)

    def test_density_length_checked(self):
        boundary = generate_circle_boundary(16)
        with pytest.raises(ValueError):
            evaluate_potential(np.zeros(2), boundary, np.zeros(15), np.zeros(16))

    def test_node_raises(self):
        boundary = generate_circle_boundary(16)
        with pytest.raises(SingularKernelError):
            evaluate_potential(boundary.points[3], boundary, np.zeros(16), np.ones(16))


# ---------------------------------------------------------------------------
# Exact-integral evaluator
# ---------------------------------------------------------------------------
class TestField:
    @pytest.mark.parametrize("boundary", [
        generate_polygon_boundary(SQUARE, max_length=0.5),
        generate_ellipse_boundary(40, 1.5, 0.5, center=(1.0, 1.0)),
    ])
    def test_field_constant(self, boundary):
        N = boundary.n_elements
        pts = np.array([[1.0, 1.0], [0.6, 0.8], [1.3, 1.1]])
        values = evaluate_field(pts, boundary, np.zeros(N), np.ones(N))
        np.testing.assert_allclose(values, 1.0, atol=1e-12)

    def test_field_exact_data(self, circle_data):
        boundary, q, u = circle_data
        values = evaluate_field(PROBES, boundary, q, u)
        np.testing.assert_allclose(values, exact_value(PROBES), atol=2e-3)

    def test_single_point_returns_float(self, circle_data):
        boundary, q, u = circle_data
        value = evaluate_field(np.array([0.3, 0.2]), boundary, q, u)
        assert isinstance(value, float)
        assert value == pytest.approx(exact_value([0.3, 0.2]), abs=2e-3)

    def test_chunking(self, circle_data):
        boundary, q, u = circle_data
        full = evaluate_field(PROBES, boundary, q, u)
        chunked = evaluate_field(PROBES, boundary, q, u, chunk_size=3)
        np.testing.assert_allclose(chunked, full, rtol=1e-14, atol=1e-15)

    def test_chunk_size_validated(self, circle_data):
        boundary, q, u = circle_data
        with pytest.raises(ValueError):
            evaluate_field(PROBES, boundary, q, u, chunk_size=0)

    def test_on_boundary_nan(self, caplog):
        boundary = generate_polygon_boundary(SQUARE, max_length=0.5)
        N = boundary.n_elements
        pts = np.array([
            [1.0, 1.0],    # interior
            [2.0, 2.0],    # corner node
            [0.75, 0.0],   # element midpoint on the bottom side
        ])
        with caplog.at_level(logging.WARNING, logger="laplace_bem.potential"):
            values = evaluate_field(pts, boundary, np.zeros(N), np.ones(N))
        assert values[0] == pytest.approx(1.0)
        assert np.isnan(values[1])
        assert np.isnan(values[2])
        assert "2 of 3 field points lie on the boundary" in caplog.text

    def test_agrees_with_trapezoid_inside(self, circle_data):
        """Both evaluators converge to the same interior potential."""
        boundary, q, u = circle_data
        pts = PROBES[:3]
        np.testing.assert_allclose(
            evaluate_field(pts, boundary, q, u),
            evaluate_potential(pts, boundary, q, u),
            atol=5e-2,
        )
