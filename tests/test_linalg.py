"""Unit tests for the LAPACK-backed dense solve.

Tests
-----
    test_solve_vector:          matches numpy.linalg.solve, inputs untouched
    test_solve_multiple_rhs:    (N, k) right-hand side
    test_not_square:            status -1 -> NonSquareSystemError
    test_row_mismatch:          status -2 -> ShapeMismatchError
    test_zero_pivot:            [[1, 2], [2, 4]] -> status 2
    test_near_singular:         rcond below threshold -> status N + 1

Usage
-----
    python -m pytest tests/test_linalg.py -v
"""

import logging
import sys
from pathlib import Path

import numpy as np
import pytest

# Ensure project root on path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from laplace_bem.errors import (
    BEMError,
    NonSquareSystemError,
    ShapeMismatchError,
    SingularSystemError,
)
from laplace_bem.linalg import (
    STATUS_NOT_SQUARE,
    STATUS_OK,
    STATUS_SHAPE_MISMATCH,
    SolveResult,
    check_status,
    solve,
)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture
def system():
    rng = np.random.default_rng(7)
    A = rng.standard_normal((6, 6)) + 6.0 * np.eye(6)
    b = rng.standard_normal(6)
    return A, b


# ---------------------------------------------------------------------------
# Successful solves
# ---------------------------------------------------------------------------
class TestSolve:
    def test_solve_vector(self, system):
        A, b = system
        A_before, b_before = A.copy(), b.copy()
        result = solve(A, b)
        assert result.status == STATUS_OK
        assert result.ok
        assert result.x.shape == (6,)
        np.testing.assert_allclose(result.x, np.linalg.solve(A, b), rtol=1e-12)
        np.testing.assert_array_equal(A, A_before)
        np.testing.assert_array_equal(b, b_before)

    def test_solve_multiple_rhs(self, system):
        A, _ = system
        B = np.arange(18.0).reshape(6, 3)
        x, status = solve(A, B)
        assert status == STATUS_OK
        assert x.shape == (6, 3)
        np.testing.assert_allclose(A @ x, B, atol=1e-10)

    def test_small_system_by_hand(self):
        """[[4, 1], [2, 3]] x = [1, 2] -> x = (0.1, 0.6)."""
        x, status = solve(np.array([[4.0, 1.0], [2.0, 3.0]]), np.array([1.0, 2.0]))
        assert status == 0
        np.testing.assert_allclose(x, [0.1, 0.6], rtol=1e-14)

    def test_check_status_returns_solution(self, system):
        A, b = system
        result = solve(A, b)
        np.testing.assert_array_equal(check_status(result, A.shape, b.shape), result.x)

    def test_ill_conditioned_warns(self, caplog):
        """cond = 1e11 is solvable but logged as a warning."""
        A = np.diag([1.0, 1e-11])
        with caplog.at_level(logging.WARNING, logger="laplace_bem.linalg"):
            x, status = solve(A, np.array([1.0, 1e-11]))
        assert status == STATUS_OK
        np.testing.assert_allclose(x, [1.0, 1.0])
        assert "High condition number" in caplog.text


# ---------------------------------------------------------------------------
# Failure status codes
# ---------------------------------------------------------------------------
class TestFailures:
    def test_not_square(self, caplog):
        A = np.ones((3, 4))
        with caplog.at_level(logging.ERROR, logger="laplace_bem.linalg"):
            result = solve(A, np.ones(3))
        assert result.status == STATUS_NOT_SQUARE
        assert result.x is None
        assert not result.ok
        assert "not square" in caplog.text
        with pytest.raises(NonSquareSystemError) as excinfo:
            check_status(result, A.shape, (3,))
        assert excinfo.value.shape == (3, 4)

    def test_row_mismatch(self):
        A = np.eye(3)
        b = np.ones(4)
        result = solve(A, b)
        assert result.status == STATUS_SHAPE_MISMATCH
        assert result.x is None
        with pytest.raises(ShapeMismatchError) as excinfo:
            check_status(result, A.shape, b.shape)
        assert excinfo.value.n_rows_a == 3
        assert excinfo.value.n_rows_b == 4

    def test_zero_pivot(self):
        """Second row is twice the first: elimination leaves U[2, 2] = 0."""
        A = np.array([[1.0, 2.0], [2.0, 4.0]])
        result = solve(A, np.array([1.0, 2.0]))
        assert result.status == 2
        assert result.x is None
        with pytest.raises(SingularSystemError) as excinfo:
            check_status(result, A.shape, (2,))
        assert excinfo.value.pivot_index == 2

    def test_zero_matrix(self):
        result = solve(np.zeros((3, 3)), np.ones(3))
        assert result.status == 1

    def test_near_singular(self):
        """Rows equal to within 1e-15: no exact zero pivot, but rcond ~ 1e-16."""
        A = np.array([[1.0, 1.0], [1.0, 1.0 + 1e-15]])
        result = solve(A, np.array([2.0, 2.0]))
        assert result.status == 3
        assert result.x is None

    def test_rcond_threshold_configurable(self):
        A = np.diag([1.0, 1e-8])
        assert solve(A, np.ones(2)).status == STATUS_OK
        assert solve(A, np.ones(2), rcond_threshold=1e-6).status == 3

    def test_errors_share_base_class(self):
        with pytest.raises(BEMError):
            check_status(SolveResult(None, 5), (4, 4), (4,))
        with pytest.raises(ValueError):
            check_status(SolveResult(None, STATUS_NOT_SQUARE), (2, 3))
