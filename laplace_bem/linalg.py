"""Dense direct solve for the boundary element system.

Thin wrapper over LAPACK: dgesv (LU with partial pivoting) followed by
dgecon (1-norm reciprocal condition estimate from the same factors).

Status codes
------------
    0       success
    -1      A is not square
    -2      row count of b differs from A
    i > 0   exact zero pivot U[i, i] (1-based, as returned by dgesv)
    N + 1   A is singular to working precision (rcond < threshold)

On failure no solution is returned; the caller must check the status
(or call check_status) before using x.
"""

import logging
from typing import Final, NamedTuple, Optional, Tuple

import numpy as np
from scipy.linalg import lapack

from laplace_bem.errors import (
    NonSquareSystemError,
    ShapeMismatchError,
    SingularSystemError,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
STATUS_OK: Final[int] = 0
STATUS_NOT_SQUARE: Final[int] = -1
STATUS_SHAPE_MISMATCH: Final[int] = -2
DEFAULT_RCOND_THRESHOLD: Final[float] = 1e-14
COND_WARN_THRESHOLD: Final[float] = 1e10


class SolveResult(NamedTuple):
    """Outcome of solve(); unpacks as (x, status).

    Attributes
    ----------
    x : np.ndarray or None
        Solution with the shape of b, None on failure.
    status : int
        0 on success, see module docstring otherwise.
    """

    x: Optional[np.ndarray]
    status: int

    @property
    def ok(self) -> bool:
        return self.status == STATUS_OK


def solve(
    A: np.ndarray,
    b: np.ndarray,
    rcond_threshold: float = DEFAULT_RCOND_THRESHOLD,
) -> SolveResult:
    """Solve A x = b for one or several right-hand sides.

    Parameters
    ----------
    A : np.ndarray, shape (N, N)
        System matrix. Not modified.
    b : np.ndarray, shape (N,) or (N, k)
        Right-hand side(s). Not modified.
    rcond_threshold : float
        Systems with estimated reciprocal condition below this value are
        reported as singular (status N + 1).

    Returns
    -------
    SolveResult
        (x, status), x has the shape of b on success.
    """
    A = np.asarray(A, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)

    if A.ndim != 2 or A.shape[0] != A.shape[1]:
        logger.error("solve: A is not square: shape=%s", A.shape)
        return SolveResult(None, STATUS_NOT_SQUARE)
    N = A.shape[0]
    if b.ndim not in (1, 2) or b.shape[0] != N:
        logger.error("solve: b rows do not match A: A=%s, b=%s", A.shape, b.shape)
        return SolveResult(None, STATUS_SHAPE_MISMATCH)

    b2d = b.reshape(N, -1)  # (N, k)
    lu, _, x, info = lapack.dgesv(A, b2d, overwrite_a=0, overwrite_b=0)
    if info > 0:
        logger.error("solve: zero pivot, info=%d (N=%d)", info, N)
        return SolveResult(None, int(info))
    if info < 0:
        # Illegal argument to dgesv; shapes were checked above.
        raise ValueError(f"dgesv rejected argument {-info}")

    anorm = float(np.linalg.norm(A, 1))
    rcond, _ = lapack.dgecon(lu, anorm, norm="1")
    rcond = float(rcond)
    if rcond < rcond_threshold:
        logger.error(
            "solve: singular to working precision, rcond=%.2e < %.0e (N=%d)",
            rcond, rcond_threshold, N,
        )
        return SolveResult(None, N + 1)
    if rcond < 1.0 / COND_WARN_THRESHOLD:
        logger.warning("High condition number: %.2e (N=%d)", 1.0 / rcond, N)
    else:
        logger.debug("Matrix condition: %.2e (N=%d)", 1.0 / rcond, N)

    if not np.all(np.isfinite(x)):
        n_bad = int(np.sum(~np.isfinite(x)))
        raise ValueError(f"Solution contains {n_bad} non-finite values")

    return SolveResult(x.reshape(b.shape), STATUS_OK)


def check_status(
    result: SolveResult,
    a_shape: Tuple[int, ...] = (),
    b_shape: Tuple[int, ...] = (),
) -> np.ndarray:
    """Return x from a successful solve, otherwise raise the matching error.

    Parameters
    ----------
    result : SolveResult
        Output of solve().
    a_shape, b_shape : tuple
        Shapes of A and b, used in the error messages.

    Raises
    ------
    NonSquareSystemError, ShapeMismatchError, SingularSystemError
    """
    status = result.status
    if status == STATUS_OK:
        return result.x
    if status == STATUS_NOT_SQUARE:
        raise NonSquareSystemError(a_shape)
    if status == STATUS_SHAPE_MISMATCH:
        n_rows_a = a_shape[0] if a_shape else -1
        n_rows_b = b_shape[0] if b_shape else -1
        raise ShapeMismatchError(n_rows_a, n_rows_b)
    raise SingularSystemError(status)
