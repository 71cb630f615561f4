"""Analytic influence matrices for constant straight elements.

Element n with endpoints x1, x2 (length h) is seen from the midpoint x of
element m through its local frame:

    t_hat = (x2 - x1) / h                      tangent
    n_hat = (x1_y - x2_y, x2_x - x1_x) / h     tangent rotated +90 deg
    t_k   = (x - x_k).t_hat,  d_k = (x - x_k).n_hat,  r_k = |x - x_k|
    theta = atan2(d2, t2) - atan2(d1, t1)      signed subtended angle

Closed-form element integrals
-----------------------------
    U_mn = (t2 ln r2 - t1 ln r1 + h - d1 theta) / (2 pi)     m != n
    U_mm = (1 - ln(h/2)) h / (2 pi)
    W_mn = theta / (2 pi)                                    m != n
    W_mm = 1/2

For a counter-clockwise curve each row of W sums to 1.

Performance
-----------
    Assembly: O(N^2), fully vectorized (NumPy broadcasting)
"""

import logging
import time
from typing import NamedTuple, Union

import numpy as np

from laplace_bem.boundary import MIN_ELEMENT_LENGTH, BoundaryCurve
from laplace_bem.errors import DegenerateElementError
from laplace_bem.kernels import INV_2PI

logger = logging.getLogger(__name__)

Scalar = Union[float, np.ndarray]


# ---------------------------------------------------------------------------
# Data structures
# ---------------------------------------------------------------------------
class LocalFrame(NamedTuple):
    """Geometry of a source element seen from an observation point.

    Fields are floats for a single pair, or arrays of shape (M, N) when
    produced by local_frames().
    """

    t1: Scalar
    t2: Scalar
    d1: Scalar
    d2: Scalar
    r1: Scalar
    r2: Scalar
    h: Scalar
    theta: Scalar


class InfluenceMatrices(NamedTuple):
    """Single-layer (U) and double-layer (W) matrices, both (N, N)."""

    U: np.ndarray
    W: np.ndarray


# ---------------------------------------------------------------------------
# Element geometry
# ---------------------------------------------------------------------------
def compute_local_frame(m: int, n: int, boundary: BoundaryCurve) -> LocalFrame:
    """Local frame of element n seen from the midpoint of element m.

    Both indices wrap modulo N, so compute_local_frame(0, -1, b) and
    compute_local_frame(N, N - 1, b) describe the same pair.

    Raises
    ------
    DegenerateElementError
        If element n has zero length.
    """
    x = boundary.midpoint(m)  # (2,)
    x1, x2 = boundary.endpoints(n)  # (2,), (2,)

    h = float(np.linalg.norm(x1 - x2))
    if h <= MIN_ELEMENT_LENGTH:
        raise DegenerateElementError(boundary.wrap(n), h)

    t_vec = (x2 - x1) / h
    n_vec = np.array([x1[1] - x2[1], x2[0] - x1[0]]) / h

    t1 = float(np.dot(x - x1, t_vec))
    t2 = float(np.dot(x - x2, t_vec))
    # n_vec is orthogonal to x2 - x1, so d2 == d1; one shared value keeps
    # both atan2 calls on the same branch when x is collinear with the element.
    d1 = float(np.dot(x - x1, n_vec))
    d2 = d1
    r1 = float(np.linalg.norm(x - x1))
    r2 = float(np.linalg.norm(x - x2))
    theta = float(np.arctan2(d2, t2) - np.arctan2(d1, t1))

    return LocalFrame(t1, t2, d1, d2, r1, r2, h, theta)


def local_frames(points: np.ndarray, boundary: BoundaryCurve) -> LocalFrame:
    """Local frames of every element seen from every point.

    Parameters
    ----------
    points : np.ndarray, shape (M, 2)
        Observation points.
    boundary : BoundaryCurve
        Source elements (N of them).

    Returns
    -------
    LocalFrame
        Each field has shape (M, N).
    """
    points = np.asarray(points, dtype=np.float64)
    if points.ndim != 2 or points.shape[1] != 2:
        raise ValueError(f"points must have shape (M, 2), got {points.shape}")

    x = points[:, None, :]  # (M, 1, 2)
    x1 = boundary.points[None, :, :]  # (1, N, 2)
    x2 = boundary.next_points[None, :, :]  # (1, N, 2)
    t_vec = boundary.tangents[None, :, :]  # (1, N, 2)
    n_vec = boundary.frame_normals[None, :, :]  # (1, N, 2)

    diff1 = x - x1  # (M, N, 2)
    diff2 = x - x2  # (M, N, 2)

    t1 = np.sum(diff1 * t_vec, axis=-1)  # (M, N)
    t2 = np.sum(diff2 * t_vec, axis=-1)  # (M, N)
    d1 = np.sum(diff1 * n_vec, axis=-1)  # (M, N)
    d2 = d1  # same projection, see compute_local_frame()
    r1 = np.linalg.norm(diff1, axis=-1)  # (M, N)
    r2 = np.linalg.norm(diff2, axis=-1)  # (M, N)
    h = np.broadcast_to(boundary.lengths[None, :], t1.shape)  # (M, N)
    theta = np.arctan2(d2, t2) - np.arctan2(d1, t1)  # (M, N)

    return LocalFrame(t1, t2, d1, d2, r1, r2, h, theta)


# ---------------------------------------------------------------------------
# Matrix entries
# ---------------------------------------------------------------------------
def self_single_layer(h: Scalar) -> Scalar:
    """Single-layer integral of an element over its own midpoint."""
    return (1.0 - np.log(h / 2.0)) * h * INV_2PI


def single_layer_integral(frame: LocalFrame) -> Scalar:
    """Single-layer integral of a source element away from its midpoint."""
    return (
        frame.t2 * np.log(frame.r2)
        - frame.t1 * np.log(frame.r1)
        + frame.h
        - frame.d1 * frame.theta
    ) * INV_2PI


def single_layer_entry(m: int, n: int, boundary: BoundaryCurve) -> float:
    """Entry U[m, n] of the single-layer matrix."""
    if boundary.wrap(m) == boundary.wrap(n):
        return float(self_single_layer(boundary.length(n)))
    frame = compute_local_frame(m, n, boundary)
    return float(single_layer_integral(frame))


def double_layer_entry(m: int, n: int, boundary: BoundaryCurve) -> float:
    """Entry W[m, n] of the double-layer matrix."""
    if boundary.wrap(m) == boundary.wrap(n):
        return 0.5
    frame = compute_local_frame(m, n, boundary)
    return frame.theta * INV_2PI


# ---------------------------------------------------------------------------
# Assembly
# ---------------------------------------------------------------------------
def assemble_influence_matrices(boundary: BoundaryCurve) -> InfluenceMatrices:
    """Assemble U and W for all element pairs.

    Off-diagonal entries come from one broadcast over the local frames of
    all collocation midpoints; the diagonals are then overwritten with
    their closed forms.

    Returns
    -------
    InfluenceMatrices
        (U, W), each np.ndarray float64 of shape (N, N).
    """
    t_start = time.perf_counter()
    N = boundary.n_elements

    frames = local_frames(boundary.midpoints, boundary)  # fields (N, N)
    U = single_layer_integral(frames)  # (N, N)
    W = frames.theta * INV_2PI  # (N, N)

    idx = np.arange(N)
    U[idx, idx] = self_single_layer(boundary.lengths)
    np.fill_diagonal(W, 0.5)

    if not np.all(np.isfinite(U)):
        raise ValueError("Single-layer matrix contains non-finite values")
    if not np.all(np.isfinite(W)):
        raise ValueError("Double-layer matrix contains non-finite values")

    logger.debug(
        "Assembled U, W: N=%d in %.2f ms", N, (time.perf_counter() - t_start) * 1e3,
    )
    return InfluenceMatrices(U, W)


def single_layer_matrix(boundary: BoundaryCurve) -> np.ndarray:
    return assemble_influence_matrices(boundary).U


def double_layer_matrix(boundary: BoundaryCurve) -> np.ndarray:
    return assemble_influence_matrices(boundary).W
