"""Potential at field points from solved boundary data.

Representation formula (interior point x, outward normal n, q = du/dn):

    u(x) = integral_Gamma [ G(x, y) q(y) - dG/dn_y(x, y) u(y) ] dGamma(y)

Two evaluators
--------------
    evaluate_potential: periodic trapezoidal rule over the boundary nodes
        with step 2*pi/N. Assumes the nodes are equally spaced in polar
        angle on the unit circle (normal from the polar angle).
    evaluate_field: exact constant-element integrals on each straight
        element (same closed forms as the U and W entries). Works for any
        counter-clockwise polygon.
"""

import logging
from typing import Final

import numpy as np

from laplace_bem.assembly import local_frames, single_layer_integral
from laplace_bem.boundary import BoundaryCurve
from laplace_bem.kernels import (
    INV_2PI,
    fundamental_solution,
    fundamental_solution_normal_derivative,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------
EVAL_CHUNK_SIZE: Final[int] = 1000
ON_BOUNDARY_TOL: Final[float] = 1e-9


def _check_densities(boundary: BoundaryCurve, q: np.ndarray, u: np.ndarray):
    q = np.asarray(q, dtype=np.float64).reshape(-1)
    u = np.asarray(u, dtype=np.float64).reshape(-1)
    N = boundary.n_elements
    if q.shape != (N,) or u.shape != (N,):
        raise ValueError(
            f"Densities must have length N={N}, got q={q.shape}, u={u.shape}"
        )
    return q, u


def evaluate_potential(
    x: np.ndarray,
    boundary: BoundaryCurve,
    q: np.ndarray,
    u: np.ndarray,
):
    """Trapezoidal-rule potential at x.

    Node i carries q[i] and u[i]. Nodes 0 and N coincide on the closed
    loop, so every node is summed once with the full weight h = 2*pi/N.

    Parameters
    ----------
    x : np.ndarray, shape (2,) or (M, 2)
        Field point(s), not on a boundary node.
    boundary : BoundaryCurve
    q, u : np.ndarray, shape (N,)
        Normal flux and potential at the boundary nodes.

    Returns
    -------
    float or np.ndarray, shape (M,)

    Raises
    ------
    SingularKernelError
        If x coincides with a boundary node.
    """
    q, u = _check_densities(boundary, q, u)
    x = np.asarray(x, dtype=np.float64)
    h = 2.0 * np.pi / boundary.n_elements

    xs = x[..., None, :]  # (..., 1, 2)
    nodes = boundary.points  # (N, 2)
    G = fundamental_solution(xs, nodes)  # (..., N)
    dG = fundamental_solution_normal_derivative(xs, nodes)  # (..., N)

    value = h * np.sum(G * q - dG * u, axis=-1)
    return float(value) if np.ndim(value) == 0 else value


def evaluate_field(
    points: np.ndarray,
    boundary: BoundaryCurve,
    q: np.ndarray,
    u: np.ndarray,
    chunk_size: int = EVAL_CHUNK_SIZE,
) -> np.ndarray:
    """Potential at interior points from exact element integrals.

        u(x) = sum_n [ S_n(x) q_n + theta_n(x) / (2 pi) u_n ]

    S_n is the single-layer integral of element n and theta_n the angle it
    subtends at x. Processed in chunks to bound the (C, N) temporaries.

    Parameters
    ----------
    points : np.ndarray, shape (M, 2) or (2,)
        Field points inside a counter-clockwise boundary.
    boundary : BoundaryCurve
    q, u : np.ndarray, shape (N,)
        Element values (outward flux, potential) at the collocation midpoints.
    chunk_size : int
        Max field points per chunk.

    Returns
    -------
    np.ndarray, shape (M,), or float for a single point
        NaN where a point lies on the boundary.
    """
    q, u = _check_densities(boundary, q, u)
    points = np.asarray(points, dtype=np.float64)
    single = points.ndim == 1
    points = np.atleast_2d(points)
    if points.shape[1] != 2:
        raise ValueError(f"points must have shape (M, 2), got {points.shape}")
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be >= 1, got {chunk_size}")

    M = points.shape[0]
    values = np.empty(M, dtype=np.float64)  # (M,)
    n_on_boundary = 0

    for start in range(0, M, chunk_size):
        end = min(start + chunk_size, M)
        frames = local_frames(points[start:end], boundary)  # fields (C, N)

        near_node = (frames.r1 < ON_BOUNDARY_TOL) | (frames.r2 < ON_BOUNDARY_TOL)
        on_segment = (
            (np.abs(frames.d1) < ON_BOUNDARY_TOL)
            & (frames.t1 >= 0.0)
            & (frames.t2 <= 0.0)
        )
        on_boundary = np.any(near_node | on_segment, axis=1)  # (C,)

        with np.errstate(divide="ignore", invalid="ignore"):
            S = single_layer_integral(frames)  # (C, N)
            D = frames.theta * INV_2PI  # (C, N)
            chunk_values = S @ q + D @ u  # (C,)

        chunk_values[on_boundary] = np.nan
        n_on_boundary += int(np.sum(on_boundary))
        values[start:end] = chunk_values

    if n_on_boundary:
        logger.warning(
            "%d of %d field points lie on the boundary; returning NaN there",
            n_on_boundary, M,
        )
    return float(values[0]) if single else values
