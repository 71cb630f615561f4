"""Free-space Green's function of the 2D Laplacian.

    G(x, y)     = -ln|x - y| / (2 pi)
    dG/dn_y     = (x - y).n_y / (2 pi |x - y|^2)

All functions broadcast over leading axes: x and y may be (2,) or
(..., 2) arrays. Coincident points are a contract violation and raise
SingularKernelError instead of returning +-inf.
"""

from typing import Final, Union

import numpy as np

from laplace_bem.errors import SingularKernelError

ArrayOrFloat = Union[float, np.ndarray]

INV_2PI: Final[float] = 1.0 / (2.0 * np.pi)
COINCIDENT_TOL: Final[float] = 1e-14


def _squared_distance(x: np.ndarray, y: np.ndarray) -> np.ndarray:
    diff = x - y  # (..., 2)
    dist_sq = np.sum(diff ** 2, axis=-1)  # (...,)
    if np.any(dist_sq <= COINCIDENT_TOL ** 2):
        raise SingularKernelError(
            "Fundamental solution evaluated at coincident points"
        )
    return dist_sq


def _as_output(value: np.ndarray) -> ArrayOrFloat:
    return float(value) if np.ndim(value) == 0 else value


def polar_normal(y: np.ndarray) -> np.ndarray:
    """Unit normal (cos phi, sin phi) with phi the polar angle of y."""
    y = np.asarray(y, dtype=np.float64)
    phi = np.arctan2(y[..., 1], y[..., 0])  # (...,)
    return np.stack([np.cos(phi), np.sin(phi)], axis=-1)  # (..., 2)


def fundamental_solution(x: np.ndarray, y: np.ndarray) -> ArrayOrFloat:
    """G(x, y) = -ln|x - y| / (2 pi)."""
    x = np.asarray(x, dtype=np.float64)
    y = np.asarray(y, dtype=np.float64)
    dist_sq = _squared_distance(x, y)
    # ln|r| = ln(r^2) / 2
    return _as_output(-0.5 * np.log(dist_sq) * INV_2PI)


def normal_derivative_along(
    x: np.ndarray,
    y: np.ndarray,
    normal: np.ndarray,
) -> ArrayOrFloat:
    """Normal derivative of G with respect to y along an explicit unit normal.

    Parameters
    ----------
    x : np.ndarray, shape (..., 2)
        Field point(s).
    y : np.ndarray, shape (..., 2)
        Source point(s).
    normal : np.ndarray, shape (..., 2)
        Unit normal at y.

    Returns
    -------
    float or np.ndarray
        (x - y).n / (2 pi |x - y|^2)
    """
    x = np.asarray(x, dtype=np.float64)
    y = np.asarray(y, dtype=np.float64)
    normal = np.asarray(normal, dtype=np.float64)
    dist_sq = _squared_distance(x, y)
    dot_n = np.sum((x - y) * normal, axis=-1)
    return _as_output(dot_n * INV_2PI / dist_sq)


def fundamental_solution_normal_derivative(
    x: np.ndarray,
    y: np.ndarray,
) -> ArrayOrFloat:
    """Normal derivative of G at y, normal taken from the polar angle of y.

    The normal (cos phi, sin phi), phi = atan2(y2, y1), is the outward
    normal only when y lies on a circle centred at the origin. The
    analytic evaluator in potential.py uses element normals instead.
    """
    return normal_derivative_along(x, y, polar_normal(y))
