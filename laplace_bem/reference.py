"""Harmonic reference solution used to validate the solver.

    u(x, y) = x^3 - 3 x y^2 = Re((x + i y)^3) = r^3 cos(3 phi)

Every function accepts a single point (2,) or a batch (M, 2).
"""

import numpy as np


def exact_value(x: np.ndarray):
    """u = x1^3 - 3 x1 x2^2."""
    x = np.asarray(x, dtype=np.float64)
    value = x[..., 0] ** 3 - 3.0 * x[..., 0] * x[..., 1] ** 2
    return float(value) if value.ndim == 0 else value


def exact_gradient(x: np.ndarray) -> np.ndarray:
    """grad u = (3 x1^2 - 3 x2^2, -6 x1 x2), shape (..., 2)."""
    x = np.asarray(x, dtype=np.float64)
    return np.stack([
        3.0 * x[..., 0] ** 2 - 3.0 * x[..., 1] ** 2,
        -6.0 * x[..., 0] * x[..., 1],
    ], axis=-1)


def exact_flux(x: np.ndarray, normal: np.ndarray):
    """Normal derivative grad u . n along an explicit unit normal."""
    flux = np.sum(exact_gradient(x) * np.asarray(normal, dtype=np.float64), axis=-1)
    return float(flux) if flux.ndim == 0 else flux


def exact_normal_derivative(x: np.ndarray):
    """Outward normal derivative on the unit circle.

    du/dn = 3 (x1^2 - x2^2) cos(theta) - 6 x1 x2 sin(theta),
    theta = atan2(x2, x1). Only meaningful for |x| = 1.
    """
    x = np.asarray(x, dtype=np.float64)
    theta = np.arctan2(x[..., 1], x[..., 0])
    value = (
        3.0 * (x[..., 0] ** 2 - x[..., 1] ** 2) * np.cos(theta)
        - 6.0 * x[..., 0] * x[..., 1] * np.sin(theta)
    )
    return float(value) if value.ndim == 0 else value
