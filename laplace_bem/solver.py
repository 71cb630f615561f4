"""Boundary integral equation solves for the interior Laplace problem.

Collocating the boundary integral equation at the element midpoints of a
counter-clockwise curve gives, with q the outward normal flux,

    U q = (I - W) u

where U and W come from assemble_influence_matrices(). Each element
carries either a known potential (Dirichlet) or a known flux (Neumann);
the unknown of every element is moved to the left-hand side and the
dense system is solved once through linalg.solve().

Usage
-----
    boundary = generate_circle_boundary(32)
    sol = solve_dirichlet(boundary, exact_value(boundary.midpoints))
    u0 = sol.field([0.0, 0.0])
"""

import logging
from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional, Sequence

import numpy as np

from laplace_bem.assembly import InfluenceMatrices, assemble_influence_matrices
from laplace_bem.boundary import BoundaryCurve, generate_circle_boundary
from laplace_bem.linalg import DEFAULT_RCOND_THRESHOLD, check_status, solve
from laplace_bem.potential import EVAL_CHUNK_SIZE, evaluate_field, evaluate_potential
from laplace_bem.reference import exact_value

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Boundary conditions
# ---------------------------------------------------------------------------
class BoundaryType(Enum):
    """Kind of data prescribed on an element.

    DIRICHLET: u known, q unknown
    NEUMANN:   q known, u unknown
    """

    DIRICHLET = auto()
    NEUMANN = auto()


@dataclass
class BoundaryCondition:
    """Condition on one element.

    Attributes
    ----------
    boundary_type : BoundaryType
    value : float
        Prescribed potential (Dirichlet) or outward flux (Neumann).
    """

    boundary_type: BoundaryType
    value: float


@dataclass
class BoundarySolution:
    """Potential and outward flux on every element.

    Attributes
    ----------
    boundary : BoundaryCurve
        Curve the system was assembled on.
    u : np.ndarray, shape (N,)
        Element potentials.
    q : np.ndarray, shape (N,)
        Element outward normal fluxes.
    """

    boundary: BoundaryCurve
    u: np.ndarray
    q: np.ndarray

    def potential(self, x: np.ndarray):
        """Trapezoidal-rule potential (unit-circle node parameterization)."""
        return evaluate_potential(x, self.boundary, self.q, self.u)

    def field(self, points: np.ndarray, chunk_size: int = EVAL_CHUNK_SIZE):
        """Potential from exact element integrals, any polygon."""
        return evaluate_field(points, self.boundary, self.q, self.u, chunk_size)


# ---------------------------------------------------------------------------
# Helpers (private)
# ---------------------------------------------------------------------------
def _require_counterclockwise(boundary: BoundaryCurve) -> None:
    if not boundary.is_counterclockwise:
        raise ValueError(
            "Boundary must be counter-clockwise (signed area "
            f"{boundary.signed_area:.3e}); use boundary.reversed()"
        )


def _matrices_for(
    boundary: BoundaryCurve,
    matrices: Optional[InfluenceMatrices],
) -> InfluenceMatrices:
    if matrices is None:
        return assemble_influence_matrices(boundary)
    N = boundary.n_elements
    if matrices.U.shape != (N, N) or matrices.W.shape != (N, N):
        raise ValueError(
            f"Influence matrices do not match N={N}: "
            f"U={matrices.U.shape}, W={matrices.W.shape}"
        )
    return matrices


def _solve_checked(A: np.ndarray, b: np.ndarray, rcond_threshold: float) -> np.ndarray:
    return check_status(solve(A, b, rcond_threshold), A.shape, b.shape)


# ---------------------------------------------------------------------------
# Solves
# ---------------------------------------------------------------------------
def solve_dirichlet(
    boundary: BoundaryCurve,
    u_boundary: np.ndarray,
    matrices: Optional[InfluenceMatrices] = None,
    rcond_threshold: float = DEFAULT_RCOND_THRESHOLD,
) -> BoundarySolution:
    """Solve U q = (I - W) u for the flux q given u on every element.

    Parameters
    ----------
    boundary : BoundaryCurve
        Counter-clockwise curve.
    u_boundary : np.ndarray, shape (N,)
        Potential at the element midpoints.
    matrices : InfluenceMatrices, optional
        Pre-assembled (U, W) for this boundary.
    rcond_threshold : float
        Passed to linalg.solve().

    Returns
    -------
    BoundarySolution

    Raises
    ------
    SingularSystemError
        If U is singular (e.g. logarithmic capacity 1 for the domain).
    """
    _require_counterclockwise(boundary)
    N = boundary.n_elements
    u_boundary = np.asarray(u_boundary, dtype=np.float64)
    if u_boundary.shape != (N,):
        raise ValueError(f"u_boundary must have shape ({N},), got {u_boundary.shape}")

    U, W = _matrices_for(boundary, matrices)
    rhs = u_boundary - W @ u_boundary  # (N,)
    q = _solve_checked(U, rhs, rcond_threshold)  # (N,)

    logger.info(
        "Dirichlet solve: N=%d, |q|_max=%.4e", N, float(np.max(np.abs(q))),
    )
    return BoundarySolution(boundary=boundary, u=u_boundary.copy(), q=q)


def solve_mixed(
    boundary: BoundaryCurve,
    conditions: Sequence[BoundaryCondition],
    matrices: Optional[InfluenceMatrices] = None,
    rcond_threshold: float = DEFAULT_RCOND_THRESHOLD,
) -> BoundarySolution:
    """Solve with a Dirichlet or Neumann condition on each element.

    Column j of the system matrix is -U[:, j] on Dirichlet elements (q_j
    unknown) and (I - W)[:, j] on Neumann elements (u_j unknown); the known
    columns move to the right-hand side.

    Parameters
    ----------
    boundary : BoundaryCurve
        Counter-clockwise curve.
    conditions : sequence of BoundaryCondition, length N
    matrices : InfluenceMatrices, optional
    rcond_threshold : float

    Returns
    -------
    BoundarySolution
    """
    _require_counterclockwise(boundary)
    N = boundary.n_elements
    if len(conditions) != N:
        raise ValueError(
            f"Number of conditions must match number of elements: "
            f"got {len(conditions)} for {N} elements"
        )

    is_dirichlet = np.array(
        [c.boundary_type == BoundaryType.DIRICHLET for c in conditions]
    )  # (N,)
    values = np.array([c.value for c in conditions], dtype=np.float64)  # (N,)
    if not np.any(is_dirichlet):
        raise ValueError(
            "At least one Dirichlet element is required: the pure Neumann "
            "problem fixes u only up to a constant"
        )

    U, W = _matrices_for(boundary, matrices)
    H = np.eye(N) - W  # (N, N)

    A = np.where(is_dirichlet[None, :], -U, H)  # (N, N)
    known = np.where(is_dirichlet[None, :], H, -U)  # (N, N)
    b = -known @ values  # (N,)

    x = _solve_checked(A, b, rcond_threshold)  # (N,)

    u = np.where(is_dirichlet, values, x)
    q = np.where(is_dirichlet, x, values)
    logger.info(
        "Mixed solve: N=%d (Dirichlet=%d, Neumann=%d)",
        N, int(np.sum(is_dirichlet)), int(np.sum(~is_dirichlet)),
    )
    return BoundarySolution(boundary=boundary, u=u, q=q)


def solve_reference_problem(n_elements: int) -> BoundarySolution:
    """Dirichlet solve of u = x^3 - 3 x y^2 on a regular N-gon in the unit circle."""
    boundary = generate_circle_boundary(n_elements)
    return solve_dirichlet(boundary, exact_value(boundary.midpoints))
