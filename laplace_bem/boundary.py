"""Closed polygonal boundaries discretized into constant elements.

A boundary is an ordered sequence of N points; point N-1 connects back to
point 0, so element i spans point[i] -> point[(i + 1) mod N]. The
collocation point of each element is its midpoint.

Orientation
-----------
    Counter-clockwise ordering (positive signed area) is expected. The
    local-frame normal (tangent rotated +90 deg) then points into the
    domain and the outward normal is its negation.
"""

import logging
from dataclasses import dataclass
from typing import Final, Optional, Sequence, Tuple

import numpy as np

from laplace_bem.errors import DegenerateElementError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
MIN_ELEMENTS: Final[int] = 3
MIN_ELEMENT_LENGTH: Final[float] = 1e-12


# ---------------------------------------------------------------------------
# Data structure
# ---------------------------------------------------------------------------
@dataclass(frozen=True, eq=False)
class BoundaryCurve:
    """Closed polygon with cyclic element indexing.

    Attributes
    ----------
    points : np.ndarray, shape (N, 2)
        Boundary nodes in traversal order. Stored read-only.
    """

    points: np.ndarray

    def __post_init__(self) -> None:
        pts = np.array(self.points, dtype=np.float64)  # copy, (N, 2)
        pts.setflags(write=False)
        object.__setattr__(self, "points", pts)
        self.validate()

    def validate(self) -> None:
        """Check curve integrity. Raises ValueError on failure."""
        pts = self.points
        if pts.ndim != 2 or pts.shape[1] != 2:
            raise ValueError(f"points must have shape (N, 2), got {pts.shape}")
        if pts.shape[0] < MIN_ELEMENTS:
            raise ValueError(
                f"A closed boundary needs at least {MIN_ELEMENTS} points, got {pts.shape[0]}"
            )
        if not np.all(np.isfinite(pts)):
            raise ValueError("Non-finite boundary coordinates")

        lengths = self.lengths  # (N,)
        bad = np.flatnonzero(lengths <= MIN_ELEMENT_LENGTH)
        if bad.size:
            raise DegenerateElementError(int(bad[0]), float(lengths[bad[0]]))

    # -----------------------------------------------------------------------
    # Cyclic accessors
    # -----------------------------------------------------------------------
    @property
    def n_elements(self) -> int:
        """Number of boundary elements (= number of points)."""
        return self.points.shape[0]

    def __len__(self) -> int:
        return self.n_elements

    def wrap(self, index: int) -> int:
        """Map any integer index onto [0, N)."""
        return int(index) % self.n_elements

    def point_at(self, index: int) -> np.ndarray:
        """Boundary point with cyclic indexing: points[index mod N]."""
        return self.points[self.wrap(index)]

    def endpoints(self, index: int) -> Tuple[np.ndarray, np.ndarray]:
        """Start and end point of element `index` in traversal order."""
        return self.point_at(index), self.point_at(index + 1)

    def midpoint(self, index: int) -> np.ndarray:
        p1, p2 = self.endpoints(index)
        return 0.5 * (p1 + p2)

    def length(self, index: int) -> float:
        p1, p2 = self.endpoints(index)
        return float(np.linalg.norm(p2 - p1))

    def tangent(self, index: int) -> np.ndarray:
        """Unit tangent of element `index`, pointing along traversal order."""
        p1, p2 = self.endpoints(index)
        h = float(np.linalg.norm(p2 - p1))
        if h <= MIN_ELEMENT_LENGTH:
            raise DegenerateElementError(self.wrap(index), h)
        return (p2 - p1) / h

    # -----------------------------------------------------------------------
    # Vectorized element geometry
    # -----------------------------------------------------------------------
    @property
    def next_points(self) -> np.ndarray:
        """End point of every element, shape (N, 2)."""
        return np.roll(self.points, -1, axis=0)

    @property
    def midpoints(self) -> np.ndarray:
        return 0.5 * (self.points + self.next_points)  # (N, 2)

    @property
    def lengths(self) -> np.ndarray:
        return np.linalg.norm(self.next_points - self.points, axis=1)  # (N,)

    @property
    def tangents(self) -> np.ndarray:
        return (self.next_points - self.points) / self.lengths[:, None]  # (N, 2)

    @property
    def frame_normals(self) -> np.ndarray:
        """Tangent rotated by +90 deg: (x1_y - x2_y, x2_x - x1_x) / h."""
        t = self.tangents
        return np.column_stack([-t[:, 1], t[:, 0]])  # (N, 2)

    @property
    def outward_normals(self) -> np.ndarray:
        """Outward unit normals for a counter-clockwise curve."""
        return -self.frame_normals

    @property
    def perimeter(self) -> float:
        return float(np.sum(self.lengths))

    @property
    def signed_area(self) -> float:
        """Shoelace area, positive for counter-clockwise ordering."""
        x, y = self.points[:, 0], self.points[:, 1]
        x_next, y_next = self.next_points[:, 0], self.next_points[:, 1]
        return 0.5 * float(np.sum(x * y_next - x_next * y))

    @property
    def is_counterclockwise(self) -> bool:
        return self.signed_area > 0.0

    def reversed(self) -> "BoundaryCurve":
        """Same curve traversed in the opposite direction."""
        return BoundaryCurve(self.points[::-1])


# ---------------------------------------------------------------------------
# Boundary generators
# ---------------------------------------------------------------------------
def generate_circle_boundary(
    n_elements: int,
    radius: float = 1.0,
    center: Sequence[float] = (0.0, 0.0),
) -> BoundaryCurve:
    """Regular N-gon inscribed in a circle, counter-clockwise.

    Nodes sit at equally spaced polar angles 2*pi*i/N, i = 0..N-1.

    Parameters
    ----------
    n_elements : int
        Number of elements N (>= 3).
    radius : float
        Circle radius.
    center : sequence of float, shape (2,)
        Circle centre.

    Returns
    -------
    BoundaryCurve
    """
    if n_elements < MIN_ELEMENTS:
        raise ValueError(f"n_elements must be >= {MIN_ELEMENTS}, got {n_elements}")
    if radius <= 0.0:
        raise ValueError(f"radius must be positive, got {radius}")

    angles = 2.0 * np.pi * np.arange(n_elements) / n_elements  # (N,)
    cx, cy = float(center[0]), float(center[1])
    points = np.column_stack([
        cx + radius * np.cos(angles),
        cy + radius * np.sin(angles),
    ])  # (N, 2)

    boundary = BoundaryCurve(points)
    logger.debug(
        "Circle boundary: R=%.3f, center=(%.2f, %.2f), N=%d, h=%.4e",
        radius, cx, cy, n_elements, boundary.lengths[0],
    )
    return boundary


def generate_ellipse_boundary(
    n_elements: int,
    semi_major: float,
    semi_minor: float,
    center: Sequence[float] = (0.0, 0.0),
) -> BoundaryCurve:
    """Ellipse sampled at equally spaced parameter angles, counter-clockwise."""
    if n_elements < MIN_ELEMENTS:
        raise ValueError(f"n_elements must be >= {MIN_ELEMENTS}, got {n_elements}")
    if semi_major <= 0.0 or semi_minor <= 0.0:
        raise ValueError(
            f"Semi-axes must be positive, got a={semi_major}, b={semi_minor}"
        )

    t = 2.0 * np.pi * np.arange(n_elements) / n_elements  # (N,)
    points = np.column_stack([
        float(center[0]) + semi_major * np.cos(t),
        float(center[1]) + semi_minor * np.sin(t),
    ])  # (N, 2)
    return BoundaryCurve(points)


def generate_polygon_boundary(
    vertices: np.ndarray,
    max_length: Optional[float] = None,
) -> BoundaryCurve:
    """Polygon boundary, optionally subdividing each side.

    Parameters
    ----------
    vertices : np.ndarray, shape (V, 2)
        Polygon corners in counter-clockwise order.
    max_length : float, optional
        Upper bound on the element length. Each side is split into
        ceil(side / max_length) equal elements. None keeps one element
        per side.

    Returns
    -------
    BoundaryCurve
    """
    vertices = np.asarray(vertices, dtype=np.float64)
    if vertices.ndim != 2 or vertices.shape[1] != 2:
        raise ValueError(f"vertices must have shape (V, 2), got {vertices.shape}")
    if max_length is None:
        return BoundaryCurve(vertices)
    if max_length <= 0.0:
        raise ValueError(f"max_length must be positive, got {max_length}")

    V = len(vertices)
    nodes = []
    for i in range(V):
        v1 = vertices[i]  # (2,)
        v2 = vertices[(i + 1) % V]  # (2,)
        side_m = float(np.linalg.norm(v2 - v1))
        if side_m <= MIN_ELEMENT_LENGTH:
            raise DegenerateElementError(i, side_m)

        n_div = max(1, int(np.ceil(side_m / max_length)))
        s = np.arange(n_div)[:, None] / n_div  # (n_div, 1)
        nodes.append((1.0 - s) * v1[None, :] + s * v2[None, :])  # (n_div, 2)

    boundary = BoundaryCurve(np.vstack(nodes))
    logger.debug(
        "Polygon boundary: %d vertices, N=%d, h=[%.4e, %.4e]",
        V, boundary.n_elements, np.min(boundary.lengths), np.max(boundary.lengths),
    )
    return boundary
