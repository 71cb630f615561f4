"""Exception types raised by the Laplace BEM solver.

Error kinds
-----------
    NonSquareSystemError:   system matrix is not square
    ShapeMismatchError:     right-hand side rows differ from matrix size
    SingularSystemError:    zero pivot or ill-conditioned system
    DegenerateElementError: zero-length boundary element
    SingularKernelError:    kernel evaluated at coincident points

None of these are retried: they indicate bad geometry or a violated
solver precondition, not a transient condition.
"""


class BEMError(Exception):
    """Base class for all solver errors."""


class NonSquareSystemError(BEMError, ValueError):
    """System matrix A is not square."""

    def __init__(self, shape: tuple):
        self.shape = tuple(shape)
        super().__init__(f"System matrix must be square, got shape {self.shape}")


class ShapeMismatchError(BEMError, ValueError):
    """Right-hand side row count does not match the system matrix."""

    def __init__(self, n_rows_a: int, n_rows_b: int):
        self.n_rows_a = n_rows_a
        self.n_rows_b = n_rows_b
        super().__init__(
            f"Right-hand side has {n_rows_b} rows, system matrix has {n_rows_a}"
        )


class SingularSystemError(BEMError, ArithmeticError):
    """LU factorization hit a zero pivot or the system is numerically singular.

    Attributes
    ----------
    pivot_index : int
        1-based LAPACK pivot index. N + 1 means the matrix is singular to
        working precision (reciprocal condition below threshold).
    """

    def __init__(self, pivot_index: int):
        self.pivot_index = pivot_index
        super().__init__(f"Singular system (pivot index {pivot_index})")


class DegenerateElementError(BEMError, ValueError):
    """Boundary element of zero length."""

    def __init__(self, element_index: int, length: float = 0.0):
        self.element_index = element_index
        self.length = length
        super().__init__(
            f"Degenerate boundary element {element_index}: length={length:.3e}"
        )


class SingularKernelError(BEMError, ValueError):
    """Fundamental solution evaluated with coincident source and target."""
