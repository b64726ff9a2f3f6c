# pulley_fea/kernel/solve.py
"""Dense LU solve with singular-system detection."""

import logging
import warnings

import numpy as np
import scipy.linalg


logger = logging.getLogger(__name__)


class SingularSystemError(RuntimeError):
    """Raised when the system matrix is singular, ill-posed or non-finite."""

    def __init__(self, message: str, pivot: int = None):
        super().__init__(message)
        self.pivot = pivot


def solve_lu(A: np.ndarray, b: np.ndarray, pivot_tolerance: float = 1e-12) -> np.ndarray:
    """
    Solve A·x = b by LU factorization with partial pivoting.

    A pivot counts as zero when |U_ii| <= pivot_tolerance · max|U_jj|. A
    structure with an unrestrained rigid-body motion produces such a pivot.

    Args:
        A: Square system matrix (n x n)
        b: Right-hand side (n,)
        pivot_tolerance: Relative pivot threshold

    Returns:
        x: Solution vector (n,)

    Raises:
        SingularSystemError: If A is empty, non-finite or has a (near) zero pivot
    """
    A = np.asarray(A, dtype=float)
    b = np.asarray(b, dtype=float)
    n = A.shape[0]

    if A.shape != (n, n) or b.shape != (n,):
        raise ValueError(f"Incompatible shapes: A {A.shape}, b {b.shape}")
    if n == 0:
        raise SingularSystemError("Empty system")
    if not (np.all(np.isfinite(A)) and np.all(np.isfinite(b))):
        raise SingularSystemError("System contains non-finite values")

    # Exact zero pivots are reported below with their index
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", scipy.linalg.LinAlgWarning)
        lu, piv = scipy.linalg.lu_factor(A, check_finite=False)

    pivots = np.abs(np.diag(lu))
    scale = pivots.max()
    small = np.flatnonzero(pivots <= pivot_tolerance * scale) if scale > 0 else np.arange(n)
    if small.size:
        k = int(small[0])
        raise SingularSystemError(
            f"Singular system: U({k},{k}) = {lu[k, k]:.3e} (max pivot {scale:.3e}). Check supports.",
            pivot=k,
        )

    x = scipy.linalg.lu_solve((lu, piv), b, check_finite=False)
    logger.debug("LU solve of %d equations, pivot ratio %.2e", n, pivots.min() / scale)
    return x
