# pulley_fea/kernel/linalg.py
"""
LINEAR ALGEBRA PRIMITIVES
=========================

Dense matrices and vectors are plain numpy arrays (indexed access, ``+``,
scalar ``*`` and ``@`` come for free). This module only adds the pieces the
transfer-matrix method keeps reusing: building and splitting the 2×2 block
structure of a state-space matrix.

A state vector is ordered as [displacements; forces], so an 8×8 ODE or
transfer matrix is partitioned as:

    H = [ A  B ]     A: displacement <- displacement
        [ C  D ]     B: displacement <- force
                     C: force        <- displacement
                     D: force        <- force
"""

import numpy as np
from typing import Tuple


def zeros(rows: int, columns: int = None) -> np.ndarray:
    """Float zero matrix (or vector when ``columns`` is None)."""
    if columns is None:
        return np.zeros(rows, dtype=float)
    return np.zeros((rows, columns), dtype=float)


def identity(size: int) -> np.ndarray:
    return np.eye(size, dtype=float)


def block_matrix(A: np.ndarray, B: np.ndarray, C: np.ndarray, D: np.ndarray) -> np.ndarray:
    """
    Assemble four equally sized square blocks into [[A, B], [C, D]].

    Examples:
    ---------
    >>> I = np.eye(2)
    >>> block_matrix(I, 2 * I, 3 * I, 4 * I)[0]
    array([1., 0., 2., 0.])
    """
    n = A.shape[0]
    for name, blk in (("A", A), ("B", B), ("C", C), ("D", D)):
        if blk.shape != (n, n):
            raise ValueError(f"Block {name} has shape {blk.shape}, expected {(n, n)}")
    return np.block([[A, B], [C, D]]).astype(float)


def split_blocks(M: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """Inverse of block_matrix: return (A, B, C, D) views of a 2n×2n matrix."""
    size = M.shape[0]
    if M.shape != (size, size) or size % 2:
        raise ValueError(f"Expected an even square matrix, got shape {M.shape}")
    n = size // 2
    return M[:n, :n], M[:n, n:], M[n:, :n], M[n:, n:]


def split_state(v: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Split a 2n state vector into its (displacement, force) halves."""
    if v.ndim != 1 or v.size % 2:
        raise ValueError(f"Expected an even-length vector, got shape {v.shape}")
    n = v.size // 2
    return v[:n], v[n:]
