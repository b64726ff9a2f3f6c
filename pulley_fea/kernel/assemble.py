# pulley_fea/kernel/assemble.py
"""
ASSEMBLY: Global Matrix Scatter-Add
===================================

PURPOSE:
--------
This module handles the assembly of element contributions into the global
system. This is the scatter-add operation that builds K and F from
element-level data.

Assembly doesn't care about element TYPE. It just needs:
- Total number of DOFs
- For each element: its DOF map, its 8×8 stiffness and its 8-length load

The global stiffness is accumulated as a scipy sparse matrix. Entries from
several elements that land on the same DOF pair are summed.

Element matrices can be computed in parallel (each depends only on its own
element), but the scatter is always done by a single writer afterwards.
"""

import logging
from typing import List, Sequence, Tuple

import numpy as np
import scipy.linalg
import scipy.sparse as sp
from joblib import Parallel, delayed


logger = logging.getLogger(__name__)


class StiffnessAccumulator:
    """
    Sparse scatter-add accumulator for the global stiffness matrix.

    Entries are collected as COO triplets and summed on conversion, so the
    order in which elements are added does not matter.
    """

    def __init__(self, ndof: int):
        if ndof < 0:
            raise ValueError(f"ndof must be >= 0, got {ndof}")
        self.ndof = ndof
        self._rows: List[np.ndarray] = []
        self._cols: List[np.ndarray] = []
        self._vals: List[np.ndarray] = []

    def add(self, dof_map: Sequence[int], ke: np.ndarray) -> None:
        """Scatter-add one element matrix at the given global DOFs."""
        dof_map = np.asarray(dof_map, dtype=int)
        n = dof_map.size
        assert ke.shape == (n, n), \
            f"Element ke shape {ke.shape} doesn't match dof_map length {n}"
        if n and (dof_map.min() < 0 or dof_map.max() >= self.ndof):
            raise ValueError(f"DOF map {dof_map.tolist()} out of range for {self.ndof} DOFs")

        rows, cols = np.meshgrid(dof_map, dof_map, indexing="ij")
        self._rows.append(rows.ravel())
        self._cols.append(cols.ravel())
        self._vals.append(np.asarray(ke, dtype=float).ravel())

    def tocsr(self) -> sp.csr_matrix:
        """Summed global matrix in CSR form."""
        if not self._vals:
            return sp.csr_matrix((self.ndof, self.ndof), dtype=float)
        coo = sp.coo_matrix(
            (np.concatenate(self._vals), (np.concatenate(self._rows), np.concatenate(self._cols))),
            shape=(self.ndof, self.ndof),
        )
        csr = coo.tocsr()
        csr.sum_duplicates()
        return csr

    @property
    def nnz(self) -> int:
        """Number of stored non-zeros after summation."""
        return self.tocsr().count_nonzero()


def assemble_global_K(
    ndof: int,
    contributions: List[Tuple[List[int], np.ndarray]]
) -> sp.csr_matrix:
    """
    Assemble the global stiffness matrix from element contributions.

    ALGORITHM:
    ----------
    K = 0 (ndof × ndof, sparse)
    for each element:
        for each (local_i, local_j) in element ke:
            K[dof_map[local_i], dof_map[local_j]] += ke[local_i, local_j]

    Parameters:
    -----------
    ndof : int
        Total number of DOFs in the system
    contributions : List[Tuple[List[int], np.ndarray]]
        (dof_map, ke) per element

    Returns:
    --------
    scipy.sparse.csr_matrix
        Global stiffness matrix, shape (ndof, ndof)
    """
    acc = StiffnessAccumulator(ndof)
    for dof_map, ke in contributions:
        acc.add(dof_map, ke)
    return acc.tocsr()


def assemble_global_F(
    ndof: int,
    contributions: List[Tuple[List[int], np.ndarray]]
) -> np.ndarray:
    """
    Assemble the global load vector from element equivalent nodal loads.

    Same scatter-add logic as assemble_global_K, but for load vectors.
    """
    F = np.zeros(ndof, dtype=float)

    for dof_map, fe in contributions:
        n_element_dofs = len(dof_map)

        assert fe.shape == (n_element_dofs,), \
            f"Element fe shape {fe.shape} doesn't match dof_map length {n_element_dofs}"

        np.add.at(F, np.asarray(dof_map, dtype=int), fe)

    return F


def compute_element_contributions(elements, config, workers: int = 1) -> List[Tuple[np.ndarray, np.ndarray]]:
    """
    Evaluate (ke, fe) for every element, optionally in worker threads.

    Results come back in element order whatever the worker count, so the
    subsequent scatter is deterministic.
    """
    if workers is None or workers <= 1 or len(elements) < 2:
        return [element.compute_stiffness_and_load(config) for element in elements]

    logger.debug("Computing %d element matrices on %d threads", len(elements), workers)
    return Parallel(n_jobs=workers, prefer="threads")(
        delayed(element.compute_stiffness_and_load)(config) for element in elements
    )


def condense_interior(
    K_a: np.ndarray, q_a: np.ndarray,
    K_b: np.ndarray, q_b: np.ndarray,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Join two two-node stiffnesses end to start and condense out the shared node.

    Element a connects nodes (0, m), element b connects (m, 1). With no
    external load on m:

        K = K_ee - K_em·K_mm⁻¹·K_me
        q = q_e  - K_em·K_mm⁻¹·q_m

    Returns the stiffness and equivalent loads between nodes 0 and 1.
    """
    n = K_a.shape[0] // 2
    assert K_a.shape == K_b.shape == (2 * n, 2 * n), \
        f"Stiffness shapes {K_a.shape} and {K_b.shape} do not chain"

    K_mm = K_a[n:, n:] + K_b[:n, :n]
    q_m = q_a[n:] + q_b[:n]
    K_em = np.vstack([K_a[:n, n:], K_b[n:, :n]])
    K_me = np.hstack([K_a[n:, :n], K_b[:n, n:]])

    X = scipy.linalg.solve(K_mm, np.column_stack([K_me, q_m]))

    K_ee = np.zeros((2 * n, 2 * n))
    K_ee[:n, :n] = K_a[:n, :n]
    K_ee[n:, n:] = K_b[n:, n:]

    K = K_ee - K_em @ X[:, :2 * n]
    q = np.concatenate([q_a[:n], q_b[n:]]) - K_em @ X[:, 2 * n]
    return K, q
