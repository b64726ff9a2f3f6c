# pulley_fea/kernel/dof.py
"""
DOF MANAGER: Node Arena and Global Degree of Freedom Indexing
=============================================================

PURPOSE:
--------
This module handles the mapping from (node, local_dof) to global DOF indices.

Nodes live in an arena owned by the assembly and are addressed by stable
integer handles. Elements never own nodes; the assembly records which two
handles each element connects. Two adjacent elements share a node simply by
referring to the same handle, and deduplication during indexing is plain
integer-set membership.

    Shaft node:        4 DOF (w, gamma, u, beta)
    Disk/shell node:   4 DOF (u, v, w, phi)

USAGE:
------
    dof = DOFManager()
    a = dof.add_node(4)
    b = dof.add_node(4)
    ndof = dof.assign([(a, b)])     # → 8
    dof.element_dof_map([a, b])     # → [0, 1, 2, 3, 4, 5, 6, 7]
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Sequence, Tuple

import numpy as np


UNASSIGNED = -1


@dataclass
class Node:
    """
    Displacements and global indices of one node.

    Attributes:
    -----------
    n_dof : int
        Number of displacement components
    displacements : np.ndarray
        Current displacement values, zero until a solve writes them back
    indices : np.ndarray
        Global DOF index per component, UNASSIGNED until assembly
    """
    n_dof: int = 4
    displacements: np.ndarray = field(init=False, repr=False)
    indices: np.ndarray = field(init=False, repr=False)

    def __post_init__(self):
        if self.n_dof <= 0:
            raise ValueError(f"A node needs at least one DOF, got {self.n_dof}")
        self.displacements = np.zeros(self.n_dof, dtype=float)
        self.indices = np.full(self.n_dof, UNASSIGNED, dtype=int)

    @property
    def is_indexed(self) -> bool:
        return bool(np.all(self.indices != UNASSIGNED))

    def reset_indices(self) -> None:
        self.indices[:] = UNASSIGNED

    def index(self, component: int) -> int:
        self._check_component(component)
        return int(self.indices[component])

    def set_index(self, index: int, component: int) -> None:
        self._check_component(component)
        if index < 0:
            raise ValueError(f"Global index must be non-negative, got {index}")
        self.indices[component] = index

    def _check_component(self, component: int) -> None:
        if not 0 <= component < self.n_dof:
            raise IndexError(f"Component {component} out of range for a {self.n_dof}-DOF node")


class DOFManager:
    """
    Arena of nodes plus the global index assignment.

    This is the bridge between "node 5, rotation" and "global DOF index 21".
    Indices are assigned in the order nodes are first met while walking the
    element connectivity, so the numbering follows element insertion order.
    """

    def __init__(self):
        self._nodes: List[Node] = []
        self._ndof = 0

    def __len__(self) -> int:
        return len(self._nodes)

    def __getitem__(self, handle: int) -> Node:
        if not 0 <= handle < len(self._nodes):
            raise IndexError(f"Unknown node handle {handle}")
        return self._nodes[handle]

    def __iter__(self):
        return iter(self._nodes)

    def add_node(self, n_dof: int = 4) -> int:
        """Create a node and return its handle."""
        self._nodes.append(Node(n_dof))
        return len(self._nodes) - 1

    def ndof(self) -> int:
        """Total DOFs assigned by the last call to assign()."""
        return self._ndof

    def reset(self) -> None:
        """Return every node to the unassigned state."""
        for node in self._nodes:
            node.reset_indices()
        self._ndof = 0

    def assign(self, connectivity: Iterable[Tuple[int, ...]]) -> int:
        """
        Assign consecutive global indices to every node reached by the connectivity.

        Parameters:
        -----------
        connectivity : Iterable[Tuple[int, ...]]
            Node handles per element, in element insertion order

        Returns:
        --------
        int
            Total number of DOFs (size of the global system)
        """
        self.reset()
        current = 0
        indexed = set()
        for handles in connectivity:
            for handle in handles:
                if handle in indexed:
                    continue
                node = self[handle]
                for component in range(node.n_dof):
                    node.set_index(current, component)
                    current += 1
                indexed.add(handle)
        self._ndof = current
        return current

    def node_dofs(self, handle: int) -> List[int]:
        """
        Get all global DOF indices for a single node.

        Examples:
        ---------
        >>> dof = DOFManager()
        >>> a = dof.add_node(4)
        >>> dof.node_dofs(a)
        [-1, -1, -1, -1]
        """
        return [int(i) for i in self[handle].indices]

    def element_dof_map(self, handles: Sequence[int]) -> List[int]:
        """
        Flattened global DOF indices for an element connecting ``handles``.

        This returns the indices needed to scatter element matrices into
        the global system.
        """
        result = []
        for handle in handles:
            result.extend(self.node_dofs(handle))
        return result
