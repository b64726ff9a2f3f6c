# pulley_fea/assembly.py
"""
Finite element assembly: element list, node arena, global system and solve.

Typical use:

    asm = FEAssembly()
    h0, h1 = asm.add_element(shaft)
    asm.assemble(mode=0)
    asm.fix_dofs(asm.get_dof_indices(h0))
    asm.apply_force(-1000.0, asm.get_dof_indices(h1)[0])
    if asm.solve():
        w_tip = asm.get_displacement(asm.get_dof_indices(h1)[0])
"""

import logging
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
import scipy.sparse as sp

from .config import CONFIG, SolverConfig
from .elements import Element
from .kernel.assemble import assemble_global_F, assemble_global_K, compute_element_contributions
from .kernel.dof import DOFManager, Node
from .kernel.solve import SingularSystemError, solve_lu


logger = logging.getLogger(__name__)


class AssemblyState(Enum):
    EMPTY = "empty"
    BUILT = "built"
    ASSEMBLED = "assembled"
    CONSTRAINED = "constrained"
    SOLVED = "solved"


class AssemblyStateError(RuntimeError):
    """Raised when an operation needs an assembled system and there is none."""


class DOFIndexError(IndexError):
    """Raised for a global DOF index outside the assembled system."""


class FEAssembly:
    """
    Owns the elements, their nodes and the global linear system.

    Elements are kept in insertion order, which also fixes the global DOF
    numbering. Each element connects two node handles; elements sharing a
    handle share that node's DOFs.
    """

    def __init__(self, config: SolverConfig = CONFIG):
        self.config = config
        self._dof = DOFManager()
        self._elements: List[Element] = []
        self._connectivity: List[Tuple[int, int]] = []
        self.clear()

    # ------------------------------------------------------------------
    # Building
    # ------------------------------------------------------------------

    def clear(self) -> None:
        """Drop every element, node and system quantity."""
        self._dof.reset()
        self._dof = DOFManager()
        self._elements = []
        self._connectivity = []
        self._stiffness: Optional[sp.csr_matrix] = None
        self._system: Optional[sp.lil_matrix] = None
        self._element_loads: Optional[np.ndarray] = None
        self._external: Optional[np.ndarray] = None
        self._constraints: Dict[int, float] = {}
        self._solution: Optional[np.ndarray] = None
        self.last_error: Optional[str] = None
        self.state = AssemblyState.EMPTY

    def add_element(
        self,
        element: Element,
        nodes: Optional[Sequence[Optional[int]]] = None,
    ) -> Tuple[int, int]:
        """
        Append an element and return its (start, end) node handles.

        Parameters:
        -----------
        element : Element
            Shaft, disk or shell element
        nodes : pair of handles, optional
            Existing node handles to connect to; None (or a None entry)
            creates a new node

        Raises:
        -------
        ValueError
            If a reused node has a different number of DOFs than the element
        """
        if nodes is None:
            nodes = (None, None)
        if len(nodes) != 2:
            raise ValueError(f"An element connects exactly two nodes, got {len(nodes)}")

        for handle in nodes:
            if handle is None:
                continue
            node = self.node(handle)
            if node.n_dof != element.dof_per_node:
                raise ValueError(
                    f"Node {handle} has {node.n_dof} DOFs, element needs {element.dof_per_node}"
                )
        if nodes[0] is not None and nodes[0] == nodes[1]:
            raise ValueError(f"Element cannot connect node {nodes[0]} to itself")

        handles = [
            self._dof.add_node(element.dof_per_node) if handle is None else handle
            for handle in nodes
        ]

        self._elements.append(element)
        self._connectivity.append((handles[0], handles[1]))

        if self.state is not AssemblyState.EMPTY:
            self._discard_system()
        self.state = AssemblyState.BUILT
        return handles[0], handles[1]

    @property
    def elements(self) -> List[Element]:
        return list(self._elements)

    def element_nodes(self, k: int) -> Tuple[int, int]:
        """Node handles of the k-th element."""
        return self._connectivity[k]

    def node(self, handle: int) -> Node:
        try:
            return self._dof[handle]
        except IndexError as e:
            raise DOFIndexError(str(e)) from None

    def variable_count(self) -> int:
        """Number of unknowns assigned by the last assemble()."""
        return self._dof.ndof()

    def equation_count(self) -> int:
        return self._dof.ndof()

    # ------------------------------------------------------------------
    # Assembly
    # ------------------------------------------------------------------

    def assemble(self, mode: int, workers: Optional[int] = None) -> None:
        """
        Assign DOF indices and build the global stiffness and load.

        Every element must be set up for the same Fourier mode. Element
        matrices are computed on ``workers`` threads (config default) and
        scattered by this thread afterwards.
        """
        mismatched = [k for k, e in enumerate(self._elements) if e.mode != mode]
        if mismatched:
            raise ValueError(
                f"Elements {mismatched} are not set up for Fourier mode {mode}"
            )

        self._discard_system()
        if not self._elements:
            logger.warning("No variables to assemble")
            return
        self.state = AssemblyState.BUILT

        # Element matrices first: a failing element leaves no indices behind
        if workers is None:
            workers = self.config.workers
        results = compute_element_contributions(self._elements, self.config, workers=workers)

        ndof = self._dof.assign(self._connectivity)
        dof_maps = [self._dof.element_dof_map(handles) for handles in self._connectivity]
        self._stiffness = assemble_global_K(ndof, [(m, ke) for m, (ke, _) in zip(dof_maps, results)])
        self._element_loads = assemble_global_F(ndof, [(m, fe) for m, (_, fe) in zip(dof_maps, results)])
        self._external = np.zeros(ndof, dtype=float)
        self._system = self._stiffness.tolil()
        self.state = AssemblyState.ASSEMBLED

        logger.info(
            "Assembled mode %d: %d elements, %d DOFs, %d non-zeros",
            mode, len(self._elements), ndof, self.nnz,
        )

    def _discard_system(self) -> None:
        self._dof.reset()
        self._stiffness = None
        self._system = None
        self._element_loads = None
        self._external = None
        self._constraints = {}
        self._solution = None
        self.last_error = None

    def _require_assembled(self, operation: str) -> None:
        if self._system is None:
            raise AssemblyStateError(f"Cannot {operation} before assemble()")

    def _check_dof(self, dof: int) -> int:
        n = self.equation_count()
        if not 0 <= dof < n:
            raise DOFIndexError(f"DOF {dof} out of range for {n} equations")
        return int(dof)

    def _modified(self, constrained: bool = False) -> None:
        self._solution = None
        if constrained or self._constraints:
            self.state = AssemblyState.CONSTRAINED
        else:
            self.state = AssemblyState.ASSEMBLED

    # ------------------------------------------------------------------
    # Loads and boundary conditions
    # ------------------------------------------------------------------

    def apply_force(self, value: float, dof: int) -> None:
        """Add a point force to the global load vector."""
        self._require_assembled("apply a force")
        dof = self._check_dof(dof)
        self._external[dof] += value
        self._modified()

    def apply_moment(self, value: float, dof: int) -> None:
        """Moments enter the load vector the same way as forces."""
        self.apply_force(value, dof)

    def prescribe_displacement(self, value: float, dof: int) -> None:
        """
        Replace equation ``dof`` by ``u[dof] = value``.

        The row is zeroed with a unit diagonal; the column is left alone.
        Forces applied to a constrained DOF no longer reach its equation.
        """
        self._require_assembled("constrain a DOF")
        dof = self._check_dof(dof)
        self._system[dof, :] = 0.0
        self._system[dof, dof] = 1.0
        self._constraints[dof] = float(value)
        self._modified(constrained=True)

    def fix_dof(self, dof: int) -> None:
        """Constrain a DOF to zero displacement."""
        self.prescribe_displacement(0.0, dof)

    def fix_dofs(self, dofs: Sequence[int]) -> None:
        for dof in dofs:
            self.fix_dof(dof)

    # ------------------------------------------------------------------
    # Solve
    # ------------------------------------------------------------------

    def solve(self) -> bool:
        """
        Solve the constrained system.

        Returns False (and records the reason in ``last_error``) when the
        system is not assembled or is singular; True otherwise, in which
        case the node displacements are updated.
        """
        if self._system is None:
            self.last_error = "System not assembled"
            logger.warning(self.last_error)
            return False

        try:
            u = solve_lu(
                self._system.toarray(),
                self.right_hand_side,
                pivot_tolerance=self.config.pivot_tolerance,
            )
        except SingularSystemError as e:
            self.last_error = str(e)
            logger.warning("Solve failed: %s", e)
            return False

        self._solution = u
        self.last_error = None
        for node in self._dof:
            if node.is_indexed:
                node.displacements[:] = u[node.indices]
        self.state = AssemblyState.SOLVED
        logger.info("Solved %d equations, max |u| = %.4e", u.size, np.abs(u).max())
        return True

    def get_solution(self) -> Optional[np.ndarray]:
        if self._solution is None:
            return None
        return self._solution.copy()

    def get_displacement(self, dof: int) -> Optional[float]:
        """Solved displacement at a global DOF, None before a successful solve."""
        dof = self._check_dof(dof)
        if self._solution is None:
            return None
        return float(self._solution[dof])

    def get_dof_indices(self, handle: int) -> List[int]:
        """Global DOF indices of a node, -1 for entries not yet assigned."""
        node = self.node(handle)
        return [int(i) for i in node.indices]

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    @property
    def stiffness_matrix(self) -> Optional[sp.csr_matrix]:
        """Assembled stiffness before constraints."""
        if self._stiffness is None:
            return None
        return self._stiffness.copy()

    @property
    def system_matrix(self) -> Optional[np.ndarray]:
        """Dense system matrix with constrained rows replaced."""
        if self._system is None:
            return None
        return self._system.toarray()

    @property
    def external_forces(self) -> Optional[np.ndarray]:
        if self._external is None:
            return None
        return self._external.copy()

    @property
    def right_hand_side(self) -> Optional[np.ndarray]:
        """External forces plus equivalent element loads, constrained entries overridden."""
        if self._external is None:
            return None
        rhs = self._external + self._element_loads
        for dof, value in self._constraints.items():
            rhs[dof] = value
        return rhs

    @property
    def nnz(self) -> int:
        if self._system is None:
            return 0
        return int(self._system.tocsr().count_nonzero())

    def displacement_frame(self) -> pd.DataFrame:
        """
        Nodal displacements in long format.

        Columns: node, component, dof, displacement. Empty before solve().
        """
        columns = ["node", "component", "dof", "displacement"]
        if self._solution is None:
            return pd.DataFrame(columns=columns)

        component_names: Dict[int, Tuple[str, ...]] = {}
        for element, handles in zip(self._elements, self._connectivity):
            for handle in handles:
                component_names.setdefault(handle, element.components)

        rows = []
        for handle, node in enumerate(self._dof):
            if not node.is_indexed:
                continue
            names = component_names[handle]
            for component in range(node.n_dof):
                rows.append({
                    "node": handle,
                    "component": names[component],
                    "dof": int(node.indices[component]),
                    "displacement": float(node.displacements[component]),
                })
        return pd.DataFrame(rows, columns=columns)
