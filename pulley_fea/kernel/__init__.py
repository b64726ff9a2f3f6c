# pulley_fea/kernel - Element-agnostic numerical core
"""
KERNEL: THE ELEMENT-AGNOSTIC FOUNDATION
=======================================

This package contains the numerical plumbing shared by every element type:

- linalg:     block partitioning of state-space matrices
- integrate:  transfer-matrix integration and transfer → stiffness conversion
- dof:        node arena and global DOF indexing
- assemble:   sparse scatter-add of element contributions
- solve:      dense LU solve with singularity detection

The ELEMENT formulations (shaft, disk, shell) only have to provide an ODE
matrix H(z) and a load q(z); everything downstream is shared.
"""

from .dof import DOFManager, Node, UNASSIGNED
from .integrate import (
    expm_scaling_squaring,
    integrate_constant,
    integrate_sampled,
    transfer_to_stiffness,
)
from .assemble import StiffnessAccumulator, assemble_global_K, assemble_global_F
from .solve import solve_lu, SingularSystemError

__all__ = [
    'DOFManager', 'Node', 'UNASSIGNED',
    'expm_scaling_squaring', 'integrate_constant', 'integrate_sampled', 'transfer_to_stiffness',
    'StiffnessAccumulator', 'assemble_global_K', 'assemble_global_F',
    'solve_lu', 'SingularSystemError',
]
