# pulley_fea - Transfer-matrix finite element engine for pulley structures
"""
PULLEY-FEA: Shaft, Disk and Shell Analysis by Transfer Matrices
===============================================================

Each element is written as a first-order ODE along one coordinate, integrated
into a transfer matrix, converted to an element stiffness and scattered into
one global system per Fourier mode.

ARCHITECTURE:
-------------
    kernel/         Element-agnostic core (integration, DOF indexing, assembly, solve)
    config.py       Numerical settings (SolverConfig, CONFIG)
    model.py        Element kinds and theory selectors
    loads.py        Distributed loads in state-vector form
    elements.py     Shaft, disk and shell elements
    assembly.py     FEAssembly: build, assemble, constrain, solve
"""

from .config import CONFIG, SolverConfig
from .model import ElementKind, ShaftModel, ShellModel, ThicknessProfile
from .elements import DiskElement, Element, ShaftElement, ShellElement, fit_thickness
from .assembly import AssemblyState, AssemblyStateError, DOFIndexError, FEAssembly
from .kernel import SingularSystemError

__version__ = "0.1.0"

__all__ = [
    'CONFIG', 'SolverConfig',
    'ElementKind', 'ShaftModel', 'ShellModel', 'ThicknessProfile',
    'Element', 'ShaftElement', 'DiskElement', 'ShellElement', 'fit_thickness',
    'FEAssembly', 'AssemblyState', 'AssemblyStateError', 'DOFIndexError',
    'SingularSystemError',
]
