# Element kinds and theory selectors

from enum import Enum


class ElementKind(Enum):
    """Closed set of element variants handled by the assembly."""
    SHAFT = "shaft"
    DISK = "disk"
    SHELL = "shell"


class ShaftModel(Enum):
    """Beam theory used for the bending part of a shaft."""
    EULER_BERNOULLI = 0     # neglects shear deformation
    TIMOSHENKO = 1          # adds shear compliance V/(kappa*G*A)


class ShellModel(Enum):
    """Cylindrical shell theory."""
    VENTSEL_KRAUTHAMMER = 0             # dense formulation, D = -A^T
    TIMOSHENKO_WOINOWSKY_KRIEGER = 1    # sparse formulation, 18 terms


class ThicknessProfile(Enum):
    """Radial thickness variation of a disk."""
    LINEAR = "linear"   # t = c*r + p
    POWER = "power"     # t = c * r**p
