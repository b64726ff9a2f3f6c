# loads.py - Distributed loads in state-vector form

"""
Distributed loads enter the element ODE as the inhomogeneous term

    ds/dz = H(z)·s + q(z)

Only the force half of the state (entries 4..7) carries load. After
integration, transfer_to_stiffness() turns the accumulated load vector into
equivalent nodal loads.
"""

import numpy as np


STATE_SIZE = 8

# Force entries loaded by self-weight
GRAVITY_ENTRIES = (5, 6)


def disk_gravity_load(r: float, thickness: float, gravity: float, density: float) -> np.ndarray:
    """
    Self-weight of a disk ring of radius r per unit radial length.

    The ring weight t·2πr·ρ·g loads the shear and radial force entries.

    Examples:
    --------
    >>> q = disk_gravity_load(100.0, 10.0, 9810.0, 7.85e-9)
    >>> float(q[5]) == float(q[6])
    True
    """
    q = np.zeros(STATE_SIZE, dtype=float)
    magnitude = thickness * 2.0 * np.pi * r * gravity * density
    for i in GRAVITY_ENTRIES:
        q[i] = magnitude
    return q


def shell_gravity_load(radius: float, thickness: float, gravity: float, density: float) -> np.ndarray:
    """
    Self-weight of a cylindrical shell per unit axial length.

    Uses the annular cross-section between R - t/2 and R + t/2.
    """
    inner = radius - thickness / 2.0
    outer = radius + thickness / 2.0
    area = np.pi * (outer * outer - inner * inner)

    q = np.zeros(STATE_SIZE, dtype=float)
    for i in GRAVITY_ENTRIES:
        q[i] = area * density * gravity
    return q


def belt_pressure_load(radius: float) -> np.ndarray:
    """
    Belt contact pressure on a shell under the belt.

    The pressure distribution needs a belt tension model that this engine
    does not have, so the load is declared but not provided.
    """
    raise NotImplementedError(
        f"Belt pressure loading (shell radius {radius}) is not implemented"
    )
