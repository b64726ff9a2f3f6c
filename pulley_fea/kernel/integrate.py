# pulley_fea/kernel/integrate.py
"""
TRANSFER-MATRIX INTEGRATOR
==========================

PURPOSE:
--------
Every element describes itself as a first-order ODE system along one
coordinate z (axial position for shafts and shells, radius for disks):

    ds/dz = H(z) · s + q(z)        s = [displacements; forces]

This module turns that ODE into a finite transfer matrix T and load vector P
over a span [start, end]:

    s(end) = T · s(start) + P

and converts (T, P) into an element stiffness matrix and equivalent nodal
loads that can be scattered into a global system.

METHOD:
-------
    Constant H:  T = exp(H·L), via scaling-and-squaring
    Varying H:   product of local exponentials sampled uniformly in ln z

Scaling-and-squaring: with m = 2^M, approximate E = exp(H·L/m) - I by its
4th order Taylor polynomial, then apply the doubling identity

    exp(2X) - I = 2E + E²      (E = exp(X) - I)

M times. Working with E rather than exp(X) keeps the small increments from
being swamped by the identity during the squarings.

Everything here is pure: no I/O, no state, and non-finite input simply
propagates as NaN/Inf to the caller.
"""

import numpy as np
import scipy.linalg
from typing import Callable, Optional, Tuple

from .linalg import identity, split_blocks, split_state, zeros


DEFAULT_SQUARINGS = 12


def expm_scaling_squaring(X: np.ndarray, squarings: int = DEFAULT_SQUARINGS) -> np.ndarray:
    """
    Approximate exp(X) by Taylor-4 on X/2^M followed by M doublings.

    Parameters:
    -----------
    X : np.ndarray
        Square matrix (already multiplied by the step length)
    squarings : int
        M, number of doublings (default 12 → 4096 sub-steps)

    Returns:
    --------
    np.ndarray
        exp(X), same shape as X
    """
    X = np.asarray(X, dtype=float)
    Y = X / float(2 ** squarings)

    Y2 = Y @ Y
    Y3 = Y2 @ Y
    Y4 = Y3 @ Y
    E = Y + Y2 / 2.0 + Y3 / 6.0 + Y4 / 24.0

    for _ in range(squarings):
        E = 2.0 * E + E @ E

    return identity(X.shape[0]) + E


def _augmented_exponential(
    H: np.ndarray,
    q: Optional[np.ndarray],
    step: float,
    squarings: int,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    exp of [[H, q], [0, 0]]·step.

    The top-right column of the result is ∫ exp(H(step-s)) q ds, i.e. the
    particular solution for a load that is constant over the step.
    """
    n = H.shape[0]
    if q is None:
        return expm_scaling_squaring(H * step, squarings), zeros(n)

    G = zeros(n + 1, n + 1)
    G[:n, :n] = H
    G[:n, n] = q
    Ea = expm_scaling_squaring(G * step, squarings)
    return Ea[:n, :n], Ea[:n, n]


def integrate_constant(
    H: np.ndarray,
    length: float,
    load: Optional[np.ndarray] = None,
    squarings: int = DEFAULT_SQUARINGS,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Transfer matrix and load vector for a constant ODE matrix.

    Parameters:
    -----------
    H : np.ndarray
        Constant ODE matrix, shape (n, n)
    length : float
        Span length L
    load : np.ndarray, optional
        Constant distributed load q, shape (n,)
    squarings : int
        Scaling exponent M

    Returns:
    --------
    T : np.ndarray
        exp(H·L), shape (n, n)
    P : np.ndarray
        ∫₀ᴸ exp(H(L-s)) q ds, zeros when no load is given
    """
    H = np.asarray(H, dtype=float)
    if load is not None:
        load = np.asarray(load, dtype=float)
    return _augmented_exponential(H, load, length, squarings)


def integrate_sampled(
    ode_matrix: Callable[[float], np.ndarray],
    load: Optional[Callable[[float], np.ndarray]],
    start: float,
    end: float,
    n_points: Optional[int] = None,
    has_load: bool = False,
    squarings: int = DEFAULT_SQUARINGS,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Transfer matrix and load vector for an ODE matrix that varies with z.

    The integration runs in the variable ln z (dz = z·d(ln z)), which suits
    plate equations in the radius whose coefficients scale like 1/r. The log
    span is cut into n equal sub-intervals, each sampled at its logarithmic
    midpoint z_i, and the local exponentials are chained in order of
    application:

        T ← exp(z_i·H(z_i)·Δ) · T
        P ← T_i · P + P_i

    Parameters:
    -----------
    ode_matrix : callable
        z -> H(z), shape (n, n)
    load : callable or None
        z -> q(z), shape (n,); only evaluated when has_load is True
    start, end : float
        Span, 0 < start < end
    n_points : int, optional
        Number of samples (default 3, or 10 when has_load)
    has_load : bool
        Whether the load function contributes
    squarings : int
        Scaling exponent M of each local exponential (τ = Δ / 2^M)

    Returns:
    --------
    (T, P)
    """
    if not start > 0.0:
        raise ValueError(f"Logarithmic integration needs start > 0, got {start}")
    if n_points is None:
        n_points = 10 if has_load else 3

    dlnz = (np.log(end) - np.log(start)) / n_points

    T = None
    P = None
    for i in range(n_points):
        z = float(np.exp(np.log(start) + (i + 0.5) * dlnz))
        H = np.asarray(ode_matrix(z), dtype=float)
        q = np.asarray(load(z), dtype=float) if has_load else None

        # In ln z the system matrix is z·H(z) and the load z·q(z)
        Ti, Pi = _augmented_exponential(z * H, None if q is None else z * q, dlnz, squarings)

        if T is None:
            T = identity(H.shape[0])
            P = zeros(H.shape[0])
        T = Ti @ T
        P = Ti @ P + Pi

    return T, P


def transfer_to_stiffness(T: np.ndarray, P: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Convert a transfer relation into element stiffness and equivalent loads.

    With s = [d; f] and T partitioned as [[T11, T12], [T21, T22]]:

        d1 = T11·d0 + T12·f0 + Pd
        f1 = T21·d0 + T22·f0 + Pf

    Nodal forces are F0 = -f0 (start face) and F1 = f1 (end face). Eliminating
    f0 gives F = K·[d0; d1] + r with

        K = [ T12⁻¹T11              -T12⁻¹    ]
            [ T21 - T22·T12⁻¹·T11    T22·T12⁻¹ ]

        r = [ T12⁻¹·Pd ; Pf - T22·T12⁻¹·Pd ]

    so the distributed load acts on the nodes as q = -r.

    Raises:
    -------
    ValueError
        If T or P contains NaN/Inf
    numpy.linalg.LinAlgError
        If T12 is singular (the span does not couple forces to displacements)
        or too ill-conditioned to invert (the span is too long for the
        fastest growing solution, see growth_rate)
    """
    T = np.asarray(T, dtype=float)
    P = np.asarray(P, dtype=float)
    if not (np.all(np.isfinite(T)) and np.all(np.isfinite(P))):
        raise ValueError("Transfer matrix or load vector contains non-finite values")

    T11, T12, T21, T22 = split_blocks(T)
    Pd, Pf = split_state(P)

    _check_coupling(T12)
    T12_inv = scipy.linalg.inv(T12)
    K = np.block([
        [T12_inv @ T11,              -T12_inv],
        [T21 - T22 @ T12_inv @ T11,  T22 @ T12_inv],
    ])
    r = np.concatenate([T12_inv @ Pd, Pf - T22 @ T12_inv @ Pd])
    return K, -r


# Largest condition number of the (equilibrated) force → displacement block
# that transfer_to_stiffness still inverts
MAX_COUPLING_CONDITION = 1e12


def _check_coupling(T12: np.ndarray) -> None:
    """
    Reject a T12 block that cannot be inverted reliably.

    Rows and columns are scaled to unit max-norm first, so mixed units
    (forces vs. moments) do not count as ill-conditioning; what remains is
    the spread between growing and decaying solutions over the span.
    """
    rows = np.abs(T12).max(axis=1)
    if not np.all(rows > 0.0):
        raise np.linalg.LinAlgError("Singular transfer matrix: forces do not reach every displacement")
    S = T12 / rows[:, None]
    cols = np.abs(S).max(axis=0)
    if not np.all(cols > 0.0):
        raise np.linalg.LinAlgError("Singular transfer matrix: a force leaves every displacement unchanged")
    S = S / cols[None, :]

    cond = np.linalg.cond(S)
    if not np.isfinite(cond) or cond > MAX_COUPLING_CONDITION:
        raise np.linalg.LinAlgError(
            f"Transfer matrix too ill-conditioned to convert to a stiffness (cond {cond:.2e}); "
            f"integrate over shorter sub-spans"
        )


def growth_rate(H: np.ndarray) -> float:
    """
    Fastest exponential growth (or decay) rate of ds/dz = H·s.

    Over a span ℓ the transfer matrix mixes solutions that differ by about
    exp(2·rate·ℓ), which bounds how long a span can be inverted in one piece.
    """
    return float(np.abs(np.linalg.eigvals(np.asarray(H, dtype=float)).real).max())
