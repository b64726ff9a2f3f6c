# Shaft, disk and shell elements: ODE matrices, loads, transfer and stiffness matrices

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import ClassVar, Optional, Tuple

import numpy as np

from .config import CONFIG, SolverConfig
from .kernel.assemble import condense_interior
from .kernel.integrate import growth_rate, integrate_constant, integrate_sampled, transfer_to_stiffness
from .kernel.linalg import block_matrix, zeros
from .loads import STATE_SIZE, belt_pressure_load, disk_gravity_load, shell_gravity_load
from .model import ElementKind, ShaftModel, ShellModel, ThicknessProfile


logger = logging.getLogger(__name__)

DOF_PER_NODE = 4
SHEAR_CORRECTION_SOLID = 0.9   # kappa for a solid circular section
GRAVITY_MODE = -1              # Fourier harmonic that carries self-weight on a shell

_POSITION_RTOL = 1e-9


def _check_material(E: float, nu: float) -> None:
    if not np.isfinite(E) or E <= 0.0:
        raise ValueError(f"Young's modulus must be finite and positive, got {E}")
    if not np.isfinite(nu) or not -1.0 < nu < 0.5:
        raise ValueError(f"Poisson's ratio must lie in (-1, 0.5), got {nu}")


def _check_positive(name: str, value: float) -> None:
    if not np.isfinite(value) or value <= 0.0:
        raise ValueError(f"{name} must be finite and positive, got {value}")


def _check_span(start: float, end: float) -> None:
    if not (np.isfinite(start) and np.isfinite(end)):
        raise ValueError(f"Element span [{start}, {end}] is not finite.")
    if end - start <= 0.0:
        raise ValueError(f"Element span [{start}, {end}] has zero or negative length.")


class Element(ABC):
    """
    Two-node element described by a first-order ODE along one coordinate.

    The state vector is [4 displacements; 4 forces] and the ODE matrix is
    partitioned [[A, B], [C, D]] accordingly. Subclasses only define H(z),
    the load q(z) and which integration path applies.
    """

    kind: ClassVar[ElementKind]
    components: ClassVar[Tuple[str, ...]]

    mode: int

    @property
    def dof_per_node(self) -> int:
        return DOF_PER_NODE

    @property
    @abstractmethod
    def span(self) -> Tuple[float, float]:
        """(start, end) of the integration coordinate."""

    @property
    def length(self) -> float:
        start, end = self.span
        return end - start

    @abstractmethod
    def ode_matrix_at(self, z: float) -> np.ndarray:
        """8×8 ODE matrix H(z)."""

    def load_at(self, z: float) -> np.ndarray:
        """8-length distributed load q(z)."""
        self._check_position(z)
        return zeros(STATE_SIZE)

    @property
    def has_applied_load(self) -> bool:
        return False

    @abstractmethod
    def compute_transfer_matrix_and_load(self, config: SolverConfig = CONFIG) -> Tuple[np.ndarray, np.ndarray]:
        """(T, P) with s(end) = T·s(start) + P."""

    def compute_stiffness_and_load(self, config: SolverConfig = CONFIG) -> Tuple[np.ndarray, np.ndarray]:
        """
        Element stiffness (8×8) and equivalent nodal loads (8,).

        DOF order: [node 0 components, node 1 components].
        """
        T, P = self.compute_transfer_matrix_and_load(config)
        return transfer_to_stiffness(T, P)

    def _check_position(self, z: float) -> None:
        start, end = self.span
        slack = _POSITION_RTOL * max(abs(start), abs(end))
        if not start - slack <= z <= end + slack:
            raise ValueError(
                f"{self.kind.value} element evaluated at z={z}, outside [{start}, {end}]"
            )


# ---------------------------------------------------------------------------
# Shaft
# ---------------------------------------------------------------------------

@dataclass(eq=False)
class ShaftElement(Element):
    """
    Solid circular shaft: beam bending + bar extension + torsion.

    State: [w, gamma, u, beta, V, M, N, T]
        w     transverse displacement     V  shear force
        gamma bending rotation            M  bending moment
        u     axial displacement          N  axial force
        beta  torsion angle               T  torque

    Equations (no distributed load):
        w' = gamma (+ V/(kappa·G·A) for Timoshenko)
        gamma' = M/EI,   M' = -V,   V' = 0
        u' = N/EA,       N' = 0
        beta' = T/GJ,    T' = 0

    H is constant along the shaft, so it is built once here and the
    closed-form integration path is used.
    """
    diameter: float
    start: float
    end: float
    youngs_modulus: float
    poissons_ratio: float
    mode: int = 0
    model: ShaftModel = ShaftModel.TIMOSHENKO
    shear_correction: float = SHEAR_CORRECTION_SOLID

    kind: ClassVar[ElementKind] = ElementKind.SHAFT
    components: ClassVar[Tuple[str, ...]] = ("w", "gamma", "u", "beta")

    _H: np.ndarray = field(init=False, repr=False)

    def __post_init__(self):
        _check_positive("diameter", self.diameter)
        _check_span(self.start, self.end)
        _check_material(self.youngs_modulus, self.poissons_ratio)
        if not 0.0 < self.shear_correction <= 1.0:
            raise ValueError(f"shear_correction must be in (0, 1], got {self.shear_correction}")
        self._H = self._build_ode_matrix()

    @property
    def span(self) -> Tuple[float, float]:
        return self.start, self.end

    @property
    def radius(self) -> float:
        return self.diameter / 2.0

    @property
    def area(self) -> float:
        return np.pi * self.radius ** 2

    @property
    def shear_modulus(self) -> float:
        return self.youngs_modulus / (2.0 * (1.0 + self.poissons_ratio))

    @property
    def moment_of_inertia(self) -> float:
        return np.pi * self.diameter ** 4 / 64.0

    @property
    def polar_moment(self) -> float:
        return np.pi * self.diameter ** 4 / 32.0

    @property
    def shear_rigidity(self) -> float:
        """kappa·G·A"""
        return self.shear_correction * self.shear_modulus * self.area

    def _build_ode_matrix(self) -> np.ndarray:
        EI = self.youngs_modulus * self.moment_of_inertia
        EA = self.youngs_modulus * self.area
        GJ = self.shear_modulus * self.polar_moment

        H = zeros(STATE_SIZE, STATE_SIZE)
        H[0, 1] = 1.0
        if self.model is ShaftModel.TIMOSHENKO:
            H[0, 4] = 1.0 / self.shear_rigidity
        H[1, 5] = 1.0 / EI
        H[5, 4] = -1.0
        H[2, 6] = 1.0 / EA
        H[3, 7] = 1.0 / GJ
        return H

    def ode_matrix_at(self, z: float) -> np.ndarray:
        self._check_position(z)
        return self._H.copy()

    def compute_transfer_matrix_and_load(self, config: SolverConfig = CONFIG):
        return integrate_constant(self._H, self.length, squarings=config.squarings)

    def beam_stiffness(self) -> np.ndarray:
        """
        Closed-form 4×4 bending stiffness, DOF order [w0, gamma0, w1, gamma1].

        Timoshenko uses phi = 12EI/(kappa·G·A·L²).
        """
        L = self.length
        EI = self.youngs_modulus * self.moment_of_inertia
        phi = 0.0
        if self.model is ShaftModel.TIMOSHENKO:
            phi = 12.0 * EI / (self.shear_rigidity * L * L)

        k = EI / (L ** 3 * (1.0 + phi))
        L2 = L * L
        return k * np.array([
            [ 12.0,      6.0 * L,           -12.0,      6.0 * L],
            [6.0 * L,   (4.0 + phi) * L2,  -6.0 * L,   (2.0 - phi) * L2],
            [-12.0,     -6.0 * L,            12.0,     -6.0 * L],
            [6.0 * L,   (2.0 - phi) * L2,  -6.0 * L,   (4.0 + phi) * L2],
        ], dtype=float)

    def bar_stiffness(self) -> np.ndarray:
        """2×2 axial stiffness, DOF order [u0, u1]."""
        EA_L = self.youngs_modulus * self.area / self.length
        return np.array([[EA_L, -EA_L], [-EA_L, EA_L]], dtype=float)

    def torsional_stiffness(self) -> float:
        """GJ/L"""
        return self.shear_modulus * self.polar_moment / self.length


# ---------------------------------------------------------------------------
# Disk
# ---------------------------------------------------------------------------

def fit_thickness(
    inner_radius: float,
    outer_radius: float,
    thickness_begin: float,
    thickness_end: float,
    profile: ThicknessProfile = ThicknessProfile.LINEAR,
) -> Tuple[float, float]:
    """
    Coefficients (c, p) of the thickness law through both end thicknesses.

    LINEAR: t = c*r + p
    POWER:  t = c * r**p
    """
    if outer_radius <= inner_radius:
        raise ValueError(f"Thickness fit needs outer_radius > inner_radius, got [{inner_radius}, {outer_radius}]")

    if profile is ThicknessProfile.LINEAR:
        c = (thickness_end - thickness_begin) / (outer_radius - inner_radius)
        p = thickness_begin - c * inner_radius
        return c, p

    if thickness_begin <= 0.0 or thickness_end <= 0.0 or inner_radius <= 0.0:
        raise ValueError("Power-law thickness needs positive thicknesses and inner radius")
    p = np.log(thickness_end / thickness_begin) / np.log(outer_radius / inner_radius)
    c = thickness_begin / inner_radius ** p
    return float(c), float(p)


@dataclass(eq=False)
class DiskElement(Element):
    """
    One Fourier component of an annular plate in bending and stretching.

    z is the radius. The coefficients vary like powers of 1/r and with the
    local thickness, so H(r) is sampled along the span (uniformly in ln r).
    """
    inner_radius: float
    outer_radius: float
    thickness_begin: float
    thickness_end: float
    youngs_modulus: float
    poissons_ratio: float
    mode: int = 0
    profile: ThicknessProfile = ThicknessProfile.LINEAR

    kind: ClassVar[ElementKind] = ElementKind.DISK
    components: ClassVar[Tuple[str, ...]] = ("u", "v", "w", "phi")

    gravity: Optional[float] = field(default=None, init=False)
    density: Optional[float] = field(default=None, init=False)
    _c: float = field(init=False, repr=False)
    _p: float = field(init=False, repr=False)

    def __post_init__(self):
        _check_positive("inner_radius", self.inner_radius)
        _check_span(self.inner_radius, self.outer_radius)
        _check_positive("thickness_begin", self.thickness_begin)
        _check_positive("thickness_end", self.thickness_end)
        _check_material(self.youngs_modulus, self.poissons_ratio)
        self._c, self._p = fit_thickness(
            self.inner_radius, self.outer_radius,
            self.thickness_begin, self.thickness_end, self.profile,
        )

    @property
    def span(self) -> Tuple[float, float]:
        return self.inner_radius, self.outer_radius

    def thickness_at(self, r: float) -> float:
        if self.profile is ThicknessProfile.LINEAR:
            return self._c * r + self._p
        return self._c * r ** self._p

    def bending_stiffness_at(self, r: float) -> float:
        """D(r) = E t³ / (12(1 - nu²))"""
        t = self.thickness_at(r)
        return self.youngs_modulus * t ** 3 / (12.0 * (1.0 - self.poissons_ratio ** 2))

    def add_gravity(self, gravity: float, density: float) -> None:
        """Load the disk with its own weight. Call before the first evaluation."""
        if not (np.isfinite(gravity) and np.isfinite(density)):
            raise ValueError(f"Gravity and density must be finite, got {gravity}, {density}")
        self.gravity = gravity
        self.density = density

    @property
    def has_applied_load(self) -> bool:
        return self.gravity is not None

    def ode_matrix_at(self, r: float) -> np.ndarray:
        self._check_position(r)
        E = self.youngs_modulus
        nu = self.poissons_ratio
        t = self.thickness_at(r)
        D = self.bending_stiffness_at(r)
        n = float(self.mode)
        n2 = n * n
        pi = np.pi

        A = zeros(4, 4)
        A[3, 0] = nu * n2 / (r * r)
        A[1, 1] = 1.0 / r
        A[2, 1] = -nu * n / r
        A[1, 2] = n / r
        A[2, 2] = -nu / r
        A[0, 3] = 1.0
        A[3, 3] = -nu / r

        B = zeros(4, 4)
        B[1, 1] = (1.0 + nu) / (pi * E * r * t)
        B[2, 2] = (1.0 - nu * nu) / (2.0 * pi * E * r * t)
        B[3, 3] = 1.0 / (2.0 * pi * D * r)

        C = zeros(4, 4)
        C[0, 0] = 2.0 * pi * (2.0 - 2.0 * nu + n2 - nu * nu * n2) * n2 * D / r ** 3
        C[3, 0] = 2.0 * pi * (nu * nu + 2.0 * nu - 3.0) * n2 * D / (r * r)
        C[1, 1] = 2.0 * pi * n2 * E * t / r
        C[2, 1] = 2.0 * pi * n * E * t / r
        C[1, 2] = C[2, 1]
        C[2, 2] = 2.0 * pi * E * t / r
        C[0, 3] = C[3, 0]
        C[3, 3] = 2.0 * pi * (1.0 - nu * nu + 2.0 * n2 - 2.0 * n2 * nu) * D / r

        Dm = zeros(4, 4)
        Dm[3, 0] = -1.0
        Dm[1, 1] = -1.0 / r
        Dm[2, 1] = -n / r
        Dm[1, 2] = n * nu / r
        Dm[2, 2] = nu / r
        Dm[0, 3] = -nu * n2 / (r * r)
        Dm[3, 3] = nu / r

        return block_matrix(A, B, C, Dm)

    def load_at(self, r: float) -> np.ndarray:
        self._check_position(r)
        if not self.has_applied_load:
            return zeros(STATE_SIZE)
        return disk_gravity_load(r, self.thickness_at(r), self.gravity, self.density)

    def compute_transfer_matrix_and_load(self, config: SolverConfig = CONFIG):
        has_load = self.has_applied_load
        return integrate_sampled(
            self.ode_matrix_at,
            self.load_at,
            self.inner_radius,
            self.outer_radius,
            n_points=config.n_points(has_load),
            has_load=has_load,
            squarings=config.squarings,
        )


# ---------------------------------------------------------------------------
# Shell
# ---------------------------------------------------------------------------

@dataclass(eq=False)
class ShellElement(Element):
    """
    One Fourier component of a uniform cylindrical shell.

    z is the axial position. For a constant thickness H does not depend on z,
    so it is built once here and the closed-form integration path applies.
    """
    radius: float
    thickness: float
    start: float
    end: float
    youngs_modulus: float
    poissons_ratio: float
    mode: int = 0
    model: ShellModel = ShellModel.VENTSEL_KRAUTHAMMER

    kind: ClassVar[ElementKind] = ElementKind.SHELL
    components: ClassVar[Tuple[str, ...]] = ("u", "v", "w", "phi")

    gravity: Optional[float] = field(default=None, init=False)
    density: Optional[float] = field(default=None, init=False)
    under_belt: bool = field(default=False, init=False)
    _H: np.ndarray = field(init=False, repr=False)
    _growth_rate: float = field(init=False, repr=False)

    def __post_init__(self):
        _check_positive("radius", self.radius)
        _check_positive("thickness", self.thickness)
        _check_span(self.start, self.end)
        _check_material(self.youngs_modulus, self.poissons_ratio)
        if self.thickness >= 2.0 * self.radius:
            raise ValueError(f"Shell thickness {self.thickness} exceeds its diameter")
        self._H = self._build_ode_matrix()
        self._growth_rate = growth_rate(self._H)

    @property
    def span(self) -> Tuple[float, float]:
        return self.start, self.end

    @property
    def bending_stiffness(self) -> float:
        """D = E t³ / (12(1 - nu²))"""
        return self.youngs_modulus * self.thickness ** 3 / (12.0 * (1.0 - self.poissons_ratio ** 2))

    def add_gravity(self, gravity: float, density: float) -> None:
        """Load the shell with its own weight; only the gravity harmonic takes it."""
        if not (np.isfinite(gravity) and np.isfinite(density)):
            raise ValueError(f"Gravity and density must be finite, got {gravity}, {density}")
        if self.mode != GRAVITY_MODE:
            logger.debug("Gravity ignored on shell element with mode %d", self.mode)
            return
        self.gravity = gravity
        self.density = density

    def set_under_belt(self, under_belt: bool = True) -> None:
        """Mark the element as carrying belt pressure."""
        self.under_belt = bool(under_belt)

    @property
    def has_applied_load(self) -> bool:
        return self.gravity is not None or self.under_belt

    def _build_ode_matrix(self) -> np.ndarray:
        if self.model is ShellModel.VENTSEL_KRAUTHAMMER:
            return self._ventsel_krauthammer()
        return self._timoshenko_woinowsky_krieger()

    def _ventsel_krauthammer(self) -> np.ndarray:
        E = self.youngs_modulus
        nu = self.poissons_ratio
        t = self.thickness
        R = self.radius
        D = self.bending_stiffness
        n = float(self.mode)
        n2 = n * n
        pi = np.pi
        s = 1.0 - nu * nu
        den = E * t * R * R + 4.0 * s * D

        A = zeros(4, 4)
        A[1, 0] = E * t * n * R / den
        A[0, 1] = -nu * n / R
        A[3, 1] = -nu * n / (R * R)
        A[0, 2] = -nu / R
        A[3, 2] = -nu * n2 / (R * R)
        A[1, 3] = 4.0 * s * n * D / den
        A[2, 3] = -1.0

        B = zeros(4, 4)
        B[0, 0] = s / (2.0 * pi * R * E * t)
        B[1, 1] = (1.0 + nu) * R / (pi * den)
        B[3, 3] = 1.0 / (2.0 * pi * R * D)

        C = zeros(4, 4)
        C[0, 0] = 4.0 * pi * (1.0 - nu) * n2 * E * t * D / (R * den)
        C[3, 0] = -4.0 * pi * (1.0 - nu) * n2 * E * t * D / den
        C[1, 1] = 2.0 * pi * n2 * E * t / R + 2.0 * pi * s * n2 * D / R ** 3
        C[2, 1] = 2.0 * pi * n * E * t / R + 2.0 * pi * s * n ** 3 * D / R ** 3
        C[1, 2] = C[2, 1]
        C[2, 2] = 2.0 * pi * E * t / R + 2.0 * pi * s * n ** 4 * D / R ** 3
        C[0, 3] = C[3, 0]
        C[3, 3] = (4.0 * pi * n2 * (1.0 - nu) * D / R
                   - 16.0 * pi * (1.0 + nu) * s * n2 * D * D / (R * den))

        return block_matrix(A, B, C, -A.T)

    def _timoshenko_woinowsky_krieger(self) -> np.ndarray:
        E = self.youngs_modulus
        nu = self.poissons_ratio
        t = self.thickness
        R = self.radius
        n = float(self.mode)
        pi = np.pi

        H = zeros(STATE_SIZE, STATE_SIZE)
        H[1, 0] = n / R
        H[0, 1] = -nu * n / R
        H[0, 2] = -nu / R
        H[3, 2] = -nu * n * n / (R * R)
        H[2, 3] = -1.0
        H[7, 3] = pi * E * t ** 3 * n * n / (3.0 * (1.0 + nu) * R)
        H[0, 4] = (1.0 - nu * nu) / (2.0 * pi * E * t * R)
        H[1, 5] = (1.0 + nu) / (pi * E * t * R)
        H[4, 5] = -n / R
        H[7, 6] = 1.0
        H[3, 7] = 6.0 * (1.0 - nu * nu) / (pi * E * t ** 3 * R)
        H[5, 1] = 2.0 * pi * E * t * n * n / R
        H[5, 2] = 2.0 * pi * E * t * n / R
        H[5, 4] = nu * n / R
        H[6, 1] = 2.0 * pi * E * t * n / R
        H[6, 2] = 2.0 * pi * E * t / R * (1.0 + t * t * n ** 4 / (12.0 * R * R))
        H[6, 4] = nu / R
        H[6, 7] = nu * n * n / (R * R)
        return H

    def ode_matrix_at(self, z: float) -> np.ndarray:
        self._check_position(z)
        return self._H.copy()

    def load_at(self, z: float) -> np.ndarray:
        self._check_position(z)
        q = zeros(STATE_SIZE)
        if self.gravity is not None:
            q += shell_gravity_load(self.radius, self.thickness, self.gravity, self.density)
        if self.under_belt:
            q += belt_pressure_load(self.radius)
        return q

    def _midpoint_load(self) -> Optional[np.ndarray]:
        if not self.has_applied_load:
            return None
        return self.load_at(0.5 * (self.start + self.end))

    def compute_transfer_matrix_and_load(self, config: SolverConfig = CONFIG):
        return integrate_constant(self._H, self.length, load=self._midpoint_load(), squarings=config.squarings)

    def compute_stiffness_and_load(self, config: SolverConfig = CONFIG):
        """
        Element stiffness and equivalent nodal loads, integrated piecewise.

        Bending of a shell has edge solutions growing and decaying like
        exp(±λz). Over a whole face width their ratio is far too large to
        invert T12, so the span is cut into equal sub-spans with
        growth_rate·ℓ <= max_span_growth and the pieces are joined by
        condensing out the interior nodes.
        """
        n = config.n_subspans(self._growth_rate, self.length)
        T, P = integrate_constant(
            self._H, self.length / n, load=self._midpoint_load(), squarings=config.squarings,
        )
        K_piece, q_piece = transfer_to_stiffness(T, P)

        K, q = K_piece, q_piece
        for _ in range(n - 1):
            K, q = condense_interior(K, q, K_piece, q_piece)
        if n > 1:
            logger.debug("Shell element over [%g, %g] integrated in %d sub-spans", self.start, self.end, n)
        return K, q
