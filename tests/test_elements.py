import numpy as np
import pytest

from pulley_fea.config import SolverConfig
from pulley_fea.elements import DiskElement, ShaftElement, ShellElement, fit_thickness
from pulley_fea.kernel.integrate import transfer_to_stiffness
from pulley_fea.model import ShaftModel, ShellModel, ThicknessProfile


E_STEEL = 210000.0    # N/mm²
NU_STEEL = 0.3
RHO_STEEL = 7.85e-9   # t/mm³
G_ACC = 9810.0        # mm/s²

BENDING = [0, 1, 4, 5]   # w0, gamma0, w1, gamma1
AXIAL = [2, 6]
TORSION = [3, 7]


def _shaft(model=ShaftModel.TIMOSHENKO, length=1000.0):
    return ShaftElement(50.0, 0.0, length, E_STEEL, NU_STEEL, model=model)


def _disk(mode=0, profile=ThicknessProfile.LINEAR):
    return DiskElement(50.0, 300.0, 30.0, 20.0, E_STEEL, NU_STEEL, mode=mode, profile=profile)


def _shell(mode=0, length=100.0, model=ShellModel.VENTSEL_KRAUTHAMMER):
    return ShellElement(300.0, 10.0, 0.0, length, E_STEEL, NU_STEEL, mode=mode, model=model)


def _assert_symmetric(K):
    scale = np.abs(K).max()
    np.testing.assert_allclose(K, K.T, rtol=1e-6, atol=1e-8 * scale)


# ---------------------------------------------------------------------------
# Shaft
# ---------------------------------------------------------------------------

def test_shaft_section_properties():
    shaft = _shaft()

    assert np.isclose(shaft.area, np.pi * 25.0 ** 2)
    assert np.isclose(shaft.moment_of_inertia, np.pi * 50.0 ** 4 / 64.0)
    assert np.isclose(shaft.polar_moment, 2.0 * shaft.moment_of_inertia)
    assert np.isclose(shaft.shear_modulus, E_STEEL / 2.6)
    assert shaft.length == 1000.0


def test_shaft_ode_matrix_structure():
    timo = _shaft().ode_matrix_at(500.0)
    eb = _shaft(ShaftModel.EULER_BERNOULLI).ode_matrix_at(500.0)

    assert timo[0, 1] == 1.0
    assert timo[5, 4] == -1.0
    assert timo[0, 4] > 0.0
    assert eb[0, 4] == 0.0
    np.testing.assert_array_equal(np.delete(timo.ravel(), 4), np.delete(eb.ravel(), 4))


@pytest.mark.parametrize("model", [ShaftModel.EULER_BERNOULLI, ShaftModel.TIMOSHENKO])
def test_shaft_transfer_stiffness_matches_closed_form(model):
    """
    WHAT IS THIS TEST?
    ==================
    The shaft is integrated as an 8×8 ODE and the transfer matrix is turned
    into a stiffness. For a prismatic shaft this must reproduce the textbook
    beam, bar and torsion stiffness matrices.
    """
    shaft = _shaft(model)
    K, q = shaft.compute_stiffness_and_load()
    tol = 1e-9 * np.abs(K).max()

    np.testing.assert_allclose(K[np.ix_(BENDING, BENDING)], shaft.beam_stiffness(), rtol=1e-8, atol=tol)
    np.testing.assert_allclose(K[np.ix_(AXIAL, AXIAL)], shaft.bar_stiffness(), rtol=1e-8, atol=tol)

    GJ_L = shaft.torsional_stiffness()
    np.testing.assert_allclose(K[np.ix_(TORSION, TORSION)], [[GJ_L, -GJ_L], [-GJ_L, GJ_L]], rtol=1e-8, atol=tol)

    # Bending, axial and torsion do not couple
    np.testing.assert_allclose(K[np.ix_(BENDING, AXIAL + TORSION)], 0.0, atol=tol)
    assert not q.any()
    print(f"✓ {model.name} shaft stiffness matches closed form")


def test_timoshenko_shaft_is_softer():
    eb = _shaft(ShaftModel.EULER_BERNOULLI, length=200.0).beam_stiffness()
    timo = _shaft(ShaftModel.TIMOSHENKO, length=200.0).beam_stiffness()

    assert timo[0, 0] < eb[0, 0]


def test_shaft_stiffness_symmetric():
    K, _ = _shaft().compute_stiffness_and_load()
    _assert_symmetric(K)


@pytest.mark.parametrize("kwargs", [
    {"diameter": 0.0},
    {"end": 0.0},
    {"poissons_ratio": 0.5},
    {"youngs_modulus": float("nan")},
    {"shear_correction": 0.0},
])
def test_shaft_rejects_bad_input(kwargs):
    params = dict(diameter=50.0, start=0.0, end=1000.0, youngs_modulus=E_STEEL, poissons_ratio=NU_STEEL)
    params.update(kwargs)
    with pytest.raises(ValueError):
        ShaftElement(**params)


def test_evaluation_outside_span():
    shaft = _shaft()
    with pytest.raises(ValueError):
        shaft.ode_matrix_at(1000.5)
    with pytest.raises(ValueError):
        shaft.load_at(-1.0)

    disk = _disk()
    with pytest.raises(ValueError):
        disk.ode_matrix_at(10.0)


# ---------------------------------------------------------------------------
# Disk
# ---------------------------------------------------------------------------

def test_disk_linear_thickness():
    disk = _disk()

    assert np.isclose(disk.thickness_at(50.0), 30.0)
    assert np.isclose(disk.thickness_at(300.0), 20.0)
    assert np.isclose(disk.thickness_at(175.0), 25.0)


def test_disk_power_thickness():
    disk = _disk(profile=ThicknessProfile.POWER)

    assert np.isclose(disk.thickness_at(50.0), 30.0)
    assert np.isclose(disk.thickness_at(300.0), 20.0)
    # Power law passes through the geometric mean at the geometric mean radius
    assert np.isclose(disk.thickness_at(np.sqrt(50.0 * 300.0)), np.sqrt(30.0 * 20.0))


def test_fit_thickness_coefficients():
    c, p = fit_thickness(100.0, 200.0, 10.0, 20.0)
    assert np.isclose(c, 0.1)
    assert np.isclose(p, 0.0)

    c, p = fit_thickness(100.0, 200.0, 10.0, 20.0, ThicknessProfile.POWER)
    assert np.isclose(p, 1.0)
    assert np.isclose(c, 0.1)

    with pytest.raises(ValueError):
        fit_thickness(200.0, 100.0, 10.0, 20.0)


def test_disk_bending_stiffness():
    disk = _disk()
    t = disk.thickness_at(100.0)
    expected = E_STEEL * t ** 3 / (12.0 * (1.0 - NU_STEEL ** 2))

    assert np.isclose(disk.bending_stiffness_at(100.0), expected)


def test_disk_requires_positive_inner_radius():
    with pytest.raises(ValueError):
        DiskElement(0.0, 300.0, 30.0, 20.0, E_STEEL, NU_STEEL)
    with pytest.raises(ValueError):
        DiskElement(50.0, 300.0, -1.0, 20.0, E_STEEL, NU_STEEL)


def test_disk_ode_matrix_is_hamiltonian():
    H = _disk(mode=2).ode_matrix_at(120.0)
    A, B, C, D = H[:4, :4], H[:4, 4:], H[4:, :4], H[4:, 4:]

    np.testing.assert_allclose(D, -A.T)
    np.testing.assert_allclose(B, B.T)
    np.testing.assert_allclose(C, C.T)


@pytest.mark.parametrize("mode", [0, 1, 2])
def test_disk_stiffness_symmetric(mode):
    K, q = _disk(mode=mode).compute_stiffness_and_load()

    assert K.shape == (8, 8)
    assert np.all(np.isfinite(K))
    _assert_symmetric(K)
    assert not q.any()


def test_disk_gravity_load():
    disk = _disk()
    assert not disk.has_applied_load

    disk.add_gravity(G_ACC, RHO_STEEL)
    r = 120.0
    q = disk.load_at(r)
    expected = disk.thickness_at(r) * 2.0 * np.pi * r * G_ACC * RHO_STEEL

    assert disk.has_applied_load
    assert np.isclose(q[5], expected)
    assert np.isclose(q[6], expected)
    assert np.count_nonzero(q) == 2

    _, fe = disk.compute_stiffness_and_load()
    assert np.all(np.isfinite(fe))
    assert np.abs(fe).max() > 0.0


# ---------------------------------------------------------------------------
# Shell
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("mode", [0, 2])
def test_shell_vk_stiffness_symmetric(mode):
    K, _ = _shell(mode=mode).compute_stiffness_and_load()
    _assert_symmetric(K)


def test_shell_vk_ode_matrix_blocks():
    H = _shell(mode=3).ode_matrix_at(50.0)
    np.testing.assert_allclose(H[4:, 4:], -H[:4, :4].T)


def test_shell_twk_ode_matrix_terms():
    shell = _shell(mode=2, model=ShellModel.TIMOSHENKO_WOINOWSKY_KRIEGER)
    H = shell.ode_matrix_at(50.0)

    assert np.count_nonzero(H) == 18
    assert H[2, 3] == -1.0
    assert H[7, 6] == 1.0
    assert np.isclose(H[1, 0], 2.0 / 300.0)


def test_shell_twk_stiffness_finite():
    K, q = _shell(model=ShellModel.TIMOSHENKO_WOINOWSKY_KRIEGER).compute_stiffness_and_load()
    assert np.all(np.isfinite(K))
    assert not q.any()


def test_shell_gravity_only_on_gravity_mode():
    shell = _shell(mode=0)
    shell.add_gravity(G_ACC, RHO_STEEL)
    assert not shell.has_applied_load

    shell = _shell(mode=-1)
    shell.add_gravity(G_ACC, RHO_STEEL)
    q = shell.load_at(50.0)
    area = np.pi * (305.0 ** 2 - 295.0 ** 2)

    assert shell.has_applied_load
    assert np.isclose(q[5], area * RHO_STEEL * G_ACC)
    assert np.isclose(q[6], q[5])


def test_shell_belt_pressure_not_implemented():
    shell = _shell()
    shell.set_under_belt()

    assert shell.has_applied_load
    with pytest.raises(NotImplementedError):
        shell.load_at(50.0)
    with pytest.raises(NotImplementedError):
        shell.compute_stiffness_and_load()


def test_shell_rejects_bad_geometry():
    with pytest.raises(ValueError):
        ShellElement(300.0, 0.0, 0.0, 100.0, E_STEEL, NU_STEEL)
    with pytest.raises(ValueError):
        ShellElement(300.0, 10.0, 100.0, 100.0, E_STEEL, NU_STEEL)


@pytest.mark.parametrize("length", [1000.0, 1500.0])
def test_long_shell_stiffness(length):
    shell = _shell(mode=2, length=length)
    K, q = shell.compute_stiffness_and_load()

    assert np.all(np.isfinite(K))
    _assert_symmetric(K)
    assert not q.any()

    # One transfer matrix over the full width is refused, not inverted
    T, P = shell.compute_transfer_matrix_and_load()
    with pytest.raises(np.linalg.LinAlgError):
        transfer_to_stiffness(T, P)


def test_shell_subspans_do_not_change_short_element():
    shell = _shell(mode=2, length=200.0)
    coarse, _ = shell.compute_stiffness_and_load(SolverConfig(max_span_growth=100.0))
    fine, _ = shell.compute_stiffness_and_load(SolverConfig(max_span_growth=0.5))

    np.testing.assert_allclose(fine, coarse, rtol=1e-6, atol=1e-9 * np.abs(coarse).max())


def test_shell_gravity_load_independent_of_subspans():
    shell = _shell(mode=-1, length=200.0)
    shell.add_gravity(G_ACC, RHO_STEEL)
    _, coarse = shell.compute_stiffness_and_load(SolverConfig(max_span_growth=100.0))
    _, fine = shell.compute_stiffness_and_load(SolverConfig(max_span_growth=0.5))

    assert np.abs(coarse).max() > 0.0
    np.testing.assert_allclose(fine, coarse, rtol=1e-6, atol=1e-9 * np.abs(coarse).max())
