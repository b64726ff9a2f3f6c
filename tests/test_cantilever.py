import numpy as np

from pulley_fea import FEAssembly, ShaftElement, ShaftModel


D = 50.0          # mm
L = 1000.0        # mm
E = 210000.0      # N/mm²
NU = 0.3
P = 1000.0        # N


def _solve_cantilever(model):
    shaft = ShaftElement(D, 0.0, L, E, NU, model=model)
    asm = FEAssembly()
    root, tip = asm.add_element(shaft)
    asm.assemble(mode=0)
    asm.fix_dofs(asm.get_dof_indices(root))
    asm.apply_force(-P, asm.get_dof_indices(tip)[0])

    assert asm.solve(), asm.last_error
    return shaft, asm, tip


def test_cantilever_tip_load_deflection():
    """
    Timoshenko cantilever d = 50, L = 1000, tip force -1000 N.

    Bending gives F·L³/(3EI) ≈ 5.17 mm; shear adds F·L/(κGA), about 0.14 %.
    """
    shaft, asm, tip = _solve_cantilever(ShaftModel.TIMOSHENKO)
    EI = E * shaft.moment_of_inertia
    w_tip, gamma_tip = asm.node(tip).displacements[:2]

    uy_bending = -P * L ** 3 / (3 * EI)
    uy_exact = uy_bending - P * L / shaft.shear_rigidity

    assert np.isclose(w_tip, uy_bending, rtol=2e-2)
    assert np.isclose(w_tip, uy_exact, rtol=1e-6)
    assert np.isclose(gamma_tip, -P * L ** 2 / (2 * EI), rtol=1e-6)
    print(f"✓ Tip deflection {w_tip:.4f} mm (Euler-Bernoulli {uy_bending:.4f} mm)")


def test_euler_bernoulli_cantilever_exact():
    shaft, asm, tip = _solve_cantilever(ShaftModel.EULER_BERNOULLI)
    EI = E * shaft.moment_of_inertia

    w_tip = asm.get_displacement(asm.get_dof_indices(tip)[0])
    assert np.isclose(w_tip, -P * L ** 3 / (3 * EI), rtol=1e-6)


def test_cantilever_axial_and_torsion():
    shaft = ShaftElement(D, 0.0, L, E, NU)
    asm = FEAssembly()
    root, tip = asm.add_element(shaft)
    asm.assemble(mode=0)
    asm.fix_dofs(asm.get_dof_indices(root))

    tip_dofs = asm.get_dof_indices(tip)
    asm.apply_force(P, tip_dofs[2])
    asm.apply_moment(1.0e5, tip_dofs[3])
    assert asm.solve()

    u = asm.get_displacement(tip_dofs[2])
    beta = asm.get_displacement(tip_dofs[3])
    assert np.isclose(u, P * L / (E * shaft.area), rtol=1e-6)
    assert np.isclose(beta, 1.0e5 * L / (shaft.shear_modulus * shaft.polar_moment), rtol=1e-6)
    # Axial and torsion loads leave the bending DOFs alone
    assert abs(asm.get_displacement(tip_dofs[0])) < 1e-9


def test_simply_supported_two_elements():
    """
    Two Euler-Bernoulli shaft elements sharing the mid node, pinned ends.

    Mid-span deflection under a central load: F·L³/(48EI).
    """
    half = L / 2.0
    left = ShaftElement(D, 0.0, half, E, NU, model=ShaftModel.EULER_BERNOULLI)
    right = ShaftElement(D, half, L, E, NU, model=ShaftModel.EULER_BERNOULLI)

    asm = FEAssembly()
    a, mid = asm.add_element(left)
    _, b = asm.add_element(right, nodes=(mid, None))
    asm.assemble(mode=0)

    assert asm.variable_count() == 12
    assert asm.equation_count() == 12

    a_dofs = asm.get_dof_indices(a)
    asm.fix_dofs([a_dofs[0], a_dofs[2], a_dofs[3]])   # w, u, beta
    asm.fix_dof(asm.get_dof_indices(b)[0])            # w
    asm.apply_force(-P, asm.get_dof_indices(mid)[0])
    assert asm.solve()

    EI = E * left.moment_of_inertia
    w_mid, gamma_mid = asm.node(mid).displacements[:2]
    assert np.isclose(w_mid, -P * L ** 3 / (48 * EI), rtol=1e-6)
    assert abs(gamma_mid) < 1e-8
    # End rotations are equal and opposite
    assert np.isclose(asm.node(a).displacements[1], -asm.node(b).displacements[1], rtol=1e-6)
