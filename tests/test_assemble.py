import numpy as np
import pytest

from pulley_fea.elements import ShaftElement
from pulley_fea.kernel.assemble import (
    StiffnessAccumulator,
    assemble_global_F,
    assemble_global_K,
    condense_interior,
)
from pulley_fea.kernel.solve import SingularSystemError, solve_lu


def test_overlapping_contributions_sum():
    """Two 2×2 springs sharing DOF 1 add up on the shared diagonal."""
    k = np.array([[1.0, -1.0], [-1.0, 1.0]])
    K = assemble_global_K(3, [([0, 1], 2.0 * k), ([1, 2], 3.0 * k)]).toarray()

    expected = np.array([
        [2.0, -2.0, 0.0],
        [-2.0, 5.0, -3.0],
        [0.0, -3.0, 3.0],
    ])
    np.testing.assert_array_equal(K, expected)


def test_accumulator_order_independent():
    k = np.array([[4.0, 1.0], [1.0, 3.0]])
    a = StiffnessAccumulator(3)
    a.add([0, 1], k)
    a.add([2, 1], k)
    b = StiffnessAccumulator(3)
    b.add([2, 1], k)
    b.add([0, 1], k)

    np.testing.assert_array_equal(a.tocsr().toarray(), b.tocsr().toarray())
    assert a.nnz == 7


def test_accumulator_rejects_out_of_range_dofs():
    acc = StiffnessAccumulator(2)
    with pytest.raises(ValueError):
        acc.add([1, 2], np.eye(2))


def test_empty_accumulator():
    K = StiffnessAccumulator(4).tocsr()
    assert K.shape == (4, 4)
    assert K.count_nonzero() == 0


def test_global_load_vector_sums_shared_dofs():
    F = assemble_global_F(3, [([0, 1], np.array([1.0, 2.0])), ([1, 2], np.array([3.0, 4.0]))])
    np.testing.assert_array_equal(F, [1.0, 5.0, 4.0])


def test_solve_lu_regular_system():
    A = np.array([[4.0, 1.0], [2.0, 3.0]])
    b = np.array([1.0, 2.0])

    x = solve_lu(A, b)

    np.testing.assert_allclose(A @ x, b, rtol=1e-12)


def test_solve_lu_reports_zero_pivot():
    with pytest.raises(SingularSystemError) as exc:
        solve_lu(np.array([[1.0, 1.0], [1.0, 1.0]]), np.array([1.0, 2.0]))
    assert exc.value.pivot == 1


def test_solve_lu_relative_pivot():
    # Second pivot is 1e-14 of the first: treated as singular
    A = np.array([[1.0, 0.0], [0.0, 1e-14]])
    with pytest.raises(SingularSystemError):
        solve_lu(A, np.ones(2))

    x = solve_lu(A, np.ones(2), pivot_tolerance=0.0)
    assert np.isclose(x[1], 1e14)


def test_solve_lu_bad_input():
    with pytest.raises(SingularSystemError):
        solve_lu(np.array([[np.inf]]), np.array([1.0]))
    with pytest.raises(SingularSystemError):
        solve_lu(np.zeros((0, 0)), np.zeros(0))
    with pytest.raises(ValueError):
        solve_lu(np.eye(2), np.ones(3))


def test_condense_interior_joins_two_halves():
    """Two half-length shafts condensed at the middle node equal the full shaft."""
    left, _ = ShaftElement(50.0, 0.0, 500.0, 210000.0, 0.3).compute_stiffness_and_load()
    right, _ = ShaftElement(50.0, 500.0, 1000.0, 210000.0, 0.3).compute_stiffness_and_load()
    whole, _ = ShaftElement(50.0, 0.0, 1000.0, 210000.0, 0.3).compute_stiffness_and_load()

    K, q = condense_interior(left, np.zeros(8), right, np.zeros(8))

    np.testing.assert_allclose(K, whole, rtol=1e-8, atol=1e-9 * np.abs(whole).max())
    assert not q.any()


def test_condense_interior_carries_loads():
    """
    Two unit springs with p/2 at each of their nodes.

    The middle node's p is shared equally by the outer nodes, so the joined
    spring carries p at each end.
    """
    k = np.array([[1.0, -1.0], [-1.0, 1.0]])
    p = 4.0
    K, q = condense_interior(k, np.array([p / 2, p / 2]), k, np.array([p / 2, p / 2]))

    np.testing.assert_allclose(K, 0.5 * k)
    np.testing.assert_allclose(q, [p, p])
