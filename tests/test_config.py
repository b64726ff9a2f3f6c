import pytest

from pulley_fea.config import CONFIG, SolverConfig


def test_defaults():
    assert CONFIG.squarings == 12
    assert CONFIG.n_points(False) == 3
    assert CONFIG.n_points(True) == 10
    assert CONFIG.pivot_tolerance == 1e-12
    assert CONFIG.workers == 1


@pytest.mark.parametrize("kwargs", [
    {"squarings": -1},
    {"sample_points": 0},
    {"loaded_sample_points": 0},
    {"pivot_tolerance": -1e-3},
])
def test_invalid_settings(kwargs):
    with pytest.raises(ValueError):
        SolverConfig(**kwargs)


def test_subspan_count():
    config = SolverConfig(max_span_growth=2.5)

    assert config.n_subspans(0.0, 1000.0) == 1
    assert config.n_subspans(0.01, 200.0) == 1
    assert config.n_subspans(0.0235, 1000.0) == 10

    with pytest.raises(ValueError):
        SolverConfig(max_span_growth=0.0)
