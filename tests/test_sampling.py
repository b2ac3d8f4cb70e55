import numpy as np
import pytest

import sampling


def test_radial_distances_are_logarithmic():
    d = sampling.radial_distances(12, 750.0)
    assert d[0] == 0.0
    assert np.isclose(d[-1], (750.0 - 1.0) * 1000.0)
    assert np.all(np.diff(d) > 0)
    # (d + 1 km) forme une suite géométrique
    ratios = (d[1:] + 1000.0) / (d[:-1] + 1000.0)
    assert np.allclose(ratios, ratios[0])


def test_angular_steps_are_uniform():
    a = sampling.angular_steps(15)
    assert np.allclose(a, np.arange(15) * 24.0)


def test_offsets_match_distances_and_angles():
    grid = sampling.build_sample_grid(8, 6, 300.0)
    assert grid.offsets_m.shape == (6, 8, 2)
    norms = np.hypot(grid.offsets_m[..., 0], grid.offsets_m[..., 1])
    assert np.allclose(norms, grid.distances_m[None, :])
    # angle 90° : décalage plein Nord
    assert np.allclose(grid.offsets_m[1, :, 0], 0.0, atol=1e-6)
    assert np.allclose(grid.offsets_m[1, :, 1], grid.distances_m)


def test_sample_grid_is_immutable():
    grid = sampling.build_sample_grid(8, 6, 300.0)
    with pytest.raises(ValueError):
        grid.distances_m[0] = 1.0
    with pytest.raises(ValueError):
        grid.offsets_m[0, 0, 0] = 1.0


def test_sample_data_shape():
    grid = sampling.build_sample_grid(8, 6, 300.0)
    data = sampling.make_sample_data(grid)
    assert data.u.shape == data.v.shape == data.speed.shape == (6, 8)
    assert not data.speed.any()
