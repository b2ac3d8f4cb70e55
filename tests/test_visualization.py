import numpy as np
import pytest

import visualization
from aggregation import WindGrid, accumulate
from sampling import build_sample_grid, make_sample_data


@pytest.mark.parametrize("mph, cat", [
    (200.0, "5"), (157.0, "5"), (140.0, "4"), (111.0, "3"),
    (100.0, "2"), (80.0, "1"), (50.0, "TS"), (35.0, "TD"), (5.0, "TD"),
])
def test_saffir_category(mph, cat):
    assert visualization.saffir_category(mph)["cat"] == cat


def test_frame_recorder_keeps_independent_copies():
    sample_grid = build_sample_grid(12, 15, 750.0)
    samples = make_sample_data(sample_grid)
    samples.speed.fill(7.0)
    grid = WindGrid(1.0)
    recorder = visualization.FrameRecorder(grid.step_deg)

    bounds, _ = accumulate(grid, sample_grid, samples, 10.0, 20.0, 750.0)
    recorder(10.0, 20.0, grid.snapshot(bounds))
    bounds, _ = accumulate(grid, sample_grid, samples, 40.0, 20.0, 750.0)
    recorder(40.0, 20.0, grid.snapshot(bounds))

    first = recorder.frames[0]
    assert first["eye_lon"] == 10.0
    assert first["data"].max() == pytest.approx(7.0)
    assert first["data"].shape == (len(first["lats"]), len(first["lons"]))
    assert np.isclose(first["lons"][len(first["lons"]) // 2], 10.0)
    # la grille a été effacée autour du premier œil, pas la copie
    assert grid.speed[110, 190] == 0.0
