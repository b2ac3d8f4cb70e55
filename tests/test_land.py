from types import SimpleNamespace

import pytest

from config import PHYSICS, build_config
from engine import HurricaneModel
from land import apply_land_transition
from track import track_from_records
from wind import holland_parameters

RECORDS = [
    {"hour": 0.0, "lon": -80.0, "lat": 25.0, "heading": 270.0, "speed_kt": 10.0,
     "pressure_mb": 950.0, "max_wind_kt": 110.0},
    {"hour": 12.0, "lon": -82.0, "lat": 25.0, "heading": 270.0, "speed_kt": 10.0,
     "pressure_mb": 950.0, "max_wind_kt": 110.0},
]


def _state(pc, rmax):
    a, b = holland_parameters(pc, rmax)
    return SimpleNamespace(central_pressure_mb=pc, rmax_km=rmax,
                           a_holland=a, b_holland=b)


def test_filling_raises_pressure_and_widens_rmax():
    st = apply_land_transition(_state(950.0, 40.0), PHYSICS, 3.0)
    assert st.central_pressure_mb == pytest.approx(953.0)
    assert st.rmax_km == pytest.approx(43.0)
    a, b = holland_parameters(953.0, 43.0)
    assert st.a_holland == pytest.approx(a)
    assert st.b_holland == pytest.approx(b)


def test_filling_is_clamped():
    st = apply_land_transition(_state(1012.5, 199.5), PHYSICS, 1.0)
    assert st.central_pressure_mb == PHYSICS["peripheral_pressure_mb"]
    assert st.rmax_km == PHYSICS["rmax_max_km"]
    st = apply_land_transition(st, PHYSICS, 10.0)
    assert st.central_pressure_mb == PHYSICS["peripheral_pressure_mb"]


def test_rmax_is_clamped_from_below():
    physics = dict(PHYSICS, rmax_growth_km_h=0.0)
    st = apply_land_transition(_state(980.0, 0.5), physics, 1.0)
    assert st.rmax_km == physics["rmax_min_km"]


def _run(land_mask):
    model = HurricaneModel(track_from_records(RECORDS), build_config(),
                           land_mask=land_mask)
    while model.step():
        pass
    return model


def test_storm_over_land_weakens():
    sea = _run(lambda lon, lat: False)
    land = _run(lambda lon, lat: True)

    assert sea.state.central_pressure_mb == pytest.approx(950.0)
    assert sea.state.max_land_speed == 0.0
    assert not sea.state.on_land

    assert land.state.on_land
    assert land.state.central_pressure_mb == pytest.approx(950.0 + 13.0)
    assert land.state.rmax_km == pytest.approx(40.0 + 13.0)
    assert land.state.max_land_speed > 0.0
    assert land.state.peak_speed < sea.state.peak_speed
