from types import SimpleNamespace

import numpy as np
import pytest

import wind
from config import PHYSICS
from geo import KNOT_TO_MS
from sampling import build_sample_grid, make_sample_data


def _state(**kw):
    pc = kw.pop("central_pressure_mb", 950.0)
    rmax = kw.pop("rmax_km", 40.0)
    a, b = wind.holland_parameters(pc, rmax)
    st = dict(central_pressure_mb=pc, rmax_km=rmax, a_holland=a, b_holland=b,
              eye_lat=15.0, heading=270.0, speed_kt=10.0)
    st.update(kw)
    return SimpleNamespace(**st)


def _evaluate(model="holland", n_radial=12, n_angular=15, **kw):
    grid = build_sample_grid(n_radial, n_angular, 750.0)
    out = make_sample_data(grid)
    wind.evaluate_samples(grid, out, model, _state(**kw), PHYSICS)
    return grid, out


def test_holland_parameters():
    a, b = wind.holland_parameters(950.0, 40.0)
    assert b == pytest.approx(1.5 + 30.0 / 120.0)
    assert a == pytest.approx(40.0 ** b)


@pytest.mark.parametrize("model", ["holland", "nws23"])
def test_dead_zone_inside_eye_core(model):
    st = _state()
    r = np.array([0.0, 500.0, 1999.0, 2001.0, 40000.0])
    speed = wind.symmetric_speed(r, model, st.central_pressure_mb, st.rmax_km,
                                 st.a_holland, st.b_holland, PHYSICS)
    assert np.all(speed[:3] == 0.0)
    assert np.all(speed[3:] >= 0.0)
    assert speed[-1] > 10.0


@pytest.mark.parametrize("model", ["holland", "nws23"])
def test_dead_zone_at_samples(model):
    grid, out = _evaluate(model)
    # rayons 0 et ~0.8 km < 0.05 × 40 km
    assert grid.distances_m[1] < 0.05 * 40000.0
    assert np.all(out.u[:, :2] == 0.0)
    assert np.all(out.v[:, :2] == 0.0)
    assert np.all(out.speed[:, :2] == 0.0)
    assert np.all(np.isfinite(out.speed))


def test_holland_peak_near_rmax():
    st = _state()
    r = np.linspace(10e3, 150e3, 1401)
    speed = wind.symmetric_speed(r, "holland", st.central_pressure_mb, st.rmax_km,
                                 st.a_holland, st.b_holland, PHYSICS)
    assert abs(r[np.argmax(speed)] - 40e3) < 5e3


def test_nws23_matches_closed_form():
    r, rmax, dp = 60e3, 40e3, 6300.0
    rf = 0.5 * r * PHYSICS["coriolis"]
    vc2 = dp * (rmax / r) * np.exp(-rmax / r) / PHYSICS["air_density"]
    expected = rf * np.sqrt(1.0 + vc2 / rf ** 2) - rf
    got = wind.nws23_speed(r, rmax, dp, PHYSICS["coriolis"], PHYSICS["air_density"])
    assert got == pytest.approx(expected)


def test_asymmetry_term():
    vt = 12.0 * KNOT_TO_MS
    assert wind.asymmetry_term(12.0, 0.514791) == pytest.approx(
        1.5 * vt ** 0.63 * 0.514791 ** 0.37)
    assert wind.asymmetry_term(0.0) == 0.0


def test_weak_winds_below_translation_term_are_zeroed():
    st = _state(speed_kt=30.0)
    att = wind.asymmetry_term(30.0, PHYSICS["asymmetry_t0"])
    grid, out = _evaluate(speed_kt=30.0)
    outer = wind.symmetric_speed(grid.distances_m[-1:], "holland",
                                 st.central_pressure_mb, st.rmax_km,
                                 st.a_holland, st.b_holland, PHYSICS)
    assert outer[0] < att
    assert np.all(out.speed[:, -1] == 0.0)


def test_rotation_sense_by_hemisphere():
    # angle 0 : échantillon à l'Est de l'œil, proche de RMAX
    _, north = _evaluate(speed_kt=0.0, eye_lat=15.0)
    _, south = _evaluate(speed_kt=0.0, eye_lat=-15.0)
    j = 7
    assert north.v[0, j] > 0.0
    assert north.u[0, j] < 0.0     # inclinaison vers l'œil
    assert south.v[0, j] < 0.0


def test_right_of_track_is_stronger():
    # cap Ouest, hémisphère Nord : la droite de la trajectoire est au Nord
    _, out = _evaluate(n_angular=4, heading=270.0, speed_kt=15.0)
    j = 7
    assert out.speed[1, j] > out.speed[3, j]


def test_speed_is_vector_magnitude():
    _, out = _evaluate()
    assert np.allclose(out.speed, np.hypot(out.u, out.v))
