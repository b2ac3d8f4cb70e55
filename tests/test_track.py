import json

import numpy as np
import pytest

import track
from engine import HurricaneModel
from geo import KNOT_TO_MS, haversine_m
from interpolation import interpolate


def _entry(day, hhmm, lat, lon, wind=65, pres=985, event="", status="HU"):
    return [2000, 8, day, hhmm, event, status, lat, lon, wind, pres]


def _storm_file(tmp_path):
    data = {"storms": [
        {"atcID": "AL012000", "name": "ALPHA", "entries": [
            _entry(26, 0, 10.0, 0.0),
            _entry(26, 600, 10.0, -1.0),
            _entry(26, 1200, 10.5, -2.0, event="L"),
        ]},
        {"atcID": "AL022000", "name": "BRAVO", "entries": [
            _entry(27, 0, 15.0, -50.0),
            _entry(27, 600, 15.5, -51.0, pres=-999),
        ]},
    ]}
    path = tmp_path / "storms.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def test_storm_hour_counts_from_year_zero():
    assert track.storm_hour(1851, 1, 1, 0) == 0.0
    assert track.storm_hour(1851, 1, 2, 600) == 30.0
    assert track.storm_hour(1852, 1, 1, 1230) == 365 * 24 + 12.5


def test_load_storm_file_drops_missing_data(tmp_path):
    with pytest.warns(RuntimeWarning):
        storms = track.load_storm_file(str(_storm_file(tmp_path)))
    assert [s["atcID"] for s in storms] == ["AL012000"]


def test_load_storm_file_not_found(tmp_path):
    with pytest.raises(FileNotFoundError):
        track.load_storm_file(str(tmp_path / "absent.json"))


def test_make_track_derives_heading_and_speed(tmp_path):
    with pytest.warns(RuntimeWarning):
        storms = track.load_storm_file(str(_storm_file(tmp_path)))
    t = track.make_track(storms[0])
    obs = t.observations
    assert t.atc_id == "AL012000"
    assert len(obs) == 3
    assert obs[1].hour - obs[0].hour == 6.0
    assert np.isclose(obs[0].heading, 270.0, atol=0.5)
    expected_kt = haversine_m(0.0, 10.0, -1.0, 10.0) / (6 * 3600.0) / KNOT_TO_MS
    assert np.isclose(obs[0].speed_kt, expected_kt)
    # la dernière observation reprend le dernier segment
    assert obs[2].heading == obs[1].heading
    assert obs[2].speed_kt == obs[1].speed_kt
    assert obs[2].event == "L"
    track.validate_track(t)


def test_years_and_labels(tmp_path):
    with pytest.warns(RuntimeWarning):
        storms = track.load_storm_file(str(_storm_file(tmp_path)))
    assert track.storm_years(storms) == [2000]
    assert track.storms_for_year(storms, 1999) == []
    assert track.storm_label(storms[0]) == "AL012000 : ALPHA : Aug 26"
    assert track.entry_label(storms[0]["entries"][1]) == "26 06h 10.0 -1.0 65 985"


def _records(hours):
    return [{"hour": h, "lon": -h, "lat": 10.0, "heading": 270.0, "speed_kt": 10.0,
             "pressure_mb": 950.0, "max_wind_kt": 100.0} for h in hours]


def test_validate_track_rejects_short_or_unordered_tracks():
    with pytest.raises(track.TrackError):
        track.validate_track(track.track_from_records(_records([0.0])))
    with pytest.raises(track.TrackError):
        track.validate_track(track.track_from_records(_records([0.0, 6.0, 6.0])))
    with pytest.raises(track.TrackError):
        track.validate_track(track.track_from_records(_records([6.0, 0.0])))


def test_validate_track_rejects_missing_sentinel():
    records = _records([0.0, 6.0])
    records[1]["pressure_mb"] = -999
    with pytest.raises(track.TrackError):
        track.validate_track(track.track_from_records(records))


def test_track_arrays_are_read_only():
    arrays = track.track_arrays(track.track_from_records(_records([0.0, 6.0])))
    assert np.array_equal(arrays["hour"], [0.0, 6.0])
    with pytest.raises(ValueError):
        arrays["lon"][0] = 5.0


def _recurving_storm():
    return {"atcID": "AL032000", "name": "CHARLIE", "entries": [
        _entry(26, 0, 30.0, -70.0),
        _entry(26, 600, 31.0, -70.2),
        _entry(26, 1200, 32.0, -70.0),
    ]}


def _off_north(heading):
    h = heading % 360.0
    return min(h, 360.0 - h)


def test_heading_turning_through_north_stays_northward():
    t = track.make_track(_recurving_storm())
    assert t.observations[0].heading > 340.0
    assert t.observations[1].heading < 20.0

    arrays = track.track_arrays(t)
    assert abs(arrays["heading"][1] - arrays["heading"][0]) < 180.0
    for frac in (0.25, 0.5, 0.75):
        pos = interpolate(arrays, arrays["hour"][0] + 6.0 * frac)
        assert _off_north(pos.heading) < 20.0


def test_model_heading_through_north():
    model = HurricaneModel(track.make_track(_recurving_storm()))
    for _ in range(4):                      # t = 3 h avec le pas d'une heure
        assert model.step()
    assert 0.0 <= model.state.heading < 360.0
    assert _off_north(model.state.heading) < 20.0
