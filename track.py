"""
Module pistes — Observations de tempête issues du fichier HURDAT2 (JSON).

Le fichier JSON dérivé de HURDAT2 contient :
    {"storms": [{"atcID": "AL092021", "name": "IDA",
                 "entries": [[année, mois, jour, hhmm, événement, statut,
                              lat, lon, vent_max_kt, pression_min_mb], ...]}]}

Événements (colonne 4) : L = atterrissage, I = pic d'intensité, ...
Statuts (colonne 5) : HU, TS, TD, EX, ...

Le cap et la vitesse de déplacement ne figurent pas dans HURDAT2 :
ils sont reconstruits à partir des positions successives.
"""
import json
import os
import warnings
from typing import NamedTuple, Tuple

import numpy as np

from config import TRACK
from geo import haversine_m, initial_bearing_deg, KNOT_TO_MS

# Colonnes d'une entrée HURDAT2
YEAR, MONTH, DAY, TIME, EVENT, STATUS, LAT, LON, MAXWIND, MINPRESS = range(10)

_MONTHS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
           "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


class TrackError(ValueError):
    """Piste invalide (trop courte, non chronologique, données manquantes)."""


class Observation(NamedTuple):
    hour: float           # heures depuis le 1er janvier de TRACK["year_zero"]
    lon: float
    lat: float
    heading: float        # ° horaire depuis le Nord
    speed_kt: float       # vitesse de déplacement de l'œil
    pressure_mb: float    # pression centrale
    max_wind_kt: float
    event: str = ""
    status: str = ""


class Track(NamedTuple):
    atc_id: str
    name: str
    observations: Tuple[Observation, ...]


def storm_hour(year, month, day, hhmm):
    """Heures écoulées depuis le 1er janvier de l'année origine (UTC)."""
    t0 = np.datetime64(f"{TRACK['year_zero']:04d}-01-01T00:00")
    t = np.datetime64(f"{int(year):04d}-{int(month):02d}-{int(day):02d}T00:00")
    hours = int(hhmm) // 100
    minutes = int(hhmm) % 100
    return float((t - t0) / np.timedelta64(1, "h")) + hours + minutes / 60.0


def _has_missing(entry):
    return any(value == TRACK["missing"] for value in entry)


def load_storm_file(path):
    """
    Charge le fichier JSON et écarte les tempêtes contenant des données
    manquantes (sentinelle TRACK["missing"]).

    Returns
    -------
    storms : list of dict — {"atcID", "name", "entries"}
    """
    if not os.path.isfile(path):
        raise FileNotFoundError(
            f"Fichier de pistes introuvable : {path}\n"
            "→ Fournir un fichier HURDAT2 converti en JSON (--storm-file)"
        )

    with open(path, encoding="utf-8") as f:
        data = json.load(f)

    storms = []
    for storm in data.get("storms", []):
        entries = storm.get("entries", [])
        if any(_has_missing(e) for e in entries):
            warnings.warn(
                f"Tempête {storm.get('atcID', '?')} écartée : données manquantes.",
                RuntimeWarning,
                stacklevel=2,
            )
            continue
        storms.append(storm)
    return storms


def storm_years(storms):
    """Années (ordre d'apparition, sans doublon) ayant au moins une tempête."""
    years = []
    for storm in storms:
        year = storm["entries"][0][YEAR]
        if not years or years[-1] != year:
            years.append(year)
    return years


def storms_for_year(storms, year):
    return [s for s in storms if s["entries"][0][YEAR] == year]


def storm_label(storm):
    """Ex. « AL092021 : IDA : Aug 26 »."""
    entry = storm["entries"][0]
    start = f"{_MONTHS[int(entry[MONTH]) - 1]} {entry[DAY]}"
    return f"{storm['atcID']} : {storm['name']} : {start}"


def entry_label(entry):
    """Ex. « 26 18h 21.5 -82.0 70 985 »."""
    hours = f"{int(entry[TIME]):04d}"[:2]
    return (f"{entry[DAY]} {hours}h {entry[LAT]:.1f} {entry[LON]:.1f} "
            f"{entry[MAXWIND]:.0f} {entry[MINPRESS]:.0f}")


def _motion(lons, lats, hours):
    """Cap (°) et vitesse (kt) de chaque observation, par différence avant."""
    n = len(hours)
    heading = np.zeros(n)
    speed_kt = np.zeros(n)
    for k in range(n - 1):
        dt_h = hours[k + 1] - hours[k]
        heading[k] = initial_bearing_deg(lons[k], lats[k], lons[k + 1], lats[k + 1])
        dist = haversine_m(lons[k], lats[k], lons[k + 1], lats[k + 1])
        speed_kt[k] = dist / (dt_h * 3600.0) / KNOT_TO_MS if dt_h > 0 else 0.0
    if n > 1:
        # Dernière observation : on conserve le mouvement du dernier segment
        heading[-1] = heading[-2]
        speed_kt[-1] = speed_kt[-2]
    return heading, speed_kt


def make_track(storm):
    """Construit la Track d'une tempête du fichier JSON."""
    entries = storm["entries"]
    hours = [storm_hour(e[YEAR], e[MONTH], e[DAY], e[TIME]) for e in entries]
    lons = [float(e[LON]) for e in entries]
    lats = [float(e[LAT]) for e in entries]
    heading, speed_kt = _motion(lons, lats, hours)

    obs = tuple(
        Observation(
            hour=hours[k], lon=lons[k], lat=lats[k],
            heading=float(heading[k]), speed_kt=float(speed_kt[k]),
            pressure_mb=float(e[MINPRESS]), max_wind_kt=float(e[MAXWIND]),
            event=str(e[EVENT]).strip(), status=str(e[STATUS]).strip(),
        )
        for k, e in enumerate(entries)
    )
    return Track(storm.get("atcID", ""), storm.get("name", ""), obs)


def track_from_records(records, atc_id="", name=""):
    """Track à partir de dicts (hour, lon, lat, heading, speed_kt, pressure_mb, max_wind_kt)."""
    obs = tuple(Observation(**rec) for rec in records)
    return Track(atc_id, name, obs)


def validate_track(track):
    """Lève TrackError si la piste ne peut pas alimenter la simulation."""
    obs = track.observations
    if len(obs) < 2:
        raise TrackError(
            f"La piste {track.atc_id or track.name!r} doit contenir au moins "
            f"2 observations (reçu {len(obs)})"
        )
    hours = np.array([o.hour for o in obs], dtype=np.float64)
    if np.any(np.diff(hours) <= 0):
        k = int(np.argmax(np.diff(hours) <= 0))
        raise TrackError(
            f"Temps non strictement croissants entre les observations {k} et {k + 1} "
            f"({hours[k]} h → {hours[k + 1]} h)"
        )
    for k, o in enumerate(obs):
        numeric = (o.hour, o.lon, o.lat, o.heading, o.speed_kt,
                   o.pressure_mb, o.max_wind_kt)
        if any(v == TRACK["missing"] for v in numeric) or not np.all(np.isfinite(numeric)):
            raise TrackError(f"Observation {k} : valeur manquante ou non finie")


def track_arrays(track):
    """Champs de la piste sous forme de tableaux numpy (lecture seule)."""
    obs = track.observations
    arrays = {
        "hour": np.array([o.hour for o in obs], dtype=np.float64),
        "lon": np.array([o.lon for o in obs], dtype=np.float64),
        "lat": np.array([o.lat for o in obs], dtype=np.float64),
        # Cap déroulé : deux observations consécutives diffèrent de moins de
        # 180°, l'interpolation linéaire suit donc le virage le plus court
        "heading": np.unwrap(np.array([o.heading for o in obs], dtype=np.float64),
                             period=360.0),
        "speed_kt": np.array([o.speed_kt for o in obs], dtype=np.float64),
        "pressure_mb": np.array([o.pressure_mb for o in obs], dtype=np.float64),
        "max_wind_kt": np.array([o.max_wind_kt for o in obs], dtype=np.float64),
    }
    for values in arrays.values():
        values.flags.writeable = False
    return arrays
