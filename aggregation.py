"""
Module d'agrégation spatiale — Grille géographique globale (lon/lat).

Projette le vent calculé aux échantillons polaires sur les nœuds de la
grille globale proches de l'œil : pondération inverse à la distance sur
les quatre échantillons les plus proches, maxima glissants par nœud.
Seul le rectangle englobant le rayon d'influence est touché à chaque pas.
"""
from typing import NamedTuple

import numpy as np
import xarray as xr

from geo import M_PER_DEG, local_offsets_m, wrap_lon


class GridBounds(NamedTuple):
    """Indices inclusifs ; les indices de longitude ne sont pas rabattus (modulo nlon)."""
    lat_lo: int
    lat_hi: int
    lon_lo: int
    lon_hi: int


class GridSnapshot(NamedTuple):
    """
    Vues en lecture seule sur les tableaux de la grille, remises au rendu.

    Ce ne sont pas des copies : le moteur les réécrit au pas suivant.
    Un rendu qui veut conserver des valeurs doit les copier.
    """
    bounds: GridBounds
    u: np.ndarray
    v: np.ndarray
    speed: np.ndarray
    max_speed: np.ndarray

    def window(self, field):
        """Copie (nlat_r, nlon_r) du champ `field` dans le rectangle touché."""
        b = self.bounds
        rows = getattr(self, field)[b.lat_lo:b.lat_hi + 1]
        return np.take(rows, np.arange(b.lon_lo, b.lon_hi + 1), axis=1, mode="wrap")


def make_grid(step_deg):
    """Longitudes et latitudes des nœuds de la grille globale."""
    nlon = int(round(360.0 / step_deg))
    nlat = int(round(180.0 / step_deg))
    lons = -180.0 + np.arange(nlon) * step_deg
    lats = -90.0 + np.arange(nlat) * step_deg
    return lons, lats


class WindGrid:
    """Grille globale pré-allouée : (nlat, nlon) pour u, v, vitesse et maximum."""

    __slots__ = ("step_deg", "lons", "lats", "u", "v", "speed", "max_speed", "_dirty")

    def __init__(self, step_deg):
        self.step_deg = float(step_deg)
        self.lons, self.lats = make_grid(step_deg)
        shape = (len(self.lats), len(self.lons))
        self.u = np.zeros(shape)
        self.v = np.zeros(shape)
        self.speed = np.zeros(shape)
        self.max_speed = np.zeros(shape)
        self._dirty = None

    @property
    def nlon(self):
        return len(self.lons)

    @property
    def nlat(self):
        return len(self.lats)

    def clear_region(self, lat_idx, lon_idx):
        """Remet à zéro le vent instantané (pas les maxima) d'un rectangle."""
        region = np.ix_(lat_idx, lon_idx)
        self.u[region] = 0.0
        self.v[region] = 0.0
        self.speed[region] = 0.0

    def reset(self):
        for arr in (self.u, self.v, self.speed, self.max_speed):
            arr.fill(0.0)
        self._dirty = None

    def snapshot(self, bounds):
        views = []
        for arr in (self.u, self.v, self.speed, self.max_speed):
            view = arr.view()
            view.flags.writeable = False
            views.append(view)
        return GridSnapshot(bounds, *views)


def _nearest_index(x):
    return int(np.floor(x + 0.5))


def footprint_bounds(eye_lon, eye_lat, step_deg, influence_radius_km, nlat, nlon):
    """
    Rectangle de nœuds couvrant le rayon d'influence autour de l'œil.

    La demi-largeur en longitude est élargie de 1/cos(lat) et bornée pour
    ne jamais visiter deux fois le même méridien.
    """
    k_center = _nearest_index((180.0 + wrap_lon(eye_lon)) / step_deg)
    n_center = _nearest_index((90.0 + eye_lat) / step_deg)

    step_km = step_deg * M_PER_DEG / 1000.0
    cos_lat = max(np.cos(np.radians(eye_lat)), 0.1)     # sécurité pôles
    n_range = int(np.ceil(influence_radius_km / step_km))
    k_range = min(int(np.ceil(influence_radius_km / (step_km * cos_lat))),
                  (nlon - 1) // 2)

    return GridBounds(
        lat_lo=max(n_center - n_range, 0),
        lat_hi=min(n_center + n_range, nlat - 1),
        lon_lo=k_center - k_range,
        lon_hi=k_center + k_range,
    )


def find_closest(dx, dy, sample_grid):
    """
    Quatre échantillons les plus proches de chaque point (dx, dy) relatif à l'œil.

    Returns
    -------
    a_idx, r_idx : ndarray (..., 4) — indices angulaires / radiaux
    valid : ndarray (...) bool — False si le point est hors de portée radiale
    """
    n_angular = len(sample_grid.angles_deg)
    dists = sample_grid.distances_m
    n_radial = len(dists)

    angle = np.degrees(np.arctan2(dy, dx)) % 360.0
    i = np.floor(angle / (360.0 / n_angular) + 0.5).astype(int) % n_angular
    i2 = (i + 1) % n_angular

    # Plus petit indice radial dont la distance dépasse celle du point
    n = np.searchsorted(dists, np.hypot(dx, dy), side="right")
    valid = n < n_radial
    n = np.clip(n, 1, n_radial - 1)

    a_idx = np.stack([i, i, i2, i2], axis=-1)
    r_idx = np.stack([n - 1, n, n - 1, n], axis=-1)
    return a_idx, r_idx, valid


def blend(dx, dy, a_idx, r_idx, sample_grid, samples):
    """
    Moyenne pondérée (poids = 1 / distance) des quatre échantillons.

    Un échantillon confondu avec le point lui transmet directement sa valeur.
    La vitesse scalaire est la moyenne pondérée des vitesses (combinaison
    convexe), (u, v) la moyenne pondérée des vecteurs.
    """
    sx = sample_grid.offsets_m[a_idx, r_idx, 0]
    sy = sample_grid.offsets_m[a_idx, r_idx, 1]
    d = np.hypot(sx - dx[..., None], sy - dy[..., None])

    exact = d == 0.0
    weights = 1.0 / np.where(exact, 1.0, d)
    weights = np.where(exact.any(axis=-1, keepdims=True), exact.astype(float), weights)
    wsum = weights.sum(axis=-1)

    u = (weights * samples.u[a_idx, r_idx]).sum(axis=-1) / wsum
    v = (weights * samples.v[a_idx, r_idx]).sum(axis=-1) / wsum
    speed = (weights * samples.speed[a_idx, r_idx]).sum(axis=-1) / wsum
    return u, v, speed


def accumulate(grid, sample_grid, samples, eye_lon, eye_lat, influence_radius_km):
    """
    Projette les échantillons sur la grille autour de l'œil.

    Le rectangle du pas précédent et le rectangle courant sont remis à zéro
    avant écriture ; les maxima glissants sont conservés.

    Returns
    -------
    bounds : GridBounds — rectangle touché
    peak : float — vitesse maximale écrite pendant ce pas
    """
    eye_lon = wrap_lon(eye_lon)
    bounds = footprint_bounds(eye_lon, eye_lat, grid.step_deg,
                              influence_radius_km, grid.nlat, grid.nlon)

    lat_idx = np.arange(bounds.lat_lo, bounds.lat_hi + 1)
    lon_k = np.arange(bounds.lon_lo, bounds.lon_hi + 1)
    lon_idx = lon_k % grid.nlon

    if grid._dirty is not None:
        grid.clear_region(*grid._dirty)
    grid.clear_region(lat_idx, lon_idx)
    grid._dirty = (lat_idx, lon_idx)

    node_lon = -180.0 + lon_k * grid.step_deg
    node_lat = -90.0 + lat_idx * grid.step_deg
    lon2d, lat2d = np.meshgrid(node_lon, node_lat)
    dx, dy = local_offsets_m(lon2d, lat2d, eye_lon, eye_lat)

    a_idx, r_idx, valid = find_closest(dx, dy, sample_grid)
    u, v, speed = blend(dx, dy, a_idx, r_idx, sample_grid, samples)

    # Hors de portée radiale : aucune contribution (reste à zéro)
    u = np.where(valid, u, 0.0)
    v = np.where(valid, v, 0.0)
    speed = np.where(valid, speed, 0.0)

    region = np.ix_(lat_idx, lon_idx)
    grid.u[region] = u
    grid.v[region] = v
    grid.speed[region] = speed
    grid.max_speed[region] = np.maximum(grid.max_speed[region], speed)

    peak = float(speed.max()) if speed.size else 0.0
    return bounds, peak


def grid_to_dataset(grid):
    """Exporte la grille en xarray.Dataset (lat, lon)."""
    ds = xr.Dataset(
        {
            "u": (("lat", "lon"), grid.u.copy()),
            "v": (("lat", "lon"), grid.v.copy()),
            "speed": (("lat", "lon"), grid.speed.copy()),
            "max_speed": (("lat", "lon"), grid.max_speed.copy()),
        },
        coords={"lat": grid.lats, "lon": grid.lons},
    )
    ds["u"].attrs = {"long_name": "eastward surface wind", "units": "m/s"}
    ds["v"].attrs = {"long_name": "northward surface wind", "units": "m/s"}
    ds["speed"].attrs = {"long_name": "surface wind speed", "units": "m/s"}
    ds["max_speed"].attrs = {
        "long_name": "running maximum surface wind speed",
        "units": "m/s",
        "description": "Maximum of speed over all simulated steps",
    }
    ds["lat"].attrs = {"units": "degrees_north"}
    ds["lon"].attrs = {"units": "degrees_east"}
    ds.attrs["grid_step_deg"] = grid.step_deg
    return ds
