"""
Petits utilitaires géodésiques — sphère terrestre de rayon moyen.
Azimuts géodésiques : 0° = Nord, sens horaire.
"""
import numpy as np

EARTH_RADIUS_M = 6_371_000.0
M_PER_DEG = EARTH_RADIUS_M * np.pi / 180.0     # ≈ 111.2 km par degré de latitude
KNOT_TO_MS = 1852.0 / 3600.0


def wrap_lon(lon):
    """Rabat une longitude dans [-180, 180)."""
    return ((lon + 180.0) % 360.0) - 180.0


def haversine_m(lon1, lat1, lon2, lat2):
    """Distance orthodromique (m) entre deux points."""
    phi1, phi2 = np.radians(lat1), np.radians(lat2)
    dphi = phi2 - phi1
    dlmb = np.radians(lon2 - lon1)
    h = np.sin(dphi / 2) ** 2 + np.cos(phi1) * np.cos(phi2) * np.sin(dlmb / 2) ** 2
    return 2.0 * EARTH_RADIUS_M * np.arcsin(np.sqrt(np.clip(h, 0.0, 1.0)))


def initial_bearing_deg(lon1, lat1, lon2, lat2):
    """Cap initial (°, horaire depuis le Nord) du point 1 vers le point 2."""
    phi1, phi2 = np.radians(lat1), np.radians(lat2)
    dlmb = np.radians(lon2 - lon1)
    x = np.sin(dlmb) * np.cos(phi2)
    y = np.cos(phi1) * np.sin(phi2) - np.sin(phi1) * np.cos(phi2) * np.cos(dlmb)
    return np.degrees(np.arctan2(x, y)) % 360.0


def local_offsets_m(lons, lats, lon0, lat0):
    """
    Projection équirectangulaire locale autour de (lon0, lat0).

    Returns
    -------
    dx, dy : décalages Est / Nord en mètres
    """
    dlon = wrap_lon(np.asarray(lons, dtype=np.float64) - lon0)
    dx = dlon * M_PER_DEG * np.cos(np.radians(lat0))
    dy = (np.asarray(lats, dtype=np.float64) - lat0) * M_PER_DEG
    return dx, dy
