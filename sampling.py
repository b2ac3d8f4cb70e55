"""
Motif d'échantillonnage polaire autour de l'œil.

Calculé une seule fois par configuration puis réutilisé à chaque pas :
  - distances radiales logarithmiques (denses près de l'œil)
  - angles uniformes sur 360° (angle mathématique, anti-horaire depuis l'Est)
  - décalages (x Est, y Nord) en mètres de chaque échantillon
"""
from typing import NamedTuple

import numpy as np


class SampleGrid(NamedTuple):
    angles_deg: np.ndarray     # (n_angular,)
    distances_m: np.ndarray    # (n_radial,)
    offsets_m: np.ndarray      # (n_angular, n_radial, 2)


class SampleData(NamedTuple):
    """Vent aux échantillons pour l'instant courant — réécrit à chaque pas."""
    u: np.ndarray              # (n_angular, n_radial) m/s vers l'Est
    v: np.ndarray              # (n_angular, n_radial) m/s vers le Nord
    speed: np.ndarray          # (n_angular, n_radial) m/s


def radial_distances(n_radial, influence_radius_km):
    """distance[j] = (exp(j·ln(R)/(n−1)) − 1) · 1000  (m)."""
    log_increment = np.log(influence_radius_km) / (n_radial - 1.0)
    j = np.arange(n_radial, dtype=np.float64)
    return (np.exp(j * log_increment) - 1.0) * 1000.0


def angular_steps(n_angular):
    """angle[i] = i · 360 / n  (°)."""
    return np.arange(n_angular, dtype=np.float64) * (360.0 / n_angular)


def build_sample_grid(n_radial, n_angular, influence_radius_km):
    """
    Construit le motif d'échantillonnage (immuable).

    Parameters
    ----------
    n_radial : int > 1
    n_angular : int > 2
    influence_radius_km : float > 1

    Returns
    -------
    SampleGrid dont les tableaux sont en lecture seule
    """
    angles = angular_steps(n_angular)
    dists = radial_distances(n_radial, influence_radius_km)

    theta = np.radians(angles)[:, None]
    offsets = np.empty((n_angular, n_radial, 2))
    offsets[..., 0] = dists[None, :] * np.cos(theta)
    offsets[..., 1] = dists[None, :] * np.sin(theta)

    for arr in (angles, dists, offsets):
        arr.flags.writeable = False
    return SampleGrid(angles, dists, offsets)


def make_sample_data(sample_grid):
    """Alloue les tableaux de vent aux échantillons (remplis de zéros)."""
    shape = sample_grid.offsets_m.shape[:2]
    return SampleData(np.zeros(shape), np.zeros(shape), np.zeros(shape))
