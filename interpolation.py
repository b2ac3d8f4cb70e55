"""
Interpolation temporelle de la piste.

Pour un instant simulé donné, trouve la première observation dont le temps
est >= à l'instant courant, puis interpole linéairement entre elle et la
précédente. Au-delà de la dernière observation : simulation terminée.
"""
from typing import NamedTuple, Optional

import numpy as np


class TrackPosition(NamedTuple):
    hour: float
    lon: float
    lat: float
    heading: float
    speed_kt: float
    pressure_mb: float
    index: int            # indice de l'observation suivante (bornée à >= 1)
    proportion: float     # 0 → observation précédente, 1 → suivante


_FIELDS = ("lon", "lat", "heading", "speed_kt", "pressure_mb")


def lerp(a, b, t):
    return (1 - t) * a + t * b


def bracket(hours, t_hours):
    """
    Indice de la première observation avec hours[k] >= t_hours,
    ou None si t_hours dépasse la dernière observation.
    """
    k = int(np.searchsorted(hours, t_hours, side="left"))
    if k >= len(hours):
        return None
    return max(k, 1)


def interpolate(arrays, t_hours) -> Optional[TrackPosition]:
    """
    Position et paramètres de la tempête à l'instant t_hours.

    Parameters
    ----------
    arrays : dict — sortie de track.track_arrays()
    t_hours : float — temps absolu (heures)

    Returns
    -------
    TrackPosition, ou None si la piste est épuisée
    """
    hours = arrays["hour"]
    k = bracket(hours, t_hours)
    if k is None:
        return None

    t_prev, t_next = hours[k - 1], hours[k]
    span = t_next - t_prev
    proportion = (t_hours - t_prev) / span if span > 0 else 0.0
    # Avant le début de la piste : on reste sur la première observation
    proportion = float(np.clip(proportion, 0.0, 1.0))

    values = {name: float(lerp(arrays[name][k - 1], arrays[name][k], proportion))
              for name in _FIELDS}
    return TrackPosition(hour=float(t_hours), index=k, proportion=proportion, **values)
