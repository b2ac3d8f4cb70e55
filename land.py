"""
Transition terre — Comblement du cyclone au-dessus des terres.

Quand l'œil est sur terre : la pression centrale remonte vers la pression
périphérique, le rayon du vent maximal (RMAX) s'élargit, et les paramètres
de Holland sont recalculés. Un masque terre/mer optionnel (Natural Earth,
via cartopy + shapely) détermine si l'œil est sur terre.
"""
from wind import holland_parameters


def apply_land_transition(state, physics, dt_h):
    """
    Applique un pas de comblement à `state` (modifié en place).

    Parameters
    ----------
    state : engine.ModelState
    physics : mapping PHYSICS
    dt_h : float — durée du pas (heures)
    """
    peripheral = physics["peripheral_pressure_mb"]
    filled = state.central_pressure_mb + physics["filling_rate_mb_h"] * dt_h
    state.central_pressure_mb = min(filled, peripheral)

    rmax = state.rmax_km + physics["rmax_growth_km_h"] * dt_h
    state.rmax_km = min(max(rmax, physics["rmax_min_km"]), physics["rmax_max_km"])

    state.a_holland, state.b_holland = holland_parameters(
        state.central_pressure_mb, state.rmax_km)
    return state


def natural_earth_land_mask(resolution="110m"):
    """
    Masque terre/mer à partir des polygones Natural Earth.

    Le fichier est téléchargé par cartopy au premier appel puis mis en cache.

    Returns
    -------
    is_land : callable (lon, lat) -> bool
    """
    import cartopy.io.shapereader as shpreader
    from shapely.geometry import Point
    from shapely.ops import unary_union
    from shapely.prepared import prep

    path = shpreader.natural_earth(resolution=resolution,
                                   category="physical", name="land")
    land = prep(unary_union(list(shpreader.Reader(path).geometries())))

    def is_land(lon, lat):
        return bool(land.contains(Point(lon, lat)))

    return is_land
