"""
Module vent — Profils paramétriques de cyclone tropical.

Vitesse symétrique (Holland 1980 ou NWS23) aux distances d'échantillonnage,
puis composante asymétrique due au déplacement de l'œil, décomposée en
(u, v) selon l'azimut géodésique (0° = Nord, sens horaire) du vent au site.

Référence : Holland, G. J. (1980), An analytic model of the wind and
pressure profiles in hurricanes, Mon. Wea. Rev., 108, 1212-1218.
"""
import warnings

import numpy as np

from geo import KNOT_TO_MS


def holland_parameters(central_pressure_mb, rmax_km):
    """
    Paramètres A et B de Holland.

    B = 1.5 + (980 − Pc) / 120 ;  A = RMAX(km) ** B
    """
    b = 1.5 + (980.0 - central_pressure_mb) / 120.0
    a = rmax_km ** b
    return a, b


def holland_speed(r_m, delta_p_pa, a_holland, b_holland, coriolis, air_density):
    """Vent de gradient de Holland (m/s) ; r_m > 0."""
    r_km = r_m / 1000.0                                   # A/r^B est sans dimension en km
    rf = 0.5 * r_m * abs(coriolis)                        # m/s
    rb = r_km ** b_holland
    pressure_drop = delta_p_pa * np.exp(-a_holland / rb)  # Pa
    vel2 = pressure_drop * a_holland * b_holland / rb / air_density + rf * rf
    return np.sqrt(np.fmax(0.0, vel2)) - rf


def nws23_speed(r_m, rmax_m, delta_p_pa, coriolis, air_density):
    """Vent NWS23 (m/s) ; r_m > 0."""
    rr = rmax_m / r_m
    velc2 = delta_p_pa * rr * np.exp(-rr) / air_density
    rf = 0.5 * r_m * abs(coriolis)
    # Rf·sqrt(1 + Vc²/Rf²) − Rf, écrit sous une forme définie aussi pour Rf = 0
    return np.sqrt(np.fmax(0.0, rf * rf + velc2)) - rf


def symmetric_speed(r_m, model, central_pressure_mb, rmax_km,
                    a_holland, b_holland, physics):
    """
    Vitesse axisymétrique aux distances r_m (m).

    En deçà de eye_core_ratio · RMAX la vitesse est forcée à zéro
    (évite la singularité en r → 0).
    """
    r_m = np.asarray(r_m, dtype=np.float64)
    rmax_m = rmax_km * 1000.0
    delta_p = (physics["peripheral_pressure_mb"] - central_pressure_mb) * 100.0

    core = (r_m / rmax_m < physics["eye_core_ratio"]) | (r_m <= 0.0)
    r_safe = np.where(core, rmax_m, r_m)

    with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
        if model == "nws23":
            speed = nws23_speed(r_safe, rmax_m, delta_p,
                                physics["coriolis"], physics["air_density"])
        else:
            speed = holland_speed(r_safe, delta_p, a_holland, b_holland,
                                  physics["coriolis"], physics["air_density"])

    if np.any(~np.isfinite(speed)):
        warnings.warn(
            "Vitesses non finies dans le profil symétrique ; remplacement par 0.",
            RuntimeWarning,
            stacklevel=2,
        )
        speed = np.nan_to_num(speed, nan=0.0, posinf=0.0, neginf=0.0)

    return np.where(core, 0.0, speed)


def asymmetry_term(forward_speed_kt, t0=0.514791):
    """Composante de translation : 1.5 · Vt^0.63 · T0^0.37 (Vt en m/s)."""
    vt = forward_speed_kt * KNOT_TO_MS
    return 1.5 * vt ** 0.63 * t0 ** 0.37


def site_azimuth_deg(angles_deg, hemisphere, inflow_angle_deg):
    """
    Azimut géodésique (direction vers laquelle souffle le vent) aux sites.

    Les angles d'échantillonnage sont mathématiques (anti-horaires depuis
    l'Est) : le relèvement géodésique du site est 90° − angle. Le vent est
    tangent (cyclonique) puis incliné vers l'œil de l'angle d'entrée.
    """
    bearing = 90.0 - np.asarray(angles_deg, dtype=np.float64)
    alpha = -(inflow_angle_deg + 90.0)
    return bearing + hemisphere * alpha


def evaluate_samples(sample_grid, out, model, state, physics):
    """
    Calcule le vent à tous les échantillons et l'écrit dans `out`.

    Parameters
    ----------
    sample_grid : sampling.SampleGrid
    out : sampling.SampleData — réécrit en place
    model : "holland" | "nws23"
    state : engine.ModelState — pression, RMAX, A/B, cap, vitesse, position
    physics : mapping PHYSICS
    """
    speed_r = symmetric_speed(
        sample_grid.distances_m, model,
        state.central_pressure_mb, state.rmax_km,
        state.a_holland, state.b_holland, physics,
    )                                                    # (n_radial,)

    hemisphere = -1.0 if state.eye_lat < 0.0 else 1.0
    azi = np.radians(site_azimuth_deg(sample_grid.angles_deg, hemisphere,
                                      physics["inflow_angle_deg"]))[:, None]
    beta = azi - np.radians(state.heading)
    att = asymmetry_term(state.speed_kt, physics["asymmetry_t0"])

    vel = np.broadcast_to(speed_r[None, :], out.speed.shape)
    # Le côté gauche de la trajectoire ne doit jamais devenir anticyclonique
    keep = vel >= att
    total = np.where(keep, vel + att * np.cos(beta), 0.0)

    out.u[...] = total * np.sin(azi)
    out.v[...] = total * np.cos(azi)
    out.speed[...] = np.hypot(out.u, out.v)
    return out
