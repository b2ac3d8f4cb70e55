"""
Configuration — Simulation du champ de vent d'un cyclone tropical.
Modèles paramétriques de Holland (1980) et NWS23, piste HURDAT2.
Coordonnées en degrés (longitude, latitude), distances en km sauf mention.
"""
import copy
import numbers
from types import MappingProxyType


class ConfigError(ValueError):
    """Configuration dégénérée détectée à l'initialisation."""


# ─── Modèle de vent ─────────────────────────────────────────────────
# "holland" : profil de Holland (1980), paramètres A/B dérivés de la pression
# "nws23"   : profil NWS23
MODEL = {
    "type": "holland",
}

MODEL_TYPES = ("holland", "nws23")

# ─── Échantillonnage polaire autour de l'œil ────────────────────────
# Espacement radial logarithmique (dense près de l'œil),
# espacement angulaire uniforme sur 360°.
SAMPLING = {
    "n_radial": 12,                # Nombre d'échantillons radiaux
    "n_angular": 15,               # Nombre d'échantillons angulaires
    "influence_radius_km": 750.0,  # Rayon d'influence de la tempête
}

# ─── Grille géographique globale ────────────────────────────────────
GRID = {
    "step_deg": 0.5,     # Résolution (360/step méridiens × 180/step parallèles)
}

# ─── Pas de temps ───────────────────────────────────────────────────
SIMULATION = {
    "dt_s": 3600.0,        # Temps simulé par pas physique (s)
    "frame_dt_s": 0.01,    # Temps réel consommé par pas physique (s)
    "max_frame_s": 0.25,   # Plafond du temps réel compté par tick (s)
}

# ─── Constantes physiques ───────────────────────────────────────────
PHYSICS = {
    "coriolis": 2.0e-5,              # Paramètre de Coriolis sous les tropiques (1/s)
    "air_density": 1.225,            # Densité de l'air (kg/m³)
    "peripheral_pressure_mb": 1013.0,
    "inflow_angle_deg": 20.0,        # Angle d'entrée du vent vers l'œil
    "filling_rate_mb_h": 1.0,        # Comblement au-dessus des terres (mb/h)
    "rmax_growth_km_h": 1.0,         # Croissance de RMAX au-dessus des terres (km/h)
    "rmax_km": 40.0,                 # Rayon du vent maximal initial
    "rmax_min_km": 2.0,
    "rmax_max_km": 200.0,
    "eye_core_ratio": 0.05,          # Vent nul si r / RMAX < ce ratio
    "asymmetry_t0": 0.514791,
}

# ─── Fichier de pistes (HURDAT2 converti en JSON) ───────────────────
TRACK = {
    "missing": -999,     # Valeur sentinelle « donnée manquante »
    "year_zero": 1851,   # Origine du temps simulé (1er janvier, 00h UTC)
}

# ─── Visualisation ──────────────────────────────────────────────────
VISUALIZATION = {
    "resolution": (1920, 1080),
    "dpi": 120,
    "cmap_wind": "turbo",
    "save_dir": "output",
    "video_fps": 30,
    "video_bitrate": 8000,
    "smooth_sigma": 1.0,     # Lissage gaussien (en cellules)
    "map_margin_deg": 8.0,   # Marge autour de la piste (mode carte)
}

_SECTIONS = {
    "MODEL": MODEL,
    "SAMPLING": SAMPLING,
    "GRID": GRID,
    "SIMULATION": SIMULATION,
    "PHYSICS": PHYSICS,
    "TRACK": TRACK,
    "VISUALIZATION": VISUALIZATION,
}


def _is_int(value):
    return isinstance(value, numbers.Integral) and not isinstance(value, bool)


def validate_config(cfg):
    """
    Vérifie la cohérence d'une configuration complète.

    Lève ConfigError dès la première incohérence : mieux vaut échouer ici
    qu'obtenir une division par zéro au milieu de la boucle de simulation.
    """
    model = cfg["MODEL"]["type"]
    if model not in MODEL_TYPES:
        raise ConfigError(
            f"Modèle inconnu : {model!r} (valides : {', '.join(MODEL_TYPES)})"
        )

    s = cfg["SAMPLING"]
    if not _is_int(s["n_radial"]) or s["n_radial"] <= 1:
        raise ConfigError(f"n_radial doit être un entier > 1 (reçu {s['n_radial']!r})")
    if not _is_int(s["n_angular"]) or s["n_angular"] <= 2:
        raise ConfigError(f"n_angular doit être un entier > 2 (reçu {s['n_angular']!r})")
    if s["influence_radius_km"] <= 1.0:
        # L'espacement logarithmique exige ln(R) > 0
        raise ConfigError(
            f"influence_radius_km doit être > 1 km (reçu {s['influence_radius_km']})"
        )

    step = cfg["GRID"]["step_deg"]
    if step <= 0:
        raise ConfigError(f"step_deg doit être > 0 (reçu {step})")
    n_lat = round(180.0 / step)
    if n_lat < 2 or abs(n_lat * step - 180.0) > 1e-9:
        raise ConfigError(f"step_deg doit diviser 180° (reçu {step})")

    sim = cfg["SIMULATION"]
    for key in ("dt_s", "frame_dt_s", "max_frame_s"):
        if sim[key] <= 0:
            raise ConfigError(f"{key} doit être > 0 (reçu {sim[key]})")
    if sim["max_frame_s"] < sim["frame_dt_s"]:
        raise ConfigError(
            "max_frame_s doit être >= frame_dt_s, sinon aucun pas ne serait jamais exécuté"
        )

    p = cfg["PHYSICS"]
    if p["air_density"] <= 0:
        raise ConfigError(f"air_density doit être > 0 (reçu {p['air_density']})")
    if p["peripheral_pressure_mb"] <= 0:
        raise ConfigError("peripheral_pressure_mb doit être > 0")
    if not 0 < p["rmax_min_km"] <= p["rmax_max_km"]:
        raise ConfigError(
            f"Bornes RMAX invalides : min={p['rmax_min_km']}, max={p['rmax_max_km']}"
        )
    if p["rmax_km"] <= 0:
        raise ConfigError(f"rmax_km doit être > 0 (reçu {p['rmax_km']})")
    for key in ("filling_rate_mb_h", "rmax_growth_km_h", "eye_core_ratio"):
        if p[key] < 0:
            raise ConfigError(f"{key} doit être >= 0 (reçu {p[key]})")


def build_config(overrides=None):
    """
    Fusionne les surcharges dans les valeurs par défaut, valide,
    et renvoie une configuration en lecture seule.

    Parameters
    ----------
    overrides : dict, optional
        {"SECTION": {"clé": valeur}} — ex. {"MODEL": {"type": "nws23"}}

    Returns
    -------
    cfg : MappingProxyType — {section: MappingProxyType}
    """
    cfg = {name: copy.deepcopy(section) for name, section in _SECTIONS.items()}

    for name, values in (overrides or {}).items():
        if name not in cfg:
            raise ConfigError(f"Section de configuration inconnue : {name!r}")
        unknown = set(values) - set(cfg[name])
        if unknown:
            raise ConfigError(
                f"Clé(s) inconnue(s) dans {name} : {', '.join(sorted(unknown))}"
            )
        cfg[name].update(values)

    validate_config(cfg)
    return MappingProxyType({name: MappingProxyType(section)
                             for name, section in cfg.items()})
