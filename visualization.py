"""
Module de visualisation — Champ de vent du cyclone sur carte ou globe.

  - carte Plate-Carrée centrée sur la piste, ou globe orthographique
  - vent maximal glissant (ou instantané) lissé, colormap à alpha progressif
  - piste colorée selon l'échelle de Saffir-Simpson
  - vidéo MP4 des images enregistrées par FrameRecorder (rendu du moteur)
"""
import os

import numpy as np
from scipy.ndimage import gaussian_filter

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import matplotlib.colors as mcolors
import matplotlib.patheffects as pe
from matplotlib.animation import FuncAnimation, FFMpegWriter

import cartopy.crs as ccrs
import cartopy.feature as cfeature

from config import VISUALIZATION

MS_TO_MPH = 3600.0 / 1609.344
KT_TO_MPH = 1852.0 / 1609.344

# Échelle de Saffir-Simpson (seuils en mph), de la plus forte à la plus faible
SAFFIR_SIMPSON = [
    {"cat": "5",  "min_mph": 157, "color": "#ff6060"},
    {"cat": "4",  "min_mph": 130, "color": "#ff8f20"},
    {"cat": "3",  "min_mph": 111, "color": "#ffc140"},
    {"cat": "2",  "min_mph": 96,  "color": "#ffe775"},
    {"cat": "1",  "min_mph": 74,  "color": "#ffffcc"},
    {"cat": "TS", "min_mph": 39,  "color": "#01faf4"},
    {"cat": "TD", "min_mph": 33,  "color": "#5dbaff"},
]

_BG = "#06090f"


def saffir_category(wind_mph):
    """Catégorie Saffir-Simpson ; en dessous de tous les seuils : « TD »."""
    for entry in SAFFIR_SIMPSON:
        if wind_mph >= entry["min_mph"]:
            return entry
    return SAFFIR_SIMPSON[-1]


# ═══════════════════════════════════════════════════════════════════════
#  Helpers
# ═══════════════════════════════════════════════════════════════════════

def _figsize():
    dpi = int(VISUALIZATION["dpi"])
    w, h = VISUALIZATION["resolution"]
    # H.264 exige des dimensions paires
    w += w % 2
    h += h % 2
    return (w / dpi, h / dpi), dpi


def _outline(w=2.0):
    return [pe.withStroke(linewidth=w, foreground="black")]


def _smooth(data):
    """Lissage gaussien + clamp >= 0."""
    sigma = VISUALIZATION["smooth_sigma"]
    if sigma <= 0:
        return data
    return np.clip(gaussian_filter(data.astype(np.float64), sigma=sigma), 0, None)


def _build_cmap():
    """Colormap du vent avec transparence progressive pour les vents faibles."""
    n = 256
    rgba = plt.get_cmap(VISUALIZATION["cmap_wind"])(np.linspace(0.05, 0.95, n))
    a = np.ones(n)
    a[:10] = 0.0
    a[10:60] = np.linspace(0.0, 0.85, 50)
    a[60:] = 0.85
    rgba[:, 3] = a
    cm = mcolors.ListedColormap(rgba)
    cm.set_under(alpha=0)
    cm.set_bad(alpha=0)
    return cm


def _track_extent(track, margin):
    lons = [o.lon for o in track.observations]
    lats = [o.lat for o in track.observations]
    return [min(lons) - margin, max(lons) + margin,
            max(min(lats) - margin, -90.0), min(max(lats) + margin, 90.0)]


def _setup_ax(ax, projection, track):
    ax.set_facecolor(_BG)
    if projection == "globe":
        ax.set_global()
    else:
        ax.set_extent(_track_extent(track, VISUALIZATION["map_margin_deg"]),
                      crs=ccrs.PlateCarree())
    ax.add_feature(cfeature.OCEAN.with_scale("50m"), facecolor="#0b1220", zorder=0)
    ax.add_feature(cfeature.LAND.with_scale("50m"), facecolor="#1a1d26", zorder=0)
    ax.add_feature(cfeature.COASTLINE.with_scale("50m"),
                   edgecolor="#7080a0", linewidth=0.5, zorder=3)
    ax.add_feature(cfeature.BORDERS.with_scale("50m"),
                   edgecolor="#404058", linewidth=0.3, linestyle=":", zorder=3)


def _plot_track(ax, track, transform):
    """Segments de piste colorés par catégorie à l'observation de départ."""
    obs = track.observations
    for a, b in zip(obs[:-1], obs[1:]):
        color = saffir_category(a.max_wind_kt * KT_TO_MPH)["color"]
        ax.plot([a.lon, b.lon], [a.lat, b.lat], color=color, linewidth=2.0,
                transform=ccrs.Geodetic(), zorder=8)
    for o in obs:
        ax.plot(o.lon, o.lat, "o", markersize=3.0,
                color=saffir_category(o.max_wind_kt * KT_TO_MPH)["color"],
                markeredgecolor="black", markeredgewidth=0.4,
                transform=transform, zorder=9)


def _make_axes(fig, projection, track):
    if projection == "globe":
        first = track.observations[0]
        proj = ccrs.Orthographic(first.lon, first.lat)
    else:
        proj = ccrs.PlateCarree()
    ax = fig.add_axes([0.04, 0.04, 0.80, 0.90], projection=proj)
    cax = fig.add_axes([0.88, 0.18, 0.015, 0.6])
    return ax, cax


def _colorbar(fig, cax, mappable):
    cb = fig.colorbar(mappable, cax=cax, orientation="vertical")
    cb.set_label("Vent (m/s)", color="#c0c0d4")
    cb.ax.tick_params(colors="#a0a0b8")
    cb.outline.set_edgecolor("#202030")
    return cb


# ═══════════════════════════════════════════════════════════════════════
#  Image statique
# ═══════════════════════════════════════════════════════════════════════

def create_wind_map(grid, track, mode="max", projection="map", filename=None):
    """
    Image PNG du champ de vent.

    Parameters
    ----------
    grid : aggregation.WindGrid
    track : track.Track
    mode : "max" (maximum glissant) | "instant" (dernier pas)
    projection : "map" | "globe"
    """
    if mode == "max":
        data, title = grid.max_speed, "Vent maximal"
    elif mode == "instant":
        data, title = grid.speed, "Vent instantané"
    else:
        raise ValueError(f"Mode inconnu : {mode}")
    if projection not in ("map", "globe"):
        raise ValueError(f"Projection inconnue : {projection}")

    os.makedirs(VISUALIZATION["save_dir"], exist_ok=True)
    figsize, dpi = _figsize()
    dc = ccrs.PlateCarree()

    fig = plt.figure(figsize=figsize, dpi=dpi, facecolor=_BG)
    ax, cax = _make_axes(fig, projection, track)
    _setup_ax(ax, projection, track)

    step = grid.step_deg
    lon_e = np.append(grid.lons, grid.lons[-1] + step) - step / 2
    lat_e = np.clip(np.append(grid.lats, grid.lats[-1] + step) - step / 2, -90, 90)
    vmax = max(float(data.max()), 1.0)
    pcm = ax.pcolormesh(lon_e, lat_e, _smooth(data), cmap=_build_cmap(),
                        norm=mcolors.Normalize(vmin=0.5, vmax=vmax),
                        transform=dc, shading="flat", zorder=5)
    _plot_track(ax, track, dc)
    _colorbar(fig, cax, pcm)

    label = f"{track.atc_id} {track.name}".strip() or "Tempête"
    fig.text(0.04, 0.965, f"{label} — {title}  (max {data.max():.1f} m/s)",
             color="#e0e0f0", fontsize=14, ha="left", va="center",
             path_effects=_outline())

    fn = filename or f"wind_{mode}_{projection}.png"
    path = os.path.join(VISUALIZATION["save_dir"], fn)
    fig.savefig(path, dpi=dpi, facecolor=fig.get_facecolor())
    plt.close(fig)

    size_mb = os.path.getsize(path) / (1024 * 1024)
    print(f"  [OK] Image sauvegardee : {path}  ({size_mb:.1f} Mo)")
    return path


# ═══════════════════════════════════════════════════════════════════════
#  Rendu pas à pas + vidéo
# ═══════════════════════════════════════════════════════════════════════

class FrameRecorder:
    """
    Rappel de rendu pour SimulationClock : copie l'empreinte de chaque image.

    Le snapshot transmis par le moteur référence ses tableaux internes ;
    on ne garde que des copies.
    """

    def __init__(self, step_deg, field="speed"):
        self.step_deg = step_deg
        self.field = field
        self.frames = []

    def __call__(self, eye_lon, eye_lat, snapshot):
        b = snapshot.bounds
        self.frames.append({
            "eye_lon": float(eye_lon),
            "eye_lat": float(eye_lat),
            "lons": -180.0 + np.arange(b.lon_lo, b.lon_hi + 1) * self.step_deg,
            "lats": -90.0 + np.arange(b.lat_lo, b.lat_hi + 1) * self.step_deg,
            "data": snapshot.window(self.field),
        })


def create_wind_video(frames, track, step_deg, projection="map",
                      filename="hurricane_wind.mp4"):
    """Vidéo MP4 du vent instantané autour de l'œil, une image par frame."""
    if not frames:
        raise ValueError("Aucune image à encoder")

    os.makedirs(VISUALIZATION["save_dir"], exist_ok=True)
    figsize, dpi = _figsize()
    fps = VISUALIZATION["video_fps"]
    dc = ccrs.PlateCarree()
    cmap = _build_cmap()
    vmax = max(max(float(f["data"].max()) for f in frames), 1.0)
    norm = mcolors.Normalize(vmin=0.5, vmax=vmax)

    fig = plt.figure(figsize=figsize, dpi=dpi, facecolor=_BG)
    ax, cax = _make_axes(fig, projection, track)
    _setup_ax(ax, projection, track)
    _plot_track(ax, track, dc)
    _colorbar(fig, cax, plt.cm.ScalarMappable(norm=norm, cmap=cmap))

    eye, = ax.plot([], [], marker="o", markersize=6, color="#ffffff",
                   markeredgecolor="#e04040", transform=dc, zorder=10)
    info = fig.text(0.04, 0.965, "", color="#e0e0f0", fontsize=13,
                    ha="left", va="center", fontfamily="monospace",
                    path_effects=_outline())
    artists = {"mesh": None}
    half = step_deg / 2

    def update(idx):
        f = frames[idx]
        if artists["mesh"] is not None:
            artists["mesh"].remove()
        lon_e = np.append(f["lons"], f["lons"][-1] + step_deg) - half
        lat_e = np.append(f["lats"], f["lats"][-1] + step_deg) - half
        artists["mesh"] = ax.pcolormesh(lon_e, lat_e, _smooth(f["data"]),
                                        cmap=cmap, norm=norm, transform=dc,
                                        shading="flat", zorder=5)
        eye.set_data([f["eye_lon"]], [f["eye_lat"]])
        info.set_text(f"image {idx + 1}/{len(frames)}   "
                      f"œil {f['eye_lat']:.2f}°, {f['eye_lon']:.2f}°   "
                      f"max {f['data'].max():.1f} m/s")
        return [artists["mesh"], eye, info]

    print(f"  Encodage video ({len(frames)} frames a {fps} fps)...")
    anim = FuncAnimation(fig, update, frames=len(frames),
                         interval=1000 // fps, blit=False)
    writer = FFMpegWriter(
        fps=fps,
        bitrate=VISUALIZATION["video_bitrate"],
        codec="libx264",
        extra_args=["-pix_fmt", "yuv420p", "-movflags", "+faststart"],
        metadata={"title": f"{track.atc_id} {track.name}".strip()},
    )

    path = os.path.join(VISUALIZATION["save_dir"], filename)
    anim.save(path, writer=writer)
    plt.close(fig)

    size_mb = os.path.getsize(path) / (1024 * 1024)
    print(f"  [OK] Video sauvegardee : {path}  ({size_mb:.1f} Mo)")
    return path
