"""
Script principal — Simulation du champ de vent d'un cyclone tropical.
Charge une piste HURDAT2 (JSON), simule le vent pas à pas le long de la
piste et produit une carte, un globe ou une vidéo MP4.
"""
import time
import argparse

from config import MODEL_TYPES, ConfigError, build_config
from engine import HurricaneModel, SimulationClock
from track import (
    TrackError,
    load_storm_file,
    make_track,
    storm_label,
    storm_years,
    storms_for_year,
    track_from_records,
)


# Piste de démonstration : 2° vers l'ouest en 10 h à 10°N
DEMO_RECORDS = [
    {"hour": 0.0, "lon": 0.0, "lat": 10.0, "heading": 270.0, "speed_kt": 10.0,
     "pressure_mb": 950.0, "max_wind_kt": 100.0},
    {"hour": 10.0, "lon": -2.0, "lat": 10.0, "heading": 270.0, "speed_kt": 10.0,
     "pressure_mb": 950.0, "max_wind_kt": 100.0},
]

_OUTPUT_MODES = ("map", "globe", "video")


def _parse_args():
    parser = argparse.ArgumentParser(
        description="Simulation du vent de surface d'un cyclone tropical",
        formatter_class=argparse.RawTextHelpFormatter,
    )
    parser.add_argument("--storm-file", "-f", type=str, default=None, metavar="PATH",
                        help="Fichier HURDAT2 converti en JSON")
    parser.add_argument("--year", "-y", type=int, default=None,
                        help="Année de la tempête (par défaut : première année du fichier)")
    parser.add_argument("--storm", "-s", type=str, default=None, metavar="ID",
                        help="Identifiant ATCF (ex. AL092021) ou nom de la tempête")
    parser.add_argument("--model", "-m", type=str, default=None,
                        choices=MODEL_TYPES, help="Modèle de vent (par défaut : config.py)")
    parser.add_argument("--land", action="store_true",
                        help="Comblement au-dessus des terres (masque Natural Earth)")
    parser.add_argument("--mode", type=str, default="map", choices=_OUTPUT_MODES,
                        help=(
                            "Sortie :\n"
                            "  map   → carte du vent maximal\n"
                            "  globe → globe orthographique du vent maximal\n"
                            "  video → vidéo MP4 du vent instantané"
                        ))
    parser.add_argument("--netcdf", type=str, default=None, metavar="PATH",
                        help="Exporte la grille finale en NetCDF")
    parser.add_argument("--demo", action="store_true",
                        help="Piste de démonstration (aucun fichier requis)")
    return parser.parse_args()


def _select_track(args):
    if args.demo or args.storm_file is None:
        return track_from_records(DEMO_RECORDS, atc_id="DEMO", name="WESTWARD")

    storms = load_storm_file(args.storm_file)
    if not storms:
        raise SystemExit("ERREUR: Aucune tempête exploitable dans le fichier.")

    year = args.year if args.year is not None else storm_years(storms)[0]
    candidates = storms_for_year(storms, year)
    if not candidates:
        raise SystemExit(f"ERREUR: Aucune tempête pour l'année {year}")

    if args.storm is None:
        storm = candidates[0]
    else:
        key = args.storm.strip().upper()
        matches = [s for s in candidates
                   if s["atcID"].upper() == key or s["name"].strip().upper() == key]
        if not matches:
            labels = "\n   ".join(storm_label(s) for s in candidates)
            raise SystemExit(f"ERREUR: Tempête inconnue : '{args.storm}'\n"
                             f"   Tempêtes {year} :\n   {labels}")
        storm = matches[0]

    print(f"  Tempête      : {storm_label(storm)}")
    return make_track(storm)


def main():
    args = _parse_args()

    overrides = {}
    if args.model is not None:
        overrides["MODEL"] = {"type": args.model}
    try:
        cfg = build_config(overrides)
    except ConfigError as exc:
        raise SystemExit(f"ERREUR: {exc}")

    print("=" * 65)
    print("  SIMULATION DU CHAMP DE VENT -- CYCLONE TROPICAL")
    print("=" * 65)

    track = _select_track(args)

    land_mask = None
    if args.land:
        from land import natural_earth_land_mask
        print("  Chargement masque terre/mer...", end=" ", flush=True)
        land_mask = natural_earth_land_mask()
        print("OK")

    try:
        model = HurricaneModel(track, cfg, land_mask=land_mask)
    except TrackError as exc:
        raise SystemExit(f"ERREUR: {exc}")

    obs = track.observations
    print(f"  Observations : {len(obs)}")
    print(f"  Durée piste  : {obs[-1].hour - obs[0].hour:.0f} h")
    print(f"  Modèle       : {cfg['MODEL']['type']}")
    print(f"  Pas de temps : {cfg['SIMULATION']['dt_s'] / 3600.0:g} h")
    print(f"  Grille       : {cfg['GRID']['step_deg']}°")
    print(f"  Sortie       : {args.mode}")
    print("-" * 65)

    t0 = time.time()

    # ── 1. Simulation ─────────────────────────────────────────────────
    print("\n[1/2] Simulation le long de la piste...")
    recorder = None
    if args.mode == "video":
        from visualization import FrameRecorder
        recorder = FrameRecorder(cfg["GRID"]["step_deg"])
    clock = SimulationClock(model, render=recorder)
    n_ticks = clock.run()
    st = model.state
    print(f"  [OK] {st.step_count} pas en {n_ticks} ticks")
    print(f"  [OK] Vent max : {st.peak_speed:.1f} m/s"
          + (f"  (sur terre : {st.max_land_speed:.1f} m/s)" if args.land else ""))

    if args.netcdf:
        from aggregation import grid_to_dataset
        grid_to_dataset(model.grid).to_netcdf(args.netcdf)
        print(f"  [OK] Grille exportee : {args.netcdf}")

    # ── 2. Génération sortie ──────────────────────────────────────────
    print(f"\n[2/2] Génération sortie — mode '{args.mode}'...")
    if args.mode == "video":
        from visualization import create_wind_video
        output_path = create_wind_video(recorder.frames, track, cfg["GRID"]["step_deg"])
    else:
        from visualization import create_wind_map
        output_path = create_wind_map(model.grid, track, mode="max",
                                      projection=args.mode)

    elapsed = time.time() - t0
    print("\n" + "=" * 65)
    print(f"  TERMINE en {elapsed:.1f}s")
    print(f"  Sortie : {output_path}")
    print("=" * 65)


if __name__ == "__main__":
    main()
