"""
Moteur de simulation — Champ de vent d'un cyclone le long de sa piste.

Chaque pas physique (durée simulée fixe) :
  1. interpolation temporelle de la piste (position de l'œil, cap, vitesse, pression)
  2. comblement au-dessus des terres (pression, RMAX, paramètres de Holland)
  3. vent aux échantillons polaires (Holland ou NWS23 + asymétrie)
  4. projection sur la grille globale (pondération inverse à la distance)

L'horloge découple le nombre de pas physiques de la cadence de rendu :
le temps réel écoulé est accumulé et consommé par tranches fixes, puis le
rendu est appelé une seule fois par tick.
"""
import enum
import time

from aggregation import WindGrid, accumulate
from config import build_config
from interpolation import interpolate
from land import apply_land_transition
from sampling import build_sample_grid, make_sample_data
from track import track_arrays, validate_track
from wind import evaluate_samples, holland_parameters


class ModelState:
    """État mutable de la tempête à l'instant simulé courant."""

    __slots__ = (
        "hour", "step_count",
        "eye_lon", "eye_lat", "heading", "speed_kt",
        "central_pressure_mb", "rmax_km", "a_holland", "b_holland",
        "on_land", "max_land_speed", "peak_speed",
    )

    def __init__(self, first_obs, physics):
        self.hour = first_obs.hour
        self.step_count = 0
        self.eye_lon = first_obs.lon
        self.eye_lat = first_obs.lat
        self.heading = first_obs.heading
        self.speed_kt = first_obs.speed_kt
        self.central_pressure_mb = min(first_obs.pressure_mb,
                                       physics["peripheral_pressure_mb"])
        self.rmax_km = min(max(physics["rmax_km"], physics["rmax_min_km"]),
                           physics["rmax_max_km"])
        self.a_holland, self.b_holland = holland_parameters(
            self.central_pressure_mb, self.rmax_km)
        self.on_land = False
        self.max_land_speed = 0.0
        self.peak_speed = 0.0


class HurricaneModel:
    """
    Simulation pas à pas du vent de surface d'une tempête.

    Parameters
    ----------
    track : track.Track — au moins 2 observations, temps strictement croissants
    config : mapping, optional — sections complètes ou partielles, fusionnées
        dans les valeurs par défaut et validées par config.build_config()
    land_mask : callable (lon, lat) -> bool, optional
        Évalué à l'œil à chaque pas. Sans masque, `state.on_land` reste
        sous le contrôle de l'appelant.
    """

    def __init__(self, track, config=None, land_mask=None):
        validate_track(track)
        self.config = build_config(config)
        self.track = track
        self.land_mask = land_mask

        s = self.config["SAMPLING"]
        self.model_type = self.config["MODEL"]["type"]
        self.physics = self.config["PHYSICS"]
        self.influence_radius_km = s["influence_radius_km"]
        self.dt_h = self.config["SIMULATION"]["dt_s"] / 3600.0

        self._arrays = track_arrays(track)
        self.sample_grid = build_sample_grid(s["n_radial"], s["n_angular"],
                                             s["influence_radius_km"])
        self.samples = make_sample_data(self.sample_grid)
        self.grid = WindGrid(self.config["GRID"]["step_deg"])
        self.reset()

    def reset(self):
        """Revient au début de la piste (grille et maxima remis à zéro)."""
        self.state = ModelState(self.track.observations[0], self.physics)
        self.grid.reset()
        for arr in self.samples:
            arr.fill(0.0)
        self.bounds = None
        self._complete = False

    @property
    def complete(self):
        return self._complete

    @property
    def start_hour(self):
        return float(self._arrays["hour"][0])

    def current_hour(self):
        return self.start_hour + self.state.step_count * self.dt_h

    def step(self):
        """
        Un pas physique.

        Returns
        -------
        bool — True si le pas a été simulé, False si la piste est épuisée
        (aucune modification de l'état dans ce cas).
        """
        if self._complete:
            return False

        t = self.current_hour()
        pos = interpolate(self._arrays, t)
        if pos is None:
            self._complete = True
            return False

        st = self.state
        st.hour = t
        st.eye_lon, st.eye_lat = pos.lon, pos.lat
        st.heading = pos.heading % 360.0
        st.speed_kt = pos.speed_kt

        if self.land_mask is not None:
            st.on_land = bool(self.land_mask(st.eye_lon, st.eye_lat))

        if st.on_land:
            apply_land_transition(st, self.physics, self.dt_h)
        else:
            st.central_pressure_mb = min(pos.pressure_mb,
                                         self.physics["peripheral_pressure_mb"])
            st.a_holland, st.b_holland = holland_parameters(
                st.central_pressure_mb, st.rmax_km)

        evaluate_samples(self.sample_grid, self.samples, self.model_type,
                         st, self.physics)
        self.bounds, peak = accumulate(self.grid, self.sample_grid, self.samples,
                                       st.eye_lon, st.eye_lat,
                                       self.influence_radius_km)

        st.peak_speed = max(st.peak_speed, peak)
        if st.on_land:
            st.max_land_speed = max(st.max_land_speed, peak)

        st.step_count += 1
        return True

    def snapshot(self):
        """Vues en lecture seule de la grille (voir aggregation.GridSnapshot)."""
        return self.grid.snapshot(self.bounds)


class ClockState(enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETE = "complete"


class SimulationClock:
    """
    Boucle à pas fixe pilotée par des ticks externes.

    Parameters
    ----------
    model : HurricaneModel
    render : callable (eye_lon, eye_lat, snapshot), optional
        Appelé une fois par tick après rattrapage, dès que le moteur a simulé
        au moins un pas : avant le premier pas il n'existe aucune empreinte
        à afficher et le rendu n'est pas appelé. Les ticks sur une simulation
        terminée ne rendent rien non plus. Le snapshot référence les
        tableaux du moteur : ne rien en conserver sans copie.
    clock : callable -> float, optional — horloge murale (secondes)
    """

    def __init__(self, model, render=None, clock=time.perf_counter):
        sim = model.config["SIMULATION"]
        self.model = model
        self.render = render
        self._clock = clock
        self.frame_dt_s = sim["frame_dt_s"]
        self.max_frame_s = sim["max_frame_s"]
        self.state = ClockState.IDLE
        self.accumulator = 0.0
        self.steps_last_tick = 0
        self._last = None

    def tick(self, now=None, elapsed=None):
        """
        Avance la simulation du temps réel écoulé depuis le tick précédent.

        Parameters
        ----------
        now : float, optional — instant mural courant (défaut : horloge)
        elapsed : float, optional — durée écoulée imposée (ignore l'horloge)

        Returns
        -------
        ClockState
        """
        if self.state is ClockState.COMPLETE:
            return self.state

        if elapsed is None:
            now = self._clock() if now is None else now
            elapsed = 0.0 if self._last is None else now - self._last
            self._last = now

        self.state = ClockState.RUNNING
        # Plafond : évite un rattrapage interminable après une pause
        self.accumulator += min(max(elapsed, 0.0), self.max_frame_s)

        n = 0
        while self.accumulator >= self.frame_dt_s:
            self.accumulator -= self.frame_dt_s
            if not self.model.step():
                self.state = ClockState.COMPLETE
                break
            n += 1
        self.steps_last_tick = n

        if self.render is not None and self.model.bounds is not None:
            st = self.model.state
            self.render(st.eye_lon, st.eye_lat, self.model.snapshot())

        return self.state

    def run(self, frame_interval_s=None):
        """
        Mode batch : ticks à intervalle fixe jusqu'à la fin de la piste.

        Returns
        -------
        int — nombre de ticks
        """
        interval = self.frame_dt_s if frame_interval_s is None else frame_interval_s
        if interval <= 0:
            raise ValueError(f"frame_interval_s doit être > 0 (reçu {interval})")

        n_ticks = 0
        while self.tick(elapsed=interval) is not ClockState.COMPLETE:
            n_ticks += 1
        return n_ticks + 1
