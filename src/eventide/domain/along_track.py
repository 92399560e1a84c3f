# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
Along-track aiming from a sampled half ground track.

The half track runs between a latitude minimum and the following maximum
(ascending) or between a maximum and the following minimum (descending).
Its span is found with a latitude-extremum detector, then the span is
sampled with fixed-step output and indexed by geocentric latitude. The
track is inertial; the central body's rotation is not modelled.

The derivative channel carries the inertial velocity times the mean
time per radian of latitude over the half track. That keeps it
commensurate with the position channel while staying finite at the
latitude extrema, where the true dr/dlat diverges; the returned direction
is the velocity direction.
"""
import logging
import math
from typing import Sequence

import numpy as np

from eventide.domain.errors import ConfigurationError, OutOfRangeQuery
from eventide.domain.event_detection import Action, DetectionSettings
from eventide.domain.event_propagation import EventPropagator
from eventide.domain.frames import Transform
from eventide.domain.geometric_detectors import LatitudeExtremumDetector
from eventide.domain.interpolation import BracketedInterpolator, HermiteSample
from eventide.domain.orbital_mechanics import orbital_period, semi_major_axis
from eventide.domain.spacecraft_state import SpacecraftState
from eventide.ports import ForceModel

logger = logging.getLogger(__name__)

SAMPLING_STEPS = 1000


def geocentric_latitude(position: Sequence[float]) -> float:
    return math.asin(position[2] / math.sqrt(position[0] ** 2 + position[1] ** 2 + position[2] ** 2))


class _HalfTrackSpan:
    """Occurrence handler remembering the first complete half track."""

    def __init__(self, ascending: bool) -> None:
        self._ascending = ascending
        self.start: SpacecraftState | None = None
        self.end: SpacecraftState | None = None

    def __call__(self, state: SpacecraftState, increasing: bool) -> Action:
        # increasing crossings of dlat/dt are latitude minima
        if self.start is None:
            if increasing == self._ascending:
                self.start = state
            return Action.CONTINUE
        self.end = state
        return Action.STOP


class AlongTrackAiming:
    """Tile aiming along the ascending or descending half of an orbit track.

    Args:
        initial_state: Any state of the orbit.
        force_models: Models used to propagate the orbit.
        ascending: Select the ascending (True) or descending half track.
        sampling_steps: Number of fixed steps over the half track.

    Raises:
        ConfigurationError: If no latitude extrema are found within three
            orbital periods (e.g. an equatorial orbit).
    """

    def __init__(
        self,
        initial_state: SpacecraftState,
        force_models: Sequence[ForceModel],
        ascending: bool = True,
        sampling_steps: int = SAMPLING_STEPS,
    ) -> None:
        if sampling_steps < 3:
            raise ConfigurationError(f"sampling_steps must be >= 3, got {sampling_steps}")
        self.ascending = ascending
        self._track = self._sample_half_track(initial_state, tuple(force_models), sampling_steps)
        first, last = self._track[0], self._track[-1]
        self._time_per_radian = (last.elapsed_s - first.elapsed_s) / (
            geocentric_latitude(last.position_eci) - geocentric_latitude(first.position_eci)
        )
        self._interpolator = BracketedInterpolator(
            HermiteSample(
                geocentric_latitude(s.position_eci),
                s.position_eci,
                tuple(self._time_per_radian * v for v in s.velocity_eci),
            )
            for s in self._track
        )
        self.min_latitude, self.max_latitude = self._interpolator.bounds

    @property
    def half_track(self) -> tuple[SpacecraftState, ...]:
        return self._track

    def sliding_point(
        self, latitude_rad: float,
    ) -> tuple[tuple[float, float, float], tuple[float, float, float]]:
        """Track position at latitude_rad and the unit along-track direction.

        Raises:
            OutOfRangeQuery: If the half track never reaches latitude_rad.
        """
        if not self.min_latitude <= latitude_rad <= self.max_latitude:
            raise OutOfRangeQuery(latitude_rad, self.min_latitude, self.max_latitude)
        position, derivative = self._interpolator.value_at(latitude_rad)
        d = np.array(derivative) / self._time_per_radian
        d = d / np.linalg.norm(d)
        return position, (float(d[0]), float(d[1]), float(d[2]))

    def along_tile_direction(self, point: Sequence[float]) -> tuple[float, float, float]:
        """Along-track unit direction at point, rotated to the point's longitude."""
        position, direction = self.sliding_point(geocentric_latitude(point))
        delta = math.atan2(point[1], point[0]) - math.atan2(position[1], position[0])
        c, s = math.cos(delta), math.sin(delta)
        about_pole = Transform(rotation=((c, -s, 0.0), (s, c, 0.0), (0.0, 0.0, 1.0)))
        return about_pole.transform_vector(direction)

    def _sample_half_track(
        self,
        initial_state: SpacecraftState,
        force_models: tuple[ForceModel, ...],
        sampling_steps: int,
    ) -> tuple[SpacecraftState, ...]:
        period = orbital_period(semi_major_axis(initial_state))
        span = _HalfTrackSpan(self.ascending)
        propagator = EventPropagator(force_models)
        propagator.add_detector(
            LatitudeExtremumDetector(
                DetectionSettings(max_check_interval_s=0.25 * period, threshold_s=1.0e-3),
                handler=span,
            )
        )
        propagator.propagate(initial_state, initial_state.elapsed_s + 3.0 * period)
        if span.start is None or span.end is None:
            raise ConfigurationError("orbit has no latitude extrema to bound a half track")

        samples: list[SpacecraftState] = []
        propagator.clear_detectors()
        propagator.set_step_handler(
            (span.end.elapsed_s - span.start.elapsed_s) / sampling_steps,
            lambda state, is_last: samples.append(state),
        )
        propagator.propagate(span.start, span.end.elapsed_s)
        logger.debug(
            "%s half track: %d samples over [%.3f, %.3f] s",
            "ascending" if self.ascending else "descending",
            len(samples), span.start.elapsed_s, span.end.elapsed_s,
        )
        return tuple(samples)
