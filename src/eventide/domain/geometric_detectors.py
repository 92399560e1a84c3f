# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
Geometric threshold triggers.

Each indicator is a smooth function of position and velocity whose
zeros mark the geometric event. Without a handler every detector stops
the run at its first occurrence.
"""
from typing import Callable

import numpy as np

from eventide.domain.event_detection import (
    Action,
    DetectionSettings,
    EventDetector,
    EventResponse,
    Slope,
)
from eventide.domain.orbital_mechanics import OrbitalConstants
from eventide.domain.spacecraft_state import SpacecraftState

OccurrenceHandler = Callable[[SpacecraftState, bool], "Action | EventResponse"]


class _HandledDetector(EventDetector):
    """Detector whose occurrence behaviour is an injected callable."""

    def __init__(
        self,
        settings: DetectionSettings | None = None,
        slope: Slope = Slope.BOTH,
        handler: OccurrenceHandler | None = None,
        name: str | None = None,
    ) -> None:
        super().__init__(settings, slope, name)
        self._handler = handler

    def on_occurrence(self, state: SpacecraftState, increasing: bool) -> "Action | EventResponse":
        if self._handler is not None:
            return self._handler(state, increasing)
        return Action.STOP


class NodeDetector(_HandledDetector):
    """Equatorial plane crossings; increasing is the ascending node."""

    def g(self, state: SpacecraftState) -> float:
        return state.position_eci[2]


class AltitudeDetector(_HandledDetector):
    """Crossings of a spherical altitude threshold; increasing means climbing."""

    def __init__(
        self,
        altitude_m: float,
        settings: DetectionSettings | None = None,
        slope: Slope = Slope.BOTH,
        handler: OccurrenceHandler | None = None,
        body_radius_m: float = OrbitalConstants.R_EARTH_EQUATORIAL,
        name: str | None = None,
    ) -> None:
        super().__init__(settings, slope, handler, name)
        self.altitude_m = altitude_m
        self._threshold_radius = body_radius_m + altitude_m

    def g(self, state: SpacecraftState) -> float:
        return state.radius_m - self._threshold_radius


class ApsideDetector(_HandledDetector):
    """Apsides: r·v goes increasing at periapsis, decreasing at apoapsis."""

    def g(self, state: SpacecraftState) -> float:
        return float(np.dot(state.position_eci, state.velocity_eci))


class LatitudeExtremumDetector(_HandledDetector):
    """Extrema of geocentric latitude (zeros of its time derivative).

    Decreasing crossings are latitude maxima, increasing ones minima.
    The indicator is dlat/dt scaled by cos(lat), which keeps its sign and
    avoids the pole singularity.
    """

    def g(self, state: SpacecraftState) -> float:
        pos = np.array(state.position_eci)
        vel = np.array(state.velocity_eci)
        r2 = float(np.dot(pos, pos))
        r = float(np.sqrt(r2))
        return (vel[2] * r2 - pos[2] * float(np.dot(pos, vel))) / (r2 * r)
