# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
Constant-thrust finite maneuvers.

A ConstantThrustManeuver is both a force/mass-flow model and the owner of
two date-like detectors. The engine state lives in a ThrustStatus cell
that the maneuver owns and hands explicitly to its start and stop
detectors; each detector flips it and asks for derivatives to be reset so
the thrust switches on or off exactly at the isolated time.
"""
import logging
from dataclasses import dataclass
from datetime import datetime

import numpy as np

from eventide.domain.errors import ConfigurationError
from eventide.domain.event_detection import Action, DetectionSettings, EventDetector
from eventide.domain.frames import ThrustFrame, local_orbital_frame
from eventide.domain.orbital_mechanics import OrbitalConstants
from eventide.domain.spacecraft_state import SpacecraftState, to_elapsed_seconds
from eventide.ports import AttitudeProvider

logger = logging.getLogger(__name__)

_SWITCH_THRESHOLD_S = 1.0e-4
_SWITCH_MAX_ITERATIONS = 10


@dataclass
class ThrustStatus:
    """Engine on/off cell shared by a maneuver and its two switches."""
    firing: bool = False


class _ThrustSwitch(EventDetector):
    """Indicator is the signed time remaining until the switch date."""

    def __init__(self, maneuver: "ConstantThrustManeuver", status: ThrustStatus, name: str) -> None:
        super().__init__(
            DetectionSettings(
                max_check_interval_s=maneuver.duration_s,
                threshold_s=_SWITCH_THRESHOLD_S,
                max_iterations=_SWITCH_MAX_ITERATIONS,
            ),
            name=name,
        )
        self._maneuver = maneuver
        self._status = status
        self._forward = True
        self._switch_s = 0.0

    def init(self, state: SpacecraftState, target_s: float) -> None:
        self._forward = target_s >= state.elapsed_s
        self._switch_s = self._resolve(state)

    def g(self, state: SpacecraftState) -> float:
        return self._switch_s - state.elapsed_s

    def _resolve(self, state: SpacecraftState) -> float:
        raise NotImplementedError


class ManeuverStartDetector(_ThrustSwitch):
    """Ignition switch (cutoff when propagating backward)."""

    def init(self, state: SpacecraftState, target_s: float) -> None:
        super().init(state, target_s)
        start_s, stop_s = self._maneuver.window_s(state.reference_epoch)
        t = state.elapsed_s
        if self._forward:
            self._status.firing = start_s <= t < stop_s
        else:
            self._status.firing = start_s < t <= stop_s

    def _resolve(self, state: SpacecraftState) -> float:
        return self._maneuver.window_s(state.reference_epoch)[0]

    def on_occurrence(self, state: SpacecraftState, increasing: bool) -> Action:
        self._status.firing = self._forward
        logger.debug("%s: engine %s at t=%.6f s", self.name,
                     "on" if self._status.firing else "off", state.elapsed_s)
        return Action.RESET_DERIVATIVES


class ManeuverStopDetector(_ThrustSwitch):
    """Cutoff switch (ignition when propagating backward)."""

    def _resolve(self, state: SpacecraftState) -> float:
        return self._maneuver.window_s(state.reference_epoch)[1]

    def on_occurrence(self, state: SpacecraftState, increasing: bool) -> Action:
        self._status.firing = not self._forward
        logger.debug("%s: engine %s at t=%.6f s", self.name,
                     "on" if self._status.firing else "off", state.elapsed_s)
        return Action.RESET_DERIVATIVES


class ConstantThrustManeuver:
    """Finite burn with constant thrust and specific impulse.

    Args:
        ignition: Burn start (or end, if duration_s < 0), as elapsed
            seconds of the run or as a datetime.
        duration_s: Burn length; negative means ignition is the cutoff date.
        thrust_n: Thrust magnitude (N).
        isp_s: Specific impulse (s).
        direction: Thrust direction in the chosen frame (normalized here).
        frame: ThrustFrame of the direction.
        attitude: Attitude provider, required for ThrustFrame.SPACECRAFT.

    Raises:
        ConfigurationError: Unsupported frame, missing attitude, or
            non-positive duration, thrust, isp, or direction norm.
    """

    def __init__(
        self,
        ignition: "float | datetime",
        duration_s: float,
        thrust_n: float,
        isp_s: float,
        direction: tuple[float, float, float],
        frame: "ThrustFrame | int" = ThrustFrame.INERTIAL,
        attitude: AttitudeProvider | None = None,
    ) -> None:
        try:
            frame = ThrustFrame(frame)
        except ValueError:
            raise ConfigurationError(
                f"unsupported thrust direction frame {frame!r}, supported types: "
                + ", ".join(f.name for f in ThrustFrame)
            ) from None
        if frame is ThrustFrame.SPACECRAFT and attitude is None:
            raise ConfigurationError("SPACECRAFT thrust frame requires an attitude provider")
        if duration_s == 0:
            raise ConfigurationError("duration_s must be non-zero")
        if thrust_n <= 0:
            raise ConfigurationError(f"thrust_n must be > 0, got {thrust_n}")
        if isp_s <= 0:
            raise ConfigurationError(f"isp_s must be > 0, got {isp_s}")
        d = np.array(direction, dtype=float)
        norm = float(np.linalg.norm(d))
        if norm == 0.0:
            raise ConfigurationError("thrust direction must be non-zero")

        self._ignition = ignition
        self._signed_duration_s = duration_s
        self.duration_s = abs(duration_s)
        self.thrust_n = thrust_n
        self.isp_s = isp_s
        self.flow_rate_kg_s = -thrust_n / (OrbitalConstants.G0 * isp_s)
        self.direction = (float(d[0] / norm), float(d[1] / norm), float(d[2] / norm))
        self.frame = frame
        self._attitude = attitude
        self.status = ThrustStatus()
        self.start_detector = ManeuverStartDetector(self, self.status, "maneuver-start")
        self.stop_detector = ManeuverStopDetector(self, self.status, "maneuver-stop")

    @property
    def firing(self) -> bool:
        return self.status.firing

    def window_s(self, reference_epoch: datetime) -> tuple[float, float]:
        """(start, stop) of the burn as elapsed seconds since reference_epoch."""
        date_s = to_elapsed_seconds(self._ignition, reference_epoch)
        if self._signed_duration_s >= 0:
            return date_s, date_s + self._signed_duration_s
        return date_s + self._signed_duration_s, date_s

    def event_detectors(self) -> tuple[EventDetector, ...]:
        return (self.start_detector, self.stop_detector)

    def acceleration(self, state: SpacecraftState) -> tuple[float, float, float]:
        if not self.status.firing:
            return (0.0, 0.0, 0.0)
        magnitude = self.thrust_n / state.mass_kg
        if self.frame is ThrustFrame.INERTIAL:
            inertial = self.direction
        elif self.frame is ThrustFrame.SPACECRAFT:
            inertial = self._attitude.attitude(state).inverse().transform_vector(self.direction)
        else:
            inertial = local_orbital_frame(state, self.frame).inverse().transform_vector(self.direction)
        return (magnitude * inertial[0], magnitude * inertial[1], magnitude * inertial[2])

    def mass_rate(self, state: SpacecraftState) -> float:
        return self.flow_rate_kg_s if self.status.firing else 0.0
