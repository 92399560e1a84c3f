# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
Ephemerides built on sampled and reference states.

SampledEphemeris interpolates a recorded trajectory (position as value,
velocity as its time derivative). ReferenceEphemeris holds independent
reference fixes and extrapolates the one closest to the requested epoch,
building one propagator per fix on first use. ReferenceUpdateDetector
snaps a running propagation onto the reference ephemeris at given times.
"""
import logging
from datetime import datetime
from typing import Iterable, Sequence

from eventide.domain.date_detection import DateDetector
from eventide.domain.errors import ConfigurationError
from eventide.domain.event_detection import Action, DetectionSettings
from eventide.domain.event_propagation import EventPropagator
from eventide.domain.interpolation import BracketedInterpolator, HermiteSample
from eventide.domain.record_selection import NearestRecordSelector, Record
from eventide.domain.spacecraft_state import SpacecraftState, to_elapsed_seconds
from eventide.ports import ForceModel

logger = logging.getLogger(__name__)


class SampledEphemeris:
    """Hermite interpolation of position/velocity between recorded states.

    All states are expressed against the reference epoch of the first one.
    """

    def __init__(self, states: Sequence[SpacecraftState]) -> None:
        states = tuple(states)
        if not states:
            raise ConfigurationError("ephemeris needs at least one state")
        self.reference_epoch = states[0].reference_epoch
        self._states = tuple(s.rebased(self.reference_epoch) for s in states)
        self._interpolator = BracketedInterpolator(
            HermiteSample(s.elapsed_s, s.position_eci, s.velocity_eci) for s in self._states
        )

    def __len__(self) -> int:
        return len(self._states)

    @property
    def states(self) -> tuple[SpacecraftState, ...]:
        return self._states

    @property
    def span_s(self) -> tuple[float, float]:
        return self._interpolator.bounds

    def position_velocity_at(
        self, target: "float | datetime",
    ) -> tuple[tuple[float, float, float], tuple[float, float, float]]:
        """Interpolated (position, velocity) at target.

        Raises:
            OutOfRangeQuery: If target is outside the recorded span.
        """
        position, velocity = self._interpolator.value_at(
            to_elapsed_seconds(target, self.reference_epoch)
        )
        return position, velocity


class EphemerisRecorder:
    """Step handler collecting every delivered state."""

    def __init__(self) -> None:
        self.states: list[SpacecraftState] = []

    def __call__(self, state: SpacecraftState, is_last: bool) -> None:
        self.states.append(state)

    def build(self) -> SampledEphemeris:
        return SampledEphemeris(self.states)


class _Extrapolator:
    """Propagates one reference state to arbitrary epochs."""

    def __init__(self, reference: SpacecraftState, force_models: Sequence[ForceModel]) -> None:
        self.reference = reference
        self._propagator = EventPropagator(force_models)

    def state_at(self, state: SpacecraftState) -> SpacecraftState:
        target_s = state.rebased(self.reference.reference_epoch).elapsed_s
        if target_s == self.reference.elapsed_s:
            return self.reference.rebased(state.reference_epoch)
        result = self._propagator.propagate(self.reference, target_s)
        return result.rebased(state.reference_epoch)


class ReferenceEphemeris:
    """Nearest-fix extrapolation over a set of reference states.

    Args:
        states: Reference fixes; each may carry its own reference epoch.
        force_models: Models used to extrapolate fixes. They must not be
            shared with a running propagator (their detectors would be
            registered twice).
        keys: Optional identity per fix; defaults to the position in
            states. Fixes with the same key and epoch are kept once.
    """

    def __init__(
        self,
        states: Iterable[SpacecraftState],
        force_models: Sequence[ForceModel] = (),
        keys: Iterable | None = None,
    ) -> None:
        states = list(states)
        keys = list(keys) if keys is not None else list(range(len(states)))
        if len(keys) != len(states):
            raise ConfigurationError(f"got {len(keys)} keys for {len(states)} states")
        self._force_models = tuple(force_models)
        self._selector = NearestRecordSelector(
            (Record(key=k, epoch=s.epoch, payload=s) for k, s in zip(keys, states)),
            factory=self._build_extrapolator,
        )
        if not len(self._selector):
            raise ConfigurationError("reference ephemeris needs at least one state")
        self.extrapolators_built = 0

    def __len__(self) -> int:
        return len(self._selector)

    @property
    def selector(self) -> NearestRecordSelector:
        return self._selector

    def closest(self, epoch: datetime) -> SpacecraftState:
        return self._selector.get_closest(epoch).payload

    def state_for(self, state: SpacecraftState) -> SpacecraftState:
        """Reference trajectory at the epoch of state, in its reference frame."""
        extrapolator = self._selector.derived(state.epoch)
        return extrapolator.state_at(state)

    def _build_extrapolator(self, record: Record) -> _Extrapolator:
        self.extrapolators_built += 1
        logger.debug("building extrapolator for reference fix %r at %s", record.key, record.epoch)
        return _Extrapolator(record.payload, self._force_models)


class ReferenceUpdateDetector(DateDetector):
    """Date trigger replacing the orbit by the reference ephemeris.

    Position and velocity come from the ephemeris; the running mass is
    kept.
    """

    def __init__(
        self,
        ephemeris: ReferenceEphemeris,
        update_times: Iterable["float | datetime"],
        settings: DetectionSettings | None = None,
        name: str | None = None,
    ) -> None:
        super().__init__(update_times, settings, name=name)
        self._ephemeris = ephemeris
        self.updates = 0

    def on_occurrence(self, state: SpacecraftState, increasing: bool) -> Action:
        return Action.RESET_STATE

    def reset_state(self, state: SpacecraftState) -> SpacecraftState:
        self.updates += 1
        reference = self._ephemeris.state_for(state)
        logger.debug("%s: orbit reset from reference at t=%.6f s", self.name, state.elapsed_s)
        return reference.with_mass(state.mass_kg)
