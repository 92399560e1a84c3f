# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
Event-driven numerical propagation.

The propagator asks the integrator for one accepted step at a time, scans
every registered detector over that step through dense output, and
dispatches isolated events in time order (registration order on exact
ties). CONTINUE keeps the rest of the step; RESET_DERIVATIVES and
RESET_STATE cut the step at the event and restart integration there
without reusing any derivative evaluated before it; STOP ends the run.

Single-threaded by construction. Detectors carrying mutable flags belong
to one propagator at a time.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Sequence

from eventide.domain.adaptive_integration import DormandPrinceIntegrator
from eventide.domain.errors import ConfigurationError, IntegrationFailure
from eventide.domain.event_detection import (
    Action,
    EventDetector,
    EventRecord,
    EventResponse,
    EventState,
    ScheduledEvent,
)
from eventide.domain.forces import build_derivative_function
from eventide.domain.spacecraft_state import SpacecraftState, to_elapsed_seconds
from eventide.ports import DenseOutput, DetectorSource, ForceModel, Integrator, StepHandler

logger = logging.getLogger(__name__)

StateBuilder = Callable[[float, tuple[float, ...]], SpacecraftState]


@dataclass(frozen=True)
class _StepOutcome:
    time_s: float
    state: SpacecraftState
    truncated: bool = False
    stopped: bool = False


class _OutputGrid:
    """Fixed-cadence output driven from dense steps."""

    def __init__(self, handler: StepHandler, step_s: float, t_start: float, t_end: float) -> None:
        self._handler = handler
        self._step_s = step_s
        self._t_start = t_start
        self._t_end = t_end
        self._sign = 1.0 if t_end >= t_start else -1.0
        # Grid points within round-off of the end are covered by the final state
        self._end_margin = 1e-9 * step_s
        self._index = 1

    def emit_until(self, step: DenseOutput, t_limit: float, build_state: StateBuilder) -> None:
        while True:
            t = self._t_start + self._sign * self._index * self._step_s
            if (t - t_limit) * self._sign > 0.0 or (t - self._t_end) * self._sign >= -self._end_margin:
                return
            self._handler(build_state(t, step.state_at(t)), False)
            self._index += 1


def _normalize(response: "Action | EventResponse") -> EventResponse:
    if isinstance(response, EventResponse):
        return response
    if isinstance(response, Action):
        return EventResponse(response)
    raise ConfigurationError(f"unsupported occurrence response: {response!r}")


class EventPropagator:
    """Numerical propagator with discrete event handling.

    Args:
        force_models: Models summed into the equations of motion. Models
            that expose event_detectors() get their detectors registered.
        integrator: Integration primitive; Dormand-Prince by default. Its
            own configuration picks the first trial step of every run.
        max_steps: Upper bound on accepted steps per run.
    """

    def __init__(
        self,
        force_models: Sequence[ForceModel] = (),
        integrator: Integrator | None = None,
        max_steps: int = 1_000_000,
    ) -> None:
        if max_steps < 1:
            raise ConfigurationError(f"max_steps must be >= 1, got {max_steps}")
        self._integrator = integrator if integrator is not None else DormandPrinceIntegrator()
        self._max_steps = max_steps
        self._force_models: list[ForceModel] = []
        self._detectors: list[EventDetector] = []
        self._step_handler: StepHandler | None = None
        self._handler_step_s = 0.0
        self._running = False
        self.events: list[EventRecord] = []
        for fm in force_models:
            self.add_force_model(fm)

    @property
    def detectors(self) -> tuple[EventDetector, ...]:
        return tuple(self._detectors)

    @property
    def force_models(self) -> tuple[ForceModel, ...]:
        return tuple(self._force_models)

    def add_force_model(self, force_model: ForceModel) -> None:
        self._check_idle()
        self._force_models.append(force_model)
        if isinstance(force_model, DetectorSource):
            for detector in force_model.event_detectors():
                self.add_detector(detector)

    def add_detector(self, detector: EventDetector) -> None:
        """Register a detector; registration order breaks exact time ties."""
        self._check_idle()
        if any(d is detector for d in self._detectors):
            raise ConfigurationError(f"detector {detector.name!r} is already registered")
        self._detectors.append(detector)

    def clear_detectors(self) -> None:
        self._check_idle()
        self._detectors.clear()

    def set_step_handler(self, step_s: float, handler: StepHandler) -> None:
        """Deliver states every step_s seconds (and the final state) to handler."""
        self._check_idle()
        if step_s <= 0:
            raise ConfigurationError(f"step_s must be > 0, got {step_s}")
        self._step_handler = handler
        self._handler_step_s = step_s

    def clear_step_handler(self) -> None:
        self._check_idle()
        self._step_handler = None

    def propagate(self, initial_state: SpacecraftState, target: "float | datetime") -> SpacecraftState:
        """Propagate to target (elapsed seconds or datetime) or to a STOP event.

        Raises:
            RootIsolationFailure: An event bracket did not converge.
            MonotonicityViolation: A detector was armed against the flow of time.
            IntegrationFailure: The integrator could not make progress.
        """
        self._check_idle()
        self._running = True
        try:
            return self._run(initial_state, target)
        finally:
            self._running = False

    def _check_idle(self) -> None:
        if self._running:
            raise ConfigurationError("propagator configuration cannot change during a run")

    def _run(self, initial_state: SpacecraftState, target: "float | datetime") -> SpacecraftState:
        ref = initial_state.reference_epoch
        t = initial_state.elapsed_s
        t_target = to_elapsed_seconds(target, ref)
        forward = t_target >= t
        self.events = []

        def build_state(time_s: float, vector: tuple[float, ...]) -> SpacecraftState:
            return SpacecraftState.from_vector(ref, time_s, vector)

        deriv_fn = build_derivative_function(self._force_models, ref)
        for detector in self._detectors:
            detector.init(initial_state, t_target)
        states = [EventState(d, i) for i, d in enumerate(self._detectors)]
        for es in states:
            es.initialize(t, initial_state, forward)

        grid = None
        if self._step_handler is not None:
            grid = _OutputGrid(self._step_handler, self._handler_step_s, t, t_target)
            if t != t_target:
                self._step_handler(initial_state, False)

        current = initial_state
        y = current.to_vector()
        f0: tuple[float, ...] | None = None
        h: float | None = None
        steps = 0
        while t != t_target:
            if steps >= self._max_steps:
                raise IntegrationFailure(f"exceeded max_steps={self._max_steps} before t={t_target}")
            step, h = self._integrator.advance(deriv_fn, t, y, t_target, h, f0)
            steps += 1
            outcome = self._resolve_step(step, states, build_state, grid)
            t = outcome.time_s
            current = outcome.state
            if outcome.stopped:
                break
            y = current.to_vector()
            f0 = None if outcome.truncated else step.f1

        if self._step_handler is not None:
            self._step_handler(current, True)
        return current

    def _resolve_step(
        self,
        step: DenseOutput,
        states: list[EventState],
        build_state: StateBuilder,
        grid: _OutputGrid | None,
    ) -> _StepOutcome:
        sign = 1.0 if step.t1 >= step.t0 else -1.0
        by_detector = {id(es.detector): es for es in states}
        pending: dict[int, ScheduledEvent | None] = {
            es.order: es.find_event(step, build_state) for es in states
        }

        while True:
            candidates = [ev for ev in pending.values() if ev is not None]
            if not candidates:
                break
            first = min(candidates, key=lambda ev: (sign * ev.time_s, ev.order))
            te = first.time_s
            ties = sorted((ev for ev in candidates if ev.time_s == te), key=lambda ev: ev.order)
            if grid is not None:
                grid.emit_until(step, te, build_state)

            state = build_state(te, step.state_at(te))
            truncate = False
            state_replaced = False
            dispatched: list[tuple[EventState, ScheduledEvent]] = []
            rescan: set[int] = set()
            for ev in ties:
                es = states[ev.order]
                response = _normalize(ev.detector.on_occurrence(state, ev.increasing))
                self.events.append(
                    EventRecord(te, state.epoch, ev.detector.name, ev.increasing, response.action)
                )
                logger.debug(
                    "event %s at t=%.9f s (%s) -> %s",
                    ev.detector.name, te,
                    "increasing" if ev.increasing else "decreasing",
                    response.action.value,
                )
                for command in response.arm:
                    owner = command.detector if command.detector is not None else ev.detector
                    armed = by_detector.get(id(owner))
                    if armed is None:
                        raise ConfigurationError(f"cannot arm unregistered detector {owner.name!r}")
                    owner.arm(to_elapsed_seconds(command.target, state.reference_epoch), te)
                    rescan.add(armed.order)
                pending[ev.order] = None
                dispatched.append((es, ev))

                if response.action is Action.STOP:
                    return _StepOutcome(te, state, stopped=True)
                if response.action is Action.RESET_STATE:
                    reset = ev.detector.reset_state(state)
                    state = SpacecraftState.from_vector(state.reference_epoch, te, reset.to_vector())
                    state_replaced = True
                    truncate = True
                    logger.debug("state reset by %s at t=%.9f s", ev.detector.name, te)
                elif response.action is Action.RESET_DERIVATIVES:
                    truncate = True

            if truncate:
                fired = {es.order for es, _ in dispatched}
                for es, ev in dispatched:
                    es.restart(te, state, None if state_replaced else es.post_event_sign(ev))
                for es in states:
                    if es.order not in fired:
                        es.restart(te, state)
                return _StepOutcome(te, state, truncated=True)

            for es, ev in dispatched:
                es.restart(te, state, es.post_event_sign(ev))
                rescan.add(es.order)
            for order in sorted(rescan):
                pending[order] = states[order].find_event(step, build_state)

        if grid is not None:
            grid.emit_until(step, step.t1, build_state)
        for es in states:
            es.commit()
        return _StepOutcome(step.t1, build_state(step.t1, step.state_at(step.t1)))
