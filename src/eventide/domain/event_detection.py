# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
Event detector contract, bracket sampling and root isolation.

A detector exposes a scalar indicator g(state) whose sign change marks an
event, plus its sampling cadence, convergence threshold and iteration
budget. EventState tracks one detector across the accepted steps of a run:
it samples g through the step's dense output, opens brackets on sign
changes and refines them until the bracket is no wider than the threshold.
"""
import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable

from eventide.domain.errors import ConfigurationError, RootIsolationFailure
from eventide.domain.spacecraft_state import SpacecraftState
from eventide.ports import DenseOutput

logger = logging.getLogger(__name__)


class Action(Enum):
    """What the propagation loop does after an event is dispatched."""
    CONTINUE = "continue"
    STOP = "stop"
    RESET_DERIVATIVES = "reset_derivatives"
    RESET_STATE = "reset_state"


class Slope(Enum):
    """Which crossing directions a detector reacts to."""
    BOTH = "both"
    INCREASING = "increasing"
    DECREASING = "decreasing"

    def accepts(self, increasing: bool) -> bool:
        if self is Slope.BOTH:
            return True
        return increasing == (self is Slope.INCREASING)


@dataclass(frozen=True)
class DetectionSettings:
    """Sampling and convergence parameters of a detector.

    max_check_interval_s must be short enough that the indicator never
    changes sign twice between two samples.
    """
    max_check_interval_s: float = 600.0
    threshold_s: float = 1e-6
    max_iterations: int = 100

    def __post_init__(self) -> None:
        if not self.max_check_interval_s > 0:
            raise ConfigurationError(
                f"max_check_interval_s must be > 0, got {self.max_check_interval_s}"
            )
        if not self.threshold_s > 0:
            raise ConfigurationError(f"threshold_s must be > 0, got {self.threshold_s}")
        if self.max_iterations < 1:
            raise ConfigurationError(f"max_iterations must be >= 1, got {self.max_iterations}")


@dataclass(frozen=True)
class ArmCommand:
    """Request to add a trigger time to a detector (None: the owner)."""
    target: "float | datetime"
    detector: "EventDetector | None" = None


@dataclass(frozen=True)
class EventResponse:
    """Action returned by an occurrence handler, plus deferred arm commands."""
    action: Action
    arm: tuple[ArmCommand, ...] = ()


@dataclass(frozen=True)
class ScheduledEvent:
    """An isolated occurrence waiting to be dispatched within one step."""
    time_s: float
    detector: "EventDetector"
    increasing: bool
    order: int


@dataclass(frozen=True)
class EventRecord:
    """Log entry for a dispatched occurrence."""
    time_s: float
    epoch: datetime
    detector: str
    increasing: bool
    action: Action


class EventDetector:
    """Base class for event sources.

    Subclasses implement g(state). on_occurrence defaults to STOP and
    reset_state to the identity. Side effects inside on_occurrence are
    allowed, but the state argument is never mutated (it is frozen).
    """

    def __init__(
        self,
        settings: DetectionSettings | None = None,
        slope: Slope = Slope.BOTH,
        name: str | None = None,
    ) -> None:
        self.settings = settings if settings is not None else DetectionSettings()
        if not isinstance(slope, Slope):
            raise ConfigurationError(f"unsupported slope filter: {slope!r}")
        self.slope = slope
        self.name = name if name is not None else type(self).__name__

    @property
    def max_check_interval(self) -> float:
        return self.settings.max_check_interval_s

    @property
    def threshold(self) -> float:
        return self.settings.threshold_s

    @property
    def max_iterations(self) -> int:
        return self.settings.max_iterations

    def init(self, state: SpacecraftState, target_s: float) -> None:
        """Called once per run before the first indicator evaluation."""

    def g(self, state: SpacecraftState) -> float:
        raise NotImplementedError

    def on_occurrence(self, state: SpacecraftState, increasing: bool) -> "Action | EventResponse":
        return Action.STOP

    def reset_state(self, state: SpacecraftState) -> SpacecraftState:
        return state

    def arm(self, target_s: float, current_s: float) -> None:
        raise ConfigurationError(f"detector {self.name!r} does not accept trigger times")

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


def isolate_root(
    g: Callable[[float], float],
    ta: float,
    ga: float,
    tb: float,
    gb: float,
    threshold: float,
    max_iterations: int,
    detector: object = None,
) -> tuple[float, float]:
    """Shrink a sign-change bracket [ta, tb] to at most threshold wide.

    Illinois-modified regula falsi: a secant point, with the retained
    end's value halved when the same end survives twice, and a plain
    bisection whenever an iteration fails to halve the bracket. Trial
    points stay at least threshold/2 inside the bracket.

    ta/tb are ordered in propagation direction, so tb may be < ta.

    Returns:
        (t_before, t_after): bracket ends on the pre-crossing and
        post-crossing sides; t_after may carry g == 0.

    Raises:
        RootIsolationFailure: If max_iterations evaluations do not suffice.
    """
    a, fa, b, fb = ta, ga, tb, gb
    side = 0
    iterations = 0
    while abs(b - a) > threshold:
        if fb == 0.0:
            break
        if iterations >= max_iterations:
            raise RootIsolationFailure(detector, (ta, tb), iterations)
        width = abs(b - a)
        lo, hi = min(a, b), max(a, b)
        if side == 2 or fa == 0.0:
            x = 0.5 * (a + b)
        else:
            x = (a * fb - b * fa) / (fb - fa)
        x = min(max(x, lo + 0.5 * threshold), hi - 0.5 * threshold)
        fx = g(x)
        iterations += 1
        if fx == 0.0 or (fx > 0.0) == (fb > 0.0):
            b, fb = x, fx
            if side == -1:
                fa *= 0.5
            new_side = -1
        else:
            a, fa = x, fx
            if side == 1:
                fb *= 0.5
            new_side = 1
        side = 2 if abs(b - a) > 0.5 * width and side != 2 else new_side
    return a, b


class EventState:
    """Run-time tracking of one registered detector.

    Holds the last point at which the indicator is known (time, value,
    sign) and scans dense steps forward from it.
    """

    def __init__(self, detector: EventDetector, order: int) -> None:
        self.detector = detector
        self.order = order
        self._forward = True
        self._t0 = 0.0
        self._g0 = 0.0
        self._positive: bool | None = None
        self._end: tuple[float, float, bool | None] | None = None

    def initialize(self, t: float, state: SpacecraftState, forward: bool) -> None:
        self._forward = forward
        self.restart(t, state)

    def restart(self, t: float, state: SpacecraftState, positive: bool | None = None) -> None:
        """Re-anchor at t; positive overrides the sign after an own event."""
        self._t0 = t
        self._g0 = self.detector.g(state)
        if positive is None:
            positive = None if self._g0 == 0.0 else self._g0 > 0.0
        self._positive = positive
        self._end = None

    def find_event(
        self,
        step: DenseOutput,
        build_state: Callable[[float, tuple[float, ...]], SpacecraftState],
    ) -> ScheduledEvent | None:
        """First dispatchable occurrence in (t0, step.t1], or None.

        When no event is found the end-of-step indicator is remembered so
        that commit() can move the anchor without re-evaluating g.
        """
        detector = self.detector
        sign = 1.0 if self._forward else -1.0
        t_end = step.t1

        def g_at(t: float) -> float:
            return detector.g(build_state(t, step.state_at(t)))

        ta, ga, positive = self._t0, self._g0, self._positive
        while (t_end - ta) * sign > 0.0:
            remaining = abs(t_end - ta)
            n = max(1, math.ceil(remaining / detector.max_check_interval))
            tb = t_end if n == 1 else ta + sign * remaining / n
            gb = g_at(tb)
            if positive is None:
                if gb != 0.0:
                    positive = gb > 0.0
            elif gb == 0.0 or (gb > 0.0) != positive:
                if gb == 0.0:
                    t_after = tb
                else:
                    _, t_after = isolate_root(
                        g_at, ta, ga, tb, gb,
                        detector.threshold, detector.max_iterations, detector,
                    )
                increasing = positive != self._forward
                if detector.slope.accepts(increasing):
                    return ScheduledEvent(t_after, detector, increasing, self.order)
                logger.debug(
                    "%s: %s crossing at t=%.9f s filtered by slope",
                    detector.name, "increasing" if increasing else "decreasing", t_after,
                )
                positive = not positive
                ta, ga = t_after, g_at(t_after)
                continue
            ta, ga = tb, gb
        self._end = (ta, ga, positive)
        return None

    def commit(self) -> None:
        """Move the anchor to the end of the fully scanned step."""
        if self._end is not None:
            self._t0, self._g0, self._positive = self._end
            self._end = None

    def post_event_sign(self, event: ScheduledEvent) -> bool:
        """Indicator sign just past an own event, in propagation order."""
        return event.increasing == self._forward
