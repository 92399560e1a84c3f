# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
Date triggers.

The indicator is the signed time offset to the nearest target. Slopes
alternate from one target to the next so the indicator stays continuous
at the midpoints between targets and changes sign exactly once per
target. New targets may be armed while a run is in progress, but only
ahead of the current time and beyond the last target in the direction of
propagation; anything else is a MonotonicityViolation.
"""
import logging
from datetime import datetime
from typing import Callable, Iterable

from eventide.domain.errors import ConfigurationError, MonotonicityViolation
from eventide.domain.event_detection import (
    Action,
    DetectionSettings,
    EventDetector,
    EventResponse,
)
from eventide.domain.record_selection import NearestRecordSelector, Record
from eventide.domain.spacecraft_state import SpacecraftState, to_elapsed_seconds

logger = logging.getLogger(__name__)

OccurrenceHandler = Callable[[SpacecraftState, bool], "Action | EventResponse"]


class DateDetector(EventDetector):
    """Fires when the propagation reaches each target time.

    Args:
        targets: Target times, elapsed seconds or datetimes.
        settings: Sampling settings; consecutive targets must be more than
            max_check_interval_s apart.
        handler: Optional occurrence callback; the default action is STOP.
        name: Label used in logs and errors.
    """

    def __init__(
        self,
        targets: Iterable["float | datetime"] = (),
        settings: DetectionSettings | None = None,
        handler: OccurrenceHandler | None = None,
        name: str | None = None,
    ) -> None:
        super().__init__(settings, name=name)
        self._configured: list[float | datetime] = list(targets)
        self._handler = handler
        self._selector = NearestRecordSelector()
        self._forward = True
        self._sequence = 0

    @property
    def targets(self) -> tuple[float, ...]:
        """Active target times of the current run, in propagation order."""
        times = tuple(record.epoch for record in self._selector)
        return times if self._forward else tuple(reversed(times))

    def add_target(self, target: "float | datetime") -> None:
        """Add a target before a run; checked when the run starts."""
        self._configured.append(target)

    def init(self, state: SpacecraftState, target_s: float) -> None:
        self._forward = target_s >= state.elapsed_s
        sign = 1.0 if self._forward else -1.0
        times = sorted(
            (to_elapsed_seconds(t, state.reference_epoch) for t in self._configured),
            key=lambda t: sign * t,
        )
        ahead = [t for t in times if (t - state.elapsed_s) * sign >= 0.0]
        if len(ahead) < len(times):
            logger.debug(
                "%s: discarded %d target(s) behind run start t=%.6f",
                self.name, len(times) - len(ahead), state.elapsed_s,
            )
        for earlier, later in zip(ahead, ahead[1:]):
            if (later - earlier) * sign <= self.max_check_interval:
                raise ConfigurationError(
                    f"{self.name}: targets {earlier} and {later} are not more than "
                    f"max_check_interval={self.max_check_interval} s apart"
                )
        self._selector = NearestRecordSelector()
        self._sequence = 0
        for t in ahead:
            self._append(t)

    def g(self, state: SpacecraftState) -> float:
        if not len(self._selector):
            return -1.0
        record = self._selector.get_closest(state.elapsed_s)
        if record.payload:
            return state.elapsed_s - record.epoch
        return record.epoch - state.elapsed_s

    def on_occurrence(self, state: SpacecraftState, increasing: bool) -> "Action | EventResponse":
        if self._handler is not None:
            return self._handler(state, increasing)
        return Action.STOP

    def arm(self, target_s: float, current_s: float) -> None:
        """Add a target during a run.

        Raises:
            MonotonicityViolation: If the target is not ahead of current_s,
                or not more than max_check_interval beyond the last target
                in the propagation direction.
        """
        sign = 1.0 if self._forward else -1.0
        if (target_s - current_s) * sign <= 0.0:
            raise MonotonicityViolation(
                f"{self.name}: target {target_s} s does not lie ahead of "
                f"current time {current_s} s",
                target_s, current_s,
            )
        if len(self._selector):
            last = self._last_record().epoch
            if (target_s - last) * sign <= self.max_check_interval:
                raise MonotonicityViolation(
                    f"{self.name}: target {target_s} s is not more than "
                    f"{self.max_check_interval} s beyond last target {last} s",
                    target_s, last,
                )
        self._append(target_s)

    def _last_record(self) -> Record:
        return self._selector.last if self._forward else self._selector.first

    def _append(self, t: float) -> None:
        if len(self._selector):
            g_increases = not self._last_record().payload
        else:
            g_increases = self._forward
        self._selector.add(Record(key=self._sequence, epoch=t, payload=g_increases))
        self._sequence += 1
