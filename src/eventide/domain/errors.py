# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
Error taxonomy for event-driven propagation.

Configuration problems surface before a run starts; numerical failures
abort the run and propagate to the caller. Nothing here is retried.
"""


class EventideError(Exception):
    """Base class for all eventide errors."""


class ConfigurationError(EventideError, ValueError):
    """Invalid parameters detected at construction or registration time."""


class MonotonicityViolation(EventideError, ValueError):
    """A trigger time was registered against the propagation direction."""

    def __init__(self, message: str, target_s: float, reference_s: float | None = None) -> None:
        super().__init__(message)
        self.target_s = target_s
        self.reference_s = reference_s


class OutOfRangeQuery(EventideError, ValueError):
    """A lookup fell outside the covered ordinate domain."""

    def __init__(self, query: float, lower: float, upper: float) -> None:
        super().__init__(
            f"query {query!r} outside covered range [{lower!r}, {upper!r}]"
        )
        self.query = query
        self.lower = lower
        self.upper = upper


class RootIsolationFailure(EventideError, RuntimeError):
    """Bracket refinement ran out of iterations before converging."""

    def __init__(
        self,
        detector: object,
        bracket: tuple[float, float],
        iterations: int,
    ) -> None:
        name = getattr(detector, "name", type(detector).__name__)
        super().__init__(
            f"root isolation for detector {name!r} did not converge in "
            f"{iterations} iterations; bracket [{bracket[0]!r}, {bracket[1]!r}]"
        )
        self.detector = detector
        self.bracket = bracket
        self.iterations = iterations


class IntegrationFailure(EventideError, RuntimeError):
    """The integration primitive could not produce an acceptable step."""
