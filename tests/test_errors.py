# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""Tests for the eventide error taxonomy."""

import pytest

from eventide import (
    ConfigurationError,
    EventideError,
    IntegrationFailure,
    MonotonicityViolation,
    OutOfRangeQuery,
    RootIsolationFailure,
)
from eventide.domain.event_detection import EventDetector


class TestHierarchy:

    @pytest.mark.parametrize("cls", [
        ConfigurationError, MonotonicityViolation, OutOfRangeQuery,
    ])
    def test_input_errors_are_value_errors(self, cls):
        assert issubclass(cls, EventideError)
        assert issubclass(cls, ValueError)

    @pytest.mark.parametrize("cls", [RootIsolationFailure, IntegrationFailure])
    def test_numerical_failures_are_runtime_errors(self, cls):
        assert issubclass(cls, EventideError)
        assert issubclass(cls, RuntimeError)


class TestPayloads:

    def test_root_isolation_failure_names_detector(self):
        detector = EventDetector(name="apogee-watch")
        err = RootIsolationFailure(detector, (1.0, 2.0), 7)
        assert err.detector is detector
        assert err.bracket == (1.0, 2.0)
        assert err.iterations == 7
        assert "apogee-watch" in str(err)

    def test_monotonicity_violation_carries_times(self):
        err = MonotonicityViolation("late", 12.0, 15.0)
        assert err.target_s == 12.0
        assert err.reference_s == 15.0

    def test_out_of_range_query_carries_bounds(self):
        err = OutOfRangeQuery(3.5, 0.0, 1.0)
        assert (err.query, err.lower, err.upper) == (3.5, 0.0, 1.0)
        assert "3.5" in str(err)
