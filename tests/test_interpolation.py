# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""Tests for BracketedInterpolator."""

import math

import pytest

from eventide import BracketedInterpolator, ConfigurationError, HermiteSample, OutOfRangeQuery


def _cubic(x):
    return x ** 3 - 2.0 * x + 1.0


def _cubic_prime(x):
    return 3.0 * x ** 2 - 2.0


def _cubic_samples(xs):
    return [HermiteSample(x, (_cubic(x), 2.0 * x), (_cubic_prime(x), 2.0)) for x in xs]


def _sine_samples(xs):
    return [HermiteSample(x, (math.sin(x),), (math.cos(x),)) for x in xs]


class TestConstruction:

    def test_needs_four_samples(self):
        with pytest.raises(ConfigurationError):
            BracketedInterpolator(_cubic_samples([0.0, 1.0, 2.0]))

    def test_rejects_non_monotonic(self):
        with pytest.raises(ConfigurationError):
            BracketedInterpolator(_cubic_samples([0.0, 1.0, 0.5, 2.0, 3.0]))

    def test_rejects_repeated_ordinate(self):
        with pytest.raises(ConfigurationError):
            BracketedInterpolator(_cubic_samples([0.0, 1.0, 1.0, 2.0]))

    def test_rejects_mismatched_channels(self):
        samples = _cubic_samples([0.0, 1.0, 2.0, 3.0])
        samples[2] = HermiteSample(2.0, (1.0,), (1.0, 2.0))
        with pytest.raises(ConfigurationError):
            BracketedInterpolator(samples)

    def test_bounds_and_direction(self):
        up = BracketedInterpolator(_cubic_samples([0.0, 1.0, 2.0, 3.0]))
        down = BracketedInterpolator(_cubic_samples([3.0, 2.0, 1.0, 0.0]))
        assert up.bounds == down.bounds == (0.0, 3.0)
        assert up.increasing and not down.increasing
        assert len(up) == 4


class TestBracket:

    def test_increasing(self):
        interp = BracketedInterpolator(_sine_samples([float(i) for i in range(10)]))
        assert interp.bracket(3.5) == 3
        assert interp.bracket(0.0) == 0
        assert interp.bracket(9.0) == 8

    def test_decreasing(self):
        interp = BracketedInterpolator(_sine_samples([float(9 - i) for i in range(10)]))
        assert interp.bracket(3.5) == 5

    def test_out_of_range(self):
        interp = BracketedInterpolator(_sine_samples([0.0, 1.0, 2.0, 3.0]))
        with pytest.raises(OutOfRangeQuery) as info:
            interp.bracket(3.01)
        assert (info.value.lower, info.value.upper) == (0.0, 3.0)
        with pytest.raises(OutOfRangeQuery):
            interp.value_at(-0.01)


class TestValueAt:

    def test_reproduces_cubic_exactly(self):
        interp = BracketedInterpolator(_cubic_samples([-1.0, -0.3, 0.4, 1.1, 1.5, 2.0]))
        for x in (-0.8, 0.0, 0.37, 1.3, 1.99):
            value, derivative = interp.value_at(x)
            assert value[0] == pytest.approx(_cubic(x), abs=1e-9)
            assert value[1] == pytest.approx(2.0 * x, abs=1e-9)
            assert derivative[0] == pytest.approx(_cubic_prime(x), abs=1e-8)
            assert derivative[1] == pytest.approx(2.0, abs=1e-8)

    def test_reproduces_samples(self):
        xs = [0.1 * i ** 1.5 for i in range(12)]
        interp = BracketedInterpolator(_sine_samples(xs))
        for x in xs:
            value, derivative = interp.value_at(x)
            assert value[0] == pytest.approx(math.sin(x), abs=1e-12)
            assert derivative[0] == pytest.approx(math.cos(x), abs=1e-9)

    def test_decreasing_ordinates_match_increasing(self):
        xs = [0.0, 0.4, 0.9, 1.3, 1.8, 2.5, 3.1]
        up = BracketedInterpolator(_sine_samples(xs))
        down = BracketedInterpolator(_sine_samples(list(reversed(xs))))
        for x in (0.2, 1.0, 2.9):
            assert down.value_at(x)[0] == pytest.approx(up.value_at(x)[0], abs=1e-12)
            assert down.value_at(x)[1] == pytest.approx(up.value_at(x)[1], abs=1e-10)

    def test_accuracy_near_both_ends(self):
        xs = [math.pi * i / 9 for i in range(10)]
        interp = BracketedInterpolator(_sine_samples(xs))
        for x in (0.05, math.pi - 0.05):
            value, derivative = interp.value_at(x)
            assert value[0] == pytest.approx(math.sin(x), abs=1e-7)
            assert derivative[0] == pytest.approx(math.cos(x), abs=1e-6)

    def test_derivative_is_derivative_of_value(self):
        xs = [0.0, 0.5, 1.1, 1.6, 2.0, 2.7]
        interp = BracketedInterpolator(_sine_samples(xs))
        x, h = 1.3, 1e-5
        numeric = (interp.value_at(x + h)[0][0] - interp.value_at(x - h)[0][0]) / (2 * h)
        assert interp.value_at(x)[1][0] == pytest.approx(numeric, abs=1e-7)
