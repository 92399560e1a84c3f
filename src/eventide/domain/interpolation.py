# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
Bracketed Hermite interpolation over monotonic samples.

Each sample carries a value vector and its derivative with respect to
the ordinate. A query is bracketed by binary search (the ordinates may
run increasing or decreasing), widened to four consecutive samples, and
evaluated with the degree-7 polynomial that matches all eight value and
derivative conditions. The returned derivative is the derivative of that
same polynomial, so value and derivative are always consistent.
"""
from dataclasses import dataclass

import numpy as np

from eventide.domain.errors import ConfigurationError, OutOfRangeQuery

WINDOW_SIZE = 4


@dataclass(frozen=True)
class HermiteSample:
    """Value and first derivative at one ordinate."""
    ordinate: float
    value: tuple[float, ...]
    derivative: tuple[float, ...]


class BracketedInterpolator:
    """Local Hermite interpolation on a strictly monotonic sample sequence.

    Args:
        samples: At least four samples with strictly increasing or
            strictly decreasing ordinates and equal-length channels.

    Raises:
        ConfigurationError: Too few samples, non-monotonic ordinates, or
            mismatched value/derivative lengths.
    """

    def __init__(self, samples) -> None:
        samples = tuple(samples)
        if len(samples) < WINDOW_SIZE:
            raise ConfigurationError(
                f"need at least {WINDOW_SIZE} samples, got {len(samples)}"
            )
        dim = len(samples[0].value)
        for s in samples:
            if len(s.value) != dim or len(s.derivative) != dim:
                raise ConfigurationError(
                    f"sample at {s.ordinate!r} has channel lengths "
                    f"{len(s.value)}/{len(s.derivative)}, expected {dim}"
                )
        ordinates = np.array([s.ordinate for s in samples], dtype=float)
        steps = np.diff(ordinates)
        if not (np.all(steps > 0) or np.all(steps < 0)):
            raise ConfigurationError("sample ordinates must be strictly monotonic")

        self._samples = samples
        self._ordinates = ordinates
        self._values = np.array([s.value for s in samples], dtype=float)
        self._derivatives = np.array([s.derivative for s in samples], dtype=float)
        self._increasing = bool(steps[0] > 0)
        self._coefficients: dict[int, tuple[np.ndarray, np.ndarray]] = {}

    def __len__(self) -> int:
        return len(self._samples)

    @property
    def increasing(self) -> bool:
        return self._increasing

    @property
    def bounds(self) -> tuple[float, float]:
        """(min, max) of the covered ordinate range."""
        first, last = float(self._ordinates[0]), float(self._ordinates[-1])
        return (min(first, last), max(first, last))

    def bracket(self, ordinate: float) -> int:
        """Index i such that ordinate lies between samples i and i + 1.

        Raises:
            OutOfRangeQuery: If ordinate is outside bounds.
        """
        lower, upper = self.bounds
        if not lower <= ordinate <= upper:
            raise OutOfRangeQuery(ordinate, lower, upper)
        lo, hi = 0, len(self._ordinates) - 1
        while hi - lo > 1:
            mid = (lo + hi) // 2
            if self._increasing ^ (self._ordinates[mid] > ordinate):
                lo = mid
            else:
                hi = mid
        return lo

    def value_at(self, ordinate: float) -> tuple[tuple[float, ...], tuple[float, ...]]:
        """Interpolated (value, derivative) at ordinate.

        Raises:
            OutOfRangeQuery: If ordinate is outside bounds.
        """
        index = self.bracket(ordinate)
        start = min(max(index - 1, 0), len(self._samples) - WINDOW_SIZE)
        nodes, coefficients = self._window(start)

        x = float(ordinate)
        p = coefficients[-1].copy()
        dp = np.zeros_like(p)
        for k in range(len(nodes) - 2, -1, -1):
            dx = x - nodes[k]
            dp = p + dx * dp
            p = coefficients[k] + dx * p
        return tuple(float(v) for v in p), tuple(float(v) for v in dp)

    def _window(self, start: int) -> tuple[np.ndarray, np.ndarray]:
        cached = self._coefficients.get(start)
        if cached is not None:
            return cached
        stop = start + WINDOW_SIZE
        # Newton divided differences on doubled nodes
        nodes = np.repeat(self._ordinates[start:stop], 2)
        table = np.repeat(self._values[start:stop], 2, axis=0)
        derivatives = self._derivatives[start:stop]
        for level in range(1, len(nodes)):
            for i in range(len(nodes) - 1, level - 1, -1):
                if level == 1 and i % 2 == 1:
                    table[i] = derivatives[i // 2]
                else:
                    table[i] = (table[i] - table[i - 1]) / (nodes[i] - nodes[i - level])
        self._coefficients[start] = (nodes, table)
        return nodes, table
