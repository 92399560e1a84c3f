# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""Single-step Dormand-Prince RK4(5) integration primitive.

Embedded 5(4) pair with a scaled RMS error norm, an integral (I)
step-size controller clamped to [0.2, 5] growth, first-same-as-last
derivative reuse and cubic Hermite dense output over each accepted step.

The integrator is driven one accepted step at a time; the event loop
decides where the next step starts and whether the FSAL derivative may
be reused.
"""
import logging
from dataclasses import dataclass

import numpy as np

from eventide.domain.errors import ConfigurationError, IntegrationFailure
from eventide.ports import DerivativeFunction

logger = logging.getLogger(__name__)


# --- Dormand-Prince Butcher tableau (7 stages, FSAL) ---

DORMAND_PRINCE_C: tuple[float, ...] = (
    0.0,
    1.0 / 5.0,
    3.0 / 10.0,
    4.0 / 5.0,
    8.0 / 9.0,
    1.0,
    1.0,
)

DORMAND_PRINCE_A: tuple[tuple[float, ...], ...] = (
    (),
    (1.0 / 5.0,),
    (3.0 / 40.0, 9.0 / 40.0),
    (44.0 / 45.0, -56.0 / 15.0, 32.0 / 9.0),
    (19372.0 / 6561.0, -25360.0 / 2187.0, 64448.0 / 6561.0, -212.0 / 729.0),
    (9017.0 / 3168.0, -355.0 / 33.0, 46732.0 / 5247.0, 49.0 / 176.0, -5103.0 / 18656.0),
    (35.0 / 384.0, 0.0, 500.0 / 1113.0, 125.0 / 192.0, -2187.0 / 6784.0, 11.0 / 84.0),
)

# 4th-order solution weights (same as last row of A for FSAL)
DORMAND_PRINCE_B4: tuple[float, ...] = (
    35.0 / 384.0,
    0.0,
    500.0 / 1113.0,
    125.0 / 192.0,
    -2187.0 / 6784.0,
    11.0 / 84.0,
    0.0,
)

# 5th-order solution weights (for error estimation)
DORMAND_PRINCE_B5: tuple[float, ...] = (
    5179.0 / 57600.0,
    0.0,
    7571.0 / 16695.0,
    393.0 / 640.0,
    -92097.0 / 339200.0,
    187.0 / 2100.0,
    1.0 / 40.0,
)

_DORMAND_PRINCE_E = np.array([b4 - b5 for b4, b5 in zip(DORMAND_PRINCE_B4, DORMAND_PRINCE_B5)])


# --- Types ---

@dataclass(frozen=True)
class AdaptiveStepConfig:
    """Tolerances and step bounds of the Dormand-Prince primitive.

    h_init is the first trial step of a run, clamped to [h_min, h_max].
    """
    rtol: float = 1e-10
    atol: float = 1e-9
    h_init: float = 60.0
    h_min: float = 1e-3
    h_max: float = 600.0
    safety_factor: float = 0.9

    def __post_init__(self) -> None:
        if self.rtol <= 0 or self.atol <= 0:
            raise ConfigurationError(f"tolerances must be positive, got rtol={self.rtol}, atol={self.atol}")
        if not 0 < self.h_min <= self.h_max:
            raise ConfigurationError(f"need 0 < h_min <= h_max, got {self.h_min}, {self.h_max}")
        if self.h_init <= 0:
            raise ConfigurationError(f"h_init must be > 0, got {self.h_init}")
        if not 0 < self.safety_factor < 1:
            raise ConfigurationError(f"safety_factor must be in (0, 1), got {self.safety_factor}")


@dataclass(frozen=True)
class DenseStep:
    """One accepted step [t0, t1] with cubic Hermite dense output.

    t1 may be smaller than t0 for backward integration. f0/f1 are the
    derivatives at the step ends; f1 is the FSAL stage of the step.
    """
    t0: float
    y0: tuple[float, ...]
    f0: tuple[float, ...]
    t1: float
    y1: tuple[float, ...]
    f1: tuple[float, ...]

    @property
    def forward(self) -> bool:
        return self.t1 >= self.t0

    def state_at(self, t: float) -> tuple[float, ...]:
        """Interpolated state vector; exact at the step ends."""
        if t == self.t0:
            return self.y0
        if t == self.t1:
            return self.y1
        return _hermite_interpolate(self.t0, self.y0, self.f0, self.t1, self.y1, self.f1, t)


# --- Dormand-Prince core computational kernel ---

def _dp_full_step(
    t: float,
    y: tuple[float, ...],
    h: float,
    deriv_fn: DerivativeFunction,
    k1: tuple[float, ...],
) -> tuple[np.ndarray, tuple[float, ...], tuple[float, ...]]:
    """Compute all 7 DP stages and the 4th-order solution.

    Returns:
        (k_stages, y_new, k7) where k_stages has shape (7, n) and k7 is
        the FSAL derivative at y_new.
    """
    y_arr = np.array(y)
    stages = [np.array(k1)]
    for s in range(1, 6):
        incr = sum(a * k for a, k in zip(DORMAND_PRINCE_A[s], stages))
        y_s = tuple((y_arr + h * incr).tolist())
        stages.append(np.array(deriv_fn(t + DORMAND_PRINCE_C[s] * h, y_s)))

    # 4th-order solution (b4 weights; b4[1]=0 and b4[6]=0)
    incr = sum(b * k for b, k in zip(DORMAND_PRINCE_B4[:6], stages))
    y_new = tuple(float(x) for x in y_arr + h * incr)

    # Stage 7 (FSAL: evaluate derivative at the 4th-order solution)
    k7 = tuple(float(x) for x in deriv_fn(t + h, y_new))
    stages.append(np.array(k7))

    return np.array(stages), y_new, k7


# --- Error estimation ---

def _error_norm(
    y: tuple[float, ...],
    y_new: tuple[float, ...],
    k_stages: np.ndarray,
    h: float,
    atol: float,
    rtol: float,
) -> float:
    """Weighted RMS error norm for step-size control.

    err = sqrt(1/n * sum_j ((e_j / sc_j)^2))
    where e_j = h * sum_i(e_i * k_i_j) and sc_j = atol + rtol * max(|y_j|, |y_new_j|).
    """
    e_vec = h * (_DORMAND_PRINCE_E @ k_stages)
    sc_vec = atol + rtol * np.maximum(np.abs(np.array(y)), np.abs(np.array(y_new)))
    return float(np.sqrt(np.mean((e_vec / sc_vec) ** 2)))


# --- Step-size control ---

def _new_step_size(
    h_try: float, err: float, safety: float, h_min: float, h_max: float,
) -> float:
    """Integral-only controller: h * safety * err^(-1/5), growth clamped to [0.2, 5]."""
    if err < 1e-30:
        return h_max
    h_new = h_try * min(5.0, max(0.2, safety * err ** (-0.2)))
    return max(h_min, min(h_new, h_max))


# --- Dense output interpolation ---

def _hermite_interpolate(
    t0: float,
    y0: tuple[float, ...],
    f0: tuple[float, ...],
    t1: float,
    y1: tuple[float, ...],
    f1: tuple[float, ...],
    t_eval: float,
) -> tuple[float, ...]:
    """Cubic Hermite interpolation between two integration points."""
    h = t1 - t0
    if abs(h) < 1e-30:
        return y0
    theta = (t_eval - t0) / h
    theta2 = theta * theta
    theta3 = theta2 * theta

    h00 = 2.0 * theta3 - 3.0 * theta2 + 1.0
    h10 = theta3 - 2.0 * theta2 + theta
    h01 = -2.0 * theta3 + 3.0 * theta2
    h11 = theta3 - theta2

    result = (
        h00 * np.array(y0) + h10 * h * np.array(f0)
        + h01 * np.array(y1) + h11 * h * np.array(f1)
    )
    return tuple(float(x) for x in result)


class DormandPrinceIntegrator:
    """Adaptive integrator advancing one accepted step per call."""

    def __init__(self, config: AdaptiveStepConfig | None = None) -> None:
        self.config = config if config is not None else AdaptiveStepConfig()
        self.accepted_steps = 0
        self.rejected_steps = 0

    def advance(
        self,
        deriv_fn: DerivativeFunction,
        t: float,
        y: tuple[float, ...],
        t_target: float,
        h: float | None = None,
        f0: tuple[float, ...] | None = None,
    ) -> tuple[DenseStep, float]:
        """Take one accepted step from t toward t_target.

        Args:
            deriv_fn: Derivative function f(t, y) -> dy/dt.
            t: Start time (seconds).
            y: State at t.
            t_target: Time the run is heading to; never overshot.
            h: Suggested step magnitude; None starts from config.h_init.
            f0: Derivative at (t, y) from the previous step (FSAL), or None
                to force a fresh evaluation.

        Returns:
            (dense step, suggested magnitude for the next step).

        Raises:
            IntegrationFailure: If the error test fails at h_min.
        """
        cfg = self.config
        span = t_target - t
        if span == 0.0:
            raise IntegrationFailure(f"cannot advance: already at target time {t_target}")
        sign = 1.0 if span > 0 else -1.0
        k1 = tuple(f0) if f0 is not None else tuple(float(x) for x in deriv_fn(t, y))
        h = max(cfg.h_min, min(abs(h if h is not None else cfg.h_init), cfg.h_max))

        while True:
            last = h >= abs(span)
            h_try = abs(span) if last else h
            k_stages, y_new, k7 = _dp_full_step(t, y, sign * h_try, deriv_fn, k1)
            err = _error_norm(y, y_new, k_stages, sign * h_try, cfg.atol, cfg.rtol)
            h_next = _new_step_size(h_try, err, cfg.safety_factor, cfg.h_min, cfg.h_max)

            if err <= 1.0:
                self.accepted_steps += 1
                # Land exactly on the target to avoid round-off drift
                t_new = t_target if last else t + sign * h_try
                step = DenseStep(t0=t, y0=tuple(y), f0=k1, t1=t_new, y1=y_new, f1=k7)
                return step, h_next

            self.rejected_steps += 1
            if h_try <= cfg.h_min:
                logger.warning("step size collapsed to h_min=%g at t=%.6f s", cfg.h_min, t)
                raise IntegrationFailure(
                    f"error test failed at minimum step {cfg.h_min} s (t={t}, err={err:.3g})"
                )
            h = h_next
