# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""Tests for the Dormand-Prince RK4(5) step integrator."""

import math
from datetime import datetime, timezone

import pytest

from eventide import (
    AdaptiveStepConfig,
    ConfigurationError,
    DenseStep,
    DormandPrinceIntegrator,
    IntegrationFailure,
    OrbitalConstants,
    TwoBodyGravity,
    build_derivative_function,
    keplerian_state,
    orbital_period,
)
from eventide.domain.adaptive_integration import (
    DORMAND_PRINCE_A,
    DORMAND_PRINCE_B4,
    DORMAND_PRINCE_B5,
    DORMAND_PRINCE_C,
)


# --- Fixtures ---

@pytest.fixture
def epoch():
    return datetime(2026, 3, 20, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def leo_state(epoch):
    """LEO state at 500 km, circular, 53 deg inclination."""
    a = OrbitalConstants.R_EARTH_EQUATORIAL + 500_000.0
    return keplerian_state(a, 0.0, math.radians(53.0), 0.0, 0.0, 0.0, epoch)


def _oscillator(t, y):
    """y0'' = -y0 packed into the 7-component layout."""
    return (y[1], -y[0], 0.0, 0.0, 0.0, 0.0, 0.0)


def _orbital_energy(pos, vel, mu):
    r = math.sqrt(pos[0] ** 2 + pos[1] ** 2 + pos[2] ** 2)
    v = math.sqrt(vel[0] ** 2 + vel[1] ** 2 + vel[2] ** 2)
    return 0.5 * v ** 2 - mu / r


def _run(integrator, deriv_fn, t, y, t_target, h=60.0):
    steps = []
    f0 = None
    while t != t_target:
        step, h = integrator.advance(deriv_fn, t, y, t_target, h, f0)
        steps.append(step)
        t, y, f0 = step.t1, step.y1, step.f1
    return steps


# --- Butcher tableau ---

class TestTableau:

    def test_row_sums_match_nodes(self):
        for c, row in zip(DORMAND_PRINCE_C, DORMAND_PRINCE_A):
            assert sum(row) == pytest.approx(c, abs=1e-14)

    def test_weights_sum_to_one(self):
        assert sum(DORMAND_PRINCE_B4) == pytest.approx(1.0, abs=1e-14)
        assert sum(DORMAND_PRINCE_B5) == pytest.approx(1.0, abs=1e-14)


# --- Config ---

class TestAdaptiveStepConfig:

    def test_defaults_valid(self):
        cfg = AdaptiveStepConfig()
        assert cfg.h_min <= cfg.h_init <= cfg.h_max

    def test_h_init_outside_bounds_is_accepted(self):
        cfg = AdaptiveStepConfig(h_min=100.0, h_max=600.0)
        assert cfg.h_init < cfg.h_min

    @pytest.mark.parametrize("kwargs", [
        {"rtol": 0.0},
        {"atol": -1.0},
        {"h_init": 0.0},
        {"h_min": 700.0},
        {"h_max": 10.0},
        {"safety_factor": 1.5},
    ])
    def test_invalid_config(self, kwargs):
        with pytest.raises(ConfigurationError):
            AdaptiveStepConfig(**kwargs)


# --- Single step ---

class TestSingleStep:

    def test_oscillator_single_step(self):
        step, _ = DormandPrinceIntegrator().advance(
            _oscillator, 0.0, (0.0, 1.0, 0, 0, 0, 0, 0), 0.01, 0.01,
        )
        assert step.t1 == 0.01
        assert step.y1[0] == pytest.approx(math.sin(0.01), abs=1e-10)
        assert step.y1[1] == pytest.approx(math.cos(0.01), abs=1e-10)

    def test_fsal_stage_is_derivative_at_new_point(self):
        step, _ = DormandPrinceIntegrator().advance(
            _oscillator, 0.0, (0.0, 1.0, 0, 0, 0, 0, 0), 0.1, 0.1,
        )
        assert step.f1 == pytest.approx(_oscillator(step.t1, step.y1))


class TestFirstTrialStep:

    @staticmethod
    def _constant_rate(t, y):
        return (1.0,) * 7

    def test_first_step_uses_h_init(self):
        integrator = DormandPrinceIntegrator(AdaptiveStepConfig(h_init=5.0))
        step, _ = integrator.advance(self._constant_rate, 0.0, (0.0,) * 7, 100.0)
        assert step.t1 == 5.0

    def test_h_init_below_h_min_is_clamped(self):
        cfg = AdaptiveStepConfig(h_min=100.0, h_max=600.0)
        step, _ = DormandPrinceIntegrator(cfg).advance(self._constant_rate, 0.0, (0.0,) * 7, 1000.0)
        assert step.t1 == 100.0

    def test_explicit_step_overrides_h_init(self):
        integrator = DormandPrinceIntegrator(AdaptiveStepConfig(h_init=5.0))
        step, _ = integrator.advance(self._constant_rate, 0.0, (0.0,) * 7, 100.0, 10.0)
        assert step.t1 == 10.0


# --- advance ---

class TestAdvance:

    def test_lands_exactly_on_target(self):
        integrator = DormandPrinceIntegrator()
        steps = _run(integrator, _oscillator, 0.0, (0.0, 1.0, 0, 0, 0, 0, 0), 7.3, h=0.5)
        assert steps[-1].t1 == 7.3
        assert steps[-1].y1[0] == pytest.approx(math.sin(7.3), abs=1e-7)
        assert integrator.accepted_steps == len(steps)

    def test_backward_integration(self):
        integrator = DormandPrinceIntegrator()
        steps = _run(integrator, _oscillator, 0.0, (0.0, 1.0, 0, 0, 0, 0, 0), -2.0, h=0.5)
        assert all(not s.forward for s in steps)
        assert steps[-1].t1 == -2.0
        assert steps[-1].y1[0] == pytest.approx(math.sin(-2.0), abs=1e-7)

    def test_never_overshoots(self):
        integrator = DormandPrinceIntegrator()
        step, _ = integrator.advance(lambda t, y: (1.0,) * 7, 0.0, (0.0,) * 7, 0.2, 5.0)
        assert step.t1 == 0.2

    def test_fsal_derivative_saves_one_evaluation(self):
        calls = []

        def constant_rate(t, y):
            calls.append(t)
            return (1.0,) * 7

        integrator = DormandPrinceIntegrator()
        integrator.advance(constant_rate, 0.0, (0.0,) * 7, 100.0, 10.0)
        fresh = len(calls)
        calls.clear()
        integrator.advance(constant_rate, 0.0, (0.0,) * 7, 100.0, 10.0, (1.0,) * 7)
        assert fresh == 7
        assert len(calls) == 6

    def test_already_at_target_fails(self):
        with pytest.raises(IntegrationFailure):
            DormandPrinceIntegrator().advance(_oscillator, 1.0, (0.0,) * 7, 1.0, 1.0)

    def test_step_collapse_raises(self):
        def stiff(t, y):
            return (1e6 * math.cos(1e3 * t),) * 7

        cfg = AdaptiveStepConfig(rtol=1e-12, atol=1e-12, h_init=1.0, h_min=1.0, h_max=1.0)
        integrator = DormandPrinceIntegrator(cfg)
        with pytest.raises(IntegrationFailure):
            integrator.advance(stiff, 0.0, (0.0,) * 7, 100.0, 1.0)
        assert integrator.rejected_steps == 1

    def test_two_body_energy_conserved(self, leo_state):
        mu = OrbitalConstants.MU_EARTH
        deriv_fn = build_derivative_function([TwoBodyGravity()], leo_state.reference_epoch)
        period = orbital_period(leo_state.radius_m)
        steps = _run(DormandPrinceIntegrator(), deriv_fn, 0.0, leo_state.to_vector(), period)
        y = steps[-1].y1
        e0 = _orbital_energy(leo_state.position_eci, leo_state.velocity_eci, mu)
        ef = _orbital_energy(y[0:3], y[3:6], mu)
        assert abs((ef - e0) / e0) < 1e-9
        # one full period returns to the start
        assert math.dist(y[0:3], leo_state.position_eci) < 1.0


# --- Dense output ---

class TestDenseStep:

    def test_endpoints_exact(self):
        step, _ = DormandPrinceIntegrator().advance(
            _oscillator, 0.0, (0.0, 1.0, 0, 0, 0, 0, 0), 1.0, 0.1,
        )
        assert step.state_at(step.t0) == step.y0
        assert step.state_at(step.t1) == step.y1

    def test_interior_accuracy(self):
        step, _ = DormandPrinceIntegrator().advance(
            _oscillator, 0.0, (0.0, 1.0, 0, 0, 0, 0, 0), 1.0, 0.1,
        )
        t_mid = 0.5 * (step.t0 + step.t1)
        assert step.state_at(t_mid)[0] == pytest.approx(math.sin(t_mid), abs=1e-6)

    def test_frozen(self):
        step = DenseStep(0.0, (0.0,), (1.0,), 1.0, (1.0,), (1.0,))
        with pytest.raises(AttributeError):
            step.t1 = 2.0
