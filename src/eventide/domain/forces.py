# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
Force models and the derivative function fed to the integrator.

The physics here is deliberately small: central gravity and J2 are enough
to drive realistic trajectories through the event machinery. Models that
also consume propellant implement MassFlowModel.
"""
from datetime import datetime
from typing import Sequence

import numpy as np

from eventide.domain.orbital_mechanics import OrbitalConstants
from eventide.domain.spacecraft_state import SpacecraftState
from eventide.ports import DerivativeFunction, ForceModel, MassFlowModel


class TwoBodyGravity:
    """Central body gravitational acceleration: a = -mu * r / |r|^3."""

    def __init__(self, mu: float = OrbitalConstants.MU_EARTH) -> None:
        self._mu = mu

    def acceleration(self, state: SpacecraftState) -> tuple[float, float, float]:
        pos = np.array(state.position_eci)
        r = float(np.linalg.norm(pos))
        a = (-self._mu / (r * r * r)) * pos
        return (float(a[0]), float(a[1]), float(a[2]))


class J2Perturbation:
    """J2 zonal harmonic perturbation acceleration."""

    def acceleration(self, state: SpacecraftState) -> tuple[float, float, float]:
        x, y, z = state.position_eci
        r2 = x * x + y * y + z * z
        r = float(np.sqrt(r2))
        re = OrbitalConstants.R_EARTH_EQUATORIAL

        coeff = -1.5 * OrbitalConstants.J2_EARTH * OrbitalConstants.MU_EARTH * re * re / (r2 * r2 * r)
        z2_r2 = z * z / r2
        return (
            coeff * x * (1.0 - 5.0 * z2_r2),
            coeff * y * (1.0 - 5.0 * z2_r2),
            coeff * z * (3.0 - 5.0 * z2_r2),
        )


def build_derivative_function(
    force_models: Sequence[ForceModel],
    reference_epoch: datetime,
) -> DerivativeFunction:
    """Sum force model contributions into f(t, y) -> dy/dt.

    The state vector is (x, y, z, vx, vy, vz, m). Models exposing
    mass_rate contribute to dm/dt; the others only to acceleration.
    Models are read on every call, so flags flipped by event handlers
    take effect on the next evaluation.
    """
    models = tuple(force_models)
    flows = tuple(fm for fm in models if isinstance(fm, MassFlowModel))

    def deriv_fn(t_s: float, sv: tuple[float, ...]) -> tuple[float, ...]:
        state = SpacecraftState.from_vector(reference_epoch, t_s, sv)
        ax_total, ay_total, az_total = 0.0, 0.0, 0.0
        for fm in models:
            ax, ay, az = fm.acceleration(state)
            ax_total += ax
            ay_total += ay
            az_total += az
        m_dot = 0.0
        for fm in flows:
            m_dot += fm.mass_rate(state)
        return (sv[3], sv[4], sv[5], ax_total, ay_total, az_total, m_dot)

    return deriv_fn
