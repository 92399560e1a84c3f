# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
Orbital constants and element-to-state conversion.

Convenience for building initial conditions; element conversions are not
part of the event core.
"""
import math
from dataclasses import dataclass
from datetime import datetime

import numpy as np

from eventide.domain.spacecraft_state import SpacecraftState


@dataclass(frozen=True)
class _OrbitalConstants:
    """Standard orbital constants (IAU/WGS84 values)."""
    MU_EARTH: float = 3.986004418e14   # m³/s² — gravitational parameter
    R_EARTH: float = 6_371_000          # m — mean radius
    R_EARTH_EQUATORIAL: float = 6_378_137.0
    J2_EARTH: float = 1.08263e-3
    G0: float = 9.80665                 # m/s² — standard gravity


OrbitalConstants: _OrbitalConstants = _OrbitalConstants()


def keplerian_state(
    a: float,
    e: float,
    i_rad: float,
    omega_big_rad: float,
    omega_small_rad: float,
    nu_rad: float,
    reference_epoch: datetime,
    mass_kg: float = 1000.0,
    mu: float = OrbitalConstants.MU_EARTH,
) -> SpacecraftState:
    """Build a SpacecraftState at elapsed time zero from classical elements.

    Args:
        a: Semi-major axis (m).
        e: Eccentricity, 0 <= e < 1.
        i_rad: Inclination (radians).
        omega_big_rad: RAAN (radians).
        omega_small_rad: Argument of perigee (radians).
        nu_rad: True anomaly (radians).
        reference_epoch: Epoch of the state.
        mass_kg: Spacecraft mass.
        mu: Gravitational parameter (m³/s²).

    Raises:
        ValueError: If a <= 0 or e outside [0, 1).
    """
    if a <= 0:
        raise ValueError(f"a must be positive, got {a}")
    if not 0.0 <= e < 1.0:
        raise ValueError(f"e must be in [0, 1), got {e}")

    p = a * (1.0 - e * e)
    r = p / (1.0 + e * math.cos(nu_rad))
    v_scale = math.sqrt(mu / p)

    pos_pqw = np.array([r * math.cos(nu_rad), r * math.sin(nu_rad), 0.0])
    vel_pqw = np.array([-v_scale * math.sin(nu_rad), v_scale * (e + math.cos(nu_rad)), 0.0])

    c_o, s_o = math.cos(omega_big_rad), math.sin(omega_big_rad)
    c_w, s_w = math.cos(omega_small_rad), math.sin(omega_small_rad)
    c_i, s_i = math.cos(i_rad), math.sin(i_rad)
    rotation = np.array([
        [c_o * c_w - s_o * s_w * c_i, -c_o * s_w - s_o * c_w * c_i, s_o * s_i],
        [s_o * c_w + c_o * s_w * c_i, -s_o * s_w + c_o * c_w * c_i, -c_o * s_i],
        [s_w * s_i, c_w * s_i, c_i],
    ])
    pos = rotation @ pos_pqw
    vel = rotation @ vel_pqw

    return SpacecraftState(
        reference_epoch=reference_epoch,
        elapsed_s=0.0,
        position_eci=(float(pos[0]), float(pos[1]), float(pos[2])),
        velocity_eci=(float(vel[0]), float(vel[1]), float(vel[2])),
        mass_kg=mass_kg,
    )


def orbital_period(a: float, mu: float = OrbitalConstants.MU_EARTH) -> float:
    """Keplerian period T = 2π √(a³/μ), seconds."""
    if a <= 0:
        raise ValueError(f"a must be positive, got {a}")
    return 2.0 * math.pi * math.sqrt(a ** 3 / mu)


def semi_major_axis(state: SpacecraftState, mu: float = OrbitalConstants.MU_EARTH) -> float:
    """Osculating semi-major axis from the vis-viva equation.

    Raises:
        ValueError: If the state is not on a bound orbit.
    """
    energy = 0.5 * state.speed_ms ** 2 - mu / state.radius_m
    if energy >= 0:
        raise ValueError(f"state is not on a bound orbit (specific energy {energy:.6g} J/kg)")
    return -mu / (2.0 * energy)
