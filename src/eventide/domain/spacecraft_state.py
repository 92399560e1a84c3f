# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
Immutable spacecraft state snapshots.

Times are carried as float seconds since a reference epoch so that event
thresholds well below the microsecond resolution of datetime stay
meaningful. Datetime targets are converted against the reference epoch.
"""
from dataclasses import dataclass, replace
from datetime import datetime, timedelta

import numpy as np

STATE_DIMENSION = 7


def to_elapsed_seconds(target: "float | datetime", reference_epoch: datetime) -> float:
    """Express a float offset or an absolute datetime as seconds since reference_epoch."""
    if isinstance(target, datetime):
        return (target - reference_epoch).total_seconds()
    return float(target)


@dataclass(frozen=True)
class SpacecraftState:
    """Position, velocity and mass at one instant.

    The integrated vector layout is (x, y, z, vx, vy, vz, m).
    """
    reference_epoch: datetime
    elapsed_s: float
    position_eci: tuple[float, float, float]
    velocity_eci: tuple[float, float, float]
    mass_kg: float = 1000.0

    @property
    def epoch(self) -> datetime:
        """Absolute epoch, rounded to datetime resolution."""
        return self.reference_epoch + timedelta(seconds=self.elapsed_s)

    @property
    def radius_m(self) -> float:
        return float(np.linalg.norm(self.position_eci))

    @property
    def speed_ms(self) -> float:
        return float(np.linalg.norm(self.velocity_eci))

    def to_vector(self) -> tuple[float, ...]:
        return (*self.position_eci, *self.velocity_eci, self.mass_kg)

    @classmethod
    def from_vector(
        cls,
        reference_epoch: datetime,
        elapsed_s: float,
        vector: "tuple[float, ...]",
    ) -> "SpacecraftState":
        if len(vector) != STATE_DIMENSION:
            raise ValueError(
                f"state vector must have {STATE_DIMENSION} components, got {len(vector)}"
            )
        return cls(
            reference_epoch=reference_epoch,
            elapsed_s=float(elapsed_s),
            position_eci=(float(vector[0]), float(vector[1]), float(vector[2])),
            velocity_eci=(float(vector[3]), float(vector[4]), float(vector[5])),
            mass_kg=float(vector[6]),
        )

    def seconds_to(self, target: "float | datetime") -> float:
        """Signed duration from this state to target (positive if target is later)."""
        return to_elapsed_seconds(target, self.reference_epoch) - self.elapsed_s

    def rebased(self, reference_epoch: datetime) -> "SpacecraftState":
        """Same instant expressed against another reference epoch."""
        if reference_epoch == self.reference_epoch:
            return self
        offset = (self.reference_epoch - reference_epoch).total_seconds()
        return replace(self, reference_epoch=reference_epoch, elapsed_s=self.elapsed_s + offset)

    def with_mass(self, mass_kg: float) -> "SpacecraftState":
        return replace(self, mass_kg=mass_kg)
