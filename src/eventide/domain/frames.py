# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
Frame transforms as immutable values.

A Transform maps coordinates from a source frame to a target frame:
p' = R (p + t), v' = R (v + dt) - w x p'. Composition is associative;
IDENTITY is one distinguished value that compose and inverse short-circuit
on by identity comparison.
"""
from dataclasses import dataclass
from enum import Enum

import numpy as np

from eventide.domain.errors import ConfigurationError
from eventide.domain.spacecraft_state import SpacecraftState

Vector = tuple[float, float, float]
Matrix3 = tuple[Vector, Vector, Vector]

_ZERO: Vector = (0.0, 0.0, 0.0)
_EYE: Matrix3 = ((1.0, 0.0, 0.0), (0.0, 1.0, 0.0), (0.0, 0.0, 1.0))


def _vec(a: np.ndarray) -> Vector:
    return (float(a[0]), float(a[1]), float(a[2]))


def _mat(m: np.ndarray) -> Matrix3:
    return (_vec(m[0]), _vec(m[1]), _vec(m[2]))


@dataclass(frozen=True)
class Transform:
    """Rigid transform with translation/rotation and their rates."""
    translation: Vector = _ZERO
    velocity: Vector = _ZERO
    rotation: Matrix3 = _EYE
    rotation_rate: Vector = _ZERO

    def compose(self, other: "Transform") -> "Transform":
        """Transform applying self first, then other."""
        if other is IDENTITY:
            return self
        if self is IDENTITY:
            return other
        r1 = np.array(self.rotation)
        r2 = np.array(other.rotation)
        w1 = np.array(self.rotation_rate)
        t2 = np.array(other.translation)
        translation = np.array(self.translation) + r1.T @ t2
        velocity = np.array(self.velocity) + r1.T @ (np.array(other.velocity) + np.cross(w1, t2))
        return Transform(
            translation=_vec(translation),
            velocity=_vec(velocity),
            rotation=_mat(r2 @ r1),
            rotation_rate=_vec(np.array(other.rotation_rate) + r2 @ w1),
        )

    def inverse(self) -> "Transform":
        if self is IDENTITY:
            return self
        r = np.array(self.rotation)
        w = np.array(self.rotation_rate)
        rt = r @ np.array(self.translation)
        return Transform(
            translation=_vec(-rt),
            velocity=_vec(np.cross(w, rt) - r @ np.array(self.velocity)),
            rotation=_mat(r.T),
            rotation_rate=_vec(-(r.T @ w)),
        )

    def transform_position(self, position: Vector) -> Vector:
        if self is IDENTITY:
            return position
        return _vec(np.array(self.rotation) @ (np.array(self.translation) + np.array(position)))

    def transform_vector(self, vector: Vector) -> Vector:
        if self is IDENTITY:
            return vector
        return _vec(np.array(self.rotation) @ np.array(vector))

    def transform_pv(self, position: Vector, velocity: Vector) -> tuple[Vector, Vector]:
        if self is IDENTITY:
            return position, velocity
        r = np.array(self.rotation)
        p = r @ (np.array(self.translation) + np.array(position))
        v = r @ (np.array(velocity) + np.array(self.velocity)) - np.cross(np.array(self.rotation_rate), p)
        return _vec(p), _vec(v)


IDENTITY = Transform()


class ThrustFrame(Enum):
    """Frames in which a thrust direction can be expressed."""
    QSW = 0
    TNW = 1
    INERTIAL = 2
    SPACECRAFT = 3


def local_orbital_frame(state: SpacecraftState, frame: ThrustFrame) -> Transform:
    """Rotation from inertial axes to the QSW or TNW local orbital frame.

    QSW: Q radial, W orbit normal, S = W x Q.
    TNW: T along velocity, W orbit normal, N = W x T.
    """
    pos = np.array(state.position_eci)
    vel = np.array(state.velocity_eci)
    w = np.cross(pos, vel)
    w = w / np.linalg.norm(w)
    if frame is ThrustFrame.QSW:
        q = pos / np.linalg.norm(pos)
        axes = (q, np.cross(w, q), w)
    elif frame is ThrustFrame.TNW:
        t = vel / np.linalg.norm(vel)
        axes = (t, np.cross(w, t), w)
    else:
        raise ConfigurationError(f"{frame!r} is not a local orbital frame")
    return Transform(rotation=_mat(np.array(axes)))
