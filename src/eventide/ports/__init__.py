# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
Port interfaces for the collaborators the event core consumes.

Physics models, attitude laws, the integration primitive and output
handlers implement these structurally; nothing needs to inherit.
"""
from typing import TYPE_CHECKING, Callable, Protocol, runtime_checkable

if TYPE_CHECKING:
    from eventide.domain.frames import Transform
    from eventide.domain.spacecraft_state import SpacecraftState

DerivativeFunction = Callable[[float, tuple[float, ...]], tuple[float, ...]]


@runtime_checkable
class ForceModel(Protocol):
    """Acceleration contribution from one physical effect."""

    def acceleration(self, state: "SpacecraftState") -> tuple[float, float, float]: ...


@runtime_checkable
class MassFlowModel(Protocol):
    """Contribution to the mass derivative (kg/s, negative when consuming)."""

    def mass_rate(self, state: "SpacecraftState") -> float: ...


@runtime_checkable
class DetectorSource(Protocol):
    """A model that needs discrete events to switch its own behaviour."""

    def event_detectors(self) -> tuple: ...


@runtime_checkable
class AttitudeProvider(Protocol):
    """Attitude law: transform from the inertial frame to the body frame."""

    def attitude(self, state: "SpacecraftState") -> "Transform": ...


@runtime_checkable
class DenseOutput(Protocol):
    """An accepted integration step that can be evaluated at interior times."""

    t0: float
    t1: float
    f1: tuple[float, ...]

    def state_at(self, t: float) -> tuple[float, ...]: ...


@runtime_checkable
class Integrator(Protocol):
    """One-accepted-step integration primitive with dense output."""

    def advance(
        self,
        deriv_fn: DerivativeFunction,
        t: float,
        y: tuple[float, ...],
        t_target: float,
        h: float | None = None,
        f0: tuple[float, ...] | None = None,
    ) -> tuple[DenseOutput, float]: ...


@runtime_checkable
class StepHandler(Protocol):
    """Receives states on a fixed time grid during a run."""

    def __call__(self, state: "SpacecraftState", is_last: bool) -> None: ...
