# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
Eventide

Event-driven numerical orbit propagation: an adaptive Dormand-Prince
integrator driven one step at a time, discrete event detection with
root isolation and ordered dispatch (continue, stop, derivative reset,
state reset), date and maneuver triggers, geometric triggers,
nearest-record selection over reference data, and bracketed Hermite
interpolation of sampled trajectories.
"""

from eventide.domain.errors import (
    EventideError,
    ConfigurationError,
    MonotonicityViolation,
    OutOfRangeQuery,
    RootIsolationFailure,
    IntegrationFailure,
)
from eventide.domain.spacecraft_state import (
    SpacecraftState,
    to_elapsed_seconds,
)
from eventide.domain.orbital_mechanics import (
    OrbitalConstants,
    keplerian_state,
    orbital_period,
    semi_major_axis,
)
from eventide.domain.adaptive_integration import (
    AdaptiveStepConfig,
    DenseStep,
    DormandPrinceIntegrator,
)
from eventide.domain.forces import (
    TwoBodyGravity,
    J2Perturbation,
    build_derivative_function,
)
from eventide.domain.event_detection import (
    Action,
    Slope,
    DetectionSettings,
    ArmCommand,
    EventResponse,
    EventRecord,
    EventDetector,
    isolate_root,
)
from eventide.domain.event_propagation import EventPropagator
from eventide.domain.record_selection import (
    Record,
    NearestRecordSelector,
)
from eventide.domain.interpolation import (
    HermiteSample,
    BracketedInterpolator,
)
from eventide.domain.date_detection import DateDetector
from eventide.domain.geometric_detectors import (
    NodeDetector,
    AltitudeDetector,
    ApsideDetector,
    LatitudeExtremumDetector,
)
from eventide.domain.frames import (
    Transform,
    IDENTITY,
    ThrustFrame,
    local_orbital_frame,
)
from eventide.domain.maneuvers import (
    ThrustStatus,
    ConstantThrustManeuver,
    ManeuverStartDetector,
    ManeuverStopDetector,
)
from eventide.domain.ephemeris import (
    SampledEphemeris,
    EphemerisRecorder,
    ReferenceEphemeris,
    ReferenceUpdateDetector,
)
from eventide.domain.along_track import AlongTrackAiming

__all__ = [
    "EventideError",
    "ConfigurationError",
    "MonotonicityViolation",
    "OutOfRangeQuery",
    "RootIsolationFailure",
    "IntegrationFailure",
    "SpacecraftState",
    "to_elapsed_seconds",
    "OrbitalConstants",
    "keplerian_state",
    "orbital_period",
    "semi_major_axis",
    "AdaptiveStepConfig",
    "DenseStep",
    "DormandPrinceIntegrator",
    "TwoBodyGravity",
    "J2Perturbation",
    "build_derivative_function",
    "Action",
    "Slope",
    "DetectionSettings",
    "ArmCommand",
    "EventResponse",
    "EventRecord",
    "EventDetector",
    "isolate_root",
    "EventPropagator",
    "Record",
    "NearestRecordSelector",
    "HermiteSample",
    "BracketedInterpolator",
    "DateDetector",
    "NodeDetector",
    "AltitudeDetector",
    "ApsideDetector",
    "LatitudeExtremumDetector",
    "Transform",
    "IDENTITY",
    "ThrustFrame",
    "local_orbital_frame",
    "ThrustStatus",
    "ConstantThrustManeuver",
    "ManeuverStartDetector",
    "ManeuverStopDetector",
    "SampledEphemeris",
    "EphemerisRecorder",
    "ReferenceEphemeris",
    "ReferenceUpdateDetector",
    "AlongTrackAiming",
]
