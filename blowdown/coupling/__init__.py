"""Solver-facing hooks: boundary lookup, flow sampling, profiles and collectives."""
from .case import VentingCase
from .parallel import LocalGroup, LocalReducer, Reducer, SerialReducer
from .profile import emit, emit_named
from .registry import BoundaryRegistry, FaceGroup, InMemoryBoundaryRegistry, require_faces
from .sampler import (
    BoundarySample,
    DirectFluxSampler,
    FlowSampler,
    MassRatioSampler,
    aggregate_mass_flow,
    build_sampler,
    mass_ratio_flow,
)

__all__ = [
    "VentingCase",
    "LocalGroup",
    "LocalReducer",
    "Reducer",
    "SerialReducer",
    "emit",
    "emit_named",
    "BoundaryRegistry",
    "FaceGroup",
    "InMemoryBoundaryRegistry",
    "require_faces",
    "BoundarySample",
    "DirectFluxSampler",
    "FlowSampler",
    "MassRatioSampler",
    "aggregate_mass_flow",
    "build_sampler",
    "mass_ratio_flow",
]
