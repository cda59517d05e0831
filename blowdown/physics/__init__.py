"""Ideal-gas reservoir state and its mass integrator."""
from .gas import check_container, mass_from_pressure, pressure_from_mass, specific_gas_constant
from .integrator import StepResult, step
from .reservoir import (
    Initialized,
    ReservoirSlot,
    ReservoirState,
    StepStatus,
    Uninitialized,
    initialize,
)

__all__ = [
    "check_container",
    "mass_from_pressure",
    "pressure_from_mass",
    "specific_gas_constant",
    "StepResult",
    "step",
    "Initialized",
    "ReservoirSlot",
    "ReservoirState",
    "StepStatus",
    "Uninitialized",
    "initialize",
]
