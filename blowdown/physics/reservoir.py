"""Reservoir state and one-time initialisation.

A run context holds a :data:`ReservoirSlot`, which is either
:class:`Uninitialized` or :class:`Initialized`.  Only the latter carries a
:class:`ReservoirState`, and only a :class:`ReservoirState` can be advanced by
:func:`blowdown.physics.integrator.step`, so stepping an uninitialised
reservoir cannot be expressed.
"""
from __future__ import annotations

import enum
import logging
import math
from dataclasses import dataclass, replace
from typing import Optional, Union

from ..errors import ConfigurationError
from .gas import check_container, mass_from_pressure, pressure_from_mass

__all__ = [
    "StepStatus",
    "ReservoirState",
    "Uninitialized",
    "Initialized",
    "ReservoirSlot",
    "initialize",
]

logger = logging.getLogger(__name__)


class StepStatus(str, enum.Enum):
    """Physical status reported after each integration step."""

    INTEGRATING = "integrating"
    NEAR_EQUILIBRIUM = "near_equilibrium"
    EQUILIBRIUM = "equilibrium"
    DEPLETED = "depleted"


@dataclass(frozen=True)
class ReservoirState:
    """Lumped state of the fixed-volume gas container.

    Parameters
    ----------
    mass_kg : float
        Current gas mass [kg]; never negative.
    pressure_pa : float
        Current pressure [Pa].  Equal to ``mass_kg * R * T / V`` except when
        the vent has been clamped at the ambient pressure.
    volume_m3, gas_constant, temperature_k : float
        Container volume [m^3], specific gas constant [J kg^-1 K^-1] and the
        (isothermal) gas temperature [K].
    initial_mass_kg, initial_pressure_pa : float
        Conditions at initialisation, used as normalisation references by the
        mass-ratio inlet model.
    status : StepStatus
        Status reported by the most recent step.
    sealed : bool
        ``True`` once a reseal-aware vent has reached ambient pressure.
    """

    mass_kg: float
    pressure_pa: float
    volume_m3: float
    gas_constant: float
    temperature_k: float
    initial_mass_kg: float
    initial_pressure_pa: float
    status: StepStatus = StepStatus.INTEGRATING
    sealed: bool = False

    def __post_init__(self) -> None:
        if not math.isfinite(self.mass_kg) or self.mass_kg < 0.0:
            raise ConfigurationError(f"reservoir mass must be finite and non-negative (got {self.mass_kg!r})")

    @classmethod
    def from_pressure(
        cls,
        initial_pressure_pa: float,
        volume_m3: float,
        gas_constant: float,
        temperature_k: float,
    ) -> "ReservoirState":
        """Build the state for a container filled to ``initial_pressure_pa``."""

        check_container(volume_m3, gas_constant, temperature_k)
        if not math.isfinite(initial_pressure_pa) or initial_pressure_pa < 0.0:
            raise ConfigurationError("initial pressure must be finite and non-negative")
        mass = mass_from_pressure(initial_pressure_pa, volume_m3, gas_constant, temperature_k)
        return cls(
            mass_kg=mass,
            pressure_pa=float(initial_pressure_pa),
            volume_m3=float(volume_m3),
            gas_constant=float(gas_constant),
            temperature_k=float(temperature_k),
            initial_mass_kg=mass,
            initial_pressure_pa=float(initial_pressure_pa),
        )

    @classmethod
    def from_mass(
        cls,
        initial_mass_kg: float,
        volume_m3: float,
        gas_constant: float,
        temperature_k: float,
    ) -> "ReservoirState":
        """Build the state for a container holding ``initial_mass_kg`` of gas."""

        check_container(volume_m3, gas_constant, temperature_k)
        if not math.isfinite(initial_mass_kg) or initial_mass_kg < 0.0:
            raise ConfigurationError("initial mass must be finite and non-negative")
        pressure = pressure_from_mass(initial_mass_kg, volume_m3, gas_constant, temperature_k)
        return cls(
            mass_kg=float(initial_mass_kg),
            pressure_pa=pressure,
            volume_m3=float(volume_m3),
            gas_constant=float(gas_constant),
            temperature_k=float(temperature_k),
            initial_mass_kg=float(initial_mass_kg),
            initial_pressure_pa=pressure,
        )

    @property
    def ideal_gas_pressure(self) -> float:
        """Pressure implied by the current mass, ignoring any ambient clamp."""

        return pressure_from_mass(self.mass_kg, self.volume_m3, self.gas_constant, self.temperature_k)

    def with_mass(self, mass_kg: float) -> "ReservoirState":
        """Return a copy holding ``mass_kg`` with the pressure recomputed.

        The seal is lifted, so an externally imposed mass restarts venting.
        """

        if not math.isfinite(mass_kg) or mass_kg < 0.0:
            raise ConfigurationError("reservoir mass must be finite and non-negative")
        pressure = pressure_from_mass(mass_kg, self.volume_m3, self.gas_constant, self.temperature_k)
        return replace(
            self,
            mass_kg=float(mass_kg),
            pressure_pa=pressure,
            status=StepStatus.INTEGRATING,
            sealed=False,
        )


@dataclass(frozen=True)
class Uninitialized:
    """Placeholder slot before the first adjust call of a run."""


@dataclass(frozen=True)
class Initialized:
    """Slot holding the live reservoir state."""

    state: ReservoirState


ReservoirSlot = Union[Uninitialized, Initialized]


def initialize(
    slot: ReservoirSlot,
    initial_pressure_pa: float,
    volume_m3: float,
    gas_constant: float,
    temperature_k: float,
    *,
    initial_mass_kg: Optional[float] = None,
) -> Initialized:
    """Initialise the reservoir exactly once.

    When ``slot`` is already :class:`Initialized` it is returned unchanged,
    whatever the new arguments are; the adjust hook fires on every step and
    must not re-fill the container.  Otherwise the mass follows from
    ``m = P V / (R T)``, or the pressure from ``initial_mass_kg`` when given.
    """

    if isinstance(slot, Initialized):
        return slot
    if initial_mass_kg is not None:
        state = ReservoirState.from_mass(initial_mass_kg, volume_m3, gas_constant, temperature_k)
    else:
        state = ReservoirState.from_pressure(initial_pressure_pa, volume_m3, gas_constant, temperature_k)
    logger.info(
        "reservoir initialised: mass=%f kg pressure=%f Pa volume=%g m^3 R=%g J/(kg K) T=%g K",
        state.mass_kg,
        state.pressure_pa,
        state.volume_m3,
        state.gas_constant,
        state.temperature_k,
    )
    return Initialized(state)
