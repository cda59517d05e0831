"""Isothermal ideal-gas relations for a fixed-volume container.

The reservoir is treated as a single lumped control volume at constant
temperature, so pressure and mass are linked by ``P V = m R T`` with ``R`` the
specific gas constant.  The helpers below are pure functions; argument
validation is left to :func:`check_container`, which callers run once at
set-up rather than on every step.
"""
from __future__ import annotations

import math

from .. import constants
from ..errors import ConfigurationError, PhysicsError

__all__ = [
    "specific_gas_constant",
    "check_container",
    "mass_from_pressure",
    "pressure_from_mass",
]


def specific_gas_constant(molar_mass_kg_kmol: float) -> float:
    """Return ``R_u / M`` in J kg^-1 K^-1 for a molar mass in kg/kmol."""

    if not math.isfinite(molar_mass_kg_kmol) or molar_mass_kg_kmol <= 0.0:
        raise PhysicsError("molar mass must be finite and positive")
    return constants.R_UNIVERSAL / molar_mass_kg_kmol


def check_container(volume_m3: float, gas_constant: float, temperature_k: float) -> None:
    """Validate the constant container parameters.

    Raises
    ------
    ConfigurationError
        If any of the inputs is non-finite or not strictly positive.
    """

    for label, value in (
        ("volume_m3", volume_m3),
        ("gas_constant", gas_constant),
        ("temperature_k", temperature_k),
    ):
        if not math.isfinite(value) or value <= 0.0:
            raise ConfigurationError(f"{label} must be finite and positive (got {value!r})")


def mass_from_pressure(
    pressure_pa: float, volume_m3: float, gas_constant: float, temperature_k: float
) -> float:
    """Return the gas mass [kg] for ``pressure_pa`` in the container."""

    return pressure_pa * volume_m3 / (gas_constant * temperature_k)


def pressure_from_mass(
    mass_kg: float, volume_m3: float, gas_constant: float, temperature_k: float
) -> float:
    """Return the container pressure [Pa] holding ``mass_kg`` of gas."""

    return mass_kg * gas_constant * temperature_k / volume_m3
