"""Physical constants and default parameters for the reservoir blow-down model.

This module collects the handful of constants used throughout the code base.
Numerical values are taken from CODATA 2018 where applicable.  All values are
provided in SI units; the universal gas constant is expressed per kilomole so
that it combines directly with molar masses given in kg/kmol.
"""
from __future__ import annotations

# Universal gas constant (J kmol^-1 K^-1)
R_UNIVERSAL: float = 8314.462618

# Standard atmosphere (Pa)
P_ATM: float = 101325.0

# Margin above ambient within which the reservoir is reported as close to
# equilibrium (Pa)
NEAR_EQUILIBRIUM_MARGIN: float = 1000.0

# Default container: 10 m^3 at 25 degC holding a gas of molar mass 88.15
# kg/kmol at 3 kgf/cm^2 gauge (405300 Pa absolute).
DEFAULT_VOLUME_M3: float = 10.0
DEFAULT_TEMPERATURE_K: float = 25.0 + 273.15
DEFAULT_MOLAR_MASS: float = 88.15  # kg/kmol
DEFAULT_INITIAL_PRESSURE: float = 405300.0  # Pa

DEFAULT_BOUNDARY_NAME: str = "inlet_r51101_burst"

# Base flow of the mass-ratio inlet model (kg s^-1)
DEFAULT_BASE_FLOW: float = 1.0

