"""Configuration schema for reservoir blow-down runs.

This module defines Pydantic models that mirror the structure of the YAML
configuration files read by :func:`blowdown.config_utils.load_config`.  The
same :class:`Config` drives the solver coupling (:mod:`blowdown.coupling`)
and the offline replay driver (:mod:`blowdown.replay`).
"""
from __future__ import annotations

import math
from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from . import constants
from .errors import ConfigurationError
from .physics.gas import specific_gas_constant


class Gas(BaseModel):
    """Gas properties for the isothermal ideal-gas relation."""

    molar_mass_kg_kmol: float = Field(
        constants.DEFAULT_MOLAR_MASS,
        gt=0.0,
        description="Molar mass of the stored gas [kg/kmol]; R = R_u / M.",
    )
    gas_constant_J_kgK: Optional[float] = Field(
        None,
        gt=0.0,
        description="Explicit specific gas constant [J/(kg K)]; overrides the molar-mass derivation.",
    )

    def specific_gas_constant(self) -> float:
        """Return the specific gas constant used by the run."""

        if self.gas_constant_J_kgK is not None:
            return float(self.gas_constant_J_kgK)
        return specific_gas_constant(self.molar_mass_kg_kmol)


class Reservoir(BaseModel):
    """Fixed-volume container and its initial fill."""

    volume_m3: float = Field(constants.DEFAULT_VOLUME_M3, gt=0.0, description="Container volume [m^3].")
    temperature_K: float = Field(
        constants.DEFAULT_TEMPERATURE_K,
        gt=0.0,
        description="Gas temperature [K]; held constant (isothermal assumption).",
    )
    initial_pressure_Pa: float = Field(
        constants.DEFAULT_INITIAL_PRESSURE,
        ge=0.0,
        description="Absolute initial pressure [Pa]; gauge pressure plus atmospheric.",
    )
    initial_mass_kg: Optional[float] = Field(
        None,
        ge=0.0,
        description="Optional initial gas mass [kg]; when set the initial pressure is derived from it.",
    )

    @field_validator("volume_m3", "temperature_K", "initial_pressure_Pa")
    def _check_finite(cls, value: float) -> float:
        if not math.isfinite(value):
            raise ConfigurationError("reservoir parameters must be finite")
        return float(value)


class Atmosphere(BaseModel):
    """Downstream reference the vent discharges into."""

    vent_to_atmosphere: bool = Field(
        True,
        description="Clamp the reservoir pressure at the ambient pressure and report equilibrium.",
    )
    pressure_Pa: float = Field(constants.P_ATM, gt=0.0, description="Ambient pressure [Pa].")
    near_equilibrium_margin_Pa: float = Field(
        constants.NEAR_EQUILIBRIUM_MARGIN,
        ge=0.0,
        description="Pressure excess above ambient reported as near-equilibrium [Pa].",
    )
    reseal_at_equilibrium: bool = Field(
        True,
        description="Close the vent once ambient pressure is reached (check-valve / burst-disk reseal).",
    )


class Boundary(BaseModel):
    """Binding to the solver boundary that is monitored and driven."""

    name: str = Field(
        constants.DEFAULT_BOUNDARY_NAME,
        min_length=1,
        description="Boundary name; must match the solver case set-up exactly.",
    )
    quantity: Literal["pressure", "mass_flow"] = Field(
        "pressure",
        description="Value written to the boundary profile: reservoir pressure [Pa] or mass flow [kg/s].",
    )
    flux_sign: Literal[1, -1] = Field(
        1,
        description="Multiplier mapping the solver's face flux onto 'positive = leaving the reservoir'.",
    )


class FlowModel(BaseModel):
    """Selection of the boundary flow estimation strategy."""

    strategy: Literal["direct_flux", "mass_ratio"] = Field(
        "direct_flux",
        description="'direct_flux' sums solver face fluxes; 'mass_ratio' scales base_flow_kg_s by m/m0.",
    )
    base_flow_kg_s: float = Field(
        constants.DEFAULT_BASE_FLOW,
        description="Base mass flow rate [kg/s] of the mass-ratio model.",
    )

    @model_validator(mode="before")
    def _normalise_strategy(cls, data: Any) -> Any:
        """Accept the short aliases 'flux' and 'ratio'."""

        if not isinstance(data, dict):
            return data
        text = data.get("strategy")
        if isinstance(text, str):
            lowered = text.strip().lower()
            if lowered in {"flux", "direct"}:
                data["strategy"] = "direct_flux"
            elif lowered in {"ratio", "mass-ratio"}:
                data["strategy"] = "mass_ratio"
        return data

    @field_validator("base_flow_kg_s")
    def _check_base_flow(cls, value: float) -> float:
        if not math.isfinite(value):
            raise ConfigurationError("flow_model.base_flow_kg_s must be finite")
        return float(value)


class Parallel(BaseModel):
    """Synchronisation of the boundary value across solver partitions."""

    value_sync: Literal["broadcast", "none"] = Field(
        "broadcast",
        description="Broadcast the finished boundary value from the root partition each step.",
    )
    root: int = Field(0, ge=0, description="Partition that owns the authoritative value.")


class Replay(BaseModel):
    """Offline replay of a boundary flow history (stand-in for the solver)."""

    t_start_s: float = Field(0.0, description="Time of the first (initialising) adjust call [s].")
    t_end_s: float = Field(60.0, description="Final time [s].")
    dt_s: float = Field(1.0, gt=0.0, description="Solver time step [s].")
    flow_kg_s: Optional[float] = Field(
        None,
        description="Constant mass flow leaving the reservoir [kg/s].",
    )
    table: Optional[Path] = Field(
        None,
        description="CSV with 'time' and 'mass_flow_kg_s' columns, interpolated linearly.",
    )
    n_faces: int = Field(1, ge=1, description="Number of faces the replayed flow is spread over.")

    @model_validator(mode="after")
    def _check_source(self) -> "Replay":
        if self.t_end_s < self.t_start_s:
            raise ConfigurationError(
                f"replay.t_end_s ({self.t_end_s}) must not precede replay.t_start_s ({self.t_start_s})"
            )
        if self.flow_kg_s is not None and self.table is not None:
            raise ConfigurationError("replay.flow_kg_s and replay.table are mutually exclusive")
        return self


class StepDiagnostics(BaseModel):
    """Per-step diagnostics output control."""

    enable: bool = Field(False, description="Write per-step records to disk (CSV or JSONL).")
    format: Literal["csv", "jsonl"] = Field("csv", description="Serialisation format.")
    path: Optional[Path] = Field(
        None,
        description="Optional path (absolute or relative to outdir) for the diagnostics file.",
    )


class IO(BaseModel):
    """Output directories and console verbosity."""

    outdir: Path = Path("out")
    step_diagnostics: StepDiagnostics = StepDiagnostics()
    quiet: bool = Field(
        False,
        description="Suppress INFO logging and Python warnings for cleaner CLI output.",
    )


class Config(BaseModel):
    """Top-level configuration object."""

    gas: Gas = Gas()
    reservoir: Reservoir = Reservoir()
    atmosphere: Atmosphere = Atmosphere()
    boundary: Boundary = Boundary()
    flow_model: FlowModel = FlowModel()
    parallel: Parallel = Parallel()
    replay: Replay = Replay()
    io: IO = IO()

    def atmospheric_pressure(self) -> Optional[float]:
        """Return the ambient pressure, or ``None`` when not venting to atmosphere."""

        if not self.atmosphere.vent_to_atmosphere:
            return None
        return float(self.atmosphere.pressure_Pa)


__all__ = [
    "Gas",
    "Reservoir",
    "Atmosphere",
    "Boundary",
    "FlowModel",
    "Parallel",
    "Replay",
    "StepDiagnostics",
    "IO",
    "Config",
]
