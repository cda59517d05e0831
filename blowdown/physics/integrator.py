"""Explicit mass/pressure update of the venting reservoir.

One call to :func:`step` advances the reservoir over the interval ``dt_s``
chosen by the external solver:

1. ``dt_s <= 0`` is a no-op (duplicate time stamps, first-step sentinel);
2. ``m' = m - mdot * dt`` (forward Euler; positive ``mdot`` leaves the
   reservoir);
3. ``m'`` is clamped at zero, reported as :attr:`StepStatus.DEPLETED`;
4. ``P' = m' R T / V``;
5. when venting to atmosphere, ``P'`` never drops below ambient: the clamp
   reports :attr:`StepStatus.EQUILIBRIUM` and, for a reseal-aware vent, stops
   any further outflow.

The update is closed form, so its accuracy is bounded only by the step size
the solver supplies.
"""
from __future__ import annotations

import logging
import math
import warnings
from dataclasses import dataclass, replace
from typing import Optional

from .. import constants
from ..warnings import NumericalWarning
from .gas import pressure_from_mass
from .reservoir import ReservoirState, StepStatus

__all__ = ["StepResult", "step"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StepResult:
    """Outcome of a single integration step.

    Attributes
    ----------
    state:
        Reservoir state after the step (identical to the input when skipped).
    status:
        Physical status after the step.
    flow_kg_s:
        Mass flow actually removed from the reservoir over the step.  Zero
        for skipped steps and for a sealed vent.
    dt_s:
        Interval used for the step.
    mass_clamped:
        ``True`` when the Euler update went negative and was clamped to zero.
    skipped:
        ``True`` when ``dt_s`` was not positive and nothing was integrated.
    """

    state: ReservoirState
    status: StepStatus
    flow_kg_s: float
    dt_s: float
    mass_clamped: bool = False
    skipped: bool = False


def step(
    state: ReservoirState,
    dt_s: float,
    aggregate_flow_kg_s: float,
    *,
    atmospheric_pressure_pa: Optional[float] = None,
    near_equilibrium_margin_pa: float = constants.NEAR_EQUILIBRIUM_MARGIN,
    reseal: bool = False,
) -> StepResult:
    """Advance ``state`` by ``dt_s`` seconds at a constant ``aggregate_flow_kg_s``.

    Parameters
    ----------
    state:
        Current reservoir state.
    dt_s:
        Step length [s].  Non-positive or non-finite values leave ``state``
        unchanged.
    aggregate_flow_kg_s:
        Mass flow rate through the monitored boundary [kg/s]; positive values
        deplete the reservoir.  A non-finite flow is treated as zero
        and reported with a :class:`NumericalWarning`.
    atmospheric_pressure_pa:
        Ambient pressure the vent discharges into.  ``None`` disables the
        equilibrium clamp (closed blow-down without a downstream reference).
    near_equilibrium_margin_pa:
        Pressure excess above ambient below which the status is reported as
        :attr:`StepStatus.NEAR_EQUILIBRIUM`.
    reseal:
        When ``True`` the vent closes once ambient pressure is reached and no
        further mass leaves the reservoir.
    """

    if not math.isfinite(dt_s) or dt_s <= 0.0:
        logger.debug("integrator.step: skipping step with dt=%r", dt_s)
        return StepResult(state=state, status=state.status, flow_kg_s=0.0, dt_s=dt_s, skipped=True)

    if not math.isfinite(aggregate_flow_kg_s):
        warnings.warn(
            f"non-finite mass flow ({aggregate_flow_kg_s!r}) passed to the integrator; using zero",
            NumericalWarning,
        )
        aggregate_flow_kg_s = 0.0

    if reseal and state.sealed:
        return StepResult(state=state, status=StepStatus.EQUILIBRIUM, flow_kg_s=0.0, dt_s=dt_s)

    mass = state.mass_kg - aggregate_flow_kg_s * dt_s
    removed_flow = float(aggregate_flow_kg_s)
    mass_clamped = False
    status = StepStatus.INTEGRATING
    if mass < 0.0:
        if state.mass_kg > 0.0:
            logger.warning(
                "integrator.step: mass became negative (%e kg); clamping to zero",
                mass,
            )
        else:
            logger.debug("integrator.step: reservoir already empty; mass held at zero")
        removed_flow = state.mass_kg / dt_s
        mass = 0.0
        mass_clamped = True
        status = StepStatus.DEPLETED

    pressure = pressure_from_mass(mass, state.volume_m3, state.gas_constant, state.temperature_k)
    sealed = False
    if atmospheric_pressure_pa is not None:
        if pressure <= atmospheric_pressure_pa:
            pressure = float(atmospheric_pressure_pa)
            status = StepStatus.EQUILIBRIUM
            sealed = reseal
        elif status is StepStatus.INTEGRATING and pressure - atmospheric_pressure_pa < near_equilibrium_margin_pa:
            status = StepStatus.NEAR_EQUILIBRIUM

    new_state = replace(state, mass_kg=mass, pressure_pa=pressure, status=status, sealed=sealed)
    return StepResult(
        state=new_state,
        status=status,
        flow_kg_s=removed_flow,
        dt_s=dt_s,
        mass_clamped=mass_clamped,
    )
