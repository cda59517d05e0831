"""Structured per-step events published by the run context.

The integration code never prints.  After each adjust call the run context
builds a :class:`StepEvent` and hands it to every registered observer; an
observer is any callable taking the event.  :func:`log_step_event` renders the
human-readable console summary and :class:`blowdown.runtime.history.StepHistory`
records the time series.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, Optional

from ..physics.reservoir import StepStatus

__all__ = ["StepEvent", "StepObserver", "log_step_event"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StepEvent:
    """Snapshot of one adjust call."""

    time: float
    dt: float
    boundary_name: str
    boundary_found: bool
    flow_kg_s: float
    mass_kg: float
    pressure_pa: float
    atmospheric_pressure_pa: Optional[float]
    status: StepStatus
    boundary_value: float
    mass_clamped: bool = False
    skipped: bool = False

    @property
    def pressure_bar(self) -> float:
        return self.pressure_pa / 1.0e5

    def to_record(self) -> Dict[str, Any]:
        """Return a flat mapping suitable for tabular output."""

        record = asdict(self)
        record["status"] = self.status.value
        record["atmospheric_pressure_pa"] = (
            float("nan") if self.atmospheric_pressure_pa is None else self.atmospheric_pressure_pa
        )
        return record


StepObserver = Callable[[StepEvent], None]


def log_step_event(event: StepEvent) -> None:
    """Log a one-line step summary, escalating on equilibrium transitions."""

    if event.skipped:
        logger.info("adjust: t=%f dt=%f skipped (dt must be > 0)", event.time, event.dt)
        return
    logger.info(
        "adjust: t=%f dt=%f boundary=%s flow=%e kg/s mass=%f kg pressure=%f Pa (%.2f bar) status=%s",
        event.time,
        event.dt,
        event.boundary_name,
        event.flow_kg_s,
        event.mass_kg,
        event.pressure_pa,
        event.pressure_bar,
        event.status.value,
    )
    if event.status is StepStatus.EQUILIBRIUM:
        logger.warning(
            "adjust: equilibrium reached at t=%f; reservoir pressure at ambient (%f Pa)",
            event.time,
            event.pressure_pa,
        )
    elif event.status is StepStatus.NEAR_EQUILIBRIUM and event.atmospheric_pressure_pa is not None:
        logger.info(
            "adjust: approaching equilibrium, pressure difference %f Pa",
            event.pressure_pa - event.atmospheric_pressure_pa,
        )
    elif event.status is StepStatus.DEPLETED:
        logger.warning("adjust: reservoir depleted at t=%f", event.time)
