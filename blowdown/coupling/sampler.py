"""Mass flow estimation at the monitored boundary.

Two interchangeable strategies are provided and selected at configuration
time through ``flow_model.strategy``:

``direct_flux``
    :class:`DirectFluxSampler` sums ``density * flux`` over the faces the
    solver reports for the named boundary.
``mass_ratio``
    :class:`MassRatioSampler` scales a base flow by the fraction of the
    initial mass still in the reservoir, for set-ups where no face sampling
    is available (blow-down of a bottle through a fixed orifice).

Both return a :class:`BoundarySample` whose flow is positive when mass
leaves the reservoir.
"""
from __future__ import annotations

import logging
import math
import warnings
from dataclasses import dataclass, field
from typing import Optional, Protocol

import numpy as np

from ..physics.reservoir import ReservoirState
from ..schema import Config
from ..warnings import NumericalWarning, PhysicsWarning
from .registry import FaceGroup

__all__ = [
    "BoundarySample",
    "FlowSampler",
    "DirectFluxSampler",
    "MassRatioSampler",
    "aggregate_mass_flow",
    "mass_ratio_flow",
    "build_sampler",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BoundarySample:
    """Aggregate flow through one boundary for the current step."""

    boundary_name: str
    aggregate_flow_kg_s: float
    found: bool = True
    n_faces: int = 0


class FlowSampler(Protocol):
    """Strategy interface for boundary flow estimation."""

    name: str
    needs_faces: bool
    boundary_name: str

    def sample(self, state: ReservoirState, faces: Optional[FaceGroup]) -> BoundarySample:
        """Return the flow leaving the reservoir for this step."""


def aggregate_mass_flow(faces: FaceGroup) -> float:
    """Return ``sum(density * flux)`` over ``faces`` (or ``sum(flux)`` for mass flux)."""

    if faces.n_faces == 0:
        return 0.0
    if faces.flux_kind == "mass":
        return float(np.sum(faces.flux))
    return float(np.sum(faces.densities() * faces.flux))


def mass_ratio_flow(total_mass_kg: float, initial_mass_kg: float, base_flow_kg_s: float) -> float:
    """Return ``base * (total / initial)`` clipped to be non-negative.

    An undefined ratio (``initial_mass_kg <= 0``) leaves the base flow
    unmodified.
    """

    if initial_mass_kg > 0.0:
        return max(base_flow_kg_s * (total_mass_kg / initial_mass_kg), 0.0)
    return base_flow_kg_s


@dataclass
class DirectFluxSampler:
    """Strategy A: aggregate the solver's face fluxes.

    ``flux_sign`` maps the solver's convention for this boundary onto
    "positive = leaving the reservoir".  For a rupture-disk inlet the solver's
    inflow into the domain is already positive (``+1``); for a true outlet
    that faces the reservoir the sign is usually reversed (``-1``).  This is a
    per-boundary assumption: a negative aggregate, i.e. gas flowing back into
    the container, raises a single :class:`PhysicsWarning` so the setting can
    be checked.
    """

    boundary_name: str
    flux_sign: float = 1.0
    name: str = "direct_flux"
    needs_faces: bool = True
    _backflow_warned: bool = field(default=False, init=False, repr=False)
    _missing_warned: bool = field(default=False, init=False, repr=False)

    def sample(self, state: ReservoirState, faces: Optional[FaceGroup]) -> BoundarySample:
        if faces is None:
            # partitions owning no boundary faces miss on every step
            if not self._missing_warned:
                logger.warning(
                    "boundary '%s' not found; treating flow as zero while it stays unresolved",
                    self.boundary_name,
                )
                self._missing_warned = True
            else:
                logger.debug("boundary '%s' still not found; flow is zero", self.boundary_name)
            return BoundarySample(self.boundary_name, 0.0, found=False, n_faces=0)

        flow = self.flux_sign * aggregate_mass_flow(faces)
        if not math.isfinite(flow):
            warnings.warn(
                f"non-finite mass flow sampled on boundary '{self.boundary_name}'; using zero",
                NumericalWarning,
            )
            flow = 0.0
        if flow < 0.0 and not self._backflow_warned:
            warnings.warn(
                f"negative aggregate flow ({flow:e} kg/s) on boundary '{self.boundary_name}': "
                "gas is entering the reservoir; check boundary.flux_sign for this boundary type",
                PhysicsWarning,
            )
            self._backflow_warned = True
        return BoundarySample(self.boundary_name, flow, found=True, n_faces=faces.n_faces)


@dataclass
class MassRatioSampler:
    """Strategy B: flow proportional to the remaining reservoir mass."""

    boundary_name: str
    base_flow_kg_s: float
    name: str = "mass_ratio"
    needs_faces: bool = False

    def sample(self, state: ReservoirState, faces: Optional[FaceGroup] = None) -> BoundarySample:
        flow = mass_ratio_flow(state.mass_kg, state.initial_mass_kg, self.base_flow_kg_s)
        n_faces = faces.n_faces if faces is not None else 0
        return BoundarySample(self.boundary_name, flow, found=True, n_faces=n_faces)


def build_sampler(cfg: Config) -> FlowSampler:
    """Return the flow sampler selected by ``cfg.flow_model.strategy``."""

    strategy = cfg.flow_model.strategy
    if strategy == "direct_flux":
        return DirectFluxSampler(boundary_name=cfg.boundary.name, flux_sign=float(cfg.boundary.flux_sign))
    if strategy == "mass_ratio":
        return MassRatioSampler(boundary_name=cfg.boundary.name, base_flow_kg_s=cfg.flow_model.base_flow_kg_s)
    raise ValueError(f"Unknown flow_model.strategy={strategy!r}")  # pragma: no cover - schema guards
