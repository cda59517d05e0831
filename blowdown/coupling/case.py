"""Run context driving the reservoir from the solver's adjust and profile hooks.

A :class:`VentingCase` replaces the process-wide globals of a classic
user-defined-function set-up (current mass, previous time, first-call flag,
last pressure) with explicit state owned by one object per run and per
partition.  The solver calls

* :meth:`VentingCase.adjust` once per time step, before faces are
  evaluated.  The first call fills the reservoir; later calls sample the
  boundary, reduce across partitions, integrate and cache the new boundary
  value.
* :meth:`VentingCase.profile` for every boundary-condition evaluation.  It
  only reads the cached value and may be called any number of times.

The solver guarantees that the adjust call, including its collectives,
completes before any profile call of the same step, so no locking is needed.
"""
from __future__ import annotations

import logging
import math
from typing import Optional, Sequence

from ..errors import ConfigurationError
from ..physics.gas import check_container
from ..physics.integrator import StepResult, step
from ..physics.reservoir import (
    Initialized,
    ReservoirSlot,
    ReservoirState,
    Uninitialized,
    initialize,
)
from ..runtime.events import StepEvent, StepObserver, log_step_event
from ..schema import Config
from .parallel import Reducer, SerialReducer
from .profile import emit, emit_named
from .registry import BoundaryRegistry, FaceGroup
from .sampler import BoundarySample, FlowSampler, build_sampler, mass_ratio_flow

__all__ = ["VentingCase"]

logger = logging.getLogger(__name__)


class VentingCase:
    """Reservoir coupled to one named solver boundary.

    Parameters
    ----------
    cfg:
        Validated run configuration.
    registry:
        Solver boundary lookup.
    reducer:
        Cross-partition collectives; defaults to a single partition.
    sampler:
        Flow estimation strategy; defaults to ``cfg.flow_model.strategy``.
    observers:
        Callables receiving a :class:`StepEvent` after every adjust call.

    Raises
    ------
    ConfigurationError
        When the container parameters cannot describe a physical reservoir.
        Raised at construction, before any step is attempted.
    """

    def __init__(
        self,
        cfg: Config,
        registry: BoundaryRegistry,
        *,
        reducer: Optional[Reducer] = None,
        sampler: Optional[FlowSampler] = None,
        observers: Sequence[StepObserver] = (log_step_event,),
    ) -> None:
        self.cfg = cfg
        self.registry = registry
        self.reducer: Reducer = reducer if reducer is not None else SerialReducer()
        self.sampler: FlowSampler = sampler if sampler is not None else build_sampler(cfg)
        self.observers = list(observers)
        self.gas_constant = cfg.gas.specific_gas_constant()
        check_container(cfg.reservoir.volume_m3, self.gas_constant, cfg.reservoir.temperature_K)
        if cfg.parallel.root >= self.reducer.size:
            raise ConfigurationError(
                f"parallel.root={cfg.parallel.root} is out of range for {self.reducer.size} partition(s)"
            )
        self._slot: ReservoirSlot = Uninitialized()
        self._previous_time: Optional[float] = None
        self._last_flow = 0.0
        self.last_result: Optional[StepResult] = None
        self._boundary_value = self._boundary_value_for(self._initial_state())

    # ------------------------------------------------------------------
    # State access
    # ------------------------------------------------------------------

    @property
    def slot(self) -> ReservoirSlot:
        return self._slot

    @property
    def initialized(self) -> bool:
        return isinstance(self._slot, Initialized)

    @property
    def state(self) -> Optional[ReservoirState]:
        """Live reservoir state, ``None`` before the first adjust call."""

        if isinstance(self._slot, Initialized):
            return self._slot.state
        return None

    @property
    def boundary_name(self) -> str:
        return self.cfg.boundary.name

    @property
    def boundary_value(self) -> float:
        """Value currently applied to the boundary profile."""

        return self._boundary_value

    @property
    def initial_mass_kg(self) -> Optional[float]:
        state = self.state
        return None if state is None else state.initial_mass_kg

    @property
    def initial_pressure_pa(self) -> Optional[float]:
        state = self.state
        return None if state is None else state.initial_pressure_pa

    def flow_rate(self) -> float:
        """Mass flow [kg/s] the reservoir currently delivers to the boundary."""

        state = self.state if self.state is not None else self._initial_state()
        return self._flow_for(state)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def setup(self) -> ReservoirState:
        """Fill the reservoir from the configuration; no-op once filled."""

        reservoir = self.cfg.reservoir
        self._slot = initialize(
            self._slot,
            reservoir.initial_pressure_Pa,
            reservoir.volume_m3,
            self.gas_constant,
            reservoir.temperature_K,
            initial_mass_kg=reservoir.initial_mass_kg,
        )
        state = self._slot.state
        self._boundary_value = self._boundary_value_for(state)
        return state

    def reset(self) -> None:
        """Return to the pre-run state; the next adjust call refills the reservoir."""

        self._slot = Uninitialized()
        self._previous_time = None
        self._last_flow = 0.0
        self.last_result = None
        self._boundary_value = self._boundary_value_for(self._initial_state())

    def set_total_mass(self, mass_kg: float) -> ReservoirState:
        """Impose the reservoir mass from outside the integration loop.

        The initial-mass reference is kept, so the mass-ratio model sees the
        imposed mass as a fraction of the original fill.
        """

        state = self.setup().with_mass(mass_kg)
        self._slot = Initialized(state)
        self._boundary_value = self._boundary_value_for(state)
        return state

    # ------------------------------------------------------------------
    # Solver hooks
    # ------------------------------------------------------------------

    def adjust(self, current_time_s: float) -> Optional[StepResult]:
        """Advance the reservoir to ``current_time_s``.

        Returns ``None`` on the first call, which only fills the reservoir,
        and the :class:`StepResult` of the step otherwise.
        """

        if not math.isfinite(current_time_s):
            raise ValueError(f"current time must be finite (got {current_time_s!r})")
        if not isinstance(self._slot, Initialized) or self._previous_time is None:
            state = self.setup()
            self._previous_time = float(current_time_s)
            logger.info(
                "adjust: first call at t=%f; initial mass %f kg, initial pressure %f Pa",
                current_time_s,
                state.mass_kg,
                state.pressure_pa,
            )
            return None

        state = self._slot.state
        dt = float(current_time_s) - self._previous_time
        self._previous_time = float(current_time_s)

        if dt <= 0.0:
            result = step(state, dt, 0.0)
            sample = BoundarySample(self.boundary_name, 0.0, found=True)
        else:
            sample = self._sample(state)
            flow = sample.aggregate_flow_kg_s
            if self.sampler.needs_faces:
                flow = self.reducer.allreduce_sum(flow)
            atmosphere = self.cfg.atmosphere
            result = step(
                state,
                dt,
                flow,
                atmospheric_pressure_pa=self.cfg.atmospheric_pressure(),
                near_equilibrium_margin_pa=atmosphere.near_equilibrium_margin_Pa,
                reseal=atmosphere.reseal_at_equilibrium,
            )
            self._slot = Initialized(result.state)
            self._last_flow = result.flow_kg_s
            value = self._boundary_value_for(result.state)
            if self.cfg.parallel.value_sync == "broadcast":
                value = self.reducer.broadcast(value, root=self.cfg.parallel.root)
            self._boundary_value = value

        self.last_result = result
        self._publish(current_time_s, sample, result)
        return result

    def profile(self, faces: FaceGroup) -> None:
        """Write the cached boundary value to every face of ``faces``."""

        emit(faces, self._boundary_value)

    def profile_named(self) -> bool:
        """Resolve the configured boundary and write the cached value to it."""

        return emit_named(self.registry, self.boundary_name, self._boundary_value)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _initial_state(self) -> ReservoirState:
        reservoir = self.cfg.reservoir
        if reservoir.initial_mass_kg is not None:
            return ReservoirState.from_mass(
                reservoir.initial_mass_kg, reservoir.volume_m3, self.gas_constant, reservoir.temperature_K
            )
        return ReservoirState.from_pressure(
            reservoir.initial_pressure_Pa, reservoir.volume_m3, self.gas_constant, reservoir.temperature_K
        )

    def _sample(self, state: ReservoirState) -> BoundarySample:
        faces = self.registry.lookup(self.boundary_name) if self.sampler.needs_faces else None
        return self.sampler.sample(state, faces)

    def _flow_for(self, state: ReservoirState) -> float:
        if state.sealed:
            return 0.0
        if self.cfg.flow_model.strategy == "mass_ratio":
            return mass_ratio_flow(state.mass_kg, state.initial_mass_kg, self.cfg.flow_model.base_flow_kg_s)
        return self._last_flow

    def _boundary_value_for(self, state: ReservoirState) -> float:
        if self.cfg.boundary.quantity == "mass_flow":
            return self._flow_for(state)
        return state.pressure_pa

    def _publish(self, time: float, sample: BoundarySample, result: StepResult) -> None:
        if not self.observers:
            return
        event = StepEvent(
            time=float(time),
            dt=result.dt_s,
            boundary_name=sample.boundary_name,
            boundary_found=sample.found,
            flow_kg_s=result.flow_kg_s,
            mass_kg=result.state.mass_kg,
            pressure_pa=result.state.pressure_pa,
            atmospheric_pressure_pa=self.cfg.atmospheric_pressure(),
            status=result.status,
            boundary_value=self._boundary_value,
            mass_clamped=result.mass_clamped,
            skipped=result.skipped,
        )
        for observer in self.observers:
            observer(event)
