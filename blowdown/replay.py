"""Offline replay of a reservoir blow-down against a recorded boundary flow.

The replay driver plays the role of the CFD solver: it advances time,
serves the monitored boundary's faces with the flow of a constant or
tabulated history, calls the adjust hook once per step and the profile hook
afterwards, and serialises the resulting time series.  It is used to size a
reservoir set-up and to check a configuration before coupling it to a real
solver run.

Usage::

    blowdown-replay --config case.yml --override replay.flow_kg_s=50
"""
from __future__ import annotations

import argparse
import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from .config_utils import build_config, configure_logging, load_config, read_overrides_file
from .coupling.case import VentingCase
from .coupling.registry import FaceGroup, require_faces
from .errors import BlowdownError, BoundaryNotFound, ConfigurationError
from .io import writer
from .physics.reservoir import StepStatus
from .runtime.events import StepObserver, log_step_event
from .runtime.history import StepHistory
from .schema import Config

logger = logging.getLogger(__name__)


@dataclass
class FlowSchedule:
    """Mass flow leaving the reservoir as a function of time [kg/s]."""

    time: np.ndarray
    flow: np.ndarray

    @classmethod
    def constant(cls, flow_kg_s: float) -> "FlowSchedule":
        return cls(np.array([0.0]), np.array([float(flow_kg_s)]))

    @classmethod
    def load(cls, path: Path) -> "FlowSchedule":
        df = pd.read_csv(path)
        if not {"time", "mass_flow_kg_s"}.issubset(df.columns):
            raise ConfigurationError(f"{path}: replay table needs 'time' and 'mass_flow_kg_s' columns")
        df = df.sort_values("time")
        return cls(df["time"].to_numpy(dtype=float), df["mass_flow_kg_s"].to_numpy(dtype=float))

    def __call__(self, t: float) -> float:
        if self.time.size == 1:
            return float(self.flow[0])
        return float(np.interp(t, self.time, self.flow, left=self.flow[0], right=self.flow[-1]))


class ReplayRegistry:
    """Boundary registry serving the replayed flow on the monitored boundary.

    The flow for the interval ending at the current time is spread evenly
    over ``n_faces`` mass-flux faces, expressed in the solver's sign
    convention (``flux_sign``).
    """

    def __init__(self, name: str, schedule: FlowSchedule, *, n_faces: int = 1, flux_sign: int = 1) -> None:
        self.name = name
        self.schedule = schedule
        self.n_faces = int(n_faces)
        self.flux_sign = int(flux_sign)
        self.time = 0.0
        self._faces = self._build_faces(0.0)

    def _build_faces(self, flow: float) -> FaceGroup:
        per_face = self.flux_sign * flow / self.n_faces
        return FaceGroup(
            name=self.name,
            flux=np.full(self.n_faces, per_face),
            density_c0=np.ones(self.n_faces),
            flux_kind="mass",
        )

    def advance(self, t: float) -> None:
        self.time = float(t)
        self._faces = self._build_faces(self.schedule(t))

    def lookup(self, name: str) -> Optional[FaceGroup]:
        if name != self.name:
            return None
        return self._faces


def _resolve_schedule(cfg: Config) -> FlowSchedule:
    replay = cfg.replay
    if replay.table is not None:
        return FlowSchedule.load(Path(replay.table))
    if replay.flow_kg_s is not None:
        return FlowSchedule.constant(replay.flow_kg_s)
    if cfg.flow_model.strategy == "direct_flux":
        raise ConfigurationError("replay with flow_model.strategy='direct_flux' needs replay.flow_kg_s or replay.table")
    return FlowSchedule.constant(0.0)


def replay_times(cfg: Config) -> np.ndarray:
    """Return the adjust-call times ``t_start, t_start + dt, ..., t_end``."""

    replay = cfg.replay
    n_steps = int(math.floor((replay.t_end_s - replay.t_start_s) / replay.dt_s + 1.0e-9))
    return replay.t_start_s + replay.dt_s * np.arange(n_steps + 1)


def _first_time(history: pd.DataFrame, status: StepStatus) -> Optional[float]:
    hits = history.loc[history["status"] == status.value, "time"]
    return float(hits.iloc[0]) if not hits.empty else None


def _summarise(cfg: Config, case: VentingCase, df: pd.DataFrame) -> Dict[str, Any]:
    state = case.state
    if state is None:
        raise BlowdownError("replay ended before the reservoir was filled")
    return {
        "boundary": cfg.boundary.name,
        "boundary_quantity": cfg.boundary.quantity,
        "strategy": cfg.flow_model.strategy,
        "steps": int(len(df)),
        "initial_mass_kg": state.initial_mass_kg,
        "initial_pressure_pa": state.initial_pressure_pa,
        "final_mass_kg": state.mass_kg,
        "final_pressure_pa": state.pressure_pa,
        "final_status": state.status.value,
        "mass_vented_kg": state.initial_mass_kg - state.mass_kg,
        "equilibrium_time_s": _first_time(df, StepStatus.EQUILIBRIUM) if not df.empty else None,
        "depleted_time_s": _first_time(df, StepStatus.DEPLETED) if not df.empty else None,
        "final_boundary_value": case.boundary_value,
    }


def run_replay(
    cfg: Config,
    *,
    observers: Sequence[StepObserver] = (log_step_event,),
    write_outputs: bool = True,
) -> pd.DataFrame:
    """Replay the configured flow history and return the step time series."""

    schedule = _resolve_schedule(cfg)
    registry = ReplayRegistry(
        cfg.boundary.name,
        schedule,
        n_faces=cfg.replay.n_faces,
        flux_sign=cfg.boundary.flux_sign,
    )
    try:
        require_faces(registry, cfg.boundary.name)
    except BoundaryNotFound as exc:
        logger.warning("replay: %s; the run will see zero flow", exc)

    history = StepHistory()
    case = VentingCase(cfg, registry, observers=[*observers, history])
    for t in replay_times(cfg):
        registry.advance(t)
        case.adjust(float(t))
        case.profile_named()

    df = history.to_frame()
    summary = _summarise(cfg, case, df)
    logger.info(
        "replay: %d steps, final mass %f kg, final pressure %f Pa (%s)",
        summary["steps"],
        summary["final_mass_kg"],
        summary["final_pressure_pa"],
        summary["final_status"],
    )
    if write_outputs:
        outdir = Path(cfg.io.outdir)
        writer.write_parquet(df, outdir / "series" / "run.parquet")
        writer.write_summary(summary, outdir / "summary.json")
        diag = cfg.io.step_diagnostics
        if diag.enable:
            path = diag.path
            if path is None:
                ext = "jsonl" if diag.format == "jsonl" else "csv"
                path = outdir / "series" / f"step_diagnostics.{ext}"
            elif not Path(path).is_absolute():
                path = outdir / path
            writer.write_step_diagnostics(history.records(), Path(path), fmt=diag.format)
    return df


def main(argv: Optional[List[str]] = None) -> None:
    """Command line entry point."""

    parser = argparse.ArgumentParser(description="Replay a reservoir blow-down against a boundary flow history")
    parser.add_argument("--config", type=Path, help="Path to YAML configuration (defaults apply when omitted)")
    parser.add_argument(
        "--override",
        action="append",
        nargs="+",
        metavar="PATH=VALUE",
        help="Apply configuration overrides using dotted paths; e.g. --override reservoir.volume_m3=5",
    )
    parser.add_argument(
        "--overrides-file",
        action="append",
        type=Path,
        help="Load overrides from a file (one PATH=VALUE per line).",
    )
    parser.add_argument(
        "--strategy",
        choices=["direct_flux", "mass_ratio"],
        help="Override flow_model.strategy from the CLI",
    )
    parser.add_argument(
        "--quiet",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Suppress INFO logs and Python warnings (use --no-quiet to force logs).",
    )
    args = parser.parse_args(argv)

    override_list: List[str] = []
    if args.overrides_file:
        for override_path in args.overrides_file:
            override_list.extend(read_overrides_file(override_path))
    if args.override:
        for group in args.override:
            override_list.extend(group)
    if args.strategy is not None:
        override_list.append(f"flow_model.strategy={args.strategy}")

    if args.config is not None:
        cfg = load_config(args.config, overrides=override_list)
    else:
        cfg = build_config({}, overrides=override_list)
    if args.quiet is not None:
        cfg.io.quiet = bool(args.quiet)
    configure_logging(
        logging.WARNING if cfg.io.quiet else logging.INFO,
        suppress_warnings=cfg.io.quiet,
    )
    run_replay(cfg)


__all__ = [
    "FlowSchedule",
    "ReplayRegistry",
    "replay_times",
    "run_replay",
    "main",
]


if __name__ == "__main__":  # pragma: no cover - standard CLI entrypoint
    main()
