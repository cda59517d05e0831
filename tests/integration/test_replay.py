"""End-to-end replay runs writing the time series and summary to disk."""

import json

import pandas as pd
import pytest

from blowdown import constants, replay
from blowdown.coupling.case import VentingCase
from blowdown.errors import BlowdownError, ConfigurationError

R = constants.R_UNIVERSAL / constants.DEFAULT_MOLAR_MASS
M0 = 405300.0 * 10.0 / (R * 298.15)


def test_constant_flow_replay_reaches_equilibrium(make_config, tmp_path):
    cfg = make_config(
        f"io.outdir={tmp_path}",
        "replay.flow_kg_s=10",
        "replay.t_end_s=30",
        "replay.n_faces=8",
        "io.step_diagnostics.enable=true",
    )
    df = replay.run_replay(cfg, observers=())
    assert len(df) == 30
    assert (df["mass_kg"] >= 0.0).all()
    assert df["mass_kg"].is_monotonic_decreasing
    assert df["pressure_pa"].iloc[-1] == constants.P_ATM
    assert df["status"].iloc[-1] == "equilibrium"

    summary = json.loads((tmp_path / "summary.json").read_text(encoding="utf-8"))
    assert summary["initial_mass_kg"] == pytest.approx(M0)
    assert summary["final_status"] == "equilibrium"
    assert summary["equilibrium_time_s"] == pytest.approx(11.0)
    assert summary["depleted_time_s"] is None
    assert (tmp_path / "series" / "run.parquet").exists()
    diag = pd.read_csv(tmp_path / "series" / "step_diagnostics.csv")
    assert len(diag) == 30


def test_replay_first_step_matches_hand_calculation(make_config, tmp_path):
    cfg = make_config(f"io.outdir={tmp_path}", "replay.flow_kg_s=50", "replay.t_end_s=1")
    df = replay.run_replay(cfg, observers=(), write_outputs=False)
    assert df["mass_kg"].iloc[0] == pytest.approx(M0 - 50.0)
    assert df["pressure_pa"].iloc[0] == pytest.approx((M0 - 50.0) * R * 298.15 / 10.0)


def test_replay_table_is_interpolated(make_config, tmp_path):
    table = tmp_path / "flow.csv"
    pd.DataFrame({"time": [0.0, 4.0], "mass_flow_kg_s": [0.0, 8.0]}).to_csv(table, index=False)
    cfg = make_config(f"replay.table={table}", "replay.t_end_s=4", "atmosphere.vent_to_atmosphere=false")
    df = replay.run_replay(cfg, observers=(), write_outputs=False)
    assert df["flow_kg_s"].tolist() == pytest.approx([2.0, 4.0, 6.0, 8.0])
    assert df["mass_kg"].iloc[-1] == pytest.approx(M0 - 20.0)


def test_replay_negative_flux_sign_is_undone(make_config):
    cfg = make_config("replay.flow_kg_s=5", "replay.t_end_s=2", "boundary.flux_sign=-1")
    df = replay.run_replay(cfg, observers=(), write_outputs=False)
    assert df["flow_kg_s"].tolist() == pytest.approx([5.0, 5.0])


def test_direct_flux_replay_needs_a_flow_source(make_config):
    with pytest.raises(ConfigurationError):
        replay.run_replay(make_config(), observers=(), write_outputs=False)


def test_mass_ratio_replay_without_flow_source(make_config):
    cfg = make_config("flow_model.strategy=mass_ratio", "flow_model.base_flow_kg_s=2", "replay.t_end_s=3")
    df = replay.run_replay(cfg, observers=(), write_outputs=False)
    assert df["flow_kg_s"].iloc[0] == pytest.approx(2.0)
    assert df["flow_kg_s"].is_monotonic_decreasing


def test_replay_times_include_end_point(make_config):
    cfg = make_config("replay.t_start_s=1", "replay.t_end_s=2", "replay.dt_s=0.25")
    assert replay.replay_times(cfg).tolist() == pytest.approx([1.0, 1.25, 1.5, 1.75, 2.0])


def test_cli_main_writes_outputs(tmp_path):
    config = tmp_path / "case.yml"
    config.write_text(
        "reservoir:\n"
        "  volume_m3: 10.0\n"
        "replay:\n"
        "  t_end_s: 5\n",
        encoding="utf-8",
    )
    replay.main(
        [
            "--config",
            str(config),
            "--override",
            f"io.outdir={tmp_path / 'out'}",
            "replay.flow_kg_s=20",
            "--strategy",
            "direct_flux",
            "--quiet",
        ]
    )
    summary = json.loads((tmp_path / "out" / "summary.json").read_text(encoding="utf-8"))
    assert summary["steps"] == 5
    assert summary["mass_vented_kg"] == pytest.approx(100.0)
    assert pd.read_parquet(tmp_path / "out" / "series" / "run.parquet").shape[0] == 5


def test_replay_without_steps_summarises_the_fill(make_config, tmp_path):
    cfg = make_config(f"io.outdir={tmp_path}", "replay.flow_kg_s=5", "replay.t_start_s=3", "replay.t_end_s=3")
    df = replay.run_replay(cfg, observers=())
    assert df.empty
    summary = json.loads((tmp_path / "summary.json").read_text(encoding="utf-8"))
    assert summary["steps"] == 0
    assert summary["final_mass_kg"] == pytest.approx(M0)
    assert summary["mass_vented_kg"] == 0.0
    assert summary["equilibrium_time_s"] is None


def test_summary_requires_a_filled_reservoir(make_config):
    cfg = make_config("replay.flow_kg_s=5")
    case = VentingCase(cfg, replay.ReplayRegistry(cfg.boundary.name, replay.FlowSchedule.constant(5.0)), observers=())
    with pytest.raises(BlowdownError):
        replay._summarise(cfg, case, pd.DataFrame())
