import json
import math

import pandas as pd
import pyarrow.parquet as pq

from blowdown.io import writer
from blowdown.physics.reservoir import StepStatus
from blowdown.runtime.events import StepEvent
from blowdown.runtime.history import STEP_COLUMNS, ColumnarBuffer, StepHistory


def _event(time, status=StepStatus.INTEGRATING, atm=101325.0):
    return StepEvent(
        time=time,
        dt=1.0,
        boundary_name="outlet",
        boundary_found=True,
        flow_kg_s=5.0,
        mass_kg=100.0 - 5.0 * time,
        pressure_pa=2.0e5,
        atmospheric_pressure_pa=atm,
        status=status,
        boundary_value=2.0e5,
    )


def test_columnar_buffer_pads_new_columns():
    buf = ColumnarBuffer(["time"])
    buf.append_row({"time": 1.0})
    buf.append_row({"time": 2.0, "note": "reseal"})
    assert len(buf) == 2
    assert buf.to_records() == [{"time": 1.0, "note": None}, {"time": 2.0, "note": "reseal"}]
    table = buf.to_table(ensure_columns=["time", "mass_kg"])
    assert table.column_names == ["time", "mass_kg", "note"]
    assert table.column("mass_kg").to_pylist() == [None, None]


def test_step_history_records_events():
    history = StepHistory()
    history(_event(1.0))
    history(_event(2.0, status=StepStatus.EQUILIBRIUM, atm=None))
    assert len(history) == 2
    df = history.to_frame()
    assert list(df.columns) == list(STEP_COLUMNS)
    assert df["status"].tolist() == ["integrating", "equilibrium"]
    assert math.isnan(df["atmospheric_pressure_pa"].iloc[1])


def test_step_event_pressure_in_bar():
    assert _event(0.0).pressure_bar == 2.0


def test_write_parquet_stores_units(tmp_path):
    history = StepHistory()
    history(_event(1.0))
    path = tmp_path / "series" / "run.parquet"
    writer.write_parquet(history.to_frame(), path)
    table = pq.read_table(path)
    units = json.loads(table.schema.metadata[b"units"])
    assert units["pressure_pa"] == "Pa"
    assert units["flow_kg_s"] == "kg s^-1"


def test_write_step_diagnostics_formats(tmp_path):
    rows = [_event(1.0).to_record(), _event(2.0).to_record()]
    csv_path = tmp_path / "diag.csv"
    writer.write_step_diagnostics(rows, csv_path, fmt="csv")
    assert pd.read_csv(csv_path)["time"].tolist() == [1.0, 2.0]
    jsonl_path = tmp_path / "diag.jsonl"
    writer.write_step_diagnostics(rows, jsonl_path, fmt="jsonl")
    lines = jsonl_path.read_text(encoding="utf-8").splitlines()
    assert json.loads(lines[1])["mass_kg"] == 90.0


def test_write_summary(tmp_path):
    path = tmp_path / "out" / "summary.json"
    writer.write_summary({"final_status": "equilibrium"}, path)
    assert json.loads(path.read_text(encoding="utf-8")) == {"final_status": "equilibrium"}
