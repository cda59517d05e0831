"""Output helper utilities.

The routines in this module provide thin wrappers around :mod:`pandas`
functionality to serialise run results.  Parquet is used for the step time
series, JSON for run summaries and CSV/JSONL for per-step diagnostics.  All
functions ensure that destination directories are created when necessary.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterable, Literal, Mapping

import pandas as pd
import pyarrow as pa
import pyarrow.parquet as pq

UNITS = {
    "time": "s",
    "dt": "s",
    "flow_kg_s": "kg s^-1",
    "mass_kg": "kg",
    "pressure_pa": "Pa",
    "atmospheric_pressure_pa": "Pa",
    "boundary_value": "Pa or kg s^-1 (boundary.quantity)",
    "status": "category",
    "boundary_found": "bool",
    "mass_clamped": "bool",
    "skipped": "bool",
}


def _ensure_parent(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def write_parquet(df: pd.DataFrame, path: Path, *, compression: str = "snappy") -> None:
    """Write a DataFrame to a Parquet file using ``pyarrow``.

    Column units are stored in the schema metadata under ``units``.

    Parameters
    ----------
    df:
        Table to serialise.
    path:
        Destination file path.
    """
    _ensure_parent(path)
    table = pa.Table.from_pandas(df, preserve_index=False)
    units = {name: UNITS[name] for name in table.column_names if name in UNITS}
    metadata = dict(table.schema.metadata or {})
    metadata[b"units"] = json.dumps(units, sort_keys=True).encode("utf-8")
    table = table.replace_schema_metadata(metadata)
    compression_arg = None if compression == "none" else compression
    pq.write_table(table, path, compression=compression_arg)


def write_summary(summary: Mapping[str, Any], path: Path) -> None:
    """Write a summary dictionary to ``summary.json``.

    The JSON file is formatted with a small indentation for human
    readability.
    """
    _ensure_parent(path)
    with path.open("w", encoding="utf-8") as fh:
        json.dump(summary, fh, indent=2, sort_keys=True)


def write_step_diagnostics(
    rows: Iterable[Mapping[str, Any]],
    path: Path,
    *,
    fmt: Literal["csv", "jsonl"] = "csv",
) -> None:
    """Serialise per-step records."""

    rows = list(rows)
    _ensure_parent(path)
    fmt_lower = str(fmt).lower()
    if fmt_lower == "csv":
        df = pd.DataFrame(rows)
        df.to_csv(path, index=False)
    elif fmt_lower == "jsonl":
        with path.open("w", encoding="utf-8") as fh:
            for row in rows:
                fh.write(json.dumps(row, sort_keys=True))
                fh.write("\n")
    else:
        raise ValueError(f"Unsupported step diagnostics format: {fmt}")


__all__ = ["UNITS", "write_parquet", "write_summary", "write_step_diagnostics"]
