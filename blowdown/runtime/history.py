"""History containers for the per-step records of a run."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping

import pandas as pd
import pyarrow as pa

from .events import StepEvent


class ColumnarBuffer:
    """Column-oriented record buffer; new keys add columns padded with ``None``."""

    def __init__(self, columns: Iterable[str] | None = None) -> None:
        self._columns: Dict[str, List[Any]] = {}
        self._column_order: List[str] = []
        self._row_count = 0
        for name in columns or ():
            self._columns[name] = []
            self._column_order.append(name)

    def __len__(self) -> int:
        return self._row_count

    def append_row(self, record: Mapping[str, Any]) -> None:
        for key in record:
            if key not in self._columns:
                self._columns[key] = [None] * self._row_count
                self._column_order.append(key)
        for name in self._column_order:
            self._columns[name].append(record.get(name))
        self._row_count += 1

    def to_records(self) -> List[Dict[str, Any]]:
        return [
            {name: self._columns[name][idx] for name in self._column_order}
            for idx in range(self._row_count)
        ]

    def to_table(self, ensure_columns: Iterable[str] | None = None) -> pa.Table:
        ordered_names: List[str] = list(ensure_columns or ())
        ordered_names += [name for name in self._column_order if name not in ordered_names]
        data = {name: self._columns.get(name, [None] * self._row_count) for name in ordered_names}
        return pa.Table.from_pydict(data)


STEP_COLUMNS = (
    "time",
    "dt",
    "boundary_name",
    "boundary_found",
    "flow_kg_s",
    "mass_kg",
    "pressure_pa",
    "atmospheric_pressure_pa",
    "status",
    "boundary_value",
    "mass_clamped",
    "skipped",
)


class StepHistory:
    """Observer that records every :class:`StepEvent` of a run."""

    def __init__(self) -> None:
        self.buffer = ColumnarBuffer(STEP_COLUMNS)

    def __call__(self, event: StepEvent) -> None:
        self.buffer.append_row(event.to_record())

    def __len__(self) -> int:
        return len(self.buffer)

    def records(self) -> List[Dict[str, Any]]:
        return self.buffer.to_records()

    def to_table(self) -> pa.Table:
        return self.buffer.to_table(ensure_columns=STEP_COLUMNS)

    def to_frame(self) -> pd.DataFrame:
        return self.to_table().to_pandas()


__all__ = ["ColumnarBuffer", "StepHistory", "STEP_COLUMNS"]
