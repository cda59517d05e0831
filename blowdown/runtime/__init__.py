"""Step events and run history."""

from .events import StepEvent, StepObserver, log_step_event
from .history import STEP_COLUMNS, ColumnarBuffer, StepHistory

__all__ = [
    "StepEvent",
    "StepObserver",
    "log_step_event",
    "STEP_COLUMNS",
    "ColumnarBuffer",
    "StepHistory",
]
