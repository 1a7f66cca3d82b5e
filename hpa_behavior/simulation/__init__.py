"""Simulation engine: control loop, driver and run metrics."""

from .controller import SYNC_EPSILON, ControlLoop, TickResult, round_half_up
from .simulator import Simulator, SimulatorState
from .metrics import calculate_metrics, format_metrics_table

__all__ = [
    "SYNC_EPSILON",
    "ControlLoop",
    "TickResult",
    "round_half_up",
    "Simulator",
    "SimulatorState",
    "calculate_metrics",
    "format_metrics_table",
]
