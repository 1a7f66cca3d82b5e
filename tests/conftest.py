"""Shared fixtures for the HPA behavior simulator tests."""

from pathlib import Path

import pytest

from hpa_behavior.core.models import ControlLoopState
from hpa_behavior.data.sources import ConstantMetricSource
from hpa_behavior.simulation.controller import ControlLoop
from hpa_behavior.config.behavior import DEFAULT_BEHAVIOR

CONFIGS_DIR = Path(__file__).resolve().parent.parent / "configs"


@pytest.fixture
def configs_dir():
    return CONFIGS_DIR


def make_loop(
    metric=100.0,
    replicas=3,
    min_replicas=1,
    max_replicas=50,
    target=100.0,
    behavior=DEFAULT_BEHAVIOR,
    sync_period_seconds=15.0,
):
    """Helper to build a ControlLoop over a constant (or callable) metric."""
    source = ConstantMetricSource(metric) if isinstance(metric, (int, float)) else metric
    state = ControlLoopState(
        replicas=replicas,
        min_replicas=min_replicas,
        max_replicas=max_replicas,
        target=target,
    )
    return ControlLoop(behavior, state, source, sync_period_seconds=sync_period_seconds)


def run_ticks(loop, count, dt=1.0):
    return [loop.advance(dt) for _ in range(count)]
