"""Simulator driver: run lifecycle, time decomposition and result export."""

import json
import math
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd
from loguru import logger

from ..config.behavior import behavior_to_yaml
from ..config.config import RunConfig
from ..core.errors import ConfigurationError
from ..core.models import BehaviorConfig, ControlLoopState, DecisionRecord, TimelineSample
from ..data.sources import MetricSource, as_metric_source, build_metric_source
from .controller import SYNC_EPSILON, ControlLoop, TickResult
from .metrics import calculate_metrics

TIMELINE_COLUMNS = ["t", "metric", "replicas", "desired", "stabilized"]
DECISION_COLUMNS = [
    "t", "metric", "ratio", "desired", "stabilized", "direction",
    "allowed", "applied_change", "replicas", "reason",
]


class SimulatorState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"


class Simulator:
    """
    Drives one ControlLoop through the Idle -> Running <-> Paused -> Idle lifecycle.

    Time advances only in fixed ``time_step_seconds`` ticks, whether it comes
    from ``pump`` (a host timer reporting real elapsed time), ``step`` or a
    batch ``run``.
    """

    def __init__(self, config: Optional[RunConfig] = None, metric_source: Optional[MetricSource] = None):
        self.config = config if config is not None else RunConfig()
        self._metric_source = as_metric_source(metric_source) if metric_source is not None else None
        self.status = SimulatorState.IDLE
        self._pending_seconds = 0.0
        self.loop = self._build_loop()

        logger.info(
            f"Simulator initialized: replicas {self.config.simulation.initial_replicas} in "
            f"[{self.config.simulation.min_replicas}, {self.config.simulation.max_replicas}], "
            f"target {self.config.simulation.target_value}"
        )

    @classmethod
    def from_template(
        cls,
        template_id: str,
        metric_source: Optional[MetricSource] = None,
        **sections: Any,
    ) -> "Simulator":
        return cls(RunConfig.from_template(template_id, **sections), metric_source=metric_source)

    def _build_metric_source(self) -> MetricSource:
        if self._metric_source is not None:
            return self._metric_source
        metric = self.config.metric
        return build_metric_source(
            metric.scenario,
            target=self.config.simulation.target_value,
            seed=metric.seed,
            formula=metric.formula,
            value=metric.value,
        )

    def _build_loop(self) -> ControlLoop:
        sim = self.config.simulation
        state = ControlLoopState(
            replicas=sim.initial_replicas,
            min_replicas=sim.min_replicas,
            max_replicas=sim.max_replicas,
            target=sim.target_value,
        )
        return ControlLoop(
            behavior=self.config.behavior,
            state=state,
            metric_source=self._build_metric_source(),
            sync_period_seconds=sim.sync_period_seconds,
        )

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> ControlLoopState:
        return self.loop.state

    @property
    def t(self) -> float:
        return self.loop.state.t

    @property
    def replicas(self) -> int:
        return self.loop.state.replicas

    @property
    def time_step(self) -> float:
        return self.config.simulation.time_step_seconds

    @property
    def timeline(self) -> List[TimelineSample]:
        return self.loop.samples

    @property
    def decisions(self) -> List[DecisionRecord]:
        return self.loop.decisions

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start or resume generating ticks from ``pump``."""
        if self.status == SimulatorState.RUNNING:
            return
        self.status = SimulatorState.RUNNING
        logger.info(f"Simulation running from t={self.t:.1f}s")

    resume = start

    def pause(self) -> None:
        """Stop generating ticks; all state is kept."""
        if self.status != SimulatorState.RUNNING:
            return
        self.status = SimulatorState.PAUSED
        self._pending_seconds = 0.0
        logger.info(f"Simulation paused at t={self.t:.1f}s")

    def step(self) -> TickResult:
        """Pause (if running) and advance exactly one time step."""
        self.pause()
        return self.advance(self.time_step)

    def clear(self) -> None:
        """Discard state, history, samples and decisions; back to Idle."""
        self.status = SimulatorState.IDLE
        self._pending_seconds = 0.0
        self.loop = self._build_loop()
        logger.info("Simulation cleared")

    def advance(self, dt: float) -> TickResult:
        """Run one tick of ``dt`` seconds regardless of the running state."""
        if self.status == SimulatorState.IDLE:
            self.status = SimulatorState.PAUSED
        return self.loop.advance(dt)

    def pump(self, elapsed_seconds: float) -> List[TickResult]:
        """
        Feed real elapsed time from a host timer.

        Elapsed time is scaled by ``speed`` and processed as whole time-step
        ticks; the remainder carries over to the next call. Nothing happens
        unless the simulator is running.
        """
        if self.status != SimulatorState.RUNNING:
            return []
        if elapsed_seconds < 0 or not math.isfinite(elapsed_seconds):
            raise ValueError(f"elapsed_seconds must be a non-negative number, got {elapsed_seconds!r}")

        self._pending_seconds += elapsed_seconds * self.config.simulation.speed
        results: List[TickResult] = []
        while self._pending_seconds >= self.time_step - SYNC_EPSILON:
            results.append(self.loop.advance(self.time_step))
            self._pending_seconds = max(0.0, self._pending_seconds - self.time_step)
        return results

    def run(self, duration_seconds: Optional[float] = None) -> Dict[str, Any]:
        """
        Batch-run ``duration_seconds`` of simulated time (config default).

        Returns:
            Results dictionary (see ``results``)
        """
        duration = duration_seconds if duration_seconds is not None else self.config.simulation.duration_seconds
        if duration <= 0:
            raise ConfigurationError("duration_seconds must be positive")

        ticks = math.ceil(duration / self.time_step - SYNC_EPSILON)
        logger.info(f"Running {ticks} ticks of {self.time_step}s from t={self.t:.1f}s")

        self.status = SimulatorState.RUNNING
        for _ in range(ticks):
            self.loop.advance(self.time_step)
        self.status = SimulatorState.PAUSED

        logger.info(
            f"Run finished at t={self.t:.1f}s with {self.replicas} replicas "
            f"after {len(self.decisions)} sync decisions"
        )
        return self.results()

    # ------------------------------------------------------------------
    # Live edits
    # ------------------------------------------------------------------

    def update_behavior(self, behavior: BehaviorConfig) -> None:
        """Replace the behavior; the next tick uses it. Past records are untouched."""
        self.loop.update_behavior(behavior)
        self.config = self.config.model_copy(update={"behavior": behavior})

    def update_limits(
        self,
        min_replicas: Optional[int] = None,
        max_replicas: Optional[int] = None,
        target: Optional[float] = None,
    ) -> None:
        """
        Change replica bounds and/or target mid-run.

        Replicas are brought back into bounds at the next sync commit.

        Raises:
            ConfigurationError: If the new values are invalid
        """
        state = self.loop.state
        new_min = state.min_replicas if min_replicas is None else min_replicas
        new_max = state.max_replicas if max_replicas is None else max_replicas
        new_target = state.target if target is None else target

        if not isinstance(new_min, int) or new_min < 0:
            raise ConfigurationError("min_replicas must be a non-negative integer")
        if not isinstance(new_max, int) or new_max < new_min:
            raise ConfigurationError("max_replicas must be an integer >= min_replicas")
        if not isinstance(new_target, (int, float)) or new_target <= 0:
            raise ConfigurationError("target must be a positive number")

        state.min_replicas = new_min
        state.max_replicas = new_max
        target_changed = new_target != state.target
        state.target = new_target

        self.config = self.config.model_copy(update={
            "simulation": self.config.simulation.model_copy(update={
                "min_replicas": new_min,
                "max_replicas": new_max,
                "target_value": new_target,
            })
        })
        if target_changed and self._metric_source is None:
            # built-in scenarios are shaped around the target
            self.loop.metric_source = self._build_metric_source()

        logger.info(f"Limits updated: [{new_min}, {new_max}], target {new_target}")

    def update_timing(
        self,
        speed: Optional[float] = None,
        time_step_seconds: Optional[float] = None,
        sync_period_seconds: Optional[float] = None,
    ) -> None:
        """
        Change clock settings mid-run without resetting.

        ``speed`` and ``time_step_seconds`` apply to the next ``pump``; a new
        sync period applies from the next tick, with the time already
        elapsed since the last sync counted towards it.

        Raises:
            ConfigurationError: If a value is not a positive number
        """
        updates = {
            "speed": speed,
            "time_step_seconds": time_step_seconds,
            "sync_period_seconds": sync_period_seconds,
        }
        updates = {name: value for name, value in updates.items() if value is not None}
        for name, value in updates.items():
            if (
                not isinstance(value, (int, float))
                or isinstance(value, bool)
                or not math.isfinite(value)
                or value <= 0
            ):
                raise ConfigurationError(f"{name} must be a positive number, got {value!r}")

        if "sync_period_seconds" in updates:
            self.loop.sync_period_seconds = float(updates["sync_period_seconds"])
        self.config = self.config.model_copy(update={
            "simulation": self.config.simulation.model_copy(update=updates)
        })

        logger.info(
            f"Timing updated: speed {self.config.simulation.speed}x, "
            f"step {self.time_step}s, sync {self.loop.sync_period_seconds}s"
        )

    def apply_template(self, template_id: str) -> None:
        """Load a template's bounds and behavior, keeping the metric scenario, and reset."""
        self.config = RunConfig.from_template(
            template_id, metric=self.config.metric, output=self.config.output
        )
        self.clear()
        logger.info(f"Template '{template_id}' applied")

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------

    def timeline_frame(self) -> pd.DataFrame:
        return pd.DataFrame([sample.as_row() for sample in self.timeline], columns=TIMELINE_COLUMNS)

    def decisions_frame(self) -> pd.DataFrame:
        return pd.DataFrame([record.as_row() for record in self.decisions], columns=DECISION_COLUMNS)

    def results(self) -> Dict[str, Any]:
        """
        Snapshot of the run so far.

        Returns:
            Dictionary with:
            - timeline: DataFrame (t, metric, replicas, desired, stabilized)
            - decisions: DataFrame, one row per sync boundary
            - metrics: Summary metrics
        """
        results: Dict[str, Any] = {
            "timeline": self.timeline_frame(),
            "decisions": self.decisions_frame(),
            "initial_replicas": self.config.simulation.initial_replicas,
            "target": self.loop.state.target,
            "metric_fallbacks": sum(1 for sample in self.timeline if sample.metric_fallback),
        }
        results["metrics"] = calculate_metrics(results)
        return results

    def save_results(self, output_dir: Optional[str] = None) -> Path:
        """
        Save the run to ``<output_dir>/run_<timestamp>/``.

        Writes timeline.csv, decisions.csv, behavior.yaml and metrics.json.

        Returns:
            Path to the run directory
        """
        if output_dir is None:
            output_dir = self.config.output.directory

        base_dir = Path(output_dir)
        run_id = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        run_dir = base_dir / f"run_{run_id}"
        run_dir.mkdir(parents=True, exist_ok=True)

        results = self.results()
        results["timeline"].to_csv(run_dir / "timeline.csv", index=False)
        results["decisions"].to_csv(run_dir / "decisions.csv", index=False)

        with open(run_dir / "behavior.yaml", "w") as f:
            f.write(behavior_to_yaml(self.config.behavior))

        with open(run_dir / "metrics.json", "w") as f:
            json.dump(results["metrics"], f, indent=2)

        logger.info(f"Results saved to {run_dir}")
        return run_dir
