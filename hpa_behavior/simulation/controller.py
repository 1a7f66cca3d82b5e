"""The HPA control loop: one explicit, host-agnostic step function."""

import math
from dataclasses import dataclass
from typing import List, Optional

from loguru import logger

from ..core.errors import ConfigurationError
from ..core.models import (
    BehaviorConfig,
    ControlLoopState,
    DecisionRecord,
    DesiredHistoryEntry,
    ScalingDirection,
    TimelineSample,
)
from ..data.sources import MetricSource, as_metric_source
from ..scaling.policies import allowed_change
from ..scaling.replicas import desired_replicas, direction_for
from ..scaling.stabilization import prune_history, stabilize
from ..scaling.tolerance import allowed, effective_tolerance, metric_ratio

# Accumulated float time steps (e.g. 0.1s) must still land on the boundary.
SYNC_EPSILON = 1e-6


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


@dataclass(frozen=True)
class TickResult:
    """What one call to ``ControlLoop.advance`` produced."""
    sample: TimelineSample
    decision: Optional[DecisionRecord] = None


class ControlLoop:
    """
    Orchestrates tolerance gating, stabilization and policy limits per tick.

    The loop owns its ``ControlLoopState`` and the append-only sample and
    decision logs. Nothing here is global, so independent loops can run side
    by side.
    """

    def __init__(
        self,
        behavior: BehaviorConfig,
        state: ControlLoopState,
        metric_source: MetricSource,
        sync_period_seconds: float = 15.0,
    ):
        if not isinstance(behavior, BehaviorConfig):
            raise ConfigurationError("behavior must be a BehaviorConfig")
        if not isinstance(sync_period_seconds, (int, float)) or sync_period_seconds <= 0:
            raise ConfigurationError("sync_period_seconds must be a positive number")

        self.behavior = behavior
        self.state = state
        self.metric_source = as_metric_source(metric_source)
        self.sync_period_seconds = float(sync_period_seconds)

        self.samples: List[TimelineSample] = []
        self.decisions: List[DecisionRecord] = []

    def advance(self, dt: float) -> TickResult:
        """
        Advance simulated time by ``dt`` seconds and run one tick.

        Returns:
            The tick's TimelineSample and, on a sync boundary, its DecisionRecord
        """
        if not isinstance(dt, (int, float)) or not math.isfinite(dt) or dt <= 0:
            raise ValueError(f"dt must be a positive, finite number of seconds, got {dt!r}")

        state = self.state
        state.t += dt
        state.elapsed_since_sync += dt

        metric, fell_back = self.metric_source.sample(state.t, fallback=state.target)
        desired_raw = desired_replicas(state.replicas, metric, state.target)
        direction = direction_for(desired_raw, state.replicas)

        # The window must see the unfiltered signal, gated or not
        state.desired_history.append(DesiredHistoryEntry(t=state.t, desired=desired_raw))
        state.desired_history = prune_history(
            state.desired_history, state.t, self.behavior.max_window_seconds
        )

        window = 0
        if direction != ScalingDirection.HOLD:
            window = self.behavior.for_direction(direction).stabilization_window_seconds
        desired_stabilized = stabilize(
            direction, desired_raw, state.desired_history, window, state.t
        )

        sample = TimelineSample(
            t=state.t,
            metric=metric,
            replicas=state.replicas,
            desired_raw=desired_raw,
            desired_stabilized=desired_stabilized,
            metric_fallback=fell_back,
        )
        self.samples.append(sample)

        if state.elapsed_since_sync < self.sync_period_seconds - SYNC_EPSILON:
            return TickResult(sample=sample)

        state.elapsed_since_sync = 0.0
        decision = self._commit(metric, desired_raw, desired_stabilized, direction, fell_back)
        self.decisions.append(decision)
        state.last_decision = decision
        return TickResult(sample=sample, decision=decision)

    def _commit(
        self,
        metric: float,
        desired_raw: int,
        desired_stabilized: int,
        direction: ScalingDirection,
        fell_back: bool,
    ) -> DecisionRecord:
        state = self.state
        current = state.replicas
        ratio = metric_ratio(metric, state.target)
        notes: List[str] = []
        if fell_back:
            notes.append("metric unavailable, using target value")

        if ratio is None:
            logger.warning(f"t={state.t:.1f}s: target {state.target} is not positive, scaling skipped")
            notes.append(f"invalid target {state.target}, scaling skipped")
            return self._hold(
                metric, 1.0, desired_raw, desired_stabilized, ScalingDirection.GATED, notes
            )

        if direction == ScalingDirection.HOLD:
            notes.append("desired equals current replicas")
            return self._hold(metric, ratio, desired_raw, desired_stabilized, direction, notes)

        config = self.behavior.for_direction(direction)
        if not allowed(direction, metric, state.target, config.tolerance):
            notes.append(
                f"ratio {ratio:.3f} within tolerance {effective_tolerance(config.tolerance)}"
            )
            return self._hold(
                metric, ratio, desired_raw, desired_stabilized, ScalingDirection.GATED, notes
            )

        allowance = allowed_change(direction, current, config, self.sync_period_seconds)
        raw_delta = desired_stabilized - current
        magnitude = max(0, min(abs(raw_delta), allowance))
        applied = math.copysign(magnitude, raw_delta) if raw_delta else 0
        proposed = round_half_up(current + applied)
        new_replicas = state.clamp(proposed)

        if config.disabled:
            notes.append(f"scale {direction.value} disabled")
        elif magnitude < abs(raw_delta):
            notes.append(f"limited by policy to {allowance:g}")
        if new_replicas != proposed:
            notes.append(f"clamped to [{state.min_replicas}, {state.max_replicas}]")

        state.replicas = new_replicas
        decision = DecisionRecord(
            t=state.t,
            metric=metric,
            ratio=ratio,
            desired_raw=desired_raw,
            desired_stabilized=desired_stabilized,
            direction=direction,
            allowed_change=float(allowance),
            applied_change=round_half_up(applied),
            replicas_after=new_replicas,
            reason="; ".join(notes),
        )

        if new_replicas != current:
            logger.info(
                f"t={state.t:.1f}s: scale {direction.value} {current} -> {new_replicas} "
                f"(desired={desired_raw}, stabilized={desired_stabilized}, allowed={allowance:g})"
            )
        else:
            logger.debug(f"t={state.t:.1f}s: {direction.value} with no change ({decision.reason})")
        return decision

    def _hold(
        self,
        metric: float,
        ratio: float,
        desired_raw: int,
        desired_stabilized: int,
        direction: ScalingDirection,
        notes: List[str],
    ) -> DecisionRecord:
        """Record a no-scaling decision; only bounds clamping may move replicas."""
        state = self.state
        clamped = state.clamp(state.replicas)
        if clamped != state.replicas:
            notes.append(f"clamped to [{state.min_replicas}, {state.max_replicas}]")
            logger.info(f"t={state.t:.1f}s: replicas {state.replicas} -> {clamped} to fit new bounds")
            state.replicas = clamped
        logger.debug(f"t={state.t:.1f}s: {direction.value} ({'; '.join(notes)})")
        return DecisionRecord(
            t=state.t,
            metric=metric,
            ratio=ratio,
            desired_raw=desired_raw,
            desired_stabilized=desired_stabilized,
            direction=direction,
            allowed_change=0.0,
            applied_change=0,
            replicas_after=state.replicas,
            reason="; ".join(notes),
        )

    def update_behavior(self, behavior: BehaviorConfig) -> None:
        """Swap the behavior config; takes effect on the next tick."""
        if not isinstance(behavior, BehaviorConfig):
            raise ConfigurationError("behavior must be a BehaviorConfig")
        self.behavior = behavior
        logger.info("Behavior configuration updated")
