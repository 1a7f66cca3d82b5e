"""Scaling policy evaluation: how far may replicas move in one sync period."""

import math
from typing import List

from loguru import logger

from ..core.models import DirectionConfig, Policy, PolicyType, ScalingDirection, SelectPolicy


def policy_periods(policy: Policy, sync_period_seconds: float) -> int:
    """Whole policy periods covered by one sync period (at least one)."""
    return max(1, math.floor(sync_period_seconds / max(1, policy.period_seconds)))


def policy_allowance(policy: Policy, current_replicas: int, sync_period_seconds: float) -> float:
    """
    Replica change a single policy allows over one sync period.

    Percent policies always allow at least one pod per period.
    """
    periods = policy_periods(policy, sync_period_seconds)
    if policy.type == PolicyType.PODS:
        return policy.value * periods
    delta = math.ceil(current_replicas * policy.value / 100)
    return max(1, delta) * periods


def allowed_change(
    direction: ScalingDirection,
    current_replicas: int,
    config: DirectionConfig,
    sync_period_seconds: float,
) -> float:
    """
    Maximum magnitude of replica change permitted for ``direction``.

    Args:
        direction: up or down (only used for logging)
        current_replicas: Replica count before this sync
        config: Direction configuration holding the policies
        sync_period_seconds: Length of one sync period

    Returns:
        Non-negative allowance; ``math.inf`` when no policy limits the direction
    """
    if config.select_policy == SelectPolicy.DISABLED:
        return 0
    if not config.policies:
        return math.inf

    allowances: List[float] = [
        policy_allowance(policy, current_replicas, sync_period_seconds)
        for policy in config.policies
    ]

    if config.select_policy == SelectPolicy.MIN:
        result = min(allowances)
    else:
        result = max(allowances)

    logger.debug(
        f"Policy allowances ({direction.value}, {config.select_policy.value}): "
        f"{allowances} -> {result}"
    )
    return result
