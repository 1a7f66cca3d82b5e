"""Scaling decision components: tolerance, stabilization and policies."""

from .tolerance import DEFAULT_TOLERANCE, allowed, metric_ratio
from .replicas import desired_replicas, direction_for
from .stabilization import HISTORY_SLACK_SECONDS, stabilize, prune_history
from .policies import allowed_change, policy_allowance, policy_periods

__all__ = [
    "DEFAULT_TOLERANCE",
    "allowed",
    "metric_ratio",
    "desired_replicas",
    "direction_for",
    "HISTORY_SLACK_SECONDS",
    "stabilize",
    "prune_history",
    "allowed_change",
    "policy_allowance",
    "policy_periods",
]
