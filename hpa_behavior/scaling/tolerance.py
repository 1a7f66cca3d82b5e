"""Tolerance gating: is the metric far enough from target to scale?"""

from typing import Optional

from ..core.models import ScalingDirection

# Cluster-wide default (--horizontal-pod-autoscaler-tolerance)
DEFAULT_TOLERANCE = 0.1


def metric_ratio(metric: float, target: float) -> Optional[float]:
    """Return metric/target, or None when the target is not positive."""
    if target <= 0:
        return None
    return metric / target


def effective_tolerance(tolerance: Optional[float]) -> float:
    return DEFAULT_TOLERANCE if tolerance is None else tolerance


def allowed(
    direction: ScalingDirection,
    metric: float,
    target: float,
    tolerance: Optional[float],
) -> bool:
    """
    Decide whether the deviation from target justifies scaling in ``direction``.

    Up is permitted iff ratio > 1 + tolerance; down iff ratio < 1 - tolerance.
    A non-positive target never permits scaling.
    """
    ratio = metric_ratio(metric, target)
    if ratio is None:
        return False

    tol = effective_tolerance(tolerance)
    if direction == ScalingDirection.UP:
        return ratio > 1 + tol
    if direction == ScalingDirection.DOWN:
        return ratio < 1 - tol
    return False
