"""Raw desired replica computation."""

import math

from ..core.models import ScalingDirection


def desired_replicas(current_replicas: int, metric: float, target: float) -> int:
    """
    Classic HPA rule: ceil(current * metric / target), floored at zero.

    A non-positive target yields the current replica count (no scaling signal).
    """
    if target <= 0:
        return current_replicas
    return max(0, math.ceil(current_replicas * metric / target))


def direction_for(desired: int, current_replicas: int) -> ScalingDirection:
    if desired > current_replicas:
        return ScalingDirection.UP
    if desired < current_replicas:
        return ScalingDirection.DOWN
    return ScalingDirection.HOLD
