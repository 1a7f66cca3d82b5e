"""Behavior templates taken from the Kubernetes HPA configurable scaling docs."""

from dataclasses import dataclass
from typing import Dict, List

from ..core.errors import ConfigurationError
from ..core.models import BehaviorConfig, DirectionConfig, Policy


@dataclass(frozen=True)
class ScalingTemplate:
    """A named starting point: replica bounds, target and behavior."""
    id: str
    name: str
    description: str
    min_replicas: int
    max_replicas: int
    initial_replicas: int
    target_value: float
    sync_period_seconds: float
    behavior: BehaviorConfig


def _scale_up(tolerance: float = 0.1) -> DirectionConfig:
    return DirectionConfig(
        stabilization_window_seconds=0,
        tolerance=tolerance,
        select_policy="Max",
        policies=(
            Policy(type="Percent", value=100, period_seconds=15),
            Policy(type="Pods", value=4, period_seconds=15),
        ),
    )


def _scale_down(window: int = 300, select_policy: str = "Max", policies=None) -> DirectionConfig:
    if policies is None:
        policies = (Policy(type="Percent", value=100, period_seconds=15),)
    return DirectionConfig(
        stabilization_window_seconds=window,
        tolerance=0.1,
        select_policy=select_policy,
        policies=tuple(policies),
    )


TEMPLATES: List[ScalingTemplate] = [
    ScalingTemplate(
        id="default-behavior",
        name="Default behavior (cluster defaults)",
        description=(
            "Matches the HPA controller defaults: scaleDown has 300s stabilization, "
            "100%/15s; scaleUp has 0s stabilization, 100% or 4 pods per 15s with Max policy."
        ),
        min_replicas=1,
        max_replicas=50,
        initial_replicas=3,
        target_value=100,
        sync_period_seconds=15,
        behavior=BehaviorConfig(scale_up=_scale_up(), scale_down=_scale_down()),
    ),
    ScalingTemplate(
        id="downscale-window-60",
        name="Downscale stabilization window = 60s",
        description="Slows scale-down fluctuations by using a 60s stabilization window.",
        min_replicas=1,
        max_replicas=50,
        initial_replicas=8,
        target_value=100,
        sync_period_seconds=15,
        behavior=BehaviorConfig(scale_up=_scale_up(), scale_down=_scale_down(window=60)),
    ),
    ScalingTemplate(
        id="limit-scale-down-10p-per-min",
        name="Limit scale down: 10% per minute",
        description="Enforces scale down rate of at most 10% of current replicas each 60 seconds.",
        min_replicas=1,
        max_replicas=100,
        initial_replicas=40,
        target_value=100,
        sync_period_seconds=15,
        behavior=BehaviorConfig(
            scale_up=_scale_up(),
            scale_down=_scale_down(
                policies=(Policy(type="Percent", value=10, period_seconds=60),)
            ),
        ),
    ),
    ScalingTemplate(
        id="limit-scale-down-min-10p-or-5pods",
        name="Limit scale down: Min(10% or 5 pods) per minute",
        description=(
            "Two policies with selectPolicy = Min ensure you remove the smaller "
            "of 10% or 5 pods per minute."
        ),
        min_replicas=1,
        max_replicas=100,
        initial_replicas=80,
        target_value=100,
        sync_period_seconds=15,
        behavior=BehaviorConfig(
            scale_up=_scale_up(),
            scale_down=_scale_down(
                select_policy="Min",
                policies=(
                    Policy(type="Percent", value=10, period_seconds=60),
                    Policy(type="Pods", value=5, period_seconds=60),
                ),
            ),
        ),
    ),
    ScalingTemplate(
        id="disable-scale-down",
        name="Disable scale down",
        description="Downscaling is disabled using selectPolicy = Disabled.",
        min_replicas=1,
        max_replicas=50,
        initial_replicas=12,
        target_value=100,
        sync_period_seconds=15,
        behavior=BehaviorConfig(
            scale_up=_scale_up(),
            scale_down=_scale_down(select_policy="Disabled", policies=()),
        ),
    ),
    ScalingTemplate(
        id="add-scale-up-tolerance-5p",
        name="Scale up tolerance = 5%",
        description=(
            "Demonstrates tolerance gating for scale up: will not scale up until "
            "the metric exceeds target by 5%."
        ),
        min_replicas=1,
        max_replicas=50,
        initial_replicas=3,
        target_value=100,
        sync_period_seconds=15,
        behavior=BehaviorConfig(scale_up=_scale_up(tolerance=0.05), scale_down=_scale_down()),
    ),
]

TEMPLATES_BY_ID: Dict[str, ScalingTemplate] = {template.id: template for template in TEMPLATES}


def get_template(template_id: str) -> ScalingTemplate:
    try:
        return TEMPLATES_BY_ID[template_id]
    except KeyError:
        raise ConfigurationError(
            f"Unknown template: '{template_id}'. Must be one of {list(TEMPLATES_BY_ID)}"
        ) from None
