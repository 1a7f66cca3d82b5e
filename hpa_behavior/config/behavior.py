"""Mapping between BehaviorConfig and the Kubernetes HPA ``behavior`` stanza."""

from typing import Any, Dict, List, Mapping

import yaml

from ..core.errors import ConfigurationError
from ..core.models import BehaviorConfig, DirectionConfig, Policy

# Controller defaults applied when a direction or field is omitted
DEFAULT_SCALE_UP = DirectionConfig(
    stabilization_window_seconds=0,
    select_policy="Max",
    policies=(
        Policy(type="Percent", value=100, period_seconds=15),
        Policy(type="Pods", value=4, period_seconds=15),
    ),
)

DEFAULT_SCALE_DOWN = DirectionConfig(
    stabilization_window_seconds=300,
    select_policy="Max",
    policies=(Policy(type="Percent", value=100, period_seconds=15),),
)

DEFAULT_BEHAVIOR = BehaviorConfig(scale_up=DEFAULT_SCALE_UP, scale_down=DEFAULT_SCALE_DOWN)

_DIRECTION_KEYS = {"stabilizationWindowSeconds", "tolerance", "selectPolicy", "policies"}
_POLICY_KEYS = {"type", "value", "periodSeconds"}


def policy_to_dict(policy: Policy) -> Dict[str, Any]:
    return {
        "type": policy.type.value,
        "value": policy.value,
        "periodSeconds": policy.period_seconds,
    }


def direction_to_dict(config: DirectionConfig) -> Dict[str, Any]:
    """Emit one ``scaleUp``/``scaleDown`` block; tolerance only when set."""
    data: Dict[str, Any] = {
        "stabilizationWindowSeconds": config.stabilization_window_seconds,
    }
    if config.tolerance is not None:
        data["tolerance"] = config.tolerance
    data["policies"] = [policy_to_dict(policy) for policy in config.policies]
    data["selectPolicy"] = config.select_policy.value
    return data


def behavior_to_dict(behavior: BehaviorConfig) -> Dict[str, Any]:
    return {
        "scaleDown": direction_to_dict(behavior.scale_down),
        "scaleUp": direction_to_dict(behavior.scale_up),
    }


def policy_from_dict(data: Mapping[str, Any], where: str) -> Policy:
    if not isinstance(data, Mapping):
        raise ConfigurationError(f"{where} must be a mapping, got {type(data).__name__}")

    unknown = set(data) - _POLICY_KEYS
    if unknown:
        raise ConfigurationError(f"Unknown keys in {where}: {sorted(unknown)}")
    missing = [key for key in ("type", "value", "periodSeconds") if key not in data]
    if missing:
        raise ConfigurationError(f"Missing required keys in {where}: {missing}")

    return Policy(type=data["type"], value=data["value"], period_seconds=data["periodSeconds"])


def direction_from_dict(
    data: Mapping[str, Any],
    defaults: DirectionConfig,
    where: str,
) -> DirectionConfig:
    """
    Parse one direction block, filling omitted fields from ``defaults``.

    An explicit empty ``policies`` list is kept empty (unbounded change).
    """
    if data is None:
        return defaults
    if not isinstance(data, Mapping):
        raise ConfigurationError(f"{where} must be a mapping, got {type(data).__name__}")

    unknown = set(data) - _DIRECTION_KEYS
    if unknown:
        raise ConfigurationError(f"Unknown keys in {where}: {sorted(unknown)}")

    if "policies" in data:
        raw_policies = data["policies"]
        if raw_policies is None:
            raw_policies = []
        if not isinstance(raw_policies, list):
            raise ConfigurationError(f"{where}.policies must be a list")
        policies: List[Policy] = [
            policy_from_dict(item, f"{where}.policies[{index}]")
            for index, item in enumerate(raw_policies)
        ]
    else:
        policies = list(defaults.policies)

    return DirectionConfig(
        stabilization_window_seconds=data.get(
            "stabilizationWindowSeconds", defaults.stabilization_window_seconds
        ),
        tolerance=data.get("tolerance", defaults.tolerance),
        select_policy=data.get("selectPolicy", defaults.select_policy),
        policies=tuple(policies),
    )


def behavior_from_dict(data: Mapping[str, Any]) -> BehaviorConfig:
    """
    Build a BehaviorConfig from a ``{scaleUp, scaleDown}`` mapping.

    Raises:
        ConfigurationError: If the shape or any value is invalid
    """
    if data is None:
        return DEFAULT_BEHAVIOR
    if not isinstance(data, Mapping):
        raise ConfigurationError(f"behavior must be a mapping, got {type(data).__name__}")

    unknown = set(data) - {"scaleUp", "scaleDown"}
    if unknown:
        raise ConfigurationError(f"Unknown keys in behavior: {sorted(unknown)}")

    return BehaviorConfig(
        scale_up=direction_from_dict(data.get("scaleUp"), DEFAULT_SCALE_UP, "scaleUp"),
        scale_down=direction_from_dict(data.get("scaleDown"), DEFAULT_SCALE_DOWN, "scaleDown"),
    )


def behavior_to_yaml(behavior: BehaviorConfig) -> str:
    """Render the ``behavior:`` stanza as it would appear in an HPA manifest."""
    return yaml.safe_dump(
        {"behavior": behavior_to_dict(behavior)},
        default_flow_style=False,
        sort_keys=False,
    )


def behavior_from_yaml(text: str) -> BehaviorConfig:
    """
    Parse a behavior stanza.

    Accepts a document rooted at ``behavior:``, a full HPA manifest
    (``spec.behavior``) or a bare ``{scaleUp, scaleDown}`` mapping.
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Failed to parse behavior YAML: {e}") from e

    if not isinstance(data, Mapping):
        raise ConfigurationError("Behavior YAML must contain a mapping")

    if isinstance(data.get("spec"), Mapping):
        return behavior_from_dict(data["spec"].get("behavior"))
    if "behavior" in data:
        return behavior_from_dict(data["behavior"])
    return behavior_from_dict(data)
