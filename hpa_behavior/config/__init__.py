"""Configuration module for the HPA behavior simulator."""

from .behavior import (
    DEFAULT_BEHAVIOR,
    DEFAULT_SCALE_DOWN,
    DEFAULT_SCALE_UP,
    behavior_from_dict,
    behavior_from_yaml,
    behavior_to_dict,
    behavior_to_yaml,
)
from .templates import TEMPLATES, ScalingTemplate, get_template
from .config import (
    MetricSettings,
    OutputSettings,
    RunConfig,
    SimulationSettings,
    load_config,
    save_config,
    validate_config,
)

__all__ = [
    "DEFAULT_BEHAVIOR",
    "DEFAULT_SCALE_DOWN",
    "DEFAULT_SCALE_UP",
    "behavior_from_dict",
    "behavior_from_yaml",
    "behavior_to_dict",
    "behavior_to_yaml",
    "TEMPLATES",
    "ScalingTemplate",
    "get_template",
    "MetricSettings",
    "OutputSettings",
    "RunConfig",
    "SimulationSettings",
    "load_config",
    "save_config",
    "validate_config",
]
