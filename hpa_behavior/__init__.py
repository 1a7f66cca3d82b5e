"""Kubernetes HPA configurable scaling behavior simulator."""

__version__ = "0.1.0"

from .core import (
    BehaviorConfig,
    ConfigurationError,
    ControlLoopState,
    DecisionRecord,
    DirectionConfig,
    EvaluationError,
    HPASimulationError,
    Policy,
    PolicyType,
    ScalingDirection,
    SelectPolicy,
    TimelineSample,
)
from .config import (
    DEFAULT_BEHAVIOR,
    TEMPLATES,
    RunConfig,
    behavior_from_yaml,
    behavior_to_yaml,
    get_template,
    load_config,
    save_config,
)
from .simulation import ControlLoop, Simulator, SimulatorState

__all__ = [
    "__version__",
    "BehaviorConfig",
    "ConfigurationError",
    "ControlLoopState",
    "DecisionRecord",
    "DirectionConfig",
    "EvaluationError",
    "HPASimulationError",
    "Policy",
    "PolicyType",
    "ScalingDirection",
    "SelectPolicy",
    "TimelineSample",
    "DEFAULT_BEHAVIOR",
    "TEMPLATES",
    "RunConfig",
    "behavior_from_yaml",
    "behavior_to_yaml",
    "get_template",
    "load_config",
    "save_config",
    "ControlLoop",
    "Simulator",
    "SimulatorState",
]
