"""Core data model for the HPA behavior simulator."""

from .errors import HPASimulationError, ConfigurationError, EvaluationError
from .models import (
    PolicyType,
    SelectPolicy,
    ScalingDirection,
    Policy,
    DirectionConfig,
    BehaviorConfig,
    DesiredHistoryEntry,
    ControlLoopState,
    TimelineSample,
    DecisionRecord,
)

__all__ = [
    "HPASimulationError",
    "ConfigurationError",
    "EvaluationError",
    "PolicyType",
    "SelectPolicy",
    "ScalingDirection",
    "Policy",
    "DirectionConfig",
    "BehaviorConfig",
    "DesiredHistoryEntry",
    "ControlLoopState",
    "TimelineSample",
    "DecisionRecord",
]
