"""Data model for the HPA configurable scaling behavior control loop."""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from .errors import ConfigurationError


class PolicyType(str, Enum):
    """Kind of rate limit a scaling policy expresses."""
    PODS = "Pods"
    PERCENT = "Percent"


class SelectPolicy(str, Enum):
    """How multiple policies in one direction are combined."""
    MAX = "Max"
    MIN = "Min"
    DISABLED = "Disabled"


class ScalingDirection(str, Enum):
    """Direction of a scaling step. GATED only appears on decision records."""
    UP = "up"
    DOWN = "down"
    HOLD = "hold"
    GATED = "gated"


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _coerce_enum(enum_cls, value, field_name: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        valid = [member.value for member in enum_cls]
        raise ConfigurationError(
            f"Invalid {field_name}: {value!r}. Must be one of {valid}"
        ) from None


@dataclass(frozen=True)
class Policy:
    """A single scaling policy: allow `value` pods (or percent) per `period_seconds`."""
    type: PolicyType
    value: float
    period_seconds: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "type", _coerce_enum(PolicyType, self.type, "policy type"))

        if not _is_number(self.value) or not math.isfinite(self.value) or self.value <= 0:
            raise ConfigurationError(f"Policy value must be a positive number, got {self.value!r}")

        if not isinstance(self.period_seconds, int) or isinstance(self.period_seconds, bool):
            raise ConfigurationError(
                f"Policy periodSeconds must be an integer, got {self.period_seconds!r}"
            )
        if self.period_seconds <= 0:
            raise ConfigurationError(
                f"Policy periodSeconds must be positive, got {self.period_seconds}"
            )


@dataclass(frozen=True)
class DirectionConfig:
    """
    Scaling rules for one direction (scaleUp or scaleDown).

    An empty ``policies`` tuple with a non-Disabled select policy means the
    direction is not rate limited. ``tolerance=None`` means the manifest does
    not set one and the cluster default applies.
    """
    stabilization_window_seconds: int = 0
    tolerance: Optional[float] = None
    select_policy: SelectPolicy = SelectPolicy.MAX
    policies: Tuple[Policy, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "select_policy", _coerce_enum(SelectPolicy, self.select_policy, "selectPolicy")
        )
        object.__setattr__(self, "policies", tuple(self.policies))

        window = self.stabilization_window_seconds
        if not isinstance(window, int) or isinstance(window, bool) or window < 0:
            raise ConfigurationError(
                f"stabilizationWindowSeconds must be a non-negative integer, got {window!r}"
            )

        if self.tolerance is not None:
            if not _is_number(self.tolerance) or not math.isfinite(self.tolerance):
                raise ConfigurationError(f"tolerance must be a number, got {self.tolerance!r}")
            if self.tolerance < 0:
                raise ConfigurationError(f"tolerance must be non-negative, got {self.tolerance}")

        for policy in self.policies:
            if not isinstance(policy, Policy):
                raise ConfigurationError(f"Expected a Policy, got {type(policy).__name__}")

    @property
    def disabled(self) -> bool:
        return self.select_policy == SelectPolicy.DISABLED


@dataclass(frozen=True)
class BehaviorConfig:
    """Root behavior configuration: one DirectionConfig per direction."""
    scale_up: DirectionConfig = field(default_factory=DirectionConfig)
    scale_down: DirectionConfig = field(default_factory=DirectionConfig)

    def __post_init__(self) -> None:
        for name in ("scale_up", "scale_down"):
            if not isinstance(getattr(self, name), DirectionConfig):
                raise ConfigurationError(f"{name} must be a DirectionConfig")

    def for_direction(self, direction: ScalingDirection) -> DirectionConfig:
        """Return the config governing ``direction`` (up or down)."""
        if direction == ScalingDirection.UP:
            return self.scale_up
        if direction == ScalingDirection.DOWN:
            return self.scale_down
        raise ValueError(f"No behavior configured for direction '{direction.value}'")

    @property
    def max_window_seconds(self) -> int:
        return max(
            self.scale_up.stabilization_window_seconds,
            self.scale_down.stabilization_window_seconds,
        )


@dataclass(frozen=True)
class DesiredHistoryEntry:
    t: float
    desired: int


@dataclass(frozen=True)
class TimelineSample:
    """One per tick. Read-only history for presentation and export."""
    t: float
    metric: float
    replicas: int
    desired_raw: int
    desired_stabilized: int
    metric_fallback: bool = False

    def as_row(self) -> Dict[str, Any]:
        return {
            "t": self.t,
            "metric": self.metric,
            "replicas": self.replicas,
            "desired": self.desired_raw,
            "stabilized": self.desired_stabilized,
        }


@dataclass(frozen=True)
class DecisionRecord:
    """One per sync-period boundary: the audit trail of the algorithm."""
    t: float
    metric: float
    ratio: float
    desired_raw: int
    desired_stabilized: int
    direction: ScalingDirection
    allowed_change: float
    applied_change: int
    replicas_after: int
    reason: str = ""

    @property
    def unbounded(self) -> bool:
        return math.isinf(self.allowed_change)

    def as_row(self) -> Dict[str, Any]:
        return {
            "t": self.t,
            "metric": self.metric,
            "ratio": self.ratio,
            "desired": self.desired_raw,
            "stabilized": self.desired_stabilized,
            "direction": self.direction.value,
            "allowed": self.allowed_change,
            "applied_change": self.applied_change,
            "replicas": self.replicas_after,
            "reason": self.reason,
        }


@dataclass
class ControlLoopState:
    """
    Mutable state owned by exactly one ControlLoop.

    ``target`` is not validated here: a non-positive target set mid-run makes
    the loop skip scaling per tick instead of failing.
    """
    replicas: int
    min_replicas: int
    max_replicas: int
    target: float
    t: float = 0.0
    elapsed_since_sync: float = 0.0
    desired_history: List[DesiredHistoryEntry] = field(default_factory=list)
    last_decision: Optional[DecisionRecord] = None

    def __post_init__(self) -> None:
        if not isinstance(self.min_replicas, int) or self.min_replicas < 0:
            raise ConfigurationError("min_replicas must be a non-negative integer")
        if not isinstance(self.max_replicas, int) or self.max_replicas < self.min_replicas:
            raise ConfigurationError("max_replicas must be an integer >= min_replicas")
        self.replicas = self.clamp(int(self.replicas))

    def clamp(self, replicas: int) -> int:
        return max(self.min_replicas, min(self.max_replicas, replicas))
