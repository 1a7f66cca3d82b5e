"""Run configuration: YAML files validated with pydantic."""

from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from loguru import logger
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    InstanceOf,
    ValidationError,
    field_validator,
    model_validator,
)

from ..core.errors import ConfigurationError, EvaluationError
from ..core.models import BehaviorConfig
from ..data.expression import Expression
from ..data.sources import SCENARIOS
from .behavior import DEFAULT_BEHAVIOR, behavior_from_dict, behavior_to_dict
from .templates import get_template


class SimulationSettings(BaseModel):
    """Replica bounds, target and clock settings for one run."""
    model_config = ConfigDict(extra="forbid")

    min_replicas: int = Field(1, ge=0)
    max_replicas: int = Field(50, ge=1)
    initial_replicas: int = Field(3, ge=0)
    target_value: float = Field(100.0, gt=0)
    sync_period_seconds: float = Field(15.0, gt=0)
    time_step_seconds: float = Field(1.0, gt=0)
    duration_seconds: float = Field(600.0, gt=0)
    speed: float = Field(1.0, gt=0)

    @model_validator(mode="after")
    def _check_replica_bounds(self) -> "SimulationSettings":
        if self.max_replicas < self.min_replicas:
            raise ValueError("max_replicas must be >= min_replicas")
        if not self.min_replicas <= self.initial_replicas <= self.max_replicas:
            raise ValueError("initial_replicas must lie within [min_replicas, max_replicas]")
        return self


class MetricSettings(BaseModel):
    """Which metric scenario drives the run."""
    model_config = ConfigDict(extra="forbid")

    scenario: str = "rise-and-fall"
    seed: int = Field(42, ge=0)
    formula: Optional[str] = None
    value: Optional[float] = None

    @field_validator("scenario")
    @classmethod
    def _known_scenario(cls, value: str) -> str:
        if value not in SCENARIOS:
            raise ValueError(f"Invalid scenario: '{value}'. Must be one of {list(SCENARIOS)}")
        return value

    @model_validator(mode="after")
    def _check_formula(self) -> "MetricSettings":
        if self.scenario == "custom":
            if not self.formula:
                raise ValueError("scenario 'custom' requires a formula")
            try:
                Expression(self.formula)
            except EvaluationError as e:
                raise ValueError(str(e)) from e
        return self


class OutputSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    directory: str = "results"


class RunConfig(BaseModel):
    """Main configuration class."""
    model_config = ConfigDict(extra="forbid")

    simulation: SimulationSettings = Field(default_factory=SimulationSettings)
    metric: MetricSettings = Field(default_factory=MetricSettings)
    behavior: InstanceOf[BehaviorConfig] = Field(default_factory=lambda: DEFAULT_BEHAVIOR)
    output: OutputSettings = Field(default_factory=OutputSettings)

    @field_validator("behavior", mode="before")
    @classmethod
    def _parse_behavior(cls, value: Any) -> BehaviorConfig:
        if isinstance(value, BehaviorConfig):
            return value
        return behavior_from_dict(value)

    @classmethod
    def from_template(cls, template_id: str, **sections: Any) -> "RunConfig":
        """Build a config from a named template; ``sections`` override whole sections."""
        template = get_template(template_id)
        simulation = SimulationSettings(
            min_replicas=template.min_replicas,
            max_replicas=template.max_replicas,
            initial_replicas=template.initial_replicas,
            target_value=template.target_value,
            sync_period_seconds=template.sync_period_seconds,
        )
        values: Dict[str, Any] = {"simulation": simulation, "behavior": template.behavior}
        values.update(sections)
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "simulation": self.simulation.model_dump(),
            "metric": self.metric.model_dump(),
            "behavior": behavior_to_dict(self.behavior),
            "output": self.output.model_dump(),
        }


def _merge_sections(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in overrides.items():
        if key == "behavior":
            # a behavior stanza always replaces the template's as a whole
            merged[key] = value
        elif isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = {**merged[key], **value}
        else:
            merged[key] = value
    return merged


def validate_config(data: Dict[str, Any]) -> RunConfig:
    """
    Validate a raw configuration mapping.

    A top-level ``template`` key seeds every section from that template
    before the remaining keys are applied on top.

    Raises:
        ConfigurationError: If the configuration is invalid or incomplete
    """
    if not isinstance(data, dict):
        raise ConfigurationError("Configuration must be a mapping")

    data = dict(data)
    template_id = data.pop("template", None)
    if template_id is not None:
        base = RunConfig.from_template(template_id).to_dict()
        data = _merge_sections(base, data)

    try:
        return RunConfig(**data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


def load_config(config_path: Union[str, Path]) -> RunConfig:
    """
    Load a run configuration from a YAML file.

    Raises:
        FileNotFoundError: If the config file doesn't exist
        ConfigurationError: If YAML parsing or validation fails
    """
    path = Path(config_path)

    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    logger.info(f"Loading configuration from {path}")

    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Failed to parse YAML config file: {e}") from e

    if data is None:
        raise ConfigurationError(f"Config file is empty: {config_path}")

    config = validate_config(data)
    logger.info(
        f"Configuration loaded: scenario '{config.metric.scenario}', "
        f"{config.simulation.duration_seconds:.0f}s duration"
    )
    return config


def save_config(config: RunConfig, config_path: Union[str, Path]) -> None:
    """Save configuration to a YAML file."""
    path = Path(config_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w") as f:
        yaml.safe_dump(config.to_dict(), f, default_flow_style=False, sort_keys=False)

    logger.info(f"Configuration saved to {path}")
