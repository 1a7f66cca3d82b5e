"""Metric sources: deterministic functions of simulated time."""

import math
from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional, Tuple

import numpy as np
from loguru import logger

from ..core.errors import ConfigurationError, EvaluationError
from .expression import Expression

SCENARIOS: Dict[str, str] = {
    "rise-and-fall": "Gradual rise then fall",
    "noisy": "Noisy around target",
    "burst": "Sudden burst",
    "sine": "Sine wave",
    "constant": "Constant value",
    "custom": "Custom f(t)",
}


class MetricSource(ABC):
    """A pure, total function of simulated seconds."""

    @abstractmethod
    def evaluate(self, t: float) -> float:
        """Return the metric value at simulated time ``t``."""
        pass

    def sample(self, t: float, fallback: float) -> Tuple[float, bool]:
        """
        Evaluate at ``t``, substituting ``fallback`` for failures.

        Returns:
            (value, fell_back)
        """
        try:
            value = float(self.evaluate(t))
        except Exception as e:
            logger.warning(f"{self.__class__.__name__} failed at t={t:.2f}: {e}")
            return fallback, True

        if not math.isfinite(value):
            logger.warning(f"{self.__class__.__name__} returned {value} at t={t:.2f}")
            return fallback, True
        return value, False


class ConstantMetricSource(MetricSource):
    def __init__(self, value: float):
        self.value = float(value)

    def evaluate(self, t: float) -> float:
        return self.value


class RiseAndFallMetricSource(MetricSource):
    """+100 over the first minute, -120 over the next, then a gentle wave."""

    def __init__(self, base: float):
        self.base = float(base)

    def evaluate(self, t: float) -> float:
        if t < 60:
            return self.base + (t / 60) * 100
        if t < 120:
            return self.base + 100 - ((t - 60) / 60) * 120
        return self.base + 20 * math.sin((t - 120) / 20)


class NoisyMetricSource(MetricSource):
    """
    Uniform noise of +/- ``amplitude`` around the base value.

    The noise at each instant is drawn from a generator seeded with
    (seed, t in milliseconds), so the same seed and time always give the
    same value regardless of call order.
    """

    def __init__(self, base: float, seed: int, amplitude: float = 15.0):
        if not isinstance(seed, int) or seed < 0:
            raise ConfigurationError("seed must be a non-negative integer")
        self.base = float(base)
        self.seed = seed
        self.amplitude = float(amplitude)

    def evaluate(self, t: float) -> float:
        instant = abs(int(round(t * 1000)))
        rng = np.random.default_rng([self.seed, instant])
        return self.base + float(rng.uniform(-self.amplitude, self.amplitude))


class BurstMetricSource(MetricSource):
    """Flat, then +150 for 30s, then +50 for a minute, then a small wave."""

    def __init__(self, base: float):
        self.base = float(base)

    def evaluate(self, t: float) -> float:
        if t < 30:
            return self.base
        if t < 60:
            return self.base + 150
        if t < 120:
            return self.base + 50
        return self.base + 10 * math.sin(t / 10)


class SineMetricSource(MetricSource):
    def __init__(self, base: float, amplitude: float = 80.0, period_scale: float = 20.0):
        self.base = float(base)
        self.amplitude = float(amplitude)
        self.period_scale = float(period_scale)

    def evaluate(self, t: float) -> float:
        return self.base + self.amplitude * math.sin(t / self.period_scale)


class FormulaMetricSource(MetricSource):
    """
    User formula over ``t``.

    An unparseable formula does not raise: the source then always returns
    ``fallback`` and keeps the parse error in ``error``.
    """

    def __init__(self, formula: Optional[str], fallback: float):
        self.formula = formula or ""
        self.fallback = float(fallback)
        self.error: Optional[str] = None
        self._expression: Optional[Expression] = None

        if not self.formula.strip():
            self.error = "Formula is empty"
            return

        try:
            self._expression = Expression(self.formula)
        except EvaluationError as e:
            self.error = str(e)
            logger.warning(f"Invalid metric formula '{self.formula}': {e}. Using target value")

    @property
    def valid(self) -> bool:
        return self._expression is not None

    def evaluate(self, t: float) -> float:
        value, _ = self.sample(t, self.fallback)
        return value

    def sample(self, t: float, fallback: float) -> Tuple[float, bool]:
        if self._expression is None:
            return fallback, True
        try:
            return self._expression.evaluate(t), False
        except EvaluationError as e:
            logger.debug(str(e))
            return fallback, True


class CallableMetricSource(MetricSource):
    """Adapter for a plain ``f(t) -> float`` callable."""

    def __init__(self, func: Callable[[float], float]):
        self.func = func

    def evaluate(self, t: float) -> float:
        return self.func(t)


def as_metric_source(source) -> MetricSource:
    if isinstance(source, MetricSource):
        return source
    if callable(source):
        return CallableMetricSource(source)
    raise ConfigurationError(f"Not a metric source: {source!r}")


def build_metric_source(
    scenario: str,
    target: float,
    seed: Optional[int] = None,
    formula: Optional[str] = None,
    value: Optional[float] = None,
) -> MetricSource:
    """
    Create the metric source for a named scenario.

    Args:
        scenario: One of SCENARIOS
        target: Target metric value; scenarios oscillate around it
        seed: Seed for the noisy scenario (defaults to 42)
        formula: Formula for the custom scenario
        value: Value for the constant scenario (defaults to target)

    Raises:
        ConfigurationError: If the scenario is unknown
    """
    if scenario not in SCENARIOS:
        raise ConfigurationError(
            f"Invalid scenario: '{scenario}'. Must be one of {list(SCENARIOS)}"
        )

    if scenario == "rise-and-fall":
        return RiseAndFallMetricSource(target)
    if scenario == "noisy":
        return NoisyMetricSource(target, seed=42 if seed is None else seed)
    if scenario == "burst":
        return BurstMetricSource(target)
    if scenario == "sine":
        return SineMetricSource(target)
    if scenario == "constant":
        return ConstantMetricSource(target if value is None else value)
    return FormulaMetricSource(formula, fallback=target)
