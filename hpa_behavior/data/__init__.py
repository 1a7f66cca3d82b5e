"""Metric sources for the HPA behavior simulator."""

from .expression import Expression, compile_formula
from .sources import (
    SCENARIOS,
    MetricSource,
    ConstantMetricSource,
    RiseAndFallMetricSource,
    NoisyMetricSource,
    BurstMetricSource,
    SineMetricSource,
    FormulaMetricSource,
    CallableMetricSource,
    as_metric_source,
    build_metric_source,
)

__all__ = [
    "Expression",
    "compile_formula",
    "SCENARIOS",
    "MetricSource",
    "ConstantMetricSource",
    "RiseAndFallMetricSource",
    "NoisyMetricSource",
    "BurstMetricSource",
    "SineMetricSource",
    "FormulaMetricSource",
    "CallableMetricSource",
    "as_metric_source",
    "build_metric_source",
]
