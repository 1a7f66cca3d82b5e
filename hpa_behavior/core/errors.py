"""Error taxonomy for the HPA behavior simulator."""


class HPASimulationError(Exception):
    """Base class for all simulator errors."""


class ConfigurationError(HPASimulationError, ValueError):
    """Invalid behavior, replica bounds, target or run configuration."""


class EvaluationError(HPASimulationError, ValueError):
    """A metric formula could not be parsed or evaluated."""
