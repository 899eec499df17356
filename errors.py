class DetectionError(Exception):
    """Base class for greyhole detection errors."""


class ConfigurationError(DetectionError, ValueError):
    """Raised at startup when a run cannot proceed with the given parameters."""


class SchedulingError(DetectionError, RuntimeError):
    """
    A callback fired after its owner was stopped, or an endpoint was bound twice.
    Indicates a bug in the scheduling discipline, not a recoverable condition.
    """
