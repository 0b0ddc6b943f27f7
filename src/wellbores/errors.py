class WellboresError(Exception):
    """Base class for all wellbores-related errors."""

    pass


class ValidationError(WellboresError, ValueError):
    """Raised when input data or well configuration fails validation checks."""

    pass


class ComputationError(WellboresError):
    """Raised when there is an error during numerical computations."""

    pass


class SerializationError(WellboresError):
    """Raised when an object cannot be serialized."""

    pass


class DeserializationError(WellboresError):
    """Raised when data cannot be deserialized into an object."""

    pass
