"""
Exception hierarchy for the discretized pipe model.
"""


class GasPipeError(Exception):
    """Base class for all gaspipe errors."""


class ConfigurationError(GasPipeError, ValueError):
    """Invalid static parameters or initial profile, detected at construction."""


class PhysicalStateError(GasPipeError):
    """State left the physical region (non-positive or non-finite pressure)."""


class BoundarySolveError(GasPipeError):
    """Boundary or junction pressure could not be resolved."""


class IntegrationError(GasPipeError):
    """The external integrator reported a failure."""
