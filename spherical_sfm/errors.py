"""
spherical_sfm/errors.py

Exception types raised by the geometry core and the estimation pipeline.
Numerical degeneracies are never raised: they come back as large residuals
or as homogeneous points with a near-zero last coordinate.
"""


class ContractViolation(ValueError):
    """Caller passed arrays with the wrong shape or too few samples."""


class UnsupportedOperation(NotImplementedError):
    """The requested variant of an operation is not implemented."""


class EstimationError(RuntimeError):
    """Robust estimation or pose recovery could not produce a usable result."""
