"""Exceptions raised while building or querying an inversion sampler."""


class AnyRNGError(Exception):
    """Base class for all sampler errors."""

    pass


class InvalidDomainError(AnyRNGError, ValueError):
    """Raised when the domain bounds do not satisfy xl < xr."""

    pass


class DensityError(AnyRNGError, ValueError):
    """Raised when the density returns NaN, infinite or negative values,
    or a zero value where it is used as a divisor."""

    pass


class ResourceExhaustedError(AnyRNGError, MemoryError):
    """Raised when the interval store cannot grow during splitting."""

    pass


class NonConvergenceError(AnyRNGError, RuntimeError):
    """Raised when interval refinement exceeds its safety bound or stalls."""

    pass


class DensityNotAvailableError(AnyRNGError, RuntimeError):
    """Raised when density lookup is requested from a sampler built
    without a derivative of the density."""

    pass
