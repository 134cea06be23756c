"""Construction constants and per-build configuration."""

import warnings
from dataclasses import dataclass

SEARCH_TABLE_LENGTH = 100
NUMERICAL_CDF_SAMPLES = 1000
MAX_COVERAGE_WIDTH = 0.05
DEFAULT_MAX_INTERVALS = 50_000
DEFAULT_TOLERANCE = 1e-5

# Below this the midpoint quadrature cannot resolve the fit error.
MIN_RECOMMENDED_TOLERANCE = 1e-12


@dataclass(frozen=True)
class BuildConfig:
    """Tunable parameters of sampler construction.

    Attributes:
        tol: Maximum absolute error of the Hermite fits at interval midpoints
        index_length: Number of buckets in the search index
        n_quadrature: Midpoint-rule subdivisions per CDF evaluation
        max_coverage_width: Largest CDF width allowed before Hermite fitting
        max_intervals: Safety bound on the number of intervals
    """

    tol: float = DEFAULT_TOLERANCE
    index_length: int = SEARCH_TABLE_LENGTH
    n_quadrature: int = NUMERICAL_CDF_SAMPLES
    max_coverage_width: float = MAX_COVERAGE_WIDTH
    max_intervals: int = DEFAULT_MAX_INTERVALS

    def validate(self, stacklevel: int = 2) -> "BuildConfig":
        """Check the values and return self.

        A tolerance below the quadrature resolution only warns; stacklevel
        is passed to :func:`warnings.warn` so callers can point the warning
        at their own caller.

        Raises:
            ValueError: If any parameter is out of range
        """
        if not self.tol > 0:
            raise ValueError(f"tol must be positive, got {self.tol}")
        if self.index_length < 1:
            raise ValueError(
                f"index_length must be at least 1, got {self.index_length}"
            )
        if self.n_quadrature < 1:
            raise ValueError(
                f"n_quadrature must be at least 1, got {self.n_quadrature}"
            )
        if not 0 < self.max_coverage_width <= 1:
            raise ValueError(
                "max_coverage_width must lie in (0, 1], "
                f"got {self.max_coverage_width}"
            )
        if self.max_intervals < 1:
            raise ValueError(
                f"max_intervals must be at least 1, got {self.max_intervals}"
            )

        if self.tol < MIN_RECOMMENDED_TOLERANCE:
            warnings.warn(
                f"Tolerance {self.tol:g} is below the quadrature resolution "
                f"({MIN_RECOMMENDED_TOLERANCE:g}). Construction may not converge.",
                UserWarning,
                stacklevel=stacklevel,
            )
        return self
