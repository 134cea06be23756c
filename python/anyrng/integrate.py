"""Midpoint-rule quadrature of a density over a sub-range."""

import numpy as np

from .config import NUMERICAL_CDF_SAMPLES
from .density import Density
from .errors import DensityError


def numerical_cdf(
    xl: float,
    xr: float,
    density: Density,
    n_samples: int = NUMERICAL_CDF_SAMPLES,
) -> float:
    """Integrate the (unnormalised) density from xl to xr.

    Uses the midpoint rule with a fixed number of equal-width subdivisions.
    The quadrature is not adaptive, so its accuracy bounds everything built
    on top of it. For xr < xl the result is negative.

    Args:
        xl, xr: Integration bounds
        density: Density to integrate
        n_samples: Number of subdivisions (default: 1000)

    Returns:
        Approximation of the integral of f over [xl, xr]

    Raises:
        DensityError: If the density is NaN, infinite or negative at a node
    """
    delta = (xr - xl) / n_samples
    nodes = xl + (np.arange(n_samples) + 0.5) * delta
    return float(np.sum(density.values(nodes)) * delta)


def normalization_constant(
    xl: float,
    xr: float,
    density: Density,
    n_samples: int = NUMERICAL_CDF_SAMPLES,
) -> float:
    """Return norm such that norm times the integral of f over [xl, xr] is 1.

    Raises:
        DensityError: If the density is invalid or integrates to zero
    """
    total = numerical_cdf(xl, xr, density, n_samples)
    if total <= 0:
        raise DensityError(
            f"density integrates to zero on [{xl}, {xr}]. "
            "Please check the density function or domain."
        )
    return 1.0 / total
