"""Cubic Hermite fits of the inverse CDF and of the density on one interval.

Both polynomials are expressed in the local CDF fraction
t = (u - Fl) / (Fr - Fl), so t runs over [0, 1] inside the interval.
"""

from typing import Tuple

Coefficients = Tuple[float, float, float, float]

ZERO_COEFFICIENTS: Coefficients = (0.0, 0.0, 0.0, 0.0)


def inverse_cdf_coefficients(
    l: float, r: float, Fl: float, Fr: float, fl: float, fr: float
) -> Coefficients:
    """Coefficients of the cubic that maps t to x.

    Matches x = l, r at t = 0, 1 and dx/du = 1/f at both endpoints.

    Args:
        l, r: Interval endpoints
        Fl, Fr: CDF at the endpoints
        fl, fr: Normalised density at the endpoints, strictly positive
    """
    dF = Fr - Fl
    a0 = l
    a1 = dF / fl
    a2 = 3 * (r - l) - dF * (2.0 / fl + 1.0 / fr)
    a3 = 2 * (l - r) + dF * (1.0 / fl + 1.0 / fr)
    return (a0, a1, a2, a3)


def density_coefficients(
    Fl: float,
    Fr: float,
    fl: float,
    fr: float,
    dfl: float,
    dfr: float,
) -> Coefficients:
    """Coefficients of the cubic that maps t to the normalised density.

    Along the inverse CDF, df/du = f'(x) / f(x), so the endpoint slopes are
    the log-derivatives of the density.

    Args:
        Fl, Fr: CDF at the endpoints
        fl, fr: Normalised density at the endpoints, strictly positive
        dfl, dfr: Normalised derivative of the density at the endpoints
    """
    dF = Fr - Fl
    sl = dfl / fl
    sr = dfr / fr
    b0 = fl
    b1 = dF * sl
    b2 = 3 * (fr - fl) - dF * (2.0 * sl + sr)
    b3 = 2 * (fl - fr) + dF * (sl + sr)
    return (b0, b1, b2, b3)


def evaluate(coeffs: Coefficients, t: float) -> float:
    """Evaluate c0 + c1 t + c2 t^2 + c3 t^3 (also works on numpy arrays)."""
    c0, c1, c2, c3 = coeffs
    return c0 + t * (c1 + t * (c2 + t * c3))


def is_monotone(
    l: float, r: float, Fl: float, Fr: float, fl: float, fr: float
) -> bool:
    """Sufficient condition for the inverse-CDF cubic to be non-decreasing.

    The secant slope (Fr - Fl) / (r - l) of the CDF must not exceed three
    times the density at either endpoint.
    """
    delta = (Fr - Fl) / (r - l)
    return delta <= 3 * fl and delta <= 3 * fr
