"""Density capability: a possibly unnormalised pdf, its optional derivative,
and the caller context passed to both."""

from typing import Any, Callable, Optional

import numpy as np

from .errors import DensityError

DensityCallable = Callable[[Any, Any], Any]


def _check_finite(values: np.ndarray, what: str) -> np.ndarray:
    if not np.all(np.isfinite(values)):
        raise DensityError(f"{what} returned a non-finite value (NaN or inf)")
    return values


def _check_nonnegative(values: np.ndarray, what: str) -> np.ndarray:
    _check_finite(values, what)
    if np.any(values < 0):
        raise DensityError(f"{what} returned a negative value")
    return values


class Density:
    """A one-dimensional density on which an inversion sampler can be built.

    The pdf and the optional derivative are called as ``f(x, params)``, with
    ``params`` passed through unmodified. The pdf does not need to be
    normalised.

    Examples:
        >>> import math
        >>> def pdf(x, params):
        ...     return math.exp(-x / params["scale"])
        >>> dens = Density(pdf, params={"scale": 2.0})

        >>> # Closed-form densities with derivatives
        >>> dens = Density.normal(mean=0.0, std=1.0)
        >>> dens = Density.fermi_dirac(temperature=1.0, chemical_potential=0.0)
    """

    def __init__(
        self,
        pdf: DensityCallable,
        derivative: Optional[DensityCallable] = None,
        params: Any = None,
        vectorized: bool = False,
    ):
        """Create a density capability.

        Args:
            pdf: Density function f(x, params), possibly unnormalised
            derivative: Optional derivative df/dx(x, params)
            params: Caller context handed to pdf and derivative
            vectorized: True if pdf and derivative accept numpy arrays

        Raises:
            TypeError: If pdf or derivative is not callable
        """
        if not callable(pdf):
            raise TypeError("pdf must be callable")
        if derivative is not None and not callable(derivative):
            raise TypeError("derivative must be callable or None")

        self._pdf_func = pdf
        self._derivative_func = derivative
        self.params = params
        self.vectorized = vectorized

    def __repr__(self):
        name = getattr(self._pdf_func, "__name__", type(self._pdf_func).__name__)
        return (
            f"Density(pdf={name}, has_derivative={self.has_derivative}, "
            f"params={self.params!r})"
        )

    @property
    def has_derivative(self) -> bool:
        return self._derivative_func is not None

    def value(self, x: float) -> float:
        """Evaluate the (unnormalised) pdf at a single point.

        Raises:
            DensityError: If the pdf is NaN, infinite or negative at x
        """
        out = np.asarray(self._pdf_func(x, self.params), dtype=np.float64)
        return float(_check_nonnegative(out, f"pdf at x={x!r}"))

    def slope(self, x: float) -> float:
        """Evaluate the derivative of the (unnormalised) pdf at a single point.

        Raises:
            DensityError: If no derivative was supplied or it is not finite
        """
        if self._derivative_func is None:
            raise DensityError("density was created without a derivative")
        out = np.asarray(self._derivative_func(x, self.params), dtype=np.float64)
        return float(_check_finite(out, f"derivative at x={x!r}"))

    def values(self, xs: np.ndarray) -> np.ndarray:
        """Evaluate the pdf at every node of a 1D array.

        Raises:
            DensityError: If any value is NaN, infinite or negative
        """
        xs = np.asarray(xs, dtype=np.float64)
        if self.vectorized:
            out = np.asarray(self._pdf_func(xs, self.params), dtype=np.float64)
            out = np.broadcast_to(out, xs.shape)
        else:
            out = np.array(
                [self._pdf_func(float(x), self.params) for x in xs],
                dtype=np.float64,
            )
        return _check_nonnegative(out, "pdf")

    @staticmethod
    def uniform(min: float = 0.0, max: float = 1.0) -> "Density":
        """Create the uniform density U(min, max), endpoints included."""
        if not min < max:
            raise ValueError(f"uniform requires min < max, got ({min}, {max})")
        return Density(
            _uniform_pdf,
            _uniform_derivative,
            params={"min": min, "max": max},
            vectorized=True,
        )

    @staticmethod
    def normal(mean: float = 0.0, std: float = 1.0) -> "Density":
        """Create the normal density N(mean, std)."""
        if not std > 0:
            raise ValueError(f"std must be positive, got {std}")
        return Density(
            _normal_pdf,
            _normal_derivative,
            params={"mean": mean, "std": std},
            vectorized=True,
        )

    @staticmethod
    def exponential(lambda_param: float = 1.0) -> "Density":
        """Create the exponential density Exp(lambda) on x >= 0."""
        if not lambda_param > 0:
            raise ValueError(f"lambda_param must be positive, got {lambda_param}")
        return Density(
            _exponential_pdf,
            _exponential_derivative,
            params={"lambda": lambda_param},
            vectorized=True,
        )

    @staticmethod
    def fermi_dirac(
        temperature: float = 1.0, chemical_potential: float = 0.0
    ) -> "Density":
        """Create the unnormalised Fermi-Dirac momentum density.

        f(x) = x^2 / (exp((x - mu) / T) + 1) for x > 0, zero otherwise.
        The density vanishes at x = 0, so domains must start above zero.

        Args:
            temperature: T, in the same units as x
            chemical_potential: mu, in the same units as x
        """
        if not temperature > 0:
            raise ValueError(f"temperature must be positive, got {temperature}")
        return Density(
            _fermi_dirac_pdf,
            _fermi_dirac_derivative,
            params={"T": temperature, "mu": chemical_potential},
            vectorized=True,
        )

    @staticmethod
    def beta(alpha: float, beta_param: float) -> "Density":
        """Create the Beta(alpha, beta) density on (0, 1).

        The density is zero at 0 or 1 when the matching shape parameter
        exceeds one, so the sampler domain should stay strictly inside.

        Raises:
            ImportError: If scipy is not installed
        """
        try:
            from scipy.special import beta as beta_fn
        except ImportError:
            raise ImportError(
                "scipy is required for Beta distribution. Install with: pip install scipy"
            )

        return Density(
            _beta_pdf,
            _beta_derivative,
            params={
                "alpha": alpha,
                "beta": beta_param,
                "B": float(beta_fn(alpha, beta_param)),
            },
            vectorized=True,
        )


def _uniform_pdf(x, params):
    lo, hi = params["min"], params["max"]
    return np.where((x >= lo) & (x <= hi), 1.0 / (hi - lo), 0.0)


def _uniform_derivative(x, params):
    return np.zeros_like(np.asarray(x, dtype=np.float64))


def _normal_pdf(x, params):
    sigma = params["std"]
    z = (x - params["mean"]) / sigma
    return np.exp(-0.5 * z * z) / (sigma * np.sqrt(2 * np.pi))


def _normal_derivative(x, params):
    sigma = params["std"]
    z = (x - params["mean"]) / sigma
    return -z / sigma * _normal_pdf(x, params)


def _exponential_pdf(x, params):
    lam = params["lambda"]
    x = np.asarray(x, dtype=np.float64)
    return np.where(x >= 0, lam * np.exp(-lam * np.abs(x)), 0.0)


def _exponential_derivative(x, params):
    return -params["lambda"] * _exponential_pdf(x, params)


def _fermi_dirac_pdf(x, params):
    x = np.asarray(x, dtype=np.float64)
    with np.errstate(over="ignore"):
        e = np.exp((x - params["mu"]) / params["T"])
    return np.where(x > 0, x * x / (e + 1.0), 0.0)


def _fermi_dirac_derivative(x, params):
    T = params["T"]
    x = np.asarray(x, dtype=np.float64)
    with np.errstate(over="ignore", divide="ignore", invalid="ignore"):
        e = np.exp((x - params["mu"]) / T)
        # x^2 e / (e + 1)^2 written to stay finite when e overflows
        tail = x * x / ((e + 1.0) * (1.0 + 1.0 / e))
        d = 2 * x / (e + 1.0) - tail / T
    return np.where(x > 0, d, 0.0)


def _beta_pdf(x, params):
    a, b = params["alpha"], params["beta"]
    x = np.asarray(x, dtype=np.float64)
    inside = (x > 0) & (x < 1)
    xc = np.where(inside, x, 0.5)
    return np.where(inside, xc ** (a - 1) * (1 - xc) ** (b - 1) / params["B"], 0.0)


def _beta_derivative(x, params):
    a, b = params["alpha"], params["beta"]
    x = np.asarray(x, dtype=np.float64)
    inside = (x > 0) & (x < 1)
    xc = np.where(inside, x, 0.5)
    d = _beta_pdf(xc, params) * ((a - 1) / xc - (b - 1) / (1 - xc))
    return np.where(inside, d, 0.0)
