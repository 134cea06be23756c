"""Fast numerical inversion sampler built from piecewise Hermite fits.

The sampler approximates the inverse CDF F^-1(u) of an arbitrary univariate
density by cubic Hermite polynomials on adaptively refined intervals
(Hormann & Leydold, 2003). Once built, transforming a uniform variate costs
one index lookup, a short forward scan and one cubic evaluation.
"""

import logging
from dataclasses import dataclass
from typing import Sequence, Tuple, Union

import numpy as np

from .config import (
    DEFAULT_MAX_INTERVALS,
    DEFAULT_TOLERANCE,
    MAX_COVERAGE_WIDTH,
    NUMERICAL_CDF_SAMPLES,
    SEARCH_TABLE_LENGTH,
    BuildConfig,
)
from .density import Density
from .errors import DensityNotAvailableError
from .hermite import evaluate
from .index import build_search_index
from .intervals import Interval
from .refine import IntervalRefiner

logger = logging.getLogger(__name__)

# Largest double below 1; uniform variates are clamped into [0, 1).
_ONE_BELOW = float(np.nextafter(1.0, 0.0))

ArrayLike = Union[Sequence[float], np.ndarray]


@dataclass(frozen=True)
class SamplerTable:
    """Complete state of a finished sampler, as plain numpy arrays.

    Attributes:
        xl, xr: Domain bounds
        norm: Normalisation constant of the source density
        tol: Tolerance used during construction
        endpoints: CDF values Fl of every interval followed by the final Fr,
            shape (n + 1,)
        a: Inverse-CDF coefficients, shape (n, 4)
        b: Density coefficients, shape (n, 4), zero without a derivative
        index: Search index, shape (index_length,)
        has_density: Whether b holds a density fit
    """

    xl: float
    xr: float
    norm: float
    tol: float
    endpoints: np.ndarray
    a: np.ndarray
    b: np.ndarray
    index: np.ndarray
    has_density: bool

    def save(self, path) -> None:
        """Write the table to a ``.npz`` archive (numpy appends the suffix
        if it is missing)."""
        np.savez(
            path,
            bounds=np.array([self.xl, self.xr, self.norm, self.tol]),
            endpoints=self.endpoints,
            a=self.a,
            b=self.b,
            index=self.index,
            has_density=np.array(self.has_density),
        )

    @staticmethod
    def load(path) -> "SamplerTable":
        """Read a table written by :meth:`save`."""
        with np.load(path) as data:
            xl, xr, norm, tol = (float(v) for v in data["bounds"])
            return SamplerTable(
                xl=xl,
                xr=xr,
                norm=norm,
                tol=tol,
                endpoints=data["endpoints"].astype(np.float64),
                a=data["a"].astype(np.float64),
                b=data["b"].astype(np.float64),
                index=data["index"].astype(np.int64),
                has_density=bool(data["has_density"]),
            )


class Sampler:
    """Numerical inversion sampler for an arbitrary univariate density.

    Use :meth:`Sampler.build` to construct one from a density, or
    :meth:`Sampler.from_table` to restore an exported one. A finished sampler
    is immutable; its query methods may be called from several threads.

    Examples:
        >>> import numpy as np
        >>> from anyrng import Density, Sampler
        >>>
        >>> sampler = Sampler.build(Density.normal(), -5.0, 5.0, tol=1e-6)
        >>> sampler.sample(0.5)  # ~0.0
        >>>
        >>> # Uniform variates come from the caller
        >>> u = np.random.default_rng(42).random(1_000_000)
        >>> x = sampler.transform(u)
        >>>
        >>> # Density lookup, available because Density.normal has a derivative
        >>> sampler.density(0.5)  # ~0.3989
    """

    def __init__(
        self,
        xl: float,
        xr: float,
        norm: float,
        tol: float,
        intervals: Sequence[Interval],
        index: np.ndarray,
        has_density: bool,
    ):
        """Wrap a finished interval table.

        Args:
            xl, xr: Domain bounds
            norm: Normalisation constant of the source density
            tol: Tolerance used during construction
            intervals: Intervals sorted by Fl, tiling [0, 1] in CDF space
            index: Search index over the intervals
            has_density: Whether the intervals carry density coefficients
        """
        if len(intervals) == 0:
            raise ValueError("a sampler needs at least one interval")

        self.xl = float(xl)
        self.xr = float(xr)
        self.norm = float(norm)
        self.tol = float(tol)
        self.intervals: Tuple[Interval, ...] = tuple(intervals)
        self.index = np.array(index, dtype=np.int64)
        self.index.setflags(write=False)
        self.has_density = bool(has_density)

        self._Fl = np.array([iv.Fl for iv in self.intervals], dtype=np.float64)
        self._Fr = np.array([iv.Fr for iv in self.intervals], dtype=np.float64)
        self._a = np.array([iv.a for iv in self.intervals], dtype=np.float64)
        self._b = np.array([iv.b for iv in self.intervals], dtype=np.float64)
        for arr in (self._Fl, self._Fr, self._a, self._b):
            arr.setflags(write=False)

        # Scalar queries walk plain lists, which is faster than indexing numpy
        self._Fr_list = self._Fr.tolist()
        self._index_list = self.index.tolist()

    def __repr__(self):
        return (
            f"Sampler(domain=[{self.xl}, {self.xr}], intervals={self.interval_count}, "
            f"tol={self.tol:g}, has_density={self.has_density})"
        )

    @property
    def interval_count(self) -> int:
        return len(self.intervals)

    @property
    def index_length(self) -> int:
        return len(self._index_list)

    @staticmethod
    def build(
        density: Density,
        xl: float,
        xr: float,
        tol: float = DEFAULT_TOLERANCE,
        index_length: int = SEARCH_TABLE_LENGTH,
        n_quadrature: int = NUMERICAL_CDF_SAMPLES,
        max_coverage_width: float = MAX_COVERAGE_WIDTH,
        max_intervals: int = DEFAULT_MAX_INTERVALS,
    ) -> "Sampler":
        """Build a sampler for ``density`` on the domain [xl, xr].

        Args:
            density: Density capability; a derivative enables :meth:`density`
            xl, xr: Domain bounds, xl < xr
            tol: Maximum Hermite fit error at interval midpoints (default: 1e-5)
            index_length: Number of search index buckets (default: 100)
            n_quadrature: Midpoint-rule subdivisions (default: 1000)
            max_coverage_width: CDF width bound of the coverage phase (default: 0.05)
            max_intervals: Safety bound on the interval count (default: 50000)

        Returns:
            A finished Sampler

        Raises:
            TypeError: If density is not a Density
            InvalidDomainError: If xl >= xr
            DensityError: If the density is NaN, infinite or negative where it
                is sampled, or vanishes at an interval endpoint
            NonConvergenceError: If refinement does not converge within
                max_intervals
            ResourceExhaustedError: If the interval store cannot grow
        """
        config = BuildConfig(
            tol=tol,
            index_length=index_length,
            n_quadrature=n_quadrature,
            max_coverage_width=max_coverage_width,
            max_intervals=max_intervals,
        )
        return Sampler._build(density, xl, xr, config, stacklevel=3)

    @staticmethod
    def _build(
        density: Density,
        xl: float,
        xr: float,
        config: BuildConfig,
        stacklevel: int = 2,
    ) -> "Sampler":
        # stacklevel points configuration warnings at the public caller
        if not isinstance(density, Density):
            raise TypeError(f"density must be a Density, got {type(density)}")

        refiner = IntervalRefiner(density, xl, xr, config, stacklevel + 1)
        intervals = refiner.build()
        index = build_search_index(intervals, config.index_length)
        logger.debug(
            "built sampler with %d intervals and %d index buckets",
            len(intervals),
            len(index),
        )

        return Sampler(
            xl=refiner.xl,
            xr=refiner.xr,
            norm=refiner.norm,
            tol=config.tol,
            intervals=intervals,
            index=index,
            has_density=density.has_derivative,
        )

    @staticmethod
    def from_table(table: SamplerTable) -> "Sampler":
        """Restore a sampler from an exported table.

        Raises:
            ValueError: If the arrays are inconsistent
        """
        endpoints = np.asarray(table.endpoints, dtype=np.float64)
        a = np.asarray(table.a, dtype=np.float64)
        b = np.asarray(table.b, dtype=np.float64)
        index = np.asarray(table.index, dtype=np.int64)
        n = len(endpoints) - 1

        if n < 1:
            raise ValueError("endpoints must hold at least two values")
        if a.shape != (n, 4) or b.shape != (n, 4):
            raise ValueError(
                f"coefficient arrays must have shape ({n}, 4), "
                f"got {a.shape} and {b.shape}"
            )
        if not np.all(np.diff(endpoints) > 0):
            raise ValueError("endpoints must be strictly increasing")
        if index.ndim != 1 or len(index) < 1:
            raise ValueError("index must be a non-empty 1D array")
        if np.any(index < 0) or np.any(index >= n):
            raise ValueError(f"index entries must lie in [0, {n})")

        lefts = a[:, 0]
        rights = np.append(lefts[1:], table.xr)
        intervals = [
            Interval(
                id=k,
                l=float(lefts[k]),
                r=float(rights[k]),
                Fl=float(endpoints[k]),
                Fr=float(endpoints[k + 1]),
                a=tuple(float(c) for c in a[k]),
                b=tuple(float(c) for c in b[k]),
                next_id=k + 1 if k + 1 < n else None,
            )
            for k in range(n)
        ]
        return Sampler(
            xl=table.xl,
            xr=table.xr,
            norm=table.norm,
            tol=table.tol,
            intervals=intervals,
            index=index,
            has_density=table.has_density,
        )

    def export(self) -> SamplerTable:
        """Return the full state needed to rebuild this sampler elsewhere."""
        return SamplerTable(
            xl=self.xl,
            xr=self.xr,
            norm=self.norm,
            tol=self.tol,
            endpoints=np.append(self._Fl, self._Fr[-1]),
            a=self._a.copy(),
            b=self._b.copy(),
            index=self.index.copy(),
            has_density=self.has_density,
        )

    def locate(self, u: float) -> int:
        """Position of the interval that serves the uniform variate u."""
        return self._find(self._clamp(u))

    def sample(self, u: float) -> float:
        """Transform a uniform variate u into x = F^-1(u).

        u is clamped into [0, 1); the result lies in [xl, xr].
        """
        u = self._clamp(u)
        iv = self.intervals[self._find(u)]
        t = (u - iv.Fl) / (iv.Fr - iv.Fl)
        x = evaluate(iv.a, t)
        return min(max(x, self.xl), self.xr)

    def density(self, u: float) -> float:
        """Normalised density f(F^-1(u)) at the point that u transforms to.

        Raises:
            DensityNotAvailableError: If the sampler was built without a
                derivative of the density
        """
        self._require_density()
        u = self._clamp(u)
        iv = self.intervals[self._find(u)]
        t = (u - iv.Fl) / (iv.Fr - iv.Fl)
        return evaluate(iv.b, t)

    def transform(self, u: ArrayLike) -> np.ndarray:
        """Vectorised :meth:`sample` over an array of uniform variates.

        The search index only serves the scalar path; arrays are located
        with one :func:`numpy.searchsorted` over the right CDF endpoints,
        which selects the same intervals.
        """
        i, t = self._locate_array(u)
        x = evaluate(tuple(self._a[i].T), t)
        return np.clip(x, self.xl, self.xr)

    def density_array(self, u: ArrayLike) -> np.ndarray:
        """Vectorised :meth:`density` over an array of uniform variates.

        Intervals are located as in :meth:`transform`, without the search
        index.

        Raises:
            DensityNotAvailableError: If the sampler was built without a
                derivative of the density
        """
        self._require_density()
        i, t = self._locate_array(u)
        return evaluate(tuple(self._b[i].T), t)

    def _require_density(self) -> None:
        if not self.has_density:
            raise DensityNotAvailableError(
                "density lookup requires a sampler built from a Density "
                "with a derivative"
            )

    @staticmethod
    def _clamp(u: float) -> float:
        u = float(u)
        if u != u:
            raise ValueError("uniform variate is NaN")
        if u < 0.0:
            return 0.0
        if u >= 1.0:
            return _ONE_BELOW
        return u

    def _find(self, u: float) -> int:
        length = len(self._index_list)
        bucket = min(int(u * length), length - 1)
        i = self._index_list[bucket]
        Fr = self._Fr_list
        last = len(Fr) - 1
        while i < last and Fr[i] < u:
            i += 1
        return i

    def _locate_array(self, u: ArrayLike) -> Tuple[np.ndarray, np.ndarray]:
        u = np.asarray(u, dtype=np.float64)
        if np.any(np.isnan(u)):
            raise ValueError("uniform variates contain NaN")
        u = np.clip(u, 0.0, _ONE_BELOW)
        i = np.searchsorted(self._Fr, u, side="left")
        i = np.minimum(i, len(self._Fr) - 1)
        t = (u - self._Fl[i]) / (self._Fr[i] - self._Fl[i])
        return i, t
