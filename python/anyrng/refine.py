"""Adaptive partition of the domain into intervals with accurate Hermite fits.

Refinement runs in two passes over the linked intervals, both starting from a
single interval that covers the whole domain:

Phase 1 (coverage): bisect until no interval carries more than
    ``max_coverage_width`` of the probability mass.
Phase 2 (accuracy): fit the cubic Hermite polynomials in each interval and
    bisect until the inverse-CDF fit is monotone and both fits are within
    ``tol`` at the interval's CDF midpoint. An interval whose CDF mass is
    already below ``tol`` falls back to a linear inverse instead of being
    bisected for monotonicity.

CDF values are never integrated from ``xl``. Each interval keeps its own
quadrature mass, a bisection point gets the parent's CDF width in proportion
to the masses of the two halves, and the midpoint check integrates from the
interval's left end. Interior CDF values therefore stay strictly between
their neighbours for any positive density.

A bisected interval is re-examined immediately, so the walk only advances
once the current interval is accepted.
"""

import logging
import math
from typing import List, Optional

from .config import BuildConfig
from .density import Density
from .errors import DensityError, InvalidDomainError, NonConvergenceError
from .hermite import (
    ZERO_COEFFICIENTS,
    density_coefficients,
    evaluate,
    inverse_cdf_coefficients,
    is_monotone,
)
from .integrate import normalization_constant, numerical_cdf
from .intervals import Interval, IntervalArena

logger = logging.getLogger(__name__)


def check_domain(xl: float, xr: float) -> None:
    """Raise InvalidDomainError unless xl < xr and both are finite."""
    if not (math.isfinite(xl) and math.isfinite(xr)):
        raise InvalidDomainError(f"domain bounds must be finite, got [{xl}, {xr}]")
    if not xl < xr:
        raise InvalidDomainError(f"domain requires xl < xr, got [{xl}, {xr}]")


class IntervalRefiner:
    """Builds the sorted interval sequence for one density and domain.

    The refiner owns its interval store; it is single-use and not safe to
    share between threads while building.

    Example:
        >>> refiner = IntervalRefiner(Density.normal(), -5.0, 5.0)
        >>> intervals = refiner.build()
        >>> intervals[0].Fl, intervals[-1].Fr
        (0.0, 1.0)
    """

    def __init__(
        self,
        density: Density,
        xl: float,
        xr: float,
        config: Optional[BuildConfig] = None,
        stacklevel: int = 2,
    ):
        """Validate the domain and normalise the density.

        stacklevel locates configuration warnings relative to the caller,
        as in :func:`warnings.warn`.

        Raises:
            InvalidDomainError: If xl >= xr
            DensityError: If the density is invalid or integrates to zero
        """
        check_domain(xl, xr)
        self.density = density
        self.xl = float(xl)
        self.xr = float(xr)
        self.config = (config or BuildConfig()).validate(stacklevel + 1)
        self.norm = normalization_constant(
            self.xl, self.xr, density, self.config.n_quadrature
        )
        logger.debug(
            "normalised density on [%g, %g]: norm=%.12g", self.xl, self.xr, self.norm
        )
        self._arena: Optional[IntervalArena] = None

    def build(self) -> List[Interval]:
        """Run both refinement phases and return the intervals sorted by Fl.

        Raises:
            DensityError: If the density is invalid where it is evaluated,
                or vanishes at an interval endpoint
            NonConvergenceError: If refinement exceeds ``max_intervals``, the
                density has no mass on part of the domain, or an interval can
                no longer be bisected
            ResourceExhaustedError: If the interval store cannot grow
        """
        self._arena = IntervalArena(self.xl, self.xr, 1.0 / self.norm)
        try:
            self._cover()
            logger.debug("coverage phase done: %d intervals", len(self._arena))
            self._fit_all()
            logger.debug("accuracy phase done: %d intervals", len(self._arena))
            return self._arena.sorted_intervals()
        finally:
            self._arena = None

    def _cover(self) -> None:
        arena = self._arena
        max_width = self.config.max_coverage_width
        current = arena.first
        while True:
            if current.width > max_width:
                self._split(current)
            elif current.next_id is None:
                break
            else:
                current = arena[current.next_id]

    def _fit_all(self) -> None:
        arena = self._arena
        current = arena.first
        while True:
            if not self._fit(current):
                self._split(current)
            elif current.next_id is None:
                break
            else:
                current = arena[current.next_id]

    def _split(self, iv: Interval) -> None:
        arena = self._arena
        if len(arena) >= self.config.max_intervals:
            raise NonConvergenceError(
                f"refinement exceeded {self.config.max_intervals} intervals "
                f"(tol={self.config.tol:g}). The density may be discontinuous "
                "or the tolerance too strict."
            )

        m = iv.l + 0.5 * (iv.r - iv.l)
        if not iv.l < m < iv.r:
            raise NonConvergenceError(
                f"interval [{iv.l!r}, {iv.r!r}] cannot be bisected further"
            )

        n = self.config.n_quadrature
        left_mass = numerical_cdf(iv.l, m, self.density, n)
        right_mass = numerical_cdf(m, iv.r, self.density, n)
        if left_mass <= 0 or right_mass <= 0:
            lo, hi = (iv.l, m) if left_mass <= 0 else (m, iv.r)
            raise NonConvergenceError(
                f"density has no mass on [{lo!r}, {hi!r}]; "
                "it must be strictly positive on the domain"
            )

        Fm = iv.Fl + iv.width * (left_mass / (left_mass + right_mass))
        if not iv.Fl < Fm < iv.Fr:
            raise NonConvergenceError(
                f"CDF values on [{iv.l!r}, {iv.r!r}] cannot be separated in "
                f"double precision (Fl={iv.Fl!r}, Fr={iv.Fr!r}); "
                f"tol={self.config.tol:g} is too strict"
            )

        arena.split(iv.id, m, Fm, left_mass, right_mass)

    def _fit(self, iv: Interval) -> bool:
        """Fit the Hermite polynomials in iv and report whether they pass."""
        norm = self.norm
        density = self.density
        tol = self.config.tol

        fl = norm * density.value(iv.l)
        fr = norm * density.value(iv.r)
        if fl <= 0 or fr <= 0:
            raise DensityError(
                f"density vanishes at an interval endpoint "
                f"(f({iv.l!r})={fl!r}, f({iv.r!r})={fr!r}); "
                "it must be strictly positive on the domain"
            )

        iv.a = inverse_cdf_coefficients(iv.l, iv.r, iv.Fl, iv.Fr, fl, fr)
        iv.b = ZERO_COEFFICIENTS
        if not is_monotone(iv.l, iv.r, iv.Fl, iv.Fr, fl, fr):
            if iv.width > tol:
                return False
            # Any inverse inside [l, r] is within the interval's mass of the CDF
            iv.a = (iv.l, iv.r - iv.l, 0.0, 0.0)

        u = 0.5 * (iv.Fl + iv.Fr)
        H = evaluate(iv.a, 0.5)
        F = iv.Fl + iv.width * (
            numerical_cdf(iv.l, H, density, self.config.n_quadrature) / iv.mass
        )
        error = abs(F - u)
        if error > tol:
            return False

        if density.has_derivative:
            dfl = norm * density.slope(iv.l)
            dfr = norm * density.slope(iv.r)
            iv.b = density_coefficients(iv.Fl, iv.Fr, fl, fr, dfl, dfr)
            pdf_error = abs(norm * density.value(H) - evaluate(iv.b, 0.5))
            if pdf_error > tol:
                return False

        return True
