"""Interval records and the append-only store they are built in."""

from dataclasses import dataclass
from typing import Iterator, List, Optional

from .errors import ResourceExhaustedError
from .hermite import ZERO_COEFFICIENTS, Coefficients


@dataclass
class Interval:
    """A domain sub-range [l, r] carrying cubic fits of the inverse CDF (a)
    and of the density (b), both in the local CDF fraction.

    mass is the unnormalised quadrature integral of the density over [l, r];
    CDF values inside the interval are measured as fractions of it. next_id
    links to the interval on the right while the store is being refined; it
    is None for the rightmost interval.
    """

    id: int
    l: float
    r: float
    Fl: float
    Fr: float
    mass: float = 0.0
    a: Coefficients = ZERO_COEFFICIENTS
    b: Coefficients = ZERO_COEFFICIENTS
    next_id: Optional[int] = None

    @property
    def width(self) -> float:
        """CDF mass covered by the interval."""
        return self.Fr - self.Fl


class IntervalArena:
    """Append-only interval store addressed by stable integer ids.

    Intervals are never removed or moved, so an id stays valid for the life
    of the arena. Domain order is recovered through the next_id links.
    """

    def __init__(self, xl: float, xr: float, mass: float = 1.0):
        self._intervals: List[Interval] = [
            Interval(id=0, l=xl, r=xr, Fl=0.0, Fr=1.0, mass=mass)
        ]

    def __len__(self) -> int:
        return len(self._intervals)

    def __getitem__(self, interval_id: int) -> Interval:
        return self._intervals[interval_id]

    @property
    def first(self) -> Interval:
        return self._intervals[0]

    def split(
        self,
        interval_id: int,
        m: float,
        Fm: float,
        left_mass: float,
        right_mass: float,
    ) -> Interval:
        """Split an interval at m, whose CDF value is Fm.

        left_mass and right_mass are the quadrature masses of [l, m] and
        [m, r].

        The interval keeps its id and shrinks to [l, m]; the new right half
        [m, r] is appended with the next free id and takes over the old link.

        Returns:
            The new right-hand interval

        Raises:
            ResourceExhaustedError: If the store cannot grow
        """
        iv = self._intervals[interval_id]
        new_id = len(self._intervals)
        try:
            right = Interval(
                id=new_id,
                l=m,
                r=iv.r,
                Fl=Fm,
                Fr=iv.Fr,
                mass=right_mass,
                next_id=iv.next_id,
            )
            self._intervals.append(right)
        except MemoryError as exc:
            raise ResourceExhaustedError(
                f"could not allocate interval {new_id}"
            ) from exc

        iv.r = m
        iv.Fr = Fm
        iv.mass = left_mass
        iv.next_id = new_id
        return right

    def traverse(self) -> Iterator[Interval]:
        """Yield intervals in domain order by following the links."""
        current: Optional[int] = 0
        while current is not None:
            iv = self._intervals[current]
            yield iv
            current = iv.next_id

    def sorted_intervals(self) -> List[Interval]:
        """Return the intervals ordered by Fl.

        Equal Fl values only arise from zero-mass intervals; those keep their
        domain order.
        """
        position = {iv.id: k for k, iv in enumerate(self.traverse())}
        return sorted(self._intervals, key=lambda iv: (iv.Fl, position[iv.id]))
