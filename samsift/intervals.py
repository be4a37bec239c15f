from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import TYPE_CHECKING

from intervaltree import IntervalTree

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator


@dataclass(frozen=True, order=True)
class Interval:
    """A genomic interval, 1-based and inclusive at both ends."""

    reference_name: str
    start: int
    end: int

    def __post_init__(self) -> None:
        if self.start < 1:
            msg = f"Interval start must be >= 1, got {self.start} on {self.reference_name}"
            raise ValueError(msg)
        if self.start > self.end:
            msg = f"Interval start {self.start} exceeds end {self.end} on {self.reference_name}"
            raise ValueError(msg)

    def __len__(self) -> int:
        return self.end - self.start + 1

    def __str__(self) -> str:
        return f"{self.reference_name}:{self.start}-{self.end}"


class IntervalSet:
    """
    Immutable collection of intervals ordered by (reference, start).

    Intervals may overlap one another; no merging is performed. Each
    reference gets its own IntervalTree holding the half-open span
    [start, end + 1) of every interval.
    """

    def __init__(self, intervals: Iterable[Interval]) -> None:
        by_reference: dict[str, list[Interval]] = defaultdict(list)
        for interval in intervals:
            by_reference[interval.reference_name].append(interval)
        self._trees = {
            ref: IntervalTree.from_tuples((iv.start, iv.end + 1, iv) for iv in ivs)
            for ref, ivs in by_reference.items()
        }
        self._intervals = sorted(iv for ivs in by_reference.values() for iv in ivs)

    def __len__(self) -> int:
        return len(self._intervals)

    def __iter__(self) -> Iterator[Interval]:
        return iter(self._intervals)

    def __bool__(self) -> bool:
        return bool(self._intervals)

    @property
    def reference_names(self) -> frozenset[str]:
        return frozenset(self._trees)

    def overlaps(self, reference_name: str, start: int, end: int) -> bool:
        """Whether [start, end] on `reference_name` shares a base with any interval."""
        tree = self._trees.get(reference_name)
        if tree is None:
            return False
        return tree.overlaps(start, end + 1)
