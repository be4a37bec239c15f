"""
Filter strategies.

Each strategy answers one question per record, ``decide(record) -> bool``
(True keeps the record), and carries only the parameters it needs. Strategies
whose verdict depends on both mates of a template set ``requires_mate`` and
say how two per-mate verdicts combine; the PairingCoordinator does the
buffering for them.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum, auto
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Collection, Mapping

    from samsift.intervals import IntervalSet
    from samsift.predicate import RecordPredicate
    from samsift.records import AlignmentRecord


class Mode(Enum):
    """Whether matching records are kept or dropped."""

    INCLUDE = auto()
    EXCLUDE = auto()

    def apply(self, matched: bool) -> bool:  # noqa: FBT001
        return matched if self is Mode.INCLUDE else not matched


class ReadFilter(ABC):
    """Base class for every filter strategy."""

    requires_mate: bool = False

    @abstractmethod
    def decide(self, record: AlignmentRecord) -> bool:
        """Return True to keep `record`."""

    def combine(self, first: bool, second: bool) -> bool:  # noqa: FBT001
        """Combine the verdicts of two mates. Only consulted when `requires_mate`."""
        return first or second

    def defers(self, record: AlignmentRecord) -> bool:
        """Whether `record` must wait for its mate before a verdict is final."""
        return self.requires_mate and record.is_paired and record.is_primary

    def decide_mate(self, record: AlignmentRecord) -> bool | None:
        """
        The verdict the mate of `record` would get, worked out from the mate
        fields `record` carries, or None when those fields are not enough.
        """
        return None

    def describe(self) -> str:
        return type(self).__name__


class ReadNameFilter(ReadFilter):
    """Keep (or drop) records whose read name is in a fixed set."""

    def __init__(self, names: Collection[str], mode: Mode = Mode.INCLUDE) -> None:
        if not names:
            msg = "ReadNameFilter requires at least one read name"
            raise ValueError(msg)
        self.names = frozenset(names)
        self.mode = mode

    def decide(self, record: AlignmentRecord) -> bool:
        return self.mode.apply(record.read_name in self.names)

    def describe(self) -> str:
        return f"{self.mode.name.lower()} {len(self.names)} read names"


class AlignedFilter(ReadFilter):
    """Keep mapped records (INCLUDE) or unmapped records (EXCLUDE)."""

    def __init__(self, mode: Mode = Mode.INCLUDE) -> None:
        self.mode = mode

    def decide(self, record: AlignmentRecord) -> bool:
        return self.mode.apply(record.is_mapped)

    def describe(self) -> str:
        return f"{self.mode.name.lower()} aligned reads"


class IntervalFilter(ReadFilter):
    """
    Keep records overlapping any interval in an IntervalSet.

    With ``paired=True`` a template is kept when either primary mate overlaps,
    and secondary or supplementary alignments are dropped. Unmapped records
    never overlap, whatever their position fields say.
    """

    def __init__(self, intervals: IntervalSet, paired: bool = True) -> None:  # noqa: FBT001, FBT002
        self.intervals = intervals
        self.paired = paired
        self.requires_mate = paired

    def decide(self, record: AlignmentRecord) -> bool:
        if self.paired and not record.is_primary:
            return False
        if not record.is_mapped or record.reference_name is None:
            return False
        return self.intervals.overlaps(record.reference_name, record.start, record.end)

    def decide_mate(self, record: AlignmentRecord) -> bool | None:
        if record.mate_is_unmapped or record.mate_reference_name is None:
            return False
        mate_end = record.mate_end
        if mate_end is None:
            return None
        return self.intervals.overlaps(record.mate_reference_name, record.mate_start, mate_end)

    def describe(self) -> str:
        kind = "paired " if self.paired else ""
        return f"include {kind}overlaps with {len(self.intervals)} intervals"


class PredicateFilter(ReadFilter):
    """Delegate the verdict to an external predicate."""

    def __init__(
        self,
        predicate: RecordPredicate,
        header: Mapping[str, Any] | None = None,
    ) -> None:
        self.predicate = predicate
        self.header = header

    def decide(self, record: AlignmentRecord) -> bool:
        return self.predicate.evaluate(record, self.header)

    def describe(self) -> str:
        name = getattr(self.predicate, "source_name", type(self.predicate).__name__)
        return f"include reads accepted by {name}"


class TagValueFilter(ReadFilter):
    """Keep (or drop) records whose `tag` value is one of `values`."""

    def __init__(self, tag: str, values: Collection[str], mode: Mode = Mode.INCLUDE) -> None:
        if not values:
            msg = "TagValueFilter requires at least one tag value"
            raise ValueError(msg)
        self.tag = tag
        self.values = frozenset(str(v) for v in values)
        self.mode = mode

    def decide(self, record: AlignmentRecord) -> bool:
        value = record.tags.get(self.tag)
        matched = value is not None and str(value) in self.values
        return self.mode.apply(matched)

    def describe(self) -> str:
        return f"{self.mode.name.lower()} {self.tag} in {sorted(self.values)}"
