from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, NamedTuple

if TYPE_CHECKING:
    from collections.abc import Mapping

    import pysam

# ------------------------------- CONSTANTS -------------------------------- #

# CIGAR op codes
# 0:M, 1:I, 2:D, 3:N, 4:S, 5:H, 6:P, 7:=, 8:X
CIGAR_CHARS = "MIDNSHP=X"
REF_CONSUME = {0, 2, 3, 7, 8}
QRY_CONSUME = {0, 1, 4, 7, 8}
SOFT_CLIP = 4
HARD_CLIP = 5

_CIGAR_RUN = re.compile(r"(\d+)([MIDNSHP=X])")


# ---------------------------- CIGAR UTILITIES ------------------------------ #


class CigarOp(NamedTuple):
    """One CIGAR run: (operation code, run length)."""

    op: int
    length: int

    @staticmethod
    def from_tuple(t: tuple[int, int]) -> CigarOp:
        """Convert a raw (op, len) tuple to CigarOp."""
        op, ln = t
        return CigarOp(op, ln)

    def __str__(self) -> str:
        return f"{self.length}{CIGAR_CHARS[self.op]}"


class Cigar(list[CigarOp]):
    """A list of CigarOp with helpers for the clipping and span summaries filters need."""

    @classmethod
    def from_pysam(cls, cig_raw: list[tuple[int, int]] | None) -> Cigar:
        """
        Convert pysam's list[(op, len)] to a Cigar. A missing CIGAR becomes an
        empty one, which is how unmapped reads are represented.
        """
        if cig_raw is None:
            return cls()
        return cls(CigarOp.from_tuple(t) for t in cig_raw)

    @classmethod
    def from_string(cls, text: str) -> Cigar:
        """Parse SAM CIGAR text such as ``5S20M1I10M``; ``*`` is the empty CIGAR."""
        if text in {"", "*"}:
            return cls()
        runs = _CIGAR_RUN.findall(text)
        if "".join(f"{n}{c}" for n, c in runs) != text:
            msg = f"Malformed CIGAR string: {text!r}"
            raise ValueError(msg)
        return cls(CigarOp(CIGAR_CHARS.index(c), int(n)) for n, c in runs)

    def to_pysam(self) -> list[tuple[int, int]]:
        """Convert this Cigar back to list[(op, len)] for pysam."""
        return [(run.op, run.length) for run in self]

    @property
    def reference_length(self) -> int:
        return sum(run.length for run in self if run.op in REF_CONSUME)

    @property
    def query_length(self) -> int:
        return sum(run.length for run in self if run.op in QRY_CONSUME)

    @property
    def leading_soft_clip(self) -> int:
        """Soft-clipped bases at the left edge, looking past any hard clip."""
        for run in self:
            if run.op == HARD_CLIP:
                continue
            return run.length if run.op == SOFT_CLIP else 0
        return 0

    @property
    def trailing_soft_clip(self) -> int:
        """Soft-clipped bases at the right edge, looking past any hard clip."""
        for run in reversed(self):
            if run.op == HARD_CLIP:
                continue
            return run.length if run.op == SOFT_CLIP else 0
        return 0

    def __str__(self) -> str:
        return "".join(str(run) for run in self) or "*"


# ------------------------------- DATA TYPES -------------------------------- #


@dataclass(frozen=True)
class AlignmentRecord:
    """
    The view of one alignment that filters decide on.

    Coordinates are 1-based and inclusive. For records without a
    reference-consuming CIGAR (unmapped reads placed next to their mate, or
    empty CIGARs) ``end == start``. ``segment`` is the pysam object the record
    was built from; the engine never inspects it and hands it to the sink
    unchanged. The CIGAR and tags take part in equality but not in the hash,
    so records can be used in sets and as dict keys.
    """

    read_name: str
    reference_name: str | None = None
    start: int = 0
    end: int = 0
    is_mapped: bool = True
    is_paired: bool = False
    is_read1: bool = False
    is_read2: bool = False
    is_secondary: bool = False
    is_supplementary: bool = False
    is_reverse: bool = False
    mate_reference_name: str | None = None
    mate_start: int | None = None
    mate_is_unmapped: bool = False
    cigar: Cigar = field(default_factory=Cigar, hash=False)
    tags: Mapping[str, Any] = field(default_factory=dict, hash=False)
    flag: int = 0
    segment: pysam.AlignedSegment | None = field(
        default=None,
        repr=False,
        compare=False,
    )

    @classmethod
    def from_segment(cls, segment: pysam.AlignedSegment) -> AlignmentRecord:
        """Build a record from pysam's 0-based, half-open representation."""
        reference_start = segment.reference_start
        start = reference_start + 1 if reference_start >= 0 else 0
        reference_end = segment.reference_end
        end = reference_end if reference_end is not None else start

        mate_reference_name = None
        mate_start = None
        if segment.is_paired and segment.next_reference_id >= 0:
            mate_reference_name = segment.next_reference_name
            mate_start = segment.next_reference_start + 1

        return cls(
            read_name=segment.query_name or "",
            reference_name=(
                segment.reference_name if segment.reference_id >= 0 else None
            ),
            start=start,
            end=max(end, start),
            is_mapped=not segment.is_unmapped,
            is_paired=segment.is_paired,
            is_read1=segment.is_read1,
            is_read2=segment.is_read2,
            is_secondary=segment.is_secondary,
            is_supplementary=segment.is_supplementary,
            is_reverse=segment.is_reverse,
            mate_reference_name=mate_reference_name,
            mate_start=mate_start,
            mate_is_unmapped=segment.is_paired and segment.mate_is_unmapped,
            cigar=Cigar.from_pysam(segment.cigartuples),
            tags=dict(segment.get_tags()),
            flag=segment.flag,
            segment=segment,
        )

    @property
    def is_primary(self) -> bool:
        return not (self.is_secondary or self.is_supplementary)

    @property
    def five_prime_soft_clip(self) -> int:
        """Soft clip at the read's 5' end: the CIGAR's right edge on the reverse strand."""
        if self.is_reverse:
            return self.cigar.trailing_soft_clip
        return self.cigar.leading_soft_clip

    @property
    def mate_end(self) -> int | None:
        """The mate's 1-based end from the MC tag, or None when it cannot be known."""
        mate_cigar = self.tags.get("MC")
        if self.mate_start is None or not mate_cigar:
            return None
        try:
            span = Cigar.from_string(str(mate_cigar)).reference_length
        except ValueError:
            return None
        if not span:
            return None
        return self.mate_start + span - 1

    def overlaps(self, reference_name: str, start: int, end: int) -> bool:
        """Whether this alignment shares at least one base with [start, end]."""
        if not self.is_mapped or self.reference_name is None:
            return False
        return (
            self.reference_name == reference_name
            and self.start <= end
            and self.end >= start
        )
