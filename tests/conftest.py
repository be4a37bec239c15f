"""
Pytest fixtures and configuration for samsift testing.

Provides builders for in-memory AlignmentRecords, SAM files written with
pysam, and the four-template paired-read scenario used throughout the
read-list and interval tests:

    A  both mates on chr1 near the start        (overlap region X)
    B  both mates on chr2 near the start        (overlap region Y)
    C  both mates on chr1 at 1000               (overlap neither)
    D  one mate on chr1 at 1, the other at 1000 (one mate overlaps X)
"""

import sys
import tempfile
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pysam
import pytest

from samsift.records import AlignmentRecord, Cigar

READ_LENGTH = 151
CHROM_LENGTH = 10_000


def make_record(
    read_name: str = "read",
    reference_name: str | None = "chr1",
    start: int = 1,
    length: int = 100,
    **kwargs: Any,
) -> AlignmentRecord:
    """Build a mapped AlignmentRecord with an all-match CIGAR unless told otherwise."""
    is_mapped = kwargs.pop("is_mapped", True)
    cigar = kwargs.pop("cigar", Cigar.from_string(f"{length}M") if is_mapped else Cigar())
    end = start + cigar.reference_length - 1 if cigar.reference_length else start
    return AlignmentRecord(
        read_name=read_name,
        reference_name=reference_name,
        start=start,
        end=end,
        is_mapped=is_mapped,
        cigar=cigar,
        **kwargs,
    )


def make_mates(
    read_name: str,
    reference_name: str,
    start1: int,
    start2: int,
    length: int = READ_LENGTH,
) -> tuple[AlignmentRecord, AlignmentRecord]:
    """A forward read1 and reverse read2, each pointing at the other."""
    first = make_record(
        read_name,
        reference_name,
        start1,
        length,
        is_paired=True,
        is_read1=True,
        mate_reference_name=reference_name,
        mate_start=start2,
    )
    second = make_record(
        read_name,
        reference_name,
        start2,
        length,
        is_paired=True,
        is_read2=True,
        is_reverse=True,
        mate_reference_name=reference_name,
        mate_start=start1,
    )
    return first, second


@dataclass(frozen=True)
class ReadSpec:
    """Everything needed to write one SAM record."""

    name: str
    reference_name: str | None
    start: int
    cigar: str = f"{READ_LENGTH}M"
    unmapped: bool = False
    paired: bool = False
    read1: bool = False
    read2: bool = False
    reverse: bool = False
    mate_reverse: bool = False
    mate_reference_name: str | None = None
    mate_start: int | None = None
    mate_unmapped: bool = False
    secondary: bool = False
    tags: tuple[tuple[str, Any], ...] = ()


def pair_specs(
    name: str,
    reference_name: str,
    start1: int,
    start2: int,
) -> list[ReadSpec]:
    """Equivalent of adding a mapped pair to a record-set builder."""
    return [
        ReadSpec(
            name,
            reference_name,
            start1,
            paired=True,
            read1=True,
            mate_reverse=True,
            mate_reference_name=reference_name,
            mate_start=start2,
        ),
        ReadSpec(
            name,
            reference_name,
            start2,
            paired=True,
            read2=True,
            reverse=True,
            mate_reference_name=reference_name,
            mate_start=start1,
        ),
    ]


def create_sam_header(*reference_names: str) -> dict[str, Any]:
    """Create a minimal SAM header for testing."""
    return {
        "HD": {"VN": "1.6", "SO": "coordinate"},
        "SQ": [{"SN": name, "LN": CHROM_LENGTH} for name in reference_names],
        "PG": [{"ID": "test", "PN": "samsift_test", "VN": "0.1.0"}],
    }


def write_sam(path: Path, header: dict[str, Any], specs: list[ReadSpec]) -> Path:
    """Write `specs` to a SAM/BAM file (mode from the extension) in the given order."""
    mode = "wb" if path.suffix == ".bam" else "w"
    with pysam.AlignmentFile(str(path), mode, header=header) as out:
        for spec in specs:
            cigar = Cigar.from_string(spec.cigar)
            seq_len = cigar.query_length or READ_LENGTH
            read = pysam.AlignedSegment(out.header)
            read.query_name = spec.name
            read.query_sequence = "ACGT" * (seq_len // 4) + "A" * (seq_len % 4)
            read.query_qualities = pysam.qualitystring_to_array("I" * seq_len)
            read.is_paired = spec.paired
            read.is_read1 = spec.read1
            read.is_read2 = spec.read2
            read.is_reverse = spec.reverse
            read.is_secondary = spec.secondary
            read.mate_is_reverse = spec.mate_reverse
            read.mate_is_unmapped = spec.mate_unmapped
            if spec.reference_name is not None:
                read.reference_name = spec.reference_name
                read.reference_start = spec.start - 1
            if spec.unmapped:
                read.is_unmapped = True
                read.mapping_quality = 0
            else:
                read.cigartuples = cigar.to_pysam()
                read.mapping_quality = 60
            if spec.paired and spec.mate_reference_name is not None:
                read.next_reference_name = spec.mate_reference_name
                read.next_reference_start = spec.mate_start - 1
            for tag, value in spec.tags:
                read.set_tag(tag, value)
            out.write(read)
    return path


def read_names_in(path: Path) -> list[str]:
    """Read names of every record in an alignment file, in file order."""
    with pysam.AlignmentFile(str(path), "r" if path.suffix == ".sam" else "rb") as f:
        return [read.query_name for read in f]


@pytest.fixture
def temp_dir() -> Iterator[Path]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmp_dir:
        yield Path(tmp_dir)


@pytest.fixture
def template_specs() -> list[ReadSpec]:
    """The four templates A-D, coordinate sorted."""
    specs = (
        pair_specs("A", "chr1", 1, 151)
        + pair_specs("B", "chr2", 1, 151)
        + pair_specs("C", "chr1", 1000, 1000)
        + pair_specs("D", "chr1", 1, 1000)
    )
    ref_order = {"chr1": 0, "chr2": 1}
    return sorted(specs, key=lambda s: (ref_order[s.reference_name], s.start))


@pytest.fixture
def template_records() -> list[AlignmentRecord]:
    """In-memory version of the four templates, coordinate sorted."""
    records = [
        *make_mates("A", "chr1", 1, 151),
        *make_mates("B", "chr2", 1, 151),
        *make_mates("C", "chr1", 1000, 1000),
        *make_mates("D", "chr1", 1, 1000),
    ]
    return sorted(records, key=lambda r: (r.reference_name, r.start))


@pytest.fixture
def template_sam(temp_dir: Path, template_specs: list[ReadSpec]) -> Path:
    """SAM file holding the four templates."""
    return write_sam(temp_dir / "templates.sam", create_sam_header("chr1", "chr2"), template_specs)


@pytest.fixture
def read_list_file(temp_dir: Path) -> Path:
    """Read list naming templates A, C and D."""
    path = temp_dir / "reads.txt"
    path.write_text("A\nC\nD")
    return path


@pytest.fixture
def region_x_interval_list(temp_dir: Path) -> Path:
    """Picard interval_list covering the start of chr1 only."""
    path = temp_dir / "region_x.interval_list"
    path.write_text(
        "@HD\tVN:1.6\n"
        f"@SQ\tSN:chr1\tLN:{CHROM_LENGTH}\n"
        f"@SQ\tSN:chr2\tLN:{CHROM_LENGTH}\n"
        "chr1\t1\t200\t+\tregion_x\n",
    )
    return path


@pytest.fixture
def no_match_interval_list(temp_dir: Path) -> Path:
    """Picard interval_list whose only interval is far from every read."""
    path = temp_dir / "nowhere.interval_list"
    path.write_text(
        f"@SQ\tSN:chr1\tLN:{CHROM_LENGTH}\n"
        "chr1\t5000\t6000\t+\tnowhere\n",
    )
    return path


@pytest.fixture
def dummy_file(temp_dir: Path) -> Path:
    """A file that exists but holds nothing useful."""
    path = temp_dir / "dummy"
    path.write_text("\n")
    return path


@pytest.fixture(autouse=True)
def configure_logging_for_tests() -> None:
    """Configure logging for tests to reduce noise."""
    from loguru import logger

    logger.remove()
    logger.add(sys.stderr, level="WARNING")
