from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

import pysam
from loguru import logger

from samsift.config import FilterConfig, FilterSelection
from samsift.errors import AlignmentIOError
from samsift.filters import (
    AlignedFilter,
    IntervalFilter,
    Mode,
    PredicateFilter,
    ReadFilter,
    ReadNameFilter,
    TagValueFilter,
)
from samsift.loaders import load_intervals, load_read_names
from samsift.pairing import PairingCoordinator
from samsift.predicate import PythonPredicate
from samsift.records import AlignmentRecord

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping

# ------------------------------- CONSTANTS -------------------------------- #

# Emit a progress debug line after processing this many records
DEBUG_EVERY: int = 100_000

READS_FILE_SUFFIX = ".reads"


# ------------------------------- DATA TYPES -------------------------------- #


@dataclass
class FilterCounts:
    """Per-run totals. `filtered` is only meaningful once the run has finished."""

    total: int = 0
    kept: int = 0
    orphans: int = 0

    @property
    def filtered(self) -> int:
        return self.total - self.kept


class RecordSink(Protocol):
    def write(self, record: AlignmentRecord) -> None: ...


# --------------------------- STRATEGY DISPATCH ----------------------------- #


def reference_names(header: Mapping[str, Any] | None) -> frozenset[str] | None:
    """Reference sequence names declared by a header dict, or None without a header."""
    if header is None:
        return None
    return frozenset(sq["SN"] for sq in header.get("SQ", []))


def build_filter(
    config: FilterConfig,
    header: Mapping[str, Any] | None = None,
) -> ReadFilter:
    """
    Construct the one strategy `config` selects, loading any auxiliary input it
    needs. Loading problems surface here as LoadError, before records are read.
    """
    match config.selection:
        case FilterSelection.INCLUDE_ALIGNED:
            read_filter: ReadFilter = AlignedFilter(Mode.INCLUDE)
        case FilterSelection.EXCLUDE_ALIGNED:
            read_filter = AlignedFilter(Mode.EXCLUDE)
        case FilterSelection.INCLUDE_READ_LIST:
            read_filter = ReadNameFilter(load_read_names(config.read_list), Mode.INCLUDE)
        case FilterSelection.EXCLUDE_READ_LIST:
            read_filter = ReadNameFilter(load_read_names(config.read_list), Mode.EXCLUDE)
        case FilterSelection.INCLUDE_PREDICATE:
            read_filter = PredicateFilter(
                PythonPredicate.load(config.predicate_source),
                header,
            )
        case FilterSelection.INCLUDE_PAIRED_INTERVALS:
            intervals = load_intervals(config.interval_list, reference_names(header))
            read_filter = IntervalFilter(intervals, paired=True)
        case FilterSelection.INCLUDE_TAG_VALUES:
            read_filter = TagValueFilter(config.tag, config.tag_values, Mode.INCLUDE)
        case FilterSelection.EXCLUDE_TAG_VALUES:
            read_filter = TagValueFilter(config.tag, config.tag_values, Mode.EXCLUDE)

    logger.info(f"Filter: {config.selection.value} ({read_filter.describe()})")
    return read_filter


# ------------------------------ CORE LOGIC --------------------------------- #


def filter_records(
    records: Iterable[AlignmentRecord],
    read_filter: ReadFilter,
    counts: FilterCounts | None = None,
) -> Iterator[AlignmentRecord]:
    """
    Lazily yield the records `read_filter` keeps, in input order.

    Every record passes through a PairingCoordinator; filters that do not
    need mates are resolved immediately, so this is a plain filter for them.
    `counts`, if given, is updated as the stream is consumed.
    """
    counts = counts if counts is not None else FilterCounts()
    coordinator = PairingCoordinator(read_filter)

    for record in records:
        counts.total += 1
        if counts.total % DEBUG_EVERY == 0:
            logger.debug(
                f"Progress: seen={counts.total}, kept={counts.kept}, "
                f"pending_mates={coordinator.pending}, held={coordinator.held}",
            )
        for released, keep in coordinator.submit(record):
            if keep:
                counts.kept += 1
                yield released

    for released, keep in coordinator.finish():
        if keep:
            counts.kept += 1
            yield released
    counts.orphans = coordinator.orphans


class FilterPipeline:
    """Drives one filter strategy over a record source into a sink."""

    def __init__(self, read_filter: ReadFilter) -> None:
        self.read_filter = read_filter

    @classmethod
    def from_config(
        cls,
        config: FilterConfig,
        header: Mapping[str, Any] | None = None,
    ) -> FilterPipeline:
        return cls(build_filter(config, header))

    def run(
        self,
        source: Iterable[AlignmentRecord],
        sink: RecordSink,
    ) -> FilterCounts:
        counts = FilterCounts()
        for record in filter_records(source, self.read_filter, counts):
            sink.write(record)

        assert 0 <= counts.kept <= counts.total, (
            f"Counter inconsistency: kept={counts.kept}, total={counts.total}"
        )
        logger.info(
            f"Filter totals: total={counts.total}, kept={counts.kept}, "
            f"filtered={counts.filtered}, unmatched_mates={counts.orphans}",
        )
        return counts


# ----------------------------- I/O UTILITIES ------------------------------- #


def _io_mode_from_ext(path: str, write: bool) -> str:  # noqa: FBT001
    """Determine pysam open mode from filename extension."""
    lower = path.lower()
    if lower.endswith(".sam"):
        return "w" if write else "r"
    if lower.endswith(".bam"):
        return "wb" if write else "rb"
    if lower.endswith(".cram"):
        return "wc" if write else "rc"
    msg = f"Output/input must end with .sam, .bam, or .cram: {path}"
    logger.error(msg)
    raise AlignmentIOError(msg)


def open_alignment(
    path: str | Path,
    write: bool,  # noqa: FBT001
    template_or_header: pysam.AlignmentFile | dict | None = None,
    reference: str | None = None,
) -> pysam.AlignmentFile:
    """
    Open SAM/BAM/CRAM with correct mode. For CRAM, pass a reference filename.
    - If write=True and template_or_header is an AlignmentFile, we use 'template=...'
      to preserve header (lossless).
    - Otherwise, pass a header dict.
    """
    path = str(path)
    mode = _io_mode_from_ext(path, write)

    kwargs: dict[str, Any] = {}
    if path.lower().endswith(".cram"):
        if reference is None:
            logger.warning(
                f"Opening CRAM without explicit reference: {path}. "
                "Decoding may fail unless the reference is resolvable.",
            )
        else:
            kwargs["reference_filename"] = reference

    action = "write" if write else "read"
    logger.debug(f"Opening for {action}: {path} (mode={mode})")
    if write:
        if isinstance(template_or_header, pysam.AlignmentFile):
            kwargs["template"] = template_or_header
        elif isinstance(template_or_header, dict):
            kwargs["header"] = template_or_header
        else:
            msg = (
                "Writing requires either a template AlignmentFile or a header dict, "
                f"got {type(template_or_header)}"
            )
            logger.error(msg)
            raise AlignmentIOError(msg)

    try:
        return pysam.AlignmentFile(path, mode, **kwargs)
    except (OSError, ValueError) as e:
        msg = f"Unable to open '{path}' for {action}: {e}"
        logger.error(msg)
        raise AlignmentIOError(msg) from e


def read_records(
    inp: pysam.AlignmentFile,
    seen_names: dict[str, None] | None = None,
) -> Iterator[AlignmentRecord]:
    """Yield an AlignmentRecord per segment, optionally noting each read name."""
    try:
        for segment in inp:
            record = AlignmentRecord.from_segment(segment)
            if seen_names is not None:
                seen_names.setdefault(record.read_name)
            yield record
    except (OSError, ValueError) as e:
        msg = f"Failed reading alignments: {e}"
        logger.error(msg)
        raise AlignmentIOError(msg) from e


class AlignmentFileSink:
    """RecordSink writing each record's originating segment to a pysam file."""

    def __init__(
        self,
        outp: pysam.AlignmentFile,
        seen_names: dict[str, None] | None = None,
    ) -> None:
        self.outp = outp
        self.seen_names = seen_names

    def write(self, record: AlignmentRecord) -> None:
        if record.segment is None:
            msg = f"Record '{record.read_name}' has no underlying alignment to write"
            raise AlignmentIOError(msg)
        try:
            self.outp.write(record.segment)
        except OSError as e:
            msg = f"Failed writing '{record.read_name}': {e}"
            logger.error(msg)
            raise AlignmentIOError(msg) from e
        if self.seen_names is not None:
            self.seen_names.setdefault(record.read_name)


def write_reads_file(path: Path, names: Iterable[str]) -> None:
    """Write one read name per line."""
    try:
        with path.open("w") as handle:
            for name in names:
                handle.write(f"{name}\n")
    except OSError as e:
        msg = f"Unable to write read names to '{path}': {e}"
        logger.error(msg)
        raise AlignmentIOError(msg) from e
    logger.info(f"Wrote read names to '{path}'")


def filter_alignment_file(
    in_path: str | Path,
    out_path: str | Path,
    config: FilterConfig,
    reference: str | None = None,
    write_reads_files: bool = False,  # noqa: FBT001, FBT002
) -> FilterCounts:
    """
    Filter an alignment file into a new one using the input as header template.

    The filter (and its auxiliary inputs) is built from the input header before
    the output is opened. Both files are closed on every exit path; if the run
    fails after the output was created, the partial output is removed.
    With `write_reads_files`, ``<input>.reads`` and ``<output>.reads`` list the
    distinct read names of each file in first-seen order.
    """
    in_path, out_path = Path(in_path), Path(out_path)
    input_names: dict[str, None] | None = {} if write_reads_files else None
    output_names: dict[str, None] | None = {} if write_reads_files else None

    input_alignment = open_alignment(in_path, write=False, reference=reference)
    try:
        pipeline = FilterPipeline.from_config(config, input_alignment.header.to_dict())
        output_alignment = open_alignment(
            out_path,
            write=True,
            template_or_header=input_alignment,
            reference=reference,
        )
        completed = False
        try:
            counts = pipeline.run(
                read_records(input_alignment, input_names),
                AlignmentFileSink(output_alignment, output_names),
            )
            completed = True
        finally:
            output_alignment.close()
            if not completed:
                logger.warning(f"Removing incomplete output '{out_path}'")
                out_path.unlink(missing_ok=True)
    finally:
        input_alignment.close()

    if input_names is not None and output_names is not None:
        write_reads_file(in_path.with_name(in_path.name + READS_FILE_SUFFIX), input_names)
        write_reads_file(out_path.with_name(out_path.name + READS_FILE_SUFFIX), output_names)

    return counts
