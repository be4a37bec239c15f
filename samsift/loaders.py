"""
Loaders for the auxiliary inputs a filter may need: read-name lists and
interval lists. Every problem found while loading is raised as a LoadError
before any alignment record is read.
"""

from __future__ import annotations

import gzip
import re
from pathlib import Path
from typing import TYPE_CHECKING, TextIO

from loguru import logger

from samsift.errors import LoadError
from samsift.intervals import Interval, IntervalSet

if TYPE_CHECKING:
    from collections.abc import Collection, Iterator

# QNAME grammar from the SAM v1 format
QNAME_PATTERN = re.compile(r"[!-?A-~]{1,254}")

BED_SUFFIXES = (".bed", ".bed.gz")
BED_SKIP_PREFIXES = ("#", "track", "browser")
INTERVAL_LIST_MIN_COLUMNS = 3
BED_MIN_COLUMNS = 3

ReadNameSet = frozenset[str]


def _open_text(path: Path) -> TextIO:
    if path.suffix == ".gz":
        return gzip.open(path, "rt")
    return path.open()


def _numbered_lines(path: Path) -> Iterator[tuple[int, str]]:
    try:
        with _open_text(path) as handle:
            for lineno, line in enumerate(handle, start=1):
                yield lineno, line.rstrip("\r\n")
    except (OSError, UnicodeDecodeError) as e:
        msg = f"Unable to read '{path}': {e}"
        logger.error(msg)
        raise LoadError(msg) from e


# ------------------------------ READ NAMES --------------------------------- #


def load_read_names(path: str | Path) -> ReadNameSet:
    """
    Load one read name per line. Only the first whitespace-delimited token of
    each line is used, so `samtools view | cut -f1` style output and lists with
    trailing annotations both work. Blank lines are skipped.
    """
    path = Path(path)
    names: set[str] = set()
    for lineno, line in _numbered_lines(path):
        fields = line.split()
        if not fields:
            continue
        name = fields[0]
        if not QNAME_PATTERN.fullmatch(name):
            msg = f"{path}:{lineno}: '{name}' is not a valid read name"
            logger.error(msg)
            raise LoadError(msg)
        names.add(name)

    if not names:
        msg = f"Read name list '{path}' contains no read names"
        logger.error(msg)
        raise LoadError(msg)

    logger.info(f"Loaded {len(names)} distinct read names from '{path}'")
    return frozenset(names)


# ------------------------------- INTERVALS --------------------------------- #


def _is_bed(path: Path) -> bool:
    return path.name.lower().endswith(BED_SUFFIXES)


def _parse_interval_list_row(fields: list[str]) -> Interval:
    if len(fields) < INTERVAL_LIST_MIN_COLUMNS:
        msg = f"expected at least {INTERVAL_LIST_MIN_COLUMNS} columns, found {len(fields)}"
        raise ValueError(msg)
    return Interval(fields[0], int(fields[1]), int(fields[2]))


def _parse_bed_row(fields: list[str]) -> Interval:
    if len(fields) < BED_MIN_COLUMNS:
        msg = f"expected at least {BED_MIN_COLUMNS} columns, found {len(fields)}"
        raise ValueError(msg)
    start0, end0 = int(fields[1]), int(fields[2])
    if end0 <= start0:
        msg = f"BED interval is empty or inverted: {start0}-{end0}"
        raise ValueError(msg)
    return Interval(fields[0], start0 + 1, end0)


def load_intervals(
    path: str | Path,
    known_references: Collection[str] | None = None,
) -> IntervalSet:
    """
    Parse an interval file into an IntervalSet.

    Picard-style interval lists (``@`` header lines followed by
    ``contig start end strand name`` rows, 1-based inclusive) are the default.
    Files ending in ``.bed`` or ``.bed.gz`` are read as BED (0-based,
    half-open) and converted.

    If `known_references` is given, intervals on references missing from it
    are dropped with a warning; they could never overlap an input record.
    """
    path = Path(path)
    bed = _is_bed(path)
    parse_row = _parse_bed_row if bed else _parse_interval_list_row

    intervals: list[Interval] = []
    unknown: dict[str, int] = {}
    for lineno, line in _numbered_lines(path):
        if not line.strip():
            continue
        if bed and line.startswith(BED_SKIP_PREFIXES):
            continue
        if not bed and line.startswith("@"):
            continue
        try:
            interval = parse_row(line.split("\t") if "\t" in line else line.split())
        except ValueError as e:
            msg = f"{path}:{lineno}: malformed interval: {e}"
            logger.error(msg)
            raise LoadError(msg) from e

        if known_references is not None and interval.reference_name not in known_references:
            unknown[interval.reference_name] = unknown.get(interval.reference_name, 0) + 1
            continue
        intervals.append(interval)

    for reference_name, n in unknown.items():
        logger.warning(
            f"Ignoring {n} interval(s) on '{reference_name}', which is not in the input header",
        )

    if not intervals and not unknown:
        msg = f"Interval list '{path}' contains no intervals"
        logger.error(msg)
        raise LoadError(msg)

    interval_set = IntervalSet(intervals)
    fmt = "BED" if bed else "interval_list"
    logger.info(f"Loaded {len(interval_set)} intervals from '{path}' ({fmt})")
    return interval_set
