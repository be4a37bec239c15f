from __future__ import annotations

import argparse
import sys
from typing import TYPE_CHECKING

from loguru import logger

from samsift.config import FilterSelection, load_config
from samsift.errors import SamSiftError
from samsift.pipeline import filter_alignment_file

if TYPE_CHECKING:
    from collections.abc import Sequence


# ----------------------------- LOGGING SETUP ------------------------------- #


def configure_logging(verbose: int, quiet: int) -> None:
    """
    Base at SUCCESS (0). Positive → louder (more verbose), negative → quieter.
    Map:
      +3.. = TRACE
      +2   = DEBUG
      +1   = INFO
       0   = SUCCESS
      -1   = WARNING
      -2   = ERROR
      <=-3 = CRITICAL
    """
    logger.remove()
    delta = verbose - quiet
    match delta:
        case d if d >= 3:  # noqa: PLR2004
            level_str = "TRACE"
        case 2:
            level_str = "DEBUG"
        case 1:
            level_str = "INFO"
        case 0:
            level_str = "SUCCESS"
        case -1:
            level_str = "WARNING"
        case -2:
            level_str = "ERROR"
        case _:
            level_str = "CRITICAL"
    logger.add(sys.stderr, level=level_str)
    logger.debug(f"Logger configured at level: {level_str}")


# --------------------------------- CLI ------------------------------------- #


def build_parser() -> argparse.ArgumentParser:
    """
    CLI:
      -v / -vv / -vvv : increase verbosity (INFO -> DEBUG -> TRACE)
      -q / -qq / -qqq : decrease verbosity (WARNING -> ERROR -> CRITICAL)
    (Mutually exclusive.)
    """
    p = argparse.ArgumentParser(
        prog="samsift",
        description=(
            "Subset a SAM/BAM/CRAM file by read name, interval overlap, alignment\n"
            "status, tag value, or a Python predicate. Output preserves input order;\n"
            "the paired-interval filter keeps or drops both mates of a template together."
        ),
        formatter_class=argparse.RawTextHelpFormatter,
    )

    # I/O
    p.add_argument("-i", "--in", dest="in_path", required=True, help="Input SAM/BAM/CRAM")
    p.add_argument("-o", "--out", dest="out_path", required=True, help="Output SAM/BAM/CRAM")
    p.add_argument(
        "--ref",
        dest="reference",
        default=None,
        help="Reference FASTA (required/recommended for CRAM read/write)",
    )

    # Filter selection and its parameters
    filter_group = p.add_argument_group("Filter")
    filter_group.add_argument(
        "--filter",
        dest="selection",
        required=True,
        choices=[s.value for s in FilterSelection] + ["includePredicate"],
        help=(
            "includeAligned / excludeAligned: mapped or unmapped records\n"
            "includeReadList / excludeReadList: names in --read-list\n"
            "includePairedIntervals: templates with a mate overlapping --interval-list\n"
            "includeJavascript (alias includePredicate): records accepted by --predicate\n"
            "includeTagValues / excludeTagValues: --tag value in --tag-value"
        ),
    )
    filter_group.add_argument(
        "--read-list",
        dest="read_list",
        default=None,
        help="File with one read name per line",
    )
    filter_group.add_argument(
        "--interval-list",
        dest="interval_list",
        default=None,
        help="Picard interval_list, or BED if the name ends in .bed/.bed.gz",
    )
    filter_group.add_argument(
        "--predicate",
        dest="predicate_source",
        default=None,
        help="Python file: one expression over `record`/`header`, or a module defining accept(record, header)",
    )
    filter_group.add_argument("--tag", default=None, help="Two-character SAM tag")
    filter_group.add_argument(
        "--tag-value",
        dest="tag_values",
        action="append",
        default=None,
        help="Tag value to match (repeatable)",
    )

    p.add_argument(
        "--write-reads-files",
        action="store_true",
        help="Also write <input>.reads and <output>.reads listing read names",
    )

    # Verbosity: -v/-vv/-vvv or -q/-qq/-qqq (mutually exclusive)
    g = p.add_mutually_exclusive_group()
    g.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (use up to -vvv).",
    )
    g.add_argument(
        "-q",
        "--quiet",
        action="count",
        default=0,
        help="Decrease verbosity (use up to -qqq).",
    )

    return p


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose, args.quiet)
    logger.info("Starting filter run.")

    try:
        config = load_config(
            selection=args.selection,
            read_list=args.read_list,
            interval_list=args.interval_list,
            predicate_source=args.predicate_source,
            tag=args.tag,
            tag_values=tuple(args.tag_values) if args.tag_values else None,
        )
        counts = filter_alignment_file(
            args.in_path,
            args.out_path,
            config,
            reference=args.reference,
            write_reads_files=args.write_reads_files,
        )
    except SamSiftError as e:
        logger.error(f"Filter run failed: {e}")
        return 1

    logger.success(
        f"Total: {counts.total} | Kept: {counts.kept} | Filtered: {counts.filtered}",
    )
    logger.info("Filter run complete.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
