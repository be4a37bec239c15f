"""Streaming, pair-aware filtering of SAM/BAM/CRAM alignment records."""

from samsift.config import FilterConfig, FilterSelection, load_config
from samsift.errors import (
    AlignmentIOError,
    ConfigurationError,
    LoadError,
    RuntimeEvaluationError,
    SamSiftError,
)
from samsift.filters import (
    AlignedFilter,
    IntervalFilter,
    Mode,
    PredicateFilter,
    ReadFilter,
    ReadNameFilter,
    TagValueFilter,
)
from samsift.intervals import Interval, IntervalSet
from samsift.pairing import FilterDecision, PairingCoordinator
from samsift.pipeline import (
    FilterCounts,
    FilterPipeline,
    build_filter,
    filter_alignment_file,
    filter_records,
)
from samsift.predicate import PythonPredicate, RecordPredicate
from samsift.records import AlignmentRecord, Cigar, CigarOp

__version__ = "0.1.0"

__all__ = [
    "AlignedFilter",
    "AlignmentIOError",
    "AlignmentRecord",
    "Cigar",
    "CigarOp",
    "ConfigurationError",
    "FilterConfig",
    "FilterCounts",
    "FilterDecision",
    "FilterPipeline",
    "FilterSelection",
    "Interval",
    "IntervalFilter",
    "IntervalSet",
    "LoadError",
    "Mode",
    "PairingCoordinator",
    "PredicateFilter",
    "PythonPredicate",
    "ReadFilter",
    "ReadNameFilter",
    "RecordPredicate",
    "RuntimeEvaluationError",
    "SamSiftError",
    "TagValueFilter",
    "build_filter",
    "filter_alignment_file",
    "filter_records",
    "load_config",
]
