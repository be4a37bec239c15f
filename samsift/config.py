from __future__ import annotations

import re
from enum import Enum
from pathlib import Path
from typing import Any

from loguru import logger
from pydantic import Field, ValidationError, ValidationInfo, field_validator
from pydantic.dataclasses import dataclass

from samsift.errors import ConfigurationError


class FilterSelection(str, Enum):
    """The closed set of filters. Values are the names used on the command line."""

    INCLUDE_ALIGNED = "includeAligned"
    EXCLUDE_ALIGNED = "excludeAligned"
    INCLUDE_READ_LIST = "includeReadList"
    EXCLUDE_READ_LIST = "excludeReadList"
    INCLUDE_PREDICATE = "includeJavascript"
    INCLUDE_PAIRED_INTERVALS = "includePairedIntervals"
    INCLUDE_TAG_VALUES = "includeTagValues"
    EXCLUDE_TAG_VALUES = "excludeTagValues"

    @classmethod
    def _missing_(cls, value: object) -> FilterSelection | None:
        if value == "includePredicate":
            return cls.INCLUDE_PREDICATE
        return None


SAM_TAG_PATTERN = re.compile(r"[A-Za-z][A-Za-z0-9]")

PARAMETERS = ("read_list", "interval_list", "predicate_source", "tag", "tag_values")

# Each parameter is required by the selections listed here and illegal for all others
REQUIRED_PARAMETERS: dict[FilterSelection, frozenset[str]] = {
    FilterSelection.INCLUDE_ALIGNED: frozenset(),
    FilterSelection.EXCLUDE_ALIGNED: frozenset(),
    FilterSelection.INCLUDE_READ_LIST: frozenset({"read_list"}),
    FilterSelection.EXCLUDE_READ_LIST: frozenset({"read_list"}),
    FilterSelection.INCLUDE_PREDICATE: frozenset({"predicate_source"}),
    FilterSelection.INCLUDE_PAIRED_INTERVALS: frozenset({"interval_list"}),
    FilterSelection.INCLUDE_TAG_VALUES: frozenset({"tag", "tag_values"}),
    FilterSelection.EXCLUDE_TAG_VALUES: frozenset({"tag", "tag_values"}),
}


@dataclass(frozen=True)
class FilterConfig:
    """
    A filter selection plus exactly the parameters that selection takes.

    Construction fails with a pydantic ValidationError when a required
    parameter is missing or a parameter belonging to another selection is
    supplied; use `load_config` to get a ConfigurationError instead.
    """

    selection: FilterSelection
    read_list: Path | None = Field(default=None, validate_default=True)
    interval_list: Path | None = Field(default=None, validate_default=True)
    predicate_source: Path | None = Field(default=None, validate_default=True)
    tag: str | None = Field(default=None, validate_default=True)
    tag_values: tuple[str, ...] | None = Field(default=None, validate_default=True)

    @field_validator("selection", mode="before")
    @classmethod
    def parse_selection(cls, v: Any) -> Any:
        if isinstance(v, str) and not isinstance(v, FilterSelection):
            return FilterSelection(v)
        return v

    @field_validator(*PARAMETERS)
    @classmethod
    def legal_for_selection(cls, v: Any, info: ValidationInfo) -> Any:
        if not info.data or "selection" not in info.data:
            # selection itself failed validation and has been reported
            return v
        selection: FilterSelection = info.data["selection"]
        required = REQUIRED_PARAMETERS[selection]
        if info.field_name in required and v is None:
            msg = f"filter {selection.value} requires {info.field_name}"
            raise ValueError(msg)
        if info.field_name not in required and v is not None:
            msg = f"{info.field_name} cannot be used with filter {selection.value}"
            raise ValueError(msg)
        return v

    @field_validator("tag")
    @classmethod
    def tag_is_sam_tag(cls, v: str | None) -> str | None:
        if v is not None and not SAM_TAG_PATTERN.fullmatch(v):
            msg = f"tag must be two characters, a letter then a letter or digit, got {v!r}"
            raise ValueError(msg)
        return v

    @field_validator("tag_values")
    @classmethod
    def tag_values_not_empty(cls, v: tuple[str, ...] | None) -> tuple[str, ...] | None:
        if v is not None and not v:
            msg = "tag_values cannot be empty"
            raise ValueError(msg)
        return v

    @property
    def parameters(self) -> dict[str, Any]:
        """The parameters that are set, by name."""
        return {name: getattr(self, name) for name in PARAMETERS if getattr(self, name) is not None}


def load_config(**options: Any) -> FilterConfig:
    """Build a FilterConfig, reporting every problem as one ConfigurationError."""
    try:
        config = FilterConfig(**options)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc']) or 'config'}: {err['msg']}"
            for err in e.errors()
        )
        msg = f"Invalid filter configuration: {problems}"
        logger.error(msg)
        raise ConfigurationError(msg) from e
    except TypeError as e:
        msg = f"Invalid filter configuration: {e}"
        logger.error(msg)
        raise ConfigurationError(msg) from e

    logger.debug(f"FilterConfig: {config}")
    return config
