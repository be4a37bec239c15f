"""
User-supplied per-record predicates.

The engine only depends on the RecordPredicate protocol; PythonPredicate is
the implementation the command line uses. A predicate file is either a single
expression evaluated with ``record`` and ``header`` in scope::

    record.start % 2 == 1

or a module defining ``accept(record, header)``::

    def accept(record, header):
        return record.five_prime_soft_clip > 0
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

from loguru import logger

from samsift.errors import LoadError, RuntimeEvaluationError

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping
    from types import CodeType

    from samsift.records import AlignmentRecord

ENTRY_POINT = "accept"


class RecordPredicate(Protocol):
    """Anything that can turn a record (plus header context) into a keep/drop verdict."""

    def evaluate(
        self,
        record: AlignmentRecord,
        header: Mapping[str, Any] | None = None,
    ) -> bool: ...


class PythonPredicate:
    """A predicate compiled from Python source."""

    def __init__(
        self,
        func: Callable[[AlignmentRecord, Mapping[str, Any] | None], Any],
        source_name: str = "<predicate>",
    ) -> None:
        self._func = func
        self.source_name = source_name

    @classmethod
    def from_source(cls, source: str, source_name: str = "<predicate>") -> PythonPredicate:
        """Compile `source`, preferring the single-expression form."""
        try:
            expression: CodeType | None = compile(source, source_name, "eval")
        except SyntaxError:
            expression = None

        if expression is not None:
            logger.debug(f"Predicate '{source_name}' loaded as an expression")
            code = expression

            def _evaluate_expression(record, header):
                namespace = {"__builtins__": __builtins__, "record": record, "header": header}
                return eval(code, namespace)  # noqa: S307

            return cls(_evaluate_expression, source_name)

        try:
            module_code = compile(source, source_name, "exec")
        except SyntaxError as e:
            msg = f"Predicate '{source_name}' does not compile: {e}"
            logger.error(msg)
            raise LoadError(msg) from e

        namespace: dict[str, Any] = {"__name__": "samsift_predicate", "__file__": source_name}
        try:
            exec(module_code, namespace)  # noqa: S102
        except Exception as e:
            msg = f"Predicate '{source_name}' failed while loading: {type(e).__name__}: {e}"
            logger.error(msg)
            raise LoadError(msg) from e

        func = namespace.get(ENTRY_POINT)
        if not callable(func):
            msg = (
                f"Predicate '{source_name}' is neither a single expression nor a module "
                f"defining a callable '{ENTRY_POINT}(record, header)'"
            )
            logger.error(msg)
            raise LoadError(msg)

        logger.debug(f"Predicate '{source_name}' loaded as module with '{ENTRY_POINT}'")
        return cls(func, source_name)

    @classmethod
    def load(cls, path: str | Path) -> PythonPredicate:
        path = Path(path)
        try:
            source = path.read_text()
        except (OSError, UnicodeDecodeError) as e:
            msg = f"Unable to read predicate source '{path}': {e}"
            logger.error(msg)
            raise LoadError(msg) from e
        if not source.strip():
            msg = f"Predicate source '{path}' is empty"
            logger.error(msg)
            raise LoadError(msg)
        return cls.from_source(source, str(path))

    def evaluate(
        self,
        record: AlignmentRecord,
        header: Mapping[str, Any] | None = None,
    ) -> bool:
        try:
            return bool(self._func(record, header))
        except Exception as e:
            raise RuntimeEvaluationError(record.read_name, e) from e
