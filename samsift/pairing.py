"""
Mate-pair consistency.

Templates move through three states, keyed by read name:

    UNSEEN -> FIRST_MATE_PENDING -> RESOLVED

Only records the active filter `defers` (primary, paired records of a
mate-requiring filter) ever take part; everything else goes straight to
RESOLVED. When the first mate of a template arrives, the filter is asked
for its mate's verdict from the mate fields the record carries
(`ReadFilter.decide_mate`). If that is known the template is RESOLVED at
once, the record is released, and only the template verdict is remembered
for the second mate. Otherwise the record is FIRST_MATE_PENDING until its
mate arrives (combined verdict applied to both) or until end of stream
(orphan policy: the record is judged on its own verdict alone).

Verdicts are released through an ordered queue so output is always a stable
subsequence of input: a resolved record waits behind any earlier record that
is still pending.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING

from loguru import logger

if TYPE_CHECKING:
    from samsift.filters import ReadFilter
    from samsift.records import AlignmentRecord


class FilterDecision(Enum):
    KEEP = auto()
    DROP = auto()
    DEFER = auto()

    @staticmethod
    def from_bool(keep: bool) -> FilterDecision:  # noqa: FBT001
        return FilterDecision.KEEP if keep else FilterDecision.DROP


@dataclass
class _Slot:
    record: AlignmentRecord
    decision: FilterDecision
    own: bool


Released = list[tuple["AlignmentRecord", bool]]


class PairingCoordinator:
    """Wraps a ReadFilter and releases (record, keep) verdicts in input order."""

    def __init__(self, read_filter: ReadFilter) -> None:
        self.read_filter = read_filter
        self._pending: dict[str, _Slot] = {}
        # template verdicts already released with the first mate, by read name
        self._resolved: dict[str, bool] = {}
        self._queue: deque[_Slot] = deque()
        self.orphans = 0

    @property
    def pending(self) -> int:
        """Number of templates currently waiting for their second mate."""
        return len(self._pending)

    @property
    def held(self) -> int:
        """Number of records held back, pending or queued behind a pending record."""
        return len(self._queue)

    def submit(self, record: AlignmentRecord) -> Released:
        """Decide `record` and return every verdict that is now final, in input order."""
        own = self.read_filter.decide(record)
        name = record.read_name

        if not self.read_filter.defers(record):
            slot = _Slot(record, FilterDecision.from_bool(own), own)
        elif name in self._pending:
            partner = self._pending.pop(name)
            keep = self.read_filter.combine(partner.own, own)
            partner.decision = FilterDecision.from_bool(keep)
            slot = _Slot(record, partner.decision, own)
            logger.trace(f"Resolved template '{name}': mates={partner.own},{own} -> keep={keep}")
        elif name in self._resolved:
            keep = self._resolved.pop(name)
            slot = _Slot(record, FilterDecision.from_bool(keep), own)
            logger.trace(f"Second mate of '{name}' follows its template: keep={keep}")
        else:
            mate = self.read_filter.decide_mate(record)
            if mate is None:
                slot = _Slot(record, FilterDecision.DEFER, own)
                self._pending[name] = slot
                logger.trace(f"Holding '{name}' until its mate arrives")
            else:
                keep = self.read_filter.combine(own, mate)
                self._resolved[name] = keep
                slot = _Slot(record, FilterDecision.from_bool(keep), own)
                logger.trace(
                    f"Resolved template '{name}' from mate fields: "
                    f"mates={own},{mate} -> keep={keep}",
                )

        if not self._queue and slot.decision is not FilterDecision.DEFER:
            return [(record, slot.decision is FilterDecision.KEEP)]

        self._queue.append(slot)
        return self._drain()

    def finish(self) -> Released:
        """Resolve every template still missing a mate and flush the queue."""
        for name, slot in self._pending.items():
            slot.decision = FilterDecision.from_bool(slot.own)
            logger.debug(f"Mate of '{name}' never arrived; kept={slot.own}")
        for name, keep in self._resolved.items():
            logger.debug(f"Mate of '{name}' never arrived; verdict from mate fields kept={keep}")

        unmatched = len(self._pending) + len(self._resolved)
        self.orphans += unmatched
        if unmatched:
            logger.info(
                f"{unmatched} read(s) reached end of input without a mate; "
                f"{len(self._pending)} were judged on their own",
            )
        self._pending.clear()
        self._resolved.clear()

        released = self._drain()
        assert not self._queue, f"{len(self._queue)} records left unresolved after finish()"
        return released

    def _drain(self) -> Released:
        released: Released = []
        while self._queue and self._queue[0].decision is not FilterDecision.DEFER:
            slot = self._queue.popleft()
            released.append((slot.record, slot.decision is FilterDecision.KEEP))
        return released
