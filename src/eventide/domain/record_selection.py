# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
Nearest-record selection over time-stamped reference data.

Records are ordered by epoch; identity is (key, epoch), so distinct
records sharing an instant are all kept. Within one epoch, records keep
their insertion order. Epochs may be floats or datetimes, as long as all
records and queries use the same kind.

Selection rule for a query strictly inside the covered span: with prev
the greatest record at or before the query and next the smallest record
at or after it, prev wins only if it is strictly closer; exact ties go
to next.
"""
import logging
from bisect import bisect_left, bisect_right
from dataclasses import dataclass
from typing import Any, Callable, Hashable, Iterable

from eventide.domain.errors import OutOfRangeQuery

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Record:
    """Time-stamped reference entry."""
    key: Hashable
    epoch: Any
    payload: Any = None

    @property
    def identity(self) -> tuple[Hashable, Any]:
        return (self.key, self.epoch)


class NearestRecordSelector:
    """Sorted record set with a cached (prev, next) bracket.

    The cache is the only mutable state and is not thread-safe; each
    propagation run should own its selector.

    Args:
        records: Initial records; duplicates of an identity are ignored.
        factory: Optional builder of a derived object per record (for
            instance an extrapolator), memoized by record identity.
    """

    def __init__(
        self,
        records: Iterable[Record] = (),
        factory: Callable[[Record], Any] | None = None,
    ) -> None:
        self._records: list[Record] = []
        self._epochs: list[Any] = []
        self._identities: set[tuple[Hashable, Any]] = set()
        self._factory = factory
        self._derived: dict[tuple[Hashable, Any], Any] = {}
        self._prev: Record | None = None
        self._next: Record | None = None
        self.search_count = 0
        for record in records:
            self.add(record)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self):
        return iter(self._records)

    @property
    def first(self) -> Record:
        if not self._records:
            raise LookupError("selector holds no records")
        return self._records[0]

    @property
    def last(self) -> Record:
        if not self._records:
            raise LookupError("selector holds no records")
        return self._records[-1]

    def add(self, record: Record) -> bool:
        """Insert a record; returns False if its identity is already present."""
        if record.identity in self._identities:
            return False
        index = bisect_right(self._epochs, record.epoch)
        self._records.insert(index, record)
        self._epochs.insert(index, record.epoch)
        self._identities.add(record.identity)
        self._prev = None
        self._next = None
        return True

    def get_closest(self, query: Any) -> Record:
        """Best record for query; clamps to the extreme records outside the span.

        Raises:
            OutOfRangeQuery: Only when the selector is empty.
        """
        if not self._records:
            raise OutOfRangeQuery(query, float("nan"), float("nan"))

        prev, nxt = self._prev, self._next
        if prev is not None and nxt is not None and prev.epoch <= query <= nxt.epoch:
            return self._pick(query, prev, nxt)

        self._prev = None
        self._next = None
        self.search_count += 1

        after = bisect_right(self._epochs, query)
        if after == 0:
            return self._records[0]
        at_or_after = bisect_left(self._epochs, query)
        if at_or_after == len(self._records):
            return self._records[-1]

        self._prev = self._records[after - 1]
        self._next = self._records[at_or_after]
        logger.debug("record bracket rebuilt around %r", query)
        return self._pick(query, self._prev, self._next)

    def derived(self, query: Any) -> Any:
        """Factory product for the closest record, built once per record."""
        if self._factory is None:
            raise LookupError("selector has no factory for derived objects")
        record = self.get_closest(query)
        identity = record.identity
        if identity not in self._derived:
            self._derived[identity] = self._factory(record)
        return self._derived[identity]

    @staticmethod
    def _pick(query: Any, prev: Record, nxt: Record) -> Record:
        if (nxt.epoch - query) > (query - prev.epoch):
            return prev
        return nxt
