# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""Tests for NearestRecordSelector."""

from datetime import datetime, timedelta, timezone

import pytest

from eventide import NearestRecordSelector, OutOfRangeQuery, Record


@pytest.fixture
def records():
    return [Record("r1", 0.0, "one"), Record("r2", 10.0, "two"), Record("r3", 20.0, "three")]


@pytest.fixture
def selector(records):
    # deliberately unsorted input
    return NearestRecordSelector([records[2], records[0], records[1]])


class TestGetClosest:

    def test_before_first(self, selector, records):
        assert selector.get_closest(-5.0) is records[0]

    def test_after_last(self, selector, records):
        assert selector.get_closest(25.0) is records[2]

    def test_halfway_tie_favors_later(self, selector, records):
        assert selector.get_closest(5.0) is records[1]
        assert selector.get_closest(15.0) is records[2]

    def test_strictly_closer_previous_wins(self, selector, records):
        assert selector.get_closest(4.0) is records[0]
        assert selector.get_closest(6.0) is records[1]

    def test_exact_epoch(self, selector, records):
        assert selector.get_closest(10.0) is records[1]

    def test_empty_selector(self):
        with pytest.raises(OutOfRangeQuery):
            NearestRecordSelector().get_closest(1.0)

    def test_datetime_epochs(self):
        t0 = datetime(2026, 1, 1, tzinfo=timezone.utc)
        early = Record("a", t0)
        late = Record("b", t0 + timedelta(hours=1))
        selector = NearestRecordSelector([early, late])
        assert selector.get_closest(t0 + timedelta(minutes=29)) is early
        assert selector.get_closest(t0 + timedelta(minutes=30)) is late


class TestCache:

    def test_queries_inside_bracket_reuse_cache(self, selector):
        selector.get_closest(11.0)
        assert selector.search_count == 1
        for query in (12.0, 13.5, 15.0, 19.9):
            selector.get_closest(query)
        assert selector.search_count == 1

    def test_leaving_bracket_searches_again(self, selector, records):
        selector.get_closest(11.0)
        assert selector.get_closest(21.0) is records[2]
        assert selector.search_count == 2
        assert selector.get_closest(3.0) is records[0]
        assert selector.search_count == 3

    def test_insert_invalidates_cache(self, selector):
        selector.get_closest(11.0)
        selector.add(Record("r4", 12.0))
        assert selector.get_closest(11.5).key == "r4"
        assert selector.search_count == 2


class TestUniqueness:

    def test_identity_is_key_and_epoch(self, selector):
        assert selector.add(Record("r2", 10.0, "duplicate")) is False
        assert selector.add(Record("other", 10.0)) is True
        assert selector.add(Record("r2", 11.0)) is True
        assert len(selector) == 5

    def test_iteration_is_sorted(self, selector):
        assert [r.epoch for r in selector] == [0.0, 10.0, 20.0]
        assert selector.first.key == "r1"
        assert selector.last.key == "r3"

    def test_first_last_on_empty(self):
        with pytest.raises(LookupError):
            NearestRecordSelector().first
        with pytest.raises(LookupError):
            NearestRecordSelector().last


class TestDerived:

    def test_memoized_per_record(self, records):
        built = []

        def factory(record):
            built.append(record.key)
            return f"product of {record.key}"

        selector = NearestRecordSelector(records, factory=factory)
        assert selector.derived(1.0) == "product of r1"
        assert selector.derived(2.0) == "product of r1"
        assert selector.derived(9.0) == "product of r2"
        assert selector.derived(30.0) == "product of r3"
        assert selector.derived(11.0) == "product of r2"
        assert built == ["r1", "r2", "r3"]

    def test_no_factory(self, selector):
        with pytest.raises(LookupError):
            selector.derived(1.0)
