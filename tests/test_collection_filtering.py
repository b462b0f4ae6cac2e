"""Tests for Collection filtering, where-clauses and containment."""

from __future__ import annotations

from enum import Enum

import pytest
from hypothesis import given
from keyed_collections import Collection, InvalidArgumentError

from strategies import int_lists, records


class Status(Enum):
    OPEN = 'open'
    PAID = 'paid'


@pytest.fixture
def orders() -> Collection:
    return Collection([
        {'id': 1, 'status': 'paid', 'total': 30, 'note': None},
        {'id': 2, 'status': 'open', 'total': '12', 'note': 'rush'},
        {'id': 3, 'status': 'paid', 'total': 8, 'note': ''},
    ])


class TestFilter:
    """Tests for filter() and reject()."""

    def test_filter_without_callback_drops_falsy(self) -> None:
        """Falsy values, "0" included, are dropped and keys kept."""
        assert Collection([1, 0, '0', '', None, [], 'a']).filter().all() == {0: 1, 6: 'a'}

    def test_filter_with_value_and_key(self) -> None:
        """The callback receives the value and the key."""
        collection = Collection({'a': 1, 'b': 2, 'c': 3})
        assert collection.filter(lambda v: v > 1).all() == {'b': 2, 'c': 3}
        assert collection.filter(lambda v, k: k != 'b').all() == {'a': 1, 'c': 3}

    def test_reject(self) -> None:
        """reject() is the inverse filter; a plain value rejects loose matches."""
        collection = Collection([1, 2, '2', 3])
        assert collection.reject(lambda v: v == 1).all() == {1: 2, 2: '2', 3: 3}
        assert collection.reject(2).all() == {0: 1, 3: 3}

    @given(int_lists)
    def test_filter_and_reject_partition(self, values: list[int]) -> None:
        """filter() and reject() of one predicate split the keys."""
        collection = Collection(values)
        kept = collection.filter(lambda v: v % 3 == 0)
        dropped = collection.reject(lambda v: v % 3 == 0)
        assert sorted([*kept.keys(), *dropped.keys()]) == list(range(len(values)))


class TestWhere:
    """Tests for where() and its variants."""

    def test_where_one_argument(self, orders: Collection) -> None:
        """A single key keeps truthy values."""
        assert list(orders.where('note').pluck('id')) == [2]

    def test_where_two_arguments_loose(self, orders: Collection) -> None:
        """Two arguments compare loosely."""
        assert list(orders.where('total', 12).pluck('id')) == [2]
        assert list(orders.where('status', 'paid').pluck('id')) == [1, 3]

    def test_where_operators(self, orders: Collection) -> None:
        """Operators compare numeric strings numerically."""
        assert list(orders.where('total', '>', 10).pluck('id')) == [1, 2]
        assert list(orders.where('total', '<=', '12').pluck('id')) == [2, 3]
        assert list(orders.where('status', '!=', 'paid').pluck('id')) == [2]
        assert list(orders.where('total', '===', 12).pluck('id')) == []
        assert list(orders.where('total', '!==', 30).pluck('id')) == [2, 3]

    def test_where_preserves_keys(self, orders: Collection) -> None:
        """Matching items keep their keys."""
        assert list(orders.where('id', 3).keys()) == [2]

    def test_where_unknown_operator(self, orders: Collection) -> None:
        """Unknown operators raise InvalidArgumentError."""
        with pytest.raises(InvalidArgumentError, match='Unknown comparison operator'):
            orders.where('total', 'between', 10)

    def test_where_enum(self) -> None:
        """Enum values compare by their backing value."""
        rows = Collection([{'s': Status.OPEN}, {'s': 'paid'}])
        assert rows.where('s', 'open').count() == 1
        assert rows.where('s', Status.PAID).count() == 1

    def test_where_strict_and_null(self, orders: Collection) -> None:
        """where_strict() compares types too; where_null() finds None."""
        assert list(orders.where_strict('total', '12').pluck('id')) == [2]
        assert list(orders.where_null('note').pluck('id')) == [1]
        assert list(orders.where_not_null('note').pluck('id')) == [2, 3]
        assert Collection([1, None, 2]).where_not_null().all() == {0: 1, 2: 2}

    def test_where_in(self, orders: Collection) -> None:
        """where_in() checks membership, loosely unless strict."""
        assert list(orders.where_in('total', [12, 8]).pluck('id')) == [2, 3]
        assert list(orders.where_in('total', [12, 8], strict=True).pluck('id')) == [3]
        assert list(orders.where_in_strict('total', ['12']).pluck('id')) == [2]
        assert list(orders.where_not_in('status', ['paid']).pluck('id')) == [2]
        assert list(orders.where_not_in_strict('total', [30]).pluck('id')) == [2, 3]

    def test_where_between(self, orders: Collection) -> None:
        """where_between() is inclusive; where_not_between() its complement."""
        assert list(orders.where_between('total', [8, 12]).pluck('id')) == [2, 3]
        assert list(orders.where_not_between('total', [8, 12]).pluck('id')) == [1]

    def test_where_instance_of(self) -> None:
        """where_instance_of() filters by class."""
        collection = Collection([1, 'a', 2.5, Status.OPEN])
        assert collection.where_instance_of(str).all() == {1: 'a'}
        assert collection.where_instance_of([int, float]).all() == {0: 1, 2: 2.5}


class TestContains:
    """Tests for contains() and friends."""

    def test_contains_value(self) -> None:
        """A plain value is searched loosely."""
        collection = Collection([1, '2', 3])
        assert collection.contains(2)
        assert not collection.contains(4)
        assert collection.doesnt_contain(4)

    def test_contains_callback_and_where(self, orders: Collection) -> None:
        """Callbacks and where-clauses are supported."""
        assert orders.contains(lambda row: row['total'] == 8)
        assert orders.contains('status', 'open')
        assert orders.some('total', '>', 20)
        assert not orders.contains('total', '>', 100)
        assert orders.doesnt_contain('status', 'void')

    def test_contains_strict(self, orders: Collection) -> None:
        """contains_strict() compares types."""
        assert not Collection([1, 2]).contains_strict('1')
        assert Collection([1, 2]).contains_strict(1)
        assert orders.contains_strict('total', '12')
        assert not orders.contains_strict('total', 12)
        assert Collection([1, 2]).contains_strict(lambda v: v > 1)
        assert Collection([1]).doesnt_contain_strict('1')

    def test_every(self, orders: Collection) -> None:
        """every() with callbacks, paths and where-clauses."""
        assert Collection([2, 4]).every(lambda v: v % 2 == 0)
        assert not orders.every('note')
        assert orders.every('total', '>', 1)
        assert Collection().every(lambda v: False)


class TestUnique:
    """Tests for unique()."""

    def test_loose_unique(self) -> None:
        """The first of loosely equal values wins, keys preserved."""
        assert Collection([1, '1', 2, 2.0, 'a']).unique().all() == {0: 1, 2: 2, 4: 'a'}

    def test_strict_unique(self) -> None:
        """Strict uniqueness tells types apart."""
        assert Collection([1, '1', 1, True]).unique_strict().all() == {0: 1, 1: '1', 3: True}

    def test_unique_by_key(self, orders: Collection) -> None:
        """A key or callback selects the compared value."""
        assert list(orders.unique('status').pluck('id')) == [1, 2]
        assert list(orders.unique(lambda row: row['id'] % 2).pluck('id')) == [1, 2]

    def test_unique_unhashable_values(self) -> None:
        """Lists and dicts are compared by value."""
        assert Collection([[1], [1], {'a': 1}, {'a': 1}]).unique_strict().all() == {0: [1], 2: {'a': 1}}

    @given(records)
    def test_unique_ids_are_distinct(self, rows: list[dict]) -> None:
        """unique() by a key leaves pairwise distinct values."""
        ids = list(Collection(rows).unique('id').pluck('id'))
        assert len(ids) == len(set(ids))
        assert set(ids) == {row['id'] for row in rows}


class TestSkipTake:
    """Tests for skip_until/skip_while/take_until/take_while."""

    def test_skip(self) -> None:
        """Skipping preserves the keys of the remaining items."""
        collection = Collection([1, 2, 3, 4])
        assert collection.skip_until(3).all() == {2: 3, 3: 4}
        assert collection.skip_until(lambda v: v > 1).all() == {1: 2, 2: 3, 3: 4}
        assert collection.skip_while(lambda v: v < 3).all() == {2: 3, 3: 4}
        assert collection.skip_until('3').all() == {}

    def test_take(self) -> None:
        """Taking stops at the first failing item."""
        collection = Collection([1, 2, 3, 1])
        assert collection.take_until(3).all() == {0: 1, 1: 2}
        assert collection.take_while(lambda v: v < 3).all() == {0: 1, 1: 2}
        assert collection.take_while(1).all() == {0: 1}
