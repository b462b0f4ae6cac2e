"""Tests for Collection construction, the Python protocol and read access."""

from __future__ import annotations

import random

import pytest
from hypothesis import given
from keyed_collections import Collection, InvalidArgumentError

from strategies import int_lists, mappings


class Report:
    def __init__(self, rows: list) -> None:
        self.rows = rows

    def json_serialize(self) -> list:
        return self.rows


class TestConstruction:
    """Tests for the constructor and factories."""

    def test_from_list_and_mapping(self) -> None:
        """Lists are keyed by position, mappings keep their keys."""
        assert Collection([1, 2]).all() == {0: 1, 1: 2}
        assert Collection({'a': 1}).all() == {'a': 1}

    def test_none_and_scalars(self) -> None:
        """None is empty, a scalar becomes a single item."""
        assert Collection().all() == {}
        assert Collection(None).all() == {}
        assert Collection('text').all() == {0: 'text'}
        assert Collection(5).all() == {0: 5}

    def test_iterables_and_serializable_objects(self) -> None:
        """Generators and json_serialize() objects are materialized."""
        assert Collection(x * 2 for x in range(3)).all() == {0: 0, 1: 2, 2: 4}
        assert Collection(Report(['a'])).all() == {0: 'a'}

    def test_constructor_copies(self) -> None:
        """A Collection never aliases its input."""
        source = {'a': 1}
        collection = Collection(source)
        source['b'] = 2
        assert collection.all() == {'a': 1}
        copy = Collection(collection)
        copy.put('c', 3)
        assert 'c' not in collection.all()

    def test_make_empty_wrap_unwrap(self) -> None:
        """Factory helpers."""
        assert Collection.make([1]).all() == {0: 1}
        assert Collection.empty().is_empty()
        assert Collection.wrap('a').all() == {0: 'a'}
        assert Collection.wrap(None).all() == {}
        assert Collection.wrap({'a': 1}).all() == {'a': 1}
        assert Collection.unwrap(Collection([1])) == {0: 1}
        assert Collection.unwrap('x') == 'x'

    def test_times(self) -> None:
        """times() counts from 1 and is empty below 1."""
        assert Collection.times(3).all() == {0: 1, 1: 2, 2: 3}
        assert Collection.times(3, lambda n: n * 10).all() == {0: 10, 1: 20, 2: 30}
        assert Collection.times(0).all() == {}
        assert Collection.times(-2, lambda n: n).all() == {}

    def test_range_is_inclusive(self) -> None:
        """range() includes the stop value and can count down."""
        assert list(Collection.range(1, 4)) == [1, 2, 3, 4]
        assert list(Collection.range(0, 10, 5)) == [0, 5, 10]
        assert list(Collection.range(3, 1)) == [3, 2, 1]
        with pytest.raises(InvalidArgumentError):
            Collection.range(1, 2, 0)

    def test_from_json(self) -> None:
        """from_json() decodes objects and arrays."""
        assert Collection.from_json('{"a": [1, 2]}').all() == {'a': [1, 2]}
        assert Collection.from_json(b'[1, 2]').all() == {0: 1, 1: 2}

    def test_from_json_malformed(self) -> None:
        """Malformed JSON raises InvalidArgumentError."""
        with pytest.raises(InvalidArgumentError, match='Malformed JSON'):
            Collection.from_json('{"a": ')


class TestProtocol:
    """Tests for the Python protocol surface."""

    def test_iteration_yields_values(self) -> None:
        """Iteration yields values, items() yields pairs."""
        collection = Collection({'a': 1, 'b': 2})
        assert list(collection) == [1, 2]
        assert list(collection.items()) == [('a', 1), ('b', 2)]
        assert len(collection) == 2
        assert collection.count() == 2

    def test_item_access(self) -> None:
        """Subscription reads, writes and deletes keys."""
        collection = Collection({'a': 1})
        assert collection['a'] == 1
        collection['b'] = 2
        del collection['a']
        assert collection.all() == {'b': 2}
        with pytest.raises(KeyError):
            collection['missing']

    def test_none_key_appends(self) -> None:
        """Assigning to None appends with the next integer key."""
        collection = Collection({3: 'a', 'x': 'b', -5: 'c'})
        collection[None] = 'd'
        assert collection.all() == {3: 'a', 'x': 'b', -5: 'c', 4: 'd'}
        words = Collection({'x': 1})
        words[None] = 2
        assert words.all() == {'x': 1, 0: 2}

    def test_membership_is_loose(self) -> None:
        """`in` tests values with loose equality."""
        collection = Collection([1, '2', None])
        assert '1' in collection
        assert 2 in collection
        assert 'missing' not in collection

    def test_equality(self) -> None:
        """Collections compare with Collections, mappings and lists."""
        assert Collection([1, 2]) == Collection([1, 2])
        assert Collection([1, 2]) == [1, 2]
        assert Collection({'a': 1}) == {'a': 1}
        assert Collection([1]) != Collection([2])
        assert Collection([1]) != 'x'

    def test_unhashable_and_repr(self) -> None:
        """Collections are mutable, so they are not hashable."""
        with pytest.raises(TypeError):
            hash(Collection())
        assert repr(Collection({'a': 1})) == "Collection({'a': 1})"

    def test_keys_values_collect(self) -> None:
        """keys() and values() return reindexed Collections."""
        collection = Collection({'a': 1, 'b': 2})
        assert collection.keys().all() == {0: 'a', 1: 'b'}
        assert collection.values().all() == {0: 1, 1: 2}
        assert collection.collect() == collection
        assert collection.collect() is not collection

    def test_all_is_a_copy(self) -> None:
        """Mutating all() does not touch the Collection."""
        collection = Collection([1])
        collection.all()[5] = 'x'
        assert collection.all() == {0: 1}

    @given(mappings)
    def test_dict_round_trip(self, source: dict) -> None:
        """A mapping survives construction unchanged and in order."""
        assert list(Collection(source).items()) == list(source.items())


class TestAccess:
    """Tests for keyed and positional reads."""

    def test_get(self) -> None:
        """get() returns a lazy default on a miss."""
        collection = Collection({'a': 1, '': 'blank'})
        assert collection.get('a') == 1
        assert collection.get('z', 'dflt') == 'dflt'
        assert collection.get('z', lambda: 'lazy') == 'lazy'
        assert collection.get(None) == 'blank'

    def test_get_or_put(self) -> None:
        """get_or_put() stores the default on a miss only."""
        collection = Collection({'a': 1})
        assert collection.get_or_put('a', 5) == 1
        assert collection.get_or_put('b', lambda: 2) == 2
        assert collection.all() == {'a': 1, 'b': 2}

    def test_get_or_put_none_key(self) -> None:
        """A None key is stored under the empty-string key, like get() reads it."""
        collection = Collection({'a': 1})
        assert collection.get_or_put(None, 'x') == 'x'
        assert collection.get_or_put(None, 'y') == 'x'
        assert collection.all() == {'a': 1, '': 'x'}
        assert collection.get(None) == 'x'

    def test_has_and_has_any(self) -> None:
        """has() needs all keys, has_any() one."""
        collection = Collection({'a': 1, 'b': None})
        assert collection.has('a', 'b')
        assert collection.has(['a', 'b'])
        assert not collection.has('a', 'c')
        assert collection.has_any('c', 'b')
        assert not collection.has_any(['c', 'd'])
        assert not Collection().has_any('a')

    def test_has_none_key(self) -> None:
        """has(None) and has_any(None) look for the empty-string key."""
        assert not Collection({'a': 1}).has(None)
        assert not Collection({'a': 1}).has_any(None)
        assert Collection({'': 1}).has(None)
        assert Collection({'': 1}).has_any(None)

    def test_first_last(self) -> None:
        """first()/last() with and without callbacks."""
        collection = Collection([1, 2, 3, 4])
        assert collection.first() == 1
        assert collection.last() == 4
        assert collection.first(lambda v: v > 2) == 3
        assert collection.last(lambda v: v < 3) == 2
        assert Collection().first(default='none') == 'none'
        assert collection.first(lambda v: v > 10, lambda: 'lazy') == 'lazy'

    def test_first_last_string_zero_is_falsy(self) -> None:
        """A callback returning '0' rejects the item, as filter() does."""
        rows = Collection([{'f': '0'}, {'f': '1'}, {'f': '0'}])
        assert rows.first(lambda r: r['f']) == {'f': '1'}
        assert rows.last(lambda r: r['f']) == {'f': '1'}
        assert rows.first(lambda r: r['f']) == rows.filter(lambda r: r['f']).first()
        assert Collection([{'f': ''}]).first(lambda r: r['f'], 'none') == 'none'

    def test_first_where(self) -> None:
        """first_where() uses where-clause semantics."""
        users = Collection([{'name': 'a', 'age': 10}, {'name': 'b', 'age': 20}])
        assert users.first_where('age', '>', 15) == {'name': 'b', 'age': 20}
        assert users.first_where('name', 'z') is None

    def test_value(self) -> None:
        """value() reads a path from the first item that has it."""
        rows = Collection([{'a': 1}, {'b': 2}, {'b': 3}])
        assert rows.value('b') == 2
        assert rows.value('c', 'none') == 'none'

    def test_search(self) -> None:
        """search() returns the first matching key or False."""
        collection = Collection(['a', '1', 1])
        assert collection.search(1) == 1
        assert collection.search(1, strict=True) == 2
        assert collection.search('z') is False
        assert collection.search(lambda v: v == 'a') == 0
        assert Collection({'x': 5}).search(lambda v: v > 9) is False

    def test_before_after(self) -> None:
        """before()/after() return neighbours of the first match."""
        collection = Collection([1, 2, 3])
        assert collection.before(2) == 1
        assert collection.after(2) == 3
        assert collection.before(1) is None
        assert collection.after(3) is None
        assert collection.after('missing') is None
        assert collection.after('2', strict=True) is None

    def test_only_except_select(self) -> None:
        """Key projections."""
        collection = Collection({'a': 1, 'b': 2, 'c': 3})
        assert collection.only('a', 'c').all() == {'a': 1, 'c': 3}
        assert collection.only(['b']).all() == {'b': 2}
        assert collection.only(None).all() == collection.all()
        assert collection.except_('a').all() == {'b': 2, 'c': 3}
        rows = Collection([{'id': 1, 'x': 'y'}])
        assert rows.select('id').all() == {0: {'id': 1}}

    def test_nth(self) -> None:
        """nth() keeps every step-th item from an offset."""
        letters = Collection(['a', 'b', 'c', 'd', 'e', 'f'])
        assert list(letters.nth(4)) == ['a', 'e']
        assert list(letters.nth(4, 1)) == ['b', 'f']
        assert letters.nth(2).all() == {0: 'a', 1: 'c', 2: 'e'}
        with pytest.raises(InvalidArgumentError):
            letters.nth(0)

    def test_random(self) -> None:
        """random() returns one value or a Collection of several."""
        collection = Collection([1, 2, 3])
        assert collection.random(rng=random.Random(1)) in (1, 2, 3)
        assert len(collection.random(2, rng=random.Random(1))) == 2
        assert len(collection.random(lambda c: c.count() - 1)) == 2
        assert collection.random(0).is_empty()
        with pytest.raises(InvalidArgumentError):
            collection.random(4)

    def test_count_by(self) -> None:
        """count_by() counts canonical values."""
        assert Collection([1, 1, 2]).count_by().all() == {1: 2, 2: 1}
        emails = Collection(['a@x.com', 'b@y.com', 'c@x.com'])
        assert emails.count_by(lambda e: e.split('@')[1]).all() == {'x.com': 2, 'y.com': 1}
        assert Collection([True, False, True]).count_by().all() == {1: 2, 0: 1}

    def test_emptiness(self) -> None:
        """is_empty/is_not_empty/contains_one_item."""
        assert Collection().is_empty()
        assert Collection([0]).is_not_empty()
        assert Collection([5]).contains_one_item()
        assert not Collection([5, 6]).contains_one_item()
        assert Collection([5, 6]).contains_one_item(lambda v: v > 5)

    @given(int_lists)
    def test_keys_and_values_zip_back(self, values: list[int]) -> None:
        """keys() and values() line up with items()."""
        collection = Collection(values)
        assert list(zip(collection.keys(), collection.values(), strict=True)) == list(collection.items())
