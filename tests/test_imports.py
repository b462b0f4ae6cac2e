"""Tests for verifying import styles work correctly."""


class TestFlatImports:
    """Verify flat imports from keyed_collections work."""

    def test_collection(self) -> None:
        """Test importing Collection from root."""
        from keyed_collections import Collection

        assert Collection([1, 2]).sum() == 3

    def test_helpers(self) -> None:
        """Test importing path and comparison helpers from root."""
        from keyed_collections import (
            canonical_key,
            data_forget,
            data_get,
            data_has,
            data_set,
            loose_equals,
            strict_equals,
            string_form,
            three_way,
            value,
        )

        target = {'a': {'b': 1}}
        assert data_get(target, 'a.b') == 1
        assert data_has(target, 'a.b')
        assert callable(data_set)
        assert callable(data_forget)
        assert value(lambda: 5) == 5
        assert canonical_key(True) == 1
        assert string_form(None) == ''
        assert loose_equals('1', 1)
        assert not strict_equals('1', 1)
        assert three_way(1, 2) == -1

    def test_errors(self) -> None:
        """Test importing error types from root."""
        from keyed_collections import InvalidArgument, InvalidArgumentError, TypeMismatch, TypeMismatchError

        assert issubclass(InvalidArgumentError, ValueError)
        assert issubclass(TypeMismatchError, TypeError)
        assert InvalidArgument is not None
        assert TypeMismatch is not None

    def test_runtime(self) -> None:
        """Test importing configuration and logging from root."""
        from keyed_collections import CollectionConfig, configure_logging, environment, get_config, get_logger, init

        assert callable(init)
        assert callable(configure_logging)
        assert callable(get_logger)
        assert callable(environment)
        assert isinstance(get_config(), CollectionConfig)

    def test_payload(self) -> None:
        """Test importing the payload boundary from root."""
        from keyed_collections import decode_payload, encode_payload, log_payload, sanitize

        assert callable(decode_payload)
        assert callable(encode_payload)
        assert callable(log_payload)
        assert callable(sanitize)

    def test_misc(self) -> None:
        """Test importing sorting, operators and typeclass from root."""
        from keyed_collections import Operator, SortFlag, arr, typeclass

        assert callable(typeclass)
        assert SortFlag.REGULAR is not None
        assert Operator is not None
        assert callable(arr.get)


class TestSubmoduleImports:
    """Verify submodule imports work."""

    def test_submodules(self) -> None:
        from keyed_collections.collection import Collection
        from keyed_collections.keys import is_numeric
        from keyed_collections.paths import MISSING
        from keyed_collections.payload import MASK
        from keyed_collections.serialize import project

        assert Collection is not None
        assert is_numeric('1.5')
        assert MISSING is not None
        assert MASK == '***'
        assert project({0: 'a'}) == ['a']

    def test_version(self) -> None:
        import keyed_collections

        assert keyed_collections.__version__ == '0.1.0'
