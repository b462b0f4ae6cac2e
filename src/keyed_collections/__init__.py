"""keyed-collections: ordered keyed collections for loosely typed payloads.

A fluent Collection over an insertion-ordered mapping, array helpers and
nested path lookup, with the loose comparison rules JSON payloads need.

Flat imports (preferred):
    from keyed_collections import Collection, data_get, data_set
    from keyed_collections import InvalidArgumentError, TypeMismatchError

Submodule imports (for organization):
    from keyed_collections import arr
    from keyed_collections.sorting import SortFlag
    from keyed_collections.payload import decode_payload, log_payload
"""

# Array helpers
from keyed_collections import arr

# Configuration and logging
from keyed_collections._config import CollectionConfig, environment, get_config, init
from keyed_collections._logging import configure_logging, get_logger

# Collection
from keyed_collections.collection import Collection

# Errors
from keyed_collections.errors import (
    InvalidArgument,
    InvalidArgumentError,
    TypeMismatch,
    TypeMismatchError,
)

# Coercions
from keyed_collections.keys import canonical_key, loose_equals, strict_equals, string_form, three_way

# Operators
from keyed_collections.operators import Operator

# Paths
from keyed_collections.paths import data_forget, data_get, data_has, data_set, value

# Payload boundary
from keyed_collections.payload import decode_payload, encode_payload, log_payload, sanitize

# Sorting
from keyed_collections.sorting import SortFlag

# Typeclass
from keyed_collections.typeclass import typeclass

__all__ = [
    # Collection
    'Collection',
    'CollectionConfig',
    # Errors
    'InvalidArgument',
    'InvalidArgumentError',
    'Operator',
    'SortFlag',
    'TypeMismatch',
    'TypeMismatchError',
    # Helpers
    'arr',
    'canonical_key',
    'configure_logging',
    'data_forget',
    'data_get',
    'data_has',
    'data_set',
    'decode_payload',
    'encode_payload',
    'environment',
    'get_config',
    'get_logger',
    'init',
    'log_payload',
    'loose_equals',
    'sanitize',
    'strict_equals',
    'string_form',
    'three_way',
    'typeclass',
    'value',
]

__version__ = '0.1.0'
