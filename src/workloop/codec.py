'''Tagged textual encoding of values that cross into execution contexts.

An encoded value is the text ``[tag,payload]``. The tag names the kind of value
and the payload is its literal text: JSON for data, and a JSON string holding
the task ID for callables (see ``workloop.registry``). Numbers are written
with an empty tag slot, e.g. ``[,42]``; ``decode`` accepts that form as well as
an explicit ``NUMBER_TYPE`` tag.
'''

import json
import logging
import math
from collections import namedtuple

from . import registry as _registry
from .errors import UnsupportedType, DecodeError

log = logging.getLogger(__name__)

OBJECT_TYPE = 0x6F
NUMBER_TYPE = 0x6E
STRING_TYPE = 0x73
BOOLEAN_TYPE = 0x62
FUNCTION_TYPE = 0x66

_type_tags = {
    'object': OBJECT_TYPE,
    'string': STRING_TYPE,
    'boolean': BOOLEAN_TYPE,
    'function': FUNCTION_TYPE,
    # no 'number' entry: numbers travel with an empty tag slot
}

_expected_types = {
    OBJECT_TYPE: (dict, list, type(None)),
    NUMBER_TYPE: (int, float),
    STRING_TYPE: (str,),
    BOOLEAN_TYPE: (bool,),
    FUNCTION_TYPE: (str,),
}

Serialized = namedtuple('Serialized', ['type', 'buffer'])


def _check_literal(value, root):
    '''Raise UnsupportedType unless ``value`` survives a JSON round trip unchanged.'''
    if value is None or isinstance(value, (bool, int, str)):
        return
    elif isinstance(value, float):
        if not math.isfinite(value):
            raise UnsupportedType(root, 'non-finite float {!r} cannot be encoded'.format(value))
    elif isinstance(value, list):
        for item in value:
            _check_literal(item, root)
    elif isinstance(value, dict):
        for (key, item) in value.items():
            if not isinstance(key, str):
                raise UnsupportedType(root, 'object keys must be strings, not {!r}'.format(type(key).__name__))
            _check_literal(item, root)
    else:
        raise UnsupportedType(root, 'unsupported input type {!r} inside {!r}'.format(type(value).__name__, root))


def _dumps(value):
    return json.dumps(value, separators=(',', ':'), allow_nan=False)


def serialize(value, registry=None):
    '''Classify ``value`` and return a ``Serialized(type, buffer)`` pair holding its literal text.
    Raises ``UnsupportedType`` for anything that cannot be reconstructed faithfully.'''
    registry = registry or _registry.default_registry

    if value is None:
        return Serialized('object', 'null')
    elif isinstance(value, bool):
        return Serialized('boolean', _dumps(value))
    elif isinstance(value, (int, float)):
        _check_literal(value, value)
        return Serialized('number', _dumps(value))
    elif isinstance(value, str):
        return Serialized('string', _dumps(value))
    elif isinstance(value, (list, dict)):
        _check_literal(value, value)
        return Serialized('object', _dumps(value))
    elif callable(value):
        return Serialized('function', _dumps(registry.identify(value)))
    else:
        raise UnsupportedType(value)


def encode(value, registry=None):
    '''Serialize ``value`` and wrap it as ``[tag,payload]`` text.'''
    serialized = serialize(value, registry)
    tag = _type_tags.get(serialized.type)
    return '[{},{}]'.format('' if tag is None else tag, serialized.buffer)


def decode(text, registry=None):
    '''Rebuild the value held in encoded ``text``. Callables are resolved through ``registry``.'''
    if not (isinstance(text, str) and text.startswith('[') and text.endswith(']')):
        raise DecodeError(text)

    (tag, sep, payload) = text[1:-1].partition(',')
    if not sep:
        raise DecodeError(text, 'missing payload in {!r}'.format(text))

    try:
        tag = int(tag) if tag.strip() else NUMBER_TYPE
    except ValueError:
        raise DecodeError(text, 'bad type tag {!r}'.format(tag))

    try:
        expected = _expected_types[tag]
    except KeyError:
        raise DecodeError(text, 'unknown type tag {:#x}'.format(tag))

    try:
        value = json.loads(payload)
    except ValueError as e:
        raise DecodeError(text, 'invalid payload in {!r}: {!s}'.format(text, e)) from e

    if not isinstance(value, expected) or (tag == NUMBER_TYPE and isinstance(value, bool)):
        raise DecodeError(text, 'payload {!r} does not match type tag {:#x}'.format(value, tag))

    if tag == FUNCTION_TYPE:
        return (registry or _registry.default_registry).resolve(value)
    return value
