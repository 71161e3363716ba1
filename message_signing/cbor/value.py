"""
Generic CBOR value tree.

Unlike ``cbor2.loads`` this keeps everything needed to reproduce the exact input
bytes: definite vs. indefinite containers, map key order, and simple values that
have no Python counterpart. ``to_native``/``from_native`` convert to and from the
objects cbor2 works with.
"""
from enum import IntEnum
from functools import total_ordering
from typing import List, Optional

from cbor2 import CBORTag, CBORSimpleValue, FrozenDict, undefined

from message_signing.cbor.constants import MAX_UINT, MIN_NINT
from message_signing.cbor.error import DuplicateKey, BreakInDefiniteLen
from message_signing.cbor.serializable import CBORSerializable, annotate, try_variants, read_array
from message_signing.cbor.special import CBORSpecial, CBORSpecialKind
from message_signing.cbor.stream import Serializer, Deserializer


class CBORValueKind(IntEnum):
    INT     = 0
    BYTES   = 1
    TEXT    = 2
    ARRAY   = 3
    OBJECT  = 4
    TAGGED  = 5
    SPECIAL = 6


class CBORArray(CBORSerializable):

    def __init__(self, values: List['CBORValue'] = None, definite: bool = True):
        self.values = list(values or [])
        # False -> indefinite encoding, terminated by a break
        self.definite = definite

    def __len__(self):
        return len(self.values)

    def __iter__(self):
        return iter(self.values)

    def get(self, index: int) -> 'CBORValue':
        return self.values[index]

    def add(self, element: 'CBORValue'):
        self.values.append(element)
        return self

    def sort_key(self):
        return self.definite, tuple(value.sort_key() for value in self.values)

    def __eq__(self, other):
        if not isinstance(other, CBORArray):
            return NotImplemented
        return self.sort_key() == other.sort_key()

    def __hash__(self):
        return hash(self.sort_key())

    def __repr__(self):
        return f'CBORArray({self.values!r}, definite={self.definite})'

    def serialize(self, serializer: Serializer):
        serializer.write_array(len(self.values) if self.definite else None)
        for element in self.values:
            element.serialize(serializer)
        if not self.definite:
            serializer.write_break()

    @classmethod
    def deserialize(cls, raw: Deserializer) -> 'CBORArray':
        with annotate('CBORArray'), raw.nested():
            values, definite = read_array(raw, CBORValue.deserialize)
        return cls(values, definite=definite)


class CBORObject(CBORSerializable):
    """Map with unique keys, iterated (and encoded) in insertion order"""

    def __init__(self, values: dict = None, definite: bool = True):
        self.values = dict(values or {})
        self.definite = definite

    def __len__(self):
        return len(self.values)

    def __contains__(self, key):
        return key in self.values

    def insert(self, key: 'CBORValue', value: 'CBORValue') -> Optional['CBORValue']:
        previous = self.values.get(key)
        self.values[key] = value
        return previous

    def get(self, key: 'CBORValue') -> Optional['CBORValue']:
        return self.values.get(key)

    def keys(self) -> CBORArray:
        return CBORArray(list(self.values.keys()))

    def items(self):
        return self.values.items()

    def sort_key(self):
        return self.definite, tuple((k.sort_key(), v.sort_key()) for k, v in self.values.items())

    def __eq__(self, other):
        if not isinstance(other, CBORObject):
            return NotImplemented
        return self.sort_key() == other.sort_key()

    def __hash__(self):
        return hash(self.sort_key())

    def __repr__(self):
        return f'CBORObject({self.values!r}, definite={self.definite})'

    def serialize(self, serializer: Serializer):
        serializer.write_map(len(self.values) if self.definite else None)
        for key, value in self.values.items():
            key.serialize(serializer)
            value.serialize(serializer)
        if not self.definite:
            serializer.write_break()

    @classmethod
    def deserialize(cls, raw: Deserializer) -> 'CBORObject':
        table = {}

        with annotate('CBORObject'), raw.nested():
            length = raw.map()
            while length is None or len(table) < length:
                if raw.is_break():
                    if length is not None:
                        raise BreakInDefiniteLen()
                    raw.special()
                    break
                key = CBORValue.deserialize(raw)
                value = CBORValue.deserialize(raw)
                if key in table:
                    raise DuplicateKey(key)
                table[key] = value

        return cls(table, definite=length is not None)


class TaggedCBOR(CBORSerializable):

    def __init__(self, tag: int, value: 'CBORValue'):
        if tag < 0 or tag > MAX_UINT:
            raise ValueError(f'tag {tag} out of range')
        self.tag = tag
        self.value = value

    def sort_key(self):
        return self.tag, self.value.sort_key()

    def __eq__(self, other):
        if not isinstance(other, TaggedCBOR):
            return NotImplemented
        return self.sort_key() == other.sort_key()

    def __hash__(self):
        return hash(self.sort_key())

    def __repr__(self):
        return f'TaggedCBOR({self.tag}, {self.value!r})'

    def serialize(self, serializer: Serializer):
        serializer.write_tag(self.tag)
        self.value.serialize(serializer)

    @classmethod
    def deserialize(cls, raw: Deserializer) -> 'TaggedCBOR':
        with annotate('TaggedCBOR'), raw.nested():
            with annotate('tag'):
                tag = raw.tag()
            with annotate('value'):
                value = CBORValue.deserialize(raw)
        return cls(tag, value)


@total_ordering
class CBORValue(CBORSerializable):
    """
    Any CBOR data item.

    Equality, ordering and hashing are structural: the kind is compared first,
    then the content, depth-first.
    """

    def __init__(self, kind: CBORValueKind, value):
        self._kind = kind
        self._value = value

    @classmethod
    def new_int(cls, value: int) -> 'CBORValue':
        if value < MIN_NINT or value > MAX_UINT:
            raise ValueError(f'{value} does not fit in a CBOR integer')
        return cls(CBORValueKind.INT, int(value))

    @classmethod
    def new_bytes(cls, value: bytes) -> 'CBORValue':
        return cls(CBORValueKind.BYTES, bytes(value))

    @classmethod
    def new_text(cls, value: str) -> 'CBORValue':
        return cls(CBORValueKind.TEXT, value)

    @classmethod
    def new_array(cls, value: CBORArray) -> 'CBORValue':
        return cls(CBORValueKind.ARRAY, value)

    @classmethod
    def new_object(cls, value: CBORObject) -> 'CBORValue':
        return cls(CBORValueKind.OBJECT, value)

    @classmethod
    def new_tagged(cls, value: TaggedCBOR) -> 'CBORValue':
        return cls(CBORValueKind.TAGGED, value)

    @classmethod
    def new_special(cls, value: CBORSpecial) -> 'CBORValue':
        return cls(CBORValueKind.SPECIAL, value)

    @property
    def kind(self) -> CBORValueKind:
        return self._kind

    def _as(self, kind: CBORValueKind):
        return self._value if self._kind == kind else None

    def as_int(self) -> Optional[int]:
        return self._as(CBORValueKind.INT)

    def as_bytes(self) -> Optional[bytes]:
        return self._as(CBORValueKind.BYTES)

    def as_text(self) -> Optional[str]:
        return self._as(CBORValueKind.TEXT)

    def as_array(self) -> Optional[CBORArray]:
        return self._as(CBORValueKind.ARRAY)

    def as_object(self) -> Optional[CBORObject]:
        return self._as(CBORValueKind.OBJECT)

    def as_tagged(self) -> Optional[TaggedCBOR]:
        return self._as(CBORValueKind.TAGGED)

    def as_special(self) -> Optional[CBORSpecial]:
        return self._as(CBORValueKind.SPECIAL)

    def sort_key(self):
        if self._kind in (CBORValueKind.INT, CBORValueKind.BYTES, CBORValueKind.TEXT):
            return int(self._kind), self._value
        return int(self._kind), self._value.sort_key()

    def __eq__(self, other):
        if not isinstance(other, CBORValue):
            return NotImplemented
        return self.sort_key() == other.sort_key()

    def __lt__(self, other):
        if not isinstance(other, CBORValue):
            return NotImplemented
        return self.sort_key() < other.sort_key()

    def __hash__(self):
        return hash(self.sort_key())

    def __repr__(self):
        return f'CBORValue({self._kind.name}, {self._value!r})'

    def serialize(self, serializer: Serializer):
        if self._kind == CBORValueKind.INT:
            serializer.write_int(self._value)
        elif self._kind == CBORValueKind.BYTES:
            serializer.write_bytes(self._value)
        elif self._kind == CBORValueKind.TEXT:
            serializer.write_text(self._value)
        elif self._kind == CBORValueKind.SPECIAL:
            serializer.write_special(self._value)
        else:
            self._value.serialize(serializer)

    @classmethod
    def deserialize(cls, raw: Deserializer) -> 'CBORValue':
        with annotate('CBORValue'):
            return try_variants(raw, [
                _decode_int,
                _decode_bytes,
                _decode_text,
                _decode_array,
                _decode_object,
                _decode_tagged,
                _decode_special,
            ])

    def to_native(self):
        """Plain Python / cbor2 representation, as ``cbor2.loads`` would return it"""
        kind = self._kind

        if kind in (CBORValueKind.INT, CBORValueKind.BYTES, CBORValueKind.TEXT):
            return self._value
        if kind == CBORValueKind.ARRAY:
            return [value.to_native() for value in self._value]
        if kind == CBORValueKind.OBJECT:
            return {_hashable(k.to_native()): v.to_native() for k, v in self._value.items()}
        if kind == CBORValueKind.TAGGED:
            return CBORTag(self._value.tag, self._value.value.to_native())

        special = self._value
        if special.kind == CBORSpecialKind.BOOL:
            return special.as_bool()
        if special.kind == CBORSpecialKind.FLOAT:
            return special.as_float()
        if special.kind == CBORSpecialKind.UNASSIGNED:
            return CBORSimpleValue(special.as_unassigned())
        if special.kind == CBORSpecialKind.UNDEFINED:
            return undefined
        if special.kind == CBORSpecialKind.NULL:
            return None
        raise ValueError('a break has no native representation')

    @classmethod
    def from_native(cls, obj) -> 'CBORValue':
        if isinstance(obj, CBORValue):
            return obj
        if obj is None:
            return cls.new_special(CBORSpecial.new_null())
        if obj is undefined:
            return cls.new_special(CBORSpecial.new_undefined())
        if isinstance(obj, bool):
            return cls.new_special(CBORSpecial.new_bool(obj))
        if isinstance(obj, int):
            return cls.new_int(obj)
        if isinstance(obj, float):
            return cls.new_special(CBORSpecial.new_float(obj))
        if isinstance(obj, (bytes, bytearray)):
            return cls.new_bytes(obj)
        if isinstance(obj, str):
            return cls.new_text(obj)
        if isinstance(obj, CBORSimpleValue):
            return cls.new_special(CBORSpecial.new_unassigned(obj.value))
        if isinstance(obj, CBORTag):
            return cls.new_tagged(TaggedCBOR(obj.tag, cls.from_native(obj.value)))
        if isinstance(obj, (list, tuple)):
            return cls.new_array(CBORArray([cls.from_native(item) for item in obj]))
        if isinstance(obj, dict):
            return cls.new_object(CBORObject({cls.from_native(k): cls.from_native(v) for k, v in obj.items()}))
        raise TypeError(f'cannot represent {type(obj).__name__} as a CBOR value')


def _hashable(native):
    if isinstance(native, list):
        return tuple(_hashable(item) for item in native)
    if isinstance(native, dict):
        return FrozenDict((_hashable(k), _hashable(v)) for k, v in native.items())
    if isinstance(native, CBORTag):
        return CBORTag(native.tag, _hashable(native.value))
    return native


def _decode_int(raw: Deserializer) -> CBORValue:
    return CBORValue.new_int(raw.integer())


def _decode_bytes(raw: Deserializer) -> CBORValue:
    return CBORValue.new_bytes(raw.bytes())


def _decode_text(raw: Deserializer) -> CBORValue:
    return CBORValue.new_text(raw.text())


def _decode_array(raw: Deserializer) -> CBORValue:
    return CBORValue.new_array(CBORArray.deserialize(raw))


def _decode_object(raw: Deserializer) -> CBORValue:
    return CBORValue.new_object(CBORObject.deserialize(raw))


def _decode_tagged(raw: Deserializer) -> CBORValue:
    return CBORValue.new_tagged(TaggedCBOR.deserialize(raw))


def _decode_special(raw: Deserializer) -> CBORValue:
    return CBORValue.new_special(raw.special())
