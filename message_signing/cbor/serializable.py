import logging
from abc import ABCMeta, abstractmethod
from contextlib import contextmanager
from typing import Callable, List, Optional, Sequence

from message_signing.cbor.constants import CBORType
from message_signing.cbor.error import (DeserializeError, CBORFailure, NoVariantMatched,
                                        DefiniteLenMismatch, EndingBreakMissing, BreakInDefiniteLen, ExpectedNull)
from message_signing.cbor.stream import Serializer, Deserializer, DEFAULT_MAX_DEPTH

logger = logging.getLogger(__name__)


@contextmanager
def annotate(location: str):
    """Prefix ``location`` to the trail of any decode error raised inside the block"""
    try:
        yield
    except DeserializeError as e:
        e.annotate(location)
        raise


def try_variants(raw: Deserializer, candidates: Sequence[Callable[[Deserializer], object]]):
    """
    Speculative union decode.

    Each candidate is tried from the same cursor position, in order; the cursor is
    rewound after every failure. The first success wins. When every candidate
    fails, NoVariantMatched is raised carrying the individual failures.
    """
    position = raw.tell()
    causes = []

    for decode in candidates:
        try:
            return decode(raw)
        except DeserializeError as e:
            if e.fatal:
                raise
            logger.debug("union candidate %s failed at offset %d: %s",
                         getattr(decode, '__qualname__', decode), position, e)
            causes.append(e)
            raw.seek(position)

    raise NoVariantMatched(causes)


def check_len(length: Optional[int], expected: int):
    if length is not None and length != expected:
        raise DefiniteLenMismatch(length, expected)


def read_end(raw: Deserializer, length: Optional[int]):
    """Consume the closing break of an indefinite length array or map"""
    if length is None:
        if not raw.is_break():
            raise EndingBreakMissing()
        raw.special()


def read_array(raw: Deserializer, decode_element: Callable[[Deserializer], object]):
    """Read a homogeneous array, returning ``(items, definite)``"""
    length = raw.array()
    items = []

    while length is None or len(items) < length:
        if raw.is_break():
            if length is not None:
                raise BreakInDefiniteLen()
            raw.special()
            break
        items.append(decode_element(raw))

    return items, length is not None


def write_nullable_bytes(serializer: Serializer, value: Optional[bytes]):
    if value is None:
        serializer.write_null()
    else:
        serializer.write_bytes(value)


def read_nullable_bytes(raw: Deserializer) -> Optional[bytes]:
    if raw.cbor_type() != CBORType.SPECIAL:
        return raw.bytes()
    if not raw.special().is_null():
        raise ExpectedNull()
    return None


class CBORSerializable(metaclass=ABCMeta):

    @abstractmethod
    def serialize(self, serializer: Serializer):
        pass

    @classmethod
    @abstractmethod
    def deserialize(cls, raw: Deserializer):
        pass

    def to_bytes(self) -> bytes:
        serializer = Serializer()
        self.serialize(serializer)
        return serializer.to_bytes()

    @classmethod
    def from_bytes(cls, data: bytes, max_depth: int = DEFAULT_MAX_DEPTH):
        raw = Deserializer(data, max_depth=max_depth)
        decoded = cls.deserialize(raw)

        if raw.remaining():
            raise CBORFailure(f'{raw.remaining()} trailing bytes after {cls.__name__}').annotate(cls.__name__)

        return decoded

    def __eq__(self, other):
        if type(self) is not type(other):
            return NotImplemented
        return self.to_bytes() == other.to_bytes()

    __hash__ = None

    def __repr__(self):
        return f'{type(self).__name__}({self.to_bytes().hex()})'


class CBORList(CBORSerializable):
    """
    Ordered collection of one serializable type, always encoded as a definite
    length array.
    """

    element_type = None

    def __init__(self, items: List = None):
        self._items = list(items or [])

    def __len__(self):
        return len(self._items)

    def __iter__(self):
        return iter(self._items)

    def __getitem__(self, index):
        return self._items[index]

    def get(self, index: int):
        return self._items[index]

    def add(self, element):
        self._items.append(element)
        return self

    def serialize(self, serializer: Serializer):
        serializer.write_array(len(self._items))
        for element in self._items:
            element.serialize(serializer)

    @classmethod
    def deserialize(cls, raw: Deserializer):
        with annotate(cls.__name__):
            items, _ = read_array(raw, cls.element_type.deserialize)
        return cls(items)
