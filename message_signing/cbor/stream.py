"""
Primitive CBOR stream reader and writer.

Everything above this module reads and writes whole CBOR items (integers, byte
and text strings, container headers, tags and simple values) through these two
classes and never touches the initial-byte / length encoding itself.
"""
import struct
from contextlib import contextmanager
from io import BytesIO
from typing import Optional

from cbor2 import CBOREncoder, CBOREncodeValueError, undefined

from message_signing.cbor.constants import CBORType, AdditionalInfo, Simple, BREAK_BYTE, MAX_UINT, MIN_NINT
from message_signing.cbor.error import CBORFailure, MaxDepthExceeded
from message_signing.cbor.special import CBORSpecial, CBORSpecialKind

DEFAULT_MAX_DEPTH = 128


class Serializer:

    def __init__(self):
        self._fp = BytesIO()
        self._encoder = CBOREncoder(self._fp)

    def _write_head(self, major: CBORType, argument: Optional[int]):
        """Initial byte plus argument, ``None`` meaning indefinite length"""
        if argument is None:
            self._encoder.write(bytes([(major << 5) | AdditionalInfo.INDEFINITE]))
        elif argument < 0 or argument > MAX_UINT:
            raise CBOREncodeValueError(f'argument {argument} does not fit in 64 bits')
        else:
            self._encoder.encode_length(int(major), argument)
        return self

    def write_unsigned_integer(self, value: int):
        if value < 0 or value > MAX_UINT:
            raise CBOREncodeValueError(f'{value} is not an unsigned 64 bit integer')
        self._encoder.encode(value)
        return self

    def write_negative_integer(self, value: int):
        if value >= 0 or value < MIN_NINT:
            raise CBOREncodeValueError(f'{value} is not a negative 64 bit integer')
        self._encoder.encode(value)
        return self

    def write_int(self, value: int):
        if value >= 0:
            return self.write_unsigned_integer(value)
        return self.write_negative_integer(value)

    def write_bytes(self, value: bytes):
        self._encoder.encode(bytes(value))
        return self

    def write_text(self, value: str):
        self._encoder.encode(value)
        return self

    def write_array(self, length: Optional[int]):
        return self._write_head(CBORType.ARRAY, length)

    def write_map(self, length: Optional[int]):
        return self._write_head(CBORType.MAP, length)

    def write_tag(self, tag: int):
        return self._write_head(CBORType.TAG, tag)

    def write_break(self):
        self._encoder.write(bytes([BREAK_BYTE]))
        return self

    def write_null(self):
        self._encoder.encode(None)
        return self

    def write_special(self, special: CBORSpecial):
        kind = special.kind
        if kind == CBORSpecialKind.BOOL:
            self._encoder.encode(special.as_bool())
        elif kind == CBORSpecialKind.FLOAT:
            # always a double, bit for bit
            self._encoder.write(bytes([0xe0 | Simple.FLOAT64]) + struct.pack('>d', special.as_float()))
        elif kind == CBORSpecialKind.UNASSIGNED:
            self._write_head(CBORType.SPECIAL, special.as_unassigned())
        elif kind == CBORSpecialKind.BREAK:
            self.write_break()
        elif kind == CBORSpecialKind.UNDEFINED:
            self._encoder.encode(undefined)
        else:
            self.write_null()
        return self

    def to_bytes(self) -> bytes:
        return self._fp.getvalue()


class Deserializer:
    """
    Cursor over an immutable buffer.

    ``tell``/``seek`` expose the cursor so union decoding can checkpoint and
    rewind. ``nested`` bounds recursion to ``max_depth`` levels.
    """

    def __init__(self, data: bytes, max_depth: int = DEFAULT_MAX_DEPTH):
        self._data = bytes(data)
        self._position = 0
        self._depth = 0
        self.max_depth = max_depth

    def tell(self) -> int:
        return self._position

    def seek(self, position: int):
        if position < 0 or position > len(self._data):
            raise ValueError(f'position {position} is outside the buffer')
        self._position = position

    def remaining(self) -> int:
        return len(self._data) - self._position

    @property
    def depth(self) -> int:
        return self._depth

    @contextmanager
    def nested(self):
        if self._depth >= self.max_depth:
            raise MaxDepthExceeded(self.max_depth)
        self._depth += 1
        try:
            yield
        finally:
            self._depth -= 1

    def _read(self, amount: int) -> bytes:
        if amount == 0:
            return b''
        if amount > self.remaining():
            raise CBORFailure(f'premature end of stream (expected to read {amount} bytes, '
                              f'{self.remaining()} left)')
        start = self._position
        self._position += amount
        return self._data[start:self._position]

    def _peek_byte(self) -> int:
        if not self.remaining():
            raise CBORFailure('premature end of stream (expected to read 1 bytes, 0 left)')
        return self._data[self._position]

    def _argument(self, info: int, allow_indefinite: bool) -> Optional[int]:
        if info < 24:
            return info
        if info == AdditionalInfo.UINT8:
            return self._read(1)[0]
        if info == AdditionalInfo.UINT16:
            return int.from_bytes(self._read(2), 'big')
        if info == AdditionalInfo.UINT32:
            return int.from_bytes(self._read(4), 'big')
        if info == AdditionalInfo.UINT64:
            return int.from_bytes(self._read(8), 'big')
        if info == AdditionalInfo.INDEFINITE and allow_indefinite:
            return None
        raise CBORFailure(f'invalid additional information {info}')

    def _head(self, expected: CBORType, allow_indefinite: bool = False) -> Optional[int]:
        initial = self._read(1)[0]
        found = CBORType(initial >> 5)
        if found != expected:
            raise CBORFailure(f'expected {expected.name}, found {found.name}')
        return self._argument(initial & 0x1f, allow_indefinite)

    def cbor_type(self) -> CBORType:
        return CBORType(self._peek_byte() >> 5)

    def is_break(self) -> bool:
        return self._peek_byte() == BREAK_BYTE

    def unsigned_integer(self) -> int:
        return self._head(CBORType.UNSIGNED_INTEGER)

    def negative_integer(self) -> int:
        return -1 - self._head(CBORType.NEGATIVE_INTEGER)

    def integer(self) -> int:
        found = self.cbor_type()
        if found == CBORType.UNSIGNED_INTEGER:
            return self.unsigned_integer()
        if found == CBORType.NEGATIVE_INTEGER:
            return self.negative_integer()
        raise CBORFailure(f'expected an integer, found {found.name}')

    def _string(self, major: CBORType) -> bytes:
        length = self._head(major, allow_indefinite=True)
        if length is not None:
            return self._read(length)
        chunks = []
        while not self.is_break():
            chunk_length = self._head(major)
            chunks.append(self._read(chunk_length))
        self._read(1)
        return b''.join(chunks)

    def bytes(self) -> bytes:
        return self._string(CBORType.BYTES)

    def text(self) -> str:
        raw = self._string(CBORType.TEXT)
        try:
            return raw.decode('utf-8')
        except UnicodeDecodeError as e:
            raise CBORFailure(f'invalid UTF-8 in text string: {e}') from e

    def array(self) -> Optional[int]:
        """Element count, or ``None`` for an indefinite length array"""
        return self._head(CBORType.ARRAY, allow_indefinite=True)

    def map(self) -> Optional[int]:
        """Pair count, or ``None`` for an indefinite length map"""
        return self._head(CBORType.MAP, allow_indefinite=True)

    def tag(self) -> int:
        return self._head(CBORType.TAG)

    def special(self) -> CBORSpecial:
        initial = self._read(1)[0]
        found = CBORType(initial >> 5)
        if found != CBORType.SPECIAL:
            raise CBORFailure(f'expected SPECIAL, found {found.name}')
        info = initial & 0x1f

        if info == Simple.FALSE:
            return CBORSpecial.new_bool(False)
        if info == Simple.TRUE:
            return CBORSpecial.new_bool(True)
        if info == Simple.NULL:
            return CBORSpecial.new_null()
        if info == Simple.UNDEFINED:
            return CBORSpecial.new_undefined()
        if info == Simple.BREAK:
            return CBORSpecial.new_break()
        if info == Simple.FLOAT16:
            return CBORSpecial.new_float(struct.unpack('>e', self._read(2))[0])
        if info == Simple.FLOAT32:
            return CBORSpecial.new_float(struct.unpack('>f', self._read(4))[0])
        if info == Simple.FLOAT64:
            return CBORSpecial.new_float(struct.unpack('>d', self._read(8))[0])
        if info == Simple.ONE_BYTE:
            value = self._read(1)[0]
            if value < 32:
                raise CBORFailure(f'simple value {value} must be encoded in the initial byte')
            return CBORSpecial.new_unassigned(value)
        if info < 20:
            return CBORSpecial.new_unassigned(info)
        raise CBORFailure(f'invalid additional information {info}')
