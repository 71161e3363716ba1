import struct
from enum import IntEnum


class CBORSpecialKind(IntEnum):
    BOOL       = 0
    FLOAT      = 1
    UNASSIGNED = 2
    BREAK      = 3
    UNDEFINED  = 4
    NULL       = 5


def float_bits(value: float) -> bytes:
    # floats compare and hash by bit pattern so NaN and -0.0 work as map keys
    return struct.pack('>d', value)


class CBORSpecial:
    """
    Major type 7 item: booleans, floats, unassigned simple values, break,
    undefined and null.
    """

    __slots__ = ('_kind', '_value')

    def __init__(self, kind: CBORSpecialKind, value=None):
        self._kind = kind
        self._value = value

    @classmethod
    def new_bool(cls, value: bool) -> 'CBORSpecial':
        return cls(CBORSpecialKind.BOOL, bool(value))

    @classmethod
    def new_float(cls, value: float) -> 'CBORSpecial':
        return cls(CBORSpecialKind.FLOAT, float(value))

    @classmethod
    def new_unassigned(cls, value: int) -> 'CBORSpecial':
        if not (0 <= value <= 19 or 32 <= value <= 255):
            raise ValueError(f'{value} is not an unassigned simple value')
        return cls(CBORSpecialKind.UNASSIGNED, value)

    @classmethod
    def new_break(cls) -> 'CBORSpecial':
        return cls(CBORSpecialKind.BREAK)

    @classmethod
    def new_undefined(cls) -> 'CBORSpecial':
        return cls(CBORSpecialKind.UNDEFINED)

    @classmethod
    def new_null(cls) -> 'CBORSpecial':
        return cls(CBORSpecialKind.NULL)

    @property
    def kind(self) -> CBORSpecialKind:
        return self._kind

    def as_bool(self):
        return self._value if self._kind == CBORSpecialKind.BOOL else None

    def as_float(self):
        return self._value if self._kind == CBORSpecialKind.FLOAT else None

    def as_unassigned(self):
        return self._value if self._kind == CBORSpecialKind.UNASSIGNED else None

    def is_break(self) -> bool:
        return self._kind == CBORSpecialKind.BREAK

    def is_null(self) -> bool:
        return self._kind == CBORSpecialKind.NULL

    def sort_key(self):
        if self._kind == CBORSpecialKind.FLOAT:
            return int(self._kind), float_bits(self._value)
        if self._kind in (CBORSpecialKind.BOOL, CBORSpecialKind.UNASSIGNED):
            return int(self._kind), int(self._value)
        return int(self._kind), 0

    def __eq__(self, other):
        if not isinstance(other, CBORSpecial):
            return NotImplemented
        return self.sort_key() == other.sort_key()

    def __lt__(self, other):
        if not isinstance(other, CBORSpecial):
            return NotImplemented
        return self.sort_key() < other.sort_key()

    def __hash__(self):
        return hash(self.sort_key())

    def __repr__(self):
        if self._value is None:
            return f'CBORSpecial({self._kind.name})'
        return f'CBORSpecial({self._kind.name}, {self._value!r})'
