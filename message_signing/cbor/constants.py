from enum import IntEnum


class CBORType(IntEnum):
    UNSIGNED_INTEGER = 0
    NEGATIVE_INTEGER = 1
    BYTES            = 2
    TEXT             = 3
    ARRAY            = 4
    MAP              = 5
    TAG              = 6
    SPECIAL          = 7


class AdditionalInfo:
    UINT8       = 24
    UINT16      = 25
    UINT32      = 26
    UINT64      = 27
    INDEFINITE  = 31


class Simple:
    FALSE     = 20
    TRUE      = 21
    NULL      = 22
    UNDEFINED = 23
    ONE_BYTE  = 24  # simple value in following byte
    FLOAT16   = 25
    FLOAT32   = 26
    FLOAT64   = 27
    BREAK     = 31


BREAK_BYTE = 0xff

MAX_UINT = 2 ** 64 - 1
MIN_NINT = -(2 ** 64)
