from cbor2 import CBORDecodeError


class DeserializeError(CBORDecodeError):
    """
    Base class of every decode failure.

    ``location`` is a dotted trail of type and field names, outermost first,
    built up with :meth:`annotate` while the error unwinds.
    """

    reason = "deserialization failed"
    # fatal failures abort a speculative union instead of trying the next candidate
    fatal = False

    def __init__(self, reason: str = None, location: str = None):
        if reason is not None:
            self.reason = reason
        self.location = location
        super().__init__(self.reason)

    def annotate(self, location: str) -> 'DeserializeError':
        if self.location is None:
            self.location = location
        else:
            self.location = f'{location}.{self.location}'
        return self

    def __str__(self):
        if self.location is None:
            return f'Deserialization failed because: {self.reason}'
        return f'Deserialization failed in {self.location} because: {self.reason}'


class CBORFailure(DeserializeError):
    """Malformed or truncated primitive in the underlying stream"""


class DuplicateKey(DeserializeError):
    fatal = True

    def __init__(self, key):
        self.key = key
        super().__init__(f'duplicate key: {key!r}')


class MandatoryFieldMissing(DeserializeError):

    def __init__(self, key):
        self.key = key
        super().__init__(f'mandatory field missing: {key!r}')


class UnexpectedKeyType(DeserializeError):

    def __init__(self, found):
        self.found = found
        super().__init__(f'unexpected key type: {found!r}')


class TagMismatch(DeserializeError):

    def __init__(self, found: int, expected: int):
        self.found = found
        self.expected = expected
        super().__init__(f'tag mismatch, found {found}, expected {expected}')


class FixedValueMismatch(DeserializeError):

    def __init__(self, found, expected):
        self.found = found
        self.expected = expected
        super().__init__(f'value mismatch, found {found!r}, expected {expected!r}')


class ExpectedNull(DeserializeError):
    reason = "expected null, found other special value"


class EndingBreakMissing(DeserializeError):
    reason = "missing ending break of indefinite length structure"


class BreakInDefiniteLen(DeserializeError):
    reason = "encountered a break in a definite length structure"


class DefiniteLenMismatch(DeserializeError):

    def __init__(self, found: int, expected: int = None):
        self.found = found
        self.expected = expected
        if expected is None:
            super().__init__(f'definite length mismatch, found {found}')
        else:
            super().__init__(f'definite length mismatch, found {found}, expected {expected}')


class NoVariantMatched(DeserializeError):
    """
    Every candidate of a speculative union failed.

    The individual failures are kept on ``causes`` in the order the candidates
    were tried.
    """

    def __init__(self, causes=None):
        self.causes = list(causes or [])
        super().__init__('no variant matched')


class MaxDepthExceeded(DeserializeError):
    fatal = True

    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(f'nesting deeper than {limit} levels')
