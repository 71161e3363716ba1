import logging
from enum import IntEnum
from typing import Optional

from message_signing.cbor.constants import CBORType, MAX_UINT, MIN_NINT
from message_signing.cbor.error import (DuplicateKey, UnexpectedKeyType, BreakInDefiniteLen, EndingBreakMissing)
from message_signing.cbor.serializable import CBORSerializable, CBORList, annotate, try_variants, check_len, read_end
from message_signing.cbor.stream import Serializer, Deserializer, DEFAULT_MAX_DEPTH
from message_signing.cbor.value import CBORValue
from message_signing.cose.constants import Header

logger = logging.getLogger(__name__)


class LabelKind(IntEnum):
    INT  = 0
    TEXT = 1


class Label(CBORSerializable):
    """Header or key parameter label, either an integer or a text string"""

    def __init__(self, kind: LabelKind, value):
        self._kind = kind
        self._value = value

    @classmethod
    def new_int(cls, value: int) -> 'Label':
        if value < MIN_NINT or value > MAX_UINT:
            raise ValueError(f'{value} does not fit in a CBOR integer')
        return cls(LabelKind.INT, int(value))

    @classmethod
    def new_text(cls, value: str) -> 'Label':
        return cls(LabelKind.TEXT, value)

    @property
    def kind(self) -> LabelKind:
        return self._kind

    def as_int(self) -> Optional[int]:
        return self._value if self._kind == LabelKind.INT else None

    def as_text(self) -> Optional[str]:
        return self._value if self._kind == LabelKind.TEXT else None

    def sort_key(self):
        return int(self._kind), self._value

    def __eq__(self, other):
        if not isinstance(other, Label):
            return NotImplemented
        return self.sort_key() == other.sort_key()

    def __hash__(self):
        return hash(self.sort_key())

    def __repr__(self):
        return f'Label({self._value!r})'

    def serialize(self, serializer: Serializer):
        if self._kind == LabelKind.INT:
            serializer.write_int(self._value)
        else:
            serializer.write_text(self._value)

    @classmethod
    def deserialize(cls, raw: Deserializer) -> 'Label':
        with annotate('Label'):
            return try_variants(raw, [
                lambda r: cls.new_int(r.integer()),
                lambda r: cls.new_text(r.text()),
            ])


class Labels(CBORList):
    element_type = Label


def write_bstr(serializer: Serializer, value: bytes):
    serializer.write_bytes(value)


def write_serializable(serializer: Serializer, value: CBORSerializable):
    value.serialize(serializer)


def read_bstr(raw: Deserializer) -> bytes:
    return raw.bytes()


def _read_counter_signature(raw: Deserializer):
    from message_signing.cose.cose import COSESignatureOrArrCOSESignature
    return COSESignatureOrArrCOSESignature.deserialize(raw)


def write_label_map(serializer: Serializer, target, fields: dict, other_headers: dict):
    """Write the present fixed fields in label order, then the extension entries"""
    for label in other_headers:
        if label.as_int() in fields:
            raise ValueError(f'label {label.as_int()} is reserved for {fields[label.as_int()][0]}')

    present = [(key, name, write) for key, (name, _, write) in sorted(fields.items())
               if getattr(target, name) is not None]

    serializer.write_map(len(present) + len(other_headers))
    for key, name, write in present:
        serializer.write_unsigned_integer(key)
        write(serializer, getattr(target, name))
    for label, value in other_headers.items():
        label.serialize(serializer)
        value.serialize(serializer)


def read_label_map(raw: Deserializer, target, fields: dict, other_headers: dict):
    """
    Decode a map whose small unsigned keys are reserved for named fields.

    ``fields`` maps a reserved key to ``(attribute, read, write)``. Entries under a
    reserved key are decoded with ``read`` and stored on ``target``; every other
    integer or text key is decoded as a generic value into ``other_headers``.
    """
    length = raw.map()
    read = 0

    while length is None or read < length:
        key_type = raw.cbor_type()

        if key_type == CBORType.UNSIGNED_INTEGER:
            key = raw.unsigned_integer()
            if key in fields:
                name, read_field, _ = fields[key]
                if getattr(target, name) is not None:
                    raise DuplicateKey(key)
                with annotate(name):
                    setattr(target, name, read_field(raw))
            else:
                _read_other(raw, other_headers, Label.new_int(key))
        elif key_type == CBORType.NEGATIVE_INTEGER:
            _read_other(raw, other_headers, Label.new_int(raw.negative_integer()))
        elif key_type == CBORType.TEXT:
            _read_other(raw, other_headers, Label.new_text(raw.text()))
        elif key_type == CBORType.SPECIAL:
            if not raw.special().is_break():
                raise EndingBreakMissing()
            if length is not None:
                raise BreakInDefiniteLen()
            break
        else:
            raise UnexpectedKeyType(key_type.name)

        read += 1


def _read_other(raw: Deserializer, other_headers: dict, label: Label):
    value = CBORValue.deserialize(raw)
    if label in other_headers:
        raise DuplicateKey(label)
    other_headers[label] = value


class HeaderMap(CBORSerializable):
    """
    COSE header map.

    Labels 1 to 7 are kept in named attributes, everything else lives in the
    ordered ``other_headers`` mapping of Label to CBORValue.
    """

    FIELDS = {
        Header.ALG:               ('algorithm_id', Label.deserialize, write_serializable),
        Header.CRIT:              ('criticality', Labels.deserialize, write_serializable),
        Header.CONTENT_TYPE:      ('content_type', Label.deserialize, write_serializable),
        Header.KID:               ('key_id', read_bstr, write_bstr),
        Header.IV:                ('init_vector', read_bstr, write_bstr),
        Header.PARTIAL_IV:        ('partial_init_vector', read_bstr, write_bstr),
        Header.COUNTER_SIGNATURE: ('counter_signature', _read_counter_signature, write_serializable),
    }

    def __init__(self):
        self.algorithm_id = None
        self.criticality = None
        self.content_type = None
        self.key_id = None
        self.init_vector = None
        self.partial_init_vector = None
        self.counter_signature = None
        self.other_headers = {}

    def serialize(self, serializer: Serializer):
        write_label_map(serializer, self, self.FIELDS, self.other_headers)

    @classmethod
    def deserialize(cls, raw: Deserializer) -> 'HeaderMap':
        header_map = cls()

        with annotate('HeaderMap'), raw.nested():
            read_label_map(raw, header_map, cls.FIELDS, header_map.other_headers)

        logger.debug("other_headers = %r", header_map.other_headers)
        return header_map


class EmptyOrSerializedMap(CBORSerializable):
    """
    Protected headers: either empty or the serialized bytes of a HeaderMap.

    The bytes are kept as received; the HeaderMap is only built on demand.
    """

    def __init__(self, header_map: HeaderMap = None):
        self.raw = b'' if header_map is None else header_map.to_bytes()

    @classmethod
    def new_empty(cls) -> 'EmptyOrSerializedMap':
        return cls()

    @classmethod
    def from_raw(cls, data: bytes) -> 'EmptyOrSerializedMap':
        protected = cls()
        protected.raw = bytes(data)
        return protected

    def is_empty(self) -> bool:
        return not self.raw

    def deserialized_headers(self) -> HeaderMap:
        if self.is_empty():
            return HeaderMap()
        return HeaderMap.from_bytes(self.raw)

    def serialize(self, serializer: Serializer):
        serializer.write_bytes(self.raw)

    @classmethod
    def from_serialized(cls, data: bytes, max_depth: int = DEFAULT_MAX_DEPTH) -> 'EmptyOrSerializedMap':
        """Wrap already serialized bytes, checking that they hold a HeaderMap"""
        with annotate('EmptyOrSerializedMap'):
            if data:
                HeaderMap.from_bytes(data, max_depth=max_depth)
        return cls.from_raw(data)

    @classmethod
    def deserialize(cls, raw: Deserializer) -> 'EmptyOrSerializedMap':
        with annotate('EmptyOrSerializedMap'):
            data = raw.bytes()
        return cls.from_serialized(data, max_depth=raw.max_depth - raw.depth)


class Headers(CBORSerializable):
    """
    Protected and unprotected headers.

    Inside an envelope both are written directly into the envelope's own array;
    only a standalone Headers is wrapped in an array of two.
    """

    def __init__(self, protected: EmptyOrSerializedMap = None, unprotected: HeaderMap = None):
        self.protected = protected if protected is not None else EmptyOrSerializedMap()
        self.unprotected = unprotected if unprotected is not None else HeaderMap()

    def serialize_as_embedded_group(self, serializer: Serializer):
        self.protected.serialize(serializer)
        self.unprotected.serialize(serializer)

    @classmethod
    def deserialize_as_embedded_group(cls, raw: Deserializer) -> 'Headers':
        with annotate('protected'):
            protected = EmptyOrSerializedMap.deserialize(raw)
        with annotate('unprotected'):
            unprotected = HeaderMap.deserialize(raw)
        return cls(protected, unprotected)

    def serialize(self, serializer: Serializer):
        serializer.write_array(2)
        self.serialize_as_embedded_group(serializer)

    @classmethod
    def deserialize(cls, raw: Deserializer) -> 'Headers':
        with annotate('Headers'):
            length = raw.array()
            check_len(length, 2)
            headers = cls.deserialize_as_embedded_group(raw)
            read_end(raw, length)
        return headers
