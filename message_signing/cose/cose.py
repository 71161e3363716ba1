from enum import IntEnum
from typing import Optional

from message_signing.cbor.error import TagMismatch
from message_signing.cbor.serializable import (CBORSerializable, CBORList, annotate, try_variants, check_len, read_end,
                                               write_nullable_bytes, read_nullable_bytes)
from message_signing.cbor.stream import Serializer, Deserializer
from message_signing.cose.constants import Tag, SigContext
from message_signing.cose.headers import Headers, EmptyOrSerializedMap
from message_signing.cose.sig_structure import SigStructure


def _signing_payload(embedded: Optional[bytes], external_payload: Optional[bytes]) -> bytes:
    if embedded is not None and external_payload is not None:
        raise ValueError('payload is embedded in the message, external payload not allowed')
    if embedded is None and external_payload is None:
        raise ValueError('payload is detached, external payload required')
    return embedded if embedded is not None else external_payload


class COSESignature(CBORSerializable):
    """One signer's headers and signature inside a COSE_Sign"""

    def __init__(self, headers: Headers, signature: bytes):
        self._headers = headers
        self._signature = bytes(signature)

    @property
    def headers(self) -> Headers:
        return self._headers

    @property
    def signature(self) -> bytes:
        return self._signature

    def serialize(self, serializer: Serializer):
        serializer.write_array(3)
        self._headers.serialize_as_embedded_group(serializer)
        serializer.write_bytes(self._signature)

    @classmethod
    def deserialize(cls, raw: Deserializer) -> 'COSESignature':
        with annotate('COSESignature'), raw.nested():
            length = raw.array()
            check_len(length, 3)
            with annotate('headers'):
                headers = Headers.deserialize_as_embedded_group(raw)
            with annotate('signature'):
                signature = raw.bytes()
            read_end(raw, length)
        return cls(headers, signature)


class COSESignatures(CBORList):
    element_type = COSESignature


class COSESignatureOrArrCOSESignatureKind(IntEnum):
    COSE_SIGNATURE  = 0
    COSE_SIGNATURES = 1


class COSESignatureOrArrCOSESignature(CBORSerializable):
    """Counter signature header value: one COSE_Signature or an array of them"""

    def __init__(self, kind: COSESignatureOrArrCOSESignatureKind, value):
        self._kind = kind
        self._value = value

    @classmethod
    def new_cose_signature(cls, cose_signature: COSESignature):
        return cls(COSESignatureOrArrCOSESignatureKind.COSE_SIGNATURE, cose_signature)

    @classmethod
    def new_cose_signatures(cls, cose_signatures: COSESignatures):
        return cls(COSESignatureOrArrCOSESignatureKind.COSE_SIGNATURES, cose_signatures)

    @property
    def kind(self) -> COSESignatureOrArrCOSESignatureKind:
        return self._kind

    def as_cose_signature(self) -> Optional[COSESignature]:
        if self._kind == COSESignatureOrArrCOSESignatureKind.COSE_SIGNATURE:
            return self._value
        return None

    def as_cose_signatures(self) -> Optional[COSESignatures]:
        if self._kind == COSESignatureOrArrCOSESignatureKind.COSE_SIGNATURES:
            return self._value
        return None

    def serialize(self, serializer: Serializer):
        self._value.serialize(serializer)

    @classmethod
    def deserialize(cls, raw: Deserializer):
        with annotate('COSESignatureOrArrCOSESignature'):
            return try_variants(raw, [
                lambda r: cls.new_cose_signature(COSESignature.deserialize(r)),
                lambda r: cls.new_cose_signatures(COSESignatures.deserialize(r)),
            ])


class COSESign1(CBORSerializable):

    def __init__(self, headers: Headers, payload: Optional[bytes], signature: bytes):
        self._headers = headers
        self._payload = None if payload is None else bytes(payload)
        self._signature = bytes(signature)

    @property
    def headers(self) -> Headers:
        return self._headers

    @property
    def payload(self) -> Optional[bytes]:
        """Embedded payload, ``None`` when it is carried externally"""
        return self._payload

    @property
    def signature(self) -> bytes:
        return self._signature

    def signed_data(self, external_aad: bytes = None, external_payload: bytes = None) -> SigStructure:
        """
        Rebuild the Sig_structure this message was signed over.

        ``external_payload`` must be given exactly when the payload is detached.
        """
        return SigStructure(SigContext.SIGNATURE1,
                            self._headers.protected,
                            external_aad or b'',
                            _signing_payload(self._payload, external_payload))

    def serialize(self, serializer: Serializer):
        serializer.write_array(4)
        self._headers.serialize_as_embedded_group(serializer)
        write_nullable_bytes(serializer, self._payload)
        serializer.write_bytes(self._signature)

    @classmethod
    def deserialize(cls, raw: Deserializer) -> 'COSESign1':
        with annotate('COSESign1'), raw.nested():
            length = raw.array()
            check_len(length, 4)
            with annotate('headers'):
                headers = Headers.deserialize_as_embedded_group(raw)
            with annotate('payload'):
                payload = read_nullable_bytes(raw)
            with annotate('signature'):
                signature = raw.bytes()
            read_end(raw, length)
        return cls(headers, payload, signature)


class COSESign(CBORSerializable):

    def __init__(self, headers: Headers, payload: Optional[bytes], signatures: COSESignatures):
        self._headers = headers
        self._payload = None if payload is None else bytes(payload)
        self._signatures = signatures

    @property
    def headers(self) -> Headers:
        return self._headers

    @property
    def payload(self) -> Optional[bytes]:
        return self._payload

    @property
    def signatures(self) -> COSESignatures:
        return self._signatures

    def signed_data(self, sign_protected: EmptyOrSerializedMap = None, external_aad: bytes = None,
                    external_payload: bytes = None) -> SigStructure:
        """
        Rebuild the Sig_structure for one signer.

        ``sign_protected`` is the protected header of that signer's COSESignature.
        """
        sig_structure = SigStructure(SigContext.SIGNATURE,
                                     self._headers.protected,
                                     external_aad or b'',
                                     _signing_payload(self._payload, external_payload))
        if sign_protected is not None:
            sig_structure.set_sign_protected(sign_protected)
        return sig_structure

    def serialize(self, serializer: Serializer):
        serializer.write_array(4)
        self._headers.serialize_as_embedded_group(serializer)
        write_nullable_bytes(serializer, self._payload)
        self._signatures.serialize(serializer)

    @classmethod
    def deserialize(cls, raw: Deserializer) -> 'COSESign':
        with annotate('COSESign'), raw.nested():
            length = raw.array()
            check_len(length, 4)
            with annotate('headers'):
                headers = Headers.deserialize_as_embedded_group(raw)
            with annotate('payload'):
                payload = read_nullable_bytes(raw)
            with annotate('signatures'):
                signatures = COSESignatures.deserialize(raw)
            read_end(raw, length)
        return cls(headers, payload, signatures)


class SignedMessageKind(IntEnum):
    COSE_SIGN  = 0
    COSE_SIGN1 = 1


class SignedMessage(CBORSerializable):
    """
    Untagged COSE_Sign or COSE_Sign1.

    Both are arrays of four; only the type of the last element tells them apart,
    so decoding tries COSE_Sign first and falls back to COSE_Sign1.
    """

    def __init__(self, kind: SignedMessageKind, value):
        self._kind = kind
        self._value = value

    @classmethod
    def new_cose_sign(cls, cose_sign: COSESign) -> 'SignedMessage':
        return cls(SignedMessageKind.COSE_SIGN, cose_sign)

    @classmethod
    def new_cose_sign1(cls, cose_sign1: COSESign1) -> 'SignedMessage':
        return cls(SignedMessageKind.COSE_SIGN1, cose_sign1)

    @property
    def kind(self) -> SignedMessageKind:
        return self._kind

    def as_cose_sign(self) -> Optional[COSESign]:
        return self._value if self._kind == SignedMessageKind.COSE_SIGN else None

    def as_cose_sign1(self) -> Optional[COSESign1]:
        return self._value if self._kind == SignedMessageKind.COSE_SIGN1 else None

    def serialize(self, serializer: Serializer):
        self._value.serialize(serializer)

    @classmethod
    def deserialize(cls, raw: Deserializer) -> 'SignedMessage':
        with annotate('SignedMessage'):
            return try_variants(raw, [
                lambda r: cls.new_cose_sign(COSESign.deserialize(r)),
                lambda r: cls.new_cose_sign1(COSESign1.deserialize(r)),
            ])


class COSEEncrypt0(CBORSerializable):

    def __init__(self, headers: Headers, ciphertext: Optional[bytes]):
        self._headers = headers
        self._ciphertext = None if ciphertext is None else bytes(ciphertext)

    @property
    def headers(self) -> Headers:
        return self._headers

    @property
    def ciphertext(self) -> Optional[bytes]:
        return self._ciphertext

    def serialize(self, serializer: Serializer):
        serializer.write_array(3)
        self._headers.serialize_as_embedded_group(serializer)
        write_nullable_bytes(serializer, self._ciphertext)

    @classmethod
    def deserialize(cls, raw: Deserializer) -> 'COSEEncrypt0':
        with annotate('COSEEncrypt0'), raw.nested():
            length = raw.array()
            check_len(length, 3)
            with annotate('headers'):
                headers = Headers.deserialize_as_embedded_group(raw)
            with annotate('ciphertext'):
                ciphertext = read_nullable_bytes(raw)
            read_end(raw, length)
        return cls(headers, ciphertext)


class COSERecipient(CBORSerializable):

    def __init__(self, headers: Headers, ciphertext: Optional[bytes]):
        self._headers = headers
        self._ciphertext = None if ciphertext is None else bytes(ciphertext)

    @property
    def headers(self) -> Headers:
        return self._headers

    @property
    def ciphertext(self) -> Optional[bytes]:
        return self._ciphertext

    def serialize(self, serializer: Serializer):
        serializer.write_array(3)
        self._headers.serialize_as_embedded_group(serializer)
        write_nullable_bytes(serializer, self._ciphertext)

    @classmethod
    def deserialize(cls, raw: Deserializer) -> 'COSERecipient':
        with annotate('COSERecipient'), raw.nested():
            length = raw.array()
            check_len(length, 3)
            with annotate('headers'):
                headers = Headers.deserialize_as_embedded_group(raw)
            with annotate('ciphertext'):
                ciphertext = read_nullable_bytes(raw)
            read_end(raw, length)
        return cls(headers, ciphertext)


class COSERecipients(CBORList):
    element_type = COSERecipient


class COSEEncrypt(CBORSerializable):

    def __init__(self, headers: Headers, ciphertext: Optional[bytes], recipients: COSERecipients):
        self._headers = headers
        self._ciphertext = None if ciphertext is None else bytes(ciphertext)
        self._recipients = recipients

    @property
    def headers(self) -> Headers:
        return self._headers

    @property
    def ciphertext(self) -> Optional[bytes]:
        return self._ciphertext

    @property
    def recipients(self) -> COSERecipients:
        return self._recipients

    def serialize(self, serializer: Serializer):
        serializer.write_array(4)
        self._headers.serialize_as_embedded_group(serializer)
        write_nullable_bytes(serializer, self._ciphertext)
        self._recipients.serialize(serializer)

    @classmethod
    def deserialize(cls, raw: Deserializer) -> 'COSEEncrypt':
        with annotate('COSEEncrypt'), raw.nested():
            length = raw.array()
            check_len(length, 4)
            with annotate('headers'):
                headers = Headers.deserialize_as_embedded_group(raw)
            with annotate('ciphertext'):
                ciphertext = read_nullable_bytes(raw)
            with annotate('recipients'):
                recipients = COSERecipients.deserialize(raw)
            read_end(raw, length)
        return cls(headers, ciphertext, recipients)


class TaggedMessage(CBORSerializable):
    """A COSE structure preceded by its fixed semantic tag"""

    tag = None
    message_type = None

    def __init__(self, data):
        self._data = data

    @property
    def data(self):
        return self._data

    def serialize(self, serializer: Serializer):
        serializer.write_tag(self.tag)
        self._data.serialize(serializer)

    @classmethod
    def deserialize(cls, raw: Deserializer):
        with annotate(cls.__name__):
            found = raw.tag()
            if found != cls.tag:
                raise TagMismatch(found, cls.tag)
            return cls(cls.message_type.deserialize(raw))


class PasswordEncryption(TaggedMessage):
    tag = Tag.COSE_ENCRYPT0
    message_type = COSEEncrypt0


class PubKeyEncryption(TaggedMessage):
    tag = Tag.COSE_ENCRYPT
    message_type = COSEEncrypt
