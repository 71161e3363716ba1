"""
Sig_structure, the byte string that is actually signed (RFC 8152, section 4.4).

    Sig_structure = [
        context : "Signature" / "Signature1" / "CounterSignature",
        body_protected : empty_or_serialized_map,
        ? sign_protected : empty_or_serialized_map,
        external_aad : bstr,
        payload : bstr
    ]
"""
from typing import Optional

from message_signing.cbor.error import DefiniteLenMismatch, FixedValueMismatch
from message_signing.cbor.serializable import CBORSerializable, annotate, read_end
from message_signing.cbor.stream import Serializer, Deserializer
from message_signing.cose.constants import SigContext
from message_signing.cose.headers import EmptyOrSerializedMap

CONTEXTS = (SigContext.SIGNATURE, SigContext.SIGNATURE1, SigContext.COUNTER_SIGNATURE)


class SigStructure(CBORSerializable):

    def __init__(self, context: str, body_protected: EmptyOrSerializedMap, external_aad: bytes, payload: bytes):
        if context not in CONTEXTS:
            raise ValueError(f'unknown signature context {context!r}')
        self._context = context
        self._body_protected = body_protected
        self._sign_protected = None
        self._external_aad = bytes(external_aad)
        self._payload = bytes(payload)

    @property
    def context(self) -> str:
        return self._context

    @property
    def body_protected(self) -> EmptyOrSerializedMap:
        return self._body_protected

    @property
    def sign_protected(self) -> Optional[EmptyOrSerializedMap]:
        return self._sign_protected

    @property
    def external_aad(self) -> bytes:
        return self._external_aad

    @property
    def payload(self) -> bytes:
        return self._payload

    def set_sign_protected(self, sign_protected: EmptyOrSerializedMap):
        if self._context == SigContext.SIGNATURE1:
            raise ValueError('Signature1 context does not carry signer protected headers')
        self._sign_protected = sign_protected

    def serialize(self, serializer: Serializer):
        serializer.write_array(4 if self._sign_protected is None else 5)
        serializer.write_text(self._context)
        self._body_protected.serialize(serializer)
        if self._sign_protected is not None:
            self._sign_protected.serialize(serializer)
        serializer.write_bytes(self._external_aad)
        serializer.write_bytes(self._payload)

    @classmethod
    def deserialize(cls, raw: Deserializer) -> 'SigStructure':
        with annotate('SigStructure'), raw.nested():
            length = raw.array()
            if length is not None and length not in (4, 5):
                raise DefiniteLenMismatch(length)

            with annotate('context'):
                context = raw.text()
                if context not in CONTEXTS:
                    raise FixedValueMismatch(context, 'Signature, Signature1, or CounterSignature')

            with annotate('body_protected'):
                body_protected = EmptyOrSerializedMap.deserialize(raw)

            # the optional field comes first and all three are byte strings, so
            # which is which is only known after reading them
            with annotate('external_aad'):
                first = raw.bytes()
            with annotate('payload'):
                second = raw.bytes()
            third = None
            if length == 5 or (length is None and not raw.is_break()):
                with annotate('payload'):
                    third = raw.bytes()

            read_end(raw, length)

            if third is None:
                sign_protected, external_aad, payload = None, first, second
            else:
                with annotate('sign_protected'):
                    if context == SigContext.SIGNATURE1:
                        raise FixedValueMismatch(context, 'Signature or CounterSignature')
                    sign_protected = EmptyOrSerializedMap.from_serialized(first, raw.max_depth - raw.depth)
                external_aad, payload = second, third

        sig_structure = cls(context, body_protected, external_aad, payload)
        if sign_protected is not None:
            sig_structure.set_sign_protected(sign_protected)
        return sig_structure
