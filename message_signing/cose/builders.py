import hashlib
import logging

from message_signing.cose.constants import SigContext
from message_signing.cose.cose import COSESign1, COSESign, COSESignatures
from message_signing.cose.headers import Headers, EmptyOrSerializedMap
from message_signing.cose.sig_structure import SigStructure

logger = logging.getLogger(__name__)


def blake2b224(data: bytes) -> bytes:
    return hashlib.blake2b(data, digest_size=28).digest()


class _SignBuilder:
    """
    Collects what goes into a signed message.

    Builders are plain mutable objects meant for a single writer; the setters
    return the builder so calls can be chained.
    """

    context = None

    def __init__(self, headers: Headers, payload: bytes, is_payload_external: bool = False):
        self.headers = headers
        self.payload = bytes(payload)
        self.external_aad = None
        self.is_payload_external = is_payload_external
        self.hashed = False

    def hash_payload(self):
        """Replace the payload with its BLAKE2b-224 digest, once"""
        if not self.hashed:
            self.hashed = True
            self.payload = blake2b224(self.payload)
            logger.debug("payload hashed to %s", self.payload.hex())
        return self

    def set_external_aad(self, external_aad: bytes):
        self.external_aad = bytes(external_aad)
        return self

    def _sig_structure(self) -> SigStructure:
        return SigStructure(self.context, self.headers.protected, self.external_aad or b'', self.payload)

    def _embedded_payload(self):
        return None if self.is_payload_external else self.payload


class COSESign1Builder(_SignBuilder):
    context = SigContext.SIGNATURE1

    def make_data_to_sign(self) -> SigStructure:
        sig_structure = self._sig_structure()
        logger.debug("data to sign: %s", sig_structure.to_bytes().hex())
        return sig_structure

    def build(self, signed_sig_structure: bytes) -> COSESign1:
        return COSESign1(self.headers, self._embedded_payload(), signed_sig_structure)


class COSESignBuilder(_SignBuilder):
    context = SigContext.SIGNATURE

    def make_data_to_sign(self, sign_protected: EmptyOrSerializedMap = None) -> SigStructure:
        """Signing input for one signer, ``sign_protected`` being that signer's protected headers"""
        sig_structure = self._sig_structure()
        if sign_protected is not None:
            sig_structure.set_sign_protected(sign_protected)
        logger.debug("data to sign: %s", sig_structure.to_bytes().hex())
        return sig_structure

    def build(self, signatures: COSESignatures) -> COSESign:
        return COSESign(self.headers, self._embedded_payload(), signatures)
