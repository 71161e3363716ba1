import unittest
from cbor2 import dumps, CBORTag
from cryptography.hazmat.primitives.ciphers.aead import AESCCM

from message_signing.cbor import (DefiniteLenMismatch, EndingBreakMissing, ExpectedNull, NoVariantMatched, TagMismatch)
from message_signing.cose import (Label, HeaderMap, EmptyOrSerializedMap, Headers, Algorithm, COSESignature,
                                  COSESignatures, COSESignatureOrArrCOSESignature, COSESignatureOrArrCOSESignatureKind,
                                  COSESign1, COSESign, SignedMessage, SignedMessageKind, COSEEncrypt0, COSEEncrypt,
                                  COSERecipient, COSERecipients, PasswordEncryption, PubKeyEncryption)

ENCRYPT0_VECTOR = bytes.fromhex("D08343A1010AA1054D89F52F65A1C580933B5261A78C581C5974E1B99A3A4CC09A659AA2E9E7FFF161D38CE71CB45CE460FFB569")


def _headers(alg=Algorithm.EdDSA, kid=b'kid'):
    protected = HeaderMap()
    protected.algorithm_id = Label.new_int(alg)

    unprotected = HeaderMap()
    unprotected.key_id = kid

    return Headers(EmptyOrSerializedMap(protected), unprotected)


class TestSign1(unittest.TestCase):
    def test_encode(self):
        message = COSESign1(_headers(), b'payload', b'sig')
        encoded = message.to_bytes()

        assert(encoded == dumps([dumps({1: -8}), {4: b'kid'}, b'payload', b'sig']))

        decoded = COSESign1.from_bytes(encoded)
        self.assertEqual(decoded, message)
        self.assertEqual(decoded.payload, b'payload')
        self.assertEqual(decoded.headers.protected.deserialized_headers().algorithm_id, Label.new_int(-8))

    def test_detached_payload(self):
        message = COSESign1(_headers(), None, b'sig')
        encoded = message.to_bytes()

        assert(encoded == dumps([dumps({1: -8}), {4: b'kid'}, None, b'sig']))
        self.assertIsNone(COSESign1.from_bytes(encoded).payload)

    def test_expected_null(self):
        with self.assertRaises(ExpectedNull) as cm:
            COSESign1.from_bytes(dumps([b'', {}, True, b'sig']))

        self.assertEqual(cm.exception.location, "COSESign1.payload")

    def test_length(self):
        with self.assertRaises(DefiniteLenMismatch) as cm:
            COSESign1.from_bytes(dumps([b'', {}, None]))

        self.assertEqual(cm.exception.location, "COSESign1")

    def test_indefinite(self):
        decoded = COSESign1.from_bytes(bytes.fromhex("9f 40 a0 f6 43736967 ff"))

        self.assertEqual(decoded.signature, b'sig')
        self.assertEqual(decoded.to_bytes(), bytes.fromhex("84 40 a0 f6 43736967"))

        with self.assertRaises(EndingBreakMissing):
            COSESign1.from_bytes(bytes.fromhex("9f 40 a0 f6 43736967 00"))

    def test_header_location(self):
        with self.assertRaises(NoVariantMatched) as cm:
            COSESign1.from_bytes(dumps([dumps({1: b''}), {}, None, b'']))

        self.assertEqual(cm.exception.location,
                         "COSESign1.headers.protected.EmptyOrSerializedMap.HeaderMap.algorithm_id.Label")


class TestSignedMessage(unittest.TestCase):
    def test_discriminate(self):
        signatures = COSESignatures([COSESignature(_headers(kid=b'a'), b'sig-a'),
                                     COSESignature(_headers(kid=b'b'), b'sig-b')])
        cose_sign = COSESign(_headers(), b'payload', signatures)
        cose_sign1 = COSESign1(_headers(), b'payload', b'sig')

        decoded = SignedMessage.from_bytes(cose_sign.to_bytes())
        self.assertEqual(decoded.kind, SignedMessageKind.COSE_SIGN)
        self.assertIsNone(decoded.as_cose_sign1())
        self.assertEqual(len(decoded.as_cose_sign().signatures), 2)
        self.assertEqual(decoded.to_bytes(), cose_sign.to_bytes())

        decoded = SignedMessage.from_bytes(cose_sign1.to_bytes())
        self.assertEqual(decoded.kind, SignedMessageKind.COSE_SIGN1)
        self.assertEqual(decoded.as_cose_sign1(), cose_sign1)

    def test_wraps(self):
        cose_sign1 = COSESign1(_headers(), None, b'sig')
        message = SignedMessage.new_cose_sign1(cose_sign1)

        self.assertEqual(message.to_bytes(), cose_sign1.to_bytes())

    def test_no_variant(self):
        with self.assertRaises(NoVariantMatched) as cm:
            SignedMessage.from_bytes(dumps([b'', {}, None, 1]))

        self.assertEqual(cm.exception.location, "SignedMessage")
        self.assertEqual(cm.exception.causes[0].location, "COSESign.signatures.COSESignatures")
        self.assertEqual(cm.exception.causes[1].location, "COSESign1.signature")


class TestCounterSignature(unittest.TestCase):
    def test_single(self):
        signature = COSESignature(Headers(), b'cs')
        header_map = HeaderMap()
        header_map.counter_signature = COSESignatureOrArrCOSESignature.new_cose_signature(signature)

        assert(header_map.to_bytes() == dumps({7: [b'', {}, b'cs']}))

        decoded = HeaderMap.from_bytes(header_map.to_bytes()).counter_signature
        self.assertEqual(decoded.kind, COSESignatureOrArrCOSESignatureKind.COSE_SIGNATURE)
        self.assertEqual(decoded.as_cose_signature().signature, b'cs')

    def test_array(self):
        signatures = COSESignatures([COSESignature(Headers(), b'a'), COSESignature(Headers(), b'b')])
        header_map = HeaderMap()
        header_map.counter_signature = COSESignatureOrArrCOSESignature.new_cose_signatures(signatures)

        assert(header_map.to_bytes() == dumps({7: [[b'', {}, b'a'], [b'', {}, b'b']]}))

        decoded = HeaderMap.from_bytes(header_map.to_bytes()).counter_signature
        self.assertEqual(decoded.kind, COSESignatureOrArrCOSESignatureKind.COSE_SIGNATURES)
        self.assertIsNone(decoded.as_cose_signature())
        self.assertEqual(decoded.as_cose_signatures().get(1).signature, b'b')


class TestEncrypt(unittest.TestCase):
    def test_encrypt0_vector(self):
        """ Test parameters from https://github.com/cose-wg/Examples/blob/master/RFC8152/Appendix_C_4_1.json"""
        iv = bytes.fromhex("89F52F65A1C580933B5261A78C")
        key = bytes.fromhex("849B5786457C1491BE3A76DCEA6C4271")

        message = PasswordEncryption.from_bytes(ENCRYPT0_VECTOR)
        encrypt0 = message.data

        self.assertEqual(encrypt0.headers.unprotected.init_vector, iv)
        self.assertEqual(encrypt0.headers.protected.deserialized_headers().algorithm_id,
                         Label.new_int(Algorithm.AES_CCM_16_64_128))
        self.assertEqual(message.to_bytes(), ENCRYPT0_VECTOR)

        enc_structure = dumps(["Encrypt0", encrypt0.headers.protected.raw, b''])
        plaintext = AESCCM(key, tag_length=8).decrypt(iv, encrypt0.ciphertext, enc_structure)
        assert(plaintext == b"This is the content.")

    def test_encrypt0_build(self):
        iv = bytes.fromhex("89F52F65A1C580933B5261A78C")
        key = bytes.fromhex("849B5786457C1491BE3A76DCEA6C4271")

        protected = HeaderMap()
        protected.algorithm_id = Label.new_int(Algorithm.AES_CCM_16_64_128)
        unprotected = HeaderMap()
        unprotected.init_vector = iv
        headers = Headers(EmptyOrSerializedMap(protected), unprotected)

        enc_structure = dumps(["Encrypt0", headers.protected.raw, b''])
        ciphertext = AESCCM(key, tag_length=8).encrypt(iv, b"This is the content.", enc_structure)

        message = PasswordEncryption(COSEEncrypt0(headers, ciphertext))
        assert(message.to_bytes() == ENCRYPT0_VECTOR)

    def test_tag_mismatch(self):
        with self.assertRaises(TagMismatch) as cm:
            PubKeyEncryption.from_bytes(ENCRYPT0_VECTOR)

        self.assertEqual(cm.exception.found, 16)
        self.assertEqual(cm.exception.expected, 96)
        self.assertEqual(cm.exception.location, "PubKeyEncryption")

    def test_encrypt(self):
        recipients = COSERecipients().add(COSERecipient(_headers(kid=b'r'), None))
        message = PubKeyEncryption(COSEEncrypt(_headers(), b'ct', recipients))
        encoded = message.to_bytes()

        assert(encoded == dumps(CBORTag(96, [dumps({1: -8}), {4: b'kid'}, b'ct', [[dumps({1: -8}), {4: b'r'}, None]]])))

        decoded = PubKeyEncryption.from_bytes(encoded).data
        self.assertEqual(decoded.ciphertext, b'ct')
        self.assertIsNone(decoded.recipients.get(0).ciphertext)
        self.assertEqual(decoded.recipients.get(0).headers.unprotected.key_id, b'r')

    def test_encrypt0_length(self):
        with self.assertRaises(DefiniteLenMismatch) as cm:
            PasswordEncryption.from_bytes(dumps(CBORTag(16, [b'', {}, None, None])))

        self.assertEqual(cm.exception.location, "PasswordEncryption.COSEEncrypt0")


if __name__ == '__main__':
    unittest.main()
