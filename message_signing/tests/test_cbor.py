import unittest
from cbor2 import dumps, loads, CBORTag, CBORDecodeError, CBOREncodeValueError, FrozenDict

from message_signing.cbor import (CBORValue, CBORArray, CBORObject, TaggedCBOR, CBORSpecial, CBORValueKind, CBORType,
                                  Serializer, Deserializer, DuplicateKey, NoVariantMatched, MaxDepthExceeded,
                                  CBORFailure, BreakInDefiniteLen, EndingBreakMissing)


def _int(value):
    return CBORValue.new_int(value)


def _text(value):
    return CBORValue.new_text(value)


class TestValue(unittest.TestCase):
    def test_array_length_encoding(self):
        array = CBORArray([_int(1), _int(2)])
        assert(CBORValue.new_array(array).to_bytes() == bytes.fromhex("820102"))

        array.definite = False
        assert(CBORValue.new_array(array).to_bytes() == bytes.fromhex("9f0102ff"))

    def test_map_length_encoding(self):
        obj = CBORObject({_text('a'): _int(1)})
        assert(CBORValue.new_object(obj).to_bytes() == bytes.fromhex("a1616101"))

        obj.definite = False
        assert(CBORValue.new_object(obj).to_bytes() == bytes.fromhex("bf616101ff"))

    def test_indefinite_round_trip(self):
        encoded = bytes.fromhex("9f01bf6161820203ff9fffff")
        decoded = CBORValue.from_bytes(encoded)

        self.assertEqual(decoded.kind, CBORValueKind.ARRAY)
        self.assertFalse(decoded.as_array().definite)
        self.assertFalse(decoded.as_array().get(1).as_object().definite)
        self.assertEqual(decoded.to_bytes(), encoded)

        decoded.as_array().definite = True
        self.assertEqual(decoded.to_bytes(), bytes.fromhex("8301bf6161820203ff9fff"))

    def test_matches_cbor2(self):
        native = [0, 23, 24, 500, 2 ** 64 - 1, -1, -2 ** 64, b'\x01\x02', 'text', 1.5,
                  {1: 'one', 'two': [True, False, None]}, CBORTag(4000, [b'']), []]

        value = CBORValue.from_native(native)
        self.assertEqual(value.to_bytes(), dumps(native))

        decoded = CBORValue.from_bytes(dumps(native))
        self.assertEqual(decoded, value)
        self.assertEqual(decoded.to_native(), loads(dumps(native)))

    def test_container_keys_to_native(self):
        map_key = bytes.fromhex("a1 a10102 03")
        self.assertEqual(CBORValue.from_bytes(map_key).to_native(), {FrozenDict({1: 2}): 3})
        self.assertEqual(CBORValue.from_bytes(map_key).to_native(), loads(map_key))

        array_key = bytes.fromhex("a1 8201a10203 04")
        self.assertEqual(CBORValue.from_bytes(array_key).to_native(), loads(array_key))

    def test_chunked_strings(self):
        value = CBORValue.from_bytes(bytes.fromhex("5f42010241 03ff"))
        self.assertEqual(value.as_bytes(), b'\x01\x02\x03')
        self.assertEqual(value.to_bytes(), bytes.fromhex("43010203"))

        value = CBORValue.from_bytes(bytes.fromhex("7f6261626163ff"))
        self.assertEqual(value.as_text(), 'abc')

    def test_tagged(self):
        value = CBORValue.new_tagged(TaggedCBOR(24, CBORValue.new_bytes(b'\xa0')))
        encoded = value.to_bytes()

        assert(encoded == bytes.fromhex("d81841a0"))
        self.assertEqual(CBORValue.from_bytes(encoded).as_tagged().tag, 24)

    def test_floats(self):
        assert(CBORValue.from_native(1.5).to_bytes() == bytes.fromhex("fb3ff8000000000000"))

        half = CBORValue.from_bytes(bytes.fromhex("f93e00"))
        self.assertEqual(half.as_special().as_float(), 1.5)

        single = CBORValue.from_bytes(bytes.fromhex("fa3fc00000"))
        self.assertEqual(single.as_special().as_float(), 1.5)

    def test_float_keys_by_bit_pattern(self):
        nan = CBORValue.from_native(float('nan'))
        self.assertEqual(nan, CBORValue.from_native(float('nan')))
        self.assertNotEqual(CBORValue.from_native(0.0), CBORValue.from_native(-0.0))

        obj = CBORObject()
        obj.insert(nan, _int(1))
        previous = obj.insert(CBORValue.from_native(float('nan')), _int(2))

        self.assertEqual(previous, _int(1))
        self.assertEqual(len(obj), 1)

    def test_ordering(self):
        self.assertLess(_int(5), CBORValue.new_bytes(b''))
        self.assertLess(_int(-1), _int(1))
        self.assertLess(_text('a'), _text('b'))

    def test_simple_values(self):
        self.assertEqual(CBORValue.new_special(CBORSpecial.new_unassigned(16)).to_bytes(), b'\xf0')
        self.assertEqual(CBORValue.new_special(CBORSpecial.new_unassigned(100)).to_bytes(), b'\xf8\x64')
        self.assertEqual(CBORValue.new_special(CBORSpecial.new_undefined()).to_bytes(), b'\xf7')

        with self.assertRaises(ValueError):
            CBORSpecial.new_unassigned(20)

        with self.assertRaises(CBORFailure):
            Deserializer(b'\xf8\x10').special()

    def test_heads(self):
        for tag in (0, 23, 24, 255, 256, 65535, 65536, 2 ** 32, 2 ** 64 - 1):
            self.assertEqual(Serializer().write_tag(tag).write_int(0).to_bytes(), dumps(CBORTag(tag, 0)))

        assert(Serializer().write_array(24).to_bytes() == bytes.fromhex("9818"))
        assert(Serializer().write_map(None).to_bytes() == bytes.fromhex("bf"))

        with self.assertRaises(CBOREncodeValueError):
            Serializer().write_array(2 ** 64)

    def test_peek_and_rewind(self):
        raw = Deserializer(b'\x61\x31\x02')

        self.assertEqual(raw.cbor_type(), CBORType.TEXT)
        self.assertEqual(raw.text(), '1')

        position = raw.tell()
        self.assertEqual(raw.unsigned_integer(), 2)
        self.assertEqual(raw.remaining(), 0)

        raw.seek(position)
        self.assertEqual(raw.integer(), 2)

        raw.seek(0)
        with self.assertRaises(CBORFailure):
            raw.bytes()
        raw.seek(0)
        self.assertEqual(raw.text(), '1')

    def test_integer_range(self):
        with self.assertRaises(ValueError):
            CBORValue.new_int(2 ** 64)
        with self.assertRaises(ValueError):
            CBORValue.new_int(-2 ** 64 - 1)


class TestDecodeErrors(unittest.TestCase):
    def test_duplicate_key(self):
        with self.assertRaises(DuplicateKey):
            CBORValue.from_bytes(bytes.fromhex("a2010101 02"))

        with self.assertRaises(DuplicateKey):
            CBORValue.from_bytes(bytes.fromhex("bf616101616102ff"))

    def test_duplicate_key_inside_array(self):
        with self.assertRaises(DuplicateKey) as cm:
            CBORValue.from_bytes(bytes.fromhex("8201a2616101616102"))

        self.assertEqual(cm.exception.location, "CBORValue.CBORArray.CBORValue.CBORObject")

    def test_no_variant_matched(self):
        with self.assertRaises(NoVariantMatched) as cm:
            CBORValue.from_bytes(b'\x1c')

        self.assertEqual(len(cm.exception.causes), 7)
        self.assertEqual(cm.exception.location, "CBORValue")
        self.assertIn("no variant matched", str(cm.exception))

    def test_break_in_definite_array(self):
        with self.assertRaises(BreakInDefiniteLen):
            CBORArray.from_bytes(bytes.fromhex("8201ff"))

    def test_missing_break(self):
        with self.assertRaises(CBORFailure):
            CBORArray.from_bytes(bytes.fromhex("9f0102"))

    def test_truncated(self):
        with self.assertRaises(CBORDecodeError):
            CBORValue.from_bytes(bytes.fromhex("43 0102"))

    def test_trailing_bytes(self):
        with self.assertRaises(CBORFailure) as cm:
            CBORValue.from_bytes(b'\x01\x02')

        self.assertEqual(cm.exception.location, "CBORValue")

    def test_max_depth(self):
        nested = b'\x81' * 10 + b'\x00'

        self.assertEqual(CBORValue.from_bytes(nested).to_bytes(), nested)

        with self.assertRaises(MaxDepthExceeded):
            CBORValue.from_bytes(nested, max_depth=5)

        with self.assertRaises(MaxDepthExceeded):
            CBORValue.from_bytes(b'\x81' * 200 + b'\x00')

    def test_errors_are_cbor2_errors(self):
        for error in (DuplicateKey(1), NoVariantMatched(), EndingBreakMissing()):
            self.assertIsInstance(error, CBORDecodeError)


if __name__ == '__main__':
    unittest.main()
