from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey, Ed25519PublicKey
from cryptography.hazmat.primitives.serialization import Encoding, PrivateFormat, PublicFormat, NoEncryption

from ecdsa import curves as ecdsa_curves, SigningKey, VerifyingKey, ellipticcurve

from message_signing.cbor.error import MandatoryFieldMissing
from message_signing.cbor.serializable import CBORSerializable, annotate
from message_signing.cbor.stream import Serializer, Deserializer
from message_signing.cbor.value import CBORValue
from message_signing.cose.constants import Key, Algorithm
from message_signing.cose.headers import (Label, Labels, read_label_map, write_label_map,
                                          read_bstr, write_bstr, write_serializable)

_ecdsa_curves = {
    Key.Curve.P_256: ecdsa_curves.NIST256p,
    Key.Curve.P_384: ecdsa_curves.NIST384p,
    Key.Curve.P_521: ecdsa_curves.NIST521p
}

_ecdsa_names = {
    "NIST256p": Key.Curve.P_256,
    "NIST384p": Key.Curve.P_384,
    "NIST521p": Key.Curve.P_521
}


class COSEKey(CBORSerializable):
    """
    COSE_Key (RFC 8152, section 7).

    The common parameters 1 to 5 are named attributes; curve, coordinates and
    every other key type specific parameter live in ``other_headers``.
    """

    FIELDS = {
        Key.KTY:     ('key_type', Label.deserialize, write_serializable),
        Key.KID:     ('key_id', read_bstr, write_bstr),
        Key.ALG:     ('algorithm_id', Label.deserialize, write_serializable),
        Key.KEY_OPS: ('key_ops', Labels.deserialize, write_serializable),
        Key.BASE_IV: ('base_init_vector', read_bstr, write_bstr),
    }

    def __init__(self, key_type: Label):
        self.key_type = key_type
        self.key_id = None
        self.algorithm_id = None
        self.key_ops = None
        self.base_init_vector = None
        self.other_headers = {}

    def get(self, label: int):
        return self.other_headers.get(Label.new_int(label))

    def set(self, label: int, value: CBORValue):
        self.other_headers[Label.new_int(label)] = value
        return self

    def serialize(self, serializer: Serializer):
        write_label_map(serializer, self, self.FIELDS, self.other_headers)

    @classmethod
    def deserialize(cls, raw: Deserializer) -> 'COSEKey':
        key = cls(None)

        with annotate('COSEKey'), raw.nested():
            read_label_map(raw, key, cls.FIELDS, key.other_headers)
            if key.key_type is None:
                raise MandatoryFieldMissing(Key.KTY)

        return key


class EdDSA25519KeyBuilder:

    def __init__(self, pubkey_bytes: bytes):
        self.pubkey_bytes = bytes(pubkey_bytes)
        self.prvkey_bytes = None
        self.for_signing = False
        self.for_verifying = False

    def set_private_key(self, private_key_bytes: bytes):
        self.prvkey_bytes = bytes(private_key_bytes)
        return self

    def is_for_signing(self):
        self.for_signing = True
        return self

    def is_for_verifying(self):
        self.for_verifying = True
        return self

    def build(self) -> COSEKey:
        key = COSEKey(Label.new_int(Key.Type.OKP))
        key.set(Key.CRV, CBORValue.new_int(Key.Curve.Ed25519))
        key.set(Key.X, CBORValue.new_bytes(self.pubkey_bytes))
        if self.prvkey_bytes is not None:
            key.set(Key.D, CBORValue.new_bytes(self.prvkey_bytes))

        key.algorithm_id = Label.new_int(Algorithm.EdDSA)

        if self.for_signing or self.for_verifying:
            key_ops = Labels()
            if self.for_signing:
                key_ops.add(Label.new_int(Key.Op.SIGN))
            if self.for_verifying:
                key_ops.add(Label.new_int(Key.Op.VERIFY))
            key.key_ops = key_ops

        return key


def _int_param(key: COSEKey, label: int) -> int:
    value = key.get(label)
    if value is None or value.as_int() is None:
        raise ValueError(f'COSE key has no integer parameter {label}')
    return value.as_int()


def _bytes_param(key: COSEKey, label: int) -> bytes:
    value = key.get(label)
    if value is None or value.as_bytes() is None:
        raise ValueError(f'COSE key has no byte string parameter {label}')
    return value.as_bytes()


def _check_key_type(key: COSEKey, expected: int):
    if key.key_type is None or key.key_type.as_int() != expected:
        raise ValueError(f'expected key type {expected}, found {key.key_type!r}')


def ed25519_key_to_cose(key, kid: bytes = None) -> COSEKey:
    """OKP key for an Ed25519 key of ``cryptography``, private part included for a private key"""
    if isinstance(key, Ed25519PrivateKey):
        public = key.public_key()
        builder = EdDSA25519KeyBuilder(public.public_bytes(Encoding.Raw, PublicFormat.Raw))
        builder.set_private_key(key.private_bytes(Encoding.Raw, PrivateFormat.Raw, NoEncryption()))
        builder.is_for_signing()
    else:
        builder = EdDSA25519KeyBuilder(key.public_bytes(Encoding.Raw, PublicFormat.Raw))
        builder.is_for_verifying()

    cose_key = builder.build()
    cose_key.key_id = kid
    return cose_key


def cose_to_ed25519_key(key: COSEKey):
    _check_key_type(key, Key.Type.OKP)

    curve = _int_param(key, Key.CRV)
    if curve != Key.Curve.Ed25519:
        raise ValueError(f'unsupported OKP curve {curve}')

    if key.get(Key.D) is not None:
        return Ed25519PrivateKey.from_private_bytes(_bytes_param(key, Key.D))
    return Ed25519PublicKey.from_public_bytes(_bytes_param(key, Key.X))


def ecdsa_key_to_cose(key: VerifyingKey, kid: bytes = None) -> COSEKey:
    curve = _ecdsa_names[key.curve.name]
    size = key.curve.baselen
    x = key.pubkey.point.x()
    y = key.pubkey.point.y()

    cose_key = COSEKey(Label.new_int(Key.Type.EC2))
    cose_key.key_id = kid
    cose_key.set(Key.CRV, CBORValue.new_int(curve))
    cose_key.set(Key.X, CBORValue.new_bytes(x.to_bytes(size, 'big')))
    cose_key.set(Key.Y, CBORValue.new_bytes(y.to_bytes(size, 'big')))

    return cose_key


def cose_to_ecdsa_key(key: COSEKey):
    """VerifyingKey, or SigningKey when the private key d is present"""
    _check_key_type(key, Key.Type.EC2)

    curve = _ecdsa_curves.get(_int_param(key, Key.CRV))
    if curve is None:
        raise ValueError(f'unsupported EC2 curve {_int_param(key, Key.CRV)}')

    if key.get(Key.D) is not None:
        return SigningKey.from_string(_bytes_param(key, Key.D), curve=curve)

    x = int.from_bytes(_bytes_param(key, Key.X), 'big')
    y = int.from_bytes(_bytes_param(key, Key.Y), 'big')

    p = ellipticcurve.Point(curve.curve, x, y)
    return VerifyingKey.from_public_point(p, curve)
