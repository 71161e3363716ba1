from .constants import CBORType
from .error import (DeserializeError, CBORFailure, DuplicateKey, MandatoryFieldMissing, UnexpectedKeyType,
                    TagMismatch, FixedValueMismatch, ExpectedNull, EndingBreakMissing, BreakInDefiniteLen,
                    DefiniteLenMismatch, NoVariantMatched, MaxDepthExceeded)
from .special import CBORSpecial, CBORSpecialKind
from .stream import Serializer, Deserializer, DEFAULT_MAX_DEPTH
from .serializable import CBORSerializable
from .value import CBORValue, CBORValueKind, CBORArray, CBORObject, TaggedCBOR
