from .constants import Tag, Header, Algorithm, SigContext, Key
from .headers import Label, LabelKind, Labels, HeaderMap, EmptyOrSerializedMap, Headers
from .sig_structure import SigStructure
from .cose import (COSESignature, COSESignatures, COSESignatureOrArrCOSESignature, COSESignatureOrArrCOSESignatureKind,
                   COSESign1, COSESign, SignedMessage, SignedMessageKind, COSEEncrypt0, COSEEncrypt, COSERecipient,
                   COSERecipients, PasswordEncryption, PubKeyEncryption)
from .builders import COSESign1Builder, COSESignBuilder
from .key import (COSEKey, EdDSA25519KeyBuilder, ed25519_key_to_cose, cose_to_ed25519_key, ecdsa_key_to_cose,
                  cose_to_ecdsa_key)
