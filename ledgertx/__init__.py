# ledgertx/__init__.py
"""
ledgertx: builds signed onboarding transactions for a stream-based ledger.
Generates or loads an identity key, embeds its public key in the `$i` stream,
and signs the canonical transaction body so nodes can verify it.
"""

from ledgertx.core.canon import SignedTransaction, SigningPayload, canonicalize, finalize, parse_signed
from ledgertx.core.types import Signature, Stream, TransactionDocument
from ledgertx.crypto.keys import Algorithm, KeyPair, PublicKeyEncoding, encode_public_key, from_existing, generate
from ledgertx.crypto.signing import encode_signature, sign, verify_signature
from ledgertx.errors import (
    DuplicateStreamAlias,
    IncompleteTransaction,
    InvalidKeyMaterial,
    MalformedTransaction,
    SigningFailure,
    TransactionSealed,
    TxBuilderError,
    UnsupportedAlgorithm,
)
from ledgertx.onboard.builder import OnboardingBuilder, build_with_generated_key, build_with_provided_key
from ledgertx.verify.verifier import TransactionVerifier, VerificationResult

__version__ = "0.1.0"

__all__ = [
    "Algorithm", "KeyPair", "PublicKeyEncoding", "generate", "from_existing", "encode_public_key",
    "Stream", "Signature", "TransactionDocument",
    "SigningPayload", "SignedTransaction", "canonicalize", "finalize", "parse_signed",
    "sign", "encode_signature", "verify_signature",
    "OnboardingBuilder", "build_with_generated_key", "build_with_provided_key",
    "TransactionVerifier", "VerificationResult",
    "TxBuilderError", "UnsupportedAlgorithm", "InvalidKeyMaterial", "DuplicateStreamAlias",
    "IncompleteTransaction", "TransactionSealed", "SigningFailure", "MalformedTransaction",
]
