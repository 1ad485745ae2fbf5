# ledgertx/crypto/signing.py
"""
Signature schemes, one per algorithm tag:

    secp256k1  ECDSA over SHA-256, DER-encoded (r, s)
    rsa        RSASSA-PKCS1-v1_5 over SHA-256
    ed25519    Ed25519 (the message is signed directly)

Signatures travel as padded standard base64, the same encoding as the
body of the PEM public key they are checked against.
"""

import logging
from typing import Union

from cryptography.exceptions import InvalidSignature
from cryptography.exceptions import UnsupportedAlgorithm as _CryptoUnsupported
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec, padding

from ledgertx.core.canon import SigningPayload
from ledgertx.core.encoding import b64_decode, b64_encode
from ledgertx.crypto.keys import (
    Algorithm,
    KeyPair,
    PublicKeyEncoding,
    load_public_key,
    matches_private_key,
)
from ledgertx.errors import SigningFailure

logger = logging.getLogger(__name__)


def _data(payload: Union[SigningPayload, bytes]) -> bytes:
    return payload.data if isinstance(payload, SigningPayload) else bytes(payload)


def sign(payload: Union[SigningPayload, bytes], key_pair: KeyPair) -> bytes:
    """Sign the canonical payload with the scheme named by the key pair's algorithm."""
    algorithm = Algorithm.parse(key_pair.algorithm)
    data = _data(payload)
    try:
        key = key_pair.private_key()
    except (ValueError, TypeError, _CryptoUnsupported) as e:
        raise SigningFailure(algorithm.value, "private key could not be loaded") from e

    if not matches_private_key(algorithm, key):
        raise SigningFailure(algorithm.value, f"key is a {type(key).__name__}")

    try:
        if algorithm is Algorithm.SECP256K1:
            signature = key.sign(data, ec.ECDSA(hashes.SHA256()))
        elif algorithm is Algorithm.RSA:
            signature = key.sign(data, padding.PKCS1v15(), hashes.SHA256())
        else:
            signature = key.sign(data)
    except (ValueError, TypeError, _CryptoUnsupported) as e:
        raise SigningFailure(algorithm.value, str(e)) from e

    logger.debug("Signed %d payload bytes with %s", len(data), algorithm.value)
    return signature


def encode_signature(signature: bytes) -> str:
    return b64_encode(signature)


def decode_signature(text: str) -> bytes:
    return b64_decode(text)


def verify_signature(
    payload: Union[SigningPayload, bytes],
    signature: bytes,
    public_key: PublicKeyEncoding,
) -> bool:
    """
    True when `signature` over `payload` checks out against `public_key`.
    A public key that fails to load raises InvalidKeyMaterial.
    """
    algorithm = Algorithm.parse(public_key.algorithm)
    key = load_public_key(public_key)
    data = _data(payload)
    try:
        if algorithm is Algorithm.SECP256K1:
            key.verify(signature, data, ec.ECDSA(hashes.SHA256()))
        elif algorithm is Algorithm.RSA:
            key.verify(signature, data, padding.PKCS1v15(), hashes.SHA256())
        else:
            key.verify(signature, data)
    except InvalidSignature:
        return False
    return True
