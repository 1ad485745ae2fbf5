# ledgertx/crypto/keys.py
"""
Key material for onboarding identities.

Private keys are held as PKCS#8 DER, public keys as SubjectPublicKeyInfo DER.
The ledger embeds public keys as PEM text tagged with the algorithm name.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union

from cryptography.exceptions import UnsupportedAlgorithm as _CryptoUnsupported
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, rsa

from ledgertx.core.encoding import as_bytes
from ledgertx.errors import InvalidKeyMaterial, UnsupportedAlgorithm

logger = logging.getLogger(__name__)

RSA_KEY_SIZE = 2048
RSA_PUBLIC_EXPONENT = 65537
ED25519_SEED_SIZE = 32


class Algorithm(str, Enum):
    """Key/signature schemes accepted by the ledger network."""

    SECP256K1 = "secp256k1"   # ECDSA + SHA-256, DER signature
    RSA = "rsa"               # RSA-2048, PKCS#1 v1.5 + SHA-256
    ED25519 = "ed25519"       # pure Ed25519

    @classmethod
    def parse(cls, value: Union["Algorithm", str]) -> "Algorithm":
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise UnsupportedAlgorithm(str(value)) from None


DEFAULT_ALGORITHM = Algorithm.SECP256K1


@dataclass(frozen=True)
class PublicKeyEncoding:
    """Algorithm-tagged PEM form of a public key, as embedded in `$i`."""
    algorithm: Algorithm
    pem: str


@dataclass(frozen=True)
class KeyPair:
    algorithm: Algorithm
    private_key_bytes: bytes = field(repr=False)   # PKCS#8 DER
    public_key_bytes: bytes                        # SubjectPublicKeyInfo DER

    @classmethod
    def from_private_key(cls, algorithm: Algorithm, key) -> "KeyPair":
        private_der = key.private_bytes(
            encoding=serialization.Encoding.DER,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
        public_der = key.public_key().public_bytes(
            encoding=serialization.Encoding.DER,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
        return cls(algorithm=algorithm, private_key_bytes=private_der, public_key_bytes=public_der)

    def private_key(self):
        """Load the private key object (used by the signer)."""
        return serialization.load_der_private_key(self.private_key_bytes, password=None)

    def private_pem(self) -> str:
        """PKCS#8 PEM of the private key. Callers persist this themselves."""
        return self.private_key().private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        ).decode("ascii")

    def public_pem(self) -> str:
        return encode_public_key(self).pem


def _new_private_key(algorithm: Algorithm):
    if algorithm is Algorithm.SECP256K1:
        return ec.generate_private_key(ec.SECP256K1())
    if algorithm is Algorithm.RSA:
        return rsa.generate_private_key(public_exponent=RSA_PUBLIC_EXPONENT, key_size=RSA_KEY_SIZE)
    return ed25519.Ed25519PrivateKey.generate()


def matches_private_key(algorithm: Algorithm, key) -> bool:
    if algorithm is Algorithm.SECP256K1:
        return isinstance(key, ec.EllipticCurvePrivateKey) and isinstance(key.curve, ec.SECP256K1)
    if algorithm is Algorithm.RSA:
        return isinstance(key, rsa.RSAPrivateKey)
    return isinstance(key, ed25519.Ed25519PrivateKey)


def matches_public_key(algorithm: Algorithm, key) -> bool:
    if algorithm is Algorithm.SECP256K1:
        return isinstance(key, ec.EllipticCurvePublicKey) and isinstance(key.curve, ec.SECP256K1)
    if algorithm is Algorithm.RSA:
        return isinstance(key, rsa.RSAPublicKey)
    return isinstance(key, ed25519.Ed25519PublicKey)


def generate(algorithm: Optional[Union[Algorithm, str]] = None) -> KeyPair:
    """
    Generate a fresh key pair. `None` selects the network default (secp256k1).
    Raises UnsupportedAlgorithm for unknown tags.
    """
    algo = DEFAULT_ALGORITHM if algorithm is None else Algorithm.parse(algorithm)
    key_pair = KeyPair.from_private_key(algo, _new_private_key(algo))
    logger.debug("Generated new %s key pair", algo.value)
    return key_pair


def _load_private_key(algorithm: Algorithm, data: bytes):
    if data.lstrip().startswith(b"-----BEGIN"):
        return serialization.load_pem_private_key(data, password=None)
    if algorithm is Algorithm.ED25519 and len(data) == ED25519_SEED_SIZE:
        return ed25519.Ed25519PrivateKey.from_private_bytes(data)
    return serialization.load_der_private_key(data, password=None)


def from_existing(algorithm: Union[Algorithm, str], private_key_bytes: Union[str, bytes]) -> KeyPair:
    """
    Build a KeyPair from caller-held private key material.

    Accepts PEM (PKCS#8 or traditional) or DER; an Ed25519 key may also be
    given as its raw 32-byte seed. The key must belong to `algorithm`.
    Raises InvalidKeyMaterial when the bytes do not parse or the key type differs.
    """
    algo = Algorithm.parse(algorithm)
    try:
        data = as_bytes(private_key_bytes)
    except TypeError as e:
        raise InvalidKeyMaterial(algo.value, str(e)) from e
    if not data.strip():
        raise InvalidKeyMaterial(algo.value, "empty key material")

    try:
        key = _load_private_key(algo, data)
    except (ValueError, TypeError, _CryptoUnsupported) as e:
        raise InvalidKeyMaterial(algo.value, "could not parse private key") from e

    if not matches_private_key(algo, key):
        raise InvalidKeyMaterial(algo.value, f"key is a {type(key).__name__}")

    return KeyPair.from_private_key(algo, key)


def encode_public_key(key_pair: KeyPair) -> PublicKeyEncoding:
    """SubjectPublicKeyInfo PEM of the pair's public key. Deterministic."""
    public_key = serialization.load_der_public_key(key_pair.public_key_bytes)
    pem = public_key.public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode("ascii")
    return PublicKeyEncoding(algorithm=key_pair.algorithm, pem=pem)


def load_public_key(encoding: PublicKeyEncoding):
    """Turn an embedded PEM back into a public key object for verification."""
    algo = Algorithm.parse(encoding.algorithm)
    try:
        key = serialization.load_pem_public_key(as_bytes(encoding.pem))
    except (ValueError, TypeError, _CryptoUnsupported) as e:
        raise InvalidKeyMaterial(algo.value, "could not parse public key") from e
    if not matches_public_key(algo, key):
        raise InvalidKeyMaterial(algo.value, f"public key is a {type(key).__name__}")
    return key
