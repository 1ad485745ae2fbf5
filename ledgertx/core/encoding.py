# ledgertx/core/encoding.py
import base64
import binascii
from typing import Union


def b64_encode(data: bytes) -> str:
    """Encode bytes to padded standard base64 text, the alphabet PEM bodies use."""
    return base64.b64encode(data).decode("ascii")


def b64_decode(s: str) -> bytes:
    """
    Decode padded standard base64 text.
    Raises ValueError on bad padding or characters outside the alphabet.
    """
    if not isinstance(s, str):
        raise ValueError("base64 input must be a string")
    try:
        return base64.b64decode(s, validate=True)
    except binascii.Error as e:
        raise ValueError(f"Invalid base64 data: {e}") from e


def as_bytes(data: Union[str, bytes, bytearray]) -> bytes:
    """Accept key material as text (PEM) or bytes."""
    if isinstance(data, str):
        return data.encode("utf-8")
    if isinstance(data, (bytes, bytearray)):
        return bytes(data)
    raise TypeError(f"Expected str or bytes, got {type(data).__name__}")
