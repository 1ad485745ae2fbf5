# ledgertx/core/canon.py
"""
Canonical byte form of onboarding transactions.

Top-level and stream keys are emitted in a fixed order, written out here
rather than left to a JSON library:

    {"$namespace", "$contract", "$i", "$o", "$meta"}            signing payload
    {"$namespace", "$contract", "$i", "$o", "$meta", "$sig"}    transmitted form

Streams appear in insertion order as ``"<alias>": {<metadata>}``, the
metadata object sorted by key. A stream that already exists carries its id
as a ``"$stream"`` member of that object. Strings and metadata objects are
encoded per RFC 8785 via jcs.
"""

import hashlib
import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Tuple, Union

try:
    import jcs
except ImportError:
    raise ImportError("Please install jcs: pip install jcs")

from ledgertx.core.types import STREAM_ID_FIELD, Signature, Stream, TransactionDocument
from ledgertx.crypto.keys import Algorithm
from ledgertx.errors import MalformedTransaction, TxBuilderError

NAMESPACE_KEY = "$namespace"
CONTRACT_KEY = "$contract"
INPUT_KEY = "$i"
OUTPUT_KEY = "$o"
META_KEY = "$meta"
SIG_KEY = "$sig"

BODY_KEYS = (NAMESPACE_KEY, CONTRACT_KEY, INPUT_KEY, OUTPUT_KEY, META_KEY)
SIG_FIELDS = ("alias", "algorithm", "signature")


@dataclass(frozen=True)
class SigningPayload:
    """Exact bytes that get signed: the document without its signature."""
    data: bytes

    def __bytes__(self) -> bytes:
        return self.data

    def sha256(self) -> str:
        return hashlib.sha256(self.data).hexdigest()


def _string(value: str) -> bytes:
    return jcs.canonicalize(value)


def _mapping(metadata: Mapping[str, str]) -> bytes:
    # jcs sorts keys; {} stays an explicit empty object
    return jcs.canonicalize(dict(metadata))


def _object(members: List[Tuple[str, bytes]]) -> bytes:
    return b"{" + b",".join(_string(key) + b":" + value for key, value in members) + b"}"


def _stream(stream: Stream) -> bytes:
    members = dict(stream.metadata)
    if stream.stream_id:
        members[STREAM_ID_FIELD] = stream.stream_id
    return _mapping(members)


def _streams(streams: Mapping[str, Stream]) -> bytes:
    return _object([(alias, _stream(stream)) for alias, stream in streams.items()])


def _body(document: TransactionDocument) -> List[Tuple[str, bytes]]:
    return [
        (NAMESPACE_KEY, _string(document.namespace)),
        (CONTRACT_KEY, _string(document.contract)),
        (INPUT_KEY, _streams(document.inputs)),
        (OUTPUT_KEY, _streams(document.outputs)),
        (META_KEY, _mapping(document.metadata)),
    ]


def _signature(signature: Signature) -> bytes:
    return _object([
        ("alias", _string(signature.alias)),
        ("algorithm", _string(Algorithm.parse(signature.algorithm).value)),
        ("signature", _string(signature.value)),
    ])


def canonicalize(document: TransactionDocument) -> SigningPayload:
    """
    Signing payload for `document`. Raises IncompleteTransaction when the
    document has no input stream. The signature field is never included.
    """
    document.freeze()
    return SigningPayload(_object(_body(document)))


@dataclass(frozen=True)
class SignedTransaction:
    """
    Terminal artifact handed to the transport: document + signature.
    The transmitted bytes are fixed when the transaction is finalized.
    """
    document: TransactionDocument
    signature: Signature
    payload: SigningPayload
    data: bytes = field(repr=False)

    def to_bytes(self) -> bytes:
        return self.data

    def to_json(self) -> str:
        return self.to_bytes().decode("utf-8")

    def to_dict(self) -> Dict[str, Any]:
        return json.loads(self.to_bytes())

    def __str__(self):
        return self.to_json()


def finalize(document: TransactionDocument, signature: Signature) -> SignedTransaction:
    """Seal `document` with `signature` and return the transmitted form."""
    payload = canonicalize(document)
    document.install_signature(signature)
    data = _object(_body(document) + [(SIG_KEY, _signature(signature))])
    return SignedTransaction(document=document, signature=signature, payload=payload, data=data)


# --- parsing -----------------------------------------------------------------

def _reject_duplicates(pairs):
    obj = {}
    for key, value in pairs:
        if key in obj:
            raise MalformedTransaction("duplicate key", key)
        obj[key] = value
    return obj


def _expect_str(value: Any, name: str) -> str:
    if not isinstance(value, str):
        raise MalformedTransaction("expected a string", name)
    return value


def _expect_object(value: Any, name: str) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise MalformedTransaction("expected an object", name)
    return value


def _expect_keys(obj: Dict[str, Any], keys: Tuple[str, ...], name: str) -> None:
    if tuple(obj) != keys:
        raise MalformedTransaction(f"expected keys {list(keys)}, got {list(obj)}", name)


def _parse_metadata(value: Any, name: str) -> Dict[str, str]:
    metadata = _expect_object(value, name)
    for key, item in metadata.items():
        _expect_str(item, f"{name}.{key}")
    return metadata


def _parse_streams(value: Any, name: str) -> Dict[str, Stream]:
    streams = {}
    for alias, entry in _expect_object(value, name).items():
        where = f"{name}.{alias}"
        metadata = dict(_parse_metadata(entry, where))
        stream_id = metadata.pop(STREAM_ID_FIELD, "")
        if STREAM_ID_FIELD in entry and not stream_id:
            raise MalformedTransaction("empty stream id", f"{where}.{STREAM_ID_FIELD}")
        try:
            streams[alias] = Stream(alias=alias, stream_id=stream_id, metadata=metadata)
        except ValueError as e:
            raise MalformedTransaction(str(e), where) from e
    return streams


def parse_signed(data: Union[str, bytes]) -> Tuple[TransactionDocument, Signature]:
    """
    Rebuild the unsigned document and its signature from the transmitted form.
    Key order is checked, so re-canonicalizing the document reproduces the
    original signing payload byte for byte.
    """
    try:
        raw = json.loads(data, object_pairs_hook=_reject_duplicates)
    except ValueError as e:
        raise MalformedTransaction(f"invalid JSON: {e}") from e

    raw = _expect_object(raw, "<root>")
    _expect_keys(raw, BODY_KEYS + (SIG_KEY,), "<root>")

    sig = _expect_object(raw[SIG_KEY], SIG_KEY)
    _expect_keys(sig, SIG_FIELDS, SIG_KEY)
    try:
        signature = Signature(
            alias=_expect_str(sig["alias"], f"{SIG_KEY}.alias"),
            algorithm=Algorithm.parse(_expect_str(sig["algorithm"], f"{SIG_KEY}.algorithm")),
            value=_expect_str(sig["signature"], f"{SIG_KEY}.signature"),
        )
        document = TransactionDocument(
            namespace=_expect_str(raw[NAMESPACE_KEY], NAMESPACE_KEY),
            contract=_expect_str(raw[CONTRACT_KEY], CONTRACT_KEY),
            inputs=_parse_streams(raw[INPUT_KEY], INPUT_KEY),
            outputs=_parse_streams(raw[OUTPUT_KEY], OUTPUT_KEY),
            metadata=_parse_metadata(raw[META_KEY], META_KEY),
        )
    except MalformedTransaction:
        raise
    except TxBuilderError as e:
        raise MalformedTransaction(e.message) from e
    except ValueError as e:
        raise MalformedTransaction(str(e)) from e
    return document, signature
