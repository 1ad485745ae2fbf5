# ledgertx/core/types.py
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Mapping, Optional

from ledgertx.crypto.keys import Algorithm, PublicKeyEncoding
from ledgertx.errors import (
    DuplicateStreamAlias,
    IncompleteTransaction,
    TransactionSealed,
)

ONBOARD_CONTRACT = "onboard"
DEFAULT_NAMESPACE = "default"
DEFAULT_SELF_ALIAS = "identity"

# metadata keys of the self stream
PUBLIC_KEY_FIELD = "publicKey"
KEY_TYPE_FIELD = "type"

# carries a stream id inside the stream object on the wire
STREAM_ID_FIELD = "$stream"


def _check_metadata(metadata: Mapping[str, str], where: str) -> Dict[str, str]:
    checked = {}
    for key, value in metadata.items():
        if not isinstance(key, str) or not isinstance(value, str):
            raise TypeError(f"{where} metadata must map str to str, got {key!r}: {value!r}")
        checked[key] = value
    return checked


def _check_alias(alias: str) -> str:
    if not isinstance(alias, str) or not alias:
        raise ValueError(f"Stream alias must be a non-empty string, got {alias!r}")
    return alias


@dataclass(frozen=True)
class Stream:
    """A ledger stream referenced by `$i` or `$o`. Empty stream_id = not yet created."""
    alias: str
    stream_id: str = ""
    metadata: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self):
        _check_alias(self.alias)
        if not isinstance(self.stream_id, str):
            raise TypeError(f"stream_id must be a string, got {type(self.stream_id).__name__}")
        metadata = _check_metadata(self.metadata, f"Stream '{self.alias}'")
        if STREAM_ID_FIELD in metadata:
            raise ValueError(f"Stream '{self.alias}' metadata may not use reserved key '{STREAM_ID_FIELD}'")
        # private read-only copy so later changes to the caller's dict can't leak in
        object.__setattr__(self, "metadata", MappingProxyType(metadata))


@dataclass(frozen=True)
class Signature:
    """The `$sig` object: which input stream signed, with what, and the encoded bytes."""
    alias: str
    algorithm: Algorithm
    value: str


@dataclass
class TransactionDocument:
    """
    In-memory onboarding transaction, built up before signing.

    Streams keep insertion order. Once a signature is installed the document
    is sealed: every mutator raises TransactionSealed, and rebuilding means
    starting a new document (see `unsigned_copy`).
    """
    namespace: str
    contract: str = ONBOARD_CONTRACT
    inputs: Mapping[str, Stream] = field(default_factory=dict)
    outputs: Mapping[str, Stream] = field(default_factory=dict)
    metadata: Mapping[str, str] = field(default_factory=dict)
    _signature: Optional[Signature] = field(default=None, init=False, repr=False)

    def __post_init__(self):
        if not isinstance(self.namespace, str) or not self.namespace:
            raise ValueError("namespace must be a non-empty string")
        if not isinstance(self.contract, str) or not self.contract:
            raise ValueError("contract must be a non-empty string")
        self.metadata = _check_metadata(self.metadata, "Transaction")

    def __setattr__(self, name, value):
        if getattr(self, "_signature", None) is not None:
            raise TransactionSealed(f"set '{name}'")
        super().__setattr__(name, value)

    @classmethod
    def new_onboarding(cls, namespace: str) -> "TransactionDocument":
        return cls(namespace=namespace, contract=ONBOARD_CONTRACT)

    @property
    def signature(self) -> Optional[Signature]:
        return self._signature

    @property
    def is_signed(self) -> bool:
        return self._signature is not None

    @property
    def self_stream(self) -> Optional[Stream]:
        """The identity stream being onboarded (first input), if set."""
        return next(iter(self.inputs.values()), None)

    def _check_open(self, operation: str) -> None:
        if self._signature is not None:
            raise TransactionSealed(operation)

    def set_self_stream(self, alias: str, public_key: PublicKeyEncoding, algorithm_tag) -> Stream:
        """
        Add the identity stream carrying the public key and its algorithm tag.
        May be called once; a second call raises DuplicateStreamAlias so a
        different key can never silently replace the first.
        """
        self._check_open("set self stream")
        _check_alias(alias)
        algorithm = Algorithm.parse(algorithm_tag)
        if Algorithm.parse(public_key.algorithm) is not algorithm:
            raise ValueError(
                f"Public key is tagged '{Algorithm.parse(public_key.algorithm).value}' "
                f"but stream declares '{algorithm.value}'"
            )
        if self.inputs:
            raise DuplicateStreamAlias(next(iter(self.inputs)), "$i")

        stream = Stream(
            alias=alias,
            metadata={PUBLIC_KEY_FIELD: public_key.pem, KEY_TYPE_FIELD: algorithm.value},
        )
        self.inputs[alias] = stream
        return stream

    def add_output_stream(self, alias: str, metadata: Optional[Mapping[str, str]] = None,
                          stream_id: str = "") -> Stream:
        self._check_open("add output stream")
        if alias in self.outputs:
            raise DuplicateStreamAlias(alias, "$o")
        stream = Stream(alias=alias, stream_id=stream_id, metadata=dict(metadata or {}))
        self.outputs[alias] = stream
        return stream

    def set_metadata(self, key: str, value: str) -> None:
        self._check_open("set metadata")
        self.metadata.update(_check_metadata({key: value}, "Transaction"))

    def freeze(self) -> "TransactionDocument":
        """Check the document is complete enough to sign."""
        if not self.inputs:
            raise IncompleteTransaction("$i")
        return self

    def install_signature(self, signature: Signature) -> None:
        self._check_open("install signature")
        if signature.alias not in self.inputs:
            raise ValueError(f"Signature alias '{signature.alias}' is not an input stream")
        # read-only views; the attribute guard above blocks reassignment
        self.inputs = MappingProxyType(dict(self.inputs))
        self.outputs = MappingProxyType(dict(self.outputs))
        self.metadata = MappingProxyType(dict(self.metadata))
        self._signature = signature

    def unsigned_copy(self) -> "TransactionDocument":
        """Fresh, unsealed document with the same streams and metadata."""
        return TransactionDocument(
            namespace=self.namespace,
            contract=self.contract,
            inputs=dict(self.inputs),
            outputs=dict(self.outputs),
            metadata=dict(self.metadata),
        )
