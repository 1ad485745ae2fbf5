# ledgertx/onboard/builder.py
import logging
from enum import Enum
from typing import Iterable, Mapping, Optional, Tuple, Union

from ledgertx.core.canon import SignedTransaction, SigningPayload, canonicalize, finalize
from ledgertx.core.types import DEFAULT_SELF_ALIAS, Signature, Stream, TransactionDocument
from ledgertx.crypto import keys, signing
from ledgertx.crypto.keys import Algorithm, KeyPair

logger = logging.getLogger(__name__)

OutputStreamSpec = Union[Stream, str, Tuple[str, Mapping[str, str]]]


class OnboardState(str, Enum):
    START = "start"
    KEY_READY = "key_ready"
    DOCUMENT_BUILT = "document_built"
    PAYLOAD_CANONICALIZED = "payload_canonicalized"
    SIGNED = "signed"


class OnboardingBuilder:
    """
    Single-use pipeline for one onboarding transaction:
    key → document → canonical payload → signature → signed transaction.

    Each step moves `state` forward; a failing step raises and leaves the
    builder where it stopped, with no transaction produced. Nothing is retried.
    """

    def __init__(
        self,
        namespace: str,
        algorithm: Optional[Union[Algorithm, str]] = None,
        output_streams: Iterable[OutputStreamSpec] = (),
        metadata: Optional[Mapping[str, str]] = None,
        alias: str = DEFAULT_SELF_ALIAS,
    ):
        self.namespace = namespace
        self.algorithm = keys.DEFAULT_ALGORITHM if algorithm is None else Algorithm.parse(algorithm)
        self.output_streams = list(output_streams)
        self.metadata = dict(metadata or {})
        self.alias = alias
        self.state = OnboardState.START
        self.key_pair: Optional[KeyPair] = None
        self.document: Optional[TransactionDocument] = None
        self.payload: Optional[SigningPayload] = None

    def _require(self, expected: OnboardState, step: str) -> None:
        if self.state is not expected:
            raise ValueError(f"Cannot {step} in state '{self.state.value}' (needs '{expected.value}')")

    def _advance(self, new_state: OnboardState) -> None:
        logger.debug("onboard[%s]: %s -> %s", self.alias, self.state.value, new_state.value)
        self.state = new_state

    # Start -> KeyReady

    def generate_key(self) -> KeyPair:
        self._require(OnboardState.START, "generate key")
        self.key_pair = keys.generate(self.algorithm)
        self._advance(OnboardState.KEY_READY)
        return self.key_pair

    def use_key(self, private_key: Union[str, bytes]) -> KeyPair:
        self._require(OnboardState.START, "load key")
        self.key_pair = keys.from_existing(self.algorithm, private_key)
        self._advance(OnboardState.KEY_READY)
        return self.key_pair

    # KeyReady -> DocumentBuilt -> PayloadCanonicalized -> Signed

    def _add_output(self, document: TransactionDocument, spec: OutputStreamSpec) -> None:
        if isinstance(spec, Stream):
            document.add_output_stream(spec.alias, spec.metadata, spec.stream_id)
        elif isinstance(spec, str):
            document.add_output_stream(spec)
        else:
            alias, metadata = spec
            document.add_output_stream(alias, metadata)

    def build_document(self) -> TransactionDocument:
        self._require(OnboardState.KEY_READY, "build document")
        document = TransactionDocument.new_onboarding(self.namespace)
        document.set_self_stream(self.alias, keys.encode_public_key(self.key_pair), self.algorithm)
        for spec in self.output_streams:
            self._add_output(document, spec)
        for key, value in self.metadata.items():
            document.set_metadata(key, value)
        self.document = document
        self._advance(OnboardState.DOCUMENT_BUILT)
        return document

    def canonicalize(self) -> SigningPayload:
        self._require(OnboardState.DOCUMENT_BUILT, "canonicalize")
        self.payload = canonicalize(self.document)
        self._advance(OnboardState.PAYLOAD_CANONICALIZED)
        return self.payload

    def sign(self) -> SignedTransaction:
        self._require(OnboardState.PAYLOAD_CANONICALIZED, "sign")
        raw = signing.sign(self.payload, self.key_pair)
        signature = Signature(
            alias=self.alias,
            algorithm=self.algorithm,
            value=signing.encode_signature(raw),
        )
        signed = finalize(self.document, signature)
        self._advance(OnboardState.SIGNED)
        logger.info(
            "Built onboarding transaction: namespace=%s alias=%s algorithm=%s outputs=%d",
            self.namespace, self.alias, self.algorithm.value, len(self.document.outputs),
        )
        return signed

    def build(self) -> SignedTransaction:
        """Run the remaining steps once a key is loaded."""
        self.build_document()
        self.canonicalize()
        return self.sign()


def build_with_generated_key(
    namespace: str,
    algorithm: Optional[Union[Algorithm, str]] = None,
    output_streams: Iterable[OutputStreamSpec] = (),
    metadata: Optional[Mapping[str, str]] = None,
    alias: str = DEFAULT_SELF_ALIAS,
) -> Tuple[SignedTransaction, KeyPair]:
    """
    Generate a key and onboard it. The returned KeyPair is the only copy of
    the new private key; persisting it is up to the caller.
    """
    builder = OnboardingBuilder(namespace, algorithm, output_streams, metadata, alias)
    key_pair = builder.generate_key()
    return builder.build(), key_pair


def build_with_provided_key(
    namespace: str,
    existing_private_key: Union[str, bytes],
    algorithm: Union[Algorithm, str],
    output_streams: Iterable[OutputStreamSpec] = (),
    metadata: Optional[Mapping[str, str]] = None,
    alias: str = DEFAULT_SELF_ALIAS,
) -> SignedTransaction:
    """Onboard a key the caller already holds (PEM or DER)."""
    builder = OnboardingBuilder(namespace, algorithm, output_streams, metadata, alias)
    builder.use_key(existing_private_key)
    return builder.build()
