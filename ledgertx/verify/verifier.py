# ledgertx/verify/verifier.py
from dataclasses import dataclass, field
from typing import List, Optional, Union

from ledgertx.core.canon import SignedTransaction, canonicalize, parse_signed
from ledgertx.core.types import (
    KEY_TYPE_FIELD,
    ONBOARD_CONTRACT,
    PUBLIC_KEY_FIELD,
    Signature,
    TransactionDocument,
)
from ledgertx.crypto.keys import Algorithm, PublicKeyEncoding
from ledgertx.crypto.signing import decode_signature, verify_signature
from ledgertx.errors import InvalidKeyMaterial, MalformedTransaction, UnsupportedAlgorithm


@dataclass
class VerificationFailure:
    message: str
    category: str = "general"  # "structure", "key", "signature", "payload"


@dataclass
class VerificationResult:
    is_valid: bool
    message: str = ""
    failures: List[VerificationFailure] = field(default_factory=list)

    @property
    def first_failure(self) -> Optional[VerificationFailure]:
        return self.failures[0] if self.failures else None

    def fail(self, message: str, category: str) -> "VerificationResult":
        self.failures.append(VerificationFailure(message, category))
        self.is_valid = False
        return self

    def __bool__(self):
        return self.is_valid

    def summarize(self) -> "VerificationResult":
        self.message = "Valid transaction" if self.is_valid else f"Failed with {len(self.failures)} issues"
        return self

    def __str__(self):
        if self.is_valid:
            return "Transaction is valid ✓"
        lines = [f"Verification FAILED ({len(self.failures)} issues):"]
        for f in self.failures:
            lines.append(f"  • {f.category}: {f.message}")
        return "\n".join(lines)


class TransactionVerifier:
    """
    Offline check of a signed onboarding transaction: the signature must
    verify against the public key embedded in the signing input stream,
    over the payload re-derived from the document.
    """

    def __init__(self, contract: str = ONBOARD_CONTRACT):
        self.contract = contract

    def verify_parts(self, document: TransactionDocument, signature: Signature) -> VerificationResult:
        result = VerificationResult(True)
        self._check(document, signature, result)
        return result.summarize()

    def _check(self, document: TransactionDocument, signature: Signature, result: VerificationResult) -> None:
        if document.contract != self.contract:
            result.fail(f"Expected contract '{self.contract}', got '{document.contract}'", "structure")
        if len(document.inputs) != 1:
            result.fail(f"Expected exactly one input stream, got {len(document.inputs)}", "structure")
            return

        stream = document.inputs.get(signature.alias)
        if stream is None:
            result.fail(f"Signature alias '{signature.alias}' is not an input stream", "signature")
            return

        pem = stream.metadata.get(PUBLIC_KEY_FIELD)
        key_type = stream.metadata.get(KEY_TYPE_FIELD)
        if pem is None or key_type is None:
            result.fail(f"Input stream '{stream.alias}' lacks '{PUBLIC_KEY_FIELD}'/'{KEY_TYPE_FIELD}'", "key")
            return

        try:
            algorithm = Algorithm.parse(key_type)
        except UnsupportedAlgorithm as e:
            result.fail(e.message, "key")
            return
        if algorithm is not Algorithm.parse(signature.algorithm):
            result.fail(
                f"Stream key type '{algorithm.value}' does not match signature algorithm "
                f"'{Algorithm.parse(signature.algorithm).value}'",
                "key",
            )
            return

        try:
            signature_bytes = decode_signature(signature.value)
        except ValueError as e:
            result.fail(f"Undecodable signature: {e}", "signature")
            return

        payload = canonicalize(document)
        try:
            ok = verify_signature(payload, signature_bytes, PublicKeyEncoding(algorithm, pem))
        except InvalidKeyMaterial as e:
            result.fail(f"Key loading failed: {e.message}", "key")
            return
        if not ok:
            result.fail("Invalid signature", "signature")

    def verify(self, tx: Union[SignedTransaction, str, bytes]) -> VerificationResult:
        """Verify a SignedTransaction or its transmitted JSON form."""
        if isinstance(tx, SignedTransaction):
            result = VerificationResult(True)
            self._check(tx.document, tx.signature, result)
            if result.is_valid and canonicalize(tx.document) != tx.payload:
                result.fail("Stored payload differs from the document", "payload")
            return result.summarize()

        try:
            document, signature = parse_signed(tx)
        except MalformedTransaction as e:
            result = VerificationResult(True).fail(e.message, "structure")
            return result.summarize()
        return self.verify_parts(document, signature)
