# tests/test_builder.py
import pytest

from ledgertx.core.types import Stream
from ledgertx.crypto import keys
from ledgertx.crypto.keys import Algorithm
from ledgertx.crypto.signing import decode_signature, verify_signature
from ledgertx.errors import (
    DuplicateStreamAlias,
    InvalidKeyMaterial,
    TransactionSealed,
    UnsupportedAlgorithm,
)
from ledgertx.onboard.builder import (
    OnboardingBuilder,
    OnboardState,
    build_with_generated_key,
    build_with_provided_key,
)


def signature_verifies(tx, key_pair) -> bool:
    return verify_signature(
        tx.payload,
        decode_signature(tx.signature.value),
        keys.encode_public_key(key_pair),
    )


def test_generated_key_onboarding():
    tx, key_pair = build_with_generated_key("onboard", "ed25519", [], {})

    assert key_pair.algorithm is Algorithm.ED25519
    assert len(tx.document.inputs) == 1
    stream = tx.document.self_stream
    assert stream.metadata["publicKey"] == keys.encode_public_key(key_pair).pem
    assert stream.metadata["type"] == "ed25519"
    assert tx.signature.alias == stream.alias
    assert signature_verifies(tx, key_pair)


def test_generated_key_wire_form():
    tx, key_pair = build_with_generated_key("default", "secp256k1", [], {})
    d = tx.to_dict()
    assert d["$namespace"] == "default"
    assert d["$contract"] == "onboard"
    assert list(d["$i"]) == ["identity"]
    assert d["$i"]["identity"]["publicKey"] == key_pair.public_pem()
    assert d["$o"] == {}
    assert d["$meta"] == {}
    assert d["$sig"]["alias"] == "identity"
    assert d["$sig"]["algorithm"] == "secp256k1"


def test_self_stream_wire_shape():
    tx, key_pair = build_with_generated_key("default", "secp256k1", [("profile", {"name": "a"})], {})
    d = tx.to_dict()
    assert d["$i"]["identity"] == {"publicKey": key_pair.public_pem(), "type": "secp256k1"}
    assert d["$o"]["profile"] == {"name": "a"}


def test_default_algorithm():
    tx, key_pair = build_with_generated_key("default")
    assert key_pair.algorithm is Algorithm.SECP256K1
    assert signature_verifies(tx, key_pair)


@pytest.mark.parametrize("algorithm", ["secp256k1", "rsa", "ed25519"])
def test_provided_key_onboarding(algorithm):
    existing = keys.generate(algorithm)
    tx = build_with_provided_key("default", existing.private_pem(), algorithm, [], {})
    assert tx.document.self_stream.metadata["publicKey"] == existing.public_pem()
    assert signature_verifies(tx, existing)


def test_provided_key_malformed():
    with pytest.raises(InvalidKeyMaterial):
        build_with_provided_key("default", "not-a-key", "secp256k1", [], {})


def test_malformed_key_leaves_builder_at_start():
    builder = OnboardingBuilder("default", "ed25519")
    with pytest.raises(InvalidKeyMaterial):
        builder.use_key("not-a-key")
    assert builder.state is OnboardState.START
    assert builder.key_pair is None
    assert builder.document is None


def test_unsupported_algorithm():
    with pytest.raises(UnsupportedAlgorithm):
        build_with_generated_key("default", "ed448", [], {})


def test_outputs_and_metadata():
    outputs = [
        ("profile", {"name": "alice", "role": "admin"}),
        Stream(alias="ledger", stream_id="abc123", metadata={"k": "v"}),
        "empty",
    ]
    tx, key_pair = build_with_generated_key("default", "ed25519", outputs, {"app": "test"})

    assert list(tx.document.outputs) == ["profile", "ledger", "empty"]
    assert tx.document.outputs["ledger"].stream_id == "abc123"
    assert tx.document.outputs["empty"].metadata == {}
    assert tx.document.metadata == {"app": "test"}
    assert signature_verifies(tx, key_pair)


def test_duplicate_output_alias_aborts():
    builder = OnboardingBuilder("default", "ed25519", [("a", {}), ("a", {})])
    builder.generate_key()
    with pytest.raises(DuplicateStreamAlias):
        builder.build()
    assert builder.state is OnboardState.KEY_READY


def test_custom_alias():
    tx, _ = build_with_generated_key("default", "ed25519", alias="alice")
    assert list(tx.document.inputs) == ["alice"]
    assert tx.signature.alias == "alice"


def test_state_progression():
    builder = OnboardingBuilder("default", "ed25519")
    assert builder.state is OnboardState.START
    builder.generate_key()
    assert builder.state is OnboardState.KEY_READY
    builder.build_document()
    assert builder.state is OnboardState.DOCUMENT_BUILT
    builder.canonicalize()
    assert builder.state is OnboardState.PAYLOAD_CANONICALIZED
    tx = builder.sign()
    assert builder.state is OnboardState.SIGNED
    assert tx.payload == builder.payload


def test_steps_out_of_order():
    builder = OnboardingBuilder("default", "ed25519")
    with pytest.raises(ValueError):
        builder.sign()
    with pytest.raises(ValueError):
        builder.build_document()
    builder.generate_key()
    with pytest.raises(ValueError):
        builder.generate_key()


def test_signed_builder_cannot_rerun():
    builder = OnboardingBuilder("default", "ed25519")
    builder.generate_key()
    builder.build()
    with pytest.raises(ValueError):
        builder.sign()


def test_signed_document_is_sealed():
    tx, _ = build_with_generated_key("default", "ed25519")
    with pytest.raises(TransactionSealed):
        tx.document.set_metadata("late", "edit")


def test_separate_builds_use_separate_keys():
    tx1, kp1 = build_with_generated_key("default", "ed25519")
    tx2, kp2 = build_with_generated_key("default", "ed25519")
    assert kp1.public_key_bytes != kp2.public_key_bytes
    assert tx1.payload != tx2.payload
