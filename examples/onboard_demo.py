# examples/onboard_demo.py
# Run with: poetry run python examples/onboard_demo.py
#
# Builds onboarding transactions with a generated key and with an existing
# key, then shows that tampering breaks verification.

import json

from ledgertx import (
    TransactionVerifier,
    build_with_generated_key,
    build_with_provided_key,
    generate,
)


if __name__ == "__main__":
    verifier = TransactionVerifier()

    # 1. Fresh identity: the returned key pair is the only copy of the private key
    tx, key_pair = build_with_generated_key(
        "default",
        "ed25519",
        output_streams=[("profile", {"name": "alice"})],
        metadata={"app": "demo"},
    )
    print("Generated-key transaction:")
    print(json.dumps(tx.to_dict(), indent=2))
    print(f"Payload sha256: {tx.payload.sha256()}")
    print(verifier.verify(tx))

    # 2. Key the caller already holds
    existing = generate("rsa")
    tx2 = build_with_provided_key("default", existing.private_pem(), "rsa", [], {})
    print("\nProvided-key transaction signed with", tx2.signature.algorithm.value)
    print(verifier.verify(tx2.to_json()))

    # 3. Tampering
    forged = tx.to_dict()
    forged["$o"]["profile"]["name"] = "mallory"
    print("\nAfter tampering with $o:")
    print(verifier.verify(json.dumps(forged)))
