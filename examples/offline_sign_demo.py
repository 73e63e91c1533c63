# examples/offline_sign_demo.py
# Run with: python examples/offline_sign_demo.py
#
# No node needed: builds, signs and verifies a transfer locally,
# then shows that editing any signed field is detected.

from dataclasses import replace
from decimal import Decimal

from octra import AccountState, KeyMaterial, TransactionIntent, TransactionVerifier
from octra.core.canon import canonical_json_str, envelope_json
from octra.crypto.hashing import transaction_digest
from octra.tx.builder import build_transaction, fee_for


if __name__ == "__main__":
    print("=" * 70)
    print("OCTRA OFFLINE SIGNING DEMO")
    print("=" * 70)
    print()

    # Step 1: Keys
    sender = KeyMaterial.generate()
    receiver = KeyMaterial.generate()
    print("1. Generated two wallets")
    print(f"   sender:   {sender.address}")
    print(f"   receiver: {receiver.address}")
    print()

    # Step 2: Build against a pretend snapshot
    snapshot = AccountState(balance=Decimal("250"), nonce=4)
    intent = TransactionIntent(to=receiver.address, amount="12.345678", message="lunch")
    unsigned = build_transaction(intent, snapshot, sender.address)
    print("2. Built transfer from snapshot balance=250 nonce=4")
    print(f"   amount (micro): {unsigned.amount}")
    print(f"   nonce:          {unsigned.nonce}")
    print(f"   fee tier:       ou={unsigned.ou} ({fee_for(intent.amount)} oct)")
    print()

    # Step 3: Signing bytes
    print("3. Bytes covered by the signature (message excluded):")
    print(f"   {canonical_json_str(unsigned)}")
    print(f"   digest: {transaction_digest(unsigned)}")
    print()

    # Step 4: Sign
    signed = sender.sign_transaction(unsigned)
    print("4. Envelope ready for POST /send-tx:")
    print(f"   {envelope_json(signed)}")
    print()

    # Step 5: Verify
    verifier = TransactionVerifier(expected_address=sender.address)
    result = verifier.verify(signed)
    print("5. Verifying envelope...")
    print("-" * 50)
    print(f"   Result: {result}")
    print()

    # Step 6: Tamper detection
    print("6. Demonstrating tamper detection...")
    print("-" * 50)
    tampered = replace(signed, tx=replace(signed.tx, amount="99000000"))
    tampered_result = verifier.verify(tampered)
    print(f"   Original amount: {signed.tx.amount}")
    print(f"   Tampered amount: {tampered.tx.amount}")
    print(f"   Verification: {tampered_result}")
    print(f"   Tampering detected: {not tampered_result.is_valid}")
    print()

    sender.discard()
    receiver.discard()
    print("=" * 70)
    print("DEMO COMPLETE")
    print("=" * 70)
