"""
Example: Reconciling holder balances against a treasury.

This example walks through the balance reconciler on an in-memory network:
a treasury issues a token, holders are brought to target balances (top-up,
draw-down, no-op), and an unauthorized attempt fails without moving anything.
Every consensus-reached transaction is printed as a box (verbose=True).
"""

from decimal import Decimal

from hedera_bdd import (
    Account, BalanceReconciler, InMemoryNetwork, PrivateKey, Unauthorized,
    associate_token, configure_logging, create_account, create_token, token_balance,
)


def main():
    configure_logging("INFO")

    print("=" * 80)
    print("TREASURY RECONCILIATION - Top-up, Draw-down and No-op")
    print("=" * 80)
    print()

    network = InMemoryNetwork("demo", verbose=True)
    treasury_key = PrivateKey.generate()
    treasury_id = network.create_genesis_account(treasury_key, Decimal("1000"))
    treasury = Account(treasury_id, treasury_key)
    client = network.client(treasury_id, treasury_key)

    token_id = create_token(
        client, treasury, "Test Token", "HTT",
        decimals=2, initial_supply=10_000,
        admin_key=treasury_key, supply_key=treasury_key,
    )
    alice = create_account(client, 10)
    associate_token(client, alice, token_id)
    reconciler = BalanceReconciler(client)

    def show():
        print(f"Treasury HTT balance: {token_balance(client, treasury_id, token_id):,}")
        print(f"Alice HTT balance:    {token_balance(client, alice.account_id, token_id):,}")
        print()

    print()
    print("Example 1: Top-up")
    print("-" * 80)
    print("Alice holds nothing; the treasury sends her 500.")
    reconciler.reconcile(alice.account_id, token_id, 500, treasury_id, treasury_key)
    show()

    print("Example 2: Draw-down")
    print("-" * 80)
    print("Alice should hold 200; the surplus of 300 returns to the treasury.")
    print("A draw-down debits Alice, so her key signs too.")
    reconciler.reconcile(alice.account_id, token_id, 200, treasury_id, treasury_key,
                         account_key=alice.private_key)
    show()

    print("Example 3: No-op")
    print("-" * 80)
    print("Alice already holds 200; nothing is submitted.")
    logged = len(network.transaction_log)
    reconciler.reconcile(alice.account_id, token_id, 200, treasury_id, treasury_key)
    print(f"Transactions submitted: {len(network.transaction_log) - logged}")
    print()

    print("Example 4: Unauthorized treasury key")
    print("-" * 80)
    print("Paid by Alice and signed with a key that does not control the treasury.")
    alice_client = client.with_operator(alice.account_id, alice.private_key)
    try:
        BalanceReconciler(alice_client).reconcile(
            alice.account_id, token_id, 900, treasury_id, PrivateKey.generate(),
        )
    except Unauthorized as exc:
        print(f"Rejected with {exc.status}")
    show()

    report = network.verify_double_entry()
    print("=" * 80)
    print(f"Conservation holds: {report['valid']}")
    print(f"Supplies: {report['supplies']}")
    print("=" * 80)


if __name__ == "__main__":
    main()
