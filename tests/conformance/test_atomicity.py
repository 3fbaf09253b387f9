"""
Atomicity Conformance Tests

INVARIANT: Transactions are all-or-nothing.

    ∀ transaction T past precheck:
        T succeeds ⟹ every leg of T is applied
        T fails ⟹ no leg of T is applied (only the fee is charged)

Each handler validates the whole transaction before it applies anything.
"""

from decimal import Decimal

from hypothesis import given, settings
from hypothesis import strategies as st

from hedera_bdd import (
    AccountCreate, PrivateKey, Status, TokenAssociate, TransferIntent,
    associate_token, create_account, create_token,
)

from tests.worlds import build_world


class TestAtomicityProperties:
    """Property-based atomicity tests."""

    @given(st.integers(min_value=2, max_value=6), st.integers(min_value=0, max_value=5))
    @settings(max_examples=30, deadline=None)
    def test_multi_party_all_or_nothing(self, num_recipients, broken_index):
        """
        PROPERTY: A multi-party transfer with one unassociated recipient
        applies none of its legs.
        """
        broken_index %= num_recipients
        world = build_world(holders=num_recipients)
        stranger = create_account(world.client, 1)
        recipients = list(world.holders)
        recipients[broken_index] = stranger

        intent = TransferIntent()
        intent.add_token_transfer(world.token_id, world.treasury.account_id, -10 * num_recipients)
        for account in recipients:
            intent.add_token_transfer(world.token_id, account.account_id, 10)
        receipt = world.client.execute(intent.freeze())

        assert receipt.status is Status.TOKEN_NOT_ASSOCIATED_TO_ACCOUNT
        assert world.balance(world.treasury) == 10_000
        assert all(world.balance(account) == 0 for account in world.holders)

    @given(st.integers(min_value=1, max_value=4))
    @settings(max_examples=20, deadline=None)
    def test_one_overdrawn_sender_blocks_every_leg(self, num_senders):
        """
        PROPERTY: If any sender lacks the balance, nobody's balance moves.
        """
        world = build_world(holders=num_senders + 1)
        senders, receiver = world.holders[:-1], world.holders[-1]
        for sender in senders:
            world.reconciler.reconcile(sender.account_id, world.token_id, 100,
                                       world.treasury.account_id, world.treasury.private_key)

        intent = TransferIntent()
        for sender in senders:
            intent.add_token_transfer(world.token_id, sender.account_id, -100)
        intent.add_token_transfer(world.token_id, senders[-1].account_id, -1)
        intent.add_token_transfer(world.token_id, receiver.account_id, 100 * num_senders + 1)
        tx = intent.freeze().sign_all(sender.private_key for sender in senders)

        assert world.client.execute(tx).status is Status.INSUFFICIENT_TOKEN_BALANCE
        assert all(world.balance(sender) == 100 for sender in senders)
        assert world.balance(receiver) == 0


class TestAtomicityEdgeCases:
    """Specific failure modes that must not leave partial state."""

    def test_missing_signature_applies_nothing(self):
        world = build_world(holders=2)
        alice, bob = world.holders
        world.reconciler.reconcile(alice.account_id, world.token_id, 50,
                                   world.treasury.account_id, world.treasury.private_key)
        intent = TransferIntent()
        intent.add_token_transfer(world.token_id, world.treasury.account_id, -10)
        intent.add_token_transfer(world.token_id, alice.account_id, -10)
        intent.add_token_transfer(world.token_id, bob.account_id, 20)
        # Only the operator (treasury) signs; alice's debit is unauthorized
        receipt = world.client.execute(intent.freeze())
        assert receipt.status is Status.INVALID_SIGNATURE
        assert (world.balance(world.treasury), world.balance(alice), world.balance(bob)) == (9_950, 50, 0)

    def test_mixed_hbar_and_token_transfer_fails_together(self):
        world = build_world(holders=1)
        holder = world.holders[0]
        intent = TransferIntent()
        intent.add_token_transfer(world.token_id, world.treasury.account_id, -5)
        intent.add_token_transfer(world.token_id, holder.account_id, 5)
        intent.add_hbar_transfer(holder.account_id, Decimal("-50"))
        intent.add_hbar_transfer(world.treasury.account_id, Decimal("50"))
        tx = intent.freeze().sign(holder.private_key)

        assert world.client.execute(tx).status is Status.INSUFFICIENT_ACCOUNT_BALANCE
        assert world.balance(holder) == 0
        assert world.client.get_account_balance(holder.account_id).hbars == Decimal("10")

    def test_failed_associate_of_several_tokens_associates_none(self):
        world = build_world(holders=0)
        account = create_account(world.client, 1)
        associate_token(world.client, account, world.token_id)
        other_id = create_token(world.client, world.treasury, "Other", "OTH")

        tx = TokenAssociate(
            account_id=account.account_id, token_ids=(other_id, world.token_id),
        ).sign(account.private_key)
        assert world.client.execute(tx).status is Status.TOKEN_ALREADY_ASSOCIATED_TO_ACCOUNT
        assert not world.network.is_associated(account.account_id, other_id)

    def test_failed_account_create_creates_nothing(self):
        world = build_world(holders=0)
        before = world.network.list_accounts()
        receipt = world.client.execute(
            AccountCreate(key=PrivateKey.generate(), initial_balance=5000)
        )
        assert receipt.status is Status.INSUFFICIENT_PAYER_BALANCE
        assert receipt.account_id is None
        assert world.network.list_accounts() == before
