"""
test_context.py - Unit tests for scenario state
"""

import pytest

from hedera_bdd import (
    Account, InMemoryNetwork, PrivateKey, ScenarioContext, Settings,
    TokenMint, collect_messages, create_topic, ordinal_index, publish_message,
)


@pytest.fixture
def ctx():
    network = InMemoryNetwork()
    key = PrivateKey.generate()
    account_id = network.create_genesis_account(key, 100)
    return ScenarioContext(client=network.client(account_id, key), settings=Settings())


class TestOrdinals:

    @pytest.mark.parametrize("word, index", [
        ("first", 1), ("Second", 2), (" third ", 3), ("fourth", 4), ("fifth", 5),
    ])
    def test_known_words(self, word, index):
        assert ordinal_index(word) == index

    def test_unknown_word(self):
        with pytest.raises(ValueError, match="sixth"):
            ordinal_index("sixth")


class TestScenarioContext:
    """Tests for the per-scenario record."""

    def test_accounts_by_ordinal(self, ctx):
        account = Account("0.0.7", PrivateKey.generate())
        assert ctx.set_account(2, account) is account
        assert ctx.account(2) is account

    def test_missing_account(self, ctx):
        with pytest.raises(LookupError, match="#3"):
            ctx.account(3)

    @pytest.mark.parametrize("method", ["require_treasury", "require_token", "require_topic"])
    def test_missing_requirements(self, ctx, method):
        with pytest.raises(LookupError):
            getattr(ctx, method)()

    def test_requirements_when_present(self, ctx):
        ctx.token_id = "0.0.1500"
        ctx.topic_id = "0.0.1501"
        assert ctx.require_token() == "0.0.1500"
        assert ctx.require_topic() == "0.0.1501"

    def test_take_pending_clears(self, ctx):
        tx = TokenMint(token_id="0.0.1500", amount=1)
        ctx.pending = tx
        assert ctx.take_pending() is tx
        assert ctx.pending is None
        with pytest.raises(LookupError):
            ctx.take_pending()

    def test_contexts_do_not_share_state(self, ctx):
        other = ScenarioContext(client=ctx.client, settings=ctx.settings)
        ctx.set_account(1, Account("0.0.7", PrivateKey.generate()))
        ctx.hbar_before["0.0.7"] = 1
        assert other.accounts == {}
        assert other.hbar_before == {}

    def test_close_unsubscribes_collector(self, ctx):
        topic_id = create_topic(ctx.client, "ctx")
        ctx.collector = collect_messages(ctx.client, topic_id)
        ctx.close()
        publish_message(ctx.client, topic_id, "after close")
        assert ctx.collector.messages == []
        assert ctx.collector.subscription is None

    def test_close_without_collector(self, ctx):
        ctx.close()
