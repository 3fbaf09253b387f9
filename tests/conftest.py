"""
conftest.py - Shared pytest fixtures for the behaviour suite

Provides common fixtures used across unit tests and scenario steps:
- Settings and the account roster (from HEDERA_BDD_* variables, or defaults)
- A fresh InMemoryNetwork per test with the roster pre-funded
- A client whose operator is the treasury (the holding account)
- A reconciler and a ScenarioContext for pytest-bdd steps
- A small token world for tests that need associated holders
"""

import logging

import pytest

from hedera_bdd import (
    BalanceReconciler, InMemoryNetwork, ScenarioContext, Settings,
)

from tests.worlds import build_world


def pytest_configure(config):
    settings = Settings.from_env()
    logging.getLogger("hedera_bdd").setLevel(settings.log_level)


# =============================================================================
# CONFIGURATION AND ROSTER
# =============================================================================

@pytest.fixture
def settings():
    """Suite settings; unset environment variables keep their defaults."""
    return Settings.from_env()


@pytest.fixture
def roster_entries(settings):
    entries = settings.roster()
    if len(entries) < 2:
        pytest.skip("scenarios need at least two roster accounts")
    return entries


@pytest.fixture
def roster(roster_entries):
    """Roster accounts in configured order."""
    return [entry.account for entry in roster_entries]


# =============================================================================
# NETWORK AND CLIENT
# =============================================================================

@pytest.fixture
def network(settings, roster_entries):
    """Fresh network with every roster account funded at genesis."""
    network = InMemoryNetwork(
        settings.network_name,
        transaction_fee=settings.transaction_fee,
        verbose=settings.verbose,
    )
    for entry in roster_entries:
        network.create_genesis_account(entry.private_key, entry.hbar, account_id=entry.account_id)
    return network


@pytest.fixture
def treasury(roster):
    """The holding account: counterparty of every reconciliation."""
    return roster[0]


@pytest.fixture
def client(network, treasury):
    return network.client(treasury.account_id, treasury.private_key)


@pytest.fixture
def reconciler(client):
    return BalanceReconciler(client)


@pytest.fixture
def context(client, settings, treasury):
    """Scenario-scoped state handed to every pytest-bdd step."""
    ctx = ScenarioContext(client=client, settings=settings, treasury=treasury)
    yield ctx
    ctx.close()


# =============================================================================
# TOKEN WORLDS
# =============================================================================

@pytest.fixture
def world():
    """Treasury holding 10,000 HTT and two associated holders at zero."""
    return build_world()


@pytest.fixture
def freezable_world():
    return build_world(freeze_key=True)
