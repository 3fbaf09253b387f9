"""
hedera_bdd - Behaviour suite for a distributed-ledger SDK

Gherkin scenarios for accounts, consensus topics and token transfers, run by
pytest-bdd against an in-memory stand-in for the public test network.

Usage:
    from hedera_bdd import (
        InMemoryNetwork, PrivateKey, Account, BalanceReconciler,
        create_account, create_token, associate_token,
    )

    network = InMemoryNetwork()
    treasury_key = PrivateKey.generate()
    treasury_id = network.create_genesis_account(treasury_key, 1000)
    client = network.client(treasury_id, treasury_key)
    treasury = Account(treasury_id, treasury_key)

    token_id = create_token(client, treasury, "Test Token", "HTT", decimals=2,
                            initial_supply=1000)
    alice = create_account(client, initial_hbar=10)
    associate_token(client, alice, token_id)

    # Bring alice to exactly 500 HTT (units of 0.01)
    reconciler = BalanceReconciler(client)
    assert reconciler.reconcile(alice.account_id, token_id, 500,
                                treasury_id, treasury_key) == 500
"""

# Core types
from .core import (
    LedgerClient,
    TopicSubscription,
    AccountBalance,
    TokenInfo,
    TopicInfo,
    TopicMessage,
    Receipt,
    Status,
    LedgerError,
    ConservationViolation,
    TransactionFrozen,
    StatusError,
    PrecheckStatusError,
    ReceiptStatusError,
    Unauthorized,
    NotAssociated,
    TINYBARS_PER_HBAR,
    FEE_COLLECTION_ACCOUNT,
    MAX_MESSAGE_BYTES,
    to_tinybars,
    to_hbar,
)

# Keys
from .keys import PrivateKey, PublicKey, KeyList, Key, as_public_key

# Transactions
from .transactions import (
    Transaction,
    SignaturePair,
    TokenTransfer,
    HbarTransfer,
    TransferTransaction,
    TransferIntent,
    AccountCreate,
    AccountDelete,
    TokenCreate,
    TokenAssociate,
    TokenMint,
    TokenBurn,
    TokenFreeze,
    TokenUnfreeze,
    TopicCreate,
    TopicMessageSubmit,
)

# Network
from .network import InMemoryNetwork, Client, Operator, Subscription, TransactionRecord

# Reconciliation
from .reconcile import (
    BalanceReconciler,
    HbarCheck,
    hbar_satisfies,
    reconciling_transfer,
    token_balance,
)

# Step helpers
from .accounts import (
    Account,
    accounts_above_threshold,
    associate_token,
    create_account,
    delete_account,
    hbar_balance,
    transfer_hbar,
)
from .tokens import (
    create_token,
    token_info,
    mint,
    burn,
    freeze,
    unfreeze,
    token_transfer,
    transfer_tokens,
)
from .topics import (
    MessageCollector,
    collect_messages,
    create_topic,
    publish_message,
    threshold_key,
)

# Configuration and scenario state
from .config import Settings, RosterEntry, load_roster, generate_roster, configure_logging
from .context import ScenarioContext, ordinal_index

__all__ = [
    # Core
    'LedgerClient', 'TopicSubscription',
    'AccountBalance', 'TokenInfo', 'TopicInfo', 'TopicMessage', 'Receipt', 'Status',
    'LedgerError', 'ConservationViolation', 'TransactionFrozen',
    'StatusError', 'PrecheckStatusError', 'ReceiptStatusError',
    'Unauthorized', 'NotAssociated',
    'TINYBARS_PER_HBAR', 'FEE_COLLECTION_ACCOUNT', 'MAX_MESSAGE_BYTES',
    'to_tinybars', 'to_hbar',
    # Keys
    'PrivateKey', 'PublicKey', 'KeyList', 'Key', 'as_public_key',
    # Transactions
    'Transaction', 'SignaturePair', 'TokenTransfer', 'HbarTransfer',
    'TransferTransaction', 'TransferIntent',
    'AccountCreate', 'AccountDelete',
    'TokenCreate', 'TokenAssociate', 'TokenMint', 'TokenBurn',
    'TokenFreeze', 'TokenUnfreeze',
    'TopicCreate', 'TopicMessageSubmit',
    # Network
    'InMemoryNetwork', 'Client', 'Operator', 'Subscription', 'TransactionRecord',
    # Reconciliation
    'BalanceReconciler', 'HbarCheck', 'hbar_satisfies',
    'reconciling_transfer', 'token_balance',
    # Step helpers
    'Account', 'accounts_above_threshold', 'associate_token', 'create_account',
    'delete_account', 'hbar_balance', 'transfer_hbar',
    'create_token', 'token_info', 'mint', 'burn', 'freeze', 'unfreeze',
    'token_transfer', 'transfer_tokens',
    'MessageCollector', 'collect_messages', 'create_topic', 'publish_message',
    'threshold_key',
    # Configuration
    'Settings', 'RosterEntry', 'load_roster', 'generate_roster', 'configure_logging',
    'ScenarioContext', 'ordinal_index',
]

__version__ = '1.0.0'
