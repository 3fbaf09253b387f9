"""
topics.py - Consensus topic wrappers used by the step definitions
"""

from __future__ import annotations
import logging
import time
from typing import Iterable, List, Optional, Union

from .core import LedgerClient, Receipt, TopicMessage, TopicSubscription
from .keys import Key, KeyList, PrivateKey, PublicKey, as_public_key
from .transactions import TopicCreate, TopicMessageSubmit

logger = logging.getLogger(__name__)


def threshold_key(keys: Iterable[Union[PrivateKey, PublicKey]], threshold: int) -> KeyList:
    """M-of-N key list over the public halves of keys."""
    return KeyList([as_public_key(key) for key in keys], threshold=threshold)


def create_topic(
    client: LedgerClient,
    memo: str = "",
    submit_key: Optional[Union[Key, PrivateKey]] = None,
    admin_key: Optional[PrivateKey] = None,
) -> str:
    """Create a topic and return its id. An admin key also signs the create."""
    tx = TopicCreate(
        topic_memo=memo,
        submit_key=as_public_key(submit_key) if submit_key is not None else None,
        admin_key=admin_key.public_key if admin_key else None,
    )
    if admin_key is not None:
        tx = tx.sign(admin_key)
    receipt = client.execute(tx).raise_for_status()
    logger.info("Created topic %s (memo %r)", receipt.topic_id, memo)
    return receipt.topic_id


def publish_message(
    client: LedgerClient,
    topic_id: str,
    message: Union[str, bytes],
    signers: Iterable[PrivateKey] = (),
) -> Receipt:
    """
    Submit one message. signers add to the operator's signature, for topics
    whose submit key the operator alone does not satisfy.
    """
    tx = TopicMessageSubmit(topic_id=topic_id, message=message).sign_all(signers)
    receipt = client.execute(tx).raise_for_status()
    logger.info("Published message #%s to %s", receipt.topic_sequence_number, topic_id)
    return receipt


class MessageCollector:
    """Accumulates what a topic subscription delivers."""

    def __init__(self):
        self.messages: List[TopicMessage] = []
        self.errors: List[BaseException] = []
        self.subscription: Optional[TopicSubscription] = None

    def on_message(self, message: TopicMessage) -> None:
        logger.info("Received message #%d on %s: %s", message.sequence_number, message.topic_id, message.text())
        self.messages.append(message)

    def on_error(self, error: BaseException) -> None:
        logger.warning("Subscription error: %s", error)
        self.errors.append(error)

    def texts(self) -> List[str]:
        return [message.text() for message in self.messages]

    def wait_for(self, count: int, timeout: float, poll_interval: float = 0.05) -> bool:
        """Block until at least count messages arrived or timeout seconds passed."""
        deadline = time.monotonic() + timeout
        while len(self.messages) < count:
            if time.monotonic() >= deadline:
                return False
            time.sleep(poll_interval)
        return True

    def unsubscribe(self) -> None:
        if self.subscription is not None:
            self.subscription.unsubscribe()
            self.subscription = None


def collect_messages(client: LedgerClient, topic_id: str) -> MessageCollector:
    """Subscribe to topic_id and return a collector receiving every message."""
    collector = MessageCollector()
    collector.subscription = client.subscribe_topic(topic_id, collector.on_message, collector.on_error)
    return collector
