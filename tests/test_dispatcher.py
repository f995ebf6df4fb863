"""Tests for the persist-then-fan-out dispatcher."""
import asyncio

import pytest

from relay_chat.server.database import SessionLocal
from relay_chat.server.dispatcher import RelayDispatcher
from relay_chat.server.errors import InvalidMessage, NotFound, StorageError
from relay_chat.server.history import HistoryService
from relay_chat.server.registry import ChannelRegistry
from relay_chat.server.store import MessageStore

from conftest import FakeConnection


class BrokenStore(MessageStore):
    def append(self, sender_id, receiver_id, content):
        raise StorageError("storage unreachable")


class UnreadableStore(MessageStore):
    def fetch_by_id(self, message_id):
        raise NotFound(f"Message {message_id} not found")


@pytest.fixture
def channels():
    return ChannelRegistry()


@pytest.fixture
def store():
    return MessageStore(SessionLocal)


def test_send_delivers_canonical_record_to_both_users(store, channels, alice, bob):
    alice_conn, bob_conn = FakeConnection(), FakeConnection()
    channels.join(alice, alice_conn)
    channels.join(bob, bob_conn)

    asyncio.run(RelayDispatcher(store, channels).send(alice, bob, "hi"))

    assert len(alice_conn.sent) == 1
    assert alice_conn.sent == bob_conn.sent
    event = bob_conn.sent[0]
    assert event["event"] == "receiveMessage"
    data = event["data"]
    assert data["content"] == "hi"
    assert data["sender_id"] == alice
    assert data["receiver_id"] == bob
    assert data["sender_name"] == "alice"
    assert set(data) == {"id", "content", "created_at", "sender_id", "receiver_id", "sender_name"}


def test_send_then_history_has_exactly_one_new_record(store, channels, alice, bob):
    history = HistoryService(store)
    before = history.get_conversation(alice, bob)

    message = asyncio.run(RelayDispatcher(store, channels).send(alice, bob, "hello bob"))

    after = history.get_conversation(alice, bob)
    new = [m for m in after if m.id not in {b.id for b in before}]
    assert len(new) == 1
    assert (new[0].content, new[0].sender_id, new[0].receiver_id) == ("hello bob", alice, bob)
    assert new[0] == message


@pytest.mark.parametrize("content", ["", "   ", "\n\t"])
def test_blank_content_is_rejected_without_side_effects(store, channels, alice, bob, content):
    bob_conn = FakeConnection()
    channels.join(bob, bob_conn)

    with pytest.raises(InvalidMessage):
        asyncio.run(RelayDispatcher(store, channels).send(alice, bob, content))

    assert bob_conn.sent == []
    assert store.fetch_conversation(alice, bob) == []


def test_storage_failure_delivers_nothing(channels, alice, bob):
    alice_conn, bob_conn = FakeConnection(), FakeConnection()
    channels.join(alice, alice_conn)
    channels.join(bob, bob_conn)

    with pytest.raises(StorageError):
        asyncio.run(RelayDispatcher(BrokenStore(SessionLocal), channels).send(alice, bob, "hi"))

    assert alice_conn.sent == []
    assert bob_conn.sent == []


def test_readback_failure_abandons_delivery_but_keeps_row(channels, alice, bob):
    bob_conn = FakeConnection()
    channels.join(bob, bob_conn)
    store = UnreadableStore(SessionLocal)

    with pytest.raises(NotFound):
        asyncio.run(RelayDispatcher(store, channels).send(alice, bob, "hi"))

    assert bob_conn.sent == []
    assert [m.content for m in store.fetch_conversation(alice, bob)] == ["hi"]


def test_offline_receiver_still_gets_message_through_history(store, channels, alice, bob):
    alice_conn = FakeConnection()
    channels.join(alice, alice_conn)

    message = asyncio.run(RelayDispatcher(store, channels).send(alice, bob, "are you there?"))

    assert len(alice_conn.sent) == 1
    assert [m.id for m in HistoryService(store).get_conversation(alice, bob)] == [message.id]


def test_message_to_self_is_delivered_once(store, channels, alice):
    conn = FakeConnection()
    channels.join(alice, conn)

    asyncio.run(RelayDispatcher(store, channels).send(alice, alice, "note to self"))

    assert len(conn.sent) == 1


def test_successive_sends_keep_their_order(store, channels, alice, bob):
    bob_conn = FakeConnection()
    channels.join(bob, bob_conn)
    dispatcher = RelayDispatcher(store, channels)

    async def send_all():
        for text in ("one", "two", "three"):
            await dispatcher.send(alice, bob, text)

    asyncio.run(send_all())

    assert [e["data"]["content"] for e in bob_conn.sent] == ["one", "two", "three"]
    assert [m.content for m in store.fetch_conversation(alice, bob)] == ["one", "two", "three"]


def test_concurrent_sends_are_all_persisted_and_delivered(store, channels, alice, bob):
    bob_conn = FakeConnection()
    channels.join(bob, bob_conn)
    dispatcher = RelayDispatcher(store, channels)

    async def send_all():
        return await asyncio.gather(*[dispatcher.send(alice, bob, f"m{n}") for n in range(50)])

    sent = asyncio.run(send_all())

    assert len({m.id for m in sent}) == 50
    assert len(bob_conn.sent) == 50
    assert len(store.fetch_conversation(alice, bob)) == 50
