"""Tests for message persistence, live delivery and read receipts."""

import pytest

from chorus_chat.core.errors import NotAuthorized, NotFound, TransientPersistenceFailure, ValidationError
from chorus_chat.models import Message, Notification
from chorus_chat.services.notifications import message_preview


@pytest.mark.asyncio
async def test_send_to_present_recipient_pushes_and_marks_delivered(
    relay, connect, alice, bob, db_session
) -> None:
    alice_conn, alice_socket = connect(alice.id)
    _, bob_socket = connect(bob.id)

    message = await relay.send(
        sender_id=alice.id,
        recipient_id=bob.id,
        content="hello",
        origin=alice_conn,
        client_id="tmp-1",
    )

    assert message.delivered is True
    assert db_session.get(Message, message.id).delivered is True

    pushed = bob_socket.events("receive_message")
    assert len(pushed) == 1
    assert pushed[0]["data"]["content"] == "hello"
    assert pushed[0]["data"]["sender"] == alice.id
    assert pushed[0]["data"]["clientId"] is None

    assert [frame["event"] for frame in alice_socket.sent] == ["receive_message", "delivered"]
    echo, delivered = alice_socket.sent
    assert echo["data"]["id"] == message.id
    assert echo["data"]["clientId"] == "tmp-1"
    assert delivered["data"] == {"messageId": message.id}


@pytest.mark.asyncio
async def test_recipient_receives_new_message_notice(relay, connect, alice, bob) -> None:
    _, bob_socket = connect(bob.id)

    await relay.send(sender_id=alice.id, recipient_id=bob.id, content="hi bob")

    assert [frame["event"] for frame in bob_socket.sent] == ["receive_message", "newMessage"]
    notice = bob_socket.events("newMessage")[0]["data"]
    assert notice == {"senderName": "Alice", "senderAvatar": "https://cdn.test/alice.png"}


@pytest.mark.asyncio
async def test_send_to_absent_recipient_stays_undelivered(
    relay, connect, alice, bob, db_session
) -> None:
    alice_conn, alice_socket = connect(alice.id)

    message = await relay.send(
        sender_id=alice.id, recipient_id=bob.id, content="are you there?", origin=alice_conn
    )

    stored = db_session.get(Message, message.id)
    assert stored.delivered is False
    assert stored.viewed is False
    assert [frame["event"] for frame in alice_socket.sent] == ["receive_message"]

    notification = db_session.query(Notification).filter_by(recipient_id=bob.id).one()
    assert notification.title == "New Message"
    assert notification.body == "Alice: are you there?"
    assert notification.conversation_id == message.conversation_id


@pytest.mark.asyncio
async def test_failed_push_leaves_message_undelivered(relay, connect, alice, bob, db_session) -> None:
    alice_conn, alice_socket = connect(alice.id)
    bob_conn, bob_socket = connect(bob.id)
    bob_socket.send_json.side_effect = RuntimeError("socket gone")

    message = await relay.send(
        sender_id=alice.id, recipient_id=bob.id, content="lost in transit", origin=alice_conn
    )

    assert db_session.get(Message, message.id).delivered is False
    assert bob_conn.closed is True
    assert [frame["event"] for frame in alice_socket.sent] == ["receive_message"]


@pytest.mark.asyncio
async def test_delivery_flag_failure_still_acks_sender(
    relay, repository, connect, alice, bob, mocker
) -> None:
    alice_conn, alice_socket = connect(alice.id)
    _, bob_socket = connect(bob.id)
    mocker.patch.object(
        repository, "mark_delivered", side_effect=TransientPersistenceFailure("db down")
    )

    await relay.send(sender_id=alice.id, recipient_id=bob.id, content="hey", origin=alice_conn)

    assert len(bob_socket.events("receive_message")) == 1
    assert [frame["event"] for frame in alice_socket.sent] == ["receive_message"]


@pytest.mark.asyncio
async def test_storage_failure_delivers_nothing(relay, repository, connect, alice, bob, mocker) -> None:
    _, bob_socket = connect(bob.id)
    mocker.patch.object(
        repository, "append_message", side_effect=TransientPersistenceFailure("db down")
    )

    with pytest.raises(TransientPersistenceFailure):
        await relay.send(sender_id=alice.id, recipient_id=bob.id, content="never stored")

    assert bob_socket.sent == []


@pytest.mark.asyncio
async def test_messages_keep_send_order(relay, repository, alice, bob) -> None:
    sent = []
    for index in range(5):
        sent.append(await relay.send(sender_id=alice.id, recipient_id=bob.id, content=f"m{index}"))
    sent.append(await relay.send(sender_id=bob.id, recipient_id=alice.id, content="reply"))

    history = repository.list_messages(sent[0].conversation_id)

    assert [message.id for message in history] == [message.id for message in sent]
    assert len({message.conversation_id for message in sent}) == 1


@pytest.mark.asyncio
async def test_send_updates_conversation_preview(relay, repository, alice, bob) -> None:
    await relay.send(sender_id=alice.id, recipient_id=bob.id, content="first")
    message = await relay.send(sender_id=bob.id, recipient_id=alice.id, content="second")

    conversation = repository.get_conversation(message.conversation_id)
    assert conversation.last_message == "second"


@pytest.mark.asyncio
async def test_mismatched_conversation_hint_is_ignored(
    relay, repository, alice, bob, carol
) -> None:
    other = repository.get_or_create_conversation(alice.id, carol.id)

    message = await relay.send(
        sender_id=alice.id, recipient_id=bob.id, content="wrong hint", conversation_id=other.id
    )

    assert message.conversation_id != other.id
    assert repository.find_conversation(bob.id, alice.id).id == message.conversation_id


@pytest.mark.asyncio
@pytest.mark.parametrize("content", ["", "   ", "x" * 4001])
async def test_invalid_content_is_rejected(relay, alice, bob, content) -> None:
    with pytest.raises(ValidationError):
        await relay.send(sender_id=alice.id, recipient_id=bob.id, content=content)


@pytest.mark.asyncio
async def test_self_addressed_message_is_rejected(relay, alice) -> None:
    with pytest.raises(ValidationError):
        await relay.send(sender_id=alice.id, recipient_id=alice.id, content="me")


@pytest.mark.asyncio
async def test_unknown_recipient_is_rejected(relay, alice) -> None:
    with pytest.raises(NotFound):
        await relay.send(sender_id=alice.id, recipient_id=999_999, content="anyone?")


@pytest.mark.asyncio
async def test_mark_viewed_notifies_sender_once(relay, connect, alice, bob, db_session) -> None:
    _, alice_socket = connect(alice.id)
    message = await relay.send(sender_id=alice.id, recipient_id=bob.id, content="read me")

    await relay.mark_viewed(message.id, bob.id)
    await relay.mark_viewed(message.id, bob.id)

    stored = db_session.get(Message, message.id)
    assert stored.viewed is True
    assert stored.delivered is True
    assert stored.read_at is not None

    seen = alice_socket.events("seen")
    assert len(seen) == 1
    assert seen[0]["data"]["messageId"] == message.id
    assert seen[0]["data"]["readAt"] is not None


@pytest.mark.asyncio
async def test_only_recipient_can_mark_viewed(relay, alice, bob, carol, db_session) -> None:
    message = await relay.send(sender_id=alice.id, recipient_id=bob.id, content="private")

    for intruder in (alice, carol):
        with pytest.raises(NotAuthorized):
            await relay.mark_viewed(message.id, intruder.id)

    assert db_session.get(Message, message.id).viewed is False


@pytest.mark.asyncio
async def test_mark_viewed_unknown_message(relay, bob) -> None:
    with pytest.raises(NotFound):
        await relay.mark_viewed(123_456, bob.id)


@pytest.mark.asyncio
async def test_read_state_never_goes_backwards(
    relay, repository, connect, alice, bob, db_session
) -> None:
    message = await relay.send(sender_id=alice.id, recipient_id=bob.id, content="offline")
    assert message.delivered is False

    # Read from history before any live delivery happened.
    await relay.mark_viewed(message.id, bob.id)
    read_at = db_session.get(Message, message.id).read_at
    assert read_at is not None

    repository.mark_delivered(message)
    await relay.mark_viewed(message.id, bob.id)
    connect(bob.id)
    await relay.send(sender_id=alice.id, recipient_id=bob.id, content="later")

    db_session.expire_all()
    stored = db_session.get(Message, message.id)
    assert stored.delivered is True
    assert stored.viewed is True
    assert stored.read_at == read_at


def test_message_preview_truncates_long_content() -> None:
    assert message_preview("Alice", "short") == "Alice: short"
    assert message_preview("Alice", "a" * 60) == "Alice: " + "a" * 50 + "..."
    assert message_preview("Alice", "a" * 50) == "Alice: " + "a" * 50
