"""Tests for direct messaging between friends."""

import pytest

from hangouts.domain.errors import MessageError, PermissionDeniedError
from hangouts.domain.models import NotificationType, conversation_id_for


def test_send_message_creates_message_notification(env):
    alice, bob = env.user("alice", "Alice Ng"), env.user("bob")
    env.befriend(alice, bob)

    message = env.messages.send_message(alice.id, bob.id, "  pizza tonight?  ")

    assert message.content == "pizza tonight?"
    [note] = env.notification_repo.list_for_user(bob.id, NotificationType.MESSAGE)
    assert note.message == "Alice Ng sent you a message"
    assert note.data == {"senderId": alice.id, "messageId": message.id}


def test_only_friends_can_message(env):
    alice, bob = env.user("alice"), env.user("bob")
    with pytest.raises(MessageError):
        env.messages.send_message(alice.id, bob.id, "hi")


def test_blank_message_rejected(env):
    alice, bob = env.user("alice"), env.user("bob")
    env.befriend(alice, bob)
    with pytest.raises(MessageError):
        env.messages.send_message(alice.id, bob.id, "   ")


def test_conversation_is_shared_and_ordered(env):
    alice, bob = env.user("alice"), env.user("bob")
    env.befriend(alice, bob)
    env.messages.send_message(alice.id, bob.id, "one")
    env.messages.send_message(bob.id, alice.id, "two")

    conversation_id = conversation_id_for(bob.id, alice.id)
    assert conversation_id == conversation_id_for(alice.id, bob.id)

    contents = [m.content for m in env.messages.get_conversation_messages(alice.id, conversation_id)]
    assert contents == ["one", "two"]

    [conversation] = env.messages.get_user_conversations(bob.id)
    assert conversation.id == conversation_id
    assert conversation.last_message.content == "two"
    assert conversation.participants == sorted([alice.id, bob.id])


def test_outsiders_cannot_read_a_conversation(env):
    alice, bob, mallory = env.user("alice"), env.user("bob"), env.user("mallory")
    env.befriend(alice, bob)
    env.messages.send_message(alice.id, bob.id, "secret")

    with pytest.raises(PermissionDeniedError):
        env.messages.get_conversation_messages(mallory.id, conversation_id_for(alice.id, bob.id))


def test_mark_conversation_read_only_marks_incoming(env):
    alice, bob = env.user("alice"), env.user("bob")
    env.befriend(alice, bob)
    env.messages.send_message(alice.id, bob.id, "one")
    env.messages.send_message(alice.id, bob.id, "two")
    env.messages.send_message(bob.id, alice.id, "three")
    conversation_id = conversation_id_for(alice.id, bob.id)

    assert env.messages.mark_conversation_read(bob.id, conversation_id) == 2
    assert env.messages.mark_conversation_read(bob.id, conversation_id) == 0
