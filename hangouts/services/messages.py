"""Direct messages between friends."""

from __future__ import annotations

import logging

from hangouts.domain.bus import EventBus
from hangouts.domain.errors import MessageError, NotFoundError, PermissionDeniedError
from hangouts.domain.events import MessageSent
from hangouts.domain.models import Conversation, Message
from hangouts.repos.memory import MessageRepository, UserRepository

logger = logging.getLogger(__name__)


class MessageService:
    def __init__(
        self, user_repo: UserRepository, message_repo: MessageRepository, bus: EventBus
    ) -> None:
        self.user_repo = user_repo
        self.message_repo = message_repo
        self.bus = bus

    def send_message(self, sender_id: str, receiver_id: str, content: str) -> Message:
        content = content.strip()
        if not content:
            raise MessageError("Message content cannot be empty")

        sender = self.user_repo.get(sender_id)
        if sender is None or self.user_repo.get(receiver_id) is None:
            raise NotFoundError("Sender or receiver not found")
        if receiver_id not in sender.friends:
            raise MessageError("You can only message friends")

        message = Message(sender_id=sender_id, receiver_id=receiver_id, content=content)
        self.message_repo.add(message)
        logger.info("Message %s in conversation %s", message.id, message.conversation_id)

        self.bus.publish(
            MessageSent(message_id=message.id, sender_id=sender_id, receiver_id=receiver_id)
        )
        return message

    def get_conversation_messages(self, user_id: str, conversation_id: str) -> list[Message]:
        """Messages oldest first. Only participants may read a conversation."""
        if user_id not in conversation_id.split("_"):
            raise PermissionDeniedError("Not a participant of this conversation")
        return self.message_repo.list_for_conversation(conversation_id)

    def get_user_conversations(self, user_id: str) -> list[Conversation]:
        """Conversations the user takes part in, most recent activity first."""
        grouped: dict[str, list[Message]] = {}
        for message in self.message_repo.list_for_user(user_id):
            grouped.setdefault(message.conversation_id, []).append(message)

        conversations = []
        for conversation_id, messages in grouped.items():
            messages.sort(key=lambda m: m.timestamp)
            last = messages[-1]
            conversations.append(
                Conversation(
                    id=conversation_id,
                    participants=sorted({last.sender_id, last.receiver_id}),
                    messages=messages,
                    last_message=last,
                    updated_at=last.timestamp,
                )
            )
        conversations.sort(key=lambda c: c.updated_at, reverse=True)
        return conversations

    def mark_conversation_read(self, user_id: str, conversation_id: str) -> int:
        """Mark messages addressed to *user_id* as read; returns how many changed."""
        messages = self.get_conversation_messages(user_id, conversation_id)
        return self.message_repo.mark_read(
            m.id for m in messages if m.receiver_id == user_id and not m.read
        )
