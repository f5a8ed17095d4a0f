"""In-memory repositories standing in for the external document store.

Each repository guards its dict with a lock so the thread-pooled API routes
see consistent reads and writes: reads filter a snapshot of the values taken
under the lock. Records are handed out by reference, so read-modify-write
sequences on them are serialised by the calling service. Any of these methods
may raise ``StoreUnavailableError`` in a networked implementation; callers
handle it.
"""

from __future__ import annotations

import threading
from typing import Any, Iterable

from hangouts.domain.models import (
    Event,
    EventType,
    Message,
    Notification,
    NotificationType,
    User,
)


class UserRepository:
    """Dict-backed store for User profiles, keyed by id."""

    def __init__(self) -> None:
        self._store: dict[str, User] = {}
        self._lock = threading.Lock()

    def _values(self) -> list[User]:
        with self._lock:
            return list(self._store.values())

    def add(self, user: User) -> str:
        with self._lock:
            self._store[user.id] = user
        return user.id

    def save(self, user: User) -> None:
        with self._lock:
            self._store[user.id] = user

    def get(self, user_id: str) -> User | None:
        with self._lock:
            return self._store.get(user_id)

    def get_many(self, user_ids: Iterable[str]) -> list[User]:
        wanted = list(user_ids)
        with self._lock:
            return [self._store[uid] for uid in wanted if uid in self._store]

    def list_all(self) -> list[User]:
        return self._values()

    def find_by_username(self, username: str) -> User | None:
        username = username.lower()
        return next((u for u in self._values() if u.username.lower() == username), None)

    def find_by_email(self, email: str) -> User | None:
        email = email.lower()
        return next((u for u in self._values() if u.email.lower() == email), None)

    def get_friends(self, user_id: str) -> list[User]:
        user = self.get(user_id)
        if user is None:
            return []
        return self.get_many(list(user.friends))


class EventRepository:
    """Dict-backed store for calendar Events, keyed by id."""

    def __init__(self) -> None:
        self._store: dict[str, Event] = {}
        self._lock = threading.Lock()

    def _values(self) -> list[Event]:
        with self._lock:
            return list(self._store.values())

    def add(self, event: Event) -> str:
        with self._lock:
            self._store[event.id] = event
        return event.id

    def get(self, event_id: str) -> Event | None:
        with self._lock:
            return self._store.get(event_id)

    def update(self, event_id: str, changes: dict[str, Any]) -> Event | None:
        """Apply *changes* without re-running model validation."""
        with self._lock:
            current = self._store.get(event_id)
            if current is None:
                return None
            updated = current.model_copy(update=changes)
            self._store[event_id] = updated
            return updated

    def delete(self, event_id: str) -> bool:
        with self._lock:
            return self._store.pop(event_id, None) is not None

    def list_all(self) -> list[Event]:
        return self._values()

    def list_for_user(self, user_id: str) -> list[Event]:
        return [e for e in self._values() if e.user_id == user_id]

    def list_for_users(
        self, user_ids: Iterable[str], event_type: EventType | None = None
    ) -> list[Event]:
        wanted = set(user_ids)
        return [
            e
            for e in self._values()
            if e.user_id in wanted and (event_type is None or e.type == event_type)
        ]


class NotificationRepository:
    """Dict-backed store for Notifications plus the hangout-match pair index.

    A pair stays claimed while any hangout_match notification cites it;
    deleting the last one frees the pair again.
    """

    def __init__(self) -> None:
        self._store: dict[str, Notification] = {}
        self._claimed_pairs: set[frozenset[str]] = set()
        self._lock = threading.Lock()

    def _values(self) -> list[Notification]:
        with self._lock:
            return list(self._store.values())

    def add(self, notification: Notification) -> str:
        with self._lock:
            self._store[notification.id] = notification
        return notification.id

    def get(self, notification_id: str) -> Notification | None:
        with self._lock:
            return self._store.get(notification_id)

    def list_for_user(
        self,
        user_id: str,
        notification_type: NotificationType | None = None,
        limit: int | None = None,
    ) -> list[Notification]:
        """Return the user's notifications, newest first."""
        items = sorted(
            (
                n
                for n in self._values()
                if n.user_id == user_id
                and (notification_type is None or n.type == notification_type)
            ),
            key=lambda n: n.created_at,
            reverse=True,
        )
        return items[:limit] if limit is not None else items

    def list_referencing_event(self, event_id: str) -> list[Notification]:
        return [
            n
            for n in self._values()
            if n.type == NotificationType.HANGOUT_MATCH and n.references_events(event_id)
        ]

    def mark_read(self, notification_id: str) -> bool:
        with self._lock:
            notification = self._store.get(notification_id)
            if notification is None:
                return False
            notification.read = True
            return True

    def mark_all_read(self, user_id: str) -> int:
        with self._lock:
            unread = [
                n for n in self._store.values() if n.user_id == user_id and not n.read
            ]
            for notification in unread:
                notification.read = True
            return len(unread)

    def delete(self, notification_id: str) -> bool:
        with self._lock:
            removed = self._store.pop(notification_id, None)
            if removed is None:
                return False
            self._release_orphaned_pairs([removed])
            return True

    def clear_for_user(self, user_id: str) -> int:
        with self._lock:
            doomed = [n for n in self._store.values() if n.user_id == user_id]
            for notification in doomed:
                del self._store[notification.id]
            self._release_orphaned_pairs(doomed)
            return len(doomed)

    # -- hangout-match uniqueness ------------------------------------------

    def claim_match(self, event_ids: Iterable[str]) -> bool:
        """Atomically reserve an unordered event pair.

        Returns False when the pair was already claimed.
        """
        key = frozenset(event_ids)
        with self._lock:
            if key in self._claimed_pairs:
                return False
            self._claimed_pairs.add(key)
            return True

    def release_match(self, event_ids: Iterable[str]) -> None:
        with self._lock:
            self._claimed_pairs.discard(frozenset(event_ids))

    def is_claimed(self, event_ids: Iterable[str]) -> bool:
        with self._lock:
            return frozenset(event_ids) in self._claimed_pairs

    def _release_orphaned_pairs(self, removed: list[Notification]) -> None:
        # Caller holds the lock.
        for notification in removed:
            if notification.type != NotificationType.HANGOUT_MATCH:
                continue
            pair = frozenset((notification.data or {}).get("hangoutEvents") or [])
            if pair not in self._claimed_pairs:
                continue
            still_cited = any(
                n.type == NotificationType.HANGOUT_MATCH and n.references_events(*pair)
                for n in self._store.values()
            )
            if not still_cited:
                self._claimed_pairs.discard(pair)


class MessageRepository:
    """Dict-backed store for direct Messages, keyed by id."""

    def __init__(self) -> None:
        self._store: dict[str, Message] = {}
        self._lock = threading.Lock()

    def _values(self) -> list[Message]:
        with self._lock:
            return list(self._store.values())

    def add(self, message: Message) -> str:
        with self._lock:
            self._store[message.id] = message
        return message.id

    def get(self, message_id: str) -> Message | None:
        with self._lock:
            return self._store.get(message_id)

    def list_for_conversation(self, conversation_id: str) -> list[Message]:
        return sorted(
            (m for m in self._values() if m.conversation_id == conversation_id),
            key=lambda m: m.timestamp,
        )

    def list_for_user(self, user_id: str) -> list[Message]:
        return [
            m for m in self._values() if m.sender_id == user_id or m.receiver_id == user_id
        ]

    def mark_read(self, message_ids: Iterable[str]) -> int:
        with self._lock:
            count = 0
            for message_id in message_ids:
                message = self._store.get(message_id)
                if message is not None and not message.read:
                    message.read = True
                    count += 1
            return count
