"""Shared fixtures: a fresh bus, repositories and services per test."""

from __future__ import annotations

from datetime import datetime

import pytest

from hangouts.domain.bus import EventBus
from hangouts.domain.handlers import HandlerRegistry
from hangouts.domain.models import (
    CreateEventRequest,
    CreateEventOutcome,
    EventType,
    RegisterUserRequest,
    User,
)
from hangouts.repos.memory import (
    EventRepository,
    MessageRepository,
    NotificationRepository,
    UserRepository,
)
from hangouts.services.calendar import CalendarEventService
from hangouts.services.friends import FriendService
from hangouts.services.messages import MessageService
from hangouts.services.notifications import NotificationService
from hangouts.services.notifier import MatchNotifier


class Env:
    """Wires the services the way ``hangouts.main`` does, over fresh repositories."""

    def __init__(
        self,
        user_repo: UserRepository | None = None,
        event_repo: EventRepository | None = None,
        notification_repo: NotificationRepository | None = None,
    ) -> None:
        self.bus = EventBus()
        self.user_repo = user_repo or UserRepository()
        self.event_repo = event_repo or EventRepository()
        self.notification_repo = notification_repo or NotificationRepository()
        self.message_repo = MessageRepository()
        self.registry = HandlerRegistry(
            bus=self.bus, user_repo=self.user_repo, notification_repo=self.notification_repo
        )
        self.notifier = MatchNotifier(
            notification_repo=self.notification_repo, user_repo=self.user_repo, bus=self.bus
        )
        self.calendar = CalendarEventService(
            user_repo=self.user_repo,
            event_repo=self.event_repo,
            notification_repo=self.notification_repo,
            notifier=self.notifier,
            bus=self.bus,
        )
        self.friends = FriendService(user_repo=self.user_repo, bus=self.bus)
        self.notifications = NotificationService(notification_repo=self.notification_repo)
        self.messages = MessageService(
            user_repo=self.user_repo, message_repo=self.message_repo, bus=self.bus
        )

    def user(self, username: str, full_name: str | None = None) -> User:
        return self.friends.register_user(
            RegisterUserRequest(
                email=f"{username}@example.com",
                username=username,
                full_name=full_name or username.title(),
            )
        )

    def befriend(self, first: User, second: User) -> None:
        self.friends.send_friend_request(first.id, second.id)
        self.friends.accept_friend_request(second.id, first.id)

    def hangout(self, user: User, start: datetime, end: datetime, title: str = "Hangout") -> CreateEventOutcome:
        return self.calendar.create_event(
            user.id,
            CreateEventRequest(title=title, start_time=start, end_time=end, type=EventType.HANGOUT),
        )


@pytest.fixture()
def env() -> Env:
    return Env()
