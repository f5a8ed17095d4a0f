"""Domain event handlers, wired up at application startup."""

from __future__ import annotations

import logging

from hangouts.domain.bus import EventBus
from hangouts.domain.events import (
    EventCreated,
    EventDeleted,
    FriendRequestSent,
    HangoutMatched,
    MessageSent,
)
from hangouts.domain.models import Notification, NotificationType
from hangouts.repos.memory import NotificationRepository, UserRepository

logger = logging.getLogger(__name__)


class HandlerRegistry:
    """Wires domain-event handlers to the bus with access to the repositories."""

    def __init__(
        self,
        bus: EventBus,
        user_repo: UserRepository,
        notification_repo: NotificationRepository,
    ) -> None:
        self.bus = bus
        self.user_repo = user_repo
        self.notification_repo = notification_repo
        self._register()

    def _register(self) -> None:
        self.bus.subscribe(EventCreated, self.on_event_created)
        self.bus.subscribe(EventDeleted, self.on_event_deleted)
        self.bus.subscribe(HangoutMatched, self.on_hangout_matched)
        self.bus.subscribe(FriendRequestSent, self.on_friend_request_sent)
        self.bus.subscribe(MessageSent, self.on_message_sent)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def on_event_created(self, event: EventCreated) -> None:
        logger.debug(
            "Event %s created by %s (hangout=%s)", event.event_id, event.user_id, event.is_hangout
        )

    def on_event_deleted(self, event: EventDeleted) -> None:
        # Match notifications outlive the events they cite; they are not retracted.
        retained = self.notification_repo.list_referencing_event(event.event_id)
        if retained:
            logger.info(
                "Event %s deleted; %d hangout_match notification(s) still reference it",
                event.event_id,
                len(retained),
            )

    def on_hangout_matched(self, event: HangoutMatched) -> None:
        logger.info("Hangout match %s notified to %s", event.event_ids, event.user_ids)

    def on_friend_request_sent(self, event: FriendRequestSent) -> None:
        sender = self.user_repo.get(event.from_user_id)
        who = sender.full_name if sender else "Someone"
        self.notification_repo.add(
            Notification(
                user_id=event.to_user_id,
                type=NotificationType.FRIEND_REQUEST,
                title="New Friend Request",
                message=f"{who} sent you a friend request",
                data={"senderId": event.from_user_id},
            )
        )

    def on_message_sent(self, event: MessageSent) -> None:
        sender = self.user_repo.get(event.sender_id)
        who = sender.full_name if sender else "Someone"
        self.notification_repo.add(
            Notification(
                user_id=event.receiver_id,
                type=NotificationType.MESSAGE,
                title="New Message",
                message=f"{who} sent you a message",
                data={"senderId": event.sender_id, "messageId": event.message_id},
            )
        )
