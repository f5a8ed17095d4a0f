"""Domain events published on the in-process bus."""

from __future__ import annotations

from pydantic import BaseModel


class EventCreated(BaseModel):
    """Fired after a calendar Event is persisted."""

    event_id: str
    user_id: str
    is_hangout: bool = False


class EventDeleted(BaseModel):
    """Fired after an owner deletes one of their events."""

    event_id: str
    user_id: str


class HangoutMatched(BaseModel):
    """Fired once both sides of a hangout match have been notified."""

    event_ids: list[str]
    user_ids: list[str]
    notification_ids: list[str]


class FriendRequestSent(BaseModel):
    from_user_id: str
    to_user_id: str


class MessageSent(BaseModel):
    """Fired when a direct message is stored."""

    message_id: str
    sender_id: str
    receiver_id: str
