"""Domain models for the hangout scheduler."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import StrEnum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class EventType(StrEnum):
    PERSONAL = "personal"
    HANGOUT = "hangout"


class NotificationType(StrEnum):
    FRIEND_REQUEST = "friend_request"
    HANGOUT_MATCH = "hangout_match"
    MESSAGE = "message"


class NotifyStatus(StrEnum):
    DELIVERED = "delivered"
    PARTIAL = "partial"
    FAILED = "failed"
    DUPLICATE = "duplicate"


class OperationStatus(StrEnum):
    OK = "ok"
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    INVALID = "invalid"
    STORE_UNAVAILABLE = "store_unavailable"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


def _assume_utc(moment: datetime | None) -> datetime | None:
    """Naive timestamps are read as UTC so they compare with aware ones."""
    if moment is not None and moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class FriendRequests(BaseModel):
    sent: list[str] = Field(default_factory=list)
    received: list[str] = Field(default_factory=list)


class User(BaseModel):
    id: str = Field(default_factory=_new_id)
    email: str
    username: str
    full_name: str
    avatar: str | None = None
    friends: list[str] = Field(default_factory=list)
    friend_requests: FriendRequests = Field(default_factory=FriendRequests)
    created_at: datetime = Field(default_factory=_utcnow)


# ---------------------------------------------------------------------------
# Calendar events
# ---------------------------------------------------------------------------


class HangoutPreferences(BaseModel):
    activity_suggestions: list[str] = Field(default_factory=list)
    budget_limit: float | None = Field(default=None, ge=0)
    max_travel_distance: float | None = Field(default=None, ge=0)


class Event(BaseModel):
    id: str = Field(default_factory=_new_id)
    user_id: str
    title: str
    description: str | None = None
    start_time: datetime
    end_time: datetime
    type: EventType = EventType.PERSONAL
    created_at: datetime = Field(default_factory=_utcnow)
    # Hangout-only fields; None on personal events.
    preferences: HangoutPreferences | None = None
    visibility: Literal["friends"] | None = None

    @field_validator("start_time", "end_time")
    @classmethod
    def _utc_times(cls, value: datetime | None) -> datetime | None:
        return _assume_utc(value)

    @model_validator(mode="after")
    def _end_after_start(self) -> Event:
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self

    @property
    def is_hangout(self) -> bool:
        return self.type == EventType.HANGOUT


class Overlap(BaseModel):
    """Intersection of two time ranges. Zero-length (start == end) is valid."""

    start: datetime
    end: datetime


class NewMatch(BaseModel):
    """An overlap found by the detector that has not been notified yet."""

    user_a: str
    user_b: str
    overlap: Overlap
    event_ids: list[str]


class HangoutMatch(BaseModel):
    id: str
    users: list[str]
    overlapping_time: Overlap
    hangout_events: list[str]
    created_at: datetime


class FriendHangout(BaseModel):
    event: Event
    friend: User


class HangoutOverlap(BaseModel):
    user_event: Event
    friend_event: Event
    friend: User
    overlap: Overlap


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------


class MatchPayload(BaseModel):
    """Structured ``data`` of a hangout_match notification (camelCase on the wire)."""

    model_config = ConfigDict(populate_by_name=True)

    matched_user_id: str = Field(alias="matchedUserId")
    overlapping_time: Overlap = Field(alias="overlappingTime")
    hangout_events: list[str] = Field(alias="hangoutEvents")


class Notification(BaseModel):
    id: str = Field(default_factory=_new_id)
    user_id: str
    type: NotificationType
    title: str
    message: str = ""
    data: dict | None = None
    read: bool = False
    created_at: datetime = Field(default_factory=_utcnow)

    def references_events(self, *event_ids: str) -> bool:
        """True when ``data['hangoutEvents']`` lists every given event id."""
        listed = (self.data or {}).get("hangoutEvents") or []
        return all(event_id in listed for event_id in event_ids)


class NotifyResult(BaseModel):
    status: NotifyStatus
    match: NewMatch
    notification_ids: list[str] = Field(default_factory=list)
    missing_user_ids: list[str] = Field(default_factory=list)
    error: str | None = None


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------


class Message(BaseModel):
    id: str = Field(default_factory=_new_id)
    sender_id: str
    receiver_id: str
    content: str
    timestamp: datetime = Field(default_factory=_utcnow)
    read: bool = False

    @property
    def conversation_id(self) -> str:
        return conversation_id_for(self.sender_id, self.receiver_id)


class Conversation(BaseModel):
    id: str
    participants: list[str]
    messages: list[Message] = Field(default_factory=list)
    last_message: Message | None = None
    updated_at: datetime


def conversation_id_for(first_user_id: str, second_user_id: str) -> str:
    return "_".join(sorted([first_user_id, second_user_id]))


# ---------------------------------------------------------------------------
# Request / Response DTOs
# ---------------------------------------------------------------------------


class RegisterUserRequest(BaseModel):
    email: str = Field(min_length=3)
    username: str = Field(min_length=1)
    full_name: str = Field(min_length=1)
    avatar: str | None = None


class CreateEventRequest(BaseModel):
    title: str = Field(min_length=1)
    description: str | None = None
    start_time: datetime
    end_time: datetime
    type: EventType = EventType.PERSONAL
    preferences: HangoutPreferences | None = None

    @field_validator("start_time", "end_time")
    @classmethod
    def _utc_times(cls, value: datetime | None) -> datetime | None:
        return _assume_utc(value)

    @model_validator(mode="after")
    def _end_after_start(self) -> CreateEventRequest:
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


# Event fields an update may change but never clear.
REQUIRED_EVENT_FIELDS = ("title", "start_time", "end_time")


class UpdateEventRequest(BaseModel):
    """Partial update. Fields left out are unchanged; ``description`` and
    ``preferences`` may be cleared with an explicit null, the rest may not."""

    title: str | None = Field(default=None, min_length=1)
    description: str | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    preferences: HangoutPreferences | None = None

    @field_validator("start_time", "end_time")
    @classmethod
    def _utc_times(cls, value: datetime | None) -> datetime | None:
        return _assume_utc(value)

    @model_validator(mode="after")
    def _no_null_required_fields(self) -> UpdateEventRequest:
        for name in REQUIRED_EVENT_FIELDS:
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        if self.start_time and self.end_time and self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class SendMessageRequest(BaseModel):
    receiver_id: str
    content: str


class CreateEventOutcome(BaseModel):
    event: Event | None = None
    matches: list[NewMatch] = Field(default_factory=list)
    partial_failures: list[NotifyResult] = Field(default_factory=list)
    error: str | None = None
