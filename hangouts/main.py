"""FastAPI application: entry point for the hangout scheduler service."""

from __future__ import annotations

import logging
from datetime import date

from fastapi import FastAPI, Header, HTTPException, Query

from hangouts.config import get_settings
from hangouts.domain.bus import EventBus
from hangouts.domain.errors import (
    FriendshipError,
    HangoutsError,
    MessageError,
    NotFoundError,
    PermissionDeniedError,
    StoreUnavailableError,
)
from hangouts.domain.handlers import HandlerRegistry
from hangouts.domain.models import (
    Conversation,
    CreateEventOutcome,
    CreateEventRequest,
    Event,
    FriendHangout,
    HangoutMatch,
    HangoutOverlap,
    Message,
    Notification,
    NotificationType,
    OperationStatus,
    RegisterUserRequest,
    SendMessageRequest,
    UpdateEventRequest,
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

settings = get_settings()
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name)

# ── Singletons (created at import time for simplicity) ────────────────
event_bus = EventBus()
user_repo = UserRepository()
event_repo = EventRepository()
notification_repo = NotificationRepository()
message_repo = MessageRepository()

handler_registry = HandlerRegistry(
    bus=event_bus,
    user_repo=user_repo,
    notification_repo=notification_repo,
)

match_notifier = MatchNotifier(
    notification_repo=notification_repo,
    user_repo=user_repo,
    bus=event_bus,
    title=settings.match_notification_title,
)
calendar_service = CalendarEventService(
    user_repo=user_repo,
    event_repo=event_repo,
    notification_repo=notification_repo,
    notifier=match_notifier,
    bus=event_bus,
    tz=settings.tzinfo,
)
friend_service = FriendService(user_repo=user_repo, bus=event_bus)
notification_service = NotificationService(
    notification_repo=notification_repo,
    list_limit=settings.notification_list_limit,
)
message_service = MessageService(user_repo=user_repo, message_repo=message_repo, bus=event_bus)
logger.info("%s wired (timezone=%s)", settings.app_name, settings.timezone)

_STATUS_CODES = {
    OperationStatus.NOT_FOUND: (404, "Event not found"),
    OperationStatus.FORBIDDEN: (403, "Only the owner can change this event"),
    OperationStatus.INVALID: (422, "end_time must be after start_time"),
    OperationStatus.STORE_UNAVAILABLE: (503, "Event store unavailable"),
}


def _http_error(exc: HangoutsError) -> HTTPException:
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail=exc.message)
    if isinstance(exc, PermissionDeniedError):
        return HTTPException(status_code=403, detail=exc.message)
    if isinstance(exc, StoreUnavailableError):
        return HTTPException(status_code=503, detail=exc.message)
    if isinstance(exc, (FriendshipError, MessageError)):
        return HTTPException(status_code=400, detail=exc.message)
    return HTTPException(status_code=500, detail=exc.message)


def _check_status(status: OperationStatus) -> None:
    if status != OperationStatus.OK:
        code, detail = _STATUS_CODES[status]
        raise HTTPException(status_code=code, detail=detail)


# ── Routes: users & friends ───────────────────────────────────────────


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


@app.post("/users", response_model=User, status_code=201)
def register_user(payload: RegisterUserRequest) -> User:
    """Create a profile. Credentials live with the external auth provider."""
    try:
        return friend_service.register_user(payload)
    except HangoutsError as exc:
        raise _http_error(exc) from exc


@app.get("/users/search", response_model=list[User])
def search_users(q: str, x_user_id: str = Header()) -> list[User]:
    return friend_service.search_users(q, x_user_id)


@app.get("/users/{user_id}", response_model=User)
def get_user(user_id: str) -> User:
    try:
        return friend_service.get_user(user_id)
    except HangoutsError as exc:
        raise _http_error(exc) from exc


@app.get("/friends", response_model=list[User])
def list_friends(x_user_id: str = Header()) -> list[User]:
    try:
        return friend_service.get_friends(x_user_id)
    except HangoutsError as exc:
        raise _http_error(exc) from exc


@app.post("/friend-requests/{target_id}")
def send_friend_request(target_id: str, x_user_id: str = Header()) -> dict:
    try:
        friend_service.send_friend_request(x_user_id, target_id)
    except HangoutsError as exc:
        raise _http_error(exc) from exc
    return {"status": "sent"}


@app.post("/friend-requests/{requester_id}/accept")
def accept_friend_request(requester_id: str, x_user_id: str = Header()) -> dict:
    try:
        friend_service.accept_friend_request(x_user_id, requester_id)
    except HangoutsError as exc:
        raise _http_error(exc) from exc
    return {"status": "accepted"}


@app.post("/friend-requests/{requester_id}/reject")
def reject_friend_request(requester_id: str, x_user_id: str = Header()) -> dict:
    try:
        friend_service.reject_friend_request(x_user_id, requester_id)
    except HangoutsError as exc:
        raise _http_error(exc) from exc
    return {"status": "rejected"}


@app.delete("/friends/{friend_id}")
def remove_friend(friend_id: str, x_user_id: str = Header()) -> dict:
    try:
        friend_service.remove_friend(x_user_id, friend_id)
    except HangoutsError as exc:
        raise _http_error(exc) from exc
    return {"status": "removed"}


@app.get("/friends/{friend_id}/events", response_model=list[Event])
def list_friend_events(
    friend_id: str, hangouts_only: bool = False, x_user_id: str = Header()
) -> list[Event]:
    if hangouts_only:
        return calendar_service.get_friend_hangouts(x_user_id, friend_id)
    return calendar_service.get_friend_events(x_user_id, friend_id)


# ── Routes: calendar ──────────────────────────────────────────────────


@app.post("/events", response_model=CreateEventOutcome, status_code=201)
def create_event(payload: CreateEventRequest, x_user_id: str = Header()) -> CreateEventOutcome:
    """Create an event. Hangouts are matched against friends' hangouts inline."""
    outcome = calendar_service.create_event(x_user_id, payload)
    if outcome.event is None:
        raise HTTPException(status_code=503, detail=outcome.error)
    return outcome


@app.get("/events", response_model=list[Event])
def list_events(x_user_id: str = Header()) -> list[Event]:
    return calendar_service.get_user_events(x_user_id)


@app.get("/events/{event_id}", response_model=Event)
def get_event(event_id: str, x_user_id: str = Header()) -> Event:
    event = calendar_service.get_event(x_user_id, event_id)
    if event is None:
        raise HTTPException(status_code=404, detail="Event not found")
    return event


@app.patch("/events/{event_id}", response_model=Event)
def update_event(
    event_id: str, payload: UpdateEventRequest, x_user_id: str = Header()
) -> Event:
    status, event = calendar_service.update_event(x_user_id, event_id, payload)
    _check_status(status)
    return event


@app.delete("/events/{event_id}")
def delete_event(event_id: str, x_user_id: str = Header()) -> dict:
    _check_status(calendar_service.delete_event(x_user_id, event_id))
    return {"status": "deleted"}


@app.get("/events/{event_id}/overlap", response_model=HangoutOverlap | None)
def check_event_overlap(event_id: str, x_user_id: str = Header()) -> HangoutOverlap | None:
    return calendar_service.check_event_overlap(x_user_id, event_id)


@app.get("/hangouts/friends", response_model=list[FriendHangout])
def list_friend_hangouts(x_user_id: str = Header()) -> list[FriendHangout]:
    return calendar_service.get_all_friend_hangouts(x_user_id)


@app.get("/hangouts/overlaps", response_model=list[HangoutOverlap])
def overlapping_hangouts(
    on: date = Query(alias="date"), x_user_id: str = Header()
) -> list[HangoutOverlap]:
    """Live recomputation for the given calendar day."""
    return calendar_service.get_overlapping_hangouts(x_user_id, on)


@app.get("/hangouts/matches", response_model=list[HangoutMatch])
def hangout_matches(x_user_id: str = Header()) -> list[HangoutMatch]:
    """Matches as recorded in the user's hangout_match notifications."""
    return calendar_service.get_hangout_matches(x_user_id)


# ── Routes: notifications ─────────────────────────────────────────────


@app.get("/notifications", response_model=list[Notification])
def list_notifications(
    type: NotificationType | None = None, x_user_id: str = Header()
) -> list[Notification]:
    return notification_service.list_notifications(x_user_id, type)


@app.get("/notifications/unread-count")
def unread_count(x_user_id: str = Header()) -> dict:
    return {"unread": notification_service.unread_count(x_user_id)}


@app.post("/notifications/read-all")
def mark_all_read(x_user_id: str = Header()) -> dict:
    return {"updated": notification_service.mark_all_as_read(x_user_id)}


@app.post("/notifications/{notification_id}/read", response_model=Notification)
def mark_read(notification_id: str, x_user_id: str = Header()) -> Notification:
    try:
        return notification_service.mark_as_read(x_user_id, notification_id)
    except HangoutsError as exc:
        raise _http_error(exc) from exc


@app.delete("/notifications/{notification_id}")
def delete_notification(notification_id: str, x_user_id: str = Header()) -> dict:
    try:
        notification_service.delete_notification(x_user_id, notification_id)
    except HangoutsError as exc:
        raise _http_error(exc) from exc
    return {"status": "deleted"}


@app.delete("/notifications")
def clear_notifications(x_user_id: str = Header()) -> dict:
    return {"deleted": notification_service.clear_all_notifications(x_user_id)}


# ── Routes: messages ──────────────────────────────────────────────────


@app.post("/messages", response_model=Message, status_code=201)
def send_message(payload: SendMessageRequest, x_user_id: str = Header()) -> Message:
    try:
        return message_service.send_message(x_user_id, payload.receiver_id, payload.content)
    except HangoutsError as exc:
        raise _http_error(exc) from exc


@app.get("/conversations", response_model=list[Conversation])
def list_conversations(x_user_id: str = Header()) -> list[Conversation]:
    return message_service.get_user_conversations(x_user_id)


@app.get("/conversations/{conversation_id}/messages", response_model=list[Message])
def conversation_messages(conversation_id: str, x_user_id: str = Header()) -> list[Message]:
    try:
        return message_service.get_conversation_messages(x_user_id, conversation_id)
    except HangoutsError as exc:
        raise _http_error(exc) from exc


@app.post("/conversations/{conversation_id}/read")
def mark_conversation_read(conversation_id: str, x_user_id: str = Header()) -> dict:
    try:
        updated = message_service.mark_conversation_read(x_user_id, conversation_id)
    except HangoutsError as exc:
        raise _http_error(exc) from exc
    return {"updated": updated}
