"""Calendar event orchestration: event CRUD plus hangout matching."""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone, tzinfo

from hangouts.domain.bus import EventBus
from hangouts.domain.errors import StoreUnavailableError
from hangouts.domain.events import EventCreated, EventDeleted
from hangouts.domain.models import (
    REQUIRED_EVENT_FIELDS,
    CreateEventOutcome,
    CreateEventRequest,
    Event,
    EventType,
    FriendHangout,
    HangoutMatch,
    HangoutOverlap,
    HangoutPreferences,
    NewMatch,
    NotificationType,
    NotifyStatus,
    OperationStatus,
    UpdateEventRequest,
    User,
)
from hangouts.repos.memory import EventRepository, NotificationRepository, UserRepository
from hangouts.services.match_query import get_hangout_matches
from hangouts.services.matching import detect_matches
from hangouts.services.notifier import MatchNotifier
from hangouts.services.overlap import event_overlap

logger = logging.getLogger(__name__)

CREATE_FAILED = "Failed to create event"
DETECT_FAILED = "Failed to detect hangout matches"
NOTIFY_FAILED = "Failed to notify every hangout match"


class CalendarEventService:
    """Owns event CRUD and runs hangout matching inline on hangout creation.

    Every method takes the acting user's id explicitly. Store failures are
    caught here: writes report them through their return value, reads log
    them and return an empty result.
    """

    def __init__(
        self,
        user_repo: UserRepository,
        event_repo: EventRepository,
        notification_repo: NotificationRepository,
        notifier: MatchNotifier,
        bus: EventBus,
        tz: tzinfo = timezone.utc,
    ) -> None:
        self.user_repo = user_repo
        self.event_repo = event_repo
        self.notification_repo = notification_repo
        self.notifier = notifier
        self.bus = bus
        self.tz = tz

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_event(self, user_id: str, request: CreateEventRequest) -> CreateEventOutcome:
        """Persist a new event; for hangouts, detect and notify matches.

        Order: persist event -> fetch friends -> fetch friend hangouts ->
        fetch existing match notifications -> detect -> notify each match.
        """
        is_hangout = request.type == EventType.HANGOUT
        event = Event(
            user_id=user_id,
            title=request.title,
            description=request.description,
            start_time=request.start_time,
            end_time=request.end_time,
            type=request.type,
            preferences=(request.preferences or HangoutPreferences()) if is_hangout else None,
            visibility="friends" if is_hangout else None,
        )

        try:
            self.event_repo.add(event)
        except StoreUnavailableError as exc:
            logger.error("Could not persist event for %s: %s", user_id, exc.message)
            return CreateEventOutcome(error=CREATE_FAILED)

        logger.info("Created %s event %s for %s", event.type, event.id, user_id)
        self.bus.publish(EventCreated(event_id=event.id, user_id=user_id, is_hangout=is_hangout))

        if not is_hangout:
            return CreateEventOutcome(event=event)

        matches, error = self._check_for_hangout_matches(event)
        outcome = CreateEventOutcome(event=event, error=error)
        for match in matches:
            result = self.notifier.notify(match)
            if result.status == NotifyStatus.DELIVERED:
                outcome.matches.append(match)
            elif result.status in (NotifyStatus.PARTIAL, NotifyStatus.FAILED):
                outcome.partial_failures.append(result)

        if outcome.partial_failures and outcome.error is None:
            outcome.error = NOTIFY_FAILED
        return outcome

    def update_event(
        self, user_id: str, event_id: str, request: UpdateEventRequest
    ) -> tuple[OperationStatus, Event | None]:
        """Apply an owner's changes and return the stored result.

        Existing matches are left as they are. A change that would leave the
        event ending at or before its start is refused with ``INVALID``.
        """
        changes = {
            field: value
            for field in request.model_fields_set
            if (value := getattr(request, field)) is not None
            or field not in REQUIRED_EVENT_FIELDS
        }
        try:
            event = self.event_repo.get(event_id)
            if event is None:
                return OperationStatus.NOT_FOUND, None
            if event.user_id != user_id:
                return OperationStatus.FORBIDDEN, None
            if not event.is_hangout:
                changes.pop("preferences", None)

            start = changes.get("start_time", event.start_time)
            end = changes.get("end_time", event.end_time)
            if _as_utc(end) <= _as_utc(start):
                logger.info("Refused update of event %s: end_time not after start_time", event_id)
                return OperationStatus.INVALID, None

            updated = self.event_repo.update(event_id, changes)
        except StoreUnavailableError as exc:
            logger.error("Could not update event %s: %s", event_id, exc.message)
            return OperationStatus.STORE_UNAVAILABLE, None

        if updated is None:
            return OperationStatus.NOT_FOUND, None
        logger.info("Updated event %s (%s)", event_id, ", ".join(sorted(changes)) or "no changes")
        return OperationStatus.OK, updated

    def delete_event(self, user_id: str, event_id: str) -> OperationStatus:
        """Delete an owner's event. Match notifications that cite it are kept."""
        try:
            event = self.event_repo.get(event_id)
            if event is None:
                return OperationStatus.NOT_FOUND
            if event.user_id != user_id:
                return OperationStatus.FORBIDDEN
            self.event_repo.delete(event_id)
        except StoreUnavailableError as exc:
            logger.error("Could not delete event %s: %s", event_id, exc.message)
            return OperationStatus.STORE_UNAVAILABLE

        self.bus.publish(EventDeleted(event_id=event_id, user_id=user_id))
        return OperationStatus.OK

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_event(self, user_id: str, event_id: str) -> Event | None:
        """Return an event visible to the user: their own or a friend's."""
        try:
            event = self.event_repo.get(event_id)
            if event is None:
                return None
            if event.user_id == user_id or event.user_id in self._friend_ids(user_id):
                return event
        except StoreUnavailableError as exc:
            logger.error("Could not load event %s: %s", event_id, exc.message)
        return None

    def get_user_events(self, user_id: str) -> list[Event]:
        try:
            events = self.event_repo.list_for_user(user_id)
        except StoreUnavailableError as exc:
            logger.error("Could not load events for %s: %s", user_id, exc.message)
            return []
        return sorted(events, key=lambda e: _as_utc(e.start_time))

    def get_friend_events(self, user_id: str, friend_id: str) -> list[Event]:
        return self._events_of_friend(user_id, friend_id, event_type=None)

    def get_friend_hangouts(self, user_id: str, friend_id: str) -> list[Event]:
        return self._events_of_friend(user_id, friend_id, event_type=EventType.HANGOUT)

    def get_all_friend_hangouts(self, user_id: str) -> list[FriendHangout]:
        """Every friend hangout paired with its owner, earliest first."""
        try:
            friends = self.user_repo.get_friends(user_id)
            by_id = {friend.id: friend for friend in friends}
            hangouts = self.event_repo.list_for_users(by_id, EventType.HANGOUT)
        except StoreUnavailableError as exc:
            logger.error("Could not load friend hangouts for %s: %s", user_id, exc.message)
            return []

        pairs = [FriendHangout(event=event, friend=by_id[event.user_id]) for event in hangouts]
        pairs.sort(key=lambda pair: _as_utc(pair.event.start_time))
        return pairs

    def get_overlapping_hangouts(self, user_id: str, target_date: date) -> list[HangoutOverlap]:
        """Recompute overlaps for the user's hangouts starting on *target_date*.

        Reads current event state, not recorded matches, so the answer can
        differ from :meth:`get_hangout_matches` after events are edited.
        """
        try:
            own = self.event_repo.list_for_users([user_id], EventType.HANGOUT)
            friends = self.user_repo.get_friends(user_id)
            friend_hangouts = self.event_repo.list_for_users(
                [f.id for f in friends], EventType.HANGOUT
            )
        except StoreUnavailableError as exc:
            logger.error("Could not compute overlaps for %s: %s", user_id, exc.message)
            return []

        on_day = [e for e in own if self._local_date(e.start_time) == target_date]
        return [
            overlap
            for user_event in on_day
            for overlap in self._live_overlaps(user_event, friends, friend_hangouts)
        ]

    def check_event_overlap(self, user_id: str, event_id: str) -> HangoutOverlap | None:
        """First friend hangout overlapping one of the user's hangouts, if any."""
        try:
            target = self.event_repo.get(event_id)
            if target is None or not target.is_hangout or target.user_id != user_id:
                return None
            friends = self.user_repo.get_friends(user_id)
            friend_hangouts = self.event_repo.list_for_users(
                [f.id for f in friends], EventType.HANGOUT
            )
        except StoreUnavailableError as exc:
            logger.error("Could not check overlap for event %s: %s", event_id, exc.message)
            return None

        return next(iter(self._live_overlaps(target, friends, friend_hangouts)), None)

    def get_hangout_matches(self, user_id: str) -> list[HangoutMatch]:
        try:
            return get_hangout_matches(user_id, self.notification_repo)
        except StoreUnavailableError as exc:
            logger.error("Could not load hangout matches for %s: %s", user_id, exc.message)
            return []

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _check_for_hangout_matches(self, hangout: Event) -> tuple[list[NewMatch], str | None]:
        # All reads happen before detection so a store failure leaves nothing half-written.
        try:
            friends = self.user_repo.get_friends(hangout.user_id)
            friend_hangouts = self.event_repo.list_for_users(
                [f.id for f in friends], EventType.HANGOUT
            )
            existing = self.notification_repo.list_for_user(
                hangout.user_id, NotificationType.HANGOUT_MATCH
            )
        except StoreUnavailableError as exc:
            logger.error("Match lookup failed for hangout %s: %s", hangout.id, exc.message)
            return [], DETECT_FAILED

        return detect_matches(hangout, friends, friend_hangouts, existing), None

    def _live_overlaps(
        self, user_event: Event, friends: list[User], friend_hangouts: list[Event]
    ) -> list[HangoutOverlap]:
        found = []
        for friend in friends:
            for friend_event in friend_hangouts:
                if friend_event.user_id != friend.id:
                    continue
                overlap = event_overlap(user_event, friend_event)
                if overlap is not None:
                    found.append(
                        HangoutOverlap(
                            user_event=user_event,
                            friend_event=friend_event,
                            friend=friend,
                            overlap=overlap,
                        )
                    )
        return found

    def _events_of_friend(
        self, user_id: str, friend_id: str, event_type: EventType | None
    ) -> list[Event]:
        try:
            if friend_id not in self._friend_ids(user_id):
                logger.info("%s asked for events of non-friend %s", user_id, friend_id)
                return []
            events = self.event_repo.list_for_users([friend_id], event_type)
        except StoreUnavailableError as exc:
            logger.error("Could not load events of %s: %s", friend_id, exc.message)
            return []
        return sorted(events, key=lambda e: _as_utc(e.start_time))

    def _friend_ids(self, user_id: str) -> set[str]:
        user = self.user_repo.get(user_id)
        return set(user.friends) if user else set()

    def _local_date(self, moment: datetime) -> date:
        return _as_utc(moment).astimezone(self.tz).date()


def _as_utc(moment: datetime) -> datetime:
    return moment.replace(tzinfo=timezone.utc) if moment.tzinfo is None else moment
