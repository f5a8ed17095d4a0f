"""Fan a detected hangout match out into one notification per participant."""

from __future__ import annotations

import logging

from hangouts.domain.bus import EventBus
from hangouts.domain.errors import StoreUnavailableError
from hangouts.domain.events import HangoutMatched
from hangouts.domain.models import (
    MatchPayload,
    NewMatch,
    Notification,
    NotificationType,
    NotifyResult,
    NotifyStatus,
)
from hangouts.repos.memory import NotificationRepository, UserRepository

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Hangout Match Found!"
FALLBACK_MESSAGE = "You have an overlapping hangout time with a friend"


class MatchNotifier:
    """Writes the symmetric pair of hangout_match notifications for a match.

    The unordered event pair is claimed in the notification store before
    anything is written, so two concurrent detector runs for the same pair
    produce one set of notifications. Each side is then written on its own;
    a failure on one side is reported as ``partial`` and can be repaired
    with :meth:`retry_missing`.
    """

    def __init__(
        self,
        notification_repo: NotificationRepository,
        user_repo: UserRepository,
        bus: EventBus | None = None,
        title: str = DEFAULT_TITLE,
    ) -> None:
        self.notification_repo = notification_repo
        self.user_repo = user_repo
        self.bus = bus
        self.title = title

    def notify(self, match: NewMatch) -> NotifyResult:
        try:
            claimed = self.notification_repo.claim_match(match.event_ids)
        except StoreUnavailableError as exc:
            logger.error("Could not claim match %s: %s", match.event_ids, exc.message)
            return NotifyResult(
                status=NotifyStatus.FAILED,
                match=match,
                missing_user_ids=[match.user_a, match.user_b],
                error=exc.message,
            )
        if not claimed:
            logger.info("Match %s already notified; skipping", match.event_ids)
            return NotifyResult(status=NotifyStatus.DUPLICATE, match=match)

        result = self._write_sides(match, [match.user_a, match.user_b])
        if result.status == NotifyStatus.FAILED:
            # Nothing was written, so let a later run try the pair again.
            self.notification_repo.release_match(match.event_ids)
        return result

    def retry_missing(self, result: NotifyResult) -> NotifyResult:
        """Re-write only the sides listed in ``result.missing_user_ids``."""
        if result.status == NotifyStatus.FAILED:
            return self.notify(result.match)
        if result.status != NotifyStatus.PARTIAL:
            return result

        retried = self._write_sides(result.match, result.missing_user_ids)
        notification_ids = result.notification_ids + retried.notification_ids
        if retried.missing_user_ids:
            return NotifyResult(
                status=NotifyStatus.PARTIAL,
                match=result.match,
                notification_ids=notification_ids,
                missing_user_ids=retried.missing_user_ids,
                error=retried.error,
            )
        self._announce(result.match, notification_ids)
        return NotifyResult(
            status=NotifyStatus.DELIVERED,
            match=result.match,
            notification_ids=notification_ids,
        )

    def _write_sides(self, match: NewMatch, user_ids: list[str]) -> NotifyResult:
        notification_ids: list[str] = []
        missing: list[str] = []
        error: str | None = None

        for user_id in user_ids:
            notification = self._build(user_id, match)
            try:
                notification_ids.append(self.notification_repo.add(notification))
            except StoreUnavailableError as exc:
                logger.error(
                    "Failed to write hangout_match notification for %s (events %s): %s",
                    user_id,
                    match.event_ids,
                    exc.message,
                )
                missing.append(user_id)
                error = exc.message

        if not notification_ids:
            status = NotifyStatus.FAILED
        elif missing:
            status = NotifyStatus.PARTIAL
            logger.warning(
                "Asymmetric hangout match %s: %s not informed", match.event_ids, missing
            )
        else:
            status = NotifyStatus.DELIVERED
            self._announce(match, notification_ids)

        return NotifyResult(
            status=status,
            match=match,
            notification_ids=notification_ids,
            missing_user_ids=missing,
            error=error,
        )

    def _build(self, user_id: str, match: NewMatch) -> Notification:
        other_id = match.user_b if user_id == match.user_a else match.user_a
        payload = MatchPayload(
            matched_user_id=other_id,
            overlapping_time=match.overlap,
            hangout_events=list(match.event_ids),
        )
        return Notification(
            user_id=user_id,
            type=NotificationType.HANGOUT_MATCH,
            title=self.title,
            message=self._message_for(other_id),
            data=payload.model_dump(mode="json", by_alias=True),
        )

    def _message_for(self, other_id: str) -> str:
        try:
            other = self.user_repo.get(other_id)
        except StoreUnavailableError:
            other = None
        if other is None:
            return FALLBACK_MESSAGE
        return f"You and {other.full_name} have overlapping hangout times"

    def _announce(self, match: NewMatch, notification_ids: list[str]) -> None:
        if self.bus is None:
            return
        self.bus.publish(
            HangoutMatched(
                event_ids=list(match.event_ids),
                user_ids=[match.user_a, match.user_b],
                notification_ids=notification_ids,
            )
        )
