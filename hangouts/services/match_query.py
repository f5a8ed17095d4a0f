"""Read model: hangout matches projected from hangout_match notifications."""

from __future__ import annotations

import logging

from pydantic import ValidationError

from hangouts.domain.models import HangoutMatch, MatchPayload, NotificationType
from hangouts.repos.memory import NotificationRepository

logger = logging.getLogger(__name__)


def get_hangout_matches(
    user_id: str, notification_repo: NotificationRepository
) -> list[HangoutMatch]:
    """Return the user's matches in the order the store lists their notifications.

    Matches are never stored on their own; each one is this user's half of the
    notification pair written by the notifier. Notifications whose payload is
    missing or malformed are skipped.
    """
    notifications = notification_repo.list_for_user(
        user_id, NotificationType.HANGOUT_MATCH
    )

    matches: list[HangoutMatch] = []
    for notification in notifications:
        try:
            payload = MatchPayload.model_validate(notification.data or {})
        except ValidationError as exc:
            logger.warning(
                "Skipping hangout_match notification %s with bad payload: %s",
                notification.id,
                exc.errors(include_url=False),
            )
            continue

        matches.append(
            HangoutMatch(
                id=notification.id,
                users=[user_id, payload.matched_user_id],
                overlapping_time=payload.overlapping_time,
                hangout_events=payload.hangout_events,
                created_at=notification.created_at,
            )
        )
    return matches
