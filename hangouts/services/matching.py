"""Detect overlaps between a new hangout and friends' hangouts."""

from __future__ import annotations

import logging

from hangouts.domain.models import Event, NewMatch, Notification, User
from hangouts.services.overlap import event_overlap

logger = logging.getLogger(__name__)


def already_notified(
    first_event_id: str, second_event_id: str, notifications: list[Notification]
) -> bool:
    """True when some notification already lists both events in hangoutEvents."""
    return any(n.references_events(first_event_id, second_event_id) for n in notifications)


def detect_matches(
    new_hangout: Event,
    friends: list[User],
    all_events: list[Event],
    existing_match_notifications: list[Notification],
) -> list[NewMatch]:
    """Return one NewMatch per friend hangout overlapping *new_hangout*.

    Candidates are hangout events owned by one of *friends*. A pair already
    listed in an existing notification's ``hangoutEvents`` is skipped, and no
    unordered event pair is returned twice. Pure: nothing is written here.
    """
    friend_ids = {friend.id for friend in friends}
    seen: set[frozenset[str]] = set()
    matches: list[NewMatch] = []

    for candidate in all_events:
        if not candidate.is_hangout or candidate.user_id not in friend_ids:
            continue
        if candidate.id == new_hangout.id:
            continue

        pair = frozenset((new_hangout.id, candidate.id))
        if pair in seen:
            continue

        overlap = event_overlap(new_hangout, candidate)
        if overlap is None:
            continue

        if already_notified(new_hangout.id, candidate.id, existing_match_notifications):
            logger.debug(
                "Skipping already-notified pair %s / %s", new_hangout.id, candidate.id
            )
            continue

        seen.add(pair)
        matches.append(
            NewMatch(
                user_a=new_hangout.user_id,
                user_b=candidate.user_id,
                overlap=overlap,
                event_ids=[new_hangout.id, candidate.id],
            )
        )

    logger.info(
        "Hangout %s: %d new match(es) across %d friend(s)",
        new_hangout.id,
        len(matches),
        len(friend_ids),
    )
    return matches
