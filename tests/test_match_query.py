"""Tests for projecting hangout matches out of notifications."""

from datetime import datetime, timedelta, timezone

from hangouts.domain.models import Notification, NotificationType, Overlap
from hangouts.repos.memory import NotificationRepository
from hangouts.services.match_query import get_hangout_matches

_NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def _match_note(user_id: str, other: str, events: list[str], created: datetime) -> Notification:
    return Notification(
        user_id=user_id,
        type=NotificationType.HANGOUT_MATCH,
        title="Hangout Match Found!",
        data={
            "matchedUserId": other,
            "overlappingTime": {
                "start": "2024-06-01T19:00:00+00:00",
                "end": "2024-06-01T20:00:00+00:00",
            },
            "hangoutEvents": events,
        },
        created_at=created,
    )


def test_projects_notification_into_match():
    repo = NotificationRepository()
    note = _match_note("alice", "bob", ["e1", "e2"], _NOW)
    repo.add(note)

    [match] = get_hangout_matches("alice", repo)

    assert match.id == note.id
    assert match.users == ["alice", "bob"]
    assert match.overlapping_time == Overlap(
        start=datetime(2024, 6, 1, 19, tzinfo=timezone.utc),
        end=datetime(2024, 6, 1, 20, tzinfo=timezone.utc),
    )
    assert match.hangout_events == ["e1", "e2"]
    assert match.created_at == _NOW


def test_only_the_users_match_notifications_are_used():
    repo = NotificationRepository()
    repo.add(_match_note("alice", "bob", ["e1", "e2"], _NOW))
    repo.add(_match_note("bob", "alice", ["e1", "e2"], _NOW))
    repo.add(
        Notification(
            user_id="alice",
            type=NotificationType.FRIEND_REQUEST,
            title="New Friend Request",
            data={"senderId": "carol"},
        )
    )

    matches = get_hangout_matches("alice", repo)

    assert len(matches) == 1
    assert matches[0].users == ["alice", "bob"]


def test_matches_follow_store_order_newest_first():
    repo = NotificationRepository()
    older = _match_note("alice", "bob", ["e1", "e2"], _NOW - timedelta(hours=1))
    newer = _match_note("alice", "carol", ["e1", "e3"], _NOW)
    repo.add(older)
    repo.add(newer)

    assert [m.id for m in get_hangout_matches("alice", repo)] == [newer.id, older.id]


def test_malformed_payload_is_skipped():
    repo = NotificationRepository()
    repo.add(
        Notification(
            user_id="alice",
            type=NotificationType.HANGOUT_MATCH,
            title="Hangout Match Found!",
            data={"matchedUserId": "bob"},
        )
    )
    repo.add(_match_note("alice", "carol", ["e1", "e3"], _NOW))

    matches = get_hangout_matches("alice", repo)

    assert [m.users[1] for m in matches] == ["carol"]


def test_projection_does_not_mutate_notifications():
    repo = NotificationRepository()
    note = _match_note("alice", "bob", ["e1", "e2"], _NOW)
    repo.add(note)

    get_hangout_matches("alice", repo)

    assert repo.get(note.id).read is False
    assert len(repo.list_for_user("alice")) == 1
