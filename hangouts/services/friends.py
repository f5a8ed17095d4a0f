"""User profiles and the symmetric friend graph."""

from __future__ import annotations

import logging
import threading

from hangouts.domain.bus import EventBus
from hangouts.domain.errors import FriendshipError, NotFoundError
from hangouts.domain.events import FriendRequestSent
from hangouts.domain.models import RegisterUserRequest, User
from hangouts.repos.memory import UserRepository

logger = logging.getLogger(__name__)


class FriendService:
    """Registers profiles and moves users through request -> friends.

    Every transition updates both users so that friendship stays symmetric
    and a pending request appears in the sender's ``sent`` list exactly when
    it appears in the receiver's ``received`` list.

    Transitions hold a service-wide lock because they read and then mutate
    the shared ``User`` records of two users.
    """

    def __init__(self, user_repo: UserRepository, bus: EventBus) -> None:
        self.user_repo = user_repo
        self.bus = bus
        self._graph_lock = threading.Lock()

    def register_user(self, request: RegisterUserRequest) -> User:
        with self._graph_lock:
            if self.user_repo.find_by_username(request.username) is not None:
                raise FriendshipError("Username already exists")
            if self.user_repo.find_by_email(request.email) is not None:
                raise FriendshipError("Email already exists")

            user = User(
                email=request.email.lower(),
                username=request.username.lower(),
                full_name=request.full_name,
                avatar=request.avatar,
            )
            self.user_repo.add(user)
        logger.info("Registered user %s (%s)", user.id, user.username)
        return user

    def get_user(self, user_id: str) -> User:
        user = self.user_repo.get(user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found")
        return user

    def search_users(self, query: str, user_id: str) -> list[User]:
        """Case-insensitive match on username, full name or email; excludes the caller."""
        needle = query.strip().lower()
        if not needle:
            return []
        return [
            user
            for user in self.user_repo.list_all()
            if user.id != user_id
            and (
                needle in user.username.lower()
                or needle in user.full_name.lower()
                or needle in user.email.lower()
            )
        ]

    def get_friends(self, user_id: str) -> list[User]:
        self.get_user(user_id)
        return self.user_repo.get_friends(user_id)

    def send_friend_request(self, from_user_id: str, to_user_id: str) -> None:
        if from_user_id == to_user_id:
            raise FriendshipError("Cannot send a friend request to yourself")
        with self._graph_lock:
            sender = self.get_user(from_user_id)
            receiver = self.get_user(to_user_id)

            if to_user_id in sender.friends:
                raise FriendshipError("Already friends")
            if to_user_id in sender.friend_requests.sent:
                raise FriendshipError("Friend request already sent")
            if to_user_id in sender.friend_requests.received:
                raise FriendshipError("This user has already sent you a friend request")

            sender.friend_requests.sent.append(to_user_id)
            receiver.friend_requests.received.append(from_user_id)
            self.user_repo.save(sender)
            self.user_repo.save(receiver)

        logger.info("Friend request %s -> %s", from_user_id, to_user_id)
        self.bus.publish(FriendRequestSent(from_user_id=from_user_id, to_user_id=to_user_id))

    def accept_friend_request(self, user_id: str, requester_id: str) -> None:
        with self._graph_lock:
            user, requester = self._pending_pair(user_id, requester_id)

            user.friend_requests.received.remove(requester_id)
            requester.friend_requests.sent.remove(user_id)
            if requester_id not in user.friends:
                user.friends.append(requester_id)
            if user_id not in requester.friends:
                requester.friends.append(user_id)
            self.user_repo.save(user)
            self.user_repo.save(requester)

        logger.info("%s accepted friend request from %s", user_id, requester_id)

    def reject_friend_request(self, user_id: str, requester_id: str) -> None:
        with self._graph_lock:
            user, requester = self._pending_pair(user_id, requester_id)

            user.friend_requests.received.remove(requester_id)
            requester.friend_requests.sent.remove(user_id)
            self.user_repo.save(user)
            self.user_repo.save(requester)
        logger.info("%s rejected friend request from %s", user_id, requester_id)

    def remove_friend(self, user_id: str, friend_id: str) -> None:
        with self._graph_lock:
            user = self.get_user(user_id)
            friend = self.get_user(friend_id)
            if friend_id not in user.friends:
                raise FriendshipError("Not friends")

            user.friends.remove(friend_id)
            if user_id in friend.friends:
                friend.friends.remove(user_id)
            self.user_repo.save(user)
            self.user_repo.save(friend)
        logger.info("%s removed friend %s", user_id, friend_id)

    def _pending_pair(self, user_id: str, requester_id: str) -> tuple[User, User]:
        user = self.get_user(user_id)
        requester = self.get_user(requester_id)
        if requester_id not in user.friend_requests.received:
            raise FriendshipError("No pending friend request from this user")
        return user, requester
