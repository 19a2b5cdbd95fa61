"""User lookup service, API version 1.0.0."""

from __future__ import annotations

from .models import User


class UserNotFoundError(LookupError):
    """Raised when no user has the requested id."""


def seed_users() -> dict[int, User]:
    return {
        1: User(id=1, email="john.doe@example.com", name="John Doe"),
        2: User(id=2, email="jane.doe@example.com", name="Jane Doe"),
    }


class UserService:
    """In-memory user directory."""

    API_VERSION = "1.0.0"

    def __init__(self) -> None:
        self._users = seed_users()

    def find_by_id(self, user_id: int) -> User:
        """Find a user by numeric id."""

        try:
            return self._users[user_id]
        except KeyError as exc:
            raise UserNotFoundError(f"User {user_id} not found") from exc

    def find_all(self) -> list[User]:
        return list(self._users.values())

    def create_user(self, email: str, name: str) -> User:
        user_id = len(self._users) + 1
        user = User(id=user_id, email=email, name=name)
        self._users[user_id] = user
        return user
