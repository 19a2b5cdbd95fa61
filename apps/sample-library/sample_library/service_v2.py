"""User lookup service, API version 2.0.0.

Ids became strings and lookups return ``None`` instead of raising, which
breaks every caller compiled against 1.0.0.
"""

from __future__ import annotations

from typing import Optional

from .models import User
from .service import seed_users


class UserService:
    """In-memory user directory keyed by string ids."""

    API_VERSION = "2.0.0"

    def __init__(self) -> None:
        self._users = {str(user_id): user for user_id, user in seed_users().items()}

    def find_by_id(self, user_id: str) -> Optional[User]:
        return self._users.get(user_id)

    def find_all(self) -> list[User]:
        return list(self._users.values())

    def create_user(self, email: str, name: str) -> User:
        user_id = len(self._users) + 1
        user = User(id=user_id, email=email, name=name)
        self._users[str(user_id)] = user
        return user
