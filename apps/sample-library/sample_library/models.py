"""Pydantic models for the sample user library."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class User(BaseModel):
    """A user record. Two users are the same user when their ids match."""

    model_config = ConfigDict(frozen=True)

    id: int
    email: str
    name: str

    def __eq__(self, other: object) -> bool:
        if isinstance(other, User):
            return self.id == other.id
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.id)

    def __str__(self) -> str:
        return f"User{{id={self.id}, email='{self.email}', name='{self.name}'}}"
