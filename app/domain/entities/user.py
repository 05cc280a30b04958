"""Domain entity representing a notification recipient."""

from dataclasses import dataclass


@dataclass
class User:
    """Contact attributes the engine needs to reach a user."""

    id: int
    email: str | None = None
    is_active: bool = True
