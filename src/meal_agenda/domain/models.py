"""Domain models for users."""

from dataclasses import dataclass


@dataclass(frozen=True)
class UserProfile:
    """User row as stored in the database."""

    id: str
    default_goal_calories: float | None = None


@dataclass(frozen=True)
class CurrentUser:
    """The signed-in user and their default daily goal."""

    uid: str
    default_goal_calories: float
