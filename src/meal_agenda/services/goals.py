"""Remote store interface and input parsing for day goals."""

import math
from collections.abc import Callable
from datetime import date
from typing import Protocol

from meal_agenda.domain.errors import ValidationError
from meal_agenda.domain.goals import DayGoalRecord


class DayGoalRepository(Protocol):
    """Persistence interface for per-day goals."""

    async def fetch_day_goal(self, day: date, user_id: str) -> DayGoalRecord | None:
        """Return the goal for a day, if one exists."""

    def subscribe_day_goal(
        self,
        day: date,
        user_id: str,
        on_change: Callable[[DayGoalRecord | None], None],
        on_error: Callable[[Exception], None] | None = None,
    ) -> Callable[[], None]:
        """Deliver the day's goal on every change; returns an unsubscribe."""

    async def create_day_goal(
        self, day: date, goal_calories: float, user_id: str
    ) -> str:
        """Create a goal and return its id."""

    async def update_day_goal(self, goal_id: str, goal_calories: float) -> None:
        """Update an existing goal."""


def parse_goal_input(raw: object) -> float:
    """Parse a user-entered goal, rejecting anything but a positive number."""
    if isinstance(raw, bool):
        raise ValidationError("Please enter a number")
    if isinstance(raw, int | float):
        value = float(raw)
    elif isinstance(raw, str):
        try:
            value = float(raw.strip())
        except ValueError as exc:
            raise ValidationError("Please enter a number") from exc
    else:
        raise ValidationError("Please enter a number")
    if not math.isfinite(value) or value <= 0:
        raise ValidationError("Please enter a number")
    return value
