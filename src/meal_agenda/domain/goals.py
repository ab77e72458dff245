"""Domain models for per-day goals."""

from dataclasses import dataclass
from datetime import date


@dataclass(frozen=True)
class DayGoalRecord:
    """Calorie goal for one user and one day."""

    id: str | None
    date: date
    goal_calories: float | None = None
