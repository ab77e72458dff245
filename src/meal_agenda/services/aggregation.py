"""Pure aggregation helpers for meals and goals."""

from collections.abc import Iterable
from datetime import UTC, date, datetime
from zoneinfo import ZoneInfo

from meal_agenda.domain.goals import DayGoalRecord
from meal_agenda.domain.meals import MealRecord


def day_key(value: date | datetime, tz: ZoneInfo | None = None) -> str:
    """Return the YYYY-MM-DD key for a date or timestamp."""
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(tz or UTC)
        value = value.date()
    return value.isoformat()


def group_by_day(
    meals: Iterable[MealRecord], tz: ZoneInfo | None = None
) -> dict[str, list[MealRecord]]:
    """Group meals by the day they were eaten, keeping delivery order."""
    grouped: dict[str, list[MealRecord]] = {}
    for meal in meals:
        grouped.setdefault(day_key(meal.eaten_at, tz), []).append(meal)
    return grouped


def build_agenda_items(
    meals: list[MealRecord], selected_date: date, tz: ZoneInfo | None = None
) -> dict[str, list[MealRecord]]:
    """Group meals, falling back to an empty entry for the selected day."""
    if meals:
        return group_by_day(meals, tz)
    return {day_key(selected_date): []}


def total_calories(meals: Iterable[MealRecord]) -> float:
    """Sum calories of every food item across meals."""
    return sum(item.calories for meal in meals for item in meal.items)


def is_today_or_future(day: date, today: date) -> bool:
    """Return True when the day is not in the past."""
    return day >= today


def resolve_goal_calories(
    day_goal: DayGoalRecord | None,
    selected_date: date,
    default_goal_calories: float,
    today: date,
) -> float:
    """Return the goal to display for a day.

    An explicit per-day goal always wins. Without one, today and future days
    fall back to the user's default goal while past days show 0.
    """
    if day_goal is not None and day_goal.goal_calories is not None:
        return day_goal.goal_calories
    if is_today_or_future(selected_date, today):
        return default_goal_calories
    return 0.0


def have_totals_changed(
    previous: Iterable[MealRecord], current: Iterable[MealRecord]
) -> bool:
    """Return True when total calories differ between two collections."""
    return total_calories(previous) != total_calories(current)
