"""View model for the daily agenda."""

from dataclasses import dataclass, field
from datetime import date

from meal_agenda.domain.meals import MealRecord


@dataclass(frozen=True)
class AgendaViewModel:
    """Immutable snapshot of what the agenda shows for the selected date."""

    selected_date: date
    meals_by_date: dict[str, list[MealRecord]] = field(default_factory=dict)
    resolved_goal_calories: float = 0.0
    total_calories: float = 0.0
    is_loading: bool = True
    day_goal_id: str | None = None
    last_error: str | None = None
