"""Remote store interface for meal entries."""

from collections.abc import Callable
from datetime import date
from typing import Protocol

from meal_agenda.domain.meals import MealRecord


class MealRepository(Protocol):
    """Persistence interface for meals."""

    async def fetch_meals(self, day: date, user_id: str) -> list[MealRecord]:
        """Return meals eaten on a day."""

    def subscribe_meals(
        self,
        day: date,
        user_id: str,
        on_change: Callable[[list[MealRecord]], None],
        on_error: Callable[[Exception], None] | None = None,
    ) -> Callable[[], None]:
        """Deliver the day's meals on every change; returns an unsubscribe."""

    async def delete_meal(self, meal_id: str) -> None:
        """Delete a meal by id."""
