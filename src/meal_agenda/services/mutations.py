"""User-triggered writes against the remote store."""

import logging
from dataclasses import dataclass
from datetime import date

from meal_agenda.domain.errors import MutationError
from meal_agenda.services.goals import DayGoalRepository
from meal_agenda.services.meals import MealRepository

_logger = logging.getLogger(__name__)


@dataclass
class MutationGateway:
    """Issues deletes and goal upserts.

    Nothing is written to local state here; results reach the view model only
    through the live subscriptions.
    """

    meal_repository: MealRepository
    goal_repository: DayGoalRepository

    async def delete_meal(self, meal_id: str) -> None:
        """Delete a meal, raising MutationError on failure."""
        try:
            await self.meal_repository.delete_meal(meal_id)
        except Exception as exc:
            _logger.exception("Failed to delete meal", extra={"meal_id": meal_id})
            raise MutationError("The meal couldn't be deleted") from exc

    async def upsert_goal(
        self,
        day: date,
        goal_calories: float,
        user_id: str,
        known_id: str | None = None,
    ) -> str:
        """Update the goal when its id is known, otherwise create it."""
        try:
            if known_id:
                await self.goal_repository.update_day_goal(known_id, goal_calories)
                return known_id
            return await self.goal_repository.create_day_goal(
                day, goal_calories, user_id
            )
        except Exception as exc:
            _logger.exception(
                "Failed to save goal",
                extra={"day": day.isoformat(), "goal_id": known_id},
            )
            raise MutationError("Your goal couldn't be saved") from exc
