"""Supabase repository for per-day goals."""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, date, datetime

from supabase import AsyncClient

from meal_agenda.adapters.supabase_realtime import RealtimeWatcher
from meal_agenda.domain.goals import DayGoalRecord
from meal_agenda.services.goals import DayGoalRepository


@dataclass
class SupabaseDayGoalRepository(DayGoalRepository):
    """Supabase implementation for day goals."""

    client: AsyncClient
    watcher: RealtimeWatcher
    table: str = "day_goals"

    async def fetch_day_goal(self, day: date, user_id: str) -> DayGoalRecord | None:
        """Return the goal row for a user and day."""
        response = (
            await self.client.table(self.table)
            .select("id, date, goal_calories")
            .eq("user_id", user_id)
            .eq("date", day.isoformat())
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        row = response.data[0]
        goal = row.get("goal_calories")
        return DayGoalRecord(
            id=str(row["id"]),
            date=date.fromisoformat(str(row["date"])[:10]),
            goal_calories=float(goal) if goal is not None else None,
        )

    def subscribe_day_goal(
        self,
        day: date,
        user_id: str,
        on_change: Callable[[DayGoalRecord | None], None],
        on_error: Callable[[Exception], None] | None = None,
    ) -> Callable[[], None]:
        """Re-deliver the day's goal whenever the user's goals change."""
        return self.watcher.watch(
            self.table,
            user_id,
            lambda: self.fetch_day_goal(day, user_id),
            on_change,
            on_error,
        )

    async def create_day_goal(
        self, day: date, goal_calories: float, user_id: str
    ) -> str:
        """Insert a goal row and return its id."""
        response = (
            await self.client.table(self.table)
            .insert(
                {
                    "user_id": user_id,
                    "date": day.isoformat(),
                    "goal_calories": goal_calories,
                }
            )
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to create day goal")
        return str(response.data[0]["id"])

    async def update_day_goal(self, goal_id: str, goal_calories: float) -> None:
        """Update a goal row."""
        await (
            self.client.table(self.table)
            .update(
                {
                    "goal_calories": goal_calories,
                    "updated_at": datetime.now(tz=UTC).isoformat(),
                }
            )
            .eq("id", goal_id)
            .execute()
        )
