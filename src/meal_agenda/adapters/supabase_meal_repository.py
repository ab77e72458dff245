"""Supabase repository for meals."""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from supabase import AsyncClient

from meal_agenda.adapters.supabase_realtime import RealtimeWatcher
from meal_agenda.domain.meals import FoodItem, MealRecord
from meal_agenda.services.meals import MealRepository


@dataclass
class SupabaseMealRepository(MealRepository):
    """Supabase implementation for meals."""

    client: AsyncClient
    watcher: RealtimeWatcher
    timezone: ZoneInfo = field(default_factory=lambda: ZoneInfo("UTC"))
    table: str = "meals"

    async def fetch_meals(self, day: date, user_id: str) -> list[MealRecord]:
        """Return meals eaten within the local day."""
        start = datetime.combine(day, time.min, tzinfo=self.timezone)
        end = start + timedelta(days=1)
        response = (
            await self.client.table(self.table)
            .select("id, eaten_at, items")
            .eq("user_id", user_id)
            .gte("eaten_at", start.astimezone(UTC).isoformat())
            .lt("eaten_at", end.astimezone(UTC).isoformat())
            .order("eaten_at", desc=False)
            .execute()
        )
        return [_parse_meal(row) for row in response.data or []]

    def subscribe_meals(
        self,
        day: date,
        user_id: str,
        on_change: Callable[[list[MealRecord]], None],
        on_error: Callable[[Exception], None] | None = None,
    ) -> Callable[[], None]:
        """Re-deliver the day's meals whenever the user's meals change."""
        return self.watcher.watch(
            self.table,
            user_id,
            lambda: self.fetch_meals(day, user_id),
            on_change,
            on_error,
        )

    async def delete_meal(self, meal_id: str) -> None:
        """Delete a meal row."""
        await self.client.table(self.table).delete().eq("id", meal_id).execute()


def _parse_meal(row: dict[str, object]) -> MealRecord:
    eaten_at = datetime.fromisoformat(str(row["eaten_at"]))
    if eaten_at.tzinfo is None:
        eaten_at = eaten_at.replace(tzinfo=UTC)
    raw_items = row.get("items")
    items = tuple(
        FoodItem(
            name=str(item.get("name", "")),
            calories=float(item.get("calories") or 0.0),
        )
        for item in (raw_items if isinstance(raw_items, list) else [])
        if isinstance(item, dict)
    )
    return MealRecord(id=str(row["id"]), eaten_at=eaten_at, items=items)
