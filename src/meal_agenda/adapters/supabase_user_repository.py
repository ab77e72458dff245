"""Supabase repository for user profiles."""

from dataclasses import dataclass

from supabase import AsyncClient

from meal_agenda.domain.models import UserProfile
from meal_agenda.services.users import UserRepository


@dataclass
class SupabaseUserRepository(UserRepository):
    """Supabase implementation for user profiles."""

    client: AsyncClient
    table: str = "users"

    async def get_profile(self, user_id: str) -> UserProfile | None:
        """Return a user's profile by id."""
        response = (
            await self.client.table(self.table)
            .select("id, default_goal_calories")
            .eq("id", user_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        row = response.data[0]
        goal = row.get("default_goal_calories")
        return UserProfile(
            id=str(row["id"]),
            default_goal_calories=float(goal) if goal is not None else None,
        )
