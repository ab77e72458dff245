"""Current user resolution."""

from dataclasses import dataclass
from typing import Protocol

from meal_agenda.domain.models import CurrentUser, UserProfile


class UserRepository(Protocol):
    """Persistence interface for user profiles."""

    async def get_profile(self, user_id: str) -> UserProfile | None:
        """Return the user's profile, if present."""


@dataclass
class UserService:
    """Resolves the signed-in user and their default goal."""

    repository: UserRepository
    fallback_goal_calories: float = 2000.0

    async def get_current_user(self, user_id: str) -> CurrentUser | None:
        """Return the current user or None when unknown."""
        profile = await self.repository.get_profile(user_id)
        if profile is None:
            return None
        goal = profile.default_goal_calories
        return CurrentUser(
            uid=profile.id,
            default_goal_calories=(
                goal if goal is not None else self.fallback_goal_calories
            ),
        )
