"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import AsyncClient

from meal_agenda.adapters.supabase_day_goal_repository import (
    SupabaseDayGoalRepository,
)
from meal_agenda.adapters.supabase_meal_repository import SupabaseMealRepository
from meal_agenda.adapters.supabase_realtime import RealtimeWatcher
from meal_agenda.adapters.supabase_user_repository import SupabaseUserRepository
from meal_agenda.config import Settings, resolve_timezone
from meal_agenda.services.goals import DayGoalRepository
from meal_agenda.services.meals import MealRepository
from meal_agenda.services.sessions import AgendaSessionRegistry
from meal_agenda.services.users import UserService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    meal_repository: MealRepository
    goal_repository: DayGoalRepository
    user_service: UserService
    session_registry: AgendaSessionRegistry
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    timezone = resolve_timezone(resolved_settings.timezone)
    supabase_client = AsyncClient(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    watcher = RealtimeWatcher(supabase_client)
    meal_repository = SupabaseMealRepository(
        client=supabase_client,
        watcher=watcher,
        timezone=timezone,
        table=resolved_settings.meals_table,
    )
    goal_repository = SupabaseDayGoalRepository(
        client=supabase_client,
        watcher=watcher,
        table=resolved_settings.day_goals_table,
    )
    user_service = UserService(
        SupabaseUserRepository(supabase_client, table=resolved_settings.users_table),
        fallback_goal_calories=resolved_settings.default_goal_calories,
    )
    session_registry = AgendaSessionRegistry(
        user_service=user_service,
        meal_repository=meal_repository,
        goal_repository=goal_repository,
        timezone=timezone,
    )

    async def close_resources() -> None:
        await watcher.close()

    return AppContainer(
        settings=resolved_settings,
        meal_repository=meal_repository,
        goal_repository=goal_repository,
        user_service=user_service,
        session_registry=session_registry,
        close_resources=close_resources,
    )
