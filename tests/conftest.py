"""Shared test fixtures."""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, date, datetime

import pytest

from meal_agenda.config import Settings
from meal_agenda.containers import AppContainer
from meal_agenda.domain.goals import DayGoalRecord
from meal_agenda.domain.meals import FoodItem, MealRecord
from meal_agenda.domain.models import UserProfile
from meal_agenda.services.goals import DayGoalRepository
from meal_agenda.services.meals import MealRepository
from meal_agenda.services.sessions import AgendaSessionRegistry
from meal_agenda.services.users import UserRepository, UserService

FIXED_NOW = datetime(2024, 5, 10, 12, 0, tzinfo=UTC)
TODAY = FIXED_NOW.date()
PAST_DAY = date(2024, 5, 1)
FUTURE_DAY = date(2024, 5, 20)


def fixed_clock() -> datetime:
    return FIXED_NOW


def make_meal(meal_id: str, eaten_at: datetime, *calories: float) -> MealRecord:
    return MealRecord(
        id=meal_id,
        eaten_at=eaten_at,
        items=tuple(
            FoodItem(name=f"food-{index}", calories=value)
            for index, value in enumerate(calories)
        ),
    )


@dataclass
class FakeSubscription:
    """Listener registered with an in-memory store."""

    day: date
    user_id: str
    on_change: Callable[[object], None]
    on_error: Callable[[Exception], None] | None
    active: bool = True

    def close(self) -> None:
        self.active = False


@dataclass
class _GatedFetches:
    """Lets tests hold a fetch for a given day until released."""

    gates: dict[date, asyncio.Event] = field(default_factory=dict)
    failing_days: set[date] = field(default_factory=set)
    fetch_calls: list[date] = field(default_factory=list)

    def hold(self, day: date) -> None:
        self.gates[day] = asyncio.Event()

    def release(self, day: date) -> None:
        self.gates.pop(day).set()

    async def _enter(self, day: date) -> None:
        self.fetch_calls.append(day)
        gate = self.gates.get(day)
        if gate is not None:
            await gate.wait()
        if day in self.failing_days:
            raise RuntimeError(f"store unavailable for {day}")


@dataclass
class InMemoryMealRepository(_GatedFetches, MealRepository):
    """In-memory meal store with controllable fetches and listeners."""

    meals: dict[str, list[MealRecord]] = field(default_factory=dict)
    subscriptions: list[FakeSubscription] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    fail_delete: bool = False

    def add(self, user_id: str, meal: MealRecord) -> None:
        self.meals.setdefault(user_id, []).append(meal)

    def meals_for(self, day: date, user_id: str) -> list[MealRecord]:
        return [
            meal
            for meal in self.meals.get(user_id, [])
            if meal.eaten_at.astimezone(UTC).date() == day
        ]

    async def fetch_meals(self, day: date, user_id: str) -> list[MealRecord]:
        await self._enter(day)
        return self.meals_for(day, user_id)

    def subscribe_meals(self, day, user_id, on_change, on_error=None):
        subscription = FakeSubscription(day, user_id, on_change, on_error)
        self.subscriptions.append(subscription)
        return subscription.close

    async def delete_meal(self, meal_id: str) -> None:
        if self.fail_delete:
            raise RuntimeError("delete failed")
        self.deleted.append(meal_id)
        for user_meals in self.meals.values():
            user_meals[:] = [meal for meal in user_meals if meal.id != meal_id]

    def notify(self, day: date, user_id: str, *, include_closed: bool = False) -> None:
        snapshot = self.meals_for(day, user_id)
        for subscription in list(self.subscriptions):
            if subscription.day != day or subscription.user_id != user_id:
                continue
            if subscription.active or include_closed:
                subscription.on_change(snapshot)

    def fail_listeners(self, exc: Exception) -> None:
        for subscription in list(self.subscriptions):
            if subscription.active and subscription.on_error is not None:
                subscription.on_error(exc)

    def active_subscriptions(self) -> list[FakeSubscription]:
        return [sub for sub in self.subscriptions if sub.active]


@dataclass
class InMemoryDayGoalRepository(_GatedFetches, DayGoalRepository):
    """In-memory day goal store with controllable fetches and listeners."""

    goals: dict[tuple[str, date], DayGoalRecord] = field(default_factory=dict)
    subscriptions: list[FakeSubscription] = field(default_factory=list)
    calls: list[tuple[str, object, float]] = field(default_factory=list)
    fail_writes: bool = False
    _next_id: int = 0

    async def fetch_day_goal(self, day: date, user_id: str) -> DayGoalRecord | None:
        await self._enter(day)
        return self.goals.get((user_id, day))

    def subscribe_day_goal(self, day, user_id, on_change, on_error=None):
        subscription = FakeSubscription(day, user_id, on_change, on_error)
        self.subscriptions.append(subscription)
        return subscription.close

    async def create_day_goal(
        self, day: date, goal_calories: float, user_id: str
    ) -> str:
        if self.fail_writes:
            raise RuntimeError("insert failed")
        self._next_id += 1
        goal_id = f"goal-{self._next_id}"
        self.calls.append(("create", day, goal_calories))
        self.goals[(user_id, day)] = DayGoalRecord(
            id=goal_id, date=day, goal_calories=goal_calories
        )
        return goal_id

    async def update_day_goal(self, goal_id: str, goal_calories: float) -> None:
        if self.fail_writes:
            raise RuntimeError("update failed")
        self.calls.append(("update", goal_id, goal_calories))
        for key, record in list(self.goals.items()):
            if record.id == goal_id:
                self.goals[key] = DayGoalRecord(
                    id=goal_id, date=record.date, goal_calories=goal_calories
                )

    def notify(self, day: date, user_id: str) -> None:
        record = self.goals.get((user_id, day))
        for subscription in list(self.subscriptions):
            if not subscription.active or subscription.day != day:
                continue
            if subscription.user_id == user_id:
                subscription.on_change(record)


@dataclass
class InMemoryUserRepository(UserRepository):
    """In-memory user profiles."""

    profiles: dict[str, UserProfile] = field(default_factory=dict)

    async def get_profile(self, user_id: str) -> UserProfile | None:
        return self.profiles.get(user_id)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="service-key",
    )


@pytest.fixture
def meal_repository() -> InMemoryMealRepository:
    return InMemoryMealRepository()


@pytest.fixture
def goal_repository() -> InMemoryDayGoalRepository:
    return InMemoryDayGoalRepository()


@pytest.fixture
def user_repository() -> InMemoryUserRepository:
    return InMemoryUserRepository(
        profiles={
            "user-1": UserProfile(id="user-1", default_goal_calories=2200),
            "user-2": UserProfile(id="user-2"),
        }
    )


@pytest.fixture
def container(
    settings: Settings,
    meal_repository: InMemoryMealRepository,
    goal_repository: InMemoryDayGoalRepository,
    user_repository: InMemoryUserRepository,
) -> AppContainer:
    user_service = UserService(
        user_repository, fallback_goal_calories=settings.default_goal_calories
    )
    session_registry = AgendaSessionRegistry(
        user_service=user_service,
        meal_repository=meal_repository,
        goal_repository=goal_repository,
        clock=fixed_clock,
    )

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        meal_repository=meal_repository,
        goal_repository=goal_repository,
        user_service=user_service,
        session_registry=session_registry,
        close_resources=close_resources,
    )
