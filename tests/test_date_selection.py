"""Tests for the date selection controller."""

import asyncio
from datetime import UTC, datetime
from zoneinfo import ZoneInfo

from meal_agenda.domain.models import CurrentUser
from meal_agenda.services.sessions import AgendaSession
from tests.conftest import (
    FIXED_NOW,
    FUTURE_DAY,
    PAST_DAY,
    TODAY,
    InMemoryDayGoalRepository,
    InMemoryMealRepository,
    fixed_clock,
    make_meal,
)

USER = CurrentUser(uid="user-1", default_goal_calories=2200)


def _session(
    meal_repository: InMemoryMealRepository,
    goal_repository: InMemoryDayGoalRepository,
) -> AgendaSession:
    return AgendaSession.create(
        USER,
        meal_repository=meal_repository,
        goal_repository=goal_repository,
        clock=fixed_clock,
    )


def test_selecting_same_date_is_a_no_op(
    meal_repository: InMemoryMealRepository,
    goal_repository: InMemoryDayGoalRepository,
) -> None:
    async def scenario() -> tuple[bool, bool, int]:
        session = _session(meal_repository, goal_repository)
        first = session.controller.select(PAST_DAY)
        token = session.controller.context.scope_token
        second = session.controller.select(datetime(2024, 5, 1, 18, tzinfo=UTC))
        await session.settle()
        return first, second, token

    first, second, token = asyncio.run(scenario())

    assert first is True
    assert second is False
    assert token == 1
    assert meal_repository.fetch_calls == [PAST_DAY]
    assert goal_repository.fetch_calls == [PAST_DAY]
    assert len(meal_repository.subscriptions) == 1
    assert len(goal_repository.subscriptions) == 1


def test_changing_date_tears_down_and_restarts_both_streams(
    meal_repository: InMemoryMealRepository,
    goal_repository: InMemoryDayGoalRepository,
) -> None:
    async def scenario() -> AgendaSession:
        session = _session(meal_repository, goal_repository)
        session.controller.select(PAST_DAY)
        session.controller.select(TODAY)
        await session.settle()
        return session

    session = asyncio.run(scenario())

    assert session.controller.context.scope_token == 2
    assert [sub.day for sub in meal_repository.active_subscriptions()] == [TODAY]
    active_goal_subs = [sub for sub in goal_repository.subscriptions if sub.active]
    assert [sub.day for sub in active_goal_subs] == [TODAY]
    assert session.view_model.selected_date == TODAY


def test_slow_fetch_for_previous_date_cannot_overwrite_view(
    meal_repository: InMemoryMealRepository,
    goal_repository: InMemoryDayGoalRepository,
) -> None:
    meal_repository.add(
        "user-1", make_meal("a", datetime(2024, 5, 1, 8, tzinfo=UTC), 700)
    )
    meal_repository.add(
        "user-1", make_meal("b", datetime(2024, 5, 10, 8, tzinfo=UTC), 400)
    )

    async def scenario() -> AgendaSession:
        session = _session(meal_repository, goal_repository)
        meal_repository.hold(PAST_DAY)
        goal_repository.hold(PAST_DAY)
        session.select_date(PAST_DAY)
        session.select_date(TODAY)
        for _ in range(5):
            await asyncio.sleep(0)
        assert session.view_model.total_calories == 400
        meal_repository.release(PAST_DAY)
        goal_repository.release(PAST_DAY)
        await session.settle()
        return session

    session = asyncio.run(scenario())

    view = session.view_model
    assert view.selected_date == TODAY
    assert list(view.meals_by_date) == ["2024-05-10"]
    assert view.total_calories == 400
    assert view.resolved_goal_calories == 2200
    assert not view.is_loading


def test_is_today_or_future_uses_clock_and_timezone(
    meal_repository: InMemoryMealRepository,
    goal_repository: InMemoryDayGoalRepository,
) -> None:
    controller = _session(meal_repository, goal_repository).controller

    assert controller.today() == TODAY
    assert controller.is_today_or_future(TODAY)
    assert controller.is_today_or_future(FUTURE_DAY)
    assert not controller.is_today_or_future(PAST_DAY)
    assert controller.is_today_or_future(datetime(2024, 5, 10, 0, 1, tzinfo=UTC))


def test_normalize_converts_to_local_day(
    meal_repository: InMemoryMealRepository,
    goal_repository: InMemoryDayGoalRepository,
) -> None:
    session = AgendaSession.create(
        USER,
        meal_repository=meal_repository,
        goal_repository=goal_repository,
        timezone=ZoneInfo("America/New_York"),
        clock=fixed_clock,
    )

    normalized = session.controller.normalize(datetime(2024, 5, 2, 2, tzinfo=UTC))

    assert normalized.isoformat() == "2024-05-01"


def test_new_eaten_at_depends_on_selected_day(
    meal_repository: InMemoryMealRepository,
    goal_repository: InMemoryDayGoalRepository,
) -> None:
    async def scenario() -> tuple[datetime, datetime]:
        session = _session(meal_repository, goal_repository)
        session.select_date(TODAY)
        today_value = session.controller.new_eaten_at()
        session.select_date(PAST_DAY)
        past_value = session.controller.new_eaten_at()
        await session.close()
        return today_value, past_value

    today_value, past_value = asyncio.run(scenario())

    assert today_value == FIXED_NOW
    assert past_value == datetime(2024, 5, 1, tzinfo=ZoneInfo("UTC"))


def test_close_cancels_all_subscriptions(
    meal_repository: InMemoryMealRepository,
    goal_repository: InMemoryDayGoalRepository,
) -> None:
    async def scenario() -> AgendaSession:
        session = _session(meal_repository, goal_repository)
        session.select_date(PAST_DAY)
        await session.close()
        return session

    session = asyncio.run(scenario())

    assert session.controller.selected_date is None
    assert meal_repository.active_subscriptions() == []
    assert all(not sub.active for sub in goal_repository.subscriptions)
