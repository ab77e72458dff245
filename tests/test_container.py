"""Tests for container wiring."""

import asyncio

from meal_agenda.containers import build_container


def test_build_container_creates_services(settings) -> None:
    container = build_container(settings)
    assert container.session_registry is not None
    assert container.user_service.fallback_goal_calories == 2000
    asyncio.run(container.close_resources())
