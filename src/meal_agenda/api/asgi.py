"""ASGI entrypoint for the meal agenda API."""

from meal_agenda.api.app import create_app
from meal_agenda.containers import build_container

app = create_app(build_container())
