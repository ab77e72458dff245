"""Selected date ownership and synchronizer restarts."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, time
from zoneinfo import ZoneInfo

from meal_agenda.domain.goals import DayGoalRecord
from meal_agenda.domain.meals import MealRecord
from meal_agenda.services.aggregation import is_today_or_future
from meal_agenda.services.assembler import ViewModelAssembler
from meal_agenda.services.synchronizer import CancelHandle, DocumentSynchronizer

_logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class SyncContext:
    """Scope token, current date and live handles for one agenda."""

    scope_token: int = 0
    current_date: date | None = None
    meals_handle: CancelHandle | None = None
    goal_handle: CancelHandle | None = None


@dataclass
class DateSelectionController:
    """Owns the selected date and restarts both streams when it changes."""

    meals: DocumentSynchronizer[list[MealRecord]]
    goal: DocumentSynchronizer[DayGoalRecord | None]
    assembler: ViewModelAssembler
    timezone: ZoneInfo = field(default_factory=lambda: ZoneInfo("UTC"))
    clock: Callable[[], datetime] = _utc_now
    context: SyncContext = field(default_factory=SyncContext)

    @property
    def selected_date(self) -> date | None:
        return self.context.current_date

    def normalize(self, value: date | datetime) -> date:
        """Reduce a date or timestamp to a local calendar day."""
        if isinstance(value, datetime):
            if value.tzinfo is not None:
                return value.astimezone(self.timezone).date()
            return value.date()
        return value

    def today(self) -> date:
        return self.clock().astimezone(self.timezone).date()

    def is_today_or_future(self, value: date | datetime) -> bool:
        return is_today_or_future(self.normalize(value), self.today())

    def select(self, value: date | datetime) -> bool:
        """Switch to a new date; selecting the current date is a no-op."""
        day = self.normalize(value)
        if day == self.context.current_date:
            return False
        self._teardown()
        self.context.scope_token += 1
        token = self.context.scope_token
        self.context.current_date = day
        _logger.info("Selected %s (scope token %s)", day, token)
        self.assembler.reset(day, token)
        self.context.meals_handle = self.meals.start(
            day, lambda update: self.assembler.apply_meals(token, update)
        )
        self.context.goal_handle = self.goal.start(
            day, lambda update: self.assembler.apply_goal(token, update)
        )
        return True

    def new_eaten_at(self, now: datetime | None = None) -> datetime:
        """Timestamp for a meal added on the selected day."""
        current = now or self.clock()
        selected = self.context.current_date or self.today()
        if selected == current.astimezone(self.timezone).date():
            return current
        return datetime.combine(selected, time.min, tzinfo=self.timezone)

    def close(self) -> None:
        """Cancel both streams and forget the selected date."""
        self._teardown()
        self.context.scope_token += 1
        self.context.current_date = None

    def _teardown(self) -> None:
        for handle in (self.context.meals_handle, self.context.goal_handle):
            if handle is not None:
                handle()
        self.context.meals_handle = None
        self.context.goal_handle = None
