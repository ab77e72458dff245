"""Single-writer assembly of the agenda view model."""

import logging
from collections.abc import Callable
from datetime import date
from zoneinfo import ZoneInfo

from meal_agenda.domain.agenda import AgendaViewModel
from meal_agenda.domain.goals import DayGoalRecord
from meal_agenda.domain.meals import MealRecord
from meal_agenda.domain.models import CurrentUser
from meal_agenda.services.aggregation import (
    build_agenda_items,
    have_totals_changed,
    resolve_goal_calories,
    total_calories,
)
from meal_agenda.services.synchronizer import SyncUpdate

ViewModelObserver = Callable[[AgendaViewModel, bool], None]

_logger = logging.getLogger(__name__)


class ViewModelAssembler:
    """Combines both synchronizer streams into one immutable view model.

    Every accepted update triggers a full recomputation. Observers receive the
    new view model and whether meal totals changed since the previous one.
    """

    def __init__(
        self,
        user: CurrentUser,
        today: Callable[[], date],
        timezone: ZoneInfo | None = None,
    ) -> None:
        self.user = user
        self._today = today
        self._timezone = timezone
        self._token = 0
        self._date = today()
        self._meals: list[MealRecord] = []
        self._goal: DayGoalRecord | None = None
        self._meals_loading = True
        self._goal_loading = True
        self._errors: dict[str, str] = {}
        self._goal_revision = 0
        self._observers: list[ViewModelObserver] = []
        self._current = self._compute()

    @property
    def current(self) -> AgendaViewModel:
        return self._current

    @property
    def latest_meals(self) -> list[MealRecord]:
        return list(self._meals)

    @property
    def latest_goal(self) -> DayGoalRecord | None:
        return self._goal

    @property
    def goal_revision(self) -> int:
        """Number of goal updates applied so far."""
        return self._goal_revision

    def subscribe(self, observer: ViewModelObserver) -> Callable[[], None]:
        """Register an observer; returns a callable that removes it."""
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def reset(self, selected_date: date, token: int) -> None:
        """Start a new scope with empty, loading state."""
        self._token = token
        self._date = selected_date
        previous = self._meals
        self._meals = []
        self._goal = None
        self._meals_loading = True
        self._goal_loading = True
        self._errors = {}
        self._emit(previous)

    def apply_meals(self, token: int, update: SyncUpdate[list[MealRecord]]) -> None:
        """Apply a meals update if it belongs to the current scope."""
        if not self._accepts(token, update):
            return
        previous = self._meals
        self._meals = list(update.records)
        self._meals_loading = update.is_loading
        self._track_error(update)
        self._emit(previous)

    def apply_goal(self, token: int, update: SyncUpdate[DayGoalRecord | None]) -> None:
        """Apply a day goal update if it belongs to the current scope."""
        if not self._accepts(token, update):
            return
        self._goal = update.records
        self._goal_loading = update.is_loading
        self._goal_revision += 1
        self._track_error(update)
        self._emit(self._meals)

    def _accepts(self, token: int, update: SyncUpdate[object]) -> bool:
        if token != self._token or update.scope != self._date:
            _logger.debug(
                "Dropped %s update for %s (token %s, current %s)",
                update.source,
                update.scope,
                token,
                self._token,
            )
            return False
        return True

    def _track_error(self, update: SyncUpdate[object]) -> None:
        if update.error:
            self._errors[update.source] = update.error
        else:
            self._errors.pop(update.source, None)

    def _compute(self) -> AgendaViewModel:
        return AgendaViewModel(
            selected_date=self._date,
            meals_by_date=build_agenda_items(self._meals, self._date, self._timezone),
            resolved_goal_calories=resolve_goal_calories(
                self._goal,
                self._date,
                self.user.default_goal_calories,
                self._today(),
            ),
            total_calories=total_calories(self._meals),
            is_loading=self._meals_loading or self._goal_loading,
            day_goal_id=self._goal.id if self._goal else None,
            last_error=next(iter(self._errors.values()), None),
        )

    def _emit(self, previous_meals: list[MealRecord]) -> None:
        self._current = self._compute()
        totals_changed = have_totals_changed(previous_meals, self._meals)
        for observer in list(self._observers):
            observer(self._current, totals_changed)
