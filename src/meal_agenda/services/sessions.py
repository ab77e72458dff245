"""Per-user agenda sessions wiring selection, sync and mutations."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from zoneinfo import ZoneInfo

from meal_agenda.domain.agenda import AgendaViewModel
from meal_agenda.domain.goals import DayGoalRecord
from meal_agenda.domain.meals import MealRecord
from meal_agenda.domain.models import CurrentUser
from meal_agenda.services.assembler import ViewModelAssembler, ViewModelObserver
from meal_agenda.services.date_selection import DateSelectionController
from meal_agenda.services.goals import DayGoalRepository, parse_goal_input
from meal_agenda.services.meals import MealRepository
from meal_agenda.services.mutations import MutationGateway
from meal_agenda.services.synchronizer import DocumentSynchronizer
from meal_agenda.services.users import UserService

_logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class AgendaSession:
    """Synchronization context for one user's agenda."""

    user: CurrentUser
    controller: DateSelectionController
    assembler: ViewModelAssembler
    gateway: MutationGateway
    _created_goal_ids: dict[date, tuple[str, int]] = field(default_factory=dict)

    @classmethod
    def create(
        cls,
        user: CurrentUser,
        meal_repository: MealRepository,
        goal_repository: DayGoalRepository,
        timezone: ZoneInfo | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> "AgendaSession":
        """Build a session whose streams are scoped to ``user``."""
        tz = timezone or ZoneInfo("UTC")

        def today() -> date:
            return clock().astimezone(tz).date()

        meals = DocumentSynchronizer[list[MealRecord]](
            "meals",
            fetch=lambda day: meal_repository.fetch_meals(day, user.uid),
            subscribe=lambda day, on_change, on_error: (
                meal_repository.subscribe_meals(day, user.uid, on_change, on_error)
            ),
            empty=[],
        )
        goal = DocumentSynchronizer[DayGoalRecord | None](
            "day_goal",
            fetch=lambda day: goal_repository.fetch_day_goal(day, user.uid),
            subscribe=lambda day, on_change, on_error: (
                goal_repository.subscribe_day_goal(day, user.uid, on_change, on_error)
            ),
            empty=None,
        )
        assembler = ViewModelAssembler(user, today=today, timezone=tz)
        controller = DateSelectionController(
            meals=meals,
            goal=goal,
            assembler=assembler,
            timezone=tz,
            clock=clock,
        )
        gateway = MutationGateway(
            meal_repository=meal_repository, goal_repository=goal_repository
        )
        return cls(
            user=user, controller=controller, assembler=assembler, gateway=gateway
        )

    @property
    def view_model(self) -> AgendaViewModel:
        return self.assembler.current

    def open(self) -> None:
        """Select today when nothing is selected yet."""
        if self.controller.selected_date is None:
            self.controller.select(self.controller.today())

    def select_date(self, value: date | datetime) -> bool:
        """Select a date; returns False when it was already selected."""
        changed = self.controller.select(value)
        if changed:
            self._created_goal_ids.clear()
        return changed

    def subscribe(self, observer: ViewModelObserver) -> Callable[[], None]:
        return self.assembler.subscribe(observer)

    async def request_delete_meal(self, meal_id: str) -> None:
        await self.gateway.delete_meal(meal_id)

    async def request_set_goal(self, raw_goal: object) -> str:
        """Validate and save the goal for the selected date."""
        goal_calories = parse_goal_input(raw_goal)
        self.open()
        day = self.controller.selected_date or self.controller.today()
        latest = self.assembler.latest_goal
        known_id = latest.id if latest and latest.id else None
        if known_id is None:
            known_id = self._pending_goal_id(day)
        goal_id = await self.gateway.upsert_goal(
            day, goal_calories, self.user.uid, known_id=known_id
        )
        if self.controller.selected_date == day:
            self._created_goal_ids[day] = (goal_id, self.assembler.goal_revision)
        return goal_id

    def _pending_goal_id(self, day: date) -> str | None:
        # Only valid until the next goal update reaches the assembler.
        entry = self._created_goal_ids.get(day)
        if entry is None:
            return None
        goal_id, revision = entry
        if revision != self.assembler.goal_revision:
            del self._created_goal_ids[day]
            return None
        return goal_id

    async def settle(self) -> None:
        """Wait until both streams finished their initial fetch."""
        await asyncio.gather(
            self.controller.meals.settle(), self.controller.goal.settle()
        )

    async def close(self) -> None:
        self.controller.close()
        await self.settle()


@dataclass
class AgendaSessionRegistry:
    """Lazily creates one agenda session per user."""

    user_service: UserService
    meal_repository: MealRepository
    goal_repository: DayGoalRepository
    timezone: ZoneInfo = field(default_factory=lambda: ZoneInfo("UTC"))
    clock: Callable[[], datetime] = _utc_now
    _sessions: dict[str, AgendaSession] = field(default_factory=dict)

    async def get(self, user_id: str) -> AgendaSession | None:
        """Return the user's open session, creating it on first use."""
        session = self._sessions.get(user_id)
        if session is not None:
            return session
        user = await self.user_service.get_current_user(user_id)
        if user is None:
            return None
        session = self._sessions.get(user_id)
        if session is not None:
            return session
        session = AgendaSession.create(
            user,
            meal_repository=self.meal_repository,
            goal_repository=self.goal_repository,
            timezone=self.timezone,
            clock=self.clock,
        )
        session.open()
        self._sessions[user_id] = session
        _logger.info("Opened agenda session", extra={"user_id": user_id})
        return session

    async def close_all(self) -> None:
        sessions = list(self._sessions.values())
        self._sessions.clear()
        for session in sessions:
            await session.close()
