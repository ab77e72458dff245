"""FastAPI application factory."""

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Header, HTTPException, Request, Response, status
from fastapi.responses import StreamingResponse

from meal_agenda.api.models import (
    AgendaEvent,
    AgendaResponse,
    SelectDateRequest,
    SetGoalRequest,
    SetGoalResponse,
)
from meal_agenda.app_logging import configure_logging
from meal_agenda.containers import AppContainer
from meal_agenda.domain.agenda import AgendaViewModel
from meal_agenda.domain.errors import MutationError, ValidationError
from meal_agenda.services.sessions import AgendaSession

KEEPALIVE_SECONDS = 15.0

_logger = logging.getLogger(__name__)


async def current_session(
    request: Request, x_user_id: str | None = Header(default=None)
) -> AgendaSession:
    """Resolve the caller's agenda session from the user header."""
    if not x_user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)
    container: AppContainer = request.app.state.container
    session = await container.session_registry.get(x_user_id)
    if session is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    return session


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.session_registry.close_all()
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/agenda")
    async def get_agenda(
        session: AgendaSession = Depends(current_session),
    ) -> AgendaResponse:
        """Return the agenda for the selected date."""
        return AgendaResponse.from_view_model(session.view_model)

    @app.post("/agenda/date")
    async def select_date(
        body: SelectDateRequest, session: AgendaSession = Depends(current_session)
    ) -> AgendaResponse:
        """Select a date and return its agenda once the first fetch settles."""
        session.select_date(body.date)
        await session.settle()
        return AgendaResponse.from_view_model(session.view_model)

    @app.delete("/agenda/meals/{meal_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def delete_meal(
        meal_id: str, session: AgendaSession = Depends(current_session)
    ) -> Response:
        """Delete a meal; the agenda updates once the store confirms it."""
        try:
            await session.request_delete_meal(meal_id)
        except MutationError as exc:
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)
            ) from exc
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @app.put("/agenda/goal", status_code=status.HTTP_202_ACCEPTED)
    async def set_goal(
        body: SetGoalRequest, session: AgendaSession = Depends(current_session)
    ) -> SetGoalResponse:
        """Save the goal for the selected date."""
        try:
            goal_id = await session.request_set_goal(body.goal_calories)
        except ValidationError as exc:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)
            ) from exc
        except MutationError as exc:
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)
            ) from exc
        return SetGoalResponse(id=goal_id)

    @app.get("/agenda/events")
    async def agenda_events(
        request: Request, session: AgendaSession = Depends(current_session)
    ) -> StreamingResponse:
        """Stream every new view model as server-sent events."""
        return StreamingResponse(
            agenda_event_stream(session, request.is_disconnected),
            media_type="text/event-stream",
        )

    return app


async def agenda_event_stream(
    session: AgendaSession,
    is_disconnected: Callable[[], Awaitable[bool]],
    keepalive_seconds: float = KEEPALIVE_SECONDS,
) -> AsyncIterator[str]:
    """Yield SSE frames for the session, starting with its current view model.

    While idle a keepalive comment is sent every ``keepalive_seconds`` so a
    client disconnect is noticed without waiting for the next update.
    """
    queue: asyncio.Queue[AgendaEvent] = asyncio.Queue()

    def push(view_model: AgendaViewModel, totals_changed: bool) -> None:
        event = AgendaEvent.from_view_model(view_model)
        queue.put_nowait(event.model_copy(update={"totals_changed": totals_changed}))

    unsubscribe = session.subscribe(push)
    try:
        push(session.view_model, True)
        while not await is_disconnected():
            try:
                event = await asyncio.wait_for(queue.get(), keepalive_seconds)
            except TimeoutError:
                yield ": keepalive\n\n"
                continue
            yield f"event: agenda\ndata: {event.model_dump_json()}\n\n"
    except asyncio.CancelledError:
        _logger.info("Agenda stream cancelled for user %s", session.user.uid)
        raise
    finally:
        unsubscribe()
