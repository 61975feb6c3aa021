# onetrack/routers/realtime.py
import asyncio
import logging
import uuid
from typing import Any, Callable

from fastapi import (
    APIRouter,
    Depends,
    HTTPException,
    WebSocket,
    WebSocketDisconnect,
    status,
)
from fastapi.concurrency import run_in_threadpool
from sqlmodel import Session

from onetrack.core.auth import identity_from_token
from onetrack.core.realtime import ChangeEvent, ChangeFeed, get_change_feed
from onetrack.database import get_session_factory
from onetrack.repositories.profile_repo import ProfileRepository
from onetrack.repositories.stats_repo import StatsRepository
from onetrack.services.session_service import SessionContext
from onetrack.services.stats_service import StatsService, creator_scope

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/realtime", tags=["Realtime"])

stats_service = StatsService(StatsRepository())
profile_repo = ProfileRepository()


def _resolve_role(context: SessionContext, open_session: Callable[[], Session]) -> SessionContext:
    with open_session() as session:
        return context.resolve(session)


def _snapshot(
    open_session: Callable[[], Session],
    created_by: uuid.UUID | None,
) -> dict[str, Any]:
    with open_session() as session:
        return stats_service.get_request_stats(session, created_by).model_dump()


@router.websocket("/requests")
async def request_stats_stream(
    websocket: WebSocket,
    token: str = "",
    open_session: Callable[[], Session] = Depends(get_session_factory),
    feed: ChangeFeed = Depends(get_change_feed),
):
    """
    Live dashboard counters.

    - Sends a full snapshot on connect and after every `requests` change.
    - Customers only see counts of the jobs they created.
    - Invalid or missing token, or a caller without a usable role
      => close code 1008.
    - Database work runs in the threadpool, one session per snapshot.
    """
    try:
        caller = identity_from_token(token)
    except HTTPException:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    context = SessionContext(caller.id, caller.email, profile_repo)
    await run_in_threadpool(_resolve_role, context, open_session)
    if context.role is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()

    loop = asyncio.get_running_loop()
    changes: asyncio.Queue[ChangeEvent | None] = asyncio.Queue()

    def on_change(change: ChangeEvent) -> None:
        # Called from threadpool workers
        loop.call_soon_threadsafe(changes.put_nowait, change)

    async def watch_disconnect() -> None:
        try:
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            await changes.put(None)

    subscription = feed.on_change("requests", on_change)
    context.open(feed)
    reader = asyncio.create_task(watch_disconnect())
    try:
        stats = await run_in_threadpool(
            _snapshot, open_session, creator_scope(context.role, caller.id)
        )
        await websocket.send_json({"type": "snapshot", "stats": stats})
        while True:
            change = await changes.get()
            if change is None:
                logger.info("Realtime client %s disconnected", caller.id)
                break

            # Role changed since connect: re-check before sending more data
            if context.status == "loading":
                await run_in_threadpool(_resolve_role, context, open_session)
                if context.role is None:
                    await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
                    return

            stats = await run_in_threadpool(
                _snapshot, open_session, creator_scope(context.role, caller.id)
            )
            await websocket.send_json(
                {
                    "type": "snapshot",
                    "event": change.event,
                    "stats": stats,
                }
            )
    except WebSocketDisconnect:
        logger.info("Realtime client %s disconnected", caller.id)
    finally:
        reader.cancel()
        subscription.unsubscribe()
        context.close()
