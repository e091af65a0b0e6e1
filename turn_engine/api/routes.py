from __future__ import annotations

from uuid import UUID

import redis
from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect, status

from turn_engine.api.deps import get_redis
from turn_engine.api.models import (
    ActionSummary,
    AvailableActionsResponse,
    GameListResponse,
    GameSummary,
    HistoryResponse,
    RejectionModel,
    ResourceSummary,
    SessionCreateRequest,
    SessionListResponse,
    SessionStatusResponse,
    SubmitActionRequest,
    TurnResultResponse,
)
from turn_engine.catalog.singleton import get_catalog
from turn_engine.core.errors import GameNotFoundError, InvalidActionError, SessionBusyError, SessionNotFoundError
from turn_engine.session_store import (
    available_actions,
    create_session,
    list_sessions,
    require_session,
    submit_action,
)
from turn_engine.streams import SessionFeed, read_feed
from turn_engine.websocket_hub import hub

router = APIRouter()


def _not_found(e: Exception) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.websocket("/ws/session/{session_id}")
async def session_updates_ws(websocket: WebSocket, session_id: UUID) -> None:
    sid = str(session_id)
    await hub.connect(sid, websocket)

    try:
        # Keep the socket open; client can optionally send pings.
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        await hub.disconnect(sid, websocket)
    except Exception:
        await hub.disconnect(sid, websocket)
        raise


@router.get("/healthcheck")
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/games", response_model=GameListResponse)
async def list_games_route() -> GameListResponse:
    catalog = get_catalog()
    games: list[GameSummary] = []
    for game_id in catalog.ids():
        cfg = catalog.require(game_id)
        games.append(
            GameSummary(
                game_id=cfg.game_id,
                title=cfg.title,
                description=cfg.description,
                resources=[
                    ResourceSummary(name=r.name, initial=r.initial, min=r.minimum, max=r.maximum) for r in cfg.resources
                ],
                actions=[ActionSummary(id=a.id, description=a.description, cost=dict(a.cost)) for a in cfg.actions],
            )
        )
    return GameListResponse(games=games)


@router.post("/sessions", response_model=SessionStatusResponse, status_code=status.HTTP_201_CREATED)
async def create_session_route(payload: SessionCreateRequest, r: redis.Redis = Depends(get_redis)) -> SessionStatusResponse:
    try:
        record = create_session(r=r, game_id=payload.game_id, seed=payload.seed)
    except GameNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e
    return SessionStatusResponse.from_record(record)


@router.get("/sessions", response_model=SessionListResponse)
async def list_sessions_route(game_id: str | None = None, r: redis.Redis = Depends(get_redis)) -> SessionListResponse:
    return SessionListResponse(sessions=[SessionStatusResponse.from_record(s) for s in list_sessions(r=r, game_id=game_id)])


@router.get("/sessions/{session_id}", response_model=SessionStatusResponse)
async def get_session_route(session_id: UUID, r: redis.Redis = Depends(get_redis)) -> SessionStatusResponse:
    try:
        record = require_session(r=r, session_id=session_id)
    except SessionNotFoundError as e:
        raise _not_found(e) from e
    return SessionStatusResponse.from_record(record)


@router.get("/sessions/{session_id}/actions", response_model=AvailableActionsResponse)
async def list_actions_route(session_id: UUID, r: redis.Redis = Depends(get_redis)) -> AvailableActionsResponse:
    try:
        actions = available_actions(r=r, session_id=session_id)
    except (SessionNotFoundError, GameNotFoundError) as e:
        raise _not_found(e) from e
    return AvailableActionsResponse(session_id=session_id, actions=actions)


@router.post("/sessions/{session_id}/actions", response_model=TurnResultResponse)
async def submit_action_route(
    session_id: UUID,
    payload: SubmitActionRequest,
    r: redis.Redis = Depends(get_redis),
) -> TurnResultResponse:
    """Submit one action. Rejections are a normal 200 response with `accepted: false`."""

    try:
        submitted = submit_action(r=r, session_id=session_id, action_id=payload.action_id)
    except (SessionNotFoundError, GameNotFoundError) as e:
        raise _not_found(e) from e
    except InvalidActionError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e
    except SessionBusyError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e

    result = submitted.result
    if result.accepted:
        await hub.broadcast(
            str(session_id),
            {
                "type": "session_updated",
                "session_id": str(session_id),
                "turn_number": result.turn_number,
                "status": result.status.value,
            },
        )

    return TurnResultResponse(
        session_id=session_id,
        accepted=result.accepted,
        action_id=result.action_id,
        turn_number=result.turn_number,
        status=result.status,
        event_id=result.event_id,
        facts=list(result.facts),
        ended_by=result.ended_by,
        rejection=(
            RejectionModel(reason=result.rejection.reason, message=result.rejection.message)
            if result.rejection is not None
            else None
        ),
    )


@router.get("/sessions/{session_id}/history", response_model=HistoryResponse)
async def history_route(session_id: UUID, r: redis.Redis = Depends(get_redis)) -> HistoryResponse:
    try:
        record = require_session(r=r, session_id=session_id)
    except SessionNotFoundError as e:
        raise _not_found(e) from e
    return HistoryResponse(session_id=session_id, history=record.history)


@router.get("/sessions/{session_id}/feed")
async def get_session_feed_route(
    session_id: UUID,
    count: int = 20,
    start: str = "-",
    end: str = "+",
    r: redis.Redis = Depends(get_redis),
) -> dict[str, object]:
    """Debug endpoint: read a session's feed Redis Stream.

    Intended for local/dev testing when redis-cli isn't available.
    """

    if count < 1 or count > 200:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="count must be between 1 and 200")

    feed = SessionFeed(session_id=str(session_id))
    try:
        entries = read_feed(r=r, feed=feed, count=count, start=start, end=end)
    except redis.ResponseError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e

    messages = [{"id": mid, "fields": fields} for mid, fields in entries]
    return {"session_id": str(session_id), "stream": feed.key, "messages": messages}
