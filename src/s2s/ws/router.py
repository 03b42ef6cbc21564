"""WebSocket streams of profile and collection snapshots.

Each stream authenticates with a bearer token in the ``token`` query
parameter, sends the current state on connect and then one message per
change. A client that falls behind only receives the newest state.

    Server -> Client:
        {"type": "profile", "data": {...} | null}
        {"type": "collections", "data": [{...}, ...]}
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable
from typing import Any, Protocol

import structlog
from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

from s2s.auth.jwt import verify_token
from s2s.dependencies import get_collections_service, get_profile_service
from s2s.errors import NotAuthenticated
from s2s.library.service import CollectionsService, decode_collections
from s2s.users.router import profile_response
from s2s.users.schemas import UserProfile
from s2s.users.service import ProfileService

logger = structlog.get_logger()

router = APIRouter(prefix="/ws", tags=["Streams"])


class Updates(Protocol):
    def __aiter__(self) -> AsyncIterator[Any]: ...

    async def close(self) -> None: ...


async def _authenticate(websocket: WebSocket, token: str) -> str | None:
    try:
        return str(verify_token(token)["sub"])
    except NotAuthenticated as e:
        await websocket.close(code=4001, reason=f"Authentication failed: {e.message}")
        return None


async def _close_on_error(websocket: WebSocket) -> None:
    if websocket.client_state == WebSocketState.CONNECTED:
        await websocket.close(code=1011)


async def stream_updates(
    websocket: WebSocket,
    updates: Updates,
    render: Callable[[Any], dict[str, Any]],
) -> None:
    """Forward every item of ``updates`` until the client goes away.

    Client messages are read only to notice the disconnect, which closes the
    subscription and ends the loop.
    """

    async def _close_on_disconnect() -> None:
        try:
            while (await websocket.receive())["type"] != "websocket.disconnect":
                pass
        finally:
            await updates.close()

    reader = asyncio.create_task(_close_on_disconnect())
    try:
        async for item in updates:
            await websocket.send_json(render(item))
    finally:
        reader.cancel()
        await updates.close()


def _render_profile(profile: UserProfile | None) -> dict[str, Any]:
    data = None if profile is None else profile_response(profile).model_dump(mode="json")
    return {"type": "profile", "data": data}


def _render_collections(snapshots: list) -> dict[str, Any]:
    return {
        "type": "collections",
        "data": [c.model_dump(mode="json", by_alias=True) for c in decode_collections(snapshots)],
    }


@router.websocket("/profile")
async def profile_stream(
    websocket: WebSocket,
    token: str = Query(...),
    profiles: ProfileService = Depends(get_profile_service),
) -> None:
    user_id = await _authenticate(websocket, token)
    if user_id is None:
        return
    await websocket.accept()
    try:
        await stream_updates(websocket, await profiles.watch(user_id), _render_profile)
    except WebSocketDisconnect:
        logger.debug("ws_profile_disconnected", user_id=user_id)
    except Exception:
        logger.exception("ws_profile_error", user_id=user_id)
        await _close_on_error(websocket)


@router.websocket("/collections")
async def collections_stream(
    websocket: WebSocket,
    token: str = Query(...),
    collections: CollectionsService = Depends(get_collections_service),
) -> None:
    user_id = await _authenticate(websocket, token)
    if user_id is None:
        return
    await websocket.accept()
    try:
        await stream_updates(websocket, await collections.watch(user_id), _render_collections)
    except WebSocketDisconnect:
        logger.debug("ws_collections_disconnected", user_id=user_id)
    except Exception:
        logger.exception("ws_collections_error", user_id=user_id)
        await _close_on_error(websocket)
