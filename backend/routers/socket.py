from __future__ import annotations

import json
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request, WebSocket, WebSocketDisconnect
from sqlmodel import Session, select

from backend.core import db
from backend.core.security import subject_from_token
from backend.models.user import User
from backend.services.chat_service import chat_participants
from backend.services.presence import PresenceRegistry
from backend.services.realtime import ERROR, RealtimeHub

logger = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])


def lookup_chat_participants(chat_id: int) -> tuple[int, int] | None:
    with Session(db.engine) as session:
        return chat_participants(session, chat_id)


def resolve_token_user(token: str) -> int | None:
    email = subject_from_token(token)
    if email is None:
        return None
    with Session(db.engine) as session:
        return session.exec(select(User.id).where(User.email == email)).first()


def build_realtime_hub() -> RealtimeHub:
    return RealtimeHub(
        PresenceRegistry(),
        participants_lookup=lookup_chat_participants,
        token_resolver=resolve_token_user,
    )


def get_realtime_hub(request: Request) -> RealtimeHub:
    hub: RealtimeHub = request.app.state.realtime
    return hub


RealtimeHubDep = Annotated[RealtimeHub, Depends(get_realtime_hub)]


@router.websocket("/ws")
async def realtime_socket(websocket: WebSocket) -> None:
    hub: RealtimeHub = websocket.app.state.realtime
    await websocket.accept()
    connection_id = hub.attach(websocket)
    logger.info("A client connected: %s", connection_id)
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                frame = json.loads(raw)
            except ValueError:
                frame = None
            if not isinstance(frame, dict) or not isinstance(frame.get("event"), str):
                await hub.emit(
                    connection_id,
                    ERROR,
                    {"message": "Frames must be objects with an event name"},
                )
                continue
            await hub.handle_event(connection_id, frame["event"], frame.get("data"))
    except WebSocketDisconnect:
        logger.info("Client disconnected: %s", connection_id)
    finally:
        hub.detach(connection_id)
