from __future__ import annotations

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlmodel import Session

from backend.core.db import get_session
from backend.routers.pets import CurrentUserDep, require_user_id
from backend.schemas.chat import (
    ChatDetailResponse,
    ChatForMatchRequest,
    ChatListResponse,
    SendMessageRequest,
    SendMessageResponse,
)
from backend.services import chat_service, message_service

router = APIRouter(prefix="/chats", tags=["chats"])

SessionDep = Annotated[Session, Depends(get_session)]


@router.get("", response_model=ChatListResponse)
def list_my_chats(current: CurrentUserDep, session: SessionDep) -> ChatListResponse:
    user_id = require_user_id(current)
    chats = chat_service.list_chats_for_user(session, user_id)
    return ChatListResponse(count=len(chats), chats=chats)


@router.post("/for-match", response_model=ChatDetailResponse)
def chat_for_match(
    payload: ChatForMatchRequest,
    current: CurrentUserDep,
    session: SessionDep,
) -> ChatDetailResponse:
    user_id = require_user_id(current)
    if payload.match_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Match ID is required",
        )
    return chat_service.get_or_create_chat_for_match(session, payload.match_id, user_id)


@router.get("/{chat_id}", response_model=ChatDetailResponse)
def get_chat(
    chat_id: int,
    current: CurrentUserDep,
    session: SessionDep,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
    before: Annotated[
        datetime | None,
        Query(description="Only messages created before this instant"),
    ] = None,
) -> ChatDetailResponse:
    user_id = require_user_id(current)
    return chat_service.get_chat_detail(
        session, chat_id, user_id, limit=limit, before=before
    )


@router.post(
    "/{chat_id}/messages",
    response_model=SendMessageResponse,
    status_code=status.HTTP_201_CREATED,
)
def post_message(
    chat_id: int,
    payload: SendMessageRequest,
    current: CurrentUserDep,
    session: SessionDep,
) -> SendMessageResponse:
    """Persist a message; the sender relays it over the socket afterwards."""
    user_id = require_user_id(current)
    message = message_service.send_message(
        chat_id=chat_id,
        sender_user_id=user_id,
        content=payload.content,
        attachments=payload.attachments,
        session=session,
    )
    return SendMessageResponse(message=message_service.to_out(message, user_id))
