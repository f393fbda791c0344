from __future__ import annotations

import logging
from datetime import datetime

from fastapi import HTTPException, status
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from backend.models.chat import Chat
from backend.models.match import Match
from backend.models.message import Message, MessageRead
from backend.models.pet import Pet, PetSummary
from backend.schemas.chat import (
    ChatDetailResponse,
    ChatOut,
    ChatParticipant,
    LastMessagePreview,
)
from backend.services import message_service

logger = logging.getLogger(__name__)


def _sorted_users(a_user_id: int, b_user_id: int) -> tuple[int, int]:
    return (a_user_id, b_user_id) if a_user_id < b_user_id else (b_user_id, a_user_id)


def chat_for_match(session: Session, match_id: int) -> Chat | None:
    return session.exec(select(Chat).where(Chat.match_id == match_id)).first()


def create_chat_for_match(
    session: Session,
    match: Match,
    *,
    pet1_owner_id: int,
    pet2_owner_id: int,
) -> Chat:
    """Create the chat of a confirmed match; an existing one is returned as is."""
    if match.id is None:
        raise ValueError("match must be persisted before opening a chat")
    existing = chat_for_match(session, match.id)
    if existing is not None:
        return existing

    low, high = _sorted_users(pet1_owner_id, pet2_owner_id)
    chat = Chat(match_id=match.id, user_low_id=low, user_high_id=high)
    session.add(chat)
    try:
        session.commit()
    except IntegrityError:
        # Another request opened it first
        session.rollback()
        existing = chat_for_match(session, match.id)
        if existing is None:
            raise
        return existing
    session.refresh(chat)
    logger.info("Opened chat %s for match %s", chat.id, match.id)
    return chat


def delete_chat(session: Session, chat: Chat) -> None:
    """Remove a chat with its messages and receipts. The caller commits."""
    messages = session.exec(select(Message).where(Message.chat_id == chat.id)).all()
    message_ids = [message.id for message in messages if message.id is not None]
    if message_ids:
        receipts = session.exec(
            select(MessageRead).where(
                MessageRead.message_id.in_(message_ids)  # type: ignore[union-attr]
            )
        ).all()
        for receipt in receipts:
            session.delete(receipt)
        session.flush()
    for message in messages:
        session.delete(message)
    session.flush()
    session.delete(chat)
    session.flush()
    logger.info("Deleted chat %s of match %s", chat.id, chat.match_id)


def chat_participants(session: Session, chat_id: int) -> tuple[int, int] | None:
    chat = session.get(Chat, chat_id)
    if chat is None:
        return None
    return chat.participants


def _participant_chat(session: Session, chat_id: int, user_id: int) -> Chat:
    chat = session.get(Chat, chat_id)
    if chat is None or not chat.has_participant(user_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Chat not found or you are not a participant",
        )
    return chat


def _participants_for(
    session: Session, chat: Chat, user_id: int
) -> list[ChatParticipant] | None:
    match = session.get(Match, chat.match_id)
    if match is None:
        logger.error("Match %s missing for chat %s", chat.match_id, chat.id)
        return None
    pet1 = session.get(Pet, match.pet1_id)
    pet2 = session.get(Pet, match.pet2_id)
    if pet1 is None or pet2 is None:
        logger.error("Pets missing for match %s", match.id)
        return None
    my_pet, other_pet = (pet1, pet2) if pet1.owner_id == user_id else (pet2, pet1)
    return [
        ChatParticipant(
            pet=PetSummary.model_validate(my_pet, from_attributes=True),
            is_current_user=True,
        ),
        ChatParticipant(
            pet=PetSummary.model_validate(other_pet, from_attributes=True),
            is_current_user=False,
        ),
    ]


def _serialize_chat(session: Session, chat: Chat, user_id: int) -> ChatOut | None:
    participants = _participants_for(session, chat, user_id)
    if participants is None or chat.id is None:
        return None

    last_message: LastMessagePreview | None = None
    if chat.last_message_id is not None:
        message = session.get(Message, chat.last_message_id)
        if message is not None:
            last_message = LastMessagePreview(
                content=message.content,
                created_at=message.created_at,
                unread=(
                    message.sender_user_id != user_id
                    and not message_service.has_read(session, message, user_id)
                ),
            )

    return ChatOut(
        id=chat.id,
        match_id=chat.match_id,
        participants=participants,
        last_message=last_message,
        created_at=chat.created_at,
    )


def list_chats_for_user(session: Session, user_id: int) -> list[ChatOut]:
    chats = session.exec(
        select(Chat).where(
            or_(Chat.user_low_id == user_id, Chat.user_high_id == user_id),  # type: ignore[arg-type]
            Chat.is_active == True,  # noqa: E712
        )
    ).all()

    items: list[ChatOut] = []
    for chat in chats:
        serialized = _serialize_chat(session, chat, user_id)
        if serialized is not None:
            items.append(serialized)

    def _activity(item: ChatOut) -> datetime:
        return item.last_message.created_at if item.last_message else item.created_at

    items.sort(key=lambda item: (_activity(item), item.id), reverse=True)
    return items


def get_chat_detail(
    session: Session,
    chat_id: int,
    user_id: int,
    *,
    limit: int,
    before: datetime | None,
) -> ChatDetailResponse:
    chat = _participant_chat(session, chat_id, user_id)
    serialized = _serialize_chat(session, chat, user_id)
    if serialized is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Match associated with this chat not found",
        )

    messages = message_service.list_messages(
        session, chat_id, limit=limit, before=before
    )
    message_outs = [message_service.to_out(message, user_id) for message in messages]
    message_service.mark_chat_read(session, chat_id, user_id)
    return ChatDetailResponse(chat=serialized, messages=message_outs)


def get_or_create_chat_for_match(
    session: Session, match_id: int, user_id: int
) -> ChatDetailResponse:
    match = session.get(Match, match_id)
    if match is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Match not found",
        )
    pet1 = session.get(Pet, match.pet1_id)
    pet2 = session.get(Pet, match.pet2_id)
    if pet1 is None or pet2 is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Pet information not found",
        )
    if user_id not in {pet1.owner_id, pet2.owner_id}:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You are not a participant in this match",
        )

    chat = chat_for_match(session, match_id)
    if chat is None:
        if not match.is_match:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Match is not confirmed",
            )
        chat = create_chat_for_match(
            session,
            match,
            pet1_owner_id=pet1.owner_id,
            pet2_owner_id=pet2.owner_id,
        )

    if chat.id is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="chat missing identifier",
        )
    return get_chat_detail(
        session, chat.id, user_id, limit=20, before=None
    )
