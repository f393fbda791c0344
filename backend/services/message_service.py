from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime
from typing import cast

from fastapi import HTTPException, status
from sqlalchemy import desc
from sqlalchemy.sql.schema import Table
from sqlmodel import Session, select

from backend.models.chat import Chat
from backend.models.message import Message, MessageRead
from backend.schemas.chat import ChatMessageOut, MessageSender

logger = logging.getLogger(__name__)

MESSAGE_TABLE = cast(Table, Message.__table__)  # type: ignore[attr-defined]


def _get_participant_chat(chat_id: int, user_id: int, session: Session) -> Chat:
    chat = session.exec(select(Chat).where(Chat.id == chat_id)).first()
    if chat is None or not chat.has_participant(user_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Chat not found or you are not a participant",
        )
    return chat


def send_message(
    chat_id: int,
    sender_user_id: int,
    content: str | None,
    attachments: Sequence[str],
    session: Session,
) -> Message:
    text = (content or "").strip()
    files = [item.strip() for item in attachments if item and item.strip()]
    if not text and not files:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Message must have content or attachments",
        )

    chat = _get_participant_chat(chat_id, sender_user_id, session)

    message = Message(
        chat_id=chat_id,
        sender_user_id=sender_user_id,
        content=text,
        attachments=files,
    )
    session.add(message)
    session.flush()
    # The sender has trivially read their own message
    session.add(MessageRead(message_id=message.id, user_id=sender_user_id))
    chat.last_message_id = message.id
    session.add(chat)
    session.commit()
    session.refresh(message)
    logger.debug("Stored message %s in chat %s", message.id, chat_id)
    return message


def list_messages(
    session: Session,
    chat_id: int,
    *,
    limit: int,
    before: datetime | None = None,
) -> list[Message]:
    """The newest `limit` messages older than `before`, oldest first."""
    statement = select(Message).where(Message.chat_id == chat_id)
    if before is not None:
        statement = statement.where(MESSAGE_TABLE.c.created_at < before)
    statement = statement.order_by(
        desc(MESSAGE_TABLE.c.created_at), desc(MESSAGE_TABLE.c.id)
    ).limit(limit)
    messages = list(session.exec(statement).all())
    messages.reverse()
    return messages


def has_read(session: Session, message: Message, user_id: int) -> bool:
    receipt = session.exec(
        select(MessageRead.id).where(
            MessageRead.message_id == message.id,
            MessageRead.user_id == user_id,
        )
    ).first()
    return receipt is not None


def mark_chat_read(session: Session, chat_id: int, reader_user_id: int) -> int:
    """Append one receipt per unread message from the other participant."""
    already_read = select(MessageRead.message_id).where(
        MessageRead.user_id == reader_user_id
    )
    unread = session.exec(
        select(Message.id).where(
            Message.chat_id == chat_id,
            Message.sender_user_id != reader_user_id,
            MESSAGE_TABLE.c.id.not_in(already_read),
        )
    ).all()
    now = datetime.utcnow()
    for message_id in unread:
        session.add(MessageRead(message_id=message_id, user_id=reader_user_id, read_at=now))
    if unread:
        session.commit()
    return len(unread)


def to_out(message: Message, viewer_user_id: int) -> ChatMessageOut:
    if message.id is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="message missing identifier",
        )
    return ChatMessageOut(
        id=message.id,
        chat_id=message.chat_id,
        content=message.content,
        created_at=message.created_at,
        sender=MessageSender(
            id=message.sender_user_id,
            is_current_user=message.sender_user_id == viewer_user_id,
        ),
        attachments=list(message.attachments or []),
    )
