from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, Column, UniqueConstraint
from sqlmodel import Field, SQLModel


class Message(SQLModel, table=True):
    id: int | None = Field(default=None, primary_key=True)
    chat_id: int = Field(
        foreign_key="chat.id",
        nullable=False,
        index=True,
    )
    sender_user_id: int = Field(
        foreign_key="user.id",
        nullable=False,
        index=True,
    )
    content: str = Field(default="", nullable=False)
    attachments: list[str] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False),
    )
    created_at: datetime = Field(
        default_factory=datetime.utcnow, nullable=False, index=True
    )


class MessageRead(SQLModel, table=True):
    __tablename__ = "message_read"
    __table_args__ = (
        UniqueConstraint("message_id", "user_id", name="uq_message_read_reader"),
    )

    id: int | None = Field(default=None, primary_key=True)
    message_id: int = Field(foreign_key="message.id", nullable=False, index=True)
    user_id: int = Field(foreign_key="user.id", nullable=False, index=True)
    read_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)
