from __future__ import annotations

from datetime import datetime

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel


class Chat(SQLModel, table=True):
    __tablename__ = "chat"
    __table_args__ = (UniqueConstraint("match_id", name="uq_chat_match"),)

    id: int | None = Field(default=None, primary_key=True)
    match_id: int = Field(foreign_key="match.id", nullable=False, index=True)
    user_low_id: int = Field(foreign_key="user.id", nullable=False, index=True)
    user_high_id: int = Field(foreign_key="user.id", nullable=False, index=True)
    # No FK: messages reference the chat, so this would be a cycle
    last_message_id: int | None = Field(default=None)
    is_active: bool = Field(default=True, nullable=False)
    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)

    @property
    def participants(self) -> tuple[int, int]:
        return (self.user_low_id, self.user_high_id)

    def has_participant(self, user_id: int) -> bool:
        return user_id in self.participants
