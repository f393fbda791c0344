from __future__ import annotations

from datetime import datetime

import sqlalchemy as sa
from sqlmodel import Field, SQLModel


class User(SQLModel, table=True):
    __tablename__ = "user"
    __table_args__ = (
        sa.UniqueConstraint("email", name="uq_user_email"),
        sa.UniqueConstraint("google_id", name="uq_user_google_id"),
        sa.CheckConstraint(
            "password_hash IS NOT NULL OR google_id IS NOT NULL",
            name="ck_user_credentials",
        ),
        sa.Index("ix_user_location", "latitude", "longitude"),
    )

    id: int | None = Field(default=None, primary_key=True)
    email: str = Field(index=True)
    name: str | None = None
    # Optional only when the account is linked to Google
    password_hash: str | None = None
    google_id: str | None = None
    # [0, 0] means the location was never set
    longitude: float = Field(default=0.0, nullable=False)
    latitude: float = Field(default=0.0, nullable=False)
    address: str | None = None
    city: str | None = None
    push_token: str | None = None
    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)

    @property
    def coordinates(self) -> tuple[float, float]:
        return (self.longitude, self.latitude)

    @property
    def has_valid_location(self) -> bool:
        return self.longitude != 0 or self.latitude != 0
