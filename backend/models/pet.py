from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import JSON, Column, UniqueConstraint
from sqlalchemy.types import Enum as SQLEnum
from sqlmodel import Field, SQLModel


class PetType(str, Enum):
    dog = "dog"
    cat = "cat"


class Gender(str, Enum):
    unknown = "unknown"
    male = "male"
    female = "female"


class PetSize(str, Enum):
    small = "small"
    medium = "medium"
    large = "large"
    xlarge = "xlarge"


class ActivityLevel(str, Enum):
    low = "low"
    moderate = "moderate"
    high = "high"


class PetBase(SQLModel):
    name: str = Field(min_length=1, max_length=30)
    type: PetType
    breed: str | None = None
    age: int | None = Field(default=None, ge=0)
    gender: Gender = Field(default=Gender.unknown)
    size: PetSize | None = None
    vaccinated: bool = False
    activity_level: ActivityLevel = Field(default=ActivityLevel.moderate)
    temperament: list[str] = Field(default_factory=list)
    photos: list[str] = Field(default_factory=list)
    description: str | None = Field(default=None, max_length=500)


class Pet(PetBase, table=True):
    __tablename__ = "pet"

    id: int | None = Field(default=None, primary_key=True)
    owner_id: int = Field(foreign_key="user.id", index=True)
    type: PetType = Field(
        sa_column=Column(SQLEnum(PetType, name="pettype"), nullable=False, index=True),
    )
    gender: Gender = Field(
        default=Gender.unknown,
        sa_column=Column(SQLEnum(Gender, name="gender"), nullable=False),
    )
    size: PetSize | None = Field(
        default=None,
        sa_column=Column(SQLEnum(PetSize, name="petsize"), nullable=True),
    )
    activity_level: ActivityLevel = Field(
        default=ActivityLevel.moderate,
        sa_column=Column(SQLEnum(ActivityLevel, name="activitylevel"), nullable=False),
    )
    temperament: list[str] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False),
    )
    photos: list[str] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False),
    )
    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)
    updated_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)


class PetDislike(SQLModel, table=True):
    """Permanent exclusion list kept independently of the match ledger."""

    __tablename__ = "pet_dislike"
    __table_args__ = (
        UniqueConstraint("pet_id", "disliked_pet_id", name="uq_pet_dislike"),
    )

    id: int | None = Field(default=None, primary_key=True)
    pet_id: int = Field(foreign_key="pet.id", nullable=False, index=True)
    disliked_pet_id: int = Field(foreign_key="pet.id", nullable=False, index=True)
    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)


class PetCreate(PetBase):
    pass


class PetOut(PetBase):
    id: int
    owner_id: int
    created_at: datetime

    model_config = {"from_attributes": True}


class PetSummary(SQLModel):
    id: int
    name: str
    breed: str | None = None
    photos: list[str] = Field(default_factory=list)

    model_config = {"from_attributes": True}
