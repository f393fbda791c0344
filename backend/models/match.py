from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import CheckConstraint, Column, Index, UniqueConstraint
from sqlalchemy.types import Enum as SAEnum
from sqlmodel import Field, SQLModel


class MatchDecision(str, Enum):
    undecided = "undecided"
    liked = "liked"
    passed = "passed"

    @classmethod
    def from_like(cls, is_liked: bool) -> MatchDecision:
        return cls.liked if is_liked else cls.passed


def _decision_column() -> Column:  # type: ignore[type-arg]
    return Column(
        SAEnum(MatchDecision, name="matchdecision"),
        nullable=False,
        server_default=MatchDecision.undecided.value,
    )


class Match(SQLModel, table=True):
    """One ledger row per unordered pet pair, pet1_id always the smaller id."""

    __tablename__ = "match"
    __table_args__ = (
        UniqueConstraint("pet1_id", "pet2_id", name="uq_match_pet_pair"),
        CheckConstraint("pet1_id < pet2_id", name="ck_match_canonical_order"),
        Index("ix_match_pet1_is_match", "pet1_id", "is_match"),
        Index("ix_match_pet2_is_match", "pet2_id", "is_match"),
    )

    id: int | None = Field(default=None, primary_key=True)
    pet1_id: int = Field(foreign_key="pet.id", nullable=False, index=True)
    pet2_id: int = Field(foreign_key="pet.id", nullable=False, index=True)
    pet1_decision: MatchDecision = Field(
        default=MatchDecision.undecided,
        sa_column=_decision_column(),
    )
    pet2_decision: MatchDecision = Field(
        default=MatchDecision.undecided,
        sa_column=_decision_column(),
    )
    is_match: bool = Field(default=False, nullable=False)
    matched_at: datetime | None = Field(default=None)
    last_interaction_at: datetime = Field(
        default_factory=datetime.utcnow, nullable=False
    )
    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)

    def side_of(self, pet_id: int) -> int:
        if pet_id == self.pet1_id:
            return 1
        if pet_id == self.pet2_id:
            return 2
        raise ValueError(f"pet {pet_id} is not part of match {self.id}")

    def other_pet_id(self, pet_id: int) -> int:
        return self.pet2_id if self.side_of(pet_id) == 1 else self.pet1_id

    def decision_of(self, pet_id: int) -> MatchDecision:
        return self.pet1_decision if self.side_of(pet_id) == 1 else self.pet2_decision


def canonical_pair(a_pet_id: int, b_pet_id: int) -> tuple[int, int]:
    return (a_pet_id, b_pet_id) if a_pet_id < b_pet_id else (b_pet_id, a_pet_id)


class MatchOut(SQLModel):
    id: int
    pet1_id: int
    pet2_id: int
    pet1_decision: MatchDecision
    pet2_decision: MatchDecision
    is_match: bool
    matched_at: datetime | None
    last_interaction_at: datetime
    created_at: datetime
