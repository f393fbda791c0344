from datetime import datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from sqlmodel import Field as SQLField

from backend.models.match import MatchOut
from backend.models.pet import PetOut, PetSummary


def _either(name: str, camel: str) -> AliasChoices:
    # Mobile clients post camelCase, scripts and tests use snake_case
    return AliasChoices(name, camel)


class LikeRequest(BaseModel):
    pet_id: int = Field(validation_alias=_either("pet_id", "petId"))
    liked_pet_id: int = Field(validation_alias=_either("liked_pet_id", "likedPetId"))
    is_liked: bool = Field(validation_alias=_either("is_liked", "isLiked"))


class LikeResponse(BaseModel):
    success: bool = True
    match: MatchOut
    is_match: bool = Field(
        validation_alias=_either("is_match", "isMatch"), serialization_alias="isMatch"
    )


class UnmatchRequest(BaseModel):
    pet_id: int = Field(validation_alias=_either("pet_id", "petId"))
    unmatched_pet_id: int = Field(
        validation_alias=_either("unmatched_pet_id", "unmatchedPetId")
    )


class UnmatchResponse(BaseModel):
    success: bool = True
    message: str


class OwnerLocation(BaseModel):
    coordinates: list[float]


class CandidateOut(PetOut):
    """A feed entry: the pet plus its owner's geo annotation when known."""

    distance: float | None = None
    owner_location: OwnerLocation | None = SQLField(default=None, alias="ownerLocation")


class PotentialMatchesResponse(BaseModel):
    success: bool = True
    count: int
    pets: list[CandidateOut]


class ConfirmedMatchOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    match_id: int = Field(
        validation_alias=_either("match_id", "matchId"), serialization_alias="matchId"
    )
    match_date: datetime | None = Field(
        validation_alias=_either("match_date", "matchDate"),
        serialization_alias="matchDate",
    )
    pet: PetSummary


class PetMatchesResponse(BaseModel):
    success: bool = True
    count: int
    matches: list[ConfirmedMatchOut] = Field(default_factory=list)
