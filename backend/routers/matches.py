from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlmodel import Session

from backend.core.config import settings
from backend.core.db import get_session
from backend.models.match import MatchOut
from backend.routers.pets import CurrentUserDep, require_user_id
from backend.routers.socket import RealtimeHubDep
from backend.schemas.match import (
    LikeRequest,
    LikeResponse,
    PetMatchesResponse,
    PotentialMatchesResponse,
    UnmatchRequest,
    UnmatchResponse,
)
from backend.services.candidate_service import potential_matches
from backend.services.match_service import (
    like_pet,
    list_confirmed_matches,
    unmatch_pet,
)
from backend.services.pet_service import find_owned_pet

router = APIRouter(prefix="/matches", tags=["matches"])

SessionDep = Annotated[Session, Depends(get_session)]


@router.get("/potential/{pet_id}", response_model=PotentialMatchesResponse)
def get_potential_matches(
    pet_id: int,
    current: CurrentUserDep,
    session: SessionDep,
    limit: Annotated[
        int, Query(ge=1, le=settings.candidate_max_limit)
    ] = settings.candidate_default_limit,
    skip: Annotated[int, Query(ge=0)] = 0,
    max_distance: Annotated[
        float | None,
        Query(alias="maxDistance", gt=0, description="Search radius in kilometres"),
    ] = None,
    max_distance_snake: Annotated[
        float | None, Query(alias="max_distance", gt=0, include_in_schema=False)
    ] = None,
) -> PotentialMatchesResponse:
    """Candidates for one of the caller's pets, pets that liked it first."""
    user_id = require_user_id(current)
    pet = find_owned_pet(session, pet_id, user_id)
    radius = (
        max_distance or max_distance_snake or settings.candidate_default_max_distance_km
    )

    candidates = potential_matches(
        session,
        pet=pet,
        requester=current,
        limit=limit,
        skip=skip,
        max_distance_km=radius,
    )
    pets = [candidate.to_out() for candidate in candidates]
    return PotentialMatchesResponse(count=len(pets), pets=pets)


@router.post("/like", response_model=LikeResponse)
def like(
    payload: LikeRequest,
    current: CurrentUserDep,
    session: SessionDep,
    hub: RealtimeHubDep,
    background_tasks: BackgroundTasks,
) -> LikeResponse:
    user_id = require_user_id(current)
    outcome = like_pet(
        session,
        owner_user_id=user_id,
        pet_id=payload.pet_id,
        target_pet_id=payload.liked_pet_id,
        is_liked=payload.is_liked,
    )
    if outcome.notifications:
        background_tasks.add_task(hub.dispatch, outcome.notifications)

    match = MatchOut.model_validate(outcome.match, from_attributes=True)
    return LikeResponse(match=match, is_match=match.is_match)


@router.post("/unmatch", response_model=UnmatchResponse)
def unmatch(
    payload: UnmatchRequest,
    current: CurrentUserDep,
    session: SessionDep,
    hub: RealtimeHubDep,
    background_tasks: BackgroundTasks,
) -> UnmatchResponse:
    user_id = require_user_id(current)
    notifications = unmatch_pet(
        session,
        owner_user_id=user_id,
        pet_id=payload.pet_id,
        unmatched_pet_id=payload.unmatched_pet_id,
    )
    if notifications:
        background_tasks.add_task(hub.dispatch, notifications)
    return UnmatchResponse(message="Successfully unmatched with pet")


@router.get("/{pet_id}", response_model=PetMatchesResponse)
def get_pet_matches(
    pet_id: int,
    current: CurrentUserDep,
    session: SessionDep,
) -> PetMatchesResponse:
    user_id = require_user_id(current)
    matches = list_confirmed_matches(session, owner_user_id=user_id, pet_id=pet_id)
    return PetMatchesResponse(count=len(matches), matches=matches)
