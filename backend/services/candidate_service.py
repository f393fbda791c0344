"""Potential-match feed for a pet.

Candidates come in two tiers: pets that liked the requesting pet and still
wait for an answer, then pets it never interacted with (newest first). Both
tiers share the exclusion rules below and, when the requesting owner has a
location, are limited to owners within ``max_distance_km``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import cast

from sqlalchemy import desc, or_
from sqlalchemy.sql.schema import Table
from sqlmodel import Session, select

from backend.models.match import Match, MatchDecision
from backend.models.pet import Pet
from backend.models.user import User
from backend.schemas.match import CandidateOut, OwnerLocation
from backend.services import geo
from backend.services.pet_service import disliked_pet_ids

logger = logging.getLogger(__name__)

PET_TABLE = cast(Table, Pet.__table__)  # type: ignore[attr-defined]
USER_TABLE = cast(Table, User.__table__)  # type: ignore[attr-defined]


@dataclass(frozen=True)
class GeoAnnotation:
    distance_km: float
    owner_coordinates: tuple[float, float] | None = None


@dataclass(frozen=True)
class Candidate:
    pet: Pet
    geo: GeoAnnotation | None = None

    def to_out(self) -> CandidateOut:
        out = CandidateOut.model_validate(self.pet, from_attributes=True)
        if self.geo is not None:
            out.distance = self.geo.distance_km
            if self.geo.owner_coordinates is not None:
                out.owner_location = OwnerLocation(
                    coordinates=list(self.geo.owner_coordinates)
                )
        return out


@dataclass
class Interactions:
    """How the requesting pet relates to every pet in its ledger rows."""

    excluded: set[int] = field(default_factory=set)
    liked_me: set[int] = field(default_factory=set)
    pending_likes: set[int] = field(default_factory=set)

    @property
    def hidden_from_fresh(self) -> set[int]:
        return self.excluded | self.pending_likes | self.liked_me


def classify_interactions(session: Session, pet_id: int) -> Interactions:
    entries = session.exec(
        select(Match).where(
            or_(Match.pet1_id == pet_id, Match.pet2_id == pet_id)  # type: ignore[arg-type]
        )
    ).all()

    interactions = Interactions()
    for entry in entries:
        other_id = entry.other_pet_id(pet_id)
        mine = entry.decision_of(pet_id)
        theirs = entry.decision_of(other_id)
        if entry.is_match or mine == MatchDecision.passed:
            interactions.excluded.add(other_id)
        elif theirs == MatchDecision.liked and mine == MatchDecision.undecided:
            interactions.liked_me.add(other_id)
        elif mine == MatchDecision.liked:
            # Shown once already, hidden until they like back
            interactions.pending_likes.add(other_id)

    interactions.excluded |= disliked_pet_ids(session, pet_id)
    interactions.excluded.add(pet_id)
    interactions.liked_me -= interactions.excluded
    return interactions


def nearby_owners(
    session: Session,
    origin: tuple[float, float],
    max_distance_km: float,
    *,
    exclude_user_id: int,
    among: Iterable[int] | None = None,
) -> dict[int, GeoAnnotation]:
    """Owners within max_distance_km of origin, keyed by user id."""
    statement = select(User.id, User.longitude, User.latitude).where(
        User.id != exclude_user_id
    )
    box = geo.bounding_box(origin, max_distance_km)
    if box is not None:
        min_lon, max_lon, min_lat, max_lat = box
        statement = statement.where(
            USER_TABLE.c.longitude.between(min_lon, max_lon),
            USER_TABLE.c.latitude.between(min_lat, max_lat),
        )
    if among is not None:
        statement = statement.where(USER_TABLE.c.id.in_(list(among)))

    owners: dict[int, GeoAnnotation] = {}
    for user_id, longitude, latitude in session.exec(statement).all():
        coordinates = (longitude, latitude)
        if user_id is None or not geo.is_valid_location(coordinates):
            continue
        distance = geo.distance_km(origin, coordinates)
        if distance <= max_distance_km:
            owners[user_id] = GeoAnnotation(
                distance_km=distance, owner_coordinates=coordinates
            )
    return owners


def _ordered(statement):  # type: ignore[no-untyped-def]
    return statement.order_by(desc(PET_TABLE.c.created_at), desc(PET_TABLE.c.id))


def _liked_me_tier(
    session: Session,
    pet: Pet,
    liked_me: set[int],
    *,
    requester_id: int,
    origin: tuple[float, float] | None,
    max_distance_km: float,
    limit: int,
) -> list[Candidate]:
    statement = _ordered(
        select(Pet).where(
            PET_TABLE.c.id.in_(sorted(liked_me)),
            Pet.type == pet.type,
            Pet.owner_id != requester_id,
        )
    )
    if origin is not None:
        try:
            pets = session.exec(statement).all()
            owners = nearby_owners(
                session,
                origin,
                max_distance_km,
                exclude_user_id=requester_id,
                among={candidate.owner_id for candidate in pets},
            )
            return [
                Candidate(pet=candidate, geo=owners[candidate.owner_id])
                for candidate in pets
                if candidate.owner_id in owners
            ][:limit]
        except Exception:
            logger.error("Error finding nearby pets who liked pet %s", pet.id, exc_info=True)
            session.rollback()

    pets = session.exec(statement.limit(limit)).all()
    return [Candidate(pet=candidate) for candidate in pets]


def _fresh_tier(
    session: Session,
    pet: Pet,
    hidden: set[int],
    *,
    requester_id: int,
    origin: tuple[float, float] | None,
    max_distance_km: float,
    limit: int,
    skip: int,
) -> list[Candidate]:
    base = select(Pet).where(Pet.type == pet.type, Pet.owner_id != requester_id)
    if hidden:
        base = base.where(PET_TABLE.c.id.not_in(sorted(hidden)))

    if origin is not None:
        try:
            owners = nearby_owners(
                session, origin, max_distance_km, exclude_user_id=requester_id
            )
            if not owners:
                return []
            statement = _ordered(
                base.where(PET_TABLE.c.owner_id.in_(sorted(owners)))
            ).offset(skip).limit(limit)
            return [
                Candidate(pet=candidate, geo=owners[candidate.owner_id])
                for candidate in session.exec(statement).all()
            ]
        except Exception:
            logger.error("Error finding nearby pets for pet %s", pet.id, exc_info=True)
            session.rollback()

    statement = _ordered(base).offset(skip).limit(limit)
    return [Candidate(pet=candidate) for candidate in session.exec(statement).all()]


def potential_matches(
    session: Session,
    *,
    pet: Pet,
    requester: User,
    limit: int,
    skip: int,
    max_distance_km: float,
) -> list[Candidate]:
    """Ranked, deduplicated candidates for `pet`; liked-me pets come first."""
    if pet.id is None or requester.id is None or limit <= 0:
        return []

    interactions = classify_interactions(session, pet.id)
    origin = requester.coordinates if requester.has_valid_location else None

    liked_me: list[Candidate] = []
    if interactions.liked_me:
        liked_me = _liked_me_tier(
            session,
            pet,
            interactions.liked_me,
            requester_id=requester.id,
            origin=origin,
            max_distance_km=max_distance_km,
            limit=limit,
        )

    fresh: list[Candidate] = []
    remaining = limit - len(liked_me)
    if remaining > 0:
        fresh = _fresh_tier(
            session,
            pet,
            interactions.hidden_from_fresh,
            requester_id=requester.id,
            origin=origin,
            max_distance_km=max_distance_km,
            limit=remaining,
            skip=skip,
        )

    seen: set[int] = set()
    ranked: list[Candidate] = []
    for candidate in [*liked_me, *fresh]:
        if candidate.pet.id is None or candidate.pet.id in seen:
            continue
        seen.add(candidate.pet.id)
        ranked.append(candidate)
    return ranked[:limit]
