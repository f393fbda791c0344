from __future__ import annotations

import logging
from datetime import datetime

from fastapi import HTTPException, status
from sqlalchemy import or_
from sqlmodel import Session, select

from backend.models.match import Match
from backend.models.pet import Pet, PetCreate, PetDislike, PetSummary
from backend.services.chat_service import chat_for_match, delete_chat
from backend.services.realtime import Notification, chat_removed

logger = logging.getLogger(__name__)


def find_owned_pet(session: Session, pet_id: int, owner_id: int) -> Pet:
    """Resolve a pet the caller acts as; absence and foreign ownership look alike."""
    pet = session.exec(
        select(Pet).where(Pet.id == pet_id, Pet.owner_id == owner_id)
    ).first()
    if pet is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Pet not found or does not belong to you",
        )
    return pet


def get_pet_or_404(session: Session, pet_id: int, *, detail: str) -> Pet:
    pet = session.get(Pet, pet_id)
    if pet is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail)
    return pet


def summarize(pet: Pet) -> PetSummary:
    return PetSummary.model_validate(pet, from_attributes=True)


def apply_payload(pet: Pet, payload: PetCreate) -> None:
    pet.name = payload.name
    pet.type = payload.type
    pet.breed = payload.breed
    pet.age = payload.age
    pet.gender = payload.gender
    pet.size = payload.size
    pet.vaccinated = payload.vaccinated
    pet.activity_level = payload.activity_level
    # JSON columns are not mutation-tracked, assign fresh lists
    pet.temperament = list(payload.temperament)
    pet.photos = list(payload.photos)
    pet.description = payload.description
    pet.updated_at = datetime.utcnow()


def add_dislike(session: Session, pet_id: int, disliked_pet_id: int) -> None:
    existing = session.exec(
        select(PetDislike).where(
            PetDislike.pet_id == pet_id,
            PetDislike.disliked_pet_id == disliked_pet_id,
        )
    ).first()
    if existing is None:
        session.add(PetDislike(pet_id=pet_id, disliked_pet_id=disliked_pet_id))


def disliked_pet_ids(session: Session, pet_id: int) -> set[int]:
    rows = session.exec(
        select(PetDislike.disliked_pet_id).where(PetDislike.pet_id == pet_id)
    ).all()
    return {int(row) for row in rows}


def delete_pet_cascade(
    session: Session, pet: Pet, *, acting_user_id: int
) -> list[Notification]:
    """Delete a pet with every ledger entry and chat that references it.

    Returns the chat_removed notifications for the other party of each removed
    chat plus the deleting user.
    """
    if pet.id is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="pet missing identifier",
        )
    pet_id = pet.id

    # Canonical ordering means the pet can sit on either side
    as_pet1 = session.exec(select(Match).where(Match.pet1_id == pet_id)).all()
    as_pet2 = session.exec(select(Match).where(Match.pet2_id == pet_id)).all()

    removed: list[tuple[int, int | None]] = []
    for entry in [*as_pet1, *as_pet2]:
        chat = chat_for_match(session, entry.id) if entry.id is not None else None
        if chat is not None and chat.id is not None:
            other_pet = session.get(Pet, entry.other_pet_id(pet_id))
            removed.append((chat.id, other_pet.owner_id if other_pet else None))
            delete_chat(session, chat)
        session.delete(entry)
        session.flush()

    dislikes = session.exec(
        select(PetDislike).where(
            or_(
                PetDislike.pet_id == pet_id,  # type: ignore[arg-type]
                PetDislike.disliked_pet_id == pet_id,  # type: ignore[arg-type]
            )
        )
    ).all()
    for dislike in dislikes:
        session.delete(dislike)
    session.flush()
    session.delete(pet)
    session.commit()

    logger.info(
        "Deleted pet %s with %d ledger entries and %d chats",
        pet_id,
        len(as_pet1) + len(as_pet2),
        len(removed),
    )

    notifications = [
        chat_removed(other_user_id, chat_id)
        for chat_id, other_user_id in removed
        if other_user_id is not None
    ]
    notifications.extend(chat_removed(acting_user_id, chat_id) for chat_id, _ in removed)
    return notifications
