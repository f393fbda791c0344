from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import cast

from fastapi import HTTPException, status
from sqlalchemy import desc, false, or_, true, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.sql.schema import Table
from sqlmodel import Session, select

from backend.models.chat import Chat
from backend.models.match import Match, MatchDecision, canonical_pair
from backend.models.pet import Pet
from backend.schemas.match import ConfirmedMatchOut
from backend.services.chat_service import (
    chat_for_match,
    create_chat_for_match,
    delete_chat,
)
from backend.services.pet_service import (
    add_dislike,
    find_owned_pet,
    get_pet_or_404,
    summarize,
)
from backend.services.realtime import MATCH_CREATED, Notification, chat_removed

logger = logging.getLogger(__name__)

MATCH_TABLE = cast(Table, Match.__table__)  # type: ignore[attr-defined]


@dataclass
class LikeOutcome:
    match: Match
    is_new_match: bool
    chat: Chat | None = None
    notifications: list[Notification] = field(default_factory=list)


def _decision_column(acting_is_pet1: bool):  # type: ignore[no-untyped-def]
    return MATCH_TABLE.c.pet1_decision if acting_is_pet1 else MATCH_TABLE.c.pet2_decision


def ensure_ledger_entry(session: Session, pet1_id: int, pet2_id: int) -> int:
    """Id of the ledger row for a canonical pair, inserting it when missing."""
    statement = select(Match.id).where(
        Match.pet1_id == pet1_id,
        Match.pet2_id == pet2_id,
    )
    existing = session.exec(statement).first()
    if existing is not None:
        return existing

    entry = Match(pet1_id=pet1_id, pet2_id=pet2_id)
    session.add(entry)
    try:
        session.commit()
    except IntegrityError:
        # Lost the insert race on uq_match_pet_pair, use the winner's row
        session.rollback()
        return session.exec(statement).one()
    if entry.id is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="match missing identifier",
        )
    return entry.id


def _record_decision(
    session: Session,
    match_id: int,
    *,
    acting_is_pet1: bool,
    decision: MatchDecision,
    now: datetime,
) -> None:
    # Only the acting side's column is written
    session.connection().execute(
        update(MATCH_TABLE)
        .where(MATCH_TABLE.c.id == match_id)
        .values({_decision_column(acting_is_pet1): decision, "last_interaction_at": now})
    )


def _promote_if_mutual(session: Session, match_id: int, now: datetime) -> bool:
    """Flip is_match when both sides liked; True only for the call that flipped it."""
    result = session.connection().execute(
        update(MATCH_TABLE)
        .where(
            MATCH_TABLE.c.id == match_id,
            MATCH_TABLE.c.is_match == false(),
            MATCH_TABLE.c.pet1_decision == MatchDecision.liked,
            MATCH_TABLE.c.pet2_decision == MatchDecision.liked,
        )
        .values(is_match=True, matched_at=now)
    )
    return result.rowcount == 1


def _demote(session: Session, match_id: int) -> bool:
    result = session.connection().execute(
        update(MATCH_TABLE)
        .where(MATCH_TABLE.c.id == match_id, MATCH_TABLE.c.is_match == true())
        .values(is_match=False, matched_at=None)
    )
    return result.rowcount == 1


def _close_chat(
    session: Session, match_id: int, user_ids: tuple[int, ...]
) -> list[Notification]:
    chat = chat_for_match(session, match_id)
    if chat is None or chat.id is None:
        return []
    chat_id = chat.id
    delete_chat(session, chat)
    return [chat_removed(user_id, chat_id) for user_id in user_ids]


def like_pet(
    session: Session,
    *,
    owner_user_id: int,
    pet_id: int,
    target_pet_id: int,
    is_liked: bool,
) -> LikeOutcome:
    """Record one pet's like or pass on another and reconcile the pair.

    The write touches only the acting side of the ledger row. When it makes
    both sides liked, the row is promoted to a match exactly once, a chat is
    opened and the owner of the other pet (who liked first) gets the
    match_created notification.
    """
    pet = find_owned_pet(session, pet_id, owner_user_id)
    target = get_pet_or_404(session, target_pet_id, detail="Liked pet not found")
    if pet.id is None or target.id is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="pet missing identifier",
        )
    if pet.id == target.id or target.owner_id == owner_user_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot match against own pet.",
        )

    pet1_id, pet2_id = canonical_pair(pet.id, target.id)
    acting_is_pet1 = pet.id == pet1_id
    acting_summary = summarize(pet)
    target_summary = summarize(target)
    acting_owner_id, target_owner_id = pet.owner_id, target.owner_id

    match_id = ensure_ledger_entry(session, pet1_id, pet2_id)

    now = datetime.utcnow()
    decision = MatchDecision.from_like(is_liked)
    _record_decision(
        session, match_id, acting_is_pet1=acting_is_pet1, decision=decision, now=now
    )
    notifications: list[Notification] = []
    is_new_match = False
    if decision == MatchDecision.liked:
        is_new_match = _promote_if_mutual(session, match_id, now)
    elif _demote(session, match_id):
        # Passing on a confirmed match dissolves it like an unmatch would
        logger.info("Match %s dissolved by pet %s passing", match_id, pet_id)
        notifications = _close_chat(
            session, match_id, (acting_owner_id, target_owner_id)
        )
    session.commit()

    match = session.get(Match, match_id)
    if match is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Match not found",
        )
    outcome = LikeOutcome(match=match, is_new_match=is_new_match)
    outcome.notifications.extend(notifications)
    if not is_new_match:
        return outcome

    logger.info("Pets %s and %s matched (match %s)", pet1_id, pet2_id, match_id)
    owners = {pet_id: acting_owner_id, target_pet_id: target_owner_id}
    try:
        outcome.chat = create_chat_for_match(
            session,
            match,
            pet1_owner_id=owners[pet1_id],
            pet2_owner_id=owners[pet2_id],
        )
    except SQLAlchemyError:
        # The match stands; POST /chats/for-match can open the chat later
        session.rollback()
        logger.error("Could not open chat for match %s", match_id, exc_info=True)
    # The acting owner learns about the match from the response itself
    outcome.notifications.append(
        Notification(
            user_id=target_owner_id,
            event=MATCH_CREATED,
            data={
                "match_id": match_id,
                "chat_id": outcome.chat.id if outcome.chat else None,
                "pet": acting_summary.model_dump(),
                "matched_pet": target_summary.model_dump(),
                "timestamp": now.isoformat(),
            },
        )
    )
    session.refresh(match)
    return outcome


def unmatch_pet(
    session: Session,
    *,
    owner_user_id: int,
    pet_id: int,
    unmatched_pet_id: int,
) -> list[Notification]:
    """Break a match from one side; that side becomes a terminal pass."""
    pet = find_owned_pet(session, pet_id, owner_user_id)
    other = get_pet_or_404(session, unmatched_pet_id, detail="Unmatched pet not found")
    if pet.id is None or other.id is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="pet missing identifier",
        )

    pet1_id, pet2_id = canonical_pair(pet.id, other.id)
    match = session.exec(
        select(Match).where(Match.pet1_id == pet1_id, Match.pet2_id == pet2_id)
    ).first()
    if match is None or match.id is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Match not found",
        )
    match_id = match.id
    acting_is_pet1 = pet.id == pet1_id
    other_owner_id = other.owner_id

    session.connection().execute(
        update(MATCH_TABLE)
        .where(MATCH_TABLE.c.id == match_id)
        .values(
            {
                "is_match": False,
                "matched_at": None,
                "last_interaction_at": datetime.utcnow(),
                _decision_column(acting_is_pet1): MatchDecision.passed,
            }
        )
    )
    notifications = _close_chat(session, match_id, (owner_user_id, other_owner_id))
    add_dislike(session, pet.id, other.id)
    session.commit()

    logger.info("Pet %s unmatched pet %s (match %s)", pet_id, unmatched_pet_id, match_id)
    return notifications


def list_confirmed_matches(
    session: Session, *, owner_user_id: int, pet_id: int
) -> list[ConfirmedMatchOut]:
    pet = find_owned_pet(session, pet_id, owner_user_id)
    statement = (
        select(Match)
        .where(
            or_(Match.pet1_id == pet.id, Match.pet2_id == pet.id),  # type: ignore[arg-type]
            Match.is_match == True,  # noqa: E712
        )
        .order_by(desc(MATCH_TABLE.c.matched_at), desc(MATCH_TABLE.c.id))
    )
    items: list[ConfirmedMatchOut] = []
    for match in session.exec(statement).all():
        if match.id is None or pet.id is None:
            continue
        other = session.get(Pet, match.other_pet_id(pet.id))
        if other is None:
            # Ledger row outlived its pet
            continue
        items.append(
            ConfirmedMatchOut(
                match_id=match.id,
                match_date=match.matched_at,
                pet=summarize(other),
            )
        )
    return items
