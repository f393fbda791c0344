from __future__ import annotations

from typing import Annotated, cast

from fastapi import (
    APIRouter,
    BackgroundTasks,
    Depends,
    HTTPException,
    Query,
    Response,
    status,
)
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import desc, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.sql.schema import Table
from sqlmodel import Session, select

from backend.core.db import get_session
from backend.core.security import subject_from_token
from backend.models.pet import Pet, PetCreate, PetOut, PetType
from backend.models.user import User
from backend.routers.socket import RealtimeHubDep
from backend.services.pet_service import apply_payload, delete_pet_cascade

router = APIRouter(prefix="/pets", tags=["pets"])
bearer = HTTPBearer()

SessionDep = Annotated[Session, Depends(get_session)]
CredentialsDep = Annotated[HTTPAuthorizationCredentials, Depends(bearer)]


def get_current_user(creds: CredentialsDep, session: SessionDep) -> User:
    email = subject_from_token(creds.credentials)
    if email is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
        )

    statement = select(User).where(User.email == email)
    user = session.exec(statement).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )
    return user


CurrentUserDep = Annotated[User, Depends(get_current_user)]


def require_user_id(user: User) -> int:
    if user.id is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="authenticated user missing identifier",
        )
    return user.id


def _get_owned_pet(session: Session, pet_id: int, owner_id: int) -> Pet:
    pet = session.get(Pet, pet_id)
    if pet is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="pet not found",
        )
    if pet.owner_id != owner_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="not authorized to access this pet",
        )
    return pet


@router.post("", response_model=PetOut)
def create_pet(
    payload: PetCreate,
    current: CurrentUserDep,
    session: SessionDep,
) -> Pet:
    user_id = require_user_id(current)

    pet = Pet(owner_id=user_id, type=payload.type, name=payload.name)
    apply_payload(pet, payload)

    try:
        session.add(pet)
        session.commit()
        session.refresh(pet)
    except SQLAlchemyError as err:
        session.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Failed to create pet",
        ) from err
    return pet


@router.get("", response_model=list[PetOut])
def list_my_pets(
    current: CurrentUserDep,
    session: SessionDep,
    response: Response,
    type: Annotated[PetType | None, Query()] = None,
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int, Query(ge=1, le=100)] = 20,
) -> list[Pet]:
    user_id = require_user_id(current)

    conditions = [Pet.owner_id == user_id]
    if type is not None:
        conditions.append(Pet.type == type)

    pet_table = cast(Table, Pet.__table__)  # type: ignore[attr-defined]

    total_result = session.exec(select(func.count(pet_table.c.id)).where(*conditions))
    total_count = int(total_result.first() or 0)

    offset = (page - 1) * page_size
    statement = (
        select(Pet)
        .where(*conditions)
        .order_by(desc(pet_table.c.id))
        .offset(offset)
        .limit(page_size)
    )
    pets = list(session.exec(statement).all())

    response.headers["X-Total-Count"] = str(total_count)
    return pets


@router.get("/{pet_id}", response_model=PetOut)
def get_pet(
    pet_id: int,
    current: CurrentUserDep,
    session: SessionDep,
) -> Pet:
    user_id = require_user_id(current)
    return _get_owned_pet(session, pet_id, user_id)


@router.put("/{pet_id}", response_model=PetOut)
def update_pet(
    pet_id: int,
    payload: PetCreate,
    current: CurrentUserDep,
    session: SessionDep,
) -> Pet:
    user_id = require_user_id(current)
    pet = _get_owned_pet(session, pet_id, user_id)
    apply_payload(pet, payload)

    try:
        session.add(pet)
        session.commit()
        session.refresh(pet)
    except SQLAlchemyError as err:
        session.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Failed to update pet",
        ) from err

    return pet


@router.delete("/{pet_id}")
def delete_pet(
    pet_id: int,
    current: CurrentUserDep,
    session: SessionDep,
    hub: RealtimeHubDep,
    background_tasks: BackgroundTasks,
) -> dict[str, object]:
    user_id = require_user_id(current)
    pet = _get_owned_pet(session, pet_id, user_id)

    notifications = delete_pet_cascade(session, pet, acting_user_id=user_id)
    if notifications:
        background_tasks.add_task(hub.dispatch, notifications)
    return {"success": True, "message": "Pet deleted successfully"}
