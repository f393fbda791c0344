from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session, select

from backend.core.db import get_session
from backend.core.security import (
    create_access_token,
    hash_password,
    verify_password,
)
from backend.models.user import User
from backend.routers.pets import CurrentUserDep
from backend.schemas.auth import (
    LoginRequest,
    PushTokenRequest,
    SignupRequest,
    TokenResponse,
    UpdateLocationRequest,
    UserLocation,
    UserRead,
    UserResponse,
)

router = APIRouter(prefix="/auth", tags=["auth"])

SessionDep = Annotated[Session, Depends(get_session)]


def _user_response(user: User) -> UserResponse:
    return UserResponse(
        user=UserRead(
            id=user.id or 0,
            email=user.email,
            name=user.name,
            location=UserLocation(
                coordinates=list(user.coordinates),
                address=user.address,
                city=user.city,
            ),
            created_at=user.created_at,
        )
    )


@router.post("/signup", response_model=TokenResponse)
def signup(payload: SignupRequest, session: SessionDep) -> TokenResponse:
    statement = select(User).where(User.email == payload.email)
    exists = session.exec(statement).first()
    if exists:
        raise HTTPException(status_code=409, detail="Email already registered")

    user = User(
        email=payload.email,
        name=payload.name,
        password_hash=hash_password(payload.password),
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return TokenResponse(access_token=create_access_token(sub=user.email))


@router.post("/login", response_model=TokenResponse)
def login(payload: LoginRequest, session: SessionDep) -> TokenResponse:
    statement = select(User).where(User.email == payload.email)
    user = session.exec(statement).first()
    if not user or not verify_password(payload.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )
    return TokenResponse(access_token=create_access_token(sub=user.email))


@router.get("/me", response_model=UserResponse)
def me(current: CurrentUserDep) -> UserResponse:
    return _user_response(current)


@router.put("/update-location", response_model=UserResponse)
def update_location(
    payload: UpdateLocationRequest,
    current: CurrentUserDep,
    session: SessionDep,
) -> UserResponse:
    longitude, latitude = payload.location.coordinates
    if not (-180 <= longitude <= 180 and -90 <= latitude <= 90):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Valid location coordinates are required",
        )
    current.longitude = longitude
    current.latitude = latitude
    current.address = payload.location.address
    current.city = payload.location.city
    session.add(current)
    session.commit()
    session.refresh(current)
    return _user_response(current)


@router.post("/push-token")
def store_push_token(
    payload: PushTokenRequest,
    current: CurrentUserDep,
    session: SessionDep,
) -> dict[str, object]:
    # Stored for later use; delivery does not consume it yet
    current.push_token = payload.token
    session.add(current)
    session.commit()
    return {"success": True, "message": "Push notification token stored successfully"}
