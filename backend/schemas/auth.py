from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class SignupRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8, max_length=256)
    name: str | None = Field(default=None, max_length=50)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1, max_length=256)


class TokenResponse(BaseModel):
    access_token: str
    token_type: Literal["bearer"] = "bearer"


class LocationIn(BaseModel):
    # [longitude, latitude], GeoJSON order
    coordinates: list[float] = Field(min_length=2, max_length=2)
    address: str | None = None
    city: str | None = None


class UpdateLocationRequest(BaseModel):
    location: LocationIn


class PushTokenRequest(BaseModel):
    token: str = Field(min_length=1)


class UserLocation(BaseModel):
    coordinates: list[float]
    address: str | None = None
    city: str | None = None


class UserRead(BaseModel):
    id: int
    email: EmailStr
    name: str | None = None
    location: UserLocation
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UserResponse(BaseModel):
    success: bool = True
    user: UserRead
