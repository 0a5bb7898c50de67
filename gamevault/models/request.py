"""API request/response models for users and auth."""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from gamevault.models.user import Image, Role, User


class RegisterUserRequest(BaseModel):
    username: str = Field(..., min_length=1, examples=["JohnDoe"])
    password: str = Field(..., min_length=1, examples=["Hunter2"])
    email: Optional[str] = Field(None, examples=["john.doe@mail.com"])
    first_name: Optional[str] = Field(None, examples=["John"])
    last_name: Optional[str] = Field(None, examples=["Doe"])


class UpdateUserRequest(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_picture_url: Optional[str] = None
    profile_picture_id: Optional[int] = None
    background_image_url: Optional[str] = None
    background_image_id: Optional[int] = None
    activated: Optional[bool] = None  # admin only
    role: Optional[Role] = None  # admin only


class LoginRequest(BaseModel):
    username: str
    password: str


class TokenResponse(BaseModel):
    token: str


class ImageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    source: Optional[str] = None
    media_type: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, image: Optional[Image]) -> Optional["ImageResponse"]:
        return cls.model_validate(image) if image else None


class UserResponse(BaseModel):
    """Public view of a user; never includes the password hash."""
    id: int
    username: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    activated: bool
    role: Role
    profile_picture: Optional[ImageResponse] = None
    background_image: Optional[ImageResponse] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            activated=user.activated,
            role=user.role,
            profile_picture=ImageResponse.from_record(user.profile_picture),
            background_image=ImageResponse.from_record(user.background_image),
            created_at=user.created_at,
            updated_at=user.updated_at,
            deleted_at=user.deleted_at,
        )
