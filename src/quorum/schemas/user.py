"""User and authentication Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


class RegisterRequest(BaseModel):
    """Schema for local account registration."""

    username: str = Field(..., min_length=1, max_length=50, description="Unique handle")
    email: EmailStr = Field(..., description="Unique email address")
    password: str = Field(..., min_length=6, description="Plaintext password (6+ characters)")
    avatar: str = Field("", description="Preset avatar id (1-6) or image URL")

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        """Reject blank usernames and usernames containing '@'."""
        v = v.strip()
        if not v:
            raise ValueError("Username must not be blank")
        if "@" in v:
            raise ValueError("Username must not contain '@'")
        return v


class LoginRequest(BaseModel):
    """Schema for local email/password login."""

    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class OAuthRequest(BaseModel):
    """Schema for Google/Apple sign-in submissions."""

    token: str = Field(..., min_length=1, description="ID token issued by the provider")
    username: str | None = Field(
        None, max_length=50, description="Preferred username for first-time sign-in"
    )
    avatar: str | None = Field(None, description="Preset avatar id (1-6) or image URL")

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str | None) -> str | None:
        """Treat a blank username as absent; reject "@"."""
        if v is None or not v.strip():
            return None
        if "@" in v:
            raise ValueError("Username must not contain '@'")
        return v.strip()


class UserResponse(BaseModel):
    """Account details returned to the account owner."""

    id: int
    username: str
    email: str
    bio: str = ""
    avatar: str = ""
    auth_provider: str
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class AuthResponse(BaseModel):
    """Session token plus the resolved account."""

    message: str | None = None
    token: str = Field(..., description="Bearer session token")
    user: UserResponse


class PublicProfileResponse(BaseModel):
    """Publicly visible profile fields."""

    id: int
    username: str
    bio: str = ""
    avatar: str = ""
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class ProfileUpdateRequest(BaseModel):
    """Schema for updating profile fields; omitted fields are left unchanged."""

    bio: str | None = Field(None, max_length=500)
    avatar: str | None = Field(None, max_length=2048)
