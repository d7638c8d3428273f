"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .post import CommentResponse, PostResponse
from .user import (
    AuthResponse,
    LoginRequest,
    OAuthRequest,
    ProfileUpdateRequest,
    PublicProfileResponse,
    RegisterRequest,
    UserResponse,
)
from .vote import MyVoteResponse, VoteCreate, VoteResponse

__all__ = [
    "CommentResponse", "PostResponse",
    "AuthResponse", "LoginRequest", "OAuthRequest", "ProfileUpdateRequest",
    "PublicProfileResponse", "RegisterRequest", "UserResponse",
    "MyVoteResponse", "VoteCreate", "VoteResponse",
]
