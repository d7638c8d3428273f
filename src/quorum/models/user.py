# src/quorum/models/user.py
"""SQLAlchemy model for forum accounts."""

from __future__ import annotations

import enum

from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from quorum.db.base import Base, TimestampMixin


USERNAME_MAX_LENGTH = 50


class AuthProvider(str, enum.Enum):
    """Primary credential path an account was created with."""

    EMAIL = "email"
    GOOGLE = "google"
    APPLE = "apple"


class User(TimestampMixin, Base):
    """A forum account, local or federated.

    ``auth_provider`` records how the account was created. A federated
    subject id may be attached later (account linking) without changing it.
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(USERNAME_MAX_LENGTH), unique=True, nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)

    # Empty for OAuth-only accounts.
    password_hash: Mapped[str] = mapped_column(Text, nullable=False, default="")
    bio: Mapped[str] = mapped_column(Text, nullable=False, default="")
    # Preset avatar id ("1".."6") or an image URL.
    avatar: Mapped[str] = mapped_column(Text, nullable=False, default="")

    auth_provider: Mapped[str] = mapped_column(
        String(16), nullable=False, default=AuthProvider.EMAIL.value
    )
    # NULL rather than "" when absent so the unique constraints only bind set values.
    google_id: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True)
    apple_id: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True)

    def provider_subject(self, provider: AuthProvider) -> str | None:
        """Return the linked subject id for a federated provider."""
        if provider is AuthProvider.GOOGLE:
            return self.google_id
        if provider is AuthProvider.APPLE:
            return self.apple_id
        return None
