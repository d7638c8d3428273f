"""Identity resolution for local and federated sign-in.

Every successful path ends with a :class:`User` row and a session token
carrying that row's post-mutation claims. Races between concurrent requests
(same username candidate, same email, same provider subject) are settled by
the database unique constraints; this module only retries.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Mapping
from dataclasses import dataclass, replace

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from quorum.core.errors import (
    AuthError,
    ConflictError,
    ConstraintViolation,
    ForbiddenError,
    NotFoundError,
    ProviderError,
    TransientError,
    ValidationError,
)
from quorum.core.security import PasswordHasher, TokenIssuer, UserID
from quorum.db.base import utcnow
from quorum.models.user import AuthProvider, User
from quorum.services.providers import ProviderIdentity, ProviderVerifier
from quorum.services.usernames import UsernameAllocator

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"

_PROVIDER_COLUMNS = {
    AuthProvider.GOOGLE: User.google_id,
    AuthProvider.APPLE: User.apple_id,
}


def normalize_email(email: str) -> str:
    """Return ``email`` trimmed, with its domain lowercased.

    This is the same rewrite ``EmailStr`` applies at registration, so every
    stored address and every lookup key agree. The local part is kept as is.
    """
    email = email.strip()
    local, sep, domain = email.rpartition("@")
    if not sep:
        return email
    return f"{local}@{domain.lower()}"


class ResolutionOutcome(str, enum.Enum):
    """How an authentication attempt was resolved."""

    NEW_LOCAL_ACCOUNT = "new_local_account"
    EXISTING_LOCAL_LOGIN = "existing_local_login"
    NEW_FEDERATED_ACCOUNT = "new_federated_account"
    LINKED_FEDERATED_ACCOUNT = "linked_federated_account"
    REJECTED = "rejected"


@dataclass(frozen=True)
class AuthResult:
    """Resolved account plus the session token issued for it."""

    user: User
    token: str
    outcome: ResolutionOutcome


class IdentityResolver:
    """Register, log in, and reconcile federated identities into one User."""

    def __init__(
        self,
        db: Session,
        *,
        hasher: PasswordHasher,
        issuer: TokenIssuer,
        verifiers: Mapping[AuthProvider, ProviderVerifier] | None = None,
        max_conflict_retries: int = 3,
    ) -> None:
        self.db = db
        self.hasher = hasher
        self.issuer = issuer
        self.verifiers = verifiers or {}
        self.max_conflict_retries = max_conflict_retries
        self.usernames = UsernameAllocator(db)

    # ------------------------------------------------------------------
    # Local credentials
    # ------------------------------------------------------------------
    def register(
        self,
        *,
        username: str,
        email: str,
        password: str,
        avatar: str = "",
    ) -> AuthResult:
        """Create a local account and return a session for it.

        Raises:
            ConflictError: if the username or the email is already in use,
                whether seen up front or only at insert time.
        """
        email = normalize_email(email)
        taken = self.db.execute(
            select(User.id).where(or_(User.username == username, User.email == email)).limit(1)
        ).first()
        if taken is not None:
            raise ConflictError("Username or email already exists")

        user = User(
            username=username,
            email=email,
            password_hash=self.hasher.hash(password),
            avatar=avatar or "",
            auth_provider=AuthProvider.EMAIL.value,
        )
        try:
            self._insert(user)
        except ConstraintViolation as err:
            raise ConflictError("Username or email already exists") from err
        self.db.commit()

        logger.info("Registered local account user_id=%s", user.id)
        return AuthResult(
            user=user,
            token=self.issuer.issue_for(user),
            outcome=ResolutionOutcome.NEW_LOCAL_ACCOUNT,
        )

    def login(self, *, email: str, password: str) -> AuthResult:
        """Authenticate with email and password.

        An unknown email and a wrong password produce the same error.
        """
        email = normalize_email(email)
        user = self.db.execute(
            select(User).where(
                User.email == email,
                User.auth_provider == AuthProvider.EMAIL.value,
            )
        ).scalar_one_or_none()
        if user is None:
            self.hasher.burn(password)
            raise AuthError(INVALID_CREDENTIALS)
        if not self.hasher.verify(password, user.password_hash):
            logger.debug("Local login %s for user_id=%s", ResolutionOutcome.REJECTED.value, user.id)
            raise AuthError(INVALID_CREDENTIALS)

        return AuthResult(
            user=user,
            token=self.issuer.issue_for(user),
            outcome=ResolutionOutcome.EXISTING_LOCAL_LOGIN,
        )

    # ------------------------------------------------------------------
    # Federated sign-in
    # ------------------------------------------------------------------
    def oauth_login(
        self,
        provider: AuthProvider,
        token: str,
        *,
        username: str | None = None,
        avatar: str | None = None,
    ) -> AuthResult:
        """Sign in with a provider token, creating or linking an account.

        The account is looked up by email first and by provider subject id
        second; the first match wins.
        """
        verifier = self.verifiers.get(provider)
        if verifier is None:
            raise ValidationError(f"Unsupported provider: {provider.value}")
        try:
            identity = verifier.verify(token)
        except ProviderError as err:
            logger.info("%s sign-in %s", provider.value, ResolutionOutcome.REJECTED.value)
            raise AuthError(f"Invalid {provider.value.capitalize()} token") from err
        identity = replace(identity, email=normalize_email(identity.email))

        for attempt in range(1, self.max_conflict_retries + 1):
            user = self._find_federated(provider, identity)
            if user is not None:
                self._link(user, provider, identity, avatar)
                self.db.commit()
                self.db.refresh(user)
                outcome = ResolutionOutcome.LINKED_FEDERATED_ACCOUNT
                break
            try:
                user = self._create_federated(provider, identity, username=username, avatar=avatar)
            except ConstraintViolation as err:
                # Someone else created this identity between our lookup and insert.
                logger.info(
                    "Concurrent %s sign-in created %s first (attempt %d)",
                    provider.value,
                    err.constraint,
                    attempt,
                )
                continue
            self.db.commit()
            outcome = ResolutionOutcome.NEW_FEDERATED_ACCOUNT
            logger.info("Created %s account user_id=%s", provider.value, user.id)
            break
        else:
            logger.error("Gave up resolving %s identity after %d attempts", provider.value, attempt)
            raise TransientError("Could not complete sign-in, please retry")

        return AuthResult(user=user, token=self.issuer.issue_for(user), outcome=outcome)

    def _find_federated(self, provider: AuthProvider, identity: ProviderIdentity) -> User | None:
        user = self.db.execute(
            select(User).where(User.email == identity.email)
        ).scalar_one_or_none()
        if user is not None:
            return user
        column = _PROVIDER_COLUMNS[provider]
        return self.db.execute(
            select(User).where(column == identity.subject_id)
        ).scalar_one_or_none()

    def _create_federated(
        self,
        provider: AuthProvider,
        identity: ProviderIdentity,
        *,
        username: str | None,
        avatar: str | None,
    ) -> User:
        base = (username or "").strip() or self.usernames.derive_candidate(identity.email)
        start = 0
        for _ in range(self.max_conflict_retries):
            name, suffix = self.usernames.allocate_from(base, start)
            user = User(
                username=name,
                email=identity.email,
                password_hash="",
                avatar=avatar or identity.picture or "",
                auth_provider=provider.value,
            )
            setattr(user, _PROVIDER_COLUMNS[provider].key, identity.subject_id)
            try:
                self._insert(user)
            except ConstraintViolation as err:
                if err.constraint != "username":
                    raise
                logger.info("Username %r was taken concurrently; trying the next suffix", name)
                start = suffix + 1
                continue
            return user
        raise TransientError("Could not allocate a username, please retry")

    def _link(
        self,
        user: User,
        provider: AuthProvider,
        identity: ProviderIdentity,
        avatar: str | None,
    ) -> None:
        """Backfill the provider subject id and avatar when they are empty.

        Both writes are conditional on the column still being empty, so
        concurrent sign-ins for the same account are idempotent.
        """
        column = _PROVIDER_COLUMNS[provider]
        linked = user.provider_subject(provider)
        if not linked:
            stmt = (
                update(User)
                .where(User.id == user.id, or_(column.is_(None), column == ""))
                .values({column.key: identity.subject_id, "updated_at": utcnow()})
            )
            try:
                with self.db.begin_nested():
                    result = self.db.execute(stmt)
            except IntegrityError:
                logger.warning(
                    "%s subject already belongs to another account; not linking user_id=%s",
                    provider.value,
                    user.id,
                )
            else:
                if result.rowcount:
                    logger.info("Linked %s identity to user_id=%s", provider.value, user.id)
        elif linked != identity.subject_id:
            logger.warning(
                "user_id=%s matched by email but is linked to a different %s subject",
                user.id,
                provider.value,
            )

        if avatar and not user.avatar:
            self.db.execute(
                update(User)
                .where(User.id == user.id, User.avatar == "")
                .values(avatar=avatar, updated_at=utcnow())
            )

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------
    def get_user(self, user_id: UserID) -> User:
        """Return the account for ``user_id`` or raise NotFoundError."""
        user = self.db.get(User, int(user_id))
        if user is None:
            raise NotFoundError("User not found")
        return user

    def update_profile(
        self,
        caller_id: UserID,
        target_id: int,
        *,
        bio: str | None = None,
        avatar: str | None = None,
    ) -> User:
        """Update the caller's own bio and/or avatar; omitted fields stay."""
        user = self.get_user(UserID(target_id))
        if user.id != caller_id:
            raise ForbiddenError("You can only update your own profile")
        if bio is not None:
            user.bio = bio
        if avatar is not None:
            user.avatar = avatar
        self.db.commit()
        self.db.refresh(user)
        return user

    def _insert(self, user: User) -> None:
        """Insert ``user`` inside a savepoint.

        Raises:
            ConstraintViolation: naming the unique column that collided.
        """
        try:
            with self.db.begin_nested():
                self.db.add(user)
        except IntegrityError as err:
            raise ConstraintViolation(self._collided_column(user)) from err

    def _collided_column(self, user: User) -> str:
        checks = [
            ("username", User.username == user.username),
            ("email", User.email == user.email),
        ]
        if user.google_id:
            checks.append(("google_id", User.google_id == user.google_id))
        if user.apple_id:
            checks.append(("apple_id", User.apple_id == user.apple_id))
        for name, clause in checks:
            if self.db.execute(select(User.id).where(clause).limit(1)).first() is not None:
                return name
        return "unknown"
