# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Generator, Iterator
from itertools import count

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

os.environ.setdefault("JWT_SECRET", "test-secret-key")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from quorum.api.dependencies import get_provider_verifiers, get_token_issuer
from quorum.core.errors import ProviderError
from quorum.core.security import PasswordHasher, TokenIssuer
from quorum.db.base import Base
from quorum.db.session import get_db as app_get_session
from quorum.main import app as fastapi_app
from quorum.models import AuthProvider, Comment, Post, User
from quorum.services.identity import IdentityResolver
from quorum.services.providers import ProviderIdentity, ProviderVerifier
from quorum.services.votes import VoteLedger

TEST_DB_URL = "sqlite://"

_USER_COUNTER = count(1)


class FakeVerifier(ProviderVerifier):
    """Provider verifier backed by a dict of known tokens."""

    def __init__(self, provider: AuthProvider) -> None:
        self.provider = provider
        self.tokens: dict[str, ProviderIdentity] = {}
        self.calls: list[str] = []

    def add(self, token: str, **identity: object) -> None:
        identity.setdefault("email_verified", True)
        self.tokens[token] = ProviderIdentity(**identity)  # type: ignore[arg-type]

    def _verify(self, token: str) -> ProviderIdentity:
        self.calls.append(token)
        try:
            return self.tokens[token]
        except KeyError:
            raise ProviderError("unknown token") from None


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # pysqlite needs explicit BEGIN for SAVEPOINT-based rollbacks to work.
    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn) -> None:
        conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    connection = engine.connect()
    transaction = connection.begin()
    # commit()/rollback() inside the code under test only touch savepoints.
    session = Session(
        bind=connection,
        autoflush=False,
        join_transaction_mode="create_savepoint",
    )
    try:
        yield session
    finally:
        session.close()
        if transaction.is_active:
            transaction.rollback()
        connection.close()


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture()
def google_verifier() -> FakeVerifier:
    return FakeVerifier(AuthProvider.GOOGLE)


@pytest.fixture()
def apple_verifier() -> FakeVerifier:
    return FakeVerifier(AuthProvider.APPLE)


@pytest.fixture()
def verifiers(
    google_verifier: FakeVerifier,
    apple_verifier: FakeVerifier,
) -> dict[AuthProvider, ProviderVerifier]:
    return {AuthProvider.GOOGLE: google_verifier, AuthProvider.APPLE: apple_verifier}


@pytest.fixture(autouse=True)
def override_dependencies(
    app: FastAPI,
    db_session: Session,
    verifiers: dict[AuthProvider, ProviderVerifier],
) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    app.dependency_overrides[get_provider_verifiers] = lambda: verifiers
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)
        app.dependency_overrides.pop(get_provider_verifiers, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=4)


@pytest.fixture()
def issuer() -> TokenIssuer:
    """The issuer the running app uses, so tokens minted here are accepted."""
    return get_token_issuer()


@pytest.fixture()
def resolver(
    db_session: Session,
    hasher: PasswordHasher,
    issuer: TokenIssuer,
    verifiers: dict[AuthProvider, ProviderVerifier],
) -> IdentityResolver:
    return IdentityResolver(db_session, hasher=hasher, issuer=issuer, verifiers=verifiers)


@pytest.fixture()
def ledger(db_session: Session) -> VoteLedger:
    return VoteLedger(db_session)


@pytest.fixture()
def make_user(db_session: Session, hasher: PasswordHasher) -> Callable[..., User]:
    """Return a factory that persists a user directly."""

    def _make_user(
        username: str | None = None,
        email: str | None = None,
        *,
        password: str | None = None,
        **fields: object,
    ) -> User:
        n = next(_USER_COUNTER)
        user = User(
            username=username or f"user{n}",
            email=email or f"user{n}@example.com",
            password_hash=hasher.hash(password) if password else "",
            **fields,
        )
        db_session.add(user)
        db_session.flush()
        db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture()
def test_user(make_user: Callable[..., User]) -> User:
    return make_user("tester", "tester@example.com", password="secret1")


@pytest.fixture()
def other_user(make_user: Callable[..., User]) -> User:
    return make_user("other", "other@example.com", password="secret2")


@pytest.fixture()
def auth_headers(test_user: User, issuer: TokenIssuer) -> dict[str, str]:
    """Return authorization headers for the primary test user."""
    return {"Authorization": f"Bearer {issuer.issue_for(test_user)}"}


@pytest.fixture()
def other_auth_headers(other_user: User, issuer: TokenIssuer) -> dict[str, str]:
    """Return authorization headers for the secondary test user."""
    return {"Authorization": f"Bearer {issuer.issue_for(other_user)}"}


@pytest.fixture()
def test_post(db_session: Session, test_user: User) -> Post:
    post = Post(title="Hello", body="First post", author_id=test_user.id)
    db_session.add(post)
    db_session.flush()
    db_session.refresh(post)
    return post


@pytest.fixture()
def test_comment(db_session: Session, test_post: Post, other_user: User) -> Comment:
    comment = Comment(body="Nice post", post_id=test_post.id, author_id=other_user.id)
    db_session.add(comment)
    db_session.flush()
    db_session.refresh(comment)
    return comment
