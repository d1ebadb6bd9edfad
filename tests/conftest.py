import os

# Configuration de test, avant tout import de l'application
os.environ["ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["JWT_SECRET_KEY"] = "test-secret"
os.environ["VIEWER_MODE"] = "isolated"

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlmodel import SQLModel, Session

from app.api.v1.dependencies import get_byte_store, get_clock
from app.core.config import jwt_settings, stream_token_settings
from app.db.models.media import MediaItem
from app.db.models.users import ROLE_ADMIN, ROLE_CLIENT, User
from app.db.repositories.access_grants import AccessGrantRepository
from app.db.repositories.media import MediaRepository
from app.db.repositories.refresh_tokens import RefreshTokenRepository
from app.db.repositories.users import UserRepository
from app.db.session import engine, get_session
from app.features.access.services import AccessGrantService
from app.features.streaming.gateway import StreamGateway
from app.features.streaming.tokens import StreamTokenService
from app.main import app
from app.security.password import hash_password
from app.security.tokens import create_access_token, new_jti
from app.utils.byte_store import LocalByteStore

ASSET_SIZE = 1000
PASSWORD = "s3cret-pass"


class FakeClock:
    """Horloge manipulable : les tests avancent le temps explicitement."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> datetime:
        self.now = self.now + timedelta(**delta)
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def session():
    SQLModel.metadata.create_all(engine)
    with Session(engine) as s:
        yield s
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def media_root(tmp_path):
    root = tmp_path / "media"
    root.mkdir()
    return root


@pytest.fixture
def asset_bytes() -> bytes:
    return bytes(i % 251 for i in range(ASSET_SIZE))


# -----------------------------
# Données
# -----------------------------
def _make_user(session: Session, username: str, role: str) -> User:
    return UserRepository(session).create(
        username=username,
        email=f"{username}@example.com",
        hashed_password=hash_password(PASSWORD),
        role=role,
    )


@pytest.fixture
def admin(session) -> User:
    return _make_user(session, "admin", ROLE_ADMIN)


@pytest.fixture
def alice(session) -> User:
    return _make_user(session, "alice", ROLE_CLIENT)


@pytest.fixture
def bob(session) -> User:
    return _make_user(session, "bob", ROLE_CLIENT)


@pytest.fixture
def video(session, media_root, asset_bytes) -> MediaItem:
    (media_root / "videos").mkdir()
    (media_root / "videos" / "intro.mp4").write_bytes(asset_bytes)
    return MediaRepository(session).create(
        title="Intro",
        media_type="video",
        object_key="videos/intro.mp4",
        mime_type="video/mp4",
        bytes=ASSET_SIZE,
        thumbnail_url="/static/thumbnails/intro.jpg",
    )


@pytest.fixture
def missing_file_media(session) -> MediaItem:
    return MediaRepository(session).create(
        title="Ghost",
        media_type="document",
        object_key="documents/ghost.pdf",
    )


# -----------------------------
# Services
# -----------------------------
@pytest.fixture
def access_svc(session) -> AccessGrantService:
    return AccessGrantService(
        grant_repo=AccessGrantRepository(session),
        user_repo=UserRepository(session),
        media_repo=MediaRepository(session),
    )


@pytest.fixture
def token_svc(session, access_svc, clock) -> StreamTokenService:
    return StreamTokenService(
        user_repo=UserRepository(session),
        media_repo=MediaRepository(session),
        access_svc=access_svc,
        refresh_repo=RefreshTokenRepository(session),
        token_settings=stream_token_settings,
        now_fn=clock,
    )


@pytest.fixture
def gateway(session, token_svc, media_root) -> StreamGateway:
    return StreamGateway(
        token_svc=token_svc,
        media_repo=MediaRepository(session),
        byte_store=LocalByteStore(media_root),
        chunk_size=64,
    )


# -----------------------------
# HTTP
# -----------------------------
@pytest.fixture
def client(session, clock, media_root):
    app.dependency_overrides[get_session] = lambda: session
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_byte_store] = lambda: LocalByteStore(media_root)
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def open_session(session: Session, user: User, now: datetime) -> str:
    """Enregistre un refresh token, comme un sign-in, et renvoie l'identifiant de session."""
    jti = new_jti()
    RefreshTokenRepository(session).create(
        jti=jti, session_id=jti, user_id=user.id, expires_at=now + jwt_settings.refresh_ttl,
    )
    return jti


@pytest.fixture
def auth(session, clock):
    """auth(user) -> en-têtes Authorization pour ce compte, sur une session ouverte."""

    def headers(user: User) -> dict:
        session_id = open_session(session, user, clock.now)
        token = create_access_token(
            user_id=user.id, username=user.username, session_id=session_id, settings=jwt_settings,
        )
        return {"Authorization": f"Bearer {token}"}

    return headers


@pytest.fixture
def user_session(session, clock):
    """user_session(user) -> identifiant d'une session ouverte pour ce compte."""
    return lambda user: open_session(session, user, clock.now)
