"""
➡️ But : Centraliser les dépendances réutilisables des routes.

Exemples :

get_stream_token_service() : crée un StreamTokenService à partir d’une session DB.

get_current_user() / require_admin() : identité et rôle de l'appelant (access token Bearer).

get_current_session() : identité + session de l'appelant (émission des tokens de streaming).

🔹 Avantages :

Routes plus propres (pas de code dupliqué).

Facile à injecter dans plusieurs endpoints (Depends()), et à remplacer dans les tests
(app.dependency_overrides : horloge, stockage des octets).
"""

from datetime import datetime, timezone
from functools import lru_cache
from typing import Callable, Optional
from dataclasses import dataclass

from fastapi import Depends, Header, HTTPException, status, Security
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlmodel import Session

from app.db.session import get_session
from app.db.models.users import User

from app.db.repositories.users import UserRepository
from app.db.repositories.media import MediaRepository
from app.db.repositories.access_grants import AccessGrantRepository
from app.db.repositories.refresh_tokens import RefreshTokenRepository

from app.features.authentication.services import AuthService, CurrentSession
from app.features.access.services import AccessGrantService
from app.features.streaming.tokens import StreamTokenService
from app.features.streaming.gateway import StreamGateway

from app.utils.byte_store import ByteStore, make_byte_store
from app.core.config import settings, jwt_settings, stream_token_settings


# -----------------------------
# Horloge (remplaçable dans les tests)
# -----------------------------
def _utc_now() -> datetime:
    return datetime.now(timezone.utc)

def get_clock() -> Callable[[], datetime]:
    return _utc_now


# -----------------------------
# Repositories
# -----------------------------
def get_user_repository(session: Session = Depends(get_session)) -> UserRepository:
    return UserRepository(session)

def get_media_repository(session: Session = Depends(get_session)) -> MediaRepository:
    return MediaRepository(session)

def get_access_grant_repository(session: Session = Depends(get_session)) -> AccessGrantRepository:
    return AccessGrantRepository(session)

def get_refresh_token_repository(session: Session = Depends(get_session)) -> RefreshTokenRepository:
    return RefreshTokenRepository(session)


# -----------------------------
# Auth
# -----------------------------
def get_auth_service(
    user_repo: UserRepository = Depends(get_user_repository),
    refresh_repo: RefreshTokenRepository = Depends(get_refresh_token_repository),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> AuthService:
    return AuthService(
        user_repo=user_repo,
        refresh_repo=refresh_repo,
        jwt_settings=jwt_settings,
        now_fn=clock,
    )


# -----------------------------
# Access grants
# -----------------------------
def get_access_grant_service(
    grant_repo: AccessGrantRepository = Depends(get_access_grant_repository),
    user_repo: UserRepository = Depends(get_user_repository),
    media_repo: MediaRepository = Depends(get_media_repository),
) -> AccessGrantService:
    return AccessGrantService(grant_repo=grant_repo, user_repo=user_repo, media_repo=media_repo)


# -----------------------------
# Streaming
# -----------------------------
def get_stream_token_service(
    user_repo: UserRepository = Depends(get_user_repository),
    media_repo: MediaRepository = Depends(get_media_repository),
    access_svc: AccessGrantService = Depends(get_access_grant_service),
    refresh_repo: RefreshTokenRepository = Depends(get_refresh_token_repository),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> StreamTokenService:
    return StreamTokenService(
        user_repo=user_repo,
        media_repo=media_repo,
        access_svc=access_svc,
        refresh_repo=refresh_repo,
        token_settings=stream_token_settings,
        api_prefix=settings.API_V1_STR,
        now_fn=clock,
    )

@lru_cache
def get_byte_store() -> ByteStore:
    # Un seul store par process (le client S3 est réutilisé)
    return make_byte_store()

def get_stream_gateway(
    token_svc: StreamTokenService = Depends(get_stream_token_service),
    media_repo: MediaRepository = Depends(get_media_repository),
    byte_store: ByteStore = Depends(get_byte_store),
) -> StreamGateway:
    return StreamGateway(
        token_svc=token_svc,
        media_repo=media_repo,
        byte_store=byte_store,
        chunk_size=settings.STREAM_CHUNK_SIZE,
    )


# -----------------------------
# Authentication data
# -----------------------------
bearer_scheme = HTTPBearer(auto_error=True)

def get_access_token_from_bearer(
    credentials: HTTPAuthorizationCredentials = Security(bearer_scheme),
) -> str:
    if not credentials or credentials.scheme.lower() != "bearer":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid auth scheme")
    return credentials.credentials

def get_current_user(
    access_token: str = Depends(get_access_token_from_bearer),
    svc: AuthService = Depends(get_auth_service),
) -> User:
    return svc.get_current_user(access_token=access_token)

def get_current_session(
    access_token: str = Depends(get_access_token_from_bearer),
    svc: AuthService = Depends(get_auth_service),
) -> CurrentSession:
    return svc.current_session(access_token=access_token)

def require_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin only")
    return user


@dataclass
class ClientContext:
    ip: Optional[str]
    user_agent: Optional[str]

def get_client_ip_and_ua(
    x_forwarded_for: Optional[str] = Header(default=None, alias="X-Forwarded-For"),
    x_real_ip: Optional[str] = Header(default=None, alias="X-Real-IP"),
    user_agent: Optional[str] = Header(default=None, alias="User-Agent"),
) -> ClientContext:
    """
    Récupère l'IP depuis X-Forwarded-For > X-Real-IP (si derrière un proxy),
    et le User-Agent (utile pour audit des refresh tokens).
    """
    ip = None
    if x_forwarded_for:
        ip = x_forwarded_for.split(",")[0].strip()
    elif x_real_ip:
        ip = x_real_ip
    return ClientContext(ip=ip, user_agent=user_agent)
