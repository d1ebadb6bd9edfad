"""
➡️ But : Sessions des comptes (admin ou client) qui demandent des tokens de streaming.

AuthService :
- sign_in()          : mot de passe → couple access/refresh ;
- refresh()          : rotation, l'ancien refresh est révoqué et chaîné au nouveau ;
- log_out()          : révocation du refresh, silencieuse si le token est illisible ;
- get_current_user() : access token Bearer → User ;
- current_session()  : access token Bearer → (User, session_id), pour rattacher les tokens de streaming.

🔹 Les comptes sont créés par l'administrateur (seed), il n'y a pas d'inscription publique.
"""

from datetime import datetime, timezone
from dataclasses import dataclass
from typing import Callable, Optional

from fastapi import HTTPException, status
from jose import JWTError

from app.db.models.users import User
from app.db.repositories.users import UserRepository
from app.db.repositories.refresh_tokens import RefreshTokenRepository
from app.security.password import verify_password
from app.security.tokens import (
    DecodedToken,
    JWTSettings,
    create_access_token,
    create_refresh_token,
    decode_token,
    new_jti,
)
from app.features.authentication.schemas import (
    SignInIn,
    TokenPairOut,
    RefreshIn,
    LogoutIn,
)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


@dataclass(frozen=True)
class CurrentSession:
    user: User
    session_id: str


class AuthService:
    def __init__(
        self,
        *,
        user_repo: UserRepository,
        refresh_repo: RefreshTokenRepository,
        jwt_settings: JWTSettings,
        now_fn: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.user_repo = user_repo
        self.refresh_repo = refresh_repo
        self.jwt = jwt_settings
        self.now_fn = now_fn

    def _decode(self, token: str, typ: str) -> DecodedToken:
        try:
            return decode_token(token, self.jwt, expected_typ=typ)
        except JWTError:
            raise _unauthorized("Invalid token")

    def _load_user(self, decoded: DecodedToken) -> User:
        user = self.user_repo.get(int(decoded["sub"]))
        if not user:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
        return user

    def _issue_pair(
        self, user: User, *, jti: str, session_id: str, ip: Optional[str], user_agent: Optional[str],
    ) -> TokenPairOut:
        # Le refresh est persisté (révocable), l'access ne l'est pas
        self.refresh_repo.create(
            jti=jti,
            session_id=session_id,
            user_id=user.id,
            expires_at=self.now_fn() + self.jwt.refresh_ttl,
            user_agent=user_agent,
            ip=ip,
        )
        return TokenPairOut(
            access_token=create_access_token(
                user_id=user.id, username=user.username, session_id=session_id, settings=self.jwt,
            ),
            refresh_token=create_refresh_token(
                user_id=user.id, username=user.username, jti=jti, session_id=session_id, settings=self.jwt,
            ),
            token_type="bearer",
            expires_in=int(self.jwt.access_ttl.total_seconds()),
            role=user.role,
        )

    # ---------- Sign in ----------
    def sign_in(self, payload: SignInIn, *, ip: Optional[str] = None, user_agent: Optional[str] = None) -> TokenPairOut:
        user = self.user_repo.get_by_username(payload.username)
        if not user or not verify_password(payload.password, user.hashed_password):
            # Ne pas révéler si l'utilisateur existe
            raise _unauthorized("Invalid credentials")
        # Nouvelle session : son identifiant est le jti du premier refresh
        jti = new_jti()
        return self._issue_pair(user, jti=jti, session_id=jti, ip=ip, user_agent=user_agent)

    # ---------- Refresh (rotation) ----------
    def refresh(self, payload: RefreshIn, *, ip: Optional[str] = None, user_agent: Optional[str] = None) -> TokenPairOut:
        decoded = self._decode(payload.refresh_token, "refresh")
        jti = decoded.get("jti")

        # Existe en base, non révoqué, non expiré (horloge du service)
        rec = self.refresh_repo.get_by_jti(jti) if jti else None
        if not rec or not rec.is_usable(self.now_fn()):
            raise _unauthorized("Refresh token invalid")

        user = self._load_user(decoded)
        next_jti = new_jti()
        self.refresh_repo.revoke(jti, now=self.now_fn(), replaced_by=next_jti)
        return self._issue_pair(user, jti=next_jti, session_id=rec.session_id, ip=ip, user_agent=user_agent)

    # ---------- Logout ----------
    def log_out(self, payload: LogoutIn) -> None:
        try:
            decoded = decode_token(payload.refresh_token, self.jwt, expected_typ="refresh")
        except JWTError:
            # Logout idempotent
            return
        jti = decoded.get("jti")
        if jti:
            self.refresh_repo.revoke(jti, now=self.now_fn())

    # ---------- Current user depuis access token ----------
    def current_session(self, *, access_token: str) -> CurrentSession:
        decoded = self._decode(access_token, "access")
        session_id = decoded.get("sid")
        if not session_id:
            raise _unauthorized("Invalid token")
        return CurrentSession(user=self._load_user(decoded), session_id=session_id)

    def get_current_user(self, *, access_token: str) -> User:
        return self._load_user(self._decode(access_token, "access"))
