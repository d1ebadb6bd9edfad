import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple, TypedDict

from jose import jwt, JWTError

# ==========================================================
# 🔧 Configuration : paramètres de génération/validation JWT
# ==========================================================

@dataclass(frozen=True)
class JWTSettings:
    """
    Configuration des tokens JWT de session.

    - `secret` : clé secrète pour signer/valider les tokens
    - `issuer` : émetteur (utilisé dans le payload)
    - `algorithm` : algo de signature (HS256 recommandé)
    - `access_ttl` : durée de vie d’un access token
    - `refresh_ttl` : durée de vie d’un refresh token
    """
    secret: str
    issuer: str = "my-app"
    algorithm: str = "HS256"
    access_ttl: timedelta = timedelta(minutes=15)
    refresh_ttl: timedelta = timedelta(days=30)


@dataclass(frozen=True)
class StreamTokenSettings:
    """
    Configuration des tokens de streaming (capacité courte pour un couple user/média).

    - `secret` : clé serveur (HMAC-SHA256)
    - `ttl` : fenêtre de validité, en minutes (jamais en heures)
    - `renew_window` : durée maximale d'une chaîne de renouvellements depuis la première émission
    """
    secret: str
    issuer: str = "my-app/stream"
    algorithm: str = "HS256"
    ttl: timedelta = timedelta(minutes=5)
    renew_window: timedelta = timedelta(hours=4)


# ==========================================================
# 🧱 Types
# ==========================================================

class DecodedToken(TypedDict, total=False):
    iss: str
    sub: str            # identifiant utilisateur
    username: str
    typ: str            # "access" | "refresh"
    jti: str
    sid: str            # session (chaîne de refresh tokens)
    iat: int
    exp: int

class DecodedStreamToken(TypedDict, total=False):
    iss: str
    typ: str            # "stream"
    sub: str            # identifiant utilisateur
    mid: str            # identifiant du média
    role: str           # "admin" | "client"
    sid: str            # session qui a demandé la première émission
    oat: int            # première émission de la chaîne (non renouvelable)
    iat: int
    exp: int


# ==========================================================
# 🧩 Fonctions utilitaires
# ==========================================================

def _now() -> datetime:
    """Renvoie l'heure UTC actuelle."""
    return datetime.now(timezone.utc)

def new_jti() -> str:
    """Crée un identifiant unique pour un token."""
    return str(uuid.uuid4())


# ==========================================================
# 🎟️ Génération des tokens
# ==========================================================

def _session_token(
    *, typ: str, user_id: int, username: str, jti: str, session_id: str, ttl: timedelta, settings: JWTSettings,
) -> str:
    now = _now()
    payload: DecodedToken = {
        "iss": settings.issuer,
        "sub": str(user_id),
        "username": username,
        "typ": typ,
        "jti": jti,
        "sid": session_id,
        "iat": int(now.timestamp()),
        "exp": int((now + ttl).timestamp()),
    }
    return jwt.encode(payload, settings.secret, algorithm=settings.algorithm)


def create_access_token(*, user_id: int, username: str, session_id: str, settings: JWTSettings) -> str:
    """
    Access token JWT court (par défaut 15 min), envoyé en Bearer.
    `sid` relie l'access token à sa session : les tokens de streaming en héritent.
    """
    return _session_token(
        typ="access", user_id=user_id, username=username, jti=new_jti(), session_id=session_id,
        ttl=settings.access_ttl, settings=settings,
    )


def create_refresh_token(*, user_id: int, username: str, jti: str, session_id: str, settings: JWTSettings) -> str:
    """
    Refresh token JWT long (par défaut 30 jours).
    Le JTI est fourni pour être stocké côté serveur.
    """
    return _session_token(
        typ="refresh", user_id=user_id, username=username, jti=jti, session_id=session_id,
        ttl=settings.refresh_ttl, settings=settings,
    )


def create_stream_token(
    *,
    user_id: int,
    media_id: int,
    role: str,
    now: datetime,
    settings: StreamTokenSettings,
    session_id: Optional[str] = None,
    origin: Optional[datetime] = None,
) -> Tuple[str, datetime]:
    """
    Crée un token de streaming signé (JWS HS256) et renvoie (token, expires_at).

    Le token est autoportant : {media, user, rôle, expiration}. Aucun stockage serveur,
    la validation n'a besoin que du secret.

    `session_id` et `origin` sont recopiés tels quels lors d'un renouvellement :
    ils bornent la chaîne (session encore ouverte, durée depuis la première émission).
    Sans `session_id`, le token n'est pas renouvelable.
    """
    expires_at = (now + settings.ttl).replace(microsecond=0)
    payload: DecodedStreamToken = {
        "iss": settings.issuer,
        "typ": "stream",
        "sub": str(user_id),
        "mid": str(media_id),
        "role": role,
        "oat": int((origin or now).timestamp()),
        "iat": int(now.timestamp()),
        "exp": int(expires_at.timestamp()),
    }
    if session_id:
        payload["sid"] = session_id
    token = jwt.encode(payload, settings.secret, algorithm=settings.algorithm)
    return token, expires_at


# ==========================================================
# 🔍 Décodage / Validation
# ==========================================================

def decode_token(token: str, settings: JWTSettings, *, expected_typ: str) -> DecodedToken:
    """
    Décode un token de session (signature, expiration, émetteur) et vérifie son type.
    Lève JWTError sinon : un token de streaming n'ouvre jamais de session.
    """
    decoded = jwt.decode(
        token,
        settings.secret,
        algorithms=[settings.algorithm],
        issuer=settings.issuer,
        options={"verify_aud": False},
    )
    if decoded.get("typ") != expected_typ:
        raise JWTError(f"Expected a {expected_typ} token")
    if not decoded.get("sub"):
        raise JWTError("Missing claim: sub")
    return decoded  # type: ignore[return-value]


def decode_stream_token(token: str, settings: StreamTokenSettings) -> DecodedStreamToken:
    """
    Vérifie uniquement la signature et l'émetteur d'un token de streaming.

    ⚠️ L'expiration n'est PAS contrôlée ici : le service la compare à sa propre horloge
       (injectable), pour distinguer "expiré" (routine) de "falsifié" (alerte).
    Lève JWTError si la signature ne correspond pas ou si le token est illisible.
    """
    decoded = jwt.decode(
        token,
        settings.secret,
        algorithms=[settings.algorithm],
        issuer=settings.issuer,
        options={"verify_aud": False, "verify_exp": False},
    )
    if decoded.get("typ") != "stream":
        raise JWTError("Not a stream token")
    for claim in ("sub", "mid", "role"):
        if not isinstance(decoded.get(claim), str):
            raise JWTError(f"Missing claim: {claim}")
    for claim in ("exp", "oat"):
        if not isinstance(decoded.get(claim), int):
            raise JWTError(f"Missing claim: {claim}")
    if "sid" in decoded and not isinstance(decoded["sid"], str):
        raise JWTError("Invalid claim: sid")
    return decoded  # type: ignore[return-value]
