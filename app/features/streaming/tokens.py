"""
➡️ But : Transformer "l'utilisateur veut voir le média X" en capacité à durée limitée.

StreamTokenService :
- issue()    : vérifie le droit (sauf admin), signe {media, user, rôle, expiration}, renvoie l'URL de streaming ;
- validate() : signature puis expiration, sans aller en base (appelé à chaque requête Range) ;
- renew()    : ré-émission transparente pour le lecteur, qui repasse par le contrôle des droits.

🔹 Un token de streaming n'est renouvelable que s'il est rattaché à une session (`sid`) :
   - la session doit être encore ouverte (un logout coupe les renouvellements) ;
   - la chaîne ne dépasse jamais `renew_window` depuis la première émission (`oat`).
   Une URL de streaming interceptée ne vit donc pas plus longtemps que la session qui l'a demandée.

🔹 Pas de liste de révocation : un token émis reste valable jusqu'à son `expires_at`.
   Une révocation prend effet à la prochaine émission (au plus un TTL plus tard).
"""

from datetime import datetime, timezone
from typing import Callable, Optional

from jose import JWTError

from app.core.errors import Forbidden, InvalidToken, NotFound, TokenExpired
from app.db.models.users import ROLE_ADMIN
from app.db.repositories.media import MediaRepository
from app.db.repositories.refresh_tokens import RefreshTokenRepository
from app.db.repositories.users import UserRepository
from app.features.access.services import AccessGrantService
from app.features.streaming import audit
from app.features.streaming.schemas import StreamClaims, StreamTicketOut
from app.security.tokens import StreamTokenSettings, create_stream_token, decode_stream_token
from app.utils.media_files import DEFAULT_CONTENT_TYPE, content_type_from_extension


class StreamTokenService:
    def __init__(
        self,
        *,
        user_repo: UserRepository,
        media_repo: MediaRepository,
        access_svc: AccessGrantService,
        refresh_repo: RefreshTokenRepository,
        token_settings: StreamTokenSettings,
        api_prefix: str = "/api/v1",
        now_fn: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.user_repo = user_repo
        self.media_repo = media_repo
        self.access_svc = access_svc
        self.refresh_repo = refresh_repo
        self.tokens = token_settings
        self.api_prefix = api_prefix.rstrip("/")
        self.now_fn = now_fn

    # ---------- URLs ----------
    def stream_url(self, media_id: int, token: str) -> str:
        return f"{self.api_prefix}/stream/{media_id}?token={token}"

    def refresh_url(self, token: str) -> str:
        return f"{self.api_prefix}/playback/renew?token={token}"

    # ---------- Émission ----------
    def issue(
        self,
        user_id: int,
        media_id: int,
        *,
        session_id: Optional[str] = None,
        origin: Optional[datetime] = None,
    ) -> StreamTicketOut:
        """
        `session_id` : session qui demande la lecture (sans elle, pas de renouvellement).
        `origin` : début de la chaîne, fourni par renew() ; sinon maintenant.
        """
        user = self.user_repo.get(user_id)
        if not user:
            raise NotFound("User not found")

        # Catalogue d'abord : un média inconnu est audité de la même façon pour tous les rôles
        media = self.media_repo.get_active(media_id)
        if not media:
            audit.emit(audit.DENIED, user_id=user_id, media_id=media_id, role=user.role, reason="media_not_found")
            raise NotFound("Media not found")

        # Droit d'accès : les admins passent, les clients doivent avoir un grant
        if user.role != ROLE_ADMIN and not self.access_svc.check(user_id, media_id):
            audit.emit(audit.DENIED, user_id=user_id, media_id=media_id, role=user.role, reason="no_grant")
            raise Forbidden("No access to this media")

        # Signature {media, user, rôle, expiration}
        token, expires_at = create_stream_token(
            user_id=user.id,
            media_id=media.id,
            role=user.role,
            now=self.now_fn(),
            settings=self.tokens,
            session_id=session_id,
            origin=origin,
        )

        audit.emit(audit.ISSUED, user_id=user.id, media_id=media.id, role=user.role, expires_at=expires_at.isoformat())

        # Directives du lecteur
        return StreamTicketOut(
            stream_url=self.stream_url(media.id, token),
            expires_at=expires_at,
            watermark_required=user.role != ROLE_ADMIN,
            role=user.role,
            media_id=media.id,
            media_type=media.media_type,
            content_type=media.mime_type or content_type_from_extension(media.object_key) or DEFAULT_CONTENT_TYPE,
            title=media.title,
            thumbnail_url=media.thumbnail_url,
            refresh_url=self.refresh_url(token),
        )

    # ---------- Validation ----------
    def validate(self, token: str) -> StreamClaims:
        """
        Signature d'abord (InvalidToken = falsification), puis expiration (TokenExpired = routine).
        Calcul pur : aucune lecture en base.
        """
        try:
            decoded = decode_stream_token(token, self.tokens)
            claims = StreamClaims(
                media_id=int(decoded["mid"]),
                user_id=int(decoded["sub"]),
                role=decoded["role"],
                expires_at=datetime.fromtimestamp(decoded["exp"], tz=timezone.utc),
                chain_started_at=datetime.fromtimestamp(decoded["oat"], tz=timezone.utc),
                session_id=decoded.get("sid"),
            )
        except (JWTError, ValueError) as e:
            audit.emit(audit.INVALID, reason=str(e) or type(e).__name__)
            raise InvalidToken()

        if self.now_fn() > claims.expires_at:
            audit.emit(audit.EXPIRED, user_id=claims.user_id, media_id=claims.media_id, role=claims.role)
            raise TokenExpired()

        return claims

    # ---------- Renouvellement ----------
    def renew(self, token: str) -> StreamTicketOut:
        """
        Nouveau token pour le même couple (user, média), à partir d'un token encore valide.

        - token sans session → Forbidden ;
        - session fermée (logout, refresh expiré) ou chaîne plus vieille que `renew_window` → TokenExpired ;
        - repasse par issue() : un client révoqué reçoit Forbidden.
        """
        claims = self.validate(token)
        denied = dict(user_id=claims.user_id, media_id=claims.media_id, role=claims.role)

        if not claims.session_id:
            audit.emit(audit.DENIED, **denied, reason="not_renewable")
            raise Forbidden("Token is not renewable")

        now = self.now_fn()
        if now > claims.chain_started_at + self.tokens.renew_window:
            audit.emit(audit.DENIED, **denied, reason="renew_window_elapsed")
            raise TokenExpired("Renewal window elapsed")

        if not self.refresh_repo.session_is_open(claims.session_id, now):
            audit.emit(audit.DENIED, **denied, reason="session_closed")
            raise TokenExpired("Session closed")

        ticket = self.issue(
            claims.user_id,
            claims.media_id,
            session_id=claims.session_id,
            origin=claims.chain_started_at,
        )
        audit.emit(audit.RENEWED, user_id=claims.user_id, media_id=claims.media_id, role=ticket.role)
        return ticket
