"""
➡️ But : Servir les octets d'un média, avec les requêtes Range, seulement derrière un token valide.

Cycle de vie d'une requête (rien ne survit à la requête) :

    RECEIVED → VALIDATED → RANGE_PARSED | FULL_BODY → STREAMING → COMPLETED | ABORTED

Chaque requête Range revalide le token (signature + expiration), sans aller relire les droits.
Une déconnexion du client pendant le transfert n'est pas une erreur : le fichier est refermé.
"""

import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import AsyncIterator, Dict, Optional

import anyio
from fastapi import status
from fastapi.responses import StreamingResponse

from app.core.errors import InvalidToken, NotFound
from app.db.repositories.media import MediaRepository
from app.features.streaming import audit
from app.features.streaming.ranges import ByteRange, parse_range
from app.features.streaming.tokens import StreamTokenService
from app.utils.byte_store import ByteStore
from app.utils.media_files import resolve_content_type

logger = logging.getLogger(__name__)


class StreamState(str, Enum):
    RECEIVED = "received"
    VALIDATED = "validated"
    RANGE_PARSED = "range_parsed"
    FULL_BODY = "full_body"
    STREAMING = "streaming"
    COMPLETED = "completed"
    ABORTED = "aborted"


@dataclass
class GatewayResponse:
    status: int
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[AsyncIterator[bytes]] = None


class StreamGateway:
    def __init__(
        self,
        *,
        token_svc: StreamTokenService,
        media_repo: MediaRepository,
        byte_store: ByteStore,
        chunk_size: int = 64 * 1024,
    ):
        self.token_svc = token_svc
        self.media_repo = media_repo
        self.byte_store = byte_store
        self.chunk_size = chunk_size

    def _transition(self, request_id: str, state: StreamState, **info) -> None:
        logger.debug("stream %s %s %s", request_id, state.value, info or "")

    async def handle_request(
        self,
        token: str,
        range_header: Optional[str],
        *,
        media_id: Optional[int] = None,
        head_only: bool = False,
    ) -> GatewayResponse:
        request_id = uuid.uuid4().hex[:8]
        self._transition(request_id, StreamState.RECEIVED, media_id=media_id)

        # 1) Token (401 si invalide ou expiré)
        claims = self.token_svc.validate(token)
        if media_id is not None and claims.media_id != media_id:
            audit.emit(audit.INVALID, user_id=claims.user_id, media_id=media_id, role=claims.role, reason="media_mismatch")
            raise InvalidToken()
        self._transition(request_id, StreamState.VALIDATED, user_id=claims.user_id)

        # 2) Emplacement des octets (404 si absent)
        media = self.media_repo.get_active(claims.media_id)
        if not media:
            raise NotFound("Media not found")
        size = await self.byte_store.size(media.object_key)
        if size is None:
            logger.error("Media %s has no bytes at %r", media.id, media.object_key)
            raise NotFound("Media file not found")

        # 3) Range (416 si invalide ou hors limites)
        window = parse_range(range_header, size)
        self._transition(
            request_id,
            StreamState.RANGE_PARSED if window else StreamState.FULL_BODY,
            range=range_header,
        )

        head_bytes = b"" if media.mime_type else await self.byte_store.head(media.object_key)
        content_type = resolve_content_type(
            declared=media.mime_type,
            object_key=media.object_key,
            head_bytes=head_bytes,
        )

        # 4) En-têtes + corps
        headers = {
            "Accept-Ranges": "bytes",
            "Content-Type": content_type,
            "Content-Disposition": "inline",
            "Cache-Control": "no-store, private",
            "X-Content-Type-Options": "nosniff",
            "X-Role": claims.role,
            "X-Watermark-Required": "true" if claims.watermark_required else "false",
        }
        if window:
            status_code = status.HTTP_206_PARTIAL_CONTENT
            headers["Content-Range"] = window.content_range(size)
            headers["Content-Length"] = str(window.length)
        else:
            status_code = status.HTTP_200_OK
            window = ByteRange(0, size - 1)
            headers["Content-Length"] = str(size)

        if head_only:
            self._transition(request_id, StreamState.COMPLETED, head=True)
            return GatewayResponse(status=status_code, headers=headers)

        body = self._stream(request_id, media.object_key, window)
        return GatewayResponse(status=status_code, headers=headers, body=body)

    async def _stream(self, request_id: str, key: str, window: ByteRange) -> AsyncIterator[bytes]:
        self._transition(request_id, StreamState.STREAMING, start=window.start, end=window.end)
        sent = 0
        completed = False
        chunks = self.byte_store.open_range(key, window.start, window.end, self.chunk_size)
        try:
            if window.length > 0:
                async for chunk in chunks:
                    sent += len(chunk)
                    yield chunk
            completed = True
        finally:
            await chunks.aclose()
            if completed:
                self._transition(request_id, StreamState.COMPLETED, sent=sent)
            else:
                # 5) Déconnexion du client : fichier libéré, pas une erreur
                logger.info("stream %s aborted after %d/%d bytes", request_id, sent, window.length)


class ClosingStreamingResponse(StreamingResponse):
    """
    StreamingResponse qui referme toujours son itérateur, même si l'envoi est annulé
    (client parti) : le descripteur de fichier est rendu tout de suite.
    """

    async def __call__(self, scope, receive, send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            aclose = getattr(self.body_iterator, "aclose", None)
            if aclose is not None:
                with anyio.CancelScope(shield=True):
                    await aclose()
