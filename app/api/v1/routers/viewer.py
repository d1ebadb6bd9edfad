from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse

from app.api.v1.dependencies import get_current_session, get_stream_token_service
from app.core.config import settings
from app.features.authentication.services import CurrentSession
from app.features.streaming.tokens import StreamTokenService
from app.features.viewer.shell import ViewerConfig, build_shell

router = APIRouter(
    prefix="/viewer",
    tags=["viewer"],
)

@router.get(
    "/{media_id}",
    summary="Page de lecture protégée",
    description=(
        "Émet un token de streaming puis renvoie le document HTML du lecteur "
        "(cadre isolé ou lecteur intégré selon VIEWER_MODE)."
    ),
    response_class=HTMLResponse,
    responses={
        401: {"description": "Non authentifié"},
        403: {"description": "Pas d'accès à ce média"},
        404: {"description": "Média introuvable"},
    },
)
def view_media(
    media_id: int,
    current: CurrentSession = Depends(get_current_session),
    svc: StreamTokenService = Depends(get_stream_token_service),
):
    user = current.user
    ticket = svc.issue(user.id, media_id, session_id=current.session_id)
    config = ViewerConfig.for_ticket(
        ticket,
        watermark_label=user.email or user.username,
        mode=settings.VIEWER_MODE,
        watermark_tiles=settings.VIEWER_WATERMARK_TILES,
        refresh_margin_seconds=settings.VIEWER_REFRESH_MARGIN_SECONDS,
    )
    html = build_shell(config).render(ticket)
    return HTMLResponse(
        content=html,
        headers={"Cache-Control": "no-store", "Referrer-Policy": "no-referrer"},
    )
