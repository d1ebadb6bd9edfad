from fastapi import APIRouter, Depends, Query

from app.api.v1.dependencies import get_current_session, get_stream_token_service
from app.features.authentication.services import CurrentSession
from app.features.streaming.schemas import StreamTicketOut
from app.features.streaming.tokens import StreamTokenService

router = APIRouter(
    prefix="/playback",
    tags=["playback"],
)

@router.post(
    "/{media_id}/token",
    summary="Obtenir un token de streaming",
    description=(
        "Vérifie le droit d'accès (les admins passent), puis renvoie une URL de streaming "
        "valable quelques minutes et les directives du lecteur (filigrane, rôle)."
    ),
    response_model=StreamTicketOut,
    responses={
        401: {"description": "Non authentifié"},
        403: {"description": "Pas d'accès à ce média"},
        404: {"description": "Média introuvable"},
    },
)
def issue_stream_token(
    media_id: int,
    current: CurrentSession = Depends(get_current_session),
    svc: StreamTokenService = Depends(get_stream_token_service),
):
    return svc.issue(current.user.id, media_id, session_id=current.session_id)

@router.post(
    "/renew",
    summary="Renouveler un token de streaming",
    description=(
        "Appelé par le lecteur avant expiration, avec le token courant. "
        "Refusé (401) si la session qui a demandé la lecture est fermée, ou si la chaîne "
        "de renouvellements dépasse sa durée maximale. "
        "Repasse par le contrôle des droits : un accès révoqué renvoie 403."
    ),
    response_model=StreamTicketOut,
    responses={
        401: {"description": "Token invalide ou expiré, session fermée, chaîne trop longue"},
        403: {"description": "Accès révoqué"},
    },
)
def renew_stream_token(
    token: str = Query(..., description="Token de streaming courant"),
    svc: StreamTokenService = Depends(get_stream_token_service),
):
    return svc.renew(token)
