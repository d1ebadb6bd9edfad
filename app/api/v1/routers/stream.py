from typing import Optional

from fastapi import APIRouter, Depends, Header, Query, Response

from app.api.v1.dependencies import get_stream_gateway
from app.features.streaming.gateway import ClosingStreamingResponse, StreamGateway

router = APIRouter(
    prefix="/stream",
    tags=["stream"],
    responses={
        401: {"description": "Token invalide ou expiré"},
        404: {"description": "Média introuvable"},
        416: {"description": "Plage d'octets invalide"},
    },
)

@router.get(
    "/{media_id}",
    summary="Lire les octets d'un média (Range)",
    description="Le token (query `token`) est revalidé à chaque requête, Range compris.",
    responses={
        200: {"description": "Corps complet"},
        206: {"description": "Plage demandée"},
    },
)
async def stream_media(
    media_id: int,
    token: str = Query(..., description="Token de streaming"),
    range_header: Optional[str] = Header(default=None, alias="Range"),
    gateway: StreamGateway = Depends(get_stream_gateway),
):
    result = await gateway.handle_request(token, range_header, media_id=media_id)
    return ClosingStreamingResponse(
        result.body,
        status_code=result.status,
        headers=result.headers,
        media_type=result.headers["Content-Type"],
    )

@router.head(
    "/{media_id}",
    summary="En-têtes d'un média, sans corps",
)
async def stream_media_head(
    media_id: int,
    token: str = Query(..., description="Token de streaming"),
    range_header: Optional[str] = Header(default=None, alias="Range"),
    gateway: StreamGateway = Depends(get_stream_gateway),
):
    result = await gateway.handle_request(token, range_header, media_id=media_id, head_only=True)
    return Response(status_code=result.status, headers=result.headers)
