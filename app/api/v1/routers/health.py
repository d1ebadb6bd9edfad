import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from app.db.session import get_session

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])

@router.get(
    "/healthcheck",
    summary="État du service",
    responses={503: {"description": "Base de données indisponible"}},
)
def healthcheck(session: Session = Depends(get_session)):
    try:
        session.exec(text("SELECT 1"))
    except SQLAlchemyError:
        logger.exception("Healthcheck failed")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Database unavailable")
    return {"status": "ok"}
