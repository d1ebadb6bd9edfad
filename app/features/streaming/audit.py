"""
Événements d'audit des décisions de sécurité.

Émis côté serveur uniquement : le navigateur est la partie non fiable.
"""

import logging
from typing import Optional

from app.core.logging import AUDIT_LOGGER

logger = logging.getLogger(AUDIT_LOGGER)

ISSUED = "issued"
RENEWED = "renewed"
DENIED = "denied"
EXPIRED = "expired"
INVALID = "invalid"
GRANTED = "granted"
REVOKED = "revoked"

# "invalid" = token forgé ou abîmé : à surveiller
_LEVELS = {INVALID: logging.WARNING}


def emit(
    event: str,
    *,
    user_id: Optional[int] = None,
    media_id: Optional[int] = None,
    role: Optional[str] = None,
    reason: Optional[str] = None,
    **fields,
) -> None:
    payload = {
        "event": event,
        "user_id": user_id,
        "media_id": media_id,
        "role": role,
        "reason": reason,
        **fields,
    }
    logger.log(_LEVELS.get(event, logging.INFO), "audit %s", event, extra={"audit": payload})
