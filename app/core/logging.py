"""
➡️ But : Configurer les logs du serveur une seule fois, au démarrage.

Les modules utilisent `logging.getLogger(__name__)`.
Les décisions de sécurité (tokens émis, refusés, expirés, falsifiés) partent sur le logger
`app.audit` sous forme d'événements structurés (clé=valeur), jamais côté navigateur.
"""

import logging
import sys

AUDIT_LOGGER = "app.audit"


class AuditFormatter(logging.Formatter):
    """Ajoute les champs `audit` (passés via `extra=`) en fin de ligne, en clé=valeur."""

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        fields = getattr(record, "audit", None)
        if not fields:
            return base
        pairs = " ".join(f"{k}={v}" for k, v in fields.items() if v is not None)
        return f"{base} {pairs}"


def configure_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    if any(getattr(h, "_secure_media", False) for h in root.handlers):
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(AuditFormatter("%(asctime)s %(levelname)s [%(name)s] %(message)s"))
    handler._secure_media = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    root.setLevel(level.upper())
