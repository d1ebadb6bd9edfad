"""
Analyse de l'en-tête `Range` (sous-ensemble RFC 9110, une seule plage) :

    bytes=500-999   → octets 500 à 999
    bytes=500-      → de 500 jusqu'à la fin
    bytes=-500      → les 500 derniers octets

Une fin au-delà de la taille est ramenée à `size - 1`. Tout le reste
(autre unité, plusieurs plages, début > fin, début hors fichier, fichier vide)
lève RangeNotSatisfiable (416, `Content-Range: bytes */size`).
"""

import re
from dataclasses import dataclass
from typing import Optional

from app.core.errors import RangeNotSatisfiable

_RANGE_RE = re.compile(r"^\s*bytes\s*=\s*(\d*)\s*-\s*(\d*)\s*$", re.IGNORECASE)


@dataclass(frozen=True)
class ByteRange:
    start: int
    end: int  # inclus

    @property
    def length(self) -> int:
        return self.end - self.start + 1

    def content_range(self, size: int) -> str:
        return f"bytes {self.start}-{self.end}/{size}"


def parse_range(header: Optional[str], size: int) -> Optional[ByteRange]:
    """None si pas d'en-tête (corps complet), sinon la fenêtre à servir."""
    if header is None or not header.strip():
        return None

    match = _RANGE_RE.match(header)
    if not match:
        raise RangeNotSatisfiable(size, "Malformed range")
    if size <= 0:
        raise RangeNotSatisfiable(size)

    first, last = match.groups()
    if not first and not last:
        raise RangeNotSatisfiable(size, "Malformed range")

    if not first:
        # suffixe : les N derniers octets
        suffix = int(last)
        if suffix == 0:
            raise RangeNotSatisfiable(size)
        return ByteRange(max(0, size - suffix), size - 1)

    start = int(first)
    end = int(last) if last else size - 1
    if start > end or start >= size:
        raise RangeNotSatisfiable(size)
    return ByteRange(start, min(end, size - 1))
