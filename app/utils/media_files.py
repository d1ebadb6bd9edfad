from pathlib import PurePosixPath
from typing import Dict, Optional

import filetype


# Extensions connues du catalogue (vidéos, documents, images, présentations)
EXTENSION_CONTENT_TYPES: Dict[str, str] = {
    # Images
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".webp": "image/webp",
    # Vidéos
    ".mp4": "video/mp4",
    ".webm": "video/webm",
    ".mov": "video/quicktime",
    ".avi": "video/x-msvideo",
    ".mkv": "video/x-matroska",
    # Documents
    ".pdf": "application/pdf",
    ".doc": "application/msword",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".txt": "text/plain",
    ".rtf": "application/rtf",
    # Présentations
    ".ppt": "application/vnd.ms-powerpoint",
    ".pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    ".key": "application/vnd.apple.keynote",
    ".odp": "application/vnd.oasis.opendocument.presentation",
}

DEFAULT_CONTENT_TYPE = "application/octet-stream"


def content_type_from_extension(object_key: str) -> Optional[str]:
    return EXTENSION_CONTENT_TYPES.get(PurePosixPath(object_key).suffix.lower())


def sniff_content_type(head_bytes: bytes) -> Optional[str]:
    """
    Détecte le type réel via 'filetype' (signature des premiers octets).
    Retourne None si le format n'est pas reconnu.
    """
    if not head_bytes:
        return None
    kind = filetype.guess(head_bytes)
    return kind.mime if kind else None


def resolve_content_type(*, declared: Optional[str], object_key: str, head_bytes: bytes = b"") -> str:
    """
    Ordre de priorité : type déclaré au catalogue > signature des octets > extension > octet-stream.
    """
    return (
        declared
        or sniff_content_type(head_bytes)
        or content_type_from_extension(object_key)
        or DEFAULT_CONTENT_TYPE
    )
