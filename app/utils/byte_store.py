"""
➡️ But : Lire les octets d'un média, entiers ou par fenêtre [start, end].

Deux implémentations derrière la même interface :
- LocalByteStore : fichiers sous MEDIA_ROOT (dev, petites installations) ;
- S3ByteStore    : bucket S3/MinIO via boto3 (GetObject avec en-tête Range).

🔹 open_range() est un générateur asynchrone : le fichier (ou le corps S3) n'est ouvert
   qu'à la première lecture et toujours refermé dans un `finally`, y compris quand le
   client coupe la connexion en cours de route.
"""

import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import AsyncIterator, Callable, Optional

import anyio
from botocore.exceptions import ClientError

from app.core.config import settings
from app.utils.s3 import make_stream_client

# filetype n'a besoin que des premiers octets
SNIFF_BYTES = 262


class ByteStore(ABC):
    @abstractmethod
    async def size(self, key: str) -> Optional[int]:
        """Taille en octets, ou None si l'objet n'existe pas."""

    @abstractmethod
    async def head(self, key: str, length: int = SNIFF_BYTES) -> bytes:
        """Premiers octets de l'objet (détection du type réel)."""

    @abstractmethod
    def open_range(self, key: str, start: int, end: int, chunk_size: int) -> AsyncIterator[bytes]:
        """Itère sur les octets [start, end] (bornes incluses)."""


class LocalByteStore(ByteStore):
    def __init__(self, root: Path):
        self.root = Path(root).resolve()

    def _path(self, key: str) -> Optional[Path]:
        path = (self.root / key.lstrip("/")).resolve()
        # Pas de sortie de la racine (../)
        if path != self.root and self.root not in path.parents:
            return None
        return path

    async def size(self, key: str) -> Optional[int]:
        path = self._path(key)
        if path is None:
            return None
        try:
            stat = await anyio.to_thread.run_sync(os.stat, path)
        except (FileNotFoundError, NotADirectoryError):
            return None
        if not os.path.isfile(path):
            return None
        return stat.st_size

    async def head(self, key: str, length: int = SNIFF_BYTES) -> bytes:
        path = self._path(key)
        if path is None:
            return b""
        async with await anyio.open_file(path, "rb") as f:
            return await f.read(length)

    async def open_range(self, key: str, start: int, end: int, chunk_size: int) -> AsyncIterator[bytes]:
        path = self._path(key)
        if path is None:
            return
        async with await anyio.open_file(path, "rb") as f:
            await f.seek(start)
            remaining = end - start + 1
            while remaining > 0:
                chunk = await f.read(min(chunk_size, remaining))
                if not chunk:
                    break
                remaining -= len(chunk)
                yield chunk


class S3ByteStore(ByteStore):
    def __init__(self, *, bucket: str, client_factory: Callable[[], object] = make_stream_client):
        self.bucket = bucket
        self._client_factory = client_factory
        self._client = None

    @property
    def client(self):
        if self._client is None:
            self._client = self._client_factory()
        return self._client

    async def size(self, key: str) -> Optional[int]:
        try:
            meta = await anyio.to_thread.run_sync(
                lambda: self.client.head_object(Bucket=self.bucket, Key=key)
            )
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in ("404", "NoSuchKey", "NotFound"):
                return None
            raise
        return int(meta["ContentLength"])

    async def head(self, key: str, length: int = SNIFF_BYTES) -> bytes:
        chunks = []
        async for chunk in self.open_range(key, 0, length - 1, length):
            chunks.append(chunk)
        return b"".join(chunks)

    async def open_range(self, key: str, start: int, end: int, chunk_size: int) -> AsyncIterator[bytes]:
        obj = await anyio.to_thread.run_sync(
            lambda: self.client.get_object(Bucket=self.bucket, Key=key, Range=f"bytes={start}-{end}")
        )
        body = obj["Body"]
        try:
            while True:
                chunk = await anyio.to_thread.run_sync(body.read, chunk_size)
                if not chunk:
                    break
                yield chunk
        finally:
            body.close()


def make_byte_store() -> ByteStore:
    if settings.STORAGE_BACKEND == "s3":
        return S3ByteStore(bucket=settings.S3_BUCKET)
    return LocalByteStore(Path(settings.MEDIA_ROOT))
