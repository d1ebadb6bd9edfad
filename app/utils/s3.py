"""
Client boto3 pour le stockage des octets (S3 ou MinIO).

Lecture seule côté streaming : HeadObject (taille) et GetObject avec en-tête Range.
Les requêtes Range d'un même lecteur arrivent en rafale, d'où un pool de connexions
plus large que le défaut et des relectures automatiques en cas d'erreur transitoire.
"""

import boto3
from botocore.client import Config as BotoConfig

from app.core.config import settings

STREAM_READ_TIMEOUT = 30
STREAM_MAX_CONNECTIONS = 32


def make_stream_client(endpoint_url: str = ""):
    endpoint_url = endpoint_url or settings.S3_ENDPOINT
    cfg = BotoConfig(
        signature_version="s3v4",
        s3={"addressing_style": "path"},  # MinIO
        read_timeout=STREAM_READ_TIMEOUT,
        max_pool_connections=STREAM_MAX_CONNECTIONS,
        retries={"max_attempts": 3, "mode": "standard"},
    )
    return boto3.client(
        "s3",
        endpoint_url=endpoint_url,
        region_name=settings.S3_REGION,
        aws_access_key_id=settings.S3_KEY,
        aws_secret_access_key=settings.S3_SECRET,
        config=cfg,
        use_ssl=endpoint_url.startswith("https"),
    )
