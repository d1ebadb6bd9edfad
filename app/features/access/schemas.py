from datetime import datetime
from typing import List

from pydantic import BaseModel


class GrantOut(BaseModel):
    user_id: int
    media_id: int
    granted_by_id: int
    granted_at: datetime

    model_config = {"from_attributes": True}


class MediaIdsOut(BaseModel):
    user_id: int
    media_ids: List[int]


class UserIdsOut(BaseModel):
    media_id: int
    user_ids: List[int]


class RevokedOut(BaseModel):
    media_id: int
    revoked: int
