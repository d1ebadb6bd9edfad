from typing import Literal

from pydantic import BaseModel, Field

# ---------- Inputs ----------

class SignInIn(BaseModel):
    username: str = Field(min_length=1, max_length=64)
    password: str = Field(min_length=1, max_length=128)


class RefreshIn(BaseModel):
    refresh_token: str


class LogoutIn(RefreshIn):
    pass


# ---------- Outputs ----------

class TokenPairOut(BaseModel):
    """Couple de session ; `role` permet au client de choisir son écran (admin ou lecteur)."""

    access_token: str
    refresh_token: str
    token_type: Literal["bearer"] = "bearer"
    expires_in: int  # secondes de validité de l'access token
    role: str
