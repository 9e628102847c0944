from pydantic import BaseModel, ConfigDict, StrictStr
from typing import Optional


class JoinUserData(BaseModel):
    """Optional third argument of ``join-room``. Unknown keys are ignored."""

    model_config = ConfigDict(extra="ignore")

    username: Optional[StrictStr] = None

    def resolve_username(self, user_id, prefix: str) -> str:
        return self.username or f"{prefix}{user_id}"


class SignalEnvelope(BaseModel):
    """Routing part of an ``offer`` / ``answer`` / ``ice-candidate`` payload.

    Only ``target`` is read; the rest of the payload is forwarded untouched.
    """

    model_config = ConfigDict(extra="allow")

    target: StrictStr
