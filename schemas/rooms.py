from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Any, Dict, List


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ParticipantInfo(CamelModel):
    """Wire form of a participant: ``{userId, username, isAudioEnabled, isVideoEnabled, isScreenSharing}``."""

    user_id: Any
    username: str
    is_audio_enabled: bool = True
    is_video_enabled: bool = True
    is_screen_sharing: bool = False


class Participant(ParticipantInfo):
    """One user's presence in one room. Connection and room ids stay server-side."""

    connection_id: str = Field(exclude=True)
    room_id: str = Field(exclude=True)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class RoomInfoResponse(CamelModel):
    user_count: int
    users: List[ParticipantInfo]

    @classmethod
    def from_participants(cls, participants: List[Participant]) -> "RoomInfoResponse":
        return cls(
            user_count=len(participants),
            users=[ParticipantInfo.model_validate(p.to_wire()) for p in participants],
        )


AllRoomsResponse = Dict[str, RoomInfoResponse]


class UploadResponse(BaseModel):
    message: str
    filename: str
    path: str


class ErrorResponse(BaseModel):
    error: str
