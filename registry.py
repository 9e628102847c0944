from typing import Any, Dict, List, Optional, Tuple

from logging_config import get_logger
from schemas.rooms import Participant

logger = get_logger(__name__)

PRESENCE_FLAGS = ("is_audio_enabled", "is_video_enabled", "is_screen_sharing")


class RegistryError(Exception):
    pass


class AlreadyJoined(RegistryError):
    def __init__(self, connection_id: str, room_id: str):
        super().__init__(f"Connection {connection_id} already joined room {room_id}")
        self.connection_id = connection_id
        self.room_id = room_id


class SessionRegistry:
    """In-memory room membership for one server process.

    Holds two views of the same Participant objects:
    connection_id -> Participant and room_id -> {connection_id -> Participant}.
    A room is created by its first join and deleted by its last leave, so the
    registry never holds an empty room. Methods never await; callers serialize access.
    """

    def __init__(self):
        self._participants: Dict[str, Participant] = {}
        self._rooms: Dict[str, Dict[str, Participant]] = {}

    def join(self, connection_id: str, room_id: str, user_id: Any, username: str) -> Participant:
        existing = self._participants.get(connection_id)
        if existing is not None:
            raise AlreadyJoined(connection_id, existing.room_id)

        participant = Participant(
            connection_id=connection_id,
            room_id=room_id,
            user_id=user_id,
            username=username,
        )
        if room_id not in self._rooms:
            self._rooms[room_id] = {}
            logger.debug(f"Room {room_id} created")
        self._rooms[room_id][connection_id] = participant
        self._participants[connection_id] = participant
        logger.debug(f"Connection {connection_id} added to room {room_id} ({len(self._rooms[room_id])} users)")
        return participant

    def leave(self, connection_id: str) -> Optional[Tuple[str, Any]]:
        """Remove a connection's participant. Returns (room_id, user_id), or None if it had none."""
        participant = self._participants.pop(connection_id, None)
        if participant is None:
            return None

        room_id = participant.room_id
        members = self._rooms.get(room_id)
        if members is not None:
            members.pop(connection_id, None)
            if not members:
                del self._rooms[room_id]
                logger.debug(f"Room {room_id} deleted (last user left)")
        logger.debug(f"Connection {connection_id} removed from room {room_id}")
        return room_id, participant.user_id

    def get(self, connection_id: str) -> Optional[Participant]:
        return self._participants.get(connection_id)

    def list_room(self, room_id: str) -> List[Participant]:
        return list(self._rooms.get(room_id, {}).values())

    def set_flag(self, connection_id: str, flag: str, value: bool) -> Optional[Participant]:
        if flag not in PRESENCE_FLAGS:
            raise ValueError(f"Unknown presence flag: {flag}")
        participant = self._participants.get(connection_id)
        if participant is None:
            return None
        setattr(participant, flag, bool(value))
        return participant

    def room_user_count(self, room_id: str) -> int:
        return len(self._rooms.get(room_id, {}))

    def all_rooms(self) -> Dict[str, List[Participant]]:
        return {room_id: list(members.values()) for room_id, members in self._rooms.items()}

    def __contains__(self, connection_id: str) -> bool:
        return connection_id in self._participants

    def __len__(self) -> int:
        return len(self._participants)
