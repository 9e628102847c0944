import asyncio
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional

import socketio
from pydantic import ValidationError

import events
from constants import DEFAULT_USERNAME_PREFIX
from logging_config import get_logger
from registry import SessionRegistry
from schemas.signaling import JoinUserData, SignalEnvelope

logger = get_logger(__name__)


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with milliseconds and a trailing Z."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class RelayEngine:
    """Handles per-connection Socket.IO events and is the only writer of the registry.

    Every handler runs under one lock, so a registry mutation and the broadcasts
    it triggers complete before the next event is looked at. Events that need a
    participant the sender does not have are dropped without telling anyone.
    """

    def __init__(self, sio: socketio.AsyncServer, registry: Optional[SessionRegistry] = None):
        self.sio = sio
        self.registry = registry if registry is not None else SessionRegistry()
        self._lock = asyncio.Lock()

    def register(self):
        handlers = {
            events.CONNECT: self.on_connect,
            events.DISCONNECT: self.on_disconnect,
            events.JOIN_ROOM: self.on_join_room,
            events.LEAVE_ROOM: self.on_leave_room,
            events.OFFER: self.on_offer,
            events.ANSWER: self.on_answer,
            events.ICE_CANDIDATE: self.on_ice_candidate,
            events.SEND_MESSAGE: self.on_send_message,
            events.TOGGLE_AUDIO: self.on_toggle_audio,
            events.TOGGLE_VIDEO: self.on_toggle_video,
            events.START_SCREEN_SHARE: self.on_start_screen_share,
            events.STOP_SCREEN_SHARE: self.on_stop_screen_share,
            events.RAISE_HAND: self.on_raise_hand,
            events.CHANGE_QUALITY: self.on_change_quality,
        }
        for event, handler in handlers.items():
            self.sio.on(event, handler=handler)
        logger.info(f"Relay engine registered {len(handlers)} Socket.IO handlers")

    async def _emit(self, event: str, data: Any, to: str, skip_sid: Optional[str] = None):
        try:
            await self.sio.emit(event, data, to=to, skip_sid=skip_sid)
        except Exception as e:
            # not retried
            logger.warning(f"Failed to emit {event} to {to}: {e}")

    async def _emit_user_count(self, room_id: str):
        count = self.registry.room_user_count(room_id)
        if count:
            await self._emit(events.ROOM_USER_COUNT, {"roomId": room_id, "userCount": count}, to=room_id)

    def _is_connected(self, sid: str) -> bool:
        return self.sio.manager.is_connected(sid, "/")

    def _roster(self, room_id: str):
        return [participant.to_wire() for participant in self.registry.list_room(room_id)]

    # Connection lifecycle

    async def on_connect(self, sid: str, environ: dict = None, auth: Any = None):
        logger.info(f"User connected: {sid}")

    async def on_disconnect(self, sid: str, reason: Any = None):
        logger.info(f"User disconnected: {sid} ({reason or 'no reason'})")
        async with self._lock:
            await self._leave(sid, disconnected=True)

    async def _leave(self, sid: str, disconnected: bool = False) -> bool:
        left = self.registry.leave(sid)
        if left is None:
            return False
        room_id, user_id = left

        if not disconnected:
            await self.sio.leave_room(sid, room_id)
        await self._emit(events.USER_DISCONNECTED, user_id, to=room_id, skip_sid=sid)
        await self._emit_user_count(room_id)
        logger.info(f"User {user_id} left room {room_id}")
        return True

    # Room membership

    async def on_join_room(self, sid: str, room_id: Any = None, user_id: Any = None, user_data: Any = None, *args):
        if room_id is None or user_id is None:
            logger.debug(f"Dropping join-room from {sid}: missing room or user id")
            return
        room_id = str(room_id)

        try:
            options = JoinUserData.model_validate(user_data) if user_data is not None else JoinUserData()
        except ValidationError:
            options = JoinUserData()
        username = options.resolve_username(user_id, DEFAULT_USERNAME_PREFIX)

        logger.info(f"User {user_id} joining room {room_id}")
        async with self._lock:
            previous = self.registry.get(sid)
            if previous is not None:
                logger.info(f"Connection {sid} switching from room {previous.room_id} to {room_id}")
                await self._leave(sid)

            # A disconnect handled before this join already found nothing to clean up.
            if not self._is_connected(sid):
                logger.debug(f"Dropping join-room from {sid}: connection is gone")
                return
            try:
                await self.sio.enter_room(sid, room_id)
            except ValueError as e:
                logger.debug(f"Dropping join-room from {sid}: {e}")
                return
            participant = self.registry.join(sid, room_id, user_id, username)

            roster = self._roster(room_id)
            await self._emit(
                events.USER_CONNECTED,
                {"userId": participant.user_id, "username": participant.username, "users": roster},
                to=room_id,
                skip_sid=sid,
            )
            await self._emit(events.ROOM_USERS, roster, to=sid)
            await self._emit_user_count(room_id)
        logger.info(f"User {user_id} joined room {room_id}")

    async def on_leave_room(self, sid: str, *args):
        async with self._lock:
            if not await self._leave(sid):
                logger.debug(f"Dropping leave-room from {sid}: not in a room")

    # Negotiation forwarding

    async def _forward(self, sid: str, event: str, data: Any, fields: Iterable[str]):
        try:
            envelope = SignalEnvelope.model_validate(data)
        except ValidationError:
            logger.debug(f"Dropping {event} from {sid}: malformed payload")
            return

        target = envelope.target
        async with self._lock:
            if target == sid or target not in self.registry:
                logger.debug(f"Dropping {event} from {sid}: unknown target {target}")
                return
            payload = {field: data[field] for field in fields if field in data}
            await self._emit(event, payload, to=target)

    async def on_offer(self, sid: str, data: Any = None, *args):
        await self._forward(sid, events.OFFER, data, ("offer", "sender", "username"))

    async def on_answer(self, sid: str, data: Any = None, *args):
        await self._forward(sid, events.ANSWER, data, ("answer", "sender", "username"))

    async def on_ice_candidate(self, sid: str, data: Any = None, *args):
        await self._forward(sid, events.ICE_CANDIDATE, data, ("candidate", "sender"))

    # In-room notifications

    async def _broadcast_from(self, sid: str, event: str, build, flag: Optional[str] = None, value: Any = None):
        """Send ``build(participant)`` to the sender's room, skipping the sender.

        When ``flag`` is given the presence flag is updated first.
        """
        async with self._lock:
            participant = self.registry.get(sid)
            if participant is None:
                logger.debug(f"Dropping {event} from {sid}: not in a room")
                return
            if flag is not None:
                self.registry.set_flag(sid, flag, value)
            await self._emit(event, build(participant), to=participant.room_id, skip_sid=sid)

    async def on_send_message(self, sid: str, data: Any = None, *args):
        message = data.get("message") if isinstance(data, dict) else None
        async with self._lock:
            participant = self.registry.get(sid)
            if participant is None:
                logger.debug(f"Dropping send-message from {sid}: not in a room")
                return
            message_data: Dict[str, Any] = {
                "userId": participant.user_id,
                "username": participant.username,
                "message": message,
                "timestamp": utc_timestamp(),
                "type": "text",
            }
            await self._emit(events.RECEIVE_MESSAGE, message_data, to=participant.room_id, skip_sid=sid)
            await self._emit(events.RECEIVE_MESSAGE, {**message_data, "isOwn": True}, to=sid)

    async def on_toggle_audio(self, sid: str, enabled: Any = None, *args):
        await self._broadcast_from(
            sid,
            events.USER_AUDIO_TOGGLED,
            lambda p: {"userId": p.user_id, "enabled": p.is_audio_enabled},
            flag="is_audio_enabled",
            value=enabled,
        )

    async def on_toggle_video(self, sid: str, enabled: Any = None, *args):
        await self._broadcast_from(
            sid,
            events.USER_VIDEO_TOGGLED,
            lambda p: {"userId": p.user_id, "enabled": p.is_video_enabled},
            flag="is_video_enabled",
            value=enabled,
        )

    async def on_start_screen_share(self, sid: str, *args):
        await self._broadcast_from(
            sid,
            events.USER_STARTED_SCREEN_SHARE,
            lambda p: {"userId": p.user_id, "username": p.username},
            flag="is_screen_sharing",
            value=True,
        )

    async def on_stop_screen_share(self, sid: str, *args):
        await self._broadcast_from(
            sid,
            events.USER_STOPPED_SCREEN_SHARE,
            lambda p: {"userId": p.user_id},
            flag="is_screen_sharing",
            value=False,
        )

    async def on_raise_hand(self, sid: str, *args):
        await self._broadcast_from(
            sid,
            events.USER_RAISED_HAND,
            lambda p: {"userId": p.user_id, "username": p.username, "timestamp": utc_timestamp()},
        )

    async def on_change_quality(self, sid: str, quality: Any = None, *args):
        await self._broadcast_from(
            sid,
            events.USER_CHANGED_QUALITY,
            lambda p: {"userId": p.user_id, "quality": quality},
        )
