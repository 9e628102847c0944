import copy
from collections import defaultdict

import pytest

from registry import SessionRegistry
from relay import RelayEngine


class FakeManager:
    def __init__(self):
        self.connected = set()

    def is_connected(self, sid, namespace):
        return sid in self.connected


class FakeSocketServer:
    """In-process stand-in for socketio.AsyncServer.

    Keeps Socket.IO room semantics (every sid sits in a room named after itself,
    a sid that is no longer connected cannot enter a room) and records every
    delivered event per recipient.
    """

    def __init__(self):
        self.handlers = {}
        self.rooms = defaultdict(set)
        self.sent = []
        self.manager = FakeManager()

    def on(self, event, handler=None, namespace=None):
        self.handlers[event] = handler

    async def emit(self, event, data=None, to=None, room=None, skip_sid=None, namespace=None, callback=None):
        target = to if to is not None else room
        for sid in sorted(self.rooms.get(target, ())):
            if sid != skip_sid:
                self.sent.append((sid, event, copy.deepcopy(data)))

    async def enter_room(self, sid, room, namespace=None):
        if not self.manager.is_connected(sid, namespace or "/"):
            raise ValueError("sid is not connected to requested namespace")
        self.rooms[room].add(sid)

    async def leave_room(self, sid, room, namespace=None):
        self.rooms[room].discard(sid)
        if not self.rooms[room]:
            del self.rooms[room]

    async def connect(self, sid):
        self.manager.connected.add(sid)
        self.rooms[sid].add(sid)
        await self.handlers["connect"](sid, {})

    async def disconnect(self, sid):
        # python-socketio marks the sid disconnected before calling the handler
        self.manager.connected.discard(sid)
        await self.handlers["disconnect"](sid, "client disconnect")
        for room in list(self.rooms):
            self.rooms[room].discard(sid)
            if not self.rooms[room]:
                del self.rooms[room]

    async def trigger(self, event, sid, *args):
        await self.handlers[event](sid, *args)

    def received(self, sid, event=None):
        return [data for to, name, data in self.sent if to == sid and (event is None or name == event)]

    def events_for(self, sid):
        return [name for to, name, _ in self.sent if to == sid]

    def clear(self):
        self.sent.clear()


@pytest.fixture
def registry():
    return SessionRegistry()


@pytest.fixture
def sio():
    return FakeSocketServer()


@pytest.fixture
def engine(sio, registry):
    relay_engine = RelayEngine(sio, registry)
    relay_engine.register()
    return relay_engine


@pytest.fixture
def join(sio, engine):
    """Connect a sid and join it to a room."""

    async def _join(sid, room_id, user_id, username=None):
        if sid not in sio.rooms:
            await sio.connect(sid)
        user_data = {"username": username} if username else None
        await sio.trigger("join-room", sid, room_id, user_id, user_data)

    return _join
