import random

import pytest

from registry import AlreadyJoined, SessionRegistry


def assert_consistent(registry: SessionRegistry):
    rooms = registry.all_rooms()
    seen = set()
    for room_id, members in rooms.items():
        assert members, f"empty room {room_id} kept in registry"
        for participant in members:
            assert participant.room_id == room_id
            assert registry.get(participant.connection_id) is participant
            assert participant.connection_id not in seen
            seen.add(participant.connection_id)
    assert len(seen) == len(registry)


def test_join_creates_room_with_default_flags(registry):
    registry.join("c1", "r1", "u1", "Alice")

    members = registry.list_room("r1")
    assert len(members) == 1
    participant = members[0]
    assert participant.user_id == "u1"
    assert participant.username == "Alice"
    assert participant.is_audio_enabled is True
    assert participant.is_video_enabled is True
    assert participant.is_screen_sharing is False


def test_join_twice_raises_already_joined(registry):
    registry.join("c1", "r1", "u1", "Alice")

    with pytest.raises(AlreadyJoined) as exc:
        registry.join("c1", "r2", "u1", "Alice")

    assert exc.value.room_id == "r1"
    assert registry.room_user_count("r2") == 0
    assert "r2" not in registry.all_rooms()


def test_leave_removes_empty_room(registry):
    registry.join("c1", "r2", "u1", "Alice")

    assert registry.leave("c1") == ("r2", "u1")
    assert "r2" not in registry.all_rooms()
    assert registry.room_user_count("r2") == 0
    assert registry.get("c1") is None


def test_leave_unknown_connection_returns_none(registry):
    registry.join("c1", "r1", "u1", "Alice")
    registry.leave("c1")

    assert registry.leave("c1") is None
    assert registry.leave("never-joined") is None


def test_leave_keeps_room_with_remaining_members(registry):
    registry.join("c1", "r3", "u1", "Alice")
    registry.join("c2", "r3", "u2", "Bob")

    registry.leave("c1")

    assert registry.room_user_count("r3") == 1
    assert [p.user_id for p in registry.list_room("r3")] == ["u2"]


def test_list_room_preserves_join_order(registry):
    for i in range(4):
        registry.join(f"c{i}", "r1", f"u{i}", f"User {i}")

    assert [p.user_id for p in registry.list_room("r1")] == ["u0", "u1", "u2", "u3"]
    assert registry.list_room("missing") == []


def test_set_flag_visible_from_both_views(registry):
    registry.join("c1", "r1", "u1", "Alice")

    updated = registry.set_flag("c1", "is_audio_enabled", False)

    assert updated is registry.get("c1")
    assert registry.list_room("r1")[0].is_audio_enabled is False
    assert registry.all_rooms()["r1"][0].is_audio_enabled is False


def test_set_flag_unknown_connection_returns_none(registry):
    assert registry.set_flag("ghost", "is_video_enabled", False) is None


def test_set_flag_rejects_unknown_flag(registry):
    registry.join("c1", "r1", "u1", "Alice")

    with pytest.raises(ValueError):
        registry.set_flag("c1", "username", "Mallory")


def test_all_rooms_is_a_snapshot(registry):
    registry.join("c1", "r1", "u1", "Alice")

    snapshot = registry.all_rooms()
    snapshot["r1"].clear()
    snapshot["other"] = []

    assert registry.room_user_count("r1") == 1
    assert list(registry.all_rooms()) == ["r1"]


def test_wire_form_hides_server_side_ids(registry):
    participant = registry.join("c1", "r1", 42, "Alice")

    assert participant.to_wire() == {
        "userId": 42,
        "username": "Alice",
        "isAudioEnabled": True,
        "isVideoEnabled": True,
        "isScreenSharing": False,
    }
    assert list(participant.to_wire()) == ["userId", "username", "isAudioEnabled", "isVideoEnabled", "isScreenSharing"]


def test_random_join_leave_sequences_keep_registry_consistent(registry):
    rng = random.Random(1234)
    connections = [f"c{i}" for i in range(12)]
    rooms = ["r1", "r2", "r3"]

    for _ in range(500):
        connection_id = rng.choice(connections)
        if connection_id in registry:
            if rng.random() < 0.2:
                registry.set_flag(connection_id, "is_screen_sharing", rng.random() < 0.5)
            else:
                registry.leave(connection_id)
        else:
            registry.join(connection_id, rng.choice(rooms), connection_id.upper(), connection_id)
        assert_consistent(registry)

    for connection_id in connections:
        registry.leave(connection_id)
    assert registry.all_rooms() == {}
    assert len(registry) == 0
