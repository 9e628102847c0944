# Inbound Socket.IO events (client -> server)
JOIN_ROOM = "join-room"
OFFER = "offer"
ANSWER = "answer"
ICE_CANDIDATE = "ice-candidate"
SEND_MESSAGE = "send-message"
TOGGLE_AUDIO = "toggle-audio"
TOGGLE_VIDEO = "toggle-video"
START_SCREEN_SHARE = "start-screen-share"
STOP_SCREEN_SHARE = "stop-screen-share"
RAISE_HAND = "raise-hand"
CHANGE_QUALITY = "change-quality"
LEAVE_ROOM = "leave-room"
CONNECT = "connect"
DISCONNECT = "disconnect"

# Outbound Socket.IO events (server -> client)
USER_CONNECTED = "user-connected"
ROOM_USERS = "room-users"
RECEIVE_MESSAGE = "receive-message"
USER_AUDIO_TOGGLED = "user-audio-toggled"
USER_VIDEO_TOGGLED = "user-video-toggled"
USER_STARTED_SCREEN_SHARE = "user-started-screen-share"
USER_STOPPED_SCREEN_SHARE = "user-stopped-screen-share"
USER_RAISED_HAND = "user-raised-hand"
USER_CHANGED_QUALITY = "user-changed-quality"
USER_DISCONNECTED = "user-disconnected"
ROOM_USER_COUNT = "room-user-count"

# **Fan-out**
# - `room-users` goes to the joiner only and includes the joiner.
# - `room-user-count` goes to the whole room, sender included.
# - Every other room notification skips the sender.
# - `offer` / `answer` / `ice-candidate` go to `target` only.
