REDIS_ROOM_CHANNEL = "room:channel:{slug}" # room id - pub/sub channel for room events
REDIS_ROOM_CHANNEL_PATTERN = "room:channel:*"
REDIS_BROADCAST_CHANNEL = "rooms:broadcast" # room list changes, fanned out to every session

# **Envelope published on either channel**
# - `event` = event name (`chat_message`, `participants`, `rooms_updated`)
# - `payload` = json-serializable event body
