# Inbound envelope types
MSG_OFFER = "offer"        # {offer, toId, media?, isMeta?, play?}
MSG_ANSWER = "answer"      # {answer, toId}
MSG_CANDIDATE = "candidate"  # {candidate, toId}
MSG_CLOSE = "close"        # {toId}
MSG_FRIEND = "friend"      # {name, img, account_id, toId}
MSG_ONLINE = "online"      # {ids: [identity, ...]}
MSG_JOIN = "join"          # {room, play}
MSG_QUIT = "quit"          # {room}
MSG_LOGIN = "login"        # {name}
MSG_LEAVE = "leave"        # {toId}; outbound {key} to that peer, or to everyone on disconnect

# Outbound-only envelope types
MSG_ERROR = "error"        # {message}

# Optional offer fields relayed verbatim to the callee
OFFER_PASSTHROUGH_FIELDS = ("media", "isMeta", "play")

UNRECOGNIZED_COMMAND = "Unrecognized command: {type}"
NOT_LOGGED_IN = "Not logged in"
SESSION_REPLACED = "Session replaced by a new connection"

# **Envelope shape**
# - every frame is one JSON object with a string `type`
# - the sender identity is never taken from the frame; it is bound to the channel
# - forwarded messages carry the sender as `from`, departures carry it as `key`
