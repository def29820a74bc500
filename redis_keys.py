REDIS_ROOM_KEY = "room:{room}" # room name - set of member urls
REDIS_URL_KEY = "url:{url}" # member url - name of the room it belongs to

# **Membership invariant**
# - `url:{url}` is the single source of truth for which room a url is in.
# - `room:{room}` contains `url` iff `url:{url}` == `room`.
# - Both keys are written in the same MembershipStore call; there are no
#   multi-key transactions. Redis drops `room:{room}` once it is empty.
