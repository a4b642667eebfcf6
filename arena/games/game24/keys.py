# arena/games/game24/keys.py
# Key layout in the KV store. One place so rooms/players/liveness agree.

ROOMS_ALL = "rooms:all"
USERS_ALL = "users:all"
SWEEP_MARKER = "game24:sweep:last"


def room(room_id: str) -> str:
    return f"room:{room_id}"

def players(room_id: str) -> str:
    return f"room:{room_id}:players"

def folds(room_id: str) -> str:
    return f"room:{room_id}:folds"

def cards(room_id: str) -> str:
    return f"room:{room_id}:cards"

def submissions(room_id: str) -> str:
    return f"room:{room_id}:submissions"

def solutions(room_id: str) -> str:
    return f"room:{room_id}:solutions"

def user(username: str) -> str:
    return f"user:{username}"

def heartbeat(room_id: str, username: str) -> str:
    return f"heartbeat:{room_id}:{username}"


def room_keys(room_id: str):
    """Everything owned by one room (heartbeats excluded; they expire)."""
    return (room(room_id), players(room_id), folds(room_id),
            cards(room_id), submissions(room_id), solutions(room_id))


def room_claim(room_id: str) -> str:
    """Short-lived reservation of a fresh room id."""
    return f"room:{room_id}:claim"
