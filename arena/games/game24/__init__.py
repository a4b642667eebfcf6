# arena/games/game24/__init__.py
# Multiplayer 24-point: players, rooms/rounds, liveness, JSON API.
