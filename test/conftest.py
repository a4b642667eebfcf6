"""
Pytest configuration and shared fixtures for the 24-point arena.
"""

import random

import pytest

from arena import create_app
from arena.db import db
from arena.games.core.kv_store import MemoryStore
from arena.games.game24.liveness import LivenessMonitor
from arena.games.game24.players import PlayerRegistry
from arena.games.game24.rooms import RoomService


class ManualClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start=1_700_000_000.0):
        self.now = float(start)

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def kv(clock):
    return MemoryStore(clock=clock)


@pytest.fixture
def players(kv):
    reg = PlayerRegistry(kv)
    for name in ("alice", "bob", "carol", "dave", "erin"):
        reg.register(name)
    return reg


@pytest.fixture
def finished_rounds():
    return []


@pytest.fixture
def rooms(kv, players, clock, finished_rounds):
    return RoomService(
        kv, players, clock=clock, rng=random.Random(24),
        on_round_finished=lambda room_id, rec: finished_rounds.append((room_id, rec)),
    )


@pytest.fixture
def liveness(rooms):
    return LivenessMonitor(rooms, sweep_interval=10)


@pytest.fixture
def room_id(rooms):
    """A waiting room owned by alice with bob joined."""
    rid = rooms.create_room("alice", "table one").data["room"]["id"]
    rooms.join(rid, "bob")
    return rid


@pytest.fixture
def app(kv, clock):
    app = create_app(
        {
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
            "RATELIMIT_ENABLED": False,
        },
        kv_store=kv,
        clock=clock,
        rng=random.Random(7),
    )
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()
