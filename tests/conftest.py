"""
Pytest fixtures for the session server tests.
"""
import json
from typing import List

import pytest

from backend import FileBackend
from connection import Connection
from registry import LiveRegistry
from reconciler import SessionReconciler
from store import DurableStore
from sweeper import RetentionSweeper


class FakeWebSocket:
    """Records what the server sends instead of putting it on a wire."""

    def __init__(self, fail_sends: bool = False):
        self.sent: List[dict] = []
        self.closed = False
        self.close_code = None
        self.fail_sends = fail_sends

    async def send_text(self, text: str):
        if self.fail_sends:
            raise RuntimeError("socket is gone")
        self.sent.append(json.loads(text))

    async def close(self, code: int = 1000, reason: str = ""):
        self.closed = True
        self.close_code = code

    def of_type(self, message_type: str) -> List[dict]:
        return [m for m in self.sent if m.get("type") == message_type]

    def last(self, message_type: str) -> dict:
        matching = self.of_type(message_type)
        assert matching, f"no {message_type} message was sent; got {[m.get('type') for m in self.sent]}"
        return matching[-1]


class FakeClock:
    def __init__(self, now: float = 1_760_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def data_file(tmp_path):
    return str(tmp_path / "valve-data.json")


@pytest.fixture
def backend(data_file) -> FileBackend:
    return FileBackend(data_file)


@pytest.fixture
def store(backend) -> DurableStore:
    store = DurableStore(backend)
    store.load()
    return store


@pytest.fixture
def registry() -> LiveRegistry:
    return LiveRegistry()


@pytest.fixture
def reconciler(store, registry, clock) -> SessionReconciler:
    return SessionReconciler(store, registry, clock=clock)


@pytest.fixture
def sweeper(store, registry, clock) -> RetentionSweeper:
    return RetentionSweeper(store, registry, clock=clock)


@pytest.fixture
def connect():
    """Factory for a fresh anonymous connection and its fake socket."""
    def _connect(fail_sends: bool = False):
        ws = FakeWebSocket(fail_sends=fail_sends)
        return Connection(ws), ws
    return _connect


@pytest.fixture
def send(reconciler):
    """Feed one message dict through the reconciler as a raw frame."""
    async def _send(conn: Connection, message: dict):
        await reconciler.handle_message(conn, json.dumps(message))
    return _send


@pytest.fixture
def open_room(connect, send):
    """Create a room as a new master connection. Returns (code, master_conn, master_ws)."""
    async def _open_room(master_name: str = "Ana", session_name: str = "Campaign 1"):
        conn, ws = connect()
        await send(conn, {"type": "create_room", "masterName": master_name, "sessionName": session_name})
        return ws.last("room_created")["roomCode"], conn, ws
    return _open_room


@pytest.fixture
def join(connect, send):
    """Join code as a new player connection. Returns (player_id, conn, ws)."""
    async def _join(code: str, player_name: str = "Bo"):
        conn, ws = connect()
        await send(conn, {"type": "join_room", "playerName": player_name, "roomCode": code})
        return ws.last("room_joined")["playerId"], conn, ws
    return _join
