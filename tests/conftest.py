import pytest

from backend import ConnectionRegistry, RoomRegistry
from lifecycle import LifecycleManager
from message_router import MessageRouter


class FakeChannel:
    """In-memory endpoint channel recording everything sent to it."""

    def __init__(self, name: str = "channel", broken: bool = False):
        self.name = name
        self.broken = broken
        self.sent = []
        self.closed_with = None

    async def send(self, message: dict):
        if self.broken or self.closed_with is not None:
            raise RuntimeError("channel is closed")
        self.sent.append(message)

    async def close(self, code: int = 1000, reason=None):
        self.closed_with = code

    def of_type(self, msg_type: str):
        return [m for m in self.sent if m.get("type") == msg_type]

    def __repr__(self):
        return f"FakeChannel({self.name})"


@pytest.fixture
def connections():
    return ConnectionRegistry()


@pytest.fixture
def rooms():
    return RoomRegistry(capacity=15)


@pytest.fixture
def lifecycle(connections, rooms):
    return LifecycleManager(connections, rooms)


@pytest.fixture
def router(connections, rooms, lifecycle):
    return MessageRouter(connections, rooms, lifecycle)


@pytest.fixture
def connect(lifecycle):
    """Register identities on fresh fake channels: ``alice, bob = await connect("alice", "bob")``."""
    async def _connect(*identities):
        channels = []
        for identity in identities:
            channel = FakeChannel(identity)
            assert await lifecycle.on_connect(identity, channel)
            channels.append(channel)
        return channels
    return _connect
