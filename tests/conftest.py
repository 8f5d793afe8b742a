import asyncio
from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from smartchair.database import SqlPostureStore, create_db_engine, init_database
from smartchair.errors import PersistenceError
from smartchair.main import create_app
from smartchair.models import PostureRecord
from smartchair.registry import ChairRegistry


class RecordingBroadcaster:
    """Captures emitted events instead of sending them"""

    def __init__(self):
        self.events = []

    def emit(self, event, payload):
        self.events.append((event, payload))


class FailingStore(SqlPostureStore):
    """Store whose writes always fail"""

    def __init__(self):
        super().__init__(create_db_engine("sqlite://"))

    async def save(self, record: PostureRecord) -> PostureRecord:
        raise PersistenceError("disk full")


class StepClock:
    """Deterministic clock advancing one second per call"""

    def __init__(self, start=datetime(2024, 5, 1, 9, 0, 0)):
        self.now = start

    def __call__(self):
        current = self.now
        self.now += timedelta(seconds=1)
        return current


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def store():
    engine = create_db_engine("sqlite://")
    init_database(engine)
    yield SqlPostureStore(engine)
    engine.dispose()


@pytest.fixture
def registry():
    return ChairRegistry()


@pytest.fixture
def broadcaster():
    return RecordingBroadcaster()


@pytest.fixture
def app(store, registry, broadcaster):
    return create_app(store=store, registry=registry, broadcaster=broadcaster)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


# Keypoint sets reused across tests
ALIGNED_KEYPOINTS = [
    {"part": "nose", "score": 0.9, "position": {"x": 0, "y": 0}},
    {"part": "leftShoulder", "score": 0.9, "position": {"x": 100, "y": 200}},
    {"part": "rightShoulder", "score": 0.9, "position": {"x": 200, "y": 200}},
    {"part": "leftEar", "score": 0.9, "position": {"x": 90, "y": 100}},
    {"part": "rightEar", "score": 0.9, "position": {"x": 210, "y": 100}},
]

LOW_CONFIDENCE_KEYPOINTS = [
    {"part": "nose", "score": 0.2, "position": {"x": 0, "y": 0}},
    {"part": "leftShoulder", "score": 0.2, "position": {"x": 0, "y": 0}},
    {"part": "rightShoulder", "score": 0.2, "position": {"x": 0, "y": 0}},
]
