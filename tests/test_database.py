"""Tests for the SQLAlchemy and asyncpg posture stores."""

import json
from contextlib import asynccontextmanager
from datetime import datetime, timedelta

import pytest

from smartchair.async_database import AsyncpgPostureStore, to_asyncpg_url
from smartchair.database import SqlPostureStore, create_db_engine, test_connection as check_connection
from smartchair.errors import PersistenceError
from smartchair.models import PostureRecord, PostureStatus

from conftest import run

T0 = datetime(2024, 5, 1, 9, 0, 0)


def record(chair_id="chair-1", minutes=0, status=PostureStatus.GOOD, **kwargs):
    return PostureRecord(
        chair_id=chair_id,
        timestamp=T0 + timedelta(minutes=minutes),
        posture_status=status,
        **kwargs
    )


# =============================================================================
# SqlPostureStore
# =============================================================================


class TestSqlPostureStore:

    def test_connection(self, store):
        assert check_connection(store.engine) is True

    def test_save_assigns_id(self, store):
        first = run(store.save(record(sensors=[1, 2, 3, 4])))
        second = run(store.save(record(sensors=[1, 2, 3, 4])))
        assert first.id is not None
        assert second.id == first.id + 1

    def test_round_trip_pose_data(self, store):
        pose = {"keypoints": [{"part": "nose", "score": 0.9, "position": {"x": 1, "y": 2}}]}
        run(store.save(record(pose_data=pose, status=PostureStatus.POOR)))

        [loaded] = run(store.query_history("chair-1", limit=5))
        assert loaded.pose_data == pose
        assert loaded.sensors is None
        assert loaded.posture_status is PostureStatus.POOR
        assert loaded.timestamp == T0

    def test_distinct_chair_ids_since(self, store):
        run(store.save(record("old", minutes=0)))
        run(store.save(record("b", minutes=30)))
        run(store.save(record("a", minutes=45)))
        run(store.save(record("b", minutes=50)))

        assert run(store.query_distinct_chair_ids(T0 + timedelta(minutes=30))) == ["a", "b"]

    def test_history_filters_and_orders(self, store):
        for minute in range(5):
            run(store.save(record(minutes=minute, sensors=[minute] * 4)))
        run(store.save(record("other", minutes=3)))

        history = run(store.query_history(
            "chair-1", limit=10,
            from_time=T0 + timedelta(minutes=1),
            to_time=T0 + timedelta(minutes=3)
        ))
        assert [r.sensors[0] for r in history] == [3, 2, 1]

    def test_history_limit(self, store):
        for minute in range(5):
            run(store.save(record(minutes=minute, sensors=[minute] * 4)))

        history = run(store.query_history("chair-1", limit=2))
        assert [r.sensors[0] for r in history] == [4, 3]

    def test_save_failure_raises_persistence_error(self):
        engine = create_db_engine("sqlite://")  # tables never created

        with pytest.raises(PersistenceError):
            run(SqlPostureStore(engine).save(record()))

    def test_to_dict(self, store):
        saved = run(store.save(record(sensors=[1, 2, 3, 4])))
        assert saved.to_dict() == {
            "id": saved.id,
            "chairId": "chair-1",
            "timestamp": "2024-05-01T09:00:00Z",
            "sensors": [1, 2, 3, 4],
            "poseData": None,
            "postureStatus": "good",
        }


# =============================================================================
# AsyncpgPostureStore (fake pool)
# =============================================================================


class FakeConnection:

    def __init__(self, rows=None, fail=False):
        self.rows = rows or []
        self.fail = fail
        self.calls = []

    async def fetchval(self, sql, *args):
        self.calls.append((sql, args))
        if self.fail:
            raise OSError("connection reset")
        return 42

    async def fetch(self, sql, *args):
        self.calls.append((sql, args))
        if self.fail:
            raise OSError("connection reset")
        return self.rows


class FakePool:

    def __init__(self, conn):
        self.conn = conn
        self.closed = False

    @asynccontextmanager
    async def acquire(self):
        yield self.conn

    async def close(self):
        self.closed = True


class TestAsyncpgPostureStore:

    def test_url_conversion(self):
        assert to_asyncpg_url("postgresql+psycopg://u:p@db/x") == "postgresql://u:p@db/x"
        assert to_asyncpg_url("postgresql://u:p@db/x") == "postgresql://u:p@db/x"

    def test_save_serializes_json(self):
        conn = FakeConnection()
        store = AsyncpgPostureStore("postgresql://db/x", pool=FakePool(conn))

        saved = run(store.save(record(sensors=[{"value": 1}] * 4)))

        assert saved.id == 42
        sql, args = conn.calls[0]
        assert "INSERT INTO posture_data" in sql
        assert args == ("chair-1", T0, json.dumps([{"value": 1}] * 4), None, "good")

    def test_history_builds_parameters(self):
        rows = [{
            "id": 1,
            "chair_id": "chair-1",
            "timestamp": T0,
            "sensors": "[1, 2, 3, 4]",
            "pose_data": None,
            "posture_status": "poor",
        }]
        conn = FakeConnection(rows=rows)
        store = AsyncpgPostureStore("postgresql://db/x", pool=FakePool(conn))

        history = run(store.query_history("chair-1", 5, from_time=T0))

        sql, args = conn.calls[0]
        assert "timestamp >= $2" in sql
        assert "LIMIT $3" in sql
        assert args == ("chair-1", T0, 5)
        assert history[0].sensors == [1, 2, 3, 4]
        assert history[0].posture_status is PostureStatus.POOR

    def test_distinct_chair_ids(self):
        conn = FakeConnection(rows=[{"chair_id": "a"}, {"chair_id": "b"}])
        store = AsyncpgPostureStore("postgresql://db/x", pool=FakePool(conn))
        assert run(store.query_distinct_chair_ids(T0)) == ["a", "b"]

    def test_failure_raises_persistence_error(self):
        store = AsyncpgPostureStore("postgresql://db/x", pool=FakePool(FakeConnection(fail=True)))
        with pytest.raises(PersistenceError):
            run(store.save(record()))

    def test_close(self):
        pool = FakePool(FakeConnection())
        store = AsyncpgPostureStore("postgresql://db/x", pool=pool)
        run(store.close())
        assert pool.closed is True
