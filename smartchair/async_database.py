# Async Database Module - asyncpg connection pool for PostgreSQL deployments
import asyncio
import json
from datetime import datetime
from typing import List, Optional

import asyncpg

from smartchair import config
from smartchair import logger
from smartchair.database import PostureStore
from smartchair.errors import PersistenceError
from smartchair.models import PostureRecord


def to_asyncpg_url(database_url: str) -> str:
    """asyncpg expects postgresql:// format (not postgresql+psycopg)"""
    for prefix in ("postgresql+psycopg://", "postgresql+asyncpg://"):
        if database_url.startswith(prefix):
            return database_url.replace(prefix, "postgresql://", 1)
    return database_url


def _load_json(value):
    if isinstance(value, str):
        return json.loads(value)
    return value


class AsyncpgPostureStore(PostureStore):
    """
    High-throughput store backed by an asyncpg pool
    
    The posture_data table must already exist (created by database.init_database).
    """

    def __init__(self, database_url: Optional[str] = None, pool: Optional[asyncpg.Pool] = None):
        self.database_url = to_asyncpg_url(database_url or config.DATABASE_URL)
        self._pool = pool
        self._pool_lock = asyncio.Lock()

    async def get_pool(self) -> asyncpg.Pool:
        """Get or create the connection pool"""
        if self._pool is not None:
            return self._pool

        async with self._pool_lock:
            if self._pool is None:  # Double-check after acquiring lock
                self._pool = await asyncpg.create_pool(
                    self.database_url,
                    min_size=2,
                    max_size=10,
                    command_timeout=60
                )
                logger.log_db("Async Pool Initialized", {"driver": "asyncpg"})
        return self._pool

    async def save(self, record: PostureRecord) -> PostureRecord:
        try:
            pool = await self.get_pool()
            async with pool.acquire() as conn:
                record_id = await conn.fetchval("""
                    INSERT INTO posture_data (chair_id, timestamp, sensors, pose_data, posture_status)
                    VALUES ($1, $2, $3, $4, $5)
                    RETURNING id
                """, record.chair_id, record.timestamp,
                    json.dumps(record.sensors) if record.sensors is not None else None,
                    json.dumps(record.pose_data) if record.pose_data is not None else None,
                    record.posture_status.value)
        except Exception as e:
            raise PersistenceError(f"Failed to save posture record: {e}") from e

        logger.log_db("Record Saved", {
            "id": record_id,
            "chair_id": record.chair_id,
            "posture": record.posture_status.value
        })
        return PostureRecord(
            id=record_id,
            chair_id=record.chair_id,
            timestamp=record.timestamp,
            posture_status=record.posture_status,
            sensors=record.sensors,
            pose_data=record.pose_data,
        )

    async def query_distinct_chair_ids(self, since: datetime) -> List[str]:
        try:
            pool = await self.get_pool()
            async with pool.acquire() as conn:
                rows = await conn.fetch("""
                    SELECT DISTINCT chair_id FROM posture_data
                    WHERE timestamp >= $1
                    ORDER BY chair_id
                """, since)
        except Exception as e:
            raise PersistenceError(f"Failed to query chair ids: {e}") from e
        return [row['chair_id'] for row in rows]

    async def query_history(self, chair_id: str, limit: int,
                            from_time: Optional[datetime] = None,
                            to_time: Optional[datetime] = None) -> List[PostureRecord]:
        conditions = ["chair_id = $1"]
        params = [chair_id]
        if from_time:
            params.append(from_time)
            conditions.append(f"timestamp >= ${len(params)}")
        if to_time:
            params.append(to_time)
            conditions.append(f"timestamp <= ${len(params)}")
        params.append(limit)

        sql = f"""
            SELECT id, chair_id, timestamp, sensors, pose_data, posture_status
            FROM posture_data
            WHERE {' AND '.join(conditions)}
            ORDER BY timestamp DESC, id DESC
            LIMIT ${len(params)}
        """
        try:
            pool = await self.get_pool()
            async with pool.acquire() as conn:
                rows = await conn.fetch(sql, *params)
        except Exception as e:
            raise PersistenceError(f"Failed to query history: {e}") from e

        return [
            PostureRecord.from_row({
                **dict(row),
                "sensors": _load_json(row["sensors"]),
                "pose_data": _load_json(row["pose_data"]),
            })
            for row in rows
        ]

    async def close(self) -> None:
        """Close the connection pool"""
        if self._pool:
            await self._pool.close()
            self._pool = None
