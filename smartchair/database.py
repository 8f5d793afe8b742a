# Database Module - SQLAlchemy Core (No ORM Classes)
import asyncio
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from sqlalchemy import create_engine, MetaData, Table, Column, Integer, String, DateTime, JSON, select, insert
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlalchemy.sql import func

from smartchair import config
from smartchair import logger
from smartchair.errors import PersistenceError
from smartchair.models import PostureRecord

metadata = MetaData()

# Posture Data Table - one row per ingested observation
posture_data_table = Table(
    'posture_data',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('chair_id', String(100), nullable=False, index=True),
    Column('timestamp', DateTime, nullable=False, index=True),  # naive UTC
    Column('sensors', JSON, nullable=True),  # raw sensor payload from the chair
    Column('pose_data', JSON, nullable=True),  # {"keypoints": [...]}
    Column('posture_status', String(20), nullable=False),
)


def create_db_engine(database_url: Optional[str] = None) -> Engine:
    """
    Create a SQLAlchemy engine
    
    postgresql:// is converted to postgresql+psycopg:// for psycopg3.
    In-memory SQLite shares one connection so worker threads see the same data.
    """
    database_url = database_url or config.DATABASE_URL
    if database_url.startswith("postgresql://"):
        database_url = database_url.replace("postgresql://", "postgresql+psycopg://", 1)

    if database_url in ("sqlite://", "sqlite:///:memory:"):
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    if database_url.startswith("sqlite"):
        return create_engine(database_url, connect_args={"check_same_thread": False})
    return create_engine(database_url, echo=False, pool_pre_ping=True)


def init_database(engine: Engine) -> bool:
    """Create all tables if they don't exist"""
    try:
        metadata.create_all(engine)
        logger.log_db("Tables Ready", {"tables": ", ".join(metadata.tables)})
        return True
    except Exception as e:
        logger.log_error("Database Initialization Failed", e)
        return False


def test_connection(engine: Engine) -> bool:
    """Test database connectivity"""
    try:
        with engine.connect() as conn:
            now = conn.execute(select(func.now())).scalar()
            logger.log_db("Connected", {"server_time": now})
            return True
    except Exception as e:
        logger.log_error("Database Connection Failed", e)
        return False


class PostureStore(ABC):
    """Persistence interface used by the ingestion pipeline and the query routes"""

    @abstractmethod
    async def save(self, record: PostureRecord) -> PostureRecord:
        """Persist a record; returns it with its database id"""

    @abstractmethod
    async def query_distinct_chair_ids(self, since: datetime) -> List[str]:
        """Chair ids with at least one record at or after `since`"""

    @abstractmethod
    async def query_history(self, chair_id: str, limit: int,
                            from_time: Optional[datetime] = None,
                            to_time: Optional[datetime] = None) -> List[PostureRecord]:
        """Most recent records for a chair, newest first"""

    async def close(self) -> None:
        pass


class SqlPostureStore(PostureStore):
    """SQLAlchemy Core store; blocking calls run in a worker thread"""

    def __init__(self, engine: Engine):
        self.engine = engine

    def _insert(self, record: PostureRecord) -> PostureRecord:
        with self.engine.begin() as conn:
            result = conn.execute(insert(posture_data_table).values(
                chair_id=record.chair_id,
                timestamp=record.timestamp,
                sensors=record.sensors,
                pose_data=record.pose_data,
                posture_status=record.posture_status.value,
            ))
            record_id = result.inserted_primary_key[0]

        return PostureRecord(
            id=record_id,
            chair_id=record.chair_id,
            timestamp=record.timestamp,
            posture_status=record.posture_status,
            sensors=record.sensors,
            pose_data=record.pose_data,
        )

    def _distinct_chair_ids(self, since: datetime) -> List[str]:
        query = select(posture_data_table.c.chair_id).where(
            posture_data_table.c.timestamp >= since
        ).distinct().order_by(posture_data_table.c.chair_id)

        with self.engine.connect() as conn:
            return list(conn.execute(query).scalars())

    def _history(self, chair_id: str, limit: int,
                 from_time: Optional[datetime], to_time: Optional[datetime]) -> List[PostureRecord]:
        query = select(posture_data_table).where(posture_data_table.c.chair_id == chair_id)
        if from_time:
            query = query.where(posture_data_table.c.timestamp >= from_time)
        if to_time:
            query = query.where(posture_data_table.c.timestamp <= to_time)
        query = query.order_by(
            posture_data_table.c.timestamp.desc(),
            posture_data_table.c.id.desc()
        ).limit(limit)

        with self.engine.connect() as conn:
            rows = conn.execute(query).fetchall()
        return [PostureRecord.from_row(dict(row._mapping)) for row in rows]

    async def save(self, record: PostureRecord) -> PostureRecord:
        try:
            saved = await asyncio.to_thread(self._insert, record)
        except Exception as e:
            raise PersistenceError(f"Failed to save posture record: {e}") from e

        logger.log_db("Record Saved", {
            "id": saved.id,
            "chair_id": saved.chair_id,
            "posture": saved.posture_status.value
        })
        return saved

    async def query_distinct_chair_ids(self, since: datetime) -> List[str]:
        try:
            return await asyncio.to_thread(self._distinct_chair_ids, since)
        except Exception as e:
            raise PersistenceError(f"Failed to query chair ids: {e}") from e

    async def query_history(self, chair_id: str, limit: int,
                            from_time: Optional[datetime] = None,
                            to_time: Optional[datetime] = None) -> List[PostureRecord]:
        try:
            return await asyncio.to_thread(self._history, chair_id, limit, from_time, to_time)
        except Exception as e:
            raise PersistenceError(f"Failed to query history: {e}") from e

    async def close(self) -> None:
        self.engine.dispose()
