"""
Relational storage using SQLAlchemy Core.

Records are kept as JSON documents next to the scalar columns we query on.
Every row has a ``version`` column; writes are optimistic and fail with
ConcurrentModificationError when the row moved on since it was read.
"""

from __future__ import annotations

import json
from typing import Optional

import boto3
from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    insert,
    select,
    update,
)
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.pool import QueuePool, StaticPool

from utils.error_handling import ConcurrentModificationError
from utils.logging_config import get_logger

logger = get_logger(__name__)

metadata = MetaData()

users_table = Table(
    "users",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("name", String(120), nullable=False),
    Column("role", String(20), nullable=False, index=True),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("document", Text, nullable=False),
)

tickets_table = Table(
    "tickets",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("ticket_id", String(32), nullable=False, unique=True),
    Column("status", String(20), nullable=False, index=True),
    Column("severity", String(20), nullable=False),
    Column("call_type", String(20), nullable=False),
    Column("raised_by", String(64), nullable=False, index=True),
    Column("assigned_to", String(64), nullable=True, index=True),
    Column("reassign_status", String(20), nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("version", Integer, nullable=False),
    Column("document", Text, nullable=False),
)

rosters_table = Table(
    "duty_rosters",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("week_start_date", Date, nullable=False, index=True),
    Column("week_end_date", Date, nullable=False, index=True),
    Column("status", String(20), nullable=False, index=True),
    Column("version", Integer, nullable=False),
    Column("document", Text, nullable=False),
)

counters_table = Table(
    "counters",
    metadata,
    Column("name", String(64), primary_key=True),
    Column("value", Integer, nullable=False),
)

TICKET_COUNTER = "ticket"
ROSTER_PUBLISH_GUARD = "roster_publish_guard"

_engine: Optional[Engine] = None


def resolve_database_url(
    database_url: str, secret_arn: str = "", region_name: Optional[str] = None
) -> str:
    """Use the explicit URL if set, otherwise build one from the RDS secret."""
    if database_url:
        return database_url
    if not secret_arn:
        raise ValueError("Either DATABASE_URL or DB_SECRET_ARN must be set")
    return _secret_to_db_url(secret_arn, region_name)


def _secret_to_db_url(secret_arn: str, region_name: Optional[str] = None) -> str:
    """Build a SQLAlchemy URL from an RDS secret."""
    sm = boto3.client("secretsmanager", region_name=region_name)
    try:
        secret = json.loads(sm.get_secret_value(SecretId=secret_arn)["SecretString"])
    except Exception as exc:
        logger.warning("Failed to load DB secret", extra={"error": str(exc)})
        raise
    host = secret.get("host")
    port = secret.get("port", 5432)
    username = secret.get("username")
    password = secret.get("password")
    dbname = secret.get("dbname", "postgres")
    if not (host and username and password):
        raise ValueError("DB secret is missing host, username or password")
    return f"postgresql+psycopg2://{username}:{password}@{host}:{port}/{dbname}"


def get_db_engine(db_url: str) -> Engine:
    """Get or create the SQLAlchemy engine (reused across warm invocations)."""
    global _engine
    if _engine is None:
        _engine = build_engine(db_url)
    return _engine


def build_engine(db_url: str) -> Engine:
    """Create an engine with pooling suited to the backend."""
    if db_url.startswith("sqlite"):
        if ":memory:" in db_url:
            return create_engine(
                db_url,
                poolclass=StaticPool,
                connect_args={"check_same_thread": False},
            )
        return create_engine(db_url, connect_args={"check_same_thread": False})
    return create_engine(
        db_url,
        poolclass=QueuePool,
        pool_size=1,
        max_overflow=2,
        pool_pre_ping=True,
        pool_recycle=300,
    )


def create_schema(engine: Engine) -> None:
    """Create tables and seed the counter rows."""
    metadata.create_all(engine)
    with engine.begin() as conn:
        for name in (TICKET_COUNTER, ROSTER_PUBLISH_GUARD):
            exists = conn.execute(
                select(counters_table.c.name).where(counters_table.c.name == name)
            ).first()
            if not exists:
                conn.execute(insert(counters_table).values(name=name, value=0))
    logger.info("Schema ready", extra={"dialect": engine.dialect.name})


class PostgresRepository:
    """Shared helpers for the document tables."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def next_counter_value(self, conn: Connection, name: str) -> int:
        """
        Increment and read a named counter inside the caller's transaction.

        The UPDATE takes a row lock, so concurrent callers are serialized
        until the surrounding transaction commits.
        """
        result = conn.execute(
            update(counters_table)
            .where(counters_table.c.name == name)
            .values(value=counters_table.c.value + 1)
        )
        if result.rowcount == 0:
            try:
                conn.execute(insert(counters_table).values(name=name, value=1))
            except IntegrityError as exc:
                raise ConcurrentModificationError(
                    f"Counter {name} was created concurrently"
                ) from exc
            return 1
        return conn.execute(
            select(counters_table.c.value).where(counters_table.c.name == name)
        ).scalar_one()

    def fetch_document(self, conn: Connection, table: Table, record_id: str) -> Optional[str]:
        return conn.execute(
            select(table.c.document).where(table.c.id == record_id)
        ).scalar_one_or_none()

    def update_versioned(
        self,
        conn: Connection,
        table: Table,
        record_id: str,
        expected_version: int,
        values: dict,
    ) -> None:
        """Write values only if the row still carries ``expected_version``."""
        result = conn.execute(
            update(table)
            .where(table.c.id == record_id, table.c.version == expected_version)
            .values(**values)
        )
        if result.rowcount != 1:
            raise ConcurrentModificationError(
                f"{table.name} record {record_id} was modified concurrently"
            )
