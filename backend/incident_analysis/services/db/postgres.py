from __future__ import annotations

from contextlib import contextmanager
import logging
import time
from typing import Iterator, Optional

from psycopg import Connection, connect
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from incident_analysis.config import get_settings

settings = get_settings()

_pool: Optional[ConnectionPool] = None

logger = logging.getLogger(__name__)


def _build_conninfo() -> str:
    if settings.POSTGRES_DSN:
        return settings.POSTGRES_DSN
    return (
        f"dbname={settings.POSTGRES_DB} "
        f"user={settings.POSTGRES_USER} "
        f"password={settings.POSTGRES_PASSWORD} "
        f"host={settings.POSTGRES_HOST} "
        f"port={settings.POSTGRES_PORT}"
    )


def _get_pool() -> ConnectionPool:
    global _pool
    if _pool is None:
        _pool = ConnectionPool(
            conninfo=_build_conninfo(),
            min_size=settings.POSTGRES_POOL_MIN,
            max_size=settings.POSTGRES_POOL_MAX,
            kwargs={"row_factory": dict_row},
            open=True,
        )
        _pool.wait()
    return _pool


@contextmanager
def get_conn() -> Iterator[Connection]:
    pool = _get_pool()
    with pool.connection() as conn:
        yield conn


def close_pool() -> None:
    global _pool
    if _pool is not None:
        _pool.close()
        _pool = None


def init_db() -> None:
    retries = settings.POSTGRES_INIT_RETRIES
    delay = settings.POSTGRES_INIT_DELAY
    last_exc: Optional[Exception] = None
    ready = False
    for attempt in range(retries):
        try:
            with connect(_build_conninfo()) as conn:
                with conn.cursor() as cur:
                    cur.execute("SELECT 1")
            ready = True
            break
        except Exception as exc:  # noqa: BLE001
            last_exc = exc
            logger.warning("Postgres 未就绪（%s），%ss 后重试 [%s/%s]", exc, delay, attempt + 1, retries)
            time.sleep(delay)
    if not ready:
        raise RuntimeError("Postgres 初始化失败") from last_exc
    _run_ddl()


def _run_ddl() -> None:
    pool = _get_pool()
    ddl = """
    CREATE TABLE IF NOT EXISTS incident_analyses (
        id TEXT PRIMARY KEY,
        date_of_injury TEXT NOT NULL,
        location_of_incident TEXT NOT NULL,
        cause_of_incident TEXT NOT NULL,
        type_of_incident TEXT NOT NULL,
        statutory_violations_cited JSONB NOT NULL,
        summary TEXT NOT NULL,
        user_id TEXT NOT NULL,
        created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        CONSTRAINT incident_analyses_violations_non_empty
            CHECK (jsonb_typeof(statutory_violations_cited) = 'array'
                   AND jsonb_array_length(statutory_violations_cited) > 0),
        CONSTRAINT incident_analyses_summary_non_empty
            CHECK (summary <> '')
    );
    CREATE INDEX IF NOT EXISTS idx_incident_analyses_user_created
        ON incident_analyses(user_id, created_at DESC);
    """
    with pool.connection() as conn:
        with conn.cursor() as cur:
            cur.execute(ddl)
        conn.commit()
    logger.info("incident_analyses 表结构已就绪")
