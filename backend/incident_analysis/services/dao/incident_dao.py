import logging
import uuid
from typing import Dict, List, Optional

import psycopg
from psycopg.rows import dict_row
from psycopg.types.json import Json

from incident_analysis.errors import StoreError
from incident_analysis.schemas.incident import HISTORY_LIMIT, IncidentFields, IncidentRecord
from incident_analysis.services.db.postgres import get_conn

logger = logging.getLogger(__name__)

_COLUMNS = """
    id, date_of_injury, location_of_incident, cause_of_incident, type_of_incident,
    statutory_violations_cited, summary, user_id, created_at, updated_at
"""


def _row_to_record(row: Dict) -> IncidentRecord:
    return IncidentRecord(
        id=row["id"],
        date_of_injury=row["date_of_injury"],
        location_of_incident=row["location_of_incident"],
        cause_of_incident=row["cause_of_incident"],
        type_of_incident=row["type_of_incident"],
        statutory_violations_cited=list(row["statutory_violations_cited"] or []),
        summary=row["summary"],
        user_id=row["user_id"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def create_incident_analysis(fields: IncidentFields, summary: str, user_id: str) -> IncidentRecord:
    """插入一条事故分析记录；每次调用都生成新 id，不做去重"""
    record_id = str(uuid.uuid4())
    try:
        with get_conn() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    INSERT INTO incident_analyses(
                        id, date_of_injury, location_of_incident, cause_of_incident,
                        type_of_incident, statutory_violations_cited, summary, user_id
                    )
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                    RETURNING {_COLUMNS}
                    """,
                    (
                        record_id,
                        fields.date_of_injury,
                        fields.location_of_incident,
                        fields.cause_of_incident,
                        fields.type_of_incident,
                        Json(list(fields.statutory_violations_cited)),
                        summary,
                        user_id,
                    ),
                )
                row = cur.fetchone()
            conn.commit()
    except psycopg.Error as exc:
        logger.error(f"[IncidentDAO] insert failed user_id={user_id} error={exc}", exc_info=True)
        raise StoreError() from exc
    return _row_to_record(row)


def list_incident_analyses(user_id: str, limit: int = HISTORY_LIMIT) -> List[IncidentRecord]:
    """当前用户最近的记录，按创建时间倒序"""
    try:
        with get_conn() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_COLUMNS}
                    FROM incident_analyses
                    WHERE user_id=%s
                    ORDER BY created_at DESC
                    LIMIT %s
                    """,
                    (user_id, limit),
                )
                rows = cur.fetchall()
    except psycopg.Error as exc:
        logger.error(f"[IncidentDAO] list failed user_id={user_id} error={exc}", exc_info=True)
        raise StoreError() from exc
    return [_row_to_record(row) for row in rows]


def get_incident_analysis(record_id: str, user_id: str) -> Optional[IncidentRecord]:
    try:
        with get_conn() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_COLUMNS}
                    FROM incident_analyses
                    WHERE id=%s AND user_id=%s
                    """,
                    (record_id, user_id),
                )
                row = cur.fetchone()
    except psycopg.Error as exc:
        logger.error(f"[IncidentDAO] get failed id={record_id} error={exc}", exc_info=True)
        raise StoreError() from exc
    if not row:
        return None
    return _row_to_record(row)
