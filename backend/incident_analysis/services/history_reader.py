"""
History Reader
读取当前用户保存过的事故分析
"""
import logging
from typing import Any, List

from fastapi.concurrency import run_in_threadpool

from incident_analysis.errors import NotFoundError
from incident_analysis.models.user import AuthContext
from incident_analysis.schemas.incident import HISTORY_LIMIT, IncidentRecord

logger = logging.getLogger(__name__)


async def list_history(auth: AuthContext, store: Any) -> List[IncidentRecord]:
    """最近 10 条，按 created_at 倒序；固定窗口，不分页"""
    user_id = auth.require_user_id()
    records = await run_in_threadpool(store.list_incident_analyses, user_id, HISTORY_LIMIT)
    logger.info(f"[HistoryReader] list user_id={user_id} count={len(records)}")
    return list(records)[:HISTORY_LIMIT]


async def get_analysis(record_id: str, auth: AuthContext, store: Any) -> IncidentRecord:
    """查看单条记录；不属于当前用户的记录按不存在处理"""
    user_id = auth.require_user_id()
    record = await run_in_threadpool(store.get_incident_analysis, record_id, user_id)
    if record is None or record.user_id != user_id:
        raise NotFoundError("Incident analysis not found")
    return record
