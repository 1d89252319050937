"""
Incident Analysis Service
把三个核心操作包装成统一的 OperationResult

所有异常只在 run_operation 中捕获一次：
- OperationError 子类按自身的 kind / http_status 归一化
- 其他异常一律视为 processing 错误，消息为空时使用 PROCESSING_FAILED
"""
import logging
from functools import lru_cache
from typing import Any, Awaitable, Optional

from incident_analysis.errors import PROCESSING_FAILED, InputValidationError, OperationError
from incident_analysis.models.user import AuthContext
from incident_analysis.schemas.incident import ExtractFieldsRequest, GenerateAnalysisRequest
from incident_analysis.schemas.result import OperationFailure, OperationResult
from incident_analysis.services import analysis_generator, field_extractor, history_reader
from incident_analysis.services.dao import incident_dao
from incident_analysis.services.llm_client import LLMClient, get_llm_client

logger = logging.getLogger(__name__)


async def run_operation(name: str, operation: Awaitable[Any], log: Optional[logging.LoggerAdapter] = None) -> OperationResult:
    log = log or logger
    try:
        data = await operation
    except OperationError as e:
        log.warning(f"[{name}] FAILED kind={e.kind} error_type={e.error_type} message={e.message}")
        field_errors = e.field_errors if isinstance(e, InputValidationError) else {}
        return OperationResult.failure(
            OperationFailure(kind=e.kind, message=e.message, http_status=e.http_status, field_errors=field_errors)
        )
    except Exception as e:  # noqa: BLE001
        log.error(f"[{name}] FAILED unexpected {type(e).__name__}: {e}", exc_info=True)
        return OperationResult.failure(OperationFailure(kind="processing", message=str(e) or PROCESSING_FAILED))
    return OperationResult.success(data)


class IncidentAnalysisService:
    """
    事故分析服务

    llm: LLM 客户端
    store: 存储，默认为 incident_dao 模块（duck-typing，测试中可替换为内存实现）
    """

    def __init__(self, llm: LLMClient, store: Any = incident_dao):
        self.llm = llm
        self.store = store

    async def extract_fields(
        self, request: ExtractFieldsRequest, auth: AuthContext, log: Optional[logging.LoggerAdapter] = None
    ) -> OperationResult:
        async def _run():
            fields = await field_extractor.extract_fields(request, auth, self.llm)
            return {"extractedFields": fields.model_dump(by_alias=True)}

        return await run_operation("extract_fields", _run(), log)

    async def generate_analysis(
        self, request: GenerateAnalysisRequest, auth: AuthContext, log: Optional[logging.LoggerAdapter] = None
    ) -> OperationResult:
        async def _run():
            result = await analysis_generator.generate_incident_analysis(request, auth, self.llm, self.store)
            return result.model_dump(by_alias=True)

        return await run_operation("generate_analysis", _run(), log)

    async def list_history(self, auth: AuthContext, log: Optional[logging.LoggerAdapter] = None) -> OperationResult:
        async def _run():
            records = await history_reader.list_history(auth, self.store)
            return {"history": [r.model_dump(by_alias=True, mode="json") for r in records]}

        return await run_operation("list_history", _run(), log)

    async def get_analysis(
        self, record_id: str, auth: AuthContext, log: Optional[logging.LoggerAdapter] = None
    ) -> OperationResult:
        async def _run():
            record = await history_reader.get_analysis(record_id, auth, self.store)
            return {"record": record.model_dump(by_alias=True, mode="json")}

        return await run_operation("get_analysis", _run(), log)


@lru_cache
def get_incident_service() -> IncidentAnalysisService:
    return IncidentAnalysisService(llm=get_llm_client())
