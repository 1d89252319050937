import logging

from fastapi import APIRouter, Depends, Request

from incident_analysis.models.user import AuthContext
from incident_analysis.schemas.incident import ExtractFieldsRequest, GenerateAnalysisRequest
from incident_analysis.services.gateway import dispatch
from incident_analysis.services.incident_service import IncidentAnalysisService, get_incident_service
from incident_analysis.services.logging.request_logger import get_request_logger
from incident_analysis.utils.auth import get_auth_context

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/incidents", tags=["incidents"])


@router.post("/extract-fields")
async def extract_incident_fields(
    request: Request,
    auth: AuthContext = Depends(get_auth_context),
    service: IncidentAnalysisService = Depends(get_incident_service),
):
    """
    从 PDF 原文抽取事故字段

    body: {"pdfText": "..."}
    """
    log = get_request_logger(logger, "extract_fields")
    return await dispatch(
        lambda parsed: service.extract_fields(parsed, auth, log),
        log,
        request=request,
        schema=ExtractFieldsRequest,
    )


@router.post("/analyses")
async def generate_incident_analysis(
    request: Request,
    auth: AuthContext = Depends(get_auth_context),
    service: IncidentAnalysisService = Depends(get_incident_service),
):
    """
    生成摘要 + 事故分析，并保存一条记录

    每次调用都会新建记录（不去重）
    """
    log = get_request_logger(logger, "generate_analysis")
    return await dispatch(
        lambda parsed: service.generate_analysis(parsed, auth, log),
        log,
        request=request,
        schema=GenerateAnalysisRequest,
    )


@router.get("/analyses")
async def get_incident_analysis_history(
    auth: AuthContext = Depends(get_auth_context),
    service: IncidentAnalysisService = Depends(get_incident_service),
):
    """当前用户最近 10 条事故分析"""
    log = get_request_logger(logger, "list_history")
    return await dispatch(lambda _: service.list_history(auth, log), log)


@router.get("/analyses/{record_id}")
async def get_incident_analysis(
    record_id: str,
    auth: AuthContext = Depends(get_auth_context),
    service: IncidentAnalysisService = Depends(get_incident_service),
):
    log = get_request_logger(logger, "get_analysis")
    return await dispatch(lambda _: service.get_analysis(record_id, auth, log), log)
