"""
Analysis Generator
根据事故字段和 PDF 原文生成摘要与事故分析，并保存记录

步骤（顺序执行）：
1. 摘要：失败时不中断，返回 "Summary generation failed: <原因>" 占位文本
2. 事故分析：失败时直接抛出，不落库
3. 落库：只保存摘要，分析正文只返回给调用方
"""
import logging
import time
from typing import Any

from fastapi.concurrency import run_in_threadpool

from incident_analysis.config import get_settings
from incident_analysis.errors import PROCESSING_FAILED, ProviderError
from incident_analysis.models.user import AuthContext
from incident_analysis.schemas.incident import GenerateAnalysisRequest, GenerateAnalysisResult, IncidentFields
from incident_analysis.services.llm_client import LLMClient

logger = logging.getLogger(__name__)

SUMMARY_FAILED_PREFIX = "Summary generation failed:"

SUMMARY_SYSTEM_PROMPT = (
    "You are a legal document analyst. Create a concise summary of the provided text, "
    "focusing on key incident details, legal implications, and important facts. "
    "Keep the summary to a maximum of 10 sentences."
)

ANALYSIS_SYSTEM_PROMPT = (
    "You are a legal and safety analysis expert specializing in workplace incidents and compliance. "
    "Generate professional, thorough incident analysis reports suitable for legal documentation."
)


def build_analysis_prompt(fields: IncidentFields) -> str:
    violations = ", ".join(fields.statutory_violations_cited)
    return f"""You are a legal and safety analysis expert specializing in workplace incidents and compliance. Given the incident details below, generate a comprehensive "Incident Analysis" report. The output should be professional, thorough, and suitable for legal documentation or safety reports.

## INCIDENT DETAILS
- Date of Injury: {fields.date_of_injury}
- Location of Incident: {fields.location_of_incident}
- Cause of Incident: {fields.cause_of_incident}
- Type of Incident: {fields.type_of_incident}
- Statutory Violations Cited: {violations}

## OUTPUT GUIDELINES
- Provide a detailed analysis of the incident circumstances and contributing factors.
- Assess the severity and potential legal implications of the statutory violations.
- Include recommendations for prevention and compliance improvement.
- Address any patterns or systemic issues that may have contributed to the incident.
- Tone should be professional, objective, and legally sound.

Now generate the "Incident Analysis" section. Should be comprehensive and well-structured for legal or safety documentation."""


async def generate_summary(pdf_text: str, llm: LLMClient) -> str:
    """
    生成 PDF 原文摘要（最多 10 句）

    任何失败都不抛出，而是返回占位文本。
    TODO: 与 generate_incident_analysis 的失败策略不一致（摘要降级、分析中断），
    需要产品确认摘要失败时是否也应该中断。
    """
    settings = get_settings()
    messages = [
        {"role": "system", "content": SUMMARY_SYSTEM_PROMPT},
        {"role": "user", "content": f"Please summarize the following incident report text:\n\n{pdf_text}"},
    ]
    try:
        summary = await llm.chat(
            messages,
            temperature=settings.SUMMARY_TEMPERATURE,
            max_tokens=settings.SUMMARY_MAX_TOKENS,
        )
        if not summary:
            raise ProviderError("No summary generated from LLM")
        return summary
    except Exception as e:  # noqa: BLE001
        reason = str(e) or PROCESSING_FAILED
        logger.warning(f"[AnalysisGenerator] summary degraded: {type(e).__name__}: {reason}")
        return f"{SUMMARY_FAILED_PREFIX} {reason}"


async def generate_incident_analysis_text(fields: IncidentFields, llm: LLMClient) -> str:
    settings = get_settings()
    messages = [
        {"role": "system", "content": ANALYSIS_SYSTEM_PROMPT},
        {"role": "user", "content": build_analysis_prompt(fields)},
    ]
    analysis = await llm.chat(
        messages,
        temperature=settings.ANALYSIS_TEMPERATURE,
        max_tokens=settings.ANALYSIS_MAX_TOKENS,
    )
    if not analysis:
        raise ProviderError("No analysis generated from LLM")
    return analysis


async def generate_incident_analysis(
    request: GenerateAnalysisRequest,
    auth: AuthContext,
    llm: LLMClient,
    store: Any,
) -> GenerateAnalysisResult:
    """
    生成摘要和事故分析，并保存一条新记录

    Args:
        request: 五个事故字段 + PDF 原文
        auth: 调用方身份
        llm: LLM 客户端
        store: 存储（incident_dao 或同接口对象）

    Raises:
        UnauthorizedError: 未登录（此时不会调用 LLM，也不会写库）
        ProviderError: 事故分析生成失败（此时不会写库）
        StoreError: 写库失败
    """
    user_id = auth.require_user_id()
    fields = request.incident_fields()

    logger.info(
        f"[AnalysisGenerator] START user_id={user_id} text_len={len(request.pdf_text)} "
        f"violations={len(fields.statutory_violations_cited)}"
    )
    overall_start = time.time()

    summary = await generate_summary(request.pdf_text, llm)
    summary_ms = int((time.time() - overall_start) * 1000)
    logger.info(
        f"[AnalysisGenerator] AFTER_SUMMARY user_id={user_id} ms={summary_ms} "
        f"degraded={summary.startswith(SUMMARY_FAILED_PREFIX)}"
    )

    analysis = await generate_incident_analysis_text(fields, llm)
    logger.info(f"[AnalysisGenerator] AFTER_ANALYSIS user_id={user_id} analysis_len={len(analysis)}")

    record = await run_in_threadpool(store.create_incident_analysis, fields, summary, user_id)

    logger.info(
        f"[AnalysisGenerator] DONE user_id={user_id} id={record.id} "
        f"total_ms={int((time.time() - overall_start) * 1000)}"
    )
    return GenerateAnalysisResult(summary=summary, analysis=analysis, id=record.id)
