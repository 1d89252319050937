"""
Field Extractor
从 PDF 原文中抽取事故的五个结构化字段

流程：
1. 构建抽取 prompt（要求 LLM 只返回五个字段的 JSON）
2. 调用 LLM（一次，不重试）
3. 解析 JSON
4. 按 FIELD_DEFAULTS 补全缺失字段
"""
import json
import logging
import time
from typing import Any, Dict, List

from incident_analysis.config import get_settings
from incident_analysis.errors import ExtractionParseError, ProviderError
from incident_analysis.models.user import AuthContext
from incident_analysis.schemas.incident import NOT_SPECIFIED, ExtractedFields, ExtractFieldsRequest
from incident_analysis.services.llm_client import LLMClient
from incident_analysis.services.logging.request_logger import safe_preview
from incident_analysis.utils.json_utils import extract_json

logger = logging.getLogger(__name__)

EXTRACTION_SYSTEM_PROMPT = (
    "You are a legal document analyst. Extract specific fields from incident reports "
    "and return them in valid JSON format."
)

# 每个字段缺失时的默认值
FIELD_DEFAULTS: Dict[str, Any] = {
    "dateOfInjury": NOT_SPECIFIED,
    "locationOfIncident": NOT_SPECIFIED,
    "causeOfIncident": NOT_SPECIFIED,
    "typeOfIncident": NOT_SPECIFIED,
    "statutoryViolationsCited": [NOT_SPECIFIED],
}


def build_extraction_prompt(pdf_text: str) -> str:
    return f"""You are a legal document analyst. Extract the following 5 fields from the provided incident report text:

1. Date of Injury: The date when the injury occurred
2. Location of Incident: Where the incident took place
3. Cause of Incident: What caused the incident
4. Type of Incident: The category/type of incident
5. Statutory Violations Cited: Any legal violations mentioned (return as array)

Please extract these fields from the following text and return them in JSON format:

{pdf_text}

Return only valid JSON with these exact field names:
{{
  "dateOfInjury": "extracted date",
  "locationOfIncident": "extracted location",
  "causeOfIncident": "extracted cause",
  "typeOfIncident": "extracted type",
  "statutoryViolationsCited": ["violation1", "violation2"]
}}"""


def normalize_extracted_fields(obj: Dict[str, Any]) -> ExtractedFields:
    """
    按 FIELD_DEFAULTS 补全字段

    字符串字段缺失（或为 null）时取默认值；违规条款不是数组时取 ["Not specified"]。
    除此之外不做任何类型转换，已有的值（包括数字、列表里的 null）原样保留。
    """
    values: Dict[str, Any] = {}
    for name, default in FIELD_DEFAULTS.items():
        value = obj.get(name)
        if isinstance(default, list):
            values[name] = value if isinstance(value, list) else list(default)
        else:
            values[name] = value if value is not None else default
    return ExtractedFields.model_validate(values)


def _parse_fields(text: str) -> ExtractedFields:
    try:
        obj = extract_json(text)
    except (ValueError, json.JSONDecodeError) as e:
        logger.warning(f"[FieldExtractor] JSON parse failed: {e} preview={safe_preview(text)}")
        raise ExtractionParseError("Failed to parse extracted fields from LLM response", raw_output=text) from e

    if obj is None:
        logger.warning("[FieldExtractor] LLM returned JSON null")
        raise ExtractionParseError("Failed to parse extracted fields from LLM response", raw_output=text)

    if not isinstance(obj, dict):
        # 数组/字符串/数字：当作空对象，五个字段全部取默认值
        logger.warning(f"[FieldExtractor] non-object JSON type={type(obj).__name__}, using defaults")
        obj = {}

    return normalize_extracted_fields(obj)


async def extract_fields(
    request: ExtractFieldsRequest,
    auth: AuthContext,
    llm: LLMClient,
) -> ExtractedFields:
    """
    抽取事故字段

    Raises:
        UnauthorizedError: 未登录（此时不会调用 LLM）
        ProviderError: LLM 返回非成功状态或空内容
        ExtractionParseError: LLM 输出不是合法 JSON（或为 null）
    """
    user_id = auth.require_user_id()
    settings = get_settings()

    logger.info(f"[FieldExtractor] START user_id={user_id} text_len={len(request.pdf_text)}")
    start = time.time()

    messages: List[Dict[str, str]] = [
        {"role": "system", "content": EXTRACTION_SYSTEM_PROMPT},
        {"role": "user", "content": build_extraction_prompt(request.pdf_text)},
    ]
    extracted_text = await llm.chat(
        messages,
        temperature=settings.EXTRACTION_TEMPERATURE,
        max_tokens=settings.EXTRACTION_MAX_TOKENS,
    )
    if not extracted_text:
        raise ProviderError("No fields extracted from LLM")

    fields = _parse_fields(extracted_text)

    logger.info(
        f"[FieldExtractor] DONE user_id={user_id} ms={int((time.time() - start) * 1000)} "
        f"violations={len(fields.statutory_violations_cited)}"
    )
    return fields
