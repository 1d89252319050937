from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

NOT_SPECIFIED = "Not specified"

# 历史记录固定窗口大小
HISTORY_LIMIT = 10

# 必填字段的错误提示（按对外的 camelCase 字段名）
REQUIRED_MESSAGES: Dict[str, str] = {
    "dateOfInjury": "Date of injury is required",
    "locationOfIncident": "Location of incident is required",
    "causeOfIncident": "Cause of incident is required",
    "typeOfIncident": "Type of incident is required",
    "statutoryViolationsCited": "At least one statutory violation must be specified",
    "pdfText": "PDF text is required",
}


class CamelModel(BaseModel):
    """对外使用 camelCase，内部使用 snake_case"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ExtractFieldsRequest(CamelModel):
    """字段抽取请求"""

    pdf_text: str = Field(..., min_length=1)


class IncidentFields(CamelModel):
    """事故的五个结构化字段"""

    date_of_injury: str = Field(..., min_length=1)
    location_of_incident: str = Field(..., min_length=1)
    cause_of_incident: str = Field(..., min_length=1)
    type_of_incident: str = Field(..., min_length=1)
    statutory_violations_cited: List[str] = Field(..., min_length=1)


class GenerateAnalysisRequest(IncidentFields):
    """生成分析请求：五个字段 + PDF 原文"""

    pdf_text: str = Field(..., min_length=1)

    def incident_fields(self) -> IncidentFields:
        return IncidentFields.model_validate(self.model_dump(exclude={"pdf_text"}))


class ExtractedFields(CamelModel):
    """
    从 PDF 原文抽取出的字段（不落库）

    缺失的字段由 field_extractor.FIELD_DEFAULTS 补成 "Not specified"；
    LLM 给出的值原样返回，不校验类型（前端编辑后再走 IncidentFields 校验）。
    """

    date_of_injury: Any = NOT_SPECIFIED
    location_of_incident: Any = NOT_SPECIFIED
    cause_of_incident: Any = NOT_SPECIFIED
    type_of_incident: Any = NOT_SPECIFIED
    statutory_violations_cited: List[Any] = Field(default_factory=lambda: [NOT_SPECIFIED])


class GenerateAnalysisResult(CamelModel):
    summary: str
    analysis: str
    id: str


class IncidentRecord(IncidentFields):
    """incident_analyses 表中的一条记录"""

    id: str
    summary: str
    user_id: str
    created_at: datetime
    updated_at: datetime
