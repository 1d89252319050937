from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class OperationFailure(BaseModel):
    """归一化后的失败信息"""

    kind: str
    message: str
    http_status: int = 500
    field_errors: Dict[str, List[str]] = Field(default_factory=dict)


class OperationResult(BaseModel):
    """
    每个操作的统一返回值

    ok=True 时 data 为结果；ok=False 时 error 描述失败原因。
    操作从不通过异常向外传递失败。
    """

    ok: bool
    data: Any = None
    error: Optional[OperationFailure] = None

    @classmethod
    def success(cls, data: Any) -> "OperationResult":
        return cls(ok=True, data=data)

    @classmethod
    def failure(cls, error: OperationFailure) -> "OperationResult":
        return cls(ok=False, error=error)
