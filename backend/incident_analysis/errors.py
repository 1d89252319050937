"""
Incident Analysis Exceptions
事故分析各操作的异常类型

每个异常携带 kind（归一化后的错误类别）和 http_status（网关返回的状态码）。
这些异常只在操作内部流转，由 run_operation 统一转换为 OperationResult。
"""
from typing import Dict, List, Optional

UNAUTHORIZED = "Unauthorized"
PROCESSING_FAILED = "Processing failed. Please try again."


class OperationError(Exception):
    """操作失败的基类"""
    kind = "processing"
    http_status = 500

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or PROCESSING_FAILED
        self.error_type = type(self).__name__


class InputValidationError(OperationError):
    """输入不满足 schema 约束"""
    kind = "validation"
    http_status = 422

    def __init__(self, message: str, field_errors: Optional[Dict[str, List[str]]] = None):
        super().__init__(message)
        self.field_errors = field_errors or {}


class UnauthorizedError(OperationError):
    """没有已认证的用户"""
    kind = "unauthorized"
    http_status = 401

    def __init__(self, message: str = UNAUTHORIZED):
        super().__init__(message)


class NotFoundError(OperationError):
    """记录不存在，或不属于当前用户"""
    kind = "not_found"
    http_status = 404


class ProviderError(OperationError):
    """LLM 服务返回非成功状态，或成功但没有可用内容"""
    kind = "provider"
    http_status = 502

    def __init__(self, message: str, status_code: Optional[int] = None, reason: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.reason = reason

    @classmethod
    def from_status(cls, status_code: int, reason: str) -> "ProviderError":
        return cls(f"LLM API error: {status_code} {reason}".strip(), status_code=status_code, reason=reason)


class ExtractionParseError(ProviderError):
    """LLM 输出无法解析为 JSON（原始输出只写日志，不返回给调用方）"""

    def __init__(self, message: str, raw_output: str = ""):
        super().__init__(message)
        self.raw_output = raw_output


class StoreError(OperationError):
    """持久化失败，对外只暴露通用消息"""

    def __init__(self, message: str = PROCESSING_FAILED):
        super().__init__(message)
