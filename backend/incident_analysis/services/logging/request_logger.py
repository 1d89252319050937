"""
按请求打标签的日志

每条日志带上 `[req=<id> op=<operation>]` 前缀，便于在同一个进程的混合日志里
把一次接口调用（校验 → LLM → 落库）串起来。
"""
from __future__ import annotations

import logging
import uuid
from typing import Any, Optional
from urllib.parse import urlparse


class RequestLogger(logging.LoggerAdapter):
    """LoggerAdapter，extra 里固定有 request_id 和 operation"""

    @property
    def request_id(self) -> str:
        return self.extra["request_id"]

    def process(self, msg, kwargs):
        tag = f"req={self.extra['request_id']}"
        operation = self.extra.get("operation")
        if operation:
            tag += f" op={operation}"
        return f"[{tag}] {msg}", kwargs


def new_request_id() -> str:
    return uuid.uuid4().hex[:8]


def get_request_logger(
    base_logger: logging.Logger,
    operation: str,
    request_id: Optional[str] = None,
) -> RequestLogger:
    """未传 request_id 时新生成一个"""
    return RequestLogger(base_logger, {"request_id": request_id or new_request_id(), "operation": operation})


def safe_preview(value: Any, limit: int = 200) -> str:
    """把任意值压成单行（连续空白合并成一个空格），超长截断"""
    if value is None:
        return ""
    text = " ".join(str(value).split())
    if len(text) > limit:
        return f"{text[:limit]}...(+{len(text) - limit} chars)"
    return text


def mask_url(url: Optional[str]) -> str:
    """只保留 scheme://host/path，去掉 query 和认证信息"""
    if not url:
        return ""
    parsed = urlparse(url)
    masked = ""
    if parsed.scheme:
        masked += parsed.scheme + "://"
    if parsed.hostname:
        masked += parsed.hostname
        if parsed.port:
            masked += f":{parsed.port}"
    if parsed.path:
        masked += parsed.path
    return masked or url
