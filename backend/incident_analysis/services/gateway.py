"""
Request Gateway
校验输入 → 调用操作 → 把结果归一化为三种响应之一：

- {"data": ...}
- {"validationErrors": {"<字段>": ["<消息>"]}}
- {"serverError": "..."}

schema 校验失败时不会调用任何操作，因此不会访问 LLM 或数据库。
"""
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Type

from fastapi import Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

from incident_analysis.errors import PROCESSING_FAILED, InputValidationError
from incident_analysis.schemas.incident import REQUIRED_MESSAGES
from incident_analysis.schemas.result import OperationResult

logger = logging.getLogger(__name__)

ROOT_ERRORS_KEY = "_errors"

# 这些错误类型都表示"必填项为空/缺失"，统一使用字段自己的提示
_REQUIRED_ERROR_TYPES = {"missing", "string_too_short", "too_short"}


def format_validation_errors(exc: ValidationError) -> Dict[str, List[str]]:
    errors: Dict[str, List[str]] = {}
    for err in exc.errors():
        loc = err.get("loc") or ()
        field = str(loc[0]) if loc else ROOT_ERRORS_KEY
        if err.get("type") in _REQUIRED_ERROR_TYPES and len(loc) == 1:
            message = REQUIRED_MESSAGES.get(field, err.get("msg", ""))
        else:
            message = err.get("msg", "")
        messages = errors.setdefault(field, [])
        if message not in messages:
            messages.append(message)
    return errors


def parse_input(schema: Type[BaseModel], payload: Any) -> BaseModel:
    if not isinstance(payload, dict):
        raise InputValidationError(
            "Request body must be a JSON object",
            field_errors={ROOT_ERRORS_KEY: ["Request body must be a JSON object"]},
        )
    try:
        return schema.model_validate(payload)
    except ValidationError as e:
        field_errors = format_validation_errors(e)
        raise InputValidationError("Invalid input", field_errors=field_errors) from e


async def read_json_body(request: Request) -> Any:
    try:
        return await request.json()
    except ValueError:
        # 空 body 或非法 JSON，交给 parse_input 报错
        return None


def to_response(result: OperationResult) -> JSONResponse:
    if result.ok:
        return JSONResponse(status_code=200, content={"data": result.data})
    error = result.error
    field_errors = error.field_errors or {ROOT_ERRORS_KEY: [error.message]}
    return JSONResponse(status_code=error.http_status, content={"validationErrors": field_errors})


async def dispatch(
    handler: Callable[[Optional[BaseModel]], Awaitable[OperationResult]],
    log: logging.LoggerAdapter,
    request: Optional[Request] = None,
    schema: Optional[Type[BaseModel]] = None,
) -> JSONResponse:
    """
    网关入口

    Args:
        handler: 接收校验后的输入（无 schema 时为 None），返回 OperationResult
        log: 带 request id 的 logger
        request: 原始请求（有 schema 时读取 JSON body）
        schema: 输入 schema
    """
    try:
        parsed = None
        if schema is not None:
            payload = await read_json_body(request)
            parsed = parse_input(schema, payload)
        result = await handler(parsed)
    except InputValidationError as e:
        log.info(f"[Gateway] validation failed fields={sorted(e.field_errors)}")
        return JSONResponse(status_code=e.http_status, content={"validationErrors": e.field_errors})
    except Exception as e:  # noqa: BLE001
        log.error(f"[Gateway] unexpected {type(e).__name__}: {e}", exc_info=True)
        return JSONResponse(status_code=500, content={"serverError": str(e) or PROCESSING_FAILED})

    log.info(f"[Gateway] DONE ok={result.ok}" + ("" if result.ok else f" kind={result.error.kind}"))
    return to_response(result)
