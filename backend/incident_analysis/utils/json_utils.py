"""
JSON Utilities
从 LLM 输出中提取 JSON
"""
import json
import logging
from typing import Any

logger = logging.getLogger(__name__)

_WHITESPACE = (" ", "\n", "\r", "\t")


def _strip_code_fence(text: str) -> str:
    """去掉 ```json ... ``` 或 ``` ... ``` 包裹"""
    if "```json" in text:
        start = text.find("```json") + 7
    elif "```" in text:
        start = text.find("```") + 3
    else:
        return text

    # 跳过标记后的空白字符（包括换行符）
    while start < len(text) and text[start] in _WHITESPACE:
        start += 1
    end = text.find("```", start)
    if end == -1:
        # 没有结束标记，取到结尾
        return text[start:].strip()
    return text[start:end].strip()


def extract_json(text: str) -> Any:
    """
    从 LLM 输出中提取 JSON

    支持以下格式：
    - 纯 JSON
    - ```json ... ```
    - ``` ... ```

    Raises:
        ValueError: 文本为空
        json.JSONDecodeError: 无法解析
    """
    if not text or not text.strip():
        raise ValueError("Empty text provided to extract_json")
    return json.loads(_strip_code_fence(text.strip()))
