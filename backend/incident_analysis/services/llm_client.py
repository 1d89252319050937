import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from urllib.parse import urljoin

import httpx

from incident_analysis.config import Settings, get_settings
from incident_analysis.errors import ProviderError
from incident_analysis.services.logging.request_logger import mask_url, safe_preview

logger = logging.getLogger(__name__)


def normalize_base_url(u: str) -> str:
    return (u or "").strip().rstrip("/")


def normalize_endpoint_path(p: str) -> str:
    p = (p or "/v1/chat/completions").strip()
    if not p.startswith("/"):
        p = "/" + p
    return p.rstrip("/")


def build_endpoint_url(base_url: str, endpoint_path: str) -> str:
    base = normalize_base_url(base_url)
    path = normalize_endpoint_path(endpoint_path)
    return urljoin(base + "/", path.lstrip("/")).rstrip("/")


@dataclass
class LLMProfile:
    base_url: str
    model: str
    endpoint_path: str = "/v1/chat/completions"
    api_key: Optional[str] = None
    timeout_s: float = 120.0

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "LLMProfile":
        settings = settings or get_settings()
        return cls(
            base_url=normalize_base_url(settings.LLM_BASE_URL),
            model=settings.LLM_MODEL,
            endpoint_path=normalize_endpoint_path(settings.LLM_ENDPOINT_PATH),
            api_key=settings.LLM_API_KEY,
            timeout_s=settings.LLM_TIMEOUT_S,
        )

    @property
    def url(self) -> str:
        return build_endpoint_url(self.base_url, self.endpoint_path)


def _extract_content(result: Any) -> Optional[str]:
    """取 choices[0].message.content，缺失时返回 None"""
    if not isinstance(result, dict):
        return None
    choices = result.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    first = choices[0]
    if not isinstance(first, dict):
        return None
    message = first.get("message")
    if not isinstance(message, dict):
        return None
    content = message.get("content")
    return content if isinstance(content, str) else None


class LLMClient:
    """
    OpenAI 兼容的 chat completions 客户端

    每次调用只发一次请求，不重试。非 2xx 状态码抛出 ProviderError，
    成功但没有内容时返回 None，由调用方决定如何处理。
    """

    def __init__(self, profile: LLMProfile, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.profile = profile
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.profile.api_key:
            headers["Authorization"] = f"Bearer {self.profile.api_key}"
        return headers

    async def chat(
        self,
        messages: List[Dict[str, str]],
        temperature: float,
        max_tokens: int,
    ) -> Optional[str]:
        url = self.profile.url
        payload = {
            "model": self.profile.model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }

        logger.info(
            f"[LLMClient] START url={mask_url(url)} model={self.profile.model} "
            f"temperature={temperature} max_tokens={max_tokens} messages={len(messages)}"
        )
        start = time.time()

        try:
            async with httpx.AsyncClient(
                timeout=self.profile.timeout_s,
                follow_redirects=False,
                transport=self._transport,
            ) as client:
                resp = await client.post(url, json=payload, headers=self._headers())
        except httpx.TimeoutException as exc:
            logger.error("LLM request timed out url=%s", mask_url(url))
            raise ProviderError("LLM request timed out") from exc
        except httpx.RequestError as exc:
            logger.error("LLM request error url=%s error=%s", mask_url(url), exc)
            raise ProviderError("LLM request failed") from exc

        latency_ms = int((time.time() - start) * 1000)

        if not resp.is_success:
            logger.error(
                "LLM HTTP error status=%s url=%s latency_ms=%s body_preview=%s",
                resp.status_code,
                mask_url(url),
                latency_ms,
                safe_preview(resp.text, 500),
            )
            raise ProviderError.from_status(resp.status_code, resp.reason_phrase)

        try:
            result = resp.json()
        except ValueError:
            logger.warning(f"[LLMClient] response is not JSON: {safe_preview(resp.text)}")
            return None

        content = _extract_content(result)
        logger.info(
            f"[LLMClient] DONE status={resp.status_code} latency_ms={latency_ms} "
            f"content_len={len(content) if content else 0}"
        )
        return content


def get_llm_client() -> LLMClient:
    return LLMClient(LLMProfile.from_settings())
