"""
测试用的 LLM 桩和内存存储
"""
from __future__ import annotations

import json
import uuid
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, Union

import httpx

from incident_analysis.errors import StoreError
from incident_analysis.schemas.incident import IncidentFields, IncidentRecord
from incident_analysis.services.llm_client import LLMClient, LLMProfile


def chat_response(content: Optional[str], status_code: int = 200) -> httpx.Response:
    """OpenAI 格式的响应"""
    if content is None:
        return httpx.Response(status_code, json={"choices": []})
    return httpx.Response(
        status_code,
        json={"choices": [{"message": {"role": "assistant", "content": content}}]},
    )


Scripted = Union[httpx.Response, Callable[[httpx.Request], httpx.Response]]


class ScriptedProvider:
    """按顺序返回预置响应，并记录每次请求的 payload"""

    def __init__(self, responses: List[Scripted]):
        self.responses = list(responses)
        self.payloads: List[dict] = []
        self.headers: List[httpx.Headers] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.payloads.append(json.loads(request.content))
        self.headers.append(request.headers)
        if not self.responses:
            raise AssertionError("unexpected LLM call")
        nxt = self.responses.pop(0)
        if callable(nxt):
            return nxt(request)
        return nxt

    @property
    def call_count(self) -> int:
        return len(self.payloads)


class FakeIncidentStore:
    """内存版 incident_dao"""

    def __init__(self, fail_on_create: bool = False):
        self.records: List[IncidentRecord] = []
        self.fail_on_create = fail_on_create
        self._clock = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def _tick(self) -> datetime:
        self._clock += timedelta(seconds=1)
        return self._clock

    def create_incident_analysis(self, fields: IncidentFields, summary: str, user_id: str) -> IncidentRecord:
        if self.fail_on_create:
            raise StoreError()
        now = self._tick()
        record = IncidentRecord(
            id=str(uuid.uuid4()),
            summary=summary,
            user_id=user_id,
            created_at=now,
            updated_at=now,
            **fields.model_dump(),
        )
        self.records.append(record)
        return record

    def list_incident_analyses(self, user_id: str, limit: int = 10) -> List[IncidentRecord]:
        owned = [r for r in self.records if r.user_id == user_id]
        owned.sort(key=lambda r: r.created_at, reverse=True)
        return owned[:limit]

    def get_incident_analysis(self, record_id: str, user_id: str) -> Optional[IncidentRecord]:
        for r in self.records:
            if r.id == record_id and r.user_id == user_id:
                return r
        return None


def make_llm(provider: ScriptedProvider, api_key: Optional[str] = "test-key") -> LLMClient:
    profile = LLMProfile(base_url="http://llm.local", model="gpt-test", api_key=api_key)
    return LLMClient(profile, transport=httpx.MockTransport(provider))
