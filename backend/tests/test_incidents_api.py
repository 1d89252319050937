"""
事故分析接口测试（网关：校验 → 鉴权 → 调用 → 归一化响应）
"""
import json

import httpx
import pytest
from fastapi.testclient import TestClient

from incident_analysis.main import app
from incident_analysis.services.incident_service import IncidentAnalysisService, get_incident_service
from incident_analysis.utils.auth import create_access_token
from tests.helpers import FakeIncidentStore, ScriptedProvider, chat_response, make_llm


@pytest.fixture
def fake_store():
    return FakeIncidentStore()


@pytest.fixture
def provider():
    return ScriptedProvider([])


@pytest.fixture
def client(provider, fake_store):
    service = IncidentAnalysisService(llm=make_llm(provider), store=fake_store)
    app.dependency_overrides[get_incident_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


def _headers(user_id: str = "user_1") -> dict:
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_root_path_is_not_served(client):
    assert client.get("/").status_code == 404


@pytest.mark.parametrize(
    "field,message",
    [
        ("dateOfInjury", "Date of injury is required"),
        ("locationOfIncident", "Location of incident is required"),
        ("causeOfIncident", "Cause of incident is required"),
        ("typeOfIncident", "Type of incident is required"),
        ("pdfText", "PDF text is required"),
    ],
)
def test_generate_empty_field_is_validation_error(client, provider, fake_store, incident_payload, field, message):
    payload = {**incident_payload, field: ""}

    resp = client.post("/api/incidents/analyses", json=payload, headers=_headers())

    assert resp.status_code == 422
    assert resp.json() == {"validationErrors": {field: [message]}}
    assert provider.call_count == 0
    assert fake_store.records == []


def test_generate_empty_violations_is_validation_error(client, provider, incident_payload):
    payload = {**incident_payload, "statutoryViolationsCited": []}

    resp = client.post("/api/incidents/analyses", json=payload, headers=_headers())

    assert resp.status_code == 422
    assert resp.json()["validationErrors"] == {
        "statutoryViolationsCited": ["At least one statutory violation must be specified"]
    }
    assert provider.call_count == 0


def test_generate_missing_field_is_validation_error(client, provider, incident_payload):
    payload = dict(incident_payload)
    del payload["causeOfIncident"]

    resp = client.post("/api/incidents/analyses", json=payload, headers=_headers())

    assert resp.status_code == 422
    assert resp.json()["validationErrors"]["causeOfIncident"] == ["Cause of incident is required"]
    assert provider.call_count == 0


def test_extract_empty_text_is_validation_error(client, provider):
    resp = client.post("/api/incidents/extract-fields", json={"pdfText": ""}, headers=_headers())

    assert resp.status_code == 422
    assert resp.json() == {"validationErrors": {"pdfText": ["PDF text is required"]}}
    assert provider.call_count == 0


def test_non_object_body_is_validation_error(client, provider):
    resp = client.post(
        "/api/incidents/extract-fields",
        content=b"not json",
        headers={**_headers(), "Content-Type": "application/json"},
    )

    assert resp.status_code == 422
    assert resp.json() == {"validationErrors": {"_errors": ["Request body must be a JSON object"]}}
    assert provider.call_count == 0


def test_extract_without_token_is_unauthorized(client, provider):
    resp = client.post("/api/incidents/extract-fields", json={"pdfText": "text"})

    assert resp.status_code == 401
    assert resp.json() == {"validationErrors": {"_errors": ["Unauthorized"]}}
    assert provider.call_count == 0


def test_generate_with_invalid_token_is_unauthorized(client, provider, fake_store, incident_payload):
    resp = client.post(
        "/api/incidents/analyses",
        json=incident_payload,
        headers={"Authorization": "Bearer not-a-jwt"},
    )

    assert resp.status_code == 401
    assert resp.json()["validationErrors"]["_errors"] == ["Unauthorized"]
    assert provider.call_count == 0
    assert fake_store.records == []


def test_history_without_token_is_unauthorized(client):
    resp = client.get("/api/incidents/analyses")

    assert resp.status_code == 401
    assert resp.json() == {"validationErrors": {"_errors": ["Unauthorized"]}}


def test_extract_fields_success(client, provider):
    provider.responses.append(
        chat_response(json.dumps({"dateOfInjury": "2024-01-15", "locationOfIncident": "Site A"}))
    )

    resp = client.post("/api/incidents/extract-fields", json={"pdfText": "text"}, headers=_headers())

    assert resp.status_code == 200
    assert resp.json() == {
        "data": {
            "extractedFields": {
                "dateOfInjury": "2024-01-15",
                "locationOfIncident": "Site A",
                "causeOfIncident": "Not specified",
                "typeOfIncident": "Not specified",
                "statutoryViolationsCited": ["Not specified"],
            }
        }
    }


def test_extract_fields_malformed_output(client, provider):
    raw = "I am not JSON: RAW-PROVIDER-TEXT"
    provider.responses.append(chat_response(raw))

    resp = client.post("/api/incidents/extract-fields", json={"pdfText": "text"}, headers=_headers())

    assert resp.status_code == 502
    assert resp.json() == {
        "validationErrors": {"_errors": ["Failed to parse extracted fields from LLM response"]}
    }
    assert "RAW-PROVIDER-TEXT" not in resp.text


def test_extract_fields_passes_through_untyped_values(client, provider):
    provider.responses.append(
        chat_response(json.dumps({"dateOfInjury": 20240115, "statutoryViolationsCited": ["OSHA 1926.451", None]}))
    )

    resp = client.post("/api/incidents/extract-fields", json={"pdfText": "text"}, headers=_headers())

    assert resp.status_code == 200
    fields = resp.json()["data"]["extractedFields"]
    assert fields["dateOfInjury"] == 20240115
    assert fields["statutoryViolationsCited"] == ["OSHA 1926.451", None]
    assert fields["typeOfIncident"] == "Not specified"


def test_generate_success_and_history(client, provider, fake_store, incident_payload):
    provider.responses.extend([chat_response("S"), chat_response("A")])

    resp = client.post("/api/incidents/analyses", json=incident_payload, headers=_headers())

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["summary"] == "S"
    assert data["analysis"] == "A"
    assert data["id"] == fake_store.records[0].id

    history = client.get("/api/incidents/analyses", headers=_headers()).json()["data"]["history"]
    assert len(history) == 1
    item = history[0]
    assert item["id"] == data["id"]
    assert item["summary"] == "S"
    assert item["userId"] == "user_1"
    assert item["statutoryViolationsCited"] == ["OSHA 1926.451"]
    assert "analysis" not in item
    assert "createdAt" in item and "updatedAt" in item


def test_generate_analysis_failure_reports_error_and_persists_nothing(client, provider, fake_store, incident_payload):
    provider.responses.extend([chat_response("S"), httpx.Response(500)])

    resp = client.post("/api/incidents/analyses", json=incident_payload, headers=_headers())

    assert resp.status_code == 502
    assert resp.json() == {"validationErrors": {"_errors": ["LLM API error: 500 Internal Server Error"]}}
    assert fake_store.records == []


def test_history_is_scoped_to_caller(client, provider, fake_store, incident_payload):
    provider.responses.extend([chat_response(text) for text in ("S1", "A1", "S2", "A2")])
    client.post("/api/incidents/analyses", json=incident_payload, headers=_headers("user_1"))
    client.post("/api/incidents/analyses", json=incident_payload, headers=_headers("user_2"))

    history = client.get("/api/incidents/analyses", headers=_headers("user_2")).json()["data"]["history"]

    assert [item["summary"] for item in history] == ["S2"]


def test_get_single_analysis(client, provider, fake_store, incident_payload):
    provider.responses.extend([chat_response("S"), chat_response("A")])
    record_id = client.post("/api/incidents/analyses", json=incident_payload, headers=_headers()).json()["data"]["id"]

    own = client.get(f"/api/incidents/analyses/{record_id}", headers=_headers())
    other = client.get(f"/api/incidents/analyses/{record_id}", headers=_headers("user_2"))

    assert own.status_code == 200
    assert own.json()["data"]["record"]["id"] == record_id
    assert other.status_code == 404
    assert other.json() == {"validationErrors": {"_errors": ["Incident analysis not found"]}}
