import pytest

from incident_analysis.models.user import AuthContext
from tests.helpers import FakeIncidentStore


@pytest.fixture
def store() -> FakeIncidentStore:
    return FakeIncidentStore()


@pytest.fixture
def auth() -> AuthContext:
    return AuthContext(user_id="user_1")


@pytest.fixture
def anonymous() -> AuthContext:
    return AuthContext.anonymous()


@pytest.fixture
def incident_payload() -> dict:
    return {
        "dateOfInjury": "2024-01-15",
        "locationOfIncident": "Site A",
        "causeOfIncident": "Fall",
        "typeOfIncident": "Accident",
        "statutoryViolationsCited": ["OSHA 1926.451"],
        "pdfText": "worker fell...",
    }
