"""
Shared fixtures for the student portal tests.

- app / client: Flask app built with TestConfig
- auth_headers: bearer token for student 42 signed with the test JWT secret
- issue_headers: signs a token on demand (inside freeze_time blocks, so iat
  is not in the future)
- fake_backend: MagicMock standing in for PortalApiClient, wired into the
  portal_api extension so routes never hit the network
- make_application / make_event: record factories with sane defaults
"""

import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest

# Add the project root directory to Python path
project_root = Path(__file__).parent.parent
sys.path.append(str(project_root))

from flask_jwt_extended import create_access_token  # noqa: E402

from app import create_app  # noqa: E402
from config import TestConfig  # noqa: E402
from extensions import portal_api  # noqa: E402
from models.application import Application  # noqa: E402
from models.calendar_event import CalendarEvent  # noqa: E402
from services.portal_api import PortalApiClient  # noqa: E402

STUDENT_ID = 42


@pytest.fixture
def app():
    return create_app(TestConfig)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def issue_headers(app):
    def issue(identity=STUDENT_ID):
        with app.app_context():
            token = create_access_token(identity=str(identity))
        return {"Authorization": f"Bearer {token}"}

    return issue


@pytest.fixture
def auth_headers(issue_headers):
    return issue_headers()


@pytest.fixture
def fake_backend(monkeypatch):
    backend = MagicMock(spec=PortalApiClient)
    tokens = []

    def client(token=None):
        tokens.append(token)
        return backend

    monkeypatch.setattr(portal_api, "client", client)
    backend.seen_tokens = tokens
    return backend


@pytest.fixture
def make_application():
    def factory(**fields):
        data = {
            "id": "64f0c0ffee0000000000abcd",
            "status": "draft",
            "stage": "profile_review",
            "universitySelections": [],
            "offerLetters": [],
            "createdAt": "2025-01-05T10:00:00",
            "updatedAt": "2025-01-05T10:00:00",
        }
        data.update(fields)
        return Application.model_validate(data)

    return factory


@pytest.fixture
def make_event():
    def factory(**fields):
        data = {
            "id": "evt-1",
            "title": "Consultation",
            "eventType": "appointment",
            "startDate": "2025-03-10T09:00:00",
            "endDate": "2025-03-10T10:00:00",
            "status": "scheduled",
            "priority": "medium",
            "createdBy": STUDENT_ID,
        }
        data.update(fields)
        return CalendarEvent.model_validate(data)

    return factory
