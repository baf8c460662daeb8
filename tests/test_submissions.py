"""
Submission route tests
"""

import re
import pytest
from unittest.mock import AsyncMock, patch


@pytest.fixture
def activity_db():
    with patch("aimarker.services.activity_service.ActivityLogDatabase") as db:
        db.create_log = AsyncMock(return_value="log-id")
        yield db


def test_submit_question(client, auth_headers, activity_db):
    response = client.post("/api/aimarker/submit", headers=auth_headers, json={
        "question": "Explain how enzymes are affected by temperature.",
        "subject": "Biology",
        "level": "GCSE"
    })

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "processing"
    assert re.fullmatch(r"sub_\d+_[0-9a-z]{9}", data["submission_id"])

    entry = activity_db.create_log.await_args.args[0]
    assert entry['action'] == "SUBMIT_QUESTION"
    assert entry['details']['subject'] == "Biology"
    assert entry['details']['submission_id'] == data["submission_id"]


def test_short_question_rejected(client, auth_headers, activity_db):
    response = client.post("/api/aimarker/submit", headers=auth_headers, json={"question": "Too short"})
    assert response.status_code == 400
    assert response.json()["message"] == "Question must be at least 10 characters"
    activity_db.create_log.assert_not_awaited()


def test_requires_auth(client):
    response = client.post("/api/aimarker/submit", json={"question": "A long enough question"})
    assert response.status_code == 401
