"""
Pytest configuration for AI Marker API tests
"""

import uuid
import pytest
from fastapi.testclient import TestClient

from aimarker.utils.rate_limit import reset_rate_limits
from aimarker.utils.security import get_security_utils

pytest_plugins = ('pytest_asyncio',)


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "asyncio: mark test as an asyncio test."
    )


@pytest.fixture(autouse=True)
def clear_rate_limits():
    """Every test starts with empty in-process counters"""
    reset_rate_limits()
    yield
    reset_rate_limits()


@pytest.fixture
def client():
    """Test client; the lifespan (database startup) is not run"""
    from aimarker.main import app
    return TestClient(app)


@pytest.fixture
def user():
    return {'id': str(uuid.uuid4()), 'username': 'student1', 'role': 'user'}


@pytest.fixture
def auth_headers(user):
    token = get_security_utils().generate_access_token(user)
    return {"Authorization": f"Bearer {token}"}
