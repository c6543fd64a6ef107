"""
Pytest configuration and fixtures for backend tests.

This module provides the core testing infrastructure including:
- A signing key for access tokens issued in tests
- Test client for WebSocket and HTTP integration tests
"""

import os

os.environ.setdefault("SECRET_KEY", "pairchat-test-secret")

from collections.abc import Iterator  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from pairchat.main import app  # noqa: E402


@pytest.fixture
def client() -> Iterator[TestClient]:
    """
    Create a test client bound to a freshly started application.

    Entering the client runs the startup hook, so every test gets its own
    chat hub.

    Usage:
        def test_stats(client: TestClient):
            response = client.get("/api/v1/chat/stats")
            assert response.status_code == 200
    """
    with TestClient(app) as test_client:
        yield test_client
