"""
Pytest configuration and fixtures for testing.

This module provides the application, test client and hub fixtures
shared by unit and integration tests.
"""

import os

import pytest

# Keep test runs from writing the error log into the working tree
os.environ.setdefault("LOG_FILE_PATH", "")


@pytest.fixture
def hub_app():
    """
    Provides a fully configured application.

    Returns:
        FastAPI: Application created by the factory.
    """
    from chathub import application

    return application()


@pytest.fixture
def client(hub_app):
    """
    Provides a test client with lifespan events.

    The client is used as a context manager so every websocket session
    shares one event loop, like connections on a real server.

    Yields:
        TestClient: FastAPI test client instance.
    """
    from fastapi.testclient import TestClient

    with TestClient(hub_app) as test_client:
        yield test_client


@pytest.fixture
def registry(hub_app):
    """Provides the ConnectionRegistry owned by hub_app."""
    return hub_app.state.registry


@pytest.fixture
def hub_path():
    from chathub.settings import app_settings

    return app_settings.HUB_PATH
