"""Fixtures for API route tests."""

from collections.abc import Iterator
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.api.app import create_app
from src.config.settings import Settings, get_settings
from src.services.elevenlabs_client import ElevenLabsClient, get_elevenlabs_client


@pytest.fixture
def app(settings: Settings) -> FastAPI:
    """Create test FastAPI app with injected settings."""
    application = create_app()
    application.dependency_overrides[get_settings] = lambda: settings
    return application


@pytest.fixture
def upstream() -> AsyncMock:
    """Mock ElevenLabs client injected into the routes."""
    return AsyncMock(spec=ElevenLabsClient)


@pytest.fixture
def client(app: FastAPI, upstream: AsyncMock) -> Iterator[TestClient]:
    """Test client whose routes talk to the mock upstream."""
    app.dependency_overrides[get_elevenlabs_client] = lambda: upstream
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def unconfigured_client(app: FastAPI) -> Iterator[TestClient]:
    """Test client with no ElevenLabs credentials."""
    app.dependency_overrides[get_elevenlabs_client] = lambda: None
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
