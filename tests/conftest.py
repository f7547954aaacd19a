"""Pytest configuration and fixtures."""

from typing import Optional

import pytest
from fastapi.testclient import TestClient

from app.api.dependencies import get_photo_import_service
from app.config import PhotoImportConfig
from app.main import app
from app.services.completion_gateway import CompletionGateway
from app.services.photo_import import PhotoImportService
from tests.fakes import FakeGateway


@pytest.fixture
def config() -> PhotoImportConfig:
    """Configured pipeline settings."""
    return PhotoImportConfig(api_key="test-gemini-key", concurrency=3)


@pytest.fixture
def fake_gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def client():
    """Create test client."""
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def use_service():
    """Route photo endpoints to a service built on the given gateway/config."""

    def _use(gateway: CompletionGateway, config: Optional[PhotoImportConfig] = None) -> PhotoImportService:
        service = PhotoImportService(config or PhotoImportConfig(api_key="test-gemini-key"), gateway=gateway)
        app.dependency_overrides[get_photo_import_service] = lambda: service
        return service

    yield _use
    app.dependency_overrides.clear()
