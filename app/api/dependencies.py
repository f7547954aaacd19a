"""Shared API dependencies."""

from app.config import settings
from app.services.photo_import import PhotoImportService


def get_photo_import_service() -> PhotoImportService:
    """Get a photo import service bound to the current settings."""
    return PhotoImportService(settings.photo_import_config())
