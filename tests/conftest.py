"""Shared pytest fixtures and configuration."""

import pytest

from beatreel.core.config import Settings
from beatreel.core.logging_config import get_logger
from beatreel.models.schemas import PaddingPolicy


@pytest.fixture
def settings():
    """Create test settings instance."""
    return Settings()


@pytest.fixture
def mock_settings():
    """Settings for scripts whose media files do not exist on disk."""
    return Settings(allow_missing_media=True)


@pytest.fixture
def logger():
    """Create test logger instance."""
    return get_logger(__name__)


@pytest.fixture
def zero_padding():
    """Padding policy that adds no silence anywhere."""
    return PaddingPolicy(default_padding=0, closing_padding=0, intro_padding=0, outro_padding=0)
