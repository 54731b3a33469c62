"""
PyTest Configuration and Fixtures
=================================

Shared fixtures and configuration for Feedhook tests.
No test talks to the network; see ``tests/fakes.py``.
"""

import io
import os
import sys
from pathlib import Path

import pytest

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Set test environment variables before any imports
os.environ["FEEDHOOK_WEBHOOK__URL"] = "https://discord.test/api/webhooks/default"
os.environ["FEEDHOOK_WEBHOOK__USERNAME"] = "FeedBot"
os.environ["FEEDHOOK_WEBHOOK__AVATAR_URL"] = "https://cdn.test/avatar.png"
os.environ["FEEDHOOK_LOGGING__FILE_PATH"] = ""
os.environ["FEEDHOOK_DEBUG"] = "true"

from tests.fakes import FakeSessionFactory


# ============================================================================
# Fake HTTP transport
# ============================================================================


@pytest.fixture
def session_factory():
    """Fake HTTP session factory with an empty response queue."""
    return FakeSessionFactory()


# ============================================================================
# Images
# ============================================================================


def make_image_bytes(image_format: str = "PNG", size=(4, 4)) -> bytes:
    from PIL import Image

    buffer = io.BytesIO()
    Image.new("RGB", size, color=(39, 193, 75)).save(buffer, format=image_format)
    return buffer.getvalue()


@pytest.fixture(scope="session")
def png_bytes() -> bytes:
    """A real, tiny PNG image."""
    return make_image_bytes("PNG")


@pytest.fixture(scope="session")
def jpeg_bytes() -> bytes:
    """A real, tiny JPEG image."""
    return make_image_bytes("JPEG")


# ============================================================================
# Entries and settings
# ============================================================================


@pytest.fixture
def sample_entry():
    """Entry delivered as an embed under default rules."""
    from feedhook.processing.entry import FeedEntry, FeedInfo, Thumbnail

    return FeedEntry(
        link="https://blog.example.com/posts/42",
        title="Release 4.2 is out",
        content="<p>Hello <b>world</b></p><p>Second paragraph.</p>",
        is_read=False,
        published_ms=1704110400000,  # 2024-01-01T12:00:00Z
        thumbnail=Thumbnail(url="https://blog.example.com/thumb.jpg", width=640),
        feed=FeedInfo(name="Example Blog", website="https://blog.example.com/", category="Tech"),
    )


@pytest.fixture
def make_settings():
    """Build settings with webhook overrides, independent of the environment."""
    from feedhook.config.settings import FeedhookSettings, LoggingSettings, WebhookSettings

    def _make(**webhook_overrides) -> FeedhookSettings:
        webhook = {
            "url": "https://discord.test/api/webhooks/default",
            "username": "FeedBot",
            "avatar_url": "https://cdn.test/avatar.png",
        }
        webhook.update(webhook_overrides)
        return FeedhookSettings(
            webhook=WebhookSettings(**webhook),
            logging=LoggingSettings(file_path=None),
            debug=False,
        )

    return _make


@pytest.fixture
def test_settings(make_settings):
    """Settings with default rules and the default test endpoint."""
    return make_settings()
