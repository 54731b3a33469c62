"""
Feedhook - Feed Entry Webhook Delivery
======================================

Delivers newly ingested feed entries to Discord-compatible chat webhooks.

Main Components:
- Routing: link/image/embed classification and per-category endpoints
- Delivery: embed composition, image download, JSON and multipart posting
- Processing: the per-entry dispatch pipeline called by the host
- Configuration: environment variables with Pydantic validation
"""

__version__ = "1.0.0"
__author__ = "Feedhook Development Team"
__description__ = "Feed entry delivery to chat webhooks"

# Core imports for easy access
from .config.settings import get_settings
from .processing.pipeline import EntryDispatchPipeline
from .processing.entry import FeedEntry
from .utils.logging import configure_application_logging, get_logger_for_component
from .utils.exceptions import FeedhookError

__all__ = [
    "get_settings",
    "EntryDispatchPipeline",
    "FeedEntry",
    "configure_application_logging",
    "get_logger_for_component",
    "FeedhookError",
]
