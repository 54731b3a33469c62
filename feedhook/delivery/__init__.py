"""
Feedhook Delivery
=================

Message composition, image download and webhook delivery.
"""

from .models import (
    ContentPayload,
    DeliveryOutcome,
    DeliveryStatus,
    DeliveryTarget,
    EmbedPayload,
    FetchedImage,
    Identity,
)
from .html_text import HtmlTextConverter
from .message_composer import MessageComposer, truncate_text, favicon_url, iso_timestamp
from .image_fetcher import ImageFetcher, filename_from_url
from .webhook_dispatcher import WebhookDispatcher, generate_boundary

__all__ = [
    "ContentPayload",
    "DeliveryOutcome",
    "DeliveryStatus",
    "DeliveryTarget",
    "EmbedPayload",
    "FetchedImage",
    "Identity",
    "HtmlTextConverter",
    "MessageComposer",
    "truncate_text",
    "favicon_url",
    "iso_timestamp",
    "ImageFetcher",
    "filename_from_url",
    "WebhookDispatcher",
    "generate_boundary",
]
