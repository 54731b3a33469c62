"""
Message Composer
================

Builds the webhook message for an entry according to its delivery mode:
a bare link, nothing (images go through the upload path) or a rich embed
card with title, description, author, footer and optional thumbnail.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union
from urllib.parse import urlparse

from ..config.settings import DEFAULT_DESCRIPTION_LIMIT, DEFAULT_EMBED_COLOR
from ..routing.pattern_matcher import DeliveryMode
from ..utils.logging import get_logger_for_component
from .html_text import HtmlTextConverter
from .models import ContentPayload, EmbedPayload, Identity, build_embed_list

FAVICON_SERVICE = "https://favicon.im/"
ELLIPSIS = "..."


def truncate_text(text: str, limit: int) -> str:
    """Shorten ``text`` to at most ``limit`` characters plus an ellipsis.

    A word cut in half is dropped entirely. When the cut lands right before a
    space the prefix is kept whole. A single word longer than ``limit``
    leaves only the ellipsis.
    """
    if len(text) <= limit:
        return text

    prefix = text[:limit]
    if not text[limit].isspace():
        last_space = prefix.rfind(" ")
        prefix = prefix[:last_space] if last_space >= 0 else ""

    return prefix.rstrip() + ELLIPSIS


def favicon_url(website: Optional[str]) -> str:
    """Favicon service URL for the host of ``website``."""
    host = urlparse(website or "").hostname or ""
    return FAVICON_SERVICE + host


def iso_timestamp(epoch_ms: int) -> str:
    """ISO-8601 UTC timestamp with seconds precision, e.g. ``2024-01-01T12:00:00+00:00``."""
    return datetime.fromtimestamp(epoch_ms / 1000, tz=timezone.utc).isoformat(timespec="seconds")


class MessageComposer:
    """Turns an entry into the payload matching its delivery mode."""

    def __init__(
        self,
        description_limit: int = DEFAULT_DESCRIPTION_LIMIT,
        embed_color: int = DEFAULT_EMBED_COLOR,
        html_converter: Optional[HtmlTextConverter] = None,
    ):
        """Initialize message composer.

        Args:
            description_limit: Maximum embed description length before the ellipsis
            embed_color: Embed side-bar colour as an integer
            html_converter: HTML to text converter, a default one is created if omitted
        """
        self.description_limit = description_limit
        self.embed_color = embed_color
        self.html_converter = html_converter or HtmlTextConverter()
        self.logger = get_logger_for_component("message_composer")

    def compose(
        self, entry, mode: DeliveryMode, identity: Identity
    ) -> Union[ContentPayload, EmbedPayload, None]:
        """Build the payload for ``entry``.

        Returns:
            ``ContentPayload`` for links, ``EmbedPayload`` for embeds and
            ``None`` for images, which are fetched and uploaded separately
        """
        if mode == DeliveryMode.AS_LINK:
            return ContentPayload(text=entry.link)

        if mode == DeliveryMode.AS_IMAGE:
            return None

        return build_embed_list([self.build_embed(entry, identity)])

    def build_embed(self, entry, identity: Identity) -> Dict[str, Any]:
        """Build a single embed object for ``entry``."""
        description = truncate_text(
            self.html_converter.to_text(entry.content or ""), self.description_limit
        )

        embed: Dict[str, Any] = {
            "url": entry.link,
            "title": entry.title,
            "color": self.embed_color,
            "description": description,
            "timestamp": iso_timestamp(entry.published_ms),
            "author": {
                "name": entry.feed.name,
                "icon_url": favicon_url(entry.feed.website),
            },
            "footer": {
                "text": identity.username,
                "icon_url": identity.avatar_url,
            },
        }

        thumbnail = self._thumbnail(entry)
        if thumbnail:
            embed["thumbnail"] = thumbnail

        self.logger.debug(
            f"Composed embed for {entry.link} ({len(description)} chars of description)"
        )
        return embed

    @staticmethod
    def _thumbnail(entry) -> Optional[Dict[str, Any]]:
        thumbnail = entry.thumbnail
        if thumbnail is None or not thumbnail.url:
            return None

        data: Dict[str, Any] = {"url": thumbnail.url}
        if thumbnail.width is not None:
            data["width"] = thumbnail.width
        if thumbnail.height is not None:
            data["height"] = thumbnail.height
        return data
