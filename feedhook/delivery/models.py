"""
Delivery Models
===============

Value objects exchanged between the composer, the image fetcher and the
webhook dispatcher. All of them are immutable and built fresh per entry.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union


@dataclass(frozen=True)
class Identity:
    """Username and avatar the message is posted under."""
    username: str
    avatar_url: str = ""


@dataclass(frozen=True)
class DeliveryTarget:
    """Where a message goes and who it appears to come from."""
    endpoint: str
    identity: Identity


@dataclass(frozen=True)
class ContentPayload:
    """Plain text message, used for link delivery and the 413 fallback."""
    text: str

    def to_body(self) -> Dict[str, Any]:
        return {"content": self.text}


@dataclass(frozen=True)
class EmbedPayload:
    """Rich card message carrying one or more embed objects."""
    embeds: Tuple[Dict[str, Any], ...]

    def to_body(self) -> Dict[str, Any]:
        return {"embeds": [dict(embed) for embed in self.embeds]}


JsonPayload = Union[ContentPayload, EmbedPayload]


@dataclass(frozen=True)
class FetchedImage:
    """Downloaded and verified image, ready for multipart upload."""
    data: bytes = field(repr=False)
    filename: str
    mime_type: str
    source_url: str

    @property
    def size(self) -> int:
        return len(self.data)


class DeliveryStatus(str, Enum):
    """Terminal status of a single delivery attempt."""
    DELIVERED = "delivered"
    DELIVERED_WITH_FALLBACK = "delivered_with_fallback"
    REJECTED = "rejected"
    TRANSPORT_FAILED = "transport_failed"


@dataclass(frozen=True)
class DeliveryOutcome:
    """Result of a webhook delivery. Logged and returned, never persisted."""
    status: DeliveryStatus
    http_status: Optional[int] = None
    cause: Optional[str] = None

    @classmethod
    def delivered(cls, http_status: Optional[int] = None) -> "DeliveryOutcome":
        return cls(DeliveryStatus.DELIVERED, http_status=http_status)

    @classmethod
    def delivered_with_fallback(cls, http_status: Optional[int] = None) -> "DeliveryOutcome":
        return cls(DeliveryStatus.DELIVERED_WITH_FALLBACK, http_status=http_status)

    @classmethod
    def rejected(cls, http_status: int) -> "DeliveryOutcome":
        return cls(DeliveryStatus.REJECTED, http_status=http_status)

    @classmethod
    def transport_failed(cls, cause: str) -> "DeliveryOutcome":
        return cls(DeliveryStatus.TRANSPORT_FAILED, cause=cause)

    @property
    def succeeded(self) -> bool:
        """True when the remote endpoint received a message."""
        return self.status in (DeliveryStatus.DELIVERED, DeliveryStatus.DELIVERED_WITH_FALLBACK)

    def __str__(self) -> str:
        if self.status == DeliveryStatus.REJECTED:
            return f"{self.status.value}({self.http_status})"
        if self.status == DeliveryStatus.TRANSPORT_FAILED:
            return f"{self.status.value}({self.cause})"
        return self.status.value


def build_embed_list(embeds: List[Dict[str, Any]]) -> EmbedPayload:
    """Wrap a list of embed dicts into an :class:`EmbedPayload`."""
    return EmbedPayload(embeds=tuple(embeds))
