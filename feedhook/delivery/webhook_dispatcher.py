"""
Webhook Dispatcher
==================

Posts messages to Discord-compatible webhook endpoints.

Two delivery contracts:
- JSON messages (plain content or embeds), fire-and-forget
- Multipart image uploads, with a link fallback when the endpoint rejects
  the file as too large (HTTP 413)

Each request runs in its own ``requests.Session`` which is closed on every
exit path.
"""

import json
import uuid
from typing import Any, Callable, Dict, Optional

import requests
from urllib3 import encode_multipart_formdata

from ..utils.exceptions import ErrorCode, PayloadTooLargeError, TransportError
from ..utils.logging import get_logger_for_component
from .models import (
    ContentPayload,
    DeliveryOutcome,
    DeliveryTarget,
    FetchedImage,
    JsonPayload,
)

BOUNDARY_PREFIX = "----Feedhook-Webhook-"


def generate_boundary() -> str:
    """Multipart boundary, unique per request."""
    return BOUNDARY_PREFIX + uuid.uuid4().hex


class WebhookDispatcher:
    """Delivers payloads to webhook endpoints."""

    def __init__(
        self,
        request_timeout: Optional[float] = 30.0,
        user_agent: str = "Feedhook/1.0",
        session_factory: Callable[[], requests.Session] = requests.Session,
    ):
        """Initialize webhook dispatcher.

        Args:
            request_timeout: POST timeout in seconds, ``None`` for the transport default
            user_agent: User-Agent header value
            session_factory: Creates the HTTP session used for one request
        """
        self.request_timeout = request_timeout
        self.user_agent = user_agent
        self.session_factory = session_factory
        self.logger = get_logger_for_component("webhook_dispatcher")

    def send_json(self, target: DeliveryTarget, payload: JsonPayload) -> DeliveryOutcome:
        """POST a JSON message.

        The response status is recorded on the outcome but not acted upon:
        once the request completes the message counts as delivered.
        """
        log = self.logger.bind(endpoint=target.endpoint)
        body = self._identity_fields(target)
        body.update(payload.to_body())

        try:
            status = self._post(
                target.endpoint,
                data=json.dumps(body).encode("utf-8"),
                headers={"Content-Type": "application/json"},
            )
        except TransportError as e:
            log.error(f"❌ Webhook message to {target.endpoint} failed: {e}", extra=e.to_dict())
            return DeliveryOutcome.transport_failed(str(e))

        log.debug(f"Posted {type(payload).__name__} to {target.endpoint} (HTTP {status})")
        return DeliveryOutcome.delivered(http_status=status)

    def send_file_upload(self, target: DeliveryTarget, image: FetchedImage) -> DeliveryOutcome:
        """POST an image as a multipart file upload.

        An HTTP 413 answer triggers a single fallback: the image URL is sent
        as a plain JSON message to the same endpoint and identity.
        """
        log = self.logger.bind(endpoint=target.endpoint, image_url=image.source_url)

        try:
            status = self._post_upload(target, image)

        except PayloadTooLargeError as e:
            log.warning(
                f"📦 Image too large for upload ({image.size} bytes): {image.source_url}, "
                f"posting link instead",
                extra=e.to_dict(),
            )
            fallback = self.send_json(target, ContentPayload(text=image.source_url))
            if fallback.succeeded:
                return DeliveryOutcome.delivered_with_fallback(http_status=fallback.http_status)
            return fallback

        except TransportError as e:
            log.error(f"❌ Image upload to {target.endpoint} failed: {e}", extra=e.to_dict())
            return DeliveryOutcome.transport_failed(str(e))

        if 200 <= status < 300:
            log.info(f"✅ Uploaded image {image.filename} from {image.source_url}")
            return DeliveryOutcome.delivered(http_status=status)

        log.error(
            f"❌ Image upload rejected with HTTP {status}: {image.source_url}",
            extra={"status_code": status, "error_code": ErrorCode.DELIVERY_MESSAGE_REJECTED.value},
        )
        return DeliveryOutcome.rejected(status)

    def _post_upload(self, target: DeliveryTarget, image: FetchedImage) -> int:
        fields = list(self._identity_fields(target).items())
        fields.append(("file", (image.filename, image.data, image.mime_type)))

        body, content_type = encode_multipart_formdata(fields, boundary=generate_boundary())

        status = self._post(target.endpoint, data=body, headers={"Content-Type": content_type})
        if status == 413:
            raise PayloadTooLargeError(
                f"Upload of {image.filename} rejected as too large",
                url=image.source_url,
                size=image.size,
            )
        return status

    def _post(self, endpoint: str, data: bytes, headers: Dict[str, str]) -> int:
        """POST ``data`` in a dedicated session and return the HTTP status."""
        try:
            with self.session_factory() as session:
                session.headers.update({"User-Agent": self.user_agent})
                response = session.post(endpoint, data=data, headers=headers, timeout=self.request_timeout)
                return response.status_code

        except requests.Timeout as e:
            raise TransportError(
                f"Request timed out: {e}",
                url=endpoint,
                error_code=ErrorCode.DELIVERY_TIMEOUT,
            ) from e
        except requests.RequestException as e:
            raise TransportError(f"Request failed: {e}", url=endpoint) from e

    @staticmethod
    def _identity_fields(target: DeliveryTarget) -> Dict[str, Any]:
        return {
            "username": target.identity.username,
            "avatar_url": target.identity.avatar_url,
        }
