"""
Image Fetcher
=============

Downloads an image referenced by an entry and verifies that the bytes really
are an image before they are uploaded to a webhook.

- Redirects are followed hop by hop, up to a configurable number of hops
- A single deadline covers every hop and the streamed body read
- Pillow identifies the format, which also gives the MIME type
"""

import io
import mimetypes
import time
from typing import Callable, Optional
from urllib.parse import unquote, urljoin, urlparse

import requests
from PIL import Image, UnidentifiedImageError

from ..utils.exceptions import ErrorCode, ImageDecodeError, TransportError
from ..utils.logging import get_logger_for_component
from .models import FetchedImage

CHUNK_SIZE = 64 * 1024
DEFAULT_FILENAME = "image"


def filename_from_url(url: str, mime_type: Optional[str] = None) -> str:
    """Last path segment of ``url``, percent-decoded.

    Falls back to ``image`` plus an extension guessed from ``mime_type`` when
    the URL path ends with a slash or is empty.
    """
    name = unquote(urlparse(url).path.rsplit("/", 1)[-1])
    if name:
        return name

    extension = mimetypes.guess_extension(mime_type) if mime_type else None
    return DEFAULT_FILENAME + (extension or "")


class ImageFetcher:
    """Downloads and validates images for upload."""

    def __init__(
        self,
        timeout: float = 10.0,
        max_redirects: int = 5,
        user_agent: str = "Feedhook/1.0",
        session_factory: Callable[[], requests.Session] = requests.Session,
    ):
        """Initialize image fetcher.

        Args:
            timeout: Total download deadline in seconds
            max_redirects: Maximum number of redirects to follow
            user_agent: User-Agent header value
            session_factory: Creates the HTTP session used for one download
        """
        self.timeout = timeout
        self.max_redirects = max_redirects
        self.user_agent = user_agent
        self.session_factory = session_factory
        self.logger = get_logger_for_component("image_fetcher")

    def fetch(self, url: str) -> Optional[FetchedImage]:
        """Download ``url`` and return the verified image, or ``None``.

        Download failures and undecodable content are logged, never raised.
        """
        log = self.logger.bind(image_url=url)

        try:
            data = self._download(url)
        except TransportError as e:
            log.warning(f"❌ Image download failed for {url}: {e}", extra=e.to_dict())
            return None

        try:
            mime_type = self._detect_mime_type(data, url)
        except ImageDecodeError as e:
            log.warning(f"⚠️ Invalid image format at {url}: {e}", extra=e.to_dict())
            return None

        image = FetchedImage(
            data=data,
            filename=filename_from_url(url, mime_type),
            mime_type=mime_type,
            source_url=url,
        )
        log.debug(f"Fetched image {image.filename} ({image.mime_type}, {image.size} bytes)")
        return image

    def _download(self, url: str) -> bytes:
        deadline = time.monotonic() + self.timeout
        current_url = url

        try:
            with self.session_factory() as session:
                session.headers.update({"User-Agent": self.user_agent})

                for hop in range(self.max_redirects + 1):
                    remaining = self._remaining(deadline, url)
                    with session.get(
                        current_url, timeout=remaining, stream=True, allow_redirects=False
                    ) as response:
                        if response.is_redirect:
                            current_url = urljoin(current_url, response.headers["Location"])
                            self.logger.debug(f"Redirect {hop + 1} for {url} -> {current_url}")
                            continue
                        if not 200 <= response.status_code < 300:
                            raise TransportError(
                                f"Unexpected HTTP status {response.status_code}",
                                url=url,
                                status_code=response.status_code,
                                error_code=ErrorCode.IMAGE_DOWNLOAD_FAILED,
                            )
                        return self._read_body(response, deadline, url)

                raise TransportError(
                    f"More than {self.max_redirects} redirects",
                    url=url,
                    error_code=ErrorCode.IMAGE_DOWNLOAD_FAILED,
                )

        except requests.Timeout as e:
            raise TransportError(
                f"Timed out after {self.timeout}s",
                url=url,
                error_code=ErrorCode.DELIVERY_TIMEOUT,
            ) from e
        except requests.RequestException as e:
            raise TransportError(
                f"Request failed: {e}",
                url=url,
                error_code=ErrorCode.IMAGE_DOWNLOAD_FAILED,
            ) from e

    def _remaining(self, deadline: float, url: str) -> float:
        """Seconds left before ``deadline``.

        Raises:
            TransportError: If the deadline has already passed
        """
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise TransportError(
                f"Download exceeded {self.timeout}s deadline",
                url=url,
                error_code=ErrorCode.DELIVERY_TIMEOUT,
            )
        return remaining

    def _read_body(self, response, deadline: float, url: str) -> bytes:
        # The socket read timeout was capped at the remaining time when the hop was sent
        buffer = io.BytesIO()
        for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
            self._remaining(deadline, url)
            if chunk:
                buffer.write(chunk)
        return buffer.getvalue()

    def _detect_mime_type(self, data: bytes, url: str) -> str:
        """Return the MIME type of ``data``.

        Raises:
            ImageDecodeError: If Pillow cannot identify or verify the image
        """
        if not data:
            raise ImageDecodeError("Empty response body", image_url=url)

        try:
            with Image.open(io.BytesIO(data)) as img:
                image_format = img.format
                img.verify()
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError, ValueError) as e:
            raise ImageDecodeError(f"Not a decodable image: {e}", image_url=url) from e

        if not image_format:
            raise ImageDecodeError("Unknown image format", image_url=url)

        return Image.MIME.get(image_format, f"image/{image_format.lower()}")
