"""
Pattern Matcher
===============

Decides how an entry URL is delivered by evaluating two ordered lists of
regular expressions: "post as link" rules first, then "upload as image"
rules. Anything that matches neither is delivered as a rich embed.

Patterns may be plain Python regular expressions or PCRE-style delimited
expressions such as ``/imgur\\.com/i``, the form most operators copy from
PHP-based feed readers.
"""

import re
from enum import Enum
from typing import List, Optional, Sequence

from ..utils.exceptions import PatternError
from ..utils.logging import get_logger_for_component


class DeliveryMode(str, Enum):
    """Shape in which an entry is delivered."""
    AS_LINK = "link"
    AS_IMAGE = "image"
    AS_EMBED = "embed"


# Delimiters accepted for PCRE-style patterns, with their closing counterpart
PCRE_DELIMITERS = {"/": "/", "#": "#", "~": "~", "%": "%", "!": "!", "@": "@"}

PCRE_FLAGS = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
    "x": re.VERBOSE,
    "u": 0,  # str patterns are always unicode-aware
}

_FLAG_SUFFIX = re.compile(r"[imsxu]*")


def split_patterns(blob: Optional[str]) -> List[str]:
    """Split a newline-separated configuration blob into trimmed, non-empty patterns."""
    if not blob:
        return []
    return [line.strip() for line in blob.splitlines() if line.strip()]


def compile_pattern(raw: str) -> "re.Pattern[str]":
    """Compile a plain or PCRE-delimited pattern.

    Raises:
        PatternError: If the delimiters are malformed or the expression does not compile
    """
    body, flags = _unwrap_delimited(raw)
    try:
        return re.compile(body, flags)
    except re.error as e:
        raise PatternError(f"Cannot compile '{raw}': {e}", pattern=raw) from e


def _unwrap_delimited(raw: str):
    """Return (body, flags) for ``/body/flags`` patterns, else (raw, 0).

    A pattern that opens with a delimiter must close it and may only be
    followed by known modifiers, so ``/imgur\\.com`` and ``/images/png``
    are rejected rather than searched as plain text.

    Raises:
        PatternError: If the delimited form is malformed
    """
    closing = PCRE_DELIMITERS.get(raw[:1])
    if closing is None:
        return raw, 0

    end = raw.rfind(closing)
    if end <= 0:
        raise PatternError(f"No ending delimiter '{closing}' in '{raw}'", pattern=raw)

    suffix = raw[end + 1:]
    if not _FLAG_SUFFIX.fullmatch(suffix):
        unknown = next(letter for letter in suffix if letter not in PCRE_FLAGS)
        raise PatternError(f"Unknown modifier '{unknown}' in '{raw}'", pattern=raw)

    flags = 0
    for letter in suffix:
        flags |= PCRE_FLAGS[letter]

    return raw[1:end], flags


class PatternMatcher:
    """Classifies entry URLs against ordered link and image rule sets."""

    def __init__(self):
        self.logger = get_logger_for_component("pattern_matcher")

    def classify(
        self,
        url: str,
        link_patterns: Sequence[str],
        image_patterns: Sequence[str],
    ) -> DeliveryMode:
        """Return the delivery mode for ``url``.

        Link rules are evaluated before image rules and the first match wins,
        so a URL matching both sets is always delivered as a link.
        """
        if self.first_match(url, link_patterns) is not None:
            return DeliveryMode.AS_LINK

        if self.first_match(url, image_patterns) is not None:
            return DeliveryMode.AS_IMAGE

        return DeliveryMode.AS_EMBED

    def first_match(self, url: str, patterns: Sequence[str]) -> Optional[str]:
        """Return the first pattern that matches ``url``, skipping broken ones."""
        for raw in patterns:
            if not raw:
                continue
            try:
                if compile_pattern(raw).search(url):
                    return raw
            except PatternError as e:
                self.logger.warning(f"⚠️ Skipping invalid pattern: {e}", extra=e.to_dict())
        return None
