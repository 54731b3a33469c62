"""
Entry Dispatch Pipeline
=======================

Orchestrates delivery of a single ingested entry:
filter already-read entries, classify the link, route by category, compose
the message and hand it to the webhook dispatcher.

States: RECEIVED -> FILTERED -> ROUTED -> COMPOSED -> DELIVERED | FAILED,
with SKIPPED as terminal state for filtered entries. Nothing raised while
dispatching reaches the host; failures are logged and reported on the
:class:`DispatchResult`.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

import requests

from ..config.settings import FeedhookSettings, get_settings
from ..delivery.image_fetcher import ImageFetcher
from ..delivery.message_composer import MessageComposer
from ..delivery.models import DeliveryOutcome, DeliveryTarget, Identity
from ..delivery.webhook_dispatcher import WebhookDispatcher
from ..routing.category_router import CategoryRouter
from ..routing.pattern_matcher import DeliveryMode, PatternMatcher, split_patterns
from ..utils.exceptions import ConfigurationError, ErrorCode, FeedhookError, handle_exception
from ..utils.logging import PerformanceLogger, get_logger_for_component
from .entry import EntryView


class DispatchState(str, Enum):
    """Lifecycle states of one entry dispatch."""
    RECEIVED = "received"
    FILTERED = "filtered"
    ROUTED = "routed"
    COMPOSED = "composed"
    DELIVERED = "delivered"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class DispatchResult:
    """Per-entry report of what the pipeline did."""
    entry_link: Optional[str] = None
    state: DispatchState = DispatchState.RECEIVED
    mode: Optional[DeliveryMode] = None
    target: Optional[DeliveryTarget] = None
    outcome: Optional[DeliveryOutcome] = None
    error: Optional[FeedhookError] = None

    @property
    def endpoint(self) -> Optional[str]:
        return self.target.endpoint if self.target else None


class EntryDispatchPipeline:
    """Delivers ingested entries to their webhook endpoints."""

    def __init__(
        self,
        settings: Optional[FeedhookSettings] = None,
        session_factory: Callable[[], requests.Session] = requests.Session,
        pattern_matcher: Optional[PatternMatcher] = None,
        category_router: Optional[CategoryRouter] = None,
    ):
        """Initialize dispatch pipeline.

        Args:
            settings: Fixed settings; when omitted the cached global settings
                are read at the start of every dispatch
            session_factory: Creates HTTP sessions for downloads and webhook posts
            pattern_matcher: Link classifier
            category_router: Endpoint resolver
        """
        self._settings = settings
        self.session_factory = session_factory
        self.pattern_matcher = pattern_matcher or PatternMatcher()
        self.category_router = category_router or CategoryRouter()
        self.logger = get_logger_for_component("pipeline")

    def dispatch(self, entry: EntryView) -> EntryView:
        """Host hook: deliver ``entry`` and hand it back unchanged.

        Never raises, whatever happens during delivery.
        """
        self.run(entry)
        return entry

    def run(self, entry: EntryView) -> DispatchResult:
        """Deliver ``entry`` and report the terminal state."""
        result = DispatchResult()
        log = self.logger

        with PerformanceLogger(self.logger, "entry dispatch") as timer:
            try:
                result.entry_link = entry.link
                timer.context["entry_link"] = result.entry_link
                log = self.logger.bind(entry_link=result.entry_link)
                self._run(entry, result, log)
            except Exception as e:
                result.error = handle_exception(
                    e, log, "entry dispatch", context={"entry_link": result.entry_link}
                )
                result.state = DispatchState.FAILED

        return result

    def _run(self, entry: EntryView, result: DispatchResult, log) -> None:
        settings = self._snapshot_settings()
        webhook = settings.webhook

        if webhook.ignore_autoread and entry.is_read:
            log.debug(f"Skipping already-read entry {entry.link}")
            result.state = DispatchState.SKIPPED
            return
        result.state = DispatchState.FILTERED

        result.mode = self.pattern_matcher.classify(
            entry.link,
            split_patterns(webhook.embed_as_link_patterns),
            split_patterns(webhook.embed_as_image_patterns),
        )
        endpoint = self.category_router.resolve_endpoint(
            entry.feed.category, webhook.category_webhooks, webhook.url
        )
        if not endpoint:
            raise ConfigurationError(
                "No webhook endpoint configured for this entry",
                config_key="webhook.url",
                error_code=ErrorCode.CONFIG_MISSING,
            )
        result.target = DeliveryTarget(
            endpoint=endpoint,
            identity=Identity(username=webhook.username, avatar_url=webhook.avatar_url),
        )
        result.state = DispatchState.ROUTED
        log = log.bind(endpoint=endpoint)

        delivery = settings.delivery
        dispatcher = WebhookDispatcher(
            request_timeout=delivery.request_timeout,
            user_agent=delivery.user_agent,
            session_factory=self.session_factory,
        )

        if result.mode == DeliveryMode.AS_IMAGE:
            fetcher = ImageFetcher(
                timeout=delivery.image_timeout,
                max_redirects=delivery.image_max_redirects,
                user_agent=delivery.user_agent,
                session_factory=self.session_factory,
            )
            image = fetcher.fetch(entry.link)
            if image is None:
                log.warning(f"Image for {entry.link} unavailable, nothing delivered")
                result.state = DispatchState.FAILED
                return
            result.state = DispatchState.COMPOSED
            result.outcome = dispatcher.send_file_upload(result.target, image)
        else:
            composer = MessageComposer(
                description_limit=delivery.description_limit,
                embed_color=delivery.embed_color,
            )
            payload = composer.compose(entry, result.mode, result.target.identity)
            result.state = DispatchState.COMPOSED
            result.outcome = dispatcher.send_json(result.target, payload)

        result.state = (
            DispatchState.DELIVERED if result.outcome.succeeded else DispatchState.FAILED
        )
        log.info(
            f"Entry {entry.link} {result.state.value} as {result.mode.value} "
            f"({result.outcome})"
        )

    def _snapshot_settings(self) -> FeedhookSettings:
        """Read-only copy of the settings for the duration of one dispatch."""
        settings = self._settings if self._settings is not None else get_settings()
        return settings.model_copy(deep=True)
