"""
Foundation Tests
================

Tests for configuration loading, the exception hierarchy and logging setup.
"""

import json
import logging
from pathlib import Path

import pytest

from feedhook.config.settings import (
    DEFAULT_DESCRIPTION_LIMIT,
    DEFAULT_EMBED_COLOR,
    FeedhookSettings,
    WebhookSettings,
    get_settings,
    load_settings,
)
from feedhook.utils.exceptions import (
    ConfigurationError,
    ErrorCode,
    FeedhookError,
    ImageDecodeError,
    PatternError,
    PayloadTooLargeError,
    TransportError,
    handle_exception,
)
from feedhook.utils.logging import (
    PerformanceLogger,
    StructuredFormatter,
    configure_application_logging,
    get_logger_for_component,
)


class TestSettings:
    """Test configuration loading from the environment."""

    def test_environment_overrides(self):
        settings = get_settings(reload=True)
        assert settings.webhook.url == "https://discord.test/api/webhooks/default"
        assert settings.webhook.username == "FeedBot"
        assert settings.debug is True

    def test_defaults(self):
        settings = FeedhookSettings(webhook=WebhookSettings())
        assert settings.delivery.description_limit == DEFAULT_DESCRIPTION_LIMIT == 4000
        assert settings.delivery.embed_color == DEFAULT_EMBED_COLOR == 2605643
        assert settings.delivery.image_timeout == 10
        assert settings.delivery.image_max_redirects == 5
        assert settings.webhook.ignore_autoread is False

    def test_settings_are_cached_until_reload(self):
        first = get_settings(reload=True)
        assert get_settings() is first
        assert get_settings(reload=True) is not first

    def test_nested_env_variables(self, monkeypatch):
        monkeypatch.setenv("FEEDHOOK_WEBHOOK__IGNORE_AUTOREAD", "true")
        monkeypatch.setenv("FEEDHOOK_DELIVERY__REQUEST_TIMEOUT", "5")
        monkeypatch.setenv("FEEDHOOK_WEBHOOK__CATEGORY_WEBHOOKS", "Tech=https://hook/tech")

        settings = load_settings()

        assert settings.webhook.ignore_autoread is True
        assert settings.delivery.request_timeout == 5
        assert settings.configured_endpoints() == [
            "https://discord.test/api/webhooks/default",
            "https://hook/tech",
        ]

    def test_invalid_category_endpoint_rejected(self, make_settings):
        settings = make_settings(category_webhooks="Tech=ftp://hook/tech")
        with pytest.raises(ConfigurationError) as exc_info:
            settings.validate_configuration()
        assert "Tech" in str(exc_info.value)

    def test_invalid_default_url_rejected(self, make_settings):
        with pytest.raises(ConfigurationError):
            make_settings(url="not a url").validate_configuration()

    def test_empty_default_url_allowed(self, make_settings):
        make_settings(url="").validate_configuration()

    def test_unparsable_environment_wrapped(self, monkeypatch):
        monkeypatch.setenv("FEEDHOOK_DELIVERY__IMAGE_TIMEOUT", "soon")
        with pytest.raises(ConfigurationError) as exc_info:
            load_settings()
        assert exc_info.value.error_code == ErrorCode.CONFIG_PARSE_ERROR

    def test_effective_log_level(self, make_settings):
        settings = make_settings()
        assert settings.get_effective_log_level() == "INFO"
        assert settings.model_copy(update={"debug": True}).get_effective_log_level() == "DEBUG"


class TestExceptions:
    """Test the exception hierarchy."""

    def test_error_code_in_message(self):
        error = FeedhookError("Something broke", error_code=ErrorCode.DELIVERY_FAILED)
        assert str(error) == "[L001] Something broke"

    def test_to_dict(self):
        error = ConfigurationError("Missing", config_key="webhook.url")
        data = error.to_dict()
        assert data["error_type"] == "ConfigurationError"
        assert data["error_code"] == "C001"
        assert data["context"] == {"config_key": "webhook.url"}

    def test_subclasses(self):
        assert issubclass(PayloadTooLargeError, TransportError)
        for cls in (ConfigurationError, PatternError, TransportError, ImageDecodeError):
            assert issubclass(cls, FeedhookError)

    def test_payload_too_large_details(self):
        error = PayloadTooLargeError("too big", url="https://x.test/a.png", size=12345)
        assert error.status_code == 413
        assert error.size == 12345
        assert error.error_code == ErrorCode.DELIVERY_PAYLOAD_TOO_LARGE
        assert error.context["size_bytes"] == 12345

    def test_pattern_error_is_recoverable(self):
        assert PatternError("bad", pattern="(").recoverable is True

    def test_handle_exception_wraps_generic_errors(self):
        logger = logging.getLogger("feedhook.test")
        error = handle_exception(ValueError("bad value"), logger, "parse thing")
        assert isinstance(error, FeedhookError)
        assert error.context["operation"] == "parse thing"
        assert error.context["original_exception_type"] == "ValueError"

    def test_handle_exception_maps_timeouts(self):
        error = handle_exception(TimeoutError("slow"), logging.getLogger("feedhook.test"), "post")
        assert isinstance(error, TransportError)
        assert error.error_code == ErrorCode.DELIVERY_TIMEOUT

    def test_handle_exception_keeps_feedhook_errors(self):
        original = ImageDecodeError("nope", image_url="https://x.test/a")
        assert handle_exception(original, logging.getLogger("feedhook.test"), "decode") is original


class TestLogging:
    """Test logging helpers."""

    def test_component_logger(self):
        adapter = get_logger_for_component("pattern_matcher")
        assert adapter.logger.name == "feedhook.pattern_matcher"
        assert adapter.extra == {"component": "pattern_matcher"}

    def test_bind_adds_dispatch_context(self):
        base = get_logger_for_component("pipeline")
        bound = base.bind(entry_link="https://blog.test/1").bind(endpoint="https://hook/1", thumbnail=None)

        assert bound.logger is base.logger
        assert bound.extra == {
            "component": "pipeline",
            "entry_link": "https://blog.test/1",
            "endpoint": "https://hook/1",
        }
        assert base.extra == {"component": "pipeline"}

    def test_bound_context_reaches_records(self, caplog):
        logger = get_logger_for_component("webhook_dispatcher").bind(endpoint="https://hook/1")
        with caplog.at_level(logging.INFO, logger="feedhook.webhook_dispatcher"):
            logger.info("sent", extra={"attempt": 1})

        record = caplog.records[-1]
        assert record.component == "webhook_dispatcher"
        assert record.endpoint == "https://hook/1"
        assert record.attempt == 1

    def test_structured_formatter_promotes_context(self):
        record = logging.LogRecord("feedhook.x", logging.INFO, __file__, 1, "hello", None, None)
        record.component = "x"
        record.endpoint = "https://hook/1"
        record.error_code = "L001"
        data = json.loads(StructuredFormatter().format(record))
        assert data["message"] == "hello"
        assert data["component"] == "x"
        assert data["endpoint"] == "https://hook/1"
        assert "entry_link" not in data
        assert data["details"] == {"error_code": "L001"}

    def test_file_logging(self, tmp_path: Path):
        log_file = tmp_path / "logs" / "feedhook.log"
        configure_application_logging(log_level="DEBUG", log_file=str(log_file), enable_console=False)
        try:
            get_logger_for_component("test").info("written to file")
            for handler in logging.getLogger("feedhook").handlers:
                handler.flush()
            assert "written to file" in log_file.read_text(encoding="utf-8")
        finally:
            for handler in list(logging.getLogger("feedhook").handlers):
                handler.close()
                logging.getLogger("feedhook").removeHandler(handler)
            logging.getLogger("feedhook").setLevel(logging.NOTSET)

    def test_performance_logger_reports_failure(self, caplog):
        logger = logging.getLogger("feedhook.perf")
        with pytest.raises(RuntimeError):
            with PerformanceLogger(logger, "risky op"):
                raise RuntimeError("x")
        assert "risky op failed after" in caplog.text
