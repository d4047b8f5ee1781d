"""Tests for swiftstore logging helpers."""

import logging

import pytest

from swiftstore.common.logging import LoggedClass, get_logger, log_with_context


class TestLogWithContext:
    """Tests for log_with_context."""

    def test_fields_are_attached_to_record(self, caplog):
        """Context fields end up as record attributes."""
        logger = get_logger("swiftstore.tests")
        with caplog.at_level(logging.DEBUG, logger="swiftstore.tests"):
            log_with_context(logger, logging.DEBUG, "Swift request", http_status=204)

        record = caplog.records[-1]
        assert record.getMessage() == "Swift request"
        assert record.http_status == 204

    def test_disabled_level_is_skipped(self, caplog):
        logger = get_logger("swiftstore.tests")
        with caplog.at_level(logging.INFO, logger="swiftstore.tests"):
            log_with_context(logger, logging.DEBUG, "hidden")
        assert caplog.records == []


class TestLoggedClass:
    """Tests for the LoggedClass mixin."""

    def test_logger_name_uses_component(self):
        class Worker(LoggedClass):
            log_component = "worker"

        assert Worker()._logger.name == f"{__name__}.worker"

    def test_instance_context_is_extracted(self, caplog):
        class Handle(LoggedClass):
            def __init__(self):
                self.container_name = "photos"
                self.object_name = "cat.jpg"
                super().__init__()

        with caplog.at_level(logging.DEBUG, logger=__name__):
            Handle()._log(logging.DEBUG, "Dropping cached headers")

        record = caplog.records[-1]
        assert record.container_name == "photos"
        assert record.object_name == "cat.jpg"


class TestLibraryLogging:
    """The client logs requests and cache activity at DEBUG only."""

    @pytest.mark.asyncio
    async def test_requests_are_logged_at_debug(self, caplog, container):
        with caplog.at_level(logging.DEBUG, logger="swiftstore"):
            await container.headers()
            container.invalidate()

        messages = [(r.levelno, r.getMessage()) for r in caplog.records]
        assert (logging.DEBUG, "Swift request") in messages
        assert (logging.DEBUG, "Dropping cached headers") in messages
        request_record = next(r for r in caplog.records if r.getMessage() == "Swift request")
        assert request_record.http_method == "HEAD"
        assert request_record.path == "/test"
        assert request_record.http_status == 204

    @pytest.mark.asyncio
    async def test_errors_are_not_logged(self, caplog, account):
        with caplog.at_level(logging.DEBUG, logger="swiftstore"):
            assert await account.container("missing").exists() is False
        assert all(r.levelno == logging.DEBUG for r in caplog.records)
