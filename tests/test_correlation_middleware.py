"""Tests for correlation ID propagation and logging."""

import logging

from fastapi import FastAPI
from fastapi.testclient import TestClient

from middleware.correlation import (
    CorrelationIdFilter,
    CorrelationIdMiddleware,
    configure_correlation_logging,
    correlation_id_context,
    get_correlation_id,
)


def _app():
    app = FastAPI()
    app.add_middleware(CorrelationIdMiddleware)

    @app.get("/whoami")
    async def whoami():
        return {"correlation_id": get_correlation_id()}

    return app


class TestCorrelationIdMiddleware:

    def test_generates_id_when_missing(self):
        response = TestClient(_app()).get("/whoami")

        correlation_id = response.json()["correlation_id"]
        assert correlation_id
        assert response.headers["X-Correlation-ID"] == correlation_id

    def test_uses_incoming_header(self):
        response = TestClient(_app()).get("/whoami", headers={"X-Correlation-ID": "abc"})

        assert response.json()["correlation_id"] == "abc"

    def test_falls_back_to_request_id_header(self):
        response = TestClient(_app()).get("/whoami", headers={"X-Request-ID": "req-9"})

        assert response.json()["correlation_id"] == "req-9"
        assert response.headers["X-Request-ID"] == "req-9"

    def test_context_is_reset_after_request(self):
        TestClient(_app()).get("/whoami", headers={"X-Correlation-ID": "abc"})

        assert get_correlation_id() is None


class TestCorrelationLogging:

    def test_context_manager_sets_and_resets(self):
        with correlation_id_context("seed-1") as correlation_id:
            assert correlation_id == "seed-1"
            assert get_correlation_id() == "seed-1"

        assert get_correlation_id() is None

    def test_filter_tags_records(self):
        record = logging.LogRecord("test", logging.INFO, __file__, 1, "hello", None, None)

        CorrelationIdFilter().filter(record)
        assert record.correlation_id == "-"

        with correlation_id_context("job-7"):
            CorrelationIdFilter().filter(record)
        assert record.correlation_id == "job-7"

    def test_configure_installs_one_handler(self):
        root = logging.getLogger()
        before = list(root.handlers)
        level = root.level
        try:
            configure_correlation_logging(level="DEBUG")
            configure_correlation_logging(level="WARNING")

            tagged = [
                h for h in root.handlers
                if any(isinstance(f, CorrelationIdFilter) for f in h.filters)
            ]
            assert len(tagged) == 1
            assert tagged[0].level == logging.WARNING
        finally:
            for handler in root.handlers[:]:
                if handler not in before:
                    root.removeHandler(handler)
            root.setLevel(level)
