"""Tests for logging setup."""

import logging

import pytest

from reading_room.core.logging import ROOT_LOGGER, get_logger, redact, setup_logging


@pytest.mark.parametrize(
    "text,expected",
    [
        (
            "GET https://financialmodelingprep.com/api/v3/quote/AAPL?apikey=abc123",
            "GET https://financialmodelingprep.com/api/v3/quote/AAPL?apikey=***",
        ),
        ("quote?symbol=AAPL&token=tok-1&x=1", "quote?symbol=AAPL&token=***&x=1"),
        ("authorization: Bearer eyJhbGciOi.J9", "authorization: Bearer ***"),
        ("nothing secret here", "nothing secret here"),
    ],
)
def test_redact(text, expected):
    assert redact(text) == expected


def test_package_logger_is_isolated_and_redacted(tmp_path):
    path = tmp_path / "logs" / "reading_room.log"
    setup_logging({
        "console": {"enabled": False},
        "file": {"enabled": True, "path": str(path), "level": "DEBUG"},
        "components": {"providers": "WARNING"},
    })
    try:
        get_logger("fetch.cascade").info("calling %s", "https://x.test/q?apikey=s3cret")
        get_logger("providers.fmp").info("not written")
        for handler in logging.getLogger(ROOT_LOGGER).handlers:
            handler.flush()

        written = path.read_text(encoding="utf-8")
        assert "apikey=***" in written
        assert "s3cret" not in written
        assert "reading_room.fetch.cascade" in written
        assert "not written" not in written
        assert not logging.getLogger(ROOT_LOGGER).propagate
    finally:
        for handler in logging.getLogger(ROOT_LOGGER).handlers:
            handler.close()
        setup_logging({"console": {"enabled": False}})
