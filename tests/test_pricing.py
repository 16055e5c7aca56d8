"""Tests for price sanity checks and formatting."""

import math

import pytest

from reading_room.data.pricing import (
    calculate_daily_change,
    format_market_cap,
    format_volume,
    to_float,
    validate_price,
)
from reading_room.data.tickers import (
    base_code,
    company_name,
    format_price,
    is_korean_ticker,
    looks_like_ticker,
    overseas_exchange,
    yahoo_symbol,
)


@pytest.fixture(autouse=True)
def _config(app_config):
    return app_config


class TestCalculateDailyChange:
    def test_computed_from_prices(self):
        change = calculate_daily_change(110.0, 100.0)
        assert change.value == pytest.approx(10.0)
        assert change.percentage == pytest.approx(10.0)

    def test_reported_values_within_tolerance_are_kept(self):
        change = calculate_daily_change(110.0, 100.0, change_value=10.005, change_percentage=10.004)
        assert change.value == pytest.approx(10.005)
        assert change.percentage == pytest.approx(10.004)

    def test_reported_values_that_disagree_are_replaced(self):
        change = calculate_daily_change(110.0, 100.0, change_value=55.0, change_percentage=-3.0)
        assert change.value == pytest.approx(10.0)
        assert change.percentage == pytest.approx(10.0)

    def test_soft_cap_clamps_percentage_and_rederives_value(self):
        change = calculate_daily_change(130.0, 100.0)
        assert change.percentage == pytest.approx(20.0)
        assert change.value == pytest.approx(20.0)

    def test_soft_cap_keeps_sign(self):
        change = calculate_daily_change(70.0, 100.0)
        assert change.percentage == pytest.approx(-20.0)
        assert change.value == pytest.approx(-20.0)

    def test_hard_cap_discards(self):
        change = calculate_daily_change(250.0, 100.0)
        assert (change.value, change.percentage) == (0.0, 0.0)

    @pytest.mark.parametrize(
        "current,previous",
        [(0, 100.0), (100.0, 0), (-5.0, 100.0), (None, 100.0), (math.nan, 100.0), (True, 1.0)],
    )
    def test_unusable_inputs_give_zero(self, current, previous):
        change = calculate_daily_change(current, previous)
        assert (change.value, change.percentage) == (0.0, 0.0)

    def test_explicit_caps_override_config(self):
        change = calculate_daily_change(105.0, 100.0, soft_cap_pct=2.0)
        assert change.percentage == pytest.approx(2.0)
        assert change.value == pytest.approx(2.0)

    def test_caps_read_from_config(self, app_config):
        app_config.pricing.soft_cap_pct = 5.0
        change = calculate_daily_change(110.0, 100.0)
        assert change.percentage == pytest.approx(5.0)

    def test_rounded_to_four_decimals(self):
        change = calculate_daily_change(100.123456, 99.0)
        assert change.value == round(change.value, 4)
        assert change.percentage == round(change.percentage, 4)


def test_validate_price():
    assert validate_price(12.5) == 12.5
    assert validate_price(0, fallback=3) == 3.0
    assert validate_price("abc", fallback=None) == 0.0


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("1,234.5", 1234.5),
        ("12.5%", 12.5),
        ("None", None),
        ("-", None),
        ("", None),
        (None, None),
        (True, None),
        (float("inf"), None),
        (7, 7.0),
    ],
)
def test_to_float(raw, expected):
    assert to_float(raw) == expected


def test_format_market_cap():
    assert format_market_cap(2.66e12) == "2.66T"
    assert format_market_cap(566e9) == "566.00B"
    assert format_market_cap(12.3e6) == "12.30M"
    assert format_market_cap(None) == "N/A"
    assert format_market_cap(0) == "N/A"


def test_format_volume():
    assert format_volume(54_000_000) == "54.0M"
    assert format_volume(12_500) == "12.5K"
    assert format_volume(999) == "999"
    assert format_volume("bad") == "N/A"


class TestTickers:
    def test_korean_detection(self):
        assert is_korean_ticker("005930")
        assert is_korean_ticker("005930.KS")
        assert is_korean_ticker("091990.kq")
        assert not is_korean_ticker("AAPL")
        assert not is_korean_ticker("12345")

    def test_yahoo_symbol_adds_suffix_to_bare_codes(self):
        assert yahoo_symbol("005930") == "005930.KS"
        assert yahoo_symbol("005930.KQ") == "005930.KQ"
        assert yahoo_symbol(" aapl ") == "AAPL"

    def test_base_code_and_exchange(self):
        assert base_code("005930.KS") == "005930"
        assert overseas_exchange("AAPL") == "NAS"
        assert overseas_exchange("IBM") == "NYS"

    def test_company_name(self):
        assert company_name("005930", "kr") == "삼성전자"
        assert company_name("005930.KS", "en") == "Samsung Electronics"
        assert company_name("xyz") == "XYZ"

    def test_looks_like_ticker(self):
        assert looks_like_ticker("AAPL")
        assert looks_like_ticker("005930.KS")
        assert not looks_like_ticker("stock market today")

    def test_format_price_by_currency(self):
        assert format_price(71000, "005930") == "₩71,000"
        assert format_price(175.5, "AAPL") == "$175.50"
        assert format_price(None, "AAPL") == "N/A"
