"""
Price sanity checks and display formatting.

Providers disagree on how they report daily change: some send a value,
some a percentage, some both, occasionally against a stale previous
close. Everything goes through calculate_daily_change before it leaves
the service layer.
"""

import math
from typing import Any, Optional

from reading_room.core.config import get_config
from reading_room.core.logging import get_logger
from reading_room.data.models import DailyChange

logger = get_logger("data.pricing")

SOFT_CAP_PCT = 20.0
HARD_CAP_PCT = 100.0
TOLERANCE = 0.01


def _is_positive_number(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
        and value > 0
    )


def _is_finite_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def calculate_daily_change(
    current_price: Any,
    previous_close: Any,
    change_value: Optional[float] = None,
    change_percentage: Optional[float] = None,
    soft_cap_pct: Optional[float] = None,
    hard_cap_pct: Optional[float] = None,
    tolerance: Optional[float] = None,
) -> DailyChange:
    """
    Compute a trustworthy daily change.

    Args:
        current_price: Latest price
        previous_close: Previous session close
        change_value: Change reported by the provider, if any
        change_percentage: Percentage reported by the provider, if any
        soft_cap_pct: Above this magnitude the percentage is clamped (pricing.soft_cap_pct)
        hard_cap_pct: Above this magnitude the data is treated as corrupt (pricing.hard_cap_pct)
        tolerance: Allowed disagreement between reported and computed values

    Returns:
        DailyChange rounded to 4 decimals; (0, 0) when the inputs are unusable
    """
    if soft_cap_pct is None:
        soft_cap_pct = get_config("pricing.soft_cap_pct", SOFT_CAP_PCT)
    if hard_cap_pct is None:
        hard_cap_pct = get_config("pricing.hard_cap_pct", HARD_CAP_PCT)
    if tolerance is None:
        tolerance = get_config("pricing.tolerance", TOLERANCE)

    if not _is_positive_number(current_price) or not _is_positive_number(previous_close):
        logger.warning(
            f"Invalid price input: current={current_price!r} previous={previous_close!r}"
        )
        return DailyChange(0.0, 0.0)

    computed_value = current_price - previous_close
    computed_pct = computed_value / previous_close * 100

    value = computed_value
    if _is_finite_number(change_value):
        if abs(change_value - computed_value) <= tolerance:
            value = change_value
        else:
            logger.warning(
                f"Reported change {change_value} disagrees with computed {computed_value:.4f}"
            )

    percentage = computed_pct
    if _is_finite_number(change_percentage):
        if abs(change_percentage - computed_pct) <= tolerance:
            percentage = change_percentage
        else:
            logger.warning(
                f"Reported change% {change_percentage} disagrees with computed {computed_pct:.4f}"
            )

    if abs(percentage) > hard_cap_pct:
        logger.error(
            f"Change {percentage:.2f}% exceeds ±{hard_cap_pct:g}%, discarding "
            f"(current={current_price}, previous={previous_close})"
        )
        return DailyChange(0.0, 0.0)

    if abs(percentage) > soft_cap_pct:
        capped = math.copysign(soft_cap_pct, percentage)
        logger.warning(f"Change {percentage:.2f}% exceeds ±{soft_cap_pct:g}%, capping to {capped}%")
        percentage = capped
        value = capped / 100 * previous_close

    return DailyChange(round(value, 4), round(percentage, 4))


def validate_price(price: Any, fallback: Any = None) -> float:
    """Return price if it is a positive finite number, else fallback, else 0."""
    if _is_positive_number(price):
        return float(price)
    if _is_positive_number(fallback):
        return float(fallback)
    return 0.0


def to_float(value: Any) -> Optional[float]:
    """Lenient numeric parsing for provider payloads ('None', '-', '1,234.5')."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    text = str(value).strip().replace(",", "").rstrip("%")
    if not text or text in ("None", "-", "N/A", "null"):
        return None
    try:
        result = float(text)
    except ValueError:
        return None
    return result if math.isfinite(result) else None


def format_market_cap(value: Any) -> str:
    """Format a market cap as 2.66T / 566.00B / 12.30M."""
    number = to_float(value)
    if number is None or number <= 0:
        return "N/A"
    if number >= 1e12:
        return f"{number / 1e12:.2f}T"
    if number >= 1e9:
        return f"{number / 1e9:.2f}B"
    if number >= 1e6:
        return f"{number / 1e6:.2f}M"
    return f"{number:,.0f}"


def format_volume(value: Any) -> str:
    """Format a share volume as 54.0M / 12.5K."""
    number = to_float(value)
    if number is None or number < 0:
        return "N/A"
    if number >= 1e6:
        return f"{number / 1e6:.1f}M"
    if number >= 1e3:
        return f"{number / 1e3:.1f}K"
    return f"{number:.0f}"
