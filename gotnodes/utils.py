#!/usr/bin/env python3
"""
Utility Functions
Numeric parsing, unit conversion and text helpers shared by the extractors
"""

import math
import re
import time
from decimal import Decimal, InvalidOperation
from typing import Any, List, Optional, Sequence

from bs4 import BeautifulSoup, Comment

# Base units per display unit (Gwei per ETH, nano-AVAX per AVAX)
GWEI_PER_ETH = 10 ** 9
NANO_PER_AVAX = 10 ** 9

_INTEGER_RE = re.compile(r"^-?\d+$")
_WHITESPACE_RE = re.compile(r"\s+")


def _clean_number_text(value: str) -> str:
    return value.strip().replace(",", "").replace("_", "")


def to_num(value: Any) -> Optional[float]:
    """Parse a number, stripping thousands separators; None instead of NaN"""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = _clean_number_text(str(value))
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    return number if math.isfinite(number) else None


def to_int(value: Any) -> Optional[int]:
    """Parse an integer count; fractional or non-numeric input yields None"""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str) and _INTEGER_RE.match(_clean_number_text(value)):
        return int(_clean_number_text(value))
    number = to_num(value)
    if number is None or not number.is_integer():
        return None
    return int(number)


def to_ms(value: Any) -> Optional[int]:
    """Timestamps in seconds (10 digits) are scaled to milliseconds"""
    number = to_num(value)
    if number is None:
        return None
    if number < 10_000_000_000:
        return int(number * 1000)
    return int(number)


def gwei_to_eth(value: Any) -> Optional[float]:
    number = to_num(value)
    if number is None:
        return None
    return number / GWEI_PER_ETH


def format_eth(value: Optional[float], digits: int = 5) -> Optional[str]:
    if value is None:
        return None
    return f"{value:.{digits}f}"


def nano_avax(value: Any) -> Optional[int]:
    """Parse a nano-AVAX amount exactly; stake totals exceed float precision"""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None

    text = _clean_number_text(str(value))
    if _INTEGER_RE.match(text):
        return int(text)
    try:
        amount = Decimal(text)
    except InvalidOperation:
        return None
    if not amount.is_finite():
        return None
    return int(amount)


def format_avax(value: Any, digits: int = 2) -> Optional[str]:
    """
    Render nano-AVAX as grouped AVAX with integer arithmetic.

    The fractional part is truncated toward zero, never rounded up.
    """
    amount = nano_avax(value)
    if amount is None:
        return None

    sign = "-" if amount < 0 else ""
    whole, remainder = divmod(abs(amount), NANO_PER_AVAX)
    text = f"{sign}{whole:,}"
    if digits > 0:
        fraction = remainder * 10 ** digits // NANO_PER_AVAX
        text += "." + str(fraction).zfill(digits)
    return text


def parse_avax_display(text: Any) -> Optional[int]:
    """Inverse of format_avax: '1,234.50 AVAX' -> nano-AVAX"""
    if text is None:
        return None
    cleaned = _clean_number_text(str(text))
    if cleaned.upper().endswith("AVAX"):
        cleaned = cleaned[:-4].strip()
    try:
        amount = Decimal(cleaned)
    except InvalidOperation:
        return None
    if not amount.is_finite():
        return None
    return int(amount * NANO_PER_AVAX)


def format_amount(value: Optional[float], ticker: str, digits: int = 2) -> Optional[str]:
    if value is None:
        return None
    return f"{value:,.{digits}f} {ticker}"


def format_percent(value: Optional[float], digits: int = 2) -> Optional[str]:
    if value is None:
        return None
    return f"{value:.{digits}f}%"


def html_to_text(markup: str) -> str:
    """Strip script/style blocks and all markup, collapse whitespace"""
    if not markup:
        return ""
    soup = BeautifulSoup(markup, "html.parser")
    for element in soup(["script", "style", "noscript"]):
        element.decompose()
    for comment in soup.find_all(string=lambda value: isinstance(value, Comment)):
        comment.extract()
    text = soup.get_text(separator=" ")
    return _WHITESPACE_RE.sub(" ", text).strip()


def tail(items: Sequence, count: int) -> List:
    if not items:
        return []
    items = list(items)
    if len(items) <= count:
        return items
    return items[len(items) - count:]


def percent_change(current: Optional[float], previous: Optional[float]) -> Optional[float]:
    if current is None or previous is None or previous == 0:
        return None
    return (current - previous) / previous * 100


def now_ms() -> int:
    return int(time.time() * 1000)


def redact_url(url: str) -> str:
    """Hide the DefiLlama pro key carried in the first path segment"""
    marker = "pro-api.llama.fi/"
    if marker not in url:
        return url
    head, _, rest = url.partition(marker)
    _, _, path = rest.partition("/")
    return f"{head}{marker}***/{path}"
