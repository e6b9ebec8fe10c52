#!/usr/bin/env python3
"""
Tests for numeric parsing and formatting helpers
"""

import pytest

from gotnodes.utils import (
    format_amount,
    format_avax,
    format_eth,
    gwei_to_eth,
    html_to_text,
    parse_avax_display,
    percent_change,
    redact_url,
    tail,
    to_int,
    to_ms,
    to_num,
)


class TestNumbers:
    def test_to_num_strips_separators(self):
        assert to_num("1,234.5") == 1234.5
        assert to_num(" 42 ") == 42.0
        assert to_num(7) == 7.0

    def test_to_num_rejects_garbage(self):
        assert to_num("abc") is None
        assert to_num("") is None
        assert to_num(None) is None
        assert to_num(True) is None
        assert to_num("nan") is None
        assert to_num(float("inf")) is None

    def test_to_int(self):
        assert to_int("1,012,345") == 1012345
        assert to_int(12.0) == 12
        assert to_int("2.5") is None
        assert to_int(None) is None

    def test_to_ms_scales_seconds(self):
        assert to_ms(1700000000) == 1700000000000
        assert to_ms(1700000000000) == 1700000000000
        assert to_ms("1700000000") == 1700000000000

    def test_gwei_conversion(self):
        assert gwei_to_eth(32000000000) == 32.0
        assert gwei_to_eth("31,999,000,000") == pytest.approx(31.999)
        assert format_eth(32.0) == "32.00000"
        assert format_eth(None) is None


class TestAvaxFormatting:
    def test_groups_thousands(self):
        assert format_avax(250_000_000 * 10 ** 9) == "250,000,000.00"
        assert format_avax("2000000000000") == "2,000.00"

    def test_truncates_instead_of_rounding(self):
        assert format_avax(1_999_999_999) == "1.99"
        assert format_avax(123_456_789, digits=4) == "0.1234"

    def test_large_amounts_keep_precision(self):
        # Beyond 2**53 nano-AVAX a float would lose the last digits
        assert format_avax("123456789012345678901") == "123,456,789,012.34"

    def test_negative_and_missing(self):
        assert format_avax(-1_500_000_000) == "-1.50"
        assert format_avax(None) is None
        assert format_avax("not a number") is None

    def test_display_round_trip(self):
        for nano in (0, 10_000_000, 1_234_500_000_000, 250_000_000 * 10 ** 9):
            assert parse_avax_display(format_avax(nano)) == nano
        assert parse_avax_display("1,234.50 AVAX") == 1_234_500_000_000
        assert parse_avax_display("n/a") is None

    def test_display_round_trip_within_display_precision(self):
        for nano in (1_999_999_999, 123_456_789, 987_654_321_987, 10 ** 21 + 7):
            assert abs(parse_avax_display(format_avax(nano)) - nano) < 10 ** 7


class TestText:
    def test_html_to_text_drops_scripts_and_tags(self):
        markup = '<p>A&amp;B</p><script>var apr = 0;</script>\n  <b>C</b><!-- hidden --><style>p{}</style>'
        assert html_to_text(markup) == "A&B C"

    def test_html_to_text_ignores_attribute_values(self):
        markup = '<img alt="chart > APR 99%" src="x.png"><p>Active Validators 1,000</p>'
        assert html_to_text(markup) == "Active Validators 1,000"

    def test_html_to_text_empty(self):
        assert html_to_text("") == ""

    def test_format_amount(self):
        assert format_amount(34123456.78, "ETH") == "34,123,456.78 ETH"
        assert format_amount(None, "ETH") is None


class TestMisc:
    def test_tail(self):
        assert tail([1, 2, 3], 2) == [2, 3]
        assert tail([1], 5) == [1]
        assert tail([], 3) == []

    def test_percent_change(self):
        assert percent_change(110, 100) == pytest.approx(10.0)
        assert percent_change(110, 0) is None
        assert percent_change(None, 100) is None

    def test_redact_url(self):
        assert redact_url("https://pro-api.llama.fi/SECRET/api/x") == "https://pro-api.llama.fi/***/api/x"
        assert redact_url("https://api.llama.fi/v2/chains") == "https://api.llama.fi/v2/chains"
