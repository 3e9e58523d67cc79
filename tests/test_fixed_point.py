"""Tests for the fixed-point conversion boundary.

All monetary values are integers scaled by 1000.
"""

from decimal import Decimal

from btcbot.fixed_point import SCALE, fee_for, format_scaled, from_scaled, to_scaled


class TestToScaled:
    """Decimal feed prices become scaled ints, truncated toward zero."""

    def test_whole_dollars(self) -> None:
        assert to_scaled(Decimal("9200")) == 9_200_000

    def test_three_decimals_exact(self) -> None:
        assert to_scaled(Decimal("9100.001")) == 9_100_001

    def test_extra_precision_truncated(self) -> None:
        # 9123.4567 * 1000 = 9123456.7 -> 9123456
        assert to_scaled(Decimal("9123.4567")) == 9_123_456

    def test_never_rounds_up(self) -> None:
        assert to_scaled(Decimal("0.0009999")) == 0

    def test_scale_constant(self) -> None:
        assert SCALE == 1000


class TestFormatScaled:
    def test_default_buy_rate(self) -> None:
        assert format_scaled(9_200_000) == "9200.000"

    def test_sub_dollar(self) -> None:
        assert format_scaled(13_950) == "13.950"

    def test_negative_profit(self) -> None:
        assert format_scaled(-5) == "-0.005"

    def test_from_scaled_is_decimal(self) -> None:
        assert from_scaled(286_050) == Decimal("286.050")


class TestFeeFor:
    """0.15% sale fee, truncated toward zero, no float involved."""

    def test_exact_fee(self) -> None:
        # 0.0015 * 9,300,000 = 13,950
        assert fee_for(9_300_000, Decimal("0.0015")) == 13_950

    def test_fractional_fee_truncated(self) -> None:
        # 0.0015 * 9,100,001 = 13650.0015 -> 13650
        assert fee_for(9_100_001, Decimal("0.0015")) == 13_650

    def test_zero_rate(self) -> None:
        assert fee_for(9_300_000, Decimal("0")) == 0
