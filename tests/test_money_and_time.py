"""
Unit tests for decimal helpers and the time machine.
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from staking_system.utils.money import toMoney, roundToTwoDecimals, hasSufficientBalance, percentOf
from staking_system.utils.time_machine import timeMachine


class TestMoneyHelpers:

    def test_to_money_quantizes_to_eight_places(self):
        assert toMoney("1.123456789") == Decimal("1.12345678")
        assert toMoney(None) == Decimal("0")

    def test_round_to_two_decimals(self):
        assert roundToTwoDecimals(Decimal("10.005")) == Decimal("10.01")
        assert roundToTwoDecimals(Decimal("9.994")) == Decimal("9.99")

    def test_sufficient_balance_tolerates_residue(self):
        assert hasSufficientBalance(Decimal("9.999"), Decimal("10"))
        assert hasSufficientBalance(Decimal("10"), Decimal("10"))

    def test_insufficient_balance(self):
        assert not hasSufficientBalance(Decimal("9.98"), Decimal("10"))
        assert not hasSufficientBalance(Decimal("0"), Decimal("0.01"))

    def test_percent_of(self):
        assert percentOf(Decimal("100"), Decimal("1.00")) == Decimal("1")
        assert percentOf(Decimal("1.00"), Decimal("15")) == Decimal("0.15")
        assert percentOf(Decimal("100"), Decimal("0.45")) == Decimal("0.45")


class TestTimeMachine:

    def test_virtual_time_is_used(self, virtualTime):
        assert timeMachine.now == datetime(2025, 1, 15, 0, 30, tzinfo=timezone.utc)
        assert timeMachine.today == "2025-01-15"

    def test_advance_time(self):
        timeMachine.advanceTime(days=1, hours=2)
        assert timeMachine.now == datetime(2025, 1, 16, 2, 30, tzinfo=timezone.utc)

    def test_naive_time_is_treated_as_utc(self):
        timeMachine.setTime(datetime(2025, 3, 1, 12, 0))
        assert timeMachine.now.tzinfo is not None
        assert timeMachine.today == "2025-03-01"

    def test_reporting_buckets(self):
        buckets = timeMachine.reportingBuckets()
        assert buckets == {"date": "2025-01-15", "week": "2025-03", "month": "2025-01", "year": 2025}

    def test_reporting_week_uses_iso_year(self):
        buckets = timeMachine.reportingBuckets(datetime(2024, 12, 30, tzinfo=timezone.utc))
        assert buckets["week"] == "2025-01"
        assert buckets["year"] == 2024

    def test_advance_requires_test_mode(self):
        timeMachine.resetToRealTime()
        with pytest.raises(ValueError):
            timeMachine.advanceTime(days=1)
