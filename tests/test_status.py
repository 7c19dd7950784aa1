"""Administrative status classification."""

from __future__ import annotations

from datetime import date, timedelta
from unittest.mock import patch

import pytest

from intranet.common.constants import AdminStatus
from intranet.leave.status import StatusPolicy, classify, subtract_months

TODAY = date(2026, 3, 15)
YESTERDAY = TODAY - timedelta(days=1)


class TestSubtractMonths:

    def test_simple(self):
        assert subtract_months(date(2026, 3, 15), 2) == date(2026, 1, 15)

    def test_across_year(self):
        assert subtract_months(date(2026, 1, 10), 2) == date(2025, 11, 10)

    def test_clamped_to_month_end(self):
        assert subtract_months(date(2026, 4, 30), 2) == date(2026, 2, 28)

    def test_negative_adds(self):
        assert subtract_months(date(2026, 11, 30), -3) == date(2027, 2, 28)


class TestClassify:

    def test_unallocated_first(self):
        assert classify(0, 0, 0.0, None, today=TODAY) == AdminStatus.unallocated

    def test_remaining_below_threshold_is_critical(self):
        """30 allocated, 25 approved: remaining 5, usage 83.3%."""
        status = classify(30, 5, 83.3, YESTERDAY, today=TODAY)
        assert status == AdminStatus.critical

    def test_few_days_left_is_critical_even_with_low_usage(self):
        assert classify(4, 4, 0.0, YESTERDAY, today=TODAY) == AdminStatus.critical

    def test_usage_above_critical(self):
        assert classify(100, 19, 81.0, YESTERDAY, today=TODAY) == AdminStatus.critical

    def test_usage_exactly_critical_is_warning(self):
        assert classify(100, 20, 80.0, YESTERDAY, today=TODAY) == AdminStatus.warning_usage

    def test_usage_at_warning_threshold(self):
        assert classify(100, 40, 60.0, None, today=TODAY) == AdminStatus.warning_usage

    def test_never_took_leave_is_inactive(self):
        assert classify(30, 30, 0.0, None, today=TODAY) == AdminStatus.warning_inactive

    def test_old_leave_is_inactive(self):
        last = date(2026, 1, 14)
        assert classify(30, 25, 16.7, last, today=TODAY) == AdminStatus.warning_inactive

    def test_cutoff_day_is_not_inactive(self):
        last = date(2026, 1, 15)
        assert classify(30, 25, 16.7, last, today=TODAY) == AdminStatus.good

    def test_good(self):
        assert classify(30, 20, 33.3, YESTERDAY, today=TODAY) == AdminStatus.good

    def test_custom_policy(self):
        policy = StatusPolicy(
            critical_remaining_days=1,
            critical_usage_percent=95.0,
            warning_usage_percent=90.0,
            inactivity_months=6,
        )
        last = date(2025, 10, 1)
        assert classify(30, 3, 90.0, last, policy, TODAY) == AdminStatus.warning_usage
        assert classify(30, 20, 33.3, last, policy, TODAY) == AdminStatus.good

    @pytest.mark.parametrize("remaining", [5, 6, 10])
    def test_remaining_at_or_above_threshold_not_critical(self, remaining):
        status = classify(100, remaining, 10.0, YESTERDAY, today=TODAY)
        assert status == AdminStatus.good

    def test_policy_from_settings(self):
        policy = StatusPolicy.from_settings()
        assert policy == StatusPolicy()

    def test_default_today_is_organisation_day(self):
        """Without ``today`` the inactivity window starts from the Paris day."""
        with patch("intranet.leave.status._today", return_value=TODAY):
            status = classify(30, 25, 16.7, date(2026, 1, 20))
        assert status == AdminStatus.good
