"""
Unit tests for the store open/closed evaluation

These tests validate the time-window logic without requiring a database connection.
"""
import pytest
from unittest.mock import MagicMock
from datetime import datetime, time
from zoneinfo import ZoneInfo

from snackzo.domain.store import StoreConfig, StoreConfigUpdate
from snackzo.services.store_status_service import (
    parse_hhmm, evaluate_store_status, StoreStatusService,
)

IST = ZoneInfo("Asia/Kolkata")


def at(hour, minute=0):
    return datetime(2025, 11, 20, hour, minute, tzinfo=IST)


class TestParseHHMM:

    def test_parses_hours_and_minutes(self):
        assert parse_hhmm("20:00", "00:00") == time(20, 0)

    def test_accepts_postgres_time_with_seconds(self):
        assert parse_hhmm("03:30:00", "00:00") == time(3, 30)

    def test_empty_falls_back_to_default(self):
        assert parse_hhmm("", "20:00") == time(20, 0)
        assert parse_hhmm(None, "03:00") == time(3, 0)

    @pytest.mark.parametrize("value", ["25:00", "12:60", "abc", "12", "1:2:3:4", "-1:00"])
    def test_rejects_malformed_values(self, value):
        with pytest.raises(ValueError):
            parse_hhmm(value, "20:00")


class TestOvernightWindow:
    """Default hours 20:00 -> 03:00"""

    def test_open_in_the_evening(self):
        status = evaluate_store_status(StoreConfig(), at(21, 0))

        assert status.is_open is True
        assert status.reason == "schedule"
        assert status.status_text == "Closes in 6h 0m"
        assert status.minutes_until_change == 360
        assert status.next_change_at == datetime(2025, 11, 21, 3, 0, tzinfo=IST)

    def test_open_after_midnight(self):
        status = evaluate_store_status(StoreConfig(), at(2, 30))

        assert status.is_open is True
        assert status.status_text == "Closes in 0h 30m"

    def test_closed_at_closing_time(self):
        status = evaluate_store_status(StoreConfig(), at(3, 0))

        assert status.is_open is False
        assert status.status_text == "Opens in 17h 0m"
        assert status.next_change_at == at(20, 0)

    def test_closed_just_before_opening(self):
        status = evaluate_store_status(StoreConfig(), at(19, 45))

        assert status.is_open is False
        assert status.status_text == "Opens in 0h 15m"
        assert status.minutes_until_change == 15

    def test_open_exactly_at_opening_time(self):
        status = evaluate_store_status(StoreConfig(), at(20, 0))

        assert status.is_open is True
        assert status.status_text == "Closes in 7h 0m"


class TestDayWindow:

    def setup_method(self):
        self.config = StoreConfig(operating_hours_open="09:00", operating_hours_close="17:00")

    def test_open_inside_window(self):
        status = evaluate_store_status(self.config, at(12, 0))

        assert status.is_open is True
        assert status.status_text == "Closes in 5h 0m"

    def test_closed_at_close_time_until_next_morning(self):
        status = evaluate_store_status(self.config, at(17, 0))

        assert status.is_open is False
        assert status.status_text == "Opens in 16h 0m"
        assert status.next_change_at == datetime(2025, 11, 21, 9, 0, tzinfo=IST)

    def test_closed_before_opening(self):
        status = evaluate_store_status(self.config, at(8, 10))

        assert status.is_open is False
        assert status.status_text == "Opens in 0h 50m"


class TestOverrides:

    def test_master_switch_off_closes_store(self):
        status = evaluate_store_status(StoreConfig(is_open=False), at(21, 0))

        assert status.is_open is False
        assert status.status_text == "Temporarily Closed"
        assert status.reason == "manual"
        assert status.next_change_at is None

    def test_equal_times_leave_store_closed(self):
        config = StoreConfig(operating_hours_open="09:00", operating_hours_close="09:00")

        for hour in (8, 9, 12, 23):
            status = evaluate_store_status(config, at(hour, 0))
            assert status.is_open is False
            assert status.reason == "schedule"

    def test_null_master_switch_follows_hours(self):
        config = StoreConfig(is_open=None, operating_hours_open="09:00", operating_hours_close="17:00")

        assert evaluate_store_status(config, at(12, 0)).is_open is True
        assert evaluate_store_status(config, at(18, 0)).is_open is False

    def test_status_reports_normalized_hours(self):
        config = StoreConfig(operating_hours_open="20:00:00", operating_hours_close="03:00:00")
        status = evaluate_store_status(config, at(21, 0))

        assert status.operating_hours_open == "20:00"
        assert status.operating_hours_close == "03:00"


class TestStoreStatusService:

    def test_missing_config_uses_defaults(self):
        # Arrange
        repo = MagicMock()
        repo.get_config.return_value = None
        service = StoreStatusService(repository=repo)

        # Act: 15:30 UTC is 21:00 in Kolkata
        status = service.get_status(datetime(2025, 11, 20, 15, 30, tzinfo=ZoneInfo("UTC")))

        # Assert
        assert status.is_open is True
        assert status.evaluated_at.hour == 21

    def test_is_accepting_orders_uses_stored_hours(self):
        repo = MagicMock()
        repo.get_config.return_value = StoreConfig(operating_hours_open="09:00", operating_hours_close="17:00")
        service = StoreStatusService(repository=repo)

        assert service.is_accepting_orders(at(10, 0)) is True
        assert service.is_accepting_orders(at(18, 0)) is False

    def test_naive_times_are_read_as_store_time(self):
        repo = MagicMock()
        repo.get_config.return_value = StoreConfig()
        service = StoreStatusService(repository=repo)

        status = service.get_status(datetime(2025, 11, 20, 21, 0))

        assert status.is_open is True
        assert status.evaluated_at.tzinfo is not None

    def test_update_settings_normalizes_hours(self):
        repo = MagicMock()
        repo.update_config.return_value = StoreConfig(operating_hours_open="09:05")
        service = StoreStatusService(repository=repo)

        service.update_settings(StoreConfigUpdate(operating_hours_open="9:05"))

        saved = repo.update_config.call_args[0][0]
        assert saved.operating_hours_open == "09:05"

    def test_update_settings_rejects_bad_hours(self):
        repo = MagicMock()
        service = StoreStatusService(repository=repo)

        with pytest.raises(ValueError):
            service.update_settings(StoreConfigUpdate(operating_hours_close="27:00"))

        repo.update_config.assert_not_called()

    def test_update_settings_rejects_equal_hours(self):
        repo = MagicMock()
        service = StoreStatusService(repository=repo)

        with pytest.raises(ValueError, match="must differ"):
            service.update_settings(StoreConfigUpdate(operating_hours_open="9:00", operating_hours_close="09:00"))

        repo.update_config.assert_not_called()
