"""
Unit tests for delivery ETA estimation
"""
import pytest
from unittest.mock import MagicMock
from datetime import datetime, timedelta, timezone

from snackzo.domain.delivery import ETAFactors
from snackzo.services.delivery_eta_service import (
    DeliveryETAService, calculate_eta, format_eta, countdown_seconds,
    time_of_day, traffic_level, traffic_delay, distance_delay,
    average_delivery_minutes, confidence_level,
)


def at_hour(hour):
    return datetime(2025, 11, 20, hour, 0, tzinfo=timezone.utc)


class TestFactorHelpers:

    @pytest.mark.parametrize("hour,period", [(7, "morning"), (13, "afternoon"), (18, "evening"), (23, "night"), (3, "night")])
    def test_time_of_day(self, hour, period):
        assert time_of_day(hour) == period

    @pytest.mark.parametrize("hour,level", [(9, "high"), (18, "high"), (12, "medium"), (22, "low"), (5, "low")])
    def test_traffic_level(self, hour, level):
        assert traffic_level(hour) == level

    def test_evening_rush_adds_extra_delay(self):
        assert traffic_delay("high", "evening") == 8
        assert traffic_delay("high", "morning") == 5
        assert traffic_delay("medium", "evening") == 2

    def test_distance_rounds_half_up(self):
        assert distance_delay(0.5) == 1
        assert distance_delay(0.75) == 2
        assert distance_delay(1.25) == 3
        assert distance_delay(0.2) == 0

    def test_confidence(self):
        assert confidence_level("r1", 0, "low") == "high"
        assert confidence_level("r1", 3, "high") == "medium"
        assert confidence_level(None, 0, "low") == "medium"
        assert confidence_level(None, 5, "high") == "low"

    def test_average_ignores_outliers_and_gaps(self):
        created = at_hour(12)
        windows = [
            {"created_at": created, "delivered_at": created + timedelta(minutes=20)},
            {"created_at": created, "delivered_at": created + timedelta(minutes=30)},
            {"created_at": created, "delivered_at": created + timedelta(minutes=90)},
            {"created_at": created, "delivered_at": None},
        ]

        assert average_delivery_minutes(windows) == 25

    def test_average_without_history(self):
        assert average_delivery_minutes([]) is None


class TestCalculateETA:

    def test_defaults_in_the_afternoon(self):
        result = calculate_eta(ETAFactors(), at_hour(14))

        # 15 base + 2 medium traffic + 1 for the default 0.5 km
        assert result.estimated_minutes == 18
        assert result.estimated_seconds == 18 * 60
        assert result.estimated_time == at_hour(14) + timedelta(minutes=18)
        assert result.confidence == "low"

    def test_evening_rush(self):
        result = calculate_eta(ETAFactors(), at_hour(18))

        assert result.estimated_minutes == 24
        assert result.factors["traffic_delay"] == 8

    def test_queue_and_distance(self):
        factors = ETAFactors(runner_id="r1", order_queue=3, distance_km=1.2)
        result = calculate_eta(factors, at_hour(23))

        assert result.estimated_minutes == 29
        assert result.confidence == "high"

    def test_express_bonus(self):
        result = calculate_eta(ETAFactors(is_express=True), at_hour(2))

        assert result.estimated_minutes == 9
        assert result.factors["express_bonus"] == -2

    def test_express_floor(self):
        factors = ETAFactors(is_express=True, runner_id="r1", runner_avg_minutes=1, distance_km=0)
        result = calculate_eta(factors, at_hour(2))

        assert result.estimated_minutes == 8

    def test_fast_runner_shaves_time(self):
        factors = ETAFactors(runner_id="r1", runner_avg_minutes=9)
        result = calculate_eta(factors, at_hour(23))

        # 15 + 1 - (15 - 9) * 0.3 = 14.2
        assert result.estimated_minutes == 14

    def test_slow_runner_is_not_penalized(self):
        factors = ETAFactors(runner_id="r1", runner_avg_minutes=40)

        assert calculate_eta(factors, at_hour(23)).estimated_minutes == 16

    def test_explicit_traffic_overrides_clock(self):
        factors = ETAFactors(traffic_level="high", time_of_day="evening")

        assert calculate_eta(factors, at_hour(3)).estimated_minutes == 24


class TestFormatting:

    def test_format_eta(self):
        assert format_eta(0) == "Less than 1 minute"
        assert format_eta(45) == "45 min"
        assert format_eta(75) == "1h 15m"

    def test_countdown(self):
        now = at_hour(12)

        assert countdown_seconds(now + timedelta(minutes=2), now) == 120
        assert countdown_seconds(now - timedelta(minutes=2), now) == 0


class TestDeliveryETAService:

    def test_fills_factors_from_repository(self):
        # Arrange
        repo = MagicMock()
        repo.count_queue.return_value = 2
        repo.get_distance_km.return_value = None
        repo.recent_delivery_windows.return_value = []
        service = DeliveryETAService(repository=repo)

        # Act
        result = service.estimate(ETAFactors(runner_id="r1", order_id="o1"), at_hour(23))

        # Assert: 15 + 2 * 4 + 0 traffic + 1 for 0.5 km
        assert result.estimated_minutes == 24
        repo.count_queue.assert_called_once_with("r1")
        repo.get_distance_km.assert_called_once_with("o1")

    def test_unassigned_order_skips_runner_lookups(self):
        repo = MagicMock()
        repo.get_distance_km.return_value = 1.0
        service = DeliveryETAService(repository=repo)

        result = service.estimate(ETAFactors(order_id="o1"), at_hour(23))

        assert result.estimated_minutes == 17
        repo.count_queue.assert_not_called()
        repo.recent_delivery_windows.assert_not_called()
