"""Tests for the nightly sleep score."""

import pytest
from datetime import date, datetime, time, timedelta

from recovery_analytics.analysis.records import DailySample, SleepStages
from recovery_analytics.analysis.sleep import (
    HabitualTiming,
    SleepBand,
    SleepScorer,
    clock_difference_minutes,
    disturbances_component,
    habitual_timing,
    sleep_debt_hours,
    stage_quality_component,
    timing_component,
)


NIGHT = date(2024, 4, 2)
EIGHT_HOURS = 8 * 3600


class TestSleepComponents:

    def test_stage_quality_curve(self):
        assert stage_quality_component(0) < 50
        assert stage_quality_component(30) == pytest.approx(50)
        assert stage_quality_component(35) == pytest.approx(75)
        assert stage_quality_component(40) == 100
        assert stage_quality_component(55) == 100

    def test_stage_quality_is_monotonic(self):
        values = [stage_quality_component(p) for p in range(0, 60)]
        assert all(a <= b for a, b in zip(values, values[1:]))

    @pytest.mark.parametrize("events,expected", [(0, 100), (2, 100), (4, 75), (7, 50), (12, 25)])
    def test_disturbances(self, events, expected):
        assert disturbances_component(events) == expected

    def test_clock_difference_wraps_midnight(self):
        assert clock_difference_minutes(time(23, 30), time(0, 30)) == 60
        assert clock_difference_minutes(time(7, 0), time(7, 20)) == 20

    def test_timing_component(self):
        habitual = HabitualTiming(bedtime=time(23, 0), wake_time=time(7, 0))

        assert timing_component(time(23, 15), time(7, 10), habitual) == 100
        assert timing_component(time(1, 0), time(9, 0), habitual) == 25


class TestSleepScorer:

    def setup_method(self):
        self.scorer = SleepScorer()

    def test_no_sleep_data(self):
        assert self.scorer.score(DailySample(date=NIGHT, hrv_ms=55)) is None

    def test_good_night(self):
        night = DailySample(
            date=NIGHT,
            sleep_duration_sec=EIGHT_HOURS,
            sleep_stages=SleepStages(deep=20, rem=22, core=53, awake=5),
            time_in_bed_sec=8.5 * 3600,
            wake_events=2,
        )

        result = self.scorer.score_detailed(night, EIGHT_HOURS)

        assert result.score >= 95
        assert result.band == SleepBand.OPTIMAL
        assert "timing" not in result.components

    def test_short_fragmented_night(self):
        night = DailySample(
            date=NIGHT,
            sleep_duration_sec=4 * 3600,
            sleep_stages=SleepStages(deep=5, rem=10, core=65, awake=20),
            time_in_bed_sec=6 * 3600,
            wake_events=10,
        )

        score = self.scorer.score(night, EIGHT_HOURS)

        assert 0 <= score < 60

    def test_duration_only(self):
        night = DailySample(date=NIGHT, sleep_duration_sec=6 * 3600)

        assert self.scorer.score(night, EIGHT_HOURS) == 75

    def test_stages_only(self):
        night = DailySample(date=NIGHT, sleep_stages=SleepStages(deep=20, rem=20, core=50, awake=10))
        components = self.scorer.components(night, EIGHT_HOURS)

        assert components["performance"] is None
        assert components["stage_quality"] == 100
        assert components["efficiency"] == pytest.approx(90)

    def test_personal_target_changes_performance(self):
        night = DailySample(date=NIGHT, sleep_duration_sec=7 * 3600)

        assert self.scorer.score(night, 7 * 3600) == 100
        assert self.scorer.score(night, 9 * 3600) < 100

    def test_timing_used_with_habitual_times(self):
        night = DailySample(
            date=NIGHT,
            sleep_duration_sec=EIGHT_HOURS,
            bedtime=datetime(2024, 4, 1, 23, 5),
            wake_time=datetime(2024, 4, 2, 7, 5),
        )
        habitual = HabitualTiming(bedtime=time(23, 0), wake_time=time(7, 0))

        result = self.scorer.score_detailed(night, EIGHT_HOURS, habitual)

        assert result.components["timing"] == 100


class TestSleepHistory:

    def test_habitual_timing_across_midnight(self):
        nights = [
            DailySample(date=NIGHT - timedelta(days=3), bedtime=datetime(2024, 3, 29, 23, 30),
                        wake_time=datetime(2024, 3, 30, 7, 0)),
            DailySample(date=NIGHT - timedelta(days=2), bedtime=datetime(2024, 3, 31, 0, 30),
                        wake_time=datetime(2024, 3, 31, 7, 30)),
            DailySample(date=NIGHT - timedelta(days=1), bedtime=datetime(2024, 3, 31, 23, 0),
                        wake_time=datetime(2024, 4, 1, 6, 30)),
        ]

        habitual = habitual_timing(nights, NIGHT)

        assert habitual.bedtime == time(23, 30)
        assert habitual.wake_time == time(7, 0)

    def test_habitual_timing_needs_three_nights(self):
        nights = [DailySample(date=NIGHT - timedelta(days=1), bedtime=datetime(2024, 3, 31, 23, 0),
                              wake_time=datetime(2024, 4, 1, 7, 0))]

        assert habitual_timing(nights, NIGHT) is None

    def test_sleep_debt(self):
        nights = [
            DailySample(date=NIGHT, sleep_duration_sec=6 * 3600),
            DailySample(date=NIGHT - timedelta(days=1), sleep_duration_sec=9 * 3600),
            DailySample(date=NIGHT - timedelta(days=2)),
        ]

        assert sleep_debt_hours(nights, EIGHT_HOURS) == pytest.approx(2.0)
