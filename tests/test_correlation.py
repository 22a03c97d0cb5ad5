"""Tests for recovery-performance correlation analysis."""

import numpy as np
import pandas as pd
import pytest
from datetime import date, timedelta

from recovery_analytics.analysis.correlation_analyzer import (
    CorrelationAnalyzer,
    Significance,
    Trend,
    classify_significance,
)
from recovery_analytics.analysis.records import DailyScore, WorkoutRecord
from recovery_analytics.exceptions import InsufficientDataError


class TestCorrelationAnalyzer:

    def setup_method(self):
        self.analyzer = CorrelationAnalyzer()

    def test_identical_series(self):
        result = self.analyzer.analyze([1, 2, 3, 4, 5], [1, 2, 3, 4, 5])

        assert result.coefficient == pytest.approx(1.0)
        assert result.r_squared == pytest.approx(1.0)
        assert result.significance == Significance.STRONG
        assert result.trend == Trend.POSITIVE
        assert result.sample_size == 5
        assert result.trend_line.slope == pytest.approx(1.0)
        assert result.trend_line.intercept == pytest.approx(0.0, abs=1e-9)

    def test_negated_series(self):
        result = self.analyzer.analyze([1, 2, 3, 4, 5], [-1, -2, -3, -4, -5])

        assert result.coefficient == pytest.approx(-1.0)
        assert result.trend == Trend.NEGATIVE
        assert result.significance == Significance.STRONG

    def test_trend_line_prediction(self):
        result = self.analyzer.analyze([0, 1, 2, 3], [10, 12, 14, 16])

        assert result.trend_line.predict(5) == pytest.approx(20)

    def test_constant_series_has_no_correlation(self):
        result = self.analyzer.analyze([1, 2, 3, 4], [7, 7, 7, 7])

        assert result.coefficient == 0
        assert result.significance == Significance.NONE
        assert result.p_value is None

    def test_constant_x_has_no_trend_line(self):
        result = self.analyzer.analyze([3, 3, 3], [1, 2, 3])

        assert result.trend_line is None
        assert result.significance == Significance.NONE

    def test_too_few_pairs(self):
        with pytest.raises(InsufficientDataError):
            self.analyzer.analyze([1], [2])
        with pytest.raises(InsufficientDataError):
            self.analyzer.analyze([], [])

    def test_mismatched_lengths(self):
        with pytest.raises(ValueError):
            self.analyzer.analyze([1, 2, 3], [1, 2])

    def test_p_value_for_strong_relationship(self):
        xs = list(range(20))
        ys = [2 * x + (1 if x % 2 else -1) for x in xs]

        result = self.analyzer.analyze(xs, ys)

        assert result.is_significant
        assert result.p_value < 0.001

    def test_lagged_finds_leading_indicator(self):
        xs = [3, 7, 1, 9, 4, 8, 2, 6, 5, 10, 1, 7, 3, 9, 2, 8, 4, 6, 5, 1]
        ys = [0, 0] + xs[:-2]

        indicator = self.analyzer.lagged(xs, ys, max_lag=5)

        assert indicator.optimal_lag_days == 2
        assert indicator.result.lag_days == 2
        assert indicator.result.coefficient == pytest.approx(1.0)
        assert indicator.predictive_power == "strong"

    def test_lagged_needs_enough_samples(self):
        assert self.analyzer.lagged([1, 2, 3], [3, 2, 1]) is None

    def test_missing_values_are_dropped(self):
        nan = float("nan")

        result = self.analyzer.analyze([1, 2, nan, 4, 5, None], [2, 4, 100, 8, nan, 12])

        assert result.sample_size == 3
        assert result.coefficient == pytest.approx(1.0)
        assert result.trend_line.slope == pytest.approx(2.0)

    def test_missing_values_do_not_fake_a_perfect_correlation(self):
        nan = float("nan")

        result = self.analyzer.analyze([60, 70, nan, 50, 80, 65], [120, 90, 150, 110, 95, 130])

        assert result.sample_size == 5
        assert result.coefficient < 0
        assert result.coefficient == pytest.approx(-0.5, abs=0.01)

    def test_gap_day_from_dataframe(self):
        df = pd.DataFrame({
            "recovery": [55.0, 70.0, np.nan, 40.0, 85.0],
            "daily_tss": [90.0, 60.0, 0.0, 120.0, 30.0],
        })

        result = self.analyzer.analyze(df["recovery"].tolist(), df["daily_tss"].tolist())

        assert result.sample_size == 4
        assert result.coefficient == pytest.approx(-1.0)

    def test_all_pairs_incomplete(self):
        nan = float("nan")
        with pytest.raises(InsufficientDataError):
            self.analyzer.analyze([nan, 1, None], [1, nan, 2])

    def test_lagged_skips_gaps(self):
        xs = [3, 7, 1, 9, 4, 8, 2, 6, 5, 10, 1, 7, 3, 9, 2, 8, 4, 6, 5, 1]
        ys = [0, 0] + xs[:-2]
        xs[5] = float("nan")

        indicator = self.analyzer.lagged(xs, ys, max_lag=5)

        assert indicator.optimal_lag_days == 2
        assert indicator.result.sample_size == 17
        assert indicator.result.coefficient == pytest.approx(1.0)

    def test_recovery_vs_performance(self):
        start = date(2024, 2, 1)
        scores = []
        workouts = []
        for i in range(10):
            day = start + timedelta(days=i)
            recovery = 40 + i * 5
            scores.append(DailyScore(date=day, recovery=recovery, sleep=None, strain=None, ctl=0, atl=0))
            workouts.append(WorkoutRecord(date=day, duration_sec=3600, training_stress_score=70,
                                          avg_power=150 + recovery))
        # A stream-only ride counts through its mean power
        scores.append(DailyScore(date=start + timedelta(days=10), recovery=90, sleep=None,
                                 strain=None, ctl=0, atl=0))
        workouts.append(WorkoutRecord(date=start + timedelta(days=10), duration_sec=1800, training_stress_score=40,
                                      power_samples=(230.0, 250.0)))
        # Runs without power and workouts without a recovery score are not paired
        workouts.append(WorkoutRecord(date=start + timedelta(days=3), duration_sec=1800, training_stress_score=30,
                                      sport="Run", avg_hr=150))
        workouts.append(WorkoutRecord(date=start + timedelta(days=20), duration_sec=3600, training_stress_score=60,
                                      avg_power=200))

        result = self.analyzer.recovery_vs_performance(scores, workouts)

        assert result.sample_size == 11
        assert result.coefficient == pytest.approx(1.0)
        assert result.trend_line.slope == pytest.approx(1.0)

    def test_recovery_vs_performance_needs_three_power_workouts(self):
        day = date(2024, 2, 1)
        scores = [DailyScore(date=day + timedelta(days=i), recovery=50 + i, sleep=None, strain=None, ctl=0, atl=0)
                  for i in range(5)]
        workouts = [
            WorkoutRecord(date=day, duration_sec=3600, training_stress_score=60, avg_power=180),
            WorkoutRecord(date=day + timedelta(days=1), duration_sec=3600, training_stress_score=60, avg_power=190),
            WorkoutRecord(date=day + timedelta(days=2), duration_sec=3600, training_stress_score=60, avg_hr=140),
        ]

        with pytest.raises(InsufficientDataError):
            self.analyzer.recovery_vs_performance(scores, workouts)

    def test_insight_text(self):
        strong = self.analyzer.analyze([1, 2, 3, 4], [2, 4, 6, 8])
        none = self.analyzer.analyze([1, 2, 3, 4], [5, 5, 5, 5])

        assert "Strong positive" in CorrelationAnalyzer.insight(strong, "sleep", "recovery")
        assert "independent" in CorrelationAnalyzer.insight(none, "sleep", "recovery")

    @pytest.mark.parametrize("r,expected", [
        (0.85, Significance.STRONG),
        (-0.5, Significance.MODERATE),
        (0.25, Significance.WEAK),
        (0.1, Significance.NONE),
    ])
    def test_classify_significance(self, r, expected):
        assert classify_significance(r) == expected
