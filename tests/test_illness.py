"""Tests for illness and wellness detection."""

import pytest
from datetime import date, timedelta

from recovery_analytics.analysis.illness import (
    AlertSeverity,
    AlertType,
    IllnessDetector,
    Severity,
    SignalType,
    WellnessDetector,
    classify_signals,
    detect_signals,
    recommendation,
    trend_consistency,
)
from recovery_analytics.analysis.records import DailySample, DailyScore, Metric


START = date(2024, 9, 1)
NORMAL_DAYS = 30


def normal_sample(i):
    return DailySample(date=START + timedelta(days=i), hrv_ms=60 + i % 3, rhr_bpm=50 + i % 2,
                       respiratory_rate=14.0 + (i % 2) * 0.2)


def history(overrides=None, days=NORMAL_DAYS + 3):
    """Samples for ``days`` days; ``overrides`` maps day index to changed fields."""
    overrides = overrides or {}
    samples = []
    for i in range(days):
        sample = normal_sample(i)
        if i in overrides:
            values = {"hrv_ms": sample.hrv_ms, "rhr_bpm": sample.rhr_bpm, "respiratory_rate": sample.respiratory_rate}
            values.update(overrides[i])
            sample = DailySample(date=sample.date, **values)
        samples.append(sample)
    return samples


def day(i):
    return START + timedelta(days=i)


class TestIllnessSignals:

    def test_no_signals_near_baseline(self):
        assert detect_signals(hrv=58, hrv_baseline=60, rhr=51, rhr_baseline=50,
                              respiratory=14.5, respiratory_baseline=14) == []

    def test_hrv_drop_and_spike(self):
        drop = detect_signals(hrv=45, hrv_baseline=60)
        spike = detect_signals(hrv=130, hrv_baseline=60)

        assert [s.type for s in drop] == [SignalType.HRV_DROP]
        assert drop[0].deviation_percent == pytest.approx(-25)
        assert [s.type for s in spike] == [SignalType.HRV_SPIKE]
        assert detect_signals(hrv=100, hrv_baseline=60) == []

    def test_other_signals(self):
        signals = detect_signals(rhr=53, rhr_baseline=50, respiratory=12.5, respiratory_baseline=14,
                                 sleep_score=70, sleep_baseline=80, activity=4000, activity_baseline=8000)

        assert [s.type for s in signals] == [
            SignalType.ELEVATED_RHR,
            SignalType.SLEEP_DISRUPTION,
            SignalType.RESPIRATORY_CHANGE,
            SignalType.ACTIVITY_DROP,
        ]

    def test_good_sleep_above_usual_is_not_disruption(self):
        assert detect_signals(sleep_score=88, sleep_baseline=80) == []
        assert detect_signals(sleep_score=86, sleep_baseline=90) == []

    def test_severity_and_confidence(self):
        one = detect_signals(hrv=48, hrv_baseline=60)
        severity, confidence = classify_signals(one)

        assert severity == Severity.LOW
        assert confidence == pytest.approx(0.2 * 0.6 + 20 / 50 * 0.4)

        many = detect_signals(hrv=48, hrv_baseline=60, rhr=53, rhr_baseline=50,
                              respiratory=15.5, respiratory_baseline=14, activity=4000, activity_baseline=8000)
        assert classify_signals(many)[0] == Severity.HIGH

    def test_recommendation_names_primary_signal(self):
        signals = detect_signals(hrv=45, hrv_baseline=60, rhr=52, rhr_baseline=50)

        text = recommendation(Severity.MODERATE, signals)

        assert text.startswith("Suppressed HRV detected.")
        assert "Prioritize rest" in text

    def test_trend_consistency(self):
        assert trend_consistency([60, 58, 55, 50], rising=False) == 1.0
        assert trend_consistency([60, 58, 59, 50], rising=False) == pytest.approx(2 / 3)
        assert trend_consistency([50, 52, 55], rising=True) == 1.0
        assert trend_consistency([50], rising=True) == 0.0


class TestIllnessDetector:

    def setup_method(self):
        self.detector = IllnessDetector()
        self.as_of = day(NORMAL_DAYS + 2)

    def test_normal_day(self):
        assert self.detector.detect(history(), self.as_of) is None

    def test_missing_day(self):
        samples = [s for s in history() if s.date != self.as_of]

        assert self.detector.detect(samples, self.as_of) is None

    def test_sudden_illness_signals(self):
        samples = history({NORMAL_DAYS + 2: {"hrv_ms": 30, "rhr_bpm": 60, "respiratory_rate": 17.0}})

        indicator = self.detector.detect(samples, self.as_of)

        assert indicator is not None
        assert indicator.date == self.as_of
        assert {s.type for s in indicator.signals} == {
            SignalType.HRV_DROP, SignalType.ELEVATED_RHR, SignalType.RESPIRATORY_CHANGE,
        }
        assert indicator.severity == Severity.MODERATE
        assert indicator.is_significant
        assert indicator.primary_signal.type == SignalType.HRV_DROP
        assert 0.5 <= indicator.confidence <= 1.0

    def test_weak_single_signal_is_not_reported(self):
        samples = history({NORMAL_DAYS + 2: {"hrv_ms": 52}})

        assert self.detector.detect(samples, self.as_of) is None

    def test_sustained_decline_raises_confidence(self):
        last = NORMAL_DAYS + 2
        sudden = history({last: {"hrv_ms": 30, "rhr_bpm": 60, "respiratory_rate": 17.0}})
        gradual_hrv = {last - 6 + k: {"hrv_ms": 60 - 5 * k} for k in range(6)}
        gradual_hrv[last] = {"hrv_ms": 30, "rhr_bpm": 60, "respiratory_rate": 17.0}
        gradual = history(gradual_hrv)

        sudden_result = self.detector.detect(sudden, self.as_of)
        gradual_result = self.detector.detect(gradual, self.as_of)

        assert gradual_result.confidence > sudden_result.confidence + 0.05

    def test_sleep_scores_add_a_signal(self):
        samples = history({NORMAL_DAYS + 2: {"hrv_ms": 30, "rhr_bpm": 60, "respiratory_rate": 17.0}})
        scores = [DailyScore(date=day(i), recovery=None, sleep=88, strain=None, ctl=0, atl=0)
                  for i in range(NORMAL_DAYS + 2)]
        scores.append(DailyScore(date=self.as_of, recovery=None, sleep=55, strain=None, ctl=0, atl=0))

        indicator = self.detector.detect(samples, self.as_of, scores)

        assert SignalType.SLEEP_DISRUPTION in {s.type for s in indicator.signals}
        assert indicator.severity == Severity.HIGH


class TestWellnessDetector:

    def setup_method(self):
        self.detector = WellnessDetector()
        self.as_of = day(NORMAL_DAYS + 2)
        sick = {"hrv_ms": 40, "rhr_bpm": 60, "respiratory_rate": 17.5}
        self.sick_days = {NORMAL_DAYS + k: sick for k in range(3)}

    def test_consecutive_days(self):
        samples = history(self.sick_days)

        trend = self.detector.analyze_trend(Metric.RHR, samples, self.as_of)

        assert trend.consecutive_days == 3
        assert trend.is_abnormal

    def test_run_ends_at_first_normal_day(self):
        samples = history({NORMAL_DAYS + 2: {"rhr_bpm": 60}})

        trend = self.detector.analyze_trend(Metric.RHR, samples, self.as_of)

        assert trend.consecutive_days == 1
        assert not trend.is_abnormal

    def test_missing_days_are_skipped(self):
        samples = [s for s in history(self.sick_days) if s.date != day(NORMAL_DAYS + 1)]

        trend = self.detector.analyze_trend(Metric.HRV, samples, self.as_of)

        assert trend.consecutive_days == 2

    def test_sustained_alert(self):
        alert = self.detector.detect(history(self.sick_days), self.as_of)

        assert alert is not None
        assert alert.severity == AlertSeverity.AMBER
        assert alert.type == AlertType.SUSTAINED_ELEVATION
        assert set(alert.affected_metrics) == {Metric.HRV, Metric.RHR, Metric.RESPIRATORY}
        assert alert.trend_days == 3

    def test_good_recovery_suppresses_alert(self):
        assert self.detector.detect(history(self.sick_days), self.as_of, recovery=80) is None

    def test_two_metrics_are_not_enough(self):
        partial = {NORMAL_DAYS + k: {"hrv_ms": 40, "rhr_bpm": 60} for k in range(3)}

        assert self.detector.detect(history(partial), self.as_of) is None

    def test_normal_history(self):
        assert self.detector.detect(history(), self.as_of) is None
