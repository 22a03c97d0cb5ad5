"""Tests for overtraining risk assessment."""

import pytest
from datetime import date, timedelta

from recovery_analytics.analysis.overtraining import (
    OvertrainingRiskAssessor,
    RiskLevel,
    classify_risk,
    hrv_factor,
    sleep_debt_factor,
    tsb_factor,
)
from recovery_analytics.analysis.records import DailyScore


def week_of_scores(days=7, recovery=78, ctl=50.0, atl=50.0, hrv=0.0, rhr=0.0, debt=None):
    start = date(2024, 8, 1)
    return [
        DailyScore(
            date=start + timedelta(days=i),
            recovery=recovery,
            sleep=80,
            strain=10.0,
            ctl=ctl,
            atl=atl,
            hrv_deviation_pct=hrv,
            rhr_elevation_pct=rhr,
            sleep_debt_hours=debt,
        )
        for i in range(days)
    ]


class TestRiskFactors:

    def test_hrv_factor_thresholds(self):
        assert hrv_factor(-25).severity == 1.0
        assert hrv_factor(-18).severity == 0.7
        assert hrv_factor(-12).severity == 0.4
        assert hrv_factor(0).severity == 0.1

    def test_tsb_factor_thresholds(self):
        assert tsb_factor(-35).severity == 1.0
        assert tsb_factor(-22).severity == 0.7
        assert tsb_factor(-15).severity == 0.3
        assert tsb_factor(5).severity == 0.1

    def test_sleep_debt_description(self):
        factor = sleep_debt_factor(7.25)

        assert factor.severity == 0.6
        assert "7.2 hours" in factor.description or "7.3 hours" in factor.description

    @pytest.mark.parametrize("score,level", [
        (10, RiskLevel.LOW),
        (35, RiskLevel.MODERATE),
        (55, RiskLevel.HIGH),
        (85, RiskLevel.CRITICAL),
    ])
    def test_classify_risk(self, score, level):
        assert classify_risk(score) == level


class TestOvertrainingRiskAssessor:

    def setup_method(self):
        self.assessor = OvertrainingRiskAssessor()

    def test_insufficient_history(self):
        assert self.assessor.assess(week_of_scores(days=6)) is None

    def test_well_recovered_athlete(self):
        assessment = self.assessor.assess(week_of_scores(recovery=78, debt=1.0))

        assert assessment.risk_level == RiskLevel.LOW
        assert assessment.risk_score == pytest.approx(10)
        assert assessment.days_low_recovery == 0
        assert assessment.recommendation.startswith("Continue current training")

    def test_overreached_athlete(self):
        assessment = self.assessor.assess(
            week_of_scores(recovery=54, ctl=40, atl=62, hrv=-18, rhr=12, debt=7.0)
        )

        assert assessment.risk_score == pytest.approx(69)
        assert assessment.risk_level == RiskLevel.HIGH
        assert assessment.days_low_recovery == 7
        assert len(assessment.factors) == 3
        assert all(f.severity == 0.7 for f in assessment.factors)

    def test_critical_athlete(self):
        assessment = self.assessor.assess(
            week_of_scores(recovery=45, ctl=40, atl=80, hrv=-25, rhr=None, debt=None)
        )

        assert assessment.risk_score == pytest.approx(100)
        assert assessment.risk_level == RiskLevel.CRITICAL
        assert assessment.recommendation.startswith("CRITICAL")

    def test_missing_signals_do_not_raise_risk(self):
        scores = [
            DailyScore(date=date(2024, 8, 1) + timedelta(days=i), recovery=None, sleep=None,
                       strain=None, ctl=30, atl=30)
            for i in range(7)
        ]

        assessment = self.assessor.assess(scores)

        # Only training stress balance is known, and it is fine
        assert assessment.risk_score == pytest.approx(10)
        assert [f.name for f in assessment.factors] == ["Training Stress Balance"]

    def test_window_uses_most_recent_days(self):
        old = week_of_scores(days=7, recovery=30, hrv=-30)
        recent = [
            DailyScore(date=s.date + timedelta(days=7), recovery=85, sleep=80, strain=8.0,
                       ctl=50, atl=45, hrv_deviation_pct=2.0, rhr_elevation_pct=0.0)
            for s in old
        ]

        assessment = self.assessor.assess(old + recent, window=7)

        assert assessment.risk_level == RiskLevel.LOW
        assert assessment.window_days == 7
