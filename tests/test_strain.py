"""Tests for the daily strain score."""

import pytest
from datetime import date

from recovery_analytics.analysis.records import WorkoutRecord
from recovery_analytics.analysis.strain import (
    LoadSource,
    NonExerciseActivity,
    StrainBand,
    StrainConfidence,
    StrainScorer,
    cardio_load,
    classify_strain,
    heart_rate_reserve,
    neat_trimp,
    recovery_factor,
    trimp,
)


DAY = date(2024, 7, 4)


def ride(minutes=60, tss=70, **kwargs):
    return WorkoutRecord(date=DAY, duration_sec=minutes * 60, training_stress_score=tss, **kwargs)


class TestStrainFunctions:

    def test_heart_rate_reserve(self):
        assert heart_rate_reserve(60, 190, 60) == 0
        assert heart_rate_reserve(190, 190, 60) == 1
        assert heart_rate_reserve(125, 190, 60) == pytest.approx(0.5)
        assert heart_rate_reserve(250, 190, 60) == 1

    def test_trimp_increases_with_intensity(self):
        assert trimp(60, 0.8) > trimp(60, 0.5) > trimp(60, 0.2)

    def test_cardio_load_is_compressed(self):
        single = cardio_load(150)
        double = cardio_load(300)

        assert double > single
        assert double <= 2 * single
        assert cardio_load(0) == 0

    @pytest.mark.parametrize("load", [0.05, 0.1, 0.3, 0.6, 0.87, 1.0, 5.0, 40.0, 600.0])
    def test_doubling_small_loads_at_most_doubles(self, load):
        assert cardio_load(load) > 0
        assert cardio_load(2 * load) <= 2 * cardio_load(load) + 1e-12

    def test_cardio_load_is_linear_for_tiny_loads(self):
        assert cardio_load(0.2) == pytest.approx(2 * cardio_load(0.1))
        assert cardio_load(-1.0) == 0

    def test_neat_is_capped(self):
        assert neat_trimp(None, None) == 0
        assert neat_trimp(10000, None) == pytest.approx(5.0)
        assert neat_trimp(100000, 5000) <= 7.0

    def test_recovery_factor(self):
        assert recovery_factor(None) == 1.0
        assert recovery_factor(50) == pytest.approx(1.0)
        assert recovery_factor(0) == pytest.approx(1.15)
        assert recovery_factor(100) == pytest.approx(0.85)

    @pytest.mark.parametrize("score,band", [
        (3.0, StrainBand.LIGHT),
        (8.0, StrainBand.MODERATE),
        (13.5, StrainBand.HARD),
        (17.0, StrainBand.VERY_HARD),
        (19.5, StrainBand.ALL_OUT),
    ])
    def test_classify_strain(self, score, band):
        assert classify_strain(score) == band


class TestStrainScorer:

    def setup_method(self):
        self.scorer = StrainScorer(max_hr=190, resting_hr=60, ftp=250)

    def test_rest_day(self):
        result = self.scorer.score_detailed([])

        assert result.score == 0
        assert result.band == StrainBand.LIGHT
        assert result.confidence == StrainConfidence.FULL

    def test_one_hour_moderate_ride(self):
        score = self.scorer.score([ride(avg_hr=150)])

        assert score == pytest.approx(10.6, abs=0.3)

    def test_doubling_load_less_than_doubles_strain(self):
        single = self.scorer.score([ride(avg_hr=150)])
        double = self.scorer.score([ride(avg_hr=150), ride(avg_hr=150)])

        assert double > single
        assert double <= 2 * single

    def test_bounded(self):
        workouts = [ride(minutes=300, avg_hr=185) for _ in range(4)]
        non_exercise = NonExerciseActivity(steps=40000, active_energy_kcal=4000)

        score = self.scorer.score(workouts, non_exercise, recovery=0)

        assert 0 <= score <= 21

    def test_hr_stream_matches_average_for_constant_effort(self):
        stream = self.scorer.workout_load(ride(heart_rate_samples=tuple([150.0] * 60)))
        average = self.scorer.workout_load(ride(avg_hr=150))

        assert stream.source == LoadSource.HR_STREAM
        assert average.source == LoadSource.AVG_HR
        assert stream.trimp == pytest.approx(average.trimp)

    def test_source_priority(self):
        assert self.scorer.workout_load(ride(avg_hr=150, power_samples=(200.0,) * 10)).source == LoadSource.POWER_STREAM
        assert self.scorer.workout_load(ride(avg_hr=150, rpe=6)).source == LoadSource.AVG_HR
        assert self.scorer.workout_load(ride(rpe=6)).source == LoadSource.SESSION_RPE
        assert self.scorer.workout_load(ride(tss=100)).source == LoadSource.TSS_ESTIMATE

    def test_tss_estimate(self):
        load = self.scorer.workout_load(ride(tss=100))

        assert load.trimp == pytest.approx(260)

    def test_estimated_sources_reduce_confidence(self):
        stream = self.scorer.score_detailed([ride(heart_rate_samples=tuple([150.0] * 60))])
        estimated = self.scorer.score_detailed([ride(avg_hr=150)])

        assert stream.confidence == StrainConfidence.FULL
        assert estimated.confidence == StrainConfidence.REDUCED
        assert any("avg_hr" in reason for reason in estimated.reasons)

    def test_recovery_modulation(self):
        workouts = [ride(avg_hr=150)]

        low = self.scorer.score(workouts, recovery=10)
        neutral = self.scorer.score(workouts)
        high = self.scorer.score(workouts, recovery=95)

        assert low > neutral > high

    def test_concurrent_training_interference(self):
        cardio = ride(avg_hr=150)
        strength = WorkoutRecord(date=DAY, duration_sec=2700, training_stress_score=0, sport="WeightTraining", rpe=7)

        result = self.scorer.score_detailed([cardio, strength])
        separate = sum(self.scorer.workout_load(w).trimp for w in (cardio, strength))

        assert strength.is_strength
        assert result.workout_trimp == pytest.approx(separate * 1.15)

    def test_rpe_only_run_is_not_strength(self):
        cardio = ride(avg_hr=150)
        run = WorkoutRecord(date=DAY, duration_sec=2400, training_stress_score=0, sport="Run", rpe=6)

        result = self.scorer.score_detailed([cardio, run])
        separate = sum(self.scorer.workout_load(w).trimp for w in (cardio, run))

        assert not run.is_strength
        assert self.scorer.workout_load(run).source == LoadSource.SESSION_RPE
        assert result.workout_trimp == pytest.approx(separate)

    def test_non_exercise_adds_strain(self):
        without = self.scorer.score([ride(minutes=30, avg_hr=130)])
        with_steps = self.scorer.score([ride(minutes=30, avg_hr=130)], NonExerciseActivity(steps=12000))

        assert with_steps > without

    def test_steps_only_day(self):
        result = self.scorer.score_detailed([], NonExerciseActivity(steps=8000))

        assert result.score > 0
        assert result.neat_trimp == pytest.approx(4.0)
