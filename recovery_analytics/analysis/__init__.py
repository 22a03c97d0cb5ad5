"""Analysis module for daily recovery, sleep and strain scoring."""

from .baseline import Baseline, BaselineEngine, BaselineSet
from .correlation_analyzer import CorrelationAnalyzer, CorrelationResult
from .illness import IllnessDetector, IllnessIndicator, WellnessAlert, WellnessDetector
from .model import TrainingLoadTracker
from .overtraining import OvertrainingRiskAssessor, RiskAssessment
from .periodization import PhaseResult, TrainingPhaseDetector
from .pipeline import DailyScoreEngine, Timeline, score_timelines
from .records import DailySample, DailyScore, Metric, SleepStages, TrainingLoadState, WorkoutRecord
from .recovery import RecoveryScorer
from .sleep import SleepScorer
from .strain import NonExerciseActivity, StrainScorer
from .stress import StressCalculator, StressScore

__all__ = [
    "Baseline",
    "BaselineEngine",
    "BaselineSet",
    "CorrelationAnalyzer",
    "CorrelationResult",
    "DailySample",
    "DailyScore",
    "DailyScoreEngine",
    "IllnessDetector",
    "IllnessIndicator",
    "Metric",
    "NonExerciseActivity",
    "OvertrainingRiskAssessor",
    "PhaseResult",
    "RecoveryScorer",
    "RiskAssessment",
    "SleepScorer",
    "SleepStages",
    "StrainScorer",
    "StressCalculator",
    "StressScore",
    "Timeline",
    "TrainingLoadState",
    "TrainingLoadTracker",
    "TrainingPhaseDetector",
    "WellnessAlert",
    "WellnessDetector",
    "WorkoutRecord",
    "score_timelines",
]
