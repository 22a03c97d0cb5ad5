"""
Overtraining Risk Assessment

Combines the last week of daily scores into a 0-100 risk score:
- Recovery average (weight 25)
- HRV deviation from baseline (weight 25)
- Resting HR elevation (weight 20)
- Training stress balance (weight 20)
- Accumulated sleep debt (weight 10)

Each factor reports a severity in [0, 1]. The score is the weighted severity
over the factors that have data, so missing signals neither raise nor lower risk.
"""

import logging
import numpy as np
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence

from ..config import config
from .records import DailyScore

logger = logging.getLogger(__name__)


TOP_FACTORS = 3


class RiskLevel(Enum):
    LOW = "low"              # < 30
    MODERATE = "moderate"    # 30-49
    HIGH = "high"            # 50-69
    CRITICAL = "critical"    # 70+


@dataclass(frozen=True)
class RiskFactor:
    name: str
    severity: float
    description: str
    weight: float = 0.0


@dataclass
class RiskAssessment:
    risk_score: float
    risk_level: RiskLevel
    factors: List[RiskFactor] = field(default_factory=list)
    recommendation: str = ""
    days_low_recovery: int = 0
    window_days: int = 7


def classify_risk(score: float) -> RiskLevel:
    if score >= 70:
        return RiskLevel.CRITICAL
    elif score >= 50:
        return RiskLevel.HIGH
    elif score >= 30:
        return RiskLevel.MODERATE
    return RiskLevel.LOW


def recovery_factor(avg_recovery: float) -> RiskFactor:
    if avg_recovery < 50:
        severity, label = 1.0, "Critical"
    elif avg_recovery < 60:
        severity, label = 0.7, "Poor"
    elif avg_recovery < 70:
        severity, label = 0.4, "Fair"
    else:
        severity, label = 0.1, "Good"
    return RiskFactor("Recovery Score", severity,
                      f"{label}: Recovery averaging {int(avg_recovery)}%", weight=25)


def hrv_factor(deviation_pct: float) -> RiskFactor:
    if deviation_pct < -20:
        severity, description = 1.0, f"Critical: HRV {int(abs(deviation_pct))}% below baseline"
    elif deviation_pct < -15:
        severity, description = 0.7, f"High: HRV {int(abs(deviation_pct))}% below baseline"
    elif deviation_pct < -10:
        severity, description = 0.4, f"Moderate: HRV {int(abs(deviation_pct))}% below baseline"
    else:
        severity, description = 0.1, "Normal: HRV within range"
    return RiskFactor("HRV Deviation", severity, description, weight=25)


def rhr_factor(elevation_pct: float) -> RiskFactor:
    if elevation_pct > 15:
        severity, description = 1.0, f"Critical: RHR +{int(elevation_pct)}% above baseline"
    elif elevation_pct > 10:
        severity, description = 0.7, f"High: RHR +{int(elevation_pct)}% above baseline"
    elif elevation_pct > 5:
        severity, description = 0.4, f"Moderate: RHR +{int(elevation_pct)}% above baseline"
    else:
        severity, description = 0.1, "Normal: RHR within range"
    return RiskFactor("Resting Heart Rate", severity, description, weight=20)


def tsb_factor(tsb: float) -> RiskFactor:
    if tsb < -30:
        severity, description = 1.0, f"Critical: TSB {int(tsb)} (severe overreaching)"
    elif tsb < -20:
        severity, description = 0.7, f"High: TSB {int(tsb)} (functional overreaching)"
    elif tsb < -10:
        severity, description = 0.3, f"Moderate: TSB {int(tsb)} (fatigued)"
    else:
        severity, description = 0.1, f"Good: TSB {int(tsb)} (fresh or building)"
    return RiskFactor("Training Stress Balance", severity, description, weight=20)


def sleep_debt_factor(debt_hours: float) -> RiskFactor:
    if debt_hours > 10:
        severity, label = 1.0, "Critical"
    elif debt_hours > 6:
        severity, label = 0.6, "High"
    elif debt_hours > 3:
        severity, label = 0.3, "Moderate"
    else:
        severity, label = 0.1, "Low"
    return RiskFactor("Sleep Debt", severity, f"{label}: {debt_hours:.1f} hours sleep debt", weight=10)


class OvertrainingRiskAssessor:
    """Risk assessment over a trailing window of daily scores."""

    def __init__(self, min_history_days: int = None):
        self.min_history_days = min_history_days or config.RISK_MIN_HISTORY_DAYS

    def assess(self, recent_scores: Sequence[DailyScore], window: int = None) -> Optional[RiskAssessment]:
        """
        Assess overtraining risk from the most recent ``window`` days.

        Returns:
            RiskAssessment, or None when fewer than the minimum days of history exist
        """
        window = window or config.RISK_WINDOW_DAYS
        scores = sorted(recent_scores, key=lambda s: s.date)[-window:]

        if len(scores) < self.min_history_days:
            logger.info(f"Risk assessment unavailable: {len(scores)} days < {self.min_history_days}")
            return None

        factors = self.factors(scores)

        total_weight = sum(f.weight for f in factors)
        if total_weight > 0:
            risk_score = sum(f.severity * f.weight for f in factors) / total_weight * 100
        else:
            risk_score = 0.0
        risk_score = float(min(100.0, max(0.0, risk_score)))

        risk_level = classify_risk(risk_score)
        ranked = sorted(factors, key=lambda f: f.severity, reverse=True)
        days_low = sum(1 for s in scores if s.recovery is not None and s.recovery < 60)

        return RiskAssessment(
            risk_score=risk_score,
            risk_level=risk_level,
            factors=ranked[:TOP_FACTORS],
            recommendation=self._recommendation(risk_level, risk_score, ranked),
            days_low_recovery=days_low,
            window_days=window,
        )

    def factors(self, scores: Sequence[DailyScore]) -> List[RiskFactor]:
        factors = []

        recoveries = [s.recovery for s in scores if s.recovery is not None]
        if recoveries:
            factors.append(recovery_factor(float(np.mean(recoveries))))

        hrv_deviations = [s.hrv_deviation_pct for s in scores if s.hrv_deviation_pct is not None]
        if hrv_deviations:
            factors.append(hrv_factor(float(np.mean(hrv_deviations))))

        rhr_elevations = [s.rhr_elevation_pct for s in scores if s.rhr_elevation_pct is not None]
        if rhr_elevations:
            factors.append(rhr_factor(float(np.mean(rhr_elevations))))

        factors.append(tsb_factor(scores[-1].tsb))

        debts = [s.sleep_debt_hours for s in scores if s.sleep_debt_hours is not None]
        if debts:
            factors.append(sleep_debt_factor(debts[-1]))

        return factors

    @staticmethod
    def _recommendation(level: RiskLevel, score: float, ranked: List[RiskFactor]) -> str:
        if level == RiskLevel.LOW:
            return "Continue current training. Your body is adapting well to the workload."
        elif level == RiskLevel.MODERATE:
            if ranked:
                return f"Monitor closely. Primary concern: {ranked[0].name}. Consider 1-2 easier days."
            return "Monitor recovery markers. Consider lighter training this week."
        elif level == RiskLevel.HIGH:
            return (f"High overtraining risk detected ({int(score)}/100). Take 3-5 recovery days with "
                    "easy/no training. Prioritize sleep and nutrition.")
        return ("CRITICAL: Immediate rest required. Take 5-7 days complete rest or very easy activity. "
                "If symptoms persist, consult a coach or doctor.")
