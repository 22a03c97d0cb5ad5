"""Configuration management for the recovery analytics engine."""

import os
from dotenv import load_dotenv

load_dotenv()


class Config:
    """Application configuration."""

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./recovery_analytics.db")

    # Application
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    DEFAULT_USER_ID: str = os.getenv("DEFAULT_USER_ID", "default")
    BACKFILL_WORKERS: int = int(os.getenv("BACKFILL_WORKERS", "4"))

    # Personal baselines
    BASELINE_WINDOW_DAYS: int = int(os.getenv("BASELINE_WINDOW_DAYS", "30"))
    BASELINE_MIN_SAMPLES: int = int(os.getenv("BASELINE_MIN_SAMPLES", "7"))
    BASELINE_OUTLIER_SIGMA: float = float(os.getenv("BASELINE_OUTLIER_SIGMA", "3.0"))
    TREND_SHORT_TERM_DAYS: int = int(os.getenv("TREND_SHORT_TERM_DAYS", "7"))

    # Athlete defaults (used when a workout carries no personal values)
    ATHLETE_MAX_HR: float = float(os.getenv("ATHLETE_MAX_HR", "190"))
    ATHLETE_RESTING_HR: float = float(os.getenv("ATHLETE_RESTING_HR", "60"))
    ATHLETE_FTP: float = float(os.getenv("ATHLETE_FTP", "250"))
    SLEEP_TARGET_HOURS: float = float(os.getenv("SLEEP_TARGET_HOURS", "8"))

    # Strain calibration. Empirical constants, recalibrate rather than re-derive.
    TRIMP_EXPONENT: float = float(os.getenv("TRIMP_EXPONENT", "1.92"))
    EPOC_MAX: float = float(os.getenv("EPOC_MAX", "1200"))
    SRPE_TRIMP_FACTOR: float = float(os.getenv("SRPE_TRIMP_FACTOR", "0.4"))  # TRIMP per RPE-minute
    TSS_TRIMP_FACTOR: float = float(os.getenv("TSS_TRIMP_FACTOR", "2.6"))  # 100 TSS ~ 1h at threshold
    HRR_AT_FTP: float = float(os.getenv("HRR_AT_FTP", "0.85"))
    CONCURRENT_TRAINING_PENALTY: float = float(os.getenv("CONCURRENT_TRAINING_PENALTY", "1.15"))
    NEAT_TRIMP_CAP: float = float(os.getenv("NEAT_TRIMP_CAP", "7.0"))
    STRAIN_MAX: float = 21.0

    # Training load bounds
    MAX_DAILY_TSS: float = float(os.getenv("MAX_DAILY_TSS", "1000"))

    # Longitudinal analytics
    RISK_WINDOW_DAYS: int = int(os.getenv("RISK_WINDOW_DAYS", "7"))
    RISK_MIN_HISTORY_DAYS: int = int(os.getenv("RISK_MIN_HISTORY_DAYS", "7"))
    PHASE_MIN_WEEKS: int = int(os.getenv("PHASE_MIN_WEEKS", "4"))

    @classmethod
    def sleep_target_seconds(cls) -> float:
        """Default nightly sleep need in seconds."""
        return cls.SLEEP_TARGET_HOURS * 3600


config = Config()
