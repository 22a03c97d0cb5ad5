"""Database models for computed daily scores."""

from datetime import datetime, timezone

from sqlalchemy import Column, Date, DateTime, Float, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import declarative_base

from ..analysis.records import DailyScore

Base = declarative_base()


def _utcnow():
    return datetime.now(timezone.utc)


class DailyScoreRecord(Base):
    """Scores and load state for one athlete and day.

    TSB is not stored; it is always derived from CTL and ATL.
    """

    __tablename__ = "daily_scores"
    __table_args__ = (UniqueConstraint("user_id", "date", name="uq_daily_scores_user_date"),)

    id = Column(Integer, primary_key=True)
    user_id = Column(String(50), nullable=False, default="default", index=True)
    date = Column(Date, nullable=False)
    recovery = Column(Integer)  # 0-100
    sleep = Column(Integer)  # 0-100
    strain = Column(Float)  # 0-21
    ctl = Column(Float, nullable=False)  # Chronic Training Load
    atl = Column(Float, nullable=False)  # Acute Training Load
    daily_tss = Column(Float, default=0.0)
    hrv_deviation_pct = Column(Float)
    rhr_elevation_pct = Column(Float)
    sleep_debt_hours = Column(Float)
    strain_confidence = Column(String(20))  # full, reduced
    notes = Column(Text)  # newline separated
    fingerprint = Column(String(64))  # digest of the day's raw inputs
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    @property
    def tsb(self) -> float:
        return self.ctl - self.atl

    def to_score(self) -> DailyScore:
        return DailyScore(
            date=self.date,
            recovery=self.recovery,
            sleep=self.sleep,
            strain=self.strain,
            ctl=self.ctl,
            atl=self.atl,
            daily_tss=self.daily_tss or 0.0,
            hrv_deviation_pct=self.hrv_deviation_pct,
            rhr_elevation_pct=self.rhr_elevation_pct,
            sleep_debt_hours=self.sleep_debt_hours,
            strain_confidence=self.strain_confidence,
            notes=tuple(self.notes.split("\n")) if self.notes else (),
            fingerprint=self.fingerprint,
        )

    def update_from(self, score: DailyScore):
        self.recovery = score.recovery
        self.sleep = score.sleep
        self.strain = score.strain
        self.ctl = score.ctl
        self.atl = score.atl
        self.daily_tss = score.daily_tss
        self.hrv_deviation_pct = score.hrv_deviation_pct
        self.rhr_elevation_pct = score.rhr_elevation_pct
        self.sleep_debt_hours = score.sleep_debt_hours
        self.strain_confidence = score.strain_confidence
        self.notes = "\n".join(score.notes) if score.notes else None
        self.fingerprint = score.fingerprint

    def __repr__(self):
        return (f"<DailyScoreRecord(user_id={self.user_id}, date={self.date}, "
                f"recovery={self.recovery}, ctl={self.ctl:.1f}, atl={self.atl:.1f})>")
