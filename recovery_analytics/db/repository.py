"""Storage of computed daily scores per athlete."""

import logging
from datetime import date
from typing import Dict, Iterable, List, Optional

from ..analysis.records import DailyScore
from .database import Database, get_db
from .models import DailyScoreRecord

logger = logging.getLogger(__name__)


class ScoreRepository:
    """Reads and writes DailyScore rows keyed by (user_id, date)."""

    def __init__(self, db: Optional[Database] = None, user_id: str = "default"):
        self.db = db or get_db()
        self.user_id = user_id

    def save(self, scores: Iterable[DailyScore]) -> int:
        """Insert or update scores. Recomputing a day overwrites its row."""
        count = 0
        with self.db.get_session() as session:
            existing = {
                record.date: record
                for record in session.query(DailyScoreRecord).filter_by(user_id=self.user_id)
            }
            for score in scores:
                record = existing.get(score.date)
                if record is None:
                    record = DailyScoreRecord(user_id=self.user_id, date=score.date)
                    session.add(record)
                    existing[score.date] = record
                record.update_from(score)
                count += 1
        logger.debug(f"Saved {count} daily scores for {self.user_id}")
        return count

    def load(self, start: Optional[date] = None, end: Optional[date] = None) -> List[DailyScore]:
        with self.db.get_session() as session:
            query = session.query(DailyScoreRecord).filter(DailyScoreRecord.user_id == self.user_id)
            if start is not None:
                query = query.filter(DailyScoreRecord.date >= start)
            if end is not None:
                query = query.filter(DailyScoreRecord.date <= end)
            return [record.to_score() for record in query.order_by(DailyScoreRecord.date)]

    def latest(self) -> Optional[DailyScore]:
        with self.db.get_session() as session:
            record = (
                session.query(DailyScoreRecord)
                .filter_by(user_id=self.user_id)
                .order_by(DailyScoreRecord.date.desc())
                .first()
            )
            return record.to_score() if record else None

    def fingerprints(self) -> Dict[date, str]:
        with self.db.get_session() as session:
            rows = (
                session.query(DailyScoreRecord.date, DailyScoreRecord.fingerprint)
                .filter_by(user_id=self.user_id)
                .all()
            )
            return {row.date: row.fingerprint for row in rows}

    def invalidate_from(self, from_date: date) -> int:
        """Delete scores on or after ``from_date`` so they are recomputed."""
        with self.db.get_session() as session:
            deleted = (
                session.query(DailyScoreRecord)
                .filter(DailyScoreRecord.user_id == self.user_id, DailyScoreRecord.date >= from_date)
                .delete(synchronize_session=False)
            )
        logger.info(f"Invalidated {deleted} daily scores for {self.user_id} from {from_date}")
        return deleted

    def clear(self) -> int:
        with self.db.get_session() as session:
            return (
                session.query(DailyScoreRecord)
                .filter(DailyScoreRecord.user_id == self.user_id)
                .delete(synchronize_session=False)
            )
