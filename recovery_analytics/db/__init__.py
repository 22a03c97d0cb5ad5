"""Database module for recovery analytics."""

from .database import Database, get_db
from .models import DailyScoreRecord
from .repository import ScoreRepository

__all__ = ["Database", "get_db", "DailyScoreRecord", "ScoreRepository"]
