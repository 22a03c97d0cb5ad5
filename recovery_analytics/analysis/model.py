"""Banister/Coggan impulse-response model for chronic and acute training load."""

import logging
import numpy as np
import pandas as pd
from datetime import date, timedelta
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from ..config import config
from ..exceptions import OutOfOrderError
from .records import TrainingLoadState, WorkoutRecord

logger = logging.getLogger(__name__)


# Domain-standard time constants (days); not a per-athlete setting
CTL_TIME_CONSTANT = 42
ATL_TIME_CONSTANT = 7

CTL_DECAY = np.exp(-1 / CTL_TIME_CONSTANT)
ATL_DECAY = np.exp(-1 / ATL_TIME_CONSTANT)

PROJECTION_SCENARIOS = {
    "rest": 0,
    "easy": 30,
    "moderate": 60,
    "hard": 100,
    "very_hard": 150,
}


def daily_tss(workouts: Iterable[WorkoutRecord]) -> Dict[date, float]:
    """Sum training stress per calendar day."""
    totals: Dict[date, float] = {}
    for workout in workouts:
        totals[workout.date] = totals.get(workout.date, 0.0) + workout.training_stress_score
    return totals


class TrainingLoadTracker:
    """Exponentially weighted chronic (CTL) and acute (ATL) training load.

    The tracker holds no history: each update takes the previous state and
    returns a new one, so a replay of the same TSS sequence always ends in the
    same state.
    """

    def __init__(self, max_daily_tss: float = None):
        self.max_daily_tss = max_daily_tss or config.MAX_DAILY_TSS

    def update(self, day: date, tss: float,
               previous: Optional[TrainingLoadState] = None) -> TrainingLoadState:
        """Apply one day's training stress.

        Args:
            day: Day being applied; must be after ``previous.date``
            tss: Total training stress for the day
            previous: State at the end of the prior day, or None for the first day

        Returns:
            Load state at the end of ``day``
        """
        tss = self._sanitize(day, tss)

        if previous is None:
            # First day without history seeds both loads with the day's stress
            return TrainingLoadState(date=day, ctl=tss, atl=tss)

        ctl, atl = previous.ctl, previous.atl

        if previous.date is not None:
            if day <= previous.date:
                raise OutOfOrderError(
                    f"Load update for {day} does not follow previous state {previous.date}"
                )
            # Days without a recorded update still decay the loads
            for _ in range((day - previous.date).days - 1):
                ctl, atl = self._step(ctl, atl, 0.0)

        ctl, atl = self._step(ctl, atl, tss)
        return TrainingLoadState(date=day, ctl=ctl, atl=atl)

    def replay(self, tss_by_date: Mapping[date, float], start: date, end: date,
               initial: Optional[TrainingLoadState] = None) -> List[TrainingLoadState]:
        """Fold over every calendar day from ``start`` to ``end`` inclusive.

        Days missing from ``tss_by_date`` contribute zero stress.
        """
        states = []
        state = initial
        for timestamp in pd.date_range(start=start, end=end, freq="D"):
            day = timestamp.date()
            state = self.update(day, tss_by_date.get(day, 0.0), state)
            states.append(state)
        return states

    def replay_from(self, history: List[TrainingLoadState], from_date: date,
                    tss_by_date: Mapping[date, float], end: date) -> List[TrainingLoadState]:
        """Recompute the chain from ``from_date`` after late or corrected data.

        States before ``from_date`` are kept; everything from it onward is
        rebuilt from the state on the day before.
        """
        kept = [state for state in history if state.date is not None and state.date < from_date]
        initial = kept[-1] if kept else None
        start = from_date
        if initial is not None and (from_date - initial.date).days > 1:
            start = initial.date + timedelta(days=1)

        logger.info(f"Replaying training load from {start} to {end}")
        return kept + self.replay(tss_by_date, start, end, initial)

    def project(self, state: TrainingLoadState, days_ahead: int = 7) -> Dict[str, Dict[str, float]]:
        """Project form under constant-load scenarios.

        Args:
            state: Current load state
            days_ahead: Number of days to simulate

        Returns:
            Dictionary of scenario name to predicted CTL/ATL/TSB
        """
        projections = {}
        for scenario_name, load in PROJECTION_SCENARIOS.items():
            ctl, atl = state.ctl, state.atl
            for _ in range(days_ahead):
                ctl, atl = self._step(ctl, atl, load)

            projections[scenario_name] = {
                "load": load,
                "predicted_ctl": ctl,
                "predicted_atl": atl,
                "predicted_tsb": ctl - atl,
                "tsb_change": (ctl - atl) - state.tsb,
            }
        return projections

    def impulse_response(self, training_loads: np.ndarray,
                         initial: Optional[TrainingLoadState] = None) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Vectorized CTL/ATL/TSB for a contiguous run of daily loads.

        Args:
            training_loads: Array of daily TSS, one entry per consecutive day
            initial: State before the first day, or None to seed from day one

        Returns:
            Tuple of (ctl, atl, tsb) arrays
        """
        loads = np.asarray(training_loads, dtype=float)
        n_days = len(loads)
        ctl = np.zeros(n_days)
        atl = np.zeros(n_days)
        if n_days == 0:
            return ctl, atl, ctl - atl

        extreme = loads > self.max_daily_tss
        if np.any(extreme):
            logger.warning(f"Found {int(np.sum(extreme))} extreme training loads "
                           f"(max: {np.max(loads[extreme]):.1f}), capping at {self.max_daily_tss}")
        loads = np.clip(loads, 0, self.max_daily_tss)

        if initial is None:
            ctl[0] = atl[0] = loads[0]
        else:
            ctl[0], atl[0] = self._step(initial.ctl, initial.atl, loads[0])

        for i in range(1, n_days):
            ctl[i], atl[i] = self._step(ctl[i - 1], atl[i - 1], loads[i])

        return ctl, atl, ctl - atl

    def ctl_ramp(self, history: List[TrainingLoadState], days: int = 7) -> Optional[float]:
        """CTL change over the last ``days`` days of ``history``."""
        dated = sorted((s for s in history if s.date is not None), key=lambda s: s.date)
        if len(dated) < 2:
            return None
        latest = dated[-1]
        reference = next((s for s in reversed(dated) if s.date <= latest.date - timedelta(days=days)), None)
        if reference is None:
            reference = dated[0]
        span = (latest.date - reference.date).days
        if span <= 0:
            return None
        return (latest.ctl - reference.ctl) * days / span

    @staticmethod
    def _step(ctl: float, atl: float, tss: float) -> Tuple[float, float]:
        ctl = ctl * CTL_DECAY + tss * (1 - CTL_DECAY)
        atl = atl * ATL_DECAY + tss * (1 - ATL_DECAY)
        return max(0.0, float(ctl)), max(0.0, float(atl))

    def _sanitize(self, day: date, tss: Optional[float]) -> float:
        if tss is None or not np.isfinite(tss):
            return 0.0
        if tss < 0:
            logger.warning(f"Negative training stress {tss:.1f} on {day}, using 0")
            return 0.0
        if tss > self.max_daily_tss:
            logger.warning(f"Extreme training stress {tss:.1f} on {day}, capping at {self.max_daily_tss}")
            return float(self.max_daily_tss)
        return float(tss)
