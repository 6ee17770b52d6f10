"""
Scoring rules for trigger relevance: computed score, activation and daily decay.
"""

from datetime import date, datetime
from typing import Iterable, List, Optional, Tuple

from ..models.core import Trigger, clamp_score
from ..utils.config import ScoringConfig
from ..utils.timestamp_utils import days_between


class ScoringEngine:
    """Pure score arithmetic. Persistence and scheduling live in the engine."""

    def __init__(self, config: ScoringConfig):
        self.config = config

    def current_score(self, trigger: Trigger, now: datetime) -> int:
        """Compute the live score of a trigger at ``now``.

        score = usage_count * 2 + stored score - idle days * decay per day,
        floored at 0. Idle days count from the last activation, or from
        creation if the trigger was never used.
        """
        reference = trigger.last_used or trigger.created_at
        days_since_use = max(0, days_between(now, reference))
        usage_bonus = trigger.usage_count * 2
        decay = days_since_use * self.config.decay_per_day
        return max(0, usage_bonus + trigger.score - decay)

    def initial_score(self, importance: int) -> int:
        return clamp_score(self.config.new_trigger + importance * 2)

    def rank_active(self, triggers: Iterable[Trigger], now: datetime) -> List[Tuple[Trigger, int]]:
        """Triggers at or above the archive threshold, best computed score first.

        Ties keep the iteration order of ``triggers``.
        """
        scored = [(trigger, self.current_score(trigger, now)) for trigger in triggers]
        active = [(trigger, score) for trigger, score in scored if score >= self.config.archive_threshold]
        return sorted(active, key=lambda pair: pair[1], reverse=True)

    def activate(self, trigger: Trigger, now: datetime) -> None:
        """Reinforce a trigger that matched a message."""
        trigger.usage_count += 1
        trigger.last_used = now
        trigger.score = clamp_score(trigger.score + self.config.usage_bonus)

    def decay_days(self, today: date, last_run: Optional[date]) -> int:
        """Days of decay owed since the last run, 0 if already run today."""
        if last_run == today:
            return 0
        if last_run is None:
            return 1
        return max(1, (today - last_run).days)

    def decay(self, triggers: Iterable[Trigger], days: int) -> int:
        """Subtract ``days`` worth of decay from each stored score.

        Returns:
            Number of triggers whose stored score changed
        """
        penalty = days * self.config.decay_per_day
        changed = 0
        for trigger in triggers:
            new_score = clamp_score(trigger.score - penalty)
            if new_score != trigger.score:
                trigger.score = new_score
                changed += 1
        return changed
