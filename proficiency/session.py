"""
Session Controller - drives one practice session for one (learner, skill).

Phases:
    warmup   -> first WARMUP_ITEMS answers of the session
    adaptive -> after that
    mastery  -> terminal, once the mastery detector fires

Every recorded answer is written through to the store before the
caller asks for the next item.
"""

from collections import deque
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Callable, Deque, Iterable, Optional, Set

from loguru import logger

from .item_response import ItemParameters
from .item_selector import CandidateItem, ItemSelector
from .mastery import check_mastery, MASTERY_THETA
from .proficiency_model import ProficiencyState, UpdateResult, update_proficiency, utcnow


class Phase(str, Enum):
    WARMUP = "warmup"
    ADAPTIVE = "adaptive"
    MASTERY = "mastery"


@dataclass
class SessionState:
    """Session-scoped bookkeeping. Never persisted."""
    phase: Phase = Phase.WARMUP
    recent_answers: Deque[bool] = field(default_factory=lambda: deque(maxlen=SessionController.WINDOW_SIZE))
    used_item_ids: Set[str] = field(default_factory=set)
    answered: int = 0  # Items answered in this session


@dataclass
class StopDecision:
    stop: bool
    reason: Optional[str] = None


class SessionController:
    """
    Stateful orchestrator for one session.

    Loads the proficiency state on creation; the store is expected to
    apply decay on read and to fall back to a default state on failure.
    """

    WARMUP_ITEMS = 5
    MAX_ITEMS = 40
    WINDOW_SIZE = 8
    CONSISTENCY_THRESHOLD = 0.75

    STOP_MASTERY = "Mastery achieved!"
    STOP_MAX_ITEMS = "Maximum questions reached"
    STOP_CONSISTENT = "Consistent high performance achieved"

    def __init__(self, store, learner_id: str, skill: str,
                 selector: Optional[ItemSelector] = None,
                 clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.learner_id = learner_id
        self.skill = skill
        self.selector = selector or ItemSelector()
        self.clock = clock

        self.proficiency: ProficiencyState = store.get_proficiency(skill, learner_id, now=clock())
        self.session = SessionState()
        if self.proficiency.mastery_achieved:
            self.session.phase = Phase.MASTERY

    # ==================== Properties ====================

    @property
    def phase(self) -> Phase:
        return self.session.phase

    @property
    def answered(self) -> int:
        return self.session.answered

    @property
    def window_full(self) -> bool:
        return len(self.session.recent_answers) >= self.WINDOW_SIZE

    @property
    def recent_accuracy(self) -> float:
        """Fraction correct in the recency window (0 when empty)."""
        answers = self.session.recent_answers
        if not answers:
            return 0.0
        return sum(1 for a in answers if a) / len(answers)

    # ==================== Answers ====================

    def record_answer(self, is_correct: bool, params: ItemParameters) -> UpdateResult:
        """
        Feed one answer through the estimator and mastery detector.

        Returns the estimator's update result. The new state is persisted
        before returning; a failed write is logged by the store and the
        in-memory state stays authoritative.
        """
        now = self.clock()
        result = update_proficiency(self.proficiency, is_correct, params)

        self.session.recent_answers.append(is_correct)
        self.session.answered += 1

        was_mastered = self.proficiency.mastery_achieved
        updated = replace(
            self.proficiency,
            theta=result.new_theta,
            sigma=result.new_sigma,
            last_updated=now,
            question_count=self.proficiency.question_count + 1,
        )

        accuracy = self.recent_accuracy if self.window_full else None
        if check_mastery(updated, accuracy):
            updated = updated.mark_mastered(now)

        if updated.mastery_achieved:
            self.session.phase = Phase.MASTERY
        elif self.session.answered < self.WARMUP_ITEMS:
            self.session.phase = Phase.WARMUP
        else:
            self.session.phase = Phase.ADAPTIVE

        if updated.mastery_achieved and not was_mastered:
            logger.info(
                f"Mastery achieved: learner={self.learner_id} skill={self.skill} "
                f"theta={updated.theta:.3f} sigma={updated.sigma:.3f}"
            )

        self.proficiency = updated
        logger.debug(
            f"Answer recorded: correct={is_correct} p={result.predicted_probability:.3f} "
            f"theta={result.new_theta:.3f} sigma={result.new_sigma:.3f} phase={self.phase.value}"
        )

        self.store.save_proficiency(self.skill, self.learner_id, updated)
        return result

    # ==================== Selection ====================

    def select_next_item(self, pool: Iterable[CandidateItem]) -> Optional[CandidateItem]:
        """Pick the next item for this skill, or None if the pool has none."""
        return self.selector.select(
            skill=self.skill,
            theta=self.proficiency.theta,
            question_count=self.proficiency.question_count,
            phase=self.phase.value,
            pool=pool,
            used_ids=self.session.used_item_ids,
        )

    # ==================== Stopping Rules ====================

    def should_stop(self) -> StopDecision:
        """
        Check if the session should stop.

        Order: mastery, item ceiling, consistent high performance.
        Elapsed-time limits are the caller's responsibility.
        """
        if self.proficiency.mastery_achieved:
            return StopDecision(True, self.STOP_MASTERY)

        if self.session.answered >= self.MAX_ITEMS:
            return StopDecision(True, self.STOP_MAX_ITEMS)

        if (self.window_full
                and self.recent_accuracy >= self.CONSISTENCY_THRESHOLD
                and self.proficiency.theta >= MASTERY_THETA):
            return StopDecision(True, self.STOP_CONSISTENT)

        return StopDecision(False)
