"""
Proficiency Model - per-skill ability state and online estimation.

Features:
    - ProficiencyState: theta/sigma estimate, the unit of persistence
    - Tagged mastery status (InProgress | Mastered) with a one-way transition
    - Online gradient update with uncertainty-scaled learning rate
    - Linear forgetting applied when a state is loaded
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Optional, Union

from .item_response import ItemParameters, probability_correct


# Ability scale
MIN_THETA = -3.0
MAX_THETA = 3.0
DEFAULT_THETA = -1.0  # New learners start below average

# Uncertainty
MIN_SIGMA = 0.2
MAX_SIGMA = 2.0
DEFAULT_SIGMA = 1.2
SIGMA_DECAY = 0.95  # Per observation

ALPHA_0 = 0.35  # Base learning rate, scaled by sigma
DAILY_DECAY = 0.02  # Theta lost per day without practice

SECONDS_PER_DAY = 86400


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


# ==================== Mastery Status ====================

@dataclass(frozen=True)
class InProgress:
    """Skill not yet mastered."""


@dataclass(frozen=True)
class Mastered:
    """Skill mastered at `timestamp`. Terminal."""
    timestamp: datetime


MasteryStatus = Union[InProgress, Mastered]

IN_PROGRESS = InProgress()


# ==================== State ====================

@dataclass(frozen=True)
class ProficiencyState:
    """Proficiency estimate for one learner on one skill."""
    theta: float = DEFAULT_THETA
    sigma: float = DEFAULT_SIGMA
    last_updated: datetime = field(default_factory=utcnow)
    question_count: int = 0
    mastery: MasteryStatus = IN_PROGRESS

    @property
    def mastery_achieved(self) -> bool:
        return isinstance(self.mastery, Mastered)

    @property
    def mastery_timestamp(self) -> Optional[datetime]:
        if isinstance(self.mastery, Mastered):
            return self.mastery.timestamp
        return None

    @classmethod
    def default(cls, now: Optional[datetime] = None) -> "ProficiencyState":
        """Cold-start state for a learner practicing a skill for the first time."""
        return cls(last_updated=now or utcnow())

    def mark_mastered(self, now: datetime) -> "ProficiencyState":
        """
        Return a copy in the Mastered state.

        The first timestamp wins; a mastered state is returned unchanged.
        """
        if self.mastery_achieved:
            return self
        return replace(self, mastery=Mastered(timestamp=now))


@dataclass
class UpdateResult:
    """Outcome of a single estimator step."""
    new_theta: float
    new_sigma: float
    predicted_probability: float
    information_gain: float  # |r - p|, diagnostics only


# ==================== Estimation ====================

def update_proficiency(state: ProficiencyState, is_correct: bool,
                       params: ItemParameters) -> UpdateResult:
    """
    One online gradient step on the ability estimate.

    This is an approximation, not posterior inference:
        alpha  = ALPHA_0 * sigma
        theta' = clamp(theta + alpha * (r - p), -3, 3)
        sigma' = clamp(sigma * 0.95, 0.2, 2.0)
    """
    p = probability_correct(state.theta, params)
    r = 1.0 if is_correct else 0.0

    alpha = ALPHA_0 * state.sigma
    new_theta = clamp(state.theta + alpha * (r - p), MIN_THETA, MAX_THETA)
    new_sigma = clamp(state.sigma * SIGMA_DECAY, MIN_SIGMA, MAX_SIGMA)

    return UpdateResult(
        new_theta=new_theta,
        new_sigma=new_sigma,
        predicted_probability=p,
        information_gain=abs(r - p),
    )


def apply_decay(state: ProficiencyState, now: Optional[datetime] = None) -> ProficiencyState:
    """
    Fade theta by DAILY_DECAY per day since the last update.

    Mastered skills are exempt. Applied on load, before use.
    """
    if state.mastery_achieved:
        return state

    now = now or utcnow()
    days_since = max(0.0, (now - state.last_updated).total_seconds() / SECONDS_PER_DAY)
    return replace(
        state,
        theta=clamp(state.theta - DAILY_DECAY * days_since, MIN_THETA, MAX_THETA),
    )
