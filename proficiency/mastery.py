"""
Mastery Detector - decides when a skill's estimate is high and stable enough.

Criteria (all required):
    - theta >= 1.5
    - sigma <= 0.35
    - recent accuracy >= 0.75, only when a full recency window is available

Sticky: a mastered state always reports mastery.
"""

from typing import Optional

from .proficiency_model import ProficiencyState


MASTERY_THETA = 1.5
MASTERY_SIGMA = 0.35
MASTERY_ACCURACY = 0.75


def check_mastery(state: ProficiencyState, recent_accuracy: Optional[float] = None) -> bool:
    """
    Check whether `state` satisfies mastery.

    Args:
        state: Candidate state (already updated)
        recent_accuracy: Fraction correct over a full recency window,
            or None when the window is not full yet

    Returns:
        True if mastered (or already mastered)
    """
    if state.mastery_achieved:
        return True

    high_proficiency = state.theta >= MASTERY_THETA
    high_confidence = state.sigma <= MASTERY_SIGMA

    if recent_accuracy is not None:
        return high_proficiency and high_confidence and recent_accuracy >= MASTERY_ACCURACY

    return high_proficiency and high_confidence
