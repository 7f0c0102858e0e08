"""
Proficiency module - Adaptive per-skill ability estimation and item selection.

Components:
    - item_response: Difficulty label mapping + 2PL response model
    - proficiency_model: Ability state, online estimator, decay on load
    - mastery: Sticky mastery detection
    - item_selector: Target-difficulty selection with exploration
    - session: Session controller (phase state machine, stop rules)
"""

from .item_response import ItemParameters, get_item_parameters, probability_correct
from .proficiency_model import ProficiencyState, UpdateResult, InProgress, Mastered
from .mastery import check_mastery
from .item_selector import CandidateItem, ItemSelector
from .session import SessionController, SessionState, StopDecision, Phase

__all__ = [
    "ItemParameters",
    "get_item_parameters",
    "probability_correct",
    "ProficiencyState",
    "UpdateResult",
    "InProgress",
    "Mastered",
    "check_mastery",
    "CandidateItem",
    "ItemSelector",
    "SessionController",
    "SessionState",
    "StopDecision",
    "Phase",
]
