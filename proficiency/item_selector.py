"""
Item Selector - picks the next practice item from a caller-supplied pool.

Features:
    - Skill filtering over an in-memory candidate pool
    - Used-item tracking with reset when the pool is exhausted
    - Score = informativeness near theta + proximity to target difficulty
    - Exploration (random pick) and periodic confidence-building easier items
"""

import random
from dataclasses import dataclass
from typing import Iterable, List, Optional, Set

from loguru import logger

from .item_response import ItemParameters, get_item_parameters, selection_score


@dataclass(frozen=True)
class CandidateItem:
    """A practice item as supplied by the catalog. Never mutated."""
    id: str
    skill: str
    difficulty: Optional[str] = None  # easy | medium | hard

    @property
    def params(self) -> ItemParameters:
        return get_item_parameters(self.difficulty)


@dataclass
class ScoredCandidate:
    """A candidate with its selection metrics."""
    item: CandidateItem
    params: ItemParameters
    score: float


def target_difficulty(theta: float, phase: str = "adaptive") -> float:
    """
    Difficulty to aim for: slightly above current ability.

    Warm-up and adaptive currently share the same offset.
    """
    if phase == "warmup":
        return theta + ItemSelector.TARGET_OFFSET
    return theta + ItemSelector.TARGET_OFFSET


class ItemSelector:
    """
    Target-difficulty item selection with exploration.

    `rng` only needs `random()` and `choice()`; pass a seeded
    `random.Random` for reproducible sessions.
    """

    TARGET_OFFSET = 0.3
    EXPLORATION_RATE = 0.15

    # Every CONFIDENCE_INTERVAL-th item, prefer something clearly easier
    CONFIDENCE_INTERVAL = 6
    CONFIDENCE_MARGIN = 0.5

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    # ==================== Selection ====================

    def select(self, skill: str, theta: float, question_count: int, phase: str,
               pool: Iterable[CandidateItem], used_ids: Set[str]) -> Optional[CandidateItem]:
        """
        Select the next item and record it in `used_ids`.

        Args:
            skill: Active skill; off-skill candidates are never returned
            theta: Current ability estimate
            question_count: Cumulative items answered for the skill
            phase: Session phase ("warmup" | "adaptive" | "mastery")
            pool: Candidate items, in catalog order
            used_ids: Items already shown this session (mutated)

        Returns:
            Chosen item, or None if no item matches the skill
        """
        skill_items = [item for item in pool if item.skill == skill]
        if not skill_items:
            logger.warning(f"No eligible items for skill '{skill}'")
            return None

        unused = [item for item in skill_items if item.id not in used_ids]
        if not unused:
            logger.debug(f"All {len(skill_items)} items for '{skill}' used, resetting used set")
            used_ids.clear()
            return self._record(self.rng.choice(skill_items), used_ids)

        target = target_difficulty(theta, phase)
        scored = self._score(unused, target, theta)

        # Exploration: ignore scores entirely
        if len(scored) > 1 and self.rng.random() < self.EXPLORATION_RATE:
            selected = self.rng.choice(scored)
            logger.debug(f"Exploring: picked {selected.item.id} at random")
            return self._record(selected.item, used_ids)

        # Confidence injection
        if question_count > 0 and question_count % self.CONFIDENCE_INTERVAL == 0:
            easier = [c for c in scored if c.params.b < target - self.CONFIDENCE_MARGIN]
            if easier:
                selected = self.rng.choice(easier)
                logger.debug(f"Confidence item: picked {selected.item.id} (b={selected.params.b})")
                return self._record(selected.item, used_ids)

        # Exploitation: highest score, earliest in pool on ties
        best = max(scored, key=lambda c: c.score)
        return self._record(best.item, used_ids)

    def _score(self, items: List[CandidateItem], target: float,
               theta: float) -> List[ScoredCandidate]:
        """Score candidates, keeping pool order."""
        scored = []
        for item in items:
            params = item.params
            scored.append(ScoredCandidate(
                item=item,
                params=params,
                score=selection_score(params, target, theta)
            ))
        return scored

    @staticmethod
    def _record(item: CandidateItem, used_ids: Set[str]) -> CandidateItem:
        used_ids.add(item.id)
        return item
