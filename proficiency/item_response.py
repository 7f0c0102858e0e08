"""
Item Response - 2-Parameter Logistic (2PL) IRT model.

Features:
    - Difficulty label -> item parameters (discrimination, threshold)
    - Probability of a correct response with optional guessing floor
    - Selection score balancing informativeness and target proximity

    P(correct | θ, a, b, c) = c + (1 - c) / (1 + exp(-a * (θ - b)))
"""

import math
from dataclasses import dataclass
from typing import Optional


# Difficulty threshold (b) per label, on the -3..3 ability scale
DIFFICULTY_THRESHOLDS = {
    "easy": -1.5,
    "medium": 0.0,
    "hard": 1.5,
}

# Discrimination (a) per label; medium items separate ability levels best
DISCRIMINATIONS = {
    "easy": 0.8,
    "medium": 1.2,
    "hard": 1.0,
}

DEFAULT_THRESHOLD = 0.0
DEFAULT_DISCRIMINATION = 0.8

# Selection score
INFORMATIVENESS_WEIGHT = 0.7
PROXIMITY_WEIGHT = 0.3
INFORMATION_SPREAD = 1.5


@dataclass(frozen=True)
class ItemParameters:
    """IRT parameters for a single item."""
    a: float  # Discrimination, > 0
    b: float  # Difficulty threshold
    c: float = 0.0  # Guessing floor (not calibrated yet)


# ==================== Difficulty Mapping ====================

def get_item_parameters(difficulty: Optional[str]) -> ItemParameters:
    """
    Convert a coarse difficulty label to item parameters.

    Unknown or missing labels fall back to b=0.0, a=0.8.
    """
    label = (difficulty or "").strip().lower()
    return ItemParameters(
        a=DISCRIMINATIONS.get(label, DEFAULT_DISCRIMINATION),
        b=DIFFICULTY_THRESHOLDS.get(label, DEFAULT_THRESHOLD),
    )


def optimal_difficulty_label(target_difficulty: float) -> str:
    """Map a numeric target difficulty back to the closest label band."""
    if target_difficulty < -0.75:
        return "easy"
    elif target_difficulty < 0.75:
        return "medium"
    return "hard"


# ==================== Response Model ====================

def probability_correct(theta: float, params: ItemParameters) -> float:
    """
    2PL IRT model: probability of a correct response.

    Args:
        theta: Learner ability, typically -3 to 3
        params: Item parameters (a, b, c)

    Returns:
        Probability of correct response [0, 1]
    """
    exponent = -params.a * (theta - params.b)
    # exp overflows past ~709; the logistic is 0 there anyway
    if exponent > 700:
        logistic = 0.0
    else:
        logistic = 1.0 / (1.0 + math.exp(exponent))
    p = params.c + (1.0 - params.c) * logistic
    return max(0.0, min(1.0, p))


def selection_score(params: ItemParameters, target_difficulty: float, theta: float) -> float:
    """
    Score an item for selection (higher = better).

    informativeness = a * exp(-0.5 * ((θ - b) / 1.5)^2)
    proximity       = 1 / (1 + |b - target|)
    """
    informativeness = params.a * math.exp(-0.5 * ((theta - params.b) / INFORMATION_SPREAD) ** 2)
    proximity = 1.0 / (1.0 + abs(params.b - target_difficulty))
    return INFORMATIVENESS_WEIGHT * informativeness + PROXIMITY_WEIGHT * proximity
