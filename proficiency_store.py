"""
Proficiency Store - Redis persistence for per-skill proficiency records.

Key Structure:
    {prefix}:{learner_id}:{skill} -> Hash
        theta, sigma, last_updated, question_count,
        mastery_achieved, mastery_timestamp

Reads never fail: an unreachable store or a corrupt record yields a
cold-start state. Writes are whole-record upserts; failures are logged
and reported as False.
"""

import os
from datetime import datetime, timezone
from typing import Dict, Optional

import redis
from dotenv import load_dotenv
from loguru import logger

from proficiency.proficiency_model import (
    DEFAULT_SIGMA,
    IN_PROGRESS,
    MAX_SIGMA,
    MAX_THETA,
    MIN_SIGMA,
    MIN_THETA,
    Mastered,
    ProficiencyState,
    apply_decay,
    clamp,
    utcnow,
)

# Load environment variables from .env
load_dotenv()


class ProficiencyStore:
    def __init__(self, client: Optional[redis.Redis] = None, prefix: Optional[str] = None):
        """
        Connect to Redis using environment variables unless a client is given.

        Args:
            client: Pre-built Redis client (tests inject a double here)
            prefix: Key prefix, defaults to PROFICIENCY_KEY_PREFIX
        """
        self.client = client or redis.Redis(
            host=os.getenv("REDIS_HOST", "localhost"),
            port=int(os.getenv("REDIS_PORT", 6379)),
            password=os.getenv("REDIS_PASSWORD", None),
            db=int(os.getenv("REDIS_DB", 0)),
            decode_responses=True  # Return strings instead of bytes
        )
        self.prefix = prefix or os.getenv("PROFICIENCY_KEY_PREFIX", "proficiency")

    # ==================== Key Builders ====================

    def _key(self, skill: str, learner_id: str) -> str:
        """Redis key for one learner/skill record."""
        return f"{self.prefix}:{learner_id}:{skill}"

    # ==================== Read / Write ====================

    def get_proficiency(self, skill: str, learner_id: str,
                        now: Optional[datetime] = None) -> ProficiencyState:
        """
        Load the proficiency state for a learner/skill, decayed to `now`.

        Args:
            skill: Skill name
            learner_id: Learner identifier
            now: Reference time for decay (defaults to current UTC time)

        Returns:
            Stored state with decay applied, or a default state when the
            record is absent, unreadable, or the store is unreachable
        """
        now = now or utcnow()
        key = self._key(skill, learner_id)

        try:
            raw = self.client.hgetall(key)
        except redis.RedisError as e:
            logger.warning(f"Proficiency store unavailable on read ({key}): {e}; cold start")
            return ProficiencyState.default(now)

        if not raw:
            return ProficiencyState.default(now)

        try:
            state = self.deserialize(raw)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Corrupt proficiency record {key}: {e}; cold start")
            return ProficiencyState.default(now)

        return apply_decay(state, now)

    def save_proficiency(self, skill: str, learner_id: str, state: ProficiencyState) -> bool:
        """
        Upsert the whole proficiency record.

        Returns:
            True on success, False if the write failed (logged, not raised)
        """
        key = self._key(skill, learner_id)
        try:
            self.client.hset(key, mapping=self.serialize(state))
        except redis.RedisError as e:
            logger.warning(f"Proficiency store unavailable on write ({key}): {e}")
            return False
        return True

    def delete_proficiency(self, skill: str, learner_id: str) -> bool:
        """
        Delete a record; the next read is a cold start.

        Args:
            skill: Skill name
            learner_id: Learner identifier

        Returns:
            True on success, False if the delete failed (logged, not raised)
        """
        key = self._key(skill, learner_id)
        try:
            self.client.delete(key)
        except redis.RedisError as e:
            logger.warning(f"Proficiency store unavailable on delete ({key}): {e}")
            return False
        return True

    # ==================== Serialization ====================

    @staticmethod
    def serialize(state: ProficiencyState) -> Dict[str, str]:
        """Flatten a state into a Redis hash mapping (every field, every time)."""
        timestamp = state.mastery_timestamp
        return {
            "theta": repr(state.theta),
            "sigma": repr(state.sigma),
            "last_updated": state.last_updated.isoformat(),
            "question_count": str(state.question_count),
            "mastery_achieved": "1" if state.mastery_achieved else "0",
            "mastery_timestamp": timestamp.isoformat() if timestamp else "",
        }

    @staticmethod
    def deserialize(raw: Dict[str, str]) -> ProficiencyState:
        """Rebuild a state from a Redis hash, clamping theta and sigma."""
        sigma = raw.get("sigma")
        mastery = IN_PROGRESS
        if raw.get("mastery_achieved") == "1":
            stamp = raw.get("mastery_timestamp")
            mastery = Mastered(timestamp=_parse_time(stamp) if stamp else _parse_time(raw["last_updated"]))

        return ProficiencyState(
            theta=clamp(float(raw["theta"]), MIN_THETA, MAX_THETA),
            sigma=clamp(float(sigma) if sigma else DEFAULT_SIGMA, MIN_SIGMA, MAX_SIGMA),
            last_updated=_parse_time(raw["last_updated"]),
            question_count=int(raw.get("question_count") or 0),
            mastery=mastery,
        )


def _parse_time(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
