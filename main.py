"""
FastAPI Backend for adaptive skill practice

Endpoints:
    POST   /sessions                 - Start a practice session for (learner, skill)
    POST   /sessions/{id}/next-item  - Pick the next item from a candidate pool
    POST   /sessions/{id}/answers    - Record an answer, get the updated estimate
    GET    /sessions/{id}/stop       - Should the session stop?
    DELETE /sessions/{id}            - Discard a session
    GET    /proficiency/{learner}/{skill} - Current (decayed) proficiency
"""

import os
import sys
import uuid
from typing import Dict, List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from pydantic import BaseModel

from proficiency import CandidateItem, ItemParameters, ProficiencyState, SessionController
from proficiency.item_response import get_item_parameters, optimal_difficulty_label
from proficiency.item_selector import target_difficulty
from proficiency_store import ProficiencyStore

# ==================== Initialize ====================

logger.remove()
logger.add(sys.stderr, level=os.getenv("LOG_LEVEL", "INFO"))

app = FastAPI(
    title="Adaptive Proficiency API",
    description="IRT-based skill proficiency tracking and item selection",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

store = ProficiencyStore()

# One controller per active session. Callers should DELETE finished sessions;
# past MAX_SESSIONS the oldest session is evicted.
MAX_SESSIONS = int(os.getenv("MAX_SESSIONS", 1000))
sessions: Dict[str, SessionController] = {}


# ==================== Request/Response Models ====================

class StartSessionRequest(BaseModel):
    learner_id: str
    skill: str
    session_id: Optional[str] = None  # Auto-generate if not provided


class Candidate(BaseModel):
    id: str
    skill: str
    difficulty: Optional[str] = None


class NextItemRequest(BaseModel):
    candidates: List[Candidate]


class AnswerRequest(BaseModel):
    is_correct: bool
    difficulty: Optional[str] = None
    # Explicit parameters override the difficulty label
    a: Optional[float] = None
    b: Optional[float] = None
    c: float = 0.0


class ProficiencyResponse(BaseModel):
    theta: float
    sigma: float
    last_updated: str
    question_count: int
    mastery_achieved: bool
    mastery_timestamp: Optional[str] = None


class StopResponse(BaseModel):
    stop: bool
    reason: Optional[str] = None


class AnswerResponse(BaseModel):
    new_theta: float
    new_sigma: float
    predicted_probability: float
    information_gain: float
    phase: str
    recent_accuracy: float
    stop: StopResponse


# ==================== Helper Functions ====================

def proficiency_to_response(state: ProficiencyState) -> ProficiencyResponse:
    timestamp = state.mastery_timestamp
    return ProficiencyResponse(
        theta=state.theta,
        sigma=state.sigma,
        last_updated=state.last_updated.isoformat(),
        question_count=state.question_count,
        mastery_achieved=state.mastery_achieved,
        mastery_timestamp=timestamp.isoformat() if timestamp else None
    )


def get_controller(session_id: str) -> SessionController:
    controller = sessions.get(session_id)
    if controller is None:
        raise HTTPException(status_code=404, detail="Session not found. Start a new session first.")
    return controller


def answer_parameters(request: AnswerRequest) -> ItemParameters:
    if (request.a is None) != (request.b is None):
        raise HTTPException(status_code=422, detail="Explicit parameters need both 'a' and 'b'")
    if request.a is not None:
        if request.a <= 0:
            raise HTTPException(status_code=422, detail="Discrimination 'a' must be positive")
        return ItemParameters(a=request.a, b=request.b, c=request.c)
    return get_item_parameters(request.difficulty)


# ==================== Endpoints ====================

@app.get("/")
def root():
    """Health check endpoint."""
    return {"status": "ok", "message": "Adaptive Proficiency API is running"}


@app.post("/sessions")
def start_session(request: StartSessionRequest):
    """
    Start a practice session.

    Loads (or cold-starts) the learner's proficiency for the skill.
    """
    session_id = request.session_id or str(uuid.uuid4())[:8]
    controller = SessionController(store, request.learner_id, request.skill)
    sessions.pop(session_id, None)
    while sessions and len(sessions) >= MAX_SESSIONS:
        evicted = next(iter(sessions))
        sessions.pop(evicted)
        logger.info(f"Session {evicted} evicted (limit {MAX_SESSIONS})")
    sessions[session_id] = controller

    logger.info(f"Session {session_id} started: learner={request.learner_id} skill={request.skill}")

    return {
        "session_id": session_id,
        "phase": controller.phase.value,
        "proficiency": proficiency_to_response(controller.proficiency)
    }


@app.post("/sessions/{session_id}/next-item")
def next_item(session_id: str, request: NextItemRequest):
    """
    Select the next item from the supplied candidates.

    `item` is null when no candidate matches the session's skill.
    """
    controller = get_controller(session_id)
    pool = [CandidateItem(id=c.id, skill=c.skill, difficulty=c.difficulty) for c in request.candidates]
    item = controller.select_next_item(pool)

    target = target_difficulty(controller.proficiency.theta, controller.phase.value)
    return {
        "item": Candidate(id=item.id, skill=item.skill, difficulty=item.difficulty) if item else None,
        "target_difficulty": target,
        "suggested_difficulty": optimal_difficulty_label(target)
    }


@app.post("/sessions/{session_id}/answers", response_model=AnswerResponse)
def record_answer(session_id: str, request: AnswerRequest):
    """Record an answer and return the updated estimate."""
    controller = get_controller(session_id)
    result = controller.record_answer(request.is_correct, answer_parameters(request))
    decision = controller.should_stop()

    if decision.stop:
        logger.info(f"Session {session_id} should stop: {decision.reason}")

    return AnswerResponse(
        new_theta=result.new_theta,
        new_sigma=result.new_sigma,
        predicted_probability=result.predicted_probability,
        information_gain=result.information_gain,
        phase=controller.phase.value,
        recent_accuracy=controller.recent_accuracy,
        stop=StopResponse(stop=decision.stop, reason=decision.reason)
    )


@app.get("/sessions/{session_id}/stop", response_model=StopResponse)
def should_stop(session_id: str):
    decision = get_controller(session_id).should_stop()
    return StopResponse(stop=decision.stop, reason=decision.reason)


@app.delete("/sessions/{session_id}")
def delete_session(session_id: str):
    """
    Discard a session. Writes already issued are kept.
    """
    sessions.pop(session_id, None)
    return {"status": "deleted", "session_id": session_id}


@app.get("/proficiency/{learner_id}/{skill}", response_model=ProficiencyResponse)
def get_proficiency(learner_id: str, skill: str):
    """Current proficiency for a learner/skill (decay applied)."""
    return proficiency_to_response(store.get_proficiency(skill, learner_id))


# ==================== Run Server ====================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
