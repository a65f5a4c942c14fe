"""Daily decision lifecycle: reuse while unexpired, lock and recompute after"""

import math
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable, Optional
from sqlalchemy.orm import Session

from budget_copilot.domain.decision import DECISION_VERSION
from budget_copilot.domain.exceptions import DecisionNotFound, StateConflict
from budget_copilot.domain.models import DecisionOutput
from budget_copilot.infrastructure.database.models import DecisionState
from budget_copilot.infrastructure.database.repositories import DecisionStateRepository
from budget_copilot.infrastructure.observability.metrics import decision_cache_counter, record_decision
from budget_copilot.utils.date_utils import end_of_utc_day, utc_now

logger = logging.getLogger(__name__)


@dataclass
class DecisionResult:
    """Decision served to the caller plus cache metadata"""

    state: DecisionState
    is_new: bool
    hours_remaining: int
    has_expired_decision: bool


def hours_until(expires_at: datetime, now: datetime) -> int:
    return max(0, math.ceil((expires_at - now).total_seconds() / 3600))


async def get_or_compute_decision(
    db: Session,
    user_id: str,
    compute: Callable[[datetime], Awaitable[DecisionOutput]],
    now: Optional[datetime] = None,
) -> DecisionResult:
    """
    Return today's decision for a user, computing it at most once per UTC day.

    Flow:
    1. Unlocked decision that has not expired -> returned unchanged
    2. Unlocked decision past expiry -> locked (kept for history)
    3. New decision computed and stored, expiring at the end of the UTC day

    A concurrent request may store its decision first; the unique
    unlocked-decision index rejects ours and the stored one is returned.
    """
    now = now or utc_now()
    repo = DecisionStateRepository(db)

    existing = repo.get_active(user_id)
    if existing is not None and now < existing.expires_at:
        decision_cache_counter.labels(outcome="hit").inc()
        return DecisionResult(
            state=existing,
            is_new=False,
            hours_remaining=hours_until(existing.expires_at, now),
            has_expired_decision=repo.has_locked(user_id),
        )

    if existing is not None:
        if not repo.lock(existing.id):
            logger.info("Expired decision already locked", extra={"user_id": user_id})

    decision = await compute(now)
    expires_at = end_of_utc_day(now)

    try:
        state = repo.create(
            user_id=user_id,
            decision=decision,
            decision_version=DECISION_VERSION,
            computed_at=now,
            expires_at=expires_at,
        )
        db.commit()
    except StateConflict:
        db.rollback()
        winner = repo.get_active(user_id)
        if winner is None:
            raise
        logger.warning("Decision state conflict resolved to stored decision", extra={"user_id": user_id})
        decision_cache_counter.labels(outcome="conflict").inc()
        return DecisionResult(
            state=winner,
            is_new=False,
            hours_remaining=hours_until(winner.expires_at, now),
            has_expired_decision=repo.has_locked(user_id),
        )

    decision_cache_counter.labels(outcome="computed").inc()
    record_decision(decision.risk_level.value, decision.primary_command.type.value)

    return DecisionResult(
        state=state,
        is_new=True,
        hours_remaining=hours_until(expires_at, now),
        has_expired_decision=repo.has_locked(user_id),
    )


def acknowledge_decision(db: Session, decision_id: uuid.UUID, now: Optional[datetime] = None) -> DecisionState:
    """
    Mark a decision as seen. Idempotent: the first timestamp is kept.

    Raises:
        DecisionNotFound: unknown decision id
    """
    repo = DecisionStateRepository(db)
    decision = repo.get_by_id(decision_id)
    if decision is None:
        raise DecisionNotFound(f"Decision {decision_id} not found")

    repo.acknowledge(decision, now or utc_now())
    db.commit()
    return decision
