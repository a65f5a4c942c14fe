"""Unit tests for the daily decision cache lifecycle"""

import uuid
import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch
from budget_copilot.domain.decision import compute_decision
from budget_copilot.domain.exceptions import DecisionNotFound, FinancialStateError, StateConflict
from budget_copilot.infrastructure.database.repositories import DecisionStateRepository
from budget_copilot.services.decision_state import (
    acknowledge_decision,
    get_or_compute_decision,
    hours_until,
)
from budget_copilot.utils.date_utils import end_of_utc_day

MORNING = datetime(2026, 3, 10, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def decision(today, comfortable_snapshot):
    return compute_decision(comfortable_snapshot, today)


@pytest.fixture
def compute(decision):
    return AsyncMock(return_value=decision)


async def test_first_request_computes_and_stores(db, compute):
    result = await get_or_compute_decision(db, "user_1", compute, now=MORNING)

    assert result.is_new is True
    assert result.has_expired_decision is False
    assert result.state.computed_at == MORNING
    assert result.state.expires_at == end_of_utc_day(MORNING)
    assert result.state.is_locked is False
    assert result.state.risk_level == "safe"
    assert result.state.primary_command_type == "pay"
    assert result.state.decision_version == "v1.0.0"
    assert result.state.decision_basis["chosen_path"] == "DEBT_EXTRA_PAYMENT"
    # 09:30 -> 23:59:59.999999 rounds up to 15 hours
    assert result.hours_remaining == 15
    compute.assert_awaited_once_with(MORNING)


async def test_same_day_request_reuses_decision(db, compute):
    """Later the same day the stored decision is returned unchanged"""
    first = await get_or_compute_decision(db, "user_1", compute, now=MORNING)
    second = await get_or_compute_decision(db, "user_1", compute, now=MORNING + timedelta(hours=8))

    assert second.is_new is False
    assert second.state.id == first.state.id
    assert second.state.primary_command_text == first.state.primary_command_text
    assert second.hours_remaining == 7
    compute.assert_awaited_once()


async def test_next_day_locks_old_and_computes_new(db, compute):
    first = await get_or_compute_decision(db, "user_1", compute, now=MORNING)
    first_id = first.state.id

    second = await get_or_compute_decision(db, "user_1", compute, now=MORNING + timedelta(days=1))

    assert second.is_new is True
    assert second.state.id != first_id
    assert second.has_expired_decision is True
    assert compute.await_count == 2

    repo = DecisionStateRepository(db)
    assert repo.get_by_id(first_id).is_locked is True
    assert repo.get_active("user_1").id == second.state.id
    assert len(repo.get_history("user_1")) == 2


async def test_users_are_isolated(db, compute):
    first = await get_or_compute_decision(db, "user_1", compute, now=MORNING)
    other = await get_or_compute_decision(db, "user_2", compute, now=MORNING)

    assert other.is_new is True
    assert other.state.id != first.state.id


async def test_compute_failure_leaves_expired_decision_unlocked(db, compute):
    """Provider failure must not strand the user without a decision row"""
    first = await get_or_compute_decision(db, "user_1", compute, now=MORNING)
    first_id = first.state.id
    compute.side_effect = FinancialStateError("provider down")

    with pytest.raises(FinancialStateError):
        await get_or_compute_decision(db, "user_1", compute, now=MORNING + timedelta(days=1))
    db.rollback()

    active = DecisionStateRepository(db).get_active("user_1")
    assert active.id == first_id
    assert active.is_locked is False


async def test_conflicting_insert_returns_stored_decision(db, compute):
    """A concurrent request stored its decision between our read and our insert"""
    winner = await get_or_compute_decision(db, "user_1", compute, now=MORNING)
    winner_id = winner.state.id
    stored = DecisionStateRepository(db).get_active("user_1")

    with patch.object(DecisionStateRepository, "get_active", side_effect=[None, stored]):
        result = await get_or_compute_decision(db, "user_1", compute, now=MORNING + timedelta(minutes=1))

    assert result.is_new is False
    assert result.state.id == winner_id
    assert len(DecisionStateRepository(db).get_history("user_1")) == 1


def test_repository_rejects_second_unlocked_decision(db, decision):
    repo = DecisionStateRepository(db)
    kwargs = dict(
        user_id="user_1",
        decision=decision,
        decision_version="v1.0.0",
        computed_at=MORNING,
        expires_at=end_of_utc_day(MORNING),
    )
    repo.create(**kwargs)
    db.commit()

    with pytest.raises(StateConflict):
        repo.create(**kwargs)
    db.rollback()


def test_repository_lock_is_conditional(db, decision):
    repo = DecisionStateRepository(db)
    state = repo.create(
        user_id="user_1",
        decision=decision,
        decision_version="v1.0.0",
        computed_at=MORNING,
        expires_at=end_of_utc_day(MORNING),
    )
    db.commit()

    assert repo.lock(state.id) is True
    assert repo.lock(state.id) is False


def test_repository_stores_at_most_two_warnings(db, decision):
    state = DecisionStateRepository(db).create(
        user_id="user_1",
        decision=decision,
        decision_version="v1.0.0",
        computed_at=MORNING,
        expires_at=end_of_utc_day(MORNING),
    )

    assert state.warning_1 == decision.warnings[0]
    assert state.warnings == decision.warnings


async def test_acknowledge_is_idempotent(db, compute):
    result = await get_or_compute_decision(db, "user_1", compute, now=MORNING)
    first_ack = MORNING + timedelta(hours=1)

    acknowledged = acknowledge_decision(db, result.state.id, now=first_ack)
    again = acknowledge_decision(db, result.state.id, now=first_ack + timedelta(hours=2))

    assert acknowledged.acknowledged_at == first_ack
    assert again.acknowledged_at == first_ack
    assert again.primary_command_text == result.state.primary_command_text
    assert again.is_locked is False


def test_acknowledge_unknown_decision(db):
    with pytest.raises(DecisionNotFound):
        acknowledge_decision(db, uuid.uuid4())


def test_hours_until_never_negative():
    assert hours_until(MORNING, MORNING + timedelta(minutes=5)) == 0
    assert hours_until(MORNING + timedelta(minutes=5), MORNING) == 1
