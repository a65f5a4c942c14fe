"""Data access layer for decision state"""

import uuid
from dataclasses import asdict
from datetime import datetime
from typing import List, Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from budget_copilot.infrastructure.database.models import DecisionState
from budget_copilot.domain.models import DecisionOutput
from budget_copilot.domain.exceptions import StateConflict


class DecisionStateRepository:
    """Repository for daily decisions"""

    def __init__(self, db: Session):
        self.db = db

    def get_active(self, user_id: str) -> Optional[DecisionState]:
        """Most recent unlocked decision for a user"""
        return (
            self.db.query(DecisionState)
            .filter(DecisionState.user_id == user_id, DecisionState.is_locked.is_(False))
            .order_by(DecisionState.computed_at.desc())
            .first()
        )

    def get_by_id(self, decision_id: uuid.UUID) -> Optional[DecisionState]:
        return self.db.query(DecisionState).filter(DecisionState.id == decision_id).first()

    def lock(self, decision_id: uuid.UUID) -> bool:
        """
        Lock a decision if it is still unlocked.

        Returns False when another request locked it first.
        """
        updated = (
            self.db.query(DecisionState)
            .filter(DecisionState.id == decision_id, DecisionState.is_locked.is_(False))
            .update({DecisionState.is_locked: True}, synchronize_session="fetch")
        )
        return updated == 1

    def create(
        self,
        user_id: str,
        decision: DecisionOutput,
        decision_version: str,
        computed_at: datetime,
        expires_at: datetime,
    ) -> DecisionState:
        """
        Persist a new unlocked decision.

        Raises:
            StateConflict: an unlocked decision already exists for the user
        """
        command = decision.primary_command
        warnings = decision.warnings + [None, None]

        db_decision = DecisionState(
            user_id=user_id,
            decision_version=decision_version,
            risk_level=decision.risk_level.value,
            primary_command_type=command.type.value,
            primary_command_text=command.text,
            primary_command_amount_cents=command.amount_cents,
            primary_command_target=command.target,
            primary_command_date=command.date,
            warning_1=warnings[0],
            warning_2=warnings[1],
            next_action_text=decision.next_action.text,
            next_action_url=decision.next_action.url,
            decision_basis=asdict(decision.basis),
            computed_at=computed_at,
            expires_at=expires_at,
            is_locked=False,
        )
        self.db.add(db_decision)
        try:
            self.db.flush()
        except IntegrityError as e:
            raise StateConflict(f"Unlocked decision already exists for user {user_id}") from e
        return db_decision

    def acknowledge(self, decision: DecisionState, acknowledged_at: datetime) -> DecisionState:
        """Stamp the first acknowledgement; later calls leave it untouched"""
        if decision.acknowledged_at is None:
            decision.acknowledged_at = acknowledged_at
            self.db.flush()
        return decision

    def has_locked(self, user_id: str) -> bool:
        """Whether the user has an expired (locked) decision on record"""
        return (
            self.db.query(DecisionState.id)
            .filter(DecisionState.user_id == user_id, DecisionState.is_locked.is_(True))
            .first()
            is not None
        )

    def get_history(self, user_id: str, limit: int = 20) -> List[DecisionState]:
        """Recent decisions for a user, newest first"""
        return (
            self.db.query(DecisionState)
            .filter(DecisionState.user_id == user_id)
            .order_by(DecisionState.computed_at.desc())
            .limit(limit)
            .all()
        )
