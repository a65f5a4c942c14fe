"""SQLAlchemy ORM models for persisted decisions"""

import uuid
from datetime import timezone
from sqlalchemy import Column, BigInteger, Boolean, DateTime, Index, Text, JSON, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import declarative_base
from sqlalchemy.types import TypeDecorator

Base = declarative_base()


class UTCDateTime(TypeDecorator):
    """Timezone-aware UTC datetimes, also on backends that store naive values (SQLite)"""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None and value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
            if dialect.name == "sqlite":
                value = value.replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value


class DecisionState(Base):
    """Daily decision, locked (never deleted) once superseded"""

    __tablename__ = "decision_state"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Text, nullable=False, index=True)
    decision_version = Column(Text, nullable=False)
    risk_level = Column(Text, nullable=False)

    primary_command_type = Column(Text, nullable=False)
    primary_command_text = Column(Text, nullable=False)
    primary_command_amount_cents = Column(BigInteger, nullable=True)
    primary_command_target = Column(Text, nullable=True)
    primary_command_date = Column(Text, nullable=True)

    warning_1 = Column(Text, nullable=True)
    warning_2 = Column(Text, nullable=True)

    next_action_text = Column(Text, nullable=False)
    next_action_url = Column(Text, nullable=False)

    decision_basis = Column(JSON, nullable=True)

    computed_at = Column(UTCDateTime, nullable=False)
    expires_at = Column(UTCDateTime, nullable=False)
    is_locked = Column(Boolean, nullable=False, default=False)
    acknowledged_at = Column(UTCDateTime, nullable=True)

    __table_args__ = (
        # At most one unlocked decision per user
        Index(
            "uq_decision_state_unlocked_user",
            "user_id",
            unique=True,
            postgresql_where=text("NOT is_locked"),
            sqlite_where=text("is_locked = 0"),
        ),
    )

    @property
    def warnings(self) -> list[str]:
        return [w for w in (self.warning_1, self.warning_2) if w]
