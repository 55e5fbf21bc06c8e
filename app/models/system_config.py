"""
System Configuration Model

Holds global single-row settings. The business clock lives here under the
key ``current_system_timestamp`` so every process reads the same notion of
"today" instead of its own machine clock.

USAGE:
━━━━━━
    from app.services.system_timestamp_service import SystemTimestampService

    async def today(db):
        return await SystemTimestampService(db).current()
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import String, Integer, DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base
from app.db_types import BigIntPK


SYSTEM_TIMESTAMP_KEY = "current_system_timestamp"


class SystemConfigAudit(Base):
    """
    Audit log for system configuration writes.

    One row per SET or ADVANCE, recording who changed what.
    """
    __tablename__ = "system_config_audit"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)

    config_key: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        index=True
    )
    operation: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="SET, ADVANCE"
    )
    old_value: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True
    )
    new_value: Mapped[str] = mapped_column(
        Text,
        nullable=False
    )
    interval_minutes: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True
    )
    actor_id: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )


class SystemConfig(Base):
    """
    Versioned key/value configuration row.

    version is bumped on every write so readers can tell whether the value
    moved between two reads.
    """
    __tablename__ = "system_config"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)

    config_key: Mapped[str] = mapped_column(
        String(100),
        unique=True,
        nullable=False,
        index=True
    )
    config_value: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="ISO-8601 text for timestamps"
    )
    version: Mapped[int] = mapped_column(
        Integer,
        default=1,
        nullable=False
    )
    description: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )
    updated_by: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True
    )

    def __repr__(self) -> str:
        return f"<SystemConfig(key='{self.config_key}', version={self.version})>"
