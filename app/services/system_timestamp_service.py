"""
System Timestamp Service - the business clock.

The current business day is a single versioned row in ``system_config``.
Nothing in the ledger reads the machine clock to decide what "today" is;
every consumer goes through this service, so all processes agree on the
same day regardless of host timezone or drift, and tests can pin any day.

USAGE:
    from app.services.system_timestamp_service import SystemTimestampService

    async def advance(db: AsyncSession):
        service = SystemTimestampService(db, actor_id="cron")
        new_value = await service.advance(30)
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Optional, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import InvalidArgumentError, NotConfiguredError
from app.models.system_config import SystemConfig, SystemConfigAudit, SYSTEM_TIMESTAMP_KEY

logger = logging.getLogger(__name__)


@dataclass
class SystemTimestampConfig:
    """Current value of the business clock plus its audit trail."""
    value: datetime
    version: int
    updated_at: Optional[datetime]
    updated_by: Optional[str]


def parse_timestamp(value: Union[date, datetime, str]) -> datetime:
    """
    Normalize a literal into a timestamp.

    A bare date becomes midnight of that day. Strings must be ISO-8601.

    Raises:
        InvalidArgumentError: If the value cannot be interpreted
    """
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return datetime.fromisoformat(text)
        except ValueError:
            raise InvalidArgumentError(f"Invalid timestamp '{value}', expected ISO-8601")
    raise InvalidArgumentError(f"Unsupported timestamp value: {value!r}")


class SystemTimestampService:
    """
    Read and move the business clock.

    Writes lock the config row (SELECT FOR UPDATE) and run inside the
    caller's transaction, so two concurrent advances never interleave their
    read and write. The caller commits.
    """

    def __init__(self, db: AsyncSession, actor_id: Optional[str] = None):
        """
        Initialize the service.

        Args:
            db: Async database session
            actor_id: Opaque identity stored with every write for auditing
        """
        self.db = db
        self.actor_id = actor_id

    async def _get_row(self, lock: bool = False) -> Optional[SystemConfig]:
        query = select(SystemConfig).where(SystemConfig.config_key == SYSTEM_TIMESTAMP_KEY)
        if lock:
            query = query.with_for_update()
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def _require_row(self, lock: bool = False) -> SystemConfig:
        row = await self._get_row(lock=lock)
        if row is None:
            raise NotConfiguredError(
                f"System timestamp '{SYSTEM_TIMESTAMP_KEY}' has not been initialized"
            )
        return row

    def _log_audit(
        self,
        operation: str,
        old_value: Optional[str],
        new_value: str,
        interval_minutes: Optional[int] = None,
    ):
        """Log an audit record for a clock write."""
        audit = SystemConfigAudit(
            config_key=SYSTEM_TIMESTAMP_KEY,
            operation=operation,
            old_value=old_value,
            new_value=new_value,
            interval_minutes=interval_minutes,
            actor_id=self.actor_id,
        )
        self.db.add(audit)

    async def get_current_timestamp(self) -> datetime:
        """
        Get the stored business timestamp.

        Raises:
            NotConfiguredError: If the clock was never initialized
        """
        row = await self._require_row()
        return parse_timestamp(row.config_value)

    async def current(self) -> date:
        """Get the current business day (date part of the stored timestamp)."""
        return (await self.get_current_timestamp()).date()

    async def get_config(self) -> SystemTimestampConfig:
        row = await self._require_row()
        return SystemTimestampConfig(
            value=parse_timestamp(row.config_value),
            version=row.version,
            updated_at=row.updated_at,
            updated_by=row.updated_by,
        )

    async def advance(self, interval_minutes: int) -> datetime:
        """
        Move the clock forward by a fixed interval.

        Args:
            interval_minutes: Minutes to add, must be a positive integer

        Returns:
            The new stored timestamp

        Raises:
            InvalidArgumentError: If interval_minutes is not a positive integer
            NotConfiguredError: If the clock was never initialized
        """
        if (
            isinstance(interval_minutes, bool)
            or not isinstance(interval_minutes, int)
            or interval_minutes <= 0
        ):
            raise InvalidArgumentError(
                f"interval_minutes must be a positive integer, got {interval_minutes!r}"
            )

        row = await self._require_row(lock=True)
        old_value = row.config_value
        new_timestamp = parse_timestamp(old_value) + timedelta(minutes=interval_minutes)

        row.config_value = new_timestamp.isoformat()
        row.version += 1
        row.updated_at = datetime.now(timezone.utc)
        row.updated_by = self.actor_id

        self._log_audit("ADVANCE", old_value, row.config_value, interval_minutes)
        await self.db.flush()

        logger.info(
            f"System timestamp advanced by {interval_minutes}m: {old_value} -> "
            f"{row.config_value} (version {row.version})"
        )
        return new_timestamp

    async def set(self, value: Union[date, datetime, str]) -> datetime:
        """
        Overwrite the clock unconditionally, creating it on first use.

        Args:
            value: A date (midnight is used), datetime or ISO-8601 string

        Returns:
            The new stored timestamp

        Raises:
            InvalidArgumentError: If value cannot be parsed
        """
        new_timestamp = parse_timestamp(value)
        new_value = new_timestamp.isoformat()

        row = await self._get_row(lock=True)
        if row is None:
            old_value = None
            row = SystemConfig(
                config_key=SYSTEM_TIMESTAMP_KEY,
                config_value=new_value,
                version=1,
                description="Business clock used for pallet expiry",
                updated_by=self.actor_id,
            )
            self.db.add(row)
        else:
            old_value = row.config_value
            row.config_value = new_value
            row.version += 1
            row.updated_at = datetime.now(timezone.utc)
            row.updated_by = self.actor_id

        self._log_audit("SET", old_value, new_value)
        await self.db.flush()

        logger.info(f"System timestamp set: {old_value} -> {new_value} (version {row.version})")
        return new_timestamp
