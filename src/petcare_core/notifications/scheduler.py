"""
Periodic notification scheduler.

Every ``check_interval_minutes`` one tick runs:

1. dispatch of due scheduled notifications,
2. the upcoming-appointment scan,
3. the due-vaccination scan.

Each step first loads its candidates, then handles every candidate in a
transaction of its own, so a delivered notification stays marked as sent
whatever happens later in the tick.

Ticks never overlap. A tick still running when the next one is due causes
that next tick to be skipped; a failing tick is logged and the loop goes on.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from ..database.session import SessionManager
from ..exceptions import PetCareException
from ..utils.config import NotificationSettings
from ..utils.datetime_utils import get_current_utc
from .channels import NotificationDispatcher
from .service import NotificationService


@dataclass
class SchedulerRunResult:
    """Counts and timing of one scheduler tick."""

    started_at: datetime = field(default_factory=get_current_utc)
    finished_at: Optional[datetime] = None
    scheduled_sent: int = 0
    appointment_reminders: int = 0
    vaccination_reminders: int = 0
    failed: int = 0
    skipped: bool = False
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return not self.skipped and self.error is None

    @property
    def duration_seconds(self) -> float:
        if self.finished_at is None:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "scheduled_sent": self.scheduled_sent,
            "appointment_reminders": self.appointment_reminders,
            "vaccination_reminders": self.vaccination_reminders,
            "failed": self.failed,
            "skipped": self.skipped,
            "error": self.error,
        }


class NotificationScheduler:
    """
    Runs the notification checks on a fixed interval.

    Example:
        scheduler = NotificationScheduler(session_manager, settings)
        scheduler.start()
        ...
        await scheduler.stop()
    """

    def __init__(
        self,
        session_manager: SessionManager,
        settings: Optional[NotificationSettings] = None,
        dispatcher: Optional[NotificationDispatcher] = None,
        max_retries: int = 2,
        retry_delay: float = 1.0,
    ) -> None:
        self.session_manager = session_manager
        self.settings = settings or NotificationSettings()
        self.dispatcher = dispatcher or NotificationDispatcher.from_settings(
            self.settings
        )
        self.max_retries = max_retries
        self.retry_delay = retry_delay

        self._lock = asyncio.Lock()
        self._task: Optional[asyncio.Task] = None
        self._current_tick: Optional[asyncio.Task] = None
        self.last_result: Optional[SchedulerRunResult] = None
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @property
    def interval_seconds(self) -> float:
        return self.settings.check_interval_minutes * 60.0

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the periodic loop on the running event loop."""
        if self.is_running:
            self.logger.warning("Notification scheduler already running")
            return
        self._task = asyncio.create_task(self._run_loop())
        self.logger.info(
            f"Notification scheduler started, checking every "
            f"{self.settings.check_interval_minutes} minutes"
        )

    async def stop(self) -> None:
        """Cancel the loop and any tick in flight."""
        for task in (self._task, self._current_tick):
            if task is not None and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._task = None
        self._current_tick = None
        self.logger.info("Notification scheduler stopped")

    async def _run_loop(self) -> None:
        while True:
            if self._current_tick is not None and not self._current_tick.done():
                self.logger.warning(
                    "Previous notification check still running, skipping this tick"
                )
            else:
                self._current_tick = asyncio.create_task(self.run_once())
            await asyncio.sleep(self.interval_seconds)

    async def run_once(self) -> SchedulerRunResult:
        """
        Run one tick now.

        Each delivery and each new reminder commits on its own, so a failure
        later in the tick never undoes work that already reached a channel.
        Only the read-only candidate queries are retried. Returns a skipped
        result when another tick holds the lock. Errors are logged and
        reported in the result, never raised.
        """
        if self._lock.locked():
            self.logger.warning("Notification check already in progress, skipping")
            result = SchedulerRunResult(skipped=True)
            result.finished_at = result.started_at
            return result

        async with self._lock:
            result = SchedulerRunResult()
            self.logger.info("Running scheduled notification checks")
            try:
                await self._check(result)
            except PetCareException as e:
                e.log_error(self.logger)
                result.error = e.message
            except Exception as e:
                self.logger.error(f"Notification check failed: {e}")
                result.error = str(e)

            result.finished_at = get_current_utc()
            self.last_result = result

            if result.error is None:
                self.logger.info(
                    f"Notification checks complete: {result.scheduled_sent} scheduled "
                    f"sent, {result.appointment_reminders} appointment reminders, "
                    f"{result.vaccination_reminders} vaccination reminders, "
                    f"{result.failed} failed"
                )
            return result

    async def _check(self, result: SchedulerRunResult) -> None:
        for notification_id in await self._candidates("due_notification_ids"):
            if await self._step(result, "send_notification", notification_id):
                result.scheduled_sent += 1

        for appointment_id in await self._candidates("appointments_due_for_reminder"):
            if await self._step(result, "create_appointment_reminder", appointment_id):
                result.appointment_reminders += 1

        for vaccination_id in await self._candidates("vaccinations_due_for_reminder"):
            if await self._step(result, "create_vaccination_reminder", vaccination_id):
                result.vaccination_reminders += 1

    def _service(self, session: AsyncSession) -> NotificationService:
        return NotificationService(session, self.dispatcher, self.settings)

    async def _candidates(self, query: str) -> List[uuid.UUID]:
        async def load(session: AsyncSession) -> List[uuid.UUID]:
            return await getattr(self._service(session), query)()

        load.__name__ = query
        return await self.session_manager.execute_with_retry(
            load, max_retries=self.max_retries, retry_delay=self.retry_delay
        )

    async def _step(
        self, result: SchedulerRunResult, operation: str, item_id: uuid.UUID
    ) -> Any:
        """
        Run one service operation in its own transaction, without retry.

        A failure is logged and counted; the tick moves on to the next item.
        """
        try:
            async with self.session_manager.get_transaction() as session:
                return await getattr(self._service(session), operation)(item_id)
        except Exception as e:
            result.failed += 1
            self.logger.error(f"Notification check {operation}({item_id}) failed: {e}")
            return None
