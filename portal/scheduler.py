"""
Background jobs

One APScheduler executor per ``Queue``. ``dispatch`` hands a job to its
queue's executor; when the scheduler is not running (tests, CLI scripts)
the job runs inline instead.
"""

import inspect
import logging
from datetime import datetime, timedelta, timezone

from apscheduler.executors.asyncio import AsyncIOExecutor
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy import delete

from portal.config import settings
from portal.database import AsyncSessionLocal
from portal.enums import Queue
from portal.models import PasswordResetToken, User

logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler(
    executors={queue.value: AsyncIOExecutor() for queue in Queue},
    job_defaults={"coalesce": True, "max_instances": 1, "misfire_grace_time": 60},
    timezone=timezone.utc,
)


async def dispatch(func, *args, queue: Queue = Queue.DEFAULT, **kwargs) -> None:
    """Run ``func`` on ``queue``, or immediately when no scheduler is running."""
    if not scheduler.running:
        result = func(*args, **kwargs)
        if inspect.isawaitable(result):
            await result
        return

    scheduler.add_job(
        func,
        trigger=DateTrigger(run_date=datetime.now(timezone.utc)),
        args=args,
        kwargs=kwargs,
        executor=queue.value,
    )
    logger.debug(f"[Scheduler] Dispatched {func.__name__} on queue '{queue.value}'")


async def clear_expired_password_reset_tokens(session_factory=AsyncSessionLocal) -> int:
    cutoff = datetime.now(timezone.utc) - timedelta(minutes=settings.password_reset_expire_minutes)
    async with session_factory() as db:
        result = await db.execute(delete(PasswordResetToken).where(PasswordResetToken.created_at < cutoff))
        await db.commit()

    if result.rowcount:
        logger.info(f"[Scheduler] Cleared {result.rowcount} expired password reset token(s)")
    return result.rowcount


async def prune_unverified_users(session_factory=AsyncSessionLocal) -> int:
    async with session_factory() as db:
        result = await db.execute(User.prunable())
        await db.commit()

    if result.rowcount:
        logger.info(f"[Scheduler] Pruned {result.rowcount} unverified user(s)")
    return result.rowcount


def schedule_maintenance_jobs() -> None:
    scheduler.add_job(
        clear_expired_password_reset_tokens,
        trigger=IntervalTrigger(minutes=15),
        id="auth_clear_resets",
        executor=Queue.DEFAULT.value,
        replace_existing=True,
    )
    scheduler.add_job(
        prune_unverified_users,
        trigger=IntervalTrigger(days=1),
        id="model_prune_users",
        executor=Queue.DEFAULT.value,
        replace_existing=True,
    )
    logger.info("[Scheduler] Maintenance jobs scheduled")
