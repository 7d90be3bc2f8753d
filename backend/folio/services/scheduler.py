"""
Scheduler Service

Periodic maintenance jobs:
- refresh YouTube metrics for every saved video
- purge expired pending training suggestions
- full profile refinement for users with enough ratings

Single-leader election via Postgres advisory locks:
- Only the instance that acquires the lock executes the tick
- Other instances silently skip
- Controlled by SCHEDULER_ENABLED env (default: true)
"""
from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy import func, select, text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from folio.models import TrainingRating
from folio.settings import get_settings

logger = logging.getLogger("scheduler")

# Advisory lock keys (arbitrary int64, unique per job type)
LOCK_METRICS_REFRESH = 910_001
LOCK_PURGE_SUGGESTIONS = 910_002
LOCK_REFINE_PROFILES = 910_003


class SchedulerService:
    """Runs periodic jobs on an AsyncIOScheduler.

    Uses Postgres pg_try_advisory_lock on each tick so that only
    one backend instance (the leader) executes the job while
    other instances skip silently.
    """

    _instance: "SchedulerService | None" = None

    def __init__(self):
        self.scheduler = AsyncIOScheduler()
        self._session_factory: async_sessionmaker | None = None
        self._use_advisory_locks = True
        self._running = False

    @classmethod
    def get_instance(cls) -> "SchedulerService":
        """Get singleton instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def configure(self, database_url: str):
        """Configure database connection."""
        self._use_advisory_locks = database_url.startswith("postgresql")
        pool = {} if self._use_advisory_locks else {"poolclass": NullPool}
        engine = create_async_engine(database_url, echo=False, **pool)
        self._session_factory = async_sessionmaker(engine, expire_on_commit=False)

    def _get_session(self) -> AsyncSession:
        if not self._session_factory:
            self.configure(get_settings().async_database_url)
        return self._session_factory()

    async def _try_advisory_lock(self, session: AsyncSession, lock_key: int) -> bool:
        """Try to acquire a Postgres session-level advisory lock (non-blocking).

        Returns True if this instance acquired the lock (is leader for this tick).
        The lock is automatically released when the session/connection closes.
        """
        if not self._use_advisory_locks:
            return True
        result = await session.execute(text(f"SELECT pg_try_advisory_lock({lock_key})"))
        return bool(result.scalar())

    async def _release_advisory_lock(self, session: AsyncSession, lock_key: int):
        if self._use_advisory_locks:
            await session.execute(text(f"SELECT pg_advisory_unlock({lock_key})"))

    async def _run_locked(
        self, name: str, lock_key: int, job: Callable[[AsyncSession], Awaitable[Any]]
    ) -> Any:
        async with self._get_session() as session:
            if not await self._try_advisory_lock(session, lock_key):
                logger.debug("[%s] Advisory lock not acquired, skipping tick", name)
                return None
            try:
                logger.info("[%s] LEADER, running", name)
                result = await job(session)
                logger.info("[%s] Completed: %s", name, result)
                return result
            finally:
                await self._release_advisory_lock(session, lock_key)

    def start(self):
        """Start the scheduler (respects SCHEDULER_ENABLED env)."""
        settings = get_settings()
        if not settings.scheduler_enabled:
            logger.info("Scheduler DISABLED by SCHEDULER_ENABLED=false, skipping start")
            return
        if self._running:
            return

        self.scheduler.add_job(
            self.run_metrics_refresh,
            IntervalTrigger(hours=settings.metrics_refresh_interval_hours),
            id="metrics_refresh",
            name="Refresh saved video metrics",
            replace_existing=True,
        )
        self.scheduler.add_job(
            self.run_purge_suggestions,
            IntervalTrigger(hours=1),
            id="purge_suggestions",
            name="Purge expired training suggestions",
            replace_existing=True,
        )
        self.scheduler.add_job(
            self.run_refine_profiles,
            IntervalTrigger(hours=settings.refine_interval_hours),
            id="refine_profiles",
            name="Full profile refinement",
            replace_existing=True,
        )

        self.scheduler.start()
        self._running = True
        logger.info("Scheduler started (single-leader mode via advisory locks)")

    def stop(self):
        if not self._running:
            return
        self.scheduler.shutdown(wait=False)
        self._running = False
        logger.info("Scheduler stopped")

    def is_running(self) -> bool:
        return self._running

    async def run_metrics_refresh(self):
        from folio.services.metrics_refresh import refresh_all_users

        async def job(session: AsyncSession):
            return await refresh_all_users(self._session_factory)

        return await self._run_locked("metrics_refresh", LOCK_METRICS_REFRESH, job)

    async def run_purge_suggestions(self):
        from folio.services.content_discovery import purge_expired

        async def job(session: AsyncSession):
            return {"purged": await purge_expired(session)}

        return await self._run_locked("purge_suggestions", LOCK_PURGE_SUGGESTIONS, job)

    async def run_refine_profiles(self):
        from folio.services.profile_refinement import refine_profile

        async def job(session: AsyncSession):
            minimum = get_settings().min_ratings_for_refine
            user_ids = (
                await session.execute(
                    select(TrainingRating.user_id)
                    .group_by(TrainingRating.user_id)
                    .having(func.count() >= minimum)
                )
            ).scalars().all()
            refined, errors = 0, 0
            for user_id in user_ids:
                try:
                    async with self._get_session() as user_session:
                        result = await refine_profile(user_session, user_id)
                    refined += int(result["success"])
                except Exception as e:
                    logger.error("Failed to refine profile for user %d: %s", user_id, e)
                    errors += 1
            return {"refined": refined, "errors": errors}

        return await self._run_locked("refine_profiles", LOCK_REFINE_PROFILES, job)


scheduler_service = SchedulerService.get_instance()
