import pytest

from conftest import create_user
from folio.models import TrainingRating
from folio.services.scheduler import SchedulerService
from folio.settings import get_settings


def test_start_respects_disabled_flag():
    service = SchedulerService()

    service.start()

    assert service.is_running() is False
    assert service.scheduler.get_jobs() == []


@pytest.mark.asyncio
async def test_purge_runs_without_advisory_locks_on_sqlite(db):
    service = SchedulerService()
    service.configure(get_settings().async_database_url)

    assert await service.run_purge_suggestions() == {"purged": 0}


@pytest.mark.asyncio
async def test_refine_job_only_touches_users_with_enough_ratings(db):
    async with db() as session:
        user_id = await create_user(session)
        for _ in range(2):
            session.add(TrainingRating(user_id=user_id, rating_type="BINARY", outcome="SKIPPED"))
        await session.commit()

    service = SchedulerService()
    service.configure(get_settings().async_database_url)

    assert await service.run_refine_profiles() == {"refined": 0, "errors": 0}
