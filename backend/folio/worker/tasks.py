"""
Celery tasks.

analysis.analyze_item: computes DNA for one saved item in a synchronous
Celery worker using asyncio.run(), then refreshes the owner's collection
patterns from every analyzed item.
"""
from __future__ import annotations

import asyncio
import logging

from folio.worker.celery_app import celery_app

logger = logging.getLogger(__name__)


def _get_async_db_url() -> str:
    from folio.settings import get_settings
    return get_settings().async_database_url


async def analyze_item_async(item_id: int, session_factory=None) -> dict:
    """Analyze one item and fold it into the profile with a fresh session."""
    from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

    from folio.models import CollectionItem
    from folio.services.profile_aggregator import analyze_item, refresh_from_analyzed

    engine = None
    if session_factory is None:
        engine = create_async_engine(_get_async_db_url(), echo=False)
        session_factory = async_sessionmaker(engine, expire_on_commit=False)

    try:
        async with session_factory() as session:
            item = await session.get(CollectionItem, item_id)
            if not item:
                return {"error": f"Item {item_id} not found"}
            analysis = await analyze_item(session, item)
            await session.commit()
            await refresh_from_analyzed(session, item.user_id)
            logger.info(f"[worker] Item {item_id} analyzed via {analysis.source}")
            return {"item_id": item_id, "source": analysis.source}
    finally:
        if engine is not None:
            await engine.dispose()


@celery_app.task(name="analysis.analyze_item", bind=True, max_retries=2, default_retry_delay=30)
def analyze_item_task(self, item_id: int) -> dict:
    try:
        return asyncio.run(analyze_item_async(item_id))
    except Exception as e:
        logger.error(f"[worker] Item {item_id} analysis failed: {e}")
        raise self.retry(exc=e)
