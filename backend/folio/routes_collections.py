from __future__ import annotations

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from folio.db import get_session, get_session_factory
from folio.models import CollectionItem, ContentType, Platform
from folio.platforms import YOUTUBE_PLATFORMS, detect_platform, extract_youtube_video_id, thumbnail_from_url
from folio.routes_auth import require_user
from folio.schemas import CollectionCreate, CollectionRead, CollectionUpdate, MetadataRequest
from folio.services.metadata_fetcher import Metadata, UnsupportedURLError, fetch_metadata
from folio.services.metrics_refresh import apply_stats, refresh_user_metrics
from folio.settings import get_settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/collections", tags=["collections"])

SessionDep = Depends(get_session)
UserDep = Depends(require_user)


def _serialize_item(item: CollectionItem) -> dict:
    return CollectionRead.model_validate(item).model_dump(mode="json")


async def _get_owned(session: AsyncSession, user_id: int, item_id: int) -> CollectionItem:
    item = await session.get(CollectionItem, item_id)
    if not item or item.user_id != user_id:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Item not found")
    return item


def schedule_analysis(background_tasks: BackgroundTasks, item_id: int) -> None:
    """Queue DNA analysis on Celery when enabled, otherwise after the response."""
    if get_settings().celery_enabled:
        from folio.worker.tasks import analyze_item_task

        analyze_item_task.delay(item_id)
        return
    from folio.worker.tasks import analyze_item_async

    background_tasks.add_task(analyze_item_async, item_id, get_session_factory())


@router.get("")
async def list_collections(
    platform: Platform | None = None,
    search: str | None = None,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    user_id: int = UserDep,
    session: AsyncSession = SessionDep,
):
    filters = [CollectionItem.user_id == user_id]
    if platform:
        filters.append(CollectionItem.platform == platform.value)
    if search:
        filters.append(CollectionItem.title.ilike(f"%{search.strip()}%"))

    total = await session.scalar(select(func.count()).select_from(CollectionItem).where(*filters))
    items = (
        await session.execute(
            select(CollectionItem)
            .where(*filters)
            .order_by(CollectionItem.saved_at.desc(), CollectionItem.id.desc())
            .limit(limit)
            .offset(offset)
        )
    ).scalars().all()
    return {
        "collections": [_serialize_item(i) for i in items],
        "total": total or 0,
        "limit": limit,
        "offset": offset,
    }


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_collection(
    data: CollectionCreate,
    background_tasks: BackgroundTasks,
    user_id: int = UserDep,
    session: AsyncSession = SessionDep,
):
    detected = detect_platform(data.url)
    if not detected and data.platform is None:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Unsupported platform URL")

    meta: Metadata | None = None
    if detected:
        try:
            meta = await fetch_metadata(data.url)
        except UnsupportedURLError:
            meta = None

    platform = data.platform or detected[0]
    content_type = data.content_type or (detected[1] if detected else ContentType.video)
    title = (data.title or "").strip() or (meta.title if meta else None)
    if not title:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "title is required when it cannot be fetched")

    video_id = meta.video_id if meta else None
    if video_id is None and platform in YOUTUBE_PLATFORMS:
        video_id = extract_youtube_video_id(data.url)

    item = CollectionItem(
        user_id=user_id,
        title=title,
        url=data.url,
        platform=platform.value,
        content_type=content_type.value,
        thumbnail=data.thumbnail or (meta.thumbnail if meta else None) or thumbnail_from_url(data.url),
        video_id=video_id,
        notes=data.notes,
        tags=data.tags,
        check_count=0,
    )
    if meta and meta.stats:
        apply_stats(item, meta.stats)
    session.add(item)
    await session.commit()
    await session.refresh(item)

    schedule_analysis(background_tasks, item.id)
    logger.info("[collections] user=%s saved item=%s platform=%s", user_id, item.id, item.platform)
    return _serialize_item(item)


@router.post("/rescan")
async def rescan_collections(user_id: int = UserDep, session: AsyncSession = SessionDep):
    """Recompute thumbnails (and YouTube ids) from the URL alone."""
    items = (await session.execute(select(CollectionItem).where(CollectionItem.user_id == user_id))).scalars().all()
    updated = 0
    for item in items:
        thumbnail = thumbnail_from_url(item.url)
        video_id = extract_youtube_video_id(item.url) or item.video_id
        if (thumbnail and thumbnail != item.thumbnail) or video_id != item.video_id:
            item.thumbnail = thumbnail or item.thumbnail
            item.video_id = video_id
            updated += 1
    await session.commit()
    return {"total": len(items), "updated": updated}


@router.post("/refresh-metrics")
async def refresh_metrics(user_id: int = UserDep):
    result = await refresh_user_metrics(user_id)
    return result.model_dump()


@router.post("/fetch-metadata")
async def fetch_url_metadata(data: MetadataRequest, user_id: int = UserDep):
    try:
        meta = await fetch_metadata(data.url.strip())
    except UnsupportedURLError as e:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, str(e))
    return meta.model_dump(mode="json")


@router.get("/{item_id}")
async def get_collection(item_id: int, user_id: int = UserDep, session: AsyncSession = SessionDep):
    return _serialize_item(await _get_owned(session, user_id, item_id))


@router.patch("/{item_id}")
async def update_collection(
    item_id: int,
    data: CollectionUpdate,
    background_tasks: BackgroundTasks,
    user_id: int = UserDep,
    session: AsyncSession = SessionDep,
):
    item = await _get_owned(session, user_id, item_id)
    changes = data.model_dump(exclude_unset=True)
    retitled = "title" in changes and changes["title"] and changes["title"] != item.title
    for field, value in changes.items():
        if field == "title" and not value:
            continue
        setattr(item, field, value)
    if retitled:
        item.performance_dna = None
        item.aesthetic_dna = None
        item.analyzed_at = None
    await session.commit()
    await session.refresh(item)
    if retitled:
        schedule_analysis(background_tasks, item.id)
    return _serialize_item(item)


@router.delete("/{item_id}")
async def delete_collection(item_id: int, user_id: int = UserDep, session: AsyncSession = SessionDep):
    await _get_owned(session, user_id, item_id)
    await session.execute(delete(CollectionItem).where(CollectionItem.id == item_id))
    await session.commit()
    return {"success": True}
