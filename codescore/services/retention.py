"""Retention sweep: delete code reviews older than review_retention_days."""
import asyncio
import logging
from datetime import datetime, timedelta

from sqlalchemy import delete
from sqlalchemy.orm import Session

from codescore.config import get_settings
from codescore.database import SessionLocal
from codescore.models.code_review import CodeReview

logger = logging.getLogger(__name__)

SWEEP_LOCK_KEY = "codescore:retention-sweep"


def sweep_expired_reviews(db: Session, now: datetime | None = None, retention_days: int | None = None) -> int:
    """Delete reviews with created_at older than now - retention_days. Returns number deleted."""
    if retention_days is None:
        retention_days = get_settings().review_retention_days
    cutoff = (now or datetime.utcnow()) - timedelta(days=retention_days)
    result = db.execute(
        delete(CodeReview)
        .where(CodeReview.created_at < cutoff)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    deleted = result.rowcount or 0
    if deleted:
        logger.info("Retention sweep deleted %d review(s) created before %s", deleted, cutoff.isoformat())
    return deleted


def _sweep_once() -> int:
    db = SessionLocal()
    try:
        return sweep_expired_reviews(db)
    finally:
        db.close()


async def _acquire_lock(interval: int) -> bool:
    """With Redis, only one worker sweeps per interval. Without Redis every worker sweeps (deletes are idempotent)."""
    from codescore.core.redis import get_redis_client
    client = await get_redis_client()
    if client is None:
        return True
    try:
        return bool(await client.set(SWEEP_LOCK_KEY, "1", nx=True, ex=max(1, interval - 1)))
    except Exception as e:
        logger.warning("Redis sweep lock unavailable, sweeping anyway: %s", e)
        return True


async def retention_sweeper(interval: int) -> None:
    """Background task: sweep on startup, then every `interval` seconds."""
    while True:
        try:
            if await _acquire_lock(interval):
                await asyncio.to_thread(_sweep_once)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Retention sweep failed")
        await asyncio.sleep(interval)
