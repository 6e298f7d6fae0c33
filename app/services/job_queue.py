# app/services/job_queue.py
import logging
from typing import List

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.schemas import Job
from app.models import ScanJob, JOB_PENDING, JOB_PROCESSING, JOB_DONE, JOB_ERROR, utcnow

logger = logging.getLogger(__name__)

async def claim_batch(session: AsyncSession, site_id: str, limit: int, status: str = JOB_PENDING) -> List[Job]:
    q = (
        select(ScanJob)
        .where(ScanJob.status == status, ScanJob.site_id == site_id)
        .order_by(ScanJob.id.asc())
        .limit(limit)
    )
    rows = (await session.execute(q)).scalars().all()
    return [Job.model_validate(row, from_attributes=True) for row in rows]

async def mark_processing(session: AsyncSession, job_id: int, previous_attempts: int | None) -> bool:
    # Only rows still pending move forward; a concurrent run may have taken it.
    res = await session.execute(
        update(ScanJob)
        .where(ScanJob.id == job_id, ScanJob.status == JOB_PENDING)
        .values(
            status=JOB_PROCESSING,
            attempts=(previous_attempts or 0) + 1,
            last_error=None,
            updated_at=utcnow(),
        )
    )
    await session.commit()
    if res.rowcount == 0:
        logger.info("Job %s is no longer pending; skipping", job_id)
        return False
    return True

async def mark_done(session: AsyncSession, job_id: int) -> None:
    await session.execute(
        update(ScanJob).where(ScanJob.id == job_id).values(status=JOB_DONE, last_error=None, updated_at=utcnow())
    )
    await session.commit()

async def mark_error(session: AsyncSession, job_id: int, message: str) -> None:
    await session.execute(
        update(ScanJob).where(ScanJob.id == job_id).values(status=JOB_ERROR, last_error=message, updated_at=utcnow())
    )
    await session.commit()
