# app/workers.py
import json
import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import settings
from app.errors import MarketplaceError, PersistenceError, ScanWorkerError
from app.normalizer import normalize_items
from app.schemas import Job, ScanRequest
from app.scrapers.base import FetchOutcome, Success, Unauthorized
from app.scrapers.mercadolibre import MercadoLibreClient, classify_items
from app.services import job_queue
from app.services.ingest import upsert_listings
from app.services.token_refresher import TokenRefresher
from app.services.token_store import get_latest_credential

logger = logging.getLogger(__name__)

MODE_CATEGORY = "category_public"
MODE_SELLER = "seller"

@dataclass
class TokenContext:
    """Token pair shared by every job of one invocation; a refresh replaces it in place."""
    access_token: str
    refresh_token: str
    source: str
    refreshed: bool = False

def payload_or_raise(outcome: FetchOutcome) -> Any:
    if isinstance(outcome, Success):
        return outcome.payload
    raise MarketplaceError(outcome.status, outcome.payload)

def bearer_from_header(authorization: Optional[str]) -> str:
    value = (authorization or "").strip()
    if value.lower().startswith("bearer "):
        return value[7:].strip()
    return value

async def resolve_tokens(session: AsyncSession, authorization: Optional[str]) -> TokenContext:
    incoming = bearer_from_header(authorization)
    cred = await get_latest_credential(session)
    if incoming:
        return TokenContext(access_token=incoming, refresh_token=cred.refresh_token or "", source="header")
    return TokenContext(access_token=cred.access_token or "", refresh_token=cred.refresh_token or "", source="db")

class BatchProcessor:
    def __init__(self, session: AsyncSession, client: MercadoLibreClient, refresher: TokenRefresher):
        self.session = session
        self.client = client
        self.refresher = refresher

    def is_seller_job(self, job: Job) -> bool:
        return str(job.category_id).startswith(settings.SELLER_PREFIX)

    def build_url(self, job: Job, site_id: str, limit: int) -> str:
        if self.is_seller_job(job):
            seller_id = str(job.category_id)[len(settings.SELLER_PREFIX):].strip()
            return self.client.seller_search_url(seller_id, limit)
        return self.client.category_search_url(site_id, str(job.category_id), limit)

    async def fetch(self, job: Job, url: str, tokens: TokenContext) -> FetchOutcome:
        outcome = await self.client.fetch_public(url)
        if not (self.is_seller_job(job) and isinstance(outcome, Unauthorized)):
            return outcome

        if tokens.refreshed:
            logger.info("Job %s: seller search unauthorized, retrying with token refreshed earlier", job.id)
        else:
            logger.info("Job %s: seller search unauthorized, refreshing token", job.id)
            refreshed = await self.refresher.refresh(tokens.refresh_token)
            tokens.access_token = refreshed.access_token
            tokens.refresh_token = refreshed.refresh_token
            tokens.refreshed = True
        # Single retry; a second 401 is reported like any other HTTP failure.
        return await self.client.fetch_private(url, tokens.access_token)

    async def process_job(self, job: Job, site_id: str, limit: int, tokens: TokenContext) -> tuple[dict[str, Any], int]:
        mode = MODE_SELLER if self.is_seller_job(job) else MODE_CATEGORY
        url = self.build_url(job, site_id, limit)
        try:
            payload = payload_or_raise(await self.fetch(job, url, tokens))
        except MarketplaceError as e:
            await job_queue.mark_error(self.session, job.id, f"ML {e.status} {json.dumps(e.payload, default=str)}")
            logger.warning("Job %s (%s): marketplace returned %s", job.id, job.category_id, e.status)
            return {"job_id": job.id, "category": job.category_id, "ok": False,
                    "status": e.status, "payload": e.payload}, 0

        items = classify_items(payload)
        inserted = 0
        if items:
            rows = normalize_items(job.id, site_id, job.category_id, items)
            try:
                inserted = await upsert_listings(self.session, rows)
            except PersistenceError as e:
                await job_queue.mark_error(self.session, job.id, f"DB upsert error: {e}")
                logger.error("Job %s: upsert failed: %s", job.id, e)
                return {"job_id": job.id, "category": job.category_id, "ok": False, "db_error": str(e)}, 0

        await job_queue.mark_done(self.session, job.id)
        logger.info("Job %s (%s): %s items via %s", job.id, job.category_id, len(items), mode)
        return {"job_id": job.id, "category": job.category_id, "ok": True, "items": len(items), "mode": mode}, inserted

    async def abandon(self, job: Job, exc: Exception) -> None:
        """Finalize a job whose processing aborts the whole invocation."""
        try:
            await self.session.rollback()
            await job_queue.mark_error(self.session, job.id, f"Aborted: {exc}")
        except SQLAlchemyError:
            logger.exception("Could not record abort for job %s", job.id)

    async def run(self, request: ScanRequest, authorization: Optional[str] = None) -> dict[str, Any]:
        site_id = request.resolved_site_id()
        jobs = await job_queue.claim_batch(self.session, site_id, request.batch)
        if not jobs:
            return {"ok": True, "msg": "no_jobs", "site_id": site_id, "batch": request.batch, "limit": request.limit}

        tokens = await resolve_tokens(self.session, authorization)

        results: list[dict[str, Any]] = []
        processed = 0
        inserted = 0
        for job in jobs:
            if not await job_queue.mark_processing(self.session, job.id, job.attempts):
                continue
            processed += 1
            try:
                entry, count = await self.process_job(job, site_id, request.limit, tokens)
            except Exception as e:
                await self.abandon(job, e)
                raise
            results.append(entry)
            inserted += count

        return {
            "ok": True,
            "site_id": site_id,
            "processed": processed,
            "inserted": inserted,
            "token_source": tokens.source,
            "token_len": len(tokens.access_token),
            "results": results,
        }

async def run_scan_batch(
    request: ScanRequest,
    authorization: Optional[str] = None,
    session_factory: Optional[async_sessionmaker] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> dict[str, Any]:
    if session_factory is None:
        from app.db import SessionLocal
        session_factory = SessionLocal

    try:
        async with session_factory() as session, httpx.AsyncClient(
            timeout=settings.HTTP_TIMEOUT_SECONDS,
            follow_redirects=True,
            transport=transport,
        ) as http:
            processor = BatchProcessor(session, MercadoLibreClient(http), TokenRefresher(session, http))
            return await processor.run(request, authorization)
    except ScanWorkerError as e:
        logger.error("Scan batch aborted: %s", e)
        return {"ok": False, "error": str(e)}
    except Exception as e:
        logger.exception("Scan batch failed unexpectedly")
        return {"ok": False, "error": str(e) or e.__class__.__name__}
