# main.py — FastAPI + APScheduler on one event loop
import asyncio
import logging

import uvicorn
from app.config import settings
from app.db import init_db
from app.jobs.scheduler import start_scheduler
from app.web.server import create_app as create_web_app

logger = logging.getLogger(__name__)
logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL))

async def run():
    # 1) DB
    await init_db()

    # 2) Scheduler
    scheduler = await start_scheduler() if settings.SCAN_SCHEDULE_ENABLED else None

    # 3) FastAPI via Uvicorn (this will block until Ctrl+C / shutdown)
    web_app = create_web_app()
    server = uvicorn.Server(
        uvicorn.Config(
            web_app,
            host=settings.WEB_HOST,
            port=settings.WEB_PORT,
            log_level=settings.LOG_LEVEL.lower(),
        )
    )

    try:
        await server.serve()
    finally:
        if scheduler is not None:
            scheduler.shutdown(wait=False)

if __name__ == "__main__":
    try:
        asyncio.run(run())
    except (KeyboardInterrupt, SystemExit):
        pass
