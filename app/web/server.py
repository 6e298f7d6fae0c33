# app/web/server.py
import json
from typing import Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import async_sessionmaker

from app.schemas import ScanRequest
from app.workers import run_scan_batch

ALL_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]

def create_app(
    session_factory: Optional[async_sessionmaker] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    app = FastAPI(title="MercadoLibre Scan Worker")

    @app.get("/healthz")
    async def healthz():
        return {"ok": True}

    @app.api_route("/api/meli-scan-worker", methods=ALL_METHODS)
    async def meli_scan_worker(request: Request):
        if request.method != "POST":
            return JSONResponse({"ok": False, "error": "Method not allowed"}, status_code=405)

        try:
            body = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            body = {}
        if not isinstance(body, dict):
            body = {}

        try:
            scan = ScanRequest.model_validate(body)
        except ValidationError as e:
            return JSONResponse({"ok": False, "error": str(e)}, status_code=400)

        summary = await run_scan_batch(
            scan,
            authorization=request.headers.get("authorization"),
            session_factory=session_factory,
            transport=transport,
        )
        return JSONResponse(summary, status_code=200 if summary.get("ok") else 500)

    return app
