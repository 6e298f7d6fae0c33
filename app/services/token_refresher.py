# app/services/token_refresher.py
"""Refresh-token grant against the MercadoLibre OAuth endpoint.

The token row is located by ``user_id`` when the response carries one
(upsert), otherwise by the refresh token that was just spent (update).
Either way the returned :class:`RefreshedToken` is what callers use next.
"""
import logging
from datetime import timedelta

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.errors import AuthRefreshError, UnexpectedError
from app.models import utcnow
from app.schemas import RefreshedToken
from app.scrapers.base import decode_json
from app.services.token_store import update_by_refresh_token, upsert_by_user

logger = logging.getLogger(__name__)

class TokenRefresher:
    def __init__(self, session: AsyncSession, http: httpx.AsyncClient, token_url: str | None = None):
        self.session = session
        self.http = http
        self.token_url = token_url or settings.ML_OAUTH_TOKEN_URL

    async def refresh(self, refresh_token: str) -> RefreshedToken:
        r = await self.http.post(
            self.token_url,
            data={
                "grant_type": "refresh_token",
                "client_id": settings.ML_CLIENT_ID,
                "client_secret": settings.ML_CLIENT_SECRET,
                "refresh_token": refresh_token,
            },
            headers={"Accept": "application/json", "User-Agent": settings.ML_USER_AGENT},
        )
        body = decode_json(r)
        if not r.is_success:
            raise AuthRefreshError(r.status_code, body)
        if not isinstance(body, dict):
            body = {}

        if not body.get("access_token"):
            raise UnexpectedError(f"Refresh response without access_token: {body}")
        access_token = str(body["access_token"])
        new_refresh_token = str(refresh_token if body.get("refresh_token") is None else body["refresh_token"])
        expires_in = int(settings.DEFAULT_TOKEN_EXPIRES_IN if body.get("expires_in") is None else body["expires_in"])
        now = utcnow()
        expires_at = now + timedelta(seconds=expires_in)

        fields = {
            "access_token": access_token,
            "refresh_token": new_refresh_token,
            "token_type": "Bearer" if body.get("token_type") is None else body["token_type"],
            "scope": body.get("scope"),
            "expires_at": expires_at,
            "updated_at": now,
        }
        if body.get("user_id"):
            await upsert_by_user(self.session, str(body["user_id"]), fields)
        else:
            await update_by_refresh_token(self.session, refresh_token, fields)
        await self.session.commit()

        logger.info("Refreshed MercadoLibre token (expires_at=%s)", expires_at.isoformat())
        return RefreshedToken(access_token=access_token, refresh_token=new_refresh_token, expires_at=expires_at)
