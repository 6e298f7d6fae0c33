# app/scrapers/mercadolibre.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Any, List, Union
from urllib.parse import quote, urlencode

import httpx

from app.config import settings
from app.scrapers.base import BaseClient, FetchOutcome

@dataclass
class RawId:
    item_id: str

@dataclass
class RawRecord:
    fields: dict[str, Any]

RawItem = Union[RawId, RawRecord]

class MercadoLibreClient(BaseClient):
    source = "mercadolibre"

    def __init__(self, http: httpx.AsyncClient, base_url: str | None = None, user_agent: str | None = None):
        super().__init__(http, user_agent or settings.ML_USER_AGENT)
        self.base_url = (base_url or settings.ML_API_BASE).rstrip("/")

    # ------------------------ urls ------------------------

    def category_search_url(self, site_id: str, category_id: str, limit: int) -> str:
        query = urlencode({"category": category_id, "limit": limit})
        return f"{self.base_url}/sites/{quote(site_id, safe='')}/search?{query}"

    def seller_search_url(self, seller_id: str, limit: int) -> str:
        query = urlencode({"limit": limit})
        return f"{self.base_url}/users/{quote(seller_id, safe='')}/items/search?{query}"

    # ------------------------ fetching ------------------------

    async def fetch_public(self, url: str) -> FetchOutcome:
        return await self.get(url)

    async def fetch_private(self, url: str, access_token: str) -> FetchOutcome:
        return await self.get(url, headers={"Authorization": f"Bearer {access_token}"})


# ------------------------- helpers -------------------------

def extract_items(payload: Any) -> list:
    """Search results live under "results"; seller search returns a bare id list."""
    if isinstance(payload, dict):
        results = payload.get("results")
        if isinstance(results, list) and results:
            return results
        return []
    if isinstance(payload, list) and payload:
        return payload
    return []

def classify_item(item: Any) -> RawItem:
    if isinstance(item, dict):
        return RawRecord(fields=item)
    return RawId(item_id=str(item))

def classify_items(payload: Any) -> List[RawItem]:
    return [classify_item(it) for it in extract_items(payload)]
