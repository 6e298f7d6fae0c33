# app/scrapers/base.py
import json
import logging
from dataclasses import dataclass
from typing import Any, Union

import httpx

logger = logging.getLogger(__name__)

@dataclass
class Success:
    status: int
    payload: Any

@dataclass
class Unauthorized:
    status: int
    payload: Any

@dataclass
class HttpError:
    status: int
    payload: Any

FetchOutcome = Union[Success, Unauthorized, HttpError]

def decode_json(response: httpx.Response) -> Any:
    """Body as JSON; empty or malformed bodies count as an empty object."""
    try:
        return response.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        logger.warning("Non-JSON body from %s (%s)", response.request.url, response.status_code)
        return {}

def classify_response(response: httpx.Response) -> FetchOutcome:
    payload = decode_json(response)
    if response.is_success:
        return Success(response.status_code, payload)
    if response.status_code == 401:
        return Unauthorized(response.status_code, payload)
    return HttpError(response.status_code, payload)

class BaseClient:
    source = "base"
    base_url = ""

    def __init__(self, http: httpx.AsyncClient, user_agent: str):
        self.http = http
        self.user_agent = user_agent

    def default_headers(self) -> dict[str, str]:
        return {"Accept": "application/json", "User-Agent": self.user_agent}

    async def get(self, url: str, headers: dict[str, str] | None = None) -> FetchOutcome:
        merged = {**self.default_headers(), **(headers or {})}
        r = await self.http.get(url, headers=merged)
        logger.debug("[%s] GET %s -> %s", self.source, url, r.status_code)
        return classify_response(r)
