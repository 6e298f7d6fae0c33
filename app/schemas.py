# app/schemas.py
from pydantic import BaseModel, Field
from typing import Any, Optional
from datetime import datetime
from app.config import settings, site_for_country

class ScanRequest(BaseModel):
    site_id: Optional[str] = None
    country: Optional[str] = None
    batch: int = Field(default_factory=lambda: settings.SCAN_BATCH, ge=1)
    limit: int = Field(default_factory=lambda: settings.SCAN_LIMIT, ge=1)

    def resolved_site_id(self) -> str:
        if self.site_id:
            return str(self.site_id)
        return site_for_country(self.country)

class Credential(BaseModel):
    user_id: str
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    token_type: Optional[str] = None
    scope: Optional[str] = None
    expires_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

class RefreshedToken(BaseModel):
    access_token: str
    refresh_token: str
    expires_at: datetime

class ListingRow(BaseModel):
    job_id: int
    site_id: str
    category_id: str
    item_id: str
    title: Optional[str] = None
    permalink: Optional[str] = None
    price: Optional[float] = None
    currency_id: Optional[str] = None
    seller_id: Optional[str] = None
    raw: Any = None

class Job(BaseModel):
    id: int
    site_id: str
    category_id: str
    status: str
    attempts: Optional[int] = 0
