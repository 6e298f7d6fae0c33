# app/models.py
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, Float, DateTime, JSON, UniqueConstraint, Index, Text
from datetime import datetime, timezone
from typing import Any, Optional
from app.db import Base

JOB_PENDING = "pending"
JOB_PROCESSING = "processing"
JOB_DONE = "done"
JOB_ERROR = "error"

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

class OAuthToken(Base):
    __tablename__ = "meli_oauth_tokens"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[str] = mapped_column(String(50), unique=True)
    access_token: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    refresh_token: Mapped[Optional[str]] = mapped_column(Text, nullable=True, index=True)
    token_type: Mapped[Optional[str]] = mapped_column(String(30), nullable=True, default="Bearer")
    scope: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

class ScanJob(Base):
    __tablename__ = "meli_scan_jobs"

    id: Mapped[int] = mapped_column(primary_key=True)
    site_id: Mapped[str] = mapped_column(String(10))
    category_id: Mapped[str] = mapped_column(String(100))
    status: Mapped[str] = mapped_column(String(20), default=JOB_PENDING)
    attempts: Mapped[int] = mapped_column(Integer, default=0)
    last_error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (Index("idx_scan_jobs_site_status", "site_id", "status"),)

class CategoryItem(Base):
    __tablename__ = "meli_category_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    job_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    site_id: Mapped[str] = mapped_column(String(10))
    category_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    item_id: Mapped[str] = mapped_column(String(50))
    title: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    permalink: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    price: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    currency_id: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    seller_id: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    raw: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (
        UniqueConstraint("site_id", "item_id", name="uq_site_item"),
        Index("idx_category_items_recent", "updated_at"),
    )
