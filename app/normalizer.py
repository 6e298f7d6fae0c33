# app/normalizer.py
import logging
from typing import Any, Optional

from app.schemas import ListingRow
from app.scrapers.mercadolibre import RawId, RawItem

logger = logging.getLogger(__name__)

def _seller_id(fields: dict[str, Any]) -> Optional[str]:
    seller = fields.get("seller")
    value = seller.get("id") if isinstance(seller, dict) else None
    if value is None:
        value = fields.get("seller_id")
    return str(value) if value is not None else None

def _text(value: Any) -> Optional[str]:
    return str(value) if value is not None else None

def _price(value: Any) -> Optional[float]:
    try:
        return float(value) if value is not None else None
    except (TypeError, ValueError):
        return None

def normalize_item(job_id: int, site_id: str, category_id: str, item: RawItem) -> Optional[ListingRow]:
    if isinstance(item, RawId):
        return ListingRow(
            job_id=job_id,
            site_id=site_id,
            category_id=category_id,
            item_id=item.item_id,
            raw=item.item_id,
        )

    fields: dict[str, Any] = item.fields
    if fields.get("id") is None:
        logger.warning("Dropping item without id for job %s: %s", job_id, list(fields)[:10])
        return None

    return ListingRow(
        job_id=job_id,
        site_id=site_id,
        category_id=category_id,
        item_id=str(fields["id"]),
        title=_text(fields.get("title")),
        permalink=_text(fields.get("permalink")),
        price=_price(fields.get("price")),
        currency_id=_text(fields.get("currency_id")),
        seller_id=_seller_id(fields),
        raw=fields,
    )

def normalize_items(job_id: int, site_id: str, category_id: str, items: list[RawItem]) -> list[ListingRow]:
    rows = []
    for item in items:
        row = normalize_item(job_id, site_id, category_id, item)
        if row is not None:
            rows.append(row)
    return rows
