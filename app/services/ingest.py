# app/services/ingest.py
from typing import List
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from app.errors import PersistenceError
from app.models import CategoryItem, utcnow
from app.schemas import ListingRow
from app.services.token_store import dialect_insert

OVERWRITE_COLUMNS = ("job_id", "category_id", "title", "permalink", "price", "currency_id", "seller_id", "raw", "updated_at")

async def upsert_listings(session: AsyncSession, rows: List[ListingRow]) -> int:
    if not rows:
        return 0
    now = utcnow()
    # Last occurrence wins when a page repeats an item id.
    unique = {(r.site_id, r.item_id): r for r in rows}
    values = [{**r.model_dump(), "updated_at": now} for r in unique.values()]

    stmt = dialect_insert(session, CategoryItem).values(values)
    stmt = stmt.on_conflict_do_update(
        index_elements=[CategoryItem.site_id, CategoryItem.item_id],
        set_={c: stmt.excluded[c] for c in OVERWRITE_COLUMNS},
    )
    try:
        await session.execute(stmt)
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        raise PersistenceError(str(e.orig) if getattr(e, "orig", None) else str(e)) from e
    return len(values)
