# app/services/token_store.py
import logging
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import NotFoundError
from app.models import OAuthToken, utcnow
from app.schemas import Credential

logger = logging.getLogger(__name__)

def dialect_insert(session: AsyncSession, table):
    """INSERT construct that supports ON CONFLICT for the bound dialect."""
    if session.get_bind().dialect.name == "postgresql":
        return postgresql.insert(table)
    return sqlite.insert(table)

async def get_latest_credential(session: AsyncSession) -> Credential:
    q = select(OAuthToken).order_by(OAuthToken.updated_at.desc(), OAuthToken.id.desc()).limit(1)
    tok = (await session.execute(q)).scalar_one_or_none()
    if tok is None or not (tok.access_token or tok.refresh_token):
        raise NotFoundError("No token found in meli_oauth_tokens (missing access_token and refresh_token)")
    return Credential.model_validate(tok, from_attributes=True)

async def upsert_by_user(session: AsyncSession, user_id: str, fields: dict[str, Any]) -> None:
    values = {**fields, "user_id": user_id, "updated_at": fields.get("updated_at") or utcnow()}
    stmt = dialect_insert(session, OAuthToken).values(**values)
    stmt = stmt.on_conflict_do_update(
        index_elements=[OAuthToken.user_id],
        set_={k: stmt.excluded[k] for k in values if k != "user_id"},
    )
    await session.execute(stmt)

async def update_by_refresh_token(session: AsyncSession, old_refresh_token: str, fields: dict[str, Any]) -> int:
    values = {**fields, "updated_at": fields.get("updated_at") or utcnow()}
    res = await session.execute(
        update(OAuthToken).where(OAuthToken.refresh_token == old_refresh_token).values(**values)
    )
    if res.rowcount == 0:
        logger.warning("No credential row matched the previous refresh token; nothing updated")
    elif res.rowcount > 1:
        logger.warning("%s credential rows shared one refresh token; all were updated", res.rowcount)
    return res.rowcount
