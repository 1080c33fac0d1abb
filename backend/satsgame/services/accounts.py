import logging
from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession
from satsgame.models.user import User
from satsgame.services.ledger import HoldingsStore

logger = logging.getLogger(__name__)


class AccountExists(Exception):
    pass


async def open_account(db: AsyncSession, username: str, email: str, grant_sats: int,
                       base_asset: str = "BTC", is_admin: bool = False) -> User:
    """Create a user and credit the starting base-asset balance in one commit."""
    existing = await db.scalar(
        select(User).where(or_(User.username == username, User.email == email.lower()))
    )
    if existing:
        raise AccountExists(f"Username or email already registered: {username} / {email}")

    user = User(username=username, email=email.lower(), is_admin=is_admin)
    db.add(user)
    await db.flush()
    if grant_sats > 0:
        await HoldingsStore(db).adjust_holding(user.id, base_asset, grant_sats)
    await db.commit()
    await db.refresh(user)
    logger.info("[accounts] opened user %s (%s) with %d %s", user.id, username, grant_sats, base_asset)
    return user
