"""
Operator commands: bootstrap the first admin, seed prices, run the ledger audit.
"""
import asyncio
import json
import logging
from decimal import Decimal, InvalidOperation

import click

from satsgame.config import settings
from satsgame.database import Base, engine, session_scope
from satsgame.core.redis import get_redis, close_redis
from satsgame.core.security import create_access_token
from satsgame.models.asset import Asset
from satsgame.services.accounts import open_account, AccountExists
from satsgame.services.pricing import CachedPriceOracle
from satsgame.services.reconciliation import audit_ledger


@click.group()
@click.option('--verbose', '-v', is_flag=True, help='Verbose logging')
def cli(verbose):
    """Bitcoin opportunity cost game administration"""
    logging.basicConfig(
        level=logging.DEBUG if verbose else settings.LOG_LEVEL.upper(),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


@cli.command('init-db')
def init_db():
    """Create tables directly (development only; use alembic elsewhere)."""
    async def _run():
        import satsgame.models  # noqa: F401
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        await engine.dispose()
    asyncio.run(_run())
    click.echo("tables created")


@cli.command('create-admin')
@click.argument('username')
@click.argument('email')
def create_admin(username, email):
    """Open an admin account and print its access token."""
    async def _run():
        async with session_scope() as db:
            user = await open_account(
                db, username, email,
                grant_sats=settings.INITIAL_GRANT_SATS,
                base_asset=settings.BASE_ASSET,
                is_admin=True,
            )
        await engine.dispose()
        return user
    try:
        user = asyncio.run(_run())
    except AccountExists as e:
        raise click.ClickException(str(e))
    click.echo(f"admin {user.username} (id {user.id})")
    click.echo(create_access_token(user.id))


@cli.command('set-price')
@click.argument('symbol')
@click.argument('price_usd')
def set_price(symbol, price_usd):
    """Set the USD price of an asset in the assets table."""
    try:
        price = Decimal(price_usd)
    except InvalidOperation:
        raise click.BadParameter(f"not a number: {price_usd}")
    if price <= 0:
        raise click.BadParameter("price must be positive")

    async def _run():
        async with session_scope() as db:
            asset = await db.get(Asset, symbol.upper())
            if asset:
                asset.current_price_usd = price
            else:
                db.add(Asset(symbol=symbol.upper(), current_price_usd=price))
            await db.commit()
            # drop the cached price so settlements see the new one
            prices = CachedPriceOracle(db, await get_redis(), ttl=settings.PRICE_CACHE_TTL_SECONDS)
            await prices.invalidate(symbol.upper())
        await close_redis()
        await engine.dispose()
    asyncio.run(_run())
    click.echo(f"{symbol.upper()} = {price} USD")


@cli.command('audit')
def audit():
    """Replay trades against holdings and report discrepancies."""
    async def _run():
        async with session_scope() as db:
            report = await audit_ledger(db, settings.INITIAL_GRANT_SATS, settings.BASE_ASSET)
        await engine.dispose()
        return report
    report = asyncio.run(_run())
    click.echo(json.dumps(report.to_dict(), indent=2))
    if not report.ok:
        raise SystemExit(1)


if __name__ == '__main__':
    cli()
