import asyncio
from logging.config import fileConfig
from alembic import context
from satsgame.config import settings
from satsgame.database import Base, make_engine
import satsgame.models  # noqa: F401 - register ledger tables

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

# settings has already rewritten postgresql:// to the asyncpg driver
database_url = config.get_main_option("sqlalchemy.url") or settings.DATABASE_URL
# SQLite cannot ALTER constraints in place; batch mode rebuilds the table
render_as_batch = database_url.startswith("sqlite")

def run_migrations_offline():
    context.configure(
        url=database_url,
        target_metadata=target_metadata,
        literal_binds=True,
        compare_type=True,
        render_as_batch=render_as_batch,
    )
    with context.begin_transaction():
        context.run_migrations()

def do_run_migrations(connection):
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        compare_type=True,
        render_as_batch=render_as_batch,
    )
    with context.begin_transaction():
        context.run_migrations()

async def run_migrations_online():
    engine = make_engine(database_url)
    async with engine.connect() as connection:
        await connection.run_sync(do_run_migrations)
    await engine.dispose()

if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
