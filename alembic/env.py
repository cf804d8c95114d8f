"""
Alembic environment for the tenant-features schema.

The database URL comes from tenantfeatures settings (DATABASE_URL), never
from alembic.ini, and autogenerate compares against the ORM metadata in
tenantfeatures.db.models.

Usage:
    alembic upgrade head
    alembic upgrade head --sql > migration.sql   # offline
"""

from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool

# Models must be imported before Base.metadata is read
from tenantfeatures.config import settings
from tenantfeatures.db.models import Base
from tenantfeatures.db.session import create_db_engine

config = context.config
config.set_main_option("sqlalchemy.url", settings.database_url)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """Emit SQL for the migrations without a database connection."""
    context.configure(
        url=settings.database_url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Apply the migrations over a dedicated, unpooled connection."""
    engine = create_db_engine(settings.database_url, poolclass=pool.NullPool)

    with engine.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            # SQLite cannot ALTER constraints in place
            render_as_batch=connection.dialect.name == "sqlite",
        )

        with context.begin_transaction():
            context.run_migrations()

    engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
