# migrations/env.py
from alembic import context
from sqlalchemy import engine_from_config, pool

import auth_api.models  # noqa: F401  registers the tables
from auth_api.core.config import Settings
from auth_api.db.base import Base
from auth_api.db.session import normalize_url

config = context.config

# bootstrap passes the URL in; plain `alembic upgrade head` reads it from the environment
if not config.get_main_option("sqlalchemy.url"):
    config.set_main_option("sqlalchemy.url", normalize_url(Settings().DATABASE_URL).replace("%", "%%"))

target_metadata = Base.metadata


def run_migrations_offline():
    url = config.get_main_option("sqlalchemy.url")
    context.configure(url=url, target_metadata=target_metadata, literal_binds=True, render_as_batch=True)
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online():
    connectable = engine_from_config(config.get_section(config.config_ini_section), prefix="sqlalchemy.", poolclass=pool.NullPool)
    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata, render_as_batch=True)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
