# auth_api/db/bootstrap.py
import logging
import os

from alembic import command
from alembic.config import Config

from auth_api.core.config import Settings
from auth_api.core.security import PasswordHasher
from auth_api.db.init_db import init_db
from auth_api.db.session import normalize_url

logger = logging.getLogger(__name__)

BASE_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))


def run_migrations(database_url: str) -> None:
    # Point explicitly at alembic.ini and migrations/
    cfg = Config(os.path.join(BASE_DIR, "alembic.ini"))
    cfg.set_main_option("script_location", os.path.join(BASE_DIR, "migrations"))
    cfg.set_main_option("sqlalchemy.url", normalize_url(database_url).replace("%", "%%"))
    command.upgrade(cfg, "head")


def run_migrations_and_seed(settings: Settings, session_factory, hasher: PasswordHasher) -> None:
    run_migrations(settings.DATABASE_URL)
    with session_factory() as db:
        init_db(db, hasher, admin_email=settings.ADMIN_EMAIL, admin_password=settings.ADMIN_PASSWORD)
    logger.info("Database migrated and seeded")
