"""
Alembic environment configuration
"""
import sys
from logging.config import fileConfig
from pathlib import Path

# Load environment variables BEFORE importing app modules
BASE_DIR = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(BASE_DIR))

from dotenv import load_dotenv

for env_file in (BASE_DIR.parent / ".env", BASE_DIR / ".env"):
    if env_file.exists():
        load_dotenv(env_file, override=False)

from sqlalchemy import engine_from_config, pool
from sqlalchemy.engine import make_url

from alembic import context
from app.core.config import get_settings
# Import Base and models for autogenerate
from app.core.database import Base
from app.models import *  # noqa: F401, F403 - Import all models

# this is the Alembic Config object
config = context.config

try:
    settings = get_settings()
except Exception as exc:  # pragma: no cover - helpful runtime error path
    msg = (
        "Failed to load application settings required by Alembic.\n"
        "Common causes:\n"
        "- Missing or mislocated `.env` file (expected at project root or `backend/.env`).\n"
        "- JWT_SECRET or DATABASE_URL/POSTGRES_* not set (see `backend/app/core/config.py`).\n\n"
        f"Original error: {exc}\n"
    )
    sys.stderr.write(msg)
    raise

config.set_main_option("sqlalchemy.url", settings.database_url.replace("%", "%%"))
sys.stderr.write(
    f"Alembic will use database URL: {make_url(settings.database_url).render_as_string(hide_password=True)}\n"
)

# Interpret the config file for Python logging.
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode."""
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode."""
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            render_as_batch=connection.dialect.name == "sqlite",
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
