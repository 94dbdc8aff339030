"""
bockdocs/migrations/env.py — Alembic environment.

The database URL comes from the same config class the app would use for
FLASK_ENV (development when unset), so `alembic upgrade head` and the
running server always agree on which database they talk to.
"""

from __future__ import annotations

import os
import sys
from logging.config import fileConfig
from pathlib import Path

from alembic import context
from sqlalchemy import engine_from_config, pool

# Alembic may run from a checkout that was never pip-installed.
sys.path.insert(0, str(Path(__file__).resolve().parents[2]))

from bockdocs.app.extensions import db  # noqa: E402
from bockdocs.app.models import document, share_link, user  # noqa: E402,F401
from bockdocs.config import config_by_name  # noqa: E402

target_metadata = db.metadata

_config_class = config_by_name.get(
    os.getenv("FLASK_ENV", "development"),
    config_by_name["development"],
)
db_url = _config_class.SQLALCHEMY_DATABASE_URI
if not db_url:
    raise RuntimeError("No database URL configured; set DATABASE_URL.")

config = context.config
# configparser treats "%" as interpolation; URL-encoded passwords contain it.
config.set_main_option("sqlalchemy.url", db_url.replace("%", "%%"))

if config.config_file_name is not None:
    fileConfig(config.config_file_name)


def run_migrations_offline() -> None:
    """Emit SQL to stdout instead of executing it (alembic upgrade --sql)."""
    context.configure(
        url=db_url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
