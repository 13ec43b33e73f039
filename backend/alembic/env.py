from logging.config import fileConfig
from sqlalchemy import pool, create_engine
from alembic import context
import sys
from pathlib import Path

# Menambahkan path backend agar bisa import database.py
sys.path.append(str(Path(__file__).resolve().parent.parent))

# Import DATABASE_URL dan Base (models diimport agar tabel terdaftar di metadata)
from database import Base, DATABASE_URL
import models  # noqa: F401

config = context.config

if config.config_file_name is not None:
    # Jangan matikan logger aplikasi saat migrasi dijalankan dari lifespan
    fileConfig(config.config_file_name, disable_existing_loggers=False)

target_metadata = Base.metadata


def _sync_url() -> str:
    # Alembic butuh koneksi sinkron: sqlite+aiosqlite -> sqlite
    url = config.get_main_option("sqlalchemy.url") or str(DATABASE_URL)
    return url.replace("sqlite+aiosqlite://", "sqlite://")


def run_migrations_offline() -> None:
    context.configure(
        url=_sync_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=True # PENTING UNTUK SQLITE
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = create_engine(
        _sync_url(),
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            render_as_batch=True # PENTING AGAR BISA TAMBAH KOLOM DI SQLITE
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
