"""Apply Alembic migrations before the API starts serving requests."""

from __future__ import annotations

import logging
import os
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

from .database import SQLALCHEMY_DATABASE_URL, build_engine_kwargs, read_int_env

LOGGER = logging.getLogger(__name__)

BACKEND_DIR = Path(__file__).resolve().parent.parent
LOCK_FILENAME = ".alembic-migration.lock"
LOCK_TIMEOUT_ENV = "ALEMBIC_MIGRATION_LOCK_TIMEOUT"
DEFAULT_LOCK_TIMEOUT = 30
LOCK_RETRY_DELAY = 0.25

# Tables owned by the subscription schema; a database holding all of them but
# no ``alembic_version`` row was built from the ORM metadata directly.
SCHEMA_TABLES = frozenset(
    {
        "users",
        "services",
        "subscriptions",
        "subscription_items",
        "subscription_payments",
        "subscription_notes",
    }
)

if os.name == "posix":  # pragma: no cover - platform specific
    import fcntl
else:  # pragma: no cover - platform specific
    import msvcrt


def build_alembic_config(database_url: str | None = None) -> Config:
    config = Config(str(BACKEND_DIR / "alembic.ini"))
    config.set_main_option("script_location", str(BACKEND_DIR / "alembic"))
    config.set_main_option(
        "sqlalchemy.url", database_url or os.getenv("DATABASE_URL", SQLALCHEMY_DATABASE_URL)
    )
    return config


def _try_lock(handle) -> bool:
    try:
        if os.name == "posix":  # pragma: no cover - platform specific
            fcntl.flock(handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        else:  # pragma: no cover - platform specific
            msvcrt.locking(handle.fileno(), msvcrt.LK_NBLCK, 1)
    except OSError:
        return False
    return True


def _unlock(handle) -> None:
    if os.name == "posix":  # pragma: no cover - platform specific
        fcntl.flock(handle.fileno(), fcntl.LOCK_UN)
    else:  # pragma: no cover - platform specific
        msvcrt.locking(handle.fileno(), msvcrt.LK_UNLCK, 1)


@contextmanager
def migration_lock(path: Path, *, timeout: float) -> Iterator[None]:
    """Serialize migrations between workers started at the same time."""

    path.parent.mkdir(parents=True, exist_ok=True)
    deadline = time.monotonic() + timeout
    with path.open("a+") as handle:
        while not _try_lock(handle):
            if time.monotonic() >= deadline:
                raise TimeoutError(f"Timed out waiting for migration lock {path}")
            time.sleep(LOCK_RETRY_DELAY)
        LOGGER.debug("Acquired migration lock %s", path)
        try:
            yield
        finally:
            _unlock(handle)


def needs_stamp(table_names: set[str]) -> bool:
    """True when the schema exists but Alembic has never recorded a revision."""

    return "alembic_version" not in table_names and SCHEMA_TABLES.issubset(table_names)


def run_database_migrations(database_url: str | None = None) -> None:
    """Upgrade the database to the latest revision under a file lock."""

    config = build_alembic_config(database_url)
    url = config.get_main_option("sqlalchemy.url")
    timeout = read_int_env(LOCK_TIMEOUT_ENV, DEFAULT_LOCK_TIMEOUT)

    with migration_lock(BACKEND_DIR / LOCK_FILENAME, timeout=timeout):
        engine = create_engine(url, **build_engine_kwargs(url))
        try:
            table_names = set(inspect(engine).get_table_names())
        finally:
            engine.dispose()

        if needs_stamp(table_names):
            LOGGER.info("Schema present without migration history; stamping head")
            command.stamp(config, "head")
            return

        LOGGER.info("Upgrading database schema to head")
        command.upgrade(config, "head")
