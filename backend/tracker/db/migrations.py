"""Versioned schema migrations.

Each migration is a ``(version_id, ddl)`` pair. Applied versions are recorded
in the ``migrations`` table; a version runs only when its id is greater than
the highest id already recorded, so the store only ever moves forward.
"""

import logging
from collections.abc import Iterable

from sqlalchemy import Connection, Engine, func, insert, select
from sqlalchemy.exc import SQLAlchemyError

from tracker.models.entities import MigrationRecord

logger = logging.getLogger(__name__)

MIGRATIONS: list[tuple[str, str]] = [
    ("001", "CREATE TABLE players(id INTEGER PRIMARY KEY, name VARCHAR(40));"),
    (
        "002",
        "CREATE TABLE aliases(id INTEGER PRIMARY KEY, player_id INTEGER NOT NULL, name VARCHAR(40) NOT NULL, "
        "FOREIGN KEY(player_id) REFERENCES players(id) ON DELETE CASCADE);",
    ),
    (
        "003",
        "CREATE TABLE captures(id VARCHAR(64) PRIMARY KEY, player_id INTEGER NOT NULL, "
        "FOREIGN KEY(player_id) REFERENCES players(id) ON DELETE CASCADE);",
    ),
    ("004", "CREATE INDEX ix_aliases_name ON aliases(name);"),
]


class MigrationError(RuntimeError):
    def __init__(self, version: int, ddl: str):
        super().__init__(f"migration {version:03d} failed")
        self.version = version
        self.ddl = ddl


def current_version(conn: Connection) -> int:
    return conn.execute(select(func.max(MigrationRecord.id))).scalar() or 0


def _ordered(migrations: Iterable[tuple[str | int, str]]) -> list[tuple[int, str]]:
    return sorted(((int(version), ddl) for version, ddl in migrations), key=lambda m: m[0])


def apply_migrations(engine: Engine, migrations: Iterable[tuple[str | int, str]] = MIGRATIONS) -> list[int]:
    """Apply every pending migration and return the ids that ran, in order.

    Raises :class:`MigrationError` on the first failing statement. That
    version is not recorded and later versions are not attempted.
    """
    logger.info("Updating migrations ...")

    with engine.begin() as conn:
        if not engine.dialect.has_table(conn, MigrationRecord.__tablename__):
            logger.info("-- creating migrations table.")
        MigrationRecord.__table__.create(conn, checkfirst=True)
        max_id = current_version(conn)

    applied: list[int] = []
    for version, ddl in _ordered(migrations):
        if version <= max_id:
            continue
        logger.info("-- running migration %03d", version)
        try:
            with engine.begin() as conn:
                conn.exec_driver_sql(ddl)
                conn.execute(insert(MigrationRecord).values(id=version))
        except SQLAlchemyError as exc:
            logger.error("Migration %03d failed: %s", version, exc)
            raise MigrationError(version, ddl) from exc
        max_id = version
        applied.append(version)

    logger.info("Migrations up to date.")
    return applied
