"""Run a named SQL migration against the configured database.

Usage::

    python -m equiptrak.db.migrate add_unique_constraint_to_serial

Migrations live in ``equiptrak/db/migrations/<name>.sql``. Statements are
separated by ``;`` and executed in one transaction.
"""

import argparse
import logging
import sys
from pathlib import Path

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

MIGRATIONS_DIR = Path(__file__).resolve().parent / "migrations"

logger = logging.getLogger("equiptrak.migrate")


class MigrationError(RuntimeError):
    pass


def available_migrations(directory: Path = MIGRATIONS_DIR) -> list[str]:
    return sorted(path.stem for path in directory.glob("*.sql"))


def migration_path(name: str, directory: Path = MIGRATIONS_DIR) -> Path:
    stem = name[:-4] if name.endswith(".sql") else name
    path = directory / f"{stem}.sql"
    # names are plain stems, never paths
    if path.parent != directory or not path.is_file():
        raise MigrationError(f"Migration file not found: {path}")
    return path


def split_statements(sql: str) -> list[str]:
    statements = []
    for chunk in sql.split(";"):
        lines = [line for line in chunk.splitlines() if not line.strip().startswith("--")]
        statement = "\n".join(lines).strip()
        if statement:
            statements.append(statement)
    return statements


def run_migration(name: str, engine: Engine, directory: Path = MIGRATIONS_DIR) -> int:
    path = migration_path(name, directory)
    statements = split_statements(path.read_text(encoding="utf-8"))
    logger.info("Running migration %s (%d statements)", path.name, len(statements))
    with engine.begin() as connection:
        for statement in statements:
            connection.exec_driver_sql(statement)
    logger.info("Migration %s completed", path.name)
    return len(statements)


def main(argv: list[str] | None = None, engine: Engine | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="run_migration",
        description="Run a named SQL migration from equiptrak/db/migrations.",
    )
    parser.add_argument("name", help="migration name, e.g. add_unique_constraint_to_serial")
    args = parser.parse_args(argv)

    if not logging.getLogger().handlers:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")

    if engine is None:
        from equiptrak.db.session import engine

    try:
        run_migration(args.name, engine)
    except MigrationError as exc:
        names = ", ".join(available_migrations()) or "none"
        raise SystemExit(f"{exc}\nAvailable migrations: {names}")
    except SQLAlchemyError as exc:
        logger.error("Migration %s failed: %s", args.name, exc)
        raise SystemExit(f"Migration {args.name} failed.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
