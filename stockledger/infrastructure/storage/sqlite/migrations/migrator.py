"""
Versioned schema migrations for the ledger database.

Migration files live next to this module as ``vNNN_name.sql``. Each one is
applied inside a single transaction together with its schema_migrations
row, so a failing script leaves no partial schema behind. Applied
migrations are pinned by checksum; an edited migration stops the run.
"""

import argparse
import asyncio
import hashlib
import re
import shutil
import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

import aiosqlite

from stockledger.config import get_logger, get_settings
from stockledger.core.exceptions import DatabaseError

logger = get_logger(__name__)

MIGRATIONS_DIR = Path(__file__).parent
_FILENAME = re.compile(r"v(\d+)_(.+)\.sql")

_TRACKING_DDL = """
CREATE TABLE IF NOT EXISTS schema_migrations (
    version TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    checksum TEXT,
    applied_at TEXT DEFAULT (datetime('now')),
    execution_time_ms INTEGER
)
"""

REQUIRED_TABLES = [
    "tenants",
    "users",
    "branches",
    "warehouses",
    "products",
    "stock_ledger",
    "schema_migrations",
]
REQUIRED_VIEWS = ["stock_summary"]
REQUIRED_TRIGGERS = ["stock_ledger_no_update", "stock_ledger_no_delete"]

# (check name, sqlite_master type, required names)
_LEDGER_OBJECTS = (
    ("required_tables", "table", REQUIRED_TABLES),
    ("required_views", "view", REQUIRED_VIEWS),
    ("append_only_triggers", "trigger", REQUIRED_TRIGGERS),
)


@dataclass
class MigrationInfo:
    """A migration file and its content checksum."""

    version: str
    name: str
    path: Path
    checksum: str

    @classmethod
    def from_file(cls, path: Path) -> "MigrationInfo":
        match = _FILENAME.fullmatch(path.name)
        if not match:
            raise ValueError(f"Invalid migration filename: {path.name}")

        digest = hashlib.sha256(path.read_bytes()).hexdigest()
        return cls(
            version=match.group(1),
            name=match.group(2),
            path=path,
            checksum=digest[:16],
        )


@dataclass
class MigrationResult:
    """Outcome of applying one migration."""

    version: str
    name: str
    success: bool
    execution_time_ms: int
    error: str | None = None


def discover_migrations() -> list[MigrationInfo]:
    """Migration files in version order; badly named files are skipped."""
    migrations = []
    for path in sorted(MIGRATIONS_DIR.glob("v*.sql")):
        try:
            migrations.append(MigrationInfo.from_file(path))
        except ValueError as e:
            logger.warning("skipping_invalid_migration", path=str(path), error=str(e))
    return migrations


async def get_applied_migrations(conn: aiosqlite.Connection) -> dict[str, str]:
    """Applied versions mapped to their recorded checksums."""
    await conn.execute(_TRACKING_DDL)
    cursor = await conn.execute("SELECT version, checksum FROM schema_migrations")
    return {row[0]: row[1] for row in await cursor.fetchall()}


async def get_current_version(conn: aiosqlite.Connection) -> str | None:
    applied = await get_applied_migrations(conn)
    return max(applied) if applied else None


async def missing_ledger_objects(conn: aiosqlite.Connection) -> dict[str, list[str]]:
    """Required ledger tables, views and triggers absent from the schema, per check."""
    cursor = await conn.execute("SELECT type, name FROM sqlite_master")
    present = {(row[0], row[1]) for row in await cursor.fetchall()}
    return {
        check: [name for name in names if (kind, name) not in present]
        for check, kind, names in _LEDGER_OBJECTS
    }


async def apply_migration(
    conn: aiosqlite.Connection,
    migration: MigrationInfo,
) -> MigrationResult:
    """
    Apply one migration in its own transaction.

    The script, a foreign key check over the resulting data and the
    schema_migrations row commit together or not at all.
    """
    logger.info("applying_migration", version=migration.version, name=migration.name)
    started = time.perf_counter()

    def elapsed_ms() -> int:
        return int((time.perf_counter() - started) * 1000)

    try:
        sql = migration.path.read_text(encoding="utf-8")
        await conn.executescript(f"BEGIN IMMEDIATE;\n{sql}")

        cursor = await conn.execute("PRAGMA foreign_key_check")
        violations = await cursor.fetchall()
        if violations:
            raise DatabaseError(
                f"migration v{migration.version}",
                f"{len(violations)} foreign key violations",
            )

        await conn.execute(
            """
            INSERT OR REPLACE INTO schema_migrations (version, name, checksum, execution_time_ms)
            VALUES (?, ?, ?, ?)
            """,
            (migration.version, migration.name, migration.checksum, elapsed_ms()),
        )
        await conn.commit()
    except (aiosqlite.Error, DatabaseError) as e:
        await conn.rollback()
        logger.error(
            "migration_failed",
            version=migration.version,
            name=migration.name,
            error=str(e),
        )
        return MigrationResult(
            version=migration.version,
            name=migration.name,
            success=False,
            execution_time_ms=elapsed_ms(),
            error=str(e),
        )

    result = MigrationResult(
        version=migration.version,
        name=migration.name,
        success=True,
        execution_time_ms=elapsed_ms(),
    )
    logger.info(
        "migration_applied",
        version=migration.version,
        execution_time_ms=result.execution_time_ms,
    )
    return result


def create_backup(db_path: Path) -> Path:
    """Copy the database aside before migrating it."""
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    backup_path = db_path.with_suffix(f".backup_{stamp}.db")
    shutil.copy2(db_path, backup_path)
    logger.info("database_backup_created", backup_path=str(backup_path))
    return backup_path


def restore_backup(db_path: Path, backup_path: Path) -> None:
    shutil.copy2(backup_path, db_path)
    logger.info("database_restored_from_backup", backup_path=str(backup_path))


async def _migrate(db_path: Path) -> list[MigrationResult]:
    results: list[MigrationResult] = []

    async with aiosqlite.connect(db_path) as conn:
        await conn.execute("PRAGMA journal_mode=WAL")
        await conn.execute("PRAGMA foreign_keys=ON")
        applied = await get_applied_migrations(conn)
        await conn.commit()

        for migration in discover_migrations():
            recorded = applied.get(migration.version)
            if recorded == migration.checksum:
                continue
            if recorded is not None:
                logger.error("migration_checksum_mismatch", version=migration.version)
                results.append(
                    MigrationResult(
                        version=migration.version,
                        name=migration.name,
                        success=False,
                        execution_time_ms=0,
                        error="checksum differs from the applied migration",
                    )
                )
                break

            result = await apply_migration(conn, migration)
            results.append(result)
            if not result.success:
                break

    return results


async def initialize_database(
    db_path: Path | None = None,
    create_backup_before: bool = True,
) -> list[MigrationResult]:
    """
    Bring the database schema up to date.

    Args:
        db_path: Database file; the configured one when None.
        create_backup_before: Copy an existing database aside first. The
            copy is removed when every migration succeeds.

    Returns:
        Results of the migrations attempted in this run (empty when current).
    """
    db_path = db_path or get_settings().storage.db_path
    db_path.parent.mkdir(parents=True, exist_ok=True)
    logger.info("initializing_database", db_path=str(db_path))

    backup_path = None
    if create_backup_before and db_path.exists():
        backup_path = create_backup(db_path)

    try:
        results = await _migrate(db_path)
    except Exception as e:
        logger.error("database_initialization_failed", error=str(e))
        if backup_path is not None:
            restore_backup(db_path, backup_path)
        raise

    if backup_path is not None and all(r.success for r in results):
        backup_path.unlink()

    return results


# Alias used by callers that only want "make the schema current"
run_migrations = initialize_database


async def get_migration_status(db_path: Path | None = None) -> dict:
    """Current version plus applied and pending migration versions."""
    db_path = db_path or get_settings().storage.db_path
    discovered = discover_migrations()

    if not db_path.exists():
        return {
            "exists": False,
            "current_version": None,
            "applied_migrations": [],
            "pending_migrations": [m.version for m in discovered],
        }

    async with aiosqlite.connect(db_path) as conn:
        applied = await get_applied_migrations(conn)

    return {
        "exists": True,
        "current_version": max(applied) if applied else None,
        "applied_migrations": sorted(applied),
        "pending_migrations": [m.version for m in discovered if m.version not in applied],
        "total_migrations": len(discovered),
    }


async def verify_schema_integrity(db_path: Path | None = None) -> list[dict]:
    """
    Check SQLite integrity, foreign keys and the ledger's own schema objects.

    Each entry has ``check`` and ``status`` (PASS or FAIL) plus detail keys.
    """
    db_path = db_path or get_settings().storage.db_path

    async with aiosqlite.connect(db_path) as conn:
        cursor = await conn.execute("PRAGMA foreign_key_check")
        violations = len(await cursor.fetchall())
        cursor = await conn.execute("PRAGMA integrity_check")
        integrity = (await cursor.fetchone())[0]
        missing = await missing_ledger_objects(conn)

    checks = [
        {
            "check": "foreign_keys",
            "status": "PASS" if violations == 0 else "FAIL",
            "violations": violations,
        },
        {
            "check": "integrity",
            "status": "PASS" if integrity == "ok" else "FAIL",
            "result": integrity,
        },
    ]
    for check, names in missing.items():
        checks.append({
            "check": check,
            "status": "FAIL" if names else "PASS",
            "missing": names,
        })
    return checks


async def _run_cli(args: argparse.Namespace) -> None:
    if args.status:
        status = await get_migration_status(args.db_path)
        print(f"Database exists: {status['exists']}")
        print(f"Current version: {status['current_version'] or 'N/A'}")
        print(f"Applied migrations: {status['applied_migrations']}")
        print(f"Pending migrations: {status['pending_migrations']}")
        return

    if args.verify:
        for check in await verify_schema_integrity(args.db_path):
            print(f"[{check['status']}] {check['check']}")
            if check["status"] == "FAIL":
                for key, value in check.items():
                    if key not in ("check", "status"):
                        print(f"       {key}: {value}")
        return

    results = await initialize_database(args.db_path, create_backup_before=not args.no_backup)
    if not results:
        print("Schema is up to date")
    for result in results:
        outcome = "SUCCESS" if result.success else "FAILED"
        print(f"[{outcome}] v{result.version}: {result.name} ({result.execution_time_ms}ms)")
        if result.error:
            print(f"         Error: {result.error}")


def main() -> None:
    """Entry point of the stockledger-migrate command."""
    parser = argparse.ArgumentParser(description="Stock ledger database migrator")
    parser.add_argument("--db-path", type=Path, help="Database path (default from settings)")
    parser.add_argument("--status", action="store_true", help="Show migration status")
    parser.add_argument("--verify", action="store_true", help="Verify schema integrity")
    parser.add_argument(
        "--no-backup", action="store_true", help="Skip backup before migrations"
    )
    asyncio.run(_run_cli(parser.parse_args()))


if __name__ == "__main__":
    main()
