"""
Schema migrations for the SQLite store.

Each migrations/NNN_name.sql file holds the forward script, optionally
followed by a "-- Down" line and the script that reverts it. Applied
files are recorded in the _migrations table, in the order they ran.
"""

import logging
import sqlite3
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_MIGRATIONS_DIR = Path(__file__).parent / "migrations"
DOWN_MARKER = "-- Down"


@dataclass(frozen=True)
class Migration:
    filename: str
    up: str
    down: str = ""

    @classmethod
    def from_file(cls, path: Path) -> "Migration":
        up, _, down = path.read_text(encoding="utf-8").partition(DOWN_MARKER)
        return cls(filename=path.name, up=up, down=down.strip())


class SQLiteMigrator:
    def __init__(self, db_path: str, migrations_dir: str | Path = DEFAULT_MIGRATIONS_DIR):
        self.db_path = db_path
        self.migrations_dir = Path(migrations_dir)

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.execute("PRAGMA foreign_keys = ON;")
        conn.execute("""
            CREATE TABLE IF NOT EXISTS _migrations (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                filename TEXT UNIQUE NOT NULL,
                applied_at DATETIME DEFAULT CURRENT_TIMESTAMP
            );
        """)
        return conn

    def discover(self) -> list[Migration]:
        return [Migration.from_file(p) for p in sorted(self.migrations_dir.glob("*.sql"))]

    def applied(self) -> list[str]:
        """Filenames already applied, oldest first."""
        conn = self._connect()
        try:
            return [row[0] for row in conn.execute("SELECT filename FROM _migrations ORDER BY id")]
        finally:
            conn.close()

    def pending(self) -> list[Migration]:
        done = set(self.applied())
        return [m for m in self.discover() if m.filename not in done]

    def run_migrations(self) -> list[str]:
        """Apply all pending migrations, returning the filenames applied."""
        pending = self.pending()
        conn = self._connect()
        try:
            for migration in pending:
                logger.info("Applying migration: %s", migration.filename)
                self._run(
                    conn,
                    migration.filename,
                    migration.up,
                    "INSERT INTO _migrations (filename) VALUES (?)",
                )
        finally:
            conn.close()

        logger.info("All migrations applied (%d new)", len(pending))
        return [m.filename for m in pending]

    def rollback_last(self) -> str | None:
        """
        Revert the most recently applied migration using its Down script.
        Returns the reverted filename, or None when nothing is applied.
        Raises RuntimeError if the migration has no Down script.
        """
        applied = self.applied()
        if not applied:
            return None

        filename = applied[-1]
        path = self.migrations_dir / filename
        if not path.is_file():
            raise RuntimeError(f"Migration {filename} is recorded but missing on disk")
        migration = Migration.from_file(path)
        if not migration.down:
            raise RuntimeError(f"Migration {filename} has no Down script")

        logger.info("Reverting migration: %s", filename)
        conn = self._connect()
        try:
            self._run(conn, filename, migration.down, "DELETE FROM _migrations WHERE filename = ?")
        finally:
            conn.close()
        return filename

    def _run(self, conn: sqlite3.Connection, filename: str, script: str, record_sql: str) -> None:
        # executescript commits any open transaction first, so the script and
        # its bookkeeping row are wrapped in one explicit transaction
        try:
            conn.executescript(f"BEGIN;\n{script}\n;")
            conn.execute(record_sql, (filename,))
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise RuntimeError(f"Migration {filename} failed: {e}") from e
