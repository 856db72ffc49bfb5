"""SQLite schema migrations for the state store."""

import sqlite3
from dataclasses import dataclass
from datetime import UTC, datetime

import structlog

from corptrends.store.errors import MigrationError


logger = structlog.get_logger()


@dataclass(frozen=True)
class Migration:
    """A database migration.

    Attributes:
        version: Target version after applying this migration.
        description: Human-readable description.
        up_sql: SQL to apply the migration.
        down_sql: SQL to rollback the migration.
    """

    version: int
    description: str
    up_sql: str
    down_sql: str


# All migrations in order
MIGRATIONS: list[Migration] = [
    Migration(
        version=1,
        description="Platforms, companies and articles",
        up_sql="""
CREATE TABLE IF NOT EXISTS platforms (
    id INTEGER PRIMARY KEY,
    tag TEXT NOT NULL UNIQUE,
    name TEXT NOT NULL,
    base_url TEXT NOT NULL,
    is_active INTEGER NOT NULL DEFAULT 1
);
INSERT OR IGNORE INTO platforms (id, tag, name, base_url) VALUES
    (1, 'qiita', 'Qiita', 'https://qiita.com'),
    (2, 'zenn', 'Zenn', 'https://zenn.dev'),
    (3, 'hatena', 'はてなブックマーク', 'https://b.hatena.ne.jp');

CREATE TABLE IF NOT EXISTS companies (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    domain TEXT NOT NULL UNIQUE,
    description TEXT,
    domain_patterns TEXT NOT NULL DEFAULT '[]',
    url_patterns TEXT NOT NULL DEFAULT '[]',
    keywords TEXT NOT NULL DEFAULT '[]',
    qiita_username TEXT,
    zenn_username TEXT,
    zenn_organizations TEXT NOT NULL DEFAULT '[]',
    is_active INTEGER NOT NULL DEFAULT 1,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_companies_is_active ON companies(is_active);

CREATE TABLE IF NOT EXISTS articles (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    url TEXT NOT NULL UNIQUE,
    title TEXT NOT NULL,
    domain TEXT,
    platform TEXT NOT NULL,
    platform_id INTEGER REFERENCES platforms(id),
    company_id INTEGER REFERENCES companies(id) ON DELETE SET NULL,
    author TEXT,
    author_name TEXT,
    author_url TEXT,
    published_at TEXT,
    bookmark_count INTEGER,
    likes_count INTEGER,
    scraped_at TEXT NOT NULL,
    deleted_at TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_articles_company_id ON articles(company_id);
CREATE INDEX IF NOT EXISTS idx_articles_published_at ON articles(published_at);
CREATE INDEX IF NOT EXISTS idx_articles_scraped_at ON articles(scraped_at);
""",
        down_sql="""
DROP INDEX IF EXISTS idx_articles_scraped_at;
DROP INDEX IF EXISTS idx_articles_published_at;
DROP INDEX IF EXISTS idx_articles_company_id;
DROP TABLE IF EXISTS articles;
DROP INDEX IF EXISTS idx_companies_is_active;
DROP TABLE IF EXISTS companies;
DROP TABLE IF EXISTS platforms;
""",
    ),
    Migration(
        version=2,
        description="Influence scores, rankings and ranking history",
        up_sql="""
CREATE TABLE IF NOT EXISTS company_influence_scores (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    company_id INTEGER NOT NULL REFERENCES companies(id) ON DELETE CASCADE,
    period_type TEXT NOT NULL,
    period_start TEXT NOT NULL,
    period_end TEXT NOT NULL,
    total_score REAL NOT NULL,
    article_count INTEGER NOT NULL DEFAULT 0,
    total_bookmarks INTEGER NOT NULL DEFAULT 0,
    calculated_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_scores_company_period
    ON company_influence_scores(company_id, period_type, calculated_at);

CREATE TABLE IF NOT EXISTS company_rankings (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    company_id INTEGER NOT NULL REFERENCES companies(id) ON DELETE CASCADE,
    ranking_period TEXT NOT NULL,
    rank_position INTEGER NOT NULL,
    total_score REAL NOT NULL,
    article_count INTEGER NOT NULL DEFAULT 0,
    total_bookmarks INTEGER NOT NULL DEFAULT 0,
    period_start TEXT NOT NULL,
    period_end TEXT NOT NULL,
    calculated_at TEXT NOT NULL,
    UNIQUE (company_id, ranking_period, period_start, period_end)
);
CREATE INDEX IF NOT EXISTS idx_rankings_period_calculated
    ON company_rankings(ranking_period, calculated_at);

CREATE TABLE IF NOT EXISTS company_ranking_history (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    company_id INTEGER NOT NULL REFERENCES companies(id) ON DELETE CASCADE,
    period_type TEXT NOT NULL,
    current_rank INTEGER NOT NULL,
    previous_rank INTEGER,
    rank_change INTEGER NOT NULL,
    calculated_at TEXT NOT NULL,
    UNIQUE (company_id, period_type, calculated_at)
);
CREATE INDEX IF NOT EXISTS idx_history_period_calculated
    ON company_ranking_history(period_type, calculated_at);
""",
        down_sql="""
DROP INDEX IF EXISTS idx_history_period_calculated;
DROP TABLE IF EXISTS company_ranking_history;
DROP INDEX IF EXISTS idx_rankings_period_calculated;
DROP TABLE IF EXISTS company_rankings;
DROP INDEX IF EXISTS idx_scores_company_period;
DROP TABLE IF EXISTS company_influence_scores;
""",
    ),
    Migration(
        version=3,
        description="Article organization columns",
        up_sql="""
ALTER TABLE articles ADD COLUMN organization TEXT;
ALTER TABLE articles ADD COLUMN organization_name TEXT;
ALTER TABLE articles ADD COLUMN organization_url TEXT;
""",
        down_sql="""
ALTER TABLE articles DROP COLUMN organization_url;
ALTER TABLE articles DROP COLUMN organization_name;
ALTER TABLE articles DROP COLUMN organization;
""",
    ),
]

CURRENT_VERSION = MIGRATIONS[-1].version


def get_migrations_to_apply(current_version: int) -> list[Migration]:
    """Get migrations that need to be applied.

    Args:
        current_version: The current schema version.

    Returns:
        List of migrations to apply in order.
    """
    return [m for m in MIGRATIONS if m.version > current_version]


class MigrationManager:
    """Applies and rolls back the versioned schema."""

    VERSION_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    applied_at TEXT NOT NULL,
    description TEXT
);
"""

    def __init__(self, connection: sqlite3.Connection) -> None:
        """Initialize the migration manager.

        Args:
            connection: SQLite connection to manage.
        """
        self._conn = connection
        self._log = logger.bind(component="store", operation="migration")

    def ensure_version_table(self) -> None:
        """Ensure the schema_version table exists."""
        self._conn.execute(self.VERSION_TABLE_SQL)
        self._conn.commit()

    def get_current_version(self) -> int:
        """Get the current schema version.

        Returns:
            Current version number, or 0 if no migrations applied.
        """
        self.ensure_version_table()
        row = self._conn.execute("SELECT MAX(version) FROM schema_version").fetchone()
        return row[0] if row[0] is not None else 0

    def apply_migrations(self) -> list[int]:
        """Apply all pending migrations.

        Returns:
            List of version numbers that were applied.

        Raises:
            MigrationError: If a migration script fails.
        """
        pending = get_migrations_to_apply(self.get_current_version())
        applied: list[int] = []

        for migration in pending:
            self._log.info(
                "applying_migration",
                version=migration.version,
                description=migration.description,
            )
            try:
                self._conn.executescript(migration.up_sql)
                self._conn.execute(
                    """
                    INSERT INTO schema_version (version, applied_at, description)
                    VALUES (?, ?, ?)
                    """,
                    (
                        migration.version,
                        datetime.now(UTC).isoformat(),
                        migration.description,
                    ),
                )
                self._conn.commit()
            except sqlite3.Error as e:
                self._conn.rollback()
                self._log.error(
                    "migration_failed", version=migration.version, error=str(e)
                )
                raise MigrationError(migration.version, str(e)) from e
            applied.append(migration.version)

        return applied

    def rollback_to(self, target_version: int) -> list[int]:
        """Roll back applied migrations down to ``target_version``.

        Args:
            target_version: The version to end at (0 drops everything).

        Returns:
            Versions that were rolled back, newest first.

        Raises:
            ValueError: If target version is negative.
            MigrationError: If a rollback script fails.
        """
        if target_version < 0:
            msg = f"Invalid target version: {target_version}"
            raise ValueError(msg)

        current = self.get_current_version()
        to_revert = [
            m for m in reversed(MIGRATIONS) if target_version < m.version <= current
        ]
        rolled_back: list[int] = []

        for migration in to_revert:
            self._log.info("rolling_back_migration", version=migration.version)
            try:
                self._conn.executescript(migration.down_sql)
                self._conn.execute(
                    "DELETE FROM schema_version WHERE version = ?",
                    (migration.version,),
                )
                self._conn.commit()
            except sqlite3.Error as e:
                self._conn.rollback()
                self._log.error(
                    "rollback_failed", version=migration.version, error=str(e)
                )
                raise MigrationError(migration.version, str(e)) from e
            rolled_back.append(migration.version)

        return rolled_back
