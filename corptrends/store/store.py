"""SQLite state store implementation."""

import json
import sqlite3
import threading
import time
import uuid
from collections.abc import Generator, Sequence
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import structlog

from corptrends.data_model.timestamps import from_db_timestamp, to_db_timestamp
from corptrends.store.errors import (
    ArticleWriteError,
    CompanyNotFoundError,
    ConnectionError as StoreConnectionError,
)
from corptrends.store.metrics import StoreMetrics, TransactionContext
from corptrends.store.migrations import CURRENT_VERSION, MigrationManager
from corptrends.store.models import (
    Article,
    ArticleEventType,
    Company,
    CompanyInfluenceScore,
    CompanyRanking,
    CompanyRankingHistory,
    UpsertResult,
)


logger = structlog.get_logger()

# Tables reported by get_stats
_STATS_TABLES = (
    "platforms",
    "companies",
    "articles",
    "company_influence_scores",
    "company_rankings",
    "company_ranking_history",
)

# Article fields whose change turns an upsert into an UPDATED event
_TRACKED_ARTICLE_FIELDS = (
    "title",
    "domain",
    "author",
    "author_name",
    "author_url",
    "organization",
    "organization_name",
    "organization_url",
    "published_at",
    "bookmark_count",
    "likes_count",
    "company_id",
)


def _dump_list(values: Sequence[str]) -> str:
    """Serialize a string list column."""
    return json.dumps(list(values), ensure_ascii=False)


def _load_list(value: str | None) -> list[str]:
    """Deserialize a string list column."""
    if not value:
        return []
    loaded = json.loads(value)
    return [str(v) for v in loaded] if isinstance(loaded, list) else []


def _optional_ts(value: datetime | None) -> str | None:
    """Serialize a nullable timestamp."""
    return to_db_timestamp(value) if value is not None else None


class StateStore:
    """SQLite store for companies, articles and derived ranking data.

    Uses WAL mode and schema migrations. One connection is shared by the
    threads of a process; a re-entrant lock serializes access to it, and
    every write runs inside ``_transaction`` so multi-statement writes
    commit or roll back as a unit.
    """

    def __init__(self, db_path: Path | str, run_id: str | None = None) -> None:
        """Initialize the state store.

        Args:
            db_path: Path to SQLite database file.
            run_id: Optional run ID for logging context.
        """
        self._db_path = Path(db_path) if isinstance(db_path, str) else db_path
        self._run_id = run_id or str(uuid.uuid4())
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.RLock()
        self._platform_ids: dict[str, int] = {}
        self._metrics = StoreMetrics.get_instance()
        self._log = logger.bind(
            component="store",
            run_id=self._run_id,
            db_path=str(self._db_path),
        )

    @property
    def db_path(self) -> Path:
        """Get the database path."""
        return self._db_path

    @property
    def run_id(self) -> str:
        """Get the current run ID."""
        return self._run_id

    @property
    def is_connected(self) -> bool:
        """Check if connected to database."""
        return self._conn is not None

    def connect(self) -> None:
        """Open the database and apply pending migrations.

        Creates the database file and parent directories if needed.
        """
        if self._conn is not None:
            return

        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._log.info("connecting_to_database")

        self._conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA synchronous=NORMAL")
        self._conn.execute("PRAGMA foreign_keys=ON")

        migration_mgr = MigrationManager(self._conn)
        old_version = migration_mgr.get_current_version()
        applied = migration_mgr.apply_migrations()

        self._log.info(
            "database_connected",
            old_version=old_version,
            new_version=CURRENT_VERSION,
            migrations_applied=applied,
        )

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            self._platform_ids.clear()
            self._log.info("database_closed")

    def __enter__(self) -> "StateStore":
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(
        self,
        exc_type: type | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Context manager exit."""
        self.close()

    def _ensure_connected(self) -> sqlite3.Connection:
        """Ensure database is connected.

        Returns:
            The database connection.

        Raises:
            StoreConnectionError: If not connected.
        """
        if self._conn is None:
            raise StoreConnectionError("Database not connected. Call connect() first.")
        return self._conn

    @contextmanager
    def _transaction(self, operation: str) -> Generator[TransactionContext]:
        """Run a block as one committed-or-rolled-back transaction.

        Args:
            operation: Name of the operation for logging.

        Yields:
            Transaction context collecting affected row counts.
        """
        with self._lock:
            conn = self._ensure_connected()
            tx_id = str(uuid.uuid4())[:8]
            start_ns = time.perf_counter_ns()
            ctx = TransactionContext(
                tx_id=tx_id, start_time_ns=start_ns, operation=operation
            )
            self._log.debug("transaction_started", tx_id=tx_id, op=operation)

            try:
                yield ctx
                conn.commit()
            except Exception:
                conn.rollback()
                self._metrics.record_tx_failure()
                self._log.error(
                    "transaction_failed",
                    tx_id=tx_id,
                    op=operation,
                    duration_ms=round(
                        (time.perf_counter_ns() - start_ns) / 1_000_000, 2
                    ),
                )
                raise

            duration_ms = (time.perf_counter_ns() - start_ns) / 1_000_000
            self._metrics.record_tx_duration(duration_ms)
            self._log.debug(
                "transaction_complete",
                tx_id=tx_id,
                op=operation,
                affected_rows=ctx.affected_rows,
                duration_ms=round(duration_ms, 2),
            )

    def _fetchall(self, sql: str, params: Sequence[Any] = ()) -> list[sqlite3.Row]:
        """Run a read query under the connection lock."""
        with self._lock:
            conn = self._ensure_connected()
            return conn.execute(sql, tuple(params)).fetchall()

    def _fetchone(self, sql: str, params: Sequence[Any] = ()) -> sqlite3.Row | None:
        """Run a single-row read query under the connection lock."""
        with self._lock:
            conn = self._ensure_connected()
            row: sqlite3.Row | None = conn.execute(sql, tuple(params)).fetchone()
            return row

    # ===== Companies =====

    def upsert_company(self, company: Company) -> Company:
        """Insert a company or update the one with the same domain.

        Args:
            company: Company to store (its id is ignored).

        Returns:
            The stored company with its id.
        """
        now = to_db_timestamp(datetime.now(UTC))
        values = (
            company.name,
            company.description,
            _dump_list(company.domain_patterns),
            _dump_list(company.url_patterns),
            _dump_list(company.keywords),
            company.qiita_username,
            company.zenn_username,
            _dump_list(company.zenn_organizations),
            1 if company.is_active else 0,
        )

        with self._transaction("upsert_company") as ctx:
            conn = self._ensure_connected()
            row = conn.execute(
                "SELECT id FROM companies WHERE domain = ?", (company.domain,)
            ).fetchone()
            if row is None:
                cursor = conn.execute(
                    """
                    INSERT INTO companies (
                        name, description, domain_patterns, url_patterns, keywords,
                        qiita_username, zenn_username, zenn_organizations, is_active,
                        domain, created_at, updated_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (*values, company.domain, now, now),
                )
                company_id = cursor.lastrowid
            else:
                company_id = row["id"]
                conn.execute(
                    """
                    UPDATE companies
                    SET name = ?, description = ?, domain_patterns = ?,
                        url_patterns = ?, keywords = ?, qiita_username = ?,
                        zenn_username = ?, zenn_organizations = ?, is_active = ?,
                        updated_at = ?
                    WHERE id = ?
                    """,
                    (*values, now, company_id),
                )
            ctx.add_affected_rows(1)

        return company.model_copy(update={"id": company_id})

    def get_company(self, company_id: int) -> Company | None:
        """Get a company by id."""
        row = self._fetchone("SELECT * FROM companies WHERE id = ?", (company_id,))
        return self._row_to_company(row) if row else None

    def list_companies(self, active_only: bool = True) -> list[Company]:
        """List companies ordered by id.

        Args:
            active_only: Only return companies with is_active set.

        Returns:
            List of companies.
        """
        sql = "SELECT * FROM companies"
        if active_only:
            sql += " WHERE is_active = 1"
        sql += " ORDER BY id"
        return [self._row_to_company(row) for row in self._fetchall(sql)]

    def set_company_active(self, company_id: int, is_active: bool) -> None:
        """Activate or deactivate a company.

        Raises:
            CompanyNotFoundError: If the company does not exist.
        """
        with self._transaction("set_company_active") as ctx:
            conn = self._ensure_connected()
            cursor = conn.execute(
                "UPDATE companies SET is_active = ?, updated_at = ? WHERE id = ?",
                (
                    1 if is_active else 0,
                    to_db_timestamp(datetime.now(UTC)),
                    company_id,
                ),
            )
            if cursor.rowcount == 0:
                raise CompanyNotFoundError(company_id)
            ctx.add_affected_rows(cursor.rowcount)

    def _row_to_company(self, row: sqlite3.Row) -> Company:
        """Convert a companies row."""
        return Company(
            id=row["id"],
            name=row["name"],
            domain=row["domain"],
            description=row["description"],
            domain_patterns=_load_list(row["domain_patterns"]),
            url_patterns=_load_list(row["url_patterns"]),
            keywords=_load_list(row["keywords"]),
            qiita_username=row["qiita_username"],
            zenn_username=row["zenn_username"],
            zenn_organizations=_load_list(row["zenn_organizations"]),
            is_active=bool(row["is_active"]),
        )

    # ===== Platforms =====

    def get_platform_id(self, tag: str) -> int | None:
        """Resolve a platform tag to its row id (cached per connection)."""
        if tag not in self._platform_ids:
            row = self._fetchone("SELECT id FROM platforms WHERE tag = ?", (tag,))
            if row is None:
                return None
            self._platform_ids[tag] = row["id"]
        return self._platform_ids[tag]

    # ===== Articles =====

    def upsert_article(self, article: Article) -> UpsertResult:
        """Insert an article or update the row with the same URL.

        The row keeps its id across upserts. A None company_id, a None
        published_at or a None engagement counter on the incoming article
        never clears a value already stored.

        Args:
            article: Article to store (its id is ignored).

        Returns:
            UpsertResult with the event type and the stored article.

        Raises:
            ArticleWriteError: If the database rejects the write.
        """
        now = to_db_timestamp(datetime.now(UTC))
        try:
            with self._transaction("upsert_article") as ctx:
                conn = self._ensure_connected()
                row = conn.execute(
                    "SELECT * FROM articles WHERE url = ?", (article.url,)
                ).fetchone()

                if row is None:
                    self._insert_article(conn, article, now)
                    event_type = ArticleEventType.NEW
                else:
                    existing = self._row_to_article(row)
                    event_type = self._update_article(conn, existing, article, now)
                ctx.add_affected_rows(1)

                stored_row = conn.execute(
                    "SELECT * FROM articles WHERE url = ?", (article.url,)
                ).fetchone()
        except sqlite3.Error as e:
            raise ArticleWriteError(article.url, str(e)) from e

        if event_type == ArticleEventType.NEW:
            self._metrics.record_new_article()
        elif event_type == ArticleEventType.UPDATED:
            self._metrics.record_updated_article()
        else:
            self._metrics.record_unchanged_article()

        return UpsertResult(
            event_type=event_type, article=self._row_to_article(stored_row)
        )

    def _insert_article(
        self, conn: sqlite3.Connection, article: Article, now: str
    ) -> None:
        """Insert a new articles row."""
        conn.execute(
            """
            INSERT INTO articles (
                url, title, domain, platform, platform_id, company_id,
                author, author_name, author_url, organization, organization_name,
                organization_url, published_at, bookmark_count, likes_count,
                scraped_at, deleted_at, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, NULL, ?, ?)
            """,
            (
                article.url,
                article.title,
                article.domain,
                article.platform,
                article.platform_id,
                article.company_id,
                article.author,
                article.author_name,
                article.author_url,
                article.organization,
                article.organization_name,
                article.organization_url,
                _optional_ts(article.published_at),
                article.bookmark_count,
                article.likes_count,
                to_db_timestamp(article.scraped_at),
                now,
                now,
            ),
        )

    def _update_article(
        self,
        conn: sqlite3.Connection,
        existing: Article,
        incoming: Article,
        now: str,
    ) -> ArticleEventType:
        """Merge an incoming article into its existing row.

        Returns:
            UPDATED if a tracked field changed, UNCHANGED otherwise.
        """
        merged = {
            "title": incoming.title,
            "domain": incoming.domain or existing.domain,
            "author": incoming.author or existing.author,
            "author_name": incoming.author_name or existing.author_name,
            "author_url": incoming.author_url or existing.author_url,
            "organization": incoming.organization or existing.organization,
            "organization_name": (
                incoming.organization_name or existing.organization_name
            ),
            "organization_url": incoming.organization_url or existing.organization_url,
            "published_at": incoming.published_at or existing.published_at,
            "bookmark_count": (
                incoming.bookmark_count
                if incoming.bookmark_count is not None
                else existing.bookmark_count
            ),
            "likes_count": (
                incoming.likes_count
                if incoming.likes_count is not None
                else existing.likes_count
            ),
            "company_id": (
                incoming.company_id
                if incoming.company_id is not None
                else existing.company_id
            ),
        }
        changed = any(
            merged[name] != getattr(existing, name) for name in _TRACKED_ARTICLE_FIELDS
        )

        conn.execute(
            """
            UPDATE articles
            SET title = ?, domain = ?, platform = ?,
                platform_id = COALESCE(?, platform_id), company_id = ?,
                author = ?, author_name = ?, author_url = ?, organization = ?,
                organization_name = ?, organization_url = ?, published_at = ?,
                bookmark_count = ?, likes_count = ?, scraped_at = ?, updated_at = ?
            WHERE id = ?
            """,
            (
                merged["title"],
                merged["domain"],
                incoming.platform,
                incoming.platform_id,
                merged["company_id"],
                merged["author"],
                merged["author_name"],
                merged["author_url"],
                merged["organization"],
                merged["organization_name"],
                merged["organization_url"],
                _optional_ts(merged["published_at"]),
                merged["bookmark_count"],
                merged["likes_count"],
                to_db_timestamp(incoming.scraped_at),
                now,
                existing.id,
            ),
        )
        return ArticleEventType.UPDATED if changed else ArticleEventType.UNCHANGED

    def get_article(self, url: str) -> Article | None:
        """Get an article by URL, including soft-deleted ones."""
        row = self._fetchone("SELECT * FROM articles WHERE url = ?", (url,))
        return self._row_to_article(row) if row else None

    def list_articles(
        self,
        company_id: int | None = None,
        unassigned_only: bool = False,
        include_deleted: bool = False,
    ) -> list[Article]:
        """List articles ordered by id.

        Args:
            company_id: Restrict to one company.
            unassigned_only: Only articles without a company.
            include_deleted: Include soft-deleted articles.

        Returns:
            List of articles.
        """
        clauses: list[str] = []
        params: list[Any] = []
        if company_id is not None:
            clauses.append("company_id = ?")
            params.append(company_id)
        if unassigned_only:
            clauses.append("company_id IS NULL")
        if not include_deleted:
            clauses.append("deleted_at IS NULL")

        sql = "SELECT * FROM articles"
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += " ORDER BY id"
        return [self._row_to_article(row) for row in self._fetchall(sql, params)]

    def assign_article_company(self, article_id: int, company_id: int) -> None:
        """Attribute a stored article to a company."""
        with self._transaction("assign_article_company") as ctx:
            conn = self._ensure_connected()
            cursor = conn.execute(
                "UPDATE articles SET company_id = ?, updated_at = ? WHERE id = ?",
                (company_id, to_db_timestamp(datetime.now(UTC)), article_id),
            )
            ctx.add_affected_rows(cursor.rowcount)

    def soft_delete_article(self, url: str, deleted_at: datetime | None = None) -> bool:
        """Exclude an article from scoring without removing the row.

        Returns:
            True if a non-deleted article was marked.
        """
        stamp = to_db_timestamp(deleted_at or datetime.now(UTC))
        with self._transaction("soft_delete_article") as ctx:
            conn = self._ensure_connected()
            cursor = conn.execute(
                """
                UPDATE articles SET deleted_at = ?, updated_at = ?
                WHERE url = ? AND deleted_at IS NULL
                """,
                (stamp, stamp, url),
            )
            ctx.add_affected_rows(cursor.rowcount)
            return cursor.rowcount > 0

    def get_company_articles_in_window(
        self, company_id: int, start: datetime, end: datetime
    ) -> list[Article]:
        """Select a company's scoring articles for a window.

        Articles with a published_at inside [start, end] qualify; articles
        without a published_at qualify when their scraped_at is inside the
        window. Soft-deleted articles never qualify.

        Args:
            company_id: Company id.
            start: Window start (inclusive).
            end: Window end (inclusive).

        Returns:
            Qualifying articles ordered by id.
        """
        start_ts = to_db_timestamp(start)
        end_ts = to_db_timestamp(end)
        rows = self._fetchall(
            """
            SELECT * FROM articles
            WHERE company_id = ?
              AND deleted_at IS NULL
              AND (
                  (published_at IS NOT NULL AND published_at BETWEEN ? AND ?)
                  OR (published_at IS NULL AND scraped_at BETWEEN ? AND ?)
              )
            ORDER BY id
            """,
            (company_id, start_ts, end_ts, start_ts, end_ts),
        )
        return [self._row_to_article(row) for row in rows]

    def _row_to_article(self, row: sqlite3.Row) -> Article:
        """Convert an articles row."""
        return Article(
            id=row["id"],
            url=row["url"],
            title=row["title"],
            domain=row["domain"],
            platform=row["platform"],
            platform_id=row["platform_id"],
            company_id=row["company_id"],
            author=row["author"],
            author_name=row["author_name"],
            author_url=row["author_url"],
            organization=row["organization"],
            organization_name=row["organization_name"],
            organization_url=row["organization_url"],
            published_at=from_db_timestamp(row["published_at"]),
            bookmark_count=row["bookmark_count"],
            likes_count=row["likes_count"],
            scraped_at=from_db_timestamp(row["scraped_at"]),
            deleted_at=from_db_timestamp(row["deleted_at"]),
        )

    # ===== Influence scores =====

    def insert_influence_score(
        self, score: CompanyInfluenceScore
    ) -> CompanyInfluenceScore:
        """Append an influence-score snapshot.

        Returns:
            The stored snapshot with its id.
        """
        with self._transaction("insert_influence_score") as ctx:
            conn = self._ensure_connected()
            cursor = conn.execute(
                """
                INSERT INTO company_influence_scores (
                    company_id, period_type, period_start, period_end,
                    total_score, article_count, total_bookmarks, calculated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    score.company_id,
                    score.period_type,
                    to_db_timestamp(score.period_start),
                    to_db_timestamp(score.period_end),
                    score.total_score,
                    score.article_count,
                    score.total_bookmarks,
                    to_db_timestamp(score.calculated_at),
                ),
            )
            ctx.add_affected_rows(1)
        return score.model_copy(update={"id": cursor.lastrowid})

    def get_latest_influence_score(
        self, company_id: int, period_type: str
    ) -> CompanyInfluenceScore | None:
        """Get the snapshot with the greatest calculated_at."""
        row = self._fetchone(
            """
            SELECT * FROM company_influence_scores
            WHERE company_id = ? AND period_type = ?
            ORDER BY calculated_at DESC, id DESC
            LIMIT 1
            """,
            (company_id, period_type),
        )
        return self._row_to_score(row) if row else None

    def list_influence_scores(
        self,
        company_id: int,
        period_type: str | None = None,
        limit: int | None = None,
    ) -> list[CompanyInfluenceScore]:
        """List a company's snapshots, most recent first."""
        sql = "SELECT * FROM company_influence_scores WHERE company_id = ?"
        params: list[Any] = [company_id]
        if period_type is not None:
            sql += " AND period_type = ?"
            params.append(period_type)
        sql += " ORDER BY calculated_at DESC, id DESC"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)
        return [self._row_to_score(row) for row in self._fetchall(sql, params)]

    def _row_to_score(self, row: sqlite3.Row) -> CompanyInfluenceScore:
        """Convert a company_influence_scores row."""
        return CompanyInfluenceScore(
            id=row["id"],
            company_id=row["company_id"],
            period_type=row["period_type"],
            period_start=from_db_timestamp(row["period_start"]),
            period_end=from_db_timestamp(row["period_end"]),
            total_score=row["total_score"],
            article_count=row["article_count"],
            total_bookmarks=row["total_bookmarks"],
            calculated_at=from_db_timestamp(row["calculated_at"]),
        )

    # ===== Rankings =====

    def replace_rankings(
        self,
        ranking_period: str,
        period_start: datetime,
        period_end: datetime,
        rankings: Sequence[CompanyRanking],
    ) -> int:
        """Swap the ranking set of one period window in a single transaction.

        Rows with the same (ranking_period, period_start, period_end) are
        deleted and the new rows inserted; readers never observe a partial
        set, and a failed insert leaves the previous set in place.

        Args:
            ranking_period: Period value, e.g. '1m'.
            period_start: Window start.
            period_end: Window end.
            rankings: New ranking rows.

        Returns:
            Number of rows inserted.
        """
        start_ts = to_db_timestamp(period_start)
        end_ts = to_db_timestamp(period_end)

        with self._transaction("replace_rankings") as ctx:
            conn = self._ensure_connected()
            cursor = conn.execute(
                """
                DELETE FROM company_rankings
                WHERE ranking_period = ? AND period_start = ? AND period_end = ?
                """,
                (ranking_period, start_ts, end_ts),
            )
            ctx.add_affected_rows(cursor.rowcount)
            conn.executemany(
                """
                INSERT INTO company_rankings (
                    company_id, ranking_period, rank_position, total_score,
                    article_count, total_bookmarks, period_start, period_end,
                    calculated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        r.company_id,
                        ranking_period,
                        r.rank_position,
                        r.total_score,
                        r.article_count,
                        r.total_bookmarks,
                        start_ts,
                        end_ts,
                        to_db_timestamp(r.calculated_at),
                    )
                    for r in rankings
                ],
            )
            ctx.add_affected_rows(len(rankings))

        self._metrics.record_rankings_replaced(len(rankings))
        return len(rankings)

    def get_latest_ranking_calculated_at(self, ranking_period: str) -> datetime | None:
        """Get the calculated_at of the newest ranking set for a period."""
        row = self._fetchone(
            "SELECT MAX(calculated_at) AS ts FROM company_rankings "
            "WHERE ranking_period = ?",
            (ranking_period,),
        )
        return from_db_timestamp(row["ts"]) if row else None

    def get_previous_ranking_calculated_at(
        self, ranking_period: str, before: datetime
    ) -> datetime | None:
        """Get the newest ranking calculated_at strictly older than ``before``."""
        row = self._fetchone(
            """
            SELECT MAX(calculated_at) AS ts FROM company_rankings
            WHERE ranking_period = ? AND calculated_at < ?
            """,
            (ranking_period, to_db_timestamp(before)),
        )
        return from_db_timestamp(row["ts"]) if row else None

    def list_rankings(
        self,
        ranking_period: str,
        calculated_at: datetime,
        active_only: bool = False,
        limit: int | None = None,
    ) -> list[CompanyRanking]:
        """List a ranking snapshot joined with company name and domain.

        Args:
            ranking_period: Period value.
            calculated_at: Snapshot timestamp.
            active_only: Exclude inactive companies.
            limit: Maximum rows.

        Returns:
            Rows ordered by rank_position, then company id.
        """
        sql = """
            SELECT r.*, c.name AS company_name, c.domain AS company_domain
            FROM company_rankings r
            JOIN companies c ON c.id = r.company_id
            WHERE r.ranking_period = ? AND r.calculated_at = ?
        """
        params: list[Any] = [ranking_period, to_db_timestamp(calculated_at)]
        if active_only:
            sql += " AND c.is_active = 1"
        sql += " ORDER BY r.rank_position, r.company_id"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)
        return [self._row_to_ranking(row) for row in self._fetchall(sql, params)]

    def get_company_latest_ranking(
        self, company_id: int, ranking_period: str
    ) -> CompanyRanking | None:
        """Get a company's row from its newest ranking for a period."""
        row = self._fetchone(
            """
            SELECT r.*, c.name AS company_name, c.domain AS company_domain
            FROM company_rankings r
            JOIN companies c ON c.id = r.company_id
            WHERE r.company_id = ? AND r.ranking_period = ?
            ORDER BY r.calculated_at DESC, r.id DESC
            LIMIT 1
            """,
            (company_id, ranking_period),
        )
        return self._row_to_ranking(row) if row else None

    def get_ranking_aggregates(
        self, ranking_period: str, calculated_at: datetime
    ) -> dict[str, float | int | None]:
        """Aggregate one ranking snapshot.

        Returns:
            Dict with total_companies, average_score, max_score, min_score,
            total_articles and total_bookmarks.
        """
        row = self._fetchone(
            """
            SELECT COUNT(*) AS total_companies,
                   AVG(total_score) AS average_score,
                   MAX(total_score) AS max_score,
                   MIN(total_score) AS min_score,
                   COALESCE(SUM(article_count), 0) AS total_articles,
                   COALESCE(SUM(total_bookmarks), 0) AS total_bookmarks
            FROM company_rankings
            WHERE ranking_period = ? AND calculated_at = ?
            """,
            (ranking_period, to_db_timestamp(calculated_at)),
        )
        return dict(row) if row else {}

    def list_top_rankings_between(
        self, max_rank: int, since: datetime, until: datetime
    ) -> list[CompanyRanking]:
        """List ranking rows within ``max_rank`` calculated in [since, until].

        Only active companies are returned, newest calculation first.
        """
        rows = self._fetchall(
            """
            SELECT r.*, c.name AS company_name, c.domain AS company_domain
            FROM company_rankings r
            JOIN companies c ON c.id = r.company_id
            WHERE r.rank_position <= ?
              AND r.calculated_at BETWEEN ? AND ?
              AND c.is_active = 1
            ORDER BY r.calculated_at DESC, r.rank_position, r.company_id
            """,
            (max_rank, to_db_timestamp(since), to_db_timestamp(until)),
        )
        return [self._row_to_ranking(row) for row in rows]

    def _row_to_ranking(self, row: sqlite3.Row) -> CompanyRanking:
        """Convert a company_rankings row (optionally joined)."""
        keys = row.keys()
        return CompanyRanking(
            id=row["id"],
            company_id=row["company_id"],
            ranking_period=row["ranking_period"],
            rank_position=row["rank_position"],
            total_score=row["total_score"],
            article_count=row["article_count"],
            total_bookmarks=row["total_bookmarks"],
            period_start=from_db_timestamp(row["period_start"]),
            period_end=from_db_timestamp(row["period_end"]),
            calculated_at=from_db_timestamp(row["calculated_at"]),
            company_name=row["company_name"] if "company_name" in keys else None,
            company_domain=row["company_domain"] if "company_domain" in keys else None,
        )

    # ===== Ranking history =====

    def save_ranking_history(self, rows: Sequence[CompanyRankingHistory]) -> int:
        """Append history rows.

        Re-recording the same (company, period_type, calculated_at)
        overwrites that row.

        Returns:
            Number of rows written.
        """
        with self._transaction("save_ranking_history") as ctx:
            conn = self._ensure_connected()
            conn.executemany(
                """
                INSERT INTO company_ranking_history (
                    company_id, period_type, current_rank, previous_rank,
                    rank_change, calculated_at
                ) VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT (company_id, period_type, calculated_at) DO UPDATE SET
                    current_rank = excluded.current_rank,
                    previous_rank = excluded.previous_rank,
                    rank_change = excluded.rank_change
                """,
                [
                    (
                        h.company_id,
                        h.period_type,
                        h.current_rank,
                        h.previous_rank,
                        h.rank_change,
                        to_db_timestamp(h.calculated_at),
                    )
                    for h in rows
                ],
            )
            ctx.add_affected_rows(len(rows))
        return len(rows)

    def list_company_history(
        self, company_id: int, period_type: str, since: datetime
    ) -> list[CompanyRankingHistory]:
        """List a company's history rows newer than ``since``, newest first."""
        rows = self._fetchall(
            """
            SELECT h.*, c.name AS company_name, c.domain AS company_domain
            FROM company_ranking_history h
            JOIN companies c ON c.id = h.company_id
            WHERE h.company_id = ? AND h.period_type = ? AND h.calculated_at >= ?
            ORDER BY h.calculated_at DESC, h.id DESC
            """,
            (company_id, period_type, to_db_timestamp(since)),
        )
        return [self._row_to_history(row) for row in rows]

    def get_latest_history_calculated_at(self, period_type: str) -> datetime | None:
        """Get the calculated_at of the newest history snapshot for a period."""
        row = self._fetchone(
            "SELECT MAX(calculated_at) AS ts FROM company_ranking_history "
            "WHERE period_type = ?",
            (period_type,),
        )
        return from_db_timestamp(row["ts"]) if row else None

    def list_history_snapshot(
        self,
        period_type: str,
        calculated_at: datetime,
        active_only: bool = True,
    ) -> list[CompanyRankingHistory]:
        """List the history rows of one snapshot joined with company data."""
        sql = """
            SELECT h.*, c.name AS company_name, c.domain AS company_domain
            FROM company_ranking_history h
            JOIN companies c ON c.id = h.company_id
            WHERE h.period_type = ? AND h.calculated_at = ?
        """
        if active_only:
            sql += " AND c.is_active = 1"
        sql += " ORDER BY h.company_id"
        rows = self._fetchall(sql, (period_type, to_db_timestamp(calculated_at)))
        return [self._row_to_history(row) for row in rows]

    def delete_history_before(self, cutoff: datetime) -> int:
        """Delete history rows with calculated_at older than ``cutoff``.

        Returns:
            Number of rows deleted.
        """
        with self._transaction("delete_history_before") as ctx:
            conn = self._ensure_connected()
            cursor = conn.execute(
                "DELETE FROM company_ranking_history WHERE calculated_at < ?",
                (to_db_timestamp(cutoff),),
            )
            deleted = cursor.rowcount
            ctx.add_affected_rows(deleted)

        self._metrics.record_history_purged(deleted)
        return deleted

    def get_history_storage_stats(self) -> dict[str, Any]:
        """Summarize the history table.

        Returns:
            Dict with total_records, oldest_record, newest_record and
            records_by_period.
        """
        totals = self._fetchone(
            """
            SELECT COUNT(*) AS total, MIN(calculated_at) AS oldest,
                   MAX(calculated_at) AS newest
            FROM company_ranking_history
            """
        )
        by_period = self._fetchall(
            """
            SELECT period_type, COUNT(*) AS count
            FROM company_ranking_history
            GROUP BY period_type
            ORDER BY period_type
            """
        )
        return {
            "total_records": totals["total"] if totals else 0,
            "oldest_record": from_db_timestamp(totals["oldest"]) if totals else None,
            "newest_record": from_db_timestamp(totals["newest"]) if totals else None,
            "records_by_period": {
                row["period_type"]: row["count"] for row in by_period
            },
        }

    def _row_to_history(self, row: sqlite3.Row) -> CompanyRankingHistory:
        """Convert a company_ranking_history row (optionally joined)."""
        keys = row.keys()
        return CompanyRankingHistory(
            id=row["id"],
            company_id=row["company_id"],
            period_type=row["period_type"],
            current_rank=row["current_rank"],
            previous_rank=row["previous_rank"],
            rank_change=row["rank_change"],
            calculated_at=from_db_timestamp(row["calculated_at"]),
            company_name=row["company_name"] if "company_name" in keys else None,
            company_domain=row["company_domain"] if "company_domain" in keys else None,
        )

    # ===== Statistics =====

    def get_schema_version(self) -> int:
        """Get the applied schema version."""
        with self._lock:
            return MigrationManager(self._ensure_connected()).get_current_version()

    def get_stats(self) -> dict[str, int]:
        """Get row counts per table."""
        stats: dict[str, int] = {}
        for table in _STATS_TABLES:
            row = self._fetchone(f"SELECT COUNT(*) AS count FROM {table}")  # noqa: S608
            stats[table] = row["count"] if row else 0
        return stats
