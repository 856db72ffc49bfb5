"""Integration tests for the state store."""

import sqlite3
import tempfile
from collections.abc import Generator
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from corptrends.store.errors import ConnectionError as StoreConnectionError
from corptrends.store.metrics import StoreMetrics
from corptrends.store.migrations import CURRENT_VERSION
from corptrends.store.models import (
    Article,
    ArticleEventType,
    Company,
    CompanyInfluenceScore,
    CompanyRanking,
    CompanyRankingHistory,
)
from corptrends.store.store import StateStore
from tests.helpers.store import add_article, seed_companies
from tests.helpers.time import FIXED_NOW


@pytest.fixture
def temp_db_path() -> Generator[Path]:
    """Create a temporary database path."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir) / "test_state.sqlite"


@pytest.fixture
def store(temp_db_path: Path) -> Generator[StateStore]:
    """Create a connected state store."""
    StoreMetrics.reset()
    store = StateStore(temp_db_path, run_id="test-run-001")
    store.connect()
    yield store
    store.close()
    StoreMetrics.reset()


def make_article(url: str, **kwargs: object) -> Article:
    """Build a Qiita article with a fixed scrape time."""
    fields: dict[str, object] = {
        "title": "Original title",
        "platform": "qiita",
        "scraped_at": FIXED_NOW,
    }
    fields.update(kwargs)
    return Article(url=url, **fields)  # type: ignore[arg-type]


def ranking(company: Company, rank: int, calculated_at: datetime) -> CompanyRanking:
    """Build a 1w ranking row for the FIXED_NOW window."""
    assert company.id is not None
    return CompanyRanking(
        company_id=company.id,
        ranking_period="1w",
        rank_position=rank,
        total_score=10.0 / rank,
        article_count=rank,
        total_bookmarks=0,
        period_start=FIXED_NOW - timedelta(days=7),
        period_end=FIXED_NOW,
        calculated_at=calculated_at,
    )


class TestStateStoreConnection:
    """Tests for store connection and setup."""

    def test_connect_creates_database(self, temp_db_path: Path) -> None:
        """Test connecting creates the database file."""
        store = StateStore(temp_db_path)
        assert not temp_db_path.exists()

        store.connect()
        assert temp_db_path.exists()
        store.close()

    def test_connect_creates_parent_dirs(self, temp_db_path: Path) -> None:
        """Test connecting creates parent directories."""
        nested_path = temp_db_path.parent / "subdir" / "state.sqlite"
        store = StateStore(nested_path)
        store.connect()
        assert nested_path.exists()
        store.close()

    def test_context_manager(self, temp_db_path: Path) -> None:
        """Test store works as context manager."""
        with StateStore(temp_db_path) as store:
            assert store.is_connected
            assert store.get_schema_version() == CURRENT_VERSION

        assert not store.is_connected

    def test_reconnect_keeps_data(self, temp_db_path: Path) -> None:
        """Test migrations are not reapplied over existing data."""
        with StateStore(temp_db_path) as store:
            seed_companies(store, "Acme")

        with StateStore(temp_db_path) as store:
            assert store.get_schema_version() == CURRENT_VERSION
            assert [c.name for c in store.list_companies()] == ["Acme"]

    def test_not_connected(self, temp_db_path: Path) -> None:
        """Test operations fail before connect."""
        with pytest.raises(StoreConnectionError):
            StateStore(temp_db_path).list_companies()

    def test_foreign_keys_enabled(self, store: StateStore) -> None:
        """Test foreign key enforcement is on."""
        conn = store._ensure_connected()
        assert conn.execute("PRAGMA foreign_keys").fetchone()[0] == 1

    def test_platforms_seeded(self, store: StateStore) -> None:
        """Test the three platforms exist after migration."""
        assert store.get_platform_id("qiita") == 1
        assert store.get_platform_id("zenn") == 2
        assert store.get_platform_id("hatena") == 3
        assert store.get_platform_id("note") is None


class TestCompanies:
    """Tests for company storage."""

    def test_upsert_by_domain(self, store: StateStore) -> None:
        """Test a second upsert with the same domain updates the row."""
        first = store.upsert_company(
            Company(name="Acme", domain="acme.example", keywords=["Acme"])
        )
        second = store.upsert_company(
            Company(
                name="Acme Corp",
                domain="acme.example",
                keywords=["Acme", "ACME"],
                zenn_organizations=["acme"],
            )
        )

        assert first.id == second.id
        stored = store.get_company(second.id or 0)
        assert stored is not None
        assert stored.name == "Acme Corp"
        assert stored.keywords == ["Acme", "ACME"]
        assert stored.zenn_organizations == ["acme"]
        assert store.get_stats()["companies"] == 1

    def test_list_active_only(self, store: StateStore) -> None:
        """Test inactive companies are hidden by default."""
        acme, globex = seed_companies(store, "Acme", "Globex")
        store.set_company_active(globex.id or 0, False)

        assert [c.name for c in store.list_companies()] == ["Acme"]
        assert len(store.list_companies(active_only=False)) == 2
        assert store.get_company(acme.id or 0) is not None
        assert store.get_company(999) is None


class TestArticleUpsert:
    """Tests for article upsert semantics."""

    def test_new_then_unchanged(self, store: StateStore) -> None:
        """Test the same article twice is NEW then UNCHANGED."""
        first = store.upsert_article(make_article("https://qiita.com/a/items/1"))
        second = store.upsert_article(make_article("https://qiita.com/a/items/1"))

        assert first.event_type == ArticleEventType.NEW
        assert second.event_type == ArticleEventType.UNCHANGED
        assert first.article.id == second.article.id
        metrics = StoreMetrics.get_instance()
        assert metrics.articles_new_total == 1
        assert metrics.articles_unchanged_total == 1
        assert metrics.to_dict()["articles_new_total"] == 1

    def test_changed_title_is_updated(self, store: StateStore) -> None:
        """Test a changed tracked field gives UPDATED."""
        url = "https://qiita.com/a/items/1"
        store.upsert_article(make_article(url, likes_count=3))

        result = store.upsert_article(
            make_article(url, title="New title", likes_count=9)
        )

        assert result.event_type == ArticleEventType.UPDATED
        assert result.article.title == "New title"
        assert result.article.likes_count == 9
        assert StoreMetrics.get_instance().articles_updated_total == 1

    def test_none_does_not_clear_values(self, store: StateStore) -> None:
        """Test None fields on a rescrape keep the stored values."""
        (acme,) = seed_companies(store, "Acme")
        url = "https://qiita.com/a/items/1"
        published = datetime(2024, 6, 1, tzinfo=UTC)
        store.upsert_article(
            make_article(
                url,
                company_id=acme.id,
                published_at=published,
                likes_count=5,
                author="alice",
            )
        )

        result = store.upsert_article(make_article(url))

        assert result.event_type == ArticleEventType.UNCHANGED
        assert result.article.company_id == acme.id
        assert result.article.published_at == published
        assert result.article.likes_count == 5
        assert result.article.author == "alice"

    def test_organization_round_trip(self, store: StateStore) -> None:
        """Test organization columns are stored, kept and updated."""
        url = "https://qiita.com/a/items/2"
        first = store.upsert_article(
            make_article(
                url,
                organization="initech",
                organization_name="Initech",
                organization_url="https://qiita.com/organizations/initech",
            )
        )

        kept = store.upsert_article(make_article(url))
        renamed = store.upsert_article(
            make_article(url, organization_name="Initech Corp")
        )

        assert first.event_type == ArticleEventType.NEW
        assert first.article.organization == "initech"
        assert kept.event_type == ArticleEventType.UNCHANGED
        assert kept.article.organization_url == (
            "https://qiita.com/organizations/initech"
        )
        assert renamed.event_type == ArticleEventType.UPDATED
        assert renamed.article.organization_name == "Initech Corp"
        assert renamed.article.organization == "initech"

    def test_timestamps_round_trip_as_utc(self, store: StateStore) -> None:
        """Test stored datetimes come back timezone-aware."""
        url = "https://zenn.dev/a/articles/1"
        store.upsert_article(
            make_article(url, platform="zenn", published_at=datetime(2024, 6, 1, 9))
        )

        article = store.get_article(url)

        assert article is not None
        assert article.published_at == datetime(2024, 6, 1, 9, tzinfo=UTC)
        assert article.scraped_at == FIXED_NOW

    def test_list_and_assign(self, store: StateStore) -> None:
        """Test unassigned listing and company assignment."""
        (acme,) = seed_companies(store, "Acme")
        stored = store.upsert_article(make_article("https://a.example/1")).article
        store.upsert_article(make_article("https://a.example/2", company_id=acme.id))

        unassigned = store.list_articles(unassigned_only=True)
        assert [a.url for a in unassigned] == ["https://a.example/1"]

        store.assign_article_company(stored.id or 0, acme.id or 0)

        assert store.list_articles(unassigned_only=True) == []
        assert len(store.list_articles(company_id=acme.id)) == 2

    def test_soft_delete(self, store: StateStore) -> None:
        """Test soft deletion hides the article from listings only."""
        url = "https://a.example/1"
        store.upsert_article(make_article(url))

        assert store.soft_delete_article(url, deleted_at=FIXED_NOW)
        assert not store.soft_delete_article(url)

        assert store.list_articles() == []
        assert len(store.list_articles(include_deleted=True)) == 1
        article = store.get_article(url)
        assert article is not None
        assert article.is_deleted
        assert article.deleted_at == FIXED_NOW


class TestScoringWindow:
    """Tests for get_company_articles_in_window."""

    def test_window_selection(self, store: StateStore) -> None:
        """Test published, undated and deleted articles in a window."""
        (acme,) = seed_companies(store, "Acme")
        start = FIXED_NOW - timedelta(days=7)
        add_article(store, acme, "https://a.example/in", published_at=FIXED_NOW)
        add_article(
            store,
            acme,
            "https://a.example/old",
            published_at=start - timedelta(seconds=1),
        )
        add_article(store, acme, "https://a.example/undated")
        add_article(
            store,
            acme,
            "https://a.example/undated-old",
            scraped_at=start - timedelta(days=1),
        )
        add_article(store, acme, "https://a.example/gone", published_at=FIXED_NOW)
        store.soft_delete_article("https://a.example/gone")

        articles = store.get_company_articles_in_window(acme.id or 0, start, FIXED_NOW)

        assert [a.url for a in articles] == [
            "https://a.example/in",
            "https://a.example/undated",
        ]

    def test_bounds_are_inclusive(self, store: StateStore) -> None:
        """Test articles exactly on the window bounds qualify."""
        (acme,) = seed_companies(store, "Acme")
        start = FIXED_NOW - timedelta(days=7)
        add_article(store, acme, "https://a.example/start", published_at=start)
        add_article(store, acme, "https://a.example/end", published_at=FIXED_NOW)

        articles = store.get_company_articles_in_window(acme.id or 0, start, FIXED_NOW)

        assert len(articles) == 2


class TestInfluenceScores:
    """Tests for influence-score snapshots."""

    def test_snapshots_are_appended(self, store: StateStore) -> None:
        """Test snapshots accumulate and the latest is returned first."""
        (acme,) = seed_companies(store, "Acme")
        assert acme.id is not None
        for offset, total in ((2, 1.0), (1, 2.0)):
            store.insert_influence_score(
                CompanyInfluenceScore(
                    company_id=acme.id,
                    period_type="1w",
                    period_start=FIXED_NOW - timedelta(days=7),
                    period_end=FIXED_NOW,
                    total_score=total,
                    article_count=1,
                    total_bookmarks=0,
                    calculated_at=FIXED_NOW - timedelta(hours=offset),
                )
            )

        latest = store.get_latest_influence_score(acme.id, "1w")

        assert latest is not None
        assert latest.total_score == 2.0
        assert [s.total_score for s in store.list_influence_scores(acme.id)] == [
            2.0,
            1.0,
        ]
        assert len(store.list_influence_scores(acme.id, "1w", limit=1)) == 1
        assert store.get_latest_influence_score(acme.id, "1m") is None


class TestRankings:
    """Tests for ranking storage."""

    def test_replace_swaps_window(self, store: StateStore) -> None:
        """Test replacing a window removes its previous rows."""
        acme, globex = seed_companies(store, "Acme", "Globex")
        start = FIXED_NOW - timedelta(days=7)
        first = FIXED_NOW - timedelta(minutes=5)
        store.replace_rankings(
            "1w", start, FIXED_NOW, [ranking(acme, 1, first), ranking(globex, 2, first)]
        )

        written = store.replace_rankings(
            "1w", start, FIXED_NOW, [ranking(globex, 1, FIXED_NOW)]
        )

        assert written == 1
        assert store.get_stats()["company_rankings"] == 1
        assert store.get_latest_ranking_calculated_at("1w") == FIXED_NOW
        rows = store.list_rankings("1w", FIXED_NOW)
        assert [(r.company_name, r.rank_position) for r in rows] == [("Globex", 1)]
        assert rows[0].company_domain == "globex.example"
        assert StoreMetrics.get_instance().rankings_replaced_total == 3

    def test_other_windows_kept(self, store: StateStore) -> None:
        """Test a different window keeps its own set."""
        (acme,) = seed_companies(store, "Acme")
        earlier = FIXED_NOW - timedelta(days=1)
        store.replace_rankings(
            "1w",
            earlier - timedelta(days=7),
            earlier,
            [ranking(acme, 1, earlier)],
        )
        store.replace_rankings(
            "1w",
            FIXED_NOW - timedelta(days=7),
            FIXED_NOW,
            [ranking(acme, 1, FIXED_NOW)],
        )

        assert store.get_stats()["company_rankings"] == 2
        assert store.get_previous_ranking_calculated_at("1w", FIXED_NOW) == earlier
        assert store.get_previous_ranking_calculated_at("1w", earlier) is None

    def test_failed_replace_keeps_previous_set(self, store: StateStore) -> None:
        """Test a rejected insert rolls back the delete."""
        (acme,) = seed_companies(store, "Acme")
        start = FIXED_NOW - timedelta(days=7)
        store.replace_rankings("1w", start, FIXED_NOW, [ranking(acme, 1, FIXED_NOW)])
        ghost = ranking(acme, 1, FIXED_NOW).model_copy(update={"company_id": 999})

        with pytest.raises(sqlite3.IntegrityError, match="FOREIGN KEY"):
            store.replace_rankings("1w", start, FIXED_NOW, [ghost])

        assert len(store.list_rankings("1w", FIXED_NOW)) == 1
        assert StoreMetrics.get_instance().db_tx_failed == 1

    def test_reads_and_aggregates(self, store: StateStore) -> None:
        """Test company lookups, aggregates and top rows."""
        acme, globex, initech = seed_companies(store, "Acme", "Globex", "Initech")
        store.replace_rankings(
            "1w",
            FIXED_NOW - timedelta(days=7),
            FIXED_NOW,
            [
                ranking(acme, 1, FIXED_NOW),
                ranking(globex, 2, FIXED_NOW),
                ranking(initech, 3, FIXED_NOW),
            ],
        )
        store.set_company_active(globex.id or 0, False)

        aggregates = store.get_ranking_aggregates("1w", FIXED_NOW)
        assert aggregates["total_companies"] == 3
        assert aggregates["total_articles"] == 6
        assert aggregates["max_score"] == 10.0

        latest = store.get_company_latest_ranking(initech.id or 0, "1w")
        assert latest is not None
        assert latest.rank_position == 3

        active = store.list_rankings("1w", FIXED_NOW, active_only=True)
        assert [r.company_name for r in active] == ["Acme", "Initech"]

        top = store.list_top_rankings_between(
            2, FIXED_NOW - timedelta(days=1), FIXED_NOW
        )
        assert [r.company_name for r in top] == ["Acme"]


class TestRankingHistory:
    """Tests for ranking history storage."""

    def test_save_overwrites_same_snapshot(self, store: StateStore) -> None:
        """Test re-saving a (company, period, time) row updates it."""
        (acme,) = seed_companies(store, "Acme")
        assert acme.id is not None
        row = CompanyRankingHistory(
            company_id=acme.id,
            period_type="1w",
            current_rank=2,
            previous_rank=3,
            rank_change=1,
            calculated_at=FIXED_NOW,
        )
        store.save_ranking_history([row])
        store.save_ranking_history(
            [row.model_copy(update={"current_rank": 1, "rank_change": 2})]
        )

        snapshot = store.list_history_snapshot("1w", FIXED_NOW)

        assert len(snapshot) == 1
        assert snapshot[0].rank_change == 2
        assert snapshot[0].company_name == "Acme"
        assert store.get_latest_history_calculated_at("1w") == FIXED_NOW
        assert store.get_latest_history_calculated_at("1m") is None

    def test_company_history_and_purge(self, store: StateStore) -> None:
        """Test history reads by age and deletion before a cutoff."""
        (acme,) = seed_companies(store, "Acme")
        assert acme.id is not None
        store.save_ranking_history(
            [
                CompanyRankingHistory(
                    company_id=acme.id,
                    period_type="1w",
                    current_rank=1,
                    rank_change=0,
                    calculated_at=FIXED_NOW - timedelta(days=days),
                )
                for days in (30, 10, 1)
            ]
        )

        recent = store.list_company_history(
            acme.id, "1w", FIXED_NOW - timedelta(days=15)
        )
        assert [h.calculated_at for h in recent] == [
            FIXED_NOW - timedelta(days=1),
            FIXED_NOW - timedelta(days=10),
        ]

        assert store.delete_history_before(FIXED_NOW - timedelta(days=5)) == 2
        stats = store.get_history_storage_stats()
        assert stats["total_records"] == 1
        assert stats["newest_record"] == FIXED_NOW - timedelta(days=1)
        assert StoreMetrics.get_instance().history_purged_total == 2

    def test_empty_history_stats(self, store: StateStore) -> None:
        """Test statistics of an empty history table."""
        stats = store.get_history_storage_stats()

        assert stats == {
            "total_records": 0,
            "oldest_record": None,
            "newest_record": None,
            "records_by_period": {},
        }


class TestStats:
    """Tests for table statistics."""

    def test_row_counts(self, store: StateStore) -> None:
        """Test per-table row counts."""
        (acme,) = seed_companies(store, "Acme")
        add_article(store, acme, "https://a.example/1")

        stats = store.get_stats()

        assert stats == {
            "platforms": 3,
            "companies": 1,
            "articles": 1,
            "company_influence_scores": 0,
            "company_rankings": 0,
            "company_ranking_history": 0,
        }
