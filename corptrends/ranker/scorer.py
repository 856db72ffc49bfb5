"""Influence score calculation for companies."""

from collections.abc import Callable
from datetime import datetime

import structlog

from corptrends.data_model.timestamps import ensure_utc, utc_now
from corptrends.ranker.constants import SCORE_DECIMALS
from corptrends.ranker.metrics import RankerMetrics
from corptrends.ranker.models import CompanyScore, ScoreWeights
from corptrends.store.models import Article, Company, CompanyInfluenceScore
from corptrends.store.store import StateStore


logger = structlog.get_logger()


class InfluenceScoreCalculator:
    """Computes weighted, time-decayed influence scores.

    Scoring formula per article:
        (article_base + bookmarks * bookmark_weight + likes * likes_weight)
        * platform_weight * time_weight

    Where:
        - platform_weight: qiita/zenn 1.0, hatena 0.8, anything else 0.5
        - time_weight: for articles published inside [start, end], is
          1.0 at ``start`` and decays linearly towards ``time_decay_floor``
          with the distance from ``start``, over the window length; undated
          articles and articles outside the window get
          ``outside_window_weight``

    A company's score is the sum over its qualifying, non-deleted articles.
    """

    def __init__(
        self,
        store: StateStore,
        weights: ScoreWeights | None = None,
        clock: Callable[[], datetime] = utc_now,
        run_id: str = "",
    ) -> None:
        """Initialize the calculator.

        Args:
            store: State store to read articles from and append scores to.
            weights: Weighting constants (defaults apply when omitted).
            clock: Returns "now" for calculated_at.
            run_id: Run identifier for logging.
        """
        self._store = store
        self._weights = weights or ScoreWeights()
        self._clock = clock
        self._metrics = RankerMetrics.get_instance()
        self._log = logger.bind(component="scorer", run_id=run_id)

    @property
    def weights(self) -> ScoreWeights:
        """Get the weighting constants."""
        return self._weights

    def time_weight(
        self,
        published_at: datetime | None,
        start: datetime,
        end: datetime,
    ) -> float:
        """Return the time multiplier of an article.

        An article published at ``start`` weighs 1.0; the weight falls
        linearly with its distance from ``start`` over the window length and
        never drops below ``time_decay_floor``.

        Args:
            published_at: Publication time (None if unknown).
            start: Window start.
            end: Window end.

        Returns:
            Weight in [time_decay_floor, 1.0], or outside_window_weight.
        """
        if published_at is None:
            return self._weights.outside_window_weight
        published_at = ensure_utc(published_at)
        if not start <= published_at <= end:
            return self._weights.outside_window_weight

        span = (end - start).total_seconds()
        if span <= 0:
            return 1.0
        since_start = (published_at - start).total_seconds()
        return max(self._weights.time_decay_floor, 1.0 - since_start / span)

    def article_score(self, article: Article, start: datetime, end: datetime) -> float:
        """Return one article's weighted contribution."""
        base = (
            self._weights.article_base
            + (article.bookmark_count or 0) * self._weights.bookmark_weight
            + (article.likes_count or 0) * self._weights.likes_weight
        )
        return (
            base
            * self._weights.platform_weight(article.platform)
            * self.time_weight(article.published_at, start, end)
        )

    def score_company(
        self, company: Company, start: datetime, end: datetime
    ) -> CompanyScore:
        """Compute a company's score together with its article totals.

        Args:
            company: Company to score.
            start: Window start (inclusive).
            end: Window end (inclusive).

        Returns:
            CompanyScore; zero totals when the window is inverted or empty.
        """
        start = ensure_utc(start)
        end = ensure_utc(end)
        if company.id is None or start > end:
            return CompanyScore(company, 0.0, 0, 0)

        articles = self._store.get_company_articles_in_window(company.id, start, end)
        if not articles:
            return CompanyScore(company, 0.0, 0, 0)

        total = sum(self.article_score(a, start, end) for a in articles)
        return CompanyScore(
            company=company,
            total_score=round(total, SCORE_DECIMALS),
            article_count=len(articles),
            total_bookmarks=sum(a.bookmark_count or 0 for a in articles),
        )

    def calculate_company_score(
        self,
        company: Company,
        period_type: str,
        start: datetime,
        end: datetime,
    ) -> float:
        """Compute a company's influence score for a window.

        Args:
            company: Company to score.
            period_type: Period value, for logging.
            start: Window start (inclusive).
            end: Window end (inclusive).

        Returns:
            The score; 0.0 when start > end or no article qualifies.
        """
        score = self.score_company(company, start, end)
        self._log.debug(
            "company_scored",
            company_id=company.id,
            period_type=period_type,
            total_score=score.total_score,
            article_count=score.article_count,
        )
        return score.total_score

    def calculate_all_companies_score(
        self,
        period_type: str,
        start: datetime,
        end: datetime,
        save: bool = True,
    ) -> dict[int, CompanyScore]:
        """Score every active company for a window.

        Companies scoring 0 are left out.

        Args:
            period_type: Period value.
            start: Window start (inclusive).
            end: Window end (inclusive).
            save: Append a score snapshot per scored company.

        Returns:
            Mapping of company id to its CompanyScore.
        """
        scores: dict[int, CompanyScore] = {}
        for company in self._store.list_companies(active_only=True):
            score = self.score_company(company, start, end)
            if score.total_score <= 0 or company.id is None:
                continue
            scores[company.id] = score
            if save:
                self.save_company_influence_score(
                    company, period_type, start, end, score
                )

        self._log.info(
            "companies_scored",
            period_type=period_type,
            scored_companies=len(scores),
        )
        return scores

    def save_company_influence_score(
        self,
        company: Company,
        period_type: str,
        start: datetime,
        end: datetime,
        score: CompanyScore,
    ) -> CompanyInfluenceScore:
        """Append a score snapshot with calculated_at = now."""
        if company.id is None:
            msg = "Company must be stored before its score can be saved"
            raise ValueError(msg)
        saved = self._store.insert_influence_score(
            CompanyInfluenceScore(
                company_id=company.id,
                period_type=period_type,
                period_start=ensure_utc(start),
                period_end=ensure_utc(end),
                total_score=score.total_score,
                article_count=score.article_count,
                total_bookmarks=score.total_bookmarks,
                calculated_at=ensure_utc(self._clock()),
            )
        )
        self._metrics.record_score_saved()
        return saved

    def get_latest_company_score(
        self, company_id: int, period_type: str
    ) -> CompanyInfluenceScore | None:
        """Get the company's newest snapshot for a period."""
        return self._store.get_latest_influence_score(company_id, period_type)

    def get_company_scores_by_period(
        self, company_id: int, period_type: str | None = None, limit: int = 10
    ) -> list[CompanyInfluenceScore]:
        """Get the company's snapshots, most recent first."""
        return self._store.list_influence_scores(company_id, period_type, limit)

    def get_company_score_statistics(
        self, company_id: int, period_type: str | None = None
    ) -> dict[str, float | int]:
        """Summarize the company's snapshots.

        Returns:
            Dict with count, average_score, max_score and min_score (zeros
            when there is no snapshot).
        """
        values = [
            s.total_score
            for s in self._store.list_influence_scores(company_id, period_type)
        ]
        if not values:
            return {
                "count": 0,
                "average_score": 0.0,
                "max_score": 0.0,
                "min_score": 0.0,
            }
        return {
            "count": len(values),
            "average_score": round(sum(values) / len(values), SCORE_DECIMALS),
            "max_score": max(values),
            "min_score": min(values),
        }
