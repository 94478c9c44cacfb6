"""
Read-through aggregation cache.

Every view (leagues, fixtures for a date, match detail, predictions,
trending) reads its envelope, checks freshness with its own TTL and, on a
miss, refreshes from upstream through a single-flight guard, normalizes,
writes the new envelope and only then returns.
"""
import logging
import re
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass, field
from datetime import date as date_cls, timedelta
from typing import Any, Callable, Dict, List, Optional

from pitchside.analysis import AnalysisGenerator, NullAnalysisGenerator
from pitchside.analytics.service import AnalyticsService
from pitchside.errors import RateLimited, UpstreamUnavailable
from pitchside.matching import NameMatcher, find_match
from pitchside.normalizer import (
    CompetitionKind,
    Match,
    ProviderKind,
    Standing,
    to_iso_utc,
)
from pitchside.utils.helpers import to_naive_utc, utcnow
from config.settings import settings
from .coalescer import RequestCoalescer
from .core import CacheEnvelope, CacheMeta, CacheSource, RecordKind
from .store import FIXTURES, LEAGUES, LEAGUES_KEY, MATCHES, PREDICTIONS, EnvelopeStore
from .ttl_policies import get_ttl_for_kind, is_kind_fresh, missing_detail_parts

logger = logging.getLogger("cache.manager")

_DATE_KEY = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# Keys of a stored match that only the detail view fills in
DETAIL_FIELDS = ("standings", "head_to_head", "analysis", "analysis_generated_at", "api_football_fixture_id")


@dataclass
class AggregateResult:
    """A view payload plus how it was obtained."""
    data: Any
    meta: CacheMeta
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result = {"data": self.data, "meta": self.meta.to_dict()}
        if self.error:
            result["error"] = self.error
        return result


@dataclass
class MatchDetail:
    match_id: str
    match: Dict[str, Any]
    meta: CacheMeta
    match_found: bool = True
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        standings = self.match.get("standings") or {}
        return {
            "matchFound": True,
            "match": {k: v for k, v in self.match.items() if k not in DETAIL_FIELDS},
            "homeTeamStanding": standings.get("home"),
            "awayTeamStanding": standings.get("away"),
            "headToHead": self.match.get("head_to_head"),
            "venue": self.match.get("venue"),
            "analysis": self.match.get("analysis"),
            "meta": self.meta.to_dict(),
            "error": self.error,
        }


@dataclass
class MatchNotFound:
    """Typed not-found result; never raised."""
    match_id: str
    error: str
    match_found: bool = False
    timestamp: str = field(default_factory=lambda: utcnow().isoformat() + "Z")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "matchFound": False,
            "error": self.error,
            "debug": {"matchId": self.match_id, "timestamp": self.timestamp},
        }


def _iso_now() -> str:
    return utcnow().isoformat() + "Z"


class AggregationCache:
    """
    Coordinates freshness checks, upstream refreshes, normalization,
    cross-provider matching and persistence.
    """

    def __init__(
        self,
        store: EnvelopeStore,
        analytics: AnalyticsService,
        football_data,
        api_football,
        odds_api=None,
        analysis_generator: Optional[AnalysisGenerator] = None,
        matcher: Optional[NameMatcher] = None,
        coalesce_timeout: Optional[float] = None,
        fanout_workers: Optional[int] = None,
    ):
        """
        Args:
            store: Envelope persistence
            analytics: Interest analytics (trending source)
            football_data: Competitions/scheduled matches/standings client
            api_football: Fixtures/head-to-head/predictions client
            odds_api: Odds client
            analysis_generator: Text generation for match previews
            matcher: Team name comparison strategy for cross-provider lookups
        """
        self.store = store
        self.analytics = analytics
        self.football_data = football_data
        self.api_football = api_football
        self.odds_api = odds_api
        self.analysis_generator = analysis_generator or NullAnalysisGenerator()
        self.matcher = matcher
        self._coalescer = RequestCoalescer(timeout=coalesce_timeout or settings.coalesce_timeout)
        self._fanout_workers = fanout_workers or settings.fanout_workers
        self._stats = {"hits": 0, "misses": 0, "stale_served": 0, "heals": 0}
        self._stats_lock = threading.Lock()

    # =========================================================================
    # Generic read-through
    # =========================================================================

    def _read_through(
        self,
        kind: RecordKind,
        collection: str,
        key: str,
        refresh_fn: Callable[[], Any],
    ) -> AggregateResult:
        """
        Serve a fresh envelope, else refresh (single-flight) and persist.

        UpstreamUnavailable degrades to the stale envelope (or None data).
        RateLimited propagates so callers can word it distinctly.
        """
        ttl = get_ttl_for_kind(kind)
        envelope = self.store.get(collection, key)

        if is_kind_fresh(envelope, kind):
            logger.debug(f"CACHE HIT (fresh): {collection}/{key} [age={envelope.age_seconds:.1f}s]")
            self._count("hits")
            return AggregateResult(envelope.payload, self._make_meta(CacheSource.FRESH, kind, envelope))

        logger.info(f"CACHE {'MISS' if envelope is None else 'STALE'}: {collection}/{key}")
        self._count("misses")
        try:
            fresh = self._coalescer.get_or_fetch(f"{collection}/{key}", refresh_fn)
        except UpstreamUnavailable as e:
            logger.warning(f"Refresh of {collection}/{key} failed: {e}")
            if envelope is not None:
                self._count("stale_served")
                return AggregateResult(
                    envelope.payload,
                    self._make_meta(CacheSource.STALE, kind, envelope),
                    error=str(e),
                )
            return AggregateResult(None, CacheMeta(None, CacheSource.UPSTREAM.value, kind.value,
                                                   int(ttl.total_seconds())), error=str(e))

        return AggregateResult(fresh.payload, self._make_meta(CacheSource.UPSTREAM, kind, fresh))

    def _count(self, name: str) -> None:
        with self._stats_lock:
            self._stats[name] += 1

    def _make_meta(self, source: CacheSource, kind: RecordKind, envelope: CacheEnvelope) -> CacheMeta:
        stamp = envelope.updated_at_utc
        return CacheMeta(
            last_updated=stamp.isoformat() + "Z" if stamp else None,
            cache_source=source.value,
            kind=kind.value,
            ttl_seconds=int(get_ttl_for_kind(kind).total_seconds()),
            age_seconds=envelope.age_seconds,
        )

    def _persist_matches(self, matches: List[Match]) -> int:
        """
        Write matches under matches/{id}, keeping detail fields already stored.

        Synthetic ids are not stable across refreshes, so those matches are
        only kept inside their grouped document.
        """
        items = {}
        for match in matches:
            if match.synthetic_id:
                continue
            existing = self.store.get(MATCHES, match.id)
            merged = dict(existing.payload) if existing else {}
            merged.update(match.to_dict())
            items[match.id] = merged
        return self.store.put_many(MATCHES, items)

    # =========================================================================
    # Leagues
    # =========================================================================

    def get_leagues(self) -> AggregateResult:
        """
        Scheduled matches of every LEAGUE competition, grouped by league name.

        data: {"leagues": [[league_name, [match, ...]], ...]} in first-appearance order
        """
        result = self._read_through(RecordKind.LEAGUES, LEAGUES, LEAGUES_KEY, self._refresh_leagues)
        if result.data is None:
            result.data = {"leagues": []}
        return result

    def refresh_leagues(self) -> CacheEnvelope:
        """Unconditional refresh (maintenance entry point). Upstream errors propagate."""
        return self._coalescer.get_or_fetch(f"{LEAGUES}/{LEAGUES_KEY}", self._refresh_leagues)

    def _refresh_leagues(self) -> CacheEnvelope:
        competitions = [
            c for c in self.football_data.get_competitions() if c.kind == CompetitionKind.LEAGUE
        ]
        logger.info(f"Refreshing leagues: {len(competitions)} LEAGUE competitions")

        with ThreadPoolExecutor(max_workers=self._fanout_workers, thread_name_prefix="leagues-fanout") as executor:
            futures = [
                (competition, executor.submit(self.football_data.get_scheduled_matches, competition))
                for competition in competitions
            ]
            all_matches: List[Match] = []
            for competition, future in futures:
                try:
                    all_matches.extend(future.result())
                except (UpstreamUnavailable, RateLimited) as e:
                    logger.warning(f"Skipping {competition.code}: {e}")

        grouped: Dict[str, List[Dict[str, Any]]] = {}
        for match in all_matches:
            grouped.setdefault(match.competition_name, []).append(match.to_dict())

        self._persist_matches(all_matches)
        payload = {
            "leagues": [[name, matches] for name, matches in grouped.items()],
            "match_count": len(all_matches),
        }
        envelope = self.store.put(LEAGUES, LEAGUES_KEY, payload)
        logger.info(f"Leagues updated: {len(grouped)} leagues, {len(all_matches)} matches")
        return envelope

    # =========================================================================
    # Fixtures by date
    # =========================================================================

    def get_fixtures_for_date(self, date: str) -> AggregateResult:
        """
        Fixtures on a date grouped by league.

        data: [{"name", "code", "emblem", "matches": [...]}, ...]

        Raises:
            ValueError: date is not YYYY-MM-DD
        """
        if not isinstance(date, str) or not _DATE_KEY.match(date):
            raise ValueError(f"Invalid date '{date}', expected YYYY-MM-DD")
        date_cls.fromisoformat(date)

        result = self._read_through(
            RecordKind.FIXTURES, FIXTURES, date, lambda: self._refresh_fixtures(date)
        )
        if result.data is None:
            result.data = []
        return result

    def _refresh_fixtures(self, date: str) -> CacheEnvelope:
        fixtures = self.api_football.get_fixtures_by_date(date)

        leagues: Dict[str, Dict[str, Any]] = {}
        for match in fixtures:
            league = leagues.setdefault(match.competition_name, {
                "name": match.competition_name,
                "code": match.competition_code,
                "emblem": match.competition_emblem,
                "matches": [],
            })
            league["matches"].append(match.to_dict())

        self._persist_matches(fixtures)
        envelope = self.store.put(FIXTURES, date, list(leagues.values()))
        logger.info(f"Fixtures for {date} updated: {len(fixtures)} matches in {len(leagues)} leagues")
        return envelope

    def _fixtures_on(self, date: str) -> List[Match]:
        """API-Football fixtures for a date, from cache when possible."""
        result = self.get_fixtures_for_date(date)
        if result.error and not result.data:
            raise UpstreamUnavailable(ProviderKind.API_FOOTBALL.value, result.error)
        return [Match.from_dict(m) for league in result.data for m in league.get("matches", [])]

    # =========================================================================
    # Match detail
    # =========================================================================

    def get_match_detail(self, match_id: str):
        """
        Point lookup with self-healing.

        A stored match older than the match-detail TTL has its core fields
        refetched from the provider that created it; if that fails the
        stored record is served as stale with an error.

        Returns:
            MatchDetail, or MatchNotFound when neither the store nor the
            fixtures provider knows the id. Upstream failures never raise.
        """
        match_id = str(match_id)
        envelope = self.store.get(MATCHES, match_id)
        source = CacheSource.FRESH
        error = None

        if envelope is None:
            try:
                match = self.api_football.get_fixture(match_id)
            except RateLimited as e:
                logger.warning(f"Match {match_id} lookup rate limited: {e}")
                return MatchNotFound(match_id, RateLimited.USER_MESSAGE)
            except UpstreamUnavailable as e:
                logger.warning(f"Match {match_id} not stored and upstream failed: {e}")
                return MatchNotFound(match_id, "Failed to load match data. Please try again later.")
            if match is None or match.synthetic_id:
                return MatchNotFound(match_id, "Match not found in the database")
            envelope = self.store.put(MATCHES, match_id, match.to_dict())
            source = CacheSource.UPSTREAM
        elif not is_kind_fresh(envelope, RecordKind.MATCH_DETAIL):
            self._count("misses")
            try:
                refreshed = self._coalescer.get_or_fetch(
                    f"{MATCHES}/{match_id}", lambda: self._refresh_match_core(match_id)
                )
            except RateLimited:
                refreshed, error = None, RateLimited.USER_MESSAGE
            except UpstreamUnavailable as e:
                logger.warning(f"Refresh of match {match_id} failed: {e}")
                refreshed, error = None, str(e)
            if refreshed is not None:
                envelope, source = refreshed, CacheSource.UPSTREAM
            else:
                self._count("stale_served")
                source = CacheSource.STALE
                error = error or "Match details may be out of date"
        else:
            self._count("hits")

        missing = missing_detail_parts(envelope.payload)
        if missing:
            try:
                healed = self._coalescer.get_or_fetch(
                    f"{MATCHES}/{match_id}:heal", lambda: self._heal_match(match_id, missing)
                )
            except RateLimited:
                healed, error = envelope, RateLimited.USER_MESSAGE
            if healed is None:
                logger.warning(f"Match {match_id} was removed while healing")
                return MatchNotFound(match_id, "Match not found in the database")
            envelope = healed
            if source is CacheSource.FRESH:
                source = CacheSource.UPSTREAM

        return MatchDetail(
            match_id=match_id,
            match=dict(envelope.payload),
            meta=self._make_meta(source, RecordKind.MATCH_DETAIL, envelope),
            error=error,
        )

    def _refresh_match_core(self, match_id: str) -> Optional[CacheEnvelope]:
        """
        Refetch a stored match from its own provider and merge in the core fields.

        Returns:
            The new envelope, or None when the provider no longer knows the
            match or the record was purged meanwhile
        """
        current = self.store.get(MATCHES, match_id)
        if current is None:
            return None
        if current.payload.get("provider") == ProviderKind.FOOTBALL_DATA.value:
            match = self.football_data.get_match(match_id)
        else:
            match = self.api_football.get_fixture(match_id)
        if match is None or match.synthetic_id:
            logger.warning(f"Provider returned no match for stored id {match_id}")
            return None

        latest = self.store.get(MATCHES, match_id)
        if latest is None:
            return None
        merged = dict(latest.payload)
        merged.update(match.to_dict())
        logger.info(f"Match {match_id} core fields refreshed")
        return self.store.put(MATCHES, match_id, merged)

    def _heal_match(self, match_id: str, missing: List[str]) -> Optional[CacheEnvelope]:
        """
        Fetch only the missing detail parts and merge them into the stored record.

        Detail parts carry their own stamps, so the record keeps the
        updated_at of its core fields. Returns None when the record is gone.
        """
        current = self.store.get(MATCHES, match_id)
        if current is None:
            return None
        match = Match.from_dict(current.payload)
        self._count("heals")
        logger.info(f"Healing match {match_id}: fetching {', '.join(missing)}")

        updates: Dict[str, Any] = {}
        if "standings" in missing:
            standings = self._fetch_standings(match)
            if standings is not None:
                updates["standings"] = standings
        if "head_to_head" in missing:
            fixture_id, h2h = self._fetch_head_to_head(match)
            if fixture_id:
                updates["api_football_fixture_id"] = fixture_id
            if h2h is not None:
                updates["head_to_head"] = h2h

        # Re-read so a concurrent refresh of the core fields is not discarded
        latest = self.store.get(MATCHES, match_id)
        if latest is None or not updates:
            return latest
        merged = dict(latest.payload)
        merged.update(updates)
        return self.store.put(MATCHES, match_id, merged, updated_at=latest.updated_at_utc)

    def _fetch_standings(self, match: Match) -> Optional[Dict[str, Any]]:
        """Both teams' table rows; None when the fetch failed (retried next read)."""
        empty = {"home": None, "away": None, "updated_at": _iso_now()}
        if match.provider != ProviderKind.FOOTBALL_DATA.value or not match.competition_code:
            return empty
        try:
            table = self.football_data.get_standings(match.competition_code)
        except UpstreamUnavailable as e:
            logger.warning(f"Standings for {match.competition_code} unavailable: {e}")
            return None

        def row_for(team) -> Optional[Dict[str, Any]]:
            if team.id is not None:
                for row in table:
                    if row.team_id == team.id:
                        return row.to_dict()
            row = find_match(
                table, team.name, team.name, self.matcher,
                team_names=lambda r: (r.team_name, r.team_name),
            )
            return row.to_dict() if isinstance(row, Standing) else None

        empty.update(home=row_for(match.home_team), away=row_for(match.away_team))
        return empty

    def _resolve_api_football_fixture(self, match: Match) -> Optional[Match]:
        """The same match in API-Football's id space, located by team names."""
        if match.provider == ProviderKind.API_FOOTBALL.value:
            return match
        if not match.kickoff_date:
            return None
        candidates = self._fixtures_on(match.kickoff_date)
        found = find_match(candidates, match.home_team.name, match.away_team.name, self.matcher)
        if found is None:
            logger.info(f"No API-Football fixture for {match.home_team.name} vs {match.away_team.name} on {match.kickoff_date}")
        return found

    def _fetch_head_to_head(self, match: Match):
        """
        Returns:
            (api_football_fixture_id or None, {"matches": [...], "updated_at": ...} or None on failure)
        """
        try:
            fixture = self._resolve_api_football_fixture(match)
            if fixture is None or fixture.home_team.id is None or fixture.away_team.id is None:
                return None, {"matches": [], "updated_at": _iso_now()}
            entries = self.api_football.get_head_to_head(fixture.home_team.id, fixture.away_team.id)
        except UpstreamUnavailable as e:
            logger.warning(f"Head-to-head for match {match.id} unavailable: {e}")
            return None, None
        return fixture.id, {"matches": [e.to_dict() for e in entries], "updated_at": _iso_now()}

    # =========================================================================
    # Predictions
    # =========================================================================

    def get_predictions(self, match_id: str) -> AggregateResult:
        """
        Provider predictions for a match (5h TTL).

        data: {"match_id", "data": {...sanitized provider payload...}} or None
        """
        match_id = str(match_id)
        return self._read_through(
            RecordKind.PREDICTIONS, PREDICTIONS, match_id, lambda: self._refresh_predictions(match_id)
        )

    def _refresh_predictions(self, match_id: str) -> CacheEnvelope:
        stored = self.store.get(MATCHES, match_id)
        record = dict(stored.payload) if stored else {}
        fixture_id = record.get("api_football_fixture_id")
        if not fixture_id:
            if not record or record.get("provider") == ProviderKind.API_FOOTBALL.value:
                fixture_id = match_id
            else:
                fixture = self._resolve_api_football_fixture(Match.from_dict(record))
                if fixture is None:
                    raise UpstreamUnavailable(ProviderKind.API_FOOTBALL.value,
                                              f"no fixture matching match {match_id}")
                fixture_id = fixture.id

        data = self.api_football.get_predictions(fixture_id)
        if not data:
            raise UpstreamUnavailable(ProviderKind.API_FOOTBALL.value, f"no predictions for fixture {fixture_id}")
        return self.store.put(PREDICTIONS, match_id, {"match_id": match_id, "data": data})

    # =========================================================================
    # Analysis (text generation)
    # =========================================================================

    def get_match_analysis(self, match_id: str, max_age: Optional[timedelta] = None) -> AggregateResult:
        """
        Generated preview cached on the match record.

        The stored text is reused unless max_age is given and exceeded.
        """
        match_id = str(match_id)
        envelope = self.store.get(MATCHES, match_id)
        if envelope is None:
            return AggregateResult(None, CacheMeta(None, CacheSource.UPSTREAM.value), error="Match not found")

        record = dict(envelope.payload)
        generated_at = to_naive_utc(record.get("analysis_generated_at"))
        if record.get("analysis") and generated_at is not None:
            if max_age is None or utcnow() - generated_at < max_age:
                return AggregateResult(
                    {"analysis": record["analysis"], "generated_at": record["analysis_generated_at"]},
                    CacheMeta(record["analysis_generated_at"], CacheSource.FRESH.value),
                )

        text = self.analysis_generator.generate(Match.from_dict(record))
        if not text:
            return AggregateResult(
                {"analysis": record.get("analysis") or "", "generated_at": record.get("analysis_generated_at")},
                CacheMeta(record.get("analysis_generated_at"), CacheSource.STALE.value),
                error="Analysis unavailable",
            )

        latest = self.store.get(MATCHES, match_id) or envelope
        merged = dict(latest.payload)
        merged.update(analysis=text, analysis_generated_at=_iso_now())
        self.store.put(MATCHES, match_id, merged, updated_at=latest.updated_at_utc)
        return AggregateResult(
            {"analysis": text, "generated_at": merged["analysis_generated_at"]},
            CacheMeta(merged["analysis_generated_at"], CacheSource.UPSTREAM.value),
        )

    # =========================================================================
    # Trending
    # =========================================================================

    def get_trending(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        Stored matches ordered by interest rating (7-day window).

        Analytics records whose match is no longer stored are dropped, and
        further pages are read until the limit is filled or records run out.
        """
        limit = limit or settings.trending_limit
        trending = []
        offset = 0
        while len(trending) < limit:
            page = self.analytics.get_trending(limit=limit, offset=offset)
            offset += len(page)
            for counters in page:
                envelope = self.store.get(MATCHES, counters.match_id)
                if envelope is None:
                    logger.warning(f"Match not found: {counters.match_id} (from analytics record)")
                    continue
                item = {k: v for k, v in envelope.payload.items() if k not in DETAIL_FIELDS}
                item["analytics"] = {
                    "interestRating": counters.interest_rating,
                    "clicks": counters.clicks,
                    "pageViews": counters.page_views,
                    "timeSpent": counters.time_spent_seconds,
                    "shares": counters.shares,
                }
                trending.append(item)
                if len(trending) >= limit:
                    break
            if len(page) < limit:
                break
        return trending

    # =========================================================================
    # Odds
    # =========================================================================

    def get_sports(self) -> Dict[str, Any]:
        """
        Raises:
            RateLimited, UpstreamUnavailable
        """
        result = self.odds_api.get_sports()
        quota = result["quota"]
        logger.info(f"Odds API quota: remaining={quota.remaining} used={quota.used}")
        return {"sports": result["sports"], "quota": asdict(quota)}

    def get_sport_odds(self, sport_key: str) -> AggregateResult:
        """Upcoming events of a sport with odds. Outages degrade to an empty list."""
        try:
            events = self.odds_api.get_sport_odds(sport_key)
        except UpstreamUnavailable as e:
            logger.warning(f"Odds for {sport_key} unavailable: {e}")
            return AggregateResult([], CacheMeta(None, CacheSource.UPSTREAM.value), error=str(e))
        return AggregateResult(events, CacheMeta(_iso_now(), CacheSource.UPSTREAM.value))

    def get_odds_event(self, sport_key: str, event_id: str) -> AggregateResult:
        """
        Odds for one event. Outages return a placeholder event; RateLimited propagates.
        """
        try:
            event = self.odds_api.get_event_odds(sport_key, event_id)
        except UpstreamUnavailable as e:
            logger.warning(f"Odds for {sport_key}/{event_id} unavailable: {e}")
            placeholder = {
                "id": event_id,
                "sport_key": sport_key,
                "sport_title": sport_key.replace("_", " "),
                "home_team": "Home Team",
                "away_team": "Away Team",
                "commence_time": to_iso_utc(utcnow()),
                "bookmakers": [],
            }
            return AggregateResult(placeholder, CacheMeta(None, CacheSource.UPSTREAM.value), error=str(e))
        return AggregateResult(event, CacheMeta(_iso_now(), CacheSource.UPSTREAM.value))

    # =========================================================================
    # Maintenance
    # =========================================================================

    def cleanup_old_matches(self) -> int:
        """
        Purge stored matches that kicked off before today (UTC).

        Returns:
            Number purged; 0 on any failure
        """
        today = utcnow().date().isoformat()

        def is_old(payload: Any) -> bool:
            kickoff = (payload or {}).get("kickoff_utc")
            return bool(kickoff) and kickoff[:10] < today

        try:
            count = self.store.delete_where(MATCHES, is_old)
        except Exception as e:
            logger.error(f"Error cleaning up old matches: {e}")
            return 0
        logger.info(f"Cleaned up {count} old matches")
        return count

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        with self._stats_lock:
            stats = dict(self._stats)
        total = stats["hits"] + stats["misses"]
        return {
            **stats,
            "hit_rate_percent": round(stats["hits"] / total * 100, 1) if total else 0,
            "entries": self.store.count(),
            "coalescer": self._coalescer.get_stats(),
        }


# Global aggregation cache instance
_aggregation_cache: Optional[AggregationCache] = None


def get_aggregation_cache() -> AggregationCache:
    """Get or create the global aggregation cache wired from settings."""
    global _aggregation_cache
    if _aggregation_cache is None:
        from pitchside.analysis import get_analysis_generator
        from pitchside.db import get_session_factory
        from pitchside.providers import APIFootballClient, FootballDataClient, OddsAPIClient

        session_factory = get_session_factory()
        _aggregation_cache = AggregationCache(
            store=EnvelopeStore(session_factory),
            analytics=AnalyticsService(session_factory),
            football_data=FootballDataClient(),
            api_football=APIFootballClient(),
            odds_api=OddsAPIClient(),
            analysis_generator=get_analysis_generator(settings.anthropic_api_key or None),
        )
    return _aggregation_cache
