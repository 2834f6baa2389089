"""Per-app service wiring.

Caches, the query executor and the services are constructed once per
application and stored in ``app.extensions``; routes fetch them through
:func:`get_draw_service`.
"""

from __future__ import annotations

from flask import Flask, current_app

from palpitaco.repositories.draw_store import DrawStore
from palpitaco.repositories.query_executor import QueryExecutor, ReadPolicy
from palpitaco.services.bounds_service import BoundsApiClient, BoundsService
from palpitaco.services.cache import QueryCaches
from palpitaco.services.draw_service import DrawService
from palpitaco.services.prize_service import HydrationPool, PrizeHydrator
from palpitaco.services.range_service import RangeFetcher
from palpitaco.services.run_guard import RunTracker
from palpitaco.services.staleness_service import StalenessService
from palpitaco.utils.dates import get_timezone, today_ymd


def init_services(app: Flask, store: DrawStore) -> DrawService:
    cfg = app.config
    tz_name = str(cfg.get("TIMEZONE") or "America/Sao_Paulo")
    tz = get_timezone(tz_name)

    caches = QueryCaches.create(ttl_seconds=float(cfg.get("CACHE_TTL_SECONDS", 600)))
    executor = QueryExecutor(store, read_policy=ReadPolicy.parse(cfg.get("READ_POLICY")))

    fetcher = RangeFetcher(
        executor,
        tz,
        chunk_days=int(cfg.get("RANGE_CHUNK_DAYS", 60)),
        index_fallback_max_days=int(cfg.get("INDEX_FALLBACK_MAX_DAYS", 120)),
        empty_fallback_max_days=int(cfg.get("EMPTY_FALLBACK_MAX_DAYS", 120)),
    )
    pool = HydrationPool(
        PrizeHydrator(executor, caches.prizes),
        min_workers=int(cfg.get("HYDRATION_MIN_WORKERS", 4)),
        max_workers=int(cfg.get("HYDRATION_MAX_WORKERS", 10)),
    )

    api_url = str(cfg.get("BOUNDS_API_URL") or "").strip()
    api_client = None
    if api_url:
        api_client = BoundsApiClient(
            api_url,
            timeout_seconds=float(cfg.get("BOUNDS_API_TIMEOUT", 5.0)),
            retries=int(cfg.get("BOUNDS_API_RETRIES", 0)),
        )

    bounds = BoundsService(
        executor,
        caches.bounds,
        api_client=api_client,
        tz=tz,
        scan_limit=int(cfg.get("BOUNDS_SCAN_LIMIT", 50)),
        edge_limit=int(cfg.get("BOUNDS_EDGE_LIMIT", 800)),
        probe_days=int(cfg.get("BOUNDS_PROBE_DAYS", 60)),
        today=lambda: today_ymd(tz_name),
    )
    staleness = StalenessService(fetcher, pool, chunk_days=int(cfg.get("STALENESS_CHUNK_DAYS", 15)))

    service = DrawService(
        caches,
        fetcher,
        pool,
        bounds,
        staleness,
        auto_aggregate_days=int(cfg.get("AGGREGATED_AUTO_DAYS", 60)),
    )

    app.extensions["query_caches"] = caches
    app.extensions["draw_service"] = service
    app.extensions["run_tracker"] = RunTracker()
    return service


def get_draw_service() -> DrawService:
    service: DrawService | None = current_app.extensions.get("draw_service")
    if service is None:
        raise RuntimeError("Draw service not initialized")
    return service


def get_run_tracker() -> RunTracker:
    return current_app.extensions["run_tracker"]
