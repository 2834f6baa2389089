"""Earliest/latest available date per partition."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import Any

import requests
from pymongo.errors import PyMongoError
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from palpitaco.models.draw import PartitionBounds
from palpitaco.models.scope import Scope
from palpitaco.repositories.draw_store import ID_FIELD
from palpitaco.repositories.query_executor import DATE_ORDER_FIELD, QueryExecutor, is_index_error
from palpitaco.services.cache import TTLCache, cache_key
from palpitaco.services.draw_mapper import extract_date
from palpitaco.utils.dates import add_days, is_ymd, today_ymd

logger = logging.getLogger(__name__)


def _build_http_session(retries: int, backoff_factor: float) -> requests.Session:
    retry = Retry(
        total=retries,
        connect=retries,
        read=retries,
        status=retries,
        backoff_factor=backoff_factor,
        status_forcelist=(429, 500, 502, 503, 504),
        allowed_methods=("GET",),
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retry, pool_connections=4, pool_maxsize=4)

    session = requests.Session()
    session.headers.update({"Accept": "application/json"})
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


class BoundsApiClient:
    """Client of the aggregate ``GET /bounds?partition=`` endpoint.

    Any transport failure or malformed payload yields ``None`` so the
    caller falls back to scanning.
    """

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 5.0,
        retries: int = 0,
        session: requests.Session | None = None,
    ) -> None:
        self._url = base_url.rstrip("/") + "/bounds"
        self._timeout = timeout_seconds
        self._http = session or _build_http_session(retries=retries, backoff_factor=0.5)

    def fetch(self, partition: str) -> tuple[str, str] | None:
        try:
            resp = self._http.get(self._url, params={"partition": partition}, timeout=self._timeout)
            resp.raise_for_status()
            payload: Any = resp.json()
        except (requests.RequestException, ValueError) as exc:
            logger.info("Bounds endpoint unavailable for %s: %s", partition, exc)
            return None

        return parse_bounds_payload(payload)


def parse_bounds_payload(payload: Any) -> tuple[str, str] | None:
    if not isinstance(payload, dict) or payload.get("ok") is not True:
        return None
    min_date = payload.get("minDate") or payload.get("minYmd")
    max_date = payload.get("maxDate") or payload.get("maxYmd")
    if not (is_ymd(min_date) and is_ymd(max_date)):
        return None
    if min_date > max_date:
        return None
    return str(min_date), str(max_date)


def _valid_dates(docs: Iterable[dict[str, Any]], tz: Any | None) -> list[str]:
    out = []
    for doc in docs:
        ymd = extract_date(doc, tz)
        if ymd:
            out.append(ymd)
    return out


class BoundsService:
    """Resolves :class:`PartitionBounds` through a chain of strategies.

    1. aggregate endpoint
    2. ordered scan (ascending and descending by date, ``_id`` tiebreak)
    3. recent probe: one equality query per day, newest first, to catch a
       stale maximum
    4. edge sampling by ``_id`` from both ends

    The partition floor is applied last and the result cached, failures
    included.
    """

    def __init__(
        self,
        executor: QueryExecutor,
        cache: TTLCache,
        *,
        api_client: BoundsApiClient | None = None,
        tz: Any | None = None,
        scan_limit: int = 50,
        edge_limit: int = 800,
        probe_days: int = 60,
        today: Callable[[], str] = today_ymd,
    ) -> None:
        self._executor = executor
        self._cache = cache
        self._api = api_client
        self._tz = tz
        self._scan_limit = scan_limit
        self._edge_limit = edge_limit
        self._probe_days = probe_days
        self._today = today

    def get_bounds(self, scope: Scope) -> PartitionBounds:
        key = cache_key("bounds", scope.key)
        return self._cache.get_or_load(key, lambda: self._resolve(scope))

    def _resolve(self, scope: Scope) -> PartitionBounds:
        if self._api is not None:
            found = self._api.fetch(scope.key)
            if found:
                return self._finish(scope, found[0], found[1], ["api"])

        sources: list[str] = []
        min_date, max_date = self._ordered_scan(scope)
        if min_date or max_date:
            sources.append("scan")

        probed = self._recent_probe(scope, max_date)
        if probed:
            max_date = probed
            sources.append("probe")

        if not (min_date and max_date):
            edge_min, edge_max = self._edge_sample(scope)
            if edge_min or edge_max:
                sources.append("edge")
            min_date = min_date or edge_min
            max_date = max_date or edge_max

        return self._finish(scope, min_date, max_date, sources)

    def _finish(self, scope: Scope, min_date: str | None, max_date: str | None, sources: list[str]) -> PartitionBounds:
        min_date, max_date = scope.clamp_bounds(min_date, max_date)
        if min_date and max_date and min_date > max_date:
            min_date, max_date = max_date, min_date
        bounds = PartitionBounds(
            partition=scope.key,
            min_date=min_date,
            max_date=max_date,
            source="+".join(sources) or "none",
        )
        logger.info("Bounds %s: %s..%s via %s", scope.key, bounds.min_date, bounds.max_date, bounds.source)
        return bounds

    def _sample(self, scope: Scope, order_by: tuple[tuple[str, int], ...], limit: int, from_end: bool = False) -> list[dict[str, Any]]:
        try:
            return self._executor.find(scope, order_by=order_by, limit=limit, from_end=from_end).items
        except PyMongoError as exc:
            if not is_index_error(exc):
                raise
            logger.info("Bounds sample for %s needs an index (%s); skipping", scope.key, exc)
            return []

    def _ordered_scan(self, scope: Scope) -> tuple[str | None, str | None]:
        asc = _valid_dates(self._sample(scope, ((DATE_ORDER_FIELD, 1), (ID_FIELD, 1)), self._scan_limit), self._tz)
        desc = _valid_dates(self._sample(scope, ((DATE_ORDER_FIELD, -1), (ID_FIELD, -1)), self._scan_limit), self._tz)
        return (min(asc) if asc else None, max(desc) if desc else None)

    def _recent_probe(self, scope: Scope, known_max: str | None) -> str | None:
        day = self._today()
        for _ in range(self._probe_days):
            if known_max and day <= known_max:
                return None
            if self._executor.find(scope, date=day).items:
                return day
            day = add_days(day, -1)
        return None

    def _edge_sample(self, scope: Scope) -> tuple[str | None, str | None]:
        order = ((ID_FIELD, 1),)
        head = self._sample(scope, order, self._edge_limit)
        tail = self._sample(scope, order, self._edge_limit, from_end=True)
        dates = _valid_dates(head + tail, self._tz)
        if not dates:
            return None, None
        return min(dates), max(dates)
