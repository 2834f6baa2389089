"""Prize hydration for single draws and bounded-concurrency batches."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor

from palpitaco.models.draw import Draw, Prize
from palpitaco.repositories.query_executor import QueryExecutor
from palpitaco.services.cache import TTLCache, cache_key
from palpitaco.services.prize_normalizer import filter_positions, normalize_prizes

logger = logging.getLogger(__name__)


class PrizeHydrator:
    """Resolves the prize list of a draw, embedded first, child collection second.

    The full, unfiltered and position-sorted set is cached per draw; the
    position filter is applied on the way out.
    """

    def __init__(self, executor: QueryExecutor, cache: TTLCache) -> None:
        self._executor = executor
        self._cache = cache

    def _load(self, draw: Draw) -> tuple[Prize, ...]:
        if draw.raw_prizes:
            embedded = normalize_prizes(draw.raw_prizes)
            if embedded:
                dropped = len(draw.raw_prizes) - len(embedded)
                if dropped:
                    logger.debug("Draw %s: dropped %s embedded prize entr(ies)", draw.id, dropped)
                return tuple(embedded)
            logger.debug("Draw %s: embedded prizes unusable, reading child collection", draw.id)

        if not draw.id:
            return ()

        raws = self._executor.read_prizes(draw.id)
        prizes = normalize_prizes(raws)
        if len(prizes) != len(raws):
            logger.debug("Draw %s: dropped %s child prize entr(ies)", draw.id, len(raws) - len(prizes))
        return tuple(prizes)

    def all_prizes(self, draw: Draw) -> tuple[Prize, ...]:
        if not draw.id:
            return self._load(draw)
        key = cache_key("prizes", draw.partition, draw_id=draw.id)
        return self._cache.get_or_load(key, lambda: self._load(draw))

    def hydrate(self, draw: Draw, positions: Iterable[int] | None = None) -> list[Prize]:
        return filter_positions(self.all_prizes(draw), positions)

    def hydrate_draw(self, draw: Draw, positions: Iterable[int] | None = None) -> Draw:
        return draw.with_prizes(tuple(self.hydrate(draw, positions)))


def pool_size(count: int, min_workers: int = 4, max_workers: int = 10) -> int:
    """Concurrency cap for ``count`` draws: 4 up to 20, 6 up to 100, 8 up to 300, then 10."""

    if count <= 20:
        size = 4
    elif count <= 100:
        size = 6
    elif count <= 300:
        size = 8
    else:
        size = 10
    size = max(min_workers, min(max_workers, size))
    return max(1, min(size, count)) if count else 1


class HydrationPool:
    """Hydrates many draws on a worker pool; output order follows input order."""

    def __init__(self, hydrator: PrizeHydrator, min_workers: int = 4, max_workers: int = 10) -> None:
        self._hydrator = hydrator
        self._min = min_workers
        self._max = max_workers

    def hydrate_all(self, draws: Sequence[Draw], positions: Iterable[int] | None = None) -> list[Draw]:
        if not draws:
            return []

        wanted = tuple(positions) if positions else None
        workers = pool_size(len(draws), self._min, self._max)
        logger.debug("Hydrating %s draw(s) with %s worker(s)", len(draws), workers)

        if workers == 1:
            return [self._hydrator.hydrate_draw(d, wanted) for d in draws]

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="hydrate") as pool:
            return list(pool.map(lambda d: self._hydrator.hydrate_draw(d, wanted), draws))
