"""Create the composite indexes ranged draw queries rely on.

Every partition filter shape is crossed with every queried date field,
the same way the query layer builds its queries, so the indexes named by
a "missing index" error are exactly the ones created here.

Usage:
  python scripts/create_indexes.py
  python scripts/create_indexes.py --partition RJ --partition FEDERAL --dry-run
"""

from __future__ import annotations

import argparse
import logging
import pathlib
import sys
from collections.abc import Sequence

from dotenv import load_dotenv
from pymongo import ASCENDING, MongoClient
from pymongo.errors import PyMongoError

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[1]
sys.path.insert(0, str(PROJECT_ROOT))
# Config class attributes read the environment at import time.
load_dotenv(PROJECT_ROOT / ".env")

from palpitaco.config import get_config  # noqa: E402
from palpitaco.repositories.draw_store import composite_index_keys  # noqa: E402
from palpitaco.repositories.query_executor import DATE_ORDER_FIELD, QueryExecutor  # noqa: E402
from palpitaco.services.scope_service import FEDERAL, PT_RIO, resolve_scope  # noqa: E402

logger = logging.getLogger(__name__)


def index_plan(partitions: Sequence[str]) -> list[list[tuple[str, int]]]:
    """Distinct composite key lists needed by ranged queries over ``partitions``."""

    # Only the query shapes are needed; no store is touched.
    executor = QueryExecutor(store=None)  # type: ignore[arg-type]
    seen: set[tuple[tuple[str, int], ...]] = set()
    plan: list[list[tuple[str, int]]] = []

    for raw in partitions:
        scope = resolve_scope(raw)
        queries = executor.build_queries(
            scope,
            date_from="0000-01-01",
            date_to="9999-12-31",
            order_by=((DATE_ORDER_FIELD, 1),),
        )
        for _, query in queries:
            keys = composite_index_keys(query)
            sig = tuple(keys)
            if sig in seen:
                continue
            seen.add(sig)
            plan.append(keys)
    return plan


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create composite indexes on the draws collection")
    parser.add_argument("--partition", dest="partitions", action="append", default=None)
    parser.add_argument("--mongo-uri", dest="mongo_uri", type=str, default=None)
    parser.add_argument("--mongo-db", dest="mongo_db", type=str, default=None)
    parser.add_argument("--dry-run", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")

    cfg = get_config()
    mongo_uri = args.mongo_uri or cfg.MONGODB_URI
    mongo_db = args.mongo_db or cfg.MONGODB_DB
    partitions = args.partitions or [PT_RIO, FEDERAL]

    plan = index_plan(partitions)
    for keys in plan:
        logger.info("Index on %s: %s", cfg.DRAWS_COLLECTION, ", ".join(f for f, _ in keys))
    logger.info("Index on %s: draw_id, position", cfg.PRIZES_COLLECTION)

    if args.dry_run:
        return 0

    client = MongoClient(mongo_uri)
    db = client[mongo_db]

    failed = 0
    for keys in plan:
        try:
            name = db[cfg.DRAWS_COLLECTION].create_index(keys)
            logger.info("Created %s", name)
        except PyMongoError:
            failed += 1
            logger.exception("Failed to create index %s", keys)

    try:
        db[cfg.PRIZES_COLLECTION].create_index([("draw_id", ASCENDING), ("position", ASCENDING)])
    except PyMongoError:
        failed += 1
        logger.exception("Failed to create prizes index")

    return 1 if failed else 0


if __name__ == "__main__":
    raise SystemExit(main())
