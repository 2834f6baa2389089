"""MongoDB client and draw store management.

One client per app; pymongo pools connections internally.
"""

from __future__ import annotations

import logging

from flask import Flask, current_app
from pymongo import MongoClient

from palpitaco.repositories.draw_store import DrawStore, MongoDrawStore

logger = logging.getLogger(__name__)


def create_mongo_client(uri: str) -> MongoClient:
    # Connection is lazy; the first query surfaces an unreachable server.
    return MongoClient(uri, serverSelectionTimeoutMS=5000, tz_aware=True)


def init_db(app: Flask, store: DrawStore | None = None) -> DrawStore:
    """Attach the draw store to the app, building a Mongo-backed one unless given."""

    if store is None:
        client = create_mongo_client(str(app.config["MONGODB_URI"]))
        db = client[str(app.config["MONGODB_DB"])]
        store = MongoDrawStore(
            db,
            draws_collection=str(app.config.get("DRAWS_COLLECTION", "draws")),
            prizes_collection=str(app.config.get("PRIZES_COLLECTION", "prizes")),
            require_composite_index=bool(app.config.get("REQUIRE_COMPOSITE_INDEX", False)),
        )
        app.extensions["mongo_client"] = client
        logger.info("Draw store: MongoDB database %s", app.config["MONGODB_DB"])

    app.extensions["draw_store"] = store
    return store


def get_store() -> DrawStore:
    """Get the current app's draw store."""

    store: DrawStore | None = current_app.extensions.get("draw_store")
    if store is None:
        raise RuntimeError("Draw store not initialized")
    return store
