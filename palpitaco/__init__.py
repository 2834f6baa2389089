"""Flask application package."""

from __future__ import annotations

from typing import Any

from dotenv import load_dotenv
from flask import Flask

from palpitaco.repositories.draw_store import DrawStore


def create_app(test_config: dict[str, Any] | None = None, store: DrawStore | None = None) -> Flask:
    """Application factory.

    Args:
        test_config: Config overrides applied after the environment config.
        store: Draw store to use instead of a MongoDB-backed one.

    Returns:
        Configured Flask application.
    """
    load_dotenv()

    from palpitaco.config import get_config
    from palpitaco.db import init_db
    from palpitaco.error_handlers import register_error_handlers
    from palpitaco.extensions import init_services
    from palpitaco.logging_config import configure_logging
    from palpitaco.routes.draw import draw_bp
    from palpitaco.routes.health import health_bp
    from palpitaco.routes.staleness import staleness_bp

    app = Flask(__name__)
    app.config.from_object(get_config())
    if test_config:
        app.config.update(test_config)

    configure_logging(app)
    draw_store = init_db(app, store)
    init_services(app, draw_store)
    register_error_handlers(app)

    app.register_blueprint(health_bp)
    app.register_blueprint(draw_bp, url_prefix="/api")
    app.register_blueprint(staleness_bp, url_prefix="/api")

    return app
