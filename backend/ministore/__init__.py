# backend/ministore/__init__.py
import atexit
import logging

from flask import Flask

from .config import Config
from .extensions import db, migrate

__version__ = "2.0.0"


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    app.logger.setLevel(getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # One Store per app; loaded lazily on first use inside an app context
    from .services.store_service import EXTENSION_KEY, build_store
    store = build_store(app.config)
    app.extensions[EXTENSION_KEY] = store
    if not app.config.get("TESTING"):
        atexit.register(_flush_on_exit, store)

    # Register blueprints
    from .routes.system import system_bp
    from .routes.products import products_bp
    from .routes.sales import sales_bp
    from .routes.restock import restock_bp
    from .routes.pricing import pricing_bp
    from .routes.reports import reports_bp
    from .routes.settings import settings_bp
    from .routes.backup import backup_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(restock_bp)
    app.register_blueprint(pricing_bp)
    app.register_blueprint(reports_bp)
    app.register_blueprint(settings_bp)
    app.register_blueprint(backup_bp)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app


def _flush_on_exit(store) -> None:
    try:
        store.flush()
    except Exception:
        logging.getLogger(__name__).warning("Pending remote write lost at shutdown", exc_info=True)
    finally:
        store.close()
