# backend/billing/__init__.py
import logging

from flask import Flask, request
from sqlalchemy import event
from sqlalchemy.exc import SQLAlchemyError

from .config import Config
from .extensions import db, migrate
from .logging_config import setup_logging

logger = logging.getLogger(__name__)


def _enable_sqlite_savepoints(engine) -> None:
    """
    pysqlite issues its own BEGIN lazily, which breaks SAVEPOINT handling.
    Hand transaction control to SQLAlchemy so begin_nested() works.
    """
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


def bootstrap() -> None:
    """Create tables and the universal item. Idempotent."""
    from .services.inventory_service import ensure_universal_item

    db.create_all()
    ensure_universal_item()


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    setup_logging(app.config.get("LOG_LEVEL", "INFO"), app.config.get("LOG_DIR"))
    app.config["MAX_CONTENT_LENGTH"] = app.config.get("MAX_UPLOAD_BYTES")

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    with app.app_context():
        if db.engine.dialect.name == "sqlite":
            _enable_sqlite_savepoints(db.engine)

    # Register blueprints
    from .routes.system import system_bp
    from .routes.parties import parties_bp
    from .routes.items import items_bp
    from .routes.purchases import purchases_bp
    from .routes.sales import sales_bp
    from .routes.payments import payments_bp
    from .routes.uploads import uploads_bp
    from .routes.whatsapp import whatsapp_bp
    from .routes.ledger import ledger_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(parties_bp)
    app.register_blueprint(items_bp)
    app.register_blueprint(purchases_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(payments_bp)
    app.register_blueprint(uploads_bp)
    app.register_blueprint(whatsapp_bp)
    app.register_blueprint(ledger_bp)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allowed_origins = {
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        }
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    if app.config.get("BOOTSTRAP_ON_STARTUP"):
        with app.app_context():
            try:
                bootstrap()
            except SQLAlchemyError:
                logger.exception("Startup bootstrap failed; refusing to start")
                raise

    return app
