# backend/printpos/__init__.py
import logging
import os

from flask import Flask, request
from sqlalchemy.engine import make_url

from .config import Config
from .extensions import db, migrate, LEDGER_STORE_KEY
from .store import LedgerStore


def _resolve_sqlite_uri(uri: str, instance_path: str) -> str:
    """
    Place a relative SQLite file in the instance folder, the same way
    Flask-SQLAlchemy does, so migrations and the ledger store share one file.
    """
    url = make_url(uri)
    if url.get_backend_name() != "sqlite":
        return uri
    database = url.database
    if not database or database == ":memory:" or os.path.isabs(database):
        return uri
    os.makedirs(instance_path, exist_ok=True)
    return url.set(database=os.path.join(instance_path, database)).render_as_string(hide_password=False)


def create_app(overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)
        if "DATABASE_URL" in overrides and "SQLALCHEMY_DATABASE_URI" not in overrides:
            app.config["SQLALCHEMY_DATABASE_URI"] = overrides["DATABASE_URL"]

    database_uri = _resolve_sqlite_uri(app.config["SQLALCHEMY_DATABASE_URI"], app.instance_path)
    app.config["SQLALCHEMY_DATABASE_URI"] = database_uri
    app.config["DATABASE_URL"] = database_uri

    app.logger.setLevel(getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # The ledger store owns its own engine over the same metadata
    store = LedgerStore(database_uri).open(seed=app.config.get("SEED_DEFAULTS", True))
    app.extensions[LEDGER_STORE_KEY] = store

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.products import products_bp
    from .routes.sales import sales_bp
    from .routes.purchases import purchases_bp
    from .routes.credit import credit_bp
    from .routes.reports import reports_bp
    from .routes.settings import settings_bp
    from .routes.advisor import advisor_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(purchases_bp)
    app.register_blueprint(credit_bp)
    app.register_blueprint(reports_bp)
    app.register_blueprint(settings_bp)
    app.register_blueprint(advisor_bp)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allowed_origins = {
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:4173",
            "http://127.0.0.1:4173",
        }
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,PATCH,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
