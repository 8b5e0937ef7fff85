# Overview: Flask extension instances for database metadata and migrations, plus the app's ledger store.
from flask import current_app
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

db = SQLAlchemy()
migrate = Migrate()

LEDGER_STORE_KEY = "ledger_store"


def get_store():
    """The LedgerStore owned by the current application."""
    return current_app.extensions[LEDGER_STORE_KEY]
