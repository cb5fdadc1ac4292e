"""
FLASK APP - HOTP SECOND FACTOR SERVER
=====================================

Builds the Flask app, enables CORS and registers the /api/tfa blueprint.

The validator is created once per app and kept in app.extensions["tfa"],
so every request shares the same per-account locks.
"""
from flask import Flask
from flask_cors import CORS

from tfa_backend.api import tfa_bp
from tfa_core.logger import configure_app_logging
from tfa_core.settings import TfaSettings, get_settings
from tfa_core.store import SecretStore
from tfa_core.validator import build_validator
from tfa_database import SqliteSecretStore


def create_app(settings: TfaSettings | None = None, store: SecretStore | None = None) -> Flask:
    """
    App factory.

    Arguments:
        settings: engine settings (defaults to environment / .env)
        store: SecretStore to use (defaults to sqlite at settings.database_file)

    Raises:
        CipherUnavailableError: the configured cipher cannot run here
    """
    if settings is None:
        settings = get_settings()
    if store is None:
        store = SqliteSecretStore(settings.database_file)

    app = Flask(__name__)
    # CORS lets a frontend served from another origin call the API
    CORS(app)

    app.extensions["tfa"] = build_validator(settings, store)

    app.register_blueprint(tfa_bp)

    return app


# RUN THE DEVELOPMENT SERVER
if __name__ == '__main__':
    _settings = get_settings()
    configure_app_logging(_settings.log_level)
    create_app(_settings).run(host='127.0.0.1', port=5000)
