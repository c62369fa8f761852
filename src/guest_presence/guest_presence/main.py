from __future__ import annotations

import atexit
import importlib
import logging
from typing import Optional

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .activity.controller import register as register_activity
from .common.web import domain_error_response, error_response
from .container import Container, build_container
from .core.exceptions import DomainError, StorageError
from .database.bootstrap import apply_schema, list_tables
from .guests.controller import register as register_guests
from .presence.controller import register as register_presence

log = logging.getLogger(__name__)


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app(settings_module: Optional[str] = None, container: Optional[Container] = None) -> Flask:
    """Build the Flask app.

    A prebuilt ``container`` (for example one assembled over in-memory
    repositories) skips every database step.
    """

    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = settings_module or get_settings_module()
    settings = importlib.import_module(settings_module)
    _configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))

    if container is None:
        db_config = getattr(settings, "DB_CONFIG")
        log.info(
            "settings=%s db=%s@%s:%s/%s",
            settings_module,
            db_config.get("user"),
            db_config.get("host"),
            db_config.get("port", 3306),
            db_config.get("database"),
        )
        if bool(getattr(settings, "AUTO_INIT_DB", False)):
            apply_schema(db_config)
            log.info("schema ready (tables=%d)", len(list_tables(db_config)))
        container = build_container(db_config=db_config, settings=settings)
        atexit.register(container.close)

    app.extensions["container"] = container

    @app.errorhandler(DomainError)
    def handle_domain_error(exc: DomainError):
        return domain_error_response(exc)

    @app.errorhandler(StorageError)
    def handle_storage_error(exc: StorageError):
        log.error("Storage failure: %s", exc)
        return error_response("STORAGE_ERROR", "Storage is unavailable", 500)

    register_guests(app, container)
    register_presence(app, container)
    register_activity(app, container)

    return app
