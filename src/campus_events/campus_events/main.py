from __future__ import annotations

import importlib
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask
from loguru import logger

from config import get_settings_module

from .common.log_setup import configure_logging
from .container import Container, build_container
from .database.bootstrap import apply_schema, ensure_demo_data, list_tables

from .attendance.controller import register as register_attendance
from .clubs.controller import register as register_clubs
from .events.controller import register as register_events
from .feedback.controller import register as register_feedback
from .registrations.controller import register as register_registrations
from .users.controller import register as register_users

SCHEMA_PATH = Path(__file__).resolve().parents[3] / "database" / "schema.sql"


def create_app(settings_module: Optional[str] = None, container: Optional[Container] = None) -> Flask:
    """Build the Flask app; pass ``container`` to run on repositories other than MySQL."""
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = settings_module or get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    if container is None:
        db_config = getattr(settings, "DB_CONFIG")
        logger.info(
            "settings={} db={}@{}:{}/{}",
            settings_module,
            db_config.get("user"),
            db_config.get("host"),
            db_config.get("port", 3306),
            db_config.get("database"),
        )

        if bool(getattr(settings, "AUTO_INIT_DB", False)):
            apply_schema(db_config, schema_path=SCHEMA_PATH)
            logger.info("Schema ready (tables={})", len(list_tables(db_config)))
        if bool(getattr(settings, "AUTO_SEED_DB", False)):
            ensure_demo_data(db_config)
            logger.info("Demo seed ready")

        container = build_container(
            db_config=db_config,
            qr_code_ttl_minutes=int(getattr(settings, "QR_CODE_TTL_MINUTES", 60)),
        )

    app.extensions["campus_events.container"] = container

    register_users(app, container)
    register_clubs(app, container)
    register_events(app, container)
    register_registrations(app, container)
    register_attendance(app, container)
    register_feedback(app, container)

    return app
