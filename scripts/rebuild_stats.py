"""Recompute the cached stats of every event and club from their source rows."""

from __future__ import annotations

import importlib
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import get_settings_module

from src.campus_events.campus_events.common.log_setup import configure_logging
from src.campus_events.campus_events.container import build_container


def main() -> None:
    settings = importlib.import_module(get_settings_module())
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))
    container = build_container(db_config=dict(settings.DB_CONFIG))

    events_done, clubs_done = container.stats_service.rebuild_all()
    print(f"OK: Rebuilt stats for {events_done} events and {clubs_done} clubs")


if __name__ == "__main__":
    main()
