"""Entry point for the tablepos Textual app."""

from __future__ import annotations

import logging

from tablepos.config import load_settings
from tablepos.gateway import build_gateway
from tablepos.log import configure_logging
from tablepos.pos_app import TablePosApp
from tablepos.session import PosSession

logger = logging.getLogger(__name__)


def main() -> None:
    """Run the Textual application."""
    settings = load_settings()
    configure_logging(settings.log_path, settings.log_level)
    gateway = build_gateway(settings)
    logger.info(
        "app_start gateway=%s release_table_on_close=%s",
        "local" if settings.uses_local_gateway else settings.api_base_url,
        settings.release_table_on_close,
    )
    session = PosSession(gateway, release_table_on_close=settings.release_table_on_close)
    TablePosApp(session).run()


if __name__ == "__main__":
    main()
