from __future__ import annotations

import asyncio
import importlib
import logging
import os
from typing import Optional

from dotenv import load_dotenv

from config import get_settings_module

from .api.client import TokenProvider
from .container import Container, build_container
from .database.bootstrap import create_schema, list_tables
from .network.monitor import NetworkMonitor
from .sync.background import SessionProvider

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


class EnvTokenProvider:
    """Bearer token from the API_TOKEN environment variable. Cannot refresh."""

    def get_token(self) -> Optional[str]:
        return os.getenv("API_TOKEN") or None

    def refresh_token(self) -> Optional[str]:
        return None


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, str(level).upper(), logging.INFO), format=LOG_FORMAT)


def create_runtime(
    *,
    token_provider: Optional[TokenProvider] = None,
    session_provider: Optional[SessionProvider] = None,
    network: Optional[NetworkMonitor] = None,
) -> Container:
    load_dotenv(override=False)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    db_config = getattr(settings, "DB_CONFIG")
    api_config = getattr(settings, "API_CONFIG")
    logger.debug("settings=%s db=%s api=%s", settings_module, db_config.get("path"), api_config.get("base_url"))

    container = build_container(
        db_config=db_config,
        api_config=api_config,
        retry_config=getattr(settings, "RETRY_CONFIG", None),
        token_provider=token_provider or EnvTokenProvider(),
        network=network,
        session_provider=session_provider,
        sync_interval_seconds=float(getattr(settings, "SYNC_INTERVAL_SECONDS", 300)),
    )

    if bool(getattr(settings, "AUTO_INIT_DB", True)):
        create_schema(container.conn)
        logger.info("Local store ready (tables=%s)", len(list_tables(container.conn)))

    return container


async def _sync_once(container: Container, email: str, user_id: str) -> int:
    result = await container.coordinator.sync_all(email, user_id)
    drained = await container.coordinator.process_sync_queue()
    logger.info("sync_all=%s queue=%s", result, drained)
    return 0 if result.success else 1


def main() -> int:
    """Run a single sync pass for SYNC_EMAIL / SYNC_USER_ID."""
    container = create_runtime()
    email = os.getenv("SYNC_EMAIL", "")
    user_id = os.getenv("SYNC_USER_ID", "")
    if not email or not user_id:
        logger.error("SYNC_EMAIL and SYNC_USER_ID must be set")
        return 2
    return asyncio.run(_sync_once(container, email, user_id))


if __name__ == "__main__":
    raise SystemExit(main())
