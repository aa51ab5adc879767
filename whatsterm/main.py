"""Process entry point and composition root."""

from __future__ import annotations

import asyncio
import sys

from pydantic import ValidationError

from whatsterm.channels.auth_state import use_multi_file_auth_state
from whatsterm.channels.qr import QRRenderer
from whatsterm.config import Settings, get_settings
from whatsterm.core.errors import StartupError
from whatsterm.core.pipeline import IngestionPipeline
from whatsterm.core.reconnect import ReconnectPolicy
from whatsterm.core.supervisor import ConnectionSupervisor, SupervisorExit
from whatsterm.db import DatabaseManager
from whatsterm.infra.logging_config import LoggingConfig, get_logger
from whatsterm.services.persistence_store import PersistenceStore
from whatsterm.utils.module_loading import import_string

logger = get_logger()


def load_settings() -> Settings:
    try:
        return get_settings()
    except ValidationError as e:
        raise StartupError(f"Invalid configuration: {e}") from e


def build_supervisor(
    settings: Settings, db_manager: DatabaseManager
) -> ConnectionSupervisor:
    """Wire the store, pipeline and supervisor for one process."""
    if not settings.socket_factory:
        raise StartupError("SOCKET_FACTORY is not configured")
    try:
        socket_factory = import_string(settings.socket_factory)
    except ImportError as e:
        raise StartupError(f"Cannot load socket factory: {e}") from e

    auth_state, save_creds = use_multi_file_auth_state(settings.auth_state_path)
    pipeline = IngestionPipeline(PersistenceStore(db_manager))
    policy = ReconnectPolicy(
        max_attempts=settings.reconnect_max_attempts,
        backoff_seconds=settings.reconnect_backoff_seconds,
        max_backoff_seconds=settings.reconnect_backoff_max_seconds,
    )
    return ConnectionSupervisor(
        socket_factory=socket_factory,
        auth_state=auth_state,
        save_creds=save_creds,
        pipeline=pipeline,
        policy=policy,
        qr_renderer=QRRenderer(enabled=settings.print_qr_in_terminal),
        protocol_version=settings.protocol_version,
    )


async def run() -> int:
    """Start the WhatsApp ingestion service; returns the process exit status."""
    db_manager = None
    try:
        settings = load_settings()
        LoggingConfig(settings.log_level)
        db_manager = DatabaseManager(
            settings.database_url_obj,
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
        )
        if settings.db_auto_create:
            db_manager.create_all()
        supervisor = build_supervisor(settings, db_manager)
        reason = await supervisor.run()
    except StartupError as e:
        logger.error("Failed to start WhatsApp service: %s", e)
        return 1
    except Exception as e:
        logger.exception("Failed to start WhatsApp service: %s", e)
        return 1
    finally:
        if db_manager is not None:
            db_manager.dispose()

    logger.info("WhatsApp service stopped: %s", reason.value)
    if reason is SupervisorExit.LOGGED_OUT:
        logger.error("Session credentials are no longer valid; pair the device again.")
    return 0


def main() -> None:
    sys.exit(asyncio.run(run()))


if __name__ == "__main__":
    main()
