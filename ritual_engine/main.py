"""
Ritual engine entry point.

Wires settings, logging, the metrics database, the content catalog and the
services into one RitualSessionService for the UI:

    async with ritual_engine_lifespan() as engine:
        engine.start(...)
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from ritual_engine.core.clock import Clock, Scheduler
from ritual_engine.core.config import RitualConfig, Settings, load_ritual_config, settings
from ritual_engine.core.logging import configure_logging, get_logger
from ritual_engine.persistence.database import init_database
from ritual_engine.persistence.repositories import MetricsRepository
from ritual_engine.services import ContentCatalog, MetricsLedgerService, RitualSessionService

log = get_logger(__name__)


async def create_engine(
    app_settings: Optional[Settings] = None,
    config: Optional[RitualConfig] = None,
    clock: Optional[Clock] = None,
    scheduler: Optional[Scheduler] = None,
) -> RitualSessionService:
    """
    Build a ready-to-use engine with its ledger loaded from storage.

    Args:
        app_settings: Paths and logging options (module-level settings if None)
        config: Ritual policy (loaded from app_settings.config_dir if None)
        clock: Time source shared by the engine and the ledger
        scheduler: Phase timer scheduler (running asyncio loop if None)

    Raises:
        ConfigurationError: ritual_config.yaml is invalid
        ContentError: The content catalog is malformed
    """
    app_settings = app_settings or settings
    configure_logging(app_settings)

    log.info(
        "application_starting",
        debug=app_settings.debug,
        config_dir=str(app_settings.config_dir),
        database_path=str(app_settings.database_path),
    )

    config = config or load_ritual_config(app_settings.config_dir / "ritual_config.yaml")
    catalog = ContentCatalog.from_file(app_settings.config_dir / "content" / "catalog.yaml")

    await init_database(app_settings.database_path)
    metrics = MetricsLedgerService(
        repository=MetricsRepository(str(app_settings.database_path)),
        config=config,
        clock=clock,
    )
    await metrics.load()

    engine = RitualSessionService(
        metrics=metrics,
        catalog=catalog,
        config=config,
        clock=clock,
        scheduler=scheduler,
    )
    log.info("application_started", scripts=len(catalog))
    return engine


async def shutdown(engine: RitualSessionService) -> bool:
    """
    Stop the engine: abandon a ritual left running and flush the ledger.

    Returns:
        True when the ledger is fully saved
    """
    log.info("application_shutting_down", active_session=engine.has_active_session)
    if engine.has_active_session:
        await engine.abandon()
    saved = await engine.metrics.flush()
    if not saved:
        log.warning("ledger_unsaved_at_shutdown")
    return saved


@asynccontextmanager
async def ritual_engine_lifespan(
    app_settings: Optional[Settings] = None,
    config: Optional[RitualConfig] = None,
) -> AsyncIterator[RitualSessionService]:
    engine = await create_engine(app_settings, config)
    try:
        yield engine
    finally:
        await shutdown(engine)
