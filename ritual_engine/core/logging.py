"""
Structured logging for the ritual engine, built on structlog.

configure_logging() is called once by the composition root with the
application Settings. Each run writes its own log file under
settings.logs_dir, named ritual_YYYYMMDD_HHMMSS.log, and only the newest
settings.log_sessions_to_keep run logs are kept.

Users type free text about the bonds they release (labels, notes, spoken
transcripts). Those fields are masked before any renderer sees them.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, List, MutableMapping, Optional

import structlog
from structlog.typing import Processor

from ritual_engine.core.config import Settings, settings

RUN_LOG_PREFIX = "ritual_"
PRIVATE_FIELDS = frozenset({"label", "notes", "transcript"})
REDACTED = "[redacted]"


def redact_private_fields(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """structlog processor masking user-entered text."""
    for key in PRIVATE_FIELDS.intersection(event_dict):
        if event_dict[key]:
            event_dict[key] = REDACTED
    return event_dict


def _prune_run_logs(logs_dir: Path, keep: int) -> List[Path]:
    """Delete all but the `keep` newest run logs.

    Run log names sort chronologically, so the newest are last.

    Returns:
        Files that could not be removed
    """
    run_logs = sorted(logs_dir.glob(f"{RUN_LOG_PREFIX}*.log"))
    stale = run_logs[: max(len(run_logs) - keep, 0)]

    failed = []
    for path in stale:
        try:
            path.unlink()
        except OSError:
            failed.append(path)
    return failed


def _new_run_log(logs_dir: Path) -> Path:
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    path = logs_dir / f"{RUN_LOG_PREFIX}{stamp}.log"
    n = 1
    # Two runs within one second
    while path.exists():
        path = logs_dir / f"{RUN_LOG_PREFIX}{stamp}_{n}.log"
        n += 1
    return path


def _processors(debug: bool) -> List[Processor]:
    processors: List[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        redact_private_fields,
    ]
    if debug:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))
    else:
        processors += [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]
    return processors


def _install_handlers(log_file: Path, level: int) -> None:
    root = logging.getLogger()
    # Reconfiguration replaces the previous run's handlers
    for handler in root.handlers[:]:
        handler.close()
        root.removeHandler(handler)
    root.setLevel(level)

    plain = logging.Formatter("%(message)s")
    for handler in (
        logging.StreamHandler(),
        logging.FileHandler(log_file, mode="w", encoding="utf-8"),
    ):
        handler.setFormatter(plain)
        root.addHandler(handler)


def configure_logging(app_settings: Optional[Settings] = None) -> Path:
    """Configure structlog for one engine run.

    Args:
        app_settings: Source of logs_dir, log_sessions_to_keep and debug
            (default: the module-level settings)

    Returns:
        Path of this run's log file
    """
    app_settings = app_settings or settings
    logs_dir = Path(app_settings.logs_dir)
    logs_dir.mkdir(parents=True, exist_ok=True)

    # Leave room for the file this run is about to create
    failed = _prune_run_logs(logs_dir, keep=app_settings.log_sessions_to_keep - 1)
    log_file = _new_run_log(logs_dir)

    level = logging.DEBUG if app_settings.debug else logging.INFO
    _install_handlers(log_file, level)

    structlog.configure(
        processors=_processors(app_settings.debug),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    log = get_logger(__name__)
    for path in failed:
        log.warning("run_log_prune_failed", path=str(path))
    log.info("logging_configured", log_file=str(log_file), debug=app_settings.debug)
    return log_file


def get_logger(name: str) -> structlog.BoundLogger:
    return structlog.get_logger(name)


def bind_context(**kwargs) -> None:
    """Attach fields to every log event until clear_context() (e.g. session_id)."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
