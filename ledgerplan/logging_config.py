import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import Optional


APP_LOGGER_NAME = "ledgerplan"


def setup_logging(
    app_log_level: Optional[str] = None,
    third_party_log_level: Optional[str] = None,
    log_file: Optional[str] = None,
    max_file_size: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5,
) -> logging.Logger:
    """
    Set up logging for the ledger service and its maintenance scripts.

    Args:
        app_log_level: Log level for scheduler, reconciliation and API logs (default: INFO)
        third_party_log_level: Log level for SQLAlchemy, alembic and uvicorn (default: WARNING)
        log_file: Optional log file path. If None, logs only to console
        max_file_size: Maximum size of log file before rotation (bytes)
        backup_count: Number of backup log files to keep

    Returns:
        The "ledgerplan" logger every module logger hangs under
    """
    # Explicit arguments win over the environment (.env is loaded by ledgerplan.config)
    app_log_level = app_log_level or os.getenv("APP_LOG_LEVEL", "INFO")
    third_party_log_level = third_party_log_level or os.getenv("THIRD_PARTY_LOG_LEVEL", "WARNING")
    log_file = log_file or os.getenv("LOG_FILE")

    # Unknown level names fall back to the defaults
    app_level = getattr(logging, app_log_level.upper(), logging.INFO)
    third_party_level = getattr(logging, third_party_log_level.upper(), logging.WARNING)

    # Root of ledgerplan.services.*, ledgerplan.crud.*, ledgerplan.routers.* and the job loggers
    app_logger = logging.getLogger(APP_LOGGER_NAME)
    app_logger.setLevel(app_level)

    # The app lifespan and the maintenance job both call this; clear to avoid duplicates
    app_logger.handlers.clear()

    formatter = logging.Formatter(
        fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    # Console handler
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(app_level)
    console_handler.setFormatter(formatter)
    app_logger.addHandler(console_handler)

    # File handler, for the nightly job mostly
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_file_size,
            backupCount=backup_count
        )
        file_handler.setLevel(app_level)
        file_handler.setFormatter(formatter)
        app_logger.addHandler(file_handler)

    # SQL statements stay quiet unless SQL_ECHO or THIRD_PARTY_LOG_LEVEL asks for them
    third_party_loggers = [
        "sqlalchemy.engine",
        "sqlalchemy.engine.Engine",
        "sqlalchemy.dialects",
        "sqlalchemy.pool",
        "sqlalchemy.orm",
        "alembic",
        "uvicorn.access",
        "uvicorn.error",
        "httpx",
        "faker",
    ]

    for logger_name in third_party_loggers:
        logging.getLogger(logger_name).setLevel(third_party_level)

    # Prevent duplicate logs by not propagating to root logger
    app_logger.propagate = False

    return app_logger


def get_logger(name: str = APP_LOGGER_NAME) -> logging.Logger:
    """
    Get a logger under the "ledgerplan" namespace.

    Args:
        name: Logger name, typically __name__ ("ledgerplan.services.scheduler")
            or a job name ("plan_maintenance_job" becomes "ledgerplan.plan_maintenance_job")

    Returns:
        Logger instance
    """
    if name == APP_LOGGER_NAME or name.startswith(f"{APP_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{APP_LOGGER_NAME}.{name}")
