"""
Logging configuration for SwapTracker.

Features:
- Separate log files for the system and the transaction diagnostic stream
- Rotating file handlers (max 50MB per file, keep 5 backups)
- Automatic cleanup of old logs (keeps last 7 days)
- Console output for real-time monitoring
- Wall-clock timestamp prefix on every line
"""
import logging
import logging.handlers
from pathlib import Path
from datetime import datetime, timedelta
import glob


# Log directory structure
LOG_DIR = Path("logs")

# Separate log files for different purposes
SYSTEM_LOG = LOG_DIR / "system.log"
TRANSACTIONS_LOG = LOG_DIR / "transactions.log"
ERRORS_LOG = LOG_DIR / "errors.log"

# Parent of the events / fetch / swaps diagnostic loggers
DIAGNOSTICS_LOGGER = "swaptracker"
SWAPS_LOGGER = "swaptracker.swaps"

# Rotation settings
MAX_BYTES = 50 * 1024 * 1024  # 50 MB per file
BACKUP_COUNT = 5

# Cleanup settings
LOG_RETENTION_DAYS = 7


def _rotating_handler(path: Path, level: int, formatter: logging.Formatter) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        path,
        maxBytes=MAX_BYTES,
        backupCount=BACKUP_COUNT,
        encoding='utf-8'
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(log_level: str = "INFO") -> dict:
    """
    Configure logging with rotation and cleanup.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)

    Returns:
        dict: Dictionary of specialized loggers
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    LOG_DIR.mkdir(exist_ok=True)

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    # Console handler (for real-time monitoring)
    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)

    # Configure root logger (catches all logs)
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    root_logger.addHandler(console_handler)
    root_logger.addHandler(_rotating_handler(SYSTEM_LOG, level, formatter))
    root_logger.addHandler(_rotating_handler(ERRORS_LOG, logging.ERROR, formatter))

    # Classification decisions, fetch outcomes, amounts and running total
    diagnostics_logger = logging.getLogger(DIAGNOSTICS_LOGGER)
    diagnostics_logger.handlers.clear()
    diagnostics_logger.addHandler(_rotating_handler(TRANSACTIONS_LOG, logging.DEBUG, formatter))
    diagnostics_logger.propagate = True  # Also log to root (console + system)

    # The rest of the world is noisy at DEBUG
    for noisy in ("websockets", "aiohttp"):
        logging.getLogger(noisy).setLevel(max(level, logging.INFO))

    cleanup_old_logs()

    root_logger.info("=" * 80)
    root_logger.info("SwapTracker logging system initialized")
    root_logger.info(f"Log directory: {LOG_DIR.absolute()}")
    root_logger.info(f"Log level: {log_level}")
    root_logger.info(f"Rotation: {MAX_BYTES // (1024*1024)} MB per file, {BACKUP_COUNT} backups")
    root_logger.info(f"Retention: {LOG_RETENTION_DAYS} days")
    root_logger.info("=" * 80)

    return {
        'system': root_logger,
        'diagnostics': diagnostics_logger,
        'swaps': logging.getLogger(SWAPS_LOGGER),
    }


def cleanup_old_logs():
    """
    Delete log files older than LOG_RETENTION_DAYS.

    Runs automatically on startup to prevent disk space issues.
    """
    cutoff_time = datetime.now() - timedelta(days=LOG_RETENTION_DAYS)
    deleted_count = 0
    total_size_freed = 0

    log_patterns = [
        LOG_DIR / "*.log",
        LOG_DIR / "*.log.*",  # Backup files (.log.1, .log.2, etc.)
    ]

    for pattern in log_patterns:
        for log_file in glob.glob(str(pattern)):
            log_path = Path(log_file)

            if not log_path.exists():
                continue

            try:
                mtime = datetime.fromtimestamp(log_path.stat().st_mtime)

                if mtime < cutoff_time:
                    file_size = log_path.stat().st_size
                    log_path.unlink()
                    deleted_count += 1
                    total_size_freed += file_size
            except OSError as e:
                logging.error(f"Error cleaning up {log_path}: {e}")

    if deleted_count > 0:
        size_mb = total_size_freed / (1024 * 1024)
        logging.info(f"Cleaned up {deleted_count} old log files ({size_mb:.2f} MB freed)")


# Convenience functions for common logging patterns

def log_swap(message: str, level: str = "INFO"):
    """Log a parsed amount or validation outcome to the swaps stream."""
    logger = logging.getLogger(SWAPS_LOGGER)
    log_func = getattr(logger, level.lower(), logger.info)
    log_func(message)


def log_total(message: str):
    """Log the running total to the swaps stream."""
    logging.getLogger(SWAPS_LOGGER).info(message)
