"""
Logging configuration and utilities.
统一管理业务日志配置（预测、数据仓库、命令行等）
支持按天轮转、保留策略和自动清理
"""

import logging
import logging.handlers
import sys
import time
from pathlib import Path
from typing import Optional, Dict, Any
from datetime import datetime, timedelta
import threading

import schedule
import structlog

from price_trend_monitor.utils.errors import handle_error


_cleanup_thread: Optional[threading.Thread] = None


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    retention_days: int = 7,
    start_cleanup: bool = True
) -> None:
    """
    Set up structured logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional log file path
        retention_days: Number of days to retain rotated log files
        start_cleanup: Whether to start the background log cleanup job
    """
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper()))
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    ))
    root_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        # 每天午夜轮转一次，保留指定天数
        file_handler = logging.handlers.TimedRotatingFileHandler(
            log_file,
            when='midnight',
            interval=1,
            backupCount=retention_days,
            encoding='utf-8'
        )
        file_handler.suffix = "%Y-%m-%d"
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
        ))
        root_logger.addHandler(file_handler)

        if start_cleanup:
            _start_log_cleanup_scheduler(log_path.parent, retention_days)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Standard library logger
    """
    return logging.getLogger(name)


def get_structured_logger(name: str):
    """Get a structlog logger bound to the stdlib logger of the same name."""
    return structlog.get_logger(name)


def get_business_logger(business_name: str, log_level: str = "INFO",
                        logs_dir: Optional[Path] = None) -> logging.Logger:
    """
    Get a per-business logger writing to its own rotating file.

    Args:
        business_name: Business area name (e.g. 'prediction', 'repository')
        log_level: Logging level
        logs_dir: Directory for log files (default: <project>/logs)

    Returns:
        Configured logger
    """
    business_logs = {
        "prediction": "prediction.log",
        "repository": "repository.log",
        "database": "database.log",
        "chart": "chart.log",
        "cli": "cli.log",
        "system": "system.log",
        "error": "error.log",
    }

    if logs_dir is None:
        logs_dir = Path(__file__).parent.parent.parent / "logs"
    log_path = Path(logs_dir) / business_logs.get(business_name, f"{business_name}.log")

    logger = logging.getLogger(f"business.{business_name}")

    # 已经配置过则直接返回
    if logger.handlers:
        return logger

    logger.setLevel(getattr(logging, log_level.upper()))
    log_path.parent.mkdir(parents=True, exist_ok=True)

    file_handler = logging.handlers.TimedRotatingFileHandler(
        log_path,
        when='midnight',
        interval=1,
        backupCount=7,
        encoding='utf-8'
    )
    file_handler.suffix = "%Y-%m-%d"
    file_handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    ))
    logger.addHandler(file_handler)

    # 控制台只输出ERROR及以上
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.ERROR)
    console_handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    ))
    logger.addHandler(console_handler)

    return logger


def _start_log_cleanup_scheduler(logs_dir: Path, retention_days: int) -> None:
    """Start the daily log cleanup job in a daemon thread."""
    global _cleanup_thread

    if _cleanup_thread is not None and _cleanup_thread.is_alive():
        return

    def cleanup_job():
        try:
            cleanup_old_logs(logs_dir, retention_days)
        except OSError as e:
            handle_error(e, logging.getLogger(__name__),
                         {"logs_dir": str(logs_dir)}, reraise=False)

    schedule.every().day.at("02:00").do(cleanup_job)

    def run_scheduler():
        while True:
            schedule.run_pending()
            time.sleep(60)

    _cleanup_thread = threading.Thread(target=run_scheduler, daemon=True)
    _cleanup_thread.start()


def cleanup_old_logs(logs_dir: Optional[Path] = None, retention_days: int = 7) -> int:
    """
    Delete log files older than the retention period.

    Args:
        logs_dir: Log directory
        retention_days: Number of days to keep

    Returns:
        Number of files removed
    """
    if logs_dir is None:
        logs_dir = Path(__file__).parent.parent.parent / "logs"
    logs_dir = Path(logs_dir)

    if not logs_dir.exists():
        return 0

    logger = logging.getLogger(__name__)
    cleaned_count = 0
    cutoff_date = datetime.now() - timedelta(days=retention_days)

    for log_file in logs_dir.glob("*.log*"):
        if not log_file.is_file():
            continue
        file_mtime = datetime.fromtimestamp(log_file.stat().st_mtime)
        if file_mtime < cutoff_date:
            log_file.unlink()
            cleaned_count += 1
            logger.debug(f"Removed expired log file: {log_file.name}")

    if cleaned_count > 0:
        logger.info(f"Log cleanup finished, removed {cleaned_count} files")

    return cleaned_count


def get_log_statistics(logs_dir: Optional[Path] = None) -> Dict[str, Any]:
    """Collect file counts and sizes for the log directory."""
    if logs_dir is None:
        logs_dir = Path(__file__).parent.parent.parent / "logs"
    logs_dir = Path(logs_dir)

    stats = {
        "total_files": 0,
        "total_size_mb": 0,
        "files_by_business": {},
        "oldest_log": None,
        "newest_log": None
    }

    if not logs_dir.exists():
        return stats

    oldest_time = None
    newest_time = None

    for log_file in logs_dir.glob("*.log*"):
        if not log_file.is_file():
            continue

        stats["total_files"] += 1
        file_size = log_file.stat().st_size
        stats["total_size_mb"] += file_size / 1024 / 1024

        file_mtime = datetime.fromtimestamp(log_file.stat().st_mtime)
        if oldest_time is None or file_mtime < oldest_time:
            oldest_time = file_mtime
            stats["oldest_log"] = log_file.name
        if newest_time is None or file_mtime > newest_time:
            newest_time = file_mtime
            stats["newest_log"] = log_file.name

        business_name = log_file.name.split('.log')[0]
        bucket = stats["files_by_business"].setdefault(
            business_name, {"count": 0, "size_mb": 0}
        )
        bucket["count"] += 1
        bucket["size_mb"] += file_size / 1024 / 1024

    stats["total_size_mb"] = round(stats["total_size_mb"], 2)

    return stats


def log_business_operation(business_name: str, operation_name: str = None):
    """
    Decorator that logs start, duration and failure of a business operation.

    Args:
        business_name: Business area name
        operation_name: Operation name (default: function name)
    """
    def decorator(func):
        def wrapper(*args, **kwargs):
            logger = logging.getLogger(f"business.{business_name}")
            op_name = operation_name or func.__name__

            logger.info(f"Starting {op_name}")
            start_time = time.time()

            try:
                result = func(*args, **kwargs)
                duration = time.time() - start_time
                logger.info(f"Finished {op_name} in {duration:.2f}s")
                return result

            except Exception as e:
                duration = time.time() - start_time
                logger.error(f"{op_name} failed after {duration:.2f}s: {e}")
                raise

        wrapper.__name__ = func.__name__
        wrapper.__doc__ = func.__doc__
        return wrapper
    return decorator
