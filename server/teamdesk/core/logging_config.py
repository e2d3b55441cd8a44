import logging
import sys
from pathlib import Path
from logging.handlers import RotatingFileHandler

from teamdesk.core.config import settings

MAX_LOG_BYTES = 10 * 1024 * 1024  # 10MB
LOG_BACKUP_COUNT = 5


def _rotating_handler(path: Path, level: int, formatter: logging.Formatter) -> RotatingFileHandler:
    handler = RotatingFileHandler(path, maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUP_COUNT)
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(log_dir: str = None, level: str = None):
    """Configure application logging."""
    log_path = Path(log_dir or settings.LOG_DIR)
    log_path.mkdir(parents=True, exist_ok=True)
    log_level = getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO)

    # Root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Clear existing handlers
    root_logger.handlers.clear()

    # Console handler
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    ))
    root_logger.addHandler(console_handler)

    file_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    # Application and error logs
    root_logger.addHandler(_rotating_handler(log_path / "app.log", log_level, file_formatter))
    root_logger.addHandler(_rotating_handler(log_path / "error.log", logging.ERROR, file_formatter))

    # Access logs (for API requests)
    access_handler = _rotating_handler(
        log_path / "access.log",
        logging.INFO,
        logging.Formatter('%(asctime)s - %(message)s', datefmt='%Y-%m-%d %H:%M:%S'),
    )
    access_logger = logging.getLogger("access")
    access_logger.setLevel(logging.INFO)
    access_logger.handlers.clear()
    access_logger.addHandler(access_handler)
    access_logger.propagate = False

    # SQLAlchemy logger (optional - can be verbose)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    return root_logger
