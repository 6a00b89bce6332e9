import logging
from typing import Optional

from .config import get_settings

logger = logging.getLogger(__name__)


# --- Custom Logging Filter ---
# Records emitted by backends pass extra={"backend": ...}; records from anywhere
# else get a placeholder so the formatter never fails on a missing attribute.
class BackendLogFilter(logging.Filter):
    """
    A logging filter that ensures 'backend' and a normalized 'name'
    are present on log records for consistent formatting.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        current_backend = getattr(record, "backend", None)
        if current_backend is None:
            record.backend = "-"
        else:
            record.backend = str(current_backend)

        current_logger_name = getattr(record, "name", None)
        if not current_logger_name or current_logger_name == "root":
            record.name = "DefaultLogger"
        else:
            record.name = str(current_logger_name)

        return True


def backend_name(filesystem: object) -> str:
    """Short label for a backend in log records."""
    return type(filesystem).__name__


# --- Logging Setup Utility ---
def init_vfs_logging(
    level: Optional[int] = None, clear_existing_handlers: bool = True
) -> None:
    """
    Sets up a standardized console logging configuration for layerfs.

    Args:
        level: The desired logging level for the root logger. Defaults to
               the configured ``VfsSettings.log_level``.
        clear_existing_handlers: If True, removes any handlers already attached to the
                                 root logger, preventing duplicate output when the
                                 setup runs more than once.
    """
    if level is None:
        level = get_settings().log_level_value

    root_logger = logging.getLogger()

    if clear_existing_handlers:
        for handler in root_logger.handlers[:]:
            root_logger.removeHandler(handler)
            handler.close()

    stream_handler = logging.StreamHandler()
    formatter = logging.Formatter(
        "%(asctime)s - %(levelname)s - [%(name)s] [%(backend)s] %(message)s"
    )
    stream_handler.setFormatter(formatter)
    stream_handler.addFilter(BackendLogFilter())

    root_logger.addHandler(stream_handler)
    root_logger.setLevel(level)

    logger.info(
        f"layerfs logging setup complete. Root logger level set to {logging.getLevelName(level)}."
    )
