# app/core/logging_config.py
import logging

from app.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_configured = False


def setup_logging(level: str | None = None) -> None:
    """
    Configure the root logger once for the API process and the worker.
    Later calls only adjust the level.
    """
    global _configured

    level_name = (level or settings.LOG_LEVEL).upper()
    log_level = getattr(logging, level_name, logging.INFO)

    root = logging.getLogger()
    root.setLevel(log_level)
    if _configured:
        return

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
    root.addHandler(handler)

    # httpx logs every request at INFO, too noisy next to the worker output
    logging.getLogger("httpx").setLevel(logging.WARNING)

    _configured = True
    logging.getLogger(__name__).debug(f"logging initialized (level={level_name})")
