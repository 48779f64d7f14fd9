# mindmap-canvas/mindmap_canvas/logging_config.py
import logging
import sys
from typing import Optional, Union

from .config import settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_HANDLER_NAME = "mindmap_canvas"


def setup_logging(level: Optional[Union[str, int]] = None, stream=None) -> logging.Logger:
    """Attaches a single stream handler to the package logger.

    Calling it again only updates the level. Defaults to MINDMAP_LOG_LEVEL.
    """
    if level is None:
        level = settings.LOG_LEVEL
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    package_logger = logging.getLogger("mindmap_canvas")
    package_logger.setLevel(level)
    if not any(h.get_name() == _HANDLER_NAME for h in package_logger.handlers):
        handler = logging.StreamHandler(stream or sys.stderr)
        handler.set_name(_HANDLER_NAME)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
        package_logger.addHandler(handler)
    return package_logger
