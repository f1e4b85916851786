"""
Loguru sink setup shared by the command line tools
"""
import os
import sys
from datetime import datetime
from typing import Optional

from loguru import logger

from .config import get_settings


def configure_logging(level: Optional[str] = None, log_dir: Optional[str] = None, name: str = "ecommerce_store"):
    """
    Replace loguru's default sink with one honouring LOG_LEVEL and,
    when a log directory is configured, add a rotating file sink.
    """
    settings = get_settings()
    level = (level or settings.log_level).upper()
    log_dir = log_dir or settings.log_dir

    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function} - {message}",
    )
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        logger.add(
            os.path.join(log_dir, f"{name}_{datetime.now().strftime('%Y-%m-%d_%H-%M-%S')}.log"),
            level=level,
            mode="a",
            format="{time} | {level} | {message}",
            rotation="5 MB",
            retention="7 days",
        )
    return logger
