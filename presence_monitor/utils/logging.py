import sys
from typing import Optional

from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
)


def setup_logging(level: str, log_file: Optional[str] = None, serialize: bool = False) -> None:
    logger.remove()  # Remove default handler
    logger.add(sys.stderr, format=CONSOLE_FORMAT, level=level.upper(), serialize=serialize)
    if log_file:
        logger.add(
            log_file,
            rotation="500 MB",
            retention="10 days",
            level=level.upper(),
            serialize=serialize,
        )
