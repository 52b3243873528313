import logging
from typing import Optional

LOG_FORMAT = "[%(asctime)s] %(levelname)-8s %(name)s | %(message)s"
DATE_FORMAT = "%H:%M:%S"


def configure_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    """Root logging setup for the command-line scripts."""
    handlers = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        handlers=handlers,
        force=True,
    )
