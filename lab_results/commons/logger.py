import os
from datetime import datetime
from pathlib import Path
from typing import Optional

from loguru import logger

# Cada línea lleva el MSH-10 del mensaje en curso ("-" fuera de un mensaje)
LOG_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | msg={extra[message_id]} | "
    "{name}:{function}:{line} - {message}"
)

logger.configure(extra={"message_id": "-"})


def setup_logging(root: str, level: Optional[str] = None, app_name: str = "lab-results"):
    level = level or os.getenv("LOG_LEVEL", "INFO")
    logdir = Path(root) / datetime.now().strftime("%Y/%m/%d")
    logdir.mkdir(parents=True, exist_ok=True)
    logfile = logdir / f"{app_name}.log"
    logger.remove()
    logger.add(
        str(logfile),
        format=LOG_FORMAT,
        rotation="00:00",
        retention="14 days",
        level=level,
        enqueue=True,
        backtrace=True,
        diagnose=True,
    )
    logger.add(lambda m: print(m, end=""), format=LOG_FORMAT, level=level)
    return logger


def message_logger(message_id: str):
    """Logger ligado al id del mensaje HL7 (MSH-10)."""
    return logger.bind(message_id=message_id or "-")
