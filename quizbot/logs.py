"""Logger setup: rich console output plus an optional fresh debug.log per run."""
import logging
from pathlib import Path
from typing import Optional

from rich.logging import RichHandler

LOGGER_NAME = "quizbot"


def setup_logging(log_dir: Optional[Path] = None, verbose: bool = False) -> logging.Logger:
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    logger.handlers.clear()
    logger.propagate = False
    sh = RichHandler(rich_tracebacks=True, show_path=False)
    sh.setLevel(logging.DEBUG if verbose else logging.INFO)
    logger.addHandler(sh)
    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(log_dir / "debug.log", mode="w", encoding="utf-8")  # fresh log per run
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s"))
        logger.addHandler(fh)
    return logger
