"""
ReleaseForge — Pipeline logger, step timing and batch banners.

LOG_LEVEL (default INFO) controls verbosity for the CLI and the API alike.
"""

import logging
import os
import time
from contextlib import contextmanager
from typing import Generator

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
    datefmt="%H:%M:%S",
)

logger = logging.getLogger("releaseforge")


@contextmanager
def step_timer(step_name: str) -> Generator[None, None, None]:
    """Log the duration of a network-bound step, and whether it raised."""
    logger.debug("▶ %s", step_name)
    start = time.perf_counter()
    failed = False
    try:
        yield
    except BaseException:
        failed = True
        raise
    finally:
        elapsed_ms = (time.perf_counter() - start) * 1000
        if failed:
            logger.warning("✗ %s — failed after %.0f ms", step_name, elapsed_ms)
        else:
            logger.info("✔ %s — %.0f ms", step_name, elapsed_ms)


def banner(title: str, char: str = "=", width: int = 60) -> None:
    """Framed section title between releases in batch runs."""
    logger.info(char * width)
    logger.info(title)
    logger.info(char * width)
