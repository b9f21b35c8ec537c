import logging
import sys


LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Attach a single stdout handler to the ``studyhub`` logger tree."""
    logger = logging.getLogger("studyhub")
    logger.setLevel(level.upper())
    # lifespan may run more than once per process (tests, reload)
    if logger.handlers:
        return
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    logger.propagate = False
