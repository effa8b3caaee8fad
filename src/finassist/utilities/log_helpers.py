import contextlib
import logging

LOG_FMT = "%(asctime)s - %(levelname)-8s - %(name)s - %(funcName)s:%(lineno)d - %(message)s"


def basic_log_config(level=logging.WARNING, **kwargs) -> None:
    """Configure logging defaults for all loggers."""
    logging.basicConfig(level=level, format=LOG_FMT, **kwargs)


@contextlib.contextmanager
def suppress_logs(logger: logging.Logger, level: int = logging.ERROR):
    """Context manager to temporarily raise a logger's level."""
    previous_level = logger.getEffectiveLevel()
    logger.setLevel(level)
    try:
        yield
    finally:
        logger.setLevel(previous_level)
