import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Attach a single stream handler to the ``promptlab`` logger."""
    logger = logging.getLogger("promptlab")
    logger.setLevel(level.upper())
    if not any(getattr(h, "_promptlab", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._promptlab = True
        logger.addHandler(handler)
