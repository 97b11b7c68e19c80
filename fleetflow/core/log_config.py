import logging

from fleetflow.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"


def configure_logging() -> None:
    """Install the root handler once; uvicorn's own loggers are left alone."""
    root = logging.getLogger()
    if root.handlers:
        root.setLevel(settings.LOG_LEVEL)
        return
    logging.basicConfig(level=settings.LOG_LEVEL, format=LOG_FORMAT)
    # SQL echo only in debug
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.DEBUG else logging.WARNING
    )
