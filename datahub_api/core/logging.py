import logging

import colorlog

from datahub_api.core.config import settings

LOG_FORMAT = (
    "%(log_color)s%(levelname)-8s%(reset)s "
    "%(cyan)s%(asctime)s%(reset)s "
    "%(blue)s[%(name)s]%(reset)s "
    "%(message)s"
)
DATEFMT = "%Y-%m-%d %H:%M:%S"

LOG_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "bold_red",
}


def configure_logging(level: int | str = settings.LOG_LEVEL) -> None:
    """Attach a colored stream handler to the root logger (once)."""
    root = logging.getLogger()
    root.setLevel(level)

    if any(getattr(h, "_datahub", False) for h in root.handlers):
        return

    handler = colorlog.StreamHandler()
    handler.setFormatter(
        colorlog.ColoredFormatter(
            LOG_FORMAT,
            datefmt=DATEFMT,
            log_colors=LOG_COLORS,
            reset=True,
            style="%",
        )
    )
    handler._datahub = True
    root.addHandler(handler)

    # SQL echo is controlled by our own DEBUG logs in the search compiler
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
