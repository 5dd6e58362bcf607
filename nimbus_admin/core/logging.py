import logging

from rich.console import Console
from rich.logging import RichHandler

console = Console(stderr=True)

# Third-party loggers that are noisy at INFO/DEBUG
QUIET_LOGGERS = {
    "uvicorn.access": logging.WARNING,
    "passlib": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
}


def setup_logging(level: str = "INFO"):
    """
    Route all logging through a RichHandler at NIMBUS_LOG_LEVEL.

    Access logs, passlib backend probing and SQLAlchemy statement echo stay
    at WARNING unless the level itself is stricter.
    """
    root_level = logging.getLevelName(level.upper())
    if not isinstance(root_level, int):
        root_level = logging.INFO

    logging.basicConfig(
        level=root_level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )
    for name, floor in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(max(floor, root_level))
    return root_level
