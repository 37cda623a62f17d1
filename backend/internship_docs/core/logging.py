"""Root logger configuration."""

import logging
import sys


_FORMAT = "%(asctime)s %(levelname)-8s %(name)s  %(message)s"


def setup_logging(level_name: str) -> None:
    """Send everything to stdout at the configured level.

    Third-party loggers that are chatty at DEBUG are held at WARNING.
    """
    level = getattr(logging, level_name.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S%z"))

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    for name in ("uvicorn.access", "botocore", "urllib3", "google", "sqlalchemy.engine"):
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
