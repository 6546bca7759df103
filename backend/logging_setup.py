import logging
import sys

import config


def setup_logging(level: str | int | None = None) -> None:
    """
    Configure root logging with a single stderr handler.

    Safe to call more than once (uvicorn reloads, TestClient lifespans):
    existing handlers are replaced rather than stacked.
    """
    root = logging.getLogger()
    root.setLevel(level or config.LOG_LEVEL)

    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))
    root.addHandler(handler)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
