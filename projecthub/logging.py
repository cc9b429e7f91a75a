from __future__ import annotations

import logging
import sys


def configure_logging(level: str) -> None:
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    root = logging.getLogger()
    root.setLevel(numeric_level)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(numeric_level)
    fmt = logging.Formatter(
        fmt="%(asctime)s %(levelname)s %(name)s - %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S%z",
    )
    handler.setFormatter(fmt)

    # Avoid duplicate handlers on reload
    root.handlers.clear()
    root.addHandler(handler)

    # httpx logs every request at INFO; calendar polling makes that noisy.
    logging.getLogger("httpx").setLevel(max(numeric_level, logging.WARNING))
