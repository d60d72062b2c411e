from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(log_file: Optional[Path] = None, *, verbose: bool = False) -> None:
    """
    Console + append-mode file logging for entrypoints.

    Library modules only create `logging.getLogger(__name__)`; handlers are
    attached here, once, by whoever runs the pipeline.
    """
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, mode="a", encoding="utf-8"))

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        handlers=handlers,
        force=True,
    )
    # Third-party chatter stays at WARNING unless debugging
    for noisy in ("urllib3", "pyogrio", "fiona", "sqlalchemy.engine"):
        logging.getLogger(noisy).setLevel(logging.DEBUG if verbose else logging.WARNING)
