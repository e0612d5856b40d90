"""
Logging setup shared by the Record Store server and the replica tool.

Both processes log to the console in one format; the server may also
append to ``LOG_FILE``.  Chatty library loggers (HTTP connection pools,
uvicorn's access log) can be pinned to a higher level through
``overrides`` so request noise does not drown out record changes.
"""

import logging
from pathlib import Path
from typing import Mapping, Optional


LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

DEFAULT_OVERRIDES = {"urllib3": "WARNING", "uvicorn.access": "WARNING"}


def _level(name: str) -> int:
    return getattr(logging, name.upper(), logging.INFO)


def setup_logging(
    level: str = "INFO",
    logfile: Optional[str] = None,
    overrides: Optional[Mapping[str, str]] = None,
) -> None:
    """Configure the root logger once per process.

    A second call (``create_app`` runs once per test) leaves existing
    handlers alone.

    Parameters
    ----------
    level : str
        Root level name, case insensitive.  Unknown names mean INFO.
    logfile : Optional[str]
        File to append records to.  Missing parent directories are
        created.
    overrides : Optional[Mapping[str, str]]
        Logger name to level name.  Defaults to ``DEFAULT_OVERRIDES``.
    """
    root = logging.getLogger()
    if root.handlers:
        return

    root.setLevel(_level(level))
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    root.addHandler(console)

    if logfile:
        path = Path(logfile).resolve()
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    for name, name_level in (DEFAULT_OVERRIDES if overrides is None else overrides).items():
        logging.getLogger(name).setLevel(_level(name_level))
